from __future__ import annotations

from pathlib import Path

from site_build.core import hashing, json


def test_sha256_helpers(tmp_path: Path) -> None:
    assert (
        hashing.sha256_bytes(b"abc")
        == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
    )

    f = tmp_path / "data.bin"
    f.write_bytes(b"abc")
    digest = hashing.sha256_file(f)
    assert digest.sha256 == hashing.sha256_bytes(b"abc")
    assert digest.bytes == 3


def test_tree_digest_keys_are_posix_relpaths(tmp_path: Path) -> None:
    (tmp_path / "css").mkdir()
    (tmp_path / "css" / "a.css").write_text("a{}")
    (tmp_path / "index.html").write_text("<p>")

    d = hashing.tree_digest(tmp_path)
    assert sorted(d) == ["css/a.css", "index.html"]
    assert d["css/a.css"] == hashing.sha256_bytes(b"a{}")


def test_json_helpers(tmp_path: Path) -> None:
    obj = {"b": 1, "a": 2}
    out = tmp_path / "sample.json"
    json.atomic_write_json(out, obj)
    assert json.read_json(out) == {"a": 2, "b": 1}

    compact = json.stable_json_dumps(obj, indent=None)
    assert compact == '{"a":2,"b":1}'
    assert json.stable_json_dumps({"t": "café"}, indent=None) == '{"t":"café"}'
