from __future__ import annotations

from pathlib import Path

from site_build.core import fs


def test_atomic_write_text_and_bytes_roundtrip(tmp_path: Path) -> None:
    text_path = tmp_path / "d1" / "sample.txt"
    fs.atomic_write_text(text_path, "hello\n")
    assert text_path.read_text() == "hello\n"

    fs.atomic_write_text(text_path, "updated")
    assert text_path.read_text() == "updated"

    bytes_path = tmp_path / "d2" / "sample.bin"
    fs.atomic_write_bytes(bytes_path, b"\x00\x01")
    assert bytes_path.read_bytes() == b"\x00\x01"
    # no temp files left behind
    assert [p.name for p in bytes_path.parent.iterdir()] == ["sample.bin"]


def test_copy_file_never_aliases_source(tmp_path: Path) -> None:
    src = tmp_path / "a" / "logo.svg"
    fs.ensure_parent(src)
    src.write_bytes(b"<svg/>")

    dst = tmp_path / "b" / "logo.svg"
    fs.copy_file(src, dst)
    assert dst.read_bytes() == b"<svg/>"
    assert fs.file_size(dst) == 6
    assert fs.relpath_posix(dst, tmp_path) == "b/logo.svg"
    assert src.stat().st_ino != dst.stat().st_ino


def test_reset_dir_removes_existing_tree(tmp_path: Path) -> None:
    root = tmp_path / "dist"
    assert fs.reset_dir(root) is False
    (root / "css").mkdir()
    (root / "css" / "old.css").write_text("a{}")

    assert fs.reset_dir(root) is True
    assert root.is_dir()
    assert list(root.iterdir()) == []


def test_iter_files_sorted_and_filtered(tmp_path: Path) -> None:
    for name in ("b.md", "a.MD", "sub/c.md", "notes.txt"):
        p = tmp_path / name
        fs.ensure_parent(p)
        p.write_text("x")

    found = [fs.relpath_posix(p, tmp_path) for p in fs.iter_files(tmp_path, (".md",))]
    assert found == ["a.MD", "b.md", "sub/c.md"]
