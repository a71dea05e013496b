from __future__ import annotations

import json
from pathlib import Path

import pytest

from site_build.core import SourceError, StageFilesError
from site_build.stages.content.runner import compile_tree


def _write(root: Path, rel: str, text: str) -> None:
    p = root / rel
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(text, encoding="utf-8")


def test_three_documents_one_without_frontmatter(tmp_path: Path) -> None:
    src = tmp_path / "content"
    out = tmp_path / "dist" / "content"
    _write(src, "index.md", "---\ntitle: Home\n---\n# Welcome\n")
    _write(src, "blog/post.md", "---\ntitle: Post\ndate: 2024-05-01\n---\nHello *there*\n")
    _write(src, "about.md", "# About\n\nNo metadata here.\n")

    result = compile_tree(src_root=src, out_root=out)

    assert len(result.documents) == 3
    assert result.warnings == ["No frontmatter found in about.md"]
    assert result.metrics(failed=0) == {
        "documents": 3,
        "compiled": 3,
        "failed": 0,
        "missing_frontmatter": 1,
    }
    assert (out / "index.html").is_file()
    assert (out / "blog" / "post.html").is_file()
    assert (out / "about.html").is_file()

    sidecar = json.loads((out / "blog" / "post.json").read_text())
    assert sidecar == {"metadata": {"title": "Post", "date": "2024-05-01"}, "sourceFile": "blog/post.md", "headings": []}


def test_bad_document_fails_after_others_compile(tmp_path: Path) -> None:
    src = tmp_path / "content"
    out = tmp_path / "out"
    _write(src, "a.md", "---\ntitle: [broken\n---\nbody\n")
    _write(src, "b.md", "---\ntitle: ok\n---\nbody\n")

    with pytest.raises(StageFilesError) as ei:
        compile_tree(src_root=src, out_root=out)

    assert (out / "b.html").is_file()
    assert not (out / "a.html").exists()
    assert ei.value.failures[0].path == "a.md"
    assert "1 of 2 documents failed" in str(ei.value)
    assert ei.value.metrics["compiled"] == 1


def test_multi_dot_names_keep_their_stem(tmp_path: Path) -> None:
    src = tmp_path / "content"
    out = tmp_path / "out"
    _write(src, "release.v2.md", "---\ntitle: r\n---\nx\n")
    compile_tree(src_root=src, out_root=out)
    assert (out / "release.v2.html").is_file()
    assert (out / "release.v2.json").is_file()


def test_missing_source_root(tmp_path: Path) -> None:
    with pytest.raises(SourceError):
        compile_tree(src_root=tmp_path / "nope", out_root=tmp_path / "out")
