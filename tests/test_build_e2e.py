from __future__ import annotations

import json
from pathlib import Path

import pytest
from PIL import Image

from site_build import BuildSettings, run_build
from site_build.cli import main
from site_build.core import tree_digest

CSS = {
    "base/reset.css": "*, *::before { box-sizing: border-box; }\nbody { margin: 0; }\n",
    "base/variables.css": ":root {\n  --brand: #aa3355;\n}\n",
    "base/typography.css": "h1 { font-size: 2.5rem; }\np { line-height: 1.6; }\n",
    "components/card.css": ".card { padding: 1rem; }\n.never-shown { color: red; }\n",
    "utilities/responsive.css": "@media (min-width: 768px) {\n  h1 { font-size: 3rem; }\n}\n",
}


def _source_tree(root: Path) -> Path:
    src = root / "src"
    content = src / "content"
    (content / "blog").mkdir(parents=True)
    (content / "index.md").write_text("---\ntitle: Home\n---\n# Welcome\n\nHello.\n")
    (content / "blog" / "first.md").write_text("---\ntitle: First\n---\n## Post\n\nBody.\n")
    (content / "about.md").write_text("# About\n")

    images = src / "images"
    images.mkdir(parents=True)
    Image.new("RGB", (1600, 960), (10, 120, 200)).save(images / "hero.jpg", "JPEG")
    (images / "logo.svg").write_bytes(b"<svg xmlns='http://www.w3.org/2000/svg'/>")

    for rel, text in CSS.items():
        p = src / "styles" / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(text)
    return src


def _settings(tmp_path: Path, src: Path) -> BuildSettings:
    return BuildSettings(
        source_root=src,
        output_root=tmp_path / "dist",
        run_root=tmp_path / "runs",
        critical_renderer="static",
    )


def test_full_build(tmp_path: Path) -> None:
    src = _source_tree(tmp_path)
    report = run_build(_settings(tmp_path, src))

    assert report.exit_code == 0, [e.message for e in report.errors]
    assert [t.status.value for t in report.tasks] == ["completed"] * 5

    dist = tmp_path / "dist"
    assert (dist / "content" / "blog" / "first.html").is_file()
    assert (dist / "images" / "hero-1024w.webp").is_file()
    assert not (dist / "images" / "hero-1920w.webp").exists()
    assert (dist / "images" / "logo.svg").is_file()

    bundle = (dist / "css" / "styles.min.css").read_text()
    assert bundle.index("box-sizing") < bundle.index("--brand") < bundle.index(".card")

    critical = (dist / "css" / "critical.css").read_text()
    assert "body{margin:0}" in critical
    assert ".never-shown" not in critical
    assert len(critical.encode()) <= 14 * 1024

    warnings = [w.message for w in report.warnings]
    assert "No frontmatter found in about.md" in warnings

    stats = json.loads((dist / "build-stats.json").read_text())
    assert set(stats["dirs"]) == {"content", "css", "images"}


def test_rebuild_is_idempotent(tmp_path: Path) -> None:
    src = _source_tree(tmp_path)
    settings = _settings(tmp_path, src)

    run_build(settings)
    first = tree_digest(tmp_path / "dist")
    run_build(settings)
    second = tree_digest(tmp_path / "dist")

    first.pop("build-stats.json")
    second.pop("build-stats.json")
    assert first == second


def test_cli_exit_codes(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    src = _source_tree(tmp_path)
    monkeypatch.chdir(tmp_path)

    code = main(
        ["--source", str(src), "--output", str(tmp_path / "out"), "--renderer", "static", "--no-stats"]
    )
    assert code == 0
    assert (tmp_path / "out" / "css" / "critical.css").is_file()
    assert not (tmp_path / "out" / "build-stats.json").exists()

    (src / "content" / "broken.md").write_text("---\ntitle: [oops\n---\n")
    code = main(["--source", str(src), "--output", str(tmp_path / "out"), "--skip", "critical"])
    assert code == 1


def test_cli_rejects_invalid_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    assert main(["--max-bytes", "0"]) == 1
