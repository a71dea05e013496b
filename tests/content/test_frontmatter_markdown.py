from __future__ import annotations

import pytest

from site_build.core import FrontmatterError
from site_build.stages.content.frontmatter import split_frontmatter
from site_build.stages.content.markdown import render_markdown, slugify


def test_split_frontmatter_parses_mapping() -> None:
    fm = split_frontmatter("---\ntitle: Hello\ntags: [a, b]\n---\n# Body\n")
    assert fm.present is True
    assert fm.metadata == {"title": "Hello", "tags": ["a", "b"]}
    assert fm.body == "# Body\n"


def test_split_frontmatter_absent_block() -> None:
    fm = split_frontmatter("# Just markdown\n")
    assert fm.present is False
    assert fm.metadata == {}
    assert fm.body == "# Just markdown\n"


def test_split_frontmatter_bom_and_dot_closer() -> None:
    fm = split_frontmatter("\ufeff---\ntitle: x\n...\nbody")
    assert fm.metadata == {"title": "x"}
    assert fm.body == "body"


@pytest.mark.parametrize(
    "text",
    [
        "---\ntitle: [unclosed\n---\nbody",
        "---\n- just\n- a list\n---\nbody",
        "---\ntitle: never closed\n",
    ],
)
def test_split_frontmatter_rejects_bad_blocks(text: str) -> None:
    with pytest.raises(FrontmatterError):
        split_frontmatter(text)


def test_slugify() -> None:
    assert slugify("Hello, World!") == "hello-world"
    assert slugify("<em>Fast</em> builds") == "fast-builds"
    assert slugify("!!!") == "section"


def test_headings_get_unique_anchors() -> None:
    out = render_markdown("# Intro\n\n## Intro\n\n##### Deep\n\ntext")
    assert '<h1 id="intro"><a class="header-anchor" href="#intro">Intro</a></h1>' in out.html
    assert '<h2 id="intro-1">' in out.html
    assert "<h5>Deep</h5>" in out.html
    assert [(h.level, h.slug) for h in out.headings] == [(1, "intro"), (2, "intro-1")]


def test_markdown_plugins_and_raw_html() -> None:
    out = render_markdown("| a | b |\n|---|---|\n| 1 | 2 |\n\n~~old~~\n\n<div class=\"x\">raw</div>\n")
    assert "<table>" in out.html
    assert "<del>old</del>" in out.html
    assert '<div class="x">raw</div>' in out.html
