from __future__ import annotations

import html
import re
from dataclasses import dataclass
from typing import Any

import mistune

ANCHOR_LEVELS = (1, 2, 3, 4)

_TAG_RE = re.compile(r"<[^>]+>")
_NON_SLUG_RE = re.compile(r"[^\w\- ]+", re.UNICODE)
_SPACE_RE = re.compile(r"[\s_]+")


@dataclass(frozen=True, slots=True)
class Heading:
    level: int
    text: str
    slug: str

    def to_dict(self) -> dict[str, Any]:
        return {"level": self.level, "text": self.text, "slug": self.slug}


def slugify(text: str) -> str:
    plain = html.unescape(_TAG_RE.sub("", text)).strip().lower()
    plain = _NON_SLUG_RE.sub("", plain)
    return _SPACE_RE.sub("-", plain).strip("-") or "section"


class AnchoredRenderer(mistune.HTMLRenderer):
    """HTML renderer that gives h1-h4 a unique id and a self-link."""

    def __init__(self) -> None:
        super().__init__(escape=False)
        self.headings: list[Heading] = []
        self._seen: dict[str, int] = {}

    def _unique(self, slug: str) -> str:
        n = self._seen.get(slug, 0)
        self._seen[slug] = n + 1
        return slug if n == 0 else f"{slug}-{n}"

    def heading(self, text: str, level: int, **attrs: Any) -> str:
        if level not in ANCHOR_LEVELS:
            return super().heading(text, level, **attrs)
        slug = self._unique(slugify(text))
        self.headings.append(
            Heading(level=level, text=html.unescape(_TAG_RE.sub("", text)).strip(), slug=slug)
        )
        return (
            f'<h{level} id="{slug}"><a class="header-anchor" href="#{slug}">'
            f"{text}</a></h{level}>\n"
        )


@dataclass(frozen=True, slots=True)
class RenderedMarkdown:
    html: str
    headings: tuple[Heading, ...]


def render_markdown(body: str) -> RenderedMarkdown:
    # One renderer per document keeps slug de-duplication local to it.
    renderer = AnchoredRenderer()
    md = mistune.create_markdown(
        escape=False,
        renderer=renderer,
        plugins=["table", "strikethrough", "task_lists", "url"],
    )
    out = md(body)
    return RenderedMarkdown(html=str(out), headings=tuple(renderer.headings))
