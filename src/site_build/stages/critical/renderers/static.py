"""
Browserless renderer: soupsieve selector matching over a block-flow height
estimate of the document.

The layout model is deliberately coarse. Block elements stack vertically;
runs of inline content become lines of text wrapped at the viewport width;
images and other replaced elements use their width/height attributes or a
16:9 box. Stylesheets are not applied to layout.
"""

from __future__ import annotations

import asyncio
import math
import re
from typing import Sequence

import soupsieve
import structlog
from bs4 import BeautifulSoup, NavigableString, Tag

from site_build.core import Viewport

from ..media import evaluate_media_query
from .base import RenderMeasurement

log = structlog.get_logger(__name__)

BASE_FONT_PX = 16.0
LINE_HEIGHT = 1.5
CHAR_WIDTH_EM = 0.5
DEFAULT_REPLACED_HEIGHT = 150.0

BLOCK_TAGS = frozenset(
    {
        "address", "article", "aside", "blockquote", "body", "details", "dialog",
        "dd", "div", "dl", "dt", "fieldset", "figcaption", "figure", "footer",
        "form", "h1", "h2", "h3", "h4", "h5", "h6", "header", "hgroup", "hr",
        "html", "li", "main", "nav", "ol", "p", "pre", "section", "summary",
        "table", "tbody", "td", "tfoot", "th", "thead", "tr", "ul",
    }
)
REPLACED_TAGS = frozenset(
    {"img", "video", "iframe", "canvas", "svg", "picture", "object", "embed"}
)
INVISIBLE_TAGS = frozenset(
    {"head", "script", "style", "template", "meta", "link", "title", "noscript", "base"}
)

FONT_SIZES = {"h1": 32.0, "h2": 24.0, "h3": 18.72, "h4": 16.0, "h5": 13.28, "h6": 10.72}
SPACED_TAGS = frozenset(
    {"p", "h1", "h2", "h3", "h4", "h5", "h6", "ul", "ol", "dl", "blockquote", "pre", "figure"}
)

_DISPLAY_NONE_RE = re.compile(r"display\s*:\s*none", re.IGNORECASE)
_PX_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(?:px)?\s*$")

Box = tuple[float, float]


def _hidden(el: Tag) -> bool:
    if el.name in INVISIBLE_TAGS or el.has_attr("hidden"):
        return True
    if el.name == "input" and str(el.get("type", "")).lower() == "hidden":
        return True
    return bool(_DISPLAY_NONE_RE.search(str(el.get("style", ""))))


def _px_attr(el: Tag, name: str) -> float | None:
    m = _PX_RE.match(str(el.get(name, "")))
    return float(m.group(1)) if m else None


class _FlowLayout:
    def __init__(self, viewport: Viewport) -> None:
        self.vp = viewport
        self.boxes: dict[int, Box] = {}
        self.elements: list[Tag] = []

    def _set(self, el: Tag, box: Box) -> None:
        if id(el) not in self.boxes:
            self.elements.append(el)
        self.boxes[id(el)] = box

    def _hide(self, el: Tag) -> None:
        # Matches what a browser reports for display:none.
        self._set(el, (0.0, 0.0))
        for d in el.find_all(True):
            self._set(d, (0.0, 0.0))

    def text_height(self, text: str, font_px: float) -> float:
        n = len(" ".join(text.split()))
        if n == 0:
            return 0.0
        per_line = max(1, int(self.vp.width / (font_px * CHAR_WIDTH_EM)))
        return math.ceil(n / per_line) * font_px * LINE_HEIGHT

    def replaced_height(self, el: Tag) -> float:
        w = _px_attr(el, "width")
        h = _px_attr(el, "height")
        if h is not None:
            if w and w > self.vp.width:
                return h * self.vp.width / w
            return h
        if el.name == "img":
            return min(w or self.vp.width, self.vp.width) * 9 / 16
        return DEFAULT_REPLACED_HEIGHT

    def _inline_run(self, run: list[Tag | NavigableString], y: float, font_px: float) -> float:
        text = []
        extra = 0.0
        for node in run:
            if isinstance(node, Tag):
                text.append(node.get_text(" "))
                for r in [node, *node.find_all(True)]:
                    if r.name in REPLACED_TAGS and not _hidden(r):
                        extra += self.replaced_height(r)
            else:
                text.append(str(node))
        height = self.text_height(" ".join(text), font_px) + extra
        for node in run:
            if not isinstance(node, Tag):
                continue
            if _hidden(node):
                self._hide(node)
                continue
            self._set(node, (y, y + height))
            for d in node.find_all(True):
                if _hidden(d):
                    self._hide(d)
                elif id(d) not in self.boxes:
                    self._set(d, (y, y + height))
        return y + height

    def layout(self, el: Tag, y: float, font_px: float = BASE_FONT_PX) -> float:
        if _hidden(el):
            self._hide(el)
            return y
        if el.name in REPLACED_TAGS:
            bottom = y + self.replaced_height(el)
            self._set(el, (y, bottom))
            for d in el.find_all(True):
                self._set(d, (y, bottom))
            return bottom

        font_px = FONT_SIZES.get(el.name, font_px)
        margin = font_px if el.name in SPACED_TAGS else 0.0
        if el.name == "hr":
            margin = 8.0
        y += margin
        top = y

        run: list[Tag | NavigableString] = []
        for child in el.children:
            if isinstance(child, Tag) and (
                child.name in BLOCK_TAGS or child.name in INVISIBLE_TAGS
            ):
                if run:
                    y = self._inline_run(run, y, font_px)
                    run = []
                y = self.layout(child, y, font_px)
            elif isinstance(child, Tag) or type(child) is NavigableString:
                # Comments and doctypes are not content.
                run.append(child)
        if run:
            y = self._inline_run(run, y, font_px)

        self._set(el, (top, y))
        return y + margin


def measure_document(soup: BeautifulSoup, viewport: Viewport) -> list[Tag]:
    """
    Elements whose estimated box intersects the initial view
    (top < viewport height and bottom > 0).
    """
    root = soup.find("html")
    flow = _FlowLayout(viewport)
    if isinstance(root, Tag):
        flow.layout(root, 0.0)
    else:
        for child in soup.children:
            if isinstance(child, Tag):
                flow.layout(child, 0.0)
    critical = []
    for el in flow.elements:
        top, bottom = flow.boxes[id(el)]
        if top < viewport.height and bottom > 0:
            critical.append(el)
    return critical


class StaticRenderer:
    name = "static"

    def __init__(self) -> None:
        self._compiled: dict[str, soupsieve.SoupSieve | None] = {}

    async def __aenter__(self) -> "StaticRenderer":
        return self

    async def __aexit__(self, *exc: object) -> None:
        self._compiled.clear()

    def _compile(self, selector: str) -> soupsieve.SoupSieve | None:
        if selector not in self._compiled:
            try:
                self._compiled[selector] = soupsieve.compile(selector)
            except (soupsieve.SelectorSyntaxError, NotImplementedError, ValueError) as e:
                log.debug("Skipping unsupported selector", selector=selector, error=str(e))
                self._compiled[selector] = None
        return self._compiled[selector]

    def measure(
        self,
        html: str,
        viewport: Viewport,
        *,
        selectors: Sequence[str],
        media_conditions: Sequence[str],
    ) -> RenderMeasurement:
        soup = BeautifulSoup(html, "html.parser")
        critical = measure_document(soup, viewport)
        matched: set[str] = set()
        for sel in selectors:
            compiled = self._compile(sel)
            if compiled is None:
                continue
            if any(compiled.match(el) for el in critical):
                matched.add(sel)
        media = {c for c in media_conditions if evaluate_media_query(c, viewport)}
        return RenderMeasurement(
            matched_selectors=frozenset(matched),
            matched_media=frozenset(media),
            critical_elements=len(critical),
        )

    async def render_and_measure(
        self,
        html: str,
        css: str,
        viewport: Viewport,
        *,
        selectors: Sequence[str],
        media_conditions: Sequence[str],
    ) -> RenderMeasurement:
        return await asyncio.to_thread(
            self.measure,
            html,
            viewport,
            selectors=selectors,
            media_conditions=media_conditions,
        )
