from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, Sequence

from site_build.core import Viewport

HTML_SHELL = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Critical CSS sample</title>
</head>
<body>
{fragment}
</body>
</html>
"""


def wrap_fragment(fragment: str) -> str:
    return HTML_SHELL.format(fragment=fragment)


@dataclass(frozen=True, slots=True)
class RenderMeasurement:
    """
    Result of one (page, viewport) render.

    `matched_selectors` is the subset of the requested selectors matching at
    least one element that intersects the initial view; `matched_media` the
    subset of requested media conditions that hold at that viewport.
    """

    matched_selectors: frozenset[str] = field(default_factory=frozenset)
    matched_media: frozenset[str] = field(default_factory=frozenset)
    critical_elements: int = 0


class Renderer(Protocol):
    name: str

    async def __aenter__(self) -> "Renderer": ...

    async def __aexit__(self, *exc: object) -> None: ...

    async def render_and_measure(
        self,
        html: str,
        css: str,
        viewport: Viewport,
        *,
        selectors: Sequence[str],
        media_conditions: Sequence[str],
    ) -> RenderMeasurement: ...
