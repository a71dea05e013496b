from __future__ import annotations

import structlog

from site_build.core import RendererUnavailableError

from .base import HTML_SHELL, Renderer, RenderMeasurement, wrap_fragment
from .browser import BrowserRenderer
from .static import StaticRenderer, measure_document

log = structlog.get_logger(__name__)


class AutoRenderer:
    """
    Headless browser when one can be launched, static renderer otherwise.
    """

    name = "auto"

    def __init__(self) -> None:
        self._active: BrowserRenderer | StaticRenderer | None = None

    async def __aenter__(self) -> BrowserRenderer | StaticRenderer:
        try:
            self._active = await BrowserRenderer().__aenter__()
        except RendererUnavailableError as e:
            log.warning("Headless browser unavailable, using static renderer", error=str(e))
            self._active = await StaticRenderer().__aenter__()
        return self._active

    async def __aexit__(self, *exc: object) -> None:
        if self._active is not None:
            await self._active.__aexit__(*exc)
            self._active = None


def make_renderer(name: str) -> AutoRenderer | BrowserRenderer | StaticRenderer:
    if name == "auto":
        return AutoRenderer()
    if name == "playwright":
        return BrowserRenderer()
    if name == "static":
        return StaticRenderer()
    raise ValueError(f"Unknown renderer: {name!r}")


__all__ = [
    "HTML_SHELL",
    "AutoRenderer",
    "BrowserRenderer",
    "Renderer",
    "RenderMeasurement",
    "StaticRenderer",
    "make_renderer",
    "measure_document",
    "wrap_fragment",
]
