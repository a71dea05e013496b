from __future__ import annotations

from typing import Any, Sequence

import structlog
from playwright.async_api import Browser, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from site_build.core import RenderError, RendererUnavailableError, Viewport

from .base import RenderMeasurement

log = structlog.get_logger(__name__)

LAUNCH_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]

# Fold test: any part of the box inside the initial view.
_MEASURE_JS = """
({selectors, conditions}) => {
  const vh = window.innerHeight;
  const critical = Array.from(document.querySelectorAll('*')).filter((el) => {
    const rect = el.getBoundingClientRect();
    return rect.top < vh && rect.bottom > 0;
  });
  const matched = [];
  for (const sel of selectors) {
    try {
      if (critical.some((el) => el.matches(sel))) matched.push(sel);
    } catch (e) {
      // unsupported selector
    }
  }
  const media = conditions.filter((c) => {
    try {
      return window.matchMedia(c).matches;
    } catch (e) {
      return false;
    }
  });
  return {matched: matched, media: media, elements: critical.length};
}
"""


class BrowserRenderer:
    """
    Headless Chromium via Playwright. One browser per extraction, one fresh
    page per render.
    """

    name = "playwright"

    def __init__(self, *, headless: bool = True) -> None:
        self.headless = headless
        self._pw: Playwright | None = None
        self._browser: Browser | None = None

    async def __aenter__(self) -> "BrowserRenderer":
        try:
            self._pw = await async_playwright().start()
            self._browser = await self._pw.chromium.launch(
                headless=self.headless, args=LAUNCH_ARGS
            )
        except Exception as e:
            await self._shutdown()
            raise RendererUnavailableError(f"Cannot launch headless browser: {e}") from e
        log.debug("Headless browser launched")
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self._shutdown()

    async def _shutdown(self) -> None:
        if self._browser is not None:
            try:
                await self._browser.close()
            except PlaywrightError as e:
                log.warning("Error closing browser", error=str(e))
            self._browser = None
        if self._pw is not None:
            await self._pw.stop()
            self._pw = None

    async def render_and_measure(
        self,
        html: str,
        css: str,
        viewport: Viewport,
        *,
        selectors: Sequence[str],
        media_conditions: Sequence[str],
    ) -> RenderMeasurement:
        if self._browser is None:
            raise RendererUnavailableError("Browser renderer used outside its context")

        page = await self._browser.new_page(
            viewport={"width": viewport.width, "height": viewport.height}
        )
        try:
            await page.set_content(html, wait_until="load")
            await page.add_style_tag(content=css)
            data: dict[str, Any] = await page.evaluate(
                _MEASURE_JS,
                {"selectors": list(selectors), "conditions": list(media_conditions)},
            )
        except PlaywrightError as e:
            raise RenderError(f"Render failed at {viewport.label()}: {e}") from e
        finally:
            await page.close()

        return RenderMeasurement(
            matched_selectors=frozenset(data.get("matched", [])),
            matched_media=frozenset(data.get("media", [])),
            critical_elements=int(data.get("elements", 0)),
        )
