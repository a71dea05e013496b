"""
Critical CSS extraction.

Per invocation the extractor walks

  NotStarted -> SamplingPages -> RenderingViewports -> AccumulatingRules
             -> Finalizing -> Done | FallbackDone

and never raises for render problems: any failure after the precondition
check ends in FallbackDone with a byte-bounded prefix of the bundle.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Sequence

import structlog

from site_build.core import CriticalCssError, Timer, Viewport

from .critical_set import CriticalSet, truncate_css
from .heuristic import heuristic_rules
from .renderers.base import RenderMeasurement, wrap_fragment
from .rules import MediaBlock, ParsedStylesheet, StyleRule, parse_stylesheet

log = structlog.get_logger(__name__)

DEFAULT_MAX_RENDERS = 10
DEFAULT_RENDER_TIMEOUT_S = 5.0


class ExtractionState(str, Enum):
    NOT_STARTED = "NotStarted"
    SAMPLING_PAGES = "SamplingPages"
    RENDERING_VIEWPORTS = "RenderingViewports"
    ACCUMULATING_RULES = "AccumulatingRules"
    FINALIZING = "Finalizing"
    DONE = "Done"
    FALLBACK_DONE = "FallbackDone"


class ExtractionMode(str, Enum):
    PRIMARY = "primary"
    HEURISTIC = "heuristic"
    FALLBACK = "fallback"


@dataclass(frozen=True, slots=True)
class RenderAttempt:
    sample: int
    viewport: str
    ok: bool
    duration_ms: int | None = None
    matched_selectors: int = 0
    critical_elements: int = 0
    error: str | None = None


@dataclass(slots=True)
class ExtractionResult:
    text: str
    state: ExtractionState
    mode: ExtractionMode
    states: list[ExtractionState] = field(default_factory=list)
    renderer: str | None = None
    renders: int = 0
    render_failures: int = 0
    rules_total: int = 0
    rules_selected: int = 0
    truncated: bool = False
    fallback_reason: str | None = None

    @property
    def bytes(self) -> int:
        return len(self.text.encode("utf-8"))

    def metrics(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "renderer": self.renderer,
            "renders": self.renders,
            "render_failures": self.render_failures,
            "rules_total": self.rules_total,
            "rules_selected": self.rules_selected,
            "truncated": self.truncated,
            "bytes": self.bytes,
        }


class _Progress:
    def __init__(self) -> None:
        self.state = ExtractionState.NOT_STARTED
        self.visited = [ExtractionState.NOT_STARTED]

    def enter(self, state: ExtractionState) -> None:
        self.state = state
        if state not in self.visited:
            self.visited.append(state)


def select_rules(sheet: ParsedStylesheet, m: RenderMeasurement) -> list[str]:
    """
    Rule texts, in bundle order, that one render marks as critical.
    """

    def _matches(rule: StyleRule) -> bool:
        return any(k in m.matched_selectors for k in rule.keys)

    out: list[str] = []
    for item in sheet.items:
        if isinstance(item, MediaBlock):
            if item.condition in m.matched_media and any(_matches(r) for r in item.rules):
                out.append(item.css_text)
        elif _matches(item):
            out.append(item.css_text)
    return out


def plan_renders(
    samples: Sequence[str], viewports: Sequence[Viewport], max_renders: int
) -> list[tuple[int, Viewport]]:
    pairs = [(i, vp) for i in range(len(samples)) for vp in viewports]
    return pairs[:max_renders]


def fallback_prefix(bundle_css: str, max_bytes: int) -> tuple[str, bool]:
    return truncate_css(bundle_css, max_bytes)


async def extract_critical(
    bundle_css: str,
    html_samples: Sequence[str],
    viewports: Sequence[Viewport],
    max_bytes: int,
    *,
    renderer: Any,
    max_renders: int = DEFAULT_MAX_RENDERS,
    render_timeout_s: float = DEFAULT_RENDER_TIMEOUT_S,
    on_render: Callable[[RenderAttempt], None] | None = None,
) -> ExtractionResult:
    """
    Compute the above-the-fold subset of `bundle_css`, at most `max_bytes`.

    `renderer` is an async context manager yielding something with
    `render_and_measure` (see renderers.base.Renderer). Entering it may
    raise RendererUnavailableError, which ends in the fallback.
    """
    if not bundle_css.strip():
        raise ValueError("bundle_css must be non-empty")
    if max_bytes <= 0:
        raise ValueError(f"max_bytes must be positive, got {max_bytes}")

    progress = _Progress()
    renders = 0
    failures = 0
    rules_total = 0
    renderer_name: str | None = None

    try:
        progress.enter(ExtractionState.SAMPLING_PAGES)
        sheet = parse_stylesheet(bundle_css)
        rules_total = len(sheet.items)
        if sheet.errors:
            log.debug("Unparseable CSS constructs skipped", count=sheet.errors)
        samples = [s for s in html_samples if s.strip()]

        if not samples:
            selected = [r.css_text for r in heuristic_rules(sheet)]
            cset = CriticalSet(selected)
            progress.enter(ExtractionState.FINALIZING)
            text, truncated = truncate_css(cset.serialize(), max_bytes)
            progress.enter(ExtractionState.DONE)
            log.info(
                "No sample pages, using foundational rules",
                rules=len(cset),
                bytes=len(text.encode("utf-8")),
            )
            return ExtractionResult(
                text=text,
                state=progress.state,
                mode=ExtractionMode.HEURISTIC,
                states=progress.visited,
                rules_total=rules_total,
                rules_selected=len(cset),
                truncated=truncated,
            )

        pairs = plan_renders(samples, viewports, max_renders)
        keys = sheet.selector_keys()
        conditions = sheet.media_conditions()
        cset = CriticalSet()

        progress.enter(ExtractionState.RENDERING_VIEWPORTS)
        async with renderer as active:
            renderer_name = getattr(active, "name", type(active).__name__)
            documents = {i: wrap_fragment(samples[i]) for i, _ in pairs}
            for i, vp in pairs:
                progress.enter(ExtractionState.RENDERING_VIEWPORTS)
                timer = Timer()
                try:
                    with timer:
                        m = await asyncio.wait_for(
                            active.render_and_measure(
                                documents[i],
                                bundle_css,
                                vp,
                                selectors=keys,
                                media_conditions=conditions,
                            ),
                            timeout=render_timeout_s,
                        )
                except asyncio.TimeoutError:
                    failures += 1
                    err = f"timed out after {render_timeout_s:g}s"
                    log.warning("Render timed out", sample=i, viewport=vp.name)
                    if on_render:
                        on_render(
                            RenderAttempt(
                                sample=i,
                                viewport=vp.name,
                                ok=False,
                                duration_ms=timer.duration_ms,
                                error=err,
                            )
                        )
                    continue
                except Exception as e:
                    failures += 1
                    log.warning("Render failed", sample=i, viewport=vp.name, error=str(e))
                    if on_render:
                        on_render(
                            RenderAttempt(
                                sample=i,
                                viewport=vp.name,
                                ok=False,
                                duration_ms=timer.duration_ms,
                                error=str(e),
                            )
                        )
                    continue

                renders += 1
                progress.enter(ExtractionState.ACCUMULATING_RULES)
                added = cset.update(select_rules(sheet, m))
                log.info(
                    "Analyzed sample",
                    sample=i,
                    viewport=vp.label(),
                    critical_elements=m.critical_elements,
                    matched=len(m.matched_selectors),
                    added=added,
                )
                if on_render:
                    on_render(
                        RenderAttempt(
                            sample=i,
                            viewport=vp.name,
                            ok=True,
                            duration_ms=timer.duration_ms,
                            matched_selectors=len(m.matched_selectors),
                            critical_elements=m.critical_elements,
                        )
                    )

        if renders == 0:
            raise CriticalCssError(f"all {len(pairs)} renders failed")

        progress.enter(ExtractionState.FINALIZING)
        serialized = cset.serialize()
        text, truncated = truncate_css(serialized, max_bytes)
        if truncated:
            log.warning(
                "Critical CSS too large, truncating",
                bytes=len(serialized.encode("utf-8")),
                max_bytes=max_bytes,
            )
        progress.enter(ExtractionState.DONE)
        return ExtractionResult(
            text=text,
            state=progress.state,
            mode=ExtractionMode.PRIMARY,
            states=progress.visited,
            renderer=renderer_name,
            renders=renders,
            render_failures=failures,
            rules_total=rules_total,
            rules_selected=len(cset),
            truncated=truncated,
        )

    except Exception as e:
        log.warning(
            "Critical CSS extraction failed, falling back to bundle prefix",
            state=progress.state.value,
            error=str(e),
        )
        text, truncated = fallback_prefix(bundle_css, max_bytes)
        progress.enter(ExtractionState.FALLBACK_DONE)
        return ExtractionResult(
            text=text,
            state=progress.state,
            mode=ExtractionMode.FALLBACK,
            states=progress.visited,
            renderer=renderer_name,
            renders=renders,
            render_failures=failures,
            rules_total=rules_total,
            truncated=truncated,
            fallback_reason=str(e) or type(e).__name__,
        )
