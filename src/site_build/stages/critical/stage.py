from __future__ import annotations

import re
from typing import Any

from site_build.core import StageSkipped, atomic_write_text
from site_build.pipeline import RunContext
from site_build.pipeline.events import EventType

from .extractor import ExtractionState, RenderAttempt, extract_critical
from .renderers import make_renderer

_SOURCE_MAP_COMMENT_RE = re.compile(r"\s*/\*#\s*sourceMappingURL=[^*]*\*/\s*$")


def strip_source_map_comment(css: str) -> str:
    return _SOURCE_MAP_COMMENT_RE.sub("", css)


async def stage_critical(ctx: RunContext) -> dict[str, Any]:
    s = ctx.settings
    layout = ctx.outputs
    log = ctx.task_logger("critical")

    bundle_path = layout.css_bundle()
    if not bundle_path.is_file():
        raise StageSkipped("CSS bundle not found")
    bundle = strip_source_map_comment(bundle_path.read_text(encoding="utf-8"))
    if not bundle.strip():
        raise StageSkipped("CSS bundle is empty")

    warnings: list[str] = []
    samples: list[str] = []
    for path in layout.html_fragments()[: s.critical_sample_pages]:
        try:
            samples.append(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as e:
            warnings.append(f"Could not read sample page {path.name}: {e}")
    if not samples:
        warnings.append("No HTML samples, critical CSS uses foundational rules only")

    def _on_render(attempt: RenderAttempt) -> None:
        ctx.emit(
            EventType.CRITICAL_RENDER,
            task="critical",
            sample=attempt.sample,
            viewport=attempt.viewport,
            ok=attempt.ok,
            matched=attempt.matched_selectors,
            duration_ms=attempt.duration_ms,
            error=attempt.error,
        )

    result = await extract_critical(
        bundle,
        samples,
        s.viewports,
        s.critical_max_bytes,
        renderer=make_renderer(s.critical_renderer),
        max_renders=s.critical_max_renders,
        render_timeout_s=s.critical_render_timeout_s,
        on_render=_on_render,
    )

    if result.state is ExtractionState.FALLBACK_DONE:
        ctx.emit(EventType.CRITICAL_FALLBACK, task="critical", reason=result.fallback_reason)
        warnings.append(f"Critical CSS degraded to bundle prefix: {result.fallback_reason}")
    if result.render_failures:
        warnings.append(f"{result.render_failures} critical CSS renders failed")
    if result.truncated:
        warnings.append(f"Critical CSS truncated to {s.critical_max_bytes} bytes")

    out_path = layout.critical_css()
    atomic_write_text(out_path, result.text)
    log.info(
        "Critical CSS written",
        path=str(out_path),
        mode=result.mode.value,
        bytes=result.bytes,
        max_bytes=s.critical_max_bytes,
    )

    return {
        "critical_css": str(out_path),
        "mode": result.mode.value,
        "states": [st.value for st in result.states],
        "_warnings": warnings,
        "_metrics": result.metrics(),
        "_artifacts": [
            ctx.record_artifact(task="critical", path=out_path, content_type="text/css")
        ],
    }
