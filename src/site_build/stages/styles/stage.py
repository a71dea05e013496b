from __future__ import annotations

from pathlib import Path
from typing import Any

from site_build.pipeline import RunContext
from site_build.pipeline.events import EventType

from .models import StylesOptions
from .runner import bundle_css


def stage_styles(ctx: RunContext) -> dict[str, Any]:
    s = ctx.settings
    layout = ctx.outputs
    opts = StylesOptions(
        order=tuple(s.css_order),
        discover_unlisted=s.discover_unlisted_css,
        source_map=s.css_source_map,
    )

    result = bundle_css(
        styles_root=ctx.sources.styles(),
        bundle_path=layout.css_bundle(),
        source_map_path=layout.css_source_map() if s.css_source_map else None,
        opts=opts,
    )

    ctx.emit(
        EventType.STYLES_BUNDLE,
        task="styles",
        bundle=result.bundle_path,
        partials=result.partials,
        bytes_min=result.bytes_min,
    )

    artifacts = [ctx.record_artifact(task="styles", path=layout.css_bundle(), content_type="text/css")]
    if result.source_map_path:
        artifacts.append(
            ctx.record_artifact(
                task="styles", path=Path(result.source_map_path), content_type="application/json"
            )
        )

    return {
        "bundle": result.bundle_path,
        "source_map": result.source_map_path,
        "partials": result.partials,
        "_warnings": list(result.warnings),
        "_metrics": result.metrics(),
        "_artifacts": artifacts,
    }
