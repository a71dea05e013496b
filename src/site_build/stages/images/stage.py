from __future__ import annotations

from typing import Any

from site_build.pipeline import RunContext
from site_build.pipeline.events import EventType

from .models import AssetDerivative, ImageOptions
from .runner import process_tree


def stage_images(ctx: RunContext) -> dict[str, Any]:
    s = ctx.settings
    opts = ImageOptions(
        widths=tuple(s.image_widths),
        webp_quality=s.webp_quality,
        keep_original=s.keep_original,
    )

    def _on_derivative(d: AssetDerivative) -> None:
        ctx.emit(
            EventType.IMAGES_DERIVATIVE,
            task="images",
            source=d.source_path,
            output=d.output_path,
            width=d.width,
            format=d.format,
        )

    result = process_tree(
        src_root=ctx.sources.images(),
        out_root=ctx.outputs.images(),
        opts=opts,
        on_derivative=_on_derivative,
    )

    return {
        "derivatives": len(result.derivatives),
        "_metrics": result.metrics(),
    }
