from __future__ import annotations

from typing import Any

from site_build.pipeline import RunContext
from site_build.pipeline.events import EventType

from .models import CompiledDocument
from .runner import compile_tree


def stage_content(ctx: RunContext) -> dict[str, Any]:
    src_root = ctx.sources.content()
    out_root = ctx.outputs.content()

    def _on_document(doc: CompiledDocument) -> None:
        ctx.emit(
            EventType.CONTENT_DOCUMENT,
            task="content",
            source=doc.source,
            html=doc.html_path,
            has_frontmatter=doc.has_frontmatter,
        )

    result = compile_tree(src_root=src_root, out_root=out_root, on_document=_on_document)

    return {
        "src_root": str(src_root),
        "out_root": str(out_root),
        "documents": [d.source for d in result.documents],
        "_warnings": list(result.warnings),
        "_metrics": result.metrics(failed=0),
    }
