from __future__ import annotations

from typing import TypedDict

from site_build.core import CleanError, reset_dir
from site_build.pipeline import RunContext


class StageCleanResult(TypedDict):
    output_root: str
    removed_existing: bool


def stage_clean(ctx: RunContext) -> StageCleanResult:
    root = ctx.outputs.root
    log = ctx.task_logger("clean")
    try:
        removed = reset_dir(root)
    except OSError as e:
        raise CleanError(f"Cannot clean output root {root}: {e}") from e

    if removed:
        log.info("Removed existing output directory", path=str(root))
    else:
        log.info("Output directory did not exist", path=str(root))

    return {"output_root": str(root), "removed_existing": removed}
