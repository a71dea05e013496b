from __future__ import annotations

import asyncio
from typing import Any, Mapping

from site_build.core import BuildSettings, ILogger, load_settings
from site_build.pipeline import BuildOrchestrator, BuildReport, StageFn
from site_build.stages import STAGE_FNS


def run_build(
    settings: BuildSettings | None = None,
    *,
    stage_fns: Mapping[str, StageFn] | None = None,
    logger: ILogger | None = None,
    run_id: str | None = None,
    meta: dict[str, Any] | None = None,
) -> BuildReport:
    """
    Run one full build and return its report. Never raises for task failures;
    check `report.exit_code`.
    """
    orchestrator = BuildOrchestrator(
        settings=settings or load_settings(),
        stage_fns=stage_fns or STAGE_FNS,
        logger=logger,
        run_id=run_id,
        meta=meta,
    )
    return asyncio.run(orchestrator.run())
