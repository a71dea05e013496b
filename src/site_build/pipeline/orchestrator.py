from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from site_build.core import (
    BuildSettings,
    ILogger,
    InternalError,
    RunLayout,
    RunProvenance,
    TaskError,
    atomic_write_json,
    configure_logging,
    get_logger,
    monotonic_ms,
    new_run_id,
    utc_now_iso,
)

from .context import RunContext
from .events import EventSink, EventType, make_event
from .report import BuildReport, build_report
from .stats import compute_output_stats
from .task import BuildTask, Phase, StageFn, TaskStatus, run_task

CLEAN = "clean"
CONTENT = "content"
IMAGES = "images"
STYLES = "styles"
CRITICAL = "critical"

STAGE_PHASES: dict[str, Phase] = {
    CLEAN: Phase.CLEAN,
    CONTENT: Phase.CONTENT_ASSETS,
    IMAGES: Phase.CONTENT_ASSETS,
    STYLES: Phase.STYLES,
    CRITICAL: Phase.STYLES,
}

OPTIONAL_STAGES: tuple[str, ...] = (CONTENT, IMAGES, STYLES, CRITICAL)


@dataclass(frozen=True, slots=True)
class StageHandle:
    name: str
    phase: Phase
    fn: StageFn


@dataclass(slots=True)
class StagePlan:
    """
    Which optional stages will run, resolved once before the build starts.
    """

    handles: dict[str, StageHandle] = field(default_factory=dict)
    unavailable: dict[str, str] = field(default_factory=dict)

    def get(self, name: str) -> StageHandle | None:
        return self.handles.get(name)

    def reason(self, name: str) -> str:
        return self.unavailable.get(name, "stage not available")


def _source_dir_for(settings: BuildSettings, name: str) -> Path | None:
    src = settings.sources()
    if name == CONTENT:
        return src.content()
    if name == IMAGES:
        return src.images()
    if name == STYLES:
        return src.styles()
    return None


def resolve_stages(
    settings: BuildSettings, stage_fns: Mapping[str, StageFn]
) -> StagePlan:
    plan = StagePlan()
    for name in OPTIONAL_STAGES:
        if not settings.enabled(name):
            plan.unavailable[name] = "disabled by configuration"
            continue
        fn = stage_fns.get(name)
        if fn is None:
            plan.unavailable[name] = "no stage implementation registered"
            continue
        src_dir = _source_dir_for(settings, name)
        if src_dir is not None and not src_dir.exists():
            plan.unavailable[name] = f"source directory not found: {src_dir}"
            continue
        plan.handles[name] = StageHandle(name=name, phase=STAGE_PHASES[name], fn=fn)
    return plan


def default_logger() -> ILogger:
    configure_logging()
    return get_logger("site_build.build")


class BuildOrchestrator:
    """
    Runs one build:

      1. clean          (fatal on failure)
      2. content+images (concurrent, both always settle)
      3. styles -> critical (critical only after a completed bundle)

    then finalizes statistics and the BuildReport.
    """

    def __init__(
        self,
        *,
        settings: BuildSettings,
        stage_fns: Mapping[str, StageFn],
        logger: ILogger | None = None,
        run_id: str | None = None,
        meta: dict[str, Any] | None = None,
    ) -> None:
        if CLEAN not in stage_fns:
            raise ValueError("stage_fns must provide a 'clean' stage")
        self.settings = settings
        self.stage_fns = dict(stage_fns)
        self.logger: ILogger = logger or default_logger()
        self.run_id = run_id or new_run_id()
        self.meta = dict(meta or {})
        self.tasks: list[BuildTask] = []

    def _register(self, name: str) -> BuildTask:
        if any(t.name == name for t in self.tasks):
            raise InternalError(f"Task registered twice: {name}")
        task = BuildTask(name=name, phase=STAGE_PHASES[name])
        self.tasks.append(task)
        return task

    def _skip(self, ctx: RunContext, task: BuildTask, reason: str) -> None:
        task.skip(reason)
        ctx.emit(EventType.TASK_SKIPPED, task=task.name, reason=reason)
        ctx.task_logger(task.name).warning("Task skipped", reason=reason)

    async def _run(self, ctx: RunContext, task: BuildTask, fn: StageFn) -> BuildTask:
        return await run_task(ctx=ctx, task=task, fn=fn)

    async def _phase_clean(self, ctx: RunContext) -> bool:
        ctx.emit(EventType.PHASE_START, phase=Phase.CLEAN.value)
        self.logger.info("Phase 1: cleaning output directory", output_root=str(ctx.outputs.root))
        task = self._register(CLEAN)
        await self._run(ctx, task, self.stage_fns[CLEAN])
        ok = task.status is TaskStatus.COMPLETED
        ctx.emit(EventType.PHASE_FINISH, phase=Phase.CLEAN.value, ok=ok)
        return ok

    async def _phase_content_assets(self, ctx: RunContext, plan: StagePlan) -> bool:
        ctx.emit(EventType.PHASE_START, phase=Phase.CONTENT_ASSETS.value)
        self.logger.info("Phase 2: running content and image tasks in parallel")

        pending: list[tuple[BuildTask, StageHandle]] = []
        phase_tasks: list[BuildTask] = []
        for name in (CONTENT, IMAGES):
            task = self._register(name)
            phase_tasks.append(task)
            handle = plan.get(name)
            if handle is None:
                self._skip(ctx, task, plan.reason(name))
                continue
            pending.append((task, handle))

        # Join: wait for every task, regardless of individual outcome.
        results = await asyncio.gather(
            *(self._run(ctx, task, handle.fn) for task, handle in pending),
            return_exceptions=True,
        )
        for (task, _), res in zip(pending, results):
            if isinstance(res, BaseException) and not task.status.terminal:
                _force_fail(task, res)

        failed = [t.name for t in phase_tasks if t.status is TaskStatus.FAILED]
        if failed:
            self.logger.error("Content processing phase failed", failed=failed)
        else:
            self.logger.info("All content processing tasks settled")
        ctx.emit(EventType.PHASE_FINISH, phase=Phase.CONTENT_ASSETS.value, failed=failed)
        return not failed

    async def _phase_styles(
        self, ctx: RunContext, plan: StagePlan, blocked: str | None
    ) -> None:
        ctx.emit(EventType.PHASE_START, phase=Phase.STYLES.value)
        self.logger.info("Phase 3: running CSS tasks sequentially")

        styles = self._register(STYLES)
        critical = self._register(CRITICAL)

        if blocked is not None:
            self._skip(ctx, styles, blocked)
            self._skip(ctx, critical, blocked)
            ctx.emit(EventType.PHASE_FINISH, phase=Phase.STYLES.value, blocked=blocked)
            return

        handle = plan.get(STYLES)
        if handle is None:
            self._skip(ctx, styles, plan.reason(STYLES))
        else:
            await self._run(ctx, styles, handle.fn)

        if styles.status is not TaskStatus.COMPLETED:
            self._skip(ctx, critical, f"CSS bundle not available (styles {styles.status.value})")
        else:
            handle = plan.get(CRITICAL)
            if handle is None:
                self._skip(ctx, critical, plan.reason(CRITICAL))
            else:
                await self._run(ctx, critical, handle.fn)

        ctx.emit(
            EventType.PHASE_FINISH,
            phase=Phase.STYLES.value,
            styles=styles.status.value,
            critical=critical.status.value,
        )

    def _upstream_block(self, ctx: RunContext, phase2_ok: bool) -> str | None:
        if phase2_ok:
            return None
        if ctx.outputs.html_fragments():
            self.logger.warning(
                "Phase 2 failed; continuing with the fragments that were compiled"
            )
            return None
        return "upstream content missing: no compiled HTML fragments"

    def _finalize_stats(self, ctx: RunContext) -> dict[str, Any] | None:
        """Best-effort: never fails the build."""
        layout = ctx.outputs
        try:
            if not layout.root.is_dir():
                return None
            stats = compute_output_stats(
                layout.root, exclude=(layout.stats_json().name,)
            ).to_dict()
            if self.settings.write_stats:
                atomic_write_json(layout.stats_json(), stats)
            return stats
        except Exception as e:
            self.logger.warning("Could not compute output statistics", error=str(e))
            return None

    async def run(self) -> BuildReport:
        settings = self.settings
        run_layout = (
            RunLayout(run_root=Path(settings.run_root), run_id=self.run_id)
            if settings.run_root is not None
            else None
        )
        try:
            sink = EventSink(run_layout.events_jsonl() if run_layout else None)
        except OSError as e:
            self.logger.warning("Event log unavailable", error=str(e))
            run_layout = None
            sink = EventSink(None)
        ctx = RunContext(
            run_id=self.run_id,
            settings=settings,
            logger=self.logger,
            events=sink,
            meta=self.meta,
        )

        started_at = utc_now_iso()
        t0 = monotonic_ms()

        self.logger.info(
            "Build starting",
            run_id=self.run_id,
            source_root=str(settings.source_root),
            output_root=str(settings.output_root),
        )
        provenance = RunProvenance(run_id=self.run_id, started_at_utc=started_at)
        self.meta.setdefault("provenance", provenance.to_dict())
        sink.emit(make_event(event_type=EventType.RUN_START, run_id=self.run_id, **self.meta))

        plan = resolve_stages(settings, self.stage_fns)
        for name, reason in plan.unavailable.items():
            self.logger.warning("Optional stage unavailable", stage=name, reason=reason)

        try:
            if await self._phase_clean(ctx):
                phase2_ok = await self._phase_content_assets(ctx, plan)
                await self._phase_styles(
                    ctx, plan, self._upstream_block(ctx, phase2_ok)
                )
            else:
                self.logger.error("Build orchestration failed: output root unusable")
        finally:
            for task in self.tasks:
                if not task.status.terminal:
                    _force_fail(task, InternalError("task did not settle"))

        stats = self._finalize_stats(ctx)
        duration = monotonic_ms() - t0

        report = build_report(
            run_id=self.run_id,
            started_at_utc=started_at,
            finished_at_utc=utc_now_iso(),
            wall_clock_ms=duration,
            tasks=self.tasks,
            stats=stats,
            meta=self.meta,
        )

        if run_layout is not None:
            report.events_jsonl = str(run_layout.events_jsonl())
            report.report_json = str(run_layout.report_json())
            try:
                report.write_json(run_layout.report_json())
            except OSError as e:
                self.logger.warning("Could not write build report", error=str(e))

        sink.emit(
            make_event(
                event_type=EventType.RUN_FINISH,
                run_id=self.run_id,
                status=report.status,
                duration_ms=duration,
            )
        )
        sink.close()

        self.logger.info(
            "Build complete",
            status=report.status,
            total=report.total_tasks,
            completed=report.completed,
            failed=report.failed,
            skipped=report.skipped,
            duration_ms=duration,
        )
        for i, err in enumerate(report.errors, start=1):
            self.logger.error("Build error", index=i, task=err.task, message=err.message)
        return report


def _force_fail(task: BuildTask, exc: BaseException) -> None:
    err = TaskError(exc_type=type(exc).__name__, message=str(exc) or type(exc).__name__)
    if task.status is TaskStatus.PENDING:
        task.start()
    task.fail(err)
