from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

from site_build.core import (
    InvalidTransitionError,
    StageFilesError,
    StageSkipped,
    TaskError,
    format_duration_ms,
    monotonic_ms,
    task_error_from_exc,
    utc_now_iso,
)

from .context import RunContext
from .events import EventType
from .types import ArtifactRef


class TaskStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def terminal(self) -> bool:
        return self in _TERMINAL


_TERMINAL = frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.SKIPPED})

_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PENDING: frozenset({TaskStatus.RUNNING, TaskStatus.SKIPPED}),
    TaskStatus.RUNNING: frozenset(
        {TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.SKIPPED}
    ),
    TaskStatus.COMPLETED: frozenset(),
    TaskStatus.FAILED: frozenset(),
    TaskStatus.SKIPPED: frozenset(),
}


class Phase(str, Enum):
    CLEAN = "clean"
    CONTENT_ASSETS = "content-assets"
    STYLES = "styles"


@dataclass(slots=True)
class BuildTask:
    """
    One named unit of work. Only the orchestrator mutates it, and never
    after it reaches a terminal status.
    """

    name: str
    phase: Phase
    status: TaskStatus = TaskStatus.PENDING
    started_at_utc: Optional[str] = None
    finished_at_utc: Optional[str] = None
    duration_ms: Optional[int] = None

    error: Optional[TaskError] = None
    skip_reason: Optional[str] = None
    outputs: dict[str, Any] = field(default_factory=dict)
    metrics: dict[str, Any] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    artifacts: list[ArtifactRef] = field(default_factory=list)
    history: list[TaskStatus] = field(default_factory=lambda: [TaskStatus.PENDING])

    _t0_ms: Optional[int] = field(default=None, repr=False)

    def _transition(self, new: TaskStatus) -> None:
        if new not in _TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Task {self.name!r}: illegal transition {self.status.value} -> {new.value}"
            )
        self.status = new
        self.history.append(new)

    def _stamp_finish(self) -> None:
        self.finished_at_utc = utc_now_iso()
        if self._t0_ms is not None:
            self.duration_ms = monotonic_ms() - self._t0_ms

    def start(self) -> None:
        self._transition(TaskStatus.RUNNING)
        self.started_at_utc = utc_now_iso()
        self._t0_ms = monotonic_ms()

    def complete(self, outputs: dict[str, Any] | None = None) -> None:
        self._transition(TaskStatus.COMPLETED)
        if outputs:
            self.outputs.update(outputs)
        self._stamp_finish()

    def fail(self, error: TaskError) -> None:
        self._transition(TaskStatus.FAILED)
        self.error = error
        self._stamp_finish()

    def skip(self, reason: str) -> None:
        self._transition(TaskStatus.SKIPPED)
        self.skip_reason = reason
        self._stamp_finish()

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "phase": self.phase.value,
            "status": self.status.value,
            "started_at_utc": self.started_at_utc,
            "finished_at_utc": self.finished_at_utc,
            "duration_ms": self.duration_ms,
            "error": self.error.to_dict() if self.error else None,
            "skip_reason": self.skip_reason,
            "outputs": self.outputs,
            "metrics": self.metrics,
            "warnings": list(self.warnings),
            "artifacts": [a.to_dict() for a in self.artifacts],
            "history": [s.value for s in self.history],
        }


StageOutput = Optional[dict[str, Any]]
StageFn = Callable[
    [RunContext], Union[StageOutput, Awaitable[StageOutput]]
]


def _absorb_reserved(task: BuildTask, out: dict[str, Any]) -> None:
    if "_warnings" in out:
        w = out.pop("_warnings")
        if isinstance(w, list):
            task.warnings.extend(str(x) for x in w)

    if "_metrics" in out:
        m = out.pop("_metrics")
        if isinstance(m, dict):
            task.metrics.update(m)

    if "_artifacts" in out:
        a = out.pop("_artifacts")
        if isinstance(a, list):
            task.artifacts.extend(a)


async def _call(fn: StageFn, ctx: RunContext) -> StageOutput:
    if inspect.iscoroutinefunction(fn):
        return await fn(ctx)
    # Synchronous stage bodies do blocking file and image work.
    result = await asyncio.to_thread(fn, ctx)
    if inspect.isawaitable(result):
        return await result
    return result


async def run_task(
    *,
    ctx: RunContext,
    task: BuildTask,
    fn: StageFn,
    index: int | None = None,
    total: int | None = None,
) -> BuildTask:
    """
    Drive `task` from pending to a terminal status. Never raises for stage errors.
    """
    log = ctx.task_logger(task.name)
    position = f"{index}/{total}" if index is not None and total is not None else None

    task.start()
    ctx.emit(EventType.TASK_START, task=task.name, phase=task.phase.value)
    log.info("Task starting", position=position, phase=task.phase.value)

    try:
        out = await _call(fn, ctx) or {}
        if not isinstance(out, dict):
            raise TypeError(
                f"Task {task.name} returned {type(out).__name__}, expected dict or None"
            )
        _absorb_reserved(task, out)

    except StageSkipped as skipped:
        task.warnings.extend(skipped.warnings)
        task.outputs.update(skipped.outputs)
        task.skip(skipped.reason)
        ctx.emit(
            EventType.TASK_SKIPPED,
            task=task.name,
            reason=skipped.reason,
            duration_ms=task.duration_ms,
        )
        log.warning(
            "Task skipped",
            reason=skipped.reason,
            duration=format_duration_ms(task.duration_ms or 0),
        )
        return task

    except StageFilesError as e:
        task.metrics.update(e.metrics)
        task.warnings.extend(e.warnings)
        task.fail(task_error_from_exc(e))
        _log_failure(ctx, task, log, position, e)
        return task

    except Exception as e:
        task.fail(task_error_from_exc(e))
        _log_failure(ctx, task, log, position, e)
        log.exception("Task exception")
        return task

    for w in task.warnings:
        ctx.emit(EventType.TASK_WARN, task=task.name, message=w)

    if task.metrics:
        ctx.emit(EventType.TASK_METRICS, task=task.name, metrics=task.metrics)

    task.complete(out)
    ctx.emit(EventType.TASK_COMPLETED, task=task.name, duration_ms=task.duration_ms)

    log_fields: dict[str, object] = {
        "status": task.status.value,
        "position": position,
        "duration_ms": task.duration_ms,
        "duration": format_duration_ms(task.duration_ms or 0),
        "warnings": len(task.warnings),
        "metrics": len(task.metrics),
        "outputs": sorted(out.keys()) if out else [],
    }
    if task.artifacts:
        log_fields["artifacts"] = len(task.artifacts)

    log.info("Task completed", **log_fields)
    return task


def _log_failure(
    ctx: RunContext,
    task: BuildTask,
    log: Any,
    position: str | None,
    exc: BaseException,
) -> None:
    ctx.emit(
        EventType.TASK_FAILED,
        task=task.name,
        duration_ms=task.duration_ms,
        exc_type=type(exc).__name__,
        message=str(exc),
    )
    log.error(
        "Task failed",
        status=task.status.value,
        position=position,
        duration_ms=task.duration_ms,
        duration=format_duration_ms(task.duration_ms or 0),
        error=str(exc),
    )
