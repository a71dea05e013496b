from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from site_build.core import InternalError, atomic_write_json

from .task import BuildTask, TaskStatus


@dataclass(frozen=True, slots=True)
class ReportEntry:
    task: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"task": self.task, "message": self.message}


@dataclass(slots=True)
class BuildReport:
    run_id: str
    started_at_utc: str
    finished_at_utc: str
    wall_clock_ms: int
    status: str  # "success" | "failed"

    total_tasks: int
    completed: int
    failed: int
    skipped: int

    errors: list[ReportEntry] = field(default_factory=list)
    warnings: list[ReportEntry] = field(default_factory=list)
    tasks: list[BuildTask] = field(default_factory=list)
    stats: Optional[dict[str, Any]] = None
    report_json: Optional[str] = None
    events_jsonl: Optional[str] = None
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def exit_code(self) -> int:
        return 0 if self.failed == 0 else 1

    def task(self, name: str) -> BuildTask | None:
        for t in self.tasks:
            if t.name == name:
                return t
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "started_at_utc": self.started_at_utc,
            "finished_at_utc": self.finished_at_utc,
            "wall_clock_ms": self.wall_clock_ms,
            "status": self.status,
            "exit_code": self.exit_code,
            "total_tasks": self.total_tasks,
            "completed": self.completed,
            "failed": self.failed,
            "skipped": self.skipped,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "tasks": [t.to_dict() for t in self.tasks],
            "stats": self.stats,
            "events_jsonl": self.events_jsonl,
            "meta": self.meta,
        }

    def write_json(self, path: Path) -> None:
        atomic_write_json(Path(path), self.to_dict(), default=str)


def build_report(
    *,
    run_id: str,
    started_at_utc: str,
    finished_at_utc: str,
    wall_clock_ms: int,
    tasks: list[BuildTask],
    stats: dict[str, Any] | None = None,
    meta: dict[str, Any] | None = None,
) -> BuildReport:
    unfinished = [t.name for t in tasks if not t.status.terminal]
    if unfinished:
        raise InternalError(f"Cannot report on unfinished tasks: {unfinished}")

    errors: list[ReportEntry] = []
    warnings: list[ReportEntry] = []
    for t in tasks:
        if t.status is TaskStatus.FAILED and t.error is not None:
            errors.append(ReportEntry(task=t.name, message=t.error.message))
        if t.status is TaskStatus.SKIPPED and t.skip_reason:
            warnings.append(ReportEntry(task=t.name, message=f"skipped: {t.skip_reason}"))
        warnings.extend(ReportEntry(task=t.name, message=w) for w in t.warnings)

    completed = sum(1 for t in tasks if t.status is TaskStatus.COMPLETED)
    failed = sum(1 for t in tasks if t.status is TaskStatus.FAILED)
    skipped = sum(1 for t in tasks if t.status is TaskStatus.SKIPPED)

    return BuildReport(
        run_id=run_id,
        started_at_utc=started_at_utc,
        finished_at_utc=finished_at_utc,
        wall_clock_ms=wall_clock_ms,
        status="success" if failed == 0 else "failed",
        total_tasks=len(tasks),
        completed=completed,
        failed=failed,
        skipped=skipped,
        errors=errors,
        warnings=warnings,
        tasks=list(tasks),
        stats=stats,
        meta=meta or {},
    )
