from .context import RunContext
from .events import EventSink, EventType
from .orchestrator import (
    BuildOrchestrator,
    StageHandle,
    StagePlan,
    resolve_stages,
)
from .report import BuildReport, ReportEntry
from .task import BuildTask, Phase, StageFn, TaskStatus, run_task

__all__ = [
    "RunContext",
    "EventSink",
    "EventType",
    "BuildOrchestrator",
    "StageHandle",
    "StagePlan",
    "resolve_stages",
    "BuildReport",
    "ReportEntry",
    "BuildTask",
    "Phase",
    "StageFn",
    "TaskStatus",
    "run_task",
]
