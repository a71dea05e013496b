from __future__ import annotations

import json
import os
import socket
import threading
from dataclasses import asdict
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from site_build.core import utc_now_iso

from .types import Event


class EventType(str, Enum):
    RUN_ENV = "run.env"
    RUN_START = "run.start"
    RUN_FINISH = "run.finish"

    PHASE_START = "phase.start"
    PHASE_FINISH = "phase.finish"

    TASK_START = "task.start"
    TASK_WARN = "task.warn"
    TASK_METRICS = "task.metrics"
    TASK_COMPLETED = "task.completed"
    TASK_FAILED = "task.failed"
    TASK_SKIPPED = "task.skipped"

    ARTIFACT_WRITTEN = "artifact.written"

    CONTENT_DOCUMENT = "content.document"
    IMAGES_DERIVATIVE = "images.derivative"
    STYLES_BUNDLE = "styles.bundle"
    CRITICAL_RENDER = "critical.render"
    CRITICAL_FALLBACK = "critical.fallback"


class EventSink:
    """
    Append-only JSON-lines event log. Safe to call from worker threads.

    With `path=None` events are dropped; the run still logs through structlog.
    """

    def __init__(self, path: Path | None) -> None:
        self.path = Path(path) if path is not None else None
        self._lock = threading.Lock()
        if self.path is None:
            return

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.emit(
            Event(
                type=EventType.RUN_ENV.value,
                ts_utc=utc_now_iso(),
                run_id="__init__",
                data={
                    "hostname": socket.gethostname(),
                    "pid": os.getpid(),
                    "cwd": str(Path.cwd()),
                },
            )
        )

    def emit(self, event: Event) -> None:
        if self.path is None:
            return
        line = json.dumps(asdict(event), ensure_ascii=False, default=str)
        with self._lock:
            with self.path.open("a", encoding="utf-8") as f:
                f.write(line)
                f.write("\n")

    def close(self) -> None:
        return


def make_event(
    *,
    event_type: EventType | str,
    run_id: str,
    task: Optional[str] = None,
    **data: Any,
) -> Event:
    type_value = (
        event_type.value if isinstance(event_type, EventType) else str(event_type)
    )
    return Event(
        type=type_value,
        ts_utc=utc_now_iso(),
        run_id=run_id,
        task=task,
        data=dict(data),
    )
