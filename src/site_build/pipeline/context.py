from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from site_build.core import (
    BuildSettings,
    ILogger,
    OutputLayout,
    SourceLayout,
    sha256_file,
)

from .events import EventSink, EventType, make_event
from .types import ArtifactRef


@dataclass(slots=True)
class RunContext:
    """
    Context shared across tasks for a single build.

    Tasks communicate only through the output tree; nothing here is mutated
    by a task except through `emit`.
    """

    run_id: str
    settings: BuildSettings
    logger: ILogger
    events: EventSink

    # optional free-form metadata
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def sources(self) -> SourceLayout:
        return self.settings.sources()

    @property
    def outputs(self) -> OutputLayout:
        return self.settings.outputs()

    def task_logger(self, task: str) -> ILogger:
        return self.logger.bind(task=task)

    def emit(self, event: EventType | str, *, task: str | None = None, **kw: object) -> None:
        # Event chatter stays at debug level; the JSONL sink keeps the full record.
        event_value = event.value if isinstance(event, EventType) else str(event)
        self.logger.debug(event_value, event_type=event_value, task=task, **kw)
        self.events.emit(
            make_event(event_type=event_value, run_id=self.run_id, task=task, **kw)
        )

    def record_artifact(
        self,
        *,
        task: str,
        path: Path,
        content_type: str | None = None,
    ) -> ArtifactRef:
        p = Path(path)
        digest = sha256_file(p)
        root = self.outputs.root
        try:
            rel = p.relative_to(root).as_posix()
        except ValueError:
            rel = p.as_posix()
        art = ArtifactRef(
            path=rel, bytes=digest.bytes, sha256=digest.sha256, content_type=content_type
        )
        self.emit(
            EventType.ARTIFACT_WRITTEN,
            task=task,
            path=art.path,
            bytes=art.bytes,
            sha256=art.sha256,
            content_type=art.content_type,
        )
        return art
