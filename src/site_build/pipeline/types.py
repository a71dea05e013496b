from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True, slots=True)
class ArtifactRef:
    """
    A reference to a file written into the output tree by a task.
    """

    path: str
    bytes: int
    sha256: str
    content_type: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "bytes": self.bytes,
            "sha256": self.sha256,
            "content_type": self.content_type,
        }


@dataclass(frozen=True, slots=True)
class Event:
    """
    Structured event emitted by the build.
    """

    type: str
    ts_utc: str
    run_id: str
    task: Optional[str] = None
    data: dict[str, Any] = field(default_factory=dict)
