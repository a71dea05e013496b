from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class CompiledDocument:
    source: str
    html_path: str
    metadata_path: str
    metadata: dict[str, Any]
    has_frontmatter: bool
    headings: int


@dataclass(slots=True)
class ContentResult:
    documents: list[CompiledDocument] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    total: int = 0

    def metrics(self, failed: int) -> dict[str, int]:
        return {
            "documents": self.total,
            "compiled": len(self.documents),
            "failed": failed,
            "missing_frontmatter": sum(
                1 for d in self.documents if not d.has_frontmatter
            ),
        }
