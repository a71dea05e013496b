from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass(slots=True)
class DirStats:
    files: int = 0
    bytes: int = 0


@dataclass(slots=True)
class OutputStats:
    """
    Byte sizes of the output tree, grouped by top-level subdirectory.
    Files directly under the root are grouped under ".".
    """

    root: str
    total_files: int = 0
    total_bytes: int = 0
    dirs: dict[str, DirStats] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "root": self.root,
            "total_files": self.total_files,
            "total_bytes": self.total_bytes,
            "dirs": {
                name: {"files": d.files, "bytes": d.bytes}
                for name, d in sorted(self.dirs.items())
            },
        }


def compute_output_stats(root: Path, *, exclude: tuple[str, ...] = ()) -> OutputStats:
    root = Path(root)
    stats = OutputStats(root=str(root))
    for p in sorted(root.rglob("*")):
        if not p.is_file():
            continue
        rel = p.relative_to(root)
        if rel.as_posix() in exclude:
            continue
        group = rel.parts[0] if len(rel.parts) > 1 else "."
        size = p.stat().st_size
        d = stats.dirs.setdefault(group, DirStats())
        d.files += 1
        d.bytes += size
        stats.total_files += 1
        stats.total_bytes += size
    return stats
