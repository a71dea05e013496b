from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Union

Width = Union[int, Literal["original"]]


@dataclass(frozen=True, slots=True)
class AssetDerivative:
    """
    One generated variant of a source image. Never mutated after creation.
    """

    source_path: str
    output_path: str
    width: Width
    format: str
    bytes: int = 0

    def to_dict(self) -> dict[str, object]:
        return {
            "source_path": self.source_path,
            "output_path": self.output_path,
            "width": self.width,
            "format": self.format,
            "bytes": self.bytes,
        }


@dataclass(frozen=True, slots=True)
class ImageOptions:
    widths: tuple[int, ...] = (320, 640, 1024, 1920)
    webp_quality: int = 85
    keep_original: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "widths", tuple(sorted(set(self.widths))))


@dataclass(slots=True)
class ImageResult:
    derivatives: list[AssetDerivative] = field(default_factory=list)
    processed: int = 0
    skipped: int = 0
    errors: int = 0
    bytes_original: int = 0
    bytes_optimized: int = 0

    def metrics(self) -> dict[str, int]:
        return {
            "processed": self.processed,
            "skipped": self.skipped,
            "errors": self.errors,
            "derivatives": len(self.derivatives),
            "bytes_original": self.bytes_original,
            "bytes_optimized": self.bytes_optimized,
        }

    def savings_pct(self) -> float | None:
        if self.bytes_original <= 0:
            return None
        return (self.bytes_original - self.bytes_optimized) / self.bytes_original * 100
