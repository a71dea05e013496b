from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class StylesOptions:
    order: tuple[str, ...] = ()
    discover_unlisted: bool = True
    source_map: bool = True


@dataclass(frozen=True, slots=True)
class CssStats:
    lines: int
    rules: int
    selectors: int
    media_queries: int
    custom_properties: int


@dataclass(slots=True)
class BundleResult:
    partials: list[str] = field(default_factory=list)
    bundle_path: str | None = None
    source_map_path: str | None = None
    bytes_raw: int = 0
    bytes_min: int = 0
    stats: CssStats | None = None
    warnings: list[str] = field(default_factory=list)

    def metrics(self) -> dict[str, int]:
        m = {
            "partials": len(self.partials),
            "bytes_raw": self.bytes_raw,
            "bytes_min": self.bytes_min,
        }
        if self.stats is not None:
            m.update(
                rules=self.stats.rules,
                selectors=self.stats.selectors,
                media_queries=self.stats.media_queries,
                custom_properties=self.stats.custom_properties,
            )
        return m
