from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .paths import OutputLayout, SourceLayout
from .viewport import DEFAULT_VIEWPORTS, Viewport

LogFormat = Literal["json", "console"]
RendererName = Literal["auto", "playwright", "static"]

# 14 KiB: what fits in the first TCP round trip.
CRITICAL_CSS_LIMIT = 14 * 1024

# Cascade order matters: base, layout, components, utilities.
DEFAULT_CSS_ORDER: tuple[str, ...] = (
    "base/reset.css",
    "base/variables.css",
    "base/typography.css",
    "layout/container.css",
    "layout/grid.css",
    "layout/header.css",
    "layout/footer.css",
    "components/navigation.css",
    "components/button.css",
    "components/card.css",
    "components/hero.css",
    "components/gallery.css",
    "utilities/accessibility.css",
    "utilities/responsive.css",
)

DEFAULT_IMAGE_WIDTHS: tuple[int, ...] = (320, 640, 1024, 1920)


class BuildSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SITE_BUILD_",
        env_file=".env",
        extra="ignore",
    )

    source_root: Path = Field(default=Path("src"))
    output_root: Path = Field(default=Path("dist"))
    run_root: Path | None = Field(default=Path(".build-runs"))

    log_level: str = Field(default="INFO")
    log_format: LogFormat = Field(default="console")

    enable_content: bool = True
    enable_images: bool = True
    enable_styles: bool = True
    enable_critical: bool = True

    image_widths: list[int] = Field(default_factory=lambda: list(DEFAULT_IMAGE_WIDTHS))
    webp_quality: int = Field(default=85, ge=1, le=100)
    keep_original: bool = True

    css_order: list[str] = Field(default_factory=lambda: list(DEFAULT_CSS_ORDER))
    discover_unlisted_css: bool = True
    css_source_map: bool = True

    critical_max_bytes: int = Field(default=CRITICAL_CSS_LIMIT, gt=0)
    viewports: list[Viewport] = Field(default_factory=lambda: list(DEFAULT_VIEWPORTS))
    critical_renderer: RendererName = "auto"
    critical_sample_pages: int = Field(default=5, ge=0)
    critical_max_renders: int = Field(default=10, ge=1)
    critical_render_timeout_s: float = Field(default=5.0, gt=0)

    write_stats: bool = True

    @field_validator("image_widths")
    @classmethod
    def _positive_widths(cls, v: list[int]) -> list[int]:
        bad = [w for w in v if w <= 0]
        if bad:
            raise ValueError(f"image widths must be positive: {bad}")
        return sorted(set(v))

    @field_validator("viewports")
    @classmethod
    def _unique_viewports(cls, v: list[Viewport]) -> list[Viewport]:
        names = [vp.name for vp in v]
        if len(names) != len(set(names)):
            raise ValueError(f"duplicate viewport names: {names}")
        return v

    def sources(self) -> SourceLayout:
        return SourceLayout(root=Path(self.source_root))

    def outputs(self) -> OutputLayout:
        return OutputLayout(root=Path(self.output_root))

    def enabled(self, stage: str) -> bool:
        return bool(getattr(self, f"enable_{stage}"))


@lru_cache(maxsize=1)
def load_settings() -> BuildSettings:
    return BuildSettings()
