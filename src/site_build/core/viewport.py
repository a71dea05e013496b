from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Viewport:
    """
    A named screen size used to decide what counts as above the fold.
    """

    name: str
    width: int
    height: int

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"Viewport {self.name!r} must have positive dimensions, "
                f"got {self.width}x{self.height}"
            )

    def label(self) -> str:
        return f"{self.name} ({self.width}x{self.height})"


MOBILE = Viewport(name="mobile", width=375, height=667)
DESKTOP = Viewport(name="desktop", width=1300, height=900)

DEFAULT_VIEWPORTS: tuple[Viewport, ...] = (MOBILE, DESKTOP)
