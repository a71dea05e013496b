from typing import Any

from .clean import stage_clean
from .content import stage_content
from .critical import stage_critical
from .images import stage_images
from .styles import stage_styles

STAGE_FNS: dict[str, Any] = {
    "clean": stage_clean,
    "content": stage_content,
    "images": stage_images,
    "styles": stage_styles,
    "critical": stage_critical,
}

__all__ = [
    "STAGE_FNS",
    "stage_clean",
    "stage_content",
    "stage_critical",
    "stage_images",
    "stage_styles",
]
