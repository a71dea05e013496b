from .models import AssetDerivative, ImageOptions, ImageResult
from .runner import process_raster, process_tree
from .stage import stage_images

__all__ = [
    "AssetDerivative",
    "ImageOptions",
    "ImageResult",
    "process_raster",
    "process_tree",
    "stage_images",
]
