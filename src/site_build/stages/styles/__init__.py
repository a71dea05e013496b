from .runner import bundle_css, collect_partials, css_stats, minify_css
from .sourcemap import build_source_map, vlq_encode
from .stage import stage_styles

__all__ = [
    "bundle_css",
    "collect_partials",
    "css_stats",
    "minify_css",
    "build_source_map",
    "vlq_encode",
    "stage_styles",
]
