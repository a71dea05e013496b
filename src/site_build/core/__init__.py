from .config import BuildSettings, load_settings
from .errors import (
    BuildError,
    CleanError,
    CriticalCssError,
    DocumentError,
    FileFailure,
    FrontmatterError,
    ImageError,
    InternalError,
    InvalidTransitionError,
    RenderError,
    RendererUnavailableError,
    SourceError,
    StageFilesError,
    StageSkipped,
    StylesError,
    TaskError,
    task_error_from_exc,
)
from .fs import (
    atomic_write_bytes,
    atomic_write_text,
    copy_file,
    ensure_parent,
    file_size,
    iter_files,
    relpath_posix,
    reset_dir,
    safe_unlink,
)
from .hashing import sha256_bytes, sha256_file, tree_digest
from .json import atomic_write_json, read_json, stable_json_dumps
from .logging import ILogger, bind, clear_bindings, configure_logging, get_logger
from .paths import OutputLayout, RunLayout, SourceLayout
from .provenance import RunProvenance, Timer, new_run_id
from .time import format_bytes, format_duration_ms, monotonic_ms, utc_now_iso
from .viewport import DEFAULT_VIEWPORTS, Viewport

JsonPrimitive = str | int | float | bool | None
JsonValue = JsonPrimitive | list["JsonValue"] | dict[str, "JsonValue"]
JsonObject = dict[str, JsonValue]

__all__ = [
    "BuildSettings",
    "load_settings",
    "BuildError",
    "CleanError",
    "CriticalCssError",
    "DocumentError",
    "FileFailure",
    "FrontmatterError",
    "ImageError",
    "InternalError",
    "InvalidTransitionError",
    "RenderError",
    "RendererUnavailableError",
    "SourceError",
    "StageFilesError",
    "StageSkipped",
    "StylesError",
    "TaskError",
    "task_error_from_exc",
    "atomic_write_bytes",
    "atomic_write_text",
    "copy_file",
    "ensure_parent",
    "file_size",
    "iter_files",
    "relpath_posix",
    "reset_dir",
    "safe_unlink",
    "sha256_bytes",
    "sha256_file",
    "tree_digest",
    "atomic_write_json",
    "read_json",
    "stable_json_dumps",
    "ILogger",
    "bind",
    "clear_bindings",
    "configure_logging",
    "get_logger",
    "OutputLayout",
    "RunLayout",
    "SourceLayout",
    "RunProvenance",
    "Timer",
    "new_run_id",
    "format_bytes",
    "format_duration_ms",
    "monotonic_ms",
    "utc_now_iso",
    "DEFAULT_VIEWPORTS",
    "Viewport",
]
