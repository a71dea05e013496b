from .build import run_build
from .core import BuildSettings, Viewport
from .pipeline import BuildReport, BuildTask, TaskStatus

__all__ = ["BuildReport", "BuildSettings", "BuildTask", "TaskStatus", "Viewport", "run_build"]
