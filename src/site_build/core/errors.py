from __future__ import annotations

import traceback
from dataclasses import dataclass, field


class BuildError(RuntimeError):
    """Base error"""


@dataclass(frozen=True, slots=True)
class TaskError:
    """
    A normalized error record for task failures.
    """

    exc_type: str
    message: str
    traceback: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "exc_type": self.exc_type,
            "message": self.message,
            "traceback": self.traceback,
        }


def task_error_from_exc(exc: BaseException) -> TaskError:
    return TaskError(
        exc_type=type(exc).__name__,
        message=str(exc) or type(exc).__name__,
        traceback="".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        ),
    )


class CleanError(BuildError):
    """
    Fatal: the output root cannot be removed or recreated.
    """


class SourceError(BuildError):
    """A stage cannot read its source root at all"""


class InternalError(BuildError):
    """Bugs or invariant violation in our code"""


class InvalidTransitionError(InternalError):
    """A BuildTask was asked to leave a terminal status or skip a step"""


class DocumentError(BuildError):
    """Content-stage error for a single document"""


class FrontmatterError(DocumentError):
    """Malformed or non-mapping frontmatter block"""


class ImageError(BuildError):
    """Image-stage error for a single file"""


class StylesError(BuildError):
    """CSS bundle error"""


class CriticalCssError(BuildError):
    """Critical CSS extraction error"""


class RendererUnavailableError(CriticalCssError):
    """The render backend cannot be started"""


class RenderError(CriticalCssError):
    """A single (page, viewport) render failed"""


@dataclass(frozen=True, slots=True)
class FileFailure:
    path: str
    message: str


class StageFilesError(BuildError):
    """
    Raised once a stage has processed every input and some of them failed.
    """

    def __init__(
        self,
        noun: str,
        total: int,
        failures: list[FileFailure],
        *,
        metrics: dict[str, object] | None = None,
        warnings: list[str] | None = None,
    ) -> None:
        self.noun = noun
        self.total = total
        self.failures = list(failures)
        self.metrics = dict(metrics or {})
        self.warnings = list(warnings or [])
        details = "; ".join(f"{f.path}: {f.message}" for f in self.failures)
        super().__init__(f"{len(self.failures)} of {total} {noun} failed: {details}")


@dataclass(eq=False)
class StageSkipped(Exception):
    """
    Not an error: the stage decided there was nothing to do.
    """

    reason: str
    outputs: dict[str, object] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        return self.reason
