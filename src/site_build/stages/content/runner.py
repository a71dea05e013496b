from __future__ import annotations

from pathlib import Path
from typing import Callable

import structlog

from site_build.core import (
    DocumentError,
    FileFailure,
    SourceError,
    StageFilesError,
    atomic_write_text,
    iter_files,
    relpath_posix,
    stable_json_dumps,
)

from .frontmatter import split_frontmatter
from .markdown import render_markdown
from .models import CompiledDocument, ContentResult

log = structlog.get_logger(__name__)

MARKDOWN_SUFFIXES = (".md",)


def find_markdown_files(src_root: Path) -> list[Path]:
    src_root = Path(src_root)
    if not src_root.is_dir():
        raise SourceError(f"Content source directory does not exist: {src_root}")
    try:
        return list(iter_files(src_root, MARKDOWN_SUFFIXES))
    except OSError as e:
        raise SourceError(f"Cannot read content source directory {src_root}: {e}") from e


def compile_document(path: Path, *, src_root: Path, out_root: Path) -> CompiledDocument:
    """
    Convert one markdown document into `<rel>.html` and a `<rel>.json` sidecar.
    """
    rel = relpath_posix(path, src_root)
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise DocumentError(f"Cannot read document: {e}") from e

    fm = split_frontmatter(raw)
    rendered = render_markdown(fm.body)

    rel_path = Path(rel)
    html_path = out_root / rel_path.with_suffix(".html")
    meta_path = out_root / rel_path.with_suffix(".json")

    sidecar = {
        "metadata": fm.metadata,
        "sourceFile": rel,
        "headings": [h.to_dict() for h in rendered.headings],
    }

    atomic_write_text(html_path, rendered.html)
    atomic_write_text(meta_path, stable_json_dumps(sidecar, default=str) + "\n")

    return CompiledDocument(
        source=rel,
        html_path=str(html_path),
        metadata_path=str(meta_path),
        metadata=fm.metadata,
        has_frontmatter=bool(fm.present and fm.metadata),
        headings=len(rendered.headings),
    )


def compile_tree(
    *,
    src_root: Path,
    out_root: Path,
    on_document: Callable[[CompiledDocument], None] | None = None,
) -> ContentResult:
    """
    Compile every markdown file under `src_root`. One bad document never stops
    the others; failures are raised together once all documents were tried.
    """
    src_root = Path(src_root)
    out_root = Path(out_root)
    files = find_markdown_files(src_root)
    out_root.mkdir(parents=True, exist_ok=True)

    result = ContentResult(total=len(files))
    failures: list[FileFailure] = []

    if not files:
        log.info("No markdown files found", src_root=str(src_root))
        return result

    log.info("Compiling markdown", documents=len(files), src_root=str(src_root))

    for path in files:
        rel = relpath_posix(path, src_root)
        try:
            doc = compile_document(path, src_root=src_root, out_root=out_root)
        except DocumentError as e:
            log.error("Failed to compile document", file=rel, error=str(e))
            failures.append(FileFailure(path=rel, message=str(e)))
            continue
        except Exception as e:
            log.error("Failed to compile document", file=rel, error=str(e), exc_type=type(e).__name__)
            failures.append(FileFailure(path=rel, message=f"{type(e).__name__}: {e}"))
            continue

        if not doc.has_frontmatter:
            msg = f"No frontmatter found in {rel}"
            log.warning(msg)
            result.warnings.append(msg)

        result.documents.append(doc)
        if on_document is not None:
            on_document(doc)

    if failures:
        raise StageFilesError(
            "documents",
            len(files),
            failures,
            metrics=result.metrics(failed=len(failures)),
            warnings=result.warnings,
        )
    return result
