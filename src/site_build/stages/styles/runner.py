from __future__ import annotations

import os
import re
from pathlib import Path

import csscompressor
import structlog

from site_build.core import (
    FileFailure,
    SourceError,
    StageFilesError,
    StageSkipped,
    StylesError,
    atomic_write_text,
    iter_files,
    relpath_posix,
    stable_json_dumps,
)

from .models import BundleResult, CssStats, StylesOptions
from .sourcemap import build_source_map

log = structlog.get_logger(__name__)

_RULE_RE = re.compile(r"\{[^}]*\}")
_SELECTOR_RE = re.compile(r"[^{}]+\{")
_MEDIA_RE = re.compile(r"@media[^{]+\{")
_CUSTOM_PROP_RE = re.compile(r"--[a-zA-Z0-9_-]+\s*:")


def collect_partials(styles_root: Path, opts: StylesOptions) -> tuple[list[str], list[str]]:
    """
    Ordered partials (posix relpaths) and warnings for listed-but-missing files.
    """
    styles_root = Path(styles_root)
    if not styles_root.is_dir():
        raise SourceError(f"Styles source directory does not exist: {styles_root}")

    warnings: list[str] = []
    ordered: list[str] = []
    for rel in opts.order:
        if (styles_root / rel).is_file():
            ordered.append(rel)
        else:
            warnings.append(f"CSS file not found: {rel}")

    if opts.discover_unlisted:
        listed = set(ordered)
        try:
            found = [relpath_posix(p, styles_root) for p in iter_files(styles_root, (".css",))]
        except OSError as e:
            raise SourceError(f"Cannot read styles directory {styles_root}: {e}") from e
        for rel in found:
            if rel not in listed and not rel.endswith(".min.css"):
                ordered.append(rel)

    return ordered, warnings


def minify_css(css: str) -> str:
    out = csscompressor.compress(css)
    # One line per partial keeps the line-level source map exact.
    return " ".join(line.strip() for line in out.splitlines() if line.strip())


def css_stats(css: str) -> CssStats:
    return CssStats(
        lines=len(css.split("\n")),
        rules=len(_RULE_RE.findall(css)),
        selectors=len(_SELECTOR_RE.findall(css)),
        media_queries=len(_MEDIA_RE.findall(css)),
        custom_properties=len(_CUSTOM_PROP_RE.findall(css)),
    )


def _write_output(path: Path, text: str) -> None:
    try:
        atomic_write_text(path, text)
    except OSError as e:
        raise StylesError(f"Cannot write {path.name}: {e}") from e


def bundle_css(
    *,
    styles_root: Path,
    bundle_path: Path,
    source_map_path: Path | None,
    opts: StylesOptions,
) -> BundleResult:
    """
    Concatenate and minify partials in cascade order.

    Raises StageSkipped when there is nothing to bundle; nothing is written then.
    """
    styles_root = Path(styles_root)
    partials, warnings = collect_partials(styles_root, opts)
    for w in warnings:
        log.warning(w)

    result = BundleResult(warnings=warnings)
    failures: list[FileFailure] = []
    lines: list[str] = []
    line_sources: list[int] = []
    sources: list[str] = []
    contents: list[str] = []

    for rel in partials:
        try:
            raw = (styles_root / rel).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            log.error("Error reading stylesheet", file=rel, error=str(e))
            failures.append(FileFailure(path=rel, message=str(e)))
            continue

        result.bytes_raw += len(raw.encode("utf-8"))
        minified = minify_css(raw)
        log.info("Loaded stylesheet", file=rel, chars=len(raw))
        if not minified:
            continue

        idx = len(sources)
        sources.append(rel)
        contents.append(raw)
        lines.append(minified)
        line_sources.append(idx)
        result.partials.append(rel)

    if not lines:
        if failures:
            raise StageFilesError("stylesheets", len(partials), failures, warnings=warnings)
        log.warning("No CSS content found", styles_root=str(styles_root))
        raise StageSkipped("no content found", warnings=warnings)

    body = "\n".join(lines)
    result.stats = css_stats(body)

    if source_map_path is not None and opts.source_map:
        sm = build_source_map(
            file=bundle_path.name,
            sources=[
                Path(os.path.relpath(styles_root / s, bundle_path.parent)).as_posix()
                for s in sources
            ],
            sources_content=contents,
            line_sources=line_sources,
        )
        _write_output(source_map_path, stable_json_dumps(sm, indent=None) + "\n")
        body += f"\n/*# sourceMappingURL={source_map_path.name} */"
        result.source_map_path = str(source_map_path)

    body += "\n"
    _write_output(bundle_path, body)
    result.bundle_path = str(bundle_path)
    result.bytes_min = len(body.encode("utf-8"))

    reduction = (
        (result.bytes_raw - result.bytes_min) / result.bytes_raw * 100
        if result.bytes_raw
        else 0.0
    )
    log.info(
        "CSS bundle written",
        path=str(bundle_path),
        partials=len(result.partials),
        bytes_raw=result.bytes_raw,
        bytes_min=result.bytes_min,
        reduction=f"{reduction:.1f}%",
    )

    if failures:
        raise StageFilesError(
            "stylesheets",
            len(partials),
            failures,
            metrics=result.metrics(),
            warnings=warnings,
        )
    return result
