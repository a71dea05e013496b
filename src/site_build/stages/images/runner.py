from __future__ import annotations

from pathlib import Path
from typing import Callable

import structlog
from PIL import Image, ImageOps

from site_build.core import (
    FileFailure,
    ImageError,
    SourceError,
    StageFilesError,
    copy_file,
    ensure_parent,
    file_size,
    format_bytes,
    iter_files,
    relpath_posix,
)

from .models import AssetDerivative, ImageOptions, ImageResult

log = structlog.get_logger(__name__)

RASTER_FORMATS: dict[str, str] = {
    ".jpg": "JPEG",
    ".jpeg": "JPEG",
    ".png": "PNG",
}
VECTOR_SUFFIXES = (".svg",)


def _webp_ready(im: Image.Image) -> Image.Image:
    if im.mode in ("RGB", "RGBA"):
        return im
    if im.mode in ("LA", "PA") or (im.mode == "P" and "transparency" in im.info):
        return im.convert("RGBA")
    return im.convert("RGB")


def _save_webp(im: Image.Image, path: Path, quality: int) -> int:
    ensure_parent(path)
    im.save(path, "WEBP", quality=quality, method=6)
    return file_size(path)


def _save_original_format(im: Image.Image, path: Path, fmt: str, quality: int) -> int:
    ensure_parent(path)
    if fmt == "JPEG":
        rgb = im if im.mode == "RGB" else im.convert("RGB")
        rgb.save(path, "JPEG", quality=quality, optimize=True, progressive=True)
    else:
        im.save(path, fmt, optimize=True)
    return file_size(path)


def process_raster(
    path: Path, *, out_dir: Path, rel: str, opts: ImageOptions
) -> list[AssetDerivative]:
    """
    Responsive WebP derivatives for one raster image. Never upscales.
    """
    fmt = RASTER_FORMATS[path.suffix.lower()]
    stem = path.stem
    out: list[AssetDerivative] = []

    try:
        with Image.open(path) as opened:
            opened.load()
            im = ImageOps.exif_transpose(opened) or opened
            native_w, native_h = im.size
            webp_src = _webp_ready(im)

            log.info(
                "Processing image",
                file=rel,
                size=f"{native_w}x{native_h}",
                bytes=format_bytes(file_size(path)),
            )

            for width in opts.widths:
                if width > native_w:
                    log.debug("Skipping width, original too small", file=rel, width=width)
                    continue
                height = max(1, round(native_h * width / native_w))
                resized = webp_src.resize((width, height), Image.Resampling.LANCZOS)
                target = out_dir / f"{stem}-{width}w.webp"
                size = _save_webp(resized, target, opts.webp_quality)
                out.append(
                    AssetDerivative(
                        source_path=rel,
                        output_path=str(target),
                        width=width,
                        format="webp",
                        bytes=size,
                    )
                )

            full = out_dir / f"{stem}.webp"
            size = _save_webp(webp_src, full, opts.webp_quality)
            out.append(
                AssetDerivative(
                    source_path=rel,
                    output_path=str(full),
                    width="original",
                    format="webp",
                    bytes=size,
                )
            )

            if opts.keep_original:
                target = out_dir / path.name
                size = _save_original_format(im, target, fmt, opts.webp_quality)
                out.append(
                    AssetDerivative(
                        source_path=rel,
                        output_path=str(target),
                        width="original",
                        format=fmt.lower(),
                        bytes=size,
                    )
                )
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise ImageError(f"Failed to process {rel}: {e}") from e

    return out


def copy_vector(path: Path, *, out_dir: Path, rel: str) -> AssetDerivative:
    target = out_dir / path.name
    try:
        copy_file(path, target)
    except OSError as e:
        raise ImageError(f"Failed to copy {rel}: {e}") from e
    return AssetDerivative(
        source_path=rel,
        output_path=str(target),
        width="original",
        format="svg",
        bytes=file_size(target),
    )


def process_tree(
    *,
    src_root: Path,
    out_root: Path,
    opts: ImageOptions,
    on_derivative: Callable[[AssetDerivative], None] | None = None,
) -> ImageResult:
    src_root = Path(src_root)
    out_root = Path(out_root)
    if not src_root.is_dir():
        raise SourceError(f"Image source directory does not exist: {src_root}")
    try:
        files = list(iter_files(src_root))
    except OSError as e:
        raise SourceError(f"Cannot read image source directory {src_root}: {e}") from e

    out_root.mkdir(parents=True, exist_ok=True)
    log.info(
        "Optimizing images",
        files=len(files),
        widths=list(opts.widths),
        webp_quality=opts.webp_quality,
    )

    result = ImageResult()
    failures: list[FileFailure] = []

    for path in files:
        rel = relpath_posix(path, src_root)
        out_dir = out_root / Path(rel).parent
        suffix = path.suffix.lower()
        try:
            if suffix in VECTOR_SUFFIXES:
                made = [copy_vector(path, out_dir=out_dir, rel=rel)]
                log.info("Copied vector image", file=rel)
            elif suffix in RASTER_FORMATS:
                made = process_raster(path, out_dir=out_dir, rel=rel, opts=opts)
            else:
                log.info("Skipped unsupported file", file=rel)
                result.skipped += 1
                continue
        except ImageError as e:
            log.error("Image failed", file=rel, error=str(e))
            result.errors += 1
            failures.append(FileFailure(path=rel, message=str(e)))
            continue

        result.processed += 1
        result.bytes_original += file_size(path)
        result.bytes_optimized += sum(d.bytes for d in made if d.format == "webp" or d.format == "svg")
        result.derivatives.extend(made)
        if on_derivative is not None:
            for d in made:
                on_derivative(d)

    savings = result.savings_pct()
    log.info(
        "Image optimization summary",
        processed=result.processed,
        skipped=result.skipped,
        errors=result.errors,
        original=format_bytes(result.bytes_original),
        optimized=format_bytes(result.bytes_optimized),
        reduction=f"{savings:.1f}%" if savings is not None else None,
    )

    if failures:
        raise StageFilesError("images", result.processed + result.errors, failures, metrics=result.metrics())
    return result
