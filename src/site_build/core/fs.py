import os
import shutil
import tempfile
from pathlib import Path
from typing import Iterator


def ensure_parent(path: Path) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)


def safe_unlink(path: os.PathLike[str] | str) -> None:
    try:
        Path(path).unlink(missing_ok=True)
    except Exception:
        return


def relpath_posix(path: Path, base_dir: Path) -> str:
    return path.relative_to(base_dir).as_posix()


def file_size(path: Path) -> int:
    return int(path.stat().st_size)


def fsync_dir(parent: Path) -> None:
    """
    Ensure directory entry durability after atomic rename.
    """
    fd: int | None = None
    try:
        fd = os.open(parent, os.O_RDONLY)
        os.fsync(fd)
    finally:
        if fd is not None:
            os.close(fd)


def atomic_write_text(
    path: Path,
    text: str,
    *,
    encoding: str = "utf-8",
    newline: str = "\n",
    mode: int = 0o644,
) -> None:
    """
    Atomically write text to `path`.

    Guarantees:
      - readers either see the old complete file or the new complete file
      - no partial/truncated file on crash
      - temp file written in the same directory (atomic replace works)
    """
    atomic_write_bytes(path, text.replace("\n", newline).encode(encoding), mode=mode)


def atomic_write_bytes(path: Path, data: bytes, *, mode: int = 0o644) -> None:
    """
    Atomically write bytes to `path` with fsync + dir fsync.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd: int | None = None
    tmp_path: Path | None = None
    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.",
            suffix=".tmp",
            dir=str(path.parent),
            text=False,
        )
        tmp_path = Path(tmp_name)

        with os.fdopen(fd, "wb") as f:
            fd = None
            f.write(data)
            f.flush()
            os.fsync(f.fileno())

        try:
            os.chmod(tmp_path, mode)
        except OSError:
            pass

        os.replace(tmp_path, path)
        fsync_dir(path.parent)
    finally:
        if fd is not None:
            try:
                os.close(fd)
            except OSError:
                pass
        if tmp_path is not None and tmp_path.exists():
            safe_unlink(tmp_path)


def copy_file(src: Path, dst: Path) -> None:
    """
    Byte-for-byte copy. Never hardlinks: the output tree must not alias sources.
    """
    src = Path(src)
    dst = Path(dst)
    ensure_parent(dst)
    shutil.copyfile(src, dst)


def reset_dir(path: Path) -> bool:
    """
    Remove `path` recursively if present and recreate it empty.

    Returns True when an existing tree was removed.
    """
    path = Path(path)
    existed = path.exists()
    if existed:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
    path.mkdir(parents=True, exist_ok=False)
    return existed


def iter_files(root: Path, suffixes: tuple[str, ...] | None = None) -> Iterator[Path]:
    """
    Yield files under `root` in sorted, deterministic order.

    `suffixes` are compared case-insensitively and must include the dot.
    """
    root = Path(root)
    wanted = tuple(s.lower() for s in suffixes) if suffixes else None
    for p in sorted(root.rglob("*")):
        if not p.is_file():
            continue
        if wanted is not None and p.suffix.lower() not in wanted:
            continue
        yield p
