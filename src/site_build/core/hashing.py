import hashlib
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class FileDigest:
    sha256: str
    bytes: int


def sha256_bytes(b: bytes) -> str:
    h = hashlib.sha256()
    h.update(b)
    return h.hexdigest()


def sha256_file(path: Path, *, chunk_bytes: int = 1024 * 1024) -> FileDigest:
    h = hashlib.sha256()
    total = 0
    with Path(path).open("rb") as f:
        while True:
            b = f.read(chunk_bytes)
            if not b:
                break
            h.update(b)
            total += len(b)

    return FileDigest(sha256=h.hexdigest(), bytes=total)


def tree_digest(root: Path) -> dict[str, str]:
    """
    Map every file under `root` (posix relpath) to its sha256.

    Used to compare two builds of the same sources.
    """
    root = Path(root)
    return {
        p.relative_to(root).as_posix(): sha256_file(p).sha256
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }
