import json
from pathlib import Path
from typing import Any, Callable

from .fs import atomic_write_text


def atomic_write_json(
    path: Path,
    obj: Any,
    *,
    indent: int = 2,
    default: Callable[[Any], Any] | None = None,
) -> None:
    atomic_write_text(
        path,
        json.dumps(obj, ensure_ascii=False, indent=indent, default=default) + "\n",
    )


def read_json(path: Path) -> dict[str, Any]:
    with Path(path).open("r", encoding="utf-8") as f:
        return json.load(f)


def stable_json_dumps(
    obj: Any,
    *,
    indent: int | None = 2,
    default: Callable[[Any], Any] | None = None,
) -> str:
    """
    Deterministic JSON:
      - sort_keys=True
      - ensure_ascii=False (keep non-latin frontmatter readable)
      - stable separators when indent is None
    """
    if indent is None:
        return json.dumps(
            obj,
            sort_keys=True,
            ensure_ascii=False,
            separators=(",", ":"),
            default=default,
        )
    return json.dumps(
        obj, sort_keys=True, ensure_ascii=False, indent=indent, default=default
    )
