from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import yaml

from site_build.core import FrontmatterError

_FENCE = "---"
_CLOSERS = ("---", "...")


@dataclass(frozen=True, slots=True)
class Frontmatter:
    metadata: dict[str, Any] = field(default_factory=dict)
    body: str = ""
    present: bool = False


def split_frontmatter(text: str) -> Frontmatter:
    """
    Split a leading YAML block delimited by `---` lines from the markdown body.

    A document without a block is returned whole with `present=False`.
    """
    text = text.lstrip("\ufeff")
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].strip() != _FENCE:
        return Frontmatter(metadata={}, body=text, present=False)

    for i in range(1, len(lines)):
        if lines[i].strip() in _CLOSERS:
            raw = "".join(lines[1:i])
            body = "".join(lines[i + 1 :])
            return Frontmatter(metadata=_load(raw), body=body, present=True)

    raise FrontmatterError("Unterminated frontmatter block (missing closing '---')")


def _load(raw: str) -> dict[str, Any]:
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise FrontmatterError(f"Invalid YAML frontmatter: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise FrontmatterError(
            f"Frontmatter must be a mapping, got {type(data).__name__}"
        )
    return {str(k): v for k, v in data.items()}
