"""
Line-level source map (v3) for a bundle whose every line comes from one partial.
"""

from __future__ import annotations

from typing import Any, Sequence

_B64 = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"


def vlq_encode(value: int) -> str:
    v = ((-value) << 1) | 1 if value < 0 else value << 1
    out = []
    while True:
        digit = v & 0b11111
        v >>= 5
        if v:
            digit |= 0b100000
        out.append(_B64[digit])
        if not v:
            return "".join(out)


def line_mappings(line_sources: Sequence[int]) -> str:
    # Each generated line maps column 0 to line 0, column 0 of its source.
    segments: list[str] = []
    prev = 0
    for src_idx in line_sources:
        segments.append("A" + vlq_encode(src_idx - prev) + "AA")
        prev = src_idx
    return ";".join(segments)


def build_source_map(
    *,
    file: str,
    sources: Sequence[str],
    sources_content: Sequence[str] | None,
    line_sources: Sequence[int],
) -> dict[str, Any]:
    sm: dict[str, Any] = {
        "version": 3,
        "file": file,
        "sources": list(sources),
        "names": [],
        "mappings": line_mappings(line_sources),
    }
    if sources_content is not None:
        sm["sourcesContent"] = list(sources_content)
    return sm
