"""
Foundational subset used when there are no sample pages to render.
"""

from __future__ import annotations

import re

from .rules import ParsedStylesheet, StyleRule

FOUNDATIONAL_SUBJECTS = frozenset(
    {"*", "html", ":root", "body", "h1", "h2", "h3", "h4", "h5", "h6", "p", "a"}
)

_CUSTOM_PROPERTY_RE = re.compile(r"(?:^|[;{\s])--[A-Za-z0-9_-]+\s*:")
_COMPOUND_SPLIT_RE = re.compile(r"\s*[>+~]\s*|\s+")


def subject_compound(key: str) -> str:
    """The rightmost compound selector, i.e. the element the rule styles."""
    parts = [p for p in _COMPOUND_SPLIT_RE.split(key.strip()) if p]
    return parts[-1].lower() if parts else ""


def is_foundational_selector(key: str) -> bool:
    return subject_compound(key) in FOUNDATIONAL_SUBJECTS


def declares_custom_properties(declarations: str) -> bool:
    return bool(_CUSTOM_PROPERTY_RE.search(declarations))


def is_foundational_rule(rule: StyleRule) -> bool:
    if declares_custom_properties(rule.declarations):
        return True
    return any(is_foundational_selector(k) for k in rule.keys)


def heuristic_rules(sheet: ParsedStylesheet) -> list[StyleRule]:
    # Top-level rules only: a media block is never foundational on its own.
    return [
        item
        for item in sheet.items
        if isinstance(item, StyleRule) and is_foundational_rule(item)
    ]
