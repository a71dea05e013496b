"""
Top-level rule model of a CSS bundle, parsed with tinycss2.

Only plain style rules and @media blocks take part in critical CSS
selection. Every other at-rule (@font-face, @keyframes, @supports, ...) is
ignored and counted.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterator, Sequence

import tinycss2

# Pseudo-elements never match an element; user-action states never hold at
# first paint. Both are stripped so that `a:hover` follows `a`.
_PSEUDO_ELEMENT_RE = re.compile(
    r"::[a-zA-Z-]+(?:\([^)]*\))?|:(?:before|after|first-line|first-letter)(?![\w-])",
    re.IGNORECASE,
)
_USER_ACTION_RE = re.compile(
    r":(?:hover|focus-visible|focus-within|focus|active|visited)(?![\w-])",
    re.IGNORECASE,
)
_COMBINATORS = (">", "+", "~")
_GROUPS = {"(": ")", "[": "]"}
_PLACEHOLDER_RE = re.compile("\x00(\\d+)\x00")


@dataclass(frozen=True, slots=True)
class StyleRule:
    selector: str
    selectors: tuple[str, ...]
    keys: tuple[str, ...]
    declarations: str
    css_text: str


@dataclass(frozen=True, slots=True)
class MediaBlock:
    condition: str
    rules: tuple[StyleRule, ...]
    css_text: str


@dataclass(slots=True)
class ParsedStylesheet:
    items: list[StyleRule | MediaBlock] = field(default_factory=list)
    errors: int = 0
    ignored_at_rules: int = 0

    def style_rules(self) -> Iterator[StyleRule]:
        """Every style rule, including the ones nested in @media blocks."""
        for item in self.items:
            if isinstance(item, MediaBlock):
                yield from item.rules
            else:
                yield item

    def selector_keys(self) -> list[str]:
        seen: dict[str, None] = {}
        for rule in self.style_rules():
            for key in rule.keys:
                seen.setdefault(key, None)
        return list(seen)

    def media_conditions(self) -> list[str]:
        seen: dict[str, None] = {}
        for item in self.items:
            if isinstance(item, MediaBlock):
                seen.setdefault(item.condition, None)
        return list(seen)


def _squash(text: str) -> str:
    return " ".join(text.split())


def _mask_groups(selector: str) -> tuple[str, list[str]]:
    """
    Swap the inside of every top-level (...) and [...] for a placeholder so
    that stripping never reaches into `:not(:hover)` or `[title=":focus"]`.
    """
    groups: list[str] = []
    out: list[str] = []
    stack: list[str] = []
    quote: str | None = None
    start = 0
    for i, ch in enumerate(selector):
        if not stack:
            out.append(ch)
            if ch in _GROUPS:
                stack.append(_GROUPS[ch])
                start = i + 1
            continue
        if quote is not None:
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch in _GROUPS:
            stack.append(_GROUPS[ch])
        elif ch == stack[-1]:
            stack.pop()
            if not stack:
                groups.append(selector[start:i])
                out.append(f"\x00{len(groups) - 1}\x00{ch}")
    if stack:
        return selector, []
    return "".join(out), groups


def _unmask(text: str, groups: list[str]) -> str:
    return _PLACEHOLDER_RE.sub(lambda m: groups[int(m.group(1))], text)


def selector_key(selector: str) -> str:
    """
    Normalize one complex selector for element matching.

    Only the outermost compounds are touched: `a:hover` becomes `a`, while
    `a:not(:hover)` is kept as written.
    """
    masked, groups = _mask_groups(selector)
    key = _PSEUDO_ELEMENT_RE.sub("", masked)
    key = _USER_ACTION_RE.sub("", key)
    key = _unmask(_squash(key), groups)
    if not key:
        return "*"
    if key.endswith(_COMBINATORS):
        key = f"{key} *"
    if key.startswith(_COMBINATORS):
        key = f"* {key}"
    return key


def split_selector_list(prelude: Sequence[tinycss2.ast.Node]) -> list[str]:
    # Commas inside functions (:is(a, b)) are nested tokens, not top level.
    parts: list[list[tinycss2.ast.Node]] = [[]]
    for tok in prelude:
        if tok.type == "comment":
            continue
        if tok.type == "literal" and tok.value == ",":
            parts.append([])
        else:
            parts[-1].append(tok)
    out = [_squash(tinycss2.serialize(p)) for p in parts]
    return [s for s in out if s]


def _style_rule(node: tinycss2.ast.QualifiedRule) -> StyleRule | None:
    selectors = split_selector_list(node.prelude)
    if not selectors:
        return None
    return StyleRule(
        selector=", ".join(selectors),
        selectors=tuple(selectors),
        keys=tuple(dict.fromkeys(selector_key(s) for s in selectors)),
        declarations=tinycss2.serialize(node.content).strip(),
        css_text=node.serialize().strip(),
    )


def parse_stylesheet(css: str) -> ParsedStylesheet:
    sheet = ParsedStylesheet()
    nodes = tinycss2.parse_stylesheet(css, skip_comments=True, skip_whitespace=True)
    for node in nodes:
        if node.type == "qualified-rule":
            rule = _style_rule(node)
            if rule is None:
                sheet.errors += 1
            else:
                sheet.items.append(rule)
        elif node.type == "at-rule":
            if node.lower_at_keyword != "media":
                sheet.ignored_at_rules += 1
                continue
            if node.content is None:
                sheet.errors += 1
                continue
            nested: list[StyleRule] = []
            for child in tinycss2.parse_rule_list(
                node.content, skip_comments=True, skip_whitespace=True
            ):
                if child.type == "qualified-rule":
                    rule = _style_rule(child)
                    if rule is not None:
                        nested.append(rule)
                        continue
                if child.type == "at-rule":
                    sheet.ignored_at_rules += 1
                else:
                    sheet.errors += 1
            sheet.items.append(
                MediaBlock(
                    condition=_squash(tinycss2.serialize(node.prelude)),
                    rules=tuple(nested),
                    css_text=node.serialize().strip(),
                )
            )
        else:
            sheet.errors += 1
    return sheet
