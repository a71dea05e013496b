from __future__ import annotations

from typing import Iterable, Iterator, Sequence

import tinycss2

# At-rules whose block holds rules rather than declarations.
_GROUPING_AT_RULES = frozenset({"media", "supports", "layer", "container", "document", "scope"})


class CriticalSet:
    """
    Rule texts in first-seen order; identical text is kept once.
    """

    def __init__(self, rules: Iterable[str] = ()) -> None:
        self._rules: dict[str, None] = {}
        for r in rules:
            self.add(r)

    def add(self, rule_text: str) -> bool:
        text = rule_text.strip()
        if not text or text in self._rules:
            return False
        self._rules[text] = None
        return True

    def update(self, rules: Iterable[str]) -> int:
        return sum(1 for r in rules if self.add(r))

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[str]:
        return iter(self._rules)

    def __contains__(self, rule_text: object) -> bool:
        return isinstance(rule_text, str) and rule_text.strip() in self._rules

    def serialize(self) -> str:
        return "\n".join(self._rules)

    def byte_size(self) -> int:
        return len(self.serialize().encode("utf-8"))


def _size(text: str) -> int:
    return len(text.encode("utf-8"))


def _fit_declarations(content: Sequence[tinycss2.ast.Node], room: int) -> str:
    # Whole `;`-terminated declarations only; a value is never cut short.
    out: list[str] = []
    used = 0
    chunk: list[tinycss2.ast.Node] = []
    for tok in content:
        if tok.type == "error":
            continue
        chunk.append(tok)
        if tok.type == "literal" and tok.value == ";":
            text = tinycss2.serialize(chunk)
            if used + _size(text) > room:
                break
            out.append(text)
            used += _size(text)
            chunk = []
    return "".join(out)


def _fit_block(node: tinycss2.ast.Node, budget: int) -> str:
    """
    The head of a rule or grouping at-rule that does not fit whole, closed
    early. Empty when not even one declaration or nested rule fits.
    """
    if node.type not in ("qualified-rule", "at-rule") or node.content is None:
        return ""
    opener = tinycss2.serialize(node.prelude)
    if node.type == "at-rule":
        opener = f"@{node.at_keyword}{opener}"
    opener += "{"
    room = budget - _size(opener) - 1
    if room <= 0:
        return ""
    if node.type == "at-rule" and node.lower_at_keyword in _GROUPING_AT_RULES:
        nested = tinycss2.parse_rule_list(
            node.content, skip_comments=True, skip_whitespace=True
        )
        inner = _fit_nodes(nested, room)
    else:
        inner = _fit_declarations(node.content, room)
    if not inner.strip():
        return ""
    return f"{opener}{inner}}}"


def _fit_nodes(nodes: Sequence[tinycss2.ast.Node], budget: int) -> str:
    # Whole nodes in order; the first one that overflows ends the output.
    out: list[str] = []
    used = 0
    for node in nodes:
        if node.type == "error":
            continue
        text = node.serialize()
        if used + _size(text) <= budget:
            out.append(text)
            used += _size(text)
            continue
        out.append(_fit_block(node, budget - used))
        break
    return "".join(out)


def truncate_css(css: str, max_bytes: int) -> tuple[str, bool]:
    """
    Bound `css` to `max_bytes` UTF-8 bytes.

    Everything before the cut point is kept; the rule or @media block the
    cut lands in keeps its complete declarations and nested rules and is
    closed, so the result is standalone CSS even when the very first block
    is larger than the limit. Returns (text, truncated).
    """
    if max_bytes < 0:
        raise ValueError(f"max_bytes must be >= 0, got {max_bytes}")
    if _size(css) <= max_bytes:
        return css, False
    nodes = tinycss2.parse_stylesheet(css, skip_comments=False, skip_whitespace=False)
    return _fit_nodes(nodes, max_bytes).rstrip(), True
