"""
Media query evaluation against a fixed viewport, for renderers that have no
`matchMedia` of their own.

Supported: media types, `not`/`only`, comma lists, `and`, min/max/range
width and height, orientation, aspect-ratio, prefers-color-scheme,
prefers-reduced-motion and a few boolean features. Anything else evaluates
to False.
"""

from __future__ import annotations

import re

from site_build.core import Viewport

ROOT_FONT_PX = 16.0

_LENGTH_RE = re.compile(r"^(-?\d*\.?\d+)(px|em|rem)?$")
_RANGE_RE = re.compile(r"^(width|height)\s*(<=|>=|<|>|=)\s*(\S+)$")
_RANGE_REVERSED_RE = re.compile(r"^(\S+)\s*(<=|>=|<|>|=)\s*(width|height)$")
_FEATURE_RE = re.compile(r"\(([^()]*)\)")

_SCREEN_TYPES = frozenset({"all", "screen"})
_KNOWN_TYPES = frozenset(
    {"all", "screen", "print", "speech", "tty", "tv", "projection", "handheld"}
)
_TRUTHY_FEATURES = frozenset({"color", "hover", "pointer", "width", "height"})

_FLIP = {"<": ">", ">": "<", "<=": ">=", ">=": "<=", "=": "="}


def _length_px(value: str) -> float | None:
    m = _LENGTH_RE.match(value.strip())
    if not m:
        return None
    number = float(m.group(1))
    unit = m.group(2)
    if unit in ("em", "rem"):
        return number * ROOT_FONT_PX
    if unit is None and number != 0:
        return None
    return number


def _compare(actual: float, op: str, expected: float) -> bool:
    if op == "<":
        return actual < expected
    if op == "<=":
        return actual <= expected
    if op == ">":
        return actual > expected
    if op == ">=":
        return actual >= expected
    return actual == expected


def _dimension(name: str, vp: Viewport) -> float:
    return float(vp.width if name == "width" else vp.height)


def _ratio(value: str) -> float | None:
    parts = [p.strip() for p in value.split("/")]
    try:
        if len(parts) == 2:
            return float(parts[0]) / float(parts[1])
        if len(parts) == 1:
            return float(parts[0])
    except (ValueError, ZeroDivisionError):
        return None
    return None


def evaluate_feature(feature: str, vp: Viewport) -> bool:
    feature = feature.strip()

    m = _RANGE_RE.match(feature)
    if m:
        px = _length_px(m.group(3))
        return px is not None and _compare(_dimension(m.group(1), vp), m.group(2), px)
    m = _RANGE_REVERSED_RE.match(feature)
    if m:
        px = _length_px(m.group(1))
        return px is not None and _compare(
            _dimension(m.group(3), vp), _FLIP[m.group(2)], px
        )

    if ":" not in feature:
        # Boolean context: true when the feature has a non-zero value.
        return feature in _TRUTHY_FEATURES

    name, _, value = (s.strip() for s in feature.partition(":"))
    if name in ("width", "min-width", "max-width", "height", "min-height", "max-height"):
        px = _length_px(value)
        if px is None:
            return False
        actual = _dimension(name.rsplit("-", 1)[-1], vp)
        if name.startswith("min-"):
            return actual >= px
        if name.startswith("max-"):
            return actual <= px
        return actual == px
    if name == "orientation":
        return value == ("portrait" if vp.height >= vp.width else "landscape")
    if name in ("aspect-ratio", "min-aspect-ratio", "max-aspect-ratio"):
        wanted = _ratio(value)
        if wanted is None:
            return False
        actual = vp.width / vp.height
        if name.startswith("min-"):
            return actual >= wanted
        if name.startswith("max-"):
            return actual <= wanted
        return abs(actual - wanted) < 1e-9
    if name == "prefers-color-scheme":
        return value == "light"
    if name == "prefers-reduced-motion":
        return value == "no-preference"
    if name == "hover":
        return value == "hover"
    if name == "pointer":
        return value == "fine"
    return False


def _evaluate_query(query: str, vp: Viewport) -> bool:
    q = query.strip().lower()
    negate = False
    if q.startswith("not "):
        negate = True
        q = q[4:].strip()
    elif q.startswith("only "):
        q = q[5:].strip()

    media_type = "all"
    if q and not q.startswith("("):
        m = re.match(r"([a-z-]+)\s*(.*)$", q)
        if m is None or m.group(1) not in _KNOWN_TYPES:
            return False
        media_type = m.group(1)
        q = m.group(2).strip()
        if q.startswith("and"):
            q = q[3:].strip()
        elif q:
            return False

    features = _FEATURE_RE.findall(q)
    leftover = _FEATURE_RE.sub("", q).replace("and", "").strip()
    if leftover:
        # `or`, nested conditions or garbage.
        return False

    result = media_type in _SCREEN_TYPES and all(evaluate_feature(f, vp) for f in features)
    return result != negate


def evaluate_media_query(condition: str, viewport: Viewport) -> bool:
    """
    True when any comma-separated query in `condition` holds for `viewport`.
    """
    queries = [q for q in condition.split(",") if q.strip()]
    if not queries:
        return True
    return any(_evaluate_query(q, viewport) for q in queries)
