from __future__ import annotations

import pytest

from site_build.core import Viewport
from site_build.stages.critical.heuristic import heuristic_rules, is_foundational_selector
from site_build.stages.critical.media import evaluate_media_query
from site_build.stages.critical.rules import MediaBlock, StyleRule, parse_stylesheet, selector_key

MOBILE = Viewport(name="mobile", width=375, height=667)
DESKTOP = Viewport(name="desktop", width=1300, height=900)


def test_parse_top_level_rules_and_media() -> None:
    sheet = parse_stylesheet(
        "body{margin:0}\n"
        "/* note */\n"
        "h1,h2:hover{color:red}\n"
        "@font-face{font-family:x;src:url(x.woff2)}\n"
        "@media (min-width:768px){.grid{display:grid}@supports (gap:1px){.g{gap:1px}}}\n"
    )
    assert [type(i) for i in sheet.items] == [StyleRule, StyleRule, MediaBlock]
    body, heads, media = sheet.items
    assert body.css_text == "body{margin:0}"
    assert heads.selectors == ("h1", "h2:hover")
    assert heads.keys == ("h1", "h2")
    assert media.condition == "(min-width:768px)"
    assert [r.selector for r in media.rules] == [".grid"]
    assert sheet.ignored_at_rules == 2
    assert sheet.media_conditions() == ["(min-width:768px)"]
    assert sheet.selector_keys() == ["body", "h1", "h2", ".grid"]


def test_nested_commas_stay_in_one_selector() -> None:
    sheet = parse_stylesheet(":is(h1, h2) > a, p{color:blue}")
    assert sheet.items[0].selectors == (":is(h1, h2) > a", "p")


@pytest.mark.parametrize(
    ("selector", "key"),
    [
        ("a:hover", "a"),
        ("a:focus-visible", "a"),
        (".nav a:visited span", ".nav a span"),
        ("*::before", "*"),
        ("p::first-line", "p"),
        ("li:before", "li"),
        ("::selection", "*"),
        (".btn > :focus", ".btn > *"),
        ("input:focus-within", "input"),
        ("a:first-child", "a:first-child"),
        ("a:not(:hover)", "a:not(:hover)"),
        (":is(a:focus, p) span:hover", ":is(a:focus, p) span"),
        ('a[title=":focus"]:focus', 'a[title=":focus"]'),
        ("li:hover::before", "li"),
    ],
)
def test_selector_key(selector: str, key: str) -> None:
    assert selector_key(selector) == key


def test_heuristic_keeps_foundational_rules_only() -> None:
    sheet = parse_stylesheet(
        "*{box-sizing:border-box}"
        ":root{--brand:#c00}"
        ".theme{--accent:blue}"
        "html,body{margin:0}"
        "h3{font-size:2rem}"
        "a:hover{color:red}"
        ".card p{margin:0}"
        ".card{padding:1rem}"
        "p.lead{font-size:2rem}"
        "@media (min-width:1px){body{margin:1px}}"
    )
    kept = [r.css_text for r in heuristic_rules(sheet)]
    assert kept == [
        "*{box-sizing:border-box}",
        ":root{--brand:#c00}",
        ".theme{--accent:blue}",
        "html,body{margin:0}",
        "h3{font-size:2rem}",
        "a:hover{color:red}",
        ".card p{margin:0}",
    ]
    assert is_foundational_selector("body > p") is True
    assert is_foundational_selector("p.lead") is False


@pytest.mark.parametrize(
    ("condition", "mobile", "desktop"),
    [
        ("(min-width: 768px)", False, True),
        ("(max-width: 767px)", True, False),
        ("screen and (min-width: 48em)", False, True),
        ("print", False, False),
        ("only screen and (max-width: 400px)", True, False),
        ("not print", True, True),
        ("print, (orientation: portrait)", True, False),
        ("(orientation: landscape)", False, True),
        ("(width >= 1024px)", False, True),
        ("(400px < width)", False, True),
        ("(prefers-reduced-motion: reduce)", False, False),
        ("(prefers-color-scheme: light)", True, True),
        ("(min-width: 300px) and (max-height: 700px)", True, False),
        ("(min-width: 300px) or (max-width: 1px)", False, False),
        ("(hover: hover)", True, True),
        ("(frobnicate: 1)", False, False),
    ],
)
def test_evaluate_media_query(condition: str, mobile: bool, desktop: bool) -> None:
    assert evaluate_media_query(condition, MOBILE) is mobile
    assert evaluate_media_query(condition, DESKTOP) is desktop
