from __future__ import annotations

import tinycss2

from site_build.stages.critical.critical_set import CriticalSet, truncate_css


def _balanced(css: str) -> bool:
    nodes = tinycss2.parse_stylesheet(css, skip_comments=True, skip_whitespace=True)
    return all(n.type != "error" for n in nodes) and css.count("{") == css.count("}")


def test_dedupes_by_text_preserving_first_seen_order() -> None:
    cs = CriticalSet()
    assert cs.add("body{margin:0}") is True
    assert cs.add("h1{color:red}") is True
    assert cs.add("body{margin:0}") is False
    assert cs.update(["a{x:1}", "h1{color:red}", "  "]) == 1
    assert list(cs) == ["body{margin:0}", "h1{color:red}", "a{x:1}"]
    assert cs.serialize() == "body{margin:0}\nh1{color:red}\na{x:1}"
    assert cs.byte_size() == len(cs.serialize())
    assert "h1{color:red}" in cs


def test_small_input_is_untouched() -> None:
    css = "body{margin:0}\n" * 10
    assert truncate_css(css, 14336) == (css, False)


def test_truncation_is_bounded_and_standalone() -> None:
    rule = ".card-{}{{padding:1rem;margin:0 auto;color:#333}}"
    css = "\n".join(rule.format(i) for i in range(2000))
    for limit in (1, 50, 1000, 14336):
        out, truncated = truncate_css(css, limit)
        assert truncated is True
        assert len(out.encode("utf-8")) <= limit
        assert _balanced(out)
        assert css.startswith(out.rstrip("}"))


def test_truncation_closes_the_media_block_it_cuts_into() -> None:
    css = "a{b:c}\n@media (min-width:1px){.x{y:z}.w{v:u}}"
    out, truncated = truncate_css(css, len(css) - 3)
    assert truncated
    assert out == "a{b:c}\n@media (min-width:1px){.x{y:z}}"


def test_oversized_first_rule_keeps_whole_declarations() -> None:
    css = "body{" + "".join(f"--c{i}:#000000;" for i in range(20)) + "}"
    out, truncated = truncate_css(css, 100)
    assert truncated
    assert 0 < len(out.encode()) <= 100
    assert out == "body{" + "".join(f"--c{i}:#000000;" for i in range(7)) + "}"


def test_oversized_leading_media_block_is_not_emptied() -> None:
    css = (
        "@media (min-width:1px){"
        + "".join(f".r{i}{{padding:{i}px}}" for i in range(2000))
        + "}p{margin:0}"
    )
    out, truncated = truncate_css(css, 14336)
    assert truncated
    assert 0 < len(out.encode()) <= 14336
    assert out.startswith("@media (min-width:1px){.r0{padding:0px}.r1{padding:1px}")
    assert out.endswith("}}")
    assert "p{margin:0}" not in out
    assert _balanced(out)


def test_nothing_fits_gives_empty_text() -> None:
    assert truncate_css("body{margin:0}", 3) == ("", True)


def test_truncation_never_splits_multibyte_characters() -> None:
    css = 'a{content:"ééé"}b{content:"ü"}'
    cut_inside_b = len('a{content:"ééé"}b{content:"'.encode()) + 1
    out, truncated = truncate_css(css, cut_inside_b)
    assert truncated
    assert out == 'a{content:"ééé"}'


def test_truncation_ignores_braces_in_strings_and_comments() -> None:
    css = 'a{content:"}"}/* { */b{c:d}e{f:g}'
    out, _ = truncate_css(css, len(css.encode()) - 2)
    assert out == 'a{content:"}"}/* { */b{c:d}'
