from __future__ import annotations

from bs4 import BeautifulSoup

from site_build.core import Viewport
from site_build.stages.critical.renderers import StaticRenderer, measure_document, wrap_fragment

MOBILE = Viewport(name="mobile", width=375, height=667)
DESKTOP = Viewport(name="desktop", width=1300, height=900)

PAGE = wrap_fragment(
    '<h1 class="title">Title</h1>\n'
    + '<p><a class="lnk" href="#">link</a> text</p>\n'
    + "".join(f"<p>{'word ' * 80}</p>\n" for _ in range(4))
    + '<div hidden class="secret">hidden</div>\n'
    + '<footer class="below">Footer</footer>\n'
)


def _measure(vp: Viewport, selectors: list[str], media: tuple[str, ...] = ()):
    return StaticRenderer().measure(PAGE, vp, selectors=selectors, media_conditions=media)


def test_fold_depends_on_viewport() -> None:
    m = _measure(MOBILE, ["h1", ".title", ".lnk", ".below"])
    assert m.matched_selectors == {"h1", ".title", ".lnk"}

    d = _measure(DESKTOP, ["h1", ".below"])
    assert d.matched_selectors == {"h1", ".below"}


def test_document_and_body_are_always_critical() -> None:
    m = _measure(MOBILE, ["html", "body", "*", "body > p"])
    assert m.matched_selectors == {"html", "body", "*", "body > p"}


def test_hidden_elements_are_not_critical() -> None:
    m = _measure(DESKTOP, [".secret", "title", "meta"])
    assert m.matched_selectors == frozenset()


def test_invalid_selectors_are_skipped() -> None:
    m = _measure(MOBILE, ["a[", "p:unknown-thing", "h1"])
    assert m.matched_selectors == {"h1"}


def test_media_conditions_evaluated_per_viewport() -> None:
    m = _measure(MOBILE, [], ("(max-width: 600px)", "(min-width: 1024px)"))
    assert m.matched_media == {"(max-width: 600px)"}


def test_images_take_space() -> None:
    html = wrap_fragment('<img src="a.jpg" width="1200" height="800"><p class="after">x</p>')
    soup = BeautifulSoup(html, "html.parser")
    critical = measure_document(soup, MOBILE)
    names = {el.name for el in critical}
    assert "img" in names
    # 1200x800 scaled to 375 wide is 250px tall; the paragraph still fits
    assert any(el.get("class") == ["after"] for el in critical)
