from __future__ import annotations

from webbaseline.model import SourceRange
from webbaseline.parsers.html import HtmlParser, attribute_feature_id, element_feature_id
from webbaseline.reporting import ErrorReporter


def test_dialog_is_flagged_and_paragraph_is_not() -> None:
    result = HtmlParser().parse("<dialog><p>hi</p></dialog>")

    assert result.features == ("html.elements.dialog",)
    assert result.ranges_for("html.elements.dialog") == (SourceRange.from_points(0, 1, 0, 7),)


def test_plain_markup_yields_nothing() -> None:
    result = HtmlParser().parse('<div class="x"><p>hello</p><a href="/">home</a></div>')

    assert result.features == ()


def test_element_specific_attribute_range_covers_the_name() -> None:
    result = HtmlParser().parse('<img src="a.png" loading="lazy">')

    assert result.features == ("html.elements.img.loading",)
    assert result.ranges_for("html.elements.img.loading") == (
        SourceRange.from_points(0, 17, 0, 24),
    )


def test_global_attributes() -> None:
    result = HtmlParser().parse('<div popover id="menu"></div>\n<section inert></section>')

    assert result.features == ("html.global_attributes.popover", "html.global_attributes.inert")
    assert result.ranges_for("html.global_attributes.inert")[0].start.line == 1


def test_input_types() -> None:
    result = HtmlParser().parse('<input type="date">\n<input type="text">\n<input type=week>')

    assert result.features == ("html.elements.input.type_date", "html.elements.input.type_week")


def test_every_occurrence_is_located() -> None:
    result = HtmlParser().parse("<details></details>\n<details open></details>")

    assert result.features == ("html.elements.details",)
    assert len(result.ranges_for("html.elements.details")) == 2


def test_unclosed_markup_is_tolerated() -> None:
    result = HtmlParser().parse("<div><dialog><p>unclosed")

    assert "html.elements.dialog" in result.features


def test_inline_style_is_analyzed_with_document_positions() -> None:
    source = "<html>\n<style>\n  .a { float: left; }\n</style>\n</html>"
    result = HtmlParser().parse(source)

    assert result.features == ("css.properties.float",)
    assert result.ranges_for("css.properties.float") == (SourceRange.from_points(2, 7, 2, 12),)


def test_inline_style_on_the_tag_line_gets_column_offset() -> None:
    result = HtmlParser().parse("<style>.a{float:left}</style>")

    assert result.ranges_for("css.properties.float") == (SourceRange.from_points(0, 10, 0, 15),)


def test_inline_script_is_analyzed() -> None:
    result = HtmlParser().parse('<script>navigator.clipboard.writeText("x")</script>')

    assert "api.Clipboard.writeText" in result.features
    assert result.ranges_for("api.Clipboard.writeText") == (SourceRange.from_points(0, 8, 0, 37),)


def test_data_blocks_are_not_treated_as_script() -> None:
    result = HtmlParser().parse('<script type="application/json">{"fetch": 1}</script>')

    assert result.features == ()


def test_extract_features_merges_embedded_ids() -> None:
    source = (
        '<dialog></dialog><style>.a{float:left}</style>'
        '<script type="module">fetch("/")</script>'
    )

    assert HtmlParser().extract_features(source) == (
        "html.elements.dialog",
        "css.properties.float",
        "api.fetch",
    )


def test_lookup_helpers() -> None:
    assert element_feature_id("dialog") == "html.elements.dialog"
    assert element_feature_id("p") is None
    assert attribute_feature_id("iframe", "loading") == "html.elements.iframe.loading"
    assert attribute_feature_id("div", "loading") is None
    assert attribute_feature_id("span", "popover") == "html.global_attributes.popover"
    assert attribute_feature_id("input", "type", " Color ") == "html.elements.input.type_color"


def test_embedded_locations_are_a_subset_of_unique_features() -> None:
    source = (
        "<dialog></dialog>\n"
        "<style>.a{float:left}\n.b{float:none}</style>\n"
        "<dialog></dialog>\n"
        '<script>fetch("/"); fetch("/x");</script>'
    )

    result = HtmlParser().parse(source)

    assert result.features == ("html.elements.dialog", "css.properties.float", "api.fetch")
    assert set(result.locations) <= set(result.features)
    assert [r.start.line for r in result.ranges_for("html.elements.dialog")] == [0, 3]
    assert [r.start.line for r in result.ranges_for("css.properties.float")] == [1, 2]
    assert [r.start.line for r in result.ranges_for("api.fetch")] == [4, 4]


def test_empty_html_yields_an_empty_result() -> None:
    reporter = ErrorReporter()
    parser = HtmlParser(reporter)

    assert parser.parse("").features == ()
    assert parser.parse("\n\t ").locations == {}
    assert reporter.history() == []
