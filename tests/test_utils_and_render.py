from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest
from rich.console import Console

from webbaseline.model import (
    BaselineStatus,
    FeatureRecord,
    Finding,
    LocationContext,
    ParseResult,
    SourcePosition,
    SourceRange,
)
from webbaseline.parsers import (
    CssParser,
    HtmlParser,
    JavaScriptParser,
    ParserRegistry,
    SassParser,
    ScssParser,
    parser_for_language,
)
from webbaseline.render_basic import render_feature, render_findings, render_summary, status_key
from webbaseline.reporting import ErrorReporter
from webbaseline.util import files as file_utils
from webbaseline.util import html as html_utils
from webbaseline.util import text as text_utils


def _render(renderable: object) -> str:
    console = Console(record=True, width=160)
    console.print(renderable)
    return console.export_text()


def test_text_utils() -> None:
    assert text_utils.normalize_whitespace(" a\n  b ") == "a b"
    assert text_utils.byte_size("é") == 2
    assert text_utils.content_hash("a") == text_utils.content_hash("a")
    assert text_utils.content_hash("a") != text_utils.content_hash("b")
    assert len(text_utils.content_hash("")) == 64
    assert text_utils.ellipsize("abc", 0) == ""
    assert text_utils.ellipsize("abc", 1) == "…"
    assert text_utils.ellipsize("abc", 10) == "abc"
    assert text_utils.ellipsize("abcdef", 4) == "abc…"


def test_html_to_text() -> None:
    converted = html_utils.html_to_text("The <code>dialog</code>  element.")

    assert converted == "The dialog element."
    assert html_utils.html_to_text(None) == ""
    assert html_utils.html_to_text("   ") == ""


def test_html_helpers_guard_bad_nodes() -> None:
    class _BadQuery:
        def query(self, selector: str) -> list[object]:
            _ = selector
            raise RuntimeError("bad")

    class _DataNode:
        data = "  hello   world "

    assert html_utils.all_nodes(_BadQuery(), "div") == []
    assert html_utils.first(_BadQuery(), "div") is None
    assert html_utils.text(None) == ""
    assert html_utils.text(_DataNode()) == "hello world"


def test_debug_flag(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WEBBASELINE_DEBUG", "1")
    assert html_utils.debug_enabled() is True
    html_utils.debug_log("parsed")

    monkeypatch.setenv("WEBBASELINE_DEBUG", "0")
    assert html_utils.debug_enabled() is False


def test_iter_source_paths(tmp_path: Path) -> None:
    (tmp_path / "b.ts").write_text("", encoding="utf-8")
    (tmp_path / "a.css").write_text("", encoding="utf-8")
    (tmp_path / "skip.txt").write_text("", encoding="utf-8")
    hidden = tmp_path / ".git" / "hooks"
    hidden.mkdir(parents=True)
    (hidden / "x.js").write_text("", encoding="utf-8")
    single = tmp_path / "page.HTML"
    single.write_text("", encoding="utf-8")

    found = list(file_utils.iter_source_paths([tmp_path, single]))

    assert [path.name for path in found] == ["a.css", "b.ts", "page.HTML", "page.HTML"]


def test_load_document(tmp_path: Path) -> None:
    path = tmp_path / "app.tsx"
    path.write_text("const a = 1;", encoding="utf-8")

    document = file_utils.load_document(path)

    assert document.language_id == "typescriptreact"
    assert document.get_text() == "const a = 1;"
    with pytest.raises(ValueError):
        file_utils.load_document(tmp_path / "notes.txt")


def test_render_feature() -> None:
    record = FeatureRecord(
        id="dialog",
        name="<dialog>",
        status=BaselineStatus("high", date(2022, 3, 14), date(2024, 9, 14)),
        spec_url="https://html.spec.whatwg.org/#the-dialog-element",
        doc_url="https://developer.mozilla.org/docs/Web/HTML/Element/dialog",
        description="A modal or non-modal dialog box.",
    )

    output = _render(render_feature(record))

    assert "<dialog>" in output
    assert "Widely available since 2022-03-14, widely available since 2024-09-14" in output
    assert "Spec: https://html.spec.whatwg.org/#the-dialog-element" in output
    assert "A modal or non-modal dialog box." in output


def test_status_keys() -> None:
    assert status_key(None) == "unknown"
    assert status_key(BaselineStatus(True)) == "high"
    assert status_key(BaselineStatus(False)) == "false"
    assert status_key(BaselineStatus("low")) == "low"


def test_render_findings_and_summary() -> None:
    findings = [
        Finding(
            SourceRange.from_points(2, 4, 2, 9), "css.properties.float", "float", "unsupported"
        ),
        Finding(
            SourceRange.from_points(5, 0, 5, 7),
            "html.global_attributes.popover",
            "Popover",
            "limited-support",
        ),
    ]

    table = _render(render_findings("src/a.css", findings))
    summary = _render(render_summary({"src/a.css": findings, "src/b.css": []}))
    clean = _render(render_summary({"src/b.css": []}))

    assert "3:5" in table
    assert "Not Baseline" in table
    assert "Newly available" in table
    assert "2 finding(s) in 1 of 2 file(s)." in summary
    assert "No compatibility findings in 1 file(s)." in clean


def test_location_context_only_offsets_first_line_columns() -> None:
    context = LocationContext(line_offset=4, column_offset=7)

    assert context.shift(0, 2) == SourcePosition(4, 9)
    assert context.shift(3, 2) == SourcePosition(7, 2)
    assert ParseResult.empty().features == ()
    assert ParseResult.empty().ranges_for("css.properties.float") == ()


def test_parser_registry() -> None:
    reporter = ErrorReporter()
    registry = ParserRegistry(reporter)

    assert registry.supports("scss")
    assert registry.supports("typescriptreact")
    assert not registry.supports("python")
    assert registry.get("python") is None
    assert isinstance(registry.get("less"), CssParser)
    assert isinstance(registry.get("scss"), ScssParser)
    assert isinstance(registry.get("sass"), SassParser)
    assert isinstance(registry.get("html"), HtmlParser)
    assert isinstance(registry.get("javascriptreact"), JavaScriptParser)
    assert registry.get("css") is registry.get("css")
    assert parser_for_language("markdown") is None
    assert isinstance(parser_for_language("css", reporter), CssParser)
