"""Language parsers and the language-id lookup used by the orchestrator."""

from __future__ import annotations

from typing import cast

from ..constants import CSS_LANGUAGE_IDS, HTML_LANGUAGE_IDS, JS_LANGUAGE_IDS
from ..reporting import ErrorReporter
from ._base import LanguageParser
from .css import CssParser, LessParser, SassParser, ScssParser
from .html import HtmlParser
from .javascript import Dialect, JavaScriptParser

_STYLESHEET_PARSERS: dict[str, type[LanguageParser]] = {
    "css": CssParser,
    "scss": ScssParser,
    "sass": SassParser,
    "less": LessParser,
}


class ParserRegistry:
    """Lazily builds one parser per language id; all share a single reporter."""

    def __init__(self, reporter: ErrorReporter | None = None) -> None:
        self.reporter = reporter or ErrorReporter()
        self._parsers: dict[str, LanguageParser] = {}

    def supports(self, language_id: str) -> bool:
        return (
            language_id in CSS_LANGUAGE_IDS
            or language_id in JS_LANGUAGE_IDS
            or language_id in HTML_LANGUAGE_IDS
        )

    def get(self, language_id: str) -> LanguageParser | None:
        parser = self._parsers.get(language_id)
        if parser is not None:
            return parser

        if language_id in CSS_LANGUAGE_IDS:
            parser = _STYLESHEET_PARSERS[language_id](self.reporter)
        elif language_id in JS_LANGUAGE_IDS:
            dialect = cast(Dialect, JS_LANGUAGE_IDS[language_id])
            parser = JavaScriptParser(dialect, self.reporter)
        elif language_id in HTML_LANGUAGE_IDS:
            parser = HtmlParser(self.reporter)
        else:
            return None
        self._parsers[language_id] = parser
        return parser


def parser_for_language(
    language_id: str, reporter: ErrorReporter | None = None
) -> LanguageParser | None:
    """One-off lookup; returns None for languages without a parser."""
    return ParserRegistry(reporter).get(language_id)


__all__ = [
    "CssParser",
    "HtmlParser",
    "JavaScriptParser",
    "LanguageParser",
    "LessParser",
    "ParserRegistry",
    "SassParser",
    "ScssParser",
    "parser_for_language",
]
