"""Shared machinery for the tree-sitter based language parsers."""

from __future__ import annotations

from bisect import bisect_right
from collections.abc import Iterator
from types import MappingProxyType
from typing import ClassVar

from tree_sitter import Language, Node, Parser, Tree

from ..exceptions import ParserError
from ..model import LocationContext, ParseResult, SourcePosition, SourceRange
from ..reporting import ErrorReporter
from ..util.html import debug_log


class ParseResultBuilder:
    """Accumulates feature ids in first-occurrence order plus every location."""

    def __init__(self, *, track_locations: bool = True) -> None:
        self._track_locations = track_locations
        self._features: dict[str, None] = {}
        self._locations: dict[str, list[SourceRange]] = {}

    @property
    def track_locations(self) -> bool:
        return self._track_locations

    def add(self, feature_id: str, source_range: SourceRange | None = None) -> None:
        self._features.setdefault(feature_id, None)
        if self._track_locations and source_range is not None:
            self._locations.setdefault(feature_id, []).append(source_range)

    def merge(self, result: ParseResult) -> None:
        for feature_id in result.features:
            ranges = result.ranges_for(feature_id)
            if not ranges:
                self.add(feature_id)
            for source_range in ranges:
                self.add(feature_id, source_range)

    def build(self) -> ParseResult:
        return ParseResult(
            features=tuple(self._features),
            locations=MappingProxyType(
                {feature_id: tuple(ranges) for feature_id, ranges in self._locations.items()}
            ),
        )


class SourceText:
    """UTF-8 view of a source string that maps tree-sitter byte points to code points."""

    def __init__(self, content: str, context: LocationContext | None = None) -> None:
        self.content = content
        self.data = content.encode("utf-8", errors="surrogatepass")
        self.context = context or LocationContext()
        self._line_starts = [0]
        newline = self.data.find(b"\n")
        while newline != -1:
            self._line_starts.append(newline + 1)
            newline = self.data.find(b"\n", newline + 1)

    def slice(self, node: Node) -> str:
        return self.data[node.start_byte : node.end_byte].decode("utf-8", errors="replace")

    def _position(self, byte_offset: int) -> SourcePosition:
        line = bisect_right(self._line_starts, byte_offset) - 1
        line_start = self._line_starts[line]
        column = len(self.data[line_start:byte_offset].decode("utf-8", errors="replace"))
        return self.context.shift(line, column)

    def range_of(self, node: Node) -> SourceRange:
        return SourceRange(self._position(node.start_byte), self._position(node.end_byte))

    def span(self, line: int, start: int, end: int) -> SourceRange:
        """Range on one line from code-point columns, shifted by the context."""
        return SourceRange(self.context.shift(line, start), self.context.shift(line, end))


def walk(root: Node) -> Iterator[Node]:
    """Pre-order traversal without recursion."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def first_child_of_type(node: Node, *types: str) -> Node | None:
    for child in node.children:
        if child.type in types:
            return child
    return None


class LanguageParser:
    """Base class: ``parse`` never raises, malformed input yields an empty result.

    Subclasses set ``language_name`` and implement :meth:`_collect`, or override
    :meth:`_scan` when the language has no tree-sitter grammar.
    """

    language_name: ClassVar[str] = "source"
    tolerate_syntax_errors: ClassVar[bool] = False

    def __init__(self, reporter: ErrorReporter | None = None) -> None:
        self._reporter = reporter or ErrorReporter()

    @property
    def reporter(self) -> ErrorReporter:
        return self._reporter

    def _language(self) -> Language:
        raise NotImplementedError

    def _parse_tree(self, source: SourceText) -> Tree:
        # A parser per call: tree_sitter.Parser instances are not safe to share.
        tree = Parser(self._language()).parse(source.data)
        if tree.root_node.has_error and not self.tolerate_syntax_errors:
            raise ParserError(self.language_name, "syntax error in source")
        return tree

    def _collect(self, tree: Tree, source: SourceText, builder: ParseResultBuilder) -> None:
        raise NotImplementedError

    def _prepare(self, content: str) -> str:
        return content

    def _scan(self, source: SourceText, builder: ParseResultBuilder) -> None:
        tree = self._parse_tree(source)
        self._collect(tree, source, builder)

    def parse(
        self,
        content: str,
        context: LocationContext | None = None,
        *,
        track_locations: bool = True,
    ) -> ParseResult:
        if not isinstance(content, str):
            self._reporter.validation_error(
                f"Invalid {self.language_name} content provided",
                f"{self.language_name} parsing validation",
            )
            return ParseResult.empty()
        if not content.strip():
            return ParseResult.empty()

        builder = ParseResultBuilder(track_locations=track_locations)
        try:
            source = SourceText(self._prepare(content), context)
            self._scan(source, builder)
        except Exception as exc:
            self._reporter.parser_error(exc, self.language_name)
            return ParseResult.empty()

        result = builder.build()
        debug_log(f"{self.language_name}: {len(result.features)} feature(s) detected")
        return result

    def extract_features(self, content: str) -> tuple[str, ...]:
        """Feature ids only, without location tracking."""
        return self.parse(content, track_locations=False).features
