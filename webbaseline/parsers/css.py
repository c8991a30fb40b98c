"""CSS feature detection over a tree-sitter-css syntax tree."""

from __future__ import annotations

import re

from tree_sitter import Language, Node, Tree
import tree_sitter_css

from ._base import LanguageParser, ParseResultBuilder, SourceText, first_child_of_type, walk

CSS_LANGUAGE = Language(tree_sitter_css.language())

_VENDOR_PREFIX_RE = re.compile(r"^-(?:webkit|moz|ms|o)-")

# Properties worth a compatibility lookup. Anything not listed here is treated as
# universally supported and never reported, so common layout properties such as
# display, margin or color stay quiet.
TRACKED_PROPERTIES: frozenset[str] = frozenset(
    {
        "accent-color",
        "align-content",
        "anchor-name",
        "anchor-scope",
        "animation-composition",
        "animation-range",
        "animation-timeline",
        "appearance",
        "aspect-ratio",
        "backdrop-filter",
        "box-decoration-break",
        "caret-shape",
        "clear",
        "clip-path",
        "contain",
        "contain-intrinsic-size",
        "container",
        "container-name",
        "container-type",
        "content-visibility",
        "field-sizing",
        "float",
        "font-palette",
        "font-size-adjust",
        "hanging-punctuation",
        "hyphenate-character",
        "hyphens",
        "initial-letter",
        "inset",
        "interpolate-size",
        "line-clamp",
        "mask",
        "mask-image",
        "math-depth",
        "offset-path",
        "overflow-anchor",
        "overflow-clip-margin",
        "overscroll-behavior",
        "position-anchor",
        "position-area",
        "position-try",
        "print-color-adjust",
        "reading-flow",
        "ruby-position",
        "scroll-behavior",
        "scroll-snap-type",
        "scroll-timeline",
        "scrollbar-color",
        "scrollbar-gutter",
        "scrollbar-width",
        "text-box",
        "text-box-trim",
        "text-decoration-skip-ink",
        "text-size-adjust",
        "text-wrap",
        "text-wrap-style",
        "timeline-scope",
        "transition-behavior",
        "user-select",
        "view-timeline",
        "view-transition-name",
        "white-space-collapse",
        "zoom",
    }
)


def normalize_property(name: str) -> tuple[str, bool]:
    """Lower-case a property name and strip its vendor prefix.

    Returns ``(normalized, was_prefixed)``.
    """
    lowered = name.strip().lower()
    normalized = _VENDOR_PREFIX_RE.sub("", lowered, count=1)
    return normalized, normalized != lowered


def property_feature_id(name: str) -> str | None:
    """Map a declared property to ``css.properties.<name>``, or None when untracked."""
    if name.startswith("--"):
        return None
    normalized, was_prefixed = normalize_property(name)
    if not normalized:
        return None
    if was_prefixed or normalized in TRACKED_PROPERTIES:
        return f"css.properties.{normalized}"
    return None


def at_rule_feature_id(keyword: str) -> str | None:
    name = keyword.strip().lstrip("@").lower()
    if not name:
        return None
    return f"css.at-rules.{name}"


def _is_at_rule(node: Node) -> bool:
    return node.type == "at_rule" or node.type.endswith("_statement")


def _at_keyword(node: Node) -> Node | None:
    for child in node.children:
        if child.type == "at_keyword" or child.type.startswith("@"):
            return child
    return None


class CssParser(LanguageParser):
    """Reports tracked properties, vendor-prefixed properties and every at-rule."""

    language_name = "CSS"

    def _language(self) -> Language:
        return CSS_LANGUAGE

    def _collect(self, tree: Tree, source: SourceText, builder: ParseResultBuilder) -> None:
        for node in walk(tree.root_node):
            if node.type == "declaration":
                name_node = first_child_of_type(node, "property_name")
                if name_node is None:
                    continue
                feature_id = property_feature_id(source.slice(name_node))
                if feature_id:
                    builder.add(feature_id, source.range_of(name_node))
            elif _is_at_rule(node):
                keyword = _at_keyword(node)
                if keyword is None:
                    continue
                feature_id = at_rule_feature_id(source.slice(keyword))
                if feature_id:
                    builder.add(feature_id, source.range_of(keyword))


# Preprocessor syntax the CSS grammar cannot read. Matches are replaced by spaces so
# lines and columns of the remaining source stay put.
_LINE_COMMENT_RE = re.compile(r"(?<![:(\"'])//[^\n]*")
_VARIABLE_RE = re.compile(r"(?m)^[ \t]*[$@][\w-]+:[^;{}\n]*;?")


def blank_preprocessor_syntax(content: str) -> str:
    """Blank out ``//`` comments and ``$var:`` / ``@var:`` declarations."""

    def blank(match: re.Match[str]) -> str:
        return " " * len(match.group())

    return _VARIABLE_RE.sub(blank, _LINE_COMMENT_RE.sub(blank, content))


class ScssParser(CssParser):
    """SCSS through the CSS grammar; constructs it cannot read are skipped, not fatal."""

    language_name = "SCSS"
    tolerate_syntax_errors = True

    def _prepare(self, content: str) -> str:
        return blank_preprocessor_syntax(content)


class LessParser(ScssParser):
    language_name = "Less"


_SASS_DECLARATION_RE = re.compile(r"^[ \t]+(?P<name>-{0,2}[A-Za-z][\w-]*)[ \t]*:(?:[ \t]|$)")
_SASS_AT_RULE_RE = re.compile(r"^[ \t]*(?P<keyword>@[A-Za-z][\w-]*)")


class SassParser(LanguageParser):
    """Indented Sass, scanned line by line: there is no tree-sitter grammar for it.

    Declarations are indented ``name: value`` lines; at-rules start with ``@``.
    """

    language_name = "Sass"

    def _prepare(self, content: str) -> str:
        return blank_preprocessor_syntax(content)

    def _scan(self, source: SourceText, builder: ParseResultBuilder) -> None:
        for line_number, line in enumerate(source.content.split("\n")):
            line = line.rstrip("\r")
            declaration = _SASS_DECLARATION_RE.match(line)
            if declaration is not None:
                feature_id = property_feature_id(declaration.group("name"))
                if feature_id:
                    start, end = declaration.span("name")
                    builder.add(feature_id, source.span(line_number, start, end))
                continue
            at_rule = _SASS_AT_RULE_RE.match(line)
            if at_rule is not None:
                feature_id = at_rule_feature_id(at_rule.group("keyword"))
                if feature_id:
                    start, end = at_rule.span("keyword")
                    builder.add(feature_id, source.span(line_number, start, end))
