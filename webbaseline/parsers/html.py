"""HTML element/attribute detection over a tree-sitter-html syntax tree."""

from __future__ import annotations

from tree_sitter import Language, Node, Tree
import tree_sitter_html

from ..model import LocationContext
from ..reporting import ErrorReporter
from ._base import LanguageParser, ParseResultBuilder, SourceText, first_child_of_type, walk
from .css import CssParser
from .javascript import JavaScriptParser

HTML_LANGUAGE = Language(tree_sitter_html.language())

# Only elements with a history of uneven support; <div>, <p> and friends never show up.
TRACKED_ELEMENTS: frozenset[str] = frozenset(
    {
        "datalist",
        "details",
        "dialog",
        "fencedframe",
        "geolocation",
        "hgroup",
        "menu",
        "meter",
        "model",
        "output",
        "permission",
        "picture",
        "portal",
        "progress",
        "search",
        "selectedcontent",
        "slot",
        "summary",
        "template",
    }
)

ELEMENT_ATTRIBUTES: dict[str, frozenset[str]] = {
    "a": frozenset({"attributionsrc", "ping"}),
    "audio": frozenset({"disableremoteplayback"}),
    "button": frozenset({"command", "commandfor", "popovertarget", "popovertargetaction"}),
    "details": frozenset({"name"}),
    "dialog": frozenset({"closedby"}),
    "iframe": frozenset({"allow", "credentialless", "loading", "referrerpolicy", "sandbox"}),
    "img": frozenset({"attributionsrc", "decoding", "fetchpriority", "loading", "sizes", "srcset"}),
    "input": frozenset({"capture", "dirname", "list", "popovertarget"}),
    "link": frozenset(
        {"as", "blocking", "fetchpriority", "imagesizes", "imagesrcset", "integrity"}
    ),
    "script": frozenset({"blocking", "fetchpriority", "integrity", "nomodule"}),
    "template": frozenset(
        {
            "shadowrootclonable",
            "shadowrootdelegatesfocus",
            "shadowrootmode",
            "shadowrootserializable",
        }
    ),
    "textarea": frozenset({"dirname"}),
    "video": frozenset({"disablepictureinpicture", "disableremoteplayback", "playsinline"}),
}

GLOBAL_ATTRIBUTES: frozenset[str] = frozenset(
    {
        "anchor",
        "autocapitalize",
        "autocorrect",
        "enterkeyhint",
        "exportparts",
        "inert",
        "inputmode",
        "is",
        "part",
        "popover",
        "virtualkeyboardpolicy",
        "writingsuggestions",
    }
)

TRACKED_INPUT_TYPES: frozenset[str] = frozenset(
    {"color", "date", "datetime-local", "month", "time", "week"}
)

_SCRIPT_TYPES = frozenset(
    {"", "module", "text/javascript", "application/javascript", "text/ecmascript"}
)


def element_feature_id(tag: str) -> str | None:
    return f"html.elements.{tag}" if tag in TRACKED_ELEMENTS else None


def attribute_feature_id(tag: str, attribute: str, value: str | None = None) -> str | None:
    if attribute in ELEMENT_ATTRIBUTES.get(tag, frozenset()):
        return f"html.elements.{tag}.{attribute}"
    if attribute in GLOBAL_ATTRIBUTES:
        return f"html.global_attributes.{attribute}"
    if tag == "input" and attribute == "type" and value:
        input_type = value.strip().lower()
        if input_type in TRACKED_INPUT_TYPES:
            return f"html.elements.input.type_{input_type}"
    return None


def _attribute_value(attribute: Node, source: SourceText) -> str | None:
    value_node = first_child_of_type(attribute, "quoted_attribute_value", "attribute_value")
    if value_node is None:
        return None
    if value_node.type == "quoted_attribute_value":
        inner = first_child_of_type(value_node, "attribute_value")
        return source.slice(inner) if inner is not None else ""
    return source.slice(value_node)


def _tag_attributes(tag_node: Node, source: SourceText) -> dict[str, str | None]:
    attributes: dict[str, str | None] = {}
    for child in tag_node.children:
        if child.type != "attribute":
            continue
        name_node = first_child_of_type(child, "attribute_name")
        if name_node is not None:
            attributes.setdefault(source.slice(name_node).lower(), _attribute_value(child, source))
    return attributes


class HtmlParser(LanguageParser):
    """Reports tracked elements and attributes, plus features in inline style/script."""

    language_name = "HTML"
    tolerate_syntax_errors = True

    def __init__(self, reporter: ErrorReporter | None = None) -> None:
        super().__init__(reporter)
        self._css = CssParser(self.reporter)
        self._js = JavaScriptParser("javascript", self.reporter)

    def _language(self) -> Language:
        return HTML_LANGUAGE

    def _collect(self, tree: Tree, source: SourceText, builder: ParseResultBuilder) -> None:
        for node in walk(tree.root_node):
            if node.type in {"start_tag", "self_closing_tag"}:
                self._collect_tag(node, source, builder)
            elif node.type == "style_element":
                self._collect_embedded(node, source, builder, self._css)
            elif node.type == "script_element":
                start_tag = first_child_of_type(node, "start_tag")
                script_type = None
                if start_tag is not None:
                    script_type = _tag_attributes(start_tag, source).get("type")
                if (script_type or "").strip().lower() in _SCRIPT_TYPES:
                    self._collect_embedded(node, source, builder, self._js)

    def _collect_tag(self, tag_node: Node, source: SourceText, builder: ParseResultBuilder) -> None:
        name_node = first_child_of_type(tag_node, "tag_name")
        if name_node is None:
            return
        tag = source.slice(name_node).lower()
        feature_id = element_feature_id(tag)
        if feature_id:
            builder.add(feature_id, source.range_of(name_node))

        for child in tag_node.children:
            if child.type != "attribute":
                continue
            attr_name = first_child_of_type(child, "attribute_name")
            if attr_name is None:
                continue
            feature_id = attribute_feature_id(
                tag, source.slice(attr_name).lower(), _attribute_value(child, source)
            )
            if feature_id:
                builder.add(feature_id, source.range_of(attr_name))

    def _collect_embedded(
        self,
        element: Node,
        source: SourceText,
        builder: ParseResultBuilder,
        parser: LanguageParser,
    ) -> None:
        raw = first_child_of_type(element, "raw_text")
        if raw is None:
            return
        start = source.range_of(raw).start
        result = parser.parse(
            source.slice(raw),
            LocationContext(line_offset=start.line, column_offset=start.column),
            track_locations=builder.track_locations,
        )
        builder.merge(result)
