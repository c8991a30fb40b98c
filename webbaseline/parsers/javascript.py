"""JavaScript / TypeScript API detection over tree-sitter syntax trees."""

from __future__ import annotations

from typing import Literal

from tree_sitter import Language, Node, Tree
import tree_sitter_javascript
import tree_sitter_typescript

from ..reporting import ErrorReporter
from ._base import LanguageParser, ParseResultBuilder, SourceText, walk
from .heuristics import classify_method_call

Dialect = Literal["javascript", "typescript", "tsx"]

_LANGUAGES: dict[str, Language] = {
    "javascript": Language(tree_sitter_javascript.language()),
    "typescript": Language(tree_sitter_typescript.language_typescript()),
    "tsx": Language(tree_sitter_typescript.language_tsx()),
}

API_PATHS: dict[str, str] = {
    # Navigator
    "navigator.clipboard": "api.Clipboard",
    "navigator.clipboard.writeText": "api.Clipboard.writeText",
    "navigator.clipboard.readText": "api.Clipboard.readText",
    "navigator.clipboard.write": "api.Clipboard.write",
    "navigator.clipboard.read": "api.Clipboard.read",
    "navigator.geolocation": "api.Geolocation",
    "navigator.geolocation.getCurrentPosition": "api.Geolocation.getCurrentPosition",
    "navigator.geolocation.watchPosition": "api.Geolocation.watchPosition",
    "navigator.serviceWorker": "api.ServiceWorker",
    "navigator.serviceWorker.register": "api.ServiceWorkerContainer.register",
    "navigator.mediaDevices": "api.MediaDevices",
    "navigator.mediaDevices.getUserMedia": "api.MediaDevices.getUserMedia",
    "navigator.mediaDevices.getDisplayMedia": "api.MediaDevices.getDisplayMedia",
    "navigator.share": "api.Navigator.share",
    "navigator.canShare": "api.Navigator.canShare",
    "navigator.vibrate": "api.Navigator.vibrate",
    "navigator.wakeLock.request": "api.WakeLock.request",
    "navigator.storage.estimate": "api.StorageManager.estimate",
    # Document
    "document.querySelector": "api.Document.querySelector",
    "document.querySelectorAll": "api.Document.querySelectorAll",
    "document.getElementById": "api.Document.getElementById",
    "document.createElement": "api.Document.createElement",
    "document.addEventListener": "api.EventTarget.addEventListener",
    "document.startViewTransition": "api.Document.startViewTransition",
    # Window
    "window.fetch": "api.fetch",
    "window.requestAnimationFrame": "api.Window.requestAnimationFrame",
    "window.cancelAnimationFrame": "api.Window.cancelAnimationFrame",
    "window.requestIdleCallback": "api.Window.requestIdleCallback",
    "window.localStorage": "api.Storage",
    "window.sessionStorage": "api.Storage",
    "window.indexedDB": "api.IDBFactory",
    # Storage
    "localStorage.setItem": "api.Storage",
    "localStorage.getItem": "api.Storage",
    "sessionStorage.setItem": "api.Storage",
    "sessionStorage.getItem": "api.Storage",
    "indexedDB.open": "api.IDBFactory",
    # Element
    "element.closest": "api.Element.closest",
    "element.matches": "api.Element.matches",
    "element.animate": "api.Element.animate",
    "element.scrollIntoView": "api.Element.scrollIntoView",
    "element.addEventListener": "api.EventTarget.addEventListener",
    # Builtins
    "Array.from": "api.Array.from",
    "Array.fromAsync": "api.Array.fromAsync",
    "Array.prototype.at": "api.Array.at",
    "Array.prototype.includes": "api.Array.includes",
    "Array.prototype.find": "api.Array.find",
    "Array.prototype.findIndex": "api.Array.findIndex",
    "String.prototype.includes": "api.String.includes",
    "String.prototype.startsWith": "api.String.startsWith",
    "String.prototype.endsWith": "api.String.endsWith",
    "String.prototype.padStart": "api.String.padStart",
    "String.prototype.padEnd": "api.String.padEnd",
    "Object.assign": "api.Object.assign",
    "Object.entries": "api.Object.entries",
    "Object.keys": "api.Object.keys",
    "Object.values": "api.Object.values",
    "Object.groupBy": "api.Object.groupBy",
    "Promise.allSettled": "api.Promise.allSettled",
    "Promise.any": "api.Promise.any",
    "Promise.withResolvers": "api.Promise.withResolvers",
}

GLOBAL_FUNCTIONS: dict[str, str] = {
    "fetch": "api.fetch",
    "requestAnimationFrame": "api.Window.requestAnimationFrame",
    "cancelAnimationFrame": "api.Window.cancelAnimationFrame",
    "requestIdleCallback": "api.Window.requestIdleCallback",
    "cancelIdleCallback": "api.Window.cancelIdleCallback",
    "queueMicrotask": "api.queueMicrotask",
    "structuredClone": "api.structuredClone",
    "setTimeout": "api.Window.setTimeout",
    "setInterval": "api.Window.setInterval",
    "clearTimeout": "api.Window.clearTimeout",
    "clearInterval": "api.Window.clearInterval",
}

GLOBAL_CONSTRUCTORS: dict[str, str] = {
    "IntersectionObserver": "api.IntersectionObserver",
    "ResizeObserver": "api.ResizeObserver",
    "MutationObserver": "api.MutationObserver",
    "BroadcastChannel": "api.BroadcastChannel",
    "AbortController": "api.AbortController",
    "CompressionStream": "api.CompressionStream",
    "URLPattern": "api.URLPattern",
    "Worker": "api.Worker",
}

_STORAGE_OBJECTS = frozenset({"localStorage", "sessionStorage"})
_PREFIX_INTERFACES: dict[str, str] = {
    "navigator": "Navigator",
    "document": "Document",
    "window": "Window",
}
_ACCESS_TYPES = frozenset({"member_expression", "subscript_expression"})


def _string_literal_value(node: Node, source: SourceText) -> str | None:
    if node.type != "string":
        return None
    raw = source.slice(node)
    if len(raw) < 2:
        return None
    value = raw[1:-1]
    return value or None


def build_member_path(node: Node, source: SourceText) -> str | None:
    """Rebuild ``a.b.c`` from an access chain.

    Returns None when a segment is computed from anything but a string literal,
    or when the chain is not rooted at a plain identifier.
    """
    parts: list[str] = []
    current: Node | None = node
    while current is not None and current.type in _ACCESS_TYPES:
        if current.type == "member_expression":
            prop = current.child_by_field_name("property")
            if prop is None or prop.type != "property_identifier":
                return None
            parts.append(source.slice(prop))
        else:
            index = current.child_by_field_name("index")
            value = _string_literal_value(index, source) if index is not None else None
            if value is None:
                return None
            parts.append(value)
        current = current.child_by_field_name("object")

    if current is None or current.type != "identifier":
        return None
    parts.append(source.slice(current))
    return ".".join(reversed(parts))


def map_api_path(api_path: str) -> str | None:
    mapped = API_PATHS.get(api_path)
    if mapped:
        return mapped
    if api_path == "fetch":
        return "api.fetch"

    parts = api_path.split(".")
    if len(parts) == 2:
        receiver, method = parts
        if receiver in _STORAGE_OBJECTS:
            return "api.Storage"
        if receiver == "indexedDB":
            return "api.IDBFactory"
        classified = classify_method_call(receiver, method)
        if classified:
            return classified

    interface = _PREFIX_INTERFACES.get(parts[0])
    if interface and len(parts) > 1:
        return f"api.{interface}.{parts[1]}"
    return None


class JavaScriptParser(LanguageParser):
    """Detects Web API usage from member accesses, global calls and constructors."""

    language_name = "JavaScript"

    def __init__(
        self, dialect: Dialect = "javascript", reporter: ErrorReporter | None = None
    ) -> None:
        super().__init__(reporter)
        if dialect not in _LANGUAGES:
            raise ValueError(f"Unknown JavaScript dialect: {dialect}")
        self.dialect = dialect

    def _language(self) -> Language:
        return _LANGUAGES[self.dialect]

    def _collect(self, tree: Tree, source: SourceText, builder: ParseResultBuilder) -> None:
        for node in walk(tree.root_node):
            feature_id: str | None = None
            if node.type in _ACCESS_TYPES:
                path = build_member_path(node, source)
                feature_id = map_api_path(path) if path else None
            elif node.type == "call_expression":
                callee = node.child_by_field_name("function")
                if callee is not None and callee.type == "identifier":
                    feature_id = GLOBAL_FUNCTIONS.get(source.slice(callee))
            elif node.type == "new_expression":
                constructor = node.child_by_field_name("constructor")
                if constructor is not None and constructor.type == "identifier":
                    feature_id = GLOBAL_CONSTRUCTORS.get(source.slice(constructor))
            if feature_id:
                builder.add(feature_id, source.range_of(node))
