"""HTML helpers built around justhtml."""

from __future__ import annotations

import logging
import os
from typing import Any

from justhtml import JustHTML

from ..constants import DEBUG_ENV
from .text import normalize_whitespace

Node = Any
LOGGER = logging.getLogger(__name__)


def parse_document(html: str) -> JustHTML:
    """Parse HTML without sanitization to preserve all structural tags."""
    return JustHTML(html, sanitize=False)


def first(node: Node, selector: str) -> Node | None:
    """Return the first selector match or None."""
    matches = all_nodes(node, selector)
    return matches[0] if matches else None


def all_nodes(node: Node, selector: str) -> list[Node]:
    """Return all selector matches, guarding selector/runtime errors."""
    try:
        if hasattr(node, "query"):
            return list(node.query(selector))
    except Exception:
        return []
    return []


def text(node: Node | None) -> str:
    """Extract normalized text from a node."""
    if node is None:
        return ""
    try:
        if hasattr(node, "to_text"):
            return normalize_whitespace(node.to_text())
        if hasattr(node, "data") and isinstance(node.data, str):
            return normalize_whitespace(node.data)
    except Exception:
        return ""
    return ""


def html_to_text(fragment: str | None) -> str:
    """Flatten an HTML fragment (e.g. a feature description) into plain text."""
    if not fragment or not fragment.strip():
        return ""
    doc = parse_document(fragment)
    return text(first(doc, "body")) or text(doc)


def debug_enabled() -> bool:
    """Check debug mode env flag."""
    return os.environ.get(DEBUG_ENV, "").strip() == "1"


def debug_log(message: str) -> None:
    """Emit debug logs in debug mode only."""
    if debug_enabled():
        LOGGER.debug("%s", message)
