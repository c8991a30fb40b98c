"""Text utility helpers."""

from __future__ import annotations

import hashlib
import re

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_whitespace(value: str) -> str:
    """Collapse repeated whitespace and trim ends."""
    return _WHITESPACE_RE.sub(" ", value).strip()


def byte_size(value: str) -> int:
    """Size of a string once UTF-8 encoded."""
    return len(value.encode("utf-8", errors="surrogatepass"))


def content_hash(value: str) -> str:
    """Stable SHA256 digest of text content, used in cache keys."""
    return hashlib.sha256(value.encode("utf-8", errors="surrogatepass")).hexdigest()


def ellipsize(value: str, width: int) -> str:
    """Shorten long strings while preserving suffix visibility."""
    if width <= 0:
        return ""
    if len(value) <= width:
        return value
    if width <= 1:
        return "…"
    return f"{value[: width - 1]}…"
