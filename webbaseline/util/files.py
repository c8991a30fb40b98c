"""Utility helpers for working with source files on disk."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from pathlib import Path

from ..constants import LANGUAGE_BY_SUFFIX
from ..model import SourceDocument

_SKIPPED_DIRS = frozenset({"node_modules", ".git", "dist", "build", "__pycache__"})


def language_for_path(path: Path) -> str | None:
    return LANGUAGE_BY_SUFFIX.get(path.suffix.lower())


def _skipped(path: Path, root: Path) -> bool:
    return any(part in _SKIPPED_DIRS for part in path.relative_to(root).parts[:-1])


def iter_source_paths(inputs: Iterable[Path]) -> Iterator[Path]:
    """Yield analyzable source paths from input paths, descending into directories."""
    for item in inputs:
        if item.is_dir():
            children = sorted(
                child
                for child in item.rglob("*")
                if child.is_file() and language_for_path(child) and not _skipped(child, item)
            )
            yield from children
        elif item.is_file() and language_for_path(item):
            yield item


def load_document(path: Path) -> SourceDocument:
    language_id = language_for_path(path)
    if language_id is None:
        raise ValueError(f"Unsupported file type: {path}")
    text = path.read_text(encoding="utf-8", errors="replace")
    return SourceDocument(uri=path.as_posix(), language_id=language_id, text=text)
