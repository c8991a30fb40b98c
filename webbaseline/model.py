"""Data models for detected features, compatibility records and findings."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from types import MappingProxyType
from typing import Any, Literal, Protocol

BaselineLevel = bool | Literal["low", "high"]
FindingReason = Literal["unsupported", "limited-support"]


@dataclass(frozen=True)
class BaselineStatus:
    baseline: BaselineLevel
    low_date: date | None = None
    high_date: date | None = None


@dataclass(frozen=True)
class FeatureRecord:
    id: str
    name: str
    status: BaselineStatus
    spec_url: str | None = None
    doc_url: str | None = None
    description: str = ""


@dataclass(frozen=True, order=True)
class SourcePosition:
    line: int
    column: int


@dataclass(frozen=True)
class SourceRange:
    """Half-open range, 0-based lines and columns."""

    start: SourcePosition
    end: SourcePosition

    @classmethod
    def from_points(
        cls, start_line: int, start_column: int, end_line: int, end_column: int
    ) -> SourceRange:
        return cls(SourcePosition(start_line, start_column), SourcePosition(end_line, end_column))


@dataclass(frozen=True)
class LocationContext:
    """Offsets applied to ranges produced for a fragment embedded in a larger document.

    ``column_offset`` only applies to the fragment's first line.
    """

    line_offset: int = 0
    column_offset: int = 0

    def shift(self, line: int, column: int) -> SourcePosition:
        if line == 0:
            column += self.column_offset
        return SourcePosition(line + self.line_offset, column)


@dataclass(frozen=True)
class ParseResult:
    features: tuple[str, ...] = ()
    locations: Mapping[str, tuple[SourceRange, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def empty(cls) -> ParseResult:
        return cls()

    def ranges_for(self, feature_id: str) -> tuple[SourceRange, ...]:
        return self.locations.get(feature_id, ())


@dataclass
class CacheEntry:
    value: Any
    last_access_time: float
    access_count: int = 1


@dataclass(frozen=True)
class Finding:
    range: SourceRange
    feature_id: str
    feature_name: str
    reason: FindingReason


@dataclass(frozen=True)
class SchedulerStats:
    cache_size: int
    cache_hit_rate: float
    memory_usage: int
    active_debouncers: int


class TextDocument(Protocol):
    """Host document abstraction consumed by the orchestrator."""

    @property
    def uri(self) -> str: ...

    @property
    def language_id(self) -> str: ...

    def get_text(self) -> str: ...


@dataclass(frozen=True)
class SourceDocument:
    """In-memory document used by the CLI and by tests."""

    uri: str
    language_id: str
    text: str

    def get_text(self) -> str:
        return self.text
