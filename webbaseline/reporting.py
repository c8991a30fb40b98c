"""Error-reporting sink shared by the catalog, parsers, scheduler and orchestrator."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
from typing import Literal

from .constants import ERROR_HISTORY_SIZE
from .exceptions import ParserError

ErrorCategory = Literal["parser", "data_load", "network", "validation", "timeout", "unknown"]
ErrorSeverity = Literal["low", "medium", "high", "critical"]

LOGGER = logging.getLogger(__name__)

_LOG_LEVEL_BY_SEVERITY: dict[str, int] = {
    "low": logging.INFO,
    "medium": logging.WARNING,
    "high": logging.ERROR,
    "critical": logging.CRITICAL,
}


@dataclass(frozen=True)
class ErrorInfo:
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    context: str | None = None
    error: BaseException | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ErrorReporter:
    """Records categorized failures and forwards them to the logging system.

    Nothing in here raises: reporting an error must never become a second error.
    """

    def __init__(self, max_history: int = ERROR_HISTORY_SIZE) -> None:
        self._history: deque[ErrorInfo] = deque(maxlen=max_history)

    def report(
        self,
        category: ErrorCategory,
        severity: ErrorSeverity,
        message: str,
        context: str | None = None,
        *,
        error: BaseException | None = None,
    ) -> ErrorInfo:
        info = ErrorInfo(
            category=category,
            severity=severity,
            message=message,
            context=context,
            error=error,
        )
        self._history.append(info)
        context_str = f" [{context}]" if context else ""
        LOGGER.log(
            _LOG_LEVEL_BY_SEVERITY.get(severity, logging.ERROR),
            "[%s:%s]%s: %s",
            category,
            severity,
            context_str,
            message,
            exc_info=error if severity in {"high", "critical"} else None,
        )
        return info

    def parser_error(
        self, error: BaseException, language: str, context: str | None = None
    ) -> ErrorInfo:
        detail = error.detail if isinstance(error, ParserError) else error
        return self.report(
            "parser",
            "low",
            f"Failed to parse {language} content: {detail}",
            context or f"Parsing {language} content",
            error=error,
        )

    def data_load_error(self, error: BaseException, context: str | None = None) -> ErrorInfo:
        return self.report(
            "data_load",
            "critical",
            f"Failed to load feature data: {error}",
            context or "Loading feature dataset",
            error=error,
        )

    def network_error(self, error: BaseException, context: str | None = None) -> ErrorInfo:
        return self.report(
            "network",
            "medium",
            f"Network error: {error}",
            context or "Network operation",
            error=error,
        )

    def validation_error(self, message: str, context: str | None = None) -> ErrorInfo:
        return self.report(
            "validation", "medium", f"Validation error: {message}", context or "Input validation"
        )

    def timeout_error(self, error: BaseException, context: str | None = None) -> ErrorInfo:
        return self.report(
            "timeout", "low", str(error), context or "Deadline exceeded", error=error
        )

    def unknown_error(self, error: BaseException | str, context: str | None = None) -> ErrorInfo:
        original = error if isinstance(error, BaseException) else None
        return self.report(
            "unknown",
            "high",
            f"Unknown error: {error}",
            context or "Unknown operation",
            error=original,
        )

    def history(self) -> list[ErrorInfo]:
        return list(self._history)

    def by_category(self, category: ErrorCategory) -> list[ErrorInfo]:
        return [info for info in self._history if info.category == category]

    def has_critical(self) -> bool:
        return any(info.severity == "critical" for info in self._history)

    def clear(self) -> None:
        self._history.clear()
