"""Exception types for webbaseline."""

from __future__ import annotations


class WebBaselineError(Exception):
    """Base exception for expected application errors."""


class ParserError(WebBaselineError):
    """Raised inside a parser when source text cannot be turned into a usable tree."""

    def __init__(self, language: str, detail: str) -> None:
        self.language = language
        self.detail = detail
        super().__init__(f"Failed to parse {language} content: {detail}")


class CatalogLoadError(WebBaselineError):
    """Raised when the feature dataset cannot be read or decoded."""

    def __init__(self, source: str, *, cause: str | None = None) -> None:
        detail = f"Unable to load feature data from {source}"
        if cause:
            detail = f"{detail} ({cause})"
        super().__init__(detail)


class CatalogNotInitializedError(WebBaselineError):
    """Raised when the catalog is queried before initialize() completed."""

    def __init__(self) -> None:
        super().__init__("Feature catalog not initialized. Call initialize() first.")


class AnalysisTimeoutError(WebBaselineError):
    """Raised when a wrapped operation misses its deadline."""

    def __init__(self, timeout_ms: float) -> None:
        self.timeout_ms = timeout_ms
        super().__init__(f"Operation timed out after {timeout_ms:g}ms")


class NetworkError(WebBaselineError):
    """Raised when a network operation fails."""

    def __init__(self, url: str, *, cause: str | None = None) -> None:
        detail = f"Unable to connect for {url}"
        if cause:
            detail = f"{detail} ({cause})"
        super().__init__(detail)


class RequestTimeoutError(WebBaselineError):
    """Raised when a request times out."""

    def __init__(self, url: str) -> None:
        super().__init__(f"Request timed out for {url}")


class HttpStatusError(WebBaselineError):
    """Raised when a non-200 HTTP response is returned."""

    def __init__(self, status_code: int, url: str) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(f"Request failed with HTTP {status_code} for {url}")


class ContentError(WebBaselineError):
    """Raised when a response body is invalid or unexpectedly empty."""

    def __init__(self, url: str) -> None:
        super().__init__(f"Received empty or invalid feature data from {url}")
