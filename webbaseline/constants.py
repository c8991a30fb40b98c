"""Constants used across webbaseline."""

from __future__ import annotations

from typing import Final

FEATURES_DATA_URL: Final[str] = "https://unpkg.com/web-features/data.json"
FEATURE_DOC_URL_TEMPLATE: Final[str] = (
    "https://web-platform-dx.github.io/web-features-explorer/features/{feature_id}/"
)
BUNDLED_DATA_RESOURCE: Final[str] = "features.json"
DATA_PATH_ENV: Final[str] = "WEBBASELINE_DATA"
DEBUG_ENV: Final[str] = "WEBBASELINE_DEBUG"

DEFAULT_DEBOUNCE_DELAY_MS: Final[int] = 300
DEFAULT_MAX_FILE_SIZE_BYTES: Final[int] = 5 * 1024 * 1024
DEFAULT_MAX_CACHE_ENTRIES: Final[int] = 10_000
DEFAULT_PARSE_TIMEOUT_MS: Final[int] = 5_000
DEFAULT_LARGE_FILE_THRESHOLD_BYTES: Final[int] = 100 * 1024

EVICTION_FRACTION: Final[float] = 0.25
CACHE_MAX_AGE_SECONDS: Final[float] = 30 * 60
CACHE_SWEEP_INTERVAL_SECONDS: Final[float] = 5 * 60
MEMORY_WARNING_BYTES: Final[int] = 50 * 1024 * 1024

AUDIT_BATCH_SIZE: Final[int] = 10
AUDIT_TIMEOUT_MS: Final[int] = 10_000

ERROR_HISTORY_SIZE: Final[int] = 100
DEFAULT_TIMEOUT_SECONDS: Final[float] = 30.0

CSS_LANGUAGE_IDS: Final[frozenset[str]] = frozenset({"css", "scss", "sass", "less"})
JS_LANGUAGE_IDS: Final[dict[str, str]] = {
    "javascript": "javascript",
    "javascriptreact": "javascript",
    "typescript": "typescript",
    "typescriptreact": "tsx",
}
HTML_LANGUAGE_IDS: Final[frozenset[str]] = frozenset({"html", "xml"})

LANGUAGE_BY_SUFFIX: Final[dict[str, str]] = {
    ".css": "css",
    ".scss": "scss",
    ".sass": "sass",
    ".less": "less",
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "javascriptreact",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "typescriptreact",
    ".html": "html",
    ".htm": "html",
}

REASON_LABEL_MAP: Final[dict[str, str]] = {
    "unsupported": "Not Baseline",
    "limited-support": "Newly available",
}

STATUS_ICON_MAP: Final[dict[str, str]] = {
    "high": "✅",
    "low": "◐",
    "false": "❌",
    "unknown": "﹖",
}

STATUS_LABEL_MAP: Final[dict[str, str]] = {
    "high": "Widely available",
    "low": "Newly available",
    "false": "Limited availability",
    "unknown": "Not in dataset",
}
