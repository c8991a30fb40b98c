"""Performance configuration for the analysis pipeline."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
import os
from typing import Any

from .constants import (
    DEFAULT_DEBOUNCE_DELAY_MS,
    DEFAULT_LARGE_FILE_THRESHOLD_BYTES,
    DEFAULT_MAX_CACHE_ENTRIES,
    DEFAULT_MAX_FILE_SIZE_BYTES,
    DEFAULT_PARSE_TIMEOUT_MS,
)
from .reporting import ErrorReporter

# Keys exposed by the host configuration source, mapped to field names.
SETTING_KEYS: dict[str, str] = {
    "debounceDelay": "debounce_delay_ms",
    "maxFileSize": "max_file_size_bytes",
    "maxCacheSize": "max_cache_entries",
    "parseTimeout": "parse_timeout_ms",
    "largeFileThreshold": "large_file_threshold_bytes",
}

ENV_KEYS: dict[str, str] = {
    "WEBBASELINE_DEBOUNCE_DELAY_MS": "debounce_delay_ms",
    "WEBBASELINE_MAX_FILE_SIZE": "max_file_size_bytes",
    "WEBBASELINE_MAX_CACHE_SIZE": "max_cache_entries",
    "WEBBASELINE_PARSE_TIMEOUT_MS": "parse_timeout_ms",
    "WEBBASELINE_LARGE_FILE_THRESHOLD": "large_file_threshold_bytes",
}


@dataclass(frozen=True, slots=True)
class PerformanceConfig:
    debounce_delay_ms: int = DEFAULT_DEBOUNCE_DELAY_MS
    max_file_size_bytes: int = DEFAULT_MAX_FILE_SIZE_BYTES
    max_cache_entries: int = DEFAULT_MAX_CACHE_ENTRIES
    parse_timeout_ms: int = DEFAULT_PARSE_TIMEOUT_MS
    large_file_threshold_bytes: int = DEFAULT_LARGE_FILE_THRESHOLD_BYTES

    @classmethod
    def from_mapping(
        cls,
        source: Mapping[str, Any],
        reporter: ErrorReporter | None = None,
    ) -> PerformanceConfig:
        """Build a config from host setting keys, ignoring keys it does not recognize.

        Values that are not positive integers are reported and replaced by the default.
        """
        values: dict[str, int] = {}
        for key, field_name in SETTING_KEYS.items():
            if key not in source:
                continue
            coerced = _coerce_positive_int(source[key])
            if coerced is None:
                if reporter is not None:
                    reporter.validation_error(
                        f"Invalid value {source[key]!r} for {key}; using default",
                        "Loading performance configuration",
                    )
                continue
            values[field_name] = coerced
        return cls(**values)

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        reporter: ErrorReporter | None = None,
    ) -> PerformanceConfig:
        env = os.environ if environ is None else environ
        settings = {
            setting_key: env[env_key]
            for env_key, field_name in ENV_KEYS.items()
            for setting_key, mapped in SETTING_KEYS.items()
            if mapped == field_name and env_key in env
        }
        return cls.from_mapping(settings, reporter)

    def updated(self, **changes: int) -> PerformanceConfig:
        known = {item.name for item in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise TypeError(f"Unknown performance option(s): {', '.join(sorted(unknown))}")
        for name, value in changes.items():
            if _coerce_positive_int(value) is None:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        return replace(self, **changes)


def _coerce_positive_int(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, float) and value.is_integer():
        return int(value) if value > 0 else None
    if isinstance(value, str):
        try:
            parsed = int(value.strip())
        except ValueError:
            return None
        return parsed if parsed > 0 else None
    return None
