from __future__ import annotations

import logging

import pytest

from webbaseline.config import PerformanceConfig
from webbaseline.reporting import ErrorReporter


def test_defaults() -> None:
    config = PerformanceConfig()

    assert config.debounce_delay_ms == 300
    assert config.max_file_size_bytes == 5 * 1024 * 1024
    assert config.max_cache_entries == 10_000
    assert config.parse_timeout_ms == 5_000
    assert config.large_file_threshold_bytes == 100 * 1024


def test_from_mapping_reads_host_keys() -> None:
    config = PerformanceConfig.from_mapping(
        {"debounceDelay": 50, "maxCacheSize": "20", "parseTimeout": 1000.0, "other": 1}
    )

    assert config.debounce_delay_ms == 50
    assert config.max_cache_entries == 20
    assert config.parse_timeout_ms == 1000


def test_invalid_values_keep_defaults_and_are_reported() -> None:
    reporter = ErrorReporter()

    config = PerformanceConfig.from_mapping(
        {"debounceDelay": -1, "maxFileSize": "big", "maxCacheSize": True}, reporter
    )

    assert config == PerformanceConfig()
    errors = reporter.by_category("validation")
    assert len(errors) == 3
    assert all(info.severity == "medium" for info in errors)


def test_from_env() -> None:
    config = PerformanceConfig.from_env(
        {"WEBBASELINE_DEBOUNCE_DELAY_MS": "25", "WEBBASELINE_LARGE_FILE_THRESHOLD": "2048"}
    )

    assert config.debounce_delay_ms == 25
    assert config.large_file_threshold_bytes == 2048


def test_updated_validates() -> None:
    config = PerformanceConfig().updated(max_cache_entries=5)

    assert config.max_cache_entries == 5
    with pytest.raises(TypeError):
        config.updated(nope=1)
    with pytest.raises(ValueError):
        config.updated(debounce_delay_ms=0)


def test_reporter_helpers_set_category_and_severity() -> None:
    reporter = ErrorReporter()

    reporter.parser_error(ValueError("bad"), "CSS")
    reporter.data_load_error(OSError("missing"))
    reporter.network_error(OSError("offline"))
    reporter.validation_error("Invalid feature ID")
    reporter.timeout_error(TimeoutError("late"))
    reporter.unknown_error("weird")

    assert [(info.category, info.severity) for info in reporter.history()] == [
        ("parser", "low"),
        ("data_load", "critical"),
        ("network", "medium"),
        ("validation", "medium"),
        ("timeout", "low"),
        ("unknown", "high"),
    ]
    assert reporter.has_critical()
    assert reporter.history()[0].context == "Parsing CSS content"
    assert reporter.history()[3].message == "Validation error: Invalid feature ID"

    reporter.clear()
    assert reporter.history() == []
    assert not reporter.has_critical()


def test_reporter_history_is_bounded() -> None:
    reporter = ErrorReporter(max_history=3)

    for index in range(5):
        reporter.validation_error(f"item {index}")

    assert [info.message for info in reporter.history()] == [
        "Validation error: item 2",
        "Validation error: item 3",
        "Validation error: item 4",
    ]


def test_reporter_logs_by_severity(caplog: pytest.LogCaptureFixture) -> None:
    reporter = ErrorReporter()

    with caplog.at_level(logging.INFO, logger="webbaseline.reporting"):
        reporter.parser_error(ValueError("bad"), "CSS")
        reporter.data_load_error(OSError("missing"))

    levels = [record.levelno for record in caplog.records]
    assert levels == [logging.INFO, logging.CRITICAL]
    assert "[parser:low]" in caplog.records[0].getMessage()
