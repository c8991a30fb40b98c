from __future__ import annotations

import asyncio
from datetime import date
import json
from pathlib import Path

import pytest

from webbaseline.catalog import FeatureCatalog, parse_dataset
from webbaseline.constants import DATA_PATH_ENV
from webbaseline.exceptions import CatalogLoadError, CatalogNotInitializedError
from webbaseline.model import BaselineStatus, FeatureRecord
from webbaseline.reporting import ErrorReporter
from webbaseline.resolver import CompatibilityResolver

_PAYLOAD = {
    "features": {
        "float-clear": {
            "kind": "feature",
            "name": "float and clear",
            "description_html": "The <code>float</code> property.",
            "spec": ["https://example.com/css2", "https://example.com/other"],
            "status": {
                "baseline": "high",
                "baseline_low_date": "2015-07-29",
                "baseline_high_date": "≤2018-01-29",
            },
            "compat_features": ["css.properties.float", "css.properties.clear"],
        },
        "view-transitions": {
            "name": "View transitions",
            "status": {
                "baseline": "low",
                "by_compat_key": {"css.at-rules.view-transition": {"baseline": False}},
            },
            "compat_features": ["css.at-rules.view-transition", "api.Document.startViewTransition"],
        },
        "broken": {"name": "No status"},
        "old-name": {"kind": "moved", "redirect_target": "float-clear"},
    }
}


def _record(feature_id: str, baseline: bool | str) -> FeatureRecord:
    status = BaselineStatus(baseline)  # type: ignore[arg-type]
    return FeatureRecord(id=feature_id, name=feature_id, status=status)


def _write_payload(path: Path, payload: object) -> Path:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_parse_dataset_indexes_ids_and_compat_keys() -> None:
    records = parse_dataset(_PAYLOAD)

    assert records["float-clear"].status == BaselineStatus(
        "high", date(2015, 7, 29), date(2018, 1, 29)
    )
    assert records["css.properties.clear"].name == "float and clear"
    assert records["css.properties.clear"].spec_url == "https://example.com/css2"
    assert "float" in records["float-clear"].description
    assert "<code>" not in records["float-clear"].description
    assert "broken" not in records
    assert "old-name" not in records


def test_parse_dataset_prefers_per_key_status() -> None:
    records = parse_dataset(_PAYLOAD)

    assert records["css.at-rules.view-transition"].status.baseline is False
    assert records["api.Document.startViewTransition"].status.baseline == "low"
    assert records["view-transitions"].doc_url is not None


def test_parse_dataset_rejects_non_objects() -> None:
    with pytest.raises(ValueError):
        parse_dataset([])


def test_bundled_dataset_loads(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(DATA_PATH_ENV, raising=False)
    catalog = FeatureCatalog()

    catalog.load()

    record = catalog.get("css.properties.float")
    assert record is not None
    assert record.status.baseline == "high"
    assert "css.properties.field-sizing" in catalog
    assert len(catalog) > 50


def test_environment_override(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = _write_payload(tmp_path / "data.json", _PAYLOAD)
    monkeypatch.setenv(DATA_PATH_ENV, str(path))

    catalog = FeatureCatalog()
    catalog.load()

    assert catalog.source_label == str(path)
    assert "view-transitions" in catalog


def test_get_before_load_raises() -> None:
    with pytest.raises(CatalogNotInitializedError):
        FeatureCatalog().get("css.properties.float")


def test_missing_file_is_a_critical_load_error(tmp_path: Path) -> None:
    reporter = ErrorReporter()
    catalog = FeatureCatalog(tmp_path / "missing.json", reporter)

    with pytest.raises(CatalogLoadError):
        catalog.load()

    assert catalog.failed is True
    assert catalog.is_initialized is False
    assert reporter.has_critical()
    assert len(catalog) == 0
    assert catalog


def test_initialize_shares_one_load(tmp_path: Path) -> None:
    catalog = FeatureCatalog(_write_payload(tmp_path / "data.json", _PAYLOAD))
    reads = {"count": 0}
    original = catalog._read_source

    def _counting_read() -> str:
        reads["count"] += 1
        return original()

    catalog._read_source = _counting_read  # type: ignore[method-assign]

    async def _run() -> None:
        await asyncio.gather(catalog.initialize(), catalog.initialize(), catalog.initialize())
        await catalog.initialize()

    asyncio.run(_run())

    assert reads["count"] == 1
    assert catalog.is_initialized


def test_initialize_can_retry_after_failure(tmp_path: Path) -> None:
    path = tmp_path / "data.json"
    path.write_text("{not json", encoding="utf-8")
    catalog = FeatureCatalog(path)

    async def _run() -> None:
        with pytest.raises(CatalogLoadError):
            await catalog.initialize()
        _write_payload(path, _PAYLOAD)
        await catalog.initialize()

    asyncio.run(_run())

    assert catalog.is_initialized
    assert catalog.failed is False


def test_resolver_baseline_levels() -> None:
    catalog = FeatureCatalog.from_records(
        [
            _record("a.high", "high"),
            _record("a.low", "low"),
            _record("a.true", True),
            _record("a.false", False),
        ]
    )
    resolver = CompatibilityResolver(catalog)

    assert resolver.is_supported("a.high") is True
    assert resolver.is_supported("a.low") is True
    assert resolver.is_supported("a.true") is True
    assert resolver.is_supported("a.false") is False
    assert resolver.is_supported("not.in.catalog") is True
    assert resolver.get_record("not.in.catalog") is None


def test_resolver_meets_target() -> None:
    resolver = CompatibilityResolver(
        FeatureCatalog.from_records([_record("a.low", "low"), _record("a.high", "high")])
    )

    assert resolver.meets_target("a.low") is True
    assert resolver.meets_target("a.low", "high") is False
    assert resolver.meets_target("a.high", "high") is True
    assert resolver.meets_target("unknown", "high") is True


def test_resolver_memoizes_lookups(monkeypatch: pytest.MonkeyPatch) -> None:
    catalog = FeatureCatalog.from_records([_record("a.false", False)])
    resolver = CompatibilityResolver(catalog)
    calls = {"count": 0}
    original_get = catalog.get

    def _counting_get(feature_id: str) -> FeatureRecord | None:
        calls["count"] += 1
        return original_get(feature_id)

    monkeypatch.setattr(catalog, "get", _counting_get)

    for _ in range(3):
        assert resolver.is_supported("a.false") is False
        assert resolver.get_record("a.false") is not None

    assert calls["count"] == 1


def test_uninitialized_catalog_is_a_validation_error_and_not_memoized(tmp_path: Path) -> None:
    reporter = ErrorReporter()
    resolver = CompatibilityResolver(FeatureCatalog(tmp_path / "data.json"), reporter)

    assert resolver.is_supported("css.properties.float") is True
    assert resolver.is_supported("css.properties.float") is True

    assert len(reporter.by_category("validation")) == 2
    assert resolver.all_feature_ids() == []


def test_failed_catalog_fails_open_quietly(tmp_path: Path) -> None:
    catalog = FeatureCatalog(tmp_path / "missing.json")
    with pytest.raises(CatalogLoadError):
        catalog.load()
    reporter = ErrorReporter()
    resolver = CompatibilityResolver(catalog, reporter)

    assert resolver.is_supported("css.properties.float") is True
    assert reporter.history() == []


def test_invalid_ids_fail_open_with_validation_error() -> None:
    reporter = ErrorReporter()
    resolver = CompatibilityResolver(FeatureCatalog.from_records([]), reporter)

    assert resolver.is_supported("") is True
    assert resolver.is_supported(None) is True  # type: ignore[arg-type]
    assert len(reporter.by_category("validation")) == 2


def test_lookup_exceptions_are_reported(monkeypatch: pytest.MonkeyPatch) -> None:
    catalog = FeatureCatalog.from_records([])
    reporter = ErrorReporter()
    resolver = CompatibilityResolver(catalog, reporter)

    def _boom(_feature_id: str) -> FeatureRecord | None:
        raise RuntimeError("boom")

    monkeypatch.setattr(catalog, "get", _boom)

    assert resolver.get_record("x.y") is None
    assert resolver.is_supported("x.y") is True
    assert len(reporter.by_category("unknown")) == 2


def test_all_feature_ids_and_clear() -> None:
    resolver = CompatibilityResolver(FeatureCatalog.from_records([_record("a.b", False)]))

    assert resolver.all_feature_ids() == ["a.b"]
    assert resolver.is_supported("a.b") is False
    resolver.clear()
    assert resolver.is_supported("a.b") is False
