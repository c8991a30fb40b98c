"""Feature catalog: the immutable table of compatibility records.

The dataset follows the web-features ``data.json`` layout: a ``features`` mapping
of feature ids to entries carrying a name, a Baseline status, spec links and a
``compat_features`` list of browser-compat-data keys. Parsers emit those compat
keys (``css.properties.float``, ``api.Clipboard.writeText``), so each entry is
indexed under its own id and under every compat key it lists.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping
from datetime import date
from importlib.resources import files
import json
import logging
import os
from pathlib import Path
from types import MappingProxyType
from typing import Any, cast

from .constants import BUNDLED_DATA_RESOURCE, DATA_PATH_ENV, FEATURE_DOC_URL_TEMPLATE
from .exceptions import CatalogLoadError, CatalogNotInitializedError
from .model import BaselineLevel, BaselineStatus, FeatureRecord
from .reporting import ErrorReporter
from .util.html import html_to_text

LOGGER = logging.getLogger(__name__)


def default_data_path() -> Path | None:
    """Dataset override from the environment, if any."""
    override = os.environ.get(DATA_PATH_ENV, "").strip()
    return Path(override).expanduser() if override else None


def _read_bundled_dataset() -> str:
    return (files("webbaseline") / "data" / BUNDLED_DATA_RESOURCE).read_text(encoding="utf-8")


def _clean_date(value: object) -> date | None:
    if not isinstance(value, str):
        return None
    cleaned = value.strip().lstrip("≤").strip()
    if not cleaned:
        return None
    try:
        return date.fromisoformat(cleaned)
    except ValueError:
        return None


def _parse_baseline(value: object) -> BaselineLevel | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"low", "high"}:
            return cast(BaselineLevel, normalized)
        if normalized == "false":
            return False
    return None


def _parse_status(raw: object) -> BaselineStatus | None:
    if not isinstance(raw, dict):
        return None
    status_map = cast(dict[str, object], raw)
    baseline = _parse_baseline(status_map.get("baseline"))
    if baseline is None:
        return None
    return BaselineStatus(
        baseline=baseline,
        low_date=_clean_date(status_map.get("baseline_low_date")),
        high_date=_clean_date(status_map.get("baseline_high_date")),
    )


def _first_spec_url(raw: object) -> str | None:
    if isinstance(raw, str) and raw.strip():
        return raw.strip()
    if isinstance(raw, list):
        for item in raw:
            if isinstance(item, str) and item.strip():
                return item.strip()
    return None


def parse_dataset(payload: object) -> dict[str, FeatureRecord]:
    """Turn a decoded dataset into records keyed by feature id and compat key.

    Entries with an unreadable status are skipped. An explicit feature id always
    wins over a compat-key alias; among aliases the first entry listing a key wins.
    """
    if not isinstance(payload, dict):
        raise ValueError("dataset root must be an object")
    raw_features = payload.get("features", payload)
    if not isinstance(raw_features, dict):
        raise ValueError("dataset 'features' must be an object")

    records: dict[str, FeatureRecord] = {}
    aliases: dict[str, FeatureRecord] = {}

    for feature_id, raw_entry in raw_features.items():
        if not isinstance(feature_id, str) or not isinstance(raw_entry, dict):
            continue
        entry = cast(dict[str, Any], raw_entry)
        kind = entry.get("kind", "feature")
        if kind != "feature":
            continue
        status = _parse_status(entry.get("status"))
        if status is None:
            LOGGER.debug("Skipping %s: no readable baseline status", feature_id)
            continue

        raw_name = entry.get("name")
        name = raw_name.strip() if isinstance(raw_name, str) and raw_name.strip() else feature_id
        mdn_url = entry.get("mdn_url")
        doc_url = (
            mdn_url.strip()
            if isinstance(mdn_url, str) and mdn_url.strip()
            else FEATURE_DOC_URL_TEMPLATE.format(feature_id=feature_id)
        )
        spec_url = _first_spec_url(entry.get("spec"))
        description = html_to_text(entry.get("description_html")) or str(
            entry.get("description") or ""
        )

        records[feature_id] = FeatureRecord(
            id=feature_id,
            name=name,
            status=status,
            spec_url=spec_url,
            doc_url=doc_url,
            description=description,
        )

        status_by_key: dict[str, object] = {}
        raw_status = entry.get("status")
        if isinstance(raw_status, dict) and isinstance(raw_status.get("by_compat_key"), dict):
            status_by_key = cast(dict[str, object], raw_status["by_compat_key"])

        compat_keys = entry.get("compat_features")
        if not isinstance(compat_keys, list):
            continue
        for compat_key in compat_keys:
            if not isinstance(compat_key, str) or not compat_key or compat_key in aliases:
                continue
            key_status = _parse_status(status_by_key.get(compat_key)) or status
            aliases[compat_key] = FeatureRecord(
                id=compat_key,
                name=name,
                status=key_status,
                spec_url=spec_url,
                doc_url=doc_url,
                description=description,
            )

    for compat_key, record in aliases.items():
        records.setdefault(compat_key, record)
    return records


class FeatureCatalog:
    """Process-wide, read-only table of :class:`FeatureRecord` objects.

    Construct once, ``await initialize()`` (or call :meth:`load`) once, then share.
    """

    def __init__(
        self,
        source: Path | None = None,
        reporter: ErrorReporter | None = None,
    ) -> None:
        self._source = source
        self._reporter = reporter or ErrorReporter()
        self._records: Mapping[str, FeatureRecord] | None = None
        self._loading: asyncio.Task[None] | None = None
        self._failed = False

    @classmethod
    def from_records(cls, records: Iterable[FeatureRecord]) -> FeatureCatalog:
        catalog = cls()
        catalog._records = MappingProxyType({record.id: record for record in records})
        return catalog

    @property
    def source_label(self) -> str:
        source = self._source or default_data_path()
        return str(source) if source is not None else f"bundled {BUNDLED_DATA_RESOURCE}"

    @property
    def is_initialized(self) -> bool:
        return self._records is not None

    @property
    def failed(self) -> bool:
        return self._failed

    def _read_source(self) -> str:
        source = self._source or default_data_path()
        if source is None:
            return _read_bundled_dataset()
        return Path(source).read_text(encoding="utf-8")

    def load(self) -> None:
        """Load the dataset synchronously. A second call is a no-op."""
        if self._records is not None:
            return
        try:
            payload = json.loads(self._read_source())
            records = parse_dataset(payload)
        except (OSError, ValueError) as exc:
            self._failed = True
            error = CatalogLoadError(self.source_label, cause=str(exc))
            self._reporter.data_load_error(error, f"Loading {self.source_label}")
            raise error from exc

        self._records = MappingProxyType(records)
        self._failed = False
        LOGGER.info("Feature data loaded: %d records from %s", len(records), self.source_label)

    async def _load_async(self) -> None:
        self.load()

    async def initialize(self) -> None:
        """Load once; concurrent callers await the same in-flight load."""
        if self._records is not None:
            return
        if self._loading is None:
            self._loading = asyncio.get_running_loop().create_task(self._load_async())
        loading = self._loading
        try:
            await loading
        finally:
            if self._records is None and self._loading is loading:
                # Failed load: let a later initialize() retry.
                self._loading = None

    def get(self, feature_id: str) -> FeatureRecord | None:
        if self._records is None:
            raise CatalogNotInitializedError()
        return self._records.get(feature_id)

    def feature_ids(self) -> list[str]:
        if self._records is None:
            raise CatalogNotInitializedError()
        return list(self._records)

    def __len__(self) -> int:
        return 0 if self._records is None else len(self._records)

    def __bool__(self) -> bool:
        # An unloaded or empty catalog is still a catalog.
        return True

    def __contains__(self, feature_id: object) -> bool:
        return self._records is not None and feature_id in self._records
