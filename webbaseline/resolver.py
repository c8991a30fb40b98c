"""Compatibility resolver: memoized Baseline queries over the feature catalog."""

from __future__ import annotations

import logging
from typing import Literal

from .catalog import FeatureCatalog
from .model import FeatureRecord
from .reporting import ErrorReporter

BaselineTarget = Literal["low", "high"]

LOGGER = logging.getLogger(__name__)


class CompatibilityResolver:
    """Answers "is this feature Baseline?" for feature ids.

    Unknown ids and lookup failures resolve to supported (fail open): a feature
    missing from the dataset is far more likely a universal platform feature
    than an incompatible one. Memo tables are unbounded since the catalog is finite.
    """

    def __init__(self, catalog: FeatureCatalog, reporter: ErrorReporter | None = None) -> None:
        self._catalog = catalog
        self._reporter = reporter or ErrorReporter()
        self._record_cache: dict[str, FeatureRecord | None] = {}
        self._support_cache: dict[str, bool] = {}

    @property
    def catalog(self) -> FeatureCatalog:
        return self._catalog

    async def initialize(self) -> None:
        await self._catalog.initialize()

    def _lookup(self, feature_id: str, context: str) -> tuple[bool, FeatureRecord | None]:
        """Return ``(cacheable, record)`` for a feature id."""
        if not isinstance(feature_id, str) or not feature_id.strip():
            self._reporter.validation_error(f"Invalid feature ID: {feature_id!r}", context)
            return False, None
        if feature_id in self._record_cache:
            return True, self._record_cache[feature_id]

        if self._catalog.failed:
            LOGGER.debug("Feature data unavailable; treating %s as supported", feature_id)
            return False, None
        if not self._catalog.is_initialized:
            self._reporter.validation_error(
                "Feature catalog not initialized. Call initialize() first.", context
            )
            return False, None

        record = self._catalog.get(feature_id)
        self._record_cache[feature_id] = record
        return True, record

    def get_record(self, feature_id: str) -> FeatureRecord | None:
        try:
            _cacheable, record = self._lookup(feature_id, "Getting feature data")
        except Exception as exc:
            self._reporter.unknown_error(exc, "Getting feature data")
            return None
        return record

    def is_supported(self, feature_id: str) -> bool:
        try:
            if feature_id in self._support_cache:
                return self._support_cache[feature_id]
            cacheable, record = self._lookup(feature_id, "Checking baseline support")
        except Exception as exc:
            self._reporter.unknown_error(exc, "Checking baseline support")
            return True

        supported = True if record is None else record.status.baseline is not False
        if cacheable:
            self._support_cache[feature_id] = supported
        return supported

    def meets_target(self, feature_id: str, target: BaselineTarget = "low") -> bool:
        """Stricter check: with target ``"high"`` newly available features fall short."""
        if not self.is_supported(feature_id):
            return False
        if target == "low":
            return True
        record = self.get_record(feature_id)
        return record is None or record.status.baseline != "low"

    def all_feature_ids(self) -> list[str]:
        if not self._catalog.is_initialized:
            self._reporter.validation_error(
                "Feature catalog not initialized. Call initialize() first.",
                "Getting all feature IDs",
            )
            return []
        return self._catalog.feature_ids()

    def clear(self) -> None:
        self._record_cache.clear()
        self._support_cache.clear()
