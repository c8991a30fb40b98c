"""Document analysis pipeline: size gate, cached parse, Baseline lookup, findings."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable
import inspect
import itertools
import logging
from typing import Literal, get_args

from .constants import AUDIT_BATCH_SIZE, AUDIT_TIMEOUT_MS
from .exceptions import AnalysisTimeoutError, CatalogLoadError
from .model import Finding, FindingReason, ParseResult, TextDocument
from .parsers import ParserRegistry
from .reporting import ErrorReporter
from .resolver import BaselineTarget, CompatibilityResolver
from .scheduler import AnalysisScheduler
from .util.html import debug_log
from .util.text import byte_size, content_hash

DocumentState = Literal["idle", "scheduled", "analyzing", "superseded"]
FindingsCallback = Callable[[TextDocument, list[Finding]], Awaitable[None] | None]
StateListener = Callable[[str, DocumentState], None]

LOGGER = logging.getLogger(__name__)


def _parse_cache_key(language_id: str, uri: str, digest: str, _text: str) -> str:
    return f"{language_id}-{uri}-{digest}"


class AnalysisOrchestrator:
    """Turns a text document into the list of non-Baseline feature usages it contains.

    Collaborators are injected; the same scheduler may be shared with other
    subsystems so they draw on one cache and one memory budget.
    """

    def __init__(
        self,
        resolver: CompatibilityResolver,
        scheduler: AnalysisScheduler | None = None,
        *,
        parsers: ParserRegistry | None = None,
        reporter: ErrorReporter | None = None,
        baseline_target: BaselineTarget = "low",
        on_state_change: StateListener | None = None,
    ) -> None:
        if baseline_target not in get_args(BaselineTarget):
            raise ValueError(f"baseline_target must be 'low' or 'high', got {baseline_target!r}")
        self._resolver = resolver
        self._reporter = reporter or ErrorReporter()
        self._scheduler = scheduler or AnalysisScheduler(reporter=self._reporter)
        self._parsers = parsers or ParserRegistry(self._reporter)
        self.baseline_target: BaselineTarget = baseline_target
        self._on_state_change = on_state_change
        self._parse = self._scheduler.memoize(
            self._parse_source, _parse_cache_key, default=ParseResult.empty()
        )
        self._operations = itertools.count(1)
        self._generations: dict[str, int] = {}
        self._states: dict[str, DocumentState] = {}
        self._debounced: dict[str, Callable[..., None]] = {}
        self._in_flight: dict[str, int] = {}

    @property
    def scheduler(self) -> AnalysisScheduler:
        return self._scheduler

    @property
    def resolver(self) -> CompatibilityResolver:
        return self._resolver

    async def initialize(self) -> None:
        """Load the catalog once. A failed load leaves every feature supported."""
        catalog = self._resolver.catalog
        if catalog.is_initialized or catalog.failed:
            return
        try:
            await self._resolver.initialize()
        except CatalogLoadError:
            LOGGER.warning("Feature data unavailable; no findings will be reported")

    def _parse_source(self, language_id: str, uri: str, digest: str, text: str) -> ParseResult:
        parser = self._parsers.get(language_id)
        if parser is None:
            return ParseResult.empty()
        return parser.parse(text)

    def _reason(self, feature_id: str) -> FindingReason | None:
        if not self._resolver.is_supported(feature_id):
            return "unsupported"
        if self.baseline_target == "high" and not self._resolver.meets_target(feature_id, "high"):
            return "limited-support"
        return None

    def _findings(self, result: ParseResult) -> list[Finding]:
        findings: list[Finding] = []
        for feature_id in result.features:
            reason = self._reason(feature_id)
            if reason is None:
                continue
            record = self._resolver.get_record(feature_id)
            name = record.name if record is not None else feature_id
            for source_range in result.ranges_for(feature_id):
                findings.append(Finding(source_range, feature_id, name, reason))
        return findings

    async def analyze(self, document: TextDocument) -> list[Finding]:
        """Findings for one document; never raises, failures yield an empty list.

        A parse that misses ``parse_timeout_ms`` is dropped from the cache, so the
        next pass parses again instead of serving the late result.
        """
        operation_id = f"analyze-{next(self._operations)}"
        cache_key: str | None = None
        try:
            await self.initialize()
            text = document.get_text()
            size = byte_size(text)
            config = self._scheduler.config
            if size > config.max_file_size_bytes:
                LOGGER.info(
                    "Skipping %s: %d bytes exceeds the %d byte limit",
                    document.uri,
                    size,
                    config.max_file_size_bytes,
                )
                return []
            if not self._parsers.supports(document.language_id):
                return []

            self._scheduler.track_memory(operation_id, size)
            digest = content_hash(text)
            cache_key = _parse_cache_key(document.language_id, document.uri, digest, text)
            result = await self._scheduler.with_timeout(
                lambda: self._parse(document.language_id, document.uri, digest, text),
                config.parse_timeout_ms,
            )
            if size > config.large_file_threshold_bytes:
                await asyncio.sleep(0)
            findings = self._findings(result or ParseResult.empty())
            debug_log(f"{document.uri}: {len(findings)} finding(s)")
            return findings
        except AnalysisTimeoutError as exc:
            if cache_key is not None:
                self._scheduler.discard(cache_key)
            self._reporter.timeout_error(exc, f"Analyzing {document.uri}")
            return []
        except Exception as exc:
            self._reporter.unknown_error(exc, f"Analyzing {document.uri}")
            return []
        finally:
            self._scheduler.release_memory(operation_id)

    # Scheduled (editor-style) analysis

    def state(self, uri: str) -> DocumentState:
        return self._states.get(uri, "idle")

    def _set_state(self, uri: str, state: DocumentState) -> None:
        self._states[uri] = state
        self._notify(uri, state)

    def _notify(self, uri: str, state: DocumentState) -> None:
        if self._on_state_change is not None:
            self._on_state_change(uri, state)

    def schedule(self, document: TextDocument, on_findings: FindingsCallback) -> int:
        """Debounced analysis of ``document``; returns the generation it was queued as.

        ``on_findings`` only receives results of the latest generation.
        """
        uri = document.uri
        generation = self._generations.get(uri, 0) + 1
        self._generations[uri] = generation
        debounced = self._debounced.get(uri)
        if debounced is None:
            debounced = self._scheduler.debounce(f"analyze:{uri}", self._run_scheduled)
            self._debounced[uri] = debounced
        self._set_state(uri, "scheduled")
        debounced(document, generation, on_findings)
        return generation

    async def _run_scheduled(
        self, document: TextDocument, generation: int, on_findings: FindingsCallback
    ) -> None:
        uri = document.uri
        if generation != self._generations.get(uri):
            self._notify(uri, "superseded")
            return
        self._in_flight[uri] = self._in_flight.get(uri, 0) + 1
        try:
            self._set_state(uri, "analyzing")
            findings = await self.analyze(document)
        finally:
            self._finish_pass(uri)
        if generation != self._generations.get(uri):
            LOGGER.debug("Dropping stale results for %s (generation %d)", uri, generation)
            self._notify(uri, "superseded")
            return
        self._set_state(uri, "idle")
        delivered = on_findings(document, findings)
        if inspect.isawaitable(delivered):
            await delivered

    def _finish_pass(self, uri: str) -> None:
        remaining = self._in_flight.pop(uri, 1) - 1
        if remaining:
            self._in_flight[uri] = remaining
        elif uri not in self._debounced:
            # Closed while this pass ran.
            self._generations.pop(uri, None)

    def close(self, uri: str) -> None:
        """Forget a document: pending work is cancelled, in-flight results are dropped."""
        self._scheduler.cancel(f"analyze:{uri}")
        self._debounced.pop(uri, None)
        self._states.pop(uri, None)
        if self._in_flight.get(uri):
            self._generations[uri] = self._generations.get(uri, 0) + 1
        else:
            self._generations.pop(uri, None)

    # Workspace audits

    async def _analyze_bounded(self, document: TextDocument, timeout_ms: int) -> list[Finding]:
        try:
            return await self._scheduler.with_timeout(lambda: self.analyze(document), timeout_ms)
        except AnalysisTimeoutError as exc:
            self._reporter.timeout_error(exc, f"Auditing {document.uri}")
            return []

    async def analyze_many(
        self,
        documents: Iterable[TextDocument],
        batch_size: int = AUDIT_BATCH_SIZE,
        timeout_ms: int = AUDIT_TIMEOUT_MS,
    ) -> dict[str, list[Finding]]:
        """Analyze documents in batches, each with its own deadline."""
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        pending = list(documents)
        results: dict[str, list[Finding]] = {}
        for start in range(0, len(pending), batch_size):
            batch = pending[start : start + batch_size]
            outcomes = await asyncio.gather(
                *(self._analyze_bounded(document, timeout_ms) for document in batch)
            )
            for document, findings in zip(batch, outcomes):
                results[document.uri] = findings
            await asyncio.sleep(0)
        return results
