"""Keyed debounce, memoization with eviction, deadlines and memory accounting."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import inspect
import logging
import math
import re
import time
from typing import Any, TypeVar

from .config import PerformanceConfig
from .constants import (
    CACHE_MAX_AGE_SECONDS,
    CACHE_SWEEP_INTERVAL_SECONDS,
    EVICTION_FRACTION,
    MEMORY_WARNING_BYTES,
)
from .exceptions import AnalysisTimeoutError
from .model import CacheEntry, SchedulerStats
from .reporting import ErrorReporter

T = TypeVar("T")

LOGGER = logging.getLogger(__name__)


class AnalysisScheduler:
    """Shared cache and scheduling primitives for one event loop.

    ``clock`` feeds cache access times and the expiry sweep; swap it in tests.
    """

    def __init__(
        self,
        config: PerformanceConfig | None = None,
        reporter: ErrorReporter | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or PerformanceConfig()
        self._reporter = reporter or ErrorReporter()
        self._clock = clock
        self._cache: dict[str, CacheEntry] = {}
        self._timers: dict[str, asyncio.TimerHandle] = {}
        self._memory: dict[str, int] = {}
        self._tasks: set[asyncio.Future[Any]] = set()
        self._sweeper: asyncio.Task[None] | None = None
        self._hits = 0
        self._misses = 0

    @property
    def config(self) -> PerformanceConfig:
        return self._config

    @property
    def reporter(self) -> ErrorReporter:
        return self._reporter

    def update_config(self, **changes: int) -> PerformanceConfig:
        self._config = self._config.updated(**changes)
        LOGGER.info("Performance configuration updated: %s", changes)
        if len(self._cache) > self._config.max_cache_entries:
            self._evict()
        return self._config

    # Debounce

    def debounce(
        self,
        key: str,
        fn: Callable[..., Any],
        delay_ms: int | None = None,
    ) -> Callable[..., None]:
        """Wrap ``fn`` so only the last call in a quiet window of ``delay_ms`` runs.

        The wrapper schedules on the running event loop and starts the cache sweeper
        there. Called without a running loop it reports a validation error and drops
        the call.
        """

        def debounced(*args: Any, **kwargs: Any) -> None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                self._reporter.validation_error(
                    f"Debounced call to {key!r} needs a running event loop",
                    "Debounce scheduling",
                )
                return
            self.start_sweeper()
            self.cancel(key)
            delay = self._config.debounce_delay_ms if delay_ms is None else delay_ms
            self._timers[key] = loop.call_later(
                delay / 1000, self._fire, key, fn, args, kwargs
            )

        return debounced

    def cancel(self, key: str) -> bool:
        timer = self._timers.pop(key, None)
        if timer is None:
            return False
        timer.cancel()
        return True

    def pending(self, key: str) -> bool:
        return key in self._timers

    def _fire(
        self,
        key: str,
        fn: Callable[..., Any],
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> None:
        self._timers.pop(key, None)
        try:
            result = fn(*args, **kwargs)
        except Exception as exc:
            self._reporter.unknown_error(exc, f"Debounced operation: {key}")
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(lambda done: self._debounced_done(key, done))

    def _debounced_done(self, key: str, task: asyncio.Future[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._reporter.unknown_error(exc, f"Debounced operation: {key}")

    async def drain(self) -> None:
        """Wait for debounced coroutines that have already started."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # Memoization

    def memoize(
        self,
        fn: Callable[..., T],
        key_generator: Callable[..., str],
        default: T | None = None,
    ) -> Callable[..., T | None]:
        """Cache ``fn`` results in the shared cache under ``key_generator(*args)``.

        Failures are reported and produce ``default``, which is not cached.
        """

        def memoized(*args: Any, **kwargs: Any) -> T | None:
            try:
                key = key_generator(*args, **kwargs)
                entry = self._cache.get(key)
                now = self._clock()
                if entry is not None:
                    entry.access_count += 1
                    entry.last_access_time = now
                    self._hits += 1
                    return entry.value

                self._misses += 1
                value = fn(*args, **kwargs)
                self._cache[key] = CacheEntry(value=value, last_access_time=now)
                if len(self._cache) > self._config.max_cache_entries:
                    self._evict()
                return value
            except Exception as exc:
                self._reporter.unknown_error(exc, "Memoized function execution")
                return default

        return memoized

    def _evict(self) -> int:
        count = math.ceil(len(self._cache) * EVICTION_FRACTION)
        ranked = sorted(
            self._cache.items(),
            key=lambda item: (item[1].access_count, item[1].last_access_time),
        )
        for key, _entry in ranked[:count]:
            del self._cache[key]
        LOGGER.debug("Evicted %d cache entries, %d remain", count, len(self._cache))
        return count

    def cached(self, key: str) -> bool:
        return key in self._cache

    def discard(self, key: str) -> bool:
        return self._cache.pop(key, None) is not None

    def sweep_expired(self, max_age_seconds: float = CACHE_MAX_AGE_SECONDS) -> int:
        cutoff = self._clock() - max_age_seconds
        expired = [key for key, entry in self._cache.items() if entry.last_access_time < cutoff]
        for key in expired:
            del self._cache[key]
        if expired:
            LOGGER.debug("Swept %d expired cache entries", len(expired))
        return len(expired)

    def start_sweeper(
        self, interval_seconds: float = CACHE_SWEEP_INTERVAL_SECONDS
    ) -> asyncio.Task[None]:
        """Run :meth:`sweep_expired` periodically on the running loop."""
        if self._sweeper is not None and self.sweeping:
            return self._sweeper

        async def sweep_forever() -> None:
            while True:
                await asyncio.sleep(interval_seconds)
                self.sweep_expired()

        self._sweeper = asyncio.get_running_loop().create_task(sweep_forever())
        return self._sweeper

    @property
    def sweeping(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()

    def clear_cache(self, pattern: str | re.Pattern[str] | None = None) -> int:
        """Drop every entry, or only those whose key matches ``pattern``."""
        if pattern is None:
            removed = len(self._cache)
            self._cache.clear()
            return removed
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        matching = [key for key in self._cache if regex.search(key)]
        for key in matching:
            del self._cache[key]
        return len(matching)

    # Deadlines

    async def with_timeout(
        self,
        fn: Callable[[], Awaitable[T] | T],
        timeout_ms: int | None = None,
    ) -> T:
        """Run ``fn`` against a deadline, raising :class:`AnalysisTimeoutError` past it.

        Coroutines keep running after the deadline; only the wait is abandoned.
        A synchronous ``fn`` cannot be interrupted, so its elapsed time is checked
        once it returns.
        """
        timeout = self._config.parse_timeout_ms if timeout_ms is None else timeout_ms
        loop = asyncio.get_running_loop()
        started = loop.time()
        result = fn()
        if not inspect.isawaitable(result):
            if (loop.time() - started) * 1000 > timeout:
                raise AnalysisTimeoutError(timeout)
            return result

        task = asyncio.ensure_future(result)
        done, _pending = await asyncio.wait({task}, timeout=timeout / 1000)
        if not done:
            self._tasks.add(task)
            task.add_done_callback(self._abandoned_done)
            raise AnalysisTimeoutError(timeout)
        return task.result()

    def _abandoned_done(self, task: asyncio.Future[Any]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            LOGGER.debug("Abandoned operation failed: %s", task.exception())

    # Memory

    def track_memory(self, operation_id: str, size_bytes: int) -> None:
        self._memory[operation_id] = size_bytes
        total = self.memory_usage
        if total > MEMORY_WARNING_BYTES:
            LOGGER.warning(
                "High memory usage: %.1f MiB across %d operation(s)",
                total / (1024 * 1024),
                len(self._memory),
            )

    def release_memory(self, operation_id: str) -> None:
        self._memory.pop(operation_id, None)

    @property
    def memory_usage(self) -> int:
        return sum(self._memory.values())

    # Lifecycle

    def stats(self) -> SchedulerStats:
        lookups = self._hits + self._misses
        return SchedulerStats(
            cache_size=len(self._cache),
            cache_hit_rate=self._hits / lookups if lookups else 0.0,
            memory_usage=self.memory_usage,
            active_debouncers=len(self._timers),
        )

    def dispose(self) -> None:
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        if self._sweeper is not None:
            self._sweeper.cancel()
            self._sweeper = None
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        self._cache.clear()
        self._memory.clear()
        self._hits = 0
        self._misses = 0
