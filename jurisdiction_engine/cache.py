"""TTL cache with at-most-one concurrent computation per key.

Concurrent callers for the same missing key share one in-flight task:
the first caller starts the computation, later callers await the same
result instead of issuing a duplicate fetch. Awaiters are shielded, so a
cancelled caller never cancels the computation other callers depend on.

Failed computations are not cached; the exception propagates to every
caller waiting on that key.

Usage:
    cache = TTLCache("aggregation", ttl=1800, metrics=metrics)
    value = await cache.get_or_compute(key, lambda: fetch(zip_code))
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Hashable

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    value: Any
    expires_at: float


class TTLCache:
    """Async-aware memo cache keyed by hashable keys.

    Args:
        name: Cache name used in metrics and logs.
        ttl: Entry lifetime in seconds.
        clock: Callable returning monotonic seconds (injectable for tests).
        metrics: Optional EngineMetrics receiving hits, misses and
            compute durations.
    """

    def __init__(
        self,
        name: str,
        ttl: float,
        clock: Callable[[], float] | None = None,
        metrics=None,
    ) -> None:
        self.name = name
        self.ttl = ttl
        self._clock = clock or time.monotonic
        self._metrics = metrics
        self._entries: dict[Hashable, _Entry] = {}
        self._inflight: dict[Hashable, asyncio.Task] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: Hashable) -> Any | None:
        """Return a live entry without computing, or None."""
        entry = self._entries.get(key)
        if entry is None or entry.expires_at <= self._clock():
            return None
        return entry.value

    async def get_or_compute(
        self,
        key: Hashable,
        compute_fn: Callable[[], Awaitable[Any]],
        ttl: float | Callable[[Any], float] | None = None,
    ) -> Any:
        """Return the cached value for ``key``, computing it on a miss.

        Args:
            key: Cache key.
            compute_fn: Zero-argument callable returning an awaitable.
            ttl: Override of the cache-wide TTL for this entry, or a
                callable mapping the computed value to its TTL. A TTL of
                0 or less returns the value without storing it.
        """
        entry = self._entries.get(key)
        if entry is not None and entry.expires_at > self._clock():
            if self._metrics is not None:
                self._metrics.record_hit(self.name)
            return entry.value

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._compute(key, compute_fn, ttl))
            task.add_done_callback(_consume_exception)
            self._inflight[key] = task
        else:
            logger.debug("%s: joining in-flight computation for %s", self.name, key)
        return await asyncio.shield(task)

    async def _compute(self, key: Hashable, compute_fn, ttl) -> Any:
        start = time.perf_counter()
        try:
            value = await compute_fn()
            if ttl is None:
                lifetime = self.ttl
            else:
                lifetime = ttl(value) if callable(ttl) else ttl
            if lifetime > 0:
                self._entries[key] = _Entry(value, self._clock() + lifetime)
            return value
        finally:
            self._inflight.pop(key, None)
            if self._metrics is not None:
                self._metrics.record_miss(self.name, (time.perf_counter() - start) * 1000)

    def invalidate(self, key: Hashable) -> bool:
        return self._entries.pop(key, None) is not None

    def invalidate_where(self, predicate: Callable[[Hashable, Any], bool]) -> int:
        """Drop every entry for which ``predicate(key, value)`` is true."""
        doomed = [k for k, e in self._entries.items() if predicate(k, e.value)]
        for key in doomed:
            del self._entries[key]
        if doomed:
            logger.info("%s: invalidated %d entries", self.name, len(doomed))
        return len(doomed)

    def sweep(self) -> int:
        """Evict expired entries. Returns the number evicted."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if e.expires_at <= now]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("%s: swept %d expired entries", self.name, len(expired))
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()


def _consume_exception(task: asyncio.Task) -> None:
    # Every caller may have been cancelled; mark the error as retrieved
    if not task.cancelled():
        task.exception()
