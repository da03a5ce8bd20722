"""In-memory engine metrics: cache hit/miss counters and operation timings.

Durations are kept in a rolling window so a long-running process reports
recent behavior, not its lifetime average. Nothing is persisted.
"""

import logging
import math
from collections import Counter, deque

logger = logging.getLogger(__name__)


class EngineMetrics:
    """Hit/miss counters per cache plus a rolling window of timing samples.

    Args:
        window: Maximum number of (operation, duration_ms) samples kept.
    """

    def __init__(self, window: int = 500) -> None:
        self.window = max(1, int(window))
        self.hits: Counter = Counter()
        self.misses: Counter = Counter()
        self._samples: deque[tuple[str, float]] = deque(maxlen=self.window)

    def record_hit(self, cache_name: str) -> None:
        self.hits[cache_name] += 1

    def record_miss(self, cache_name: str, duration_ms: float) -> None:
        self.misses[cache_name] += 1
        self.record(f"{cache_name}.compute", duration_ms)

    def record(self, operation: str, duration_ms: float) -> None:
        self._samples.append((operation, float(duration_ms)))

    def hit_rate(self, cache_name: str) -> float:
        total = self.hits[cache_name] + self.misses[cache_name]
        return self.hits[cache_name] / total if total else 0.0

    def snapshot(self) -> dict:
        """Point-in-time view for diagnostics.

        Returns:
            {"caches": {name: {hits, misses, hit_rate}},
             "operations": {op: {count, avg_ms, p95_ms, max_ms}},
             "samples": <samples in window>}
        """
        caches = {}
        for name in sorted(set(self.hits) | set(self.misses)):
            caches[name] = {
                "hits": self.hits[name],
                "misses": self.misses[name],
                "hit_rate": round(self.hit_rate(name), 3),
            }

        by_op: dict[str, list[float]] = {}
        for operation, duration in self._samples:
            by_op.setdefault(operation, []).append(duration)

        operations = {}
        for operation, durations in sorted(by_op.items()):
            durations.sort()
            p95_index = max(0, math.ceil(0.95 * len(durations)) - 1)
            operations[operation] = {
                "count": len(durations),
                "avg_ms": round(sum(durations) / len(durations), 2),
                "p95_ms": round(durations[p95_index], 2),
                "max_ms": round(durations[-1], 2),
            }

        return {"caches": caches, "operations": operations, "samples": len(self._samples)}

    def reset(self) -> None:
        self.hits.clear()
        self.misses.clear()
        self._samples.clear()
