"""Source health report for the jurisdiction engine.

Reports UP / DEGRADED / DOWN per source adapter from local state only
(configuration and circuit breaker), without probing the network:

  UP        configured, breaker CLOSED
  DEGRADED  breaker HALF_OPEN, or recent failures below the trip threshold
  DOWN      not configured (missing key or data file), or breaker OPEN

Used by the --health-check CLI command.
"""

import logging

logger = logging.getLogger(__name__)


class HealthChecker:
    """Summarize the health of every source an engine depends on.

    Args:
        engine: ResolutionEngine whose adapters and metrics are reported.
    """

    def __init__(self, engine):
        self._engine = engine

    def check_all(self) -> dict[str, dict]:
        """Return a dict mapping source name to {"status", "tier", "detail"}."""
        results = {}
        for tier, adapter in self._engine.adapters.items():
            info = adapter.health()
            status, detail = self._status(info)
            results[info.get("source", adapter.source_name)] = {
                "status": status,
                "tier": tier.value,
                "detail": detail,
            }
            if status != "UP":
                logger.warning("%s source %s: %s", status, adapter.source_name, detail)
        return results

    @staticmethod
    def _status(info: dict) -> tuple[str, str]:
        if not info.get("configured", True):
            return "DOWN", "not configured"
        circuit = info.get("circuit")
        if circuit is None:
            return "UP", "OK"
        state = circuit["state"]
        if state == "open":
            return "DOWN", f"circuit open after {circuit['consecutive_failures']} failures"
        if state == "half_open":
            return "DEGRADED", "circuit half-open, probing recovery"
        if circuit["consecutive_failures"]:
            return "DEGRADED", f"{circuit['consecutive_failures']} recent failures"
        return "UP", "OK"

    def cache_summary(self) -> dict:
        return self._engine.metrics.snapshot()["caches"]


def format_report(results: dict[str, dict], caches: dict | None = None) -> str:
    """Format health results (and optional cache stats) as an aligned text table."""
    lines = [
        "Source Health Check",
        "-" * 60,
    ]
    max_name = max(len(name) for name in results) if results else 0
    for source_name, info in results.items():
        lines.append(
            f"  {source_name + ':':<{max_name + 2}} {info['status']:<10} "
            f"[{info['tier']}] ({info['detail']})"
        )
    if caches:
        lines.append("")
        lines.append("Caches")
        lines.append("-" * 60)
        for name, stats in caches.items():
            lines.append(
                f"  {name + ':':<14} {stats['hits']} hits, {stats['misses']} misses "
                f"({stats['hit_rate'] * 100:.0f}% hit rate)"
            )
    return "\n".join(lines)
