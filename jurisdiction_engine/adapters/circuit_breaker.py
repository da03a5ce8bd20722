"""Per-source circuit breaker.

States:
  CLOSED    -- requests flow to the source
  OPEN      -- the source is considered down; calls fail fast
  HALF_OPEN -- one probe is let through to test recovery

Transitions:
  CLOSED -> OPEN       after ``failure_threshold`` consecutive failed calls
  OPEN -> HALF_OPEN    once ``recovery_timeout`` seconds have passed
  HALF_OPEN -> CLOSED  when the probe succeeds
  HALF_OPEN -> OPEN    when the probe fails

A "failed call" is one whose whole retry loop was exhausted, so transient
errors that a retry absorbs never count against the source.
"""

import enum
import logging
import time
from collections.abc import Callable

logger = logging.getLogger(__name__)


class CircuitState(enum.Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Three-state breaker guarding one source.

    Args:
        name: Source identifier used in log lines (e.g. "openstates").
        failure_threshold: Consecutive failures before the circuit opens.
        recovery_timeout: Seconds to stay OPEN before allowing a probe.
        clock: Monotonic time source. Inject a fake for deterministic tests.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        clock: Callable[[], float] | None = None,
    ):
        self.name = name
        self.failure_threshold = max(1, failure_threshold)
        self.recovery_timeout = recovery_timeout
        self._clock = clock or time.monotonic

        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._opened_at = 0.0
        self._total_failures = 0
        self._total_successes = 0

    @property
    def state(self) -> CircuitState:
        """Current state; an expired OPEN circuit reports HALF_OPEN."""
        if self._state == CircuitState.OPEN:
            elapsed = self._clock() - self._opened_at
            if elapsed >= self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
                logger.info(
                    "%s: circuit OPEN -> HALF_OPEN after %.1fs", self.name, elapsed,
                )
        return self._state

    @property
    def is_call_permitted(self) -> bool:
        return self.state != CircuitState.OPEN

    def record_success(self) -> None:
        state = self.state
        self._consecutive_failures = 0
        self._total_successes += 1
        if state == CircuitState.HALF_OPEN:
            self._state = CircuitState.CLOSED
            logger.info("%s: probe succeeded, circuit HALF_OPEN -> CLOSED", self.name)

    def record_failure(self) -> None:
        # An expired OPEN circuit counts as HALF_OPEN, so a late failure restarts the timer
        state = self.state
        self._consecutive_failures += 1
        self._total_failures += 1

        if state == CircuitState.HALF_OPEN:
            self._trip("probe failed")
        elif (
            state == CircuitState.CLOSED
            and self._consecutive_failures >= self.failure_threshold
        ):
            self._trip(
                f"{self._consecutive_failures} consecutive failures "
                f">= threshold {self.failure_threshold}"
            )

    def _trip(self, reason: str) -> None:
        previous = self._state
        self._state = CircuitState.OPEN
        self._opened_at = self._clock()
        logger.warning(
            "%s: circuit %s -> OPEN (%s)", self.name, previous.name, reason,
        )

    def reset(self) -> None:
        """Force the breaker back to CLOSED with zeroed counters."""
        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._opened_at = 0.0
        self._total_failures = 0
        self._total_successes = 0
        logger.info("%s: circuit manually reset to CLOSED", self.name)

    def snapshot(self) -> dict:
        """Diagnostics view of the breaker."""
        return {
            "name": self.name,
            "state": self.state.value,
            "consecutive_failures": self._consecutive_failures,
            "total_failures": self._total_failures,
            "total_successes": self._total_successes,
        }
