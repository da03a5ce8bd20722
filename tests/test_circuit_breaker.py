"""Tests for the circuit breaker state machine and the shared HTTP client.

Covers all 4 state transitions:
  CLOSED -> OPEN (threshold failures)
  OPEN -> HALF_OPEN (recovery timeout elapsed)
  HALF_OPEN -> CLOSED (successful probe)
  HALF_OPEN -> OPEN (failed probe)

Plus HttpSource config integration, retry/backoff and Retry-After handling.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from conftest import FakeResponse, FakeSession, MockClock
from jurisdiction_engine.adapters.base import BACKOFF_BASE, MAX_RETRIES, HttpSource
from jurisdiction_engine.adapters.circuit_breaker import CircuitBreaker, CircuitState
from jurisdiction_engine.exceptions import CircuitOpenError, SourceError, SourceTimeoutError


def _tripped(threshold=2, timeout=10.0):
    clock = MockClock()
    cb = CircuitBreaker("test", failure_threshold=threshold, recovery_timeout=timeout, clock=clock)
    for _ in range(threshold):
        cb.record_failure()
    return cb, clock


# ── State machine unit tests ──


class TestCircuitBreakerStateMachine:

    def test_initial_state_is_closed(self):
        cb = CircuitBreaker("test", clock=MockClock())
        assert cb.state == CircuitState.CLOSED
        assert cb.is_call_permitted is True

    def test_stays_closed_below_threshold(self):
        cb = CircuitBreaker("test", failure_threshold=5, clock=MockClock())
        for _ in range(4):
            cb.record_failure()
        assert cb.state == CircuitState.CLOSED

    def test_opens_at_threshold(self):
        cb, _ = _tripped(threshold=5)
        assert cb.state == CircuitState.OPEN
        assert cb.is_call_permitted is False

    def test_open_to_half_open_after_timeout(self):
        cb, clock = _tripped(timeout=60.0)
        clock.advance(30.0)
        assert cb.state == CircuitState.OPEN
        clock.advance(31.0)
        assert cb.state == CircuitState.HALF_OPEN
        assert cb.is_call_permitted is True

    def test_half_open_to_closed_on_success(self):
        cb, clock = _tripped()
        clock.advance(11.0)
        cb.record_success()
        assert cb.state == CircuitState.CLOSED

    def test_half_open_to_open_on_failure(self):
        cb, clock = _tripped()
        clock.advance(11.0)
        assert cb.state == CircuitState.HALF_OPEN
        cb.record_failure()
        assert cb.state == CircuitState.OPEN

    def test_success_resets_failure_count(self):
        cb = CircuitBreaker("test", failure_threshold=5, clock=MockClock())
        for _ in range(4):
            cb.record_failure()
        cb.record_success()
        for _ in range(4):
            cb.record_failure()
        assert cb.state == CircuitState.CLOSED

    def test_threshold_clamped_to_one(self):
        cb = CircuitBreaker("test", failure_threshold=0, clock=MockClock())
        assert cb.failure_threshold == 1
        cb.record_failure()
        assert cb.state == CircuitState.OPEN

    def test_expired_open_closes_on_late_success(self):
        cb, clock = _tripped()
        clock.advance(11.0)
        # No state read in between: the call finishing now is the first sign of recovery
        cb.record_success()
        assert cb.state == CircuitState.CLOSED
        assert cb.snapshot()["consecutive_failures"] == 0

    def test_expired_open_restarts_timer_on_late_failure(self):
        cb, clock = _tripped(timeout=10.0)
        clock.advance(11.0)
        cb.record_failure()
        assert cb.state == CircuitState.OPEN
        clock.advance(9.0)
        assert cb.state == CircuitState.OPEN
        clock.advance(2.0)
        assert cb.state == CircuitState.HALF_OPEN

    def test_reset_returns_to_closed(self):
        cb, _ = _tripped()
        cb.reset()
        assert cb.state == CircuitState.CLOSED
        assert cb.snapshot()["total_failures"] == 0

    def test_snapshot(self):
        cb, _ = _tripped(threshold=3)
        snap = cb.snapshot()
        assert snap == {
            "name": "test",
            "state": "open",
            "consecutive_failures": 3,
            "total_failures": 3,
            "total_successes": 0,
        }

    def test_circuit_open_error_message(self):
        err = CircuitOpenError("openstates", tier="state")
        assert "openstates" in str(err)
        assert err.source_name == "openstates"
        assert err.tier == "state"
        assert isinstance(err, SourceError)


# ── HttpSource configuration ──


class TestHttpSourceConfig:

    def test_creates_breaker_from_config(self):
        config = {
            "resilience": {
                "max_retries": 5,
                "backoff_base": 3,
                "request_timeout": 45,
                "circuit_breaker": {"failure_threshold": 10, "recovery_timeout": 120},
            }
        }
        source = HttpSource("test_source", config=config)
        assert source.circuit_breaker.name == "test_source"
        assert source.circuit_breaker.failure_threshold == 10
        assert source.circuit_breaker.recovery_timeout == 120
        assert source.max_retries == 5
        assert source.request_timeout.total == 45

    def test_defaults_without_config(self):
        source = HttpSource("test_source")
        assert source.max_retries == MAX_RETRIES
        assert source.backoff_base == BACKOFF_BASE
        assert source.circuit_breaker.failure_threshold == 5

    @pytest.mark.parametrize("value", [0, -2])
    def test_backoff_base_clamped_to_one(self, value):
        source = HttpSource("test_source", config={"resilience": {"backoff_base": value}})
        assert source.backoff_base >= 1


# ── Retry loop ──


@pytest.fixture
def source():
    return HttpSource("test_source", config={"resilience": {"max_retries": 3}}, tier="state")


@pytest.fixture
def no_sleep():
    with patch("jurisdiction_engine.adapters.base.asyncio.sleep", new=AsyncMock()) as sleep:
        yield sleep


class TestRequestWithRetry:

    def test_success_returns_body(self, source, no_sleep):
        session = FakeSession([FakeResponse(body={"ok": True})])
        assert asyncio.run(source._request_with_retry(session, "GET", "u")) == {"ok": True}
        assert source.circuit_breaker.snapshot()["total_successes"] == 1

    def test_transient_failure_retried(self, source, no_sleep):
        session = FakeSession([FakeResponse(status=503), FakeResponse(body={"ok": True})])
        assert asyncio.run(source._request_with_retry(session, "GET", "u")) == {"ok": True}
        assert len(session.urls) == 2
        assert no_sleep.await_count == 1

    def test_empty_status_returns_none(self, source, no_sleep):
        session = FakeSession([FakeResponse(status=404)])
        assert asyncio.run(source._request_with_retry(session, "GET", "u", empty_statuses=(404,))) is None
        assert source.circuit_breaker.state == CircuitState.CLOSED

    def test_exhausted_retries_raise_source_error(self, source, no_sleep):
        session = FakeSession([FakeResponse(status=500)] * 3)
        with pytest.raises(SourceError) as exc_info:
            asyncio.run(source._request_with_retry(session, "GET", "u"))
        assert exc_info.value.tier == "state"
        assert source.circuit_breaker.snapshot()["consecutive_failures"] == 1

    def test_timeouts_raise_source_timeout(self, source, no_sleep):
        session = FakeSession([asyncio.TimeoutError()] * 3)
        with pytest.raises(SourceTimeoutError):
            asyncio.run(source._request_with_retry(session, "GET", "u"))

    def test_retry_after_honored_without_using_attempt(self, source, no_sleep):
        session = FakeSession([
            FakeResponse(status=429, headers={"Retry-After": "7"}),
            FakeResponse(status=500),
            FakeResponse(status=500),
            FakeResponse(body={"ok": True}),
        ])
        assert asyncio.run(source._request_with_retry(session, "GET", "u")) == {"ok": True}
        assert no_sleep.await_args_list[0].args == (7,)

    def test_non_json_body_is_source_error(self, source, no_sleep):
        session = FakeSession([FakeResponse(body="<html>Bad Gateway</html>")])
        with pytest.raises(SourceError, match="invalid JSON body"):
            asyncio.run(source._request_with_retry(session, "GET", "u"))
        assert len(session.urls) == 1
        assert source.circuit_breaker.snapshot()["consecutive_failures"] == 1

    def test_open_circuit_fails_fast(self, source, no_sleep):
        source.circuit_breaker = CircuitBreaker("test_source", failure_threshold=1, clock=MockClock())
        source.circuit_breaker.record_failure()
        session = FakeSession([])
        with pytest.raises(CircuitOpenError):
            asyncio.run(source._request_with_retry(session, "GET", "u"))
        assert session.urls == []

    def test_repeated_exhaustion_trips_breaker(self, no_sleep):
        source = HttpSource(
            "flaky",
            config={"resilience": {"max_retries": 1, "circuit_breaker": {"failure_threshold": 2}}},
        )
        for _ in range(2):
            with pytest.raises(SourceError):
                asyncio.run(source._request_with_retry(FakeSession([FakeResponse(status=502)]), "GET", "u"))
        assert source.circuit_breaker.state == CircuitState.OPEN
