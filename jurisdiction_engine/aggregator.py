"""Multi-tier representative aggregation with graceful degradation.

Fans out one task per tier allowed by the coverage decision, waits for
every tier to settle (or the global timeout to elapse), then merges the
successful rosters in tier order: federal, state, local.

Degradation per attempt:
  PENDING -> FULL_SUCCESS     every requested tier answered
  PENDING -> PARTIAL_SUCCESS  at least one tier answered, at least one failed
  PENDING -> HARD_FAILURE     every requested tier failed; HardFailureError

Each tier gets ``tier_retries`` extra attempts after ``retry_backoff``
seconds, except when its circuit breaker is open. Tiers still running at
the global timeout are cancelled and recorded as timed out.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field

from jurisdiction_engine.adapters.base import SourceAdapter
from jurisdiction_engine.adapters.normalize import dedupe_by_id, is_placeholder
from jurisdiction_engine.exceptions import (
    CircuitOpenError,
    HardFailureError,
    SourceError,
    SourceTimeoutError,
)
from jurisdiction_engine.schemas.models import (
    TIER_LEVELS,
    TIER_ORDER,
    AggregationResult,
    AreaInfo,
    Breakdown,
    CoverageLevel,
    DegradationState,
    JurisdictionDetectionResult,
    LocationData,
    Representative,
    ResolveOptions,
    Tier,
)

logger = logging.getLogger(__name__)


@dataclass
class TierOutcome:
    """Settled result of one tier's fetch."""

    tier: Tier
    representatives: list[Representative] = field(default_factory=list)
    error: str | None = None
    attempts: int = 0
    elapsed_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


class Aggregator:
    """Merge per-tier adapter results into one AggregationResult.

    Constructor args:
        adapters: Mapping of tier -> SourceAdapter
        config:   Engine config dict (reads the "aggregation" section)
        metrics:  Optional EngineMetrics; per-tier durations are recorded
                  as "tier.<name>"
    """

    def __init__(self, adapters: dict[Tier, SourceAdapter], config: dict | None = None, metrics=None):
        agg_cfg = (config or {}).get("aggregation", {})
        self.adapters = dict(adapters)
        self.global_timeout = agg_cfg.get("global_timeout", 8.0)
        self.tier_retries = max(0, agg_cfg.get("tier_retries", 1))
        self.retry_backoff = agg_cfg.get("retry_backoff", 0.25)
        self.metrics = metrics

    async def aggregate(
        self,
        zip_code: str,
        coverage: CoverageLevel,
        options: ResolveOptions,
        location: LocationData | None = None,
        jurisdiction: JurisdictionDetectionResult | None = None,
        area_info: AreaInfo | None = None,
    ) -> AggregationResult:
        """Fetch every tier ``coverage`` allows, in parallel, and merge.

        Raises:
            HardFailureError: Every requested tier failed.
        """
        requested = coverage.allowed_tiers
        outcomes = await self._fetch_all(zip_code, requested, options, location)

        merged: list[Representative] = []
        for tier in TIER_ORDER:
            outcome = outcomes.get(tier)
            if outcome is not None and outcome.ok:
                merged.extend(self._clean(tier, outcome.representatives))
        merged = dedupe_by_id(merged)

        failed = [t for t in requested if not outcomes[t].ok]
        tier_errors = {t.value: outcomes[t].error for t in failed}

        if requested and len(failed) == len(requested):
            outcome_state = DegradationState.HARD_FAILURE
        elif failed:
            outcome_state = DegradationState.PARTIAL_SUCCESS
        else:
            outcome_state = DegradationState.FULL_SUCCESS
        logger.debug(
            "Aggregation for %s: %s -> %s",
            zip_code, DegradationState.PENDING.value, outcome_state.value,
        )

        if outcome_state == DegradationState.HARD_FAILURE:
            logger.error(
                "HARD FAILURE for %s: all tiers failed (%s)",
                zip_code, "; ".join(f"{k}: {v}" for k, v in tier_errors.items()),
            )
            raise HardFailureError(zip_code, [t.value for t in failed], tier_errors)

        if outcome_state == DegradationState.PARTIAL_SUCCESS:
            logger.warning(
                "DEGRADED: %s returned partial results, failed tiers: %s",
                zip_code, ", ".join(t.value for t in failed),
            )

        counts = {t: 0 for t in TIER_ORDER}
        for rep in merged:
            counts[rep.source_tier] += 1

        return AggregationResult(
            zip_code=zip_code,
            representatives=tuple(merged),
            breakdown=Breakdown(
                federal=counts[Tier.FEDERAL],
                state=counts[Tier.STATE],
                local=counts[Tier.LOCAL],
            ),
            total=len(merged),
            partial=bool(failed),
            outcome=outcome_state,
            requested_tiers=frozenset(requested),
            failed_tiers=frozenset(failed),
            tier_errors=tier_errors,
            jurisdiction=jurisdiction,
            area_info=area_info,
        )

    async def _fetch_all(
        self,
        zip_code: str,
        tiers: tuple[Tier, ...],
        options: ResolveOptions,
        location: LocationData | None,
    ) -> dict[Tier, TierOutcome]:
        outcomes: dict[Tier, TierOutcome] = {}
        tasks: dict[asyncio.Task, Tier] = {}
        for tier in tiers:
            adapter = self.adapters.get(tier)
            if adapter is None:
                outcomes[tier] = TierOutcome(tier, error="no adapter configured")
                continue
            task = asyncio.create_task(self._run_tier(adapter, tier, zip_code, options, location))
            tasks[task] = tier

        if not tasks:
            return outcomes

        done, pending = await asyncio.wait(tasks, timeout=self.global_timeout)
        for task in done:
            outcomes[tasks[task]] = task.result()
        for task in pending:
            tier = tasks[task]
            # Best-effort: the underlying request may still finish in the background
            task.cancel()
            error = SourceTimeoutError(
                tier.value, f"no response within {self.global_timeout}s", tier=tier.value,
            )
            logger.warning("%s tier for %s abandoned: %s", tier.value, zip_code, error)
            outcomes[tier] = TierOutcome(
                tier, error=str(error), elapsed_ms=self.global_timeout * 1000,
            )
        return outcomes

    async def _run_tier(
        self,
        adapter: SourceAdapter,
        tier: Tier,
        zip_code: str,
        options: ResolveOptions,
        location: LocationData | None,
    ) -> TierOutcome:
        outcome = TierOutcome(tier)
        start = time.monotonic()
        max_attempts = 1 + self.tier_retries
        while outcome.attempts < max_attempts:
            outcome.attempts += 1
            try:
                reps = await adapter.fetch_by_zip(zip_code, options, location)
                outcome.representatives = list(reps)
                outcome.error = None
                break
            except CircuitOpenError as e:
                logger.warning("DEGRADED: %s", e)
                outcome.error = str(e)
                break
            except SourceError as e:
                outcome.error = str(e)
                logger.warning(
                    "%s tier failed for %s (attempt %d/%d): %s",
                    tier.value, zip_code, outcome.attempts, max_attempts, e,
                )
            except Exception as e:
                outcome.error = f"{type(e).__name__}: {e}"
                logger.exception(
                    "%s tier raised unexpectedly for %s (attempt %d/%d)",
                    tier.value, zip_code, outcome.attempts, max_attempts,
                )
            if outcome.attempts < max_attempts:
                await asyncio.sleep(self.retry_backoff)

        outcome.elapsed_ms = (time.monotonic() - start) * 1000
        if self.metrics is not None:
            self.metrics.record(f"tier.{tier.value}", outcome.elapsed_ms)
        logger.debug(
            "%s tier for %s settled in %.0fms: %s",
            tier.value, zip_code, outcome.elapsed_ms,
            f"{len(outcome.representatives)} reps" if outcome.ok else outcome.error,
        )
        return outcome

    @staticmethod
    def _clean(tier: Tier, representatives: list[Representative]) -> list[Representative]:
        """Drop placeholder records and records from the wrong tier."""
        kept = []
        for rep in representatives:
            if is_placeholder(rep.name):
                logger.debug("Dropping placeholder representative %s", rep.id)
                continue
            if rep.source_tier != tier or rep.level not in TIER_LEVELS[tier]:
                logger.warning(
                    "Dropping %s: %s record returned by the %s adapter",
                    rep.id, rep.source_tier.value, tier.value,
                )
                continue
            kept.append(rep)
        return kept
