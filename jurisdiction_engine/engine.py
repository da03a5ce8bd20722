"""Resolution engine: ZIP code -> jurisdiction, coverage and representatives.

Pipeline per (ZIP, options) key:

  cache lookup -> location lookup -> classifier -> coverage resolver
    -> parallel source adapters (only the tiers coverage allows)
    -> aggregator -> cache store -> ResolutionResponse

Location and classification are cached per ZIP; responses are cached per
(ZIP, options signature) so a change of option flags never serves a
roster computed under different options. Unsupported locations return a
response with no representatives and never contact a source adapter.

Usage:
    async with ResolutionEngine(config) as engine:
        response = await engine.resolve("90210", {"includeBillData": True})
"""

import asyncio
import contextlib
import logging
import time

from pydantic import ValidationError as PydanticValidationError

from jurisdiction_engine.adapters import build_default_adapters
from jurisdiction_engine.adapters.base import SourceAdapter
from jurisdiction_engine.aggregator import Aggregator
from jurisdiction_engine.cache import TTLCache
from jurisdiction_engine.classifier import JurisdictionClassifier, describe_area
from jurisdiction_engine.config import load_config
from jurisdiction_engine.coverage import CoverageResolver
from jurisdiction_engine.exceptions import (
    EngineError,
    HardFailureError,
    SourceError,
    ValidationError,
)
from jurisdiction_engine.geocoding import ChainedLookup, GeocodioLookup, LocationLookup, ZipTableLookup
from jurisdiction_engine.metrics import EngineMetrics
from jurisdiction_engine.schemas.models import (
    CoverageType,
    JurisdictionDetectionResult,
    LocationData,
    ResolutionResponse,
    ResolveOptions,
    Tier,
    is_valid_zip,
)

logger = logging.getLogger(__name__)


def _validate_zip(zip_code) -> str:
    if not is_valid_zip(zip_code):
        raise ValidationError(f"ZIP code must be exactly 5 digits, got {zip_code!r}")
    return zip_code


def _parse_options(options) -> ResolveOptions:
    if options is None:
        return ResolveOptions()
    if isinstance(options, ResolveOptions):
        return options
    if not isinstance(options, dict):
        raise ValidationError(f"options must be a mapping, got {type(options).__name__}")
    try:
        return ResolveOptions.model_validate(options)
    except PydanticValidationError as e:
        raise ValidationError(f"invalid options: {e}") from e


class ResolutionEngine:
    """Wires lookup, classifier, coverage, adapters, aggregator and caches.

    Every collaborator is injectable; omitted ones are built from config.

    Args:
        config: Engine config dict; loaded from config/engine_config.json
            when omitted.
        lookup: LocationLookup. Defaults to the local ZIP table, then Geocodio.
        adapters: Mapping of tier -> SourceAdapter.
        classifier: JurisdictionClassifier.
        clock: Monotonic clock for cache expiry (tests).
    """

    def __init__(
        self,
        config: dict | None = None,
        lookup: LocationLookup | None = None,
        adapters: dict[Tier, SourceAdapter] | None = None,
        classifier: JurisdictionClassifier | None = None,
        clock=None,
    ):
        self.config = config if config is not None else load_config()
        cache_cfg = self.config.get("cache", {})

        self.metrics = EngineMetrics(cache_cfg.get("metrics_window", 500))
        self.lookup = lookup or ChainedLookup([ZipTableLookup(), GeocodioLookup(self.config)])
        self.classifier = classifier or JurisdictionClassifier(self.config)
        self.coverage = CoverageResolver(self.config)
        self.adapters = adapters if adapters is not None else build_default_adapters(self.config)
        self.aggregator = Aggregator(self.adapters, self.config, metrics=self.metrics)

        self.location_cache = TTLCache(
            "location", cache_cfg.get("location_ttl", 86400), clock=clock, metrics=self.metrics,
        )
        self.response_cache = TTLCache(
            "aggregation", cache_cfg.get("aggregation_ttl", 1800), clock=clock, metrics=self.metrics,
        )
        # TTL for responses with failed tiers; 0 keeps them out of the cache
        self.partial_ttl = cache_cfg.get("partial_ttl", 0)
        self.sweep_interval = cache_cfg.get("sweep_interval", 300)
        self.warm_up_zips: list[str] = list(cache_cfg.get("warm_up_zips", []))
        self.warm_up_on_start = cache_cfg.get("warm_up_on_start", True)

        self._sweeper: asyncio.Task | None = None
        self._background: set[asyncio.Task] = set()

    # -- Lifecycle ----------------------------------------------------------

    async def start(self) -> None:
        """Start the periodic sweep and the configured warm-up."""
        if self._sweeper is None:
            self._sweeper = asyncio.create_task(self._sweep_loop())
        if self.warm_up_on_start and self.warm_up_zips:
            self.warm_up(self.warm_up_zips)

    async def close(self) -> None:
        tasks = list(self._background)
        if self._sweeper is not None:
            tasks.append(self._sweeper)
            self._sweeper = None
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._background.clear()

    async def __aenter__(self) -> "ResolutionEngine":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            evicted = self.location_cache.sweep() + self.response_cache.sweep()
            if evicted:
                logger.debug("Cache sweep evicted %d entries", evicted)

    # -- Resolution ---------------------------------------------------------

    async def resolve(self, zip_code: str, options=None) -> ResolutionResponse:
        """Resolve ``zip_code`` into a classified, aggregated roster.

        Args:
            zip_code: Five-digit ZIP code.
            options: ResolveOptions, a dict with snake_case or camelCase
                keys, or None for defaults.

        Raises:
            ValidationError: Malformed ZIP code or options; nothing was fetched.
            HardFailureError: Location lookup or every requested tier failed.
        """
        zip_code = _validate_zip(zip_code)
        opts = _parse_options(options)

        start = time.perf_counter()
        key = (zip_code, opts.signature())
        response = await self.response_cache.get_or_compute(
            key, lambda: self._compute(zip_code, opts), ttl=self._response_ttl,
        )
        self.metrics.record("resolve", (time.perf_counter() - start) * 1000)
        return response

    def _response_ttl(self, response: ResolutionResponse) -> float:
        return self.partial_ttl if response.partial else self.response_cache.ttl

    async def classify_zip(self, zip_code: str) -> JurisdictionDetectionResult:
        """Classify ``zip_code`` without fetching representatives."""
        _, jurisdiction = await self._classify(_validate_zip(zip_code))
        return jurisdiction

    async def _classify(self, zip_code: str) -> tuple[LocationData | None, JurisdictionDetectionResult]:
        async def compute():
            try:
                location = await self.lookup.geocode(zip_code)
            except SourceError as e:
                logger.error("Location lookup failed for %s: %s", zip_code, e)
                raise HardFailureError(zip_code, ["location"], {"location": str(e)}) from e
            return location, self.classifier.classify(location, zip_code)

        return await self.location_cache.get_or_compute(zip_code, compute)

    async def _compute(self, zip_code: str, options: ResolveOptions) -> ResolutionResponse:
        location, jurisdiction = await self._classify(zip_code)
        coverage = self.coverage.resolve(jurisdiction)
        area_info = describe_area(jurisdiction)

        if coverage.type == CoverageType.NOT_SUPPORTED:
            logger.info(
                "Resolved %s: not supported (%s, confidence %.2f)",
                zip_code, jurisdiction.jurisdiction_type.value, jurisdiction.confidence,
            )
            return ResolutionResponse(
                zip_code=zip_code,
                jurisdiction=jurisdiction,
                coverage=coverage,
                area_info=area_info,
            )

        result = await self.aggregator.aggregate(
            zip_code, coverage, options,
            location=location, jurisdiction=jurisdiction, area_info=area_info,
        )
        logger.info(
            "Resolved %s: %s, %d representatives (%d federal, %d state, %d local)%s",
            zip_code, coverage.type.value, result.total,
            result.breakdown.federal, result.breakdown.state, result.breakdown.local,
            " [partial]" if result.partial else "",
        )
        return ResolutionResponse.from_aggregation(result, jurisdiction, coverage, area_info)

    # -- Warm-up ------------------------------------------------------------

    def warm_up(self, zips: list[str] | None = None) -> asyncio.Task:
        """Populate the cache for ``zips`` in the background.

        Returns immediately with the scheduled task; its result is the
        number of ZIP codes warmed. Failures are logged, never raised.
        """
        targets = list(zips if zips is not None else self.warm_up_zips)
        task = asyncio.create_task(self._warm_up(targets))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _warm_up(self, zips: list[str]) -> int:
        async def warm_one(zip_code: str) -> bool:
            try:
                await self.resolve(zip_code)
                return True
            except EngineError as e:
                logger.warning("Warm-up skipped %s: %s", zip_code, e)
                return False

        start = time.perf_counter()
        results = await asyncio.gather(*(warm_one(z) for z in zips))
        warmed = sum(results)
        logger.info(
            "Cache warm-up: %d/%d ZIP codes in %.0fms",
            warmed, len(zips), (time.perf_counter() - start) * 1000,
        )
        return warmed

    # -- Cache control and diagnostics --------------------------------------

    def clear_cache(self) -> None:
        self.location_cache.clear()
        self.response_cache.clear()
        logger.info("Caches cleared")

    def invalidate_tier(self, tier: Tier | str) -> int:
        """Drop cached responses whose roster included ``tier``."""
        tier = Tier(tier)
        return self.response_cache.invalidate_where(
            lambda _key, response: tier in response.coverage.allowed_tiers
        )

    def diagnostics(self) -> dict:
        return {
            "metrics": self.metrics.snapshot(),
            "cache_sizes": {
                "location": len(self.location_cache),
                "aggregation": len(self.response_cache),
            },
            "sources": {tier.value: adapter.health() for tier, adapter in self.adapters.items()},
            "coverage": self.coverage.coverage_stats(),
        }
