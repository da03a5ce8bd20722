"""Source adapter interface and the shared HTTP client behind it.

Every tier (federal, state, local) is served by one SourceAdapter. The
Aggregator only ever calls ``fetch_by_zip`` and treats all three alike;
each adapter owns its own request shaping and normalizes its output into
Representative records tagged with its tier.

HTTP-backed sources (adapters and the Geocodio lookup) inherit HttpSource
to get:
- A configurable User-Agent header
- Exponential backoff with jitter on transient failures
- Retry-After handling for 429 responses
- A per-source circuit breaker that fails fast while a source is down
- Transport errors converted into SourceError / SourceTimeoutError
"""

import asyncio
import logging
import random
from abc import ABC, abstractmethod

import aiohttp

from jurisdiction_engine.adapters.circuit_breaker import CircuitBreaker
from jurisdiction_engine.exceptions import CircuitOpenError, SourceError, SourceTimeoutError
from jurisdiction_engine.schemas.models import LocationData, Representative, ResolveOptions, Tier

logger = logging.getLogger(__name__)

USER_AGENT = "Jurisdiction-Engine/1.0 (representative lookup; automated)"
MAX_RETRIES = 2
BACKOFF_BASE = 2  # seconds
REQUEST_TIMEOUT = 5  # seconds


class HttpSource:
    """Shared resilience patterns for every HTTP-backed source.

    Args:
        source_name: Identifier for the source (e.g. "congress_gov").
        config: Engine config dict. Reads the "resilience" section for
                retry/backoff/circuit-breaker parameters; missing keys fall
                back to module defaults.
        tier: Tier served by this source, attached to raised SourceErrors.
    """

    def __init__(self, source_name: str, config: dict | None = None, tier: str | None = None):
        self.source_name = source_name
        self._tier_label = tier
        self._headers = {"User-Agent": USER_AGENT}

        resilience = (config or {}).get("resilience", {})
        self.max_retries = max(1, resilience.get("max_retries", MAX_RETRIES))
        self.backoff_base = max(1, resilience.get("backoff_base", BACKOFF_BASE))
        self.backoff_max = resilience.get("backoff_max", 30)
        self.request_timeout = aiohttp.ClientTimeout(
            total=resilience.get("request_timeout", REQUEST_TIMEOUT)
        )

        cb_config = resilience.get("circuit_breaker", {})
        self.circuit_breaker = CircuitBreaker(
            name=source_name,
            failure_threshold=cb_config.get("failure_threshold", 5),
            recovery_timeout=cb_config.get("recovery_timeout", 60),
        )

    def _create_session(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession(headers=self._headers)

    def _error(self, message: str) -> SourceError:
        return SourceError(self.source_name, message, tier=self._tier_label)

    async def _request_with_retry(
        self,
        session: aiohttp.ClientSession,
        method: str,
        url: str,
        retries: int | None = None,
        empty_statuses: tuple[int, ...] = (),
        **kwargs,
    ) -> dict | None:
        """Issue a request, retrying transient failures with exponential backoff.

        The circuit breaker wraps the whole retry loop: it is checked once on
        entry and records a single success or failure for the final outcome.

        Args:
            session: Open aiohttp session.
            method: HTTP method name ("GET", "POST").
            url: Fully built request URL.
            retries: Attempt budget; defaults to ``self.max_retries``.
            empty_statuses: Statuses meaning "no data" (e.g. 404); these
                return None without counting as a failure.

        Returns:
            Decoded JSON body, or None for an ``empty_statuses`` response.

        Raises:
            CircuitOpenError: The source's breaker is open.
            SourceTimeoutError: Every attempt timed out.
            SourceError: Retries exhausted on any other failure, or the
                body was not valid JSON.
        """
        if retries is None:
            retries = self.max_retries

        if not self.circuit_breaker.is_call_permitted:
            raise CircuitOpenError(self.source_name, tier=self._tier_label)

        request_fn = getattr(session, method.lower(), None)
        if request_fn is None:
            raise ValueError(f"Unsupported HTTP method: {method}")
        kwargs.setdefault("timeout", self.request_timeout)

        last_error: Exception | None = None
        attempt = 0
        rate_limit_hits = 0
        while attempt < retries:
            try:
                async with request_fn(url, **kwargs) as resp:
                    if resp.status in empty_statuses:
                        self.circuit_breaker.record_success()
                        return None
                    if resp.status == 429:
                        rate_limit_hits += 1
                        if rate_limit_hits > retries:
                            last_error = self._error("too many 429 responses")
                            break
                        retry_after = self._retry_after(resp.headers.get("Retry-After", ""), attempt)
                        logger.warning(
                            "%s: 429 rate limited, waiting %ds", self.source_name, retry_after,
                        )
                        await asyncio.sleep(retry_after)
                        continue  # server-requested delay does not use an attempt
                    resp.raise_for_status()
                    try:
                        body = await resp.json(content_type=None)
                    except ValueError as e:
                        # e.g. an HTML gateway page served with 200; not retried
                        last_error = self._error(f"invalid JSON body: {e}")
                        break
                    self.circuit_breaker.record_success()
                    return body
            except asyncio.TimeoutError as e:
                last_error = e
                logger.warning(
                    "%s: request timed out (attempt %d/%d)",
                    self.source_name, attempt + 1, retries,
                )
            except aiohttp.ClientError as e:
                last_error = e
                logger.warning(
                    "%s: request failed (attempt %d/%d): %s",
                    self.source_name, attempt + 1, retries, e,
                )

            attempt += 1
            if attempt < retries:
                backoff = min(self.backoff_base ** attempt, self.backoff_max) + random.uniform(0, 0.5)
                logger.debug("%s: retrying in %.1fs", self.source_name, backoff)
                await asyncio.sleep(backoff)

        self.circuit_breaker.record_failure()
        logger.error(
            "%s: all %d attempts exhausted, last error: %s",
            self.source_name, retries, last_error,
        )
        if isinstance(last_error, asyncio.TimeoutError):
            raise SourceTimeoutError(
                self.source_name, f"timed out after {retries} attempts", tier=self._tier_label,
            ) from last_error
        if isinstance(last_error, SourceError):
            raise last_error
        raise self._error(f"request failed after {retries} attempts: {last_error}") from last_error

    def _retry_after(self, raw: str, attempt: int) -> int:
        try:
            return max(0, min(int(raw), self.backoff_max))
        except (ValueError, TypeError):
            return min(self.backoff_base ** (attempt + 1), self.backoff_max)


class SourceAdapter(ABC):
    """Capability interface shared by the three tier adapters.

    Subclasses set ``tier`` and ``source_name`` and implement fetch_by_zip.
    Implementations raise SourceError / SourceTimeoutError on failure; the
    Aggregator converts those into per-tier failures.
    """

    tier: Tier
    source_name: str

    @abstractmethod
    async def fetch_by_zip(
        self,
        zip_code: str,
        options: ResolveOptions,
        location: LocationData | None = None,
    ) -> list[Representative]:
        """Return normalized representatives for ``zip_code`` in this tier."""
        ...

    def health(self) -> dict:
        """Diagnostics for this adapter. HTTP adapters add breaker state."""
        return {"source": self.source_name, "tier": self.tier.value}
