"""Error taxonomy for the jurisdiction engine.

Only ValidationError and HardFailureError ever reach callers of
ResolutionEngine.resolve(). Source errors are caught per tier by the
Aggregator and reported through AggregationResult.failed_tiers.
"""


class EngineError(Exception):
    """Base class for all engine errors."""


class ValidationError(EngineError, ValueError):
    """Malformed input (ZIP code or options). Raised before any source call."""


class SourceError(EngineError):
    """A source adapter or lookup failed.

    Attributes:
        source_name: Identifier of the failing source (e.g. "congress_gov").
        tier: Government tier served by the source, if any.
    """

    def __init__(self, source_name: str, message: str, tier: str | None = None):
        self.source_name = source_name
        self.tier = tier
        super().__init__(f"{source_name}: {message}")


class SourceTimeoutError(SourceError):
    """A source did not answer within its request or global timeout."""


class CircuitOpenError(SourceError):
    """Raised when a call is attempted on an OPEN circuit breaker."""

    def __init__(self, source_name: str, tier: str | None = None):
        super().__init__(
            source_name,
            "circuit breaker OPEN, failing fast to avoid cascading failures",
            tier=tier,
        )


class HardFailureError(EngineError):
    """Every requested tier failed and no representatives were returned.

    Distinct from an empty-but-successful result: the caller should offer
    a "try again" affordance rather than show an empty roster.

    Attributes:
        zip_code: The ZIP code being resolved.
        failed_tiers: Tiers that failed, in tier order.
        tier_errors: Mapping of tier -> error message.
        retryable: Always True; the whole resolution may be re-invoked.
    """

    retryable = True

    def __init__(self, zip_code: str, failed_tiers: list[str], tier_errors: dict[str, str] | None = None):
        self.zip_code = zip_code
        self.failed_tiers = list(failed_tiers)
        self.tier_errors = dict(tier_errors or {})
        super().__init__(
            f"All requested tiers failed for ZIP {zip_code} "
            f"({', '.join(self.failed_tiers)}); please try again"
        )
