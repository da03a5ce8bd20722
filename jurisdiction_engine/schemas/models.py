"""Pydantic v2 models for the jurisdiction engine's data records.

Every record is frozen: locations, classifications and aggregations are
rebuilt from source on cache expiry, never patched in place. Validation
happens at construction so an invariant violation surfaces as an error
where the record is built, not as a wrong roster downstream.

Records modeled:
- LocationData               -- one geocoded ZIP code
- JurisdictionDetectionResult -- classifier output
- CoverageLevel               -- which tiers may be displayed
- Representative              -- one normalized office holder
- AggregationResult           -- merged roster for one (ZIP, options) pair
- ResolveOptions              -- closed option set accepted by resolve()
- ResolutionResponse          -- what resolve() hands back to callers
"""

from __future__ import annotations

import enum
import re
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    field_serializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

ZIP_PATTERN = re.compile(r"^\d{5}$")


def is_valid_zip(zip_code: object) -> bool:
    """Return True when ``zip_code`` is a string of exactly five digits."""
    return isinstance(zip_code, str) and bool(ZIP_PATTERN.match(zip_code))


# ── Closed variant sets ──


class Tier(str, enum.Enum):
    """Government tier, each served by one independent source adapter."""

    FEDERAL = "federal"
    STATE = "state"
    LOCAL = "local"


TIER_ORDER: tuple[Tier, ...] = (Tier.FEDERAL, Tier.STATE, Tier.LOCAL)
"""Canonical tier order for merged rosters and reports."""


class JurisdictionType(str, enum.Enum):
    INCORPORATED_CITY = "incorporated_city"
    UNINCORPORATED_AREA = "unincorporated_area"
    CENSUS_DESIGNATED_PLACE = "census_designated_place"
    SPECIAL_DISTRICT = "special_district"
    UNKNOWN = "unknown"


# Jurisdiction types governed directly by the county (no municipal officials)
COUNTY_GOVERNED_TYPES = frozenset({
    JurisdictionType.UNINCORPORATED_AREA,
    JurisdictionType.CENSUS_DESIGNATED_PLACE,
})


class CoverageType(str, enum.Enum):
    FULL_COVERAGE = "full_coverage"
    FEDERAL_ONLY = "federal_only"
    NOT_SUPPORTED = "not_supported"


class RepresentativeLevel(str, enum.Enum):
    FEDERAL = "federal"
    STATE = "state"
    COUNTY = "county"
    MUNICIPAL = "municipal"


# Which representative levels each source tier may produce
TIER_LEVELS: dict[Tier, frozenset[RepresentativeLevel]] = {
    Tier.FEDERAL: frozenset({RepresentativeLevel.FEDERAL}),
    Tier.STATE: frozenset({RepresentativeLevel.STATE}),
    Tier.LOCAL: frozenset({RepresentativeLevel.COUNTY, RepresentativeLevel.MUNICIPAL}),
}


class DegradationState(str, enum.Enum):
    """Outcome of a single aggregation attempt."""

    PENDING = "pending"
    PARTIAL_SUCCESS = "partial_success"
    FULL_SUCCESS = "full_success"
    HARD_FAILURE = "hard_failure"


def _sorted_tiers(tiers) -> list[str]:
    return [t.value for t in TIER_ORDER if t in tiers]


# ── Location ──


class LocationData(BaseModel):
    """Geocoded location for a single ZIP code.

    Produced once per ZIP by a LocationLookup and cached.
    """

    model_config = ConfigDict(frozen=True)

    zip_code: str = Field(
        ...,
        description="Five-digit postal ZIP code",
        examples=["90210", "95814"],
    )
    city: str = Field(
        default="",
        description="Primary place name reported by the geocoder",
        examples=["Beverly Hills", "Unincorporated Kern County"],
    )
    state: str = Field(
        default="",
        description="Two-letter state abbreviation",
        examples=["CA", "TX"],
    )
    county: str = Field(
        default="",
        description="County name including the 'County' suffix",
        examples=["Los Angeles County"],
    )
    coordinates: Optional[tuple[float, float]] = Field(
        default=None,
        description="(latitude, longitude) of the ZIP centroid",
    )
    congressional_district: Optional[int] = Field(
        default=None,
        ge=0,
        description="Congressional district number. 0 for at-large states.",
    )
    state_senate_district: Optional[int] = Field(default=None, ge=0)
    state_assembly_district: Optional[int] = Field(default=None, ge=0)

    @field_validator("zip_code")
    @classmethod
    def validate_zip_code(cls, v: str) -> str:
        if not is_valid_zip(v):
            raise ValueError(f"zip_code must be exactly 5 digits, got '{v}'")
        return v

    @field_validator("state")
    @classmethod
    def normalize_state(cls, v: str) -> str:
        return v.strip().upper() if len(v.strip()) == 2 else v.strip()


# ── Jurisdiction ──


class JurisdictionDetectionResult(BaseModel):
    """Classifier output for one location.

    ``government_levels`` lists the tiers of government that apply to the
    location at all; ``has_local_representatives`` says whether there is a
    municipal (or special district) body of its own. County-governed areas
    still have the local tier (the county) but no local representatives.
    """

    model_config = ConfigDict(frozen=True)

    zip_code: str = Field(..., description="ZIP code that was classified")
    jurisdiction_type: JurisdictionType
    government_levels: frozenset[Tier] = Field(default_factory=frozenset)
    has_local_representatives: bool = False
    confidence: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Trust in the classification, derived from the answering source",
        examples=[0.92, 0.65, 0.3, 0.0],
    )
    source: str = Field(
        ...,
        description="Classification source that answered",
        examples=["boundary_registry", "name_pattern", "fuzzy_match", "fallback", "none"],
    )
    county: str = ""
    name: str = ""
    state: str = ""
    description: str = ""

    @model_validator(mode="after")
    def validate_local_representation(self) -> JurisdictionDetectionResult:
        if self.jurisdiction_type in COUNTY_GOVERNED_TYPES and self.has_local_representatives:
            raise ValueError(
                f"{self.jurisdiction_type.value} cannot have local representatives"
            )
        return self

    @field_serializer("government_levels")
    def serialize_levels(self, levels: frozenset[Tier]) -> list[str]:
        return _sorted_tiers(levels)


class LevelRule(BaseModel):
    """Whether one representative level applies to a jurisdiction, and why."""

    model_config = ConfigDict(frozen=True)

    level: RepresentativeLevel
    applicable: bool
    reason: str


class RepresentativeRules(BaseModel):
    """Which representative levels a jurisdiction has.

    Independent of coverage: a county-governed area still has county
    supervisors even when only the federal tier is displayed.
    """

    model_config = ConfigDict(frozen=True)

    applicable_levels: tuple[LevelRule, ...] = ()
    excluded_levels: tuple[RepresentativeLevel, ...] = ()
    special_rules: tuple[str, ...] = ()


class AreaInfo(BaseModel):
    """User-facing description of a jurisdiction."""

    model_config = ConfigDict(frozen=True)

    title: str
    description: str
    government_structure: str
    representatives: str
    rules: Optional[RepresentativeRules] = None


# ── Coverage ──


class CoverageLevel(BaseModel):
    """Policy decision about which tiers are safe to display."""

    model_config = ConfigDict(frozen=True)

    type: CoverageType
    show_federal: bool = False
    show_state: bool = False
    show_local: bool = False
    message: str = ""
    collect_email: bool = False
    expand_message: Optional[str] = None

    @model_validator(mode="after")
    def validate_not_supported(self) -> CoverageLevel:
        if self.type == CoverageType.NOT_SUPPORTED and (
            self.show_federal or self.show_state or self.show_local
        ):
            raise ValueError("not_supported coverage cannot show any tier")
        return self

    @property
    def allowed_tiers(self) -> tuple[Tier, ...]:
        """Tiers the aggregator may call, in canonical order."""
        flags = {
            Tier.FEDERAL: self.show_federal,
            Tier.STATE: self.show_state,
            Tier.LOCAL: self.show_local,
        }
        return tuple(t for t in TIER_ORDER if flags[t])


# ── Representatives ──


class ContactInfo(BaseModel):
    """Normalized contact details. Placeholder values are stored as None."""

    model_config = ConfigDict(frozen=True)

    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    office_address: Optional[str] = None

    def is_empty(self) -> bool:
        return not any((self.phone, self.email, self.website, self.office_address))


class Representative(BaseModel):
    """One office holder, normalized from any source adapter."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Stable identifier, unique within the merged roster",
        examples=["federal:P000197", "ocd-person/5a1b...", "local:ca-los-angeles-county-d3"],
    )
    name: str = Field(..., min_length=1)
    title: str = ""
    level: RepresentativeLevel
    jurisdiction: str = Field(
        default="",
        description="Human-readable seat label",
        examples=["CA - District 36", "CA - Senate District 26", "Los Angeles County"],
    )
    party: Optional[str] = None
    district: Optional[str] = None
    contact_info: ContactInfo = Field(default_factory=ContactInfo)
    source_tier: Tier
    source: str = Field(default="", description="Adapter that produced this record")
    committees: tuple[str, ...] = ()
    voting_record: Optional[dict] = None
    sponsored_bills: tuple[dict, ...] = ()

    @model_validator(mode="after")
    def validate_level_matches_tier(self) -> Representative:
        if self.level not in TIER_LEVELS[self.source_tier]:
            raise ValueError(
                f"level '{self.level.value}' is not produced by the "
                f"'{self.source_tier.value}' tier"
            )
        return self


class Breakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    federal: int = Field(default=0, ge=0)
    state: int = Field(default=0, ge=0)
    local: int = Field(default=0, ge=0)

    @property
    def total(self) -> int:
        return self.federal + self.state + self.local


class AggregationResult(BaseModel):
    """Merged roster for one (ZIP, options) pair.

    Invariants: ``total == len(representatives)`` and the breakdown sums to
    ``total``. ``partial`` is set whenever any requested tier failed.
    """

    model_config = ConfigDict(frozen=True)

    zip_code: str
    representatives: tuple[Representative, ...] = ()
    breakdown: Breakdown = Field(default_factory=Breakdown)
    total: int = Field(default=0, ge=0)
    partial: bool = False
    outcome: DegradationState = DegradationState.FULL_SUCCESS
    requested_tiers: frozenset[Tier] = Field(default_factory=frozenset)
    failed_tiers: frozenset[Tier] = Field(default_factory=frozenset)
    tier_errors: dict[str, str] = Field(default_factory=dict)
    jurisdiction: Optional[JurisdictionDetectionResult] = None
    area_info: Optional[AreaInfo] = None

    @model_validator(mode="after")
    def validate_counts(self) -> AggregationResult:
        if self.total != len(self.representatives):
            raise ValueError(
                f"total ({self.total}) != len(representatives) ({len(self.representatives)})"
            )
        if self.breakdown.total != self.total:
            raise ValueError(
                f"breakdown sums to {self.breakdown.total}, expected {self.total}"
            )
        if self.partial != bool(self.failed_tiers):
            raise ValueError("partial must be set exactly when failed_tiers is non-empty")
        return self

    @field_serializer("requested_tiers", "failed_tiers")
    def serialize_tiers(self, tiers: frozenset[Tier]) -> list[str]:
        return _sorted_tiers(tiers)

    def for_tier(self, tier: Tier) -> tuple[Representative, ...]:
        return tuple(r for r in self.representatives if r.source_tier == tier)

    @property
    def federal(self) -> tuple[Representative, ...]:
        return self.for_tier(Tier.FEDERAL)

    @property
    def state_reps(self) -> tuple[Representative, ...]:
        return self.for_tier(Tier.STATE)

    @property
    def local(self) -> tuple[Representative, ...]:
        return self.for_tier(Tier.LOCAL)


# ── Boundary records ──


class ResolveOptions(BaseModel):
    """Closed option set for resolve(). Unknown keys are rejected.

    Accepts both snake_case and camelCase keys
    (``include_voting_records`` / ``includeVotingRecords``).
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    include_voting_records: StrictBool = False
    include_bill_data: StrictBool = False
    include_committee_info: StrictBool = False

    def signature(self) -> str:
        """Stable cache-key fragment, e.g. ``"votes=1,bills=0,committees=0"``."""
        return (
            f"votes={int(self.include_voting_records)},"
            f"bills={int(self.include_bill_data)},"
            f"committees={int(self.include_committee_info)}"
        )


class ResolutionResponse(BaseModel):
    """What ResolutionEngine.resolve() returns to its caller."""

    model_config = ConfigDict(frozen=True)

    zip_code: str
    federal: tuple[Representative, ...] = ()
    state: tuple[Representative, ...] = ()
    local: tuple[Representative, ...] = ()
    total: int = 0
    breakdown: Breakdown = Field(default_factory=Breakdown)
    jurisdiction: JurisdictionDetectionResult
    coverage: CoverageLevel
    area_info: Optional[AreaInfo] = None
    partial: bool = False
    failed_tiers: frozenset[Tier] = Field(default_factory=frozenset)

    @field_serializer("failed_tiers")
    def serialize_failed(self, tiers: frozenset[Tier]) -> list[str]:
        return _sorted_tiers(tiers)

    @classmethod
    def from_aggregation(
        cls,
        result: AggregationResult,
        jurisdiction: JurisdictionDetectionResult,
        coverage: CoverageLevel,
        area_info: AreaInfo | None,
    ) -> ResolutionResponse:
        return cls(
            zip_code=result.zip_code,
            federal=result.federal,
            state=result.state_reps,
            local=result.local,
            total=result.total,
            breakdown=result.breakdown,
            jurisdiction=jurisdiction,
            coverage=coverage,
            area_info=area_info,
            partial=result.partial,
            failed_tiers=result.failed_tiers,
        )

    @property
    def representatives(self) -> tuple[Representative, ...]:
        return self.federal + self.state + self.local
