"""Pydantic v2 schema models for the jurisdiction engine.

All models are frozen and validated at construction. Schema violations
are bugs, not warnings.
"""

from jurisdiction_engine.schemas.models import (
    COUNTY_GOVERNED_TYPES,
    TIER_LEVELS,
    TIER_ORDER,
    AggregationResult,
    AreaInfo,
    Breakdown,
    ContactInfo,
    CoverageLevel,
    CoverageType,
    DegradationState,
    JurisdictionDetectionResult,
    JurisdictionType,
    LocationData,
    Representative,
    RepresentativeLevel,
    ResolutionResponse,
    ResolveOptions,
    Tier,
    is_valid_zip,
)

__all__ = [
    "COUNTY_GOVERNED_TYPES",
    "TIER_LEVELS",
    "TIER_ORDER",
    "AggregationResult",
    "AreaInfo",
    "Breakdown",
    "ContactInfo",
    "CoverageLevel",
    "CoverageType",
    "DegradationState",
    "JurisdictionDetectionResult",
    "JurisdictionType",
    "LocationData",
    "Representative",
    "RepresentativeLevel",
    "ResolutionResponse",
    "ResolveOptions",
    "Tier",
    "is_valid_zip",
]
