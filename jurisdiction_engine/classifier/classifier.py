"""Jurisdiction classifier.

Classifies a location by trying classification sources in descending
reliability order; the first source that answers wins and its reliability
band sets the confidence:

  1. boundary_registry -- exact ZIP match in the boundary registry (authoritative)
  2. name_pattern      -- "City of ...", "... CDP", "... Water District" (heuristic)
  3. fuzzy_match       -- place name fuzzy-matched against the registry (heuristic)
  4. place_name        -- a plain non-county place name, assumed incorporated (heuristic)
  5. fallback          -- location known, nothing matched (default)
  6. none              -- no location at all: unknown, confidence 0.0

Low confidence and unknown jurisdictions are results, not errors. Only a
malformed ZIP code raises.
"""

import logging
import re

from jurisdiction_engine.classifier.confidence import source_confidence
from jurisdiction_engine.classifier.registry import BoundaryRegistry
from jurisdiction_engine.exceptions import ValidationError
from jurisdiction_engine.schemas.models import (
    JurisdictionDetectionResult,
    JurisdictionType,
    LocationData,
    Tier,
    is_valid_zip,
)

logger = logging.getLogger(__name__)

INCORPORATED_PREFIXES = ("City of ", "Town of ", "Village of ", "Municipality of ")
CDP_INDICATORS = ("CDP", "Census Designated Place")
UNINCORPORATED_INDICATORS = ("Unincorporated", "County Area", "County Island", "County Pocket", "Rural")
SPECIAL_DISTRICT_PATTERNS = ("Special District", "Water District", "Fire District", "Community Services District")

_PREFIX_RE = re.compile(r"^(City of|Town of|Village of|Municipality of)\s+", re.IGNORECASE)

ALL_LEVELS = frozenset({Tier.FEDERAL, Tier.STATE, Tier.LOCAL})


def _contains(text: str, needles: tuple[str, ...]) -> bool:
    lowered = text.lower()
    return any(n.lower() in lowered for n in needles)


class JurisdictionClassifier:
    """Pure classification over a location plus the read-only boundary registry.

    Constructor args:
        config:   Engine config dict (reads the "classifier" section)
        registry: Optional BoundaryRegistry; built from config when omitted
    """

    def __init__(self, config: dict, registry: BoundaryRegistry | None = None):
        classifier_cfg = config.get("classifier", {})
        self.weights: dict[str, float] = classifier_cfg.get("source_weights", {})
        self.fuzzy_score_cutoff = classifier_cfg.get("fuzzy_score_cutoff", 88)
        self.registry = registry or BoundaryRegistry(config)
        self._sources = (
            ("boundary_registry", self._from_registry),
            ("name_pattern", self._from_name_pattern),
            ("fuzzy_match", self._from_fuzzy_match),
            ("place_name", self._from_place_name),
        )

    # -- Public API ---------------------------------------------------------

    def classify(
        self, location: LocationData | None, zip_code: str | None = None,
    ) -> JurisdictionDetectionResult:
        """Classify ``location``; ``zip_code`` is used when no location was found.

        Raises:
            ValidationError: The ZIP code is not exactly five digits.
        """
        zip_code = location.zip_code if location is not None else zip_code
        if not is_valid_zip(zip_code):
            raise ValidationError(f"ZIP code must be exactly 5 digits, got {zip_code!r}")

        if location is None:
            logger.debug("No location for %s, classifying as unknown", zip_code)
            return JurisdictionDetectionResult(
                zip_code=zip_code,
                jurisdiction_type=JurisdictionType.UNKNOWN,
                government_levels=frozenset(),
                has_local_representatives=False,
                confidence=source_confidence("none"),
                source="none",
                name="Unknown location",
                description="ZIP code did not resolve to a location",
            )

        for source, detect in self._sources:
            answer = detect(location)
            if answer is not None:
                result = self._build(location, source, *answer)
                logger.debug(
                    "Classified %s via %s -> %s (confidence %.2f)",
                    zip_code, source, result.jurisdiction_type.value, result.confidence,
                )
                return result

        return self._fallback(location)

    # -- Classification sources ---------------------------------------------
    # Each returns (jurisdiction_type, name, county, description) or None.

    def _from_registry(self, location: LocationData):
        place = self.registry.find_by_zip(location.zip_code)
        if place is None:
            return None
        return self._from_place(place, location)

    def _from_name_pattern(self, location: LocationData):
        city = location.city.strip()
        if not city:
            return None
        county = location.county
        if _contains(city, SPECIAL_DISTRICT_PATTERNS):
            return (
                JurisdictionType.SPECIAL_DISTRICT, city, county,
                "Special district inferred from naming pattern",
            )
        if city.lower().startswith(tuple(p.lower() for p in INCORPORATED_PREFIXES)):
            name = _PREFIX_RE.sub("", city)
            return (
                JurisdictionType.INCORPORATED_CITY, name, county,
                "Likely incorporated city based on naming pattern",
            )
        if _contains(city, CDP_INDICATORS):
            return (
                JurisdictionType.CENSUS_DESIGNATED_PLACE, city, county,
                f"Census designated place governed by {county or 'the county'}",
            )
        if _contains(city, UNINCORPORATED_INDICATORS) or "county" in city.lower():
            return (
                JurisdictionType.UNINCORPORATED_AREA, city, county,
                f"Unincorporated area in {county or 'the county'}",
            )
        return None

    def _from_fuzzy_match(self, location: LocationData):
        if not location.city or not location.state:
            return None
        match = self.registry.fuzzy_match(location.city, location.state, self.fuzzy_score_cutoff)
        if match is None:
            return None
        place, _score = match
        return self._from_place(place, location)

    def _from_place_name(self, location: LocationData):
        city = location.city.strip()
        if not city or city.lower() == "unknown city" or "county" in city.lower():
            return None
        return (
            JurisdictionType.INCORPORATED_CITY, city, location.county,
            "Likely incorporated city",
        )

    # -- Result construction ------------------------------------------------

    @staticmethod
    def _from_place(place: dict, location: LocationData):
        kind = JurisdictionType(place["kind"])
        county = place.get("county") or location.county
        name = place["name"]
        if kind == JurisdictionType.INCORPORATED_CITY:
            government = place.get("government_type", "city").replace("_", " ")
            description = f"Incorporated {government} with full municipal services"
        elif kind == JurisdictionType.SPECIAL_DISTRICT:
            description = f"Special district in {county}"
        else:
            description = f"Unincorporated community governed by {county}"
        return kind, name, county, description

    def _build(
        self,
        location: LocationData,
        source: str,
        jurisdiction_type: JurisdictionType,
        name: str,
        county: str,
        description: str,
    ) -> JurisdictionDetectionResult:
        has_local = jurisdiction_type in (
            JurisdictionType.INCORPORATED_CITY,
            JurisdictionType.SPECIAL_DISTRICT,
        )
        return JurisdictionDetectionResult(
            zip_code=location.zip_code,
            jurisdiction_type=jurisdiction_type,
            government_levels=ALL_LEVELS,
            has_local_representatives=has_local,
            confidence=source_confidence(source, self.weights),
            source=source,
            county=county,
            name=name,
            state=location.state,
            description=description,
        )

    def _fallback(self, location: LocationData) -> JurisdictionDetectionResult:
        county = location.county or "Unknown County"
        levels = {Tier.FEDERAL}
        if location.state:
            levels.add(Tier.STATE)
        return JurisdictionDetectionResult(
            zip_code=location.zip_code,
            jurisdiction_type=JurisdictionType.UNKNOWN,
            government_levels=frozenset(levels),
            has_local_representatives=False,
            confidence=source_confidence("fallback", self.weights),
            source="fallback",
            county=county,
            name=location.city or f"Area in {county}",
            state=location.state,
            description=f"Area in {county} (jurisdiction unknown)",
        )
