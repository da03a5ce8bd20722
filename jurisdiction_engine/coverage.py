"""Coverage resolver: which government tiers are safe to display.

Policy over a JurisdictionDetectionResult, evaluated in order:

  1. Low confidence and no government levels        -> not_supported
  2. State is not a US state (or unknown)             -> not_supported
  3. Full-coverage state, local representatives,
     state+local levels, confidence above the floor  -> full_coverage
  4. Anything else in the US                          -> federal_only

The resolver can only narrow what the classifier allows: a tier is shown
only when it is in ``government_levels``, and local only when the
jurisdiction has local representatives of its own.
"""

import logging

from jurisdiction_engine.schemas.models import (
    CoverageLevel,
    CoverageType,
    JurisdictionDetectionResult,
    Tier,
)

logger = logging.getLogger(__name__)

STATE_NAMES: dict[str, str] = {
    "AL": "Alabama", "AK": "Alaska", "AZ": "Arizona", "AR": "Arkansas",
    "CA": "California", "CO": "Colorado", "CT": "Connecticut", "DE": "Delaware",
    "FL": "Florida", "GA": "Georgia", "HI": "Hawaii", "ID": "Idaho",
    "IL": "Illinois", "IN": "Indiana", "IA": "Iowa", "KS": "Kansas",
    "KY": "Kentucky", "LA": "Louisiana", "ME": "Maine", "MD": "Maryland",
    "MA": "Massachusetts", "MI": "Michigan", "MN": "Minnesota", "MS": "Mississippi",
    "MO": "Missouri", "MT": "Montana", "NE": "Nebraska", "NV": "Nevada",
    "NH": "New Hampshire", "NJ": "New Jersey", "NM": "New Mexico", "NY": "New York",
    "NC": "North Carolina", "ND": "North Dakota", "OH": "Ohio", "OK": "Oklahoma",
    "OR": "Oregon", "PA": "Pennsylvania", "RI": "Rhode Island", "SC": "South Carolina",
    "SD": "South Dakota", "TN": "Tennessee", "TX": "Texas", "UT": "Utah",
    "VT": "Vermont", "VA": "Virginia", "WA": "Washington", "WV": "West Virginia",
    "WI": "Wisconsin", "WY": "Wyoming", "DC": "Washington D.C.",
}

_NAME_TO_CODE: dict[str, str] = {name.lower(): code for code, name in STATE_NAMES.items()}
_NAME_TO_CODE.update({
    "washington dc": "DC",
    "district of columbia": "DC",
})

NOT_SUPPORTED_EXPAND_MESSAGE = (
    "Help us expand to your area - let us know where you'd like to see coverage!"
)


def normalize_state(state: str) -> str:
    """Map a full state name or code to its two-letter postal code.

    Unrecognized input is returned upper-cased and stripped.
    """
    cleaned = (state or "").strip()
    return _NAME_TO_CODE.get(cleaned.lower(), cleaned.upper())


def state_name(code: str) -> str:
    return STATE_NAMES.get(code, code)


class CoverageResolver:
    """Pure policy function from classification to CoverageLevel.

    Constructor args:
        config: Engine config dict (reads the "coverage" section)
    """

    def __init__(self, config: dict):
        coverage_cfg = config.get("coverage", {})
        self.full_coverage_states = frozenset(
            normalize_state(s) for s in coverage_cfg.get("full_coverage_states", ["CA"])
        )
        self.min_confidence = coverage_cfg.get("full_coverage_min_confidence", 0.5)
        self.not_supported_max_confidence = coverage_cfg.get("not_supported_max_confidence", 0.5)

    def is_us_state(self, state: str) -> bool:
        return normalize_state(state) in STATE_NAMES

    def has_full_coverage(self, state: str) -> bool:
        return normalize_state(state) in self.full_coverage_states

    def resolve(self, jurisdiction: JurisdictionDetectionResult) -> CoverageLevel:
        """Decide the coverage level for ``jurisdiction``. Never raises."""
        levels = jurisdiction.government_levels
        state = normalize_state(jurisdiction.state)
        place = jurisdiction.name or jurisdiction.zip_code

        if jurisdiction.confidence < self.not_supported_max_confidence and not levels:
            logger.debug(
                "Coverage for %s: not_supported (confidence %.2f, no levels)",
                jurisdiction.zip_code, jurisdiction.confidence,
            )
            return self._not_supported("Location not supported")

        if not self.is_us_state(state) or Tier.FEDERAL not in levels:
            logger.debug("Coverage for %s: not_supported (state %r)", jurisdiction.zip_code, state)
            return self._not_supported("Location not supported")

        if (
            state in self.full_coverage_states
            and jurisdiction.has_local_representatives
            and {Tier.STATE, Tier.LOCAL} <= levels
            and jurisdiction.confidence >= self.min_confidence
        ):
            logger.debug("Coverage for %s: full_coverage", jurisdiction.zip_code)
            return CoverageLevel(
                type=CoverageType.FULL_COVERAGE,
                show_federal=True,
                show_state=True,
                show_local=True,
                message=f"Complete political information for {place}, {state}",
            )

        if state in self.full_coverage_states:
            # Covered state, but local data is unavailable for this
            # jurisdiction or the classification is too uncertain.
            if not jurisdiction.has_local_representatives and jurisdiction.county:
                reason = f"{place} is governed by {jurisdiction.county}"
            else:
                reason = f"we could not confirm the local government for {place}"
            logger.debug("Coverage for %s: federal_only (%s)", jurisdiction.zip_code, reason)
            return CoverageLevel(
                type=CoverageType.FEDERAL_ONLY,
                show_federal=True,
                message=f"Federal representatives for {place}, {state_name(state)}; {reason}",
            )

        name = state_name(state)
        logger.debug("Coverage for %s: federal_only (state %s)", jurisdiction.zip_code, state)
        return CoverageLevel(
            type=CoverageType.FEDERAL_ONLY,
            show_federal=True,
            message=f"Federal representatives for {place}, {name}",
            collect_email=True,
            expand_message=f"We're working to add {name} state and local data - join the waitlist!",
        )

    @staticmethod
    def _not_supported(message: str) -> CoverageLevel:
        return CoverageLevel(
            type=CoverageType.NOT_SUPPORTED,
            message=message,
            collect_email=True,
            expand_message=NOT_SUPPORTED_EXPAND_MESSAGE,
        )

    def federal_only_states(self) -> list[str]:
        """Full names of supported states without full coverage, sorted."""
        return sorted(
            state_name(code) for code in STATE_NAMES if code not in self.full_coverage_states
        )

    def coverage_stats(self) -> dict:
        full = len(self.full_coverage_states & STATE_NAMES.keys())
        federal_only = len(STATE_NAMES) - full
        return {
            "full_coverage_states": full,
            "federal_only_states": federal_only,
            "total_supported_states": full + federal_only,
        }
