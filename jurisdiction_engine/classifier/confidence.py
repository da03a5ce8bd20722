"""Confidence scoring for jurisdiction classifications.

Confidence is derived from which classification source answered, never
from the answer itself. Each source belongs to a reliability band:

- AUTHORITATIVE: boundary registry match         -> [0.80, 1.00]
- HEURISTIC:     name patterns / fuzzy / place   -> [0.50, 0.80)
- DEFAULT:       nothing matched                 -> [0.00, 0.50)

Configured weights are clamped into their band, so a misconfigured
heuristic weight can never outrank an authoritative answer.
"""

import enum
import logging

logger = logging.getLogger(__name__)


class ReliabilityBand(enum.Enum):
    AUTHORITATIVE = "authoritative"
    HEURISTIC = "heuristic"
    DEFAULT = "default"


# (inclusive floor, exclusive ceiling); AUTHORITATIVE includes 1.0
BAND_LIMITS: dict[ReliabilityBand, tuple[float, float]] = {
    ReliabilityBand.AUTHORITATIVE: (0.80, 1.00),
    ReliabilityBand.HEURISTIC: (0.50, 0.79),
    ReliabilityBand.DEFAULT: (0.00, 0.49),
}

SOURCE_BANDS: dict[str, ReliabilityBand] = {
    "boundary_registry": ReliabilityBand.AUTHORITATIVE,
    "name_pattern": ReliabilityBand.HEURISTIC,
    "fuzzy_match": ReliabilityBand.HEURISTIC,
    "place_name": ReliabilityBand.HEURISTIC,
    "fallback": ReliabilityBand.DEFAULT,
    "none": ReliabilityBand.DEFAULT,
}

DEFAULT_SOURCE_WEIGHTS: dict[str, float] = {
    "boundary_registry": 0.92,
    "name_pattern": 0.70,
    "fuzzy_match": 0.65,
    "place_name": 0.55,
    "fallback": 0.30,
    "none": 0.0,
}


def source_confidence(source: str, weights: dict[str, float] | None = None) -> float:
    """Confidence for a classification produced by ``source``.

    Args:
        source: Classification source name (key into SOURCE_BANDS).
        weights: Optional overrides for DEFAULT_SOURCE_WEIGHTS.

    Returns:
        Score rounded to 3 places, clamped into the source's band.
        Unknown sources score 0.0.
    """
    if source == "none":
        return 0.0
    band = SOURCE_BANDS.get(source)
    if band is None:
        logger.warning("Unknown classification source '%s', scoring 0.0", source)
        return 0.0
    weight = (weights or {}).get(source, DEFAULT_SOURCE_WEIGHTS[source])
    low, high = BAND_LIMITS[band]
    clamped = min(max(float(weight), low), high)
    if clamped != weight:
        logger.debug("Clamped %s weight %.3f into %s band -> %.3f", source, weight, band.value, clamped)
    return round(clamped, 3)


def confidence_level(score: float) -> str:
    """Map a numeric confidence to a display level.

    Returns:
        "HIGH" (>= 0.8), "MEDIUM" (0.5-0.79), or "LOW" (< 0.5).
    """
    if score >= 0.8:
        return "HIGH"
    elif score >= 0.5:
        return "MEDIUM"
    return "LOW"
