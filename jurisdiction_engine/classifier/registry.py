"""Boundary registry of known places, with exact and fuzzy lookup.

The registry (data/jurisdiction_registry.json) lists incorporated cities,
census designated places and special districts with the ZIP codes they
cover. Two lookups back two classifier tiers:

  Authoritative: exact ZIP -> place match
  Heuristic:     fuzzy place-name match via rapidfuzz WRatio, restricted
                 to places in the same state

Usage:
    registry = BoundaryRegistry({})
    place = registry.find_by_zip("90210")          # -> dict or None
    match = registry.fuzzy_match("Beverley Hills", "CA")  # -> (dict, score) or None
"""

import json
import logging
from pathlib import Path

from rapidfuzz import fuzz, process

from jurisdiction_engine.paths import JURISDICTION_REGISTRY_PATH

logger = logging.getLogger(__name__)

PLACE_KINDS = frozenset({
    "incorporated_city",
    "census_designated_place",
    "special_district",
})


class BoundaryRegistry:
    """Lazy-loaded registry of known places.

    Attributes:
        data_path: Path to the registry JSON file.
    """

    def __init__(self, config: dict) -> None:
        classifier_cfg = config.get("classifier", {})
        self.data_path = Path(classifier_cfg.get("registry_path", JURISDICTION_REGISTRY_PATH))
        self._places: list[dict] = []
        self._zip_index: dict[str, int] = {}
        self._loaded = False

    def _load(self) -> None:
        if self._loaded:
            return
        try:
            with open(self.data_path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.error(
                "Jurisdiction registry not found at %s; authoritative tier disabled",
                self.data_path,
            )
            data = {}
        except json.JSONDecodeError as exc:
            logger.error("Jurisdiction registry at %s is invalid JSON: %s", self.data_path, exc)
            data = {}

        self._loaded = True
        for place in data.get("places", []):
            self._index(place)
        logger.info("Loaded %d places from %s", len(self._places), self.data_path)

    def _index(self, place: dict) -> None:
        kind = place.get("kind")
        if kind not in PLACE_KINDS:
            logger.warning("Skipping place %r with unknown kind %r", place.get("name"), kind)
            return
        idx = len(self._places)
        self._places.append(place)
        for zip_code in place.get("zip_codes", []):
            # First listing wins when two places claim a ZIP
            self._zip_index.setdefault(zip_code, idx)

    def find_by_zip(self, zip_code: str) -> dict | None:
        """Exact ZIP match, or None."""
        self._load()
        idx = self._zip_index.get(zip_code)
        return dict(self._places[idx]) if idx is not None else None

    def fuzzy_match(self, name: str, state: str, score_cutoff: float = 88) -> tuple[dict, float] | None:
        """Best fuzzy place-name match within ``state``.

        Args:
            name: Place name reported by the geocoder.
            state: Two-letter state code; only places in this state compete.
            score_cutoff: Minimum WRatio score (0-100) to accept.

        Returns:
            (place dict, score) or None when nothing clears the cutoff.
        """
        self._load()
        query = name.strip().lower()
        if not query:
            return None
        candidates = [
            (p["name"].lower(), i)
            for i, p in enumerate(self._places)
            if p.get("state", "").upper() == state.upper()
        ]
        if not candidates:
            return None
        best = process.extractOne(
            query,
            [c[0] for c in candidates],
            scorer=fuzz.WRatio,
            score_cutoff=score_cutoff,
        )
        if best is None:
            logger.debug("No fuzzy place match for '%s' in %s", name, state)
            return None
        matched_name, score, pos = best
        place = self._places[candidates[pos][1]]
        logger.debug("Fuzzy place match '%s' -> '%s' (%.0f)", name, place["name"], score)
        return dict(place), score
