"""Local tier adapter backed by a county/municipal officials registry.

There is no national API for county supervisors and city councils, so
this adapter serves a curated read-only registry
(data/local_officials.json) keyed by ``"<STATE>:<name>"``::

    {
      "metadata": {"last_updated": "2026-09-01"},
      "cities":   {"CA:Beverly Hills": [ {official}, ... ]},
      "counties": {"CA:Los Angeles County": [ {official}, ... ]}
    }

Municipal officials come first, then the county board. The registry is
loaded lazily on first fetch and kept in memory.
"""

import json
import logging
from pathlib import Path

from jurisdiction_engine.adapters.base import SourceAdapter
from jurisdiction_engine.adapters.normalize import (
    build_representative,
    clean_contact,
    clean_text,
    seat_label,
)
from jurisdiction_engine.exceptions import SourceError
from jurisdiction_engine.paths import LOCAL_OFFICIALS_PATH
from jurisdiction_engine.schemas.models import (
    LocationData,
    Representative,
    RepresentativeLevel,
    ResolveOptions,
    Tier,
)

logger = logging.getLogger(__name__)


def _registry_key(state: str, name: str) -> str:
    return f"{state.strip().upper()}:{name.strip().lower()}"


class LocalRegistryAdapter(SourceAdapter):
    """Serves county and municipal officials from the local registry."""

    tier = Tier.LOCAL
    source_name = "local_registry"

    def __init__(self, config: dict) -> None:
        src = config.get("sources", {}).get(self.source_name, {})
        self.data_path = Path(src.get("data_path", LOCAL_OFFICIALS_PATH))
        self._cities: dict[str, list[dict]] = {}
        self._counties: dict[str, list[dict]] = {}
        self._loaded = False

    def _load(self) -> None:
        if self._loaded:
            return
        try:
            with open(self.data_path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as exc:
            logger.error("Local officials registry not found: %s", self.data_path)
            raise SourceError(self.source_name, "registry file missing", tier=self.tier.value) from exc
        except json.JSONDecodeError as exc:
            logger.error("Local officials registry at %s is invalid JSON: %s", self.data_path, exc)
            raise SourceError(self.source_name, "registry file corrupt", tier=self.tier.value) from exc

        # Keys are matched case-insensitively on the place name
        self._cities = {
            _registry_key(*key.split(":", 1)): officials
            for key, officials in data.get("cities", {}).items()
            if ":" in key
        }
        self._counties = {
            _registry_key(*key.split(":", 1)): officials
            for key, officials in data.get("counties", {}).items()
            if ":" in key
        }
        self._loaded = True
        logger.info(
            "Loaded local registry: %d cities, %d counties from %s",
            len(self._cities), len(self._counties), self.data_path,
        )

    async def fetch_by_zip(
        self,
        zip_code: str,
        options: ResolveOptions,
        location: LocationData | None = None,
    ) -> list[Representative]:
        if location is None or not location.state:
            raise SourceError(
                self.source_name, f"no location known for ZIP {zip_code}", tier=self.tier.value,
            )
        self._load()

        reps: list[Representative] = []
        city_key = _registry_key(location.state, location.city) if location.city else None
        for official in self._cities.get(city_key, []) if city_key else []:
            rep = self._normalize(official, RepresentativeLevel.MUNICIPAL, location.city, location, options)
            if rep is not None:
                reps.append(rep)

        county_key = _registry_key(location.state, location.county) if location.county else None
        for official in self._counties.get(county_key, []) if county_key else []:
            rep = self._normalize(official, RepresentativeLevel.COUNTY, location.county, location, options)
            if rep is not None:
                reps.append(rep)

        logger.debug("Local registry: %d officials for ZIP %s", len(reps), zip_code)
        return reps

    def _normalize(
        self,
        official: dict,
        level: RepresentativeLevel,
        area: str,
        location: LocationData,
        options: ResolveOptions,
    ) -> Representative | None:
        district = clean_text(str(official.get("district", "") or ""))
        committees = tuple(official.get("committees", [])) if options.include_committee_info else ()
        voting_record = official.get("voting_record") if options.include_voting_records else None
        return build_representative(
            official.get("id", ""),
            official.get("name", ""),
            tier=self.tier,
            level=level,
            source=self.source_name,
            title=clean_text(official.get("title")) or "",
            jurisdiction=seat_label(level, location.state, district, area=area),
            party=clean_text(official.get("party")),
            district=district,
            contact_info=clean_contact(
                phone=official.get("phone"),
                email=official.get("email"),
                website=official.get("website"),
                office_address=official.get("office_address"),
            ),
            committees=committees,
            voting_record=voting_record,
        )

    def health(self) -> dict:
        return {
            "source": self.source_name,
            "tier": self.tier.value,
            "configured": self.data_path.exists(),
        }
