"""State tier adapter backed by the Open States v3 API.

Uses the point-in-district endpoint (``/people.geo``) with the ZIP
centroid, which returns every current legislator whose district contains
the point. Federal and municipal results are filtered out so the tier
only carries state legislators.
"""

import logging
import os
from urllib.parse import urlencode

from jurisdiction_engine.adapters.base import HttpSource, SourceAdapter
from jurisdiction_engine.adapters.normalize import (
    build_representative,
    clean_contact,
    clean_text,
    seat_label,
)
from jurisdiction_engine.schemas.models import (
    LocationData,
    Representative,
    RepresentativeLevel,
    ResolveOptions,
    Tier,
)

logger = logging.getLogger(__name__)

# Chamber sort order: senators before assembly members
_CHAMBER_ORDER = {"upper": 0, "lower": 1, "legislature": 2}


def _pick_office(offices: list[dict]) -> dict:
    """Prefer the capitol office; fall back to the first listed office."""
    for office in offices:
        if office.get("classification") == "capitol":
            return office
    return offices[0] if offices else {}


class OpenStatesAdapter(HttpSource, SourceAdapter):
    """Fetches state legislators whose districts contain the ZIP centroid."""

    tier = Tier.STATE
    source_name = "openstates"

    def __init__(self, config: dict):
        HttpSource.__init__(self, self.source_name, config=config, tier=self.tier.value)
        src = config.get("sources", {}).get(self.source_name, {})
        self.base_url = src.get("base_url", "https://v3.openstates.org").rstrip("/")
        self.api_key = os.environ.get(src.get("key_env_var", "OPENSTATES_API_KEY"), "")
        if self.api_key:
            self._headers["X-API-KEY"] = self.api_key

    async def fetch_by_zip(
        self,
        zip_code: str,
        options: ResolveOptions,
        location: LocationData | None = None,
    ) -> list[Representative]:
        if not self.api_key:
            logger.warning("Open States: OPENSTATES_API_KEY not set")
            raise self._error("API key not configured")
        if location is None or location.coordinates is None:
            raise self._error(f"no coordinates known for ZIP {zip_code}")

        lat, lng = location.coordinates
        params = {"lat": lat, "lng": lng, "include": "offices"}
        url = f"{self.base_url}/people.geo?{urlencode(params)}"
        async with self._create_session() as session:
            data = await self._request_with_retry(session, "GET", url)

        people = [
            p for p in (data or {}).get("results", [])
            if (p.get("jurisdiction") or {}).get("classification") == "state"
        ]
        people.sort(
            key=lambda p: _CHAMBER_ORDER.get(
                (p.get("current_role") or {}).get("org_classification", ""), 9
            )
        )

        reps = []
        for person in people:
            rep = self._normalize(person, location)
            if rep is not None:
                reps.append(rep)
        logger.debug("Open States: %d state legislators for ZIP %s", len(reps), zip_code)
        return reps

    def _normalize(self, person: dict, location: LocationData) -> Representative | None:
        role = person.get("current_role") or {}
        chamber = role.get("org_classification", "")
        district = clean_text(str(role.get("district", "") or ""))
        office = _pick_office(person.get("offices") or [])
        title = clean_text(role.get("title")) or (
            "State Senator" if chamber == "upper" else "Assembly Member"
        )
        return build_representative(
            person.get("id", ""),
            person.get("name", ""),
            tier=self.tier,
            level=RepresentativeLevel.STATE,
            source=self.source_name,
            title=title,
            jurisdiction=seat_label(
                RepresentativeLevel.STATE, location.state, district, chamber=chamber,
            ),
            party=clean_text(person.get("party")),
            district=district,
            contact_info=clean_contact(
                phone=office.get("voice"),
                email=person.get("email"),
                website=person.get("openstates_url"),
                office_address=office.get("address"),
            ),
        )

    def health(self) -> dict:
        return {
            "source": self.source_name,
            "tier": self.tier.value,
            "configured": bool(self.api_key),
            "circuit": self.circuit_breaker.snapshot(),
        }
