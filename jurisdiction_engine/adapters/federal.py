"""Federal tier adapter backed by the Congress.gov API (requires free API key).

Strategy: list current members for the location's state, keep both
senators and the House member for the location's congressional district,
then fetch each member's detail record for office address, phone and
website. Sponsored legislation is fetched only when bill data is requested.
"""

import asyncio
import logging
import os
from urllib.parse import urlencode

from jurisdiction_engine.adapters.base import HttpSource, SourceAdapter
from jurisdiction_engine.adapters.normalize import (
    build_representative,
    clean_contact,
    clean_text,
    format_person_name,
    seat_label,
)
from jurisdiction_engine.exceptions import SourceError
from jurisdiction_engine.schemas.models import (
    LocationData,
    Representative,
    RepresentativeLevel,
    ResolveOptions,
    Tier,
)

logger = logging.getLogger(__name__)

_MEMBER_PAGE_LIMIT = 250
_SPONSORED_LIMIT = 5


def _latest_chamber(member: dict) -> str:
    terms = member.get("terms", {})
    items = terms.get("item", []) if isinstance(terms, dict) else terms
    if not items:
        return ""
    return str(items[-1].get("chamber", ""))


class CongressGovAdapter(HttpSource, SourceAdapter):
    """Fetches U.S. senators and the House member for a ZIP's district."""

    tier = Tier.FEDERAL
    source_name = "congress_gov"

    def __init__(self, config: dict):
        HttpSource.__init__(self, self.source_name, config=config, tier=self.tier.value)
        src = config.get("sources", {}).get(self.source_name, {})
        self.base_url = src.get("base_url", "https://api.congress.gov/v3").rstrip("/")
        self.api_key = os.environ.get(src.get("key_env_var", "CONGRESS_API_KEY"), "")
        if self.api_key:
            self._headers["X-Api-Key"] = self.api_key

    async def fetch_by_zip(
        self,
        zip_code: str,
        options: ResolveOptions,
        location: LocationData | None = None,
    ) -> list[Representative]:
        if not self.api_key:
            logger.warning("Congress.gov: CONGRESS_API_KEY not set")
            raise self._error("API key not configured")
        if location is None or not location.state:
            raise self._error(f"no state known for ZIP {zip_code}")

        async with self._create_session() as session:
            members = await self._list_members(session, location.state)
            selected = [
                m for m in members
                if self._serves_district(m, location.congressional_district)
            ]
            details = await asyncio.gather(
                *(self._member_extras(session, m, options) for m in selected)
            )

        reps: list[Representative] = []
        for member, (detail, bills) in zip(selected, details):
            rep = self._normalize(member, detail, bills, location)
            if rep is not None:
                reps.append(rep)
        # Senators first, then the House member
        reps.sort(key=lambda r: 0 if r.title == "U.S. Senator" else 1)
        logger.debug("Congress.gov: %d federal members for ZIP %s", len(reps), zip_code)
        return reps

    async def _list_members(self, session, state: str) -> list[dict]:
        params = {"currentMember": "true", "limit": _MEMBER_PAGE_LIMIT, "format": "json"}
        url = f"{self.base_url}/member/{state}?{urlencode(params)}"
        data = await self._request_with_retry(session, "GET", url, empty_statuses=(404,))
        return (data or {}).get("members", [])

    @staticmethod
    def _serves_district(member: dict, district: int | None) -> bool:
        chamber = _latest_chamber(member)
        if chamber == "Senate":
            return True
        if district is None:
            return False
        member_district = member.get("district")
        if member_district in (None, "") and district == 0:
            return True
        try:
            return int(member_district) == district
        except (TypeError, ValueError):
            return False

    async def _member_extras(
        self, session, member: dict, options: ResolveOptions,
    ) -> tuple[dict, list[dict]]:
        """Detail record plus (optionally) recent sponsored bills.

        A failing detail call degrades that member to list-level data
        instead of failing the whole tier.
        """
        bioguide = member.get("bioguideId", "")
        detail: dict = {}
        bills: list[dict] = []
        try:
            data = await self._request_with_retry(
                session, "GET", f"{self.base_url}/member/{bioguide}?format=json",
                empty_statuses=(404,),
            )
            detail = (data or {}).get("member", {})
            if options.include_bill_data:
                params = {"limit": _SPONSORED_LIMIT, "format": "json"}
                data = await self._request_with_retry(
                    session, "GET",
                    f"{self.base_url}/member/{bioguide}/sponsored-legislation?{urlencode(params)}",
                    empty_statuses=(404,),
                )
                bills = (data or {}).get("sponsoredLegislation", [])
        except SourceError as exc:
            logger.warning("Congress.gov: detail lookup failed for %s: %s", bioguide, exc)
        return detail, bills

    def _normalize(
        self,
        member: dict,
        detail: dict,
        bills: list[dict],
        location: LocationData,
    ) -> Representative | None:
        chamber = _latest_chamber(member)
        is_senate = chamber == "Senate"
        district = None if is_senate else clean_text(str(member.get("district", "") or "")) or "At Large"
        address = detail.get("addressInformation", {}) or {}
        sponsored = tuple(
            {
                "congress": b.get("congress"),
                "number": f"{b.get('type', '')}{b.get('number', '')}",
                "title": b.get("title", ""),
                "introduced_date": b.get("introducedDate", ""),
                "url": b.get("url", ""),
            }
            for b in bills
            if isinstance(b, dict)
        )
        bioguide = member.get("bioguideId", "")
        return build_representative(
            f"federal:{bioguide}" if bioguide else "",
            format_person_name(member.get("name", "")),
            tier=self.tier,
            level=RepresentativeLevel.FEDERAL,
            source=self.source_name,
            title="U.S. Senator" if is_senate else "U.S. Representative",
            jurisdiction=seat_label(RepresentativeLevel.FEDERAL, location.state, district),
            party=clean_text(member.get("partyName")),
            district=district,
            contact_info=clean_contact(
                phone=address.get("phoneNumber"),
                website=detail.get("officialWebsiteUrl"),
                office_address=address.get("officeAddress"),
            ),
            sponsored_bills=sponsored,
        )

    def health(self) -> dict:
        return {
            "source": self.source_name,
            "tier": self.tier.value,
            "configured": bool(self.api_key),
            "circuit": self.circuit_breaker.snapshot(),
        }
