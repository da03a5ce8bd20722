"""Location Lookup: resolve a ZIP code to a LocationData record.

The engine consumes the LocationLookup capability and does not care about
transport. Implementations:

- ZipTableLookup  -- offline table (data/zip_locations.json), lazy-loaded
- GeocodioLookup  -- Geocodio geocoding API with district fields
- ChainedLookup   -- try several lookups in order

A lookup returns None when the ZIP is unassigned (no match). Transport
failures raise SourceError so the caller can tell "nowhere" from "down".
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from urllib.parse import urlencode

from jurisdiction_engine.adapters.base import HttpSource
from jurisdiction_engine.exceptions import SourceError
from jurisdiction_engine.paths import ZIP_LOCATIONS_PATH
from jurisdiction_engine.schemas.models import LocationData

logger = logging.getLogger(__name__)


def _as_int(value) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class LocationLookup(ABC):
    """Capability interface: ZIP code -> LocationData (or None if unassigned)."""

    name: str = "lookup"

    @abstractmethod
    async def geocode(self, zip_code: str) -> LocationData | None:
        ...


class ZipTableLookup(LocationLookup):
    """Offline ZIP table loaded from JSON on first use.

    File shape::

        {"zips": {"90210": {"city": "Beverly Hills", "state": "CA",
                            "county": "Los Angeles County",
                            "coordinates": [34.0901, -118.4065],
                            "congressional_district": 36}}}
    """

    name = "zip_table"

    def __init__(self, data_path: str | Path | None = None) -> None:
        self.data_path = Path(data_path) if data_path is not None else ZIP_LOCATIONS_PATH
        self._rows: dict[str, dict] = {}
        self._loaded = False

    def _load(self) -> None:
        if self._loaded:
            return
        if not self.data_path.exists():
            logger.warning("ZIP table not found at %s, lookups will miss", self.data_path)
            self._rows = {}
        else:
            with open(self.data_path, encoding="utf-8") as f:
                self._rows = json.load(f).get("zips", {})
            logger.info("Loaded %d ZIP rows from %s", len(self._rows), self.data_path)
        self._loaded = True

    async def geocode(self, zip_code: str) -> LocationData | None:
        self._load()
        row = self._rows.get(zip_code)
        if row is None:
            return None
        coords = row.get("coordinates")
        return LocationData(
            zip_code=zip_code,
            city=row.get("city", ""),
            state=row.get("state", ""),
            county=row.get("county", ""),
            coordinates=tuple(coords) if coords else None,
            congressional_district=_as_int(row.get("congressional_district")),
            state_senate_district=_as_int(row.get("state_senate_district")),
            state_assembly_district=_as_int(row.get("state_assembly_district")),
        )


class GeocodioLookup(HttpSource, LocationLookup):
    """Geocodio ZIP geocoding with congressional and state-legislative fields."""

    name = "geocodio"

    def __init__(self, config: dict):
        super().__init__("geocodio", config=config)
        src = config.get("sources", {}).get("geocodio", {})
        self.base_url = src.get("base_url", "https://api.geocod.io/v1.7").rstrip("/")
        self.api_key = os.environ.get(src.get("key_env_var", "GEOCODIO_API_KEY"), "")

    async def geocode(self, zip_code: str) -> LocationData | None:
        if not self.api_key:
            raise self._error("API key not configured")
        params = {"q": zip_code, "fields": "cd,stateleg", "api_key": self.api_key}
        url = f"{self.base_url}/geocode?{urlencode(params)}"
        async with self._create_session() as session:
            # Geocodio answers 422 for an address it cannot place
            data = await self._request_with_retry(session, "GET", url, empty_statuses=(404, 422))
        results = (data or {}).get("results", [])
        if not results:
            logger.info("Geocodio: no match for ZIP %s", zip_code)
            return None
        return self._to_location(zip_code, results[0])

    @staticmethod
    def _to_location(zip_code: str, result: dict) -> LocationData:
        components = result.get("address_components", {})
        point = result.get("location", {})
        fields = result.get("fields", {})

        congressional = fields.get("congressional_districts") or [{}]
        stateleg = fields.get("state_legislative_districts", {})
        senate = (stateleg.get("senate") or [{}])[0]
        house = (stateleg.get("house") or [{}])[0]

        coordinates = None
        if "lat" in point and "lng" in point:
            coordinates = (float(point["lat"]), float(point["lng"]))

        return LocationData(
            zip_code=zip_code,
            city=components.get("city", ""),
            state=components.get("state", ""),
            county=components.get("county", ""),
            coordinates=coordinates,
            congressional_district=_as_int(congressional[0].get("district_number")),
            state_senate_district=_as_int(senate.get("district_number")),
            state_assembly_district=_as_int(house.get("district_number")),
        )


class ChainedLookup(LocationLookup):
    """Try each lookup in order; the first non-None answer wins.

    A failing lookup is skipped. If every lookup failed (rather than
    answering "no match"), the last SourceError is raised.
    """

    name = "chained"

    def __init__(self, lookups: list[LocationLookup]) -> None:
        self.lookups = list(lookups)

    async def geocode(self, zip_code: str) -> LocationData | None:
        last_error: SourceError | None = None
        answered = False
        for lookup in self.lookups:
            try:
                location = await lookup.geocode(zip_code)
            except SourceError as exc:
                logger.warning("%s lookup failed for %s: %s", lookup.name, zip_code, exc)
                last_error = exc
                continue
            answered = True
            if location is not None:
                return location
        if not answered and last_error is not None:
            raise last_error
        return None
