"""Shared fakes for engine tests. No network access anywhere in the suite."""

import asyncio
import copy
import json

import aiohttp
import pytest

from jurisdiction_engine.adapters.base import SourceAdapter
from jurisdiction_engine.config import DEFAULT_CONFIG
from jurisdiction_engine.geocoding import LocationLookup
from jurisdiction_engine.schemas.models import (
    TIER_LEVELS,
    ContactInfo,
    LocationData,
    Representative,
    RepresentativeLevel,
    Tier,
)


class MockClock:
    """Deterministic clock for cache and breaker tests. Zero real sleeps."""

    def __init__(self, start: float = 0.0):
        self._now = start

    def __call__(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += seconds


def make_rep(tier: Tier, idx: int = 1, **fields) -> Representative:
    level = fields.pop("level", None) or sorted(TIER_LEVELS[tier], key=lambda l: l.value)[0]
    return Representative(
        id=fields.pop("id", f"{tier.value}:{idx}"),
        name=fields.pop("name", f"{tier.value.title()} Member {idx}"),
        title=fields.pop("title", "Member"),
        level=level,
        source_tier=tier,
        source=f"fake_{tier.value}",
        contact_info=fields.pop("contact_info", ContactInfo(phone="555-0100")),
        **fields,
    )


class FakeAdapter(SourceAdapter):
    """Scriptable tier adapter.

    Args:
        tier: Tier served.
        reps: Representatives returned on success.
        error: Exception raised on failing calls.
        fail_times: Number of initial calls that raise ``error``;
            0 means every call raises when ``error`` is set.
        delay: Seconds to sleep before answering.
    """

    def __init__(self, tier, reps=None, error=None, fail_times=0, delay=0.0):
        self.tier = tier
        self.source_name = f"fake_{tier.value}"
        self.reps = list(reps or [])
        self.error = error
        self.fail_times = fail_times
        self.delay = delay
        self.calls = 0
        self.seen_options = []

    async def fetch_by_zip(self, zip_code, options, location=None):
        self.calls += 1
        self.seen_options.append(options)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None and (self.fail_times == 0 or self.calls <= self.fail_times):
            raise self.error
        return list(self.reps)


class FakeLookup(LocationLookup):
    """In-memory LocationLookup counting its calls."""

    name = "fake"

    def __init__(self, rows: dict[str, LocationData] | None = None, error=None):
        self.rows = dict(rows or {})
        self.error = error
        self.calls = 0

    async def geocode(self, zip_code):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.rows.get(zip_code)


LOCATIONS = {
    "90210": LocationData(
        zip_code="90210", city="Beverly Hills", state="CA", county="Los Angeles County",
        coordinates=(34.0901, -118.4065), congressional_district=36,
    ),
    "90022": LocationData(
        zip_code="90022", city="East Los Angeles", state="CA", county="Los Angeles County",
        coordinates=(34.024, -118.156), congressional_district=34,
    ),
    "78701": LocationData(
        zip_code="78701", city="Austin", state="TX", county="Travis County",
        coordinates=(30.2713, -97.7426), congressional_district=37,
    ),
    "00901": LocationData(
        zip_code="00901", city="San Juan", state="PR", county="San Juan Municipio",
    ),
}

REGISTRY = {
    "places": [
        {"name": "Beverly Hills", "county": "Los Angeles County", "state": "CA",
         "kind": "incorporated_city", "government_type": "city",
         "zip_codes": ["90210", "90211", "90212"]},
        {"name": "Los Angeles", "county": "Los Angeles County", "state": "CA",
         "kind": "incorporated_city", "government_type": "charter_city",
         "zip_codes": ["90012"]},
        {"name": "East Los Angeles", "county": "Los Angeles County", "state": "CA",
         "kind": "census_designated_place", "population": 118786,
         "zip_codes": ["90022", "90023"]},
        {"name": "Lake Arrowhead Community Services District", "county": "San Bernardino County",
         "state": "CA", "kind": "special_district", "zip_codes": ["92352"]},
    ]
}


class FakeResponse:
    """Scripted aiohttp response. A string body is decoded like a real JSON body."""

    def __init__(self, status=200, body=None, headers=None):
        self.status = status
        self.body = body if body is not None else {}
        self.headers = headers or {}

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def raise_for_status(self):
        if self.status >= 400:
            raise aiohttp.ClientError(f"HTTP {self.status}")

    async def json(self, content_type=None):
        if isinstance(self.body, str):
            return json.loads(self.body)
        return self.body


class FakeSession:
    """Replays scripted responses; an Exception entry is raised on request."""

    def __init__(self, script):
        self.script = list(script)
        self.urls = []

    def get(self, url, **kwargs):
        self.urls.append(url)
        step = self.script.pop(0)
        if isinstance(step, BaseException):
            raise step
        return step


@pytest.fixture
def config(tmp_path):
    """Default config with a temp registry, fast retries and a short timeout."""
    registry_path = tmp_path / "jurisdiction_registry.json"
    registry_path.write_text(json.dumps(REGISTRY), encoding="utf-8")
    cfg = copy.deepcopy(DEFAULT_CONFIG)
    cfg["classifier"]["registry_path"] = str(registry_path)
    cfg["aggregation"]["retry_backoff"] = 0
    cfg["aggregation"]["global_timeout"] = 1.0
    return cfg


@pytest.fixture
def clock():
    return MockClock(start=1000.0)


@pytest.fixture
def full_roster():
    return {
        Tier.FEDERAL: [make_rep(Tier.FEDERAL, 1), make_rep(Tier.FEDERAL, 2), make_rep(Tier.FEDERAL, 3)],
        Tier.STATE: [make_rep(Tier.STATE, 1), make_rep(Tier.STATE, 2)],
        Tier.LOCAL: [
            make_rep(Tier.LOCAL, 1, level=RepresentativeLevel.MUNICIPAL),
            make_rep(Tier.LOCAL, 2, level=RepresentativeLevel.COUNTY),
        ],
    }
