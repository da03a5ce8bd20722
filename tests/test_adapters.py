"""Tests for the three tier adapters and the shared normalization helpers.

HTTP adapters run against a mocked ``_request_with_retry``; no network.
"""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import LOCATIONS, make_rep
from jurisdiction_engine.adapters import (
    CongressGovAdapter,
    LocalRegistryAdapter,
    OpenStatesAdapter,
    build_default_adapters,
)
from jurisdiction_engine.adapters.normalize import (
    build_representative,
    clean_contact,
    dedupe_by_id,
    format_person_name,
    is_placeholder,
    seat_label,
)
from jurisdiction_engine.exceptions import SourceError
from jurisdiction_engine.schemas.models import (
    RepresentativeLevel,
    ResolveOptions,
    Tier,
)


def _mock_session():
    return MagicMock(
        __aenter__=AsyncMock(return_value=MagicMock()),
        __aexit__=AsyncMock(return_value=False),
    )


def _router(routes):
    """Fake _request_with_retry answering by URL fragment, first match wins."""
    calls = []

    async def fake(session, method, url, **kwargs):
        calls.append(url)
        for fragment, body in routes:
            if fragment in url:
                if isinstance(body, Exception):
                    raise body
                return body
        return None

    fake.calls = calls
    return fake


# ---------------------------------------------------------------------------
# Normalization helpers
# ---------------------------------------------------------------------------


class TestNormalize:

    @pytest.mark.parametrize("value", [None, "", "  ", "TBD", "n/a", "Unknown", "VACANT", "-"])
    def test_placeholders(self, value):
        assert is_placeholder(value)

    @pytest.mark.parametrize("value", ["Alex Padilla", "(202) 224-3553", 0])
    def test_not_placeholders(self, value):
        assert not is_placeholder(value)

    def test_clean_contact_scrubs_placeholders(self):
        contact = clean_contact(phone="TBD", email="N/A", website="https://example.gov")
        assert contact.phone is None
        assert contact.email is None
        assert contact.website == "https://example.gov"
        assert not contact.is_empty()
        assert clean_contact(phone="unknown").is_empty()

    def test_format_person_name(self):
        assert format_person_name("Padilla, Alex") == "Alex Padilla"
        assert format_person_name("Alex Padilla") == "Alex Padilla"
        assert format_person_name("  Lieu,   Ted ") == "Ted Lieu"

    def test_seat_labels(self):
        assert seat_label(RepresentativeLevel.FEDERAL, "CA", "36") == "CA - District 36"
        assert seat_label(RepresentativeLevel.FEDERAL, "CA") == "CA - Statewide"
        assert seat_label(RepresentativeLevel.STATE, "CA", "26", chamber="upper") == "CA - Senate District 26"
        assert seat_label(RepresentativeLevel.STATE, "CA", "51", chamber="lower") == "CA - Assembly District 51"
        assert seat_label(RepresentativeLevel.COUNTY, "CA", "3", area="Los Angeles County") == "Los Angeles County - District 3"

    def test_build_representative_drops_placeholder_seat(self):
        assert build_representative("x:1", "Vacant", Tier.LOCAL, RepresentativeLevel.COUNTY, "t") is None
        assert build_representative("", "Jane Doe", Tier.LOCAL, RepresentativeLevel.COUNTY, "t") is None

    def test_dedupe_keeps_first(self):
        a = make_rep(Tier.STATE, 1, title="first")
        b = make_rep(Tier.STATE, 1, title="second")
        c = make_rep(Tier.STATE, 2)
        assert [r.title for r in dedupe_by_id([a, b, c])] == ["first", "Member"]


# ---------------------------------------------------------------------------
# Federal: Congress.gov
# ---------------------------------------------------------------------------

MEMBERS = {
    "members": [
        {"bioguideId": "P000145", "name": "Padilla, Alex", "partyName": "Democratic",
         "terms": {"item": [{"chamber": "Senate"}]}},
        {"bioguideId": "L000582", "name": "Lieu, Ted", "partyName": "Democratic", "district": 36,
         "terms": {"item": [{"chamber": "House of Representatives"}]}},
        {"bioguideId": "S001150", "name": "Schiff, Adam B.", "partyName": "Democratic",
         "terms": {"item": [{"chamber": "House of Representatives"}, {"chamber": "Senate"}]}},
        {"bioguideId": "X000012", "name": "Elsewhere, Rep", "partyName": "Republican", "district": 12,
         "terms": {"item": [{"chamber": "House of Representatives"}]}},
    ]
}

LIEU_DETAIL = {
    "member": {
        "addressInformation": {"officeAddress": "403 Cannon HOB", "phoneNumber": "(202) 225-3976"},
        "officialWebsiteUrl": "https://lieu.house.gov",
    }
}


class TestCongressGovAdapter:

    @pytest.fixture
    def adapter(self, config, monkeypatch):
        monkeypatch.setenv("CONGRESS_API_KEY", "test-key")
        adapter = CongressGovAdapter(config)
        adapter._create_session = MagicMock(return_value=_mock_session())
        return adapter

    def test_senators_and_district_member(self, adapter):
        adapter._request_with_retry = _router([
            ("/member/CA?", MEMBERS),
            ("/member/L000582?", LIEU_DETAIL),
        ])
        reps = asyncio.run(adapter.fetch_by_zip("90210", ResolveOptions(), LOCATIONS["90210"]))

        assert [r.id for r in reps] == ["federal:P000145", "federal:S001150", "federal:L000582"]
        assert all(r.source_tier == Tier.FEDERAL for r in reps)
        lieu = reps[2]
        assert lieu.name == "Ted Lieu"
        assert lieu.title == "U.S. Representative"
        assert lieu.jurisdiction == "CA - District 36"
        assert lieu.contact_info.phone == "(202) 225-3976"
        assert reps[0].title == "U.S. Senator"
        assert reps[0].district is None

    def test_bill_data_only_when_requested(self, adapter):
        bills = {"sponsoredLegislation": [
            {"congress": 119, "type": "HR", "number": "1234", "title": "Example Act",
             "introducedDate": "2025-03-01"},
        ]}
        adapter._request_with_retry = _router([
            ("/sponsored-legislation", bills),
            ("/member/CA?", MEMBERS),
        ])
        without = asyncio.run(adapter.fetch_by_zip("90210", ResolveOptions(), LOCATIONS["90210"]))
        assert all(r.sponsored_bills == () for r in without)
        assert not any("sponsored-legislation" in u for u in adapter._request_with_retry.calls)

        with_bills = asyncio.run(adapter.fetch_by_zip(
            "90210", ResolveOptions(include_bill_data=True), LOCATIONS["90210"],
        ))
        assert with_bills[0].sponsored_bills[0]["number"] == "HR1234"

    def test_detail_failure_keeps_member(self, adapter):
        adapter._request_with_retry = _router([
            ("/member/L000582?", SourceError("congress_gov", "HTTP 500")),
            ("/member/CA?", MEMBERS),
        ])
        reps = asyncio.run(adapter.fetch_by_zip("90210", ResolveOptions(), LOCATIONS["90210"]))
        lieu = [r for r in reps if r.id == "federal:L000582"][0]
        assert lieu.contact_info.is_empty()

    def test_at_large_district(self, adapter):
        members = {"members": [
            {"bioguideId": "A000001", "name": "Large, At", "district": None,
             "terms": {"item": [{"chamber": "House of Representatives"}]}},
        ]}
        adapter._request_with_retry = _router([("/member/DC?", members)])
        location = LOCATIONS["90210"].model_copy(update={"state": "DC", "congressional_district": 0})
        reps = asyncio.run(adapter.fetch_by_zip("20001", ResolveOptions(), location))
        assert reps[0].district == "At Large"

    def test_missing_api_key(self, config, monkeypatch):
        monkeypatch.delenv("CONGRESS_API_KEY", raising=False)
        adapter = CongressGovAdapter(config)
        with pytest.raises(SourceError, match="API key"):
            asyncio.run(adapter.fetch_by_zip("90210", ResolveOptions(), LOCATIONS["90210"]))

    def test_missing_location(self, adapter):
        with pytest.raises(SourceError):
            asyncio.run(adapter.fetch_by_zip("90210", ResolveOptions(), None))

    def test_health_reports_breaker(self, adapter):
        info = adapter.health()
        assert info["configured"] is True
        assert info["circuit"]["state"] == "closed"


# ---------------------------------------------------------------------------
# State: Open States
# ---------------------------------------------------------------------------

PEOPLE = {
    "results": [
        {"id": "ocd-person/assembly-51", "name": "Rick Chavez Zbur", "party": "Democratic",
         "jurisdiction": {"classification": "state"},
         "current_role": {"org_classification": "lower", "district": "51", "title": "Assemblymember"},
         "offices": [
             {"classification": "district", "voice": "310-000-0000"},
             {"classification": "capitol", "voice": "916-319-2051", "address": "P.O. Box 942849"},
         ]},
        {"id": "ocd-person/senate-24", "name": "Ben Allen", "party": "Democratic",
         "jurisdiction": {"classification": "state"},
         "current_role": {"org_classification": "upper", "district": "24"},
         "offices": []},
        {"id": "ocd-person/us-house", "name": "Ted Lieu",
         "jurisdiction": {"classification": "country"},
         "current_role": {"org_classification": "lower", "district": "36"}},
    ]
}


class TestOpenStatesAdapter:

    @pytest.fixture
    def adapter(self, config, monkeypatch):
        monkeypatch.setenv("OPENSTATES_API_KEY", "test-key")
        adapter = OpenStatesAdapter(config)
        adapter._create_session = MagicMock(return_value=_mock_session())
        return adapter

    def test_state_legislators_only_upper_first(self, adapter):
        adapter._request_with_retry = AsyncMock(return_value=PEOPLE)
        reps = asyncio.run(adapter.fetch_by_zip("90210", ResolveOptions(), LOCATIONS["90210"]))

        assert [r.id for r in reps] == ["ocd-person/senate-24", "ocd-person/assembly-51"]
        senator, member = reps
        assert senator.title == "State Senator"
        assert senator.jurisdiction == "CA - Senate District 24"
        assert member.title == "Assemblymember"
        assert member.contact_info.phone == "916-319-2051"
        assert all(r.level == RepresentativeLevel.STATE for r in reps)

    def test_uses_coordinates(self, adapter):
        adapter._request_with_retry = AsyncMock(return_value={"results": []})
        asyncio.run(adapter.fetch_by_zip("90210", ResolveOptions(), LOCATIONS["90210"]))
        url = adapter._request_with_retry.call_args.args[2]
        assert "lat=34.0901" in url and "lng=-118.4065" in url

    def test_no_coordinates_is_source_error(self, adapter):
        with pytest.raises(SourceError):
            asyncio.run(adapter.fetch_by_zip("00901", ResolveOptions(), LOCATIONS["00901"]))

    def test_upstream_failure_propagates(self, adapter):
        adapter._request_with_retry = AsyncMock(side_effect=SourceError("openstates", "HTTP 503", tier="state"))
        with pytest.raises(SourceError):
            asyncio.run(adapter.fetch_by_zip("90210", ResolveOptions(), LOCATIONS["90210"]))


# ---------------------------------------------------------------------------
# Local: officials registry
# ---------------------------------------------------------------------------

LOCAL_DATA = {
    "cities": {
        "CA:Beverly Hills": [
            {"id": "local:bh-mayor", "name": "Pat Mayor", "title": "Mayor", "phone": "TBD",
             "website": "https://www.beverlyhills.org", "committees": ["Public Safety"],
             "voting_record": {"votes_cast": 12}},
            {"id": "local:bh-seat-5", "name": "Vacant", "title": "Council Member"},
        ]
    },
    "counties": {
        "CA:Los Angeles County": [
            {"id": "local:la-d3", "name": "Lindsey P. Horvath", "title": "County Supervisor", "district": "3"},
        ]
    },
}


class TestLocalRegistryAdapter:

    @pytest.fixture
    def adapter(self, tmp_path):
        path = tmp_path / "local_officials.json"
        path.write_text(json.dumps(LOCAL_DATA), encoding="utf-8")
        return LocalRegistryAdapter({"sources": {"local_registry": {"data_path": str(path)}}})

    def test_municipal_then_county(self, adapter):
        reps = asyncio.run(adapter.fetch_by_zip("90210", ResolveOptions(), LOCATIONS["90210"]))
        assert [r.id for r in reps] == ["local:bh-mayor", "local:la-d3"]
        assert reps[0].level == RepresentativeLevel.MUNICIPAL
        assert reps[1].level == RepresentativeLevel.COUNTY
        assert reps[1].jurisdiction == "Los Angeles County - District 3"

    def test_placeholder_contact_scrubbed(self, adapter):
        reps = asyncio.run(adapter.fetch_by_zip("90210", ResolveOptions(), LOCATIONS["90210"]))
        assert reps[0].contact_info.phone is None
        assert reps[0].contact_info.website == "https://www.beverlyhills.org"

    def test_enrichment_follows_options(self, adapter):
        plain = asyncio.run(adapter.fetch_by_zip("90210", ResolveOptions(), LOCATIONS["90210"]))
        assert plain[0].committees == ()
        assert plain[0].voting_record is None

        options = ResolveOptions(include_committee_info=True, include_voting_records=True)
        rich = asyncio.run(adapter.fetch_by_zip("90210", options, LOCATIONS["90210"]))
        assert rich[0].committees == ("Public Safety",)
        assert rich[0].voting_record == {"votes_cast": 12}

    def test_lookup_is_case_insensitive(self, adapter):
        location = LOCATIONS["90210"].model_copy(update={"city": "BEVERLY HILLS"})
        reps = asyncio.run(adapter.fetch_by_zip("90210", ResolveOptions(), location))
        assert reps[0].id == "local:bh-mayor"

    def test_unknown_place_returns_empty(self, adapter):
        reps = asyncio.run(adapter.fetch_by_zip("78701", ResolveOptions(), LOCATIONS["78701"]))
        assert reps == []

    def test_missing_registry_is_source_error(self, tmp_path):
        adapter = LocalRegistryAdapter({"sources": {"local_registry": {"data_path": str(tmp_path / "x.json")}}})
        with pytest.raises(SourceError, match="registry file missing"):
            asyncio.run(adapter.fetch_by_zip("90210", ResolveOptions(), LOCATIONS["90210"]))
        assert adapter.health()["configured"] is False


def test_build_default_adapters_covers_every_tier(config):
    adapters = build_default_adapters(config)
    assert set(adapters) == {Tier.FEDERAL, Tier.STATE, Tier.LOCAL}
    assert all(adapter.tier == tier for tier, adapter in adapters.items())
