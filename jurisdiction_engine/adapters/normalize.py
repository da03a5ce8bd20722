"""Normalization helpers shared by every source adapter.

Sources disagree on shape and quality: some pad missing fields with
"TBD" or "N/A", some list vacant seats, and the same office holder can be
returned twice. Adapters build Representative records through these
helpers so the Aggregator receives one consistent shape.
"""

import logging
import re

from jurisdiction_engine.schemas.models import (
    ContactInfo,
    Representative,
    RepresentativeLevel,
    Tier,
)

logger = logging.getLogger(__name__)

PLACEHOLDER_VALUES = frozenset({
    "",
    "tbd",
    "n/a",
    "na",
    "none",
    "null",
    "unknown",
    "vacant",
    "pending",
    "-",
})

_WHITESPACE = re.compile(r"\s+")


def is_placeholder(value) -> bool:
    """True for None, blank strings and well-known filler values."""
    if value is None:
        return True
    if not isinstance(value, str):
        return False
    return value.strip().lower() in PLACEHOLDER_VALUES


def clean_text(value) -> str | None:
    """Collapse whitespace; placeholders become None."""
    if is_placeholder(value):
        return None
    return _WHITESPACE.sub(" ", str(value)).strip()


def clean_contact(
    phone=None,
    email=None,
    website=None,
    office_address=None,
) -> ContactInfo:
    """Build a ContactInfo with placeholder values dropped."""
    return ContactInfo(
        phone=clean_text(phone),
        email=clean_text(email),
        website=clean_text(website),
        office_address=clean_text(office_address),
    )


def format_person_name(raw: str) -> str:
    """Turn "Last, First M." into "First M. Last"; other shapes pass through."""
    text = clean_text(raw) or ""
    if text.count(",") == 1:
        last, first = (part.strip() for part in text.split(","))
        if last and first:
            return f"{first} {last}"
    return text


def seat_label(
    level: RepresentativeLevel,
    state: str = "",
    district: str | None = None,
    chamber: str = "",
    area: str = "",
) -> str:
    """Human-readable seat label such as "CA - Senate District 26"."""
    if level == RepresentativeLevel.FEDERAL:
        if district:
            return f"{state} - District {district}"
        return f"{state} - Statewide"
    if level == RepresentativeLevel.STATE:
        body = "Senate" if chamber.lower() in {"upper", "senate"} else "Assembly"
        return f"{state} - {body} District {district}" if district else f"{state} - {body}"
    if area:
        return f"{area} - District {district}" if district else area
    return state


def build_representative(
    record_id: str,
    name: str,
    tier: Tier,
    level: RepresentativeLevel,
    source: str,
    **fields,
) -> Representative | None:
    """Construct a Representative, or None for placeholder seats.

    Records with no usable id or name (vacant seats, "TBD" entries) are
    discarded here rather than surfacing as blank cards.
    """
    clean_id = clean_text(record_id)
    clean_name = clean_text(name)
    if not clean_id or not clean_name:
        logger.debug("%s: dropping placeholder record id=%r name=%r", source, record_id, name)
        return None
    return Representative(
        id=clean_id,
        name=clean_name,
        level=level,
        source_tier=tier,
        source=source,
        **fields,
    )


def dedupe_by_id(representatives: list[Representative]) -> list[Representative]:
    """Drop repeated ids, keeping the first occurrence (insertion order)."""
    seen: set[str] = set()
    unique: list[Representative] = []
    for rep in representatives:
        if rep.id in seen:
            continue
        seen.add(rep.id)
        unique.append(rep)
    return unique
