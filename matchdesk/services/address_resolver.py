"""Address resolution - one human-readable street line per listing."""

import re
from typing import Any, Optional

from matchdesk.models.listing import Listing
from matchdesk.services.payload_fields import FieldExtractor, field, first_value, safe_str

NO_ADDRESS = "(No address)"

STRUCTURED_STREET_PARTS = ("street_number", "street_dir_prefix", "street_name", "street_suffix")


def _synthesized_street(payload: dict) -> Optional[str]:
    number, name = payload.get("StreetNumber"), payload.get("StreetName")
    if not number or not name:
        return None
    prefix = payload.get("StreetDirPrefix") or ""
    suffix = payload.get("StreetSuffix") or ""
    return f"{number} {prefix} {name} {suffix}"


def _synthesized_street_with_unit(payload: dict) -> Optional[str]:
    number, name, unit = payload.get("StreetNumber"), payload.get("StreetName"), payload.get("UnitNumber")
    if not number or not name or not unit:
        return None
    return f"{number} {name} #{unit}"


# Probed in order; the first non-blank candidate wins
PAYLOAD_ADDRESS_EXTRACTORS: list[FieldExtractor] = [
    field("UnparsedAddress"),
    field("UnparsedFirstLineAddress"),
    field("UnparsedFirstLine"),
    field("StreetAddress"),
    field("AddressLine1"),
    field("FullStreetAddress"),
    field("PropertyAddress"),
    field("Address"),
    FieldExtractor("StreetNumber+StreetName", _synthesized_street),
    FieldExtractor("StreetNumber+StreetName+UnitNumber", _synthesized_street_with_unit),
]


def _collapse(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def _part(source: Any, name: str) -> Optional[str]:
    value = source.get(name) if isinstance(source, dict) else getattr(source, name, None)
    if value is not None and not isinstance(value, str):
        value = str(value)
    return safe_str(value)


def street_line_from_structured(fields: Any) -> Optional[str]:
    """Street line from structured parts (a Listing or a dict of the same keys)."""
    parts = [part for part in (_part(fields, name) for name in STRUCTURED_STREET_PARTS) if part]
    address = _collapse(" ".join(parts))

    unit = _part(fields, "unit")
    if unit:
        address = f"{address} #{unit}" if address else f"#{unit}"

    return address or None


def street_line_from_payload(raw_payload: Optional[dict]) -> Optional[str]:
    """Street segment of the first address-like payload field, or None."""
    candidate = first_value(
        PAYLOAD_ADDRESS_EXTRACTORS,
        raw_payload,
        lambda value: safe_str(value if isinstance(value, str) else None),
    )
    if not candidate:
        return None

    # upstream sometimes appends ", City, ST 12345"
    street = candidate.split(",", 1)[0] if "," in candidate else candidate
    return _collapse(street) or None


def resolve_address(
    structured: Any,
    raw_payload: Optional[dict] = None,
    fallback_title: Optional[str] = None,
) -> str:
    """
    Resolve the display street address for a listing.

    Order: structured parts, then the raw payload, then the listing title,
    then the literal ``"(No address)"``. City/state are never used in place
    of a missing street line.
    """
    structured_line = street_line_from_structured(structured)
    if structured_line:
        return structured_line

    payload_line = street_line_from_payload(raw_payload)
    if payload_line:
        return payload_line

    title = safe_str(fallback_title)
    if title:
        return title

    return NO_ADDRESS


def resolve_listing_address(listing: Listing) -> str:
    return resolve_address(listing, listing.raw_payload, listing.listing_title)


def format_locality(city: Optional[str], state: Optional[str], postal_code: Optional[str]) -> str:
    """'Irvine, CA 92618' style line shown under the street address."""
    line = safe_str(city) or "—"
    if safe_str(state):
        line += f", {state.strip()}"
    if safe_str(postal_code):
        line += f" {postal_code.strip()}"
    return line
