"""Attribute derivation - beds/baths/sqft/year from structured or payload fields."""

from typing import Any, Optional, Sequence

from pydantic import BaseModel

from matchdesk.models.listing import Listing
from matchdesk.services.payload_fields import FieldExtractor, fields, first_value, to_number

BEDS_EXTRACTORS: list[FieldExtractor] = fields("BedroomsTotal", "BedroomsTotalInteger", "BedsTotal")
BATHS_EXTRACTORS: list[FieldExtractor] = fields("BathroomsTotalInteger", "BathroomsTotal", "BathsTotal")
SQFT_EXTRACTORS: list[FieldExtractor] = fields("LivingArea", "BuildingAreaTotal", "LivingAreaSquareFeet")
YEAR_BUILT_EXTRACTORS: list[FieldExtractor] = fields("YearBuilt")


class DerivedAttributes(BaseModel):
    """Best-known physical attributes. None means unknown, never zero."""
    beds: Optional[float] = None
    baths: Optional[float] = None
    sqft: Optional[float] = None
    year_built: Optional[int] = None


def derive(
    structured_value: Any,
    raw_payload: Optional[dict],
    extractors: Sequence[FieldExtractor],
) -> Optional[float]:
    """Structured value when present, else the first numeric payload field."""
    if structured_value is not None:
        return structured_value
    return first_value(extractors, raw_payload, to_number)


def derive_beds(structured_value: Any, raw_payload: Optional[dict]) -> Optional[float]:
    return derive(structured_value, raw_payload, BEDS_EXTRACTORS)


def derive_baths(structured_value: Any, raw_payload: Optional[dict]) -> Optional[float]:
    return derive(structured_value, raw_payload, BATHS_EXTRACTORS)


def derive_sqft(structured_value: Any, raw_payload: Optional[dict]) -> Optional[float]:
    return derive(structured_value, raw_payload, SQFT_EXTRACTORS)


def derive_year_built(structured_value: Any, raw_payload: Optional[dict]) -> Optional[int]:
    year = derive(structured_value, raw_payload, YEAR_BUILT_EXTRACTORS)
    return int(year) if year is not None else None


def derive_attributes(listing: Listing) -> DerivedAttributes:
    payload = listing.raw_payload
    return DerivedAttributes(
        beds=derive_beds(listing.beds, payload),
        baths=derive_baths(listing.baths, payload),
        sqft=derive_sqft(listing.sqft, payload),
        year_built=derive_year_built(listing.year_built, payload),
    )


def _fmt(value: Optional[float]) -> str:
    if value is None:
        return "—"
    return f"{value:g}"


def format_beds_baths(attrs: DerivedAttributes) -> str:
    """'3 bd / 2.5 ba'; unknown values render as '—'."""
    if attrs.beds is None and attrs.baths is None:
        return "—"
    return f"{_fmt(attrs.beds)} bd / {_fmt(attrs.baths)} ba"
