"""Listing models (mls_listings, mls_listing_photos)."""

import json
from typing import Any, Optional
from pydantic import BaseModel, Field, field_validator


class Listing(BaseModel):
    """Upstream MLS listing. Read-only to this package."""
    id: str = Field(..., description="mls_listings.id (uuid)")
    mls_number: str = Field(..., description="External listing identifier")
    status: Optional[str] = Field(None, description="Upstream listing status")
    list_price: Optional[float] = Field(None, description="List price")
    property_type: Optional[str] = Field(None, description="Property type")
    listing_title: Optional[str] = Field(None, description="Marketing title, used as address fallback")
    street_number: Optional[str] = None
    street_dir_prefix: Optional[str] = None
    street_name: Optional[str] = None
    street_suffix: Optional[str] = None
    unit: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    beds: Optional[float] = None
    baths: Optional[float] = None
    sqft: Optional[float] = None
    lot_sqft: Optional[float] = None
    year_built: Optional[int] = None
    last_seen_at: Optional[str] = None
    raw_payload: dict[str, Any] = Field(default_factory=dict, description="Provider fields, key names vary by feed")

    @field_validator("raw_payload", mode="before")
    @classmethod
    def _coerce_payload(cls, value: Any) -> dict:
        # jsonb sometimes comes back stringified
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                return {}
        return value if isinstance(value, dict) else {}

    @field_validator(
        "street_number", "street_dir_prefix", "street_name", "street_suffix",
        "unit", "postal_code",
        mode="before",
    )
    @classmethod
    def _stringify_parts(cls, value: Any) -> Optional[str]:
        if value is None or isinstance(value, str):
            return value
        return str(value)


class ListingPhoto(BaseModel):
    """Row from the structured photo store."""
    id: Optional[str] = None
    listing_id: str = Field(..., description="mls_listings.id")
    url: str = Field(..., description="Photo URL")
    sort_order: Optional[int] = Field(None, description="Display order, lowest first")
    caption: Optional[str] = None
    created_at: Optional[str] = None
