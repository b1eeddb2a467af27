"""CRM-side property and client-property link models."""

from typing import Optional
from pydantic import BaseModel, Field


class Property(BaseModel):
    """Agent's normalized view of a market listing.

    Unique per (brokerage_id, external_listing_id).
    """
    id: Optional[str] = Field(None, description="Assigned by the store")
    brokerage_id: str = Field(..., description="Owning brokerage")
    agent_id: Optional[str] = Field(None, description="Agent who attached it")
    external_listing_id: str = Field(..., description="MLS number of the source listing")
    address: str = Field(..., description="Street line, never empty")
    city: str = ""
    state: str = ""
    zip: str = ""
    list_price: Optional[float] = None
    beds: Optional[float] = None
    baths: Optional[float] = None
    sqft: Optional[float] = None
    lot_sqft: Optional[float] = None
    year_built: Optional[int] = None
    property_type: Optional[str] = None
    status: Optional[str] = None
    pipeline_stage: str = Field(default="suggested", description="CRM pipeline stage")
    primary_photo_url: Optional[str] = None


class ClientProperty(BaseModel):
    """Link between a client and a property. Unique per (client_id, property_id)."""
    client_id: str = Field(..., description="Client ID")
    property_id: str = Field(..., description="Property ID")
    relationship: str = Field(default="recommended", description="How the property reached the client")
    interest_level: Optional[str] = None
    is_favorite: bool = False
    client_feedback: Optional[str] = None
    client_rating: Optional[int] = Field(None, ge=1, le=5, description="Client rating (1-5)")
    agent_notes: Optional[str] = None
