"""Match review helpers - loading, ordering and summarizing matches for an agent."""

from typing import Optional, Sequence

from pydantic import BaseModel, Field, ValidationError

from matchdesk.models.listing import Listing, ListingPhoto
from matchdesk.models.recommendation import MatchRecord, MatchStatus
from matchdesk.services.address_resolver import format_locality, resolve_listing_address
from matchdesk.services.attribute_deriver import DerivedAttributes, derive_attributes
from matchdesk.services.payload_fields import safe_str
from matchdesk.services.photo_normalizer import normalize_photos, photo_urls_from_rows
from matchdesk.utils.config import StoreConfig
from matchdesk.utils.errors import MatchNotFound, StoreError
from matchdesk.utils.logging import get_structured_logger, mask_id

logger = get_structured_logger(__name__)

MAX_DISPLAY_REASONS = 10


def score_label(score: int) -> str:
    if score >= 85:
        return "Strong"
    if score >= 65:
        return "Good"
    return "Possible"


def sort_match_queue(records: Sequence[MatchRecord]) -> list[MatchRecord]:
    """New matches first, then by score (highest first)."""
    return sorted(records, key=lambda r: (r.status is not MatchStatus.NEW, -r.score))


class MatchSummary(BaseModel):
    """Everything the match detail view shows for one match."""
    match_id: str
    client_id: str
    status: MatchStatus
    score: int
    label: str
    reasons: list[str] = Field(default_factory=list)
    agent_note: Optional[str] = None
    mls_number: Optional[str] = None
    address: Optional[str] = None
    locality: Optional[str] = None
    list_price: Optional[float] = None
    property_type: Optional[str] = None
    listing_status: Optional[str] = None
    attributes: DerivedAttributes = Field(default_factory=DerivedAttributes)
    photos: list[str] = Field(default_factory=list)


def summarize_match(
    match: MatchRecord,
    listing: Optional[Listing],
    photo_rows: Sequence[ListingPhoto] = (),
) -> MatchSummary:
    summary = MatchSummary(
        match_id=match.id,
        client_id=match.client_id,
        status=match.status,
        score=match.score,
        label=score_label(match.score),
        reasons=match.reasons[:MAX_DISPLAY_REASONS],
        agent_note=match.agent_note,
    )
    if listing is None:
        return summary

    summary.mls_number = listing.mls_number
    summary.address = resolve_listing_address(listing)
    summary.locality = format_locality(listing.city, listing.state, listing.postal_code)
    summary.list_price = listing.list_price
    summary.property_type = listing.property_type
    summary.listing_status = listing.status
    summary.attributes = derive_attributes(listing)
    summary.photos = normalize_photos(photo_urls_from_rows(photo_rows), listing.raw_payload)
    return summary


async def load_match(store, match_id: str) -> tuple[MatchRecord, Optional[Listing]]:
    """Match record plus its listing (None when the listing row is gone)."""
    row = await store.get("property_recommendations", {"id": match_id})
    if not row:
        raise MatchNotFound(match_id)

    match = MatchRecord(**row)
    listing_row = await store.get("mls_listings", {"id": match.mls_listing_id})
    listing = Listing(**listing_row) if listing_row else None

    if listing is None:
        logger.warning(
            "Listing missing for match",
            match_id=match_id,
            mls_listing_id=match.mls_listing_id
        )
    return match, listing


async def load_listing_photos(store, listing_id: str, limit: Optional[int] = None) -> list[ListingPhoto]:
    """
    Photo-store rows for a listing. A failed read is logged and yields [];
    rows without a usable url are skipped.
    """
    try:
        rows = await store.list(
            "mls_listing_photos",
            {"listing_id": listing_id},
            order="sort_order",
            limit=limit or StoreConfig.PHOTO_LIST_LIMIT,
        )
    except StoreError as e:
        logger.warning("Photo load error", listing_id=listing_id, error=str(e))
        return []
    photos = []
    for row in rows:
        if not safe_str(row.get("url")):
            logger.debug("Skipping photo row without url", listing_id=listing_id, photo_id=row.get("id"))
            continue
        try:
            photos.append(ListingPhoto(**row))
        except ValidationError as e:
            logger.warning("Skipping malformed photo row", listing_id=listing_id, photo_id=row.get("id"), error=str(e))
    return photos


async def list_client_matches(store, client_id: str, limit: Optional[int] = None) -> list[MatchRecord]:
    """A client's new and attached matches, new first then by score."""
    rows = await store.list(
        "property_recommendations",
        {"client_id": client_id, "status": [MatchStatus.NEW.value, MatchStatus.ATTACHED.value]},
        order="score",
        descending=True,
        limit=limit or StoreConfig.MATCH_LIST_LIMIT,
    )
    records = sort_match_queue([MatchRecord(**row) for row in rows])
    logger.debug(
        "Loaded client matches",
        client_id=mask_id(client_id),
        count=len(records)
    )
    return records


async def load_match_summary(store, match_id: str) -> MatchSummary:
    match, listing = await load_match(store, match_id)
    photo_rows = await load_listing_photos(store, listing.id) if listing else []
    return summarize_match(match, listing, photo_rows)
