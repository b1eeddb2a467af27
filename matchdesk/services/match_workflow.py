"""Attach/dismiss workflow - turn a reviewed match into a CRM property link."""

from typing import Optional, Sequence

from pydantic import BaseModel

from matchdesk.models.agent import AgentContext, Client
from matchdesk.models.listing import Listing
from matchdesk.models.property import ClientProperty, Property
from matchdesk.models.recommendation import MatchRecord, MatchStatus
from matchdesk.services.address_resolver import resolve_listing_address
from matchdesk.services.attribute_deriver import derive_attributes
from matchdesk.services.match_review import load_listing_photos, load_match
from matchdesk.services.photo_normalizer import best_photo_url, normalize_photos, photo_urls_from_rows
from matchdesk.utils.errors import (
    InvalidState,
    MissingBrokerageAssociation,
    PartialAttachFailure,
    StoreError,
    StoreUnavailable,
)
from matchdesk.utils.logging import (
    get_structured_logger,
    log_timing,
    mask_id,
    sanitize_note_text,
)

logger = get_structured_logger(__name__)

PROPERTIES_TABLE = "properties"
CLIENT_PROPERTIES_TABLE = "client_properties"
RECOMMENDATIONS_TABLE = "property_recommendations"
CLIENTS_TABLE = "clients"

PROPERTY_CONFLICT_KEY = "brokerage_id,external_listing_id"
CLIENT_PROPERTY_CONFLICT_KEY = "client_id,property_id"


class AttachResult(BaseModel):
    """
    Outcome of an attach. applied=False means the match was not 'new'.

    link_created is True whenever this call wrote the client link, including
    when the match was reviewed elsewhere before the status step.
    """
    match_id: str
    applied: bool
    status: MatchStatus
    property_id: Optional[str] = None
    link_created: bool = False


class DismissResult(BaseModel):
    """Outcome of a dismiss. applied=False means the match was not 'new'."""
    match_id: str
    applied: bool
    status: MatchStatus


def resolve_brokerage_id(client_brokerage_id: Optional[str], agent: AgentContext) -> Optional[str]:
    """Client's brokerage wins; the acting agent's is the fallback."""
    return client_brokerage_id or agent.brokerage_id or None


def build_property_record(
    listing: Listing,
    brokerage_id: str,
    agent: AgentContext,
    photo_urls: Sequence[str] = (),
) -> Property:
    """Normalized property payload for the upsert. Pure, no store access."""
    attrs = derive_attributes(listing)
    photos = normalize_photos(photo_urls, listing.raw_payload)

    return Property(
        brokerage_id=brokerage_id,
        agent_id=agent.id,
        external_listing_id=listing.mls_number,
        address=resolve_listing_address(listing),
        city=listing.city or "",
        state=listing.state or "",
        zip=listing.postal_code or "",
        list_price=listing.list_price,
        beds=attrs.beds,
        baths=attrs.baths,
        sqft=attrs.sqft,
        lot_sqft=listing.lot_sqft,
        year_built=attrs.year_built,
        property_type=listing.property_type,
        status=listing.status,
        pipeline_stage="suggested",
        primary_photo_url=best_photo_url(photos, listing.raw_payload),
    )


def _status_patch(status: MatchStatus, agent_note: Optional[str]) -> dict:
    patch = {"status": status.value}
    if agent_note is not None:
        patch["agent_note"] = agent_note
    return patch


async def transition_match(store, match_id: str, status: MatchStatus, agent_note: Optional[str] = None) -> None:
    """
    Move a match from 'new' to ``status`` with one conditional update.

    Raises InvalidState when the row was no longer 'new' at write time; the
    error carries the status read back from the store, when it can be read.
    """
    applied = await store.update_where(
        RECOMMENDATIONS_TABLE,
        match_id,
        _status_patch(status, agent_note),
        {"status": MatchStatus.NEW.value},
    )
    if not applied:
        current = await _current_status(store, match_id)
        raise InvalidState(match_id, current.value if current else None)


async def _current_status(store, match_id: str) -> Optional[MatchStatus]:
    """Status as stored now. None when the row cannot be read."""
    try:
        row = await store.get(RECOMMENDATIONS_TABLE, {"id": match_id})
    except StoreError as e:
        logger.warning("Could not re-read match status", match_id=match_id, error=str(e))
        return None
    if not row:
        return None
    try:
        return MatchStatus(row.get("status"))
    except ValueError:
        logger.warning("Unknown match status", match_id=match_id, status=row.get("status"))
        return None


def _reported_status(error: InvalidState, fallback: MatchStatus) -> MatchStatus:
    return MatchStatus(error.status) if error.status else fallback


async def attach_match(
    store,
    match: MatchRecord,
    listing: Listing,
    agent: AgentContext,
    client_brokerage_id: Optional[str],
    photo_urls: Sequence[str] = (),
    agent_note: Optional[str] = None,
) -> AttachResult:
    """
    Accept a match: upsert the property, link it to the client, mark attached.

    Store writes run strictly in that order. A match that is not 'new' is a
    no-op with no store calls. Errors after the property upsert are raised as
    PartialAttachFailure naming the step that failed.
    """
    if match.status is not MatchStatus.NEW:
        logger.info(
            "Attach skipped, match is not new",
            match_id=match.id,
            status=match.status.value
        )
        return AttachResult(match_id=match.id, applied=False, status=match.status)

    brokerage_id = resolve_brokerage_id(client_brokerage_id, agent)
    if not brokerage_id:
        logger.warning(
            "Attach refused, no brokerage association",
            match_id=match.id,
            client_id=mask_id(match.client_id),
            agent_id=mask_id(agent.id)
        )
        raise MissingBrokerageAssociation(client_id=match.client_id, agent_id=agent.id)

    prop = build_property_record(listing, brokerage_id, agent, photo_urls)

    logger.info(
        "Attaching match",
        match_id=match.id,
        mls_number=listing.mls_number,
        brokerage_id=brokerage_id,
        address=prop.address,
        has_photo=bool(prop.primary_photo_url),
        agent_note=sanitize_note_text(agent_note)
    )

    with log_timing("attach_match", logger=logger, match_id=match.id):
        # Step 1: property (abort on failure, nothing else has been written)
        row = await store.upsert(
            PROPERTIES_TABLE,
            prop.model_dump(exclude={"id"}),
            on_conflict=PROPERTY_CONFLICT_KEY,
        )
        property_id = row.get("id") if row else None
        if not property_id:
            raise StoreUnavailable("Could not resolve property id for attach.")

        # Step 2: client link
        link = ClientProperty(
            client_id=match.client_id,
            property_id=str(property_id),
            relationship="recommended",
            agent_notes=agent_note,
        )
        try:
            await store.upsert(
                CLIENT_PROPERTIES_TABLE,
                link.model_dump(),
                on_conflict=CLIENT_PROPERTY_CONFLICT_KEY,
            )
        except StoreError as e:
            logger.error(
                "Client link failed after property upsert",
                match_id=match.id,
                property_id=str(property_id),
                error=str(e)
            )
            raise PartialAttachFailure(PartialAttachFailure.LINK, str(property_id), str(e)) from e

        # Step 3: status
        try:
            await transition_match(store, match.id, MatchStatus.ATTACHED, agent_note)
        except InvalidState as e:
            current = _reported_status(e, match.status)
            logger.warning(
                "Match changed state during attach; property and link are in place",
                match_id=match.id,
                property_id=str(property_id),
                status=current.value
            )
            return AttachResult(
                match_id=match.id,
                applied=False,
                status=current,
                property_id=str(property_id),
                link_created=True,
            )
        except StoreError as e:
            logger.error(
                "Status update failed after attach",
                match_id=match.id,
                property_id=str(property_id),
                error=str(e)
            )
            raise PartialAttachFailure(PartialAttachFailure.STATUS, str(property_id), str(e)) from e

    logger.info(
        "Match attached",
        match_id=match.id,
        property_id=str(property_id),
        client_id=mask_id(match.client_id)
    )
    return AttachResult(
        match_id=match.id,
        applied=True,
        status=MatchStatus.ATTACHED,
        property_id=str(property_id),
        link_created=True,
    )


async def dismiss_match(store, match: MatchRecord, agent_note: Optional[str] = None) -> DismissResult:
    """Reject a match with a single conditional status update."""
    if match.status is not MatchStatus.NEW:
        logger.info(
            "Dismiss skipped, match is not new",
            match_id=match.id,
            status=match.status.value
        )
        return DismissResult(match_id=match.id, applied=False, status=match.status)

    try:
        await transition_match(store, match.id, MatchStatus.DISMISSED, agent_note)
    except InvalidState as e:
        current = _reported_status(e, match.status)
        logger.info("Dismiss lost race, match already reviewed", match_id=match.id, status=current.value)
        return DismissResult(match_id=match.id, applied=False, status=current)

    logger.info(
        "Match dismissed",
        match_id=match.id,
        agent_note=sanitize_note_text(agent_note)
    )
    return DismissResult(match_id=match.id, applied=True, status=MatchStatus.DISMISSED)


async def complete_attachment(store, match_id: str, agent_note: Optional[str] = None) -> bool:
    """Retry only the status step after PartialAttachFailure(step='status')."""
    try:
        await transition_match(store, match_id, MatchStatus.ATTACHED, agent_note)
    except InvalidState:
        return False
    logger.info("Attachment status completed on retry", match_id=match_id)
    return True


async def _client_brokerage_id(store, client_id: str) -> Optional[str]:
    row = await store.get(CLIENTS_TABLE, {"id": client_id})
    if not row:
        return None
    return Client(**row).brokerage_id


async def attach_match_by_id(
    store,
    match_id: str,
    agent: AgentContext,
    agent_note: Optional[str] = None,
) -> AttachResult:
    """Load the match, its listing, photos and client brokerage, then attach."""
    match, listing = await load_match(store, match_id)

    if match.status is not MatchStatus.NEW:
        return AttachResult(match_id=match.id, applied=False, status=match.status)

    if listing is None:
        raise StoreUnavailable("Listing details are missing. Try refreshing.")

    client_brokerage_id = await _client_brokerage_id(store, match.client_id)
    photo_rows = await load_listing_photos(store, listing.id)

    return await attach_match(
        store,
        match,
        listing,
        agent,
        client_brokerage_id,
        photo_urls=photo_urls_from_rows(photo_rows),
        agent_note=agent_note,
    )


async def dismiss_match_by_id(store, match_id: str, agent_note: Optional[str] = None) -> DismissResult:
    match, _ = await load_match(store, match_id)
    return await dismiss_match(store, match, agent_note)
