"""Tests for the attach/dismiss workflow."""

import pytest
from matchdesk.models.agent import AgentContext
from matchdesk.models.listing import Listing
from matchdesk.models.recommendation import MatchRecord, MatchStatus
from matchdesk.services.match_workflow import (
    attach_match,
    attach_match_by_id,
    build_property_record,
    complete_attachment,
    dismiss_match,
    dismiss_match_by_id,
    resolve_brokerage_id,
    transition_match,
)
from matchdesk.utils.errors import (
    InvalidState,
    MatchNotFound,
    MissingBrokerageAssociation,
    PartialAttachFailure,
    StoreTimeout,
    StoreUnavailable,
)
from tests.utils.assertions import assert_single_property
from tests.utils.fake_store import FakeStore


def _match(match_row, **overrides):
    return MatchRecord(**{**match_row, **overrides})


@pytest.mark.unit
def test_resolve_brokerage_prefers_client(agent, agent_without_brokerage):
    assert resolve_brokerage_id("B-client", agent) == "B-client"
    assert resolve_brokerage_id(None, agent) == "B1"
    assert resolve_brokerage_id("", agent) == "B1"
    assert resolve_brokerage_id(None, agent_without_brokerage) is None


@pytest.mark.unit
def test_build_property_record(listing_row, agent):
    prop = build_property_record(Listing(**listing_row), "B1", agent, ["https://t/1.jpg?w=10", "https://t/1.jpg"])

    assert prop.brokerage_id == "B1"
    assert prop.agent_id == "agent-1"
    assert prop.external_listing_id == "OC25000001"
    assert prop.address == "123 Main St"
    assert prop.city == "Irvine"
    assert prop.zip == "92618"
    assert prop.beds == 3
    assert prop.year_built == 2001
    assert prop.pipeline_stage == "suggested"
    assert prop.primary_photo_url == "https://t/1.jpg"


@pytest.mark.unit
def test_build_property_record_from_payload_only(agent):
    listing = Listing(
        id="l2",
        mls_number="M2",
        raw_payload={"UnparsedAddress": "9 Elm Rd, Tustin, CA", "BedroomsTotal": "2", "ThumbnailUrl": "https://t/x.jpg"},
    )
    prop = build_property_record(listing, "B1", agent)

    assert prop.address == "9 Elm Rd"
    assert prop.beds == 2
    assert prop.baths is None
    assert prop.city == ""
    assert prop.primary_photo_url == "https://t/x.jpg"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_attach_writes_in_order(seeded_store, match_row, listing_row, agent):
    result = await attach_match(
        seeded_store,
        _match(match_row),
        Listing(**listing_row),
        agent,
        "B1",
        agent_note="Great layout",
    )

    assert result.applied
    assert result.status is MatchStatus.ATTACHED
    assert seeded_store.writes == [
        ("upsert", "properties"),
        ("upsert", "client_properties"),
        ("update_where", "property_recommendations"),
    ]

    prop = assert_single_property(seeded_store, "B1", "OC25000001")
    assert result.property_id == prop["id"]

    link = seeded_store.rows("client_properties")[0]
    assert link["client_id"] == "client-1"
    assert link["property_id"] == prop["id"]
    assert link["relationship"] == "recommended"
    assert link["agent_notes"] == "Great layout"

    rec = seeded_store.rows("property_recommendations")[0]
    assert rec["status"] == "attached"
    assert rec["agent_note"] == "Great layout"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_attach_twice_keeps_one_property(seeded_store, match_row, listing_row, agent):
    """Re-attaching the same listing for the same brokerage updates in place."""
    listing = Listing(**listing_row)
    first = await attach_match(seeded_store, _match(match_row), listing, agent, "B1")

    second_row = {**match_row, "id": "match-2", "client_id": "client-2"}
    seeded_store.rows("property_recommendations").append(second_row)
    changed = Listing(**{**listing_row, "list_price": 999000})
    second = await attach_match(seeded_store, MatchRecord(**second_row), changed, agent, "B1")

    assert first.property_id == second.property_id
    prop = assert_single_property(seeded_store, "B1", "OC25000001")
    assert prop["list_price"] == 999000
    assert len(seeded_store.rows("client_properties")) == 2


@pytest.mark.unit
@pytest.mark.asyncio
async def test_same_listing_different_brokerage_is_separate(seeded_store, match_row, listing_row, agent):
    listing = Listing(**listing_row)
    await attach_match(seeded_store, _match(match_row), listing, agent, "B1")
    seeded_store.rows("property_recommendations")[0]["status"] = "new"
    await attach_match(seeded_store, _match(match_row), listing, agent, "B2")

    assert len(seeded_store.rows("properties")) == 2


@pytest.mark.unit
@pytest.mark.asyncio
async def test_attach_on_dismissed_match_is_noop(seeded_store, match_row, listing_row, agent):
    result = await attach_match(
        seeded_store, _match(match_row, status="dismissed"), Listing(**listing_row), agent, "B1"
    )

    assert not result.applied
    assert result.status is MatchStatus.DISMISSED
    assert seeded_store.calls == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_dismiss_after_attach_is_noop(seeded_store, match_row, listing_row, agent):
    await attach_match(seeded_store, _match(match_row), Listing(**listing_row), agent, "B1")
    writes_before = len(seeded_store.writes)

    # stale page state still thinks the match is new
    result = await dismiss_match(seeded_store, _match(match_row))

    assert not result.applied
    assert seeded_store.rows("property_recommendations")[0]["status"] == "attached"
    assert len(seeded_store.writes) == writes_before + 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_missing_brokerage_is_hard_stop(seeded_store, match_row, listing_row, agent_without_brokerage):
    with pytest.raises(MissingBrokerageAssociation) as exc_info:
        await attach_match(
            seeded_store, _match(match_row), Listing(**listing_row), agent_without_brokerage, None
        )

    assert "brokerage_id" in str(exc_info.value)
    assert seeded_store.writes == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_property_upsert_failure_aborts(seeded_store, match_row, listing_row, agent):
    seeded_store.fail("upsert", "properties", "duplicate key value violates unique constraint")

    with pytest.raises(StoreUnavailable) as exc_info:
        await attach_match(seeded_store, _match(match_row), Listing(**listing_row), agent, "B1")

    assert str(exc_info.value) == "duplicate key value violates unique constraint"
    assert seeded_store.writes == [("upsert", "properties")]
    assert seeded_store.rows("property_recommendations")[0]["status"] == "new"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_link_failure_reports_partial_attach(seeded_store, match_row, listing_row, agent):
    seeded_store.fail("upsert", "client_properties", "permission denied")

    with pytest.raises(PartialAttachFailure) as exc_info:
        await attach_match(seeded_store, _match(match_row), Listing(**listing_row), agent, "B1")

    err = exc_info.value
    prop = assert_single_property(seeded_store, "B1", "OC25000001")
    assert err.step == "link"
    assert err.property_id == prop["id"]
    assert not err.link_created
    assert "was created/updated" in str(err)
    assert "permission denied" in str(err)
    assert seeded_store.rows("property_recommendations")[0]["status"] == "new"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_status_failure_reports_partial_attach_and_can_be_retried(seeded_store, match_row, listing_row, agent):
    seeded_store.time_out("update_where", "property_recommendations")

    with pytest.raises(PartialAttachFailure) as exc_info:
        await attach_match(seeded_store, _match(match_row), Listing(**listing_row), agent, "B1", agent_note="n")

    err = exc_info.value
    assert err.step == "status"
    assert err.link_created
    assert isinstance(err.__cause__, StoreTimeout)
    assert str(err).startswith("Attached, but could not update recommendation status")

    seeded_store.fail_on.clear()
    assert await complete_attachment(seeded_store, match_row["id"], agent_note="n") is True
    assert seeded_store.rows("property_recommendations")[0]["status"] == "attached"
    assert await complete_attachment(seeded_store, match_row["id"]) is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_attach_losing_race_is_not_applied(seeded_store, match_row, listing_row, agent):
    # another tab dismissed the match after this page loaded it
    seeded_store.rows("property_recommendations")[0]["status"] = "dismissed"

    result = await attach_match(seeded_store, _match(match_row), Listing(**listing_row), agent, "B1")

    assert not result.applied
    assert result.status is MatchStatus.DISMISSED
    assert result.property_id is not None
    assert result.link_created
    assert len(seeded_store.rows("client_properties")) == 1
    assert seeded_store.rows("property_recommendations")[0]["status"] == "dismissed"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_attach_losing_race_keeps_loaded_status_when_reread_fails(seeded_store, match_row, listing_row, agent):
    seeded_store.rows("property_recommendations")[0]["status"] = "attached"
    seeded_store.fail("get", "property_recommendations")

    result = await attach_match(seeded_store, _match(match_row), Listing(**listing_row), agent, "B1")

    assert not result.applied
    assert result.status is MatchStatus.NEW


@pytest.mark.unit
@pytest.mark.asyncio
async def test_dismiss_losing_race_reports_stored_status(seeded_store, match_row):
    seeded_store.rows("property_recommendations")[0]["status"] = "attached"

    result = await dismiss_match(seeded_store, _match(match_row), agent_note="Too far")

    assert not result.applied
    assert result.status is MatchStatus.ATTACHED
    assert seeded_store.rows("property_recommendations")[0].get("agent_note") is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_transition_error_carries_stored_status(seeded_store, match_row):
    seeded_store.rows("property_recommendations")[0]["status"] = "dismissed"

    with pytest.raises(InvalidState) as exc_info:
        await transition_match(seeded_store, match_row["id"], MatchStatus.ATTACHED)

    assert exc_info.value.status == "dismissed"
    assert "status=dismissed" in str(exc_info.value)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_attach_by_id_skips_photo_rows_without_url(seeded_store, agent):
    seeded_store.rows("mls_listing_photos")[1]["url"] = None

    result = await attach_match_by_id(seeded_store, "match-1", agent)

    assert result.applied
    prop = assert_single_property(seeded_store, "B1", "OC25000001")
    assert prop["primary_photo_url"] == "https://photos.example.com/b.jpg"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_dismiss_new_match(seeded_store, match_row):
    result = await dismiss_match(seeded_store, _match(match_row), agent_note="Too far")

    assert result.applied
    assert result.status is MatchStatus.DISMISSED
    assert seeded_store.writes == [("update_where", "property_recommendations")]
    rec = seeded_store.rows("property_recommendations")[0]
    assert rec["status"] == "dismissed"
    assert rec["agent_note"] == "Too far"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_dismiss_without_note_keeps_existing_note(seeded_store, match_row):
    seeded_store.rows("property_recommendations")[0]["agent_note"] = "earlier note"

    await dismiss_match(seeded_store, _match(match_row))

    assert seeded_store.rows("property_recommendations")[0]["agent_note"] == "earlier note"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_dismiss_terminal_match_makes_no_calls(seeded_store, match_row):
    result = await dismiss_match(seeded_store, _match(match_row, status="attached"))

    assert not result.applied
    assert seeded_store.calls == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_attach_by_id_loads_everything(seeded_store, agent_without_brokerage):
    result = await attach_match_by_id(seeded_store, "match-1", agent_without_brokerage)

    assert result.applied
    prop = assert_single_property(seeded_store, "B1", "OC25000001")
    # photo-store rows win over the payload media, in sort_order
    assert prop["primary_photo_url"] == "https://photos.example.com/a.jpg"
    assert prop["agent_id"] == "agent-2"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_attach_by_id_falls_back_to_agent_brokerage(seeded_store, agent):
    seeded_store.rows("clients")[0]["brokerage_id"] = None

    await attach_match_by_id(seeded_store, "match-1", agent)

    assert_single_property(seeded_store, "B1", "OC25000001")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_attach_by_id_missing_match(empty_store, agent):
    with pytest.raises(MatchNotFound):
        await attach_match_by_id(empty_store, "nope", agent)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_attach_by_id_missing_listing(agent, match_row):
    store = FakeStore({"property_recommendations": [match_row]})

    with pytest.raises(StoreUnavailable):
        await attach_match_by_id(store, "match-1", agent)
    assert store.writes == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_dismiss_by_id(seeded_store):
    result = await dismiss_match_by_id(seeded_store, "match-1")
    assert result.applied
    assert seeded_store.rows("property_recommendations")[0]["status"] == "dismissed"
