"""Shared pytest fixtures and configuration."""

import os
import pytest

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("STORE_TIMEOUT_SECONDS", "2")
os.environ.setdefault("LOG_FORMAT", "text")

from matchdesk.models.agent import AgentContext
from tests.fixtures.listings import RESO_PAYLOAD
from tests.utils.factories import create_client_data, create_listing_data, create_match_data
from tests.utils.fake_store import FakeStore


@pytest.fixture
def agent():
    """Agent linked to brokerage B1."""
    return AgentContext(id="agent-1", brokerage_id="B1")


@pytest.fixture
def agent_without_brokerage():
    return AgentContext(id="agent-2", brokerage_id=None)


@pytest.fixture
def listing_row():
    """Listing with structured fields plus a RESO-style payload."""
    return create_listing_data(
        listing_id="listing-1",
        mls_number="OC25000001",
        street_number="123",
        street_name="Main",
        street_suffix="St",
        city="Irvine",
        postal_code="92618",
        beds=3,
        baths=2,
        sqft=1800,
        year_built=2001,
        raw_payload=RESO_PAYLOAD,
    )


@pytest.fixture
def client_row():
    return create_client_data(brokerage_id="B1", id="client-1")


@pytest.fixture
def match_row(listing_row, client_row):
    return create_match_data(client_row["id"], listing_row["id"], id="match-1", score=88)


@pytest.fixture
def seeded_store(listing_row, client_row, match_row):
    """Fake store holding one new match, its listing, client and two photos."""
    return FakeStore({
        "mls_listings": [listing_row],
        "clients": [client_row],
        "property_recommendations": [match_row],
        "mls_listing_photos": [
            {"id": "p2", "listing_id": listing_row["id"], "url": "https://photos.example.com/b.jpg", "sort_order": 2},
            {"id": "p1", "listing_id": listing_row["id"], "url": "https://photos.example.com/a.jpg", "sort_order": 1},
        ],
    })


@pytest.fixture
def empty_store():
    return FakeStore()
