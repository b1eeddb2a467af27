"""Tests for environment-driven store settings."""

import pytest
from matchdesk.utils.config import StoreConfig
from matchdesk.utils.errors import StoreUnavailable


@pytest.mark.unit
def test_settings_read_from_test_environment():
    assert StoreConfig.SUPABASE_URL
    assert isinstance(StoreConfig.STORE_TIMEOUT_SECONDS, float)
    assert StoreConfig.MATCH_LIST_LIMIT > 0


@pytest.mark.unit
def test_validate_requires_credentials(monkeypatch):
    StoreConfig.validate()

    monkeypatch.setattr(StoreConfig, "SUPABASE_SERVICE_ROLE_KEY", None)
    with pytest.raises(StoreUnavailable):
        StoreConfig.validate()
