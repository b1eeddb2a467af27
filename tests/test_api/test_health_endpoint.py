"""Tests for health check endpoint."""

import json
from io import BytesIO
from unittest.mock import Mock
import sys
import os
import pytest
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))
from api.health import handler, health_status
from matchdesk.utils.config import StoreConfig


def _get():
    h = handler.__new__(handler)
    h.wfile = BytesIO()
    h.send_response = Mock()
    h.send_header = Mock()
    h.end_headers = Mock()
    h.do_GET()
    return h.send_response.call_args[0][0], json.loads(h.wfile.getvalue().decode('utf-8'))


@pytest.mark.unit
def test_health_reports_configured_store():
    status, body = _get()

    assert status == 200
    assert body["service"] == "matchdesk"
    assert body["store_configured"] is True
    assert body["store_timeout_seconds"] == StoreConfig.STORE_TIMEOUT_SECONDS


@pytest.mark.unit
def test_health_degraded_without_credentials(monkeypatch):
    monkeypatch.setattr(StoreConfig, "SUPABASE_URL", None)

    status, body = _get()

    assert status == 503
    assert body["status"] == "degraded"
    assert health_status()["store_configured"] is False
