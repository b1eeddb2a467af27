"""Test helper functions."""

import json
from typing import Any, Dict, Optional


def create_request(
    body: Optional[Dict[str, Any]] = None,
    method: str = "POST",
    path: str = "/api/matches/attach",
    headers: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """Create a serverless request object for testing."""
    if headers is None:
        headers = {"content-type": "application/json"}

    return {
        "method": method,
        "path": path,
        "headers": headers,
        "body": json.dumps(body) if isinstance(body, dict) else body,
        "query": {},
    }
