"""Request parsing and response shaping for serverless handlers."""

import json
from typing import Any

from matchdesk.utils.errors import (
    MatchNotFound,
    MissingBrokerageAssociation,
    PartialAttachFailure,
    StoreTimeout,
    StoreUnavailable,
)


def json_response(status_code: int, body: dict) -> dict:
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body),
    }


def parse_body(request: dict) -> dict[str, Any]:
    """Decode the request body; a missing or non-object body is an empty dict."""
    body = request.get("body") or {}
    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8")
    if isinstance(body, str):
        try:
            body = json.loads(body) if body.strip() else {}
        except ValueError:
            raise ValueError("Request body must be JSON")
    if not isinstance(body, dict):
        raise ValueError("Request body must be a JSON object")
    return body


def error_response(exc: Exception) -> dict:
    """Plain-text error bodies; the message is shown to the agent as-is."""
    if isinstance(exc, MissingBrokerageAssociation):
        return json_response(400, {"ok": False, "error": str(exc)})
    if isinstance(exc, MatchNotFound):
        return json_response(404, {"ok": False, "error": str(exc)})
    if isinstance(exc, PartialAttachFailure):
        return json_response(502, {
            "ok": False,
            "partial": True,
            "step": exc.step,
            "property_id": exc.property_id,
            "link_created": exc.link_created,
            "error": str(exc),
        })
    if isinstance(exc, StoreTimeout):
        return json_response(504, {"ok": False, "error": str(exc)})
    if isinstance(exc, StoreUnavailable):
        return json_response(503, {"ok": False, "error": str(exc)})
    if isinstance(exc, ValueError):
        return json_response(400, {"ok": False, "error": str(exc)})
    return json_response(500, {"ok": False, "error": str(exc)})
