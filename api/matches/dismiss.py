"""Dismiss a match (agent clicked "Dismiss")."""

import asyncio

from matchdesk.services.match_workflow import dismiss_match_by_id
from matchdesk.services.store import RecordStore
from matchdesk.utils.errors import MatchDeskError
from matchdesk.utils.logging import correlation_context, get_structured_logger, setup_logging
from matchdesk.utils.responses import error_response, json_response, parse_body

setup_logging()
logger = get_structured_logger(__name__)


def handler(request, store=None):
    """Body: {"match_id", "agent_note"?}."""
    headers = request.get("headers") or {}
    with correlation_context(headers.get("x-correlation-id")) as correlation_id:
        try:
            body = parse_body(request)
            match_id = body.get("match_id")
            if not match_id:
                return json_response(400, {"ok": False, "error": "match_id is required"})

            result = asyncio.run(dismiss_match_by_id(
                store or RecordStore(),
                match_id,
                agent_note=body.get("agent_note"),
            ))

            return json_response(200, {
                "ok": True,
                "applied": result.applied,
                "status": result.status.value,
                "correlation_id": correlation_id,
            })

        except (MatchDeskError, ValueError) as e:
            logger.warning("Dismiss request failed", error=str(e), error_type=type(e).__name__)
            return error_response(e)
        except Exception as e:
            logger.error("Unexpected error dismissing match", error=str(e), exc_info=True)
            return error_response(e)
