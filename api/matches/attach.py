"""Attach a match to its client (agent clicked "Attach to client")."""

import asyncio

from matchdesk.models.agent import AgentContext
from matchdesk.services.match_workflow import attach_match_by_id
from matchdesk.services.store import RecordStore
from matchdesk.utils.errors import MatchDeskError
from matchdesk.utils.logging import correlation_context, get_structured_logger, setup_logging
from matchdesk.utils.responses import error_response, json_response, parse_body

setup_logging()
logger = get_structured_logger(__name__)


def handler(request, store=None):
    """
    Body: {"match_id", "agent_id", "agent_brokerage_id"?, "agent_note"?}.

    Responds 200 with {"ok": true, "applied", "status", "property_id",
    "link_created"}; a match that was already reviewed answers applied=false
    with its stored status.
    """
    headers = request.get("headers") or {}
    with correlation_context(headers.get("x-correlation-id")) as correlation_id:
        try:
            body = parse_body(request)
            match_id = body.get("match_id")
            agent_id = body.get("agent_id")
            if not match_id or not agent_id:
                return json_response(400, {"ok": False, "error": "match_id and agent_id are required"})

            agent = AgentContext(id=agent_id, brokerage_id=body.get("agent_brokerage_id"))
            result = asyncio.run(attach_match_by_id(
                store or RecordStore(),
                match_id,
                agent,
                agent_note=body.get("agent_note"),
            ))

            return json_response(200, {
                "ok": True,
                "applied": result.applied,
                "status": result.status.value,
                "property_id": result.property_id,
                "link_created": result.link_created,
                "correlation_id": correlation_id,
            })

        except (MatchDeskError, ValueError) as e:
            logger.warning("Attach request failed", error=str(e), error_type=type(e).__name__)
            return error_response(e)
        except Exception as e:
            logger.error("Unexpected error attaching match", error=str(e), exc_info=True)
            return error_response(e)
