"""Match record model (property_recommendations)."""

import json
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field, field_validator


class MatchStatus(str, Enum):
    """Match record lifecycle states."""
    NEW = "new"
    ATTACHED = "attached"
    DISMISSED = "dismissed"

    @property
    def is_terminal(self) -> bool:
        return self is not MatchStatus.NEW


class MatchRecord(BaseModel):
    """A scored pairing of a client and a listing awaiting agent review."""
    id: str = Field(..., description="property_recommendations.id")
    client_id: str = Field(..., description="Client ID")
    mls_listing_id: str = Field(..., description="mls_listings.id")
    score: int = Field(default=0, description="Match score from the scoring process")
    reasons: list[str] = Field(default_factory=list, description="Ordered match reasons")
    status: MatchStatus = Field(default=MatchStatus.NEW, description="new, attached or dismissed")
    created_at: Optional[str] = None
    agent_note: Optional[str] = Field(None, description="Agent note, shown to the client once attached")

    @field_validator("reasons", mode="before")
    @classmethod
    def _normalize_reasons(cls, value: Any) -> list[str]:
        return normalize_reasons(value)

    @field_validator("score", mode="before")
    @classmethod
    def _round_score(cls, value: Any) -> int:
        if value is None:
            return 0
        return int(round(float(value)))


def normalize_reasons(reasons: Any) -> list[str]:
    """Coerce a jsonb reasons value (list, or a stringified list) to strings."""
    if isinstance(reasons, (list, tuple)):
        return [str(r) for r in reasons]
    if isinstance(reasons, str):
        try:
            parsed = json.loads(reasons)
        except ValueError:
            return []
        if isinstance(parsed, list):
            return [str(r) for r in parsed]
    return []
