"""Acting agent context and client lookup models."""

from typing import Optional
from pydantic import BaseModel, Field


class AgentContext(BaseModel):
    """The signed-in agent a workflow acts on behalf of."""
    id: str = Field(..., description="Agent ID")
    brokerage_id: Optional[str] = Field(None, description="Agent's brokerage, if any")


class Client(BaseModel):
    """Buyer/seller client (read-only here)."""
    id: str = Field(..., description="Client ID")
    brokerage_id: Optional[str] = Field(None, description="Client's brokerage, if any")
    agent_id: Optional[str] = Field(None, description="Directly assigned agent")
    name: Optional[str] = None
