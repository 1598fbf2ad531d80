"""
Routing Models

RoutingInfo is ephemeral: it is returned to the caller and embedded in
message provenance, never stored as its own entity.
"""

from typing import Optional
from pydantic import BaseModel, Field


class SelectedAgent(BaseModel):
    """Identity of the agent a router picked."""

    id: int
    name: str
    display_name: str


class RoutingAlternative(BaseModel):
    """An agent that was considered but not selected."""

    agent_id: int
    agent_name: str
    score: float = Field(ge=0.0, le=1.0)


class RoutingInfo(BaseModel):
    """Outcome of routing a message to an agent."""

    selected_agent: SelectedAgent
    reason: str
    confidence: float = Field(ge=0.0, le=1.0)
    alternatives: list[RoutingAlternative] = Field(default_factory=list)
    strategy: str = Field(
        default="keyword",
        description="Strategy that produced this decision (keyword, ai, random)"
    )


class AIRoutingDecision(BaseModel):
    """Shape the completion service must return for AI routing."""

    selected_agent: str = Field(alias="selectedAgent")
    reason: Optional[str] = None
    confidence: Optional[float] = None
    scores: dict[str, float] = Field(default_factory=dict)

    model_config = {"populate_by_name": True}
