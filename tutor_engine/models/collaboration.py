"""
Collaboration Models

Models:
    - CollaborativeStyle: parallel, sequential, debate or random
    - CollaborativeSettings: Per-request collaboration options
    - AgentContribution: One agent's part of a collaborative turn
    - CollaborationResult: Contributions plus the composed display text
    - CollaborativeInfo: What the caller receives about the turn
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class CollaborativeStyle(str, Enum):
    """How multiple agents respond within one collaborative turn."""

    PARALLEL = "parallel"
    SEQUENTIAL = "sequential"
    DEBATE = "debate"
    RANDOM = "random"


class CollaborativeSettings(BaseModel):
    """Options a learner can pick for a collaborative turn."""

    style: CollaborativeStyle = CollaborativeStyle.PARALLEL
    selected_agent_ids: Optional[list[int]] = None
    max_agents: Optional[int] = Field(default=None, ge=1)
    max_response_length: Optional[int] = Field(default=None, ge=50)


class AgentContribution(BaseModel):
    """One agent's reply within a collaborative turn."""

    agent_id: int
    agent_name: str
    agent_display_name: str
    avatar_url: Optional[str] = None
    contribution: str
    response_time_ms: int = 0
    round: Optional[int] = Field(
        default=None,
        description="Round number, set only for multi-round styles"
    )
    model: Optional[str] = None
    failed: bool = False


class CollaborationRecord(BaseModel):
    """Serialized into TutorMessage.synthesized_from."""

    style: CollaborativeStyle
    contributions: list[AgentContribution]


class CollaborationResult(BaseModel):
    """Output of CollaborationOrchestrator.collaborate."""

    style: CollaborativeStyle
    contributions: list[AgentContribution]
    display_text: str
    mentioned_agents: list[str] = Field(default_factory=list)
    total_rounds: int = 1

    def to_record_json(self) -> str:
        return CollaborationRecord(
            style=self.style,
            contributions=self.contributions,
        ).model_dump_json()


class CollaborativeInfo(BaseModel):
    """Collaboration metadata returned alongside the stored messages."""

    style: CollaborativeStyle
    agent_contributions: list[AgentContribution]
    mentioned_agents: list[str] = Field(default_factory=list)
    total_rounds: int = 1
