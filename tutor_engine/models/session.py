"""
Session, Conversation and Message Models

Models:
    - TutorMode: How an incoming message is handled
    - TutorSession: One per user; holds mode and active agent
    - TutorConversation: Thread between a session and one agent
    - TutorMessage: Append-only message with provenance
    - SessionOverview: Session with conversation previews and agents
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional
from pydantic import BaseModel, Field

from tutor_engine.models.agents import TutorAgent


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TutorMode(str, Enum):
    """Interaction mode of a tutor session."""

    MANUAL = "manual"
    ROUTER = "router"
    COLLABORATIVE = "collaborative"
    RANDOM = "random"


MessageRole = Literal["user", "assistant"]


class TutorSession(BaseModel):
    """
    Per-user tutor session.

    active_agent_id is only meaningful in manual mode.
    """

    id: int
    user_id: int
    mode: TutorMode = TutorMode.MANUAL
    active_agent_id: Optional[int] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class TutorMessage(BaseModel):
    """
    A single message within a conversation.

    Provenance fields are filled for assistant messages only; routing fields
    are also copied onto the user message of a routed turn.
    """

    id: int
    conversation_id: int
    role: MessageRole
    content: str
    ai_model: Optional[str] = None
    ai_provider: Optional[str] = None
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None
    response_time_ms: Optional[int] = None
    temperature: Optional[float] = None
    routing_reason: Optional[str] = None
    routing_confidence: Optional[float] = None
    synthesized_from: Optional[str] = Field(
        default=None,
        description="Serialized collaboration record (style + contributions)"
    )
    created_at: datetime = Field(default_factory=utc_now)


class TutorConversation(BaseModel):
    """Conversation keyed by (session_id, agent_id)."""

    id: int
    session_id: int
    agent_id: int
    message_count: int = 0
    last_message_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utc_now)


class MessagePreview(BaseModel):
    """Last message shown next to a conversation in a listing."""

    role: MessageRole
    content: str
    created_at: datetime


class ConversationWithPreview(TutorConversation):
    """Conversation plus agent identity and last message."""

    agent: dict = Field(default_factory=dict)
    last_message: Optional[MessagePreview] = None


class ConversationWithMessages(TutorConversation):
    """Conversation plus its full ordered message list."""

    messages: list[TutorMessage] = Field(default_factory=list)


class SessionOverview(BaseModel):
    """Everything a client needs to render the tutor panel for a user."""

    session: TutorSession
    conversations: list[ConversationWithPreview] = Field(default_factory=list)
    agents: list[TutorAgent] = Field(default_factory=list)
