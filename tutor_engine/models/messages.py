"""
Request / Response Message Models

Models:
    - ChatTurn: Role/content pair sent to the completion service as history
    - TokenUsage / CompletionResult: What the completion service returns
    - ClientMetadata: Optional client info recorded with interaction logs
    - SendMessageResult: Uniform result of every send-message call
"""

from typing import Literal, Optional
from pydantic import BaseModel, Field

from tutor_engine.models.session import TutorMessage
from tutor_engine.models.routing import RoutingInfo
from tutor_engine.models.collaboration import CollaborativeInfo


class ChatTurn(BaseModel):
    """One prior message in multi-turn context."""

    role: Literal["user", "assistant"]
    content: str


class TokenUsage(BaseModel):
    """Token accounting reported by the provider."""

    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None


class CompletionResult(BaseModel):
    """Generated text plus model and usage metadata."""

    text: str
    model_name: str
    provider: Optional[str] = None
    usage: Optional[TokenUsage] = None


class ClientMetadata(BaseModel):
    """Client information attached to interaction logs."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    device_type: Optional[str] = None


class SendMessageResult(BaseModel):
    """
    Result of a send-message call, regardless of mode.

    routing_info is set for router and random modes; collaborative_info for
    collaborative mode.
    """

    user_message: TutorMessage
    assistant_message: TutorMessage
    routing_info: Optional[RoutingInfo] = None
    collaborative_info: Optional[CollaborativeInfo] = None
    mode: Optional[str] = Field(default=None, description="Mode that handled the message")
