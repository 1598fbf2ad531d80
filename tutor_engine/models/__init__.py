"""
Data Models for the AI Tutor Orchestration Engine

This package contains all Pydantic models for the application.

Modules:
    - agents: Tutor agent (persona) configuration
    - session: Session, conversation and message records
    - routing: Routing decisions
    - collaboration: Collaborative styles, settings and contributions
    - messages: Completion results and send-message results
    - interaction_logs: Provenance / interaction log entries and store
"""

from tutor_engine.models.agents import TutorAgent
from tutor_engine.models.session import (
    TutorMode,
    TutorSession,
    TutorConversation,
    TutorMessage,
    MessagePreview,
    ConversationWithPreview,
    ConversationWithMessages,
    SessionOverview,
)
from tutor_engine.models.routing import (
    SelectedAgent,
    RoutingAlternative,
    RoutingInfo,
    AIRoutingDecision,
)
from tutor_engine.models.collaboration import (
    CollaborativeStyle,
    CollaborativeSettings,
    AgentContribution,
    CollaborationRecord,
    CollaborationResult,
    CollaborativeInfo,
)
from tutor_engine.models.messages import (
    ChatTurn,
    TokenUsage,
    CompletionResult,
    ClientMetadata,
    SendMessageResult,
)
from tutor_engine.models.interaction_logs import (
    InteractionLogEntry,
    InteractionLogStore,
)

__all__ = [
    # agents
    "TutorAgent",
    # session
    "TutorMode",
    "TutorSession",
    "TutorConversation",
    "TutorMessage",
    "MessagePreview",
    "ConversationWithPreview",
    "ConversationWithMessages",
    "SessionOverview",
    # routing
    "SelectedAgent",
    "RoutingAlternative",
    "RoutingInfo",
    "AIRoutingDecision",
    # collaboration
    "CollaborativeStyle",
    "CollaborativeSettings",
    "AgentContribution",
    "CollaborationRecord",
    "CollaborationResult",
    "CollaborativeInfo",
    # messages
    "ChatTurn",
    "TokenUsage",
    "CompletionResult",
    "ClientMetadata",
    "SendMessageResult",
    # interaction_logs
    "InteractionLogEntry",
    "InteractionLogStore",
]
