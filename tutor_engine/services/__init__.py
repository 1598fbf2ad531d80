"""
Services for the AI Tutor Orchestration Engine

This package contains service classes for external integrations
and infrastructure concerns.

Modules:
    - llm_service: Completion Client protocol and OpenAI/Anthropic implementation
    - anthropic_adapter: Anthropic Messages API adapter
    - agent_registry: Ordered roster of tutor personas
    - default_agents: Built-in personas
    - conversation_store: Session and conversation storage
    - interaction_logger: Fire-and-forget interaction log hand-off
"""

from tutor_engine.services.llm_service import CompletionClient, LLMService
from tutor_engine.services.agent_registry import AgentRegistry
from tutor_engine.services.conversation_store import (
    ConversationStore,
    InMemoryConversationStore,
    create_conversation_store,
)
from tutor_engine.services.interaction_logger import InteractionLogger

__all__ = [
    "CompletionClient",
    "LLMService",
    "AgentRegistry",
    "ConversationStore",
    "InMemoryConversationStore",
    "create_conversation_store",
    "InteractionLogger",
]
