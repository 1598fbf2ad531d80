"""
Orchestration Components for the AI Tutor Orchestration Engine

Modules:
    - mentions: @-mention parsing and stripping
    - router: Keyword / AI routing strategies with fallback
    - exchange: Single-agent exchange shared by manual, router and random modes
    - collaboration: Multi-agent collaborative turns
    - dispatcher: TutorService, the mode dispatcher and public entry point
"""

from tutor_engine.agents.mentions import parse_mentions, strip_mentions
from tutor_engine.agents.router import (
    ROUTING_RULES,
    KeywordRule,
    KeywordRouter,
    AIRouter,
    FallbackRouter,
    RoutingStrategy,
    create_router,
)
from tutor_engine.agents.exchange import AgentExchange, build_system_prompt
from tutor_engine.agents.collaboration import CollaborationOrchestrator
from tutor_engine.agents.dispatcher import TutorService, create_tutor_service

__all__ = [
    # Mentions
    "parse_mentions",
    "strip_mentions",
    # Routing
    "ROUTING_RULES",
    "KeywordRule",
    "KeywordRouter",
    "AIRouter",
    "FallbackRouter",
    "RoutingStrategy",
    "create_router",
    # Exchange / collaboration
    "AgentExchange",
    "build_system_prompt",
    "CollaborationOrchestrator",
    # Dispatcher
    "TutorService",
    "create_tutor_service",
]
