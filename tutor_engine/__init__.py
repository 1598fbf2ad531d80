"""
AI Tutor Orchestration Engine

Accepts a learner's chat message, decides which tutor persona (or set of
personas) should respond, invokes a completion service and records the
conversation with full provenance.

Usage:
    from tutor_engine import create_tutor_service, TutorMode

    service = create_tutor_service()
    await service.update_mode(user_id=1, mode=TutorMode.COLLABORATIVE)
    result = await service.send_message(1, None, "What do you think about recursion?")
"""

from tutor_engine.models.session import TutorMode
from tutor_engine.models.collaboration import CollaborativeSettings, CollaborativeStyle
from tutor_engine.agents.dispatcher import TutorService, create_tutor_service

__version__ = "0.1.0"

__all__ = [
    "TutorMode",
    "CollaborativeSettings",
    "CollaborativeStyle",
    "TutorService",
    "create_tutor_service",
]
