"""
Tutor Agent Models

A TutorAgent is configuration, not session state: the orchestration engine
reads it but never mutates it.
"""

import json
from typing import Optional
from pydantic import BaseModel, Field

from tutor_engine.logging_config import get_logger


logger = get_logger("models.agents")


class TutorAgent(BaseModel):
    """
    A configured tutor persona.

    dos_rules / donts_rules hold the raw configured value: a JSON-encoded
    list of strings. Malformed values are ignored when building prompts.
    """

    id: int = Field(description="Unique agent identifier")
    name: str = Field(description="Machine name, e.g. 'socratic-tutor'")
    display_name: str = Field(description="Name shown to learners")
    description: Optional[str] = Field(
        default=None,
        description="Short description used for routing"
    )
    system_prompt: str = Field(
        default="",
        description="Persona / system-instruction text"
    )
    personality: Optional[str] = Field(
        default=None,
        description="Persona tag, e.g. 'socratic', 'supportive'"
    )
    temperature: Optional[float] = Field(
        default=None,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for this agent"
    )
    is_active: bool = Field(default=True)
    welcome_message: Optional[str] = None
    avatar_url: Optional[str] = None
    dos_rules: Optional[str] = Field(
        default=None,
        description="JSON-encoded list of things the agent should do"
    )
    donts_rules: Optional[str] = Field(
        default=None,
        description="JSON-encoded list of things the agent should avoid"
    )

    @property
    def dos(self) -> list[str]:
        """Parsed DO rules (empty when absent or malformed)."""
        return _parse_rule_list(self.dos_rules, self.name, "dos_rules")

    @property
    def donts(self) -> list[str]:
        """Parsed DON'T rules (empty when absent or malformed)."""
        return _parse_rule_list(self.donts_rules, self.name, "donts_rules")

    def summary(self) -> dict:
        """Compact identity used in routing info and contributions."""
        return {"id": self.id, "name": self.name, "display_name": self.display_name}


def _parse_rule_list(raw: Optional[str], agent_name: str, field: str) -> list[str]:
    if not raw:
        return []
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        logger.debug(
            f"Ignoring malformed {field} for {agent_name}",
            extra={"component": "agent_registry", "event": "rules_parse_failed", "agent": agent_name},
        )
        return []
    if not isinstance(parsed, list):
        return []
    return [str(item) for item in parsed if str(item).strip()]
