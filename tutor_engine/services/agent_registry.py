"""
Agent Registry

Holds the ordered roster of tutor personas. Order is registration order and
is significant: the keyword router breaks ties by it and the collaborative
team conversation belongs to the first active agent.

Usage:
    from tutor_engine.services.agent_registry import AgentRegistry

    registry = AgentRegistry.with_defaults()
    agent = registry.require_active(agent_id)
"""

import json
import threading
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import ValidationError

from tutor_engine.models.agents import TutorAgent
from tutor_engine.exceptions import (
    AgentInactiveError,
    AgentNotFoundError,
    ConfigurationError,
)
from tutor_engine.services.default_agents import build_default_agents
from tutor_engine.logging_config import get_logger


logger = get_logger("agent_registry")


class AgentRegistry:
    """
    Ordered, read-mostly collection of TutorAgent.

    Attributes:
        _agents: Dict mapping agent id to TutorAgent (insertion-ordered)
        _lock: Thread lock guarding registration
    """

    def __init__(self, agents: Optional[List[TutorAgent]] = None):
        self._agents: Dict[int, TutorAgent] = {}
        self._lock = threading.Lock()
        for agent in agents or []:
            self.register(agent)

    @classmethod
    def with_defaults(cls) -> "AgentRegistry":
        """Registry preloaded with the built-in personas."""
        return cls(build_default_agents())

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "AgentRegistry":
        """
        Load a roster from a JSON file containing a list of agent objects.

        Raises:
            ConfigurationError: If the file is missing or malformed
        """
        path = Path(path)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise ConfigurationError("agents_file", f"file not found: {path}") from e
        except json.JSONDecodeError as e:
            raise ConfigurationError("agents_file", f"invalid JSON in {path}: {e}") from e

        if not isinstance(raw, list):
            raise ConfigurationError("agents_file", "expected a JSON list of agents")

        agents = []
        for index, item in enumerate(raw, start=1):
            if isinstance(item, dict):
                item.setdefault("id", index)
                for key in ("dos_rules", "donts_rules"):
                    if isinstance(item.get(key), list):
                        item[key] = json.dumps(item[key])
            try:
                agents.append(TutorAgent.model_validate(item))
            except ValidationError as e:
                raise ConfigurationError("agents_file", f"invalid agent #{index}: {e}") from e

        logger.info(
            f"Loaded {len(agents)} agents from {path}",
            extra={"component": "agent_registry", "event": "roster_loaded"},
        )
        return cls(agents)

    def register(self, agent: TutorAgent) -> None:
        """Add or replace an agent. Replacing keeps the original position."""
        with self._lock:
            self._agents[agent.id] = agent

    def list_agents(self) -> List[TutorAgent]:
        return list(self._agents.values())

    def list_active_agents(self) -> List[TutorAgent]:
        return [a for a in self._agents.values() if a.is_active]

    def get(self, agent_id: int) -> Optional[TutorAgent]:
        return self._agents.get(agent_id)

    def get_by_name(self, name: str) -> Optional[TutorAgent]:
        """Case-insensitive lookup by machine name or display name."""
        needle = name.strip().lower()
        for agent in self._agents.values():
            if agent.name.lower() == needle or agent.display_name.lower() == needle:
                return agent
        return None

    def require(self, agent_id: int) -> TutorAgent:
        """
        Raises:
            AgentNotFoundError: If no agent has this id
        """
        agent = self._agents.get(agent_id)
        if agent is None:
            raise AgentNotFoundError(agent_id)
        return agent

    def require_active(self, agent_id: int) -> TutorAgent:
        """
        Get an agent that can receive messages.

        Raises:
            AgentNotFoundError: If no agent has this id
            AgentInactiveError: If the agent is disabled
        """
        agent = self.require(agent_id)
        if not agent.is_active:
            raise AgentInactiveError(agent.id, agent.name)
        return agent

    def __len__(self) -> int:
        return len(self._agents)
