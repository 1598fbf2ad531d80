"""
Shared fixtures for the tutor engine test suite.

FakeCompletionClient stands in for the completion service: it records every
call and answers from a per-caller script, so no test touches the network.
"""

import asyncio
import random
from typing import Callable, Dict, List, Optional, Union

import pytest
from pydantic import BaseModel

from tutor_engine.agents.dispatcher import TutorService
from tutor_engine.models.agents import TutorAgent
from tutor_engine.models.interaction_logs import InteractionLogStore
from tutor_engine.models.messages import ChatTurn, CompletionResult, TokenUsage
from tutor_engine.services.agent_registry import AgentRegistry
from tutor_engine.services.conversation_store import InMemoryConversationStore
from tutor_engine.services.default_agents import build_default_agents
from tutor_engine.services.interaction_logger import InteractionLogger


Reply = Union[str, List[str], Callable[[str], str]]


class CompletionCall(BaseModel):
    """One recorded call to the fake client."""

    caller: str
    message: str
    system_instructions: str
    history: List[ChatTurn]
    temperature: float


class FakeCompletionClient:
    """
    Scripted CompletionClient.

    Args:
        replies: caller key -> reply. The key is the agent name for agent
            calls ("agent:laila-peer" -> "laila-peer") and the raw caller
            otherwise ("router"). A list is consumed in order; a callable
            receives the prompt.
        fail_for: caller keys whose calls raise RuntimeError
        delay: seconds to sleep before answering
    """

    def __init__(
        self,
        replies: Optional[Dict[str, Reply]] = None,
        fail_for: Optional[set] = None,
        delay: float = 0.0,
        model_name: str = "fake-model",
    ):
        self.replies = dict(replies or {})
        self.fail_for = set(fail_for or ())
        self.delay = delay
        self.model_name = model_name
        self.calls: List[CompletionCall] = []

    async def complete(
        self,
        message: str,
        system_instructions: str,
        history: List[ChatTurn],
        temperature: float,
        caller: str = "unknown",
    ) -> CompletionResult:
        self.calls.append(
            CompletionCall(
                caller=caller,
                message=message,
                system_instructions=system_instructions,
                history=list(history),
                temperature=temperature,
            )
        )
        if self.delay:
            await asyncio.sleep(self.delay)

        key = caller.split(":", 1)[1] if caller.startswith("agent:") else caller
        if key in self.fail_for:
            raise RuntimeError(f"{key} is unavailable")

        reply = self.replies.get(key)
        if isinstance(reply, list):
            reply = reply.pop(0)
        elif callable(reply):
            reply = reply(message)
        if reply is None:
            reply = f"Reply from {key} #{len(self.calls)}"

        return CompletionResult(
            text=reply,
            model_name=self.model_name,
            provider="fake",
            usage=TokenUsage(prompt_tokens=12, completion_tokens=8, total_tokens=20),
        )

    def calls_for(self, agent_name: str) -> List[CompletionCall]:
        return [c for c in self.calls if c.caller == f"agent:{agent_name}"]


# ===========================================
# Fixtures
# ===========================================


@pytest.fixture
def agents() -> List[TutorAgent]:
    return build_default_agents()


@pytest.fixture
def agents_by_name(agents) -> Dict[str, TutorAgent]:
    return {a.name: a for a in agents}


@pytest.fixture
def registry(agents) -> AgentRegistry:
    return AgentRegistry(agents)


@pytest.fixture
def store() -> InMemoryConversationStore:
    return InMemoryConversationStore()


@pytest.fixture
def make_client():
    """The FakeCompletionClient class, for tests that need a scripted one."""
    return FakeCompletionClient


@pytest.fixture
def fake_client() -> FakeCompletionClient:
    return FakeCompletionClient()


@pytest.fixture
def log_store() -> InteractionLogStore:
    return InteractionLogStore(max_logs_per_user=500)


@pytest.fixture
def interaction_logger(log_store) -> InteractionLogger:
    return InteractionLogger(log_store, queue_size=1000)


@pytest.fixture
def make_service(registry, store, interaction_logger):
    """Build a TutorService around a given client (and optional overrides)."""

    def _make(client, **overrides) -> TutorService:
        return TutorService(
            registry=overrides.pop("registry", registry),
            store=overrides.pop("store", store),
            client=client,
            interaction_logger=overrides.pop("interaction_logger", interaction_logger),
            rng=overrides.pop("rng", random.Random(7)),
            **overrides,
        )

    return _make


@pytest.fixture
def service(make_service, fake_client) -> TutorService:
    return make_service(fake_client)
