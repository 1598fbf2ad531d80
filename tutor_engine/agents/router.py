"""
Routing Engine

Selects which tutor agent should answer a learner's message.

Strategies:
    - KeywordRouter: deterministic scoring against an ordered rule table,
      no external calls
    - AIRouter: asks the completion service to classify the message and
      return a JSON decision
    - FallbackRouter: tries one strategy and falls back to another on any
      exception

Usage:
    from tutor_engine.agents.router import create_router

    router = create_router("ai", client=llm)
    routing_info = await router.route(message, agents)
"""

import asyncio
from typing import List, Optional, Protocol, Tuple

from pydantic import BaseModel, Field, ValidationError

from tutor_engine.config import RoutingConfig, settings
from tutor_engine.exceptions import (
    ConfigurationError,
    NoAgentsAvailableError,
    RoutingResponseError,
)
from tutor_engine.logging_config import get_logger, log_routing_decision
from tutor_engine.models.agents import TutorAgent
from tutor_engine.models.routing import (
    AIRoutingDecision,
    RoutingAlternative,
    RoutingInfo,
    SelectedAgent,
)
from tutor_engine.prompts.templates import ROUTING_SYSTEM_PROMPT, ROUTING_TEMPLATE
from tutor_engine.utils.prompt_utils import content_words, extract_json_object


logger = get_logger("router")


# ===========================================
# Rule Table
# ===========================================


class KeywordRule(BaseModel):
    """One row of the keyword routing table."""

    label: str = Field(description="Human-readable reason reported when this rule decides")
    phrases: Tuple[str, ...] = Field(description="Lowercase trigger phrases, matched as substrings")
    agents: Tuple[str, ...] = Field(description="Machine names of the agents this rule boosts")
    boost: float = Field(gt=0.0, le=1.0)

    model_config = {"frozen": True}

    def fires(self, message_lower: str) -> bool:
        return any(phrase in message_lower for phrase in self.phrases)


ROUTING_RULES: List[KeywordRule] = [
    KeywordRule(
        label="Emotional support needed: encouragement first",
        phrases=(
            "frustrated", "stressed", "overwhelmed", "dumb", "stupid", "give up",
            "can't do this", "cant do this", "anxious", "hate this",
        ),
        agents=("beatrice-peer",),
        boost=0.65,
    ),
    KeywordRule(
        label="Discussion or debate: intellectual exchange of viewpoints",
        phrases=(
            "disagree", "opinion", "what do you think", "argue", "debate",
            "think about", "on the other hand",
        ),
        agents=("laila-peer", "socratic-tutor"),
        boost=0.5,
    ),
    KeywordRule(
        label="Conceptual exploration: guided questioning",
        phrases=("why", "what if", "explain", "understand", "concept", "how does"),
        agents=("socratic-tutor",),
        boost=0.45,
    ),
    KeywordRule(
        label="Step-by-step guidance: clear direct instructions",
        phrases=("how do", "how to", "show me", "steps", "step by step", "guide", "tutorial"),
        agents=("helper-tutor",),
        boost=0.45,
    ),
    KeywordRule(
        label="Practical technical work: hands-on project and debugging help",
        phrases=(
            "project", "build", "code", "implement", "debug", "error", "fix", "bug",
            "function", "throws", "crash", "compile",
        ),
        agents=("project-tutor",),
        boost=0.5,
    ),
    KeywordRule(
        label="Casual tone: peer-to-peer support",
        phrases=("hey", "hi ", "hello", "stuck", "confused", "lost"),
        agents=("carmen-peer", "peer-tutor"),
        boost=0.4,
    ),
    KeywordRule(
        label="Beginner encouragement: patient introduction",
        phrases=("beginner", "new to", "first time", "just started", "not good at", "never learned"),
        agents=("beatrice-peer", "helper-tutor", "peer-tutor"),
        boost=0.35,
    ),
]


# ===========================================
# Strategy Interface
# ===========================================


class RoutingStrategy(Protocol):
    """A way of choosing one agent for a message."""

    name: str

    async def route(self, message: str, agents: List[TutorAgent]) -> RoutingInfo:
        ...


def _selected(agent: TutorAgent) -> SelectedAgent:
    return SelectedAgent(id=agent.id, name=agent.name, display_name=agent.display_name)


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


# ===========================================
# Keyword Strategy
# ===========================================


class AgentScore(BaseModel):
    """Keyword score of one agent for one message."""

    agent: TutorAgent
    score: float
    fired_rules: List[str] = Field(default_factory=list)


class KeywordRouter:
    """
    Deterministic keyword-scoring router.

    A pure function of (message, ordered agent list): every agent starts at
    the baseline, each fired rule adds its boost once to each agent it
    names, content words found in an agent's description or persona tag
    add a small bonus, and the total is capped.
    """

    name = "keyword"

    def __init__(self, rules: Optional[List[KeywordRule]] = None):
        self.rules = list(rules) if rules is not None else list(ROUTING_RULES)

    def score(self, message: str, agents: List[TutorAgent]) -> List[AgentScore]:
        """Score every agent, in roster order."""
        message_lower = (message or "").lower()
        fired = [rule for rule in self.rules if rule.fires(message_lower)]
        words = content_words(message_lower, RoutingConfig.MIN_CONTENT_WORD_LENGTH)

        scores = []
        for agent in agents:
            total = RoutingConfig.BASELINE_SCORE
            labels = []
            for rule in fired:
                if agent.name in rule.agents:
                    total += rule.boost
                    labels.append(rule.label)

            profile = f"{agent.description or ''} {agent.personality or ''}".lower()
            hits = sum(1 for word in words if word in profile)
            total += min(hits * RoutingConfig.WORD_BONUS, RoutingConfig.MAX_WORD_BONUS)

            scores.append(
                AgentScore(
                    agent=agent,
                    score=round(min(total, RoutingConfig.MAX_SCORE), 4),
                    fired_rules=labels,
                )
            )
        return scores

    def rank(self, message: str, agents: List[TutorAgent]) -> List[AgentScore]:
        """Agents by descending score; ties keep roster order."""
        return sorted(self.score(message, agents), key=lambda s: -s.score)

    def analyze(self, message: str, agents: List[TutorAgent]) -> RoutingInfo:
        """
        Pick one agent.

        Raises:
            NoAgentsAvailableError: If `agents` is empty
        """
        if not agents:
            raise NoAgentsAvailableError()

        scores = self.score(message, agents)
        any_fired = any(s.fired_rules for s in scores)

        if any_fired:
            best = max(scores, key=lambda s: s.score)
            reason = best.fired_rules[0] if best.fired_rules else RoutingConfig.DEFAULT_REASON
            confidence = best.score
        else:
            best = scores[0]
            reason = RoutingConfig.DEFAULT_REASON
            confidence = RoutingConfig.BASELINE_SCORE

        alternatives = [
            RoutingAlternative(agent_id=s.agent.id, agent_name=s.agent.name, score=s.score)
            for s in sorted(scores, key=lambda s: -s.score)
            if s.agent.id != best.agent.id
        ]

        return RoutingInfo(
            selected_agent=_selected(best.agent),
            reason=reason,
            confidence=confidence,
            alternatives=alternatives,
            strategy=self.name,
        )

    async def route(self, message: str, agents: List[TutorAgent]) -> RoutingInfo:
        info = self.analyze(message, agents)
        log_routing_decision(
            logger=logger,
            strategy=self.name,
            selected=info.selected_agent.name,
            reason=info.reason,
            confidence=info.confidence,
            alternatives=[a.model_dump() for a in info.alternatives],
        )
        return info


# ===========================================
# AI Strategy
# ===========================================


class AIRouter:
    """
    Router that asks the completion service to classify the message.

    Raises RoutingResponseError whenever the reply cannot be used; wrap it
    in a FallbackRouter so that never reaches the caller.
    """

    name = "ai"

    def __init__(
        self,
        client,
        temperature: Optional[float] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.client = client
        self.temperature = temperature if temperature is not None else settings.routing_temperature
        self.timeout_seconds = timeout_seconds or settings.agent_timeout_seconds

    def build_prompt(self, message: str, agents: List[TutorAgent]) -> str:
        descriptions = "\n".join(
            f"- {a.name} ({a.display_name}): {a.description or ''}" for a in agents
        )
        return ROUTING_TEMPLATE.render(agent_descriptions=descriptions, message=message)

    def parse_decision(self, raw: str, agents: List[TutorAgent]) -> RoutingInfo:
        """
        Turn a raw classification reply into RoutingInfo.

        Raises:
            RoutingResponseError: If no JSON object is found, it does not
                match the expected shape, or it names an unknown agent
        """
        payload = extract_json_object(raw)
        if payload is None:
            raise RoutingResponseError("no JSON object found", raw_response=raw)

        try:
            decision = AIRoutingDecision.model_validate(payload)
        except ValidationError as e:
            raise RoutingResponseError(f"unexpected shape: {e}", raw_response=raw) from e

        wanted = decision.selected_agent.strip().lower()
        selected = next(
            (a for a in agents if wanted in (a.name.lower(), a.display_name.lower())),
            None,
        )
        if selected is None:
            raise RoutingResponseError(
                f"unknown agent '{decision.selected_agent}'", raw_response=raw
            )

        scores = {name.lower(): value for name, value in decision.scores.items()}
        alternatives = sorted(
            (
                RoutingAlternative(
                    agent_id=a.id,
                    agent_name=a.name,
                    score=_clamp(scores.get(a.name.lower(), RoutingConfig.AI_DEFAULT_ALTERNATIVE_SCORE)),
                )
                for a in agents
                if a.id != selected.id
            ),
            key=lambda alt: -alt.score,
        )

        confidence = decision.confidence
        if confidence is None:
            confidence = RoutingConfig.AI_DEFAULT_CONFIDENCE

        return RoutingInfo(
            selected_agent=_selected(selected),
            reason=decision.reason or RoutingConfig.AI_DEFAULT_REASON,
            confidence=_clamp(confidence),
            alternatives=alternatives,
            strategy=self.name,
        )

    async def route(self, message: str, agents: List[TutorAgent]) -> RoutingInfo:
        if not agents:
            raise NoAgentsAvailableError()

        result = await asyncio.wait_for(
            self.client.complete(
                message=self.build_prompt(message, agents),
                system_instructions=ROUTING_SYSTEM_PROMPT,
                history=[],
                temperature=self.temperature,
                caller="router",
            ),
            timeout=self.timeout_seconds,
        )

        info = self.parse_decision(result.text, agents)
        log_routing_decision(
            logger=logger,
            strategy=self.name,
            selected=info.selected_agent.name,
            reason=info.reason,
            confidence=info.confidence,
            alternatives=[a.model_dump() for a in info.alternatives],
        )
        return info


# ===========================================
# Fallback Decorator
# ===========================================


class FallbackRouter:
    """Try `primary`; on any exception use `fallback` instead."""

    def __init__(self, primary: RoutingStrategy, fallback: RoutingStrategy):
        self.primary = primary
        self.fallback = fallback
        self.name = f"{primary.name}+{fallback.name}"

    async def route(self, message: str, agents: List[TutorAgent]) -> RoutingInfo:
        if not agents:
            raise NoAgentsAvailableError()
        try:
            return await self.primary.route(message, agents)
        except Exception as e:
            logger.warning(
                f"{self.primary.name} routing failed, falling back to {self.fallback.name}: {e}",
                extra={
                    "component": "router",
                    "event": "routing_fallback",
                    "error": str(e),
                },
            )
            return await self.fallback.route(message, agents)


def create_router(
    strategy: Optional[str] = None,
    client=None,
) -> RoutingStrategy:
    """
    Factory function to create the configured routing strategy.

    Args:
        strategy: "keyword" or "ai" (defaults to settings)
        client: CompletionClient, required for "ai"

    Raises:
        ConfigurationError: If the strategy is unknown or "ai" has no client
    """
    strategy = strategy or settings.routing_strategy

    if strategy == "keyword":
        return KeywordRouter()
    if strategy == "ai":
        if client is None:
            raise ConfigurationError("routing_strategy", "ai routing requires a completion client")
        return FallbackRouter(AIRouter(client), KeywordRouter())
    raise ConfigurationError("routing_strategy", f"unknown routing strategy: {strategy}")
