"""
Collaboration Orchestrator

Runs a multi-agent turn in one of four styles and composes the replies into
a single displayable block.

Styles:
    - parallel: every agent answers independently and concurrently
    - sequential: agents answer in order, each seeing the turn's transcript
    - debate: sequential, repeated for several rounds
    - random: a random subset of the whole roster, run sequentially

Agent selection (parallel / sequential / debate), first match wins:
    1. agents @-mentioned in the message
    2. agents listed in CollaborativeSettings.selected_agent_ids
    3. the top `max_agents` agents by keyword score

A failing agent never aborts the turn: it contributes a placeholder and the
remaining agents carry on.

Usage:
    orchestrator = CollaborationOrchestrator(client=llm)
    result = await orchestrator.collaborate(message, agents, CollaborativeSettings(style="debate"))
    print(result.display_text)
"""

import asyncio
import logging
import random
import time
from typing import List, Optional, Tuple

from tutor_engine.config import settings as app_settings
from tutor_engine.exceptions import NoAgentsAvailableError
from tutor_engine.logging_config import get_logger, log_agent_event
from tutor_engine.models.agents import TutorAgent
from tutor_engine.models.collaboration import (
    AgentContribution,
    CollaborationResult,
    CollaborativeSettings,
    CollaborativeStyle,
)
from tutor_engine.models.messages import ChatTurn
from tutor_engine.prompts.templates import DEBATE_ROUND_TEMPLATE, SEQUENTIAL_FOLLOWUP_TEMPLATE
from tutor_engine.agents.exchange import agent_temperature, build_system_prompt
from tutor_engine.agents.mentions import parse_mentions, strip_mentions
from tutor_engine.agents.router import KeywordRouter
from tutor_engine.utils.prompt_utils import format_transcript, strip_speaker_prefix


logger = get_logger("collaboration")


CONTRIBUTION_SEPARATOR = "\n\n---\n\n"


def placeholder_text(agent: TutorAgent) -> str:
    """Contribution text used when an agent could not respond."""
    return f"[{agent.display_name} was unable to respond]"


def compose_display_text(contributions: List[AgentContribution]) -> str:
    """
    One block per contribution under the agent's name, separated by a rule.

    Example:
        **Laila** (Round 1):
        I see it differently...

        ---

        **Carmen** (Round 1):
        When I took this...
    """
    blocks = []
    for c in contributions:
        heading = f"**{c.agent_display_name}**"
        if c.round is not None:
            heading += f" (Round {c.round})"
        blocks.append(f"{heading}:\n{c.contribution}")
    return CONTRIBUTION_SEPARATOR.join(blocks)


class CollaborationOrchestrator:
    """
    Executes collaborative turns against a completion client.

    Attributes:
        client: CompletionClient used for every agent call
        router: KeywordRouter used for relevance selection
        rng: Random source for the random style
        debate_rounds: Rounds in the debate style
    """

    def __init__(
        self,
        client,
        router: Optional[KeywordRouter] = None,
        rng: Optional[random.Random] = None,
        timeout_seconds: Optional[float] = None,
        debate_rounds: Optional[int] = None,
        default_max_agents: Optional[int] = None,
        random_max_agents: Optional[int] = None,
    ):
        self.client = client
        self.router = router or KeywordRouter()
        self.rng = rng or random.Random()
        self.timeout_seconds = timeout_seconds or app_settings.agent_timeout_seconds
        self.debate_rounds = debate_rounds or app_settings.debate_rounds
        self.default_max_agents = default_max_agents or app_settings.default_max_agents
        self.random_max_agents = random_max_agents or app_settings.random_max_agents

    # ---------------------------------------
    # Agent selection
    # ---------------------------------------

    def select_agents(
        self,
        message: str,
        agents: List[TutorAgent],
        settings: CollaborativeSettings,
    ) -> Tuple[List[TutorAgent], List[TutorAgent]]:
        """
        Returns:
            (selected agents, mentioned agents)
        """
        mentioned = parse_mentions(message, agents)
        if mentioned:
            return mentioned, mentioned

        if settings.selected_agent_ids:
            by_id = {a.id: a for a in agents}
            chosen = [
                by_id[agent_id]
                for agent_id in dict.fromkeys(settings.selected_agent_ids)
                if agent_id in by_id
            ]
            if chosen:
                return chosen, []

        max_agents = settings.max_agents or self.default_max_agents
        ranked = self.router.rank(strip_mentions(message), agents)
        return [s.agent for s in ranked[:max_agents]], []

    def pick_random_agents(self, agents: List[TutorAgent]) -> List[TutorAgent]:
        """Shuffle the roster and keep between 1 and `random_max_agents`."""
        roster = list(agents)
        self.rng.shuffle(roster)
        count = self.rng.randint(1, min(self.random_max_agents, len(roster)))
        return roster[:count]

    # ---------------------------------------
    # Turn execution
    # ---------------------------------------

    async def collaborate(
        self,
        message: str,
        agents: List[TutorAgent],
        settings: Optional[CollaborativeSettings] = None,
        history: Optional[List[ChatTurn]] = None,
    ) -> CollaborationResult:
        """
        Run one collaborative turn.

        Args:
            message: Raw learner message (mentions are stripped before sending)
            agents: Active roster, in registry order
            settings: Style and selection options
            history: Shared prior turns of the team conversation

        Raises:
            NoAgentsAvailableError: If the roster is empty
        """
        if not agents:
            raise NoAgentsAvailableError()

        settings = settings or CollaborativeSettings()
        history = history or []
        style = CollaborativeStyle(settings.style)
        clean_message = strip_mentions(message) or message
        max_length = settings.max_response_length or app_settings.max_response_length

        mentioned: List[TutorAgent] = []
        if style == CollaborativeStyle.RANDOM:
            selected = self.pick_random_agents(agents)
        else:
            selected, mentioned = self.select_agents(message, agents, settings)

        rounds = self.debate_rounds if style == CollaborativeStyle.DEBATE else 1

        logger.info(
            f"Collaborative turn: {style.value} with {len(selected)} agents",
            extra={
                "component": "collaboration",
                "event": "collaboration_started",
                "data": {
                    "style": style.value,
                    "agents": [a.name for a in selected],
                    "mentioned": [a.name for a in mentioned],
                    "rounds": rounds,
                },
            },
        )

        if style == CollaborativeStyle.PARALLEL:
            contributions = await self._run_parallel(selected, clean_message, history, max_length)
        else:
            contributions = await self._run_sequential(
                selected,
                clean_message,
                history,
                max_length,
                rounds=rounds,
                numbered=style == CollaborativeStyle.DEBATE,
            )

        return CollaborationResult(
            style=style,
            contributions=contributions,
            display_text=compose_display_text(contributions),
            mentioned_agents=[a.name for a in mentioned],
            total_rounds=rounds,
        )

    async def _run_parallel(
        self,
        agents: List[TutorAgent],
        message: str,
        history: List[ChatTurn],
        max_length: int,
    ) -> List[AgentContribution]:
        results = await asyncio.gather(
            *(self._contribute(agent, message, history, max_length) for agent in agents)
        )
        return list(results)

    async def _run_sequential(
        self,
        agents: List[TutorAgent],
        message: str,
        history: List[ChatTurn],
        max_length: int,
        rounds: int = 1,
        numbered: bool = False,
    ) -> List[AgentContribution]:
        contributions: List[AgentContribution] = []
        for round_number in range(1, rounds + 1):
            for agent in agents:
                if not contributions:
                    prompt = message
                elif round_number >= 2:
                    prompt = DEBATE_ROUND_TEMPLATE.render(
                        message=message,
                        round=round_number,
                        transcript=format_transcript(contributions),
                    )
                else:
                    prompt = SEQUENTIAL_FOLLOWUP_TEMPLATE.render(
                        message=message,
                        transcript=format_transcript(contributions),
                    )
                contribution = await self._contribute(
                    agent,
                    prompt,
                    history,
                    max_length,
                    round_number=round_number if numbered else None,
                )
                contributions.append(contribution)
        return contributions

    async def _contribute(
        self,
        agent: TutorAgent,
        prompt: str,
        history: List[ChatTurn],
        max_length: int,
        round_number: Optional[int] = None,
    ) -> AgentContribution:
        """One agent call. Failures become a placeholder contribution."""
        start_time = time.time()
        try:
            result = await asyncio.wait_for(
                self.client.complete(
                    message=prompt,
                    system_instructions=build_system_prompt(
                        agent, collaborative=True, max_length=max_length
                    ),
                    history=history,
                    temperature=agent_temperature(agent),
                    caller=f"agent:{agent.name}",
                ),
                timeout=self.timeout_seconds,
            )
        except Exception as e:
            duration_ms = int((time.time() - start_time) * 1000)
            log_agent_event(
                logger=logger,
                agent_name=agent.name,
                event="agent_failed",
                data={"error": str(e) or type(e).__name__, "round": round_number},
                duration_ms=duration_ms,
                level=logging.WARNING,
            )
            return AgentContribution(
                agent_id=agent.id,
                agent_name=agent.name,
                agent_display_name=agent.display_name,
                avatar_url=agent.avatar_url,
                contribution=placeholder_text(agent),
                response_time_ms=duration_ms,
                round=round_number,
                failed=True,
            )

        duration_ms = int((time.time() - start_time) * 1000)
        text = strip_speaker_prefix(result.text, [agent.display_name, agent.name])

        log_agent_event(
            logger=logger,
            agent_name=agent.name,
            event="agent_contributed",
            data={"round": round_number, "response_length": len(text)},
            duration_ms=duration_ms,
        )

        return AgentContribution(
            agent_id=agent.id,
            agent_name=agent.name,
            agent_display_name=agent.display_name,
            avatar_url=agent.avatar_url,
            contribution=text,
            response_time_ms=duration_ms,
            round=round_number,
            model=result.model_name,
        )
