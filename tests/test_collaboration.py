"""
Collaboration Orchestrator Tests

Styles, agent selection precedence, per-agent failure isolation and the
composed display text.
"""

import asyncio
import json
import random

import pytest

from tutor_engine.agents.collaboration import (
    CONTRIBUTION_SEPARATOR,
    CollaborationOrchestrator,
    compose_display_text,
    placeholder_text,
)
from tutor_engine.agents.exchange import build_system_prompt
from tutor_engine.exceptions import NoAgentsAvailableError
from tutor_engine.models.collaboration import (
    AgentContribution,
    CollaborationRecord,
    CollaborativeSettings,
    CollaborativeStyle,
)
from tutor_engine.models.messages import CompletionResult


def _pick(agents_by_name, *names):
    return [agents_by_name[n] for n in names]


# =============================================================================
# Parallel
# =============================================================================


@pytest.mark.asyncio
async def test_parallel_failure_yields_placeholder(agents_by_name, make_client):
    roster = _pick(agents_by_name, "carmen-peer", "laila-peer", "socratic-tutor")
    client = make_client(fail_for={"laila-peer"})
    orchestrator = CollaborationOrchestrator(client)

    result = await orchestrator.collaborate(
        "@carmen @laila @socratic help me with loops",
        roster,
        CollaborativeSettings(style=CollaborativeStyle.PARALLEL),
    )

    assert len(result.contributions) == 3
    by_name = {c.agent_name: c for c in result.contributions}
    assert by_name["laila-peer"].contribution == placeholder_text(agents_by_name["laila-peer"])
    assert by_name["laila-peer"].failed is True
    assert by_name["carmen-peer"].failed is False
    assert by_name["socratic-tutor"].contribution.startswith("Reply from socratic-tutor")


@pytest.mark.asyncio
async def test_parallel_calls_run_concurrently(agents_by_name):
    roster = _pick(agents_by_name, "carmen-peer", "laila-peer", "peer-tutor")
    started = 0
    all_started = asyncio.Event()

    class BarrierClient:
        async def complete(self, message, system_instructions, history, temperature, caller="unknown"):
            nonlocal started
            started += 1
            if started == len(roster):
                all_started.set()
            await asyncio.wait_for(all_started.wait(), timeout=2)
            return CompletionResult(text=f"ok from {caller}", model_name="barrier")

    orchestrator = CollaborationOrchestrator(BarrierClient(), timeout_seconds=5)
    result = await orchestrator.collaborate(
        "hello",
        roster,
        CollaborativeSettings(style="parallel", selected_agent_ids=[a.id for a in roster]),
    )

    assert [c.failed for c in result.contributions] == [False, False, False]


@pytest.mark.asyncio
async def test_parallel_agents_do_not_see_each_other(agents_by_name, make_client):
    roster = _pick(agents_by_name, "carmen-peer", "laila-peer")
    client = make_client()
    orchestrator = CollaborationOrchestrator(client)

    await orchestrator.collaborate(
        "what is a closure",
        roster,
        CollaborativeSettings(style="parallel", selected_agent_ids=[a.id for a in roster]),
    )

    assert {c.message for c in client.calls} == {"what is a closure"}


# =============================================================================
# Sequential and debate
# =============================================================================


@pytest.mark.asyncio
async def test_sequential_threads_previous_contribution(agents_by_name, make_client):
    roster = _pick(agents_by_name, "carmen-peer", "laila-peer", "socratic-tutor")
    client = make_client(
        replies={
            "carmen-peer": "Try printing the loop counter.",
            "laila-peer": "I'd push back: think about the exit condition.",
        }
    )
    orchestrator = CollaborationOrchestrator(client)

    result = await orchestrator.collaborate(
        "my loop never ends",
        roster,
        CollaborativeSettings(style="sequential", selected_agent_ids=[a.id for a in roster]),
    )

    messages = [c.message for c in client.calls]
    assert messages[0] == "my loop never ends"
    assert "Try printing the loop counter." in messages[1]
    assert "I'd push back: think about the exit condition." in messages[2]
    assert "Try printing the loop counter." in messages[2]
    assert all(c.round is None for c in result.contributions)


@pytest.mark.asyncio
async def test_sequential_failure_is_threaded_as_placeholder(agents_by_name, make_client):
    roster = _pick(agents_by_name, "carmen-peer", "laila-peer")
    client = make_client(fail_for={"carmen-peer"})
    orchestrator = CollaborationOrchestrator(client)

    result = await orchestrator.collaborate(
        "help",
        roster,
        CollaborativeSettings(style="sequential", selected_agent_ids=[a.id for a in roster]),
    )

    assert result.contributions[0].failed is True
    assert placeholder_text(agents_by_name["carmen-peer"]) in client.calls[1].message


@pytest.mark.asyncio
async def test_debate_runs_two_numbered_rounds(agents_by_name, make_client):
    roster = _pick(agents_by_name, "laila-peer", "socratic-tutor")
    client = make_client()
    orchestrator = CollaborationOrchestrator(client, debate_rounds=2)

    result = await orchestrator.collaborate(
        "is recursion better than iteration?",
        roster,
        CollaborativeSettings(style="debate", selected_agent_ids=[a.id for a in roster]),
    )

    assert [c.round for c in result.contributions] == [1, 1, 2, 2]
    assert [c.agent_name for c in result.contributions] == [
        "laila-peer", "socratic-tutor", "laila-peer", "socratic-tutor",
    ]
    assert result.total_rounds == 2

    for k in range(1, len(client.calls)):
        assert result.contributions[k - 1].contribution in client.calls[k].message

    assert "round 2" in client.calls[2].message
    assert "round 2" not in client.calls[1].message
    assert "(Round 2)" in result.display_text


# =============================================================================
# Random
# =============================================================================


@pytest.mark.asyncio
@pytest.mark.parametrize("seed", range(20))
async def test_random_style_count_within_bounds(agents, make_client, seed):
    orchestrator = CollaborationOrchestrator(make_client(), rng=random.Random(seed))

    result = await orchestrator.collaborate(
        "anything", agents, CollaborativeSettings(style="random")
    )

    assert 1 <= len(result.contributions) <= 3
    assert len({c.agent_id for c in result.contributions}) == len(result.contributions)


@pytest.mark.asyncio
@pytest.mark.parametrize("seed", range(10))
async def test_random_style_never_exceeds_roster(agents_by_name, make_client, seed):
    roster = _pick(agents_by_name, "carmen-peer", "laila-peer")
    orchestrator = CollaborationOrchestrator(make_client(), rng=random.Random(seed))

    result = await orchestrator.collaborate("anything", roster, CollaborativeSettings(style="random"))

    assert 1 <= len(result.contributions) <= 2


@pytest.mark.asyncio
async def test_random_style_ignores_mentions_and_runs_sequentially(agents, make_client):
    client = make_client()
    orchestrator = CollaborationOrchestrator(client, rng=random.Random(3))

    result = await orchestrator.collaborate("@laila hi", agents, CollaborativeSettings(style="random"))

    assert result.mentioned_agents == []
    for k in range(1, len(client.calls)):
        assert result.contributions[k - 1].contribution in client.calls[k].message


# =============================================================================
# Agent selection
# =============================================================================


def test_mentions_take_precedence(agents, agents_by_name, fake_client):
    orchestrator = CollaborationOrchestrator(fake_client)
    settings = CollaborativeSettings(selected_agent_ids=[agents_by_name["helper-tutor"].id])

    selected, mentioned = orchestrator.select_agents("@carmen thoughts?", agents, settings)

    assert [a.name for a in selected] == ["carmen-peer"]
    assert [a.name for a in mentioned] == ["carmen-peer"]


def test_selected_ids_beat_relevance(agents, agents_by_name, fake_client):
    orchestrator = CollaborationOrchestrator(fake_client)
    ids = [agents_by_name["project-tutor"].id, agents_by_name["peer-tutor"].id]

    selected, mentioned = orchestrator.select_agents(
        "I'm so frustrated", agents, CollaborativeSettings(selected_agent_ids=ids)
    )

    assert [a.name for a in selected] == ["project-tutor", "peer-tutor"]
    assert mentioned == []


def test_relevance_takes_top_max_agents(agents, fake_client):
    orchestrator = CollaborationOrchestrator(fake_client, default_max_agents=2)

    selected, _ = orchestrator.select_agents(
        "what do you think, I disagree", agents, CollaborativeSettings()
    )

    assert {a.name for a in selected} == {"laila-peer", "socratic-tutor"}


def test_relevance_respects_requested_max_agents(agents, fake_client):
    orchestrator = CollaborationOrchestrator(fake_client)

    selected, _ = orchestrator.select_agents("hello", agents, CollaborativeSettings(max_agents=3))

    assert len(selected) == 3


@pytest.mark.asyncio
async def test_mention_stripped_message_is_sent(agents, make_client):
    client = make_client()
    orchestrator = CollaborationOrchestrator(client)

    result = await orchestrator.collaborate('@"Study Buddy" explain recursion', agents)

    assert result.mentioned_agents == ["peer-tutor"]
    assert [c.message for c in client.calls] == ["explain recursion"]


@pytest.mark.asyncio
async def test_empty_roster_raises(fake_client):
    with pytest.raises(NoAgentsAvailableError):
        await CollaborationOrchestrator(fake_client).collaborate("hi", [])


# =============================================================================
# Reply cleanup and display
# =============================================================================


@pytest.mark.asyncio
async def test_speaker_prefix_is_stripped(agents_by_name, make_client):
    roster = _pick(agents_by_name, "laila-peer", "carmen-peer")
    client = make_client(
        replies={
            "laila-peer": "**Laila**: I see it differently.",
            "carmen-peer": "Carmen: honestly same.",
        }
    )
    orchestrator = CollaborationOrchestrator(client)

    result = await orchestrator.collaborate(
        "thoughts?",
        roster,
        CollaborativeSettings(style="parallel", selected_agent_ids=[a.id for a in roster]),
    )

    assert [c.contribution for c in result.contributions] == [
        "I see it differently.",
        "honestly same.",
    ]


def test_compose_display_text():
    contributions = [
        AgentContribution(agent_id=1, agent_name="a", agent_display_name="Ann", contribution="one"),
        AgentContribution(agent_id=2, agent_name="b", agent_display_name="Bo", contribution="two", round=2),
    ]

    text = compose_display_text(contributions)

    assert text == "**Ann**:\none" + CONTRIBUTION_SEPARATOR + "**Bo** (Round 2):\ntwo"


@pytest.mark.asyncio
async def test_record_json_round_trips_style_and_contributions(agents_by_name, make_client):
    roster = _pick(agents_by_name, "laila-peer")
    orchestrator = CollaborationOrchestrator(make_client())

    result = await orchestrator.collaborate(
        "hi", roster, CollaborativeSettings(style="sequential", selected_agent_ids=[roster[0].id])
    )
    record = CollaborationRecord.model_validate(json.loads(result.to_record_json()))

    assert record.style == CollaborativeStyle.SEQUENTIAL
    assert record.contributions == result.contributions


def test_collaborative_prompt_states_length_budget(agents_by_name):
    prompt = build_system_prompt(agents_by_name["laila-peer"], collaborative=True, max_length=300)

    assert "one of several tutors" in prompt
    assert "under 300 characters" in prompt
