"""
Routing Engine Tests

Keyword scoring, AI routing and the fallback between them.
"""

import json

import pytest

from tutor_engine.agents.router import (
    ROUTING_RULES,
    AIRouter,
    FallbackRouter,
    KeywordRouter,
    KeywordRule,
    create_router,
)
from tutor_engine.config import RoutingConfig
from tutor_engine.exceptions import (
    ConfigurationError,
    NoAgentsAvailableError,
    RoutingResponseError,
)
from tutor_engine.models.agents import TutorAgent


def _plain_agent(agent_id, name):
    return TutorAgent(id=agent_id, name=name, display_name=name.title())


# =============================================================================
# Rule table
# =============================================================================


def test_rule_table_only_names_known_agents(agents):
    known = {a.name for a in agents}
    for rule in ROUTING_RULES:
        assert set(rule.agents) <= known, rule.label


def test_rule_phrases_are_lowercase():
    for rule in ROUTING_RULES:
        assert all(p == p.lower() for p in rule.phrases), rule.label


# =============================================================================
# Keyword strategy
# =============================================================================


@pytest.mark.parametrize(
    "message",
    [
        "I'm so frustrated with recursion",
        "why does my loop never end",
        "zzz",
        "hey, I'm a beginner and I want to build a project",
    ],
)
def test_keyword_routing_is_deterministic(agents, message):
    router = KeywordRouter()
    first = router.analyze(message, agents)
    second = router.analyze(message, list(agents))
    assert first.model_dump() == second.model_dump()


def test_distress_routes_to_emotional_support(agents):
    info = KeywordRouter().analyze("I'm so frustrated", agents)
    emotional_rule = ROUTING_RULES[0]

    assert info.selected_agent.name in emotional_rule.agents
    assert info.confidence >= 0.6
    assert info.reason == emotional_rule.label


def test_debugging_message_routes_to_project_help(agents):
    info = KeywordRouter().analyze("I built a function but it throws an error", agents)

    assert info.selected_agent.name == "project-tutor"
    assert info.confidence >= 0.8
    assert "technical" in info.reason.lower()
    assert "practical" in info.reason.lower()


def test_no_rule_selects_first_agent_with_default_score(agents):
    info = KeywordRouter().analyze("zzz", agents)

    assert info.selected_agent.id == agents[0].id
    assert info.reason == RoutingConfig.DEFAULT_REASON
    assert info.confidence == RoutingConfig.BASELINE_SCORE


def test_alternatives_exclude_selected_and_are_sorted(agents):
    info = KeywordRouter().analyze("how do I fix this bug in my project", agents)

    assert len(info.alternatives) == len(agents) - 1
    assert info.selected_agent.id not in {a.agent_id for a in info.alternatives}
    scores = [a.score for a in info.alternatives]
    assert scores == sorted(scores, reverse=True)


def test_score_is_capped(agents):
    scores = KeywordRouter().score("I'm a frustrated beginner", agents)
    beatrice = next(s for s in scores if s.agent.name == "beatrice-peer")

    assert beatrice.score == RoutingConfig.MAX_SCORE
    assert beatrice.fired_rules == [ROUTING_RULES[0].label, ROUTING_RULES[6].label]


def test_content_words_add_bonus():
    described = TutorAgent(
        id=1, name="a", display_name="A", description="Loves recursion and algorithms"
    )
    plain = _plain_agent(2, "b")

    scores = KeywordRouter(rules=[]).score("explain recursion algorithms please", [plain, described])

    assert scores[0].score == RoutingConfig.BASELINE_SCORE
    assert scores[1].score == round(RoutingConfig.BASELINE_SCORE + 2 * RoutingConfig.WORD_BONUS, 4)


def test_word_bonus_is_capped():
    described = TutorAgent(
        id=1, name="a", display_name="A",
        description="alpha bravo charlie delta echoes foxtrot",
    )
    scores = KeywordRouter(rules=[]).score("alpha bravo charlie delta echoes foxtrot", [described])

    assert scores[0].score == round(RoutingConfig.BASELINE_SCORE + RoutingConfig.MAX_WORD_BONUS, 4)


def test_ties_break_by_roster_order():
    rule = KeywordRule(label="Shared", phrases=("foo",), agents=("a", "b"), boost=0.4)
    a, b = _plain_agent(1, "a"), _plain_agent(2, "b")
    router = KeywordRouter(rules=[rule])

    assert router.analyze("foo", [a, b]).selected_agent.name == "a"
    assert router.analyze("foo", [b, a]).selected_agent.name == "b"


def test_rank_orders_by_score(agents):
    ranked = KeywordRouter().rank("what do you think, I disagree", agents)

    assert ranked[0].agent.name in ("laila-peer", "socratic-tutor")
    assert {ranked[0].agent.name, ranked[1].agent.name} == {"laila-peer", "socratic-tutor"}


def test_empty_roster_raises():
    with pytest.raises(NoAgentsAvailableError):
        KeywordRouter().analyze("hello", [])


@pytest.mark.asyncio
async def test_keyword_route_is_async_wrapper(agents):
    info = await KeywordRouter().route("I'm so stressed", agents)
    assert info.selected_agent.name == "beatrice-peer"
    assert info.strategy == "keyword"


# =============================================================================
# AI strategy
# =============================================================================


def _decision(**overrides):
    payload = {
        "selectedAgent": "socratic-tutor",
        "reason": "Conceptual question",
        "confidence": 0.9,
        "scores": {"socratic-tutor": 0.9, "laila-peer": 0.7},
    }
    payload.update(overrides)
    return json.dumps(payload)


@pytest.mark.asyncio
async def test_ai_router_parses_wrapped_json(agents, make_client):
    client = make_client(replies={"router": "Sure!\n```json\n" + _decision() + "\n```"})

    info = await AIRouter(client).route("why do closures capture variables?", agents)

    assert info.selected_agent.name == "socratic-tutor"
    assert info.reason == "Conceptual question"
    assert info.confidence == 0.9
    assert info.strategy == "ai"
    assert info.alternatives[0].agent_name == "laila-peer"
    assert info.alternatives[0].score == 0.7
    assert all(a.score == 0.5 for a in info.alternatives[1:])

    call = client.calls[0]
    assert call.caller == "router"
    assert call.temperature == 0.3
    assert "- laila-peer (Laila):" in call.message
    assert "why do closures capture variables?" in call.message


def test_ai_router_matches_display_name_and_defaults(agents, fake_client):
    info = AIRouter(fake_client).parse_decision('{"selectedAgent": "Laila"}', agents)

    assert info.selected_agent.name == "laila-peer"
    assert info.reason == RoutingConfig.AI_DEFAULT_REASON
    assert info.confidence == RoutingConfig.AI_DEFAULT_CONFIDENCE


def test_ai_router_clamps_confidence(agents, fake_client):
    info = AIRouter(fake_client).parse_decision(_decision(confidence=3), agents)
    assert info.confidence == 1.0


@pytest.mark.parametrize(
    "raw",
    [
        "I think socratic-tutor is best",
        _decision(selectedAgent="unknown-agent"),
        '{"reason": "missing agent"}',
    ],
)
def test_ai_router_rejects_unusable_replies(agents, fake_client, raw):
    with pytest.raises(RoutingResponseError):
        AIRouter(fake_client).parse_decision(raw, agents)


# =============================================================================
# Fallback
# =============================================================================


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "reply",
    ["not json at all", _decision(selectedAgent="ghost-tutor")],
)
async def test_fallback_on_bad_ai_reply(agents, make_client, reply):
    client = make_client(replies={"router": reply})
    router = FallbackRouter(AIRouter(client), KeywordRouter())

    info = await router.route("I'm so frustrated", agents)

    assert info.strategy == "keyword"
    assert info.selected_agent.name == "beatrice-peer"


@pytest.mark.asyncio
async def test_fallback_on_client_failure(agents, make_client):
    client = make_client(fail_for={"router"})
    router = create_router("ai", client=client)

    info = await router.route("I built a function but it throws an error", agents)

    assert info.selected_agent.name == "project-tutor"
    assert info.strategy == "keyword"


def test_create_router_variants(fake_client):
    assert isinstance(create_router("keyword"), KeywordRouter)
    assert isinstance(create_router("ai", client=fake_client), FallbackRouter)

    with pytest.raises(ConfigurationError):
        create_router("ai")
    with pytest.raises(ConfigurationError):
        create_router("telepathy")
