"""
Agent Registry Tests
"""

import json

import pytest

from tutor_engine.exceptions import AgentInactiveError, AgentNotFoundError, ConfigurationError
from tutor_engine.models.agents import TutorAgent
from tutor_engine.services.agent_registry import AgentRegistry


def test_defaults_are_ordered_and_active():
    registry = AgentRegistry.with_defaults()
    agents = registry.list_agents()

    assert len(registry) == 7
    assert [a.id for a in agents] == list(range(1, 8))
    assert agents[0].name == "beatrice-peer"
    assert all(a.is_active for a in agents)
    assert all(a.dos and a.donts for a in agents)


def test_lookup_by_name_or_display_name(registry):
    assert registry.get_by_name("Socratic Guide").name == "socratic-tutor"
    assert registry.get_by_name("LAILA-PEER").display_name == "Laila"
    assert registry.get_by_name("nobody") is None


def test_require_active(agents):
    inactive = agents[1].model_copy(update={"is_active": False})
    registry = AgentRegistry([agents[0], inactive])

    assert registry.require_active(agents[0].id) is agents[0]
    assert registry.list_active_agents() == [agents[0]]
    with pytest.raises(AgentInactiveError):
        registry.require_active(inactive.id)
    with pytest.raises(AgentNotFoundError):
        registry.require(999)


def test_malformed_rules_are_ignored():
    agent = TutorAgent(id=1, name="a", display_name="A", dos_rules="not json", donts_rules='{"x": 1}')
    assert agent.dos == []
    assert agent.donts == []


def test_from_file(tmp_path):
    path = tmp_path / "agents.json"
    path.write_text(
        json.dumps(
            [
                {"name": "math-coach", "display_name": "Math Coach", "dos_rules": ["Show working"]},
                {"id": 10, "name": "chem-coach", "display_name": "Chem Coach", "is_active": False},
            ]
        )
    )

    registry = AgentRegistry.from_file(path)

    assert [a.id for a in registry.list_agents()] == [1, 10]
    assert registry.get(1).dos == ["Show working"]
    assert [a.name for a in registry.list_active_agents()] == ["math-coach"]


@pytest.mark.parametrize(
    "content",
    ["{not json", json.dumps({"name": "x"}), json.dumps([{"name": "missing display"}])],
)
def test_from_file_rejects_bad_rosters(tmp_path, content):
    path = tmp_path / "agents.json"
    path.write_text(content)

    with pytest.raises(ConfigurationError):
        AgentRegistry.from_file(path)


def test_from_file_missing(tmp_path):
    with pytest.raises(ConfigurationError):
        AgentRegistry.from_file(tmp_path / "nope.json")
