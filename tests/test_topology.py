"""Tests for topology selection.

Test Coverage:
- Each rule of the decision tree, including rule order
- Determinism of the decision
- Switch rules
- Keyword recommendations, display info and team sizes
"""

from __future__ import annotations

import pytest

from swarmroute.assignment import TopologyFactors, TopologySelector
from swarmroute.core.types import Topology


@pytest.fixture
def selector():
    """Create a TopologySelector with the default tables."""
    return TopologySelector()


# =============================================================================
# Decision Tree
# =============================================================================


class TestSelectTopology:
    """Tests for TopologySelector.select_topology."""

    def test_simple_single_agent(self, selector):
        decision = selector.select_topology(TopologyFactors(complexity=2, agent_count=1))

        assert decision.topology == Topology.SINGLE
        assert decision.confidence == 0.95
        assert decision.coordinator_required is False
        assert decision.max_agents == 1

    def test_simple_with_two_agents_is_not_single(self, selector):
        decision = selector.select_topology(TopologyFactors(complexity=2, agent_count=2))
        assert decision.topology == Topology.MESH

    def test_high_complexity_and_many_agents(self, selector):
        decision = selector.select_topology(TopologyFactors(complexity=8, agent_count=6))

        assert decision.topology == Topology.HIERARCHICAL
        assert decision.confidence == pytest.approx(0.9)
        assert decision.reasoning == [
            "High complexity or many agents requires hierarchical coordination",
            "Complexity score 8 indicates complex task",
            "6 agents need central coordination",
        ]
        assert decision.coordinator_required is True
        assert decision.max_agents == 10

    def test_high_complexity_only(self, selector):
        decision = selector.select_topology(TopologyFactors(complexity=7, agent_count=2))
        assert decision.confidence == pytest.approx(0.8)

    def test_dependencies_win_over_security(self, selector):
        decision = selector.select_topology(TopologyFactors(
            complexity=5, agent_count=3, has_dependencies=True, is_security_related=True,
        ))

        assert decision.topology == Topology.HIERARCHICAL
        assert decision.confidence == 0.85
        assert decision.reasoning[0] == "Dependencies require ordered execution"

    def test_security_is_hybrid(self, selector):
        decision = selector.select_topology(TopologyFactors(
            complexity=5, agent_count=3, is_security_related=True,
        ))

        assert decision.topology == Topology.HYBRID
        assert decision.max_agents == 8
        assert decision.coordinator_required is True

    def test_long_duration_is_hybrid(self, selector):
        decision = selector.select_topology(TopologyFactors(
            complexity=3, agent_count=2, expected_duration=6.5,
        ))

        assert decision.topology == Topology.HYBRID
        assert decision.confidence == 0.8
        assert decision.reasoning[0] == "Long-running task (6.5h) benefits from hybrid topology"

    def test_medium_complexity_team(self, selector):
        decision = selector.select_topology(TopologyFactors(complexity=5, agent_count=4))

        assert decision.topology == Topology.HIERARCHICAL
        assert decision.reasoning[0] == "Medium-high complexity with multiple agents"

    def test_consensus_is_mesh(self, selector):
        decision = selector.select_topology(TopologyFactors(
            complexity=4, agent_count=5, requires_consensus=True,
        ))

        assert decision.topology == Topology.MESH
        assert decision.confidence == 0.85
        assert decision.coordinator_required is False

    def test_small_collaborative_task(self, selector):
        decision = selector.select_topology(TopologyFactors(complexity=3, agent_count=3))

        assert decision.topology == Topology.MESH
        assert decision.confidence == 0.8

    def test_moderate_task_with_few_agents(self, selector):
        decision = selector.select_topology(TopologyFactors(complexity=6, agent_count=3))

        assert decision.topology == Topology.MESH
        assert decision.reasoning == ["Default to mesh for moderate task with few agents"]
        assert decision.confidence == 0.7

    def test_larger_team_falls_back_to_hierarchical(self, selector):
        decision = selector.select_topology(TopologyFactors(complexity=4, agent_count=5))

        assert decision.topology == Topology.HIERARCHICAL
        assert decision.reasoning == ["Default to hierarchical for larger agent teams"]

    @pytest.mark.parametrize(
        "factors",
        [
            TopologyFactors(complexity=1, agent_count=1),
            TopologyFactors(complexity=5, agent_count=4, expected_duration=5),
            TopologyFactors(complexity=9, agent_count=8, has_dependencies=True),
            TopologyFactors(complexity=3, agent_count=2, requires_consensus=True),
        ],
    )
    def test_deterministic(self, selector, factors):
        assert selector.select_topology(factors) == selector.select_topology(factors)

    def test_to_dict(self, selector):
        data = selector.select_topology(TopologyFactors(complexity=1, agent_count=1)).to_dict()
        assert data == {
            "topology": "single",
            "max_agents": 1,
            "coordinator_required": False,
            "reasoning": ["Simple task with single agent"],
            "confidence": 0.95,
        }


# =============================================================================
# Switching
# =============================================================================


class TestCanSwitchTopology:
    """Tests for TopologySelector.can_switch_topology."""

    def test_same_topology(self, selector):
        result = selector.can_switch_topology(Topology.MESH, Topology.MESH)
        assert result.allowed is True
        assert result.warning is None

    @pytest.mark.parametrize(
        "source,target",
        [
            (Topology.SINGLE, Topology.MESH),
            (Topology.MESH, Topology.HIERARCHICAL),
            (Topology.HIERARCHICAL, Topology.HYBRID),
            (Topology.SINGLE, Topology.HYBRID),
        ],
    )
    def test_upgrades_allowed(self, selector, source, target):
        result = selector.can_switch_topology(source, target)
        assert result.allowed is True
        assert result.warning is None

    def test_hierarchical_to_mesh_warns(self, selector):
        result = selector.can_switch_topology(Topology.HIERARCHICAL, Topology.MESH)

        assert result.allowed is True
        assert "coordination benefits" in result.warning

    def test_hybrid_to_mesh_warns(self, selector):
        result = selector.can_switch_topology("hybrid", "mesh")

        assert result.allowed is True
        assert "oversight" in result.warning

    def test_single_refused_with_several_agents(self, selector):
        result = selector.can_switch_topology(Topology.HIERARCHICAL, Topology.SINGLE)

        assert result.allowed is False
        assert result.warning is not None

    def test_single_allowed_with_one_agent(self, selector):
        result = selector.can_switch_topology(Topology.MESH, Topology.SINGLE, active_agents=1)
        assert result.allowed is True

    def test_other_downgrade_allowed(self, selector):
        result = selector.can_switch_topology(Topology.HYBRID, Topology.HIERARCHICAL)
        assert result.allowed is True
        assert result.warning is None


# =============================================================================
# Helpers
# =============================================================================


class TestHelpers:
    """Tests for keyword recommendations, info and team sizes."""

    @pytest.mark.parametrize(
        "keywords,expected",
        [
            (["Security", "typo"], Topology.HYBRID),
            (["migration"], Topology.HIERARCHICAL),
            (["review"], Topology.MESH),
            (["readme"], Topology.SINGLE),
            (["widgets"], None),
            ([], None),
        ],
    )
    def test_recommend_from_keywords(self, selector, keywords, expected):
        assert selector.recommend_from_keywords(keywords) == expected

    @pytest.mark.parametrize(
        "words,expected",
        [
            (["please", "Review", "this"], True),
            (["auth", "brainstorm"], True),
            (["reviewer"], False),
            ([], False),
        ],
    )
    def test_requires_consensus(self, selector, words, expected):
        assert selector.requires_consensus(words) is expected

    def test_topology_info(self, selector):
        info = selector.get_topology_info("mesh")

        assert info.name == "Mesh Network"
        assert info.agent_limit == 5
        assert info.to_dict()["best_for"][0] == "Collaborative work"

    def test_all_topologies(self, selector):
        assert set(selector.get_all_topologies()) == set(Topology)

    def test_table_is_read_only(self, selector):
        with pytest.raises(TypeError):
            selector.info[Topology.SINGLE] = None

    @pytest.mark.parametrize(
        "complexity,expected",
        [(1, 1), (2, 1), (3, 3), (4, 3), (5, 5), (6, 5), (7, 7), (8, 7), (9, 10), (10, 10)],
    )
    def test_estimate_max_agents(self, complexity, expected):
        assert TopologySelector.estimate_max_agents(complexity) == expected
