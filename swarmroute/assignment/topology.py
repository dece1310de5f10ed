"""Swarm topology selection.

A strict, ordered decision tree maps task factors to one of four
communication topologies. The first matching rule wins and every path
records why it was taken.

Decision Rules (in order):
    1. complexity <= 2 and one agent -> single
    2. complexity >= 7 or more than 5 agents -> hierarchical
    3. dependencies -> hierarchical
    4. security-related -> hybrid
    5. expected duration over 4h -> hybrid
    6. complexity >= 5 and more than 3 agents -> hierarchical
    7. consensus needed and at most 5 agents -> mesh
    8. complexity <= 4, at most 3 agents, no dependencies -> mesh
    9. at most 3 agents -> mesh, otherwise hierarchical

Key Components:
    TopologyFactors: Inputs to the decision tree.
    TopologyDecision: Selected topology with reasoning.
    TopologyInfo: Display information for a topology.
    SwitchResult: Answer of can_switch_topology.
    TopologySelector: Runs the decision tree and related helpers.

Example:
    >>> selector = TopologySelector()
    >>> decision = selector.select_topology(TopologyFactors(complexity=2, agent_count=1))
    >>> decision.topology
    <Topology.SINGLE: 'single'>
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from swarmroute.core.types import Topology


logger = logging.getLogger(__name__)


# =============================================================================
# Data Types
# =============================================================================


@dataclass(frozen=True)
class TopologyFactors:
    """Task characteristics that drive topology selection.

    Attributes:
        complexity: Complexity score (1-10).
        agent_count: Number of agents that will work on the task.
        has_dependencies: Whether the task depends on other tickets.
        is_security_related: Whether the task is security sensitive.
        requires_consensus: Whether agents need to agree as peers.
        expected_duration: Expected duration in hours.
        keywords: Keywords from ticket analysis (informational).
    """

    complexity: float
    agent_count: int
    has_dependencies: bool = False
    is_security_related: bool = False
    requires_consensus: bool = False
    expected_duration: float = 0.0
    keywords: tuple[str, ...] = ()


@dataclass
class TopologyDecision:
    """Selected topology with its reasoning.

    Attributes:
        topology: The selected topology.
        max_agents: Maximum agents recommended for it.
        coordinator_required: Whether a coordinator agent is required.
        reasoning: Explanations, in the order they were produced.
        confidence: Confidence in the decision (0.0-1.0).
    """

    topology: Topology
    max_agents: int
    coordinator_required: bool
    reasoning: list[str] = field(default_factory=list)
    confidence: float = 0.7

    def to_dict(self) -> dict:
        return {
            "topology": self.topology.value,
            "max_agents": self.max_agents,
            "coordinator_required": self.coordinator_required,
            "reasoning": list(self.reasoning),
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class TopologyInfo:
    """Display information about a topology."""

    name: str
    description: str
    best_for: tuple[str, ...]
    agent_limit: int
    icon: str

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "best_for": list(self.best_for),
            "agent_limit": self.agent_limit,
            "icon": self.icon,
        }


@dataclass(frozen=True)
class SwitchResult:
    """Whether a topology switch is allowed, with an optional warning."""

    allowed: bool
    warning: Optional[str] = None


# =============================================================================
# Tables
# =============================================================================

TOPOLOGY_INFO: Mapping[Topology, TopologyInfo] = MappingProxyType({
    Topology.SINGLE: TopologyInfo(
        name="Single Agent",
        description="One agent works independently on the task",
        best_for=("Simple tasks", "Quick fixes", "Documentation updates", "Minor bug fixes"),
        agent_limit=1,
        icon="user",
    ),
    Topology.MESH: TopologyInfo(
        name="Mesh Network",
        description="All agents communicate directly with each other as peers",
        best_for=(
            "Collaborative work", "Code review", "Brainstorming", "Parallel independent tasks",
        ),
        agent_limit=5,
        icon="network",
    ),
    Topology.HIERARCHICAL: TopologyInfo(
        name="Hierarchical",
        description="A coordinator agent leads and delegates to worker agents",
        best_for=(
            "Complex features", "Multi-step tasks", "Tasks with dependencies", "Large refactoring",
        ),
        agent_limit=10,
        icon="git-branch",
    ),
    Topology.HYBRID: TopologyInfo(
        name="Hierarchical Mesh",
        description="Coordinator with peer-to-peer worker communication",
        best_for=(
            "Security-sensitive work", "Long-running tasks", "Quality-critical features",
            "Cross-team coordination",
        ),
        agent_limit=8,
        icon="share-2",
    ),
})

# Wording that asks agents to agree among themselves
CONSENSUS_KEYWORDS = frozenset({"review", "discuss", "brainstorm", "collaborate"})

# Checked in order; the first rule with a matching keyword wins
KEYWORD_RULES: tuple[tuple[frozenset[str], Topology], ...] = (
    (frozenset({"security", "auth", "authentication", "encryption", "vulnerability"}), Topology.HYBRID),
    (frozenset({"architecture", "refactor", "migration", "infrastructure"}), Topology.HIERARCHICAL),
    (CONSENSUS_KEYWORDS, Topology.MESH),
    (frozenset({"typo", "readme", "comment", "minor", "quick"}), Topology.SINGLE),
)

DOWNGRADE_WARNINGS: Mapping[tuple[Topology, Topology], str] = MappingProxyType({
    (Topology.HIERARCHICAL, Topology.MESH):
        "Downgrading from hierarchical to mesh may lose coordination benefits",
    (Topology.HYBRID, Topology.MESH):
        "Downgrading from hybrid to mesh reduces oversight capabilities",
})

SINGLE_SWITCH_WARNING = "Cannot switch to single agent topology with multiple agents active"


# =============================================================================
# Topology Selector
# =============================================================================


class TopologySelector:
    """Selects a communication topology for a set of agents.

    Attributes:
        info: Display information per topology.
        keyword_rules: Ordered keyword rules for recommend_from_keywords.
    """

    def __init__(
        self,
        info: Mapping[Topology, TopologyInfo] = TOPOLOGY_INFO,
        keyword_rules: tuple[tuple[frozenset[str], Topology], ...] = KEYWORD_RULES,
    ) -> None:
        self.info = info
        self.keyword_rules = keyword_rules

    def _decision(
        self,
        topology: Topology,
        reasoning: list[str],
        confidence: float,
    ) -> TopologyDecision:
        decision = TopologyDecision(
            topology=topology,
            max_agents=self.info[topology].agent_limit,
            coordinator_required=topology in (Topology.HIERARCHICAL, Topology.HYBRID),
            reasoning=reasoning,
            confidence=confidence,
        )
        logger.debug(
            "Topology decision: %s (confidence=%.2f) because %s",
            topology.value,
            confidence,
            reasoning,
        )
        return decision

    def select_topology(self, factors: TopologyFactors) -> TopologyDecision:
        """Run the decision tree over ``factors``.

        Args:
            factors: Task characteristics.

        Returns:
            TopologyDecision. Identical factors always give an identical
            decision.
        """
        complexity = factors.complexity
        agents = factors.agent_count

        if complexity <= 2 and agents == 1:
            return self._decision(Topology.SINGLE, ["Simple task with single agent"], 0.95)

        if complexity >= 7 or agents > 5:
            reasoning = ["High complexity or many agents requires hierarchical coordination"]
            confidence = 0.7
            if complexity >= 7:
                reasoning.append(f"Complexity score {complexity} indicates complex task")
                confidence += 0.1
            if agents > 5:
                reasoning.append(f"{agents} agents need central coordination")
                confidence += 0.1
            return self._decision(Topology.HIERARCHICAL, reasoning, min(confidence, 0.95))

        if factors.has_dependencies:
            return self._decision(
                Topology.HIERARCHICAL,
                [
                    "Dependencies require ordered execution",
                    "Coordinator needed to manage task sequence",
                ],
                0.85,
            )

        if factors.is_security_related:
            return self._decision(
                Topology.HYBRID,
                [
                    "Security-sensitive task benefits from hybrid topology",
                    "Combines coordination oversight with peer review",
                ],
                0.85,
            )

        if factors.expected_duration > 4:
            return self._decision(
                Topology.HYBRID,
                [
                    f"Long-running task ({factors.expected_duration}h) benefits from hybrid topology",
                    "Provides resilience and coordination for extended work",
                ],
                0.8,
            )

        if complexity >= 5 and agents > 3:
            return self._decision(
                Topology.HIERARCHICAL,
                [
                    "Medium-high complexity with multiple agents",
                    "Hierarchical structure improves coordination",
                ],
                0.8,
            )

        if factors.requires_consensus and agents <= 5:
            return self._decision(
                Topology.MESH,
                [
                    "Consensus required among agents",
                    "Mesh topology allows direct peer communication",
                ],
                0.85,
            )

        if complexity <= 4 and agents <= 3 and not factors.has_dependencies:
            return self._decision(
                Topology.MESH,
                [
                    "Collaborative task suited for mesh topology",
                    "All agents can communicate directly",
                ],
                0.8,
            )

        if agents <= 3:
            return self._decision(
                Topology.MESH, ["Default to mesh for moderate task with few agents"], 0.7
            )

        return self._decision(
            Topology.HIERARCHICAL, ["Default to hierarchical for larger agent teams"], 0.7
        )

    def can_switch_topology(
        self,
        from_topology: Topology,
        to_topology: Topology,
        active_agents: int = 2,
    ) -> SwitchResult:
        """Check whether a running swarm may switch topology.

        Upgrades along single < mesh < hierarchical < hybrid are always
        allowed. Switching to single is refused while more than one agent
        is active.

        Args:
            from_topology: Current topology.
            to_topology: Requested topology.
            active_agents: Agents currently active. Defaults to a
                multi-agent swarm.
        """
        from_topology = Topology(from_topology)
        to_topology = Topology(to_topology)

        if from_topology == to_topology:
            return SwitchResult(allowed=True)

        if to_topology.rank > from_topology.rank:
            return SwitchResult(allowed=True)

        warning = DOWNGRADE_WARNINGS.get((from_topology, to_topology))
        if warning:
            return SwitchResult(allowed=True, warning=warning)

        if to_topology == Topology.SINGLE and active_agents > 1:
            return SwitchResult(allowed=False, warning=SINGLE_SWITCH_WARNING)

        return SwitchResult(allowed=True)

    def recommend_from_keywords(self, keywords: Iterable[str]) -> Optional[Topology]:
        """Coarse keyword-only topology suggestion, or None."""
        lowered = {k.lower() for k in keywords}
        for rule_keywords, topology in self.keyword_rules:
            if lowered & rule_keywords:
                return topology
        return None

    @staticmethod
    def requires_consensus(words: Iterable[str]) -> bool:
        """True when any word asks for peer agreement (review, discuss, ...)."""
        return any(w.lower() in CONSENSUS_KEYWORDS for w in words)

    def get_topology_info(self, topology: Topology) -> TopologyInfo:
        """Display information for one topology."""
        return self.info[Topology(topology)]

    def get_all_topologies(self) -> dict[Topology, TopologyInfo]:
        """Display information for every topology."""
        return dict(self.info)

    @staticmethod
    def estimate_max_agents(complexity: float) -> int:
        """Largest useful team size for a complexity score."""
        if complexity <= 2:
            return 1
        if complexity <= 4:
            return 3
        if complexity <= 6:
            return 5
        if complexity <= 8:
            return 7
        return 10


__all__ = [
    "TopologyFactors",
    "TopologyDecision",
    "TopologyInfo",
    "SwitchResult",
    "TopologySelector",
    "TOPOLOGY_INFO",
    "CONSENSUS_KEYWORDS",
]
