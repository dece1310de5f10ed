"""Agent routing for SwarmRoute.

The router is the top-level assignment step. Precedence is strict:

    1. Manual override: explicitly supplied agents are used as-is
       (confidence 1.0).
    2. Learned pattern: a memory search for past successful assignments of
       similar tickets; accepted only when its success rate clears the
       threshold (0.7 by default).
    3. Analysis: agents are derived from the classifier's suggestions.

Successful assignments are written back with store_successful_assignment
so later tickets can reuse them. Memory failures never propagate: a failed
search falls through to the analysis path and a failed store returns False.

Key Components:
    AgentConfig: One agent in an assignment.
    AgentAssignment: Agents, topology, confidence and reasoning.
    ManualOverride: Caller-supplied agents (and optional topology).
    StoredPattern: Persisted form of a successful assignment.
    AgentRouter: Produces and stores assignments.
    AGENT_CAPABILITIES: Default capability table per agent type.
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from swarmroute.assignment.parsing import (
    StrategyParser,
    json_objects_strategy,
    regex_strategy,
    split_list,
    structured_strategy,
)
from swarmroute.core.exceptions import failure_details
from swarmroute.core.scoring import percent
from swarmroute.core.storage.models import utc_now
from swarmroute.core.types import AgentRole, Topology

if TYPE_CHECKING:
    from swarmroute.analysis.classifier import AnalysisResult
    from swarmroute.config.settings import RouterSettings
    from swarmroute.core.storage.protocols import MemoryService


logger = logging.getLogger(__name__)


AGENT_CAPABILITIES: Mapping[str, tuple[str, ...]] = MappingProxyType({
    "coder": ("implementation", "coding", "feature", "bug-fix", "logic"),
    "tester": ("testing", "test", "coverage", "qa", "validation"),
    "reviewer": ("review", "quality", "security", "best-practices"),
    "researcher": ("research", "analysis", "documentation", "investigation"),
    "architect": ("architecture", "design", "refactor", "structure", "patterns"),
    "security-auditor": ("security-audit", "vulnerability", "auth", "encryption"),
    "planner": ("planning", "breakdown", "estimation", "task-management"),
    "coordinator": ("coordination", "complex", "multi-agent", "orchestration"),
    "api-docs": ("documentation", "api", "openapi", "swagger", "reference"),
})

OVERSIGHT_KEYWORDS: frozenset[str] = frozenset({"security", "auth", "authentication"})


# =============================================================================
# Assignment Types
# =============================================================================


@dataclass
class AgentConfig:
    """One agent in an assignment.

    Attributes:
        type: Agent type tag (e.g. 'coder').
        role: Coordinator or worker.
        priority: Execution priority, higher first.
        prompt: Optional custom prompt.
    """

    type: str
    role: AgentRole = AgentRole.WORKER
    priority: int = 1
    prompt: Optional[str] = None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "type": self.type,
            "role": self.role.value,
            "priority": self.priority,
        }
        if self.prompt is not None:
            data["prompt"] = self.prompt
        return data


@dataclass
class AgentAssignment:
    """Agents chosen for a ticket and how they are organized.

    Attributes:
        agents: Agents in priority order.
        topology: Communication topology.
        confidence: Confidence in the assignment (0.0-1.0).
        reasoning: Explanations, in the order they were produced.
        from_pattern: Whether a learned pattern was used.
    """

    agents: list[AgentConfig]
    topology: Topology
    confidence: float
    reasoning: list[str] = field(default_factory=list)
    from_pattern: bool = False

    @property
    def agent_types(self) -> list[str]:
        return [a.type for a in self.agents]

    def to_dict(self) -> dict:
        return {
            "agents": [a.to_dict() for a in self.agents],
            "topology": self.topology.value,
            "confidence": self.confidence,
            "reasoning": list(self.reasoning),
            "from_pattern": self.from_pattern,
        }


@dataclass
class ManualOverride:
    """Caller-supplied agents, and optionally a topology."""

    agents: list[AgentConfig] = field(default_factory=list)
    topology: Optional[Topology] = None


class StoredPattern(BaseModel):
    """Persisted form of a successful assignment.

    camelCase spellings (``ticketType``, ``successRate``) and the short
    ``success`` are accepted on input.
    """

    model_config = ConfigDict(populate_by_name=True)

    ticket_type: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("ticket_type", "ticketType"),
    )
    keywords: list[str] = Field(default_factory=list)
    agents: list[str] = Field(min_length=1)
    topology: Topology
    success_rate: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        validation_alias=AliasChoices("success_rate", "successRate", "success"),
    )
    timestamp: str = Field(default_factory=lambda: utc_now().isoformat())

    @classmethod
    def from_payload(cls, data: dict, default_id: str) -> "StoredPattern":
        return cls.model_validate(data)


# =============================================================================
# Learned Pattern Parsing
# =============================================================================

_TEXT_AGENTS = re.compile(r"agents:\s*\[(.*?)\]", re.IGNORECASE)
_TEXT_TOPOLOGY = re.compile(r"topology:\s*(\w+)", re.IGNORECASE)
_TEXT_SUCCESS = re.compile(r"success(?:_?rate)?:\s*([\d.]+)", re.IGNORECASE)


def _stored_pattern_from_text(match: "re.Match[str]") -> StoredPattern:
    text = match.string
    topology = _TEXT_TOPOLOGY.search(text)
    if topology is None:
        raise ValueError("no topology in text pattern")
    success = _TEXT_SUCCESS.search(text)
    return StoredPattern(
        agents=split_list(match.group(1)),
        topology=topology.group(1).lower(),
        success_rate=float(success.group(1)) if success else 0.5,
    )


def default_assignment_parser() -> StrategyParser:
    """Parser for learned-assignment search responses."""
    return StrategyParser([
        structured_strategy(StoredPattern.from_payload),
        json_objects_strategy(StoredPattern.from_payload, greedy=True),
        regex_strategy(_TEXT_AGENTS, _stored_pattern_from_text, find_all=False),
    ])


# =============================================================================
# Agent Router
# =============================================================================


class AgentRouter:
    """Assigns agents to analyzed tickets.

    Attributes:
        memory: Memory service holding stored assignments.
        namespace: Namespace of stored assignments.
        min_pattern_success_rate: Threshold for using a learned assignment.
        capabilities: Capability table per agent type.
    """

    def __init__(
        self,
        memory: "MemoryService",
        settings: Optional["RouterSettings"] = None,
        capabilities: Mapping[str, tuple[str, ...]] = AGENT_CAPABILITIES,
        parser: Optional[StrategyParser] = None,
    ) -> None:
        self.memory = memory
        self.capabilities = capabilities
        self.parser = parser or default_assignment_parser()

        self.namespace = settings.namespace if settings else "agent-assignments"
        self.min_pattern_success_rate = settings.min_pattern_success_rate if settings else 0.7
        self.analysis_confidence_scale = settings.analysis_confidence_scale if settings else 0.8
        self.coordinator_priority = settings.coordinator_priority if settings else 100
        self.hierarchical_agent_threshold = (
            settings.hierarchical_agent_threshold if settings else 4
        )

    async def assign_agents(
        self,
        analysis: "AnalysisResult",
        manual_override: Optional[ManualOverride] = None,
    ) -> AgentAssignment:
        """Assign agents to a ticket.

        Args:
            analysis: The ticket's analysis.
            manual_override: Agents (and optional topology) chosen by a
                person. Used only when it names at least one agent.

        Returns:
            The AgentAssignment.
        """
        if manual_override is not None and manual_override.agents:
            logger.debug("Using manual override with %d agents", len(manual_override.agents))
            return AgentAssignment(
                agents=list(manual_override.agents),
                topology=manual_override.topology or analysis.suggested_topology,
                confidence=1.0,
                reasoning=["Using manual agent override"],
                from_pattern=False,
            )

        learned = await self.query_learned_patterns(analysis)
        if learned is not None:
            learned.reasoning.append(
                f"Using learned pattern with {percent(learned.confidence)}% success rate"
            )
            return learned

        return self.assign_from_analysis(analysis)

    async def query_learned_patterns(self, analysis: "AnalysisResult") -> Optional[AgentAssignment]:
        """Look up a stored assignment good enough to reuse.

        Returns:
            An assignment built from the stored pattern, or None when the
            search fails or nothing clears the success threshold.
        """
        query = f"{analysis.ticket_type.value} {' '.join(analysis.keywords)} success"
        try:
            response = await self.memory.search(query, namespace=self.namespace, limit=1)
        except Exception as e:
            logger.warning("Learned pattern search failed: %s", failure_details(e))
            return None

        for strategy, candidates in self.parser.results(response):
            pattern = candidates[0]
            if pattern.success_rate < self.min_pattern_success_rate:
                logger.debug(
                    "Ignoring %s pattern with success rate %.2f",
                    strategy,
                    pattern.success_rate,
                )
                continue
            return self._assignment_from_pattern(pattern)

        return None

    def _assignment_from_pattern(self, pattern: StoredPattern) -> AgentAssignment:
        count = len(pattern.agents)
        agents = [
            AgentConfig(
                type=agent_type,
                role=AgentRole.COORDINATOR if index == 0 else AgentRole.WORKER,
                priority=count - index,
            )
            for index, agent_type in enumerate(pattern.agents)
        ]
        if pattern.ticket_type:
            reason = f"Matched pattern for {pattern.ticket_type} tickets"
        else:
            reason = f"Matched pattern with {count} agents"

        return AgentAssignment(
            agents=agents,
            topology=pattern.topology,
            confidence=pattern.success_rate,
            reasoning=[reason],
            from_pattern=True,
        )

    def needs_coordinator(self, analysis: "AnalysisResult") -> bool:
        """Whether the first suggested agent should coordinate."""
        if analysis.suggested_topology == Topology.HIERARCHICAL:
            return True
        if len(analysis.suggested_agents) >= 4:
            return True
        return bool(OVERSIGHT_KEYWORDS.intersection(analysis.keywords))

    def assign_from_analysis(self, analysis: "AnalysisResult") -> AgentAssignment:
        """Derive an assignment directly from the analysis."""
        reasoning = [
            f"Ticket type: {analysis.ticket_type.value}, confidence: {analysis.confidence}"
        ]
        agents: list[AgentConfig] = []
        count = len(analysis.suggested_agents)
        coordinate = self.needs_coordinator(analysis)

        for index, agent_type in enumerate(analysis.suggested_agents):
            role = AgentRole.COORDINATOR if index == 0 and coordinate else AgentRole.WORKER
            agents.append(AgentConfig(type=agent_type, role=role, priority=count - index))
            reasoning.append(f"Added {agent_type} agent as {role.value}")

        topology = analysis.suggested_topology
        if topology == Topology.HIERARCHICAL and not any(
            a.role == AgentRole.COORDINATOR for a in agents
        ):
            agents.insert(
                0,
                AgentConfig(
                    type="coordinator",
                    role=AgentRole.COORDINATOR,
                    priority=self.coordinator_priority,
                ),
            )
            reasoning.append("Added coordinator for hierarchical topology")

        if len(agents) > self.hierarchical_agent_threshold and topology != Topology.HIERARCHICAL:
            topology = Topology.HIERARCHICAL
            reasoning.append(
                f"Upgraded to hierarchical topology for {self.hierarchical_agent_threshold}+ agents"
            )

        assignment = AgentAssignment(
            agents=agents,
            topology=topology,
            confidence=analysis.confidence * self.analysis_confidence_scale,
            reasoning=reasoning,
            from_pattern=False,
        )
        logger.debug(
            "Assignment from analysis: agents=%s, topology=%s, confidence=%.2f",
            assignment.agent_types,
            assignment.topology.value,
            assignment.confidence,
        )
        return assignment

    async def store_successful_assignment(
        self,
        analysis: "AnalysisResult",
        assignment: AgentAssignment,
        success_rate: float,
    ) -> bool:
        """Persist an assignment that worked, for later reuse.

        Returns:
            True if the memory service stored it. Failures return False.
        """
        try:
            pattern = StoredPattern(
                ticket_type=analysis.ticket_type.value,
                keywords=list(analysis.keywords),
                agents=assignment.agent_types,
                topology=assignment.topology,
                success_rate=success_rate,
            )
            key = (
                f"pattern-{analysis.ticket_type.value}-"
                f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"
            )
            return bool(
                await self.memory.store(key, pattern.model_dump_json(), namespace=self.namespace)
            )
        except Exception as e:
            logger.warning("Storing successful assignment failed: %s", failure_details(e))
            return False

    def get_agent_capabilities(self, agent_type: str) -> list[str]:
        """Capabilities of an agent type (empty when unknown)."""
        return list(self.capabilities.get(agent_type, ()))

    def score_agent_match(self, agent_type: str, required_capabilities: Iterable[str]) -> float:
        """Fraction of required capabilities the agent type covers.

        A capability counts as covered when it and one of the agent's
        capabilities contain each other.
        """
        required = list(required_capabilities)
        capabilities = self.get_agent_capabilities(agent_type)
        if not capabilities or not required:
            return 0.0

        matches = [
            cap for cap in required
            if any(c in cap or cap in c for c in capabilities)
        ]
        return len(matches) / len(required)


__all__ = [
    "AgentConfig",
    "AgentAssignment",
    "ManualOverride",
    "StoredPattern",
    "AgentRouter",
    "AGENT_CAPABILITIES",
    "default_assignment_parser",
]
