"""Ticket-to-execution decision engine.

Composes every stage for one ticket, leaves first:

    analyze -> complexity -> dependencies -> time estimate
            -> learned patterns -> agent assignment -> topology

and writes successful outcomes back so later tickets can reuse them.

Collaborator failures never escape decide(): each stage degrades on its own
(no history, no dependencies, default routing) and logs a warning.

Key Components:
    TicketDecision: Everything the engine produced for one ticket.
    DecisionEngine: Wires the stages to one ticket store and memory service.

Usage:
    engine = DecisionEngine.from_settings(get_settings())
    decision = await engine.decide(TicketInput.create("Add OAuth login"))
    print(decision.topology.topology, decision.assignment.agent_types)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from swarmroute.analysis.classifier import AnalysisResult, TicketClassifier
from swarmroute.analysis.complexity import ComplexityEstimator, ComplexityResult
from swarmroute.analysis.dependencies import DependencyDetector, DependencyResult
from swarmroute.analysis.time_estimation import TimeEstimate, TimeEstimator
from swarmroute.assignment.patterns import MatchOptions, MatchResult, PatternMatcher
from swarmroute.assignment.router import (
    OVERSIGHT_KEYWORDS,
    AgentAssignment,
    AgentRouter,
    ManualOverride,
)
from swarmroute.assignment.topology import TopologyDecision, TopologyFactors, TopologySelector
from swarmroute.config.settings import SwarmRouteSettings
from swarmroute.core.storage.factory import BackendFactory
from swarmroute.core.storage.memory import InMemoryTicketStore
from swarmroute.core.storage.models import TicketRecord, TicketStatus
from swarmroute.core.types import TicketInput

if TYPE_CHECKING:
    from swarmroute.core.storage.protocols import MemoryService, TicketStore


logger = logging.getLogger(__name__)


# =============================================================================
# Decision Result
# =============================================================================


@dataclass
class TicketDecision:
    """Everything decided for one ticket.

    Attributes:
        analysis: Classifier output.
        complexity: Complexity score and its breakdown.
        dependencies: Dependency edges. Without a ticket id and project
            only explicit references in the text are detected.
        time_estimate: Hours estimate with range.
        patterns: Learned patterns similar to this ticket.
        assignment: Agents and their roles.
        topology: Selected communication topology.
        reasoning: Assignment reasoning followed by topology reasoning.
    """

    analysis: AnalysisResult
    complexity: ComplexityResult
    dependencies: DependencyResult
    time_estimate: TimeEstimate
    patterns: MatchResult
    assignment: AgentAssignment
    topology: TopologyDecision
    reasoning: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "analysis": self.analysis.to_dict(),
            "complexity": self.complexity.to_dict(),
            "dependencies": self.dependencies.to_dict(),
            "time_estimate": self.time_estimate.to_dict(),
            "patterns": self.patterns.to_dict(),
            "assignment": self.assignment.to_dict(),
            "topology": self.topology.to_dict(),
            "reasoning": list(self.reasoning),
        }


# =============================================================================
# Decision Engine
# =============================================================================


class DecisionEngine:
    """Runs the full decision pipeline for tickets.

    Attributes:
        classifier: Ticket classifier.
        complexity: Complexity estimator.
        dependencies: Dependency detector.
        time: Time estimator.
        patterns: Pattern matcher.
        router: Agent router.
        topology: Topology selector.
    """

    def __init__(
        self,
        ticket_store: "TicketStore",
        memory: "MemoryService",
        settings: Optional[SwarmRouteSettings] = None,
    ) -> None:
        settings = settings or SwarmRouteSettings()
        self.settings = settings

        self.classifier = TicketClassifier()
        self.complexity = ComplexityEstimator(ticket_store, settings.complexity)
        self.dependencies = DependencyDetector(ticket_store)
        self.time = TimeEstimator(ticket_store, settings.time_estimate)
        self.patterns = PatternMatcher(memory, settings.patterns)
        self.router = AgentRouter(memory, settings.router)
        self.topology = TopologySelector()

        self.match_options = MatchOptions(
            min_similarity=settings.patterns.min_similarity,
            min_success_rate=settings.patterns.min_success_rate,
            limit=settings.patterns.limit,
        )

    @classmethod
    def from_settings(
        cls,
        settings: SwarmRouteSettings,
        ticket_store: Optional["TicketStore"] = None,
    ) -> "DecisionEngine":
        """Build an engine whose memory service comes from ``settings.memory``.

        Raises:
            ConfigurationError: If the configured memory backend is invalid.
        """
        memory = BackendFactory.from_settings(settings)
        return cls(ticket_store or InMemoryTicketStore(), memory, settings)

    async def decide(
        self,
        ticket: TicketInput,
        ticket_id: Optional[str] = None,
        project_id: Optional[str] = None,
        manual_override: Optional[ManualOverride] = None,
    ) -> TicketDecision:
        """Decide agents and topology for one ticket.

        Args:
            ticket: The ticket to decide for.
            ticket_id: Id of the stored ticket, used for dependency lookups.
            project_id: Project of the ticket, used for history and
                dependency lookups.
            manual_override: Agents chosen by a person, if any.

        Returns:
            TicketDecision.
        """
        analysis = self.classifier.analyze(ticket)
        labels = ticket.sorted_labels()

        complexity = await self.complexity.calculate_complexity(
            ticket.title, ticket.description, labels, project_id
        )

        # Store lookups need ids; explicit references only need the text
        if ticket_id and project_id:
            dependencies = await self.dependencies.detect_dependencies(
                ticket_id, ticket.title, ticket.description, project_id
            )
        else:
            dependencies = self.dependencies.detect_explicit_dependencies(
                ticket.title, ticket.description
            )

        time_estimate = await self.time.estimate_completion_time(
            complexity.score, analysis.ticket_type, labels, project_id
        )

        patterns = await self.patterns.find_matching_patterns(
            analysis.keywords, analysis.ticket_type, self.match_options
        )

        assignment = await self.router.assign_agents(analysis, manual_override)

        has_dependencies = bool(dependencies.blocked_by) or dependencies.has_explicit
        factors = TopologyFactors(
            complexity=complexity.score,
            agent_count=len(assignment.agents),
            has_dependencies=has_dependencies,
            is_security_related=bool(OVERSIGHT_KEYWORDS.intersection(analysis.keywords)),
            requires_consensus=(
                self.topology.requires_consensus([*ticket.words(), *analysis.keywords])
            ),
            expected_duration=time_estimate.hours,
            keywords=tuple(analysis.keywords),
        )
        topology = self.topology.select_topology(factors)

        logger.debug(
            "Decision for %r: type=%s, complexity=%d, agents=%s, topology=%s",
            ticket.title,
            analysis.ticket_type.value,
            complexity.score,
            assignment.agent_types,
            topology.topology.value,
        )

        return TicketDecision(
            analysis=analysis,
            complexity=complexity,
            dependencies=dependencies,
            time_estimate=time_estimate,
            patterns=patterns,
            assignment=assignment,
            topology=topology,
            reasoning=[*assignment.reasoning, *topology.reasoning],
        )

    @staticmethod
    def success_rate_for(feedback_loops: int) -> float:
        """Success rate of a completed ticket: fewer feedback loops is better."""
        return max(0.5, 1 - 0.1 * max(feedback_loops, 0))

    @staticmethod
    def count_feedback_loops(record: TicketRecord) -> int:
        """Number of times a stored ticket went back to NEEDS_FEEDBACK."""
        return sum(1 for entry in record.history if entry.to_status == TicketStatus.NEEDS_FEEDBACK)

    async def record_outcome(
        self,
        ticket: TicketInput,
        assignment: AgentAssignment,
        feedback_loops: int,
    ) -> bool:
        """Store a completed ticket's assignment as a learned pattern.

        Returns:
            True if the memory service stored the pattern.
        """
        success_rate = self.success_rate_for(feedback_loops)
        analysis = self.classifier.analyze(ticket)
        stored = await self.router.store_successful_assignment(analysis, assignment, success_rate)
        logger.debug(
            "Recorded outcome for %r: feedback_loops=%d, success_rate=%.2f, stored=%s",
            ticket.title,
            feedback_loops,
            success_rate,
            stored,
        )
        return stored


__all__ = ["TicketDecision", "DecisionEngine"]
