"""Shared value types for the SwarmRoute pipeline.

These enums and the ticket input are used by every stage, so they live in
core rather than in any one stage module.

Key Components:
    TicketType: The six ticket categories.
    Topology: The four agent communication topologies.
    AgentRole: Role of an agent inside an assignment.
    TicketPriority: Informational ticket priority.
    TicketInput: Immutable per-call ticket description.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional


class TicketType(str, Enum):
    """Category a ticket is classified into."""

    FEATURE = "feature"
    BUG = "bug"
    REFACTOR = "refactor"
    DOCS = "docs"
    TEST = "test"
    CHORE = "chore"


class Topology(str, Enum):
    """Communication structure among cooperating agents.

    Members are declared from least to most structured; ``rank`` exposes
    that order.
    """

    SINGLE = "single"
    MESH = "mesh"
    HIERARCHICAL = "hierarchical"
    HYBRID = "hybrid"

    @property
    def rank(self) -> int:
        """Position in the single < mesh < hierarchical < hybrid order."""
        return list(Topology).index(self)


class AgentRole(str, Enum):
    """Role of an agent inside an assignment."""

    COORDINATOR = "coordinator"
    WORKER = "worker"


class TicketPriority(str, Enum):
    """Ticket priority. Informational only; no stage scores on it."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


AGENT_TYPES: tuple[str, ...] = (
    "planner",
    "coder",
    "tester",
    "reviewer",
    "researcher",
    "architect",
    "api-docs",
    "security-auditor",
    "coordinator",
)
"""Known agent type tags."""


@dataclass(frozen=True)
class TicketInput:
    """A ticket as handed to the pipeline.

    Attributes:
        title: Ticket title.
        description: Optional free-text description.
        labels: Labels already attached to the ticket.
        priority: Optional priority, carried through unchanged.
    """

    title: str
    description: Optional[str] = None
    labels: frozenset[str] = field(default_factory=frozenset)
    priority: Optional[TicketPriority] = None

    @classmethod
    def create(
        cls,
        title: str,
        description: Optional[str] = None,
        labels: Optional[Iterable[str]] = None,
        priority: Optional[str] = None,
    ) -> "TicketInput":
        """Build a TicketInput from loosely typed values."""
        return cls(
            title=title,
            description=description or None,
            labels=frozenset(labels or ()),
            priority=TicketPriority(priority.upper()) if priority else None,
        )

    @property
    def text(self) -> str:
        """Lower-cased title and description joined by a space."""
        return f"{self.title} {self.description or ''}".lower().strip()

    def words(self) -> list[str]:
        """Lower-cased word tokens of the title and description."""
        return re.findall(r"[a-z0-9]+", self.text)

    def sorted_labels(self) -> list[str]:
        """Labels in a stable order."""
        return sorted(self.labels)


__all__ = [
    "TicketType",
    "Topology",
    "AgentRole",
    "TicketPriority",
    "AGENT_TYPES",
    "TicketInput",
]
