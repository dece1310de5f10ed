"""Dependency detection between tickets.

Finds three kinds of dependency edges for a ticket:

    - explicit: the text references another ticket ("after #123",
      "blocked by #7", "prerequisite: #9").
    - implicit: the ticket talks about using schema/database work while such
      work is in progress elsewhere in the project.
    - suggested: API or shared-component vocabulary overlaps with tickets in
      progress.

It also lists the backlog tickets that this ticket may block. All ticket
store lookups degrade to "nothing found" on failure.

Explicit references are kept by their number. They are not mapped to store
ids, so they never populate ``blocked_by``; ``has_blocking_dependencies``
still reports them through their ``blocking`` flag.

Key Components:
    DependencyType: explicit | implicit | suggested.
    Dependency: One candidate edge.
    DependencyResult: All edges plus derived id lists and tags.
    BlockingStatus: Answer of has_blocking_dependencies.
    DependencyDetector: Runs detection against an optional ticket store.
"""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Optional

from swarmroute.core.exceptions import failure_details
from swarmroute.core.storage.models import TicketQuery, TicketRecord, TicketStatus

if TYPE_CHECKING:
    from swarmroute.core.storage.protocols import TicketStore


logger = logging.getLogger(__name__)


# =============================================================================
# Patterns and Vocabulary
# =============================================================================

EXPLICIT_PATTERNS: tuple[re.Pattern, ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"(?:after|following|subsequent\s+to)\s*(?:ticket\s*)?#(\d+)",
        r"(?:depends?\s+on|dependent\s+on|requires?)\s*(?:ticket\s*)?#(\d+)",
        r"(?:blocked?\s+by|waiting\s+(?:on|for))\s*(?:ticket\s*)?#(\d+)",
        r"(?:needs?|requires?)\s*(?:ticket\s*)?#(\d+)\s*(?:first|completed?|done|finished)",
        r"(?:prerequisite|prereq|pre-req)\s*:?\s*(?:ticket\s*)?#(\d+)",
    )
)

BLOCKING_TERMS: tuple[str, ...] = (
    "blocked", "waiting", "after", "needs", "requires", "prerequisite",
)

SCHEMA_KEYWORDS: tuple[str, ...] = (
    "schema", "migration", "database", "table", "column", "model", "entity", "prisma",
)
API_KEYWORDS: tuple[str, ...] = (
    "api", "endpoint", "route", "request", "response", "rest", "graphql",
)
COMPONENT_KEYWORDS: tuple[str, ...] = (
    "component", "shared", "common", "util", "helper", "lib", "service",
)

RELATED_TICKET_LIMIT = 5


# =============================================================================
# Result Types
# =============================================================================


class DependencyType(str, Enum):
    """How a dependency was detected."""

    EXPLICIT = "explicit"
    IMPLICIT = "implicit"
    SUGGESTED = "suggested"


@dataclass
class Dependency:
    """A candidate edge from the current ticket to another one.

    Attributes:
        ticket_id: Id of the other ticket, None when unresolved.
        ticket_number: Referenced number (e.g. "123" from "#123").
        type: How the dependency was detected.
        reason: Human-readable explanation.
        blocking: Whether the phrasing marks it as blocking.
        confidence: 1.0 for explicit references, lower otherwise.
    """

    ticket_id: Optional[str]
    ticket_number: Optional[str]
    type: DependencyType
    reason: str
    blocking: bool = False
    confidence: float = 1.0

    def to_dict(self) -> dict:
        data = asdict(self)
        data["type"] = self.type.value
        return data


@dataclass
class DependencyResult:
    """All dependencies detected for one ticket.

    Attributes:
        dependencies: Every detected edge.
        blocked_by: Ids of resolved blocking dependencies.
        blocks: Ids of tickets this one may block.
        dependency_tags: Descriptive tags.
    """

    dependencies: list[Dependency] = field(default_factory=list)
    blocked_by: list[str] = field(default_factory=list)
    blocks: list[str] = field(default_factory=list)
    dependency_tags: list[str] = field(default_factory=list)

    def of_type(self, dependency_type: DependencyType) -> list[Dependency]:
        return [d for d in self.dependencies if d.type == dependency_type]

    @property
    def has_explicit(self) -> bool:
        return bool(self.of_type(DependencyType.EXPLICIT))

    def summary(self) -> str:
        """One-line summary such as ``Dependencies: 1 explicit, 2 suggested``."""
        parts = []
        for dependency_type in DependencyType:
            count = len(self.of_type(dependency_type))
            if count:
                parts.append(f"{count} {dependency_type.value}")
        if not parts:
            return "No dependencies detected"
        return f"Dependencies: {', '.join(parts)}"

    def to_dict(self) -> dict:
        return {
            "dependencies": [d.to_dict() for d in self.dependencies],
            "blocked_by": list(self.blocked_by),
            "blocks": list(self.blocks),
            "dependency_tags": list(self.dependency_tags),
            "summary": self.summary(),
        }


@dataclass
class BlockingStatus:
    """Whether a ticket is blocked, and by what."""

    blocked: bool = False
    blocked_by: list[Dependency] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "blocked": self.blocked,
            "blocked_by": [d.to_dict() for d in self.blocked_by],
        }


@dataclass(frozen=True)
class _ExplicitReference:
    number: str
    match: str
    blocking: bool


# =============================================================================
# Dependency Detector
# =============================================================================


class DependencyDetector:
    """Detects dependencies of a ticket.

    Attributes:
        ticket_store: Store used for implicit and reverse lookups. Without a
            store only explicit references are found.
    """

    def __init__(self, ticket_store: Optional["TicketStore"] = None) -> None:
        self.ticket_store = ticket_store

    @staticmethod
    def extract_explicit_references(text: str) -> list[_ExplicitReference]:
        """Find ticket references, de-duplicated by number in pattern order."""
        refs: list[_ExplicitReference] = []
        seen: set[str] = set()

        for pattern in EXPLICIT_PATTERNS:
            for match in pattern.finditer(text):
                number = match.group(1)
                if number in seen:
                    continue
                seen.add(number)
                phrase = match.group(0).strip()
                refs.append(
                    _ExplicitReference(
                        number=number,
                        match=phrase,
                        blocking=any(term in phrase.lower() for term in BLOCKING_TERMS),
                    )
                )
        return refs

    def detect_explicit_dependencies(
        self,
        title: str,
        description: Optional[str],
    ) -> DependencyResult:
        """Find explicit references only. Needs no ticket store or ids.

        References stay unresolved (``ticket_id=None``), so nothing lands in
        ``blocked_by``.
        """
        text = f"{title} {description or ''}".lower()
        dependencies = [
            Dependency(
                ticket_id=None,
                ticket_number=ref.number,
                type=DependencyType.EXPLICIT,
                reason=f'Explicitly referenced: "{ref.match}"',
                blocking=ref.blocking,
                confidence=1.0,
            )
            for ref in self.extract_explicit_references(text)
        ]
        return DependencyResult(
            dependencies=dependencies,
            dependency_tags=["has-dependencies"] if dependencies else [],
        )

    async def detect_dependencies(
        self,
        ticket_id: str,
        title: str,
        description: Optional[str],
        project_id: str,
    ) -> DependencyResult:
        """Detect all dependencies for a ticket.

        Args:
            ticket_id: Id of the ticket being analyzed (excluded from lookups).
            title: Ticket title.
            description: Optional description.
            project_id: Project the lookups are restricted to.

        Returns:
            DependencyResult. Store failures yield fewer edges, never errors.
        """
        text = f"{title} {description or ''}".lower()
        explicit = self.detect_explicit_dependencies(title, description)
        dependencies = list(explicit.dependencies)
        tags = list(explicit.dependency_tags)

        implicit = await self._detect_implicit(text, project_id, ticket_id)
        dependencies.extend(implicit)
        if implicit:
            tags.append("potential-dependencies")

        if any(k in text for k in SCHEMA_KEYWORDS):
            tags.append("database-related")
        if any(k in text for k in API_KEYWORDS):
            tags.append("api-related")

        blocks = await self._find_blocked_tickets(ticket_id, title, project_id)

        result = DependencyResult(
            dependencies=dependencies,
            blocked_by=[d.ticket_id for d in dependencies if d.blocking and d.ticket_id],
            blocks=blocks,
            dependency_tags=tags,
        )
        logger.debug("Dependencies for %s: %s", ticket_id, result.summary())
        return result

    async def has_blocking_dependencies(self, ticket_id: str, project_id: str) -> BlockingStatus:
        """Check whether a stored ticket has blocking dependencies.

        A missing ticket or a failing store reports "not blocked".
        """
        if self.ticket_store is None:
            return BlockingStatus()

        try:
            ticket = await self.ticket_store.get(ticket_id)
        except Exception as e:
            logger.warning("Ticket lookup for %s failed: %s", ticket_id, failure_details(e))
            return BlockingStatus()

        if ticket is None:
            return BlockingStatus()

        result = await self.detect_dependencies(
            ticket_id, ticket.title, ticket.description, project_id
        )
        blocking = [d for d in result.dependencies if d.blocking]
        return BlockingStatus(blocked=bool(blocking), blocked_by=blocking)

    async def _detect_implicit(
        self, text: str, project_id: str, ticket_id: str
    ) -> list[Dependency]:
        dependencies: list[Dependency] = []

        if "use" in text and any(k in text for k in SCHEMA_KEYWORDS):
            for ticket in await self._find_related(
                project_id, ticket_id, SCHEMA_KEYWORDS,
                (TicketStatus.IN_PROGRESS, TicketStatus.TODO),
            ):
                dependencies.append(
                    Dependency(
                        ticket_id=ticket.id,
                        ticket_number=None,
                        type=DependencyType.IMPLICIT,
                        reason=f'May depend on schema/database changes in "{ticket.title}"',
                        confidence=0.6,
                    )
                )

        if any(k in text for k in API_KEYWORDS):
            for ticket in await self._find_related(
                project_id, ticket_id, API_KEYWORDS, (TicketStatus.IN_PROGRESS,)
            ):
                dependencies.append(
                    Dependency(
                        ticket_id=ticket.id,
                        ticket_number=None,
                        type=DependencyType.SUGGESTED,
                        reason=f'May be related to API changes in "{ticket.title}"',
                        confidence=0.4,
                    )
                )

        if any(k in text for k in COMPONENT_KEYWORDS):
            for ticket in await self._find_related(
                project_id, ticket_id, COMPONENT_KEYWORDS, (TicketStatus.IN_PROGRESS,)
            ):
                dependencies.append(
                    Dependency(
                        ticket_id=ticket.id,
                        ticket_number=None,
                        type=DependencyType.SUGGESTED,
                        reason=f'May share components with "{ticket.title}"',
                        confidence=0.3,
                    )
                )

        return dependencies

    async def _find_related(
        self,
        project_id: str,
        exclude_id: str,
        keywords: tuple[str, ...],
        statuses: tuple[TicketStatus, ...],
    ) -> list[TicketRecord]:
        if self.ticket_store is None:
            return []

        query = TicketQuery(
            project_id=project_id,
            statuses=statuses,
            text_contains=keywords,
            fields=("title", "description", "labels"),
            exclude_id=exclude_id,
            limit=RELATED_TICKET_LIMIT,
        )
        try:
            return await self.ticket_store.find_many(query)
        except Exception as e:
            logger.warning("Related ticket lookup failed: %s", failure_details(e))
            return []

    async def _find_blocked_tickets(
        self, ticket_id: str, title: str, project_id: str
    ) -> list[str]:
        if self.ticket_store is None:
            return []

        title_words = [w for w in title.split(" ") if len(w) > 4][:3]
        query = TicketQuery(
            project_id=project_id,
            statuses=(TicketStatus.BACKLOG, TicketStatus.TODO),
            text_contains=(f"#{ticket_id}", *title_words),
            fields=("description",),
            exclude_id=ticket_id,
        )
        try:
            tickets = await self.ticket_store.find_many(query)
        except Exception as e:
            logger.warning("Blocked ticket lookup failed: %s", failure_details(e))
            return []
        return [t.id for t in tickets]


__all__ = [
    "DependencyType",
    "Dependency",
    "DependencyResult",
    "BlockingStatus",
    "DependencyDetector",
    "EXPLICIT_PATTERNS",
]
