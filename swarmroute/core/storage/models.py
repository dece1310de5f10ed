"""Collaborator record shapes for the ticket store.

The ticket store is an external collaborator; this module only fixes the
shape of what SwarmRoute reads from it. Records are validated with pydantic
because they arrive from outside the engine.

Classes:
    TicketStatus: Board column of a ticket.
    TicketHistoryEntry: One status transition.
    TicketRecord: A ticket as returned by the store.
    TicketQuery: Filter passed to TicketStore.find_many.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


def utc_now() -> datetime:
    """Get the current UTC datetime."""
    return datetime.now(timezone.utc)


class TicketStatus(str, Enum):
    """Board column of a ticket."""

    BACKLOG = "BACKLOG"
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    NEEDS_FEEDBACK = "NEEDS_FEEDBACK"
    DONE = "DONE"
    CANCELLED = "CANCELLED"


class TicketHistoryEntry(BaseModel):
    """A single status transition recorded for a ticket.

    Attributes:
        from_status: Column the ticket left (None for creation).
        to_status: Column the ticket entered.
        created_at: When the transition happened.
    """

    from_status: Optional[TicketStatus] = None
    to_status: TicketStatus
    created_at: datetime = Field(default_factory=utc_now)


class TicketRecord(BaseModel):
    """A ticket as seen through the ticket store.

    Attributes:
        id: Unique ticket identifier.
        project_id: Owning project.
        title: Ticket title.
        description: Optional free-text description.
        labels: Labels attached to the ticket.
        status: Current board column.
        complexity: Recorded complexity (1-10), if any.
        history: Status transitions in chronological order.
        updated_at: Last modification time.
    """

    id: str
    project_id: str
    title: str
    description: Optional[str] = None
    labels: list[str] = Field(default_factory=list)
    status: TicketStatus = TicketStatus.BACKLOG
    complexity: Optional[int] = Field(default=None, ge=1, le=10)
    history: list[TicketHistoryEntry] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Reject empty titles."""
        if not v.strip():
            raise ValueError("title cannot be empty")
        return v

    def first_transition_to(self, status: TicketStatus) -> Optional[TicketHistoryEntry]:
        """Return the earliest history entry entering ``status``."""
        matches = [h for h in self.history if h.to_status == status]
        if not matches:
            return None
        return min(matches, key=lambda h: h.created_at)


@dataclass(frozen=True)
class TicketQuery:
    """Filter for TicketStore.find_many.

    Term matching is case-insensitive and succeeds when any term is found in
    any of ``fields``. Text fields use substring matching; the ``labels``
    field matches whole labels.

    Attributes:
        project_id: Restrict to one project.
        statuses: Accepted statuses (empty means any).
        text_contains: Terms of which at least one must match (empty means no filter).
        fields: Fields searched for terms: 'title', 'description', 'labels'.
        exclude_id: Ticket id to leave out.
        labels_any: Ticket must carry at least one of these labels.
        require_complexity: Only tickets with a recorded complexity.
        newest_first: Order by updated_at, most recent first.
        limit: Maximum number of records.
    """

    project_id: Optional[str] = None
    statuses: tuple[TicketStatus, ...] = ()
    text_contains: tuple[str, ...] = ()
    fields: tuple[str, ...] = ("title", "description")
    exclude_id: Optional[str] = None
    labels_any: tuple[str, ...] = ()
    require_complexity: bool = False
    newest_first: bool = False
    limit: Optional[int] = None

    def matches(self, ticket: TicketRecord) -> bool:
        """Check whether a record satisfies every filter except ordering/limit."""
        if self.project_id is not None and ticket.project_id != self.project_id:
            return False
        if self.exclude_id is not None and ticket.id == self.exclude_id:
            return False
        if self.statuses and ticket.status not in self.statuses:
            return False
        if self.require_complexity and ticket.complexity is None:
            return False
        if self.labels_any:
            wanted = {label.lower() for label in self.labels_any}
            if not wanted.intersection(label.lower() for label in ticket.labels):
                return False
        if self.text_contains:
            return any(self._term_matches(term.lower(), ticket) for term in self.text_contains)
        return True

    def _term_matches(self, term: str, ticket: TicketRecord) -> bool:
        if "title" in self.fields and term in ticket.title.lower():
            return True
        if "description" in self.fields and ticket.description and term in ticket.description.lower():
            return True
        if "labels" in self.fields and term in (label.lower() for label in ticket.labels):
            return True
        return False


__all__ = [
    "TicketStatus",
    "TicketHistoryEntry",
    "TicketRecord",
    "TicketQuery",
    "utc_now",
]
