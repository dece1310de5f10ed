"""Shared pytest fixtures for SwarmRoute tests.

This module provides common fixtures used across all test modules:
- In-memory ticket store and memory service
- Failing collaborators for degrade-on-failure tests
- Ticket record builders with status history
- Settings cache isolation
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from swarmroute.config.settings import clear_settings_cache
from swarmroute.core.exceptions import MemoryServiceError, TicketStoreError
from swarmroute.core.storage import (
    InMemoryMemoryService,
    InMemoryTicketStore,
    TicketHistoryEntry,
    TicketRecord,
    TicketStatus,
)


BASE_TIME = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


# -----------------------------------------------------------------------------
# Test Isolation
# -----------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def clean_settings_cache(monkeypatch):
    """Clear cached settings and SWARMROUTE_ variables around each test."""
    import os

    for name in list(os.environ):
        if name.startswith("SWARMROUTE_"):
            monkeypatch.delenv(name, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


# -----------------------------------------------------------------------------
# Collaborators
# -----------------------------------------------------------------------------

@pytest.fixture
def ticket_store() -> InMemoryTicketStore:
    """Provide an empty in-memory ticket store."""
    return InMemoryTicketStore()


@pytest.fixture
def memory() -> InMemoryMemoryService:
    """Provide an empty in-memory memory service."""
    return InMemoryMemoryService()


@pytest.fixture
def failing_ticket_store() -> MagicMock:
    """Ticket store whose every call raises."""
    store = MagicMock()
    store.find_many = AsyncMock(side_effect=TicketStoreError("store down", operation="find_many"))
    store.get = AsyncMock(side_effect=TicketStoreError("store down", operation="get"))
    return store


@pytest.fixture
def failing_memory() -> MagicMock:
    """Memory service whose every call raises."""
    service = MagicMock()
    service.search = AsyncMock(side_effect=MemoryServiceError("memory down", operation="search"))
    service.store = AsyncMock(side_effect=MemoryServiceError("memory down", operation="store"))
    return service


@pytest.fixture
def text_memory() -> MagicMock:
    """Memory service returning a configurable search response."""
    service = MagicMock()
    service.search = AsyncMock(return_value="")
    service.store = AsyncMock(return_value=True)
    return service


# -----------------------------------------------------------------------------
# Ticket Builders
# -----------------------------------------------------------------------------

def make_ticket(
    ticket_id: str,
    title: str,
    *,
    project_id: str = "proj-1",
    description: Optional[str] = None,
    labels: Optional[list[str]] = None,
    status: TicketStatus = TicketStatus.BACKLOG,
    complexity: Optional[int] = None,
    hours_worked: Optional[float] = None,
    feedback_loops: int = 0,
    updated_offset_days: int = 0,
) -> TicketRecord:
    """Build a TicketRecord, optionally with an IN_PROGRESS -> DONE history."""
    history: list[TicketHistoryEntry] = []
    if hours_worked is not None:
        start = BASE_TIME
        history.append(
            TicketHistoryEntry(
                from_status=TicketStatus.TODO,
                to_status=TicketStatus.IN_PROGRESS,
                created_at=start,
            )
        )
        for loop in range(feedback_loops):
            history.append(
                TicketHistoryEntry(
                    from_status=TicketStatus.IN_PROGRESS,
                    to_status=TicketStatus.NEEDS_FEEDBACK,
                    created_at=start + timedelta(minutes=loop + 1),
                )
            )
        history.append(
            TicketHistoryEntry(
                from_status=TicketStatus.IN_PROGRESS,
                to_status=TicketStatus.DONE,
                created_at=start + timedelta(hours=hours_worked),
            )
        )

    return TicketRecord(
        id=ticket_id,
        project_id=project_id,
        title=title,
        description=description,
        labels=labels or [],
        status=status,
        complexity=complexity,
        history=history,
        updated_at=BASE_TIME + timedelta(days=updated_offset_days),
    )


@pytest.fixture
def ticket_factory():
    """Expose make_ticket to tests as a fixture."""
    return make_ticket
