"""In-memory collaborator implementations.

These implementations are primarily intended for testing and for the CLI
when no persistent backend is configured.

Classes:
    InMemoryTicketStore: Ticket store backed by a dict.
    InMemoryMemoryService: Memory service backed by nested dicts.

Functions:
    rank_entries: Lexical ranking shared by the memory service backends.
    render_entries: Serialize ranked values into a search response.

Example:
    >>> service = InMemoryMemoryService()
    >>> await service.store("pattern-bug-1", '{"agents": ["coder"]}', namespace="patterns")
    True
    >>> await service.search("bug coder", namespace="patterns")
    '[{"agents": ["coder"]}]'
"""

from __future__ import annotations

import asyncio
import json
import re
from typing import Any, Iterable, Optional

from swarmroute.core.storage.models import TicketQuery, TicketRecord


_TOKEN_PATTERN = re.compile(r"[a-z0-9][a-z0-9_\-]*")


# =============================================================================
# Lexical Search Helpers
# =============================================================================


def rank_entries(
    query: str,
    entries: Iterable[tuple[str, str]],
    limit: int,
) -> list[str]:
    """Rank (key, value) entries by how many query tokens they contain.

    A token counts when it appears as a substring of the lower-cased key or
    value. Entries with no matching token are dropped. Ties keep insertion
    order.

    Args:
        query: Free-text query.
        entries: (key, value) pairs in insertion order.
        limit: Maximum number of values to return.

    Returns:
        Matching values, best first.
    """
    tokens = list(dict.fromkeys(_TOKEN_PATTERN.findall(query.lower())))
    if not tokens:
        return []

    scored: list[tuple[int, int, str]] = []
    for position, (key, value) in enumerate(entries):
        haystack = f"{key} {value}".lower()
        score = sum(1 for token in tokens if token in haystack)
        if score > 0:
            scored.append((-score, position, value))

    scored.sort()
    return [value for _, _, value in scored[:limit]]


def render_entries(values: list[str]) -> str:
    """Render stored values as a JSON array document.

    Values that are themselves JSON are embedded as JSON; anything else is
    embedded as a string.
    """
    rendered: list[Any] = []
    for value in values:
        try:
            rendered.append(json.loads(value))
        except ValueError:
            rendered.append(value)
    return json.dumps(rendered)


# =============================================================================
# In-Memory Ticket Store
# =============================================================================


class InMemoryTicketStore:
    """Ticket store holding records in a dict.

    Example:
        >>> store = InMemoryTicketStore()
        >>> store.add(TicketRecord(id="t1", project_id="p1", title="Fix login"))
        >>> await store.get("t1")
    """

    def __init__(self, tickets: Optional[Iterable[TicketRecord]] = None) -> None:
        self._tickets: dict[str, TicketRecord] = {}
        self._lock = asyncio.Lock()
        for ticket in tickets or ():
            self.add(ticket)

    def add(self, ticket: TicketRecord) -> None:
        """Add or replace a ticket record."""
        self._tickets[ticket.id] = ticket

    async def find_many(self, query: TicketQuery) -> list[TicketRecord]:
        """Return tickets matching ``query``."""
        async with self._lock:
            matches = [t for t in self._tickets.values() if query.matches(t)]
        if query.newest_first:
            matches.sort(key=lambda t: t.updated_at, reverse=True)
        if query.limit is not None:
            matches = matches[: query.limit]
        return matches

    async def get(self, ticket_id: str) -> Optional[TicketRecord]:
        """Return one ticket by id."""
        async with self._lock:
            return self._tickets.get(ticket_id)

    def clear(self) -> None:
        """Remove all tickets. Synchronous for easy use in fixtures."""
        self._tickets.clear()

    def size(self) -> int:
        return len(self._tickets)


# =============================================================================
# In-Memory Memory Service
# =============================================================================


class InMemoryMemoryService:
    """Memory service storing values per namespace in process memory.

    Search responses are JSON array documents (text), the same shape the
    filesystem backend produces.
    """

    DEFAULT_NAMESPACE = "default"

    def __init__(self) -> None:
        self._data: dict[str, dict[str, str]] = {}
        self._lock = asyncio.Lock()

    async def search(self, query: str, namespace: Optional[str] = None, limit: int = 10) -> str:
        """Search stored entries lexically.

        Args:
            query: Free-text query.
            namespace: Namespace to search; None searches all namespaces.
            limit: Maximum number of entries.

        Returns:
            JSON array document of matching values.
        """
        async with self._lock:
            if namespace is None:
                entries = [
                    item for ns in self._data.values() for item in ns.items()
                ]
            else:
                entries = list(self._data.get(namespace, {}).items())
        return render_entries(rank_entries(query, entries, limit))

    async def store(self, key: str, value: str, namespace: Optional[str] = None) -> bool:
        """Store ``value`` under ``key`` in ``namespace``."""
        async with self._lock:
            self._data.setdefault(namespace or self.DEFAULT_NAMESPACE, {})[key] = value
        return True

    async def get(self, key: str, namespace: Optional[str] = None) -> Optional[str]:
        """Read a value back by key."""
        async with self._lock:
            return self._data.get(namespace or self.DEFAULT_NAMESPACE, {}).get(key)

    def keys(self, namespace: Optional[str] = None) -> list[str]:
        """List keys of a namespace in insertion order."""
        return list(self._data.get(namespace or self.DEFAULT_NAMESPACE, {}).keys())

    def clear(self) -> None:
        """Remove everything. Synchronous for easy use in fixtures."""
        self._data.clear()


__all__ = [
    "InMemoryTicketStore",
    "InMemoryMemoryService",
    "rank_entries",
    "render_entries",
]
