"""Collaborator protocols for SwarmRoute.

This module defines the interfaces of the two external collaborators the
decision engine talks to. Any object with matching async methods can be
passed in; the engine never imports a concrete backend.

Protocols:
    TicketStore: Read-only access to ticket records.
    MemoryService: Key/namespace storage with lexical search, used for
        learned routing patterns.

Example:
    >>> from swarmroute.core.storage.protocols import MemoryService
    >>>
    >>> class MyMemory:
    ...     async def search(self, query, namespace=None, limit=10):
    ...         ...
    ...     async def store(self, key, value, namespace=None):
    ...         ...
    >>>
    >>> isinstance(MyMemory(), MemoryService)
    True
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable

from swarmroute.core.storage.models import TicketQuery, TicketRecord


# =============================================================================
# Ticket Store Protocol
# =============================================================================


@runtime_checkable
class TicketStore(Protocol):
    """Protocol for read-only ticket lookups.

    SwarmRoute never mutates ticket records. Implementations may raise
    any exception (TicketStoreError preferred); callers in the pipeline
    catch failures and treat them as absent data.
    """

    async def find_many(self, query: TicketQuery) -> list[TicketRecord]:
        """Return tickets matching ``query``.

        Args:
            query: Filter, ordering and limit.

        Returns:
            Matching ticket records.

        Raises:
            TicketStoreError: If the store cannot be queried.
        """
        ...

    async def get(self, ticket_id: str) -> Optional[TicketRecord]:
        """Return one ticket by id, or None if it does not exist.

        Raises:
            TicketStoreError: If the store cannot be queried.
        """
        ...


# =============================================================================
# Memory Service Protocol
# =============================================================================


@runtime_checkable
class MemoryService(Protocol):
    """Protocol for the pattern memory service.

    The search response shape is not guaranteed: it may be free text, a
    JSON document, or already-decoded JSON (list or dict). Consumers must
    parse defensively.
    """

    async def search(self, query: str, namespace: Optional[str] = None, limit: int = 10) -> Any:
        """Search entries lexically.

        Args:
            query: Free-text query.
            namespace: Namespace to search (None searches every namespace).
            limit: Maximum number of entries.

        Returns:
            Raw text or JSON-like data describing the matching entries.

        Raises:
            MemoryServiceError: If the search fails.
        """
        ...

    async def store(self, key: str, value: str, namespace: Optional[str] = None) -> bool:
        """Store a value under ``key``.

        Returns:
            True if the value was stored.

        Raises:
            MemoryServiceError: If the store fails.
        """
        ...


__all__ = ["TicketStore", "MemoryService"]
