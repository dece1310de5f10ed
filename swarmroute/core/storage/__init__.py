"""Collaborator abstraction for SwarmRoute.

The decision engine depends on two external collaborators, reached only
through protocols:

    1. Protocols (interfaces):
       - TicketStore: Read-only ticket lookups
       - MemoryService: Namespaced key/value storage with lexical search

    2. Implementations:
       - InMemoryTicketStore / InMemoryMemoryService: For tests and the CLI
       - FilesystemMemoryService: JSON files guarded by portalocker

    3. Factory:
       - BackendFactory: Creates memory services from configuration

Usage:
    >>> from swarmroute.core.storage import BackendFactory, InMemoryTicketStore
    >>> memory = BackendFactory.create_memory_service("memory")
    >>> tickets = InMemoryTicketStore()
"""

from swarmroute.core.storage.models import (
    TicketStatus,
    TicketHistoryEntry,
    TicketRecord,
    TicketQuery,
)
from swarmroute.core.storage.protocols import TicketStore, MemoryService
from swarmroute.core.storage.memory import InMemoryTicketStore, InMemoryMemoryService
from swarmroute.core.storage.filesystem import FilesystemMemoryService
from swarmroute.core.storage.factory import BackendFactory


__all__ = [
    # Records
    "TicketStatus",
    "TicketHistoryEntry",
    "TicketRecord",
    "TicketQuery",
    # Protocols
    "TicketStore",
    "MemoryService",
    # Implementations
    "InMemoryTicketStore",
    "InMemoryMemoryService",
    "FilesystemMemoryService",
    # Factory
    "BackendFactory",
]
