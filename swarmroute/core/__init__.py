"""Core module for SwarmRoute.

This module contains the building blocks shared by every pipeline stage:
- Custom exceptions for error handling and structured logging
- Collaborator protocols and backends (see swarmroute.core.storage)

Usage:
    from swarmroute.core import SwarmRouteError, TicketStoreError

    try:
        await store.find_many(query)
    except SwarmRouteError as e:
        print(f"Error: {e.code} - {e.message}")
"""

from swarmroute.core.exceptions import (
    SwarmRouteError,
    ConfigurationError,
    CollaboratorError,
    TicketStoreError,
    MemoryServiceError,
    StorageError,
    PatternParseError,
    failure_details,
)

__all__ = [
    "SwarmRouteError",
    "ConfigurationError",
    "CollaboratorError",
    "TicketStoreError",
    "MemoryServiceError",
    "StorageError",
    "PatternParseError",
    "failure_details",
]
