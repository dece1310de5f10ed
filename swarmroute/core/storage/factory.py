"""Backend factory for creating memory service instances from configuration.

Classes:
    BackendFactory: Factory for creating memory service backends.

Example:
    >>> from swarmroute.core.storage.factory import BackendFactory
    >>> service = BackendFactory.create_memory_service("filesystem", base_path=Path("./data"))
    >>> service = BackendFactory.create_memory_service("memory")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

from swarmroute.core.exceptions import ConfigurationError
from swarmroute.core.storage.filesystem import FilesystemMemoryService
from swarmroute.core.storage.memory import InMemoryMemoryService
from swarmroute.core.storage.protocols import MemoryService

if TYPE_CHECKING:
    from swarmroute.config.settings import SwarmRouteSettings


logger = logging.getLogger(__name__)


class BackendFactory:
    """Factory for creating memory service backends.

    Supported backend types:
        - "memory": In-process storage (default, for testing)
        - "filesystem": JSON files guarded by portalocker locks
    """

    MEMORY_BACKENDS = frozenset({"filesystem", "memory"})

    @staticmethod
    def create_memory_service(
        backend_type: str = "memory",
        base_path: Optional[Union[str, Path]] = None,
        lock_timeout: float = 10.0,
    ) -> MemoryService:
        """Create a memory service instance.

        Args:
            backend_type: One of "memory", "filesystem".
            base_path: Directory for the filesystem backend (required for it).
            lock_timeout: File lock timeout for the filesystem backend.

        Returns:
            A MemoryService instance.

        Raises:
            ConfigurationError: If backend_type is unknown or base_path is missing.
        """
        backend_type = backend_type.lower().strip()

        if backend_type not in BackendFactory.MEMORY_BACKENDS:
            raise ConfigurationError(
                f"Unknown memory backend type: '{backend_type}'. "
                f"Supported types: {', '.join(sorted(BackendFactory.MEMORY_BACKENDS))}",
                config_key="memory.backend",
            )

        if backend_type == "filesystem":
            if base_path is None:
                raise ConfigurationError(
                    "base_path is required for the filesystem memory backend",
                    config_key="memory.base_path",
                )
            path = Path(base_path)
            logger.debug("Creating FilesystemMemoryService at %s", path)
            return FilesystemMemoryService(path, lock_timeout=lock_timeout)

        logger.debug("Creating InMemoryMemoryService")
        return InMemoryMemoryService()

    @staticmethod
    def from_settings(settings: "SwarmRouteSettings") -> MemoryService:
        """Create the memory service described by ``settings.memory``."""
        return BackendFactory.create_memory_service(
            settings.memory.backend,
            base_path=settings.memory.base_path,
            lock_timeout=settings.memory.lock_timeout,
        )


__all__ = ["BackendFactory"]
