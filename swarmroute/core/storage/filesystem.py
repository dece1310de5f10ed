"""Filesystem memory service implementation.

Stores each namespace as one JSON object file (key -> value) under a base
directory. Read-modify-write cycles are guarded by a portalocker file lock
per namespace so that several processes (for example repeated CLI runs)
can share the same learned patterns.

Classes:
    FilesystemMemoryService: Memory service backed by JSON files.

Example:
    >>> service = FilesystemMemoryService(Path("./data/memory"))
    >>> await service.store("pattern-bug-1", '{"agents": ["coder"]}', namespace="patterns")
    True
"""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import aiofiles
import portalocker

from swarmroute.core.exceptions import StorageError
from swarmroute.core.storage.memory import rank_entries, render_entries


logger = logging.getLogger(__name__)


class FilesystemMemoryService:
    """Memory service persisting namespaces as JSON files.

    Attributes:
        base_path: Directory holding one ``<namespace>.json`` per namespace.
        lock_timeout: Seconds to wait for a namespace lock.
    """

    DEFAULT_NAMESPACE = "default"

    def __init__(self, base_path: Path, lock_timeout: float = 10.0) -> None:
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.lock_timeout = lock_timeout

    def _safe_name(self, namespace: Optional[str]) -> str:
        name = (namespace or self.DEFAULT_NAMESPACE).replace("..", "_")
        return "".join(c if c.isalnum() or c in "._-" else "_" for c in name) or "_default"

    def _namespace_path(self, namespace: Optional[str]) -> Path:
        return self.base_path / f"{self._safe_name(namespace)}.json"

    def _lock_path(self, namespace: Optional[str]) -> Path:
        return self.base_path / f"{self._safe_name(namespace)}.lock"

    @asynccontextmanager
    async def _namespace_lock(self, namespace: Optional[str]) -> AsyncIterator[None]:
        """Hold an exclusive file lock on a namespace."""
        lock = portalocker.Lock(
            str(self._lock_path(namespace)),
            mode="a",
            timeout=self.lock_timeout,
            flags=portalocker.LOCK_EX,
        )
        try:
            await asyncio.to_thread(lock.acquire)
        except (portalocker.LockException, portalocker.AlreadyLocked) as e:
            raise StorageError(
                f"Could not lock namespace '{namespace}' within {self.lock_timeout}s: {e}",
                operation="lock",
                namespace=namespace,
            ) from e
        try:
            yield
        finally:
            lock.release()

    async def _read_namespace(self, namespace: Optional[str]) -> dict[str, str]:
        path = self._namespace_path(namespace)
        if not path.exists():
            return {}
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                content = await f.read()
        except OSError as e:
            raise StorageError(
                f"Error reading namespace '{namespace}': {e}",
                operation="read",
                namespace=namespace,
            ) from e
        if not content.strip():
            return {}
        try:
            data = json.loads(content)
        except ValueError as e:
            raise StorageError(
                f"Namespace file for '{namespace}' is not valid JSON: {e}",
                operation="read",
                namespace=namespace,
            ) from e
        return {str(k): str(v) for k, v in data.items()} if isinstance(data, dict) else {}

    async def _write_namespace(self, namespace: Optional[str], data: dict[str, str]) -> None:
        path = self._namespace_path(namespace)
        temp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
                await f.write(json.dumps(data, indent=2))
            temp_path.replace(path)
        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            raise StorageError(
                f"Error writing namespace '{namespace}': {e}",
                operation="write",
                namespace=namespace,
            ) from e

    def namespaces(self) -> list[str]:
        """List namespaces that have a file on disk."""
        return sorted(p.stem for p in self.base_path.glob("*.json"))

    async def search(self, query: str, namespace: Optional[str] = None, limit: int = 10) -> str:
        """Search stored entries lexically.

        Args:
            query: Free-text query.
            namespace: Namespace to search; None searches all namespaces.
            limit: Maximum number of entries.

        Returns:
            JSON array document of matching values.

        Raises:
            StorageError: If a namespace file cannot be read.
        """
        targets = [namespace] if namespace is not None else self.namespaces()
        entries: list[tuple[str, str]] = []
        for target in targets:
            async with self._namespace_lock(target):
                entries.extend((await self._read_namespace(target)).items())
        logger.debug("Memory search '%s' in %s over %d entries", query, targets, len(entries))
        return render_entries(rank_entries(query, entries, limit))

    async def store(self, key: str, value: str, namespace: Optional[str] = None) -> bool:
        """Store ``value`` under ``key`` in ``namespace``.

        Raises:
            StorageError: If the namespace file cannot be read or written.
        """
        async with self._namespace_lock(namespace):
            data = await self._read_namespace(namespace)
            data[key] = value
            await self._write_namespace(namespace, data)
        return True


__all__ = ["FilesystemMemoryService"]
