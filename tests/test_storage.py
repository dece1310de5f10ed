"""Tests for collaborator records, in-memory and filesystem backends.

Test Coverage:
- Ticket record validation and history helpers
- TicketQuery filtering through InMemoryTicketStore
- Lexical ranking and rendering of search responses
- InMemoryMemoryService and FilesystemMemoryService round trips
- Namespace isolation, persistence and corrupt files
- BackendFactory configuration errors
"""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from swarmroute.core.exceptions import ConfigurationError, StorageError
from swarmroute.core.storage import (
    BackendFactory,
    FilesystemMemoryService,
    InMemoryMemoryService,
    InMemoryTicketStore,
    MemoryService,
    TicketQuery,
    TicketRecord,
    TicketStatus,
    TicketStore,
)
from swarmroute.core.storage.memory import rank_entries, render_entries


# =============================================================================
# Records
# =============================================================================


class TestTicketRecord:
    """Tests for TicketRecord validation."""

    def test_empty_title_rejected(self):
        with pytest.raises(ValidationError):
            TicketRecord(id="t-1", project_id="p", title="   ")

    def test_complexity_range(self):
        with pytest.raises(ValidationError):
            TicketRecord(id="t-1", project_id="p", title="x", complexity=11)

    def test_first_transition(self, ticket_factory):
        record = ticket_factory("t-1", "Done", hours_worked=3)

        start = record.first_transition_to(TicketStatus.IN_PROGRESS)
        end = record.first_transition_to(TicketStatus.DONE)

        assert (end.created_at - start.created_at).total_seconds() == 3 * 3600
        assert record.first_transition_to(TicketStatus.CANCELLED) is None


class TestInMemoryTicketStore:
    """Tests for TicketQuery filtering."""

    @pytest.fixture
    def store(self, ticket_store, ticket_factory):
        ticket_store.add(ticket_factory(
            "a", "Add login page", labels=["Frontend"], status=TicketStatus.DONE,
            complexity=4, updated_offset_days=1,
        ))
        ticket_store.add(ticket_factory(
            "b", "Login api", description="token refresh", status=TicketStatus.IN_PROGRESS,
            updated_offset_days=3,
        ))
        ticket_store.add(ticket_factory(
            "c", "Login audit", project_id="other", status=TicketStatus.DONE, complexity=2,
        ))
        return ticket_store

    @pytest.mark.asyncio
    async def test_project_and_status(self, store):
        found = await store.find_many(
            TicketQuery(project_id="proj-1", statuses=(TicketStatus.DONE,))
        )
        assert [t.id for t in found] == ["a"]

    @pytest.mark.asyncio
    async def test_text_in_description(self, store):
        found = await store.find_many(TicketQuery(text_contains=("REFRESH",)))
        assert [t.id for t in found] == ["b"]

    @pytest.mark.asyncio
    async def test_title_only_field(self, store):
        found = await store.find_many(TicketQuery(text_contains=("refresh",), fields=("title",)))
        assert found == []

    @pytest.mark.asyncio
    async def test_labels_field_matches_whole_labels(self, store):
        whole = await store.find_many(TicketQuery(text_contains=("frontend",), fields=("labels",)))
        partial = await store.find_many(TicketQuery(text_contains=("front",), fields=("labels",)))

        assert [t.id for t in whole] == ["a"]
        assert partial == []

    @pytest.mark.asyncio
    async def test_exclude_complexity_labels(self, store):
        assert [t.id for t in await store.find_many(TicketQuery(exclude_id="a", project_id="proj-1"))] == ["b"]
        assert {t.id for t in await store.find_many(TicketQuery(require_complexity=True))} == {"a", "c"}
        assert [t.id for t in await store.find_many(TicketQuery(labels_any=("frontend",)))] == ["a"]

    @pytest.mark.asyncio
    async def test_newest_first_and_limit(self, store):
        found = await store.find_many(TicketQuery(newest_first=True, limit=2))
        assert [t.id for t in found] == ["b", "a"]

    @pytest.mark.asyncio
    async def test_get(self, store):
        assert (await store.get("b")).title == "Login api"
        assert await store.get("missing") is None

    def test_protocol(self, ticket_store):
        assert isinstance(ticket_store, TicketStore)


# =============================================================================
# Search Helpers
# =============================================================================


class TestSearchHelpers:
    """Tests for rank_entries and render_entries."""

    def test_rank_by_token_hits(self):
        entries = [("k1", "auth only"), ("k2", "auth api"), ("k3", "nothing")]
        assert rank_entries("auth api", entries, limit=10) == ["auth api", "auth only"]

    def test_key_counts_and_limit(self):
        entries = [("pattern-bug-1", "x"), ("pattern-bug-2", "y")]
        assert rank_entries("bug", entries, limit=1) == ["x"]

    def test_empty_query(self):
        assert rank_entries("  ", [("k", "v")], limit=5) == []

    def test_render(self):
        assert json.loads(render_entries(['{"a": 1}', "plain"])) == [{"a": 1}, "plain"]


# =============================================================================
# Memory Services
# =============================================================================


class TestInMemoryMemoryService:
    """Tests for InMemoryMemoryService."""

    @pytest.mark.asyncio
    async def test_store_get_search(self, memory):
        assert await memory.store("p1", '{"keywords": ["auth"]}', namespace="patterns")

        assert await memory.get("p1", namespace="patterns") == '{"keywords": ["auth"]}'
        assert json.loads(await memory.search("auth", namespace="patterns")) == [
            {"keywords": ["auth"]}
        ]

    @pytest.mark.asyncio
    async def test_namespaces_are_isolated(self, memory):
        await memory.store("p1", "auth", namespace="a")

        assert json.loads(await memory.search("auth", namespace="b")) == []
        assert json.loads(await memory.search("auth")) == ["auth"]

    @pytest.mark.asyncio
    async def test_default_namespace(self, memory):
        await memory.store("k", "v")
        assert memory.keys() == ["k"]

    def test_protocol(self, memory):
        assert isinstance(memory, MemoryService)


class TestFilesystemMemoryService:
    """Tests for FilesystemMemoryService."""

    @pytest.mark.asyncio
    async def test_round_trip_and_persistence(self, tmp_path):
        service = FilesystemMemoryService(tmp_path / "memory")
        assert await service.store("p1", '{"keywords": ["auth"]}', namespace="patterns")

        reopened = FilesystemMemoryService(tmp_path / "memory")
        response = await reopened.search("auth", namespace="patterns")

        assert json.loads(response) == [{"keywords": ["auth"]}]
        assert (tmp_path / "memory" / "patterns.json").exists()
        assert reopened.namespaces() == ["patterns"]

    @pytest.mark.asyncio
    async def test_overwrite_key(self, tmp_path):
        service = FilesystemMemoryService(tmp_path)
        await service.store("k", "old value", namespace="n")
        await service.store("k", "new value", namespace="n")

        data = json.loads((tmp_path / "n.json").read_text(encoding="utf-8"))
        assert data == {"k": "new value"}

    @pytest.mark.asyncio
    async def test_search_all_namespaces(self, tmp_path):
        service = FilesystemMemoryService(tmp_path)
        await service.store("k1", "auth flow", namespace="one")
        await service.store("k2", "auth token", namespace="two")

        assert sorted(json.loads(await service.search("auth"))) == ["auth flow", "auth token"]

    @pytest.mark.asyncio
    async def test_missing_namespace_is_empty(self, tmp_path):
        service = FilesystemMemoryService(tmp_path)
        assert json.loads(await service.search("auth", namespace="none")) == []

    @pytest.mark.asyncio
    async def test_namespace_cannot_escape_base_path(self, tmp_path):
        base = tmp_path / "memory"
        service = FilesystemMemoryService(base)

        await service.store("k", "v", namespace="../escape")

        assert (base / "__escape.json").exists()
        assert not (tmp_path / "escape.json").exists()

    @pytest.mark.asyncio
    async def test_corrupt_file_raises_storage_error(self, tmp_path):
        (tmp_path / "patterns.json").write_text("{not json", encoding="utf-8")
        service = FilesystemMemoryService(tmp_path)

        with pytest.raises(StorageError) as exc_info:
            await service.search("auth", namespace="patterns")

        assert exc_info.value.code == "MEMORY_SERVICE_ERROR"
        assert exc_info.value.context["namespace"] == "patterns"

    @pytest.mark.asyncio
    async def test_empty_file_is_empty_namespace(self, tmp_path):
        (tmp_path / "patterns.json").write_text("", encoding="utf-8")
        service = FilesystemMemoryService(tmp_path)

        assert json.loads(await service.search("auth", namespace="patterns")) == []


# =============================================================================
# Factory
# =============================================================================


class TestBackendFactory:
    """Tests for BackendFactory."""

    def test_memory_backend(self):
        assert isinstance(BackendFactory.create_memory_service("memory"), InMemoryMemoryService)

    def test_filesystem_backend(self, tmp_path):
        service = BackendFactory.create_memory_service(" FileSystem ", base_path=str(tmp_path))

        assert isinstance(service, FilesystemMemoryService)
        assert service.base_path == tmp_path

    def test_filesystem_needs_base_path(self):
        with pytest.raises(ConfigurationError) as exc_info:
            BackendFactory.create_memory_service("filesystem")
        assert exc_info.value.config_key == "memory.base_path"

    def test_unknown_backend(self):
        with pytest.raises(ConfigurationError) as exc_info:
            BackendFactory.create_memory_service("redis")

        assert exc_info.value.config_key == "memory.backend"
        assert "redis" in exc_info.value.message
