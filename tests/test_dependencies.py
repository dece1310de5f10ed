"""Tests for dependency detection.

Test Coverage:
- Explicit reference extraction and de-duplication
- Blocking phrasing
- Implicit and suggested dependencies from the ticket store
- Tickets blocked by the current one
- Blocking status lookups
- Degrade-on-failure when the store raises
"""

from __future__ import annotations

import pytest

from swarmroute.analysis import (
    Dependency,
    DependencyDetector,
    DependencyResult,
    DependencyType,
)
from swarmroute.core.storage import TicketStatus


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def project_store(ticket_store, ticket_factory):
    """Ticket store with in-progress work and a dependent backlog ticket."""
    ticket_store.add(ticket_factory(
        "t-10", "Add user table migration", status=TicketStatus.IN_PROGRESS,
    ))
    ticket_store.add(ticket_factory(
        "t-11", "Show profile", description="Needs the profile data first",
        status=TicketStatus.TODO,
    ))
    ticket_store.add(ticket_factory(
        "t-20", "Refactor request logging", status=TicketStatus.IN_PROGRESS,
    ))
    ticket_store.add(ticket_factory(
        "t-30", "Ship export", description="blocked by #12", status=TicketStatus.TODO,
    ))
    ticket_store.add(ticket_factory(
        "t-40", "Add user table migration", project_id="proj-2", status=TicketStatus.IN_PROGRESS,
    ))
    return ticket_store


@pytest.fixture
def detector(project_store):
    """Create a DependencyDetector backed by the project store."""
    return DependencyDetector(project_store)


# =============================================================================
# Explicit References
# =============================================================================


class TestExplicitReferences:
    """Tests for explicit ticket references."""

    def test_same_number_from_several_patterns_counted_once(self):
        refs = DependencyDetector.extract_explicit_references("after #123 and depends on #123")

        assert [r.number for r in refs] == ["123"]
        assert refs[0].match == "after #123"
        assert refs[0].blocking is True

    def test_pattern_order_and_blocking(self):
        refs = DependencyDetector.extract_explicit_references(
            "depends on #5, blocked by #7, prerequisite: #9"
        )

        assert [(r.number, r.blocking) for r in refs] == [
            ("5", False),
            ("7", True),
            ("9", True),
        ]

    def test_ticket_word_and_completion_phrasing(self):
        refs = DependencyDetector.extract_explicit_references("needs ticket #42 done")
        assert [r.number for r in refs] == ["42"]
        assert refs[0].blocking is True

    def test_plain_hash_is_not_a_reference(self):
        assert DependencyDetector.extract_explicit_references("see #88 for context") == []

    @pytest.mark.asyncio
    async def test_explicit_dependencies_stay_unresolved(self):
        detector = DependencyDetector()
        result = await detector.detect_dependencies(
            "t-1", "Ship export", "waiting on #12 and after #12", "proj-1"
        )

        assert len(result.dependencies) == 1
        dependency = result.dependencies[0]
        assert dependency.type == DependencyType.EXPLICIT
        assert dependency.ticket_id is None
        assert dependency.ticket_number == "12"
        assert dependency.confidence == 1.0
        assert dependency.reason == 'Explicitly referenced: "after #12"'
        assert result.blocked_by == []
        assert result.dependency_tags == ["has-dependencies"]
        assert result.has_explicit is True

    def test_explicit_only_needs_no_store_or_ids(self):
        result = DependencyDetector().detect_explicit_dependencies(
            "Ship export", "blocked by #12, see database notes"
        )

        assert [d.ticket_number for d in result.dependencies] == ["12"]
        assert result.dependencies[0].blocking is True
        assert result.blocked_by == []
        assert result.dependency_tags == ["has-dependencies"]

    def test_explicit_only_without_references(self):
        result = DependencyDetector().detect_explicit_dependencies("Ship export", None)

        assert result.dependencies == []
        assert result.dependency_tags == []


# =============================================================================
# Store-backed Detection
# =============================================================================


class TestImplicitDependencies:
    """Tests for implicit and suggested dependencies."""

    @pytest.mark.asyncio
    async def test_schema_work_in_progress(self, detector):
        result = await detector.detect_dependencies(
            "t-new", "Use the new user table in profile page", None, "proj-1"
        )

        implicit = result.of_type(DependencyType.IMPLICIT)
        assert [d.ticket_id for d in implicit] == ["t-10"]
        assert implicit[0].confidence == 0.6
        assert implicit[0].blocking is False
        assert "potential-dependencies" in result.dependency_tags
        assert "database-related" in result.dependency_tags
        assert result.blocks == ["t-11"]

    @pytest.mark.asyncio
    async def test_schema_without_use_is_not_implicit(self, detector):
        result = await detector.detect_dependencies(
            "t-new", "Drop the legacy table", None, "proj-1"
        )
        assert result.of_type(DependencyType.IMPLICIT) == []
        assert "database-related" in result.dependency_tags

    @pytest.mark.asyncio
    async def test_api_work_is_suggested(self, detector):
        result = await detector.detect_dependencies(
            "t-new", "Update api endpoint for orders", None, "proj-1"
        )

        suggested = result.of_type(DependencyType.SUGGESTED)
        assert [d.ticket_id for d in suggested] == ["t-20"]
        assert suggested[0].confidence == 0.4
        assert result.dependency_tags == ["potential-dependencies", "api-related"]
        assert result.summary() == "Dependencies: 1 suggested"

    @pytest.mark.asyncio
    async def test_other_projects_ignored(self, detector):
        result = await detector.detect_dependencies(
            "t-new", "Use the user table", None, "proj-3"
        )
        assert result.dependencies == []
        assert result.blocks == []

    @pytest.mark.asyncio
    async def test_blocks_by_ticket_reference(self, ticket_store, ticket_factory):
        ticket_store.add(ticket_factory(
            "T-7", "Follow-up", description="Start after #t-5 lands", status=TicketStatus.BACKLOG,
        ))
        detector = DependencyDetector(ticket_store)

        result = await detector.detect_dependencies("T-5", "Fix it", None, "proj-1")

        assert result.blocks == ["T-7"]

    @pytest.mark.asyncio
    async def test_store_failure_keeps_explicit(self, failing_ticket_store):
        detector = DependencyDetector(failing_ticket_store)
        result = await detector.detect_dependencies(
            "t-new", "Use the user api", "after #3", "proj-1"
        )

        assert [d.ticket_number for d in result.dependencies] == ["3"]
        assert result.blocks == []


class TestBlockingStatus:
    """Tests for DependencyDetector.has_blocking_dependencies."""

    @pytest.mark.asyncio
    async def test_blocked_by_explicit_reference(self, detector):
        status = await detector.has_blocking_dependencies("t-30", "proj-1")

        assert status.blocked is True
        assert [d.ticket_number for d in status.blocked_by] == ["12"]

    @pytest.mark.asyncio
    async def test_missing_ticket_not_blocked(self, detector):
        status = await detector.has_blocking_dependencies("nope", "proj-1")
        assert status.blocked is False
        assert status.blocked_by == []

    @pytest.mark.asyncio
    async def test_no_store_not_blocked(self):
        status = await DependencyDetector().has_blocking_dependencies("t-30", "proj-1")
        assert status.blocked is False

    @pytest.mark.asyncio
    async def test_store_failure_not_blocked(self, failing_ticket_store):
        status = await DependencyDetector(failing_ticket_store).has_blocking_dependencies(
            "t-30", "proj-1"
        )
        assert status.to_dict() == {"blocked": False, "blocked_by": []}


# =============================================================================
# Result Helpers
# =============================================================================


class TestDependencyResult:
    """Tests for DependencyResult helpers."""

    def test_empty_summary(self):
        assert DependencyResult().summary() == "No dependencies detected"

    def test_mixed_summary(self):
        result = DependencyResult(dependencies=[
            Dependency(None, "1", DependencyType.EXPLICIT, "r"),
            Dependency("t-2", None, DependencyType.IMPLICIT, "r", confidence=0.6),
            Dependency("t-3", None, DependencyType.SUGGESTED, "r", confidence=0.4),
            Dependency("t-4", None, DependencyType.SUGGESTED, "r", confidence=0.3),
        ])
        assert result.summary() == "Dependencies: 1 explicit, 1 implicit, 2 suggested"

    def test_to_dict(self):
        result = DependencyResult(
            dependencies=[Dependency(None, "1", DependencyType.EXPLICIT, "r", blocking=True)],
        )
        data = result.to_dict()

        assert data["dependencies"][0]["type"] == "explicit"
        assert data["dependencies"][0]["ticket_id"] is None
        assert data["summary"] == "Dependencies: 1 explicit"
