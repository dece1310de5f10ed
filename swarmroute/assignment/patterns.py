"""Learned-pattern matching for agent routing.

Patterns are past routings that worked, stored in the memory service. The
matcher searches the memory service once per ticket keyword, parses the
heterogeneous responses, scores each candidate by Jaccard similarity of its
keyword set with the ticket's, and recommends the most similar pattern that
clears both the similarity and the success-rate threshold.

Outcomes are fed back with track_performance: once enough performance
records exist for a pattern its success rate is recomputed and stored.

Every memory service failure degrades to "no patterns found"; nothing
raises past this module's public methods.

Key Components:
    Pattern: A learned routing template (pydantic, parsed from memory).
    PatternWithSimilarity: Pattern plus the similarity computed at match time.
    PerformanceRecord: Outcome of one use of a pattern.
    MatchOptions / MatchResult: Inputs and output of find_matching_patterns.
    PatternMatcher: Searches, scores, tracks and stores patterns.
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterable, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictBool, field_validator

from swarmroute.assignment.parsing import (
    StrategyParser,
    json_array_strategy,
    json_objects_strategy,
    regex_strategy,
    split_list,
    structured_strategy,
)
from swarmroute.core.exceptions import failure_details
from swarmroute.core.scoring import percent
from swarmroute.core.storage.models import utc_now
from swarmroute.core.types import TicketType, Topology

if TYPE_CHECKING:
    from swarmroute.config.settings import PatternSettings
    from swarmroute.core.storage.protocols import MemoryService


logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return utc_now().isoformat()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# =============================================================================
# Pattern Models
# =============================================================================


class Pattern(BaseModel):
    """A learned routing template.

    Field names are snake_case; the camelCase spellings written by other
    producers (``agentConfig``, ``successRate``, ...) and the short forms
    ``agents`` and ``success`` are accepted on input. Values of the wrong
    type fall back to their defaults.

    Attributes:
        id: Unique identifier.
        keywords: Keywords the pattern applies to.
        agent_config: Agent types that worked.
        success_rate: Observed success rate (0.0-1.0).
        usage_count: Number of times the pattern was used.
        last_used: ISO timestamp of the last use.
        topology: Topology used with the pattern, if recorded.
        ticket_type: Ticket type the pattern applies to, if recorded.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    keywords: list[str] = Field(default_factory=list)
    agent_config: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("agents", "agentConfig", "agent_config"),
    )
    success_rate: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        validation_alias=AliasChoices("success_rate", "successRate", "success"),
    )
    usage_count: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("usage_count", "usageCount"),
    )
    last_used: str = Field(
        default_factory=_now_iso,
        validation_alias=AliasChoices("last_used", "lastUsed"),
    )
    topology: Optional[str] = None
    ticket_type: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("ticket_type", "ticketType"),
    )

    @field_validator("keywords", "agent_config", mode="before")
    @classmethod
    def list_or_empty(cls, v: Any) -> Any:
        return [str(item) for item in v] if isinstance(v, list) else []

    @field_validator("success_rate", mode="before")
    @classmethod
    def rate_or_default(cls, v: Any) -> Any:
        return v if _is_number(v) else 0.5

    @field_validator("usage_count", mode="before")
    @classmethod
    def count_or_zero(cls, v: Any) -> Any:
        return v if _is_number(v) else 0

    @field_validator("last_used", mode="before")
    @classmethod
    def timestamp_or_now(cls, v: Any) -> Any:
        return v if isinstance(v, str) else _now_iso()

    @field_validator("topology", "ticket_type", mode="before")
    @classmethod
    def string_or_none(cls, v: Any) -> Any:
        return v if isinstance(v, str) else None

    @classmethod
    def from_payload(cls, data: dict, default_id: str) -> "Pattern":
        """Build a Pattern from a decoded JSON object.

        Raises:
            pydantic.ValidationError: If a value is out of range.
        """
        data = dict(data)
        if not data.get("id") or not isinstance(data.get("id"), str):
            data["id"] = default_id
        return cls.model_validate(data)

    def with_similarity(self, similarity: float) -> "PatternWithSimilarity":
        return PatternWithSimilarity(**self.model_dump(), similarity=similarity)


class PatternWithSimilarity(Pattern):
    """A Pattern with the similarity computed for the current ticket."""

    similarity: float = Field(ge=0.0, le=1.0)


class PerformanceRecord(BaseModel):
    """Outcome of one use of a pattern.

    Attributes:
        pattern_id: The pattern that was used.
        was_successful: Whether the work succeeded.
        completion_time: Hours the work took, if known.
        quality_score: Quality rating (0.0-1.0), if known.
        timestamp: ISO timestamp of the outcome.
    """

    model_config = ConfigDict(populate_by_name=True)

    pattern_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("pattern_id", "patternId"),
    )
    was_successful: StrictBool = Field(
        validation_alias=AliasChoices("was_successful", "wasSuccessful"),
    )
    completion_time: Optional[float] = Field(
        default=None,
        ge=0.0,
        validation_alias=AliasChoices("completion_time", "completionTime"),
    )
    quality_score: Optional[float] = Field(
        default=None,
        ge=0.0,
        le=1.0,
        validation_alias=AliasChoices("quality_score", "qualityScore"),
    )
    timestamp: str = Field(default_factory=_now_iso)

    @classmethod
    def from_payload(cls, data: dict, default_id: str) -> "PerformanceRecord":
        return cls.model_validate(data)


class PatternRateUpdate(BaseModel):
    """Recomputed success rate stored next to a pattern."""

    success_rate: float = Field(ge=0.0, le=1.0)
    sample_size: int = Field(ge=1)


# =============================================================================
# Match Types
# =============================================================================


@dataclass(frozen=True)
class MatchOptions:
    """Thresholds for find_matching_patterns."""

    min_similarity: float = 0.6
    min_success_rate: float = 0.7
    limit: int = 5


@dataclass
class MatchResult:
    """Outcome of a pattern search.

    Attributes:
        patterns: Candidates sorted by similarity, truncated to the limit.
        best_match: Most similar candidate meeting both thresholds.
        recommendation: Human-readable recommendation.
    """

    patterns: list[PatternWithSimilarity] = field(default_factory=list)
    best_match: Optional[PatternWithSimilarity] = None
    recommendation: str = "No matching patterns found - using default routing"

    def to_dict(self) -> dict:
        return {
            "patterns": [p.model_dump(mode="json") for p in self.patterns],
            "best_match": self.best_match.model_dump(mode="json") if self.best_match else None,
            "recommendation": self.recommendation,
        }


# =============================================================================
# Text Fallback
# =============================================================================

_TEXT_PATTERN = re.compile(
    r"(?:pattern|id):\s*['\"]?(\w+)['\"]?.*?keywords:\s*\[(.*?)\].*?"
    r"agents:\s*\[(.*?)\].*?success(?:_?rate)?:\s*([\d.]+)",
    re.IGNORECASE,
)


def _pattern_from_text(match: "re.Match[str]") -> Pattern:
    return Pattern(
        id=match.group(1),
        keywords=split_list(match.group(2)),
        agent_config=split_list(match.group(3)),
        success_rate=float(match.group(4)),
    )


def default_pattern_parser() -> StrategyParser:
    """Parser for pattern search responses, most structured shape first."""
    return StrategyParser([
        structured_strategy(Pattern.from_payload),
        json_array_strategy(Pattern.from_payload),
        json_objects_strategy(Pattern.from_payload),
        regex_strategy(_TEXT_PATTERN, _pattern_from_text),
    ])


def default_performance_parser() -> StrategyParser:
    """Parser for performance record search responses."""
    return StrategyParser([
        structured_strategy(PerformanceRecord.from_payload),
        json_objects_strategy(PerformanceRecord.from_payload),
    ])


# =============================================================================
# Pattern Matcher
# =============================================================================


class PatternMatcher:
    """Finds, scores and maintains learned patterns.

    Attributes:
        memory: Memory service holding patterns and performance records.
        namespace: Namespace of patterns.
        performance_namespace: Namespace of performance records.
        default_options: Thresholds used when none are passed.
    """

    def __init__(
        self,
        memory: "MemoryService",
        settings: Optional["PatternSettings"] = None,
        parser: Optional[StrategyParser] = None,
    ) -> None:
        self.memory = memory
        self.parser = parser or default_pattern_parser()
        self.performance_parser = default_performance_parser()

        if settings is not None:
            self.namespace = settings.namespace
            self.performance_namespace = settings.performance_namespace
            self.search_limit = settings.search_limit
            self.min_performance_records = settings.min_performance_records
            self.performance_search_limit = settings.performance_search_limit
            self.default_options = MatchOptions(
                min_similarity=settings.min_similarity,
                min_success_rate=settings.min_success_rate,
                limit=settings.limit,
            )
        else:
            self.namespace = "patterns"
            self.performance_namespace = "pattern-performance"
            self.search_limit = 5
            self.min_performance_records = 3
            self.performance_search_limit = 20
            self.default_options = MatchOptions()

    @staticmethod
    def calculate_jaccard_similarity(keywords_a: Iterable[str], keywords_b: Iterable[str]) -> float:
        """Jaccard index ``|A & B| / |A | B|`` of two keyword sets.

        Comparison is case-insensitive. Two empty sets are identical (1.0);
        one empty set shares nothing (0.0).
        """
        set_a = {k.lower() for k in keywords_a}
        set_b = {k.lower() for k in keywords_b}

        if not set_a and not set_b:
            return 1.0
        if not set_a or not set_b:
            return 0.0

        return len(set_a & set_b) / len(set_a | set_b)

    def parse_pattern_results(self, output: Any) -> list[Pattern]:
        """Parse a memory search response into patterns (lenient)."""
        return self.parser.parse(output)

    async def find_matching_patterns(
        self,
        keywords: list[str],
        ticket_type: Union[TicketType, str],
        options: Optional[MatchOptions] = None,
    ) -> MatchResult:
        """Find learned patterns similar to a ticket.

        Args:
            keywords: The ticket's keywords.
            ticket_type: The ticket's type.
            options: Thresholds and limit; defaults come from settings.

        Returns:
            MatchResult. A memory failure gives an empty result whose
            recommendation says the search was unavailable.
        """
        options = options or self.default_options
        type_value = ticket_type.value if isinstance(ticket_type, TicketType) else ticket_type

        try:
            unique: dict[str, PatternWithSimilarity] = {}
            for keyword in keywords:
                response = await self.memory.search(
                    f"{keyword} {type_value}",
                    namespace=self.namespace,
                    limit=self.search_limit,
                )
                for pattern in self.parse_pattern_results(response):
                    similarity = self.calculate_jaccard_similarity(keywords, pattern.keywords)
                    existing = unique.get(pattern.id)
                    if existing is None or similarity > existing.similarity:
                        unique[pattern.id] = pattern.with_similarity(similarity)
        except Exception as e:
            logger.warning("Pattern search failed: %s", failure_details(e))
            return MatchResult(recommendation="Pattern search unavailable - using default routing")

        candidates = sorted(unique.values(), key=lambda p: p.similarity, reverse=True)
        qualified = [
            p for p in candidates
            if p.similarity >= options.min_similarity and p.success_rate >= options.min_success_rate
        ]
        best = qualified[0] if qualified else None

        result = MatchResult(
            patterns=candidates[: options.limit],
            best_match=best,
            recommendation=self._recommendation(best, len(candidates)),
        )
        logger.debug(
            "Pattern match: %d candidates, best=%s",
            len(candidates),
            best.id if best else None,
        )
        return result

    @staticmethod
    def _recommendation(best: Optional[PatternWithSimilarity], total_found: int) -> str:
        if best is None:
            if total_found > 0:
                return (
                    f"Found {total_found} patterns but none met quality thresholds"
                    " - using default routing"
                )
            return "No matching patterns found - using default routing"

        return (
            f'Use pattern "{best.id}" ({percent(best.similarity)}% match, '
            f"{percent(best.success_rate)}% success rate)"
        )

    async def track_performance(self, record: PerformanceRecord) -> bool:
        """Record the outcome of a pattern use.

        When the record is stored, the pattern's success rate is
        recomputed from its performance history.

        Returns:
            True if the record was stored.
        """
        key = f"perf-{record.pattern_id}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"
        try:
            stored = await self.memory.store(
                key, record.model_dump_json(), namespace=self.performance_namespace
            )
        except Exception as e:
            logger.warning("Storing performance record failed: %s", failure_details(e))
            return False

        if stored:
            await self._update_success_rate(record.pattern_id)
        return bool(stored)

    async def _update_success_rate(self, pattern_id: str) -> None:
        """Recompute a pattern's success rate once enough records exist."""
        try:
            response = await self.memory.search(
                pattern_id,
                namespace=self.performance_namespace,
                limit=self.performance_search_limit,
            )
            records = [
                r for r in self.performance_parser.parse(response)
                if r.pattern_id == pattern_id
            ]
            if len(records) < self.min_performance_records:
                return

            success_rate = sum(1 for r in records if r.was_successful) / len(records)
            await self.memory.store(
                f"{pattern_id}-updated",
                PatternRateUpdate(success_rate=success_rate, sample_size=len(records))
                .model_dump_json(),
                namespace=self.namespace,
            )
            logger.debug(
                "Updated success rate of %s to %.2f from %d records",
                pattern_id,
                success_rate,
                len(records),
            )
        except Exception as e:
            logger.warning("Updating success rate of %s failed: %s", pattern_id, failure_details(e))

    async def store_pattern(self, pattern: Pattern) -> bool:
        """Persist a pattern under its id. Failures return False."""
        try:
            return bool(
                await self.memory.store(
                    pattern.id, pattern.model_dump_json(), namespace=self.namespace
                )
            )
        except Exception as e:
            logger.warning("Storing pattern %s failed: %s", pattern.id, failure_details(e))
            return False

    @staticmethod
    def apply_pattern(pattern: Pattern) -> tuple[list[str], Topology]:
        """Agent types and topology of a pattern (mesh when unrecorded)."""
        try:
            topology = Topology(pattern.topology) if pattern.topology else Topology.MESH
        except ValueError:
            topology = Topology.MESH
        return list(pattern.agent_config), topology


__all__ = [
    "Pattern",
    "PatternWithSimilarity",
    "PerformanceRecord",
    "PatternRateUpdate",
    "MatchOptions",
    "MatchResult",
    "PatternMatcher",
    "default_pattern_parser",
]
