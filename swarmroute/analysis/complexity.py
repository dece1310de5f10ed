"""Multi-factor complexity scoring for tickets.

The estimator computes eight independent signals from the ticket text,
labels and (optionally) completed tickets in the same project, weights them
and rescales the sum to a 1-10 score.

Complexity Factors:
    - Description length: word count, capped at 100 words.
    - Technical keywords: matches against a technical vocabulary, capped at 5.
    - Cross-cutting: phrasing such as "across", "global", "system-wide".
    - Security: security-sensitive vocabulary.
    - Infrastructure: new services, queues, deployment vocabulary.
    - Estimated files: heuristic file count, capped at 50.
    - Historical: average complexity of similar completed tickets.
    - Labels: number of high-impact labels.

Key Components:
    ComplexityFactors: The raw signals.
    ComplexityBreakdown: Weighted contribution of each signal.
    ComplexityResult: Final score, confidence, factors and breakdown.
    ComplexityEstimator: Computes results, optionally consulting a ticket store.
    quick_complexity_estimate: Store-free estimate for real-time use.

Example:
    >>> estimator = ComplexityEstimator(ticket_store=store)
    >>> result = await estimator.calculate_complexity("Add OAuth login", None, ["security"])
    >>> 1 <= result.score <= 10
    True
"""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Iterable, Optional

from swarmroute.core.exceptions import failure_details
from swarmroute.core.scoring import clamp, round_half_up
from swarmroute.core.storage.models import TicketQuery, TicketStatus

if TYPE_CHECKING:
    from swarmroute.config.settings import ComplexitySettings
    from swarmroute.core.storage.protocols import TicketStore


logger = logging.getLogger(__name__)


# =============================================================================
# Vocabulary
# =============================================================================

TECH_KEYWORDS: tuple[str, ...] = (
    "api", "database", "schema", "migration", "auth", "security", "websocket", "cache",
    "redis", "queue", "worker", "async", "encryption", "oauth", "jwt", "middleware", "hook",
    "transaction", "concurrency", "distributed",
)

CROSS_CUTTING_PATTERNS: tuple[str, ...] = (
    "all", "every", "across", "global", "everywhere", "system-wide", "throughout", "entire",
    "whole",
)

SECURITY_PATTERNS: tuple[str, ...] = (
    "security", "auth", "authentication", "authorization", "password", "encrypt",
    "permission", "role", "access", "token", "credential", "secret", "private", "sensitive",
)

INFRASTRUCTURE_PATTERNS: tuple[str, ...] = (
    "new service", "new database", "redis", "queue", "worker", "docker", "kubernetes",
    "deploy", "infrastructure", "server", "cluster", "scale",
)

HIGH_IMPACT_LABELS: frozenset[str] = frozenset(
    {"security", "performance", "architecture", "breaking-change"}
)

TITLE_STOP_WORDS: frozenset[str] = frozenset(
    {"the", "and", "for", "with", "from", "into", "that", "this"}
)

WEIGHTS: dict[str, float] = {
    "description": 1.0,
    "technical": 2.0,
    "cross_cutting": 1.5,
    "security": 2.0,
    "infrastructure": 2.0,
    "files": 2.0,
    "historical": 1.5,
    "labels": 0.5,
}

_MODULE_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (r"components?", r"modules?", r"services?", r"routes?", r"pages?", r"api")
]
_FRONTEND = re.compile(r"frontend", re.IGNORECASE)
_BACKEND = re.compile(r"backend", re.IGNORECASE)
_DATA_LAYER = re.compile(r"database|schema|migration", re.IGNORECASE)
_TESTS = re.compile(r"test|spec", re.IGNORECASE)


def _word_match(term: str, text: str) -> bool:
    return re.search(rf"\b{re.escape(term)}\b", text, re.IGNORECASE) is not None


def _is_cross_cutting(text: str) -> bool:
    return any(p in text for p in CROSS_CUTTING_PATTERNS)


def _count_high_impact(labels: Iterable[str]) -> int:
    return sum(1 for label in labels if label.lower() in HIGH_IMPACT_LABELS)


def estimate_file_count(text: str) -> int:
    """Heuristic estimate of how many files a ticket touches (3-50)."""
    estimate = 3
    estimate += 2 * sum(1 for p in _MODULE_PATTERNS if p.search(text))

    if _FRONTEND.search(text) and _BACKEND.search(text):
        estimate += 4
    if _DATA_LAYER.search(text):
        estimate += 3
    if _TESTS.search(text):
        estimate += 2
    if _is_cross_cutting(text):
        estimate *= 2

    return min(estimate, 50)


# =============================================================================
# Result Types
# =============================================================================


@dataclass
class ComplexityFactors:
    """Raw complexity signals.

    Attributes:
        description_length: Word count ratio (0.0-1.0).
        technical_keywords: Technical keyword density (0.0-1.0).
        cross_cutting: Whether the ticket affects many areas.
        has_security_implications: Whether security vocabulary appears.
        requires_new_infrastructure: Whether infrastructure vocabulary appears.
        estimated_files: Heuristic file count.
        similar_task_complexity: Average complexity of similar completed
            tickets, or None when unavailable.
        label_complexity: Number of high-impact labels.
    """

    description_length: float
    technical_keywords: float
    cross_cutting: bool
    has_security_implications: bool
    requires_new_infrastructure: bool
    estimated_files: int
    similar_task_complexity: Optional[int]
    label_complexity: int


@dataclass
class ComplexityBreakdown:
    """Weighted contribution of each factor to the raw score."""

    description: float = 0.0
    technical: float = 0.0
    cross_cutting: float = 0.0
    security: float = 0.0
    infrastructure: float = 0.0
    files: float = 0.0
    historical: float = 0.0
    labels: float = 0.0

    def total(self) -> float:
        """Sum of all contributions."""
        return sum(asdict(self).values())


@dataclass
class ComplexityResult:
    """Complexity score for a ticket.

    Attributes:
        score: Final complexity (1-10).
        confidence: Confidence in the score (0.0-1.0).
        factors: The raw signals.
        breakdown: Weighted contributions.
    """

    score: int
    confidence: float
    factors: ComplexityFactors
    breakdown: ComplexityBreakdown

    def __post_init__(self) -> None:
        if not 1 <= self.score <= 10:
            raise ValueError(f"Score must be 1-10, got {self.score}")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be 0.0-1.0, got {self.confidence}")

    def to_dict(self) -> dict:
        """Convert the result to a JSON-ready dictionary."""
        return {
            "score": self.score,
            "confidence": self.confidence,
            "factors": asdict(self.factors),
            "breakdown": asdict(self.breakdown),
        }


# =============================================================================
# Complexity Estimator
# =============================================================================


class ComplexityEstimator:
    """Computes complexity scores.

    The ticket store is optional. Without it, or when it fails, the
    historical factor is treated as absent and confidence is lower.

    Attributes:
        ticket_store: Store used for the historical lookup, if any.
        max_raw_score: Raw score that maps to complexity 10.
        history_limit: Number of similar tickets averaged.
    """

    def __init__(
        self,
        ticket_store: Optional["TicketStore"] = None,
        settings: Optional["ComplexitySettings"] = None,
    ) -> None:
        self.ticket_store = ticket_store
        self.max_raw_score = settings.max_raw_score if settings else 12.5
        self.history_limit = settings.history_limit if settings else 5

    def compute_factors(
        self,
        text: str,
        labels: Iterable[str],
        similar_task_complexity: Optional[int] = None,
    ) -> ComplexityFactors:
        """Compute the raw signals from lower-cased ``text`` and ``labels``."""
        word_count = len(text.split())
        keyword_matches = sum(1 for k in TECH_KEYWORDS if _word_match(k, text))

        return ComplexityFactors(
            description_length=min(word_count / 100, 1.0),
            technical_keywords=min(keyword_matches / 5, 1.0),
            cross_cutting=_is_cross_cutting(text),
            has_security_implications=any(_word_match(p, text) for p in SECURITY_PATTERNS),
            requires_new_infrastructure=any(p in text for p in INFRASTRUCTURE_PATTERNS),
            estimated_files=estimate_file_count(text),
            similar_task_complexity=similar_task_complexity,
            label_complexity=_count_high_impact(labels),
        )

    @staticmethod
    def weigh(factors: ComplexityFactors) -> ComplexityBreakdown:
        """Apply the fixed weights to each factor."""
        historical = 0.0
        if factors.similar_task_complexity is not None:
            historical = factors.similar_task_complexity / 10 * WEIGHTS["historical"]

        return ComplexityBreakdown(
            description=factors.description_length * WEIGHTS["description"],
            technical=factors.technical_keywords * WEIGHTS["technical"],
            cross_cutting=WEIGHTS["cross_cutting"] if factors.cross_cutting else 0.0,
            security=WEIGHTS["security"] if factors.has_security_implications else 0.0,
            infrastructure=WEIGHTS["infrastructure"] if factors.requires_new_infrastructure else 0.0,
            files=min(factors.estimated_files / 10, 1.0) * WEIGHTS["files"],
            historical=historical,
            labels=factors.label_complexity * WEIGHTS["labels"],
        )

    async def calculate_complexity(
        self,
        title: str,
        description: Optional[str] = None,
        labels: Iterable[str] = (),
        project_id: Optional[str] = None,
    ) -> ComplexityResult:
        """Calculate the complexity of a ticket.

        Args:
            title: Ticket title.
            description: Optional description.
            labels: Ticket labels.
            project_id: Project used for the historical lookup. Without it
                no lookup happens.

        Returns:
            ComplexityResult with score in [1, 10] and confidence in [0, 1].
        """
        labels = list(labels)
        text = f"{title} {description or ''}".lower()

        similar = None
        if project_id:
            similar = await self._similar_task_complexity(title, project_id)

        factors = self.compute_factors(text, labels, similar)
        breakdown = self.weigh(factors)
        raw_score = breakdown.total()
        score = int(clamp(round_half_up(raw_score / self.max_raw_score * 10), 1, 10))

        confidence = 0.5
        if similar is not None:
            confidence += 0.3
        if description and len(description) > 50:
            confidence += 0.1
        if labels:
            confidence += 0.1
        confidence = min(confidence, 1.0)

        logger.debug(
            "Complexity: score=%d (raw=%.2f), confidence=%.2f, historical=%s",
            score,
            raw_score,
            confidence,
            similar,
        )
        return ComplexityResult(
            score=score,
            confidence=confidence,
            factors=factors,
            breakdown=breakdown,
        )

    async def _similar_task_complexity(self, title: str, project_id: str) -> Optional[int]:
        """Average complexity of completed tickets sharing a title word."""
        if self.ticket_store is None:
            return None

        words = [
            w for w in title.lower().split()
            if len(w) >= 3 and w not in TITLE_STOP_WORDS
        ]
        if not words:
            return None

        query = TicketQuery(
            project_id=project_id,
            statuses=(TicketStatus.DONE,),
            text_contains=tuple(words),
            fields=("title",),
            require_complexity=True,
            limit=self.history_limit,
        )
        try:
            tickets = await self.ticket_store.find_many(query)
        except Exception as e:
            logger.warning("Historical complexity lookup failed: %s", failure_details(e))
            return None

        complexities = [t.complexity for t in tickets if t.complexity is not None]
        if not complexities:
            return None
        return round_half_up(sum(complexities) / len(complexities))


def quick_complexity_estimate(
    title: str,
    description: Optional[str] = None,
    labels: Iterable[str] = (),
) -> int:
    """Quick complexity estimate without any store access.

    Starts at 3, adds up to 3 for technical keywords (substring matches),
    2 for cross-cutting phrasing, 2 for security vocabulary and 1 per
    high-impact label, clamped to [1, 10].
    """
    text = f"{title} {description or ''}".lower()

    score = 3
    score += min(sum(1 for k in TECH_KEYWORDS if k in text), 3)
    if _is_cross_cutting(text):
        score += 2
    if any(p in text for p in SECURITY_PATTERNS):
        score += 2
    score += _count_high_impact(labels)

    return int(clamp(score, 1, 10))


__all__ = [
    "ComplexityFactors",
    "ComplexityBreakdown",
    "ComplexityResult",
    "ComplexityEstimator",
    "quick_complexity_estimate",
    "estimate_file_count",
    "TECH_KEYWORDS",
    "HIGH_IMPACT_LABELS",
]
