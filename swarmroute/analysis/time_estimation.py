"""Completion time estimation.

Converts a complexity score, ticket type and labels into an hours estimate
with a range and a confidence. When the project has enough completed tickets
with a measurable IN_PROGRESS -> DONE duration, the complexity-based figure is
blended with the historical average.

Invariants:
    - ``hours`` is a multiple of 0.25 and never below 0.25.
    - ``range.min < hours < range.max`` and ``range.min >= 0``.
    - ``confidence`` lies in [0.2, 0.95].

Key Components:
    EstimateBasis: complexity | historical | hybrid.
    TimeRange: Lower and upper bound in hours.
    TimeEstimate: Result of an estimation.
    TimeEstimator: Estimates, optionally consulting a ticket store.
    quick_time_estimate: Store-free estimate.
    format_duration / format_range: Human-readable rendering.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Iterable, Optional, Union

from swarmroute.core.exceptions import failure_details
from swarmroute.core.scoring import clamp, round_half_up, round_to_quarter
from swarmroute.core.storage.models import TicketQuery, TicketStatus
from swarmroute.core.types import TicketType

if TYPE_CHECKING:
    from swarmroute.config.settings import TimeEstimateSettings
    from swarmroute.core.storage.protocols import TicketStore


logger = logging.getLogger(__name__)


# =============================================================================
# Tables
# =============================================================================

COMPLEXITY_HOURS: dict[int, float] = {
    1: 0.5,
    2: 1,
    3: 2,
    4: 3,
    5: 5,
    6: 8,
    7: 13,
    8: 21,
    9: 34,
    10: 55,
}

TYPE_MULTIPLIERS: dict[str, float] = {
    "feature": 1.2,
    "bug": 0.8,
    "refactor": 1.0,
    "docs": 0.5,
    "test": 0.7,
    "chore": 0.6,
}

SLOW_LABELS: frozenset[str] = frozenset(
    {"security", "performance", "architecture", "breaking-change"}
)

SLOW_LABEL_PENALTY = 0.15

# Samples outside five minutes .. two weeks are discarded
MIN_SAMPLE_HOURS = 0.083
MAX_SAMPLE_HOURS = 336.0

MIN_CONFIDENCE = 0.2
MAX_CONFIDENCE = 0.95
QUARTER_HOUR = 0.25


# =============================================================================
# Result Types
# =============================================================================


class EstimateBasis(str, Enum):
    """What an estimate was derived from."""

    COMPLEXITY = "complexity"
    HISTORICAL = "historical"
    HYBRID = "hybrid"


@dataclass
class TimeRange:
    """Lower and upper bound of an estimate, in hours."""

    min: float
    max: float

    def to_dict(self) -> dict:
        return {"min": self.min, "max": self.max}


@dataclass
class TimeEstimate:
    """Estimated completion time for a ticket.

    Attributes:
        hours: Estimated hours, rounded to the quarter hour.
        range: Plausible range around ``hours``.
        confidence: Confidence in the estimate (0.2-0.95).
        based_on: Whether history was blended in.
        notes: Explanations of each adjustment, in order.
    """

    hours: float
    range: TimeRange
    confidence: float
    based_on: EstimateBasis
    notes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "hours": self.hours,
            "range": self.range.to_dict(),
            "confidence": self.confidence,
            "based_on": self.based_on.value,
            "notes": list(self.notes),
        }


@dataclass
class HistoricalData:
    """Duration statistics of completed tickets."""

    average_hours: float
    sample_count: int
    min_hours: float
    max_hours: float


# =============================================================================
# Helpers
# =============================================================================


def _type_key(ticket_type: Union[TicketType, str, None]) -> str:
    if isinstance(ticket_type, TicketType):
        return ticket_type.value
    return ticket_type or "feature"


def get_base_hours(complexity: float) -> float:
    """Base hours for a complexity score, clamped and rounded into 1-10."""
    clamped = int(clamp(round_half_up(complexity), 1, 10))
    return COMPLEXITY_HOURS[clamped]


def _bounded_estimate(hours: float, low: float, high: float) -> tuple[float, TimeRange]:
    """Round hours and range to quarters with ``0 <= min < hours < max``."""
    rounded = max(round_to_quarter(hours), QUARTER_HOUR)
    range_min = max(min(round_to_quarter(low), rounded - QUARTER_HOUR), 0.0)
    range_max = max(round_to_quarter(high), rounded + QUARTER_HOUR)
    return rounded, TimeRange(min=range_min, max=range_max)


def format_duration(hours: float) -> str:
    """Render hours as minutes, hours, 8-hour days or 5-day weeks."""
    if hours < 1:
        return f"{round_half_up(hours * 60)} min"
    if hours < 8:
        return f"{hours:.1f} hrs"

    days = hours / 8
    if days < 5:
        return f"{days:.1f} days"

    return f"{days / 5:.1f} weeks"


def format_range(time_range: TimeRange) -> str:
    """Render a range as ``"<min> - <max>"``."""
    return f"{format_duration(time_range.min)} - {format_duration(time_range.max)}"


def quick_time_estimate(
    complexity: float,
    ticket_type: Union[TicketType, str] = TicketType.FEATURE,
) -> float:
    """Hours from complexity and type only, rounded to the quarter hour."""
    multiplier = TYPE_MULTIPLIERS.get(_type_key(ticket_type), 1.0)
    return max(round_to_quarter(get_base_hours(complexity) * multiplier), QUARTER_HOUR)


# =============================================================================
# Time Estimator
# =============================================================================


class TimeEstimator:
    """Estimates completion time from complexity and project history.

    Attributes:
        ticket_store: Store used for historical durations, if any.
        min_historical_samples: Samples needed before blending history in.
        history_limit: Completed tickets inspected.
        max_historical_weight: Cap on the weight given to history.
    """

    def __init__(
        self,
        ticket_store: Optional["TicketStore"] = None,
        settings: Optional["TimeEstimateSettings"] = None,
    ) -> None:
        self.ticket_store = ticket_store
        self.min_historical_samples = settings.min_historical_samples if settings else 3
        self.history_limit = settings.history_limit if settings else 20
        self.max_historical_weight = settings.max_historical_weight if settings else 0.7

    async def estimate_completion_time(
        self,
        complexity: float,
        ticket_type: Union[TicketType, str] = TicketType.FEATURE,
        labels: Iterable[str] = (),
        project_id: Optional[str] = None,
    ) -> TimeEstimate:
        """Estimate how long a ticket will take.

        Args:
            complexity: Complexity score (clamped into 1-10).
            ticket_type: Ticket type; unknown types use a 1.0 multiplier.
            labels: Ticket labels; slow labels increase the estimate.
            project_id: Project whose history is consulted, if any.

        Returns:
            TimeEstimate honouring the module invariants.
        """
        labels = list(labels)
        type_key = _type_key(ticket_type)
        notes: list[str] = []

        base_hours = get_base_hours(complexity)
        notes.append(f"Base estimate from complexity {complexity}: {base_hours}h")

        multiplier = TYPE_MULTIPLIERS.get(type_key, 1.0)
        adjusted = base_hours * multiplier
        if multiplier != 1.0:
            notes.append(f"Type multiplier ({type_key}): x{multiplier}")

        slow_count = sum(1 for label in labels if label.lower() in SLOW_LABELS)
        if slow_count:
            label_multiplier = 1 + slow_count * SLOW_LABEL_PENALTY
            adjusted *= label_multiplier
            notes.append(
                f"Label adjustment (+{slow_count} complex labels): x{label_multiplier:.2f}"
            )

        history = None
        if project_id:
            history = await self._historical_average(labels, project_id)

        if history is not None and history.sample_count >= self.min_historical_samples:
            weight = min(history.sample_count / 10, self.max_historical_weight)
            hybrid = adjusted * (1 - weight) + history.average_hours * weight
            notes.append(
                f"Historical data: {history.average_hours:.1f}h avg from "
                f"{history.sample_count} similar tickets"
            )
            notes.append(f"Hybrid estimate ({weight * 100:.0f}% historical): {hybrid:.1f}h")

            hours, time_range = _bounded_estimate(
                hybrid,
                min(hybrid * 0.5, history.min_hours),
                max(hybrid * 1.5, history.max_hours),
            )
            confidence = 0.5 + min(history.sample_count / 20, 0.3)
            if complexity >= 8 or complexity <= 2:
                confidence -= 0.1
            basis = EstimateBasis.HYBRID
        else:
            hours, time_range = _bounded_estimate(adjusted, adjusted * 0.5, adjusted * 2)
            confidence = 0.4 + complexity * 0.02
            basis = EstimateBasis.COMPLEXITY

        estimate = TimeEstimate(
            hours=hours,
            range=time_range,
            confidence=clamp(confidence, MIN_CONFIDENCE, MAX_CONFIDENCE),
            based_on=basis,
            notes=notes,
        )
        logger.debug(
            "Time estimate: %.2fh [%.2f, %.2f] basis=%s confidence=%.2f",
            estimate.hours,
            estimate.range.min,
            estimate.range.max,
            estimate.based_on.value,
            estimate.confidence,
        )
        return estimate

    async def _historical_average(
        self, labels: list[str], project_id: str
    ) -> Optional[HistoricalData]:
        """Duration statistics of recently completed tickets in the project."""
        if self.ticket_store is None:
            return None

        query = TicketQuery(
            project_id=project_id,
            statuses=(TicketStatus.DONE,),
            labels_any=tuple(labels),
            newest_first=True,
            limit=self.history_limit,
        )
        try:
            tickets = await self.ticket_store.find_many(query)
        except Exception as e:
            logger.warning("Historical duration lookup failed: %s", failure_details(e))
            return None

        if len(tickets) < self.min_historical_samples:
            return None

        durations: list[float] = []
        for ticket in tickets:
            start = ticket.first_transition_to(TicketStatus.IN_PROGRESS)
            end = ticket.first_transition_to(TicketStatus.DONE)
            if start is None or end is None:
                continue
            elapsed = (end.created_at - start.created_at).total_seconds() / 3600
            if MIN_SAMPLE_HOURS <= elapsed <= MAX_SAMPLE_HOURS:
                durations.append(elapsed)

        if not durations:
            return None

        return HistoricalData(
            average_hours=sum(durations) / len(durations),
            sample_count=len(durations),
            min_hours=min(durations),
            max_hours=max(durations),
        )


__all__ = [
    "EstimateBasis",
    "TimeRange",
    "TimeEstimate",
    "TimeEstimator",
    "quick_time_estimate",
    "format_duration",
    "format_range",
    "get_base_hours",
    "COMPLEXITY_HOURS",
    "TYPE_MULTIPLIERS",
]
