"""Ticket analysis stages for SwarmRoute.

Four independent stages that read a ticket and produce signals:
- TicketClassifier: type, keywords, suggested agents/labels/topology, intent
- ComplexityEstimator: 1-10 complexity score from eight weighted factors
- DependencyDetector: explicit, implicit and suggested dependency edges
- TimeEstimator: hours estimate with range and confidence

Usage:
    from swarmroute.analysis import TicketClassifier, ComplexityEstimator

    analysis = TicketClassifier().analyze(ticket)
    complexity = await ComplexityEstimator(store).calculate_complexity(ticket.title)
"""

from swarmroute.analysis.vocabulary import ClassifierVocabulary, DEFAULT_VOCABULARY
from swarmroute.analysis.classifier import AnalysisResult, TicketClassifier
from swarmroute.analysis.complexity import (
    ComplexityFactors,
    ComplexityBreakdown,
    ComplexityResult,
    ComplexityEstimator,
    quick_complexity_estimate,
)
from swarmroute.analysis.dependencies import (
    DependencyType,
    Dependency,
    DependencyResult,
    BlockingStatus,
    DependencyDetector,
)
from swarmroute.analysis.time_estimation import (
    EstimateBasis,
    TimeRange,
    TimeEstimate,
    TimeEstimator,
    quick_time_estimate,
    format_duration,
    format_range,
)

__all__ = [
    # Classifier
    "ClassifierVocabulary",
    "DEFAULT_VOCABULARY",
    "AnalysisResult",
    "TicketClassifier",
    # Complexity
    "ComplexityFactors",
    "ComplexityBreakdown",
    "ComplexityResult",
    "ComplexityEstimator",
    "quick_complexity_estimate",
    # Dependencies
    "DependencyType",
    "Dependency",
    "DependencyResult",
    "BlockingStatus",
    "DependencyDetector",
    # Time estimation
    "EstimateBasis",
    "TimeRange",
    "TimeEstimate",
    "TimeEstimator",
    "quick_time_estimate",
    "format_duration",
    "format_range",
]
