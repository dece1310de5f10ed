"""Ticket classification for SwarmRoute.

Turns raw ticket text into a ticket type, a technical keyword list, a set of
suggested labels and agents, a light-weight topology hint and an intent.
Classification is keyword based, deterministic and has no collaborators.

Key Components:
    AnalysisResult: Dataclass holding everything the classifier derived.
    TicketClassifier: Classifies tickets using an injected vocabulary.

Example:
    >>> classifier = TicketClassifier()
    >>> result = classifier.analyze(TicketInput("Fix login error when session expires"))
    >>> result.ticket_type
    <TicketType.BUG: 'bug'>
    >>> result.intent
    'correction'
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Optional

from swarmroute.analysis.vocabulary import DEFAULT_VOCABULARY, ClassifierVocabulary
from swarmroute.core.types import TicketInput, TicketType, Topology


# =============================================================================
# Module Logger
# =============================================================================

logger = logging.getLogger(__name__)


# =============================================================================
# Analysis Result
# =============================================================================


@dataclass
class AnalysisResult:
    """Classification of a single ticket.

    Attributes:
        ticket_type: The classified ticket type.
        keywords: Technical keywords found, de-duplicated, in vocabulary order.
        confidence: Confidence in the ticket type (0.0-1.0).
        suggested_agents: Agent types suggested for the ticket, in order.
        suggested_topology: Coarse topology hint.
        suggested_labels: Existing labels plus derived ones.
        intent: Intent derived from the title's leading verb.
    """

    ticket_type: TicketType
    keywords: list[str] = field(default_factory=list)
    confidence: float = 0.3
    suggested_agents: list[str] = field(default_factory=list)
    suggested_topology: Topology = Topology.MESH
    suggested_labels: list[str] = field(default_factory=list)
    intent: str = "task"

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be 0.0-1.0, got {self.confidence}")

    def to_dict(self) -> dict:
        """Convert the analysis to a JSON-ready dictionary."""
        return {
            "ticket_type": self.ticket_type.value,
            "keywords": list(self.keywords),
            "confidence": self.confidence,
            "suggested_agents": list(self.suggested_agents),
            "suggested_topology": self.suggested_topology.value,
            "suggested_labels": list(self.suggested_labels),
            "intent": self.intent,
        }


# =============================================================================
# Ticket Classifier
# =============================================================================


class TicketClassifier:
    """Classifies tickets by keyword matching.

    Keyword hits are counted on word boundaries, case-insensitively. The
    vocabulary is injected so the classifier holds no global state.

    Attributes:
        vocabulary: The keyword tables in use.
    """

    DEFAULT_TYPE = TicketType.FEATURE

    def __init__(self, vocabulary: Optional[ClassifierVocabulary] = None) -> None:
        self.vocabulary = vocabulary or DEFAULT_VOCABULARY
        self._type_patterns: dict[TicketType, list[re.Pattern]] = {
            ticket_type: [self._word_pattern(kw) for kw in keywords]
            for ticket_type, keywords in self.vocabulary.type_keywords.items()
        }
        self._keyword_patterns: list[tuple[str, re.Pattern]] = [
            (kw, self._word_pattern(kw)) for kw in self.vocabulary.technical_keywords
        ]

    @staticmethod
    def _word_pattern(keyword: str) -> re.Pattern:
        return re.compile(rf"\b{re.escape(keyword)}\b", re.IGNORECASE)

    @staticmethod
    def normalize_text(title: str, description: Optional[str]) -> str:
        """Combine title and description into lower-cased search text."""
        return f"{title} {description or ''}".lower().strip()

    def classify(self, text: str) -> tuple[TicketType, float]:
        """Classify text into a ticket type.

        The type with the most keyword hits wins. When no keyword matches,
        or when several types share the highest count, the result is
        ``feature``.

        Args:
            text: Ticket text (any case).

        Returns:
            A tuple of (TicketType, confidence). Confidence is 0.3 without
            hits, otherwise ``min(hits / 3, 1)``.
        """
        text = (text or "").lower()
        scores = {
            ticket_type: sum(1 for pattern in patterns if pattern.search(text))
            for ticket_type, patterns in self._type_patterns.items()
        }

        best_score = max(scores.values(), default=0)
        if best_score == 0:
            logger.debug("No type keywords matched, defaulting to %s", self.DEFAULT_TYPE.value)
            return (self.DEFAULT_TYPE, 0.3)

        leaders = [t for t, score in scores.items() if score == best_score]
        ticket_type = leaders[0] if len(leaders) == 1 else self.DEFAULT_TYPE
        confidence = min(best_score / 3, 1.0)

        logger.debug(
            "Classified ticket type: %s (hits=%d, tied=%s, confidence=%.2f)",
            ticket_type.value,
            best_score,
            len(leaders) > 1,
            confidence,
        )
        return (ticket_type, confidence)

    def extract_keywords(self, text: str) -> list[str]:
        """Return technical keywords found in ``text`` in vocabulary order."""
        text = (text or "").lower()
        found = [kw for kw, pattern in self._keyword_patterns if pattern.search(text)]
        return list(dict.fromkeys(found))

    def suggest_agents(self, ticket_type: TicketType, keywords: Iterable[str]) -> list[str]:
        """Suggest agent types for a ticket.

        Starts from the per-type list, then appends ``security-auditor`` for
        security keywords and ``architect`` for database/schema keywords.
        """
        keywords = set(keywords)
        agents = list(self.vocabulary.agents_by_type.get(ticket_type, ()))

        if keywords & self.vocabulary.security_keywords:
            agents.append("security-auditor")
        if keywords & self.vocabulary.architecture_keywords:
            agents.append("architect")

        return list(dict.fromkeys(agents))

    def suggest_labels(
        self,
        ticket_type: TicketType,
        keywords: Iterable[str],
        existing_labels: Iterable[str] = (),
    ) -> list[str]:
        """Existing labels, then the type, then labels mapped from keywords."""
        labels = list(existing_labels)
        labels.append(ticket_type.value)
        for keyword in keywords:
            mapped = self.vocabulary.label_mappings.get(keyword)
            if mapped:
                labels.append(mapped)
        return list(dict.fromkeys(labels))

    def suggest_topology(self, agent_count: int, text: str) -> Topology:
        """Coarse topology hint from agent count and cross-cutting phrasing.

        Indicators are matched as substrings.
        """
        if agent_count == 1:
            return Topology.SINGLE

        has_indicator = any(ind in text for ind in self.vocabulary.complexity_indicators)
        if agent_count > 3 or has_indicator:
            return Topology.HIERARCHICAL

        return Topology.MESH

    def extract_intent(self, title: str) -> str:
        """Map the title's leading verb to an intent.

        Falls back to the title's first word, or ``task`` for an empty title.
        """
        lower_title = (title or "").lower().strip()
        for verb, intent in self.vocabulary.intent_verbs.items():
            if lower_title.startswith(verb):
                return intent

        words = lower_title.split()
        return words[0] if words else "task"

    def analyze(self, ticket: TicketInput) -> AnalysisResult:
        """Analyze a ticket end to end.

        Args:
            ticket: The ticket to analyze.

        Returns:
            The AnalysisResult for the ticket.
        """
        text = self.normalize_text(ticket.title, ticket.description)

        ticket_type, confidence = self.classify(text)
        keywords = self.extract_keywords(text)
        agents = self.suggest_agents(ticket_type, keywords)

        result = AnalysisResult(
            ticket_type=ticket_type,
            keywords=keywords,
            confidence=confidence,
            suggested_agents=agents,
            suggested_topology=self.suggest_topology(len(agents), text),
            suggested_labels=self.suggest_labels(ticket_type, keywords, ticket.sorted_labels()),
            intent=self.extract_intent(ticket.title),
        )

        logger.debug(
            "Analysis: type=%s, keywords=%s, agents=%s, topology=%s, intent=%s",
            result.ticket_type.value,
            result.keywords,
            result.suggested_agents,
            result.suggested_topology.value,
            result.intent,
        )
        return result


__all__ = ["AnalysisResult", "TicketClassifier"]
