"""Immutable vocabulary tables for ticket classification.

All keyword lists the classifier consults are gathered into one frozen
ClassifierVocabulary. The classifier receives it at construction, so tests
and callers can swap in their own tables without touching module state.

Key Components:
    ClassifierVocabulary: Frozen bundle of keyword and mapping tables.
    DEFAULT_VOCABULARY: The vocabulary used when none is injected.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from swarmroute.core.types import TicketType


def _freeze(mapping: dict) -> Mapping:
    return MappingProxyType(dict(mapping))


# =============================================================================
# Default Tables
# =============================================================================

_TYPE_KEYWORDS = {
    TicketType.FEATURE: (
        "add", "implement", "create", "build", "new", "introduce", "develop", "enable",
    ),
    TicketType.BUG: (
        "fix", "bug", "error", "issue", "broken", "crash", "fail", "incorrect", "wrong", "defect",
    ),
    TicketType.REFACTOR: (
        "refactor", "improve", "optimize", "clean", "restructure", "reorganize", "simplify",
        "enhance",
    ),
    TicketType.DOCS: (
        "document", "readme", "docs", "comment", "explain", "describe", "update docs", "jsdoc",
    ),
    TicketType.TEST: (
        "test", "coverage", "spec", "unit", "e2e", "integration", "playwright", "vitest",
    ),
    TicketType.CHORE: (
        "update", "upgrade", "config", "setup", "install", "dependency", "deps", "bump",
        "maintenance",
    ),
}

_TECHNICAL_KEYWORDS = (
    "api", "database", "db", "auth", "authentication", "authorization", "ui", "frontend",
    "backend", "security", "performance", "cache", "redis", "websocket", "socket", "rest",
    "graphql", "prisma", "svelte", "typescript", "css", "tailwind", "component", "endpoint",
    "migration", "schema", "query", "mutation", "hook", "store", "state", "async", "worker",
    "queue", "real-time", "realtime", "ssr", "sveltekit", "routing",
)

_AGENTS_BY_TYPE = {
    TicketType.FEATURE: ("planner", "coder", "tester", "reviewer"),
    TicketType.BUG: ("researcher", "coder", "tester"),
    TicketType.REFACTOR: ("architect", "coder", "reviewer"),
    TicketType.DOCS: ("researcher", "api-docs"),
    TicketType.TEST: ("tester", "reviewer"),
    TicketType.CHORE: ("coder",),
}

_LABEL_MAPPINGS = {
    "api": "api",
    "database": "database",
    "db": "database",
    "auth": "security",
    "authentication": "security",
    "authorization": "security",
    "security": "security",
    "performance": "performance",
    "cache": "performance",
    "redis": "infrastructure",
    "websocket": "realtime",
    "socket": "realtime",
    "frontend": "frontend",
    "ui": "frontend",
    "backend": "backend",
    "migration": "database",
    "schema": "database",
}

_INTENT_VERBS = {
    "add": "addition",
    "implement": "implementation",
    "create": "creation",
    "build": "construction",
    "fix": "correction",
    "update": "update",
    "remove": "removal",
    "delete": "deletion",
    "refactor": "refactoring",
    "optimize": "optimization",
    "test": "testing",
    "document": "documentation",
}


# =============================================================================
# Vocabulary Bundle
# =============================================================================


@dataclass(frozen=True)
class ClassifierVocabulary:
    """Keyword tables consulted by TicketClassifier.

    Attributes:
        type_keywords: Keywords counted towards each ticket type.
        technical_keywords: Technical vocabulary, in extraction order.
        agents_by_type: Base agent list per ticket type.
        security_keywords: Keywords that add a security auditor.
        architecture_keywords: Keywords that add an architect.
        label_mappings: Keyword to suggested label.
        complexity_indicators: Substrings that push the topology to hierarchical.
        intent_verbs: Leading title verb to intent.
    """

    type_keywords: Mapping[TicketType, tuple[str, ...]] = field(
        default_factory=lambda: _freeze(_TYPE_KEYWORDS)
    )
    technical_keywords: tuple[str, ...] = _TECHNICAL_KEYWORDS
    agents_by_type: Mapping[TicketType, tuple[str, ...]] = field(
        default_factory=lambda: _freeze(_AGENTS_BY_TYPE)
    )
    security_keywords: frozenset[str] = frozenset(
        {"auth", "authentication", "authorization", "security"}
    )
    architecture_keywords: frozenset[str] = frozenset(
        {"database", "schema", "migration", "architecture"}
    )
    label_mappings: Mapping[str, str] = field(default_factory=lambda: _freeze(_LABEL_MAPPINGS))
    complexity_indicators: tuple[str, ...] = (
        "multiple", "several", "complex", "integration", "cross-cutting",
        "across", "all", "every", "system-wide", "global",
    )
    intent_verbs: Mapping[str, str] = field(default_factory=lambda: _freeze(_INTENT_VERBS))


DEFAULT_VOCABULARY = ClassifierVocabulary()


__all__ = ["ClassifierVocabulary", "DEFAULT_VOCABULARY"]
