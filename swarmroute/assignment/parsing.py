"""Strategy-based parsing of memory service responses.

The memory service gives no guarantee about the shape of a search response:
it may be decoded JSON, a JSON document, several JSON objects embedded in
log-like text, or free text. Parsing is therefore an ordered list of
strategies. Each strategy either declines (returns None) or returns the
records it recognised; the first strategy with a non-empty result wins.

Strategies only catch the errors that signal "not my shape" (ValueError,
which covers json.JSONDecodeError, and pydantic.ValidationError). Anything
else is a bug and propagates.

Key Components:
    Strategy: A named parsing function.
    StrategyParser: Runs strategies in order, strictly or leniently.
    structured_strategy / json_array_strategy / json_objects_strategy /
    regex_strategy: Strategy builders.

Example:
    >>> parser = StrategyParser([
    ...     structured_strategy(Pattern.from_payload),
    ...     json_array_strategy(Pattern.from_payload),
    ... ])
    >>> parser.parse('[{"id": "p1", "keywords": ["api"]}]')
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Optional, Sequence

from pydantic import ValidationError

from swarmroute.core.exceptions import PatternParseError


logger = logging.getLogger(__name__)


ItemBuilder = Callable[[Any, str], Any]
"""Turns one decoded JSON item and a fallback id into a record (or raises)."""

MatchBuilder = Callable[["re.Match[str]"], Any]
"""Turns one regex match into a record (or raises)."""


_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")
_JSON_OBJECT_LAZY = re.compile(r"\{[\s\S]*?\}")
_JSON_OBJECT_GREEDY = re.compile(r"\{[\s\S]*\}")


@dataclass(frozen=True)
class Strategy:
    """A named parsing function returning records or None."""

    name: str
    parse: Callable[[Any], Optional[list]]


def as_text(payload: Any) -> Optional[str]:
    """Return the payload as text, or None when it is not textual."""
    if isinstance(payload, bytes):
        return payload.decode("utf-8", errors="replace")
    if isinstance(payload, str):
        return payload
    return None


def split_list(raw: str) -> list[str]:
    """Split a bracketed text list body (``'a', "b", c``) into clean items."""
    items = [part.strip().replace("'", "").replace('"', "") for part in raw.split(",")]
    return [item for item in items if item]


def _build_items(items: Sequence[Any], build: ItemBuilder, prefix: str) -> list:
    records = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            continue
        try:
            records.append(build(item, f"{prefix}-{index}"))
        except (ValueError, ValidationError) as e:
            logger.debug("Skipping malformed item %d: %s", index, e)
    return records


# =============================================================================
# Strategy Builders
# =============================================================================


def structured_strategy(build: ItemBuilder, prefix: str = "pattern") -> Strategy:
    """Accept responses that are already decoded JSON (list or dict)."""

    def parse(payload: Any) -> Optional[list]:
        if isinstance(payload, dict):
            return _build_items([payload], build, prefix)
        if isinstance(payload, list):
            return _build_items(payload, build, prefix)
        return None

    return Strategy("structured", parse)


def json_array_strategy(build: ItemBuilder, prefix: str = "pattern") -> Strategy:
    """Find one JSON array in the text and build a record per element."""

    def parse(payload: Any) -> Optional[list]:
        text = as_text(payload)
        if not text:
            return None
        match = _JSON_ARRAY.search(text)
        if not match:
            return None
        try:
            decoded = json.loads(match.group(0))
        except ValueError:
            return None
        if not isinstance(decoded, list):
            return None
        return _build_items(decoded, build, prefix)

    return Strategy("json-array", parse)


def json_objects_strategy(
    build: ItemBuilder,
    prefix: str = "pattern",
    greedy: bool = False,
) -> Strategy:
    """Decode JSON objects embedded in text.

    The lazy form decodes every flat ``{...}`` it finds and skips malformed
    ones. The greedy form decodes the single span from the first ``{`` to
    the last ``}``, which suits single-result responses with nested values.
    """

    def parse(payload: Any) -> Optional[list]:
        text = as_text(payload)
        if not text:
            return None

        if greedy:
            match = _JSON_OBJECT_GREEDY.search(text)
            candidates = [match.group(0)] if match else []
        else:
            candidates = [m.group(0) for m in _JSON_OBJECT_LAZY.finditer(text)]

        decoded = []
        for candidate in candidates:
            try:
                decoded.append(json.loads(candidate))
            except ValueError:
                continue
        if not decoded:
            return None
        return _build_items(decoded, build, prefix)

    return Strategy("json-objects-greedy" if greedy else "json-objects", parse)


def regex_strategy(pattern: "re.Pattern[str]", build: MatchBuilder, find_all: bool = True) -> Strategy:
    """Build records from regex matches over free text."""

    def parse(payload: Any) -> Optional[list]:
        text = as_text(payload)
        if not text:
            return None
        matches = list(pattern.finditer(text)) if find_all else [pattern.search(text)]
        records = []
        for match in matches:
            if match is None:
                continue
            try:
                records.append(build(match))
            except (ValueError, ValidationError) as e:
                logger.debug("Skipping malformed text match: %s", e)
        return records or None

    return Strategy("text", parse)


# =============================================================================
# Strategy Parser
# =============================================================================


class StrategyParser:
    """Runs parser strategies in order.

    Attributes:
        strategies: Strategies, tried first to last.
    """

    def __init__(self, strategies: Sequence[Strategy]) -> None:
        self.strategies = tuple(strategies)

    def results(self, payload: Any) -> Iterator[tuple[str, list]]:
        """Yield ``(strategy name, records)`` for every strategy with records."""
        for strategy in self.strategies:
            records = strategy.parse(payload)
            if records:
                yield strategy.name, records

    def parse_strict(self, payload: Any) -> list:
        """Return the first non-empty strategy result.

        Empty payloads give an empty list.

        Raises:
            PatternParseError: If the payload is non-empty and every
                strategy declines it.
        """
        if payload is None:
            return []
        if isinstance(payload, (str, bytes, list, dict)) and not payload:
            return []

        for name, records in self.results(payload):
            logger.debug("Parsed %d records with the %s strategy", len(records), name)
            return records

        preview = as_text(payload)
        raise PatternParseError(
            "No parser strategy recognised the memory response",
            payload=preview if preview is not None else repr(payload),
        )

    def parse(self, payload: Any) -> list:
        """Like parse_strict, but an unrecognised payload yields no records."""
        try:
            return self.parse_strict(payload)
        except PatternParseError as e:
            logger.debug("Unparseable memory response: %s", e.to_log_dict())
            return []


__all__ = [
    "Strategy",
    "StrategyParser",
    "structured_strategy",
    "json_array_strategy",
    "json_objects_strategy",
    "regex_strategy",
    "split_list",
    "as_text",
]
