"""Logging setup for the SwarmRoute CLI.

Console output uses a bracketed text format; the optional log file gets
JSON Lines so decisions can be machine-parsed later.

Key Components:
    - SwarmRouteLogFormatter: ``[TIMESTAMP] [LEVEL] [COMPONENT] message``
    - JsonLinesFormatter: One JSON object per record, for log files
    - setup_logging: Configure the ``swarmroute`` logger hierarchy

Example:
    [2026-01-12 10:30:45] [DEBUG] [TOPOLOGY] Topology decision: mesh (confidence=0.80) ...
    {"timestamp":"2026-01-12T10:30:45+00:00","level":"WARNING","component":"DEPENDENCIES","message":"..."}
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union


# =============================================================================
# Constants
# =============================================================================

# Max log file size (10MB)
LOG_MAX_BYTES = 10 * 1024 * 1024

# Number of backup files to keep
LOG_BACKUP_COUNT = 5

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

ROOT_LOGGER_NAME = "swarmroute"


# =============================================================================
# Formatters
# =============================================================================


def component_of(record: logging.LogRecord) -> str:
    """Last segment of the logger name, upper-cased (``ROUTER``)."""
    return record.name.split(".")[-1].upper()


class SwarmRouteLogFormatter(logging.Formatter):
    """Human-readable console formatter.

    Format:
        [TIMESTAMP] [LEVEL] [COMPONENT] Message
    """

    STANDARD_FORMAT = "[%(asctime)s] [%(levelname)s] [%(component)s] %(message)s"
    DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

    def __init__(self) -> None:
        super().__init__(fmt=self.STANDARD_FORMAT, datefmt=self.DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "component"):
            record.component = component_of(record)
        return super().format(record)


class JsonLinesFormatter(logging.Formatter):
    """JSON Lines formatter for log files.

    Extra fields passed through ``extra={"context": {...}}`` are included
    under ``context``.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "component": getattr(record, "component", component_of(record)),
            "message": record.getMessage(),
        }

        context = getattr(record, "context", None)
        if context:
            entry["context"] = context

        if record.exc_info:
            entry["error_type"] = record.exc_info[0].__name__ if record.exc_info[0] else None
            entry["error"] = self.formatException(record.exc_info)

        return json.dumps(entry, separators=(",", ":"), default=str)


# =============================================================================
# Setup
# =============================================================================


def resolve_level(level: Union[int, str]) -> int:
    """Map a level name (any case) or number to a logging level."""
    if isinstance(level, int):
        return level
    return LOG_LEVELS.get(level.upper(), logging.INFO)


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Path] = None,
    max_bytes: int = LOG_MAX_BYTES,
    backup_count: int = LOG_BACKUP_COUNT,
) -> logging.Logger:
    """Configure the ``swarmroute`` logger.

    Replaces any handlers installed by an earlier call, so it is safe to
    call once per CLI invocation.

    Args:
        level: Logging level (name or number).
        log_file: Optional JSON Lines log file, rotated by size.
        max_bytes: Max size before rotation (default 10MB).
        backup_count: Number of backup files (default 5).

    Returns:
        The configured ``swarmroute`` logger.
    """
    resolved = resolve_level(level)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(resolved)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler()
    console.setLevel(resolved)
    console.setFormatter(SwarmRouteLogFormatter())
    logger.addHandler(console)

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            filename=log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(resolved)
        file_handler.setFormatter(JsonLinesFormatter())
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger


__all__ = [
    "SwarmRouteLogFormatter",
    "JsonLinesFormatter",
    "setup_logging",
    "resolve_level",
    "LOG_LEVELS",
]
