"""Pydantic settings for SwarmRoute.

This module defines the main SwarmRouteSettings class that loads configuration
from environment variables and .env files. It uses pydantic-settings for
automatic environment variable parsing and validation.

Settings Categories:
    - Core: Debug mode, log level, environment
    - Patterns: Thresholds and namespaces for learned-pattern matching
    - Router: Agent router thresholds and namespace
    - Complexity: Complexity normalization and history lookup
    - Time Estimate: Historical blending parameters
    - Memory: Memory service backend selection

Environment Variables:
    SWARMROUTE_DEBUG: Enable debug mode (default: false)
    SWARMROUTE_LOG_LEVEL: Logging level (default: INFO)
    SWARMROUTE_PATTERNS__MIN_SIMILARITY: Minimum Jaccard similarity (default: 0.6)
    SWARMROUTE_PATTERNS__MIN_SUCCESS_RATE: Minimum pattern success rate (default: 0.7)
    SWARMROUTE_ROUTER__MIN_PATTERN_SUCCESS_RATE: Learned assignment threshold (default: 0.7)
    SWARMROUTE_MEMORY__BACKEND: 'memory' or 'filesystem' (default: memory)
    SWARMROUTE_MEMORY__BASE_PATH: Directory for the filesystem backend

Usage:
    from swarmroute.config.settings import get_settings

    settings = get_settings()
    print(settings.patterns.min_similarity)
    print(settings.memory.backend)
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# =============================================================================
# Default Constants
# =============================================================================

DEFAULT_MIN_SIMILARITY = 0.6
"""Minimum Jaccard similarity for a pattern to qualify."""

DEFAULT_MIN_SUCCESS_RATE = 0.7
"""Minimum success rate for a pattern or learned assignment to be used."""

DEFAULT_MAX_RAW_COMPLEXITY = 12.5
"""Theoretical maximum of the weighted complexity sum."""


# =============================================================================
# Nested Settings Models
# =============================================================================


class PatternSettings(BaseModel):
    """Settings for the pattern matcher.

    Attributes:
        namespace: Memory namespace holding learned patterns.
        performance_namespace: Memory namespace holding outcome records.
        min_similarity: Minimum Jaccard similarity for a qualifying pattern.
        min_success_rate: Minimum success rate for a qualifying pattern.
        limit: Maximum patterns returned in a match result.
        search_limit: Results requested per keyword search.
        min_performance_records: Records needed before a success rate is recomputed.
        performance_search_limit: Records fetched when recomputing a success rate.
    """

    namespace: str = Field(default="patterns", description="Pattern namespace")
    performance_namespace: str = Field(
        default="pattern-performance",
        description="Namespace for pattern performance records"
    )
    min_similarity: float = Field(
        default=DEFAULT_MIN_SIMILARITY,
        ge=0.0,
        le=1.0,
        description="Minimum Jaccard similarity"
    )
    min_success_rate: float = Field(
        default=DEFAULT_MIN_SUCCESS_RATE,
        ge=0.0,
        le=1.0,
        description="Minimum pattern success rate"
    )
    limit: int = Field(default=5, ge=1, description="Patterns returned per match")
    search_limit: int = Field(default=5, ge=1, description="Results per keyword search")
    min_performance_records: int = Field(
        default=3,
        ge=1,
        description="Records needed to recompute a success rate"
    )
    performance_search_limit: int = Field(
        default=20,
        ge=1,
        description="Records fetched to recompute a success rate"
    )


class RouterSettings(BaseModel):
    """Settings for the agent router.

    Attributes:
        namespace: Memory namespace for stored assignments.
        min_pattern_success_rate: Threshold for accepting a learned assignment.
        analysis_confidence_scale: Factor applied to analysis confidence when
            no learned pattern is used.
        coordinator_priority: Priority given to a synthetic coordinator.
        hierarchical_agent_threshold: Agent count above which the topology is
            upgraded to hierarchical.
    """

    namespace: str = Field(default="agent-assignments", description="Assignment namespace")
    min_pattern_success_rate: float = Field(
        default=DEFAULT_MIN_SUCCESS_RATE,
        ge=0.0,
        le=1.0,
        description="Threshold for accepting a learned assignment"
    )
    analysis_confidence_scale: float = Field(
        default=0.8,
        ge=0.0,
        le=1.0,
        description="Confidence scale for analysis-derived assignments"
    )
    coordinator_priority: int = Field(default=100, ge=1, description="Synthetic coordinator priority")
    hierarchical_agent_threshold: int = Field(
        default=4,
        ge=1,
        description="Agent count above which hierarchical is forced"
    )


class ComplexitySettings(BaseModel):
    """Settings for complexity scoring.

    Attributes:
        max_raw_score: Raw weighted sum mapped to a score of 10.
        history_limit: Similar completed tickets averaged for the history factor.
    """

    max_raw_score: float = Field(
        default=DEFAULT_MAX_RAW_COMPLEXITY,
        gt=0.0,
        description="Raw score that maps to complexity 10"
    )
    history_limit: int = Field(default=5, ge=1, description="Similar tickets to average")


class TimeEstimateSettings(BaseModel):
    """Settings for completion time estimation.

    Attributes:
        min_historical_samples: Samples required before blending history in.
        history_limit: Completed tickets inspected for durations.
        max_historical_weight: Upper bound on the weight given to history.
    """

    min_historical_samples: int = Field(default=3, ge=1, description="Samples required for hybrid")
    history_limit: int = Field(default=20, ge=1, description="Completed tickets inspected")
    max_historical_weight: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Maximum weight given to historical data"
    )


class MemorySettings(BaseModel):
    """Settings for the memory service backend.

    Attributes:
        backend: Memory service backend ('memory' or 'filesystem').
        base_path: Directory used by the filesystem backend.
        lock_timeout: Seconds to wait for a namespace file lock.

    Backend Types:
        - 'memory': In-process storage. Data is lost on restart.
        - 'filesystem': JSON file per namespace under base_path, guarded
            by portalocker file locks.
    """

    backend: str = Field(
        default="memory",
        description="Memory backend type: 'memory' or 'filesystem'"
    )
    base_path: Path = Field(
        default=Path("data/memory"),
        description="Directory for the filesystem backend"
    )
    lock_timeout: float = Field(default=10.0, gt=0.0, description="File lock timeout in seconds")

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        """Validate memory backend type."""
        valid_backends = {"filesystem", "memory"}
        normalized = v.lower().strip()
        if normalized not in valid_backends:
            raise ValueError(
                f"Invalid memory backend '{v}'. Must be one of: {', '.join(sorted(valid_backends))}"
            )
        return normalized

    @field_validator("base_path", mode="before")
    @classmethod
    def convert_to_path(cls, v: Any) -> Path:
        """Convert string paths to Path objects."""
        if isinstance(v, str):
            return Path(v)
        return v


# =============================================================================
# Main Settings Class
# =============================================================================


class SwarmRouteSettings(BaseSettings):
    """Main settings class for SwarmRoute configuration.

    Environment variables use the SWARMROUTE_ prefix; nested groups use a
    double underscore delimiter (SWARMROUTE_PATTERNS__MIN_SIMILARITY=0.5).

    Attributes:
        debug: Enable debug mode for verbose logging.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        environment: Deployment environment (development, staging, production, test).
        patterns: Pattern matcher configuration.
        router: Agent router configuration.
        complexity: Complexity estimator configuration.
        time_estimate: Time estimator configuration.
        memory: Memory service backend configuration.
    """

    model_config = SettingsConfigDict(
        env_prefix="SWARMROUTE_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")
    environment: str = Field(default="development", description="Deployment environment")

    patterns: PatternSettings = Field(
        default_factory=PatternSettings,
        description="Pattern matcher configuration"
    )
    router: RouterSettings = Field(
        default_factory=RouterSettings,
        description="Agent router configuration"
    )
    complexity: ComplexitySettings = Field(
        default_factory=ComplexitySettings,
        description="Complexity estimator configuration"
    )
    time_estimate: TimeEstimateSettings = Field(
        default_factory=TimeEstimateSettings,
        description="Time estimator configuration"
    )
    memory: MemorySettings = Field(
        default_factory=MemorySettings,
        description="Memory service configuration"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        normalized = v.upper()
        if normalized not in valid_levels:
            raise ValueError(
                f"Invalid log level '{v}'. Must be one of: {', '.join(sorted(valid_levels))}"
            )
        return normalized

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate and normalize environment."""
        valid_envs = {"development", "staging", "production", "test"}
        normalized = v.lower()
        if normalized not in valid_envs:
            raise ValueError(
                f"Invalid environment '{v}'. Must be one of: {', '.join(sorted(valid_envs))}"
            )
        return normalized

    def to_dict(self) -> dict[str, Any]:
        """Export settings as a JSON-friendly dictionary."""
        return self.model_dump(mode="json")


# =============================================================================
# Cached Instance
# =============================================================================

_settings_instance: Optional[SwarmRouteSettings] = None


def get_settings() -> SwarmRouteSettings:
    """Get the cached settings instance.

    Settings are created once and cached to avoid repeated .env parsing.
    Services never read this cache themselves; the application boundary
    passes the settings object into the services it constructs.

    Returns:
        The cached SwarmRouteSettings instance.
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = SwarmRouteSettings()
    return _settings_instance


def reload_settings() -> SwarmRouteSettings:
    """Reload settings from environment, clearing the cache.

    Returns:
        A fresh SwarmRouteSettings instance.
    """
    global _settings_instance
    _settings_instance = SwarmRouteSettings()
    return _settings_instance


def clear_settings_cache() -> None:
    """Clear the settings cache without creating a new instance."""
    global _settings_instance
    _settings_instance = None


__all__ = [
    "SwarmRouteSettings",
    "PatternSettings",
    "RouterSettings",
    "ComplexitySettings",
    "TimeEstimateSettings",
    "MemorySettings",
    "get_settings",
    "reload_settings",
    "clear_settings_cache",
    "DEFAULT_MIN_SIMILARITY",
    "DEFAULT_MIN_SUCCESS_RATE",
    "DEFAULT_MAX_RAW_COMPLEXITY",
]
