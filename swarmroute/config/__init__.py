"""Configuration module for SwarmRoute.

Centralized configuration management using pydantic-settings, with .env
support and validated nested groups.

Usage:
    from swarmroute.config import get_settings, SwarmRouteSettings

    settings = get_settings()
    print(settings.patterns.min_similarity)
"""

from swarmroute.config.settings import (
    SwarmRouteSettings,
    PatternSettings,
    RouterSettings,
    ComplexitySettings,
    TimeEstimateSettings,
    MemorySettings,
    get_settings,
    reload_settings,
    clear_settings_cache,
    DEFAULT_MIN_SIMILARITY,
    DEFAULT_MIN_SUCCESS_RATE,
    DEFAULT_MAX_RAW_COMPLEXITY,
)

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
