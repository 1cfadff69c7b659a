"""Configuration for skillcheck: environment settings and minigame tiers."""

from .settings import Settings, get_settings
from .minigames import (
    MinigameType,
    BaseConfig,
    MemorySequenceConfig,
    CircuitSolverConfig,
    CodeCrackerConfig,
    SafeCrackerConfig,
    ThermiteConfig,
    resolve_config,
    load_config,
    parse_minigame_type,
)

__all__ = [
    "Settings",
    "get_settings",
    "MinigameType",
    "BaseConfig",
    "MemorySequenceConfig",
    "CircuitSolverConfig",
    "CodeCrackerConfig",
    "SafeCrackerConfig",
    "ThermiteConfig",
    "resolve_config",
    "load_config",
    "parse_minigame_type",
]
