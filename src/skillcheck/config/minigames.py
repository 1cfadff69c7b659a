"""
Minigame configuration schema and difficulty resolver.

Each minigame reads an immutable config model at session start. On the wire
the fields are camelCase (``gridSize``, ``soundEnabled``); Python code uses
snake_case. Both spellings are accepted when validating.

Usage:
    from skillcheck.config.minigames import resolve_config
    config = resolve_config("thermite", "hard")
    payload = config.model_dump(by_alias=True)
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from skillcheck.errors import UnknownMinigameError

Difficulty = Literal["easy", "normal", "hard"]
DIFFICULTIES: tuple[str, ...] = ("easy", "normal", "hard")


class MinigameType(str, Enum):
    MEMORY_SEQUENCE = "memory_sequence"
    CIRCUIT_SOLVER = "circuit_solver"
    CODE_CRACKER = "code_cracker"
    SAFE_CRACKER = "safe_cracker"
    THERMITE = "thermite"


# ═══════════════════════════════════════════════════════════════
# Config models
# ═══════════════════════════════════════════════════════════════

class BaseConfig(BaseModel):
    """Fields shared by every minigame."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    difficulty: Difficulty = "normal"
    duration: int = Field(default=30000, gt=0)   # ms
    sound_enabled: bool = True


class MemorySequenceConfig(BaseConfig):
    """Observe a sequence of tiles, then repeat it."""
    duration: int = Field(default=5000, gt=0)    # observe time per phase
    grid_size: int = Field(default=4, ge=2, le=10)
    sequence_length: int = Field(default=6, ge=1)

    @model_validator(mode="after")
    def _sequence_fits_grid(self) -> "MemorySequenceConfig":
        if self.sequence_length > self.grid_size ** 2:
            raise ValueError(
                f"sequence_length {self.sequence_length} exceeds "
                f"{self.grid_size}x{self.grid_size} grid"
            )
        return self


class CircuitSolverConfig(BaseConfig):
    """Rotate pieces until power reaches the destination."""
    grid_size: int = Field(default=4, ge=2, le=12)
    circuits: int = Field(default=3, ge=1)       # carried for hosts; one path is carved


class CodeCrackerConfig(BaseConfig):
    """Mastermind-style colour code."""
    code_length: int = Field(default=5, ge=1, le=12)
    attempts: int = Field(default=5, ge=1)


class SafeCrackerConfig(BaseConfig):
    """Turn the dial through hidden zones."""
    max_rotations: int = Field(default=2, ge=1)
    # Rejection sampling has no retry cap, so keep zone density low
    zones: int = Field(default=4, ge=1, le=8)


class ThermiteConfig(BaseConfig):
    """Memorize a pattern, then pick it back out."""
    duration: int = Field(default=8000, gt=0)
    display_time: int = Field(default=3000, gt=0)
    grid_size: int = Field(default=6, ge=2, le=12)
    target_count: int = Field(default=4, ge=1)


MinigameConfig = (
    MemorySequenceConfig
    | CircuitSolverConfig
    | CodeCrackerConfig
    | SafeCrackerConfig
    | ThermiteConfig
)

CONFIG_MODELS: dict[MinigameType, type[BaseConfig]] = {
    MinigameType.MEMORY_SEQUENCE: MemorySequenceConfig,
    MinigameType.CIRCUIT_SOLVER: CircuitSolverConfig,
    MinigameType.CODE_CRACKER: CodeCrackerConfig,
    MinigameType.SAFE_CRACKER: SafeCrackerConfig,
    MinigameType.THERMITE: ThermiteConfig,
}


# ═══════════════════════════════════════════════════════════════
# Difficulty tiers
# ═══════════════════════════════════════════════════════════════

DEFAULT_DURATIONS: dict[MinigameType, int] = {
    MinigameType.MEMORY_SEQUENCE: 5000,
    MinigameType.CIRCUIT_SOLVER: 30000,
    MinigameType.CODE_CRACKER: 30000,
    MinigameType.SAFE_CRACKER: 30000,
    MinigameType.THERMITE: 8000,
}

TIERS: dict[MinigameType, dict[str, dict[str, int]]] = {
    MinigameType.MEMORY_SEQUENCE: {
        "easy": {"grid_size": 3, "sequence_length": 4},
        "normal": {"grid_size": 4, "sequence_length": 6},
        "hard": {"grid_size": 5, "sequence_length": 8},
    },
    MinigameType.CIRCUIT_SOLVER: {
        "easy": {"grid_size": 3, "circuits": 2},
        "normal": {"grid_size": 4, "circuits": 3},
        "hard": {"grid_size": 5, "circuits": 4},
    },
    MinigameType.CODE_CRACKER: {
        "easy": {"code_length": 4, "attempts": 6},
        "normal": {"code_length": 5, "attempts": 5},
        "hard": {"code_length": 6, "attempts": 4},
    },
    MinigameType.SAFE_CRACKER: {
        "easy": {"max_rotations": 1, "zones": 5},
        "normal": {"max_rotations": 2, "zones": 4},
        "hard": {"max_rotations": 3, "zones": 3},
    },
    MinigameType.THERMITE: {
        "easy": {"grid_size": 5, "target_count": 3, "display_time": 3000},
        "normal": {"grid_size": 6, "target_count": 4, "display_time": 3000},
        "hard": {"grid_size": 7, "target_count": 5, "display_time": 3000},
    },
}


def parse_minigame_type(value: str | MinigameType) -> MinigameType:
    """Normalize an identifier, raising UnknownMinigameError if unregistered."""
    if isinstance(value, MinigameType):
        return value
    try:
        return MinigameType(value)
    except ValueError:
        raise UnknownMinigameError(str(value)) from None


def resolve_config(
    minigame_type: str | MinigameType,
    difficulty: Optional[str] = None,
    duration: Optional[int] = None,
    sound_enabled: bool = True,
) -> BaseConfig:
    """Map {minigame type, difficulty} to a concrete config.

    Args:
        minigame_type: One of the five identifiers
        difficulty: easy / normal / hard (default normal)
        duration: Override for the tier's default duration in ms
        sound_enabled: Whether the session emits sound effects

    Raises:
        UnknownMinigameError: minigame_type is not registered
        pydantic.ValidationError: difficulty or duration is out of range
    """
    kind = parse_minigame_type(minigame_type)
    difficulty = difficulty or "normal"
    tier = TIERS[kind].get(difficulty, {})

    fields: dict[str, Any] = {
        "difficulty": difficulty,
        "duration": duration if duration is not None else DEFAULT_DURATIONS[kind],
        "sound_enabled": sound_enabled,
        **tier,
    }
    return CONFIG_MODELS[kind].model_validate(fields)


def load_config(minigame_type: str | MinigameType, payload: dict[str, Any]) -> BaseConfig:
    """Validate a host-supplied (camelCase or snake_case) config payload."""
    kind = parse_minigame_type(minigame_type)
    return CONFIG_MODELS[kind].model_validate(payload)
