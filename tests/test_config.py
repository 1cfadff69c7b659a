"""Tests for minigame configuration and difficulty tiers."""

import pytest
from pydantic import ValidationError

from skillcheck.config.minigames import (
    MemorySequenceConfig,
    MinigameType,
    ThermiteConfig,
    load_config,
    parse_minigame_type,
    resolve_config,
)
from skillcheck.config.settings import Settings
from skillcheck.errors import UnknownMinigameError


def test_memory_sequence_easy_tier():
    """Easy memory sequence is a 3x3 grid with four steps."""
    config = resolve_config("memory_sequence", "easy")
    assert isinstance(config, MemorySequenceConfig)
    assert config.grid_size == 3
    assert config.sequence_length == 4
    assert config.duration == 5000


def test_thermite_hard_tier():
    """Thermite carries both the memorize window and the solve duration."""
    config = resolve_config(MinigameType.THERMITE, "hard")
    assert isinstance(config, ThermiteConfig)
    assert (config.grid_size, config.target_count) == (7, 5)
    assert config.display_time == 3000
    assert config.duration == 8000


@pytest.mark.parametrize("minigame, field, values", [
    ("circuit_solver", "grid_size", (3, 4, 5)),
    ("code_cracker", "code_length", (4, 5, 6)),
    ("code_cracker", "attempts", (6, 5, 4)),
    ("safe_cracker", "max_rotations", (1, 2, 3)),
    ("safe_cracker", "zones", (5, 4, 3)),
])
def test_tiers_scale_with_difficulty(minigame, field, values):
    """Each tier maps to the documented parameter."""
    resolved = tuple(
        getattr(resolve_config(minigame, difficulty), field)
        for difficulty in ("easy", "normal", "hard")
    )
    assert resolved == values


def test_default_difficulty_is_normal():
    """Leaving difficulty out selects the normal tier."""
    config = resolve_config("code_cracker")
    assert config.difficulty == "normal"
    assert config.duration == 30000


def test_duration_override():
    """A caller-supplied duration replaces the tier default."""
    assert resolve_config("safe_cracker", "easy", duration=12000).duration == 12000


def test_unknown_minigame_type():
    """Unknown identifiers raise an error that is also a ValueError."""
    with pytest.raises(UnknownMinigameError) as exc_info:
        resolve_config("lockpick", "easy")
    assert isinstance(exc_info.value, ValueError)
    assert exc_info.value.minigame_type == "lockpick"
    with pytest.raises(UnknownMinigameError):
        parse_minigame_type("")


def test_unknown_difficulty_is_rejected():
    """Difficulty must be one of the three tiers."""
    with pytest.raises(ValidationError):
        resolve_config("thermite", "insane")


def test_non_positive_duration_is_rejected():
    with pytest.raises(ValidationError):
        resolve_config("circuit_solver", duration=0)


def test_load_config_accepts_camel_case():
    """Host payloads use camelCase keys."""
    config = load_config("memory_sequence", {"gridSize": 3, "sequenceLength": 9, "soundEnabled": False})
    assert config.grid_size == 3
    assert config.sequence_length == 9
    assert config.sound_enabled is False


def test_sequence_longer_than_grid_is_rejected():
    """A sequence of distinct cells cannot exceed the grid area."""
    with pytest.raises(ValidationError):
        load_config("memory_sequence", {"gridSize": 3, "sequenceLength": 10})


def test_unknown_fields_are_rejected():
    with pytest.raises(ValidationError):
        load_config("thermite", {"lives": 5})


def test_config_is_immutable():
    """Config objects are frozen once validated."""
    config = resolve_config("thermite")
    with pytest.raises(ValidationError):
        config.grid_size = 12


def test_dump_by_alias_uses_camel_case():
    payload = resolve_config("thermite", "easy").model_dump(by_alias=True)
    assert payload["gridSize"] == 5
    assert payload["displayTime"] == 3000
    assert payload["targetCount"] == 3


def test_settings_from_environment(monkeypatch):
    """Settings read SKILLCHECK_ prefixed environment variables."""
    monkeypatch.setenv("SKILLCHECK_SUCCESS_DELAY_MS", "250")
    monkeypatch.setenv("SKILLCHECK_DEFAULT_DIFFICULTY", "hard")
    settings = Settings(_env_file=None)
    assert settings.success_delay_ms == 250.0
    assert settings.default_difficulty == "hard"
    assert settings.tick_interval_ms == 10.0
