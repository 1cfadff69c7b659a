# tests/conftest.py
import random

import pytest

from skillcheck.config.minigames import load_config
from skillcheck.config.settings import Settings
from skillcheck.core.clock import ManualClock, Scheduler
from skillcheck.minigames.manager import MinigameHost


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def scheduler(clock):
    return Scheduler(clock, tick_ms=10.0)


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def make_game(scheduler, rng):
    """Build a minigame from snake_case config fields on the manual clock."""
    def factory(minigame_cls, **fields):
        config = load_config(minigame_cls.name, fields)
        return minigame_cls(config, scheduler, rng=rng)
    return factory


@pytest.fixture
def host(scheduler, settings):
    return MinigameHost(scheduler=scheduler, settings=settings, rng=random.Random(99))

