"""Tests for the minigame host: admission, exit and result delivery."""

import pytest

from skillcheck.config.minigames import BaseConfig, CircuitSolverConfig, ThermiteConfig
from skillcheck.core.clock import ManualClock, Scheduler
from skillcheck.core.events import EventType, exit_event, slot_event, submit_event
from skillcheck.core.state import State
from skillcheck.errors import SessionActiveError
from skillcheck.minigames.base import EffectKind, GameOutcome
from skillcheck.minigames.dispatcher import CompletionDispatcher
from skillcheck.minigames.thermite import ThermiteGame
from skillcheck.minigames.manager import (
    BUSY_MESSAGE,
    INVALID_TYPE_MESSAGE,
    AdmissionGate,
)


class Recorder:
    """Collects (success, data) callbacks."""

    def __init__(self):
        self.calls = []

    def __call__(self, success, data):
        self.calls.append((success, data))


def start_code_cracker(host, recorder, attempts=2):
    ok, error = host.start_session(
        "code_cracker", {"codeLength": 2, "attempts": attempts}, recorder
    )
    assert (ok, error) == (True, None)
    host.current_game.secret_code = ["red", "blue"]
    return host.current_game


def guess(host, first, second):
    host.handle_input(slot_event(0, first))
    host.handle_input(slot_event(1, second))
    return host.handle_input(submit_event())


def test_available_minigames(host):
    assert host.get_available_minigames() == [
        "memory_sequence",
        "circuit_solver",
        "code_cracker",
        "safe_cracker",
        "thermite",
    ]
    assert {info["name"] for info in host.describe_minigames()} == set(host.get_available_minigames())


def test_start_resolves_difficulty(host):
    recorder = Recorder()
    assert host.start_minigame("memory_sequence", "easy", callback=recorder) == (True, None)
    assert host.state == State.SESSION_ACTIVE
    assert host.current_game.config.grid_size == 3
    assert host.is_active


def test_second_start_is_refused(host):
    """Only one session may hold the gate."""
    first, second = Recorder(), Recorder()
    host.start_minigame("thermite", "easy", callback=first)
    assert host.start_minigame("code_cracker", "easy", callback=second) == (False, BUSY_MESSAGE)
    assert host.current_game.name == "thermite"
    assert second.calls == []


def test_unknown_type_from_start_minigame(host):
    assert host.start_minigame("lockpick", "easy") == (False, INVALID_TYPE_MESSAGE)
    assert host.state == State.IDLE
    assert not host.is_active


def test_invalid_difficulty_is_reported(host):
    ok, error = host.start_minigame("thermite", "insane")
    assert ok is False
    assert "difficulty" in error
    assert not host.is_active


def test_unknown_type_session_waits_for_exit(host, scheduler):
    """An unknown type shows an error until the player exits."""
    recorder = Recorder()
    assert host.start_session("lockpick", {}, recorder) == (False, INVALID_TYPE_MESSAGE)
    assert host.state == State.ERROR
    assert host.current_game is None
    assert scheduler.pending == 0
    assert host.start_minigame("thermite") == (False, BUSY_MESSAGE)
    assert host.get_lcd_text().startswith("ERROR")

    host.handle_input(exit_event())
    assert recorder.calls == [(False, {})]
    assert host.state == State.IDLE
    assert not host.is_active


def test_invalid_payload_releases_gate(host):
    ok, _ = host.start_session("memory_sequence", {"gridSize": 2, "sequenceLength": 5})
    assert ok is False
    assert not host.is_active
    assert host.state == State.IDLE


def test_exit_reports_empty_failure_once(host, scheduler):
    recorder = Recorder()
    host.start_minigame("circuit_solver", "easy", callback=recorder)
    assert host.exit() is True
    assert host.exit() is False

    assert recorder.calls == [(False, {})]
    assert host.state == State.IDLE
    assert scheduler.pending == 0
    scheduler.advance(60000)
    assert recorder.calls == [(False, {})]


def test_success_is_delivered_after_delay(host, scheduler):
    recorder = Recorder()
    start_code_cracker(host, recorder)
    scheduler.advance(1000)
    guess(host, "red", "blue")
    assert host.state == State.RESULT
    assert host.is_active

    scheduler.advance(1499)
    assert recorder.calls == []
    scheduler.advance(1)
    assert recorder.calls == [
        (True, {"timeRemaining": 29000, "attemptsUsed": 1, "secretCode": ["red", "blue"]})
    ]
    assert host.state == State.IDLE
    assert not host.is_active


def test_code_cracker_failure_waits_longer(host, scheduler):
    """The secret stays up for 2500ms after a failed code."""
    recorder = Recorder()
    start_code_cracker(host, recorder, attempts=1)
    guess(host, "pink", "pink")

    scheduler.advance(2499)
    assert recorder.calls == []
    scheduler.advance(1)
    success, data = recorder.calls[0]
    assert success is False
    assert data["attemptsUsed"] == 1


def test_timeout_failure_uses_default_delay(host, scheduler):
    recorder = Recorder()
    host.start_minigame("thermite", "easy", callback=recorder)
    scheduler.advance(3000 + 8000)
    assert host.state == State.RESULT

    scheduler.advance(1999)
    assert recorder.calls == []
    scheduler.advance(1)
    assert recorder.calls == [
        (False, {"timeRemaining": 0, "correctSelections": 0, "incorrectSelections": 0, "totalTargets": 3})
    ]


def test_input_during_result_delay_is_ignored(host, scheduler):
    recorder = Recorder()
    game = start_code_cracker(host, recorder)
    guess(host, "red", "blue")

    effects = host.handle_input(slot_event(0, "pink"))
    assert [e.kind for e in effects] == [EffectKind.REJECTED]
    assert game.current_guess == ["red", "blue"]


def test_exit_during_result_delay_drops_outcome(host, scheduler):
    recorder = Recorder()
    start_code_cracker(host, recorder)
    guess(host, "red", "blue")
    host.exit()
    scheduler.advance(5000)
    assert recorder.calls == [(False, {})]


def test_gate_reopens_after_delivery(host, scheduler):
    recorder = Recorder()
    start_code_cracker(host, recorder)
    guess(host, "red", "blue")
    scheduler.advance(1500)
    assert host.start_minigame("safe_cracker", "hard") == (True, None)


def test_lifecycle_events_on_bus(host, scheduler):
    seen = []
    for event_type in (EventType.MINIGAME_STARTED, EventType.MINIGAME_COMPLETE, EventType.MINIGAME_EXIT):
        host.event_bus.subscribe(event_type, lambda event: seen.append(event.type))
    recorder = Recorder()
    start_code_cracker(host, recorder)
    guess(host, "red", "blue")
    scheduler.advance(1500)
    assert seen == [EventType.MINIGAME_STARTED, EventType.MINIGAME_COMPLETE]


def test_state_changes_are_published(host, scheduler):
    """Every host transition is mirrored on the bus."""
    changes = []
    host.event_bus.subscribe(
        EventType.STATE_CHANGED,
        lambda event: changes.append((event.data["old"], event.data["new"])),
    )
    recorder = Recorder()
    start_code_cracker(host, recorder)
    guess(host, "red", "blue")
    scheduler.advance(1500)
    host.start_session("lockpick", {})
    host.exit()

    assert changes == [
        ("IDLE", "SESSION_ACTIVE"),
        ("SESSION_ACTIVE", "RESULT"),
        ("RESULT", "IDLE"),
        ("IDLE", "ERROR"),
        ("ERROR", "IDLE"),
    ]


def test_effects_are_forwarded(host, scheduler):
    """The host listener also sees timer ticks, which no input returns."""
    effects = []
    host.set_on_effect(effects.append)
    host.start_minigame("circuit_solver", "easy")
    scheduler.advance(20)
    assert [e.kind for e in effects].count(EffectKind.TIMER) == 2


def test_admission_gate():
    gate = AdmissionGate()
    token = gate.acquire("thermite")
    assert token is not None
    assert gate.acquire("code_cracker") is None
    with pytest.raises(SessionActiveError):
        gate.acquire("code_cracker", strict=True)

    assert gate.release(token) is True
    assert gate.release(token) is False
    fresh = gate.acquire("code_cracker")
    assert fresh.id != token.id


def test_dispatcher_delay_by_outcome():
    scheduler = Scheduler(ManualClock())
    dispatcher = CompletionDispatcher(scheduler, success_delay_ms=1500)
    assert dispatcher.delay_for(GameOutcome("thermite", True), 2000) == 1500
    assert dispatcher.delay_for(GameOutcome("thermite", False), 2000) == 2000

    delivered = []
    dispatcher.dispatch(GameOutcome("thermite", True, {"totalTargets": 3}), 2000, delivered.append)
    assert dispatcher.pending
    dispatcher.cancel()
    scheduler.advance(5000)
    assert delivered == []
    assert not dispatcher.pending


class BrokenThermite(ThermiteGame):
    name = "broken_thermite"

    def generate(self):
        raise RuntimeError("pattern generator failed")


class StallingThermite(ThermiteGame):
    name = "stalling_thermite"

    def on_start(self):
        self.start_countdown(self.config.display_time)
        raise RuntimeError("first phase failed")


def test_config_for_another_minigame_is_refused(host):
    """A circuit config cannot drive thermite, and the gate stays free."""
    ok, error = host.start_session("thermite", CircuitSolverConfig(grid_size=3))
    assert ok is False
    assert "circuits" in error
    assert not host.is_active
    assert host.state == State.IDLE
    assert host.start_minigame("code_cracker", "easy") == (True, None)


def test_shared_config_fields_are_revalidated(host):
    """A bare BaseConfig is upgraded to the minigame's own model."""
    assert host.start_session("thermite", BaseConfig(duration=9000)) == (True, None)
    config = host.current_game.config
    assert isinstance(config, ThermiteConfig)
    assert config.duration == 9000
    assert config.display_time == 3000


def test_failed_construction_releases_gate(host):
    host.register_minigame(BrokenThermite)
    with pytest.raises(RuntimeError):
        host.start_session("broken_thermite", ThermiteConfig())
    assert not host.is_active
    assert host.state == State.IDLE
    assert host.start_minigame("thermite", "easy") == (True, None)


def test_failed_start_tears_session_down(host, scheduler):
    """A game that fails in its first phase leaves no session or timer behind."""
    recorder = Recorder()
    host.register_minigame(StallingThermite)
    with pytest.raises(RuntimeError):
        host.start_session("stalling_thermite", ThermiteConfig(), recorder)
    assert not host.is_active
    assert host.current_game is None
    assert host.state == State.IDLE
    assert scheduler.pending == 0
    assert host.exit() is False


def test_start_minigame_without_tiers(host):
    """Registered extras can only be started with an explicit config."""
    host.register_minigame(StallingThermite)
    ok, error = host.start_minigame("stalling_thermite", "easy")
    assert ok is False
    assert "stalling_thermite" in error
    assert not host.is_active
