"""Base class for all minigames in skillcheck."""

from abc import ABC, abstractmethod
from types import MappingProxyType
from typing import Optional, Dict, Any, Callable, List, Mapping, Type
from dataclasses import dataclass, field
from enum import Enum, auto
import logging
import random

from skillcheck.config.minigames import BaseConfig
from skillcheck.core.clock import Scheduler, TimerHandle
from skillcheck.core.countdown import Countdown, DEFAULT_TICK_MS, format_time
from skillcheck.core.events import Event
from skillcheck.graphics.primitives import Buffer

logger = logging.getLogger(__name__)


class Phase(Enum):
    """Phases a minigame session can be in."""

    IDLE = auto()        # Generated, not started
    PLAYING = auto()     # Single-phase games: accepting input
    OBSERVING = auto()   # Memory sequence playback
    INPUT = auto()       # Memory sequence repeat
    MEMORIZE = auto()    # Thermite pattern shown
    SOLVING = auto()     # Thermite pattern hidden
    SUCCESS = auto()
    FAILURE = auto()


TERMINAL_PHASES = frozenset({Phase.SUCCESS, Phase.FAILURE})


class EffectKind(Enum):
    """Things the presentation layer may react to."""

    PHASE_CHANGED = auto()
    TIMER = auto()
    HIGHLIGHT = auto()
    PIECE_ROTATED = auto()
    POWER_CHANGED = auto()
    DIAL_MOVED = auto()
    ZONE_FOUND = auto()
    SLOT_CHANGED = auto()
    FEEDBACK = auto()
    CELL_SELECTED = auto()
    SOUND = auto()
    REJECTED = auto()
    COMPLETE = auto()


@dataclass(frozen=True)
class Effect:
    """A single side effect produced by a transition."""

    kind: EffectKind
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class GameOutcome:
    """Terminal result of a session; produced exactly once."""

    minigame: str
    success: bool
    metrics: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "metrics", MappingProxyType(dict(self.metrics)))

    def to_payload(self) -> Dict[str, Any]:
        """External completion contract: {success, data}."""
        return {"success": self.success, "data": dict(self.metrics)}


class BaseMinigame(ABC):
    """Abstract base class for all minigames.

    A minigame owns its puzzle, its phase and its countdown. Every transition
    runs synchronously inside start(), handle_input() or a countdown
    callback, and reports what happened as a list of Effects. Rendering is a
    projection of the current state and never mutates it.

    Lifecycle:
        1. __init__() - generate the puzzle
        2. start() - enter the first active phase and start the countdown
        3. handle_input(event) - player actions
        4. finish() - terminal phase, outcome, countdown stopped
        5. abort() - host exit; stops timers without an outcome
    """

    # Minigame metadata (override in subclasses)
    name: str = "base"
    display_name: str = "Base"
    description: str = "Base minigame"

    # Config model this minigame reads (override in subclasses)
    config_model: Type[BaseConfig] = BaseConfig

    # Phase graph (override in subclasses)
    TRANSITIONS: frozenset = frozenset()

    # Presentation delay before a failure is reported
    failure_delay_ms: float = 2000.0

    def __init__(
        self,
        config: BaseConfig,
        scheduler: Scheduler,
        rng: Optional[random.Random] = None,
        tick_ms: float = DEFAULT_TICK_MS,
    ):
        self.config = config
        self.scheduler = scheduler
        self.rng = rng or random.Random()
        self.tick_ms = tick_ms
        self.phase = Phase.IDLE
        self.time_remaining: float = float(config.duration)

        self._countdown: Optional[Countdown] = None
        self._outcome: Optional[GameOutcome] = None
        self._pending: List[Effect] = []

        # Callbacks
        self._on_effect: Optional[Callable[[Effect], None]] = None
        self._on_complete: Optional[Callable[[GameOutcome], None]] = None

        self.generate()
        logger.debug(f"Minigame created: {self.name} ({config.difficulty})")

    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES

    @property
    def outcome(self) -> Optional[GameOutcome]:
        return self._outcome

    @property
    def countdown(self) -> Optional[Countdown]:
        return self._countdown

    def set_on_effect(self, callback: Callable[[Effect], None]) -> None:
        """Set callback for every effect, including countdown ticks."""
        self._on_effect = callback

    def set_on_complete(self, callback: Callable[[GameOutcome], None]) -> None:
        """Set callback for when the minigame reaches a terminal phase."""
        self._on_complete = callback

    # Lifecycle
    def start(self) -> List[Effect]:
        """Begin the session."""
        if self.phase != Phase.IDLE:
            self.reject("already started")
        else:
            logger.info(f"Starting minigame: {self.name}")
            self.on_start()
        return self._drain()

    def handle_input(self, event: Event) -> List[Effect]:
        """Apply a player action and return the resulting effects."""
        if self.phase == Phase.IDLE or self.is_terminal:
            self.reject(f"no input accepted in {self.phase.name}")
        elif not self.on_input(event):
            self.reject(f"unsupported input {event.type}")
        return self._drain()

    def abort(self) -> None:
        """Stop the countdown without producing an outcome. Idempotent."""
        self.stop_countdown()
        self._pending.clear()

    def finish(self, success: bool) -> None:
        """Enter a terminal phase and publish the outcome once."""
        if self.is_terminal:
            return
        if self._countdown is not None:
            self.time_remaining = self._countdown.remaining
        self.stop_countdown()

        self.change_phase(Phase.SUCCESS if success else Phase.FAILURE)
        self._outcome = GameOutcome(self.name, success, self.metrics())
        self.play_sound("success" if success else "fail", 0.6)
        self.emit(EffectKind.COMPLETE, success=success)

        logger.info(f"Minigame {self.name} finished: {'success' if success else 'failure'}")
        if self._on_complete:
            self._on_complete(self._outcome)

    def change_phase(self, new_phase: Phase) -> bool:
        """Transition to a new phase if the phase graph allows it."""
        if (self.phase, new_phase) not in self.TRANSITIONS:
            logger.warning(f"{self.name}: invalid phase {self.phase.name} -> {new_phase.name}")
            return False
        old_phase = self.phase
        self.phase = new_phase
        logger.debug(f"{self.name}: {old_phase.name} -> {new_phase.name}")
        self.emit(EffectKind.PHASE_CHANGED, old=old_phase.name, new=new_phase.name)
        return True

    # Countdown management
    def start_countdown(self, duration_ms: float) -> Countdown:
        """Replace the current countdown with a fresh one and start it."""
        self.stop_countdown()
        self._countdown = Countdown(
            duration_ms,
            on_update=self._countdown_update,
            on_complete=self._countdown_complete,
            scheduler=self.scheduler,
            tick_ms=self.tick_ms,
        )
        self.time_remaining = float(duration_ms)
        self._countdown.start()
        return self._countdown

    def restart_countdown(self) -> None:
        """Re-base the current countdown for another phase of equal length."""
        if self._countdown is None:
            return
        self._countdown.reset()
        self.time_remaining = self._countdown.duration_ms
        self._countdown.start()

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        """Schedule work outside any input handler; its effects go to the listener only."""
        def run() -> None:
            callback()
            self._pending.clear()

        return self.scheduler.call_later(delay_ms, run)

    def stop_countdown(self) -> None:
        if self._countdown is not None:
            self._countdown.stop()

    def _countdown_update(self, remaining: float) -> None:
        self.time_remaining = remaining
        self.emit(EffectKind.TIMER, remaining=remaining)
        self._pending.clear()

    def _countdown_complete(self) -> None:
        self.time_remaining = 0.0
        if not self.is_terminal:
            self.on_timer_expired()
        self._pending.clear()

    # Effects
    def emit(self, kind: EffectKind, **data: Any) -> None:
        effect = Effect(kind, data)
        self._pending.append(effect)
        if self._on_effect:
            self._on_effect(effect)

    def reject(self, reason: str) -> None:
        """Refuse an input without touching state."""
        logger.debug(f"{self.name}: rejected input ({reason})")
        self.emit(EffectKind.REJECTED, reason=reason)

    def play_sound(self, sound: str, volume: float = 0.5) -> None:
        if self.config.sound_enabled:
            self.emit(EffectKind.SOUND, name=sound, volume=volume)

    def _drain(self) -> List[Effect]:
        effects, self._pending = self._pending, []
        return effects

    # Abstract methods (must be implemented by subclasses)
    @abstractmethod
    def generate(self) -> None:
        """Build the puzzle from config and self.rng."""

    @abstractmethod
    def on_start(self) -> None:
        """Enter the first active phase and start the countdown."""

    @abstractmethod
    def on_input(self, event: Event) -> bool:
        """Handle player input. Return False for events this game ignores."""

    @abstractmethod
    def metrics(self) -> Dict[str, Any]:
        """Type-specific outcome metrics."""

    # Optional overrides
    def on_timer_expired(self) -> None:
        """Called when the active countdown reaches zero."""
        self.finish(False)

    def render_main(self, buffer: Buffer) -> None:
        """Project state into an RGB buffer. Override for custom rendering."""

    def get_lcd_text(self) -> str:
        """One-line status text."""
        return f"{self.display_name} {format_time(self.time_remaining)}"

    def time_remaining_ms(self) -> int:
        return int(round(self.time_remaining))

    @classmethod
    def get_info(cls) -> Dict[str, Any]:
        """Get minigame metadata as dictionary."""
        return {
            "name": cls.name,
            "display_name": cls.display_name,
            "description": cls.description,
        }
