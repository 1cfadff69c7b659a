"""Countdown timer driven by the scheduler."""

from typing import Callable, Optional
import logging

from skillcheck.core.clock import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

DEFAULT_TICK_MS = 10.0


class Countdown:
    """Counts down duration_ms from start().

    Remaining time is recomputed from the absolute start timestamp on
    every tick, so it never drifts more than one tick from the clock.
    on_complete fires exactly once, after which the countdown stops itself.
    """

    def __init__(
        self,
        duration_ms: float,
        on_update: Callable[[float], None],
        on_complete: Callable[[], None],
        scheduler: Scheduler,
        tick_ms: float = DEFAULT_TICK_MS,
    ):
        self.duration_ms = float(duration_ms)
        self._on_update = on_update
        self._on_complete = on_complete
        self._scheduler = scheduler
        self._tick_ms = tick_ms
        self._start: float = scheduler.now()
        self._handle: Optional[TimerHandle] = None
        self._last_remaining: float = self.duration_ms
        self._completed = False

    @property
    def is_running(self) -> bool:
        return self._handle is not None

    @property
    def completed(self) -> bool:
        return self._completed

    @property
    def remaining(self) -> float:
        """Milliseconds left, clamped at zero."""
        if self._completed:
            return 0.0
        elapsed = self._scheduler.now() - self._start
        return min(self._last_remaining, max(0.0, self.duration_ms - elapsed))

    def start(self) -> None:
        self.stop()
        self._start = self._scheduler.now()
        self._last_remaining = self.duration_ms
        self._completed = False
        self._handle = self._scheduler.call_every(self._tick_ms, self._tick)

    def stop(self) -> None:
        if self._handle is not None:
            self._scheduler.cancel(self._handle)
            self._handle = None

    def reset(self) -> None:
        """Stop and re-base the start time to now; duration is unchanged."""
        self.stop()
        self._start = self._scheduler.now()
        self._last_remaining = self.duration_ms
        self._completed = False

    def _tick(self) -> None:
        if self._handle is None:
            return
        remaining = self.remaining
        self._last_remaining = remaining
        self._on_update(remaining)

        if remaining <= 0 and not self._completed:
            self._completed = True
            self.stop()
            self._on_complete()


def format_time(ms: float) -> str:
    """Format milliseconds as seconds with hundredths, e.g. 4.05."""
    ms = max(0, int(ms))
    seconds = ms // 1000
    hundredths = (ms % 1000) // 10
    return f"{seconds}.{hundredths:02d}"
