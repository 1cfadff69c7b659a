"""
Logical clock and timer scheduler.

Minigames never sleep or own a thread. Every timed behaviour goes through a
Scheduler bound to a Clock:

    - SystemClock + Scheduler.run() drives a real session from asyncio
    - SystemClock + Scheduler.pump() can be called from any frame loop
    - ManualClock + Scheduler.advance() replays virtual time in tests

Times are milliseconds as floats.
"""

from dataclasses import dataclass, field
from typing import Callable, Optional
import asyncio
import heapq
import itertools
import logging
import time

logger = logging.getLogger(__name__)


class Clock:
    """Source of the current time in milliseconds."""

    def now(self) -> float:
        raise NotImplementedError


class SystemClock(Clock):
    """Monotonic wall clock."""

    def now(self) -> float:
        return time.monotonic() * 1000.0


class ManualClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = start

    def now(self) -> float:
        return self._now

    def set(self, value: float) -> None:
        if value < self._now:
            raise ValueError(f"ManualClock cannot run backwards ({value} < {self._now})")
        self._now = value

    def advance(self, delta_ms: float) -> None:
        self.set(self._now + delta_ms)


@dataclass(order=True)
class _Timer:
    due: float
    seq: int
    callback: Callable[[], None] = field(compare=False)
    interval: Optional[float] = field(default=None, compare=False)
    cancelled: bool = field(default=False, compare=False)


class TimerHandle:
    """Handle returned by the scheduler; pass back to cancel()."""

    __slots__ = ("_timer",)

    def __init__(self, timer: _Timer) -> None:
        self._timer = timer

    @property
    def cancelled(self) -> bool:
        return self._timer.cancelled

    @property
    def periodic(self) -> bool:
        return self._timer.interval is not None


class Scheduler:
    """Single-threaded timer queue.

    Callbacks fire one at a time in due order, so a tick and an input
    handler can never interleave inside one transition.
    """

    def __init__(self, clock: Optional[Clock] = None, tick_ms: float = 10.0) -> None:
        self.clock = clock or SystemClock()
        self.tick_ms = tick_ms
        self._queue: list[_Timer] = []
        self._seq = itertools.count()
        self._running = False

    def now(self) -> float:
        return self.clock.now()

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        """Run callback once, delay_ms from now."""
        timer = _Timer(self.now() + max(0.0, delay_ms), next(self._seq), callback)
        heapq.heappush(self._queue, timer)
        return TimerHandle(timer)

    def call_every(self, interval_ms: float, callback: Callable[[], None]) -> TimerHandle:
        """Run callback every interval_ms, first call one interval from now."""
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        timer = _Timer(self.now() + interval_ms, next(self._seq), callback, interval_ms)
        heapq.heappush(self._queue, timer)
        return TimerHandle(timer)

    def cancel(self, handle: Optional[TimerHandle]) -> None:
        """Cancel a timer. Safe to call more than once."""
        if handle is not None:
            handle._timer.cancelled = True

    @property
    def pending(self) -> int:
        """Number of live timers."""
        return sum(1 for t in self._queue if not t.cancelled)

    def _pop_due(self, limit: float) -> Optional[_Timer]:
        while self._queue:
            head = self._queue[0]
            if head.cancelled:
                heapq.heappop(self._queue)
                continue
            if head.due > limit:
                return None
            return heapq.heappop(self._queue)
        return None

    def _fire(self, timer: _Timer, now: float) -> None:
        if timer.interval is not None:
            timer.due += timer.interval
            if timer.due <= now and not isinstance(self.clock, ManualClock):
                # Fell behind the wall clock; skip missed ticks instead of bursting.
                timer.due = now + timer.interval
            timer.seq = next(self._seq)
            heapq.heappush(self._queue, timer)
        timer.callback()

    def pump(self) -> int:
        """Fire every timer that is due now. Returns the number fired."""
        now = self.now()
        fired = 0
        while (timer := self._pop_due(now)) is not None:
            self._fire(timer, now)
            fired += 1
        return fired

    def advance(self, delta_ms: float) -> int:
        """Move a ManualClock forward, firing timers at their exact due times."""
        if not isinstance(self.clock, ManualClock):
            raise TypeError("advance() requires a ManualClock")
        target = self.clock.now() + delta_ms
        fired = 0
        while (timer := self._pop_due(target)) is not None:
            self.clock.set(max(self.clock.now(), timer.due))
            self._fire(timer, self.clock.now())
            fired += 1
        self.clock.set(target)
        return fired

    async def run(self) -> None:
        """Pump timers from the asyncio loop until stop() is called."""
        self._running = True
        logger.debug(f"Scheduler started (tick={self.tick_ms}ms)")
        while self._running:
            self.pump()
            await asyncio.sleep(self.tick_ms / 1000.0)
        logger.debug("Scheduler stopped")

    def stop(self) -> None:
        """Stop the run() loop."""
        self._running = False

    def clear(self) -> None:
        """Cancel every pending timer."""
        for timer in self._queue:
            timer.cancelled = True
        self._queue.clear()
