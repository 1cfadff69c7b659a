"""Completion dispatcher - reports a terminal outcome after a presentation delay."""

from typing import Any, Callable, Dict, Optional
import logging

from skillcheck.core.clock import Scheduler, TimerHandle
from skillcheck.minigames.base import GameOutcome

logger = logging.getLogger(__name__)

Payload = Dict[str, Any]

SUCCESS_DELAY_MS = 1500.0


class CompletionDispatcher:
    """Holds a finished outcome long enough for its end screen to show.

    One dispatch is pending at a time; cancel() drops it without delivery.
    """

    def __init__(self, scheduler: Scheduler, success_delay_ms: float = SUCCESS_DELAY_MS):
        self._scheduler = scheduler
        self.success_delay_ms = success_delay_ms
        self._handle: Optional[TimerHandle] = None
        self._payload: Optional[Payload] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def delay_for(self, outcome: GameOutcome, failure_delay_ms: float) -> float:
        return self.success_delay_ms if outcome.success else failure_delay_ms

    def dispatch(
        self,
        outcome: GameOutcome,
        failure_delay_ms: float,
        deliver: Callable[[Payload], None],
    ) -> float:
        """Schedule delivery of the outcome payload. Returns the delay used."""
        self.cancel()
        delay = self.delay_for(outcome, failure_delay_ms)
        self._payload = outcome.to_payload()

        def fire() -> None:
            payload = self._payload
            self._handle = None
            self._payload = None
            if payload is not None:
                deliver(payload)

        self._handle = self._scheduler.call_later(delay, fire)
        logger.debug(f"Dispatching {outcome.minigame} result in {delay:.0f}ms")
        return delay

    def cancel(self) -> None:
        if self._handle is not None:
            self._scheduler.cancel(self._handle)
            logger.debug("Pending result dispatch cancelled")
        self._handle = None
        self._payload = None
