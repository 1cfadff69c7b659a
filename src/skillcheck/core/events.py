"""
Event bus system for skillcheck.

Carries player input into the active minigame and publishes session
lifecycle notifications to anyone listening on the host.
"""

from dataclasses import dataclass, field
from typing import Any, Callable
from enum import Enum, auto
import logging
import time
from collections import defaultdict

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Built-in event types."""
    # Input events
    CELL_CLICK = auto()      # memory_sequence / thermite cell selection
    PIECE_ROTATE = auto()    # circuit_solver piece click
    DIAL_GRAB = auto()       # safe_cracker drag start
    DIAL_DRAG = auto()       # safe_cracker pointer movement
    DIAL_RELEASE = auto()    # safe_cracker drag end
    SLOT_SET = auto()        # code_cracker colour pick
    SLOT_CLEAR = auto()
    GUESS_SUBMIT = auto()
    EXIT = auto()            # Escape key

    # Session events
    MINIGAME_STARTED = auto()
    MINIGAME_COMPLETE = auto()
    MINIGAME_EXIT = auto()
    MINIGAME_ERROR = auto()
    STATE_CHANGED = auto()


@dataclass
class Event:
    """
    Event data container.

    Attributes:
        type: Event type (EventType enum or custom string)
        data: Event payload
        source: Component that emitted the event
        timestamp: Wall-clock time the event was created
    """
    type: EventType | str
    data: dict[str, Any] = field(default_factory=dict)
    source: str = "system"
    timestamp: float = field(default_factory=time.time)


Handler = Callable[[Event], None]


class EventBus:
    """
    Synchronous pub/sub bus for host notifications.

    Handlers run in subscription order inside ``emit``; a failing handler
    is logged and does not stop the others.
    """

    def __init__(self) -> None:
        self._handlers: dict[EventType | str, list[Handler]] = defaultdict(list)
        self._global_handlers: list[Handler] = []
        self._event_history: list[Event] = []
        self._history_limit = 100

    def subscribe(
        self,
        event_type: EventType | str,
        handler: Handler
    ) -> Callable[[], None]:
        """
        Subscribe to an event type.

        Args:
            event_type: Type of event to listen for
            handler: Callback function

        Returns:
            Unsubscribe function
        """
        self._handlers[event_type].append(handler)
        logger.debug(f"Handler subscribed to {event_type}")

        def unsubscribe() -> None:
            if handler in self._handlers[event_type]:
                self._handlers[event_type].remove(handler)
                logger.debug(f"Handler unsubscribed from {event_type}")

        return unsubscribe

    def subscribe_all(self, handler: Handler) -> Callable[[], None]:
        """Subscribe to all events. Returns an unsubscribe function."""
        self._global_handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._global_handlers:
                self._global_handlers.remove(handler)

        return unsubscribe

    def emit(self, event: Event) -> None:
        """Emit an event to every matching handler."""
        self._add_to_history(event)

        handlers = self._handlers.get(event.type, []) + self._global_handlers
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in event handler: {e}")

    def _add_to_history(self, event: Event) -> None:
        """Add event to history, maintaining limit."""
        self._event_history.append(event)
        if len(self._event_history) > self._history_limit:
            self._event_history.pop(0)

    def get_history(
        self,
        event_type: EventType | str | None = None,
        limit: int = 10
    ) -> list[Event]:
        """Get recent events from history."""
        history = self._event_history
        if event_type is not None:
            history = [e for e in history if e.type == event_type]
        return history[-limit:]

    def clear_history(self) -> None:
        """Clear event history."""
        self._event_history.clear()


# Convenience functions for creating input events
def cell_click_event(index: int, source: str = "pointer") -> Event:
    """Create a cell click event for a flattened grid index."""
    return Event(EventType.CELL_CLICK, data={"index": index}, source=source)


def rotate_event(row: int, col: int, source: str = "pointer") -> Event:
    """Create a circuit piece rotation event."""
    return Event(EventType.PIECE_ROTATE, data={"row": row, "col": col}, source=source)


def dial_event(
    event_type: EventType,
    angle: float | None = None,
    x: float | None = None,
    y: float | None = None,
    source: str = "pointer",
) -> Event:
    """Create a dial grab/drag/release event from an angle or pointer offset."""
    data: dict[str, Any] = {}
    if angle is not None:
        data["angle"] = angle
    if x is not None and y is not None:
        data["x"] = x
        data["y"] = y
    return Event(event_type, data=data, source=source)


def slot_event(index: int, color: str | None = None, source: str = "pointer") -> Event:
    """Create a code slot edit event; no colour clears the slot."""
    if color is None:
        return Event(EventType.SLOT_CLEAR, data={"index": index}, source=source)
    return Event(EventType.SLOT_SET, data={"index": index, "color": color}, source=source)


def submit_event(source: str = "pointer") -> Event:
    """Create a guess submission event."""
    return Event(EventType.GUESS_SUBMIT, source=source)


def exit_event(source: str = "keyboard") -> Event:
    """Create a player-initiated exit (Escape) event."""
    return Event(EventType.EXIT, source=source)
