"""Core framework components for skillcheck."""

from .state import State, StateMachine
from .events import EventBus, Event, EventType
from .clock import Clock, SystemClock, ManualClock, Scheduler
from .countdown import Countdown, format_time

__all__ = [
    "State",
    "StateMachine",
    "EventBus",
    "Event",
    "EventType",
    "Clock",
    "SystemClock",
    "ManualClock",
    "Scheduler",
    "Countdown",
    "format_time",
]
