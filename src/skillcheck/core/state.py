"""
State machine for the minigame host.

States:
    IDLE: No session; the admission gate is free
    SESSION_ACTIVE: A minigame is accepting input
    RESULT: Terminal outcome reached, waiting out the presentation delay
    ERROR: Start request could not be honoured; only exit is accepted
"""

from enum import Enum, auto
from dataclasses import dataclass, field
from typing import Callable, Any
import logging

logger = logging.getLogger(__name__)


class State(Enum):
    """Host states."""
    IDLE = auto()
    SESSION_ACTIVE = auto()
    RESULT = auto()
    ERROR = auto()


@dataclass
class StateContext:
    """Context data carried alongside the host state."""
    current_minigame: str | None = None
    error_message: str | None = None
    result_data: dict[str, Any] = field(default_factory=dict)


class StateMachine:
    """
    Tracks host state and validates transitions.

    Listeners are notified after every successful transition.
    """

    VALID_TRANSITIONS: list[tuple[State, State]] = [
        # From IDLE
        (State.IDLE, State.SESSION_ACTIVE),
        (State.IDLE, State.ERROR),

        # From SESSION_ACTIVE
        (State.SESSION_ACTIVE, State.RESULT),
        (State.SESSION_ACTIVE, State.IDLE),  # Exit

        # From RESULT
        (State.RESULT, State.IDLE),

        # From ERROR
        (State.ERROR, State.IDLE),  # Exit
    ]

    def __init__(self, initial_state: State = State.IDLE) -> None:
        self._state = initial_state
        self._context = StateContext()
        self._listeners: list[Callable[[State, State, StateContext], None]] = []
        self._valid_transitions = set(self.VALID_TRANSITIONS)
        logger.debug(f"StateMachine initialized with state: {initial_state.name}")

    @property
    def state(self) -> State:
        """Get current state."""
        return self._state

    @property
    def context(self) -> StateContext:
        """Get current context."""
        return self._context

    def can_transition(self, to_state: State) -> bool:
        """Check if transition to given state is valid."""
        return (self._state, to_state) in self._valid_transitions

    def transition(self, to_state: State, **context_updates: Any) -> bool:
        """
        Attempt to transition to a new state.

        Args:
            to_state: Target state
            **context_updates: Updates to apply to context

        Returns:
            True if transition successful, False otherwise
        """
        if not self.can_transition(to_state):
            logger.warning(
                f"Invalid transition: {self._state.name} -> {to_state.name}"
            )
            return False

        old_state = self._state
        self._state = to_state

        for key, value in context_updates.items():
            if key == "result_data":
                self._context.result_data.update(value)
            elif hasattr(self._context, key):
                setattr(self._context, key, value)

        logger.debug(f"State transition: {old_state.name} -> {to_state.name}")

        for listener in self._listeners:
            try:
                listener(old_state, to_state, self._context)
            except Exception as e:
                logger.error(f"Error in state listener: {e}")

        return True

    def add_listener(
        self,
        callback: Callable[[State, State, StateContext], None]
    ) -> None:
        """Add a state change listener."""
        self._listeners.append(callback)

    def enter_error(self, message: str) -> bool:
        """Convenience method to enter error state."""
        return self.transition(State.ERROR, error_message=message)

    def recover_from_error(self) -> bool:
        """Leave the error state."""
        if self._state == State.ERROR:
            self._context.error_message = None
            return self.transition(State.IDLE)
        return False
