"""Minigame host - admission, session lifecycle, input routing and results."""

from typing import Any, Callable, Dict, List, Optional, Tuple, Type
from dataclasses import dataclass
import itertools
import logging
import random

from pydantic import ValidationError

from skillcheck.config.minigames import BaseConfig, resolve_config
from skillcheck.config.settings import Settings, get_settings
from skillcheck.core.clock import Scheduler, SystemClock
from skillcheck.core.events import Event, EventBus, EventType
from skillcheck.core.state import State, StateContext, StateMachine
from skillcheck.errors import SessionActiveError, UnknownMinigameError
from skillcheck.graphics.primitives import Buffer, fill
from skillcheck.minigames.base import BaseMinigame, Effect, GameOutcome
from skillcheck.minigames.dispatcher import CompletionDispatcher

logger = logging.getLogger(__name__)

ResultCallback = Callable[[bool, Dict[str, Any]], None]

BUSY_MESSAGE = "Another minigame is already in progress"
INVALID_TYPE_MESSAGE = "Invalid minigame type"


@dataclass(frozen=True)
class SessionToken:
    """Proof that the holder owns the single active session."""

    id: int
    minigame: str


class AdmissionGate:
    """Hands out at most one SessionToken at a time."""

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._active: Optional[SessionToken] = None

    @property
    def active(self) -> Optional[SessionToken]:
        return self._active

    def acquire(self, minigame: str, strict: bool = False) -> Optional[SessionToken]:
        """Issue a token, or None (SessionActiveError if strict) while one is out."""
        if self._active is not None:
            if strict:
                raise SessionActiveError(self._active.minigame)
            return None
        self._active = SessionToken(next(self._ids), minigame)
        return self._active

    def release(self, token: SessionToken) -> bool:
        """Return a token. Stale or foreign tokens are ignored."""
        if self._active is None or self._active != token:
            return False
        self._active = None
        return True


@dataclass
class Session:
    token: SessionToken
    minigame_type: str
    game: Optional[BaseMinigame]
    callback: Optional[ResultCallback] = None


class MinigameHost:
    """Runs one minigame session at a time on behalf of a caller.

    Handles:
    - Admission (one active session, released on completion or exit)
    - Resolving difficulty into configuration
    - Routing player input to the active minigame
    - Presentation delay before the result callback
    - Exit from any state, including the unknown-type error screen

    Callbacks receive (success, data); exit always reports (False, {}).
    """

    def __init__(
        self,
        scheduler: Optional[Scheduler] = None,
        event_bus: Optional[EventBus] = None,
        state_machine: Optional[StateMachine] = None,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
        register_defaults: bool = True,
    ):
        self.settings = settings or get_settings()
        self.scheduler = scheduler or Scheduler(SystemClock(), self.settings.tick_interval_ms)
        self.event_bus = event_bus or EventBus()
        self.state_machine = state_machine or StateMachine()
        self.rng = rng or random.Random()

        self._registered: Dict[str, Type[BaseMinigame]] = {}
        self._gate = AdmissionGate()
        self._dispatcher = CompletionDispatcher(self.scheduler, self.settings.success_delay_ms)
        self._session: Optional[Session] = None
        self._on_effect: Optional[Callable[[Effect], None]] = None

        self.state_machine.add_listener(self._on_state_change)

        if register_defaults:
            from skillcheck.minigames import AVAILABLE_MINIGAMES

            for minigame_cls in AVAILABLE_MINIGAMES:
                self.register_minigame(minigame_cls)

    # Registry
    def register_minigame(self, minigame_cls: Type[BaseMinigame]) -> None:
        """Register a minigame class under its name."""
        self._registered[minigame_cls.name] = minigame_cls
        logger.debug(f"Registered minigame: {minigame_cls.name}")

    def get_available_minigames(self) -> List[str]:
        return list(self._registered)

    def describe_minigames(self) -> List[Dict[str, Any]]:
        return [cls.get_info() for cls in self._registered.values()]

    # State
    @property
    def state(self) -> State:
        return self.state_machine.state

    @property
    def is_active(self) -> bool:
        return self._gate.active is not None

    @property
    def current_game(self) -> Optional[BaseMinigame]:
        return self._session.game if self._session else None

    def set_on_effect(self, callback: Callable[[Effect], None]) -> None:
        """Receive every effect from the active minigame (ticks included)."""
        self._on_effect = callback

    # Session start
    def start_minigame(
        self,
        minigame_type: str,
        difficulty: Optional[str] = None,
        duration: Optional[int] = None,
        callback: Optional[ResultCallback] = None,
    ) -> Tuple[bool, Optional[str]]:
        """Resolve a difficulty tier and start a session.

        Returns:
            (True, None) on success, otherwise (False, reason)
        """
        if minigame_type not in self._registered:
            return False, INVALID_TYPE_MESSAGE
        if self.is_active:
            return False, BUSY_MESSAGE

        try:
            config = resolve_config(
                minigame_type,
                difficulty or self.settings.default_difficulty,
                duration,
                self.settings.sound_enabled,
            )
        except (ValidationError, UnknownMinigameError) as e:
            logger.warning(f"Rejected {minigame_type} configuration: {e}")
            return False, str(e)

        return self.start_session(minigame_type, config, callback)

    def start_session(
        self,
        minigame_type: str,
        config: BaseConfig | Dict[str, Any],
        callback: Optional[ResultCallback] = None,
    ) -> Tuple[bool, Optional[str]]:
        """Start a session with an explicit configuration.

        An unknown type allocates no minigame and no timer; the host sits in
        ERROR holding the gate until exit() is called.
        """
        token = self._gate.acquire(minigame_type)
        if token is None:
            logger.warning(f"Refusing {minigame_type}: {BUSY_MESSAGE}")
            return False, BUSY_MESSAGE

        minigame_cls = self._registered.get(minigame_type)
        if minigame_cls is None:
            logger.error(f"{INVALID_TYPE_MESSAGE}: {minigame_type!r}")
            self._session = Session(token, minigame_type, None, callback)
            self.state_machine.enter_error(f"{INVALID_TYPE_MESSAGE}: {minigame_type}")
            self._emit(EventType.MINIGAME_ERROR, minigame=minigame_type, error=INVALID_TYPE_MESSAGE)
            return False, INVALID_TYPE_MESSAGE

        # A config built for another minigame is re-validated against ours
        model = minigame_cls.config_model
        if not isinstance(config, model):
            payload = config.model_dump() if isinstance(config, BaseConfig) else config
            try:
                config = model.model_validate(payload)
            except ValidationError as e:
                self._gate.release(token)
                logger.warning(f"Rejected {minigame_type} configuration: {e}")
                return False, str(e)

        try:
            game = minigame_cls(
                config,
                self.scheduler,
                rng=self.rng,
                tick_ms=self.settings.tick_interval_ms,
            )
            game.set_on_complete(self._on_game_complete)
            game.set_on_effect(self._forward_effect)

            self._session = Session(token, minigame_type, game, callback)
            self.state_machine.transition(State.SESSION_ACTIVE, current_minigame=minigame_type)
            logger.info(f"Session {token.id} started: {minigame_type} ({config.difficulty})")
            self._emit(EventType.MINIGAME_STARTED, minigame=minigame_type, session=token.id)

            game.start()
        except Exception:
            logger.exception(f"Failed to start {minigame_type}")
            self._abandon(token)
            raise
        return True, None

    def _abandon(self, token: SessionToken) -> None:
        """Undo a half-started session so the gate is free again."""
        session = self._session
        if session is not None and session.token == token:
            if session.game is not None:
                session.game.abort()
            self._dispatcher.cancel()
            self._close_session(session)
        else:
            self._gate.release(token)

    # Input
    def handle_input(self, event: Event) -> List[Effect]:
        """Route a player event to the active minigame."""
        if self._session is None:
            return []
        if event.type == EventType.EXIT:
            self.exit()
            return []
        if self._session.game is None:
            return []
        return self._session.game.handle_input(event)

    def exit(self) -> bool:
        """Abort the active session and report an empty failure. Idempotent."""
        session = self._session
        if session is None:
            return False

        if session.game is not None:
            session.game.abort()
        self._dispatcher.cancel()
        self._close_session(session)

        logger.info(f"Session {session.token.id} exited: {session.minigame_type}")
        self._emit(EventType.MINIGAME_EXIT, minigame=session.minigame_type, session=session.token.id)
        if session.callback:
            session.callback(False, {})
        return True

    def shutdown(self) -> None:
        """Tear down: exit any session and stop the scheduler loop."""
        self.exit()
        self.scheduler.stop()

    # Completion
    def _on_game_complete(self, outcome: GameOutcome) -> None:
        session = self._session
        if session is None or session.game is None:
            return
        self.state_machine.transition(State.RESULT, result_data=dict(outcome.metrics))
        self._dispatcher.dispatch(
            outcome,
            session.game.failure_delay_ms,
            lambda payload: self._deliver(session, payload),
        )

    def _deliver(self, session: Session, payload: Dict[str, Any]) -> None:
        if self._session is not session:
            return
        self._close_session(session)

        logger.info(
            f"Session {session.token.id} complete: {session.minigame_type} "
            f"success={payload['success']}"
        )
        self._emit(
            EventType.MINIGAME_COMPLETE,
            minigame=session.minigame_type,
            session=session.token.id,
            **payload,
        )
        if session.callback:
            session.callback(payload["success"], payload["data"])

    def _close_session(self, session: Session) -> None:
        self._session = None
        self._gate.release(session.token)
        if self.state_machine.state == State.ERROR:
            self.state_machine.recover_from_error()
        elif self.state_machine.state != State.IDLE:
            self.state_machine.transition(State.IDLE)
        self.state_machine.context.current_minigame = None

    # Plumbing
    def _on_state_change(self, old: State, new: State, context: StateContext) -> None:
        self._emit(
            EventType.STATE_CHANGED,
            old=old.name,
            new=new.name,
            minigame=context.current_minigame,
        )

    def _forward_effect(self, effect: Effect) -> None:
        if self._on_effect:
            self._on_effect(effect)

    def _emit(self, event_type: EventType, **data: Any) -> None:
        self.event_bus.emit(Event(event_type, data=data, source="minigame_host"))

    # Presentation
    def render_main(self, buffer: Buffer) -> None:
        game = self.current_game
        if game is None:
            fill(buffer, (40, 0, 0) if self.state == State.ERROR else (0, 0, 0))
            return
        game.render_main(buffer)

    def get_lcd_text(self) -> str:
        if self.state == State.ERROR:
            return f"ERROR: {self.state_machine.context.error_message} [ESC]"
        game = self.current_game
        if game is None:
            return "IDLE"
        return game.get_lcd_text()
