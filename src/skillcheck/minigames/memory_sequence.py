"""Memory Sequence - watch the tiles light up, then repeat the order."""

from typing import Any, Dict, List
import logging
import random

from skillcheck.config.minigames import MemorySequenceConfig
from skillcheck.core.clock import TimerHandle
from skillcheck.core.events import Event, EventType
from skillcheck.graphics.primitives import Buffer, fill, draw_rect
from skillcheck.minigames.base import BaseMinigame, EffectKind, Phase

logger = logging.getLogger(__name__)


def generate_sequence(grid_size: int, length: int, rng: random.Random) -> List[int]:
    """Distinct flattened cell indices, sampled without replacement."""
    return rng.sample(range(grid_size * grid_size), length)


class MemorySequenceGame(BaseMinigame):
    """Two phases share one countdown duration.

    OBSERVING plays the sequence back one tile per ITEM_DELAY_MS. The
    countdown bounds the whole playback: when it expires the game moves to
    INPUT even if the last tiles were never shown. INPUT re-bases the same
    countdown and checks clicks against the sequence.
    """

    name = "memory_sequence"
    display_name = "MEMORY"
    description = "Repeat the sequence of tiles"

    TRANSITIONS = frozenset({
        (Phase.IDLE, Phase.OBSERVING),
        (Phase.OBSERVING, Phase.INPUT),
        (Phase.INPUT, Phase.SUCCESS),
        (Phase.INPUT, Phase.FAILURE),
    })

    failure_delay_ms = 2000.0

    ITEM_DELAY_MS = 800.0
    HIGHLIGHT_MS = 500.0

    BG = (8, 8, 16)
    TILE = (36, 40, 64)
    LIT = (80, 200, 255)
    CORRECT = (60, 220, 120)
    WRONG = (230, 60, 60)

    config_model = MemorySequenceConfig
    config: MemorySequenceConfig

    def generate(self) -> None:
        self.sequence = generate_sequence(
            self.config.grid_size, self.config.sequence_length, self.rng
        )
        self.player_sequence: List[int] = []
        self.shown = 0
        self.lit_cell: int | None = None
        self._playback: List[TimerHandle] = []

    @property
    def cursor(self) -> int:
        return len(self.player_sequence)

    def on_start(self) -> None:
        self.change_phase(Phase.OBSERVING)
        self.start_countdown(self.config.duration)
        for step, cell in enumerate(self.sequence):
            delay = step * self.ITEM_DELAY_MS
            self._playback.append(
                self.call_later(delay, lambda s=step, c=cell: self._show(s, c))
            )

    def _show(self, step: int, cell: int) -> None:
        if self.phase != Phase.OBSERVING:
            return
        self.lit_cell = cell
        self.shown = step + 1
        self.emit(EffectKind.HIGHLIGHT, step=step, cell=cell, lit=True)
        self.play_sound("beep", 0.4)
        self._playback.append(self.call_later(self.HIGHLIGHT_MS, self._hide))

    def _hide(self) -> None:
        if self.lit_cell is not None:
            self.emit(EffectKind.HIGHLIGHT, cell=self.lit_cell, lit=False)
        self.lit_cell = None

    def _cancel_playback(self) -> None:
        for handle in self._playback:
            self.scheduler.cancel(handle)
        self._playback.clear()
        self.lit_cell = None

    def on_timer_expired(self) -> None:
        if self.phase == Phase.OBSERVING:
            if self.shown < len(self.sequence):
                logger.debug(
                    f"Observe window closed after {self.shown}/{len(self.sequence)} tiles"
                )
            self._cancel_playback()
            self.change_phase(Phase.INPUT)
            self.restart_countdown()
        else:
            self.finish(False)

    def on_input(self, event: Event) -> bool:
        if event.type != EventType.CELL_CLICK:
            return False
        if self.phase != Phase.INPUT:
            self.reject("sequence is still playing")
            return True

        cell = int(event.data.get("index", -1))
        if not 0 <= cell < self.config.grid_size ** 2:
            self.reject(f"cell {cell} out of bounds")
            return True

        self.click(cell)
        return True

    def click(self, cell: int) -> None:
        expected = self.sequence[self.cursor]
        self.player_sequence.append(cell)

        if cell != expected:
            self.emit(EffectKind.CELL_SELECTED, cell=cell, correct=False)
            self.finish(False)
            return

        self.emit(EffectKind.CELL_SELECTED, cell=cell, correct=True)
        self.play_sound("click", 0.4)
        if self.cursor == len(self.sequence):
            self.finish(True)

    def abort(self) -> None:
        self._cancel_playback()
        super().abort()

    def finish(self, success: bool) -> None:
        self._cancel_playback()
        super().finish(success)

    def metrics(self) -> Dict[str, Any]:
        return {
            "timeRemaining": self.time_remaining_ms(),
            "sequenceLength": len(self.sequence),
            "playerSequence": list(self.player_sequence),
        }

    def render_main(self, buffer: Buffer) -> None:
        fill(buffer, self.BG)
        size = self.config.grid_size
        h, w = buffer.shape[:2]
        cell_px = min(h, w) // size

        for index in range(size * size):
            r, c = divmod(index, size)
            colour = self.TILE
            if index == self.lit_cell:
                colour = self.LIT
            elif index in self.player_sequence:
                correct = self.sequence[self.player_sequence.index(index)] == index
                colour = self.CORRECT if correct else self.WRONG
            draw_rect(buffer, c * cell_px + 1, r * cell_px + 1, cell_px - 2, cell_px - 2, colour)

    def get_lcd_text(self) -> str:
        if self.phase == Phase.OBSERVING:
            return f"WATCH {self.shown}/{len(self.sequence)}"
        return f"{super().get_lcd_text()} {self.cursor}/{len(self.sequence)}"
