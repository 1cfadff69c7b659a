"""Thermite - memorize the lit squares, then pick them back out."""

from typing import Dict, FrozenSet, List, Set, Tuple
import logging
import random

from skillcheck.config.minigames import ThermiteConfig
from skillcheck.core.events import Event, EventType
from skillcheck.graphics.primitives import Buffer, fill, draw_rect
from skillcheck.minigames.base import BaseMinigame, EffectKind, Phase

logger = logging.getLogger(__name__)

Coord = Tuple[int, int]

MAX_MISTAKES = 3


def generate_pattern(grid_size: int, target_count: int, rng: random.Random) -> FrozenSet[Coord]:
    """Shuffle every cell and keep the first target_count."""
    cells = [(r, c) for r in range(grid_size) for c in range(grid_size)]
    rng.shuffle(cells)
    return frozenset(cells[:target_count])


class ThermiteGame(BaseMinigame):
    """MEMORIZE shows the pattern for display_time, then SOLVING runs on a
    fresh countdown of the full duration. Three wrong picks burn out the charge.
    """

    name = "thermite"
    display_name = "THERMITE"
    description = "Remember the pattern and burn through it"

    TRANSITIONS = frozenset({
        (Phase.IDLE, Phase.MEMORIZE),
        (Phase.MEMORIZE, Phase.SOLVING),
        (Phase.SOLVING, Phase.SUCCESS),
        (Phase.SOLVING, Phase.FAILURE),
    })

    failure_delay_ms = 2000.0

    BG = (16, 8, 4)
    CELL = (48, 30, 20)
    TARGET = (255, 140, 20)
    MISS = (200, 40, 40)

    config_model = ThermiteConfig
    config: ThermiteConfig

    def generate(self) -> None:
        self.pattern = generate_pattern(
            self.config.grid_size, self.config.target_count, self.rng
        )
        self.selected: Set[Coord] = set()
        self.found_count = 0
        self.mistakes = 0

    @property
    def total_targets(self) -> int:
        return len(self.pattern)

    def on_start(self) -> None:
        self.change_phase(Phase.MEMORIZE)
        self.start_countdown(self.config.display_time)

    def on_timer_expired(self) -> None:
        if self.phase == Phase.MEMORIZE:
            self.change_phase(Phase.SOLVING)
            self.start_countdown(self.config.duration)
        else:
            self.finish(False)

    def on_input(self, event: Event) -> bool:
        if event.type != EventType.CELL_CLICK:
            return False
        if self.phase != Phase.SOLVING:
            self.reject("pattern is still showing")
            return True

        if "index" in event.data:
            row, col = divmod(int(event.data["index"]), self.config.grid_size)
        else:
            row, col = int(event.data.get("row", -1)), int(event.data.get("col", -1))
        if not (0 <= row < self.config.grid_size and 0 <= col < self.config.grid_size):
            self.reject(f"cell ({row}, {col}) out of bounds")
            return True

        self.select(row, col)
        return True

    def select(self, row: int, col: int) -> None:
        cell = (row, col)
        if cell in self.selected:
            self.reject(f"cell {cell} already selected")
            return
        self.selected.add(cell)

        hit = cell in self.pattern
        if hit:
            self.found_count += 1
            self.play_sound("burn", 0.5)
        else:
            self.mistakes += 1
            self.play_sound("error", 0.5)
        self.emit(EffectKind.CELL_SELECTED, row=row, col=col, correct=hit)

        if self.found_count == self.total_targets:
            self.finish(True)
        elif self.mistakes >= MAX_MISTAKES:
            self.finish(False)

    def metrics(self) -> Dict[str, int]:
        return {
            "timeRemaining": self.time_remaining_ms(),
            "correctSelections": self.found_count,
            "incorrectSelections": self.mistakes,
            "totalTargets": self.total_targets,
        }

    def render_main(self, buffer: Buffer) -> None:
        fill(buffer, self.BG)
        size = self.config.grid_size
        h, w = buffer.shape[:2]
        cell_px = min(h, w) // size
        reveal = self.phase in (Phase.MEMORIZE, Phase.SUCCESS, Phase.FAILURE)

        for r in range(size):
            for c in range(size):
                colour = self.CELL
                if (r, c) in self.pattern and (reveal or (r, c) in self.selected):
                    colour = self.TARGET
                elif (r, c) in self.selected:
                    colour = self.MISS
                draw_rect(buffer, c * cell_px + 1, r * cell_px + 1, cell_px - 2, cell_px - 2, colour)

    def get_lcd_text(self) -> str:
        if self.phase == Phase.MEMORIZE:
            return f"MEMORIZE {self.total_targets}"
        lives: List[str] = ["X"] * self.mistakes + ["-"] * (MAX_MISTAKES - self.mistakes)
        return f"{super().get_lcd_text()} {''.join(lives)}"
