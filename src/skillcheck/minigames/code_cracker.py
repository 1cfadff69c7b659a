"""Code Cracker - Mastermind-style colour code.

The player fills every slot of the current guess and submits it. Each
submission is scored as (correct, misplaced) against the secret code.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, NamedTuple, Optional, Sequence
import logging
import random

from skillcheck.config.minigames import CodeCrackerConfig
from skillcheck.core.events import Event, EventType
from skillcheck.graphics.primitives import Buffer, fill, draw_rect
from skillcheck.minigames.base import BaseMinigame, EffectKind, Phase

logger = logging.getLogger(__name__)

PALETTE: Dict[str, tuple] = {
    "red": (230, 50, 50),
    "green": (50, 200, 80),
    "blue": (50, 110, 240),
    "yellow": (240, 220, 50),
    "purple": (160, 70, 220),
    "orange": (250, 140, 30),
    "cyan": (40, 220, 220),
    "pink": (250, 110, 190),
}

COLORS: tuple = tuple(PALETTE)


class Feedback(NamedTuple):
    correct: int
    misplaced: int


@dataclass(frozen=True)
class Attempt:
    guess: tuple
    feedback: Feedback


def generate_code(length: int, rng: random.Random) -> List[str]:
    """Secret code drawn with replacement from the palette."""
    return [rng.choice(COLORS) for _ in range(length)]


def score_guess(guess: Sequence[str], secret: Sequence[str]) -> Feedback:
    """Two-pass scoring.

    Exact matches are counted first and removed from both sides; each
    remaining guess slot then claims at most one remaining secret slot of
    the same colour.
    """
    if len(guess) != len(secret):
        raise ValueError(f"guess has {len(guess)} slots, code has {len(secret)}")

    remaining_guess: List[str] = []
    remaining_secret: List[str] = []
    correct = 0
    for g, s in zip(guess, secret):
        if g == s:
            correct += 1
        else:
            remaining_guess.append(g)
            remaining_secret.append(s)

    misplaced = 0
    for g in remaining_guess:
        if g in remaining_secret:
            remaining_secret.remove(g)
            misplaced += 1

    return Feedback(correct, misplaced)


class CodeCrackerGame(BaseMinigame):
    """Crack the code within the allowed attempts."""

    name = "code_cracker"
    display_name = "CODE"
    description = "Guess the colour code"

    TRANSITIONS = frozenset({
        (Phase.IDLE, Phase.PLAYING),
        (Phase.PLAYING, Phase.SUCCESS),
        (Phase.PLAYING, Phase.FAILURE),
    })

    # The secret is revealed on failure, so it stays up longer
    failure_delay_ms = 2500.0

    BG = (14, 12, 18)
    EMPTY = (40, 38, 48)
    PEG_CORRECT = (240, 240, 240)
    PEG_MISPLACED = (200, 160, 40)

    config_model = CodeCrackerConfig
    config: CodeCrackerConfig

    def generate(self) -> None:
        self.secret_code = generate_code(self.config.code_length, self.rng)
        self.current_guess: List[Optional[str]] = [None] * self.config.code_length
        self.attempts: List[Attempt] = []

    @property
    def current_attempt(self) -> int:
        """Zero-based index of the guess being composed."""
        return len(self.attempts)

    def on_start(self) -> None:
        self.change_phase(Phase.PLAYING)
        self.start_countdown(self.config.duration)

    def on_input(self, event: Event) -> bool:
        if event.type == EventType.SLOT_SET:
            self.set_slot(int(event.data.get("index", -1)), event.data.get("color"))
        elif event.type == EventType.SLOT_CLEAR:
            self.clear_slot(int(event.data.get("index", -1)))
        elif event.type == EventType.GUESS_SUBMIT:
            self.submit_guess()
        else:
            return False
        return True

    def set_slot(self, index: int, color: Optional[str]) -> None:
        if not 0 <= index < self.config.code_length:
            self.reject(f"slot {index} out of range")
            return
        if color not in PALETTE:
            self.reject(f"unknown colour {color!r}")
            return
        self.current_guess[index] = color
        self.emit(EffectKind.SLOT_CHANGED, index=index, color=color)
        self.play_sound("click", 0.3)

    def clear_slot(self, index: int) -> None:
        if not 0 <= index < self.config.code_length:
            self.reject(f"slot {index} out of range")
            return
        self.current_guess[index] = None
        self.emit(EffectKind.SLOT_CHANGED, index=index, color=None)

    def submit_guess(self) -> None:
        if any(slot is None for slot in self.current_guess):
            self.reject("guess is incomplete")
            return

        guess = tuple(self.current_guess)
        feedback = score_guess(guess, self.secret_code)
        self.attempts.append(Attempt(guess, feedback))
        self.emit(
            EffectKind.FEEDBACK,
            attempt=len(self.attempts),
            guess=list(guess),
            correct=feedback.correct,
            misplaced=feedback.misplaced,
        )
        logger.debug(f"Attempt {len(self.attempts)}: {feedback}")

        if feedback.correct == self.config.code_length:
            self.finish(True)
        elif len(self.attempts) >= self.config.attempts:
            self.finish(False)
        else:
            self.current_guess = [None] * self.config.code_length
            self.play_sound("error", 0.4)

    def metrics(self) -> Dict[str, Any]:
        return {
            "timeRemaining": self.time_remaining_ms(),
            "attemptsUsed": len(self.attempts),
            "secretCode": list(self.secret_code),
        }

    def render_main(self, buffer: Buffer) -> None:
        fill(buffer, self.BG)
        h, w = buffer.shape[:2]
        rows = self.config.attempts
        cols = self.config.code_length
        peg = max(2, min(h // (rows + 1), w // (cols + 2)))

        for r in range(rows):
            y = r * peg
            if r < len(self.attempts):
                attempt = self.attempts[r]
                slots: List[Optional[str]] = list(attempt.guess)
            elif r == len(self.attempts):
                attempt = None
                slots = list(self.current_guess)
            else:
                attempt = None
                slots = [None] * cols

            for c, colour in enumerate(slots):
                rgb = PALETTE[colour] if colour else self.EMPTY
                draw_rect(buffer, c * peg + 1, y + 1, peg - 2, peg - 2, rgb)

            if attempt is not None:
                x = cols * peg + 2
                pegs = [self.PEG_CORRECT] * attempt.feedback.correct
                pegs += [self.PEG_MISPLACED] * attempt.feedback.misplaced
                for i, rgb in enumerate(pegs):
                    draw_rect(buffer, x + (i % 3) * 2, y + 1 + (i // 3) * 2, 1, 1, rgb)

        if self.is_terminal:
            y = rows * peg
            for c, colour in enumerate(self.secret_code):
                draw_rect(buffer, c * peg + 1, y + 1, peg - 2, peg - 2, PALETTE[colour])

    def get_lcd_text(self) -> str:
        return (
            f"{super().get_lcd_text()} "
            f"{self.current_attempt + 1}/{self.config.attempts}"
        )
