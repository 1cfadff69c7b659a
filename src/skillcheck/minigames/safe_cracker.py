"""Safe Cracker - turn the dial through every hidden zone.

Zones are angular intervals on a 360 degree dial. The player drags the dial;
every time the rotation lands inside an unfound zone that zone is found and
one unit of the rotation budget is spent.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional
import logging
import math
import random

from skillcheck.config.minigames import SafeCrackerConfig
from skillcheck.core.events import Event, EventType
from skillcheck.graphics.primitives import Buffer, fill, draw_arc, draw_line, polar_to_xy
from skillcheck.minigames.base import BaseMinigame, EffectKind, Phase

logger = logging.getLogger(__name__)

MIN_ZONE_WIDTH = 10.0
MAX_ZONE_WIDTH = 30.0


@dataclass
class Zone:
    start: float
    end: float
    found: bool = False

    @property
    def width(self) -> float:
        return self.end - self.start

    def contains(self, degrees: float) -> bool:
        return self.start <= degrees <= self.end

    def overlaps(self, other: "Zone") -> bool:
        return self.start <= other.end and other.start <= self.end


def generate_zones(count: int, rng: random.Random) -> List[Zone]:
    """Place count non-overlapping zones on [0, 360).

    Each zone is resampled until it fits; there is no retry cap, so callers
    keep count low enough for the dial to have room.
    """
    zones: List[Zone] = []
    while len(zones) < count:
        width = rng.uniform(MIN_ZONE_WIDTH, MAX_ZONE_WIDTH)
        start = rng.random() * (360.0 - width)
        candidate = Zone(start, start + width)
        # Dial degrees are [0, 360); rounding can still land end on 360
        if candidate.end >= 360.0 or any(candidate.overlaps(z) for z in zones):
            continue
        zones.append(candidate)
    return zones


def normalize_delta(delta: float) -> float:
    """Fold an angle difference into [-180, 180]."""
    while delta > 180.0:
        delta -= 360.0
    while delta < -180.0:
        delta += 360.0
    return delta


def pointer_angle(x: float, y: float) -> float:
    """Angle of a pointer offset from the dial centre; 0 is up, clockwise.

    Screen coordinates: y grows downwards.
    """
    return math.degrees(math.atan2(x, -y)) % 360.0


class SafeCrackerGame(BaseMinigame):
    """Find every zone before the rotation budget runs out."""

    name = "safe_cracker"
    display_name = "SAFE"
    description = "Turn the dial to find the hidden zones"

    TRANSITIONS = frozenset({
        (Phase.IDLE, Phase.PLAYING),
        (Phase.PLAYING, Phase.SUCCESS),
        (Phase.PLAYING, Phase.FAILURE),
    })

    failure_delay_ms = 2000.0

    BG = (10, 10, 14)
    RIM = (70, 70, 80)
    FOUND = (60, 220, 120)
    POINTER = (240, 240, 240)

    config_model = SafeCrackerConfig
    config: SafeCrackerConfig

    def generate(self) -> None:
        self.zones = generate_zones(self.config.zones, self.rng)
        self.current_rotation = 0.0
        self.found_count = 0
        self.rotations_used = 0
        self._dragging = False
        self._last_angle: Optional[float] = None

    @property
    def rotations_left(self) -> int:
        return self.config.max_rotations - self.rotations_used

    def on_start(self) -> None:
        self.change_phase(Phase.PLAYING)
        self.start_countdown(self.config.duration)

    def on_input(self, event: Event) -> bool:
        if event.type not in (EventType.DIAL_GRAB, EventType.DIAL_DRAG, EventType.DIAL_RELEASE):
            return False

        if event.type == EventType.DIAL_RELEASE:
            self.drag_end()
            return True

        angle = self._event_angle(event)
        if angle is None:
            self.reject("dial event without an angle")
        elif event.type == EventType.DIAL_GRAB:
            self.drag_start(angle)
        else:
            self.drag(angle)
        return True

    @staticmethod
    def _event_angle(event: Event) -> Optional[float]:
        if "angle" in event.data:
            return float(event.data["angle"]) % 360.0
        if "x" in event.data and "y" in event.data:
            return pointer_angle(float(event.data["x"]), float(event.data["y"]))
        return None

    def drag_start(self, angle: float) -> None:
        self._dragging = True
        self._last_angle = angle

    def drag_end(self) -> None:
        self._dragging = False
        self._last_angle = None

    def drag(self, angle: float) -> None:
        if not self._dragging or self._last_angle is None:
            self.reject("dial is not grabbed")
            return

        delta = normalize_delta(angle - self._last_angle)
        self._last_angle = angle
        self.turn(delta)

    def turn(self, delta: float) -> None:
        """Rotate the dial by a signed delta and check zone entry."""
        self.current_rotation = (self.current_rotation + delta) % 360.0
        self.emit(EffectKind.DIAL_MOVED, rotation=self.current_rotation)

        for index, zone in enumerate(self.zones):
            if zone.found or not zone.contains(self.current_rotation):
                continue
            zone.found = True
            self.found_count += 1
            self.rotations_used += 1
            self.emit(EffectKind.ZONE_FOUND, index=index, found=self.found_count)
            self.play_sound("click", 0.5)
            logger.debug(f"Zone {index} found at {self.current_rotation:.1f} deg")
            break

        if self.found_count == len(self.zones):
            self.finish(True)
        elif self.rotations_used >= self.config.max_rotations:
            self.finish(False)

    def metrics(self) -> Dict[str, int]:
        return {
            "timeRemaining": self.time_remaining_ms(),
            "zonesFound": self.found_count,
            "totalZones": len(self.zones),
        }

    def render_main(self, buffer: Buffer) -> None:
        fill(buffer, self.BG)
        h, w = buffer.shape[:2]
        cx, cy = w // 2, h // 2
        radius = min(w, h) // 2 - 2

        draw_arc(buffer, cx, cy, radius, 0.0, 360.0, self.RIM)
        for zone in self.zones:
            if zone.found:
                draw_arc(buffer, cx, cy, radius - 2, zone.start, zone.end, self.FOUND)

        px, py = polar_to_xy(cx, cy, radius - 4, self.current_rotation)
        draw_line(buffer, cx, cy, px, py, self.POINTER)

    def get_lcd_text(self) -> str:
        return f"{super().get_lcd_text()} {self.found_count}/{len(self.zones)}"
