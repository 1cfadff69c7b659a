"""Basic drawing primitives for minigame state projections."""

from typing import Tuple
import math

import numpy as np
from numpy.typing import NDArray

# Type aliases
Color = Tuple[int, int, int]
Buffer = NDArray[np.uint8]


def new_buffer(width: int, height: int) -> Buffer:
    """Allocate a black RGB buffer of shape (height, width, 3)."""
    return np.zeros((height, width, 3), dtype=np.uint8)


def fill(buffer: Buffer, color: Color) -> None:
    """Fill entire buffer with color."""
    buffer[:, :] = color


def draw_rect(
    buffer: Buffer,
    x: int,
    y: int,
    width: int,
    height: int,
    color: Color,
    filled: bool = True,
) -> None:
    """Draw a rectangle, clipped to the buffer.

    Args:
        buffer: Target numpy array (height, width, 3)
        x: Left edge x coordinate
        y: Top edge y coordinate
        width: Rectangle width
        height: Rectangle height
        color: RGB color tuple
        filled: If True, fill rectangle; if False, draw outline only
    """
    h, w = buffer.shape[:2]

    x1 = max(0, min(x, w))
    y1 = max(0, min(y, h))
    x2 = max(0, min(x + width, w))
    y2 = max(0, min(y + height, h))
    if x1 >= x2 or y1 >= y2:
        return

    if filled:
        buffer[y1:y2, x1:x2] = color
    else:
        buffer[y1, x1:x2] = color
        buffer[y2 - 1, x1:x2] = color
        buffer[y1:y2, x1] = color
        buffer[y1:y2, x2 - 1] = color


def draw_line(
    buffer: Buffer,
    x1: int,
    y1: int,
    x2: int,
    y2: int,
    color: Color,
) -> None:
    """Draw a line using Bresenham's algorithm."""
    h, w = buffer.shape[:2]

    dx = abs(x2 - x1)
    dy = abs(y2 - y1)
    sx = 1 if x1 < x2 else -1
    sy = 1 if y1 < y2 else -1
    err = dx - dy

    x, y = x1, y1

    while True:
        if 0 <= x < w and 0 <= y < h:
            buffer[y, x] = color

        if x == x2 and y == y2:
            break

        e2 = 2 * err
        if e2 > -dy:
            err -= dy
            x += sx
        if e2 < dx:
            err += dx
            y += sy


def draw_arc(
    buffer: Buffer,
    cx: int,
    cy: int,
    radius: int,
    start_deg: float,
    end_deg: float,
    color: Color,
) -> None:
    """Plot an arc clockwise from start_deg to end_deg, 0 degrees at 12 o'clock."""
    h, w = buffer.shape[:2]
    steps = max(2, int(abs(end_deg - start_deg) * radius / 30) + 2)
    for i in range(steps):
        deg = start_deg + (end_deg - start_deg) * i / (steps - 1)
        px, py = polar_to_xy(cx, cy, radius, deg)
        if 0 <= px < w and 0 <= py < h:
            buffer[py, px] = color


def polar_to_xy(cx: int, cy: int, radius: float, degrees: float) -> Tuple[int, int]:
    """Dial coordinates: 0 degrees points up, angles grow clockwise."""
    rad = math.radians(degrees)
    return (
        int(round(cx + radius * math.sin(rad))),
        int(round(cy - radius * math.cos(rad))),
    )
