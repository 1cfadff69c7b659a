"""Graphics helpers for projecting minigame state into RGB buffers."""

from skillcheck.graphics.primitives import (
    Buffer,
    Color,
    new_buffer,
    fill,
    draw_rect,
    draw_line,
    draw_arc,
    polar_to_xy,
)

__all__ = [
    "Buffer",
    "Color",
    "new_buffer",
    "fill",
    "draw_rect",
    "draw_line",
    "draw_arc",
    "polar_to_xy",
]
