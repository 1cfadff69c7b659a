"""Tests for the drawing primitives used by minigame projections."""

from skillcheck.graphics.primitives import draw_arc, draw_line, draw_rect, new_buffer, polar_to_xy


def test_rect_is_clipped_to_buffer():
    buffer = new_buffer(10, 8)
    draw_rect(buffer, 6, 5, 20, 20, (255, 0, 0))
    assert buffer.shape == (8, 10, 3)
    assert (buffer[5:8, 6:10] == (255, 0, 0)).all()
    assert not buffer[:5].any()


def test_outline_rect_leaves_inside_empty():
    buffer = new_buffer(10, 10)
    draw_rect(buffer, 0, 0, 10, 10, (0, 255, 0), filled=False)
    assert buffer[0, 5, 1] == 255
    assert not buffer[5, 5].any()


def test_line_endpoints_are_drawn():
    buffer = new_buffer(10, 10)
    draw_line(buffer, 1, 1, 8, 4, (9, 9, 9))
    assert buffer[1, 1, 0] == 9
    assert buffer[4, 8, 0] == 9


def test_polar_to_xy_dial_convention():
    """0 degrees is up and 90 degrees is to the right."""
    assert polar_to_xy(10, 10, 5, 0) == (10, 5)
    assert polar_to_xy(10, 10, 5, 90) == (15, 10)
    assert polar_to_xy(10, 10, 5, 180) == (10, 15)


def test_arc_stays_inside_buffer():
    buffer = new_buffer(8, 8)
    draw_arc(buffer, 4, 4, 20, 0, 360, (1, 2, 3))
    assert not buffer.any()
    draw_arc(buffer, 4, 4, 3, 0, 90, (1, 2, 3))
    assert buffer[1, 4, 2] == 3
