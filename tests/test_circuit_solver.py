"""Tests for the circuit solver minigame."""

import random

import pytest

from skillcheck.core.events import Event, EventType, cell_click_event, rotate_event
from skillcheck.minigames.base import EffectKind, Phase
from skillcheck.minigames.circuit_solver import (
    CircuitBoard,
    CircuitPiece,
    FILL_TYPES,
    ROTATIONS,
    CircuitSolverGame,
    Direction,
    PieceType,
    carve_path,
    connections_for,
    generate_circuit,
    lay_circuit,
    scramble,
)


def line_board(middle_rotation):
    """3x3 board: source, one straight and destination across the top row."""
    grid = [
        [
            CircuitPiece(PieceType.SOURCE, 90, fixed=True),
            CircuitPiece(PieceType.STRAIGHT, middle_rotation),
            CircuitPiece(PieceType.DESTINATION, 270, fixed=True),
        ],
        [CircuitPiece(PieceType.EMPTY) for _ in range(3)],
        [CircuitPiece(PieceType.EMPTY) for _ in range(3)],
    ]
    board = CircuitBoard(3, grid, (0, 0), (0, 2), "horizontal", [(0, 1), (0, 2)])
    board.propagate()
    return board


def test_connections_rotate_clockwise():
    """Rotation turns every connection clockwise."""
    assert connections_for(PieceType.STRAIGHT, 90) == {Direction.LEFT, Direction.RIGHT}
    assert connections_for(PieceType.CORNER, 90) == {Direction.RIGHT, Direction.BOTTOM}
    assert connections_for(PieceType.THREE_WAY, 180) == {
        Direction.BOTTOM, Direction.LEFT, Direction.TOP,
    }
    assert connections_for(PieceType.EMPTY, 270) == frozenset()


@pytest.mark.parametrize("piece_type", list(PieceType))
def test_four_rotations_restore_connections(piece_type):
    """Four quarter turns return a piece to where it started."""
    piece = CircuitPiece(piece_type, 90)
    before = piece.connections
    for _ in range(4):
        piece.rotate()
    assert piece.rotation == 90
    assert piece.connections == before


def test_propagation_follows_mutual_connections():
    """Power only crosses edges both neighbours connect to."""
    open_board = line_board(90)
    assert open_board.powered_cells() == {(0, 0), (0, 1), (0, 2)}
    assert open_board.destination_powered

    closed_board = line_board(0)
    assert closed_board.powered_cells() == {(0, 0)}
    assert not closed_board.destination_powered


@pytest.mark.parametrize("seed", range(10))
def test_generated_board_shape(seed):
    """Endpoints are fixed on opposite edges and the source is always powered."""
    board = generate_circuit(5, random.Random(seed))
    source = board.piece_at(*board.source)
    destination = board.piece_at(*board.destination)

    assert source.type == PieceType.SOURCE and source.fixed
    assert destination.type == PieceType.DESTINATION and destination.fixed
    if board.orientation == "horizontal":
        assert board.source[1] == 0 and board.destination[1] == 4
        assert board.source[0] == board.destination[0]
    else:
        assert board.source[0] == 0 and board.destination[0] == 4
        assert board.source[1] == board.destination[1]
    assert source.powered
    assert all(0 <= r < 5 and 0 <= c < 5 for r, c in board.path)


def manhattan(a, b):
    return abs(a[0] - b[0]) + abs(a[1] - b[1])


@pytest.mark.parametrize("seed", range(10))
def test_carve_path_only_steps_closer_on_open_grid(seed):
    """With nothing in the way every step shortens the distance by one."""
    source, destination = (0, 0), (4, 3)
    path = carve_path(5, source, destination, random.Random(seed))

    assert path[-1] == destination
    assert len(path) == manhattan(source, destination)
    previous = source
    for cell in path:
        assert manhattan(previous, cell) == 1
        assert manhattan(cell, destination) == manhattan(previous, destination) - 1
        previous = cell


def test_carve_path_stops_when_boxed_in():
    """Without a closer cell the walk takes any free cell, then stops when none is left."""
    path = carve_path(2, (0, 0), (5, 5), random.Random(4))
    assert len(path) == 3
    assert sorted(path + [(0, 0)]) == [(0, 0), (0, 1), (1, 0), (1, 1)]
    assert path[1] == (1, 1)


@pytest.mark.parametrize("seed", range(10))
def test_laid_path_pieces_follow_the_walk(seed):
    """Before scrambling, path cells are straights turned along the walk."""
    board = lay_circuit(5, random.Random(seed))
    previous = board.source
    for cell in board.path:
        piece = board.piece_at(*cell)
        if cell != board.destination:
            assert piece.type == PieceType.STRAIGHT
            entered_vertically = cell[0] != previous[0]
            assert piece.rotation == (0 if entered_vertically else 90)
        previous = cell

    on_path = set(board.path) | {board.source}
    for r in range(5):
        for c in range(5):
            if (r, c) not in on_path:
                piece = board.piece_at(r, c)
                assert piece.type in FILL_TYPES
                assert piece.rotation == 0


def test_scramble_draws_from_quarter_turns():
    """Every rotatable piece lands on 0, 90, 180 or 270; endpoints keep their facing."""
    seen = set()
    for seed in range(20):
        rng = random.Random(seed)
        board = lay_circuit(4, rng)
        facing = (board.piece_at(*board.source).rotation, board.piece_at(*board.destination).rotation)
        scramble(board, rng)
        for row in board.grid:
            for piece in row:
                if not piece.fixed:
                    assert piece.rotation in ROTATIONS
                    seen.add(piece.rotation)
        assert facing == (board.piece_at(*board.source).rotation, board.piece_at(*board.destination).rotation)
    assert seen == set(ROTATIONS)


def test_propagation_is_idempotent():
    """Re-flooding without a rotation gives the same powered set."""
    board = generate_circuit(4, random.Random(3))
    first = board.propagate()
    assert board.propagate() == first


def test_rotation_that_closes_circuit_wins(make_game):
    """Powering the destination finishes the game with time remaining."""
    game = make_game(CircuitSolverGame, grid_size=3)
    game.board = line_board(0)
    game.start()

    effects = game.handle_input(rotate_event(0, 1))
    kinds = [e.kind for e in effects]
    assert kinds.index(EffectKind.PIECE_ROTATED) < kinds.index(EffectKind.POWER_CHANGED)
    assert EffectKind.COMPLETE in kinds
    assert game.phase == Phase.SUCCESS
    assert game.outcome.success
    assert game.outcome.metrics["timeRemaining"] == 30000


def test_rotation_by_flat_index(make_game):
    """Pointer hosts may send a flattened cell index instead of row/col."""
    game = make_game(CircuitSolverGame, grid_size=3)
    game.board = line_board(0)
    game.start()
    game.handle_input(cell_click_event(1))
    assert game.board.piece_at(0, 1).rotation == 0

    game.handle_input(Event(EventType.PIECE_ROTATE, data={"index": 1}))
    assert game.phase == Phase.SUCCESS


def test_fixed_pieces_cannot_rotate(make_game):
    """Source and destination stay put."""
    game = make_game(CircuitSolverGame, grid_size=3)
    game.board = line_board(0)
    game.start()

    effects = game.handle_input(rotate_event(0, 0))
    assert [e.kind for e in effects] == [EffectKind.REJECTED]
    assert game.board.piece_at(0, 0).rotation == 90
    assert game.rotations == 0


def test_out_of_bounds_rotation_is_rejected(make_game):
    game = make_game(CircuitSolverGame, grid_size=3)
    game.start()
    effects = game.handle_input(rotate_event(3, 0))
    assert [e.kind for e in effects] == [EffectKind.REJECTED]


def test_timeout_fails(make_game, scheduler):
    """The circuit fails when the countdown runs out."""
    game = make_game(CircuitSolverGame, grid_size=3, duration=1000)
    game.board = line_board(0)
    outcomes = []
    game.set_on_complete(outcomes.append)
    game.start()

    scheduler.advance(1000)
    assert game.phase == Phase.FAILURE
    assert outcomes[0].to_payload() == {"success": False, "data": {"timeRemaining": 0}}

    effects = game.handle_input(rotate_event(0, 1))
    assert [e.kind for e in effects] == [EffectKind.REJECTED]
    assert game.board.piece_at(0, 1).rotation == 0


def test_render_is_a_pure_projection(make_game):
    """Rendering draws into the buffer without touching game state."""
    from skillcheck.graphics.primitives import new_buffer

    game = make_game(CircuitSolverGame, grid_size=3)
    game.board = line_board(90)
    buffer = new_buffer(30, 30)
    game.render_main(buffer)
    assert buffer.any()
    assert game.board.powered_cells() == {(0, 0), (0, 1), (0, 2)}
    assert game.phase == Phase.IDLE
