"""Circuit Solver - rotate pieces until power reaches the destination.

A source and a destination sit on opposite edges of the grid. One path
between them is carved at generation time, the rest of the board is filled
with random pieces, and every rotatable piece is then scrambled. The player
clicks pieces to rotate them 90 degrees clockwise; power is re-flooded from
the source after every click.
"""

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple
import logging
import random

from skillcheck.config.minigames import CircuitSolverConfig
from skillcheck.core.events import Event, EventType
from skillcheck.graphics.primitives import Buffer, fill, draw_rect, draw_line
from skillcheck.minigames.base import BaseMinigame, EffectKind, Phase

logger = logging.getLogger(__name__)

Coord = Tuple[int, int]

ROTATIONS = (0, 90, 180, 270)


class Direction(Enum):
    """Cell edges, clockwise from the top."""

    TOP = (-1, 0)
    RIGHT = (0, 1)
    BOTTOM = (1, 0)
    LEFT = (0, -1)

    @property
    def delta(self) -> Coord:
        return self.value

    @property
    def opposite(self) -> "Direction":
        return _CLOCKWISE[(_CLOCKWISE.index(self) + 2) % 4]

    def rotated(self, degrees: int) -> "Direction":
        return _CLOCKWISE[(_CLOCKWISE.index(self) + degrees // 90) % 4]


_CLOCKWISE = (Direction.TOP, Direction.RIGHT, Direction.BOTTOM, Direction.LEFT)


class PieceType(str, Enum):
    STRAIGHT = "straight"
    CORNER = "corner"
    THREE_WAY = "three-way"
    FOUR_WAY = "four-way"
    EMPTY = "empty"
    SOURCE = "source"
    DESTINATION = "destination"


# Connections at rotation 0; every rotation turns the whole set clockwise
BASE_CONNECTIONS: Dict[PieceType, FrozenSet[Direction]] = {
    PieceType.STRAIGHT: frozenset({Direction.TOP, Direction.BOTTOM}),
    PieceType.CORNER: frozenset({Direction.TOP, Direction.RIGHT}),
    PieceType.THREE_WAY: frozenset({Direction.TOP, Direction.RIGHT, Direction.BOTTOM}),
    PieceType.FOUR_WAY: frozenset(_CLOCKWISE),
    PieceType.EMPTY: frozenset(),
    PieceType.SOURCE: frozenset({Direction.TOP}),
    PieceType.DESTINATION: frozenset({Direction.TOP}),
}

FILL_TYPES = (
    PieceType.STRAIGHT,
    PieceType.CORNER,
    PieceType.THREE_WAY,
    PieceType.FOUR_WAY,
    PieceType.EMPTY,
)

# Rotation that points a single-connection piece in a given direction
_FACING = {Direction.TOP: 0, Direction.RIGHT: 90, Direction.BOTTOM: 180, Direction.LEFT: 270}


def connections_for(piece_type: PieceType, rotation: int) -> FrozenSet[Direction]:
    """Connections exposed by a piece type at a rotation."""
    return frozenset(d.rotated(rotation) for d in BASE_CONNECTIONS[piece_type])


@dataclass
class CircuitPiece:
    type: PieceType
    rotation: int = 0
    fixed: bool = False
    powered: bool = False

    @property
    def connections(self) -> FrozenSet[Direction]:
        return connections_for(self.type, self.rotation)

    def rotate(self) -> None:
        """Turn 90 degrees clockwise."""
        self.rotation = (self.rotation + 90) % 360


@dataclass
class CircuitBoard:
    """Grid of pieces plus the fixed endpoints and the carved path."""

    size: int
    grid: List[List[CircuitPiece]]
    source: Coord
    destination: Coord
    orientation: str
    path: List[Coord] = field(default_factory=list)

    def piece_at(self, row: int, col: int) -> CircuitPiece:
        return self.grid[row][col]

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.size and 0 <= col < self.size

    def coord_of(self, index: int) -> Coord:
        return divmod(index, self.size)

    @property
    def path_complete(self) -> bool:
        return bool(self.path) and self.path[-1] == self.destination

    def powered_cells(self) -> FrozenSet[Coord]:
        return frozenset(
            (r, c)
            for r in range(self.size)
            for c in range(self.size)
            if self.grid[r][c].powered
        )

    def propagate(self) -> FrozenSet[Coord]:
        """Re-flood power from the source and return the powered cells.

        Starts from a clean board every time, so the result depends only on
        the current rotations. Uses a worklist instead of recursion.
        """
        for row in self.grid:
            for piece in row:
                piece.powered = False

        sr, sc = self.source
        self.grid[sr][sc].powered = True
        visited = {self.source}
        queue = deque([self.source])

        while queue:
            r, c = queue.popleft()
            for direction in self.grid[r][c].connections:
                dr, dc = direction.delta
                nr, nc = r + dr, c + dc
                if not self.in_bounds(nr, nc) or (nr, nc) in visited:
                    continue
                neighbour = self.grid[nr][nc]
                if direction.opposite in neighbour.connections:
                    neighbour.powered = True
                    visited.add((nr, nc))
                    queue.append((nr, nc))

        return self.powered_cells()

    @property
    def destination_powered(self) -> bool:
        dr, dc = self.destination
        return self.grid[dr][dc].powered


def _manhattan(a: Coord, b: Coord) -> int:
    return abs(a[0] - b[0]) + abs(a[1] - b[1])


def carve_path(
    size: int,
    source: Coord,
    destination: Coord,
    rng: random.Random,
) -> List[Coord]:
    """Randomized greedy walk from source towards destination.

    Prefers unvisited neighbours that get strictly closer; falls back to any
    unvisited neighbour, and stops if boxed in. The returned path excludes
    the source and ends at the destination when the walk completes.
    """
    current = source
    visited = {source}
    path: List[Coord] = []

    while current != destination:
        neighbours = []
        for direction in _CLOCKWISE:
            dr, dc = direction.delta
            nxt = (current[0] + dr, current[1] + dc)
            if 0 <= nxt[0] < size and 0 <= nxt[1] < size and nxt not in visited:
                neighbours.append(nxt)
        if not neighbours:
            logger.debug(f"Path walk boxed in at {current}")
            break

        distance = _manhattan(current, destination)
        closer = [n for n in neighbours if _manhattan(n, destination) < distance]
        current = rng.choice(closer or neighbours)
        visited.add(current)
        path.append(current)

    return path


def lay_circuit(size: int, rng: random.Random) -> CircuitBoard:
    """Place endpoints, carve the path and fill the rest, before any scrambling.

    Path cells hold straight pieces turned along the direction the walk
    entered them; fill pieces sit at rotation 0.
    """
    grid: List[List[Optional[CircuitPiece]]] = [[None] * size for _ in range(size)]

    if rng.random() < 0.5:
        orientation = "horizontal"
        row = rng.randrange(size)
        source, destination = (row, 0), (row, size - 1)
        source_facing, destination_facing = Direction.RIGHT, Direction.LEFT
    else:
        orientation = "vertical"
        col = rng.randrange(size)
        source, destination = (0, col), (size - 1, col)
        source_facing, destination_facing = Direction.BOTTOM, Direction.TOP

    grid[source[0]][source[1]] = CircuitPiece(
        PieceType.SOURCE, _FACING[source_facing], fixed=True
    )
    grid[destination[0]][destination[1]] = CircuitPiece(
        PieceType.DESTINATION, _FACING[destination_facing], fixed=True
    )

    path = carve_path(size, source, destination, rng)
    previous = source
    for cell in path:
        if cell != destination:
            vertical = cell[0] != previous[0]
            grid[cell[0]][cell[1]] = CircuitPiece(PieceType.STRAIGHT, 0 if vertical else 90)
        previous = cell

    for r in range(size):
        for c in range(size):
            if grid[r][c] is None:
                grid[r][c] = CircuitPiece(rng.choice(FILL_TYPES), 0)

    return CircuitBoard(size, grid, source, destination, orientation, path)


def scramble(board: CircuitBoard, rng: random.Random) -> None:
    """Give every rotatable piece a uniformly random rotation."""
    for row_pieces in board.grid:
        for piece in row_pieces:
            if not piece.fixed:
                piece.rotation = rng.choice(ROTATIONS)


def generate_circuit(size: int, rng: random.Random) -> CircuitBoard:
    """Build a scrambled, propagated board with one carved path."""
    board = lay_circuit(size, rng)
    scramble(board, rng)
    board.propagate()
    return board


class CircuitSolverGame(BaseMinigame):
    """Route power from the source to the destination."""

    name = "circuit_solver"
    display_name = "CIRCUIT"
    description = "Rotate the pieces to complete the circuit"

    TRANSITIONS = frozenset({
        (Phase.IDLE, Phase.PLAYING),
        (Phase.PLAYING, Phase.SUCCESS),
        (Phase.PLAYING, Phase.FAILURE),
    })

    failure_delay_ms = 2000.0

    # Render colours
    BG = (12, 14, 20)
    CELL = (28, 32, 44)
    WIRE = (90, 96, 110)
    POWER = (255, 210, 40)
    SOURCE = (40, 200, 90)
    DESTINATION = (220, 60, 60)

    config_model = CircuitSolverConfig
    config: CircuitSolverConfig

    def generate(self) -> None:
        self.board = generate_circuit(self.config.grid_size, self.rng)
        self.rotations = 0
        if not self.board.path_complete:
            logger.warning("Circuit path walk ended before reaching the destination")

    def on_start(self) -> None:
        self.change_phase(Phase.PLAYING)
        self.start_countdown(self.config.duration)

    def on_input(self, event: Event) -> bool:
        if event.type != EventType.PIECE_ROTATE:
            return False

        if "index" in event.data:
            row, col = self.board.coord_of(int(event.data["index"]))
        else:
            row, col = int(event.data.get("row", -1)), int(event.data.get("col", -1))

        if not self.board.in_bounds(row, col):
            self.reject(f"cell ({row}, {col}) out of bounds")
            return True
        self.rotate(row, col)
        return True

    def rotate(self, row: int, col: int) -> None:
        piece = self.board.piece_at(row, col)
        if piece.fixed:
            self.reject(f"{piece.type.value} piece cannot rotate")
            return

        before = self.board.powered_cells()
        piece.rotate()
        self.rotations += 1
        self.emit(EffectKind.PIECE_ROTATED, row=row, col=col, rotation=piece.rotation)
        self.play_sound("rotate", 0.3)

        after = self.board.propagate()
        if after != before:
            self.emit(EffectKind.POWER_CHANGED, powered=sorted(after))

        if self.board.destination_powered:
            self.finish(True)

    def metrics(self) -> Dict[str, int]:
        return {"timeRemaining": self.time_remaining_ms()}

    def render_main(self, buffer: Buffer) -> None:
        fill(buffer, self.BG)
        h, w = buffer.shape[:2]
        cell = min(h, w) // self.board.size
        half = cell // 2

        for r in range(self.board.size):
            for c in range(self.board.size):
                piece = self.board.piece_at(r, c)
                x, y = c * cell, r * cell
                draw_rect(buffer, x + 1, y + 1, cell - 2, cell - 2, self.CELL)
                if piece.type == PieceType.SOURCE:
                    draw_rect(buffer, x + cell // 4, y + cell // 4, half, half, self.SOURCE)
                elif piece.type == PieceType.DESTINATION:
                    draw_rect(buffer, x + cell // 4, y + cell // 4, half, half, self.DESTINATION)

                colour = self.POWER if piece.powered else self.WIRE
                cx, cy = x + half, y + half
                for direction in piece.connections:
                    dr, dc = direction.delta
                    draw_line(buffer, cx, cy, cx + dc * half, cy + dr * half, colour)

    def get_lcd_text(self) -> str:
        lit = len(self.board.powered_cells())
        return f"{super().get_lcd_text()} {lit}/{self.board.size ** 2}"
