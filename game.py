GRID_SIZE = 4
TARGET = 1024

type Row = tuple[int, ...]
type Grid = tuple[Row, ...]
from enum import Enum
import random


class Direction(Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


# clockwise quarter turns that bring each direction onto LEFT
_TURNS: dict[Direction, int] = {
    Direction.LEFT: 0,
    Direction.DOWN: 1,
    Direction.RIGHT: 2,
    Direction.UP: 3,
}


def empty_grid() -> Grid:
    return tuple(tuple(0 for _ in range(GRID_SIZE)) for _ in range(GRID_SIZE))


def validate_grid(grid) -> Grid:
    """
    Check shape and cell values and return the grid as an immutable snapshot.
    Cells must be 0 (empty) or a power of two.
    """
    if len(grid) != GRID_SIZE or any(len(row) != GRID_SIZE for row in grid):
        raise ValueError(f"grid must be {GRID_SIZE}x{GRID_SIZE}")

    for row in grid:
        for cell in row:
            if not isinstance(cell, int) or cell < 0:
                raise ValueError(f"invalid cell value: {cell!r}")
            # power of two check
            if cell and cell & (cell - 1):
                raise ValueError(f"cell value {cell} is not a power of two")

    return tuple(tuple(row) for row in grid)


def slide_left_row(row) -> Row:
    """
    Slide a single row to the left, merging equal neighbours.

    Zeros are dropped first, then the values are scanned left to right. A value
    merges with the next equal value into double that value, and a merged tile
    never merges again in the same call, so (2, 2, 2, 2) becomes (4, 4, 0, 0).
    """
    non_zero = [x for x in row if x != 0]

    merged = []
    i = 0
    while i < len(non_zero):
        if i + 1 < len(non_zero) and non_zero[i] == non_zero[i + 1]:
            merged.append(non_zero[i] * 2)
            i += 2
        else:
            merged.append(non_zero[i])
            i += 1

    return tuple(merged + [0] * (len(row) - len(merged)))


def rotate_clockwise(grid: Grid) -> Grid:
    """Rotate the grid by 90 degrees clockwise."""
    return tuple(tuple(col) for col in zip(*grid[::-1]))


def _rotate(grid: Grid, turns: int) -> Grid:
    for _ in range(turns % 4):
        grid = rotate_clockwise(grid)
    return grid


def move(grid: Grid, direction: Direction) -> Grid:
    """
    Compute the grid after sliding every tile towards `direction`.

    Every direction reuses the slide-left primitive: the grid is rotated so that
    `direction` points left, each row is slid, and the result is rotated back.
    """
    turns = _TURNS[direction]
    working_grid = _rotate(grid, turns)
    working_grid = tuple(slide_left_row(row) for row in working_grid)
    return _rotate(working_grid, 4 - turns)


def spawn_random_tile(grid: Grid, rng: random.Random) -> Grid:
    """
    Place a new tile (90% chance of 2, 10% chance of 4) in a random empty cell.
    Returns the grid unchanged if no empty cell is available.
    """
    empty_cells = [
        (i, j)
        for i in range(GRID_SIZE)
        for j in range(GRID_SIZE)
        if grid[i][j] == 0
    ]
    if not empty_cells:
        return grid

    row, col = rng.choice(empty_cells)
    value = 2 if rng.random() < 0.9 else 4

    new_grid = [list(r) for r in grid]
    new_grid[row][col] = value
    return tuple(tuple(r) for r in new_grid)


def new_grid(rng: random.Random) -> Grid:
    """A fresh grid holding two spawned tiles."""
    return spawn_random_tile(spawn_random_tile(empty_grid(), rng), rng)


def grids_equal(a: Grid, b: Grid) -> bool:
    return all(
        a[i][j] == b[i][j] for i in range(GRID_SIZE) for j in range(GRID_SIZE)
    )


def max_tile_value(grid: Grid) -> int:
    return max(max(row) for row in grid)


def grid_sum(grid: Grid) -> int:
    """The score of a grid: the sum of all tile values."""
    return sum(cell for row in grid for cell in row)


def has_any_legal_move(grid: Grid) -> bool:
    """
    True when an empty cell exists or two orthogonally adjacent cells hold the
    same non-zero value. Only neighbour comparisons are needed, no move is
    simulated.
    """
    for i in range(GRID_SIZE):
        for j in range(GRID_SIZE):
            value = grid[i][j]
            if value == 0:
                return True
            # check right neighbor
            if j < GRID_SIZE - 1 and grid[i][j + 1] == value:
                return True
            # check down neighbor
            if i < GRID_SIZE - 1 and grid[i + 1][j] == value:
                return True
    return False


def valid_directions(grid: Grid) -> list[Direction]:
    """Directions whose move would change the grid."""
    return [d for d in Direction if not grids_equal(grid, move(grid, d))]


def format_grid(grid: Grid, indent: str = "  ") -> str:
    """
    Format a grid for pretty printing in the terminal.
    Empty cells are shown as dots.
    """
    lines = []
    # find max width needed for any cell
    cell_width = max(4, len(str(max_tile_value(grid))) + 1)
    inner = cell_width * GRID_SIZE + GRID_SIZE - 1

    lines.append(indent + "┌" + "─" * inner + "┐")
    for i, row in enumerate(grid):
        cells = [
            (str(cell) if cell else ".").center(cell_width) for cell in row
        ]
        lines.append(indent + "│" + "│".join(cells) + "│")
        if i < GRID_SIZE - 1:
            lines.append(indent + "├" + "─" * inner + "┤")
    lines.append(indent + "└" + "─" * inner + "┘")

    return "\n".join(lines)
