"""
Shades grid storage and cell indexing
A grid is a flat uint8 numpy array, row-major, y = 0 is the floor
"""

import numpy as np
from typing import List, Tuple

from .errors import PlacementError

SHADES_ROWS = 10
SHADES_COLS = 5
SHADES_MIN_SHADE = 1
SHADES_MAX_SHADE = 4

GRID_DTYPE = np.uint8

EMPTY_CHAR = "."


def create_empty_grid(rows: int = SHADES_ROWS, cols: int = SHADES_COLS) -> np.ndarray:
    if rows <= 0 or cols <= 0:
        raise PlacementError(f"Grid needs positive dimensions, got {rows}x{cols}")
    return np.zeros(rows * cols, dtype=GRID_DTYPE)


def clone_grid(grid) -> np.ndarray:
    return np.array(grid, dtype=GRID_DTYPE, copy=True).reshape(-1)


def cell_index(x: int, y: int, cols: int = SHADES_COLS) -> int:
    return y * cols + x


def cell_coord(index: int, cols: int = SHADES_COLS) -> Tuple[int, int]:
    """Inverse of cell_index: returns (x, y)"""
    y, x = divmod(index, cols)
    return x, y


def count_occupied(grid) -> int:
    return int(np.count_nonzero(grid))


def in_bounds(x: int, y: int, rows: int = SHADES_ROWS, cols: int = SHADES_COLS) -> bool:
    return 0 <= x < cols and 0 <= y < rows


def get_shade(grid, x: int, y: int,
              rows: int = SHADES_ROWS, cols: int = SHADES_COLS) -> int:
    """Shade at (x, y), 0 for anything off the board"""
    if not in_bounds(x, y, rows, cols):
        return 0
    return int(grid[cell_index(x, y, cols)])


def can_occupy(grid, x: int, y: int,
               rows: int = SHADES_ROWS, cols: int = SHADES_COLS) -> bool:
    return in_bounds(x, y, rows, cols) and get_shade(grid, x, y, rows, cols) == 0


def check_shape(grid, rows: int, cols: int):
    if grid.ndim != 1 or grid.size != rows * cols:
        raise PlacementError(
            f"Grid of shape {grid.shape} does not hold {rows}x{cols} cells"
        )


def grid_rows(grid: np.ndarray, cols: int = SHADES_COLS) -> np.ndarray:
    """(rows, cols) view sharing memory with grid, index [y, x]"""
    return grid.reshape(-1, cols)


def grid_from_rows(rows: List[List[int]]) -> np.ndarray:
    """Build a flat grid from nested lists, rows[0] is y = 0"""
    try:
        board = np.array(rows, dtype=np.int64)
    except ValueError as exc:
        raise PlacementError("Board rows must all have the same length") from exc
    if board.ndim != 2 or board.size == 0:
        raise PlacementError("Board must be a non-empty list of rows")
    if board.min() < 0 or board.max() > np.iinfo(GRID_DTYPE).max:
        raise PlacementError("Shade values do not fit in a grid cell")
    return board.astype(GRID_DTYPE).reshape(-1)


def format_grid(grid, cols: int = SHADES_COLS) -> str:
    """ASCII picture of the grid, top row first"""
    board = grid_rows(np.asarray(grid), cols)
    lines = []
    for y in range(board.shape[0] - 1, -1, -1):
        cells = [str(int(v)) if v else EMPTY_CHAR for v in board[y]]
        lines.append(f"{y:2d} | " + " ".join(cells))
    lines.append("   +" + "-" * (cols * 2))
    lines.append("     " + " ".join(str(x % 10) for x in range(cols)))
    return "\n".join(lines)
