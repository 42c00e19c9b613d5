"""
Shades resolution engine
Lock a tile, then merge / clear / settle until the board stops changing.

Every public function copies its input grid; callers own their grids and the
engine keeps no state between calls.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import List, Optional

from .errors import PlacementError, InvariantError
from .grid import (
    SHADES_ROWS, SHADES_COLS, SHADES_MIN_SHADE, SHADES_MAX_SHADE,
    GRID_DTYPE, cell_index, check_shape, clone_grid, count_occupied, grid_rows, in_bounds,
)
from .tiles import ActiveTile

SHADES_MAX_RESOLVE_LOOPS = 96


def default_resolve_loops(rows: int, cols: int) -> int:
    # One settling loop, at most one loop per removed tile, one quiet loop
    return max(SHADES_MAX_RESOLVE_LOOPS, rows * cols + 2)


@dataclass
class ResolveOptions:
    """max_resolve_loops defaults to a cap that grows with the board"""
    rows: int = SHADES_ROWS
    cols: int = SHADES_COLS
    max_shade: int = SHADES_MAX_SHADE
    max_resolve_loops: Optional[int] = None
    strict_invariants: bool = False

    def __post_init__(self):
        if self.rows <= 0 or self.cols <= 0:
            raise PlacementError(
                f"Grid needs positive dimensions, got {self.rows}x{self.cols}")
        cell_max = int(np.iinfo(GRID_DTYPE).max)
        if not SHADES_MIN_SHADE <= self.max_shade <= cell_max:
            raise PlacementError(
                f"max_shade {self.max_shade} outside [{SHADES_MIN_SHADE}, {cell_max}]")
        if self.max_resolve_loops is None:
            self.max_resolve_loops = default_resolve_loops(self.rows, self.cols)
        elif self.max_resolve_loops <= 0:
            raise PlacementError(
                f"max_resolve_loops must be positive, got {self.max_resolve_loops}")


@dataclass
class ResolveInvariantStep:
    """Occupied-cell counts around each phase of one resolve loop"""
    loop: int
    before: int
    merges: int
    after_merge: int
    clears: int
    after_clear: int
    after_gravity: int


@dataclass
class ResolveResult:
    grid: np.ndarray
    merges: int = 0
    clears: int = 0
    had_effect: bool = False
    loops: int = 0
    invariants: List[ResolveInvariantStep] = field(default_factory=list)
    # Shade each fold produced, and the shade of each cleared row, in order
    merged_shades: List[int] = field(default_factory=list)
    cleared_shades: List[int] = field(default_factory=list)


@dataclass
class LockResolveResult(ResolveResult):
    placed_shade: int = 0
    placed_x: int = 0
    placed_y: int = 0


@dataclass
class InvariantViolation:
    rule: str
    x: Optional[int]
    y: int
    message: str


# Resolution passes: each mutates `grid` in place and reports what it did

def merge_vertical_step(grid: np.ndarray, rows: int, cols: int, max_shade: int) -> List[int]:
    """
    One bottom-up pass folding equal vertical pairs into the lower cell.
    Returns the promoted shade of every fold, in scan order.
    """
    merged = []
    for y in range(rows - 1):
        for x in range(cols):
            lower_index = cell_index(x, y, cols)
            upper_index = cell_index(x, y + 1, cols)
            lower = grid[lower_index]
            upper = grid[upper_index]

            if lower == 0 or upper == 0:
                continue
            if lower != upper or lower >= max_shade:
                continue

            promoted = int(lower) + 1
            grid[lower_index] = promoted
            grid[upper_index] = 0
            merged.append(promoted)
    return merged


def uniform_rows(grid: np.ndarray, cols: int) -> np.ndarray:
    """Indices of rows that are fully occupied by a single shade"""
    board = grid_rows(grid, cols)
    full = (board != 0).all(axis=1)
    uniform = (board == board[:, :1]).all(axis=1)
    return np.flatnonzero(full & uniform)


def clear_uniform_rows_step(grid: np.ndarray, rows: int, cols: int) -> List[int]:
    """Empty every full uniform row, returning the shade each one held"""
    board = grid_rows(grid, cols)
    cleared = uniform_rows(grid, cols)
    shades = [int(board[y, 0]) for y in cleared]
    board[cleared, :] = 0
    return shades


def apply_gravity_step(grid: np.ndarray, rows: int, cols: int) -> bool:
    """Compact every column toward y = 0, keeping tile order"""
    board = grid_rows(grid, cols)
    changed = False
    for x in range(cols):
        column = board[:, x]
        tiles = column[column != 0]
        if (column[:len(tiles)] != 0).all():
            continue
        column[:len(tiles)] = tiles
        column[len(tiles):] = 0
        changed = True
    return changed


# Audits

def first_trace_violation(steps: List[ResolveInvariantStep],
                          cols: int = SHADES_COLS) -> Optional[str]:
    """Check each loop conserved tiles: a merge removes one, a clear removes a row"""
    for step in steps:
        expected_after_merge = step.before - step.merges
        if step.after_merge != expected_after_merge:
            return (f"loop {step.loop}: after_merge={step.after_merge} "
                    f"expected {expected_after_merge}")

        expected_after_clear = step.after_merge - step.clears * cols
        if step.after_clear != expected_after_clear:
            return (f"loop {step.loop}: after_clear={step.after_clear} "
                    f"expected {expected_after_clear}")

        if step.after_gravity != step.after_clear:
            return (f"loop {step.loop}: gravity changed occupied count "
                    f"({step.after_clear} -> {step.after_gravity})")
    return None


def first_invariant_violation(grid, cols: int = SHADES_COLS,
                              max_shade: int = SHADES_MAX_SHADE) -> Optional[InvariantViolation]:
    """
    Audit a board that claims to be stable.

    Rows are scanned from the floor up; within a row each cell is checked for
    shade range, a hole beneath it and an equal neighbour above it, then the
    row as a whole is checked for being full and uniform.
    """
    board = grid_rows(np.asarray(grid), cols)
    rows = board.shape[0]

    for y in range(rows):
        for x in range(cols):
            shade = int(board[y, x])
            if shade < 0 or shade > max_shade:
                return InvariantViolation(
                    "shade_range", x, y,
                    f"cell ({x}, {y}) holds shade {shade} outside [0, {max_shade}]")
            if shade == 0:
                continue
            if y > 0 and board[y - 1, x] == 0:
                return InvariantViolation(
                    "floating_tile", x, y,
                    f"cell ({x}, {y}) has an empty cell beneath it")
            if y + 1 < rows and board[y + 1, x] == shade and shade < max_shade:
                return InvariantViolation(
                    "unmerged_pair", x, y,
                    f"cells ({x}, {y}) and ({x}, {y + 1}) both hold shade {shade}")

        row = board[y]
        if row.all() and (row == row[0]).all():
            return InvariantViolation(
                "uniform_row", None, y,
                f"row {y} is full of shade {int(row[0])}")
    return None


# Public API

def resolve_stable(grid, options: Optional[ResolveOptions] = None) -> ResolveResult:
    """Merge, clear and settle a copy of grid until a loop changes nothing"""
    options = options or ResolveOptions()
    rows, cols = options.rows, options.cols

    working = clone_grid(grid)
    check_shape(working, rows, cols)

    result = ResolveResult(grid=working)
    stable = False

    for loop in range(options.max_resolve_loops):
        before = count_occupied(working)

        merged = merge_vertical_step(working, rows, cols, options.max_shade)
        merges = len(merged)
        after_merge = count_occupied(working)

        cleared = clear_uniform_rows_step(working, rows, cols)
        clears = len(cleared)
        after_clear = count_occupied(working)

        settled = apply_gravity_step(working, rows, cols)
        after_gravity = count_occupied(working)

        result.invariants.append(ResolveInvariantStep(
            loop=loop + 1,
            before=before,
            merges=merges,
            after_merge=after_merge,
            clears=clears,
            after_clear=after_clear,
            after_gravity=after_gravity,
        ))
        result.merges += merges
        result.clears += clears
        result.merged_shades.extend(merged)
        result.cleared_shades.extend(cleared)

        if not (merges or clears or settled):
            stable = True
            break
        result.had_effect = True

    result.loops = len(result.invariants)

    if not stable:
        raise InvariantError(
            f"Board still changing after {options.max_resolve_loops} resolve loops")

    if options.strict_invariants:
        trace_violation = first_trace_violation(result.invariants, cols)
        if trace_violation:
            raise InvariantError(f"Shades invariant violation: {trace_violation}")
        board_violation = first_invariant_violation(working, cols, options.max_shade)
        if board_violation:
            raise InvariantError(f"Shades invariant violation: {board_violation.message}")

    return result


def check_placement(grid: np.ndarray, active: ActiveTile, options: ResolveOptions):
    check_shape(grid, options.rows, options.cols)
    if not in_bounds(active.x, active.y, options.rows, options.cols):
        raise PlacementError(
            f"Cell ({active.x}, {active.y}) is off the "
            f"{options.cols}x{options.rows} board")
    if not SHADES_MIN_SHADE <= active.shade <= options.max_shade:
        raise PlacementError(
            f"Shade {active.shade} outside [{SHADES_MIN_SHADE}, {options.max_shade}]")
    occupant = grid[cell_index(active.x, active.y, options.cols)]
    if occupant != 0:
        raise PlacementError(
            f"Cell ({active.x}, {active.y}) already holds shade {int(occupant)}")


def lock_tile(grid, active: ActiveTile,
              options: Optional[ResolveOptions] = None) -> np.ndarray:
    """Copy of grid with the active tile written in, no resolution"""
    options = options or ResolveOptions()
    next_grid = clone_grid(grid)
    check_placement(next_grid, active, options)
    next_grid[cell_index(active.x, active.y, options.cols)] = active.shade
    return next_grid


def lock_resolve(grid, active: ActiveTile,
                 options: Optional[ResolveOptions] = None) -> LockResolveResult:
    options = options or ResolveOptions()
    placed = lock_tile(grid, active, options)
    resolved = resolve_stable(placed, options)

    return LockResolveResult(
        grid=resolved.grid,
        merges=resolved.merges,
        clears=resolved.clears,
        had_effect=resolved.had_effect,
        loops=resolved.loops,
        invariants=resolved.invariants,
        merged_shades=resolved.merged_shades,
        cleared_shades=resolved.cleared_shades,
        placed_shade=active.shade,
        placed_x=active.x,
        placed_y=active.y,
    )
