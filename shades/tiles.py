"""
Shades active tile: spawning, sliding and dropping
A falling tile never touches the grid until it is locked
"""

import random
from dataclasses import dataclass, replace
from typing import Optional, Sequence

from .errors import PlacementError
from .grid import (
    SHADES_ROWS, SHADES_COLS, SHADES_MIN_SHADE, can_occupy,
)

# Relative odds of spawning shade 1, 2, 3, 4
SHADES_LEVEL_WEIGHTS = (64, 24, 9, 3)


@dataclass(frozen=True)
class ActiveTile:
    x: int
    y: int
    shade: int

    def __post_init__(self):
        # The upper bound depends on ResolveOptions.max_shade and is checked on lock
        if self.shade < SHADES_MIN_SHADE:
            raise PlacementError(f"Shade {self.shade} below {SHADES_MIN_SHADE}")
        if self.x < 0 or self.y < 0:
            raise PlacementError(f"Negative coordinate ({self.x}, {self.y})")


@dataclass
class SpawnResult:
    active: Optional[ActiveTile]
    game_over: bool


@dataclass
class DropResult:
    active: ActiveTile
    locked: bool


def random_shade(rng: random.Random,
                 weights: Sequence[float] = SHADES_LEVEL_WEIGHTS) -> int:
    """Weighted draw, index 0 of weights is shade SHADES_MIN_SHADE"""
    shades = range(SHADES_MIN_SHADE, SHADES_MIN_SHADE + len(weights))
    return rng.choices(shades, weights=weights)[0]


def spawn_active(grid, next_shade: int,
                 rows: int = SHADES_ROWS, cols: int = SHADES_COLS,
                 spawn_x: Optional[int] = None,
                 spawn_y: Optional[int] = None) -> SpawnResult:
    """Place a new tile at the spawn cell; a blocked spawn ends the game"""
    x = cols // 2 if spawn_x is None else spawn_x
    y = rows - 1 if spawn_y is None else spawn_y

    if not can_occupy(grid, x, y, rows, cols):
        return SpawnResult(active=None, game_over=True)
    return SpawnResult(active=ActiveTile(x, y, next_shade), game_over=False)


def move_left_right(grid, active: ActiveTile, dx: int,
                    rows: int = SHADES_ROWS, cols: int = SHADES_COLS) -> ActiveTile:
    next_x = active.x + dx
    if not can_occupy(grid, next_x, active.y, rows, cols):
        return active
    return replace(active, x=next_x)


def move_to_column(grid, active: ActiveTile, target_column: int,
                   rows: int = SHADES_ROWS, cols: int = SHADES_COLS) -> ActiveTile:
    """Slide toward target_column, stopping in front of the first blocked cell"""
    target = max(0, min(cols - 1, int(round(target_column))))
    if target == active.x:
        return active

    step = 1 if target > active.x else -1
    cursor = active.x
    while cursor != target:
        if not can_occupy(grid, cursor + step, active.y, rows, cols):
            break
        cursor += step

    if cursor == active.x:
        return active
    return replace(active, x=cursor)


def soft_drop(grid, active: ActiveTile,
              rows: int = SHADES_ROWS, cols: int = SHADES_COLS) -> DropResult:
    """Move down one row, or report that the tile has landed"""
    if can_occupy(grid, active.x, active.y - 1, rows, cols):
        return DropResult(active=replace(active, y=active.y - 1), locked=False)
    return DropResult(active=active, locked=True)


def hard_drop(grid, active: ActiveTile,
              rows: int = SHADES_ROWS, cols: int = SHADES_COLS) -> ActiveTile:
    y = active.y
    while can_occupy(grid, active.x, y - 1, rows, cols):
        y -= 1
    if y == active.y:
        return active
    return replace(active, y=y)
