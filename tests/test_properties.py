from __future__ import annotations

import numpy as np
import pytest

from shades.engine import (
    ResolveOptions,
    first_invariant_violation,
    first_trace_violation,
    resolve_stable,
    uniform_rows,
)
from shades.grid import SHADES_COLS, SHADES_MAX_SHADE, SHADES_ROWS, count_occupied, grid_rows

SEEDS = range(40)


def random_grid(seed: int, density: float = 0.7) -> np.ndarray:
    rng = np.random.default_rng(seed)
    shades = rng.integers(1, SHADES_MAX_SHADE + 1, size=SHADES_ROWS * SHADES_COLS)
    mask = rng.random(SHADES_ROWS * SHADES_COLS) < density
    return np.where(mask, shades, 0).astype(np.uint8)


@pytest.mark.parametrize("seed", SEEDS)
def test_stabilization_is_idempotent(seed: int) -> None:
    once = resolve_stable(random_grid(seed))
    twice = resolve_stable(once.grid)

    assert np.array_equal(once.grid, twice.grid)
    assert twice.merges == 0
    assert twice.clears == 0
    assert not twice.had_effect


@pytest.mark.parametrize("seed", SEEDS)
def test_resolved_board_passes_audit(seed: int) -> None:
    result = resolve_stable(random_grid(seed), ResolveOptions(strict_invariants=True))

    board = grid_rows(result.grid, SHADES_COLS)
    below_cap = board[:-1] < SHADES_MAX_SHADE
    equal_above = (board[:-1] == board[1:]) & (board[:-1] != 0)
    assert not (equal_above & below_cap).any()
    assert len(uniform_rows(result.grid, SHADES_COLS)) == 0
    assert first_invariant_violation(result.grid, SHADES_COLS) is None


@pytest.mark.parametrize("seed", SEEDS)
def test_counters_match_tiles_removed(seed: int) -> None:
    grid = random_grid(seed)
    result = resolve_stable(grid)

    removed = count_occupied(grid) - count_occupied(result.grid)
    assert removed == result.merges + result.clears * SHADES_COLS
    assert result.merges == sum(step.merges for step in result.invariants)
    assert result.clears == sum(step.clears for step in result.invariants)
    assert first_trace_violation(result.invariants, SHADES_COLS) is None


def test_max_shade_column_never_folds() -> None:
    grid = np.zeros(SHADES_ROWS * SHADES_COLS, dtype=np.uint8)
    grid_rows(grid, SHADES_COLS)[:, 0] = SHADES_MAX_SHADE

    result = grid
    merges = 0
    for _ in range(3):
        resolved = resolve_stable(result, ResolveOptions(strict_invariants=True))
        merges += resolved.merges
        result = resolved.grid

    assert merges == 0
    assert count_occupied(result) == SHADES_ROWS
    assert (grid_rows(result, SHADES_COLS)[:, 0] == SHADES_MAX_SHADE).all()


def test_mixed_full_rows_survive_unchanged() -> None:
    grid = np.zeros(SHADES_ROWS * SHADES_COLS, dtype=np.uint8)
    board = grid_rows(grid, SHADES_COLS)
    board[0] = [1, 2, 1, 2, 1]
    board[1] = [2, 1, 2, 1, 2]

    result = resolve_stable(grid, ResolveOptions(strict_invariants=True))

    assert result.clears == 0
    assert np.array_equal(result.grid, grid)
