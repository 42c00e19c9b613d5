from __future__ import annotations

import random
from collections import Counter

import pytest

from shades.errors import PlacementError
from shades.grid import SHADES_COLS, SHADES_ROWS
from shades.tiles import (
    ActiveTile,
    hard_drop,
    move_left_right,
    move_to_column,
    random_shade,
    soft_drop,
    spawn_active,
)


@pytest.mark.parametrize("shade", [0, -1])
def test_active_tile_rejects_bad_shade(shade: int) -> None:
    with pytest.raises(PlacementError):
        ActiveTile(0, 0, shade)


def test_active_tile_leaves_upper_bound_to_lock() -> None:
    assert ActiveTile(0, 0, 7).shade == 7


def test_active_tile_rejects_negative_coordinate() -> None:
    with pytest.raises(PlacementError):
        ActiveTile(-1, 0, 1)


def test_random_shade_follows_weights() -> None:
    rng = random.Random(7)
    counts = Counter(random_shade(rng) for _ in range(4000))

    assert set(counts) <= {1, 2, 3, 4}
    assert counts[1] > counts[2] > counts[3]


def test_random_shade_single_weight() -> None:
    assert random_shade(random.Random(0), weights=(1,)) == 1


def test_spawn_at_top_centre(empty_grid) -> None:
    spawn = spawn_active(empty_grid, 2)
    assert not spawn.game_over
    assert spawn.active == ActiveTile(SHADES_COLS // 2, SHADES_ROWS - 1, 2)


def test_blocked_spawn_is_game_over(empty_grid, place) -> None:
    place(empty_grid, SHADES_COLS // 2, SHADES_ROWS - 1, 1)
    spawn = spawn_active(empty_grid, 2)
    assert spawn.game_over
    assert spawn.active is None


def test_move_left_right_stops_at_walls_and_tiles(empty_grid, place) -> None:
    tile = ActiveTile(0, 5, 1)
    assert move_left_right(empty_grid, tile, -1) is tile
    assert move_left_right(empty_grid, tile, 1).x == 1

    place(empty_grid, 1, 5, 3)
    assert move_left_right(empty_grid, tile, 1) is tile


def test_move_to_column_slides_until_blocked(empty_grid, place) -> None:
    tile = ActiveTile(2, 9, 1)
    assert move_to_column(empty_grid, tile, 4).x == 4
    assert move_to_column(empty_grid, tile, 99).x == SHADES_COLS - 1

    place(empty_grid, 0, 9, 2)
    assert move_to_column(empty_grid, tile, 0).x == 1


def test_soft_drop_moves_then_locks(empty_grid) -> None:
    drop = soft_drop(empty_grid, ActiveTile(1, 1, 2))
    assert not drop.locked
    assert drop.active.y == 0

    landed = soft_drop(empty_grid, drop.active)
    assert landed.locked
    assert landed.active == drop.active


def test_hard_drop_lands_on_stack(empty_grid, place) -> None:
    place(empty_grid, 3, 0, 1)
    place(empty_grid, 3, 1, 2)
    assert hard_drop(empty_grid, ActiveTile(3, 9, 4)).y == 2
    assert hard_drop(empty_grid, ActiveTile(0, 9, 4)).y == 0
