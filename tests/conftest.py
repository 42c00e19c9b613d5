from __future__ import annotations

import numpy as np
import pytest

from shades.grid import SHADES_COLS, SHADES_ROWS, cell_index, create_empty_grid


@pytest.fixture()
def empty_grid() -> np.ndarray:
    return create_empty_grid(SHADES_ROWS, SHADES_COLS)


def put(grid: np.ndarray, x: int, y: int, shade: int, cols: int = SHADES_COLS) -> None:
    grid[cell_index(x, y, cols)] = shade


@pytest.fixture()
def place():
    return put
