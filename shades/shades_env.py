"""
Shades session environment
Gym-like interface: one action picks the column the current tile drops into
"""

import json
import random
import numpy as np
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .engine import ResolveOptions, lock_resolve
from .grid import (
    SHADES_ROWS, SHADES_COLS, SHADES_MAX_SHADE, EMPTY_CHAR,
    create_empty_grid, count_occupied, grid_rows,
)
from .tiles import (
    SHADES_LEVEL_WEIGHTS, hard_drop, move_to_column, random_shade, spawn_active,
)


class NumpyEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy types"""
    def default(self, obj):
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, np.bool_):
            return bool(obj)
        return super().default(obj)


@dataclass
class ScoreConfig:
    """Per merge: merge * promoted shade. Per cleared row: clear_per_cell * shade * cols"""
    lock: int = 0
    merge: int = 20
    clear_per_cell: int = 50
    lines_per_level: int = 4
    score_per_level: int = 800


class ShadesEnv:
    """
    Shades environment for agents and stress tests.

    Action space: `cols` discrete actions, the target column for the current
    tile. The tile spawns at the top centre, slides toward the target column
    until blocked, then hard-drops and locks.

    Observation: dict with 'grid' (rows x cols numpy, row 0 is the floor),
    'current_shade' and 'next_shade'.
    """

    def __init__(self, seed: Optional[int] = None,
                 rows: int = SHADES_ROWS, cols: int = SHADES_COLS,
                 score_config: Optional[ScoreConfig] = None,
                 strict_invariants: bool = False):
        self.options = ResolveOptions(rows=rows, cols=cols,
                                      strict_invariants=strict_invariants)
        self.score_config = score_config or ScoreConfig()
        self.rng = random.Random(seed)
        self.reset()

    @property
    def rows(self) -> int:
        return self.options.rows

    @property
    def cols(self) -> int:
        return self.options.cols

    def reset(self, seed: Optional[int] = None) -> Tuple[Dict, Dict]:
        """Reset environment and return (observation, info)"""
        if seed is not None:
            self.rng.seed(seed)

        self.grid = create_empty_grid(self.rows, self.cols)
        self.score = 0
        self.lines = 0
        self.step_count = 0
        self.combo_streak = 0
        self.done = False

        self.current_shade = random_shade(self.rng, SHADES_LEVEL_WEIGHTS)
        self.next_shade = random_shade(self.rng, SHADES_LEVEL_WEIGHTS)

        self.last_merges = 0
        self.last_clears = 0
        self.last_score_delta = 0
        self.last_reward = 0.0
        self.last_placed = None

        return self._get_obs(), self._get_info()

    @property
    def level(self) -> int:
        cfg = self.score_config
        return 1 + self.lines // cfg.lines_per_level + self.score // cfg.score_per_level

    def step(self, action_col: int) -> Tuple[Dict, float, bool, bool, Dict]:
        """
        Drop the current tile into action_col and return
        (obs, reward, terminated, truncated, info)
        """
        if self.done:
            return self._get_obs(), 0.0, True, False, self._get_info()

        if action_col < 0 or action_col >= self.cols:
            raise ValueError(f"Invalid column {action_col}, expected 0..{self.cols - 1}")

        spawn = spawn_active(self.grid, self.current_shade, self.rows, self.cols)
        if spawn.game_over:
            self.done = True
            self.last_reward = self._compute_reward(0, 0, True)
            return self._get_obs(), self.last_reward, True, False, self._get_info()

        active = move_to_column(self.grid, spawn.active, action_col, self.rows, self.cols)
        if active.x != action_col:
            # Masked action: the tile cannot reach the column, game over
            self.done = True
            self.last_placed = None
            self.last_merges = 0
            self.last_clears = 0
            self.last_score_delta = 0
            self.last_reward = -10.0
            return self._get_obs(), self.last_reward, True, False, self._get_info(action_col)

        active = hard_drop(self.grid, active, self.rows, self.cols)
        result = lock_resolve(self.grid, active, self.options)

        self.grid = result.grid
        self.last_placed = (result.placed_x, result.placed_y)
        self.last_merges = result.merges
        self.last_clears = result.clears
        self.lines += result.clears
        self.combo_streak = self.combo_streak + 1 if result.clears else 0

        self.last_score_delta = self._calculate_score(result.merged_shades, result.cleared_shades)
        self.score += self.last_score_delta

        self.current_shade = self.next_shade
        self.next_shade = random_shade(self.rng, SHADES_LEVEL_WEIGHTS)

        # The next tile has nowhere to appear
        self.done = not self.get_valid_action_mask().any()
        self.last_reward = self._compute_reward(self.last_score_delta, result.clears, self.done)
        self.step_count += 1

        return self._get_obs(), self.last_reward, self.done, False, self._get_info(action_col)

    def get_valid_action_mask(self) -> np.ndarray:
        """Columns the current tile can reach from its spawn cell"""
        mask = np.zeros(self.cols, dtype=bool)
        spawn = spawn_active(self.grid, self.current_shade, self.rows, self.cols)
        if spawn.game_over:
            return mask

        for col in range(self.cols):
            active = move_to_column(self.grid, spawn.active, col, self.rows, self.cols)
            mask[col] = active.x == col
        return mask

    def _calculate_score(self, merged_shades: List[int], cleared_shades: List[int]) -> int:
        cfg = self.score_config
        merge_score = sum(cfg.merge * shade for shade in merged_shades)
        clear_score = sum(cfg.clear_per_cell * shade * self.cols for shade in cleared_shades)
        return cfg.lock + merge_score + clear_score

    def _compute_reward(self, score_delta: int, clears: int, done: bool) -> float:
        reward = score_delta / 10.0

        if clears >= 2:
            reward += clears * 2.0

        if done:
            reward -= 5.0

        return reward

    def _get_obs(self) -> Dict:
        return {
            "grid": grid_rows(self.grid, self.cols).copy(),
            "current_shade": self.current_shade,
            "next_shade": self.next_shade,
        }

    def _get_info(self, action_col: Optional[int] = None) -> Dict:
        return {
            "t": self.step_count,
            "grid": grid_rows(self.grid, self.cols).tolist(),
            "action": action_col,
            "placed": self.last_placed,
            "merges": self.last_merges,
            "clears": self.last_clears,
            "combo_streak": self.combo_streak,
            "lines": self.lines,
            "level": self.level,
            "occupied": count_occupied(self.grid),
            "score_total": self.score,
            "score_delta": self.last_score_delta,
            "reward": self.last_reward,
        }

    def info_json(self) -> str:
        return json.dumps(self._get_info(), cls=NumpyEncoder)

    def render(self, mode: str = "ansi") -> Optional[str]:
        if mode == "ansi":
            return self._render_ansi()
        return None

    def _render_ansi(self) -> str:
        board = grid_rows(self.grid, self.cols)
        lines = []
        lines.append(f"Score: {self.score}  Step: {self.step_count}  "
                     f"Level: {self.level}  Combo: {self.combo_streak}")
        lines.append("+" + "-" * (self.cols * 2 + 1) + "+")

        for y in range(self.rows - 1, -1, -1):
            row = "| "
            for x in range(self.cols):
                shade = board[y, x]
                row += (str(shade) if shade else EMPTY_CHAR) + " "
            row += "|"
            lines.append(row)

        lines.append("+" + "-" * (self.cols * 2 + 1) + "+")
        lines.append(f"Current: {self.current_shade}  Next: {self.next_shade}")
        lines.append(f"Valid columns: {int(self.get_valid_action_mask().sum())}")

        return "\n".join(lines)

    def get_state_for_nn(self) -> np.ndarray:
        """Flattened grid plus the two upcoming shades, scaled to [0, 1]"""
        grid_flat = self.grid.astype(np.float32) / SHADES_MAX_SHADE
        upcoming = np.array([self.current_shade, self.next_shade],
                            dtype=np.float32) / SHADES_MAX_SHADE
        return np.concatenate([grid_flat, upcoming])

    @property
    def state_dim(self) -> int:
        return self.rows * self.cols + 2

    @property
    def action_dim(self) -> int:
        return self.cols
