import argparse
import random
import time
from pathlib import Path
from typing import Dict
import numpy as np

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from shades.errors import InvariantError
from shades.shades_env import ShadesEnv


def run_episodes(env: ShadesEnv, num_episodes: int, seed: int, max_steps: int = 1000) -> Dict:
    picker = random.Random(seed)
    scores = []
    steps_list = []
    total_merges = 0
    total_clears = 0

    for ep in range(num_episodes):
        obs, info = env.reset(seed=seed + ep)
        done = False
        ep_steps = 0

        while not done and ep_steps < max_steps:
            valid = np.flatnonzero(env.get_valid_action_mask())
            if len(valid) == 0:
                break
            action = int(picker.choice(list(valid)))

            obs, reward, done, truncated, info = env.step(action)
            total_merges += info['merges']
            total_clears += info['clears']
            ep_steps += 1

        scores.append(env.score)
        steps_list.append(ep_steps)

        if (ep + 1) % 50 == 0:
            print(f"  Episode {ep + 1}/{num_episodes}, "
                  f"Avg Score: {np.mean(scores):.1f}")

    return {
        'scores': scores,
        'mean_score': np.mean(scores),
        'max_score': max(scores),
        'mean_steps': np.mean(steps_list),
        'merges': total_merges,
        'clears': total_clears,
    }


def main():
    parser = argparse.ArgumentParser(description='Stress the Shades engine with random play')
    parser.add_argument('--episodes', type=int, default=200, help='Episodes to play')
    parser.add_argument('--seed', type=int, default=0, help='Random seed')
    parser.add_argument('--rows', type=int, default=10, help='Board height')
    parser.add_argument('--cols', type=int, default=5, help='Board width')

    args = parser.parse_args()

    print(f"\n{'='*60}")
    print(f"SHADES - ENGINE FUZZ")
    print(f"{'='*60}")
    print(f"Episodes: {args.episodes}")
    print(f"Board: {args.cols}x{args.rows}")
    print(f"Seed: {args.seed}")
    print(f"{'='*60}\n")

    env = ShadesEnv(seed=args.seed, rows=args.rows, cols=args.cols, strict_invariants=True)
    start_time = time.time()

    try:
        results = run_episodes(env, args.episodes, args.seed)
    except InvariantError as e:
        print(f"\nInvariant violation at step {env.step_count}: {e}")
        print(env.render())
        sys.exit(1)

    elapsed = time.time() - start_time
    print(f"\nTotal time: {elapsed:.1f}s")
    print(f"Mean score: {results['mean_score']:.1f}  Max: {results['max_score']}")
    print(f"Mean steps: {results['mean_steps']:.1f}")
    print(f"Merges: {results['merges']}  Clears: {results['clears']}")
    print("\nDone!")


if __name__ == "__main__":
    main()
