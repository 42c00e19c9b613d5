import argparse
import json
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from shades.engine import (
    ResolveOptions, first_invariant_violation, first_trace_violation, resolve_stable,
)
from shades.errors import ShadesError
from shades.grid import SHADES_MAX_SHADE, count_occupied, format_grid, grid_from_rows
from shades.shades_env import NumpyEncoder


def load_board(path: str):
    """Board file: {"cols": 5, "rows": [[...y=0...], [...y=1...], ...]}"""
    with open(path, 'r') as f:
        data = json.load(f)
    grid = grid_from_rows(data['rows'])
    cols = int(data.get('cols', len(data['rows'][0])))
    max_shade = int(data.get('max_shade', SHADES_MAX_SHADE))
    return grid, len(grid) // cols, cols, max_shade


def main():
    parser = argparse.ArgumentParser(description='Resolve a Shades board to a stable state')
    parser.add_argument('--board', type=str, required=True, help='Path to board JSON')
    parser.add_argument('--strict', action='store_true', help='Fail on invariant violations')
    parser.add_argument('--max_loops', type=int, default=None, help='Resolve loop cap')
    parser.add_argument('--json', action='store_true', help='Print the result as JSON')

    args = parser.parse_args()

    try:
        grid, rows, cols, max_shade = load_board(args.board)
        options = ResolveOptions(rows=rows, cols=cols, max_shade=max_shade,
                                 max_resolve_loops=args.max_loops,
                                 strict_invariants=args.strict)
        result = resolve_stable(grid, options)
    except ShadesError as e:
        print(f"Error: {e}")
        sys.exit(1)

    violation = first_invariant_violation(result.grid, cols, max_shade)
    trace_violation = first_trace_violation(result.invariants, cols)

    if args.json:
        print(json.dumps({
            "grid": result.grid.reshape(rows, cols),
            "merges": result.merges,
            "clears": result.clears,
            "loops": result.loops,
            "occupied": count_occupied(result.grid),
            "violation": violation.message if violation else None,
            "trace_violation": trace_violation,
        }, cls=NumpyEncoder, indent=2))
        return

    print(f"\n{'='*60}")
    print(f"SHADES - RESOLVE BOARD")
    print(f"{'='*60}")
    print(f"Board: {args.board}")
    print(f"Size: {cols}x{rows}  Max shade: {max_shade}")
    print(f"{'='*60}\n")

    print("Before:")
    print(format_grid(grid, cols))
    print("\nAfter:")
    print(format_grid(result.grid, cols))

    print(f"\n{'Loop':>5} {'Before':>8} {'Merges':>8} {'Clears':>8} {'After':>8}")
    print(f"{'-'*41}")
    for step in result.invariants:
        print(f"{step.loop:>5} {step.before:>8} {step.merges:>8} "
              f"{step.clears:>8} {step.after_gravity:>8}")

    print(f"\nMerges: {result.merges}  Clears: {result.clears}  "
          f"Occupied: {count_occupied(result.grid)}")
    print(f"Board audit: {violation.message if violation else 'ok'}")
    print(f"Trace audit: {trace_violation or 'ok'}")


if __name__ == "__main__":
    main()
