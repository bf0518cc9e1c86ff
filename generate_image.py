#!/usr/bin/env python3
"""Generate an image holding every color exactly once, similar colors clustered."""

import argparse
import sys
import time
from pathlib import Path

import numpy as np
from PIL import Image

from color_grid import Grid, EMPTY
from color_space import CONVERTERS, DEFAULT_BITS, DEFAULT_SPACE, generate_catalog, grid_side
from placement import PlacementEngine


DEFAULT_OUTPUT = 'out.png'


def render_image(grid: Grid, rgbs: np.ndarray) -> Image.Image:
    """Turn a grid of catalog indices into an RGB image; empty cells are black."""
    cells = grid.cells.T  # Grid is indexed [x, y], images [row, col]
    pixels = np.zeros(cells.shape + (3,), dtype=np.uint8)
    mask = cells != EMPTY
    pixels[mask] = rgbs[cells[mask]]
    return Image.fromarray(pixels)


def save_image(image: Image.Image, output_path: Path) -> None:
    if output_path.parent != Path('.'):
        output_path.parent.mkdir(parents=True, exist_ok=True)
    image.save(output_path)


def verify_placement(grid: Grid, n_colors: int) -> None:
    """Raise RuntimeError unless the grid holds each of 0..n-1 exactly once."""
    values = np.sort(grid.filled_values())
    if len(values) != n_colors:
        raise RuntimeError(f"Grid holds {len(values):,} colors, expected {n_colors:,}")
    mismatch = np.flatnonzero(values != np.arange(n_colors))
    if len(mismatch):
        first = int(mismatch[0])
        raise RuntimeError(
            f"Grid colors are not a bijection: position {first} holds {int(values[first])}"
        )


def generate(bits: int, seed, space: str, output_path: Path, verbose: bool = True) -> Grid:
    """Catalog, placement, emission and self-check, in that order."""
    n_colors = 1 << (3 * bits)
    side = grid_side(n_colors)

    if verbose:
        print(f"Colors: {n_colors:,} ({bits} bits/channel, {space})")
        print(f"Grid: {side}x{side}")

    start = time.perf_counter()
    catalog = generate_catalog(bits, seed=seed, space=space)
    if verbose:
        print(f"Catalog built in {time.perf_counter() - start:.2f}s")

    start = time.perf_counter()
    engine = PlacementEngine(catalog.coords, side=side)
    grid = engine.run(verbose=verbose)
    if verbose:
        print(f"Placement done in {time.perf_counter() - start:.2f}s")

    save_image(render_image(grid, catalog.rgbs), output_path)
    if verbose:
        print(f"Wrote: {output_path}")

    verify_placement(grid, n_colors)
    if verbose:
        print(f"Verified: every color index 0..{n_colors - 1:,} used exactly once")

    return grid


def main():
    parser = argparse.ArgumentParser(
        description='Generate an image containing every color exactly once.'
    )
    parser.add_argument(
        '--bits', '-b',
        type=int,
        default=DEFAULT_BITS,
        help=f'Bits per color channel, 1-8 (default {DEFAULT_BITS})'
    )
    parser.add_argument(
        '--seed', '-s',
        type=int,
        default=None,
        help='Seed for the color shuffle (default: random)'
    )
    parser.add_argument(
        '--space',
        choices=sorted(CONVERTERS),
        default=DEFAULT_SPACE,
        help=f'Perceptual color space for matching (default {DEFAULT_SPACE})'
    )
    parser.add_argument(
        '--output', '-o',
        default=DEFAULT_OUTPUT,
        help=f'Output image path (default {DEFAULT_OUTPUT})'
    )
    parser.add_argument(
        '--quiet', '-q',
        action='store_true',
        help='Only report errors'
    )

    args = parser.parse_args()

    try:
        generate(args.bits, args.seed, args.space, Path(args.output), verbose=not args.quiet)
    except OSError as e:
        print(f"Error writing output: {e}", file=sys.stderr)
        sys.exit(1)
    except (ValueError, RuntimeError, KeyError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
