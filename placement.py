#!/usr/bin/env python3
"""
Greedy placement of a color catalog onto a square grid.

The first color seeds the grid center. Every later color goes to the
frontier cell whose desired color (the mean of its filled neighbors) is
nearest to it, so similar colors grow into contiguous regions.
"""

import time
from typing import Optional, Sequence

import numpy as np

from color_grid import Grid, EMPTY
from color_space import grid_side
from frontier_index import FrontierIndex


PROGRESS_EVERY = 1 << 16  # Placements between progress lines


def target_color(grid: Grid, x: int, y: int, coords: np.ndarray) -> np.ndarray:
    """Mean perceptual coordinate of every filled 8-neighbor of (x, y)."""
    filled = [value for _, _, value in grid.neighbors(x, y) if value != EMPTY]
    if not filled:
        raise RuntimeError(f"Cell ({x}, {y}) has no filled neighbor to take a color from")
    return coords[filled].mean(axis=0, dtype=np.float64)


class PlacementEngine:
    """
    Step-by-step driver for the placement loop.

    Args:
        coords: (n, 3) perceptual coordinates, indexed by catalog index
        side: Grid side; defaults to the smallest square holding n colors
        order: Processing order as a permutation of catalog indices;
            defaults to catalog order
    """

    def __init__(self, coords: np.ndarray, side: Optional[int] = None,
                 order: Optional[Sequence[int]] = None):
        coords = np.asarray(coords)
        if coords.ndim != 2 or coords.shape[1] != 3:
            raise ValueError(f"Expected (n, 3) perceptual coordinates, got shape {coords.shape}")
        n = len(coords)
        if side is None:
            side = grid_side(n)
        if side * side < n:
            raise ValueError(
                f"Grid {side}x{side} holds {side * side:,} cells, fewer than {n:,} colors"
            )

        if order is None:
            order = np.arange(n)
        else:
            order = np.asarray(order, dtype=np.int64)
            if len(order) != n or not np.array_equal(np.sort(order), np.arange(n)):
                raise ValueError("Processing order must be a permutation of catalog indices")

        self.coords = coords
        self.order = order
        self.grid = Grid(side)
        self.frontier = FrontierIndex(self.grid)
        self.placed = 0

    @property
    def done(self) -> bool:
        return self.placed == len(self.coords)

    def place_next(self) -> tuple[int, int]:
        """Place the next color in processing order and return its cell."""
        if self.done:
            raise RuntimeError("Every color has already been placed")

        color_idx = int(self.order[self.placed])
        if self.placed == 0:
            x, y = self.grid.center
        else:
            x, y = self.frontier.query_nearest(self.coords[color_idx])

        self.frontier.remove((x, y))
        self.grid.set(x, y, color_idx)

        for nx, ny in self.grid.empty_neighbors(x, y):
            self.frontier.upsert((nx, ny), target_color(self.grid, nx, ny, self.coords))

        self.placed += 1
        return x, y

    def run(self, verbose: bool = False, progress_every: int = PROGRESS_EVERY) -> Grid:
        """Place every remaining color and return the finished grid."""
        total = len(self.coords)
        start = time.perf_counter()

        while not self.done:
            self.place_next()
            if verbose and (self.placed % progress_every == 0 or self.done):
                elapsed = time.perf_counter() - start
                rate = self.placed / elapsed if elapsed > 0 else 0.0
                print(f"  [{self.placed:,}/{total:,}] {self.placed / total:6.1%} "
                      f"frontier={len(self.frontier):,} ({rate:,.0f} colors/s)")

        return self.grid


def place_colors(coords: np.ndarray, side: Optional[int] = None,
                 order: Optional[Sequence[int]] = None, verbose: bool = False) -> Grid:
    """Run the whole placement loop; see PlacementEngine."""
    return PlacementEngine(coords, side=side, order=order).run(verbose=verbose)
