"""
Square grid of placement slots with boundary-clipped 8-neighbor iteration.
"""

from typing import Iterator

import numpy as np


EMPTY = -1  # Slot value for an unfilled cell

# Relative offsets walked by every neighbor iteration, in this order
NEIGHBORS = (
    (0, 1),
    (1, 0),
    (0, -1),
    (-1, 0),
    (1, 1),
    (-1, -1),
    (-1, 1),
    (1, -1),
)


class Grid:
    """
    Fixed-size S x S array of catalog indices, EMPTY until filled.

    Cells are addressed as (x, y) with 0 <= x, y < side. A filled cell is
    never overwritten.
    """

    def __init__(self, side: int):
        if side < 1:
            raise ValueError(f"Grid side must be positive, got {side}")
        self.side = side
        self.cells = np.full((side, side), EMPTY, dtype=np.int32)
        # Low bits reserved for y when packing a coordinate into one key
        self.y_bits = max(1, (side - 1).bit_length())
        self._y_mask = (1 << self.y_bits) - 1
        self.filled = 0

    @property
    def center(self) -> tuple[int, int]:
        return self.side // 2, self.side // 2

    @property
    def capacity(self) -> int:
        return self.side * self.side

    def is_full(self) -> bool:
        return self.filled == self.capacity

    def get(self, x: int, y: int) -> int:
        return int(self.cells[x, y])

    def set(self, x: int, y: int, value: int) -> None:
        """Fill an empty cell with a catalog index."""
        current = self.cells[x, y]
        if current != EMPTY:
            raise RuntimeError(
                f"Cell ({x}, {y}) already holds color {current}, cannot place {value}"
            )
        self.cells[x, y] = value
        self.filled += 1

    def neighbors(self, x: int, y: int) -> Iterator[tuple[int, int, int]]:
        """Yield (nx, ny, value) for each in-bounds 8-neighbor of (x, y)."""
        side = self.side
        cells = self.cells
        for dx, dy in NEIGHBORS:
            nx, ny = x + dx, y + dy
            if 0 <= nx < side and 0 <= ny < side:
                yield nx, ny, int(cells[nx, ny])

    def empty_neighbors(self, x: int, y: int) -> Iterator[tuple[int, int]]:
        for nx, ny, value in self.neighbors(x, y):
            if value == EMPTY:
                yield nx, ny

    def pack(self, x: int, y: int) -> int:
        return (x << self.y_bits) | y

    def unpack(self, key: int) -> tuple[int, int]:
        return key >> self.y_bits, key & self._y_mask

    def filled_values(self) -> np.ndarray:
        """Catalog indices of every filled cell, in row-major cell order."""
        flat = self.cells.ravel()
        return flat[flat != EMPTY]
