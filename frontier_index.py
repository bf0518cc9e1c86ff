"""
Frontier of empty cells waiting to be filled, searchable by desired color.

A FrontierIndex owns two structures that must always agree:

- a map from cell (x, y) to the color that cell currently wants, and
- a DynamicKDTree holding the same colors, keyed by the packed cell.

Callers only see upsert / remove / query_nearest, so every change to the
map is mirrored in the tree under the value that was originally inserted.
"""

import numpy as np

from color_grid import Grid
from dynamic_kdtree import DynamicKDTree


class FrontierIndex:
    """Empty cells adjacent to filled ones, with their target colors."""

    def __init__(self, grid: Grid):
        self._grid = grid
        self._targets = {}  # (x, y) -> desired color, float64 (3,)
        self._tree = DynamicKDTree(dims=3)

    def __len__(self) -> int:
        return len(self._targets)

    def __contains__(self, coord) -> bool:
        return tuple(coord) in self._targets

    def target(self, coord) -> np.ndarray:
        """Copy of the desired color stored for a frontier cell."""
        return self._targets[tuple(coord)].copy()

    def snapshot(self) -> dict:
        """Copy of the whole map, (x, y) -> desired color."""
        return {coord: value.copy() for coord, value in self._targets.items()}

    def upsert(self, coord, desired) -> None:
        """Set the desired color of a cell, replacing any previous one."""
        coord = (int(coord[0]), int(coord[1]))
        key = self._grid.pack(*coord)
        value = np.array(desired, dtype=np.float64)

        old = self._targets.get(coord)
        if old is not None:
            self._tree.remove(old, key)
        self._tree.add(value, key)
        self._targets[coord] = value

    def remove(self, coord) -> None:
        """Drop a cell from the frontier; no-op when it is not there."""
        coord = (int(coord[0]), int(coord[1]))
        old = self._targets.pop(coord, None)
        if old is not None:
            self._tree.remove(old, self._grid.pack(*coord))

    def query_nearest(self, color) -> tuple[int, int]:
        """Frontier cell whose desired color is closest to color."""
        if not self._targets:
            raise RuntimeError("Frontier is empty, no cell left to place into")
        _, key = self._tree.nearest_one(color)
        return self._grid.unpack(key)

    def check_consistency(self) -> None:
        """Raise RuntimeError unless the map and the tree hold the same entries."""
        if len(self._tree) != len(self._targets):
            raise RuntimeError(
                f"Frontier map holds {len(self._targets)} cells, index holds {len(self._tree)}"
            )
        for key, point in self._tree.items():
            coord = self._grid.unpack(key)
            if coord not in self._targets:
                raise RuntimeError(f"Index holds cell {coord} missing from the frontier map")
            if not np.array_equal(self._targets[coord], point):
                raise RuntimeError(
                    f"Cell {coord} wants {self._targets[coord].tolist()} "
                    f"but the index stores {point.tolist()}"
                )
