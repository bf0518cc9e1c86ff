"""
Nearest-neighbor index over 3D points that supports insertion and removal.

scipy's cKDTree is static, so points live in two places:

1. A snapshot tree built from every point alive at the last rebuild.
   Removed snapshot rows are tombstoned and skipped at query time.
2. A small insert buffer searched by brute force with numpy.

When the buffer fills, or tombstones outnumber live snapshot rows, every
live point is merged into a fresh snapshot. Each point carries an integer
key; removal needs both the key and the exact point it was inserted with.
"""

import math

import numpy as np
from scipy.spatial import cKDTree


MIN_BUFFER_SIZE = 256  # Smallest insert buffer between rebuilds
BUFFER_SCALE = 4  # Buffer grows as BUFFER_SCALE * sqrt(live points)
MIN_TOMBSTONES = 64  # Tombstones tolerated before density triggers a rebuild


class DynamicKDTree:
    """Mutable nearest-neighbor index keyed by integer payloads."""

    def __init__(self, dims: int = 3):
        self.dims = dims
        self.rebuilds = 0

        self._tree = None
        self._tree_points = np.empty((0, dims))
        self._tree_keys = np.empty(0, dtype=np.int64)
        self._tree_alive = np.empty(0, dtype=bool)
        self._tree_live = 0

        self._buf_capacity = MIN_BUFFER_SIZE
        self._buf_points = np.empty((self._buf_capacity, dims))
        self._buf_keys = np.empty(self._buf_capacity, dtype=np.int64)
        self._buf_alive = np.zeros(self._buf_capacity, dtype=bool)
        self._buf_len = 0

        # key -> (in_snapshot, row)
        self._slots = {}

    def __len__(self) -> int:
        return len(self._slots)

    def __contains__(self, key: int) -> bool:
        return key in self._slots

    def add(self, point, key: int) -> None:
        """Insert a point under a key that is not already present."""
        if key in self._slots:
            raise KeyError(f"Key {key} is already in the index")

        if self._buf_len == self._buf_capacity:
            self._rebuild()

        row = self._buf_len
        self._buf_points[row] = point
        self._buf_keys[row] = key
        self._buf_alive[row] = True
        self._buf_len += 1
        self._slots[key] = (False, row)

    def remove(self, point, key: int) -> None:
        """Remove the entry stored under key, which must sit at point."""
        if key not in self._slots:
            raise KeyError(f"Key {key} is not in the index")

        in_snapshot, row = self._slots[key]
        stored = self._tree_points[row] if in_snapshot else self._buf_points[row]
        if not np.array_equal(stored, np.asarray(point, dtype=np.float64)):
            raise ValueError(
                f"Key {key} is stored at {stored.tolist()}, not {np.asarray(point).tolist()}"
            )

        del self._slots[key]
        if in_snapshot:
            self._tree_alive[row] = False
            self._tree_live -= 1
            dead = len(self._tree_keys) - self._tree_live
            if dead > MIN_TOMBSTONES and dead > self._tree_live:
                self._rebuild()
        else:
            self._buf_alive[row] = False

    def point(self, key: int) -> np.ndarray:
        """Copy of the point stored under key."""
        in_snapshot, row = self._slots[key]
        source = self._tree_points if in_snapshot else self._buf_points
        return source[row].copy()

    def items(self):
        """Iterate (key, point) over every live entry."""
        for key in self._slots:
            yield key, self.point(key)

    def nearest_one(self, point) -> tuple[float, int]:
        """
        Find the live entry closest to point by squared Euclidean distance.

        Returns:
            (squared_distance, key)
        """
        if not self._slots:
            raise RuntimeError("Nearest-neighbor query on an empty index")

        query = np.asarray(point, dtype=np.float64)
        best_dist, best_key = math.inf, None

        if self._tree_live:
            best_dist, best_key = self._nearest_in_snapshot(query)

        n = self._buf_len
        if n:
            diff = self._buf_points[:n] - query
            dist = np.einsum('ij,ij->i', diff, diff)
            dist[~self._buf_alive[:n]] = np.inf
            row = int(np.argmin(dist))
            if dist[row] < best_dist:
                best_dist, best_key = float(dist[row]), int(self._buf_keys[row])

        return best_dist, best_key

    def _nearest_in_snapshot(self, query: np.ndarray) -> tuple[float, int]:
        # Any dead + 1 rows hold at least one live row, which bounds the search
        limit = len(self._tree_keys) - self._tree_live + 1
        k = min(limit, 8)
        while True:
            dist, rows = self._tree.query(query, k=k)
            dist, rows = np.atleast_1d(dist), np.atleast_1d(rows)
            alive = self._tree_alive[rows]
            if alive.any():
                first = int(np.argmax(alive))
                return float(dist[first]) ** 2, int(self._tree_keys[rows[first]])
            if k == limit:
                raise RuntimeError("Snapshot reports live rows but none were found")
            k = min(limit, k * 4)

    def _rebuild(self) -> None:
        """Merge every live point into a fresh snapshot and empty the buffer."""
        tree_mask = self._tree_alive
        buf_mask = self._buf_alive[:self._buf_len]

        points = np.concatenate([
            self._tree_points[tree_mask],
            self._buf_points[:self._buf_len][buf_mask],
        ])
        keys = np.concatenate([
            self._tree_keys[tree_mask],
            self._buf_keys[:self._buf_len][buf_mask],
        ])

        self._tree_points = points
        self._tree_keys = keys
        self._tree_alive = np.ones(len(keys), dtype=bool)
        self._tree_live = len(keys)
        self._tree = cKDTree(points) if len(keys) else None
        self._slots = {int(key): (True, row) for row, key in enumerate(keys)}

        self._buf_capacity = max(MIN_BUFFER_SIZE, BUFFER_SCALE * math.isqrt(len(keys)))
        self._buf_points = np.empty((self._buf_capacity, self.dims))
        self._buf_keys = np.empty(self._buf_capacity, dtype=np.int64)
        self._buf_alive = np.zeros(self._buf_capacity, dtype=bool)
        self._buf_len = 0
        self.rebuilds += 1
