import unittest

import numpy as np

from dynamic_kdtree import DynamicKDTree


def _brute_nearest(entries: dict, query: np.ndarray) -> float:
    return min(float(np.sum((point - query) ** 2)) for point in entries.values())


class DynamicKDTreeTests(unittest.TestCase):
    def test_empty_query_fails(self) -> None:
        tree = DynamicKDTree()
        with self.assertRaises(RuntimeError):
            tree.nearest_one([0.0, 0.0, 0.0])

    def test_single_point(self) -> None:
        tree = DynamicKDTree()
        tree.add([1.0, 2.0, 3.0], 42)
        dist, key = tree.nearest_one([1.0, 2.0, 4.0])
        self.assertEqual(key, 42)
        self.assertAlmostEqual(dist, 1.0)

    def test_duplicate_key_rejected(self) -> None:
        tree = DynamicKDTree()
        tree.add([0.0, 0.0, 0.0], 1)
        with self.assertRaises(KeyError):
            tree.add([1.0, 1.0, 1.0], 1)

    def test_remove_requires_inserted_point(self) -> None:
        tree = DynamicKDTree()
        tree.add([0.5, 0.5, 0.5], 3)
        with self.assertRaises(ValueError):
            tree.remove([0.5, 0.5, 0.25], 3)
        self.assertIn(3, tree)
        with self.assertRaises(KeyError):
            tree.remove([0.5, 0.5, 0.5], 4)
        tree.remove([0.5, 0.5, 0.5], 3)
        self.assertNotIn(3, tree)
        self.assertEqual(len(tree), 0)

    def test_matches_brute_force_through_rebuilds(self) -> None:
        rng = np.random.default_rng(7)
        tree = DynamicKDTree()
        entries = {}
        next_key = 0

        for step in range(3000):
            if entries and rng.random() < 0.45:
                key = list(entries)[int(rng.integers(len(entries)))]
                tree.remove(entries.pop(key), key)
            else:
                point = rng.random(3)
                tree.add(point, next_key)
                entries[next_key] = point
                next_key += 1

            if entries and step % 7 == 0:
                query = rng.random(3)
                dist, key = tree.nearest_one(query)
                self.assertIn(key, entries)
                self.assertAlmostEqual(dist, float(np.sum((entries[key] - query) ** 2)))
                self.assertAlmostEqual(dist, _brute_nearest(entries, query))

        self.assertGreater(tree.rebuilds, 0)
        self.assertEqual(len(tree), len(entries))
        self.assertEqual({k: p.tolist() for k, p in tree.items()},
                         {k: p.tolist() for k, p in entries.items()})

    def test_heavy_removal_leaves_survivors_reachable(self) -> None:
        rng = np.random.default_rng(11)
        tree = DynamicKDTree()
        points = rng.random((1000, 3))
        for key, point in enumerate(points):
            tree.add(point, key)

        # Most of these sit in the snapshot and become tombstones
        for key in range(990):
            tree.remove(points[key], key)

        survivors = {key: points[key] for key in range(990, 1000)}
        for query in rng.random((20, 3)):
            dist, key = tree.nearest_one(query)
            self.assertIn(key, survivors)
            self.assertAlmostEqual(dist, _brute_nearest(survivors, query))

    def test_same_operations_give_same_answers(self) -> None:
        def run() -> list:
            rng = np.random.default_rng(3)
            tree = DynamicKDTree()
            answers = []
            for key in range(600):
                # Coarse grid points produce plenty of exact ties
                tree.add(rng.integers(0, 4, size=3).astype(float), key)
                answers.append(tree.nearest_one([1.5, 1.5, 1.5])[1])
            return answers

        self.assertEqual(run(), run())


if __name__ == "__main__":
    unittest.main()
