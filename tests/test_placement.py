import unittest

import numpy as np

from color_grid import EMPTY, Grid
from color_space import generate_catalog
from placement import PlacementEngine, place_colors, target_color


def _assert_bijection(test: unittest.TestCase, grid: Grid, n: int) -> None:
    values = sorted(grid.filled_values().tolist())
    test.assertEqual(values, list(range(n)))


class TargetColorTests(unittest.TestCase):
    def test_mean_of_filled_neighbors(self) -> None:
        coords = np.array([
            [0.1, 0.2, 0.3],
            [0.5, -0.1, 0.0],
            [0.9, 0.4, -0.6],
        ])
        grid = Grid(3)
        grid.set(0, 0, 0)
        grid.set(2, 1, 1)
        grid.set(1, 2, 2)
        result = target_color(grid, 1, 1, coords)
        np.testing.assert_allclose(result, coords[:3].mean(axis=0))

        # (1, 2) is not adjacent to (1, 0)
        result = target_color(grid, 1, 0, coords)
        np.testing.assert_allclose(result, coords[[0, 1]].mean(axis=0))

    def test_single_neighbor(self) -> None:
        coords = np.array([[0.25, 0.5, 0.75]], dtype=np.float32)
        grid = Grid(3)
        grid.set(1, 1, 0)
        np.testing.assert_allclose(target_color(grid, 0, 0, coords), [0.25, 0.5, 0.75])

    def test_no_filled_neighbor_fails(self) -> None:
        grid = Grid(3)
        with self.assertRaises(RuntimeError):
            target_color(grid, 1, 1, np.zeros((1, 3)))


class ThreeByThreeScenarioTests(unittest.TestCase):
    def setUp(self) -> None:
        self.coords = np.array([
            [0.50, 0.00, 0.00],
            [0.10, 0.05, 0.00],
            [0.90, -0.05, 0.02],
            [0.30, 0.10, -0.10],
            [0.70, 0.00, 0.10],
            [0.20, -0.20, 0.05],
            [0.80, 0.15, -0.05],
            [0.40, 0.02, 0.20],
            [0.60, -0.12, -0.15],
        ])
        self.engine = PlacementEngine(self.coords, side=3)

    def test_seed_and_initial_frontier(self) -> None:
        self.assertEqual(self.engine.place_next(), (1, 1))
        self.assertEqual(self.engine.grid.get(1, 1), 0)

        snap = self.engine.frontier.snapshot()
        expected_cells = {(x, y) for x in range(3) for y in range(3)} - {(1, 1)}
        self.assertEqual(set(snap), expected_cells)
        for value in snap.values():
            np.testing.assert_allclose(value, self.coords[0])
        self.engine.frontier.check_consistency()

    def test_each_placement_takes_nearest_frontier_cell(self) -> None:
        self.engine.place_next()
        while not self.engine.done:
            color = self.coords[self.engine.placed]
            snap = self.engine.frontier.snapshot()
            best = min(float(np.sum((v - color) ** 2)) for v in snap.values())

            x, y = self.engine.place_next()

            self.assertIn((x, y), snap)
            self.assertAlmostEqual(float(np.sum((snap[(x, y)] - color) ** 2)), best)
            self.assertNotIn((x, y), self.engine.frontier)
            self.engine.frontier.check_consistency()

            # Remaining frontier cells want the mean of their filled neighbors
            for coord, value in self.engine.frontier.snapshot().items():
                np.testing.assert_allclose(
                    value, target_color(self.engine.grid, *coord, self.coords))

        self.assertTrue(self.engine.grid.is_full())
        self.assertEqual(len(self.engine.frontier), 0)
        _assert_bijection(self, self.engine.grid, 9)

    def test_place_after_done_fails(self) -> None:
        self.engine.run()
        with self.assertRaises(RuntimeError):
            self.engine.place_next()


class PlacementEngineTests(unittest.TestCase):
    def test_single_color(self) -> None:
        engine = PlacementEngine(np.array([[0.3, 0.1, -0.1]]))
        grid = engine.run()
        self.assertEqual(grid.side, 1)
        self.assertEqual(grid.get(0, 0), 0)
        self.assertEqual(len(engine.frontier), 0)
        _assert_bijection(self, grid, 1)

    def test_capacity_shortfall_rejected(self) -> None:
        with self.assertRaises(ValueError):
            PlacementEngine(np.zeros((10, 3)), side=3)

    def test_bad_coordinate_shape_rejected(self) -> None:
        with self.assertRaises(ValueError):
            PlacementEngine(np.zeros((9, 2)))

    def test_order_must_be_permutation(self) -> None:
        with self.assertRaises(ValueError):
            PlacementEngine(np.zeros((4, 3)), order=[0, 1, 1, 2])

    def test_custom_order_seeds_with_first_entry(self) -> None:
        coords = np.random.default_rng(2).random((9, 3))
        engine = PlacementEngine(coords, order=[4, 0, 1, 2, 3, 5, 6, 7, 8])
        engine.place_next()
        self.assertEqual(engine.grid.get(1, 1), 4)
        grid = engine.run()
        _assert_bijection(self, grid, 9)

    def test_full_catalog_bijection(self) -> None:
        catalog = generate_catalog(bits=2, seed=1)
        grid = place_colors(catalog.coords)
        self.assertEqual(grid.side, 8)
        self.assertTrue(grid.is_full())
        _assert_bijection(self, grid, 64)

    def test_oversized_grid_leaves_spare_cells_empty(self) -> None:
        catalog = generate_catalog(bits=3, seed=4, space='lab')
        grid = place_colors(catalog.coords)
        self.assertEqual(grid.side, 23)
        self.assertEqual(int(np.sum(grid.cells == EMPTY)), 23 * 23 - 512)
        _assert_bijection(self, grid, 512)

    def test_random_coordinates_with_index_rebuilds(self) -> None:
        coords = np.random.default_rng(9).random((40 * 40, 3))
        engine = PlacementEngine(coords)
        grid = engine.run()
        engine.frontier.check_consistency()
        self.assertTrue(grid.is_full())
        _assert_bijection(self, grid, 1600)

    def test_fixed_order_is_deterministic(self) -> None:
        coords = np.random.default_rng(12).random((20 * 20, 3))
        first = place_colors(coords)
        second = place_colors(coords)
        np.testing.assert_array_equal(first.cells, second.cells)


if __name__ == "__main__":
    unittest.main()
