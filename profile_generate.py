#!/usr/bin/env python3
"""Profile the generator to identify performance bottlenecks."""

import cProfile
import pstats
import io
import sys
import time

from color_space import generate_catalog, grid_side
from generate_image import render_image, verify_placement
from placement import PlacementEngine


def profile_stages(bits: int, seed: int = 0, verbose: bool = True):
    """Time each stage of one generation run."""

    if verbose:
        print(f"\n{'='*60}")
        print(f"Profiling: {bits} bits/channel ({1 << (3 * bits):,} colors)")
        print(f"{'='*60}")

    timings = {}

    start = time.perf_counter()
    catalog = generate_catalog(bits, seed=seed)
    timings['generate_catalog'] = time.perf_counter() - start

    start = time.perf_counter()
    engine = PlacementEngine(catalog.coords, side=grid_side(len(catalog)))
    grid = engine.run()
    timings['place_colors'] = time.perf_counter() - start

    start = time.perf_counter()
    render_image(grid, catalog.rgbs)
    timings['render_image'] = time.perf_counter() - start

    start = time.perf_counter()
    verify_placement(grid, len(catalog))
    timings['verify_placement'] = time.perf_counter() - start

    total = sum(timings.values())
    timings['total'] = total

    if verbose:
        print(f"\nStage timings:")
        for stage, t in timings.items():
            pct = (t / total * 100) if stage != 'total' else 100
            print(f"  {stage:20s}: {t:6.3f}s ({pct:5.1f}%)")

    return timings


def detailed_profile(bits: int, seed: int = 0):
    """Run detailed cProfile on the placement loop (the main compute stage)."""

    print(f"\n{'='*60}")
    print(f"Detailed profile of PlacementEngine.run()")
    print(f"{'='*60}")

    # Build the catalog first (outside profiling)
    catalog = generate_catalog(bits, seed=seed)
    engine = PlacementEngine(catalog.coords)

    profiler = cProfile.Profile()
    profiler.enable()
    engine.run()
    profiler.disable()

    stream = io.StringIO()
    stats = pstats.Stats(profiler, stream=stream)
    stats.sort_stats('cumulative')
    stats.print_stats(30)  # Top 30 functions

    print(stream.getvalue())


def main():
    bit_depths = [int(arg) for arg in sys.argv[1:]] or [3, 4, 5]

    all_timings = []
    for bits in bit_depths:
        all_timings.append((bits, profile_stages(bits)))

    print(f"\n{'='*60}")
    print("SUMMARY")
    print(f"{'='*60}")
    print(f"{'Bits':>4} {'Colors':>12} {'Placement':>10} {'Total':>8}")
    print("-" * 60)
    for bits, timings in all_timings:
        print(f"{bits:>4} {1 << (3 * bits):>12,} {timings['place_colors']:>9.3f}s {timings['total']:>7.3f}s")

    detailed_profile(bit_depths[0])


if __name__ == "__main__":
    main()
