#!/usr/bin/env python3
"""
Enumerate every representable RGB color and map it into a perceptual space.
"""

from dataclasses import dataclass
import math
from typing import Optional

import numpy as np


DEFAULT_BITS = 8  # Bits per channel: 8 = all 16,777,216 sRGB colors
DEFAULT_SPACE = 'oklab'


def _srgb_to_linear(rgb: np.ndarray) -> np.ndarray:
    """Normalize RGB (0-255) and undo the sRGB transfer curve."""
    rgb_norm = rgb.astype(np.float64) / 255.0
    mask = rgb_norm > 0.04045
    return np.where(mask, ((rgb_norm + 0.055) / 1.055) ** 2.4, rgb_norm / 12.92)


def rgb_to_oklab(rgb: np.ndarray) -> np.ndarray:
    """Convert RGB array (0-255) to Oklab."""
    rgb_linear = _srgb_to_linear(rgb)
    r, g, b = rgb_linear[:, 0], rgb_linear[:, 1], rgb_linear[:, 2]

    # Linear RGB to LMS cone response
    l = 0.4122214708 * r + 0.5363325363 * g + 0.0514459929 * b
    m = 0.2119034982 * r + 0.6806995451 * g + 0.1073969566 * b
    s = 0.0883024619 * r + 0.2817188376 * g + 0.6299787005 * b

    l_, m_, s_ = np.cbrt(l), np.cbrt(m), np.cbrt(s)

    L = 0.2104542553 * l_ + 0.7936177850 * m_ - 0.0040720468 * s_
    a = 1.9779984951 * l_ - 2.4285922050 * m_ + 0.4505937099 * s_
    b_val = 0.0259040371 * l_ + 0.7827717662 * m_ - 0.8086757660 * s_

    return np.column_stack([L, a, b_val])


def rgb_to_lab(rgb: np.ndarray) -> np.ndarray:
    """Convert RGB array (0-255) to CIELAB (D65)."""
    rgb_linear = _srgb_to_linear(rgb)

    # RGB to XYZ matrix
    r, g, b = rgb_linear[:, 0], rgb_linear[:, 1], rgb_linear[:, 2]
    x = r * 0.4124564 + g * 0.3575761 + b * 0.1804375
    y = r * 0.2126729 + g * 0.7151522 + b * 0.0721750
    z = r * 0.0193339 + g * 0.1191920 + b * 0.9503041

    # XYZ to LAB (D65 reference white)
    xn, yn, zn = 0.95047, 1.0, 1.08883
    x, y, z = x / xn, y / yn, z / zn

    epsilon = 0.008856
    kappa = 903.3
    fx = np.where(x > epsilon, np.cbrt(x), (kappa * x + 16) / 116)
    fy = np.where(y > epsilon, np.cbrt(y), (kappa * y + 16) / 116)
    fz = np.where(z > epsilon, np.cbrt(z), (kappa * z + 16) / 116)

    L = 116 * fy - 16
    a = 500 * (fx - fy)
    b_val = 200 * (fy - fz)

    return np.column_stack([L, a, b_val])


CONVERTERS = {
    'oklab': rgb_to_oklab,
    'lab': rgb_to_lab,
}


@dataclass
class Catalog:
    """Every color to place, in processing order."""
    rgbs: np.ndarray  # (n, 3) uint8
    coords: np.ndarray  # (n, 3) perceptual coordinates

    def __len__(self) -> int:
        return len(self.rgbs)


def all_rgb_colors(bits: int = DEFAULT_BITS) -> np.ndarray:
    """
    Enumerate every RGB color at the given channel depth.

    Channel levels are spread over the full 0-255 range, so 1 bit gives
    {0, 255} and 8 bits gives every byte value. Ordered with red varying
    slowest and blue fastest.

    Returns:
        uint8 array of shape (2**(3*bits), 3)
    """
    if not 1 <= bits <= 8:
        raise ValueError(f"Bits per channel must be between 1 and 8, got {bits}")

    levels = np.arange(1 << bits, dtype=np.int64)
    levels = (levels * 255 // ((1 << bits) - 1)).astype(np.uint8)

    r, g, b = np.meshgrid(levels, levels, levels, indexing='ij')
    return np.column_stack([r.ravel(), g.ravel(), b.ravel()])


def generate_catalog(bits: int = DEFAULT_BITS, seed: Optional[int] = None,
                     space: str = DEFAULT_SPACE, shuffle: bool = True,
                     chunk_size: int = 1 << 20) -> Catalog:
    """
    Build the shuffled color catalog with precomputed perceptual coordinates.

    Args:
        bits: Bits per channel (1-8)
        seed: Seed for the shuffle; None draws fresh entropy
        space: Perceptual space name, one of CONVERTERS
        shuffle: Apply a uniform random permutation to the catalog
        chunk_size: Colors converted per batch (bounds float64 temporaries)

    Returns:
        Catalog whose index order is the processing order
    """
    if space not in CONVERTERS:
        raise ValueError(f"Unknown color space '{space}', expected one of {sorted(CONVERTERS)}")
    convert = CONVERTERS[space]

    rgbs = all_rgb_colors(bits)
    if shuffle:
        rng = np.random.default_rng(seed)
        rgbs = rgbs[rng.permutation(len(rgbs))]

    # float32 halves residency for the full 16.7M catalog
    coords = np.empty((len(rgbs), 3), dtype=np.float32)
    for start in range(0, len(rgbs), chunk_size):
        stop = start + chunk_size
        coords[start:stop] = convert(rgbs[start:stop])

    return Catalog(rgbs=rgbs, coords=coords)


def grid_side(n_colors: int) -> int:
    """Smallest square side whose area holds every color."""
    if n_colors < 1:
        raise ValueError(f"Catalog must hold at least one color, got {n_colors}")
    side = math.isqrt(n_colors)
    if side * side < n_colors:
        side += 1
    return side
