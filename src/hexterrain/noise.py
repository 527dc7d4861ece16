"""Coherent noise primitives used to roughen coastlines.

Every function in this module operates on plain ``(x, y)`` coordinates
(or numpy coordinate axes) and returns floats.  There is **no**
dependency on hex grids or images — :mod:`sampler` composes these with
the source raster.

Functions
---------
- :func:`fractal_noise` — summed octaves of OpenSimplex noise at a point
- :func:`fractal_noise_grid` — the same sum over a regular grid
"""

from __future__ import annotations

from functools import lru_cache

import numpy as np
from opensimplex import OpenSimplex


@lru_cache(maxsize=16)
def noise_source(seed: int) -> OpenSimplex:
    """Return a seeded OpenSimplex generator (cached per seed)."""
    return OpenSimplex(seed=seed)


# ═══════════════════════════════════════════════════════════════════
# Fractal noise
# ═══════════════════════════════════════════════════════════════════

def fractal_noise(
    x: float,
    y: float,
    *,
    octaves: int = 3,
    frequency: float = 2.0,
    seed: int = 42,
) -> float:
    """Sum *octaves* layers of 2-D noise at ``(x, y)``.

    The first octave has amplitude 1 and spatial frequency *frequency*;
    each later octave halves the amplitude and doubles the frequency.
    The sum is **not** normalised, so its magnitude can reach just under
    ``2.0`` — callers scale it by their own amplitude.

    Parameters
    ----------
    x, y : float
        Sample coordinates.
    octaves : int
        Number of layers (0 returns 0.0).
    frequency : float
        Base spatial frequency.
    seed : int
        Noise seed.
    """
    gen = noise_source(seed)
    value = 0.0
    amplitude = 1.0
    freq = frequency
    for _ in range(octaves):
        value += amplitude * gen.noise2(x * freq, y * freq)
        amplitude *= 0.5
        freq *= 2.0
    return float(value)


def fractal_noise_grid(
    xs: np.ndarray,
    ys: np.ndarray,
    *,
    octaves: int = 3,
    frequency: float = 2.0,
    seed: int = 42,
) -> np.ndarray:
    """Vectorised :func:`fractal_noise` over the grid spanned by *xs* × *ys*.

    Returns an array of shape ``(len(ys), len(xs))`` — row index is y.
    """
    gen = noise_source(seed)
    xs = np.asarray(xs, dtype=np.float64)
    ys = np.asarray(ys, dtype=np.float64)
    value = np.zeros((ys.size, xs.size), dtype=np.float64)
    amplitude = 1.0
    freq = frequency
    for _ in range(octaves):
        value += amplitude * gen.noise2array(xs * freq, ys * freq)
        amplitude *= 0.5
        freq *= 2.0
    return value
