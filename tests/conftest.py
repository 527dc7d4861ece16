"""Shared fixtures: small in-memory rasters and matching configs."""

from __future__ import annotations

import numpy as np
import pytest

from hexterrain.config import ContourConfig
from hexterrain.layout import HexConfig
from hexterrain.sampler import SourceImage, TerrainSampler


def disk_pixels(size: int = 64, radius: float = 16.0) -> np.ndarray:
    """``size × size`` raster: 1.0 inside a centred disk, 0.0 outside."""
    yy, xx = np.mgrid[0:size, 0:size]
    c = size // 2
    return ((xx - c) ** 2 + (yy - c) ** 2 <= radius ** 2).astype(np.float32)


@pytest.fixture()
def disk_image():
    return SourceImage.from_array(disk_pixels())


@pytest.fixture()
def hex_config():
    """Unit cells and radius-2 chunks."""
    return HexConfig(hex_radius=1.0, chunk_size=2)


@pytest.fixture()
def contour_config():
    """4 px per world unit and no noise, so the island has radius 4."""
    return ContourConfig(pixels_per_hex=4.0, noise_amplitude=0.0)


@pytest.fixture()
def sampler(disk_image, hex_config, contour_config):
    return TerrainSampler(disk_image, hex_config.layout, contour_config)
