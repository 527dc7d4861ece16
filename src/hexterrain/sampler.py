"""Terrain sampling — source raster → per-cell samples → classified cells.

This is the thin adapter between the source image (pixels), the hex
layout (world positions) and :mod:`noise` (organic perturbation).  It
produces a :class:`CellGrid`: an arena of immutable
:class:`~models.CellData` indexed by a stable integer id.

Functions
---------
- :func:`load_source_image` — decode a raster file (Pillow)
- :func:`classify_cell` — neighbour-vote terrain category
- :func:`distance_field` — hex distance of every cell to the nearest border
- :func:`sample_cells` — build a :class:`CellGrid` for a set of coordinates
"""

from __future__ import annotations

import math
from collections import deque
from concurrent.futures import Executor
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np
import structlog
from PIL import Image

from .config import ContourConfig
from .hex_coords import HexCoord
from .layout import HexLayout, Point
from .models import CellData, TerrainType
from .noise import fractal_noise, fractal_noise_grid
from .tasks import ProgressCallback, parallel_map

logger = structlog.get_logger(__name__)

PathLike = Union[str, Path]


class SourceImageError(RuntimeError):
    """The source raster is missing or cannot be decoded."""


# ═══════════════════════════════════════════════════════════════════
# Source image
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class SourceImage:
    """Grayscale raster with values in ``[0, 1]``; row index is y.

    Reads outside the raster return 0.0 (water).
    """

    pixels: np.ndarray

    @classmethod
    def from_array(cls, array: np.ndarray) -> "SourceImage":
        """Build from an ``(H, W)`` or ``(H, W, C)`` array.

        Integer arrays are scaled by 1/255; multi-channel arrays keep
        channel 0.
        """
        arr = np.asarray(array)
        if arr.ndim == 3:
            arr = arr[..., 0]
        if arr.ndim != 2:
            raise ValueError(f"expected a 2-D raster, got shape {arr.shape}")
        if np.issubdtype(arr.dtype, np.integer):
            values = arr.astype(np.float32) / 255.0
        else:
            values = arr.astype(np.float32)
        return cls(np.clip(values, 0.0, 1.0))

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    def pixel_value(self, x: int, y: int) -> float:
        if x < 0 or y < 0 or x >= self.width or y >= self.height:
            return 0.0
        return float(self.pixels[y, x])

    def sample_at_position(self, x: float, y: float) -> float:
        """Bilinear interpolation between the four surrounding pixels."""
        x0, x1 = math.floor(x), math.ceil(x)
        y0, y1 = math.floor(y), math.ceil(y)
        fx = x - x0
        fy = y - y0
        v00 = self.pixel_value(x0, y0)
        v10 = self.pixel_value(x1, y0)
        v01 = self.pixel_value(x0, y1)
        v11 = self.pixel_value(x1, y1)
        v0 = v00 * (1.0 - fx) + v10 * fx
        v1 = v01 * (1.0 - fx) + v11 * fx
        return v0 * (1.0 - fy) + v1 * fy

    def sample_grid(self, px: np.ndarray, py: np.ndarray) -> np.ndarray:
        """Vectorised :meth:`sample_at_position` over the grid *px* × *py*.

        Returns shape ``(len(py), len(px))``.
        """
        px = np.asarray(px, dtype=np.float64)[None, :]
        py = np.asarray(py, dtype=np.float64)[:, None]
        x0, x1 = np.floor(px).astype(np.int64), np.ceil(px).astype(np.int64)
        y0, y1 = np.floor(py).astype(np.int64), np.ceil(py).astype(np.int64)
        fx = px - x0
        fy = py - y0
        v0 = self._gather(x0, y0) * (1.0 - fx) + self._gather(x1, y0) * fx
        v1 = self._gather(x0, y1) * (1.0 - fx) + self._gather(x1, y1) * fx
        return v0 * (1.0 - fy) + v1 * fy

    def _gather(self, xi: np.ndarray, yi: np.ndarray) -> np.ndarray:
        xi, yi = np.broadcast_arrays(xi, yi)
        out = np.zeros(xi.shape, dtype=np.float64)
        valid = (xi >= 0) & (xi < self.width) & (yi >= 0) & (yi < self.height)
        out[valid] = self.pixels[yi[valid], xi[valid]]
        return out


def load_source_image(path: PathLike) -> SourceImage:
    """Decode *path* into a :class:`SourceImage`.

    Raises :class:`SourceImageError` if the file is missing or is not a
    readable raster.
    """
    try:
        with Image.open(path) as img:
            img.load()
            if img.mode not in ("L", "LA", "RGB", "RGBA"):
                img = img.convert("RGBA")
            array = np.asarray(img)
    except (OSError, ValueError) as exc:
        raise SourceImageError(f"cannot load source image {str(path)!r}: {exc}") from exc

    image = SourceImage.from_array(array)
    logger.info("source image loaded", path=str(path), width=image.width, height=image.height)
    return image


# ═══════════════════════════════════════════════════════════════════
# Sampler
# ═══════════════════════════════════════════════════════════════════


class TerrainSampler:
    """Samples the source image at hex centres and world positions.

    Parameters
    ----------
    image : SourceImage
        The land/water raster.
    layout : HexLayout
        Converts hex coordinates to world positions.
    config : ContourConfig
        Scale, noise and threshold parameters.
    """

    def __init__(self, image: SourceImage, layout: HexLayout, config: ContourConfig) -> None:
        self.image = image
        self.layout = layout
        self.config = config

    def rescaled(self, scale: float) -> "TerrainSampler":
        """Sampler for a grid *scale* times smaller covering the same image area."""
        config = replace(self.config, pixels_per_hex=self.config.pixels_per_hex / scale)
        return TerrainSampler(self.image, self.layout, config)

    def world_to_pixel(self, position: Point) -> Point:
        ppx = self.config.pixels_per_hex
        return (
            position[0] * ppx + self.image.width / 2.0,
            position[1] * ppx + self.image.height / 2.0,
        )

    def sample_hex(self, coord: HexCoord) -> float:
        """Raw image value at the centre of *coord* (nearest pixel)."""
        px, py = self.world_to_pixel(self.layout.hex_to_world_pos(coord))
        return self.image.pixel_value(math.floor(px), math.floor(py))

    def is_land(self, coord: HexCoord) -> bool:
        return self.sample_hex(coord) > self.config.threshold

    def sample_world(self, position: Point) -> float:
        """Raw image value at a world position (bilinear)."""
        return self.image.sample_at_position(*self.world_to_pixel(position))

    def noise_at(self, position: Point) -> float:
        # Noise is evaluated in cell units so frequency reads as cycles per cell.
        cfg = self.config
        return fractal_noise(
            position[0] / self.layout.size[0],
            position[1] / self.layout.size[1],
            octaves=cfg.noise_octaves,
            frequency=cfg.noise_frequency,
            seed=cfg.seed,
        )

    def perturbed_sample(self, position: Point) -> float:
        """Raw sample plus scaled fractal noise — the marching field."""
        return self.sample_world(position) + self.noise_at(position) * self.config.noise_amplitude

    def perturbed_grid(self, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        """Vectorised :meth:`perturbed_sample` over world axes *xs* × *ys*."""
        cfg = self.config
        ppx = cfg.pixels_per_hex
        base = self.image.sample_grid(
            np.asarray(xs) * ppx + self.image.width / 2.0,
            np.asarray(ys) * ppx + self.image.height / 2.0,
        )
        noise = fractal_noise_grid(
            np.asarray(xs) / self.layout.size[0],
            np.asarray(ys) / self.layout.size[1],
            octaves=cfg.noise_octaves,
            frequency=cfg.noise_frequency,
            seed=cfg.seed,
        )
        return base + noise * cfg.noise_amplitude


# ═══════════════════════════════════════════════════════════════════
# Classification
# ═══════════════════════════════════════════════════════════════════


def classify_cell(
    is_land: bool,
    land_neighbors: int,
    distance_to_edge: float,
    shallow_water_distance: int,
) -> Tuple[TerrainType, bool]:
    """Terrain category and border flag from a 6-neighbour vote.

    A cell is a border cell when at least one neighbour disagrees with
    it on land/water.
    """
    if is_land:
        is_border = land_neighbors < 6
        return (TerrainType.CLIFF if is_border else TerrainType.LAND), is_border
    is_border = land_neighbors > 0
    if is_border:
        return TerrainType.BEACH, True
    if distance_to_edge <= shallow_water_distance:
        return TerrainType.SHALLOW_WATER, False
    return TerrainType.DEEP_WATER, False


def distance_field(
    coords: Sequence[HexCoord],
    index: Dict[HexCoord, int],
    border: Sequence[bool],
) -> np.ndarray:
    """Hex distance from every cell to the nearest border cell.

    Multi-source breadth-first search restricted to *coords*; cells with
    no reachable border get ``inf``.  Returns a new array.
    """
    dist = np.full(len(coords), np.inf, dtype=np.float64)
    queue: deque[int] = deque()
    for i, flag in enumerate(border):
        if flag:
            dist[i] = 0.0
            queue.append(i)
    while queue:
        i = queue.popleft()
        for nb in coords[i].neighbors():
            j = index.get(nb)
            if j is not None and dist[j] == np.inf:
                dist[j] = dist[i] + 1.0
                queue.append(j)
    return dist


@dataclass(frozen=True)
class CellGrid:
    """Arena of classified cells; a cell's id is its position in *cells*."""

    cells: Tuple[CellData, ...]
    index: Dict[HexCoord, int] = field(compare=False, repr=False)

    def __len__(self) -> int:
        return len(self.cells)

    def __iter__(self) -> Iterator[CellData]:
        return iter(self.cells)

    def __contains__(self, coord: object) -> bool:
        return coord in self.index

    def id_of(self, coord: HexCoord) -> int:
        return self.index[coord]

    def get(self, coord: HexCoord) -> Optional[CellData]:
        i = self.index.get(coord)
        return None if i is None else self.cells[i]

    @property
    def coords(self) -> List[HexCoord]:
        return [cell.coord for cell in self.cells]

    def border_cells(self) -> List[CellData]:
        return [cell for cell in self.cells if cell.is_border]

    def counts(self) -> Dict[TerrainType, int]:
        out = {t: 0 for t in TerrainType}
        for cell in self.cells:
            out[cell.terrain_type] += 1
        return out


def sample_cells(
    sampler: TerrainSampler,
    coords: Sequence[HexCoord],
    *,
    executor: Optional[Executor] = None,
    parallel_threshold: int = 100,
    on_progress: Optional[ProgressCallback] = None,
) -> CellGrid:
    """Sample and classify every coordinate in *coords*.

    Sampling fans out over *executor* once ``len(coords)`` exceeds
    *parallel_threshold*.  Neighbours outside *coords* are sampled
    directly from the image so the vote is the same wherever the arena
    boundary falls.
    """
    coords = list(dict.fromkeys(coords))
    index = {c: i for i, c in enumerate(coords)}
    threshold = sampler.config.threshold

    samples = parallel_map(
        sampler.sample_hex,
        coords,
        executor=executor,
        threshold=parallel_threshold,
        on_progress=on_progress,
        label="sampling",
    )
    land = [value > threshold for value in samples]

    def land_at(coord: HexCoord) -> bool:
        j = index.get(coord)
        return land[j] if j is not None else sampler.is_land(coord)

    land_counts = [sum(1 for nb in c.neighbors() if land_at(nb)) for c in coords]
    border = [
        (count < 6) if is_land else (count > 0)
        for is_land, count in zip(land, land_counts)
    ]
    distances = distance_field(coords, index, border)

    shallow = sampler.config.shallow_water_distance
    cells = []
    for i, coord in enumerate(coords):
        terrain, is_border = classify_cell(land[i], land_counts[i], distances[i], shallow)
        cells.append(
            CellData(
                coord=coord,
                terrain_type=terrain,
                is_border=is_border,
                sample_value=float(samples[i]),
                distance_to_edge=float(distances[i]),
            )
        )

    grid = CellGrid(tuple(cells), index)
    logger.debug(
        "cells classified",
        cells=len(grid),
        border=sum(border),
        land=sum(land),
    )
    return grid
