"""Hex layout — conversion between axial coordinates and world space."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple

from .hex_coords import HexCoord, cube_round

Point = Tuple[float, float]

_SQRT3 = math.sqrt(3.0)


class HexOrientation(Enum):
    FLAT = "flat"
    POINTY = "pointy"


@dataclass(frozen=True)
class HexLayout:
    """Orientation, per-axis cell size and world origin of a hex grid.

    Attributes
    ----------
    orientation : HexOrientation
        ``FLAT`` puts a corner on the +x axis, ``POINTY`` an edge.
    size : tuple of float
        Cell radius along x and y.  Unequal values squash the grid.
    origin : tuple of float
        World position of ``HexCoord(0, 0)``.
    """

    orientation: HexOrientation = HexOrientation.FLAT
    size: Point = (1.0, 1.0)
    origin: Point = (0.0, 0.0)

    def __post_init__(self) -> None:
        if self.size[0] <= 0 or self.size[1] <= 0:
            raise ValueError("layout size must be positive")

    def hex_to_world_pos(self, coord: HexCoord) -> Point:
        sx, sy = self.size
        if self.orientation is HexOrientation.FLAT:
            x = 1.5 * coord.q
            y = _SQRT3 / 2.0 * coord.q + _SQRT3 * coord.r
        else:
            x = _SQRT3 * coord.q + _SQRT3 / 2.0 * coord.r
            y = 1.5 * coord.r
        return (self.origin[0] + x * sx, self.origin[1] + y * sy)

    def world_pos_to_hex(self, position: Point) -> HexCoord:
        px = (position[0] - self.origin[0]) / self.size[0]
        py = (position[1] - self.origin[1]) / self.size[1]
        if self.orientation is HexOrientation.FLAT:
            fq = 2.0 / 3.0 * px
            fr = -1.0 / 3.0 * px + _SQRT3 / 3.0 * py
        else:
            fq = _SQRT3 / 3.0 * px - 1.0 / 3.0 * py
            fr = 2.0 / 3.0 * py
        return HexCoord(*cube_round(fq, fr))

    def corner_offsets(self) -> List[Point]:
        """Offsets of the 6 corners from a cell centre, counter-clockwise."""
        start = 0.0 if self.orientation is HexOrientation.FLAT else 30.0
        sx, sy = self.size
        offsets = []
        for i in range(6):
            angle = math.radians(start + 60.0 * i)
            offsets.append((sx * math.cos(angle), sy * math.sin(angle)))
        return offsets

    def hex_corners(self, coord: HexCoord) -> List[Point]:
        cx, cy = self.hex_to_world_pos(coord)
        return [(cx + dx, cy + dy) for dx, dy in self.corner_offsets()]


@dataclass(frozen=True)
class HexConfig:
    """Grid configuration shared by the sampler, pipeline and streamer.

    Attributes
    ----------
    hex_radius : float
        World-space radius of one cell.
    orientation : HexOrientation
        Cell orientation.
    ratio : tuple of float
        Per-axis multiplier applied to *hex_radius*.
    chunk_size : int
        Radius, in cells, of one streaming chunk.
    """

    hex_radius: float = 48.0
    orientation: HexOrientation = HexOrientation.FLAT
    ratio: Point = (1.0, 1.0)
    chunk_size: int = 8
    layout: HexLayout = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.hex_radius <= 0:
            raise ValueError("hex_radius must be positive")
        if self.chunk_size < 0:
            raise ValueError("chunk_size must be >= 0")
        layout = HexLayout(
            orientation=self.orientation,
            size=(self.ratio[0] * self.hex_radius, self.ratio[1] * self.hex_radius),
        )
        object.__setattr__(self, "layout", layout)
