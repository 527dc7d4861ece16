from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Tuple

import numpy as np

from .hex_coords import HexCoord

Point = Tuple[float, float]
Segment = Tuple[Point, Point]


class TerrainType(Enum):
    DEEP_WATER = "deep_water"
    SHALLOW_WATER = "shallow_water"
    BEACH = "beach"
    CLIFF = "cliff"
    LAND = "land"

    @property
    def is_land(self) -> bool:
        return self in (TerrainType.CLIFF, TerrainType.LAND)


@dataclass(frozen=True)
class CellData:
    coord: HexCoord
    terrain_type: TerrainType
    is_border: bool
    sample_value: float
    distance_to_edge: float


@dataclass(frozen=True)
class ContourPath:
    """An ordered polyline, implicitly closed back to its first point when *is_closed*."""

    points: Tuple[Point, ...]
    is_closed: bool = False

    def __len__(self) -> int:
        return len(self.points)

    def segments(self) -> list[Segment]:
        pts = self.points
        segs = [(pts[i], pts[i + 1]) for i in range(len(pts) - 1)]
        if self.is_closed and len(pts) > 2:
            segs.append((pts[-1], pts[0]))
        return segs


@dataclass(frozen=True, order=True)
class TriangleId:
    hex: HexCoord
    index: int


@dataclass(frozen=True)
class Triangle:
    """One of the six fan triangles of a hex: ``(centre, corner_i, corner_i+1)``."""

    id: TriangleId
    vertices: Tuple[Point, Point, Point]


def _empty(shape: Tuple[int, ...], dtype) -> np.ndarray:
    return np.zeros(shape, dtype=dtype)


@dataclass
class TerrainMeshData:
    """Flat triangle-list buffers handed to the renderer.

    Attributes
    ----------
    vertices : ndarray, shape (N, 3), float32
    normals : ndarray, shape (N, 3), float32
    uvs : ndarray, shape (N, 2), float32
    indices : ndarray, shape (3T,), uint16 (uint32 once N exceeds 65536)
    """

    vertices: np.ndarray = field(default_factory=lambda: _empty((0, 3), np.float32))
    normals: np.ndarray = field(default_factory=lambda: _empty((0, 3), np.float32))
    uvs: np.ndarray = field(default_factory=lambda: _empty((0, 2), np.float32))
    indices: np.ndarray = field(default_factory=lambda: _empty((0,), np.uint16))

    @property
    def vertex_count(self) -> int:
        return int(self.vertices.shape[0])

    @property
    def triangle_count(self) -> int:
        return int(self.indices.shape[0]) // 3

    def is_empty(self) -> bool:
        return self.vertex_count == 0

    def triangles(self) -> np.ndarray:
        """Indices reshaped to ``(T, 3)``."""
        return self.indices.reshape(-1, 3)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "vertices": self.vertices.tolist(),
            "normals": self.normals.tolist(),
            "uvs": self.uvs.tolist(),
            "indices": self.indices.tolist(),
            "index_width": int(self.indices.dtype.itemsize * 8),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TerrainMeshData":
        index_dtype = np.uint32 if data.get("index_width", 16) == 32 else np.uint16
        return cls(
            vertices=np.asarray(data["vertices"], dtype=np.float32).reshape(-1, 3),
            normals=np.asarray(data["normals"], dtype=np.float32).reshape(-1, 3),
            uvs=np.asarray(data["uvs"], dtype=np.float32).reshape(-1, 2),
            indices=np.asarray(data["indices"], dtype=index_dtype).reshape(-1),
        )
