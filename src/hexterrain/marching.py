"""Contour extraction — iso-threshold segments from the perturbed sample field.

Two interchangeable strategies satisfy :class:`ContourStrategy`:

- :class:`DualTriangleStrategy` — marching triangles over the six fan
  triangles of each hex (centre → corner_i → corner_i+1).
- :class:`MarchingSquaresStrategy` — marching squares over a regular
  grid spanning the cell arena's world bounds.

Both emit an unordered list of 2-point segments and share one edge
interpolation rule, :func:`interpolate_edge`.  Fully inside / fully
outside cells emit nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

import numpy as np
import structlog

from .hex_coords import HexCoord
from .layout import HexLayout, Point
from .models import Segment, Triangle, TriangleId
from .sampler import CellGrid, TerrainSampler

logger = structlog.get_logger(__name__)


def interpolate_edge(p1: Point, p2: Point, v1: float, v2: float, threshold: float) -> Point:
    """Point where the threshold crosses the edge ``p1 → p2``.

    ``t = (threshold - v1) / (v2 - v1)`` clamped to ``[0, 1]``.
    """
    if v2 == v1:
        t = 0.5
    else:
        t = (threshold - v1) / (v2 - v1)
        t = max(0.0, min(1.0, t))
    return (p1[0] + (p2[0] - p1[0]) * t, p1[1] + (p2[1] - p1[1]) * t)


# ═══════════════════════════════════════════════════════════════════
# Marching triangles
# ═══════════════════════════════════════════════════════════════════


def hex_to_triangular_dual(coord: HexCoord, layout: HexLayout) -> List[Triangle]:
    """Split a hex into its 6 fan triangles."""
    center = layout.hex_to_world_pos(coord)
    corners = layout.hex_corners(coord)
    return [
        Triangle(
            id=TriangleId(coord, i),
            vertices=(center, corners[i], corners[(i + 1) % 6]),
        )
        for i in range(6)
    ]


def marching_triangle(
    vertices: Sequence[Point],
    values: Sequence[float],
    threshold: float,
) -> Optional[Segment]:
    """Crossing segment of one triangle, or ``None`` for cases 0 and 7.

    The six mixed cases all have one vertex on the other side of the
    threshold from the remaining two; the segment joins the crossings on
    that vertex's two edges.
    """
    case = (
        (1 if values[0] > threshold else 0)
        | (2 if values[1] > threshold else 0)
        | (4 if values[2] > threshold else 0)
    )
    if case in (0, 7):
        return None
    # Cases 1/6 isolate vertex 0, 2/5 vertex 1, 3/4 vertex 2.
    lone = {1: 0, 6: 0, 2: 1, 5: 1, 3: 2, 4: 2}[case]
    a, b = [i for i in range(3) if i != lone]
    return (
        interpolate_edge(vertices[lone], vertices[a], values[lone], values[a], threshold),
        interpolate_edge(vertices[lone], vertices[b], values[lone], values[b], threshold),
    )


# ═══════════════════════════════════════════════════════════════════
# Marching squares
# ═══════════════════════════════════════════════════════════════════


def marching_square_cell(
    corners: Sequence[float],
    origin: Point,
    cell_size: Point,
    threshold: float,
) -> List[Segment]:
    """Segments for one grid cell.

    *corners* are ordered ``(x, y), (x+1, y), (x+1, y+1), (x, y+1)``.
    The saddle cases 5 and 10 emit both diagonal segments.
    """
    c0, c1, c2, c3 = corners
    case = (
        (1 if c0 > threshold else 0)
        | (2 if c1 > threshold else 0)
        | (4 if c2 > threshold else 0)
        | (8 if c3 > threshold else 0)
    )
    if case in (0, 15):
        return []

    ox, oy = origin
    sx, sy = cell_size
    p0 = (ox, oy)
    p1 = (ox + sx, oy)
    p2 = (ox + sx, oy + sy)
    p3 = (ox, oy + sy)

    def left() -> Point:
        return interpolate_edge(p0, p3, c0, c3, threshold)

    def bottom() -> Point:
        return interpolate_edge(p0, p1, c0, c1, threshold)

    def right() -> Point:
        return interpolate_edge(p1, p2, c1, c2, threshold)

    def top() -> Point:
        return interpolate_edge(p3, p2, c3, c2, threshold)

    if case in (1, 14):
        return [(left(), bottom())]
    if case in (2, 13):
        return [(bottom(), right())]
    if case in (3, 12):
        return [(left(), right())]
    if case in (4, 11):
        return [(right(), top())]
    if case == 5:
        return [(left(), bottom()), (right(), top())]
    if case in (6, 9):
        return [(bottom(), top())]
    if case in (7, 8):
        return [(left(), top())]
    # case 10
    return [(bottom(), right()), (left(), top())]


def grid_bounds(cells: CellGrid, layout: HexLayout) -> Tuple[Point, Point]:
    """World-space bounding box of the arena, padded by one cell size."""
    positions = np.array([layout.hex_to_world_pos(c.coord) for c in cells], dtype=np.float64)
    size = np.asarray(layout.size, dtype=np.float64)
    lo = positions.min(axis=0) - size
    hi = positions.max(axis=0) + size
    return (float(lo[0]), float(lo[1])), (float(hi[0]), float(hi[1]))


# ═══════════════════════════════════════════════════════════════════
# Strategies
# ═══════════════════════════════════════════════════════════════════


@runtime_checkable
class ContourStrategy(Protocol):
    """Anything that turns a classified arena into boundary segments."""

    @property
    def name(self) -> str:
        ...

    def extract(self, cells: CellGrid, sampler: TerrainSampler) -> List[Segment]:
        ...


@dataclass
class DualTriangleStrategy:
    """Marching triangles over the hex fan triangles.

    Parameters
    ----------
    border_only : bool
        Only march the triangles of border cells.  Interior cells can
        still cross the threshold once noise is added, so turning this
        off finds small noise-born islands at a higher cost.
    """

    border_only: bool = True

    @property
    def name(self) -> str:
        return "dual"

    def extract(self, cells: CellGrid, sampler: TerrainSampler) -> List[Segment]:
        threshold = sampler.config.threshold
        cache: Dict[Tuple[float, float], float] = {}

        def value_at(p: Point) -> float:
            key = (round(p[0], 6), round(p[1], 6))
            v = cache.get(key)
            if v is None:
                v = sampler.perturbed_sample(p)
                cache[key] = v
            return v

        segments: List[Segment] = []
        visited: set[TriangleId] = set()
        for cell in cells:
            if self.border_only and not cell.is_border:
                continue
            for tri in hex_to_triangular_dual(cell.coord, sampler.layout):
                if tri.id in visited:
                    continue
                visited.add(tri.id)
                values = [value_at(v) for v in tri.vertices]
                seg = marching_triangle(tri.vertices, values, threshold)
                if seg is not None:
                    segments.append(seg)

        logger.debug("dual-triangle extraction", triangles=len(visited), segments=len(segments))
        return segments


@dataclass
class MarchingSquaresStrategy:
    """Marching squares over a regular grid covering the arena bounds.

    Parameters
    ----------
    resolution : int or None
        Cells per axis; ``None`` uses ``config.grid_resolution``.
    """

    resolution: Optional[int] = None

    @property
    def name(self) -> str:
        return "grid"

    def extract(self, cells: CellGrid, sampler: TerrainSampler) -> List[Segment]:
        if len(cells) == 0:
            return []
        n = self.resolution or sampler.config.grid_resolution
        threshold = sampler.config.threshold
        (min_x, min_y), (max_x, max_y) = grid_bounds(cells, sampler.layout)
        cell_size = ((max_x - min_x) / n, (max_y - min_y) / n)

        xs = min_x + np.arange(n + 1) * cell_size[0]
        ys = min_y + np.arange(n + 1) * cell_size[1]
        values = sampler.perturbed_grid(xs, ys)

        inside = values > threshold
        case = (
            inside[:-1, :-1].astype(np.uint8)
            | (inside[:-1, 1:].astype(np.uint8) << 1)
            | (inside[1:, 1:].astype(np.uint8) << 2)
            | (inside[1:, :-1].astype(np.uint8) << 3)
        )
        mixed_y, mixed_x = np.nonzero((case != 0) & (case != 15))

        segments: List[Segment] = []
        for y, x in zip(mixed_y.tolist(), mixed_x.tolist()):
            corners = (
                float(values[y, x]),
                float(values[y, x + 1]),
                float(values[y + 1, x + 1]),
                float(values[y + 1, x]),
            )
            origin = (float(xs[x]), float(ys[y]))
            segments.extend(marching_square_cell(corners, origin, cell_size, threshold))

        logger.debug("marching-squares extraction", grid=n, segments=len(segments))
        return segments


STRATEGIES = {
    "dual": DualTriangleStrategy,
    "grid": MarchingSquaresStrategy,
}


def get_strategy(name: str) -> ContourStrategy:
    """Instantiate a strategy by name (``"dual"`` or ``"grid"``)."""
    try:
        return STRATEGIES[name]()
    except KeyError:
        raise ValueError(f"Unknown contour strategy: {name!r}") from None
