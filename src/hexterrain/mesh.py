"""Polygon triangulation and mesh buffer assembly.

Closed contours become triangle lists via ear clipping.  Per-contour
buffers are concatenated with :func:`merge_mesh_data`, which offsets
each buffer's indices by the running vertex count.
"""

from __future__ import annotations

from typing import Iterable, List, Sequence

import numpy as np
import structlog

from .models import ContourPath, Point, TerrainMeshData

logger = structlog.get_logger(__name__)

MAX_U16_VERTICES = 65536


# ═══════════════════════════════════════════════════════════════════
# Geometry helpers
# ═══════════════════════════════════════════════════════════════════


def polygon_signed_area(points: Sequence[Point]) -> float:
    """Shoelace area — positive when *points* wind counter-clockwise."""
    area = 0.0
    n = len(points)
    for i in range(n):
        x1, y1 = points[i]
        x2, y2 = points[(i + 1) % n]
        area += x1 * y2 - x2 * y1
    return area / 2.0


def triangle_area(a: Point, b: Point, c: Point) -> float:
    """Signed doubled area of ``a, b, c`` (positive when counter-clockwise)."""
    return (b[0] - a[0]) * (c[1] - a[1]) - (c[0] - a[0]) * (b[1] - a[1])


def points_in_triangle(points, a, b, c) -> np.ndarray:
    """Barycentric containment test for every row of *points*.

    Points on an edge count as inside.  A degenerate triangle contains
    nothing.
    """
    p = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    a = np.asarray(a, dtype=np.float64)
    v0 = np.asarray(c, dtype=np.float64) - a
    v1 = np.asarray(b, dtype=np.float64) - a
    v2 = p - a

    dot00 = v0 @ v0
    dot01 = v0 @ v1
    dot11 = v1 @ v1
    dot02 = v2 @ v0
    dot12 = v2 @ v1

    denom = dot00 * dot11 - dot01 * dot01
    if denom == 0.0:
        return np.zeros(len(p), dtype=bool)
    u = (dot11 * dot02 - dot01 * dot12) / denom
    v = (dot00 * dot12 - dot01 * dot02) / denom
    return (u >= 0.0) & (v >= 0.0) & (u + v <= 1.0)


# ═══════════════════════════════════════════════════════════════════
# Ear clipping
# ═══════════════════════════════════════════════════════════════════


def _is_ear(pts: np.ndarray, ring: np.ndarray, i: int) -> bool:
    m = len(ring)
    prev, curr, nxt = ring[i - 1], ring[i], ring[(i + 1) % m]
    a, b, c = pts[prev], pts[curr], pts[nxt]
    if triangle_area(a, b, c) <= 0.0:
        return False
    others = np.delete(ring, [(i - 1) % m, i, (i + 1) % m])
    return not points_in_triangle(pts[others], a, b, c).any()


def ear_clip(points: Sequence[Point]) -> List[int]:
    """Triangulate a simple polygon, returning a flat index list.

    Clockwise input is walked in reverse so ears are always
    counter-clockwise; indices refer to the caller's point order.  When a
    full scan finds no ear (degenerate or self-intersecting input) the
    first three remaining vertices are clipped anyway, so the loop always
    terminates with ``len(points) - 2`` triangles.
    """
    n = len(points)
    if n < 3:
        return []

    pts = np.asarray(points, dtype=np.float64)
    ring = list(range(n))
    if polygon_signed_area(points) < 0.0:
        ring.reverse()

    indices: List[int] = []
    forced = 0
    while len(ring) > 3:
        m = len(ring)
        ring_arr = np.asarray(ring)
        for i in range(m):
            if _is_ear(pts, ring_arr, i):
                indices.extend((ring[i - 1], ring[i], ring[(i + 1) % m]))
                del ring[i]
                break
        else:
            indices.extend((ring[0], ring[1], ring[2]))
            del ring[1]
            forced += 1

    indices.extend(ring)
    if forced:
        logger.debug("ear clipping fell back to forced clips", vertices=n, forced=forced)
    return indices


def triangulate_contour(contour: ContourPath) -> TerrainMeshData:
    """Mesh buffers for one closed contour.

    Vertices lie in the z = 0 plane with +z normals; UVs normalise each
    vertex into the polygon's bounding box.  Open or degenerate
    (< 3 point) contours yield an empty mesh.
    """
    if not contour.is_closed or len(contour.points) < 3:
        return TerrainMeshData()

    pts = np.asarray(contour.points, dtype=np.float64)
    lo = pts.min(axis=0)
    size = pts.max(axis=0) - lo
    safe = np.where(size > 0.0, size, 1.0)

    n = len(pts)
    vertices = np.zeros((n, 3), dtype=np.float32)
    vertices[:, :2] = pts
    normals = np.zeros((n, 3), dtype=np.float32)
    normals[:, 2] = 1.0
    uvs = ((pts - lo) / safe).astype(np.float32)

    indices = np.asarray(ear_clip(contour.points), dtype=_index_dtype(n))
    return TerrainMeshData(vertices=vertices, normals=normals, uvs=uvs, indices=indices)


# ═══════════════════════════════════════════════════════════════════
# Merging
# ═══════════════════════════════════════════════════════════════════


def _index_dtype(vertex_count: int):
    return np.uint16 if vertex_count <= MAX_U16_VERTICES else np.uint32


def merge_mesh_data(meshes: Iterable[TerrainMeshData]) -> TerrainMeshData:
    """Concatenate buffers, offsetting each mesh's indices by the vertices before it.

    Indices stay 16-bit unless the merged vertex count no longer fits,
    in which case they are widened to 32-bit (with a warning).
    """
    meshes = [m for m in meshes if not m.is_empty()]
    if not meshes:
        return TerrainMeshData()

    total = sum(m.vertex_count for m in meshes)
    dtype = _index_dtype(total)
    if dtype is np.uint32:
        logger.warning("merged mesh exceeds 16-bit index range", vertices=total)

    offsets = np.cumsum([0] + [m.vertex_count for m in meshes[:-1]])
    indices = np.concatenate(
        [m.indices.astype(np.int64) + int(off) for m, off in zip(meshes, offsets)]
    ).astype(dtype)

    return TerrainMeshData(
        vertices=np.concatenate([m.vertices for m in meshes]).astype(np.float32),
        normals=np.concatenate([m.normals for m in meshes]).astype(np.float32),
        uvs=np.concatenate([m.uvs for m in meshes]).astype(np.float32),
        indices=indices,
    )
