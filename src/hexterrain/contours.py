"""Contour assembly and smoothing.

Turns the unordered segment bag produced by :mod:`marching` into
ordered :class:`~models.ContourPath` objects, then rounds them with a
Catmull-Rom spline.  Every function returns new paths; inputs are never
modified.
"""

from __future__ import annotations

import math
from typing import List, Sequence

from .models import ContourPath, Point, Segment

CONNECT_EPSILON = 0.001


def _close(a: Point, b: Point, epsilon: float) -> bool:
    return math.hypot(a[0] - b[0], a[1] - b[1]) < epsilon


# ═══════════════════════════════════════════════════════════════════
# Assembly
# ═══════════════════════════════════════════════════════════════════


def assemble_segments(
    segments: Sequence[Segment],
    epsilon: float = CONNECT_EPSILON,
) -> List[ContourPath]:
    """Greedily stitch 2-point segments into paths.

    Each path is seeded with the first unused segment and grown from its
    tail: the first unused segment with an endpoint within *epsilon* of
    the tail is appended (flipped if needed).  When the new tail lands
    back on the head the path is closed and the duplicate point dropped;
    when no candidate remains the path is kept open.

    Quadratic in the number of segments per path, which is fine for the
    bounded per-chunk segment counts this runs on.
    """
    used = [False] * len(segments)
    paths: List[ContourPath] = []

    for start, seed in enumerate(segments):
        if used[start]:
            continue
        used[start] = True
        path: List[Point] = [seed[0], seed[1]]
        closed = False

        while True:
            tail = path[-1]
            found = False
            for idx, (a, b) in enumerate(segments):
                if used[idx]:
                    continue
                if _close(a, tail, epsilon):
                    path.append(b)
                elif _close(b, tail, epsilon):
                    path.append(a)
                else:
                    continue
                used[idx] = True
                found = True
                break

            if not found:
                break
            if len(path) > 3 and _close(path[0], path[-1], epsilon):
                path.pop()
                closed = True
                break

        paths.append(ContourPath(tuple(path), is_closed=closed))

    return paths


# ═══════════════════════════════════════════════════════════════════
# Catmull-Rom smoothing
# ═══════════════════════════════════════════════════════════════════


def catmull_rom(p0: Point, p1: Point, p2: Point, p3: Point, t: float, tension: float) -> Point:
    """Cubic Hermite blend between *p1* and *p2* with tangents from the neighbours."""
    t2 = t * t
    t3 = t2 * t

    def axis(k: int) -> float:
        v0 = (p2[k] - p0[k]) * tension
        v1 = (p3[k] - p1[k]) * tension
        a = 2.0 * p1[k] - 2.0 * p2[k] + v0 + v1
        b = -3.0 * p1[k] + 3.0 * p2[k] - 2.0 * v0 - v1
        return a * t3 + b * t2 + v0 * t + p1[k]

    return (axis(0), axis(1))


def smooth_contour(contour: ContourPath, tension: float = 0.5, subdivisions: int = 10) -> ContourPath:
    """Resample *contour* along a Catmull-Rom spline.

    Closed paths wrap neighbours cyclically and yield
    ``len * subdivisions`` points.  Open paths clamp neighbours at the
    ends and yield ``(len - 1) * subdivisions + 1`` points, keeping both
    endpoints.  Paths with fewer than 4 points come back unchanged.
    """
    if subdivisions < 1:
        raise ValueError("subdivisions must be >= 1")
    pts = contour.points
    n = len(pts)
    if n < 4:
        return ContourPath(tuple(pts), contour.is_closed)

    out: List[Point] = []
    if contour.is_closed:
        for i in range(n):
            p0, p1, p2, p3 = pts[i - 1], pts[i], pts[(i + 1) % n], pts[(i + 2) % n]
            for j in range(subdivisions):
                out.append(catmull_rom(p0, p1, p2, p3, j / subdivisions, tension))
    else:
        for i in range(n - 1):
            p0 = pts[max(i - 1, 0)]
            p1, p2 = pts[i], pts[i + 1]
            p3 = pts[min(i + 2, n - 1)]
            for j in range(subdivisions):
                out.append(catmull_rom(p0, p1, p2, p3, j / subdivisions, tension))
        out.append(pts[-1])

    return ContourPath(tuple(out), contour.is_closed)


# ═══════════════════════════════════════════════════════════════════
# Upscaling
# ═══════════════════════════════════════════════════════════════════


def upscale_contour(
    contour: ContourPath,
    scale_factor: float,
    *,
    subdivide: bool = False,
    subdivisions: int = 4,
) -> ContourPath:
    """Map a low-resolution path to full resolution by dividing by *scale_factor*.

    With *subdivide*, every segment (including the closing one of a
    closed path) is split into *subdivisions* equal parts.
    """
    if scale_factor <= 0:
        raise ValueError("scale_factor must be positive")
    inv = 1.0 / scale_factor
    pts = [(x * inv, y * inv) for x, y in contour.points]
    if not subdivide or len(pts) < 2:
        return ContourPath(tuple(pts), contour.is_closed)

    out: List[Point] = []
    edges = len(pts) if contour.is_closed else len(pts) - 1
    for i in range(edges):
        (x1, y1), (x2, y2) = pts[i], pts[(i + 1) % len(pts)]
        for j in range(subdivisions):
            t = j / subdivisions
            out.append((x1 + (x2 - x1) * t, y1 + (y2 - y1) * t))
    if not contour.is_closed:
        out.append(pts[-1])
    return ContourPath(tuple(out), contour.is_closed)
