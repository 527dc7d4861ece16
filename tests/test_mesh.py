"""Tests for mesh.py — ear clipping and mesh buffer merging."""

from __future__ import annotations

import math

import numpy as np
import pytest

from hexterrain.mesh import (
    ear_clip,
    merge_mesh_data,
    points_in_triangle,
    polygon_signed_area,
    triangle_area,
    triangulate_contour,
)
from hexterrain.models import ContourPath, TerrainMeshData

SQUARE = [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0)]
L_SHAPE = [(0.0, 0.0), (2.0, 0.0), (2.0, 1.0), (1.0, 1.0), (1.0, 2.0), (0.0, 2.0)]


def _regular_polygon(n, radius=1.0):
    return [
        (radius * math.cos(2 * math.pi * i / n), radius * math.sin(2 * math.pi * i / n))
        for i in range(n)
    ]


def _triangle_areas(points, indices):
    tris = [indices[i:i + 3] for i in range(0, len(indices), 3)]
    return [triangle_area(points[a], points[b], points[c]) / 2.0 for a, b, c in tris]


# ═══════════════════════════════════════════════════════════════════
# Geometry helpers
# ═══════════════════════════════════════════════════════════════════


class TestGeometry:
    def test_signed_area_orientation(self):
        assert polygon_signed_area(SQUARE) == pytest.approx(1.0)
        assert polygon_signed_area(SQUARE[::-1]) == pytest.approx(-1.0)

    def test_points_in_triangle_vectorised(self):
        a, b, c = (0.0, 0.0), (2.0, 0.0), (0.0, 2.0)
        inside = points_in_triangle([(0.5, 0.5), (3.0, 0.0), (0.0, 1.0)], a, b, c)
        assert inside.tolist() == [True, False, True]

    def test_degenerate_triangle_contains_nothing(self):
        inside = points_in_triangle([(1.0, 1.0)], (0.0, 0.0), (1.0, 1.0), (2.0, 2.0))
        assert not inside.any()


# ═══════════════════════════════════════════════════════════════════
# Ear clipping
# ═══════════════════════════════════════════════════════════════════


class TestEarClip:
    def test_too_few_points(self):
        assert ear_clip([(0.0, 0.0), (1.0, 0.0)]) == []

    def test_triangle(self):
        assert sorted(ear_clip([(0.0, 0.0), (1.0, 0.0), (0.0, 1.0)])) == [0, 1, 2]

    @pytest.mark.parametrize("n", [4, 5, 6, 12, 40])
    def test_convex_polygon(self, n):
        pts = _regular_polygon(n)
        idx = ear_clip(pts)
        assert len(idx) == 3 * (n - 2)
        areas = _triangle_areas(pts, idx)
        assert all(a > 0 for a in areas)
        assert sum(areas) == pytest.approx(polygon_signed_area(pts))

    def test_clockwise_input(self):
        pts = SQUARE[::-1]
        idx = ear_clip(pts)
        assert len(idx) == 6
        areas = _triangle_areas(pts, idx)
        assert all(a > 0 for a in areas)
        assert sum(areas) == pytest.approx(1.0)

    def test_concave_polygon(self):
        idx = ear_clip(L_SHAPE)
        assert len(idx) == 3 * 4
        areas = _triangle_areas(L_SHAPE, idx)
        assert all(a > 0 for a in areas)
        assert sum(areas) == pytest.approx(3.0)

    def test_degenerate_input_terminates(self):
        pts = [(0.0, 0.0), (1.0, 0.0), (2.0, 0.0), (3.0, 0.0), (1.5, 0.0)]
        assert len(ear_clip(pts)) == 3 * 3


# ═══════════════════════════════════════════════════════════════════
# triangulate_contour
# ═══════════════════════════════════════════════════════════════════


class TestTriangulateContour:
    def test_open_contour_is_empty(self):
        assert triangulate_contour(ContourPath(tuple(SQUARE), False)).is_empty()

    def test_short_contour_is_empty(self):
        assert triangulate_contour(ContourPath(((0.0, 0.0), (1.0, 1.0)), True)).is_empty()

    def test_square_buffers(self):
        pts = [(x * 4.0 + 2.0, y * 2.0 - 1.0) for x, y in SQUARE]
        mesh = triangulate_contour(ContourPath(tuple(pts), True))
        assert mesh.vertex_count == 4
        assert mesh.triangle_count == 2
        assert mesh.indices.dtype == np.uint16
        assert mesh.vertices.dtype == np.float32
        np.testing.assert_allclose(mesh.vertices[:, 2], 0.0)
        np.testing.assert_allclose(mesh.normals, [[0.0, 0.0, 1.0]] * 4)
        np.testing.assert_allclose(mesh.uvs, SQUARE)
        assert mesh.triangles().shape == (2, 3)


# ═══════════════════════════════════════════════════════════════════
# Merging
# ═══════════════════════════════════════════════════════════════════


def _mesh(points):
    return triangulate_contour(ContourPath(tuple(points), True))


class TestMergeMeshData:
    def test_offsets_second_buffer(self):
        a = _mesh(SQUARE)
        b = _mesh(_regular_polygon(6))
        merged = merge_mesh_data([a, b])
        assert merged.vertex_count == 10
        np.testing.assert_array_equal(merged.vertices[:4], a.vertices)
        np.testing.assert_array_equal(merged.vertices[4:], b.vertices)
        np.testing.assert_array_equal(merged.indices[:6], a.indices)
        np.testing.assert_array_equal(merged.indices[6:], b.indices.astype(np.int64) + 4)
        assert merged.indices.dtype == np.uint16

    def test_empty_inputs(self):
        assert merge_mesh_data([]).is_empty()
        assert merge_mesh_data([TerrainMeshData(), TerrainMeshData()]).is_empty()

    def test_skips_empty_meshes(self):
        a = _mesh(SQUARE)
        merged = merge_mesh_data([TerrainMeshData(), a])
        np.testing.assert_array_equal(merged.indices, a.indices)

    def test_accepts_generator(self):
        merged = merge_mesh_data(_mesh(SQUARE) for _ in range(3))
        assert merged.vertex_count == 12
        assert merged.indices.max() == 11

    def test_wide_indices_promoted(self):
        n = 40000
        big = TerrainMeshData(
            vertices=np.zeros((n, 3), dtype=np.float32),
            normals=np.zeros((n, 3), dtype=np.float32),
            uvs=np.zeros((n, 2), dtype=np.float32),
            indices=np.array([0, 1, 2], dtype=np.uint16),
        )
        merged = merge_mesh_data([big, big])
        assert merged.indices.dtype == np.uint32
        assert merged.indices.tolist() == [0, 1, 2, n, n + 1, n + 2]
