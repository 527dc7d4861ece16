"""Tests for contours.py — segment assembly, Catmull-Rom smoothing, upscaling."""

from __future__ import annotations

import pytest

from hexterrain.contours import (
    assemble_segments,
    catmull_rom,
    smooth_contour,
    upscale_contour,
)
from hexterrain.models import ContourPath

SQUARE = [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0)]


def _square_segments(offset=0.0):
    pts = [(x + offset, y) for x, y in SQUARE]
    return [(pts[i], pts[(i + 1) % 4]) for i in range(4)]


# ═══════════════════════════════════════════════════════════════════
# Assembly
# ═══════════════════════════════════════════════════════════════════


class TestAssembleSegments:
    def test_empty(self):
        assert assemble_segments([]) == []

    def test_square_closes(self):
        paths = assemble_segments(_square_segments())
        assert len(paths) == 1
        assert paths[0].is_closed
        assert len(paths[0]) == 4
        assert set(paths[0].points) == set(SQUARE)

    def test_flipped_and_shuffled_segments(self):
        a, b, c, d = _square_segments()
        segs = [a, (c[1], c[0]), d, (b[1], b[0])]
        paths = assemble_segments(segs)
        assert len(paths) == 1
        assert paths[0].is_closed
        assert set(paths[0].points) == set(SQUARE)

    def test_triangle_closes_with_three_points(self):
        pts = [(0.0, 0.0), (2.0, 0.0), (1.0, 1.0)]
        segs = [(pts[0], pts[1]), (pts[1], pts[2]), (pts[2], pts[0])]
        paths = assemble_segments(segs)
        assert paths == [ContourPath(tuple(pts), is_closed=True)]

    def test_open_chain(self):
        segs = [((0.0, 0.0), (1.0, 0.0)), ((1.0, 0.0), (2.0, 0.5))]
        paths = assemble_segments(segs)
        assert paths == [ContourPath(((0.0, 0.0), (1.0, 0.0), (2.0, 0.5)), is_closed=False)]

    def test_disjoint_loops(self):
        paths = assemble_segments(_square_segments() + _square_segments(offset=5.0))
        assert len(paths) == 2
        assert all(p.is_closed and len(p) == 4 for p in paths)

    def test_epsilon_tolerance(self):
        near = [((0.0, 0.0), (1.0, 0.0)), ((1.0 + 1e-4, 0.0), (2.0, 0.0))]
        far = [((0.0, 0.0), (1.0, 0.0)), ((1.01, 0.0), (2.0, 0.0))]
        assert len(assemble_segments(near)) == 1
        assert len(assemble_segments(far)) == 2
        assert len(assemble_segments(far, epsilon=0.1)) == 1

    def test_segments_round_trip(self):
        path = assemble_segments(_square_segments())[0]
        assert len(path.segments()) == 4


# ═══════════════════════════════════════════════════════════════════
# Smoothing
# ═══════════════════════════════════════════════════════════════════


class TestCatmullRom:
    def test_endpoints(self):
        p0, p1, p2, p3 = (0.0, 0.0), (1.0, 2.0), (3.0, 1.0), (4.0, 4.0)
        assert catmull_rom(p0, p1, p2, p3, 0.0, 0.5) == pytest.approx(p1)
        assert catmull_rom(p0, p1, p2, p3, 1.0, 0.5) == pytest.approx(p2)

    def test_collinear_stays_on_line(self):
        x, y = catmull_rom((0.0, 0.0), (1.0, 0.0), (2.0, 0.0), (3.0, 0.0), 0.3, 0.5)
        assert y == 0.0
        assert 1.0 < x < 2.0


class TestSmoothContour:
    def test_closed_point_count(self):
        out = smooth_contour(ContourPath(tuple(SQUARE), True), subdivisions=5)
        assert out.is_closed
        assert len(out) == 4 * 5

    def test_closed_passes_through_originals(self):
        out = smooth_contour(ContourPath(tuple(SQUARE), True), subdivisions=3)
        for i, p in enumerate(SQUARE):
            assert out.points[i * 3] == pytest.approx(p)

    def test_open_point_count_keeps_endpoints(self):
        pts = ((0.0, 0.0), (1.0, 1.0), (2.0, 0.0), (3.0, 1.0), (4.0, 0.0))
        out = smooth_contour(ContourPath(pts, False), subdivisions=4)
        assert not out.is_closed
        assert len(out) == (5 - 1) * 4 + 1
        assert out.points[0] == pytest.approx(pts[0])
        assert out.points[-1] == pytest.approx(pts[-1])

    def test_short_paths_unchanged(self):
        path = ContourPath(((0.0, 0.0), (1.0, 0.0), (1.0, 1.0)), True)
        assert smooth_contour(path) == path

    def test_invalid_subdivisions(self):
        with pytest.raises(ValueError):
            smooth_contour(ContourPath(tuple(SQUARE), True), subdivisions=0)

    def test_input_untouched(self):
        path = ContourPath(tuple(SQUARE), True)
        smooth_contour(path)
        assert path.points == tuple(SQUARE)


# ═══════════════════════════════════════════════════════════════════
# Upscaling
# ═══════════════════════════════════════════════════════════════════


class TestUpscaleContour:
    def test_divides_by_scale(self):
        out = upscale_contour(ContourPath(tuple(SQUARE), True), 0.25)
        assert out.points == ((0.0, 0.0), (4.0, 0.0), (4.0, 4.0), (0.0, 4.0))
        assert out.is_closed

    def test_subdivide_closed(self):
        out = upscale_contour(ContourPath(tuple(SQUARE), True), 0.5, subdivide=True, subdivisions=4)
        assert len(out) == 4 * 4
        assert out.points[1] == pytest.approx((0.5, 0.0))

    def test_subdivide_open(self):
        path = ContourPath(((0.0, 0.0), (1.0, 0.0), (1.0, 1.0)), False)
        out = upscale_contour(path, 1.0, subdivide=True, subdivisions=2)
        assert out.points == ((0.0, 0.0), (0.5, 0.0), (1.0, 0.0), (1.0, 0.5), (1.0, 1.0))

    def test_invalid_scale(self):
        with pytest.raises(ValueError):
            upscale_contour(ContourPath(tuple(SQUARE), True), 0.0)
