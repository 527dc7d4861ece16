"""Tests for sampler.py — source raster, classification and the cell arena."""

from __future__ import annotations

import numpy as np
import pytest
from PIL import Image

from hexterrain.hex_coords import HexCoord
from hexterrain.models import TerrainType
from hexterrain.sampler import (
    SourceImage,
    SourceImageError,
    classify_cell,
    distance_field,
    load_source_image,
    sample_cells,
)

from conftest import disk_pixels


# ═══════════════════════════════════════════════════════════════════
# Source image
# ═══════════════════════════════════════════════════════════════════


class TestSourceImage:
    def test_integer_pixels_scaled(self):
        img = SourceImage.from_array(np.array([[0, 255], [51, 102]], dtype=np.uint8))
        assert img.width == 2 and img.height == 2
        assert img.pixel_value(1, 0) == pytest.approx(1.0)
        assert img.pixel_value(0, 1) == pytest.approx(0.2)

    def test_multichannel_keeps_first_channel(self):
        rgb = np.zeros((3, 3, 3), dtype=np.uint8)
        rgb[1, 1, 0] = 255
        assert SourceImage.from_array(rgb).pixel_value(1, 1) == pytest.approx(1.0)

    def test_out_of_bounds_is_water(self):
        img = SourceImage.from_array(np.ones((4, 4), dtype=np.float32))
        assert img.pixel_value(-1, 0) == 0.0
        assert img.pixel_value(0, 4) == 0.0
        assert img.sample_at_position(100.0, 100.0) == 0.0

    def test_bilinear_midpoint(self):
        img = SourceImage.from_array(np.array([[0.0, 1.0], [1.0, 1.0]], dtype=np.float32))
        assert img.sample_at_position(0.5, 0.0) == pytest.approx(0.5)
        assert img.sample_at_position(0.5, 0.5) == pytest.approx(0.75)
        assert img.sample_at_position(1.0, 1.0) == pytest.approx(1.0)

    def test_grid_matches_pointwise(self):
        rng = np.random.default_rng(3)
        img = SourceImage.from_array(rng.random((8, 8)).astype(np.float32))
        px = np.array([-0.5, 0.25, 3.5, 7.0, 7.75])
        py = np.array([0.0, 2.6, 6.1])
        grid = img.sample_grid(px, py)
        assert grid.shape == (3, 5)
        for j, y in enumerate(py):
            for i, x in enumerate(px):
                assert grid[j, i] == pytest.approx(img.sample_at_position(x, y))

    def test_rejects_non_raster(self):
        with pytest.raises(ValueError):
            SourceImage.from_array(np.zeros(5))


class TestLoadSourceImage:
    def test_load_png(self, tmp_path):
        path = tmp_path / "island.png"
        Image.fromarray((disk_pixels(32, 8.0) * 255).astype(np.uint8)).save(path)
        img = load_source_image(path)
        assert (img.width, img.height) == (32, 32)
        assert img.pixel_value(16, 16) == pytest.approx(1.0)
        assert img.pixel_value(0, 0) == 0.0

    def test_missing_file(self, tmp_path):
        with pytest.raises(SourceImageError):
            load_source_image(tmp_path / "nope.png")

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "broken.png"
        path.write_bytes(b"definitely not a png")
        with pytest.raises(SourceImageError):
            load_source_image(path)


# ═══════════════════════════════════════════════════════════════════
# Sampler
# ═══════════════════════════════════════════════════════════════════


class TestTerrainSampler:
    def test_centre_is_land(self, sampler):
        assert sampler.is_land(HexCoord.ZERO)
        assert sampler.sample_hex(HexCoord.ZERO) == 1.0

    def test_far_cell_is_water(self, sampler):
        assert not sampler.is_land(HexCoord(6, 0))

    def test_world_to_pixel_centres_origin(self, sampler):
        assert sampler.world_to_pixel((0.0, 0.0)) == (32.0, 32.0)
        assert sampler.world_to_pixel((1.0, -2.0)) == (36.0, 24.0)

    def test_rescaled_keeps_image_area(self, sampler):
        low = sampler.rescaled(0.5)
        assert low.config.pixels_per_hex == pytest.approx(8.0)
        assert low.world_to_pixel((2.0, 0.0)) == sampler.world_to_pixel((4.0, 0.0))

    def test_no_noise_means_raw_sample(self, sampler):
        p = (1.3, -2.1)
        assert sampler.perturbed_sample(p) == pytest.approx(sampler.sample_world(p))

    def test_perturbed_grid_matches_pointwise(self, disk_image, hex_config):
        from hexterrain.config import ContourConfig
        from hexterrain.sampler import TerrainSampler

        noisy = TerrainSampler(
            disk_image, hex_config.layout, ContourConfig(pixels_per_hex=4.0, noise_amplitude=0.3)
        )
        xs = np.array([-3.0, 0.5, 2.25])
        ys = np.array([-1.0, 3.5])
        grid = noisy.perturbed_grid(xs, ys)
        for j, y in enumerate(ys):
            for i, x in enumerate(xs):
                assert grid[j, i] == pytest.approx(noisy.perturbed_sample((x, y)), abs=1e-6)


# ═══════════════════════════════════════════════════════════════════
# Classification
# ═══════════════════════════════════════════════════════════════════


class TestClassifyCell:
    def test_interior_land(self):
        assert classify_cell(True, 6, 3.0, 2) == (TerrainType.LAND, False)

    def test_land_next_to_water_is_cliff(self):
        assert classify_cell(True, 4, 0.0, 2) == (TerrainType.CLIFF, True)

    def test_water_next_to_land_is_beach(self):
        assert classify_cell(False, 1, 0.0, 2) == (TerrainType.BEACH, True)

    def test_near_water_is_shallow(self):
        assert classify_cell(False, 0, 2.0, 2) == (TerrainType.SHALLOW_WATER, False)

    def test_far_water_is_deep(self):
        assert classify_cell(False, 0, 3.0, 2) == (TerrainType.DEEP_WATER, False)
        assert classify_cell(False, 0, float("inf"), 2) == (TerrainType.DEEP_WATER, False)

    def test_is_land_property(self):
        assert TerrainType.CLIFF.is_land and TerrainType.LAND.is_land
        assert not TerrainType.BEACH.is_land


def test_distance_field_on_a_line():
    coords = [HexCoord(q, 0) for q in range(5)]
    index = {c: i for i, c in enumerate(coords)}
    dist = distance_field(coords, index, [True, False, False, False, False])
    assert dist.tolist() == [0.0, 1.0, 2.0, 3.0, 4.0]


def test_distance_field_without_border_is_infinite():
    coords = [HexCoord(0, 0), HexCoord(1, 0)]
    index = {c: i for i, c in enumerate(coords)}
    assert np.isinf(distance_field(coords, index, [False, False])).all()


# ═══════════════════════════════════════════════════════════════════
# Cell arena
# ═══════════════════════════════════════════════════════════════════


class TestSampleCells:
    """The radius-4 island covers exactly the cells within 2 steps of the origin."""

    @pytest.fixture()
    def grid(self, sampler):
        return sample_cells(sampler, HexCoord.ZERO.range(8))

    def test_counts(self, grid):
        counts = grid.counts()
        assert counts[TerrainType.LAND] == 7
        assert counts[TerrainType.CLIFF] == 12
        assert counts[TerrainType.BEACH] == 18
        assert counts[TerrainType.SHALLOW_WATER] == 24 + 30
        assert counts[TerrainType.DEEP_WATER] == 36 + 42 + 48
        assert len(grid) == 217

    def test_rings_by_type(self, grid):
        for c in HexCoord.ZERO.ring(2):
            assert grid.get(c).terrain_type is TerrainType.CLIFF
        for c in HexCoord.ZERO.ring(3):
            assert grid.get(c).terrain_type is TerrainType.BEACH

    def test_border_flags_and_distances(self, grid):
        assert {c.coord for c in grid.border_cells()} == set(HexCoord.ZERO.rings([2, 3]))
        assert grid.get(HexCoord.ZERO).distance_to_edge == 2.0
        assert grid.get(HexCoord(4, 0)).distance_to_edge == 1.0
        assert grid.get(HexCoord(8, 0)).distance_to_edge == 5.0

    def test_border_vote_is_symmetric(self, grid):
        for cell in grid:
            if cell.coord.length() > 7:
                continue
            neighbours = [grid.get(n) for n in cell.coord.neighbors()]
            land = sum(1 for n in neighbours if n.terrain_type.is_land)
            water = sum(1 for n in neighbours if not n.terrain_type.is_land)
            assert land + water == 6
            for other in neighbours:
                if other.terrain_type.is_land != cell.terrain_type.is_land:
                    assert cell.is_border and other.is_border

    def test_arena_lookup(self, grid):
        assert HexCoord(1, 1) in grid
        assert HexCoord(20, 0) not in grid
        assert grid.get(HexCoord(20, 0)) is None
        assert grid.cells[grid.id_of(HexCoord(1, 1))].coord == HexCoord(1, 1)

    def test_arena_edge_vote_uses_image(self, sampler):
        """Cells on the arena rim still see their out-of-arena neighbours."""
        grid = sample_cells(sampler, HexCoord.ZERO.range(2))
        assert grid.get(HexCoord(2, 0)).terrain_type is TerrainType.CLIFF

    def test_parallel_matches_serial(self, sampler):
        from concurrent.futures import ThreadPoolExecutor

        coords = HexCoord.ZERO.range(6)
        serial = sample_cells(sampler, coords)
        with ThreadPoolExecutor(max_workers=2) as pool:
            parallel = sample_cells(sampler, coords, executor=pool, parallel_threshold=0)
        assert serial.cells == parallel.cells

    def test_duplicates_collapsed(self, sampler):
        grid = sample_cells(sampler, [HexCoord.ZERO, HexCoord.ZERO, HexCoord(1, 0)])
        assert len(grid) == 2
