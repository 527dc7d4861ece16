"""Tests for world_cache.py — chunk lifecycle sets."""

from __future__ import annotations

import pytest

from hexterrain.chunks import ChunkId
from hexterrain.hex_coords import HexCoord
from hexterrain.world_cache import WorldCache


def chunk(q, r=0, size=2):
    return ChunkId(HexCoord(q, r), size)


@pytest.fixture()
def cache():
    return WorldCache()


class TestTransitions:
    def test_unknown_chunk(self, cache):
        c = chunk(0)
        assert not cache.is_loaded(c)
        assert not cache.is_requested(c)
        assert len(cache) == 0

    def test_request_then_load(self, cache):
        c = chunk(1)
        assert cache.mark_requested(c)
        assert cache.is_requested(c)
        assert not cache.mark_requested(c)
        cache.insert_chunk(c)
        assert cache.is_loaded(c)
        assert not cache.is_requested(c)

    def test_loaded_chunk_cannot_be_requested(self, cache):
        c = chunk(2)
        cache.insert_chunk(c)
        assert not cache.mark_requested(c)
        assert not cache.is_requested(c)

    def test_cancel_request(self, cache):
        c = chunk(3)
        cache.mark_requested(c)
        cache.cancel_request(c)
        assert not cache.is_tracked(c)

    def test_views_are_snapshots(self, cache):
        cache.insert_chunk(chunk(0))
        loaded = cache.loaded
        cache.insert_chunk(chunk(1))
        assert loaded == frozenset({chunk(0)})

    def test_clear(self, cache):
        cache.insert_chunk(chunk(0))
        cache.mark_requested(chunk(1))
        cache.clear()
        assert repr(cache) == "WorldCache(loaded=0, requested=0, pending_unload=0)"


class TestUnloadDistant:
    def test_hysteresis_ring(self, cache):
        """Distances 0..3 with max_distance 1: only distance 3 is evicted."""
        center = chunk(0)
        for d in range(4):
            cache.insert_chunk(chunk(d))
        removed = cache.unload_distant(center, 1)
        assert removed == [chunk(3)]
        assert cache.loaded == frozenset({chunk(0), chunk(1), chunk(2)})
        assert cache.pending_unload == frozenset({chunk(3)})

    def test_returns_sorted_and_only_new(self, cache):
        for q in (5, -4, 4):
            cache.insert_chunk(chunk(q))
        assert cache.unload_distant(chunk(0), 0) == [chunk(-4), chunk(4), chunk(5)]
        assert cache.unload_distant(chunk(0), 0) == []

    def test_requested_chunks_untouched(self, cache):
        cache.mark_requested(chunk(9))
        assert cache.unload_distant(chunk(0), 1) == []
        assert cache.is_requested(chunk(9))

    def test_acknowledge(self, cache):
        cache.insert_chunk(chunk(6))
        removed = cache.unload_distant(chunk(0), 1)
        cache.acknowledge_unload(removed)
        assert cache.pending_unload == frozenset()

    def test_reinsert_clears_pending(self, cache):
        cache.insert_chunk(chunk(6))
        cache.unload_distant(chunk(0), 1)
        cache.insert_chunk(chunk(6))
        assert cache.is_loaded(chunk(6))
        assert cache.pending_unload == frozenset()

    def test_rerequest_clears_pending(self, cache):
        cache.insert_chunk(chunk(6))
        cache.unload_distant(chunk(0), 1)
        assert cache.mark_requested(chunk(6))
        assert cache.is_requested(chunk(6))
        assert cache.pending_unload == frozenset()

    def test_negative_distance_rejected(self, cache):
        with pytest.raises(ValueError):
            cache.unload_distant(chunk(0), -1)
