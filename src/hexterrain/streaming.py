"""Chunk streaming — the per-tick load/unload policy around :class:`WorldCache`.

Each :meth:`ChunkStreamer.tick`:

1. collects chunk meshes whose background generation finished,
2. if the request cooldown allows, requests every chunk within
   ``view_radius`` of the chunk under the viewer that is not already
   loaded or in flight,
3. evicts loaded chunks beyond ``unload_distance + 1``.

Steps run in that order on the caller's thread, so eviction always sees
the chunks inserted earlier in the same tick.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import structlog

from .chunks import ChunkId
from .config import StreamingConfig
from .layout import HexConfig, Point
from .marching import ContourStrategy
from .models import TerrainMeshData
from .pipeline import generate_chunk_mesh
from .sampler import TerrainSampler
from .world_cache import WorldCache

logger = structlog.get_logger(__name__)


@dataclass
class RequestCooldown:
    """Minimum elapsed time between two chunk-discovery passes.

    Times are seconds on the caller's clock.  With no previous request
    the first pass is always allowed.
    """

    request_cooldown: float
    last_request_time: Optional[float] = None

    def is_request_valid(self, elapsed: float) -> bool:
        if self.last_request_time is None:
            return True
        return elapsed - self.last_request_time >= self.request_cooldown

    def update_request_time(self, elapsed: float) -> None:
        self.last_request_time = elapsed


@dataclass
class StreamingEvents:
    """What changed during one tick."""

    loaded: Tuple[ChunkId, ...] = ()
    unloaded: Tuple[ChunkId, ...] = ()
    meshes: Dict[ChunkId, TerrainMeshData] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not (self.loaded or self.unloaded)


class ChunkMeshGenerator:
    """Builds chunk meshes on a bounded thread pool."""

    def __init__(
        self,
        sampler: TerrainSampler,
        *,
        strategy: Optional[ContourStrategy] = None,
        max_workers: Optional[int] = None,
    ) -> None:
        self.sampler = sampler
        self.strategy = strategy
        self._pool = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="hexterrain-chunk"
        )

    def submit(self, chunk: ChunkId) -> "Future[TerrainMeshData]":
        return self._pool.submit(generate_chunk_mesh, chunk, self.sampler, strategy=self.strategy)

    def shutdown(self, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait, cancel_futures=True)


class ChunkStreamer:
    """Drives a :class:`WorldCache` from a moving viewer position.

    Parameters
    ----------
    hex_config : HexConfig
        Layout and chunk radius used to locate the viewer's chunk.
    config : StreamingConfig
        View radius, unload distance and request cooldown.
    cache : WorldCache, optional
        Cache to drive; a fresh one is created when omitted.
    generator : ChunkMeshGenerator, optional
        When given, requested chunks are generated in the background and
        only become loaded once their mesh arrives.  Without one, chunks
        are inserted as loaded immediately.
    """

    def __init__(
        self,
        hex_config: HexConfig,
        config: Optional[StreamingConfig] = None,
        *,
        cache: Optional[WorldCache] = None,
        generator: Optional[ChunkMeshGenerator] = None,
    ) -> None:
        self.hex_config = hex_config
        self.config = config or StreamingConfig()
        self.cache = cache if cache is not None else WorldCache()
        self.generator = generator
        self.cooldown = RequestCooldown(self.config.request_cooldown)
        self._in_flight: Dict[ChunkId, "Future[TerrainMeshData]"] = {}

    @property
    def in_flight(self) -> List[ChunkId]:
        return sorted(self._in_flight)

    def chunk_at(self, position: Point) -> ChunkId:
        return ChunkId.from_position(position, self.hex_config)

    def tick(self, viewer_position: Optional[Point], elapsed: float) -> StreamingEvents:
        """Advance streaming by one tick; ``None`` position does nothing."""
        if viewer_position is None:
            return StreamingEvents()

        center = self.chunk_at(viewer_position)
        loaded: List[ChunkId] = []
        meshes: Dict[ChunkId, TerrainMeshData] = {}

        self._collect_finished(center, loaded, meshes)
        if self.cooldown.is_request_valid(elapsed):
            self.cooldown.update_request_time(elapsed)
            self._request_around(center, loaded)
        unloaded = self.cache.unload_distant(center, self.config.unload_distance)

        return StreamingEvents(tuple(loaded), tuple(unloaded), meshes)

    def acknowledge_unload(self, chunks) -> None:
        self.cache.acknowledge_unload(chunks)

    def shutdown(self) -> None:
        """Drop in-flight requests and stop the generator pool."""
        for chunk in self._in_flight:
            self.cache.cancel_request(chunk)
        self._in_flight.clear()
        if self.generator is not None:
            self.generator.shutdown(wait=False)

    # ── internals ───────────────────────────────────────────────────

    def _request_around(self, center: ChunkId, loaded: List[ChunkId]) -> None:
        requested = 0
        for chunk in center.range(self.config.view_radius):
            if self.cache.is_tracked(chunk):
                continue
            if self.generator is None:
                self.cache.insert_chunk(chunk)
                loaded.append(chunk)
            else:
                self.cache.mark_requested(chunk)
                self._in_flight[chunk] = self.generator.submit(chunk)
            requested += 1
        if requested:
            logger.info("chunks requested", count=requested, center=str(center))

    def _collect_finished(
        self,
        center: ChunkId,
        loaded: List[ChunkId],
        meshes: Dict[ChunkId, TerrainMeshData],
    ) -> None:
        limit = self.config.unload_distance + 1
        for chunk, future in list(self._in_flight.items()):
            if not future.done():
                continue
            del self._in_flight[chunk]
            exc = future.exception()
            if exc is not None:
                # Dropping the request lets the next discovery pass retry it.
                self.cache.cancel_request(chunk)
                logger.error("chunk generation failed", chunk=str(chunk), exc_info=exc)
                continue
            if chunk.distance(center) > limit:
                self.cache.cancel_request(chunk)
                continue
            self.cache.insert_chunk(chunk)
            loaded.append(chunk)
            meshes[chunk] = future.result()
