"""World chunk cache — which chunks are loaded, in flight, or being retired.

Per chunk the lifecycle is ``unknown → requested → loaded → unknown``.
A chunk is in at most one of ``loaded`` / ``requested`` /
``pending_unload``.  Evicted chunks sit in ``pending_unload`` until the
consumer has despawned them and calls
:meth:`WorldCache.acknowledge_unload`, or until they are requested or
inserted again.

The cache is owned by the foreground tick loop and is not thread-safe.
"""

from __future__ import annotations

from typing import FrozenSet, Iterable, List, Set

import structlog

from .chunks import ChunkId

logger = structlog.get_logger(__name__)


class WorldCache:
    """Loaded / requested / pending-unload chunk sets."""

    def __init__(self) -> None:
        self._loaded: Set[ChunkId] = set()
        self._requested: Set[ChunkId] = set()
        self._pending_unload: Set[ChunkId] = set()

    # ── queries ─────────────────────────────────────────────────────

    @property
    def loaded(self) -> FrozenSet[ChunkId]:
        return frozenset(self._loaded)

    @property
    def requested(self) -> FrozenSet[ChunkId]:
        return frozenset(self._requested)

    @property
    def pending_unload(self) -> FrozenSet[ChunkId]:
        return frozenset(self._pending_unload)

    def is_loaded(self, chunk: ChunkId) -> bool:
        return chunk in self._loaded

    def is_requested(self, chunk: ChunkId) -> bool:
        return chunk in self._requested

    def is_tracked(self, chunk: ChunkId) -> bool:
        return chunk in self._loaded or chunk in self._requested

    def __len__(self) -> int:
        return len(self._loaded)

    # ── transitions ─────────────────────────────────────────────────

    def mark_requested(self, chunk: ChunkId) -> bool:
        """Move an unknown chunk to *requested*; returns ``False`` if already tracked.

        A chunk still waiting in ``pending_unload`` leaves it, since it is
        wanted again.
        """
        if self.is_tracked(chunk):
            return False
        self._pending_unload.discard(chunk)
        self._requested.add(chunk)
        return True

    def insert_chunk(self, chunk: ChunkId) -> None:
        """Mark *chunk* loaded, clearing any request or pending eviction."""
        self._requested.discard(chunk)
        self._pending_unload.discard(chunk)
        self._loaded.add(chunk)

    def cancel_request(self, chunk: ChunkId) -> None:
        self._requested.discard(chunk)

    def unload_distant(self, center: ChunkId, max_distance: int) -> List[ChunkId]:
        """Evict loaded chunks farther than ``max_distance + 1`` from *center*.

        The extra ring keeps chunks on the view boundary from being
        loaded and evicted on alternate ticks.  Returns the evicted
        chunks in sorted order; they are also added to
        :attr:`pending_unload`.
        """
        if max_distance < 0:
            raise ValueError(f"max_distance must be >= 0, got {max_distance}")
        limit = max_distance + 1
        removed = sorted(c for c in self._loaded if c.distance(center) > limit)
        if removed:
            self._loaded.difference_update(removed)
            self._pending_unload.update(removed)
            logger.warning(
                "chunks unloaded",
                count=len(removed),
                center=str(center),
                max_distance=max_distance,
            )
        return removed

    def acknowledge_unload(self, chunks: Iterable[ChunkId]) -> None:
        """The consumer has despawned *chunks*; stop tracking them."""
        self._pending_unload.difference_update(chunks)

    def clear(self) -> None:
        self._loaded.clear()
        self._requested.clear()
        self._pending_unload.clear()

    def __repr__(self) -> str:
        return (
            f"WorldCache(loaded={len(self._loaded)}, "
            f"requested={len(self._requested)}, "
            f"pending_unload={len(self._pending_unload)})"
        )
