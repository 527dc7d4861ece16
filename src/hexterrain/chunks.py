"""Chunk ids — coarse hex addresses used as the unit of load/unload."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

from .hex_coords import HexCoord
from .layout import HexConfig, HexLayout, Point


@dataclass(frozen=True, order=True)
class ChunkId:
    """A coarse :class:`HexCoord` plus the chunk radius it was derived with."""

    coord: HexCoord
    size: int

    @property
    def q(self) -> int:
        return self.coord.q

    @property
    def r(self) -> int:
        return self.coord.r

    @classmethod
    def from_hex_coord(cls, coord: HexCoord, chunk_size: int) -> "ChunkId":
        return cls(coord.to_lower_res(chunk_size), chunk_size)

    @classmethod
    def from_position(cls, position: Point, hex_config: HexConfig) -> "ChunkId":
        """Chunk under a world-space *position*."""
        fine = hex_config.layout.world_pos_to_hex(position)
        return cls.from_hex_coord(fine, hex_config.chunk_size)

    def to_center(self) -> HexCoord:
        """Fine centre cell of this chunk."""
        return self.coord.to_higher_res(self.size)

    def world_center(self, layout: HexLayout) -> Point:
        return layout.hex_to_world_pos(self.to_center())

    def contains(self, coord: HexCoord) -> bool:
        return self.to_center().distance(coord) <= self.size

    def footprint(self) -> List[HexCoord]:
        """Every fine cell owned by this chunk."""
        return self.to_center().range(self.size)

    # ── coarse-grid queries ─────────────────────────────────────────

    def distance(self, other: "ChunkId") -> int:
        return self.coord.distance(other.coord)

    def neighbors(self) -> List["ChunkId"]:
        return self._wrap(self.coord.neighbors())

    def range(self, radius: int) -> List["ChunkId"]:
        return self._wrap(self.coord.range(radius))

    def ring(self, radius: int) -> List["ChunkId"]:
        return self._wrap(self.coord.ring(radius))

    def rings(self, radii: Iterable[int]) -> List["ChunkId"]:
        return self._wrap(self.coord.rings(radii))

    def _wrap(self, coords: Iterable[HexCoord]) -> List["ChunkId"]:
        return [ChunkId(c, self.size) for c in coords]

    def __str__(self) -> str:
        return f"chunk({self.q},{self.r})/{self.size}"


def to_chunk(coord: HexCoord, chunk_size: int) -> ChunkId:
    return ChunkId.from_hex_coord(coord, chunk_size)


def to_center(chunk: ChunkId, chunk_size: int) -> HexCoord:
    """Fine centre of *chunk* evaluated at *chunk_size*."""
    return chunk.coord.to_higher_res(chunk_size)
