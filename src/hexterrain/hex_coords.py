"""Axial hex coordinates — neighbours, rings, lines and resolution change.

Every operation here is a pure function of integer axial ``(q, r)``
pairs.  There is **no** dependency on world space, layouts or images;
:mod:`layout` converts to and from world positions and :mod:`chunks`
builds chunk ids on top of :meth:`HexCoord.to_lower_res`.

Resolution change
-----------------
A chunk of *radius* ``n`` is the hexagonal disk of ``3n(n+1) + 1`` cells
around a centre.  Those disks tile the plane exactly; their centres form
a lattice spanned by the axial vectors ``(2n+1, -n)`` and ``(n, n+1)``.
:meth:`HexCoord.to_lower_res` finds the lattice point owning a cell and
:meth:`HexCoord.to_higher_res` maps a lattice point back to its centre.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Iterable, List, Tuple


# Axial direction offsets, counter-clockwise starting east.
DIRECTIONS: Tuple[Tuple[int, int], ...] = (
    (1, 0),
    (1, -1),
    (0, -1),
    (-1, 0),
    (-1, 1),
    (0, 1),
)


def cube_round(fq: float, fr: float) -> Tuple[int, int]:
    """Round fractional axial coordinates to the nearest hex."""
    fs = -fq - fr
    q = round(fq)
    r = round(fr)
    s = round(fs)
    dq = abs(q - fq)
    dr = abs(r - fr)
    ds = abs(s - fs)
    if dq > dr and dq > ds:
        q = -r - s
    elif dr > ds:
        r = -q - s
    return int(q), int(r)


@dataclass(frozen=True, order=True)
class HexCoord:
    """An axial hex address.  Equality and hashing are by ``(q, r)``."""

    q: int
    r: int

    ZERO: ClassVar["HexCoord"]

    @property
    def s(self) -> int:
        """Third cube coordinate (``q + r + s == 0``)."""
        return -self.q - self.r

    def __add__(self, other: "HexCoord") -> "HexCoord":
        return HexCoord(self.q + other.q, self.r + other.r)

    def __sub__(self, other: "HexCoord") -> "HexCoord":
        return HexCoord(self.q - other.q, self.r - other.r)

    def scale(self, factor: int) -> "HexCoord":
        return HexCoord(self.q * factor, self.r * factor)

    # ── adjacency ───────────────────────────────────────────────────

    def neighbor(self, direction: int) -> "HexCoord":
        dq, dr = DIRECTIONS[direction % 6]
        return HexCoord(self.q + dq, self.r + dr)

    def neighbors(self) -> List["HexCoord"]:
        """The 6 adjacent cells, counter-clockwise starting east."""
        return [HexCoord(self.q + dq, self.r + dr) for dq, dr in DIRECTIONS]

    def distance(self, other: "HexCoord") -> int:
        """Unsigned hex distance (number of steps) to *other*."""
        dq = self.q - other.q
        dr = self.r - other.r
        return (abs(dq) + abs(dr) + abs(dq + dr)) // 2

    def length(self) -> int:
        return self.distance(HexCoord.ZERO)

    # ── areas ───────────────────────────────────────────────────────

    def range(self, radius: int) -> List["HexCoord"]:
        """All cells within *radius* steps (a disk of ``3r(r+1)+1`` cells)."""
        _check_radius(radius)
        cells: List[HexCoord] = []
        for dq in range(-radius, radius + 1):
            lo = max(-radius, -dq - radius)
            hi = min(radius, -dq + radius)
            for dr in range(lo, hi + 1):
                cells.append(HexCoord(self.q + dq, self.r + dr))
        return cells

    in_range = range

    def ring(self, radius: int) -> List["HexCoord"]:
        """Cells at exactly *radius* steps, walked counter-clockwise.

        Radius 0 returns ``[self]``; otherwise the ring has ``6 * radius``
        cells.
        """
        _check_radius(radius)
        if radius == 0:
            return [self]
        cells: List[HexCoord] = []
        current = self + HexCoord(*DIRECTIONS[4]).scale(radius)
        for side in range(6):
            for _ in range(radius):
                cells.append(current)
                current = current.neighbor(side)
        return cells

    def rings(self, radii: Iterable[int]) -> List["HexCoord"]:
        """Concatenation of :meth:`ring` for every radius in *radii*."""
        cells: List[HexCoord] = []
        for radius in radii:
            cells.extend(self.ring(radius))
        return cells

    spiral = rings

    def line_to(self, other: "HexCoord") -> List["HexCoord"]:
        """Cells on the straight line from *self* to *other*, inclusive."""
        n = self.distance(other)
        if n == 0:
            return [self]
        # Nudge off exact ties so the line never flickers between two cells.
        aq, ar = self.q + 1e-6, self.r + 1e-6
        bq, br = other.q + 1e-6, other.r + 1e-6
        cells: List[HexCoord] = []
        for i in range(n + 1):
            t = i / n
            cells.append(HexCoord(*cube_round(aq + (bq - aq) * t, ar + (br - ar) * t)))
        return cells

    # ── resolution ──────────────────────────────────────────────────

    def to_lower_res(self, radius: int) -> "HexCoord":
        """Return the coarse lattice coordinate of the chunk owning *self*.

        Chunks are hexagonal disks of *radius* cells; radius 0 is the
        identity mapping.
        """
        _check_radius(radius)
        n = radius
        area = 3 * n * (n + 1) + 1
        x0 = ((n + 1) * self.q - n * self.r) // area
        y0 = (n * self.q + (2 * n + 1) * self.r) // area
        # The floored lattice position lies in a basis parallelogram whose
        # corners, plus one step either way, always include the owning centre.
        for dx in (0, 1, -1):
            for dy in (0, 1, -1):
                candidate = HexCoord(x0 + dx, y0 + dy)
                if candidate.to_higher_res(n).distance(self) <= n:
                    return candidate
        raise RuntimeError(f"no chunk owns {self} at radius {radius}")

    def to_higher_res(self, radius: int) -> "HexCoord":
        """Return the fine centre cell of the chunk at lattice coordinate *self*."""
        _check_radius(radius)
        n = radius
        return HexCoord(
            self.q * (2 * n + 1) + self.r * n,
            -self.q * n + self.r * (n + 1),
        )

    def __repr__(self) -> str:
        return f"HexCoord({self.q}, {self.r})"


HexCoord.ZERO = HexCoord(0, 0)


def range_count(radius: int) -> int:
    """Number of cells in a disk of *radius*."""
    _check_radius(radius)
    return 3 * radius * (radius + 1) + 1


def _check_radius(radius: int) -> None:
    if radius < 0:
        raise ValueError("radius must be >= 0")
