"""Debug previews of meshes and chunk sets (requires matplotlib)."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np

from .chunks import ChunkId
from .layout import HexLayout
from .models import ContourPath, TerrainMeshData

RGB = Tuple[int, int, int]


class TileTint(Enum):
    """Fixed highlight palette for chunk tiles."""

    DEFAULT = "default"
    HOVER = "hover"
    PRESSED = "pressed"

    @property
    def rgb(self) -> RGB:
        return TINT_COLORS[self]

    @property
    def hex(self) -> str:
        return "#{:02x}{:02x}{:02x}".format(*self.rgb)


TINT_COLORS = {
    TileTint.DEFAULT: (0, 80, 230),
    TileTint.HOVER: (0x67, 0xE8, 0xF9),  # cyan-300
    TileTint.PRESSED: (0xFD, 0xE0, 0x47),  # yellow-300
}


def _require_pyplot():
    try:
        import matplotlib

        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
    except ImportError as exc:  # pragma: no cover - requires optional dep
        raise RuntimeError(
            "matplotlib is required for rendering. Install with `pip install matplotlib`."
        ) from exc
    return plt


def _save(fig, plt, output_path: str | Path, dpi: int) -> None:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path, dpi=dpi, bbox_inches="tight", pad_inches=0.05)
    plt.close(fig)


def render_mesh_png(
    mesh: TerrainMeshData,
    output_path: str | Path,
    contours: Optional[Sequence[ContourPath]] = None,
    land_color: str = "#7fb069",
    water_color: str = "#1d4e89",
    edge_color: Optional[str] = None,
    contour_color: str = "#f4d35e",
    dpi: int = 150,
) -> None:
    """Render a land mesh over a water background, optionally with contour lines."""
    plt = _require_pyplot()
    from matplotlib.collections import PolyCollection

    fig, ax = plt.subplots(figsize=(8, 8))
    ax.set_facecolor(water_color)

    if not mesh.is_empty():
        xy = mesh.vertices[:, :2]
        polys = xy[mesh.triangles().astype(np.int64)]
        ax.add_collection(
            PolyCollection(
                polys,
                facecolors=land_color,
                edgecolors=edge_color or land_color,
                linewidths=0.2,
            )
        )

    for contour in contours or ():
        pts = np.asarray(contour.points)
        if len(pts) == 0:
            continue
        if contour.is_closed:
            pts = np.vstack([pts, pts[:1]])
        ax.plot(pts[:, 0], pts[:, 1], color=contour_color, linewidth=0.8)

    ax.set_aspect("equal", "datalim")
    ax.autoscale_view()
    ax.set_xticks([])
    ax.set_yticks([])
    _save(fig, plt, output_path, dpi)


def render_chunks_png(
    chunks: Iterable[ChunkId],
    layout: HexLayout,
    output_path: str | Path,
    highlight: Optional[ChunkId] = None,
    pressed: Iterable[ChunkId] = (),
    dpi: int = 150,
) -> None:
    """Render the fine cells of each chunk, tinted by :class:`TileTint`.

    *highlight* gets the hover tint and every chunk in *pressed* the
    pressed tint; the rest use the default tint.
    """
    plt = _require_pyplot()
    from matplotlib.collections import PolyCollection

    pressed = set(pressed)
    polys = []
    colors = []
    for chunk in sorted(set(chunks)):
        if chunk in pressed:
            tint = TileTint.PRESSED
        elif chunk == highlight:
            tint = TileTint.HOVER
        else:
            tint = TileTint.DEFAULT
        rgb = tuple(c / 255.0 for c in tint.rgb)
        for coord in chunk.footprint():
            polys.append(layout.hex_corners(coord))
            colors.append(rgb)

    fig, ax = plt.subplots(figsize=(8, 8))
    if polys:
        ax.add_collection(
            PolyCollection(polys, facecolors=colors, edgecolors="#2b2b2b", linewidths=0.2)
        )
    ax.set_aspect("equal", "datalim")
    ax.autoscale_view()
    ax.axis("off")
    _save(fig, plt, output_path, dpi)
