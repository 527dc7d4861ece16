#!/usr/bin/env python3
"""Demo: island coastline mesh from a synthetic height image.

Usage
-----
    python scripts/demo.py --out exports/island.png
    python scripts/demo.py --strategy dual --radius 20 --out exports/island_dual.png
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import numpy as np

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from hexterrain import (
    ContourConfig,
    HexConfig,
    SourceImage,
    TerrainSettings,
    generate_terrain,
    get_strategy,
    render_mesh_png,
    validate_mesh_payload,
)


def island_pixels(size: int, radius: float) -> np.ndarray:
    yy, xx = np.mgrid[0:size, 0:size]
    c = (size - 1) / 2.0
    dist = np.hypot(xx - c, yy - c)
    return np.clip(1.0 - dist / (2.0 * radius), 0.0, 1.0).astype(np.float32)


def main() -> None:
    parser = argparse.ArgumentParser(description="Island coastline demo")
    parser.add_argument("--size", type=int, default=128, help="Image side in pixels")
    parser.add_argument("--radius", type=float, default=32.0, help="Island radius in pixels")
    parser.add_argument("--strategy", choices=["grid", "dual"], default="grid")
    parser.add_argument("--out", default="exports/island.png")
    args = parser.parse_args()

    image = SourceImage.from_array(island_pixels(args.size, args.radius))
    hex_config = HexConfig(hex_radius=1.0)
    config = ContourConfig(pixels_per_hex=4.0)
    settings = TerrainSettings(map_radius=int(args.size / 4.0 / 2.0))

    print(f"Generating coastline (strategy={args.strategy})…")
    result = generate_terrain(
        image, hex_config, config, settings, strategy=get_strategy(args.strategy)
    )
    mesh = result.mesh

    errors = validate_mesh_payload(mesh.to_dict())
    if errors:
        raise SystemExit("\n".join(errors))

    print("Contours:", result.artefact("contours", "contours"))
    print("Vertices:", mesh.vertex_count)
    print("Triangles:", mesh.triangle_count)
    print(f"Elapsed: {sum(result.elapsed.values()):.2f}s")

    render_mesh_png(mesh, args.out)
    print(f"Saved {args.out}")


if __name__ == "__main__":
    main()
