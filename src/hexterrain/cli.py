"""hexterrain command-line interface."""

from __future__ import annotations

import argparse
import time
from typing import List, Optional, Tuple

from .config import Config, load_config
from .log import configure_logging


def _parse_point(text: str) -> Tuple[float, float]:
    try:
        x, y = text.split(",")
        return (float(x), float(y))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected 'x,y', got {text!r}") from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="hexterrain CLI")
    parser.add_argument("--log-level", default="WARNING")
    parser.add_argument("--log-json", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    generate = sub.add_parser("generate", help="Generate a coastline mesh from an image")
    generate.add_argument("--image", required=True)
    generate.add_argument("--config", dest="config_path")
    generate.add_argument("--strategy", choices=["grid", "dual"], default="grid")
    generate.add_argument("--out", dest="output_path")
    generate.add_argument("--render-out", dest="render_path")

    chunks = sub.add_parser("chunks", help="Show the chunks around a world position")
    chunks.add_argument("--x", type=float, required=True)
    chunks.add_argument("--y", type=float, required=True)
    chunks.add_argument("--config", dest="config_path")
    chunks.add_argument("--render-out", dest="render_path")

    stream = sub.add_parser("stream", help="Simulate chunk streaming along a viewer path")
    stream.add_argument("--path", type=_parse_point, nargs="+", required=True)
    stream.add_argument("--config", dest="config_path")
    stream.add_argument("--dt", type=float, default=0.25, help="Seconds between ticks")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level, json=args.log_json)

    try:
        config = load_config(args.config_path)
    except (OSError, ValueError) as exc:
        print(f"invalid config: {exc}")
        raise SystemExit(2)

    if args.command == "generate":
        _cmd_generate(args, config)

    elif args.command == "chunks":
        _cmd_chunks(args, config)

    elif args.command == "stream":
        _cmd_stream(args, config)


def _cmd_generate(args, config: Config) -> None:
    from .io import save_mesh_json
    from .marching import get_strategy
    from .pipeline import start_terrain_generation
    from .progress import format_progress
    from .sampler import SourceImageError

    try:
        task, progress = start_terrain_generation(
            args.image,
            config.hex,
            config.contour,
            config.terrain,
            strategy=get_strategy(args.strategy),
        )
    except SourceImageError as exc:
        print(exc)
        raise SystemExit(1)

    last = None
    while not task.is_finished():
        snapshot = progress.try_snapshot()
        if snapshot is not None and snapshot != last:
            print(format_progress(snapshot))
            last = snapshot
        time.sleep(0.1)
    mesh = task.try_take_result()
    print(format_progress(progress.snapshot()))
    print(f"Mesh: {mesh.vertex_count} vertices, {mesh.triangle_count} triangles")

    if args.output_path:
        save_mesh_json(mesh, args.output_path)
        print(f"Saved {args.output_path}")
    if args.render_path:
        from .render import render_mesh_png

        render_mesh_png(mesh, args.render_path)
        print(f"Saved {args.render_path}")


def _cmd_chunks(args, config: Config) -> None:
    from .chunks import ChunkId

    position = (args.x, args.y)
    center = ChunkId.from_position(position, config.hex)
    fine = config.hex.layout.world_pos_to_hex(position)
    print(f"cell {fine} -> {center} (centre cell {center.to_center()})")

    in_view = center.range(config.streaming.view_radius)
    print(f"{len(in_view)} chunks within view radius {config.streaming.view_radius}:")
    for chunk in sorted(in_view):
        print(f"  {chunk}  distance {chunk.distance(center)}")

    if args.render_path:
        from .render import render_chunks_png

        render_chunks_png(in_view, config.hex.layout, args.render_path, highlight=center)
        print(f"Saved {args.render_path}")


def _cmd_stream(args, config: Config) -> None:
    from .streaming import ChunkStreamer

    streamer = ChunkStreamer(config.hex, config.streaming)
    for tick, position in enumerate(args.path):
        elapsed = tick * args.dt
        events = streamer.tick(position, elapsed)
        print(f"t={elapsed:.2f} at {position}: {streamer.chunk_at(position)}")
        for chunk in events.loaded:
            print(f"  + {chunk}")
        for chunk in events.unloaded:
            print(f"  - {chunk}")
        streamer.acknowledge_unload(events.unloaded)
    print(f"{len(streamer.cache)} chunks loaded")


if __name__ == "__main__":
    main()
