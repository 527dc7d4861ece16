"""Configuration value types and JSON loading.

Every knob has a default, so ``Config()`` is a complete working
configuration.  :func:`load_config` overlays a JSON document whose
optional top-level sections are ``hex``, ``contour``, ``streaming`` and
``terrain``.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .layout import HexConfig, HexOrientation

PathLike = Union[str, Path]


# ═══════════════════════════════════════════════════════════════════
# Contour extraction
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ContourConfig:
    """Sampling, noise and smoothing parameters for coastline extraction.

    Attributes
    ----------
    pixels_per_hex : float
        Image pixels per world unit (``pixel = world * pixels_per_hex +
        image_size / 2``).
    noise_amplitude : float
        Weight of the fractal noise added to raw samples.
    noise_frequency : float
        Base spatial frequency of the first noise octave.
    noise_octaves : int
        Number of octaves; each halves amplitude and doubles frequency.
    threshold : float
        Land/water cut-off.  A sample is land when strictly above it.
    spline_tension : float
        Catmull-Rom tension (0 = straight, 1 = very curved).
    spline_subdivisions : int
        Points emitted per source point by the smoother.
    connect_epsilon : float
        Endpoint tolerance when stitching segments into paths.
    grid_resolution : int
        Cells per axis of the regular marching-squares grid.
    shallow_water_distance : int
        Non-border water within this many cells of a border is shallow.
    seed : int
        Noise seed.
    """

    pixels_per_hex: float = 0.25
    noise_amplitude: float = 0.3
    noise_frequency: float = 2.0
    noise_octaves: int = 3
    threshold: float = 0.5
    spline_tension: float = 0.5
    spline_subdivisions: int = 10
    connect_epsilon: float = 0.001
    grid_resolution: int = 256
    shallow_water_distance: int = 2
    seed: int = 42

    def __post_init__(self) -> None:
        if self.pixels_per_hex <= 0:
            raise ValueError("pixels_per_hex must be positive")
        if self.noise_octaves < 0:
            raise ValueError("noise_octaves must be >= 0")
        if not 0.0 <= self.threshold <= 1.0:
            raise ValueError("threshold must be in [0, 1]")
        if self.spline_subdivisions < 1:
            raise ValueError("spline_subdivisions must be >= 1")
        if self.connect_epsilon <= 0:
            raise ValueError("connect_epsilon must be positive")
        if self.grid_resolution < 1:
            raise ValueError("grid_resolution must be >= 1")
        if self.shallow_water_distance < 0:
            raise ValueError("shallow_water_distance must be >= 0")


# ═══════════════════════════════════════════════════════════════════
# Streaming
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class StreamingConfig:
    """Chunk streaming radii (in chunks) and discovery throttle (seconds)."""

    view_radius: int = 1
    unload_distance: int = 2
    request_cooldown: float = 0.5

    def __post_init__(self) -> None:
        if self.view_radius < 0 or self.unload_distance < 0:
            raise ValueError("streaming radii must be >= 0")
        if self.request_cooldown < 0:
            raise ValueError("request_cooldown must be >= 0")


# ═══════════════════════════════════════════════════════════════════
# Staged generation
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class TerrainSettings:
    """Knobs for the staged whole-map pipeline.

    Attributes
    ----------
    low_res_scale : float
        Fraction of the full grid radius sampled in the low-res pass.
    upscale_smoothing : bool
        Subdivide and spline-smooth contours while upscaling.
    parallel_threshold : int
        Minimum number of work items before a stage uses the worker pool.
    upscale_subdivisions : int
        Linear subdivisions per segment during upscaling.
    smoothing_subdivisions : int
        Catmull-Rom subdivisions per point after upscaling.
    max_workers : int or None
        Worker pool size; ``None`` lets the executor choose.
    map_radius : int
        Radius, in cells, of the full-resolution map.
    """

    low_res_scale: float = 0.25
    upscale_smoothing: bool = True
    parallel_threshold: int = 100
    upscale_subdivisions: int = 4
    smoothing_subdivisions: int = 5
    max_workers: Optional[int] = None
    map_radius: int = 100

    def __post_init__(self) -> None:
        if not 0.0 < self.low_res_scale <= 1.0:
            raise ValueError("low_res_scale must be in (0, 1]")
        if self.parallel_threshold < 0:
            raise ValueError("parallel_threshold must be >= 0")
        if self.upscale_subdivisions < 1 or self.smoothing_subdivisions < 1:
            raise ValueError("subdivisions must be >= 1")
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        if self.map_radius < 0:
            raise ValueError("map_radius must be >= 0")

    @property
    def reduced_radius(self) -> int:
        return int(self.map_radius * self.low_res_scale)


# ═══════════════════════════════════════════════════════════════════
# Bundle + JSON
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Config:
    hex: HexConfig = field(default_factory=HexConfig)
    contour: ContourConfig = field(default_factory=ContourConfig)
    streaming: StreamingConfig = field(default_factory=StreamingConfig)
    terrain: TerrainSettings = field(default_factory=TerrainSettings)

    def to_dict(self) -> Dict[str, Any]:
        hex_section = {
            "hex_radius": self.hex.hex_radius,
            "orientation": self.hex.orientation.value,
            "ratio": list(self.hex.ratio),
            "chunk_size": self.hex.chunk_size,
        }
        return {
            "hex": hex_section,
            "contour": asdict(self.contour),
            "streaming": asdict(self.streaming),
            "terrain": asdict(self.terrain),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        unknown = set(data) - {"hex", "contour", "streaming", "terrain"}
        if unknown:
            raise ValueError(f"Unknown config sections: {sorted(unknown)}")

        hex_data = dict(data.get("hex", {}))
        _check_keys(HexConfig, hex_data, "hex", exclude={"layout"})
        if "orientation" in hex_data:
            hex_data["orientation"] = HexOrientation(hex_data["orientation"])
        if "ratio" in hex_data:
            hex_data["ratio"] = tuple(hex_data["ratio"])

        sections = {}
        for name, kind in (
            ("contour", ContourConfig),
            ("streaming", StreamingConfig),
            ("terrain", TerrainSettings),
        ):
            section = dict(data.get(name, {}))
            _check_keys(kind, section, name)
            sections[name] = kind(**section)

        return cls(hex=HexConfig(**hex_data), **sections)


def _check_keys(kind, section: Dict[str, Any], name: str, exclude=frozenset()) -> None:
    allowed = {f.name for f in fields(kind)} - set(exclude)
    unknown = set(section) - allowed
    if unknown:
        raise ValueError(f"Unknown keys in [{name}]: {sorted(unknown)}")


def load_config(path: Optional[PathLike] = None) -> Config:
    """Load a :class:`Config` from JSON, or return defaults when *path* is None."""
    if path is None:
        return Config()
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return Config.from_dict(data)


def save_config(config: Config, path: PathLike) -> None:
    Path(path).write_text(json.dumps(config.to_dict(), indent=2), encoding="utf-8")
