"""hexterrain — hex-grid coastline meshes and chunk streaming.

Public API is organised into layers:

- **Core** — hex coordinates, layouts, chunks, configuration
- **Sampling** — source raster, noise, cell classification
- **Contours** — marching strategies, assembly, smoothing
- **Meshing** — ear clipping, buffer merging, mesh I/O
- **Pipeline** — staged background generation and progress
- **Streaming** — world chunk cache and per-tick streamer
- **Rendering** — debug previews (requires matplotlib)
"""

# ── Core ────────────────────────────────────────────────────────────
from .hex_coords import HexCoord, DIRECTIONS, cube_round, range_count
from .layout import HexConfig, HexLayout, HexOrientation
from .chunks import ChunkId, to_chunk, to_center
from .config import (
    Config,
    ContourConfig,
    StreamingConfig,
    TerrainSettings,
    load_config,
    save_config,
)
from .models import (
    CellData,
    ContourPath,
    TerrainMeshData,
    TerrainType,
    Triangle,
    TriangleId,
)

# ── Sampling ────────────────────────────────────────────────────────
from .noise import fractal_noise, fractal_noise_grid
from .sampler import (
    CellGrid,
    SourceImage,
    SourceImageError,
    TerrainSampler,
    classify_cell,
    distance_field,
    load_source_image,
    sample_cells,
)

# ── Contours ────────────────────────────────────────────────────────
from .marching import (
    ContourStrategy,
    DualTriangleStrategy,
    MarchingSquaresStrategy,
    get_strategy,
    hex_to_triangular_dual,
    interpolate_edge,
    marching_square_cell,
    marching_triangle,
)
from .contours import assemble_segments, catmull_rom, smooth_contour, upscale_contour

# ── Meshing ─────────────────────────────────────────────────────────
from .mesh import ear_clip, merge_mesh_data, polygon_signed_area, triangulate_contour
from .io import load_mesh_json, save_mesh_json, validate_mesh_payload

# ── Pipeline ────────────────────────────────────────────────────────
from .progress import GenerationProgress, GenerationStage, ProgressHandle, format_progress
from .tasks import GenerationTask, parallel_map
from .pipeline import (
    GenerationContext,
    PipelineResult,
    PipelineStep,
    StepResult,
    TerrainPipeline,
    build_default_pipeline,
    generate_chunk_mesh,
    generate_terrain,
    start_terrain_generation,
)

# ── Streaming ───────────────────────────────────────────────────────
from .world_cache import WorldCache
from .streaming import ChunkMeshGenerator, ChunkStreamer, RequestCooldown, StreamingEvents

# ── Rendering ───────────────────────────────────────────────────────
from .render import TileTint, TINT_COLORS, render_chunks_png, render_mesh_png

__all__ = [
    # Core
    "HexCoord",
    "DIRECTIONS",
    "cube_round",
    "range_count",
    "HexConfig",
    "HexLayout",
    "HexOrientation",
    "ChunkId",
    "to_chunk",
    "to_center",
    "Config",
    "ContourConfig",
    "StreamingConfig",
    "TerrainSettings",
    "load_config",
    "save_config",
    "CellData",
    "ContourPath",
    "TerrainMeshData",
    "TerrainType",
    "Triangle",
    "TriangleId",
    # Sampling
    "fractal_noise",
    "fractal_noise_grid",
    "CellGrid",
    "SourceImage",
    "SourceImageError",
    "TerrainSampler",
    "classify_cell",
    "distance_field",
    "load_source_image",
    "sample_cells",
    # Contours
    "ContourStrategy",
    "DualTriangleStrategy",
    "MarchingSquaresStrategy",
    "get_strategy",
    "hex_to_triangular_dual",
    "interpolate_edge",
    "marching_square_cell",
    "marching_triangle",
    "assemble_segments",
    "catmull_rom",
    "smooth_contour",
    "upscale_contour",
    # Meshing
    "ear_clip",
    "merge_mesh_data",
    "polygon_signed_area",
    "triangulate_contour",
    "load_mesh_json",
    "save_mesh_json",
    "validate_mesh_payload",
    # Pipeline
    "GenerationProgress",
    "GenerationStage",
    "ProgressHandle",
    "format_progress",
    "GenerationTask",
    "parallel_map",
    "GenerationContext",
    "PipelineResult",
    "PipelineStep",
    "StepResult",
    "TerrainPipeline",
    "build_default_pipeline",
    "generate_chunk_mesh",
    "generate_terrain",
    "start_terrain_generation",
    # Streaming
    "WorldCache",
    "ChunkMeshGenerator",
    "ChunkStreamer",
    "RequestCooldown",
    "StreamingEvents",
    # Rendering
    "TileTint",
    "TINT_COLORS",
    "render_chunks_png",
    "render_mesh_png",
]
