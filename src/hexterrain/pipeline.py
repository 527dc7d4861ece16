"""Staged terrain generation — composable step-based coastline pipeline.

Provides :class:`PipelineStep` (protocol) and :class:`TerrainPipeline`
(sequencer) so the generation stages can be declared in order and run
as one pass, plus the entry points that run it in the background.

Stages
------
1. load image (synchronous, in the caller — a missing raster is a
   startup failure)
2. :class:`SampleTerrainStep` — classify a reduced-resolution cell arena
3. :class:`ExtractContoursStep` — march + assemble at reduced resolution
4. :class:`UpscaleContoursStep` — rescale, subdivide and spline-smooth
5. :class:`TriangulateStep` — ear-clip closed contours and merge buffers

Usage
-----
>>> from hexterrain.pipeline import start_terrain_generation
>>> task, progress = start_terrain_generation("maps/coast.png")
>>> # once per tick:
>>> mesh = task.try_take_result()
>>> snapshot = progress.try_snapshot()
"""

from __future__ import annotations

import time
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Optional,
    Protocol,
    Tuple,
    Union,
    runtime_checkable,
)

import structlog

from .chunks import ChunkId
from .config import ContourConfig, TerrainSettings
from .contours import assemble_segments, smooth_contour, upscale_contour
from .hex_coords import HexCoord
from .layout import HexConfig
from .marching import ContourStrategy, DualTriangleStrategy, MarchingSquaresStrategy
from .mesh import merge_mesh_data, triangulate_contour
from .models import ContourPath, TerrainMeshData
from .progress import GenerationStage, ProgressHandle
from .sampler import CellGrid, SourceImage, TerrainSampler, load_source_image, sample_cells
from .tasks import GenerationTask, parallel_map

logger = structlog.get_logger(__name__)


# ═══════════════════════════════════════════════════════════════════
# Context + step protocol
# ═══════════════════════════════════════════════════════════════════


@dataclass
class GenerationContext:
    """State threaded through the steps of one pipeline run.

    Each step reads what earlier steps produced and stores its own
    output in a fresh attribute value; nothing is mutated in place.
    """

    sampler: TerrainSampler
    settings: TerrainSettings
    strategy: ContourStrategy
    progress: ProgressHandle = field(default_factory=ProgressHandle)
    executor: Optional[Executor] = None
    low_res_sampler: Optional[TerrainSampler] = None
    cells: Optional[CellGrid] = None
    contours: List[ContourPath] = field(default_factory=list)
    mesh: Optional[TerrainMeshData] = None


@dataclass
class StepResult:
    """Optional return value from a step, carrying artefacts."""

    artefacts: Dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class PipelineStep(Protocol):
    """Protocol for a generation step.

    Any object that satisfies this protocol can be added to a
    :class:`TerrainPipeline`.
    """

    @property
    def name(self) -> str:
        """Human-readable name for logging."""
        ...

    @property
    def stage(self) -> GenerationStage:
        """Progress stage reported while the step runs."""
        ...

    def __call__(self, ctx: GenerationContext) -> Optional[StepResult]:
        ...


# ═══════════════════════════════════════════════════════════════════
# Pipeline
# ═══════════════════════════════════════════════════════════════════

Hook = Callable[[str, int, int], None]
"""Signature for before/after hooks: ``(step_name, step_index, total_steps)``."""


@dataclass
class PipelineResult:
    """Aggregate result of running a full pipeline.

    Attributes
    ----------
    mesh : TerrainMeshData
        The merged mesh (empty if no step produced one).
    step_results : dict[str, StepResult]
        Mapping of ``step.name → StepResult`` for every step that
        returned one.
    elapsed : dict[str, float]
        Mapping of ``step.name → seconds`` wall-clock time per step.
    """

    mesh: TerrainMeshData = field(default_factory=TerrainMeshData)
    step_results: Dict[str, StepResult] = field(default_factory=dict)
    elapsed: Dict[str, float] = field(default_factory=dict)

    def artefact(self, step_name: str, key: str) -> Any:
        """Convenience accessor for a specific artefact.

        Raises ``KeyError`` if the step or key is not present.
        """
        return self.step_results[step_name].artefacts[key]


class TerrainPipeline:
    """Ordered sequence of :class:`PipelineStep` instances.

    Parameters
    ----------
    steps : list[PipelineStep]
        Steps to execute in order.
    before : Hook | None
        Called *before* each step.
    after : Hook | None
        Called *after* each step.
    """

    def __init__(
        self,
        steps: Optional[List[PipelineStep]] = None,
        *,
        before: Optional[Hook] = None,
        after: Optional[Hook] = None,
    ) -> None:
        self._steps: List[PipelineStep] = list(steps or [])
        self._before = before
        self._after = after

    def add(self, step: PipelineStep) -> "TerrainPipeline":
        """Append a step and return *self* for chaining."""
        self._steps.append(step)
        return self

    def insert(self, index: int, step: PipelineStep) -> "TerrainPipeline":
        """Insert a step at *index* and return *self* for chaining."""
        self._steps.insert(index, step)
        return self

    def run(self, ctx: GenerationContext) -> PipelineResult:
        """Execute all steps in order, then mark progress complete."""
        result = PipelineResult()
        total = len(self._steps)

        for idx, step in enumerate(self._steps):
            sname = step.name
            if self._before:
                self._before(sname, idx, total)
            ctx.progress.update(step.stage, 0.0, f"{sname}…")

            t0 = time.perf_counter()
            step_result = step(ctx)
            dt = time.perf_counter() - t0

            result.elapsed[sname] = dt
            if step_result is not None:
                result.step_results[sname] = step_result
            logger.info(
                "pipeline step finished",
                step=sname,
                elapsed=round(dt, 4),
                **(step_result.artefacts if step_result else {}),
            )

            if self._after:
                self._after(sname, idx, total)

        if ctx.mesh is not None:
            result.mesh = ctx.mesh
        ctx.progress.update(GenerationStage.COMPLETE, 1.0, "generation complete")
        return result

    @property
    def step_names(self) -> List[str]:
        return [s.name for s in self._steps]

    def __len__(self) -> int:
        return len(self._steps)

    def __repr__(self) -> str:
        names = ", ".join(self.step_names)
        return f"TerrainPipeline([{names}])"


# ═══════════════════════════════════════════════════════════════════
# Built-in steps
# ═══════════════════════════════════════════════════════════════════


@dataclass
class SampleTerrainStep:
    """Classify a reduced-resolution cell disk centred on the origin."""

    @property
    def name(self) -> str:
        return "sample"

    @property
    def stage(self) -> GenerationStage:
        return GenerationStage.SAMPLING_TERRAIN

    def __call__(self, ctx: GenerationContext) -> Optional[StepResult]:
        settings = ctx.settings
        ctx.low_res_sampler = ctx.sampler.rescaled(settings.low_res_scale)
        coords = HexCoord.ZERO.range(settings.reduced_radius)
        ctx.cells = sample_cells(
            ctx.low_res_sampler,
            coords,
            executor=ctx.executor,
            parallel_threshold=settings.parallel_threshold,
            on_progress=ctx.progress.reporter(self.stage),
        )
        return StepResult(artefacts={"cells": len(ctx.cells)})


@dataclass
class ExtractContoursStep:
    """March the low-res field and stitch the segments into paths."""

    @property
    def name(self) -> str:
        return "contours"

    @property
    def stage(self) -> GenerationStage:
        return GenerationStage.GENERATING_CONTOURS

    def __call__(self, ctx: GenerationContext) -> Optional[StepResult]:
        if ctx.cells is None or ctx.low_res_sampler is None:
            raise RuntimeError("contour extraction needs sampled cells")
        segments = ctx.strategy.extract(ctx.cells, ctx.low_res_sampler)
        ctx.progress.update(self.stage, 0.5, f"assembling {len(segments)} segments")
        ctx.contours = assemble_segments(segments, ctx.sampler.config.connect_epsilon)
        closed = sum(1 for c in ctx.contours if c.is_closed)
        return StepResult(
            artefacts={
                "strategy": ctx.strategy.name,
                "segments": len(segments),
                "contours": len(ctx.contours),
                "closed": closed,
            }
        )


@dataclass
class UpscaleContoursStep:
    """Bring contours back to full resolution, optionally subdividing and smoothing."""

    @property
    def name(self) -> str:
        return "upscale"

    @property
    def stage(self) -> GenerationStage:
        return GenerationStage.SMOOTHING_CONTOURS

    def __call__(self, ctx: GenerationContext) -> Optional[StepResult]:
        settings = ctx.settings
        tension = ctx.sampler.config.spline_tension

        def upscale(contour: ContourPath) -> ContourPath:
            out = upscale_contour(
                contour,
                settings.low_res_scale,
                subdivide=settings.upscale_smoothing,
                subdivisions=settings.upscale_subdivisions,
            )
            if settings.upscale_smoothing:
                out = smooth_contour(out, tension, settings.smoothing_subdivisions)
            return out

        ctx.contours = parallel_map(
            upscale,
            ctx.contours,
            executor=ctx.executor,
            threshold=settings.parallel_threshold,
            on_progress=ctx.progress.reporter(self.stage),
            label="upscaling contour",
            report_every=10,
        )
        return StepResult(artefacts={"points": sum(len(c) for c in ctx.contours)})


@dataclass
class TriangulateStep:
    """Ear-clip every closed contour and merge the buffers."""

    @property
    def name(self) -> str:
        return "triangulate"

    @property
    def stage(self) -> GenerationStage:
        return GenerationStage.TRIANGULATING_MESH

    def __call__(self, ctx: GenerationContext) -> Optional[StepResult]:
        closed = [c for c in ctx.contours if c.is_closed and len(c) >= 3]
        meshes = parallel_map(
            triangulate_contour,
            closed,
            executor=ctx.executor,
            threshold=ctx.settings.parallel_threshold,
            on_progress=ctx.progress.reporter(self.stage),
            label="triangulating contour",
            report_every=10,
        )
        ctx.mesh = merge_mesh_data(meshes)
        return StepResult(
            artefacts={
                "vertices": ctx.mesh.vertex_count,
                "triangles": ctx.mesh.triangle_count,
            }
        )


def build_default_pipeline(**hooks: Hook) -> TerrainPipeline:
    return TerrainPipeline(
        [
            SampleTerrainStep(),
            ExtractContoursStep(),
            UpscaleContoursStep(),
            TriangulateStep(),
        ],
        **hooks,
    )


# ═══════════════════════════════════════════════════════════════════
# Entry points
# ═══════════════════════════════════════════════════════════════════


def generate_terrain(
    image: SourceImage,
    hex_config: Optional[HexConfig] = None,
    config: Optional[ContourConfig] = None,
    settings: Optional[TerrainSettings] = None,
    *,
    strategy: Optional[ContourStrategy] = None,
    progress: Optional[ProgressHandle] = None,
    pipeline: Optional[TerrainPipeline] = None,
) -> PipelineResult:
    """Run the whole-map pipeline on the calling thread.

    Per-cell sampling, upscaling and triangulation fan out over a
    worker pool of ``settings.max_workers`` threads once their item
    count exceeds ``settings.parallel_threshold``.
    """
    hex_config = hex_config or HexConfig()
    config = config or ContourConfig()
    settings = settings or TerrainSettings()
    progress = progress or ProgressHandle()
    pipeline = pipeline or build_default_pipeline()

    sampler = TerrainSampler(image, hex_config.layout, config)
    with ThreadPoolExecutor(
        max_workers=settings.max_workers, thread_name_prefix="hexterrain-worker"
    ) as pool:
        ctx = GenerationContext(
            sampler=sampler,
            settings=settings,
            strategy=strategy or MarchingSquaresStrategy(),
            progress=progress,
            executor=pool,
        )
        return pipeline.run(ctx)


def start_terrain_generation(
    source: Union[str, Path, SourceImage],
    hex_config: Optional[HexConfig] = None,
    config: Optional[ContourConfig] = None,
    settings: Optional[TerrainSettings] = None,
    *,
    strategy: Optional[ContourStrategy] = None,
) -> Tuple[GenerationTask[TerrainMeshData], ProgressHandle]:
    """Load the source image, then run the pipeline in the background.

    The image is decoded synchronously so a missing or corrupt file
    raises :class:`~sampler.SourceImageError` here rather than inside
    the task.  Returns the one-shot task and the shared progress handle.
    """
    progress = ProgressHandle()
    progress.update(GenerationStage.LOADING_IMAGE, 0.0, "loading image")
    image = source if isinstance(source, SourceImage) else load_source_image(source)
    progress.update(GenerationStage.LOADING_IMAGE, 1.0, "image loaded")

    def run() -> TerrainMeshData:
        result = generate_terrain(
            image, hex_config, config, settings, strategy=strategy, progress=progress
        )
        return result.mesh

    task = GenerationTask.spawn(run, name="terrain")
    return task, progress


def generate_chunk_mesh(
    chunk: ChunkId,
    sampler: TerrainSampler,
    *,
    strategy: Optional[ContourStrategy] = None,
    margin: int = 1,
) -> TerrainMeshData:
    """Run sampler → extractor → assembler/smoother → triangulator on one chunk.

    The arena is the chunk footprint plus *margin* rings so coastlines
    crossing the chunk edge are still picked up.
    """
    strategy = strategy or DualTriangleStrategy()
    cfg = sampler.config
    coords = chunk.to_center().range(chunk.size + margin)
    cells = sample_cells(sampler, coords)
    segments = strategy.extract(cells, sampler)
    contours = [
        smooth_contour(c, cfg.spline_tension, cfg.spline_subdivisions)
        for c in assemble_segments(segments, cfg.connect_epsilon)
    ]
    mesh = merge_mesh_data(triangulate_contour(c) for c in contours if c.is_closed)
    logger.debug(
        "chunk mesh generated",
        chunk=str(chunk),
        segments=len(segments),
        contours=len(contours),
        vertices=mesh.vertex_count,
    )
    return mesh
