"""Generation progress shared between the pipeline thread and the tick loop."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class GenerationStage(Enum):
    IDLE = "idle"
    LOADING_IMAGE = "loading-image"
    SAMPLING_TERRAIN = "sampling-terrain"
    GENERATING_CONTOURS = "generating-contours"
    SMOOTHING_CONTOURS = "smoothing-contours"
    TRIANGULATING_MESH = "triangulating-mesh"
    COMPLETE = "complete"


@dataclass(frozen=True)
class GenerationProgress:
    stage: GenerationStage = GenerationStage.IDLE
    fraction: float = 0.0
    message: str = ""


class ProgressHandle:
    """Lock-guarded :class:`GenerationProgress` record.

    Writers hold the lock only to swap in a new immutable snapshot.
    The foreground reads with :meth:`try_snapshot`, which never waits.
    """

    def __init__(self, initial: Optional[GenerationProgress] = None) -> None:
        self._lock = threading.Lock()
        self._current = initial or GenerationProgress()

    def update(self, stage: GenerationStage, fraction: float, message: str) -> None:
        snapshot = GenerationProgress(stage, max(0.0, min(1.0, float(fraction))), message)
        with self._lock:
            self._current = snapshot

    def snapshot(self) -> GenerationProgress:
        with self._lock:
            return self._current

    def try_snapshot(self) -> Optional[GenerationProgress]:
        """Latest snapshot, or ``None`` if a writer holds the lock right now."""
        if not self._lock.acquire(blocking=False):
            return None
        try:
            return self._current
        finally:
            self._lock.release()

    def reporter(self, stage: GenerationStage):
        """Return a ``(fraction, message)`` callback bound to *stage*."""

        def report(fraction: float, message: str) -> None:
            self.update(stage, fraction, message)

        return report


def format_progress(progress: GenerationProgress) -> str:
    """One-line human-readable rendering of a snapshot."""
    if progress.stage is GenerationStage.COMPLETE:
        status = "done"
    else:
        status = f"{progress.fraction * 100.0:.1f}%"
    label = progress.stage.value
    if progress.message:
        return f"[{label}] {progress.message} ({status})"
    return f"[{label}] ({status})"
