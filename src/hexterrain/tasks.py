"""Background work — one-shot generation tasks and the bounded worker pool.

Two scheduling domains meet here.  The foreground tick loop never
blocks: it starts a :class:`GenerationTask`, polls
:meth:`GenerationTask.try_take_result` once per tick, and reads progress
through :meth:`~progress.ProgressHandle.try_snapshot`.  The background
side runs the pipeline on its own thread and may fan independent items
out over a :class:`~concurrent.futures.ThreadPoolExecutor` via
:func:`parallel_map`.

Cancellation is cooperative only.  :meth:`GenerationTask.detach` means
"nobody will ever collect this": the work still runs to completion and
its result is dropped.
"""

from __future__ import annotations

import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Callable, Generic, List, Optional, Sequence, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")

ProgressCallback = Callable[[float, str], None]


class GenerationTask(Generic[R]):
    """A polled, one-shot handle on work running in the background."""

    def __init__(self, future: "Future[R]", name: str = "generation") -> None:
        self._future = future
        self._name = name
        self._lock = threading.Lock()
        self._taken = False
        self._detached = False
        future.add_done_callback(self._on_done)

    @classmethod
    def spawn(cls, fn: Callable[..., R], *args, name: str = "generation", **kwargs) -> "GenerationTask[R]":
        """Run ``fn(*args, **kwargs)`` on a dedicated background thread."""
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"hexterrain-{name}")
        future = executor.submit(fn, *args, **kwargs)
        # Let the submitted call finish on its own; no further work is queued.
        executor.shutdown(wait=False)
        return cls(future, name=name)

    @property
    def name(self) -> str:
        return self._name

    def is_finished(self) -> bool:
        return self._future.done()

    @property
    def detached(self) -> bool:
        return self._detached

    def try_take_result(self) -> Optional[R]:
        """Return the result the first time it is available, else ``None``.

        Never blocks.  If the background work raised, the exception is
        re-raised here, once.  Later calls (and calls on a detached task)
        return ``None``.
        """
        if not self._future.done():
            return None
        with self._lock:
            if self._taken or self._detached:
                return None
            self._taken = True
        return self._future.result()

    def wait(self, timeout: Optional[float] = None) -> Optional[R]:
        """Block until finished, then behave like :meth:`try_take_result`.

        For scripts and tests; the tick loop must use the polling form.
        """
        self._future.exception(timeout=timeout)
        return self.try_take_result()

    def detach(self) -> None:
        """Declare that nobody will collect the result."""
        with self._lock:
            self._detached = True

    def _on_done(self, future: "Future[R]") -> None:
        if self._detached:
            exc = future.exception()
            logger.debug(
                "detached task finished, result discarded",
                task=self._name,
                failed=exc is not None,
            )


def parallel_map(
    fn: Callable[[T], R],
    items: Sequence[T],
    *,
    executor: Optional[Executor] = None,
    threshold: int = 0,
    on_progress: Optional[ProgressCallback] = None,
    label: str = "item",
    report_every: int = 100,
) -> List[R]:
    """Map *fn* over *items*, preserving order.

    Uses *executor* only when one is supplied and ``len(items)`` exceeds
    *threshold*; otherwise maps serially on the calling thread.
    *on_progress* receives ``(fraction, message)`` every *report_every*
    items.
    """
    total = len(items)
    results: List[R] = []
    use_pool = executor is not None and total > threshold

    if use_pool:
        outputs = executor.map(fn, items)
    else:
        outputs = map(fn, items)

    for i, value in enumerate(outputs):
        if on_progress is not None and i % report_every == 0:
            on_progress(i / total, f"{label} {i}/{total}")
        results.append(value)
    return results
