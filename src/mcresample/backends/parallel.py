r"""
Parallel execution backends.

This module provides:

Classes
    :class:`ThreadBackend` — Thread-based parallelism using ThreadPoolExecutor
    :class:`ProcessBackend` — Process-based parallelism using ProcessPoolExecutor

Both split the trial range into blocks and give every trial its own random
stream (:func:`~mcresample.backends.base.trial_rng`), so results match the
sequential backend exactly.
"""

from __future__ import annotations

import logging
import multiprocessing as mp
import threading
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from typing import TYPE_CHECKING, Callable

import numpy as np

from ..trial import Trial
from .base import make_blocks, worker_run_chunk

if TYPE_CHECKING:
    from ..config import SimulationConfig

logger = logging.getLogger(__name__)

__all__ = [
    "ThreadBackend",
    "ProcessBackend",
]

# Default configuration constants
_CHUNKS_PER_WORKER = 8  # Number of chunks per worker for load balancing


class _BlockedBackend:
    """Shared block layout for the pool-based backends."""

    def __init__(self, n_workers: int, chunks_per_worker: int = _CHUNKS_PER_WORKER):
        if n_workers <= 0:
            raise ValueError("n_workers must be positive")
        if chunks_per_worker <= 0:
            raise ValueError("chunks_per_worker must be positive")
        self.n_workers = n_workers
        self.chunks_per_worker = chunks_per_worker

    def _prepare_blocks(self, trial_count: int) -> list[tuple[int, int]]:
        """Split ``[0, trial_count)`` into load-balancing blocks."""
        block_size = max(1, trial_count // (self.n_workers * self.chunks_per_worker))
        return make_blocks(trial_count, block_size)


class ThreadBackend(_BlockedBackend):
    r"""
    Thread-based parallel execution backend.

    Uses :class:`concurrent.futures.ThreadPoolExecutor` for parallel execution.
    Effective when sampling and the statistic release the GIL (NumPy/SciPy
    numerical work).

    Parameters
    ----------
    n_workers : int
        Number of worker threads to use.
    chunks_per_worker : int, default 8
        Number of work chunks per worker for load balancing.

    Examples
    --------
    >>> backend = ThreadBackend(n_workers=4)
    >>> trials = backend.run(config, 100_000, root, progress_callback=None)  # doctest: +SKIP
    """

    def run(
        self,
        config: "SimulationConfig",
        trial_count: int,
        root: np.random.SeedSequence,
        progress_callback: Callable[[int, int], None] | None,
        stop_event: threading.Event | None = None,
    ) -> list[Trial]:
        r"""
        Run trials in parallel using threads.

        Parameters
        ----------
        config : SimulationConfig
            The configuration to run.
        trial_count : int
            Number of trials to execute.
        root : SeedSequence
            Root seed sequence for per-trial random streams.
        progress_callback : callable or None
            Optional callback ``f(completed, total)`` called after each block.
        stop_event : threading.Event or None
            Checked by every worker before each trial.

        Returns
        -------
        list[Trial]
            Executed trials in index order.
        """
        blocks = self._prepare_blocks(trial_count)
        chunks: dict[int, list[Trial]] = {}
        completed = 0
        max_workers = min(self.n_workers, len(blocks))

        with ThreadPoolExecutor(max_workers=max_workers) as ex:
            futs = {
                ex.submit(worker_run_chunk, config, root, i, j, stop_event): i for i, j in blocks
            }
            for f in as_completed(futs):
                chunk = f.result()
                chunks[futs[f]] = chunk
                completed += len(chunk)
                if progress_callback:
                    progress_callback(completed, trial_count)

        return [t for start in sorted(chunks) for t in chunks[start]]


class ProcessBackend(_BlockedBackend):
    r"""
    Process-based parallel execution backend.

    Uses :class:`concurrent.futures.ProcessPoolExecutor` with spawn context
    for parallel execution. Use it for Python-bound statistics that hold the
    GIL, and on Windows.

    Parameters
    ----------
    n_workers : int
        Number of worker processes to use.
    chunks_per_worker : int, default 8
        Number of work chunks per worker for load balancing.

    Notes
    -----
    The configuration must be pickleable: its statistic and every
    distribution generator must be module-level functions. A
    ``threading.Event`` cannot cross process boundaries, so ``stop_event`` is
    checked between completed blocks and pending blocks are cancelled.

    Examples
    --------
    >>> backend = ProcessBackend(n_workers=4)
    >>> trials = backend.run(config, 100_000, root, progress_callback=None)  # doctest: +SKIP
    """

    def run(
        self,
        config: "SimulationConfig",
        trial_count: int,
        root: np.random.SeedSequence,
        progress_callback: Callable[[int, int], None] | None,
        stop_event: threading.Event | None = None,
    ) -> list[Trial]:
        r"""
        Run trials in parallel using processes.

        Parameters
        ----------
        config : SimulationConfig
            The configuration to run. Must be pickleable.
        trial_count : int
            Number of trials to execute.
        root : SeedSequence
            Root seed sequence for per-trial random streams.
        progress_callback : callable or None
            Optional callback ``f(completed, total)`` called after each block.
        stop_event : threading.Event or None
            Checked after each completed block.

        Returns
        -------
        list[Trial]
            Executed trials in index order.
        """
        if stop_event is not None and stop_event.is_set():
            return []
        blocks = self._prepare_blocks(trial_count)
        chunks: dict[int, list[Trial]] = {}
        completed = 0
        max_workers = min(self.n_workers, len(blocks))

        with ProcessPoolExecutor(
            max_workers=max_workers,
            mp_context=mp.get_context("spawn"),
        ) as ex:
            futs = {ex.submit(worker_run_chunk, config, root, i, j): i for i, j in blocks}
            try:
                for f in as_completed(futs):
                    if f.cancelled():
                        continue
                    chunk = f.result()
                    chunks[futs[f]] = chunk
                    completed += len(chunk)
                    if progress_callback:
                        progress_callback(completed, trial_count)
                    if stop_event is not None and stop_event.is_set():
                        n_cancelled = sum(pending.cancel() for pending in futs)
                        logger.info("Stop requested; cancelled %d pending blocks.", n_cancelled)
                        break
            except KeyboardInterrupt:  # pragma: no cover
                for f in futs:
                    f.cancel()
                raise

        return [t for start in sorted(chunks) for t in chunks[start]]
