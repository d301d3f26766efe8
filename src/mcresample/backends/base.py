r"""
Base classes and utilities for execution backends.

This module provides:

Protocol
    :class:`ExecutionBackend` — Interface for trial execution strategies

Functions
    :func:`make_blocks` — Chunking helper for parallel work distribution
    :func:`trial_seed_sequence` — Independent seed sequence for one trial index
    :func:`trial_rng` — Generator built on that sequence
    :func:`worker_run_chunk` — Top-level worker for process-based parallelism

Helpers
    :func:`is_windows_platform` — Platform detection for backend selection

Random streams
--------------
Streams are partitioned **per trial**, not per worker or per block: trial
``i`` always draws from the ``i``-th spawned child of the root
:class:`numpy.random.SeedSequence`. A run therefore produces the same trials
whichever backend, worker count or block layout executes it.
"""

from __future__ import annotations

import sys
import threading
from typing import TYPE_CHECKING, Callable, Protocol

import numpy as np

from ..trial import Trial, execute_trial

if TYPE_CHECKING:
    from ..config import SimulationConfig

__all__ = [
    "ExecutionBackend",
    "make_blocks",
    "trial_seed_sequence",
    "trial_rng",
    "worker_run_chunk",
    "is_windows_platform",
]


def is_windows_platform() -> bool:
    """Return True when running on a Windows platform."""
    return sys.platform.startswith("win") or (sys.platform == "cli")


def make_blocks(n: int, block_size: int = 10_000) -> list[tuple[int, int]]:
    r"""
    Partition an integer range :math:`[0, n)` into half-open blocks :math:`(i, j)`.

    Parameters
    ----------
    n : int
        Total number of items.
    block_size : int, default: 10_000
        Target block length.

    Returns
    -------
    list of tuple[int, int]
        List of ``(i, j)`` index pairs covering ``[0, n)``.

    Examples
    --------
    >>> make_blocks(5, block_size=2)
    [(0, 2), (2, 4), (4, 5)]
    """
    if block_size <= 0:
        raise ValueError("block_size must be positive")
    return [(i, min(i + block_size, n)) for i in range(0, n, block_size)]


def trial_seed_sequence(root: np.random.SeedSequence, index: int) -> np.random.SeedSequence:
    r"""
    Seed sequence of trial ``index``.

    Identical to ``root.spawn(index + 1)[index]`` on a fresh ``root``, but
    computed directly and without advancing ``root``'s spawn counter, so any
    worker can derive any trial's stream independently.

    Examples
    --------
    >>> root = np.random.SeedSequence(42)
    >>> trial_seed_sequence(root, 3).spawn_key
    (3,)
    """
    return np.random.SeedSequence(
        root.entropy,
        spawn_key=tuple(root.spawn_key) + (int(index),),
        pool_size=root.pool_size,
    )


def trial_rng(root: np.random.SeedSequence, index: int) -> np.random.Generator:
    """:class:`numpy.random.Philox` generator for trial ``index``."""
    return np.random.Generator(np.random.Philox(trial_seed_sequence(root, index)))


def worker_run_chunk(
    config: "SimulationConfig",
    root: np.random.SeedSequence,
    start: int,
    stop: int,
    stop_event: threading.Event | None = None,
) -> list[Trial]:
    r"""
    Execute trials ``[start, stop)`` in a **separate worker**.

    Parameters
    ----------
    config : SimulationConfig
        Configuration to execute. Must be pickleable when used with a process
        backend (module-level statistic and generators).
    root : :class:`numpy.random.SeedSequence`
        Root sequence of the run; each trial derives its own stream from it.
    start, stop : int
        Half-open range of trial indices.
    stop_event : threading.Event, optional
        Checked before each trial; when set, the chunk returns the trials
        completed so far.

    Returns
    -------
    list[Trial]
        Executed trials, in index order.
    """
    out: list[Trial] = []
    for index in range(start, stop):
        if stop_event is not None and stop_event.is_set():
            break
        out.append(execute_trial(config, index, trial_rng(root, index)))
    return out


class ExecutionBackend(Protocol):
    r"""
    Protocol defining the interface for execution backends.

    Backends are responsible for executing trials and returning their
    records. They handle the details of sequential vs parallel execution,
    thread vs process pools, progress reporting and early termination.
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
        Execute trials and return their records.

        Parameters
        ----------
        config : SimulationConfig
            The configuration to run.
        trial_count : int
            Number of trials to execute.
        root : SeedSequence
            Root seed sequence for per-trial random streams.
        progress_callback : callable or None
            Optional callback ``f(completed, total)`` for progress reporting.
        stop_event : threading.Event or None
            When set, stop scheduling new trials and return what completed.

        Returns
        -------
        list[Trial]
            Executed trials. Fewer than ``trial_count`` only after early
            termination.
        """
