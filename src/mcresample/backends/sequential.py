r"""
Sequential execution backend.

This module provides a single-threaded execution strategy that runs
trials one after another with optional progress reporting.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Callable

import numpy as np

from ..trial import Trial, execute_trial
from .base import trial_rng

if TYPE_CHECKING:
    from ..config import SimulationConfig

__all__ = ["SequentialBackend"]


class SequentialBackend:
    r"""
    Sequential (single-threaded) execution backend.

    Executes trials one at a time on the calling thread.
    Suitable for small runs or debugging.

    Examples
    --------
    >>> backend = SequentialBackend()
    >>> trials = backend.run(config, 1000, np.random.SeedSequence(1), None)  # doctest: +SKIP
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
        Run trials sequentially on a single thread.

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
            Checked before every trial.

        Returns
        -------
        list[Trial]
            Executed trials in index order.
        """
        trials: list[Trial] = []
        # Report progress every 1% of trials
        step = max(1, trial_count // 100)

        for i in range(trial_count):
            if stop_event is not None and stop_event.is_set():
                break
            trials.append(execute_trial(config, i, trial_rng(root, i)))
            if progress_callback and (((i + 1) % step == 0) or (i + 1 == trial_count)):
                progress_callback(i + 1, trial_count)

        return trials
