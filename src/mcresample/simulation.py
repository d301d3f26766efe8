r"""
mcresample.simulation
=====================

The simulation driver: repeat the trial executor ``trial_count`` times and
collect the outcomes into a :class:`~mcresample.core.ResultSet`.

Execution backends
------------------

``"auto"`` runs small jobs sequentially. Larger jobs go to a thread pool
(NumPy generators release the GIL), or to a process pool on Windows.
Because every trial draws from its own sub-stream of the root
:class:`numpy.random.SeedSequence`, the backend choice, worker count and
block layout never change the result: the same configuration and seed give
the same :class:`~mcresample.core.ResultSet`, value for value.

Early termination
-----------------

Pass a :class:`threading.Event` as ``stop_event`` and set it from another
thread (or from ``progress_callback``). Trials already executed are returned
in a result set flagged ``partial=True``.
"""

from __future__ import annotations

import logging
import multiprocessing as mp
import threading
import time
from typing import Callable, Optional

import numpy as np

from .backends import ExecutionBackend, ProcessBackend, SequentialBackend, ThreadBackend, is_windows_platform
from .config import SimulationConfig
from .core import ResultSet
from .exceptions import InvalidConfigError

logger = logging.getLogger(__name__)

__all__ = ["SimulationDriver", "run_simulation"]


class SimulationDriver:
    r"""
    Runs a :class:`~mcresample.config.SimulationConfig`.

    Parameters
    ----------
    config : SimulationConfig
        Validated configuration.

    Notes
    -----
    Individual trial failures are tolerated and counted. The driver only
    raises for invalid run parameters (:class:`~mcresample.exceptions.InvalidConfigError`)
    or for exceptions the statistic raises outside
    ``config.failure_exceptions``.

    Examples
    --------
    >>> from mcresample.sims import coin_toss_config
    >>> rs = SimulationDriver(coin_toss_config(seed=42)).run(backend="sequential")  # doctest: +SKIP
    >>> rs.n_succeeded  # doctest: +SKIP
    1000
    """

    _PARALLEL_THRESHOLD = 10_000
    _VALID_BACKENDS = ("auto", "sequential", "thread", "process")

    def __init__(self, config: SimulationConfig):
        if not isinstance(config, SimulationConfig):
            raise InvalidConfigError(f"config must be a SimulationConfig, got {type(config).__name__}")
        self.config = config

    def _validate_run_params(self, trial_count, n_workers, backend) -> None:
        """Validate parameters for run() method."""
        if isinstance(trial_count, bool) or not isinstance(trial_count, (int, np.integer)):
            raise InvalidConfigError(f"trial_count must be an integer, got {trial_count!r}")
        if trial_count <= 0:
            raise InvalidConfigError("trial_count must be positive")
        if n_workers is not None and (
            isinstance(n_workers, bool) or not isinstance(n_workers, (int, np.integer)) or n_workers <= 0
        ):
            raise InvalidConfigError("n_workers must be a positive integer")
        if backend not in self._VALID_BACKENDS:
            raise InvalidConfigError(f"backend must be one of {self._VALID_BACKENDS}, got '{backend}'")

    def _resolve_backend(self, backend: str, trial_count: int, n_workers: Optional[int]) -> tuple[str, int]:
        """Map ``"auto"`` to a concrete backend and fill in the worker count."""
        if backend == "sequential":
            return "sequential", 1
        if n_workers is None:
            n_workers = mp.cpu_count()  # pragma: no cover
        if backend == "auto":
            if n_workers <= 1 or trial_count < self._PARALLEL_THRESHOLD:
                return "sequential", 1
            backend = "process" if is_windows_platform() else "thread"
        return backend, int(n_workers)

    @staticmethod
    def _create_backend(backend: str, n_workers: int) -> ExecutionBackend:
        if backend == "sequential":
            return SequentialBackend()
        if backend == "thread":
            return ThreadBackend(n_workers=n_workers)
        return ProcessBackend(n_workers=n_workers)

    def run(
        self,
        *,
        trial_count: Optional[int] = None,
        backend: str = "auto",
        n_workers: Optional[int] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
        stop_event: Optional[threading.Event] = None,
    ) -> ResultSet:
        r"""
        Execute the trials.

        Parameters
        ----------
        trial_count : int, optional
            Overrides ``config.trial_count`` for this run.
        backend : {"auto", "sequential", "thread", "process"}, default ``"auto"``
            Execution strategy.
        n_workers : int, optional
            Worker count for parallel backends. Defaults to the CPU count.
        progress_callback : callable, optional
            A function ``f(completed: int, total: int)`` called periodically.
        stop_event : threading.Event, optional
            Request early termination; the result is then flagged ``partial``.

        Returns
        -------
        ResultSet
            Trials ordered by index. ``metadata["seed_entropy"]`` repeats the
            run when passed back as the configuration seed.

        Raises
        ------
        InvalidConfigError
            If ``trial_count``, ``n_workers`` or ``backend`` is invalid.
        """
        if trial_count is None:
            trial_count = self.config.trial_count
        self._validate_run_params(trial_count, n_workers, backend)
        trial_count = int(trial_count)

        root = np.random.SeedSequence(self.config.seed)
        resolved, workers = self._resolve_backend(backend, trial_count, n_workers)
        if resolved == "sequential":
            logger.info("Running %d trials sequentially...", trial_count)
        else:
            logger.info("Running %d trials using %s backend with %d workers...", trial_count, resolved, workers)

        t0 = time.time()
        trials = self._create_backend(resolved, workers).run(
            self.config, trial_count, root, progress_callback, stop_event
        )
        exec_time = time.time() - t0

        result = ResultSet(
            trials=tuple(trials),
            trial_count=trial_count,
            execution_time=exec_time,
            partial=len(trials) < trial_count,
            metadata={
                "labels": self.config.labels,
                "seed": self.config.seed,
                "seed_entropy": root.entropy,
                "backend": resolved,
                "n_workers": workers,
                "timestamp": time.time(),
            },
        )
        if result.partial:
            logger.info("Run stopped early after %d of %d trials.", result.n_completed, trial_count)
        logger.info(
            "Completed %d trials in %.2f s: %d succeeded, %d failed.",
            result.n_completed, exec_time, result.n_succeeded, result.n_failed,
        )
        if result.n_completed and result.n_succeeded == 0:
            reason, _ = result.failure_reasons().most_common(1)[0]
            logger.warning("Every trial failed (most common reason: %s).", reason)
        return result


def run_simulation(config: SimulationConfig, **kwargs) -> ResultSet:
    r"""
    Run ``config`` and return its :class:`~mcresample.core.ResultSet`.

    Shortcut for ``SimulationDriver(config).run(**kwargs)``.
    """
    return SimulationDriver(config).run(**kwargs)
