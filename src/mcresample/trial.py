r"""
Trial records and the trial executor.

A :class:`Trial` is one independent realization of the simulated process:
per-group samples plus the statistic computed on them, or a
:class:`TrialFailure` when the statistic is undefined for those samples.

:func:`execute_trial` always returns a :class:`Trial`. Domain errors raised by
the statistic (see
:attr:`~mcresample.config.SimulationConfig.failure_exceptions`) are recorded,
not propagated, so one degenerate sample never aborts a batch.
"""

from __future__ import annotations

import logging
import numbers
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

import numpy as np

from .config import SimulationConfig

logger = logging.getLogger(__name__)

__all__ = ["TrialFailure", "Trial", "execute_trial", "statistic_input"]


@dataclass(frozen=True)
class TrialFailure:
    r"""
    Why a trial produced no statistic value.

    Attributes
    ----------
    reason : str
        Human-readable message, e.g. ``"StatisticError: zero variance"``.
    error_type : str
        Exception class name, or ``"NonFiniteStatistic"``.
    """

    reason: str
    error_type: str

    @classmethod
    def from_exception(cls, exc: BaseException) -> "TrialFailure":
        name = type(exc).__name__
        msg = str(exc)
        return cls(reason=f"{name}: {msg}" if msg else name, error_type=name)


@dataclass(frozen=True, eq=False)
class Trial:
    r"""
    Outcome of one trial.

    Attributes
    ----------
    index : int
        Position of the trial in the run (``0 .. trial_count - 1``).
    samples : mapping of str to ndarray
        Read-only per-group samples (empty when the configuration sets
        ``keep_samples=False``).
    value : Any
        Statistic value; ``None`` for failed trials.
    failure : TrialFailure or None
        Failure record; ``None`` for successful trials.

    Notes
    -----
    Writable sample arrays are copied and the copies made read-only, so the
    caller's arrays are left untouched.
    """

    index: int
    samples: Mapping[str, np.ndarray] = field(default_factory=dict)
    value: Any = None
    failure: Optional[TrialFailure] = None

    def __post_init__(self) -> None:
        frozen = {}
        for label, arr in self.samples.items():
            if isinstance(arr, np.ndarray) and arr.flags.writeable:
                arr = arr.copy()
                arr.setflags(write=False)
            frozen[label] = arr
        object.__setattr__(self, "samples", frozen)

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def failed(self) -> bool:
        return self.failure is not None


def statistic_input(samples: dict[str, np.ndarray], pass_as: str) -> tuple[Any, ...]:
    """Positional arguments for the statistic under the given ``pass_as`` mode."""
    if pass_as == "mapping":
        return (samples,)
    if pass_as == "positional":
        return tuple(samples.values())
    return (np.concatenate(list(samples.values())),)


def _is_non_finite(value: Any) -> bool:
    if isinstance(value, (bool, np.bool_)):
        return False
    if isinstance(value, numbers.Real):
        return not np.isfinite(float(value))
    if isinstance(value, np.ndarray) and value.ndim == 0 and np.issubdtype(value.dtype, np.number):
        return not np.isfinite(value.item())
    return False


def execute_trial(config: SimulationConfig, index: int, rng: np.random.Generator) -> Trial:
    r"""
    Run one trial: sample every group, then apply the statistic.

    Parameters
    ----------
    config : SimulationConfig
        Validated configuration.
    index : int
        Trial index recorded on the result.
    rng : numpy.random.Generator
        The trial's own random stream.

    Returns
    -------
    Trial
        A successful trial carrying the statistic value, or a failed trial
        carrying a :class:`TrialFailure`.

    Raises
    ------
    Exception
        Anything the statistic raises that is not listed in
        ``config.failure_exceptions``, and sampling contract violations
        (:class:`~mcresample.exceptions.SampleSizeError`).
    """
    samples = config.sampler.sample(rng)
    kept = {}
    if config.keep_samples:
        # snapshot before the statistic can modify its input in place
        for label, arr in samples.items():
            kept[label] = arr.copy()
            kept[label].setflags(write=False)
    try:
        value = config.statistic(*statistic_input(samples, config.pass_as))
    except config.failure_exceptions as e:
        failure = TrialFailure.from_exception(e)
        logger.debug("Trial %d failed: %s", index, failure.reason)
        return Trial(index=index, samples=kept, failure=failure)

    if config.nan_is_failure and _is_non_finite(value):
        logger.debug("Trial %d failed: non-finite statistic %r", index, value)
        return Trial(
            index=index,
            samples=kept,
            failure=TrialFailure(reason="non-finite statistic", error_type="NonFiniteStatistic"),
        )
    return Trial(index=index, samples=kept, value=value)
