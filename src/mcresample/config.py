r"""
Simulation configuration.

:class:`SimulationConfig` bundles the groups to sample, the statistic to apply
and the number of trials. It is validated **once**, at construction, so the
per-trial path never re-checks parameters.

Example
-------
>>> import numpy as np
>>> from mcresample.groups import GroupSpec
>>> cfg = SimulationConfig(
...     groups=[GroupSpec("coin", 10, "bernoulli", {"p": 0.5})],
...     trial_count=1000,
...     statistic=lambda s: float(s["coin"].sum()),
...     seed=42,
... )
>>> cfg.labels
('coin',)
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Optional, Sequence

import numpy as np

from .distributions import DistributionRegistry
from .exceptions import InvalidConfigError, StatisticError
from .groups import GroupSampler, GroupSpec

__all__ = ["SimulationConfig", "DEFAULT_FAILURE_EXCEPTIONS", "PASS_MODES"]

# Exceptions that mark a statistic as undefined for one simulated sample.
DEFAULT_FAILURE_EXCEPTIONS: tuple[type[BaseException], ...] = (
    StatisticError,
    ArithmeticError,
    ValueError,
    np.linalg.LinAlgError,
)

PASS_MODES = ("mapping", "positional", "flat")


@dataclass(frozen=True, eq=False)
class SimulationConfig:
    r"""
    Immutable description of one simulation run.

    Attributes
    ----------
    groups : sequence of GroupSpec
        Groups sampled in every trial, in declaration order.
    trial_count : int
        Number of trials to run. Must be positive.
    statistic : callable
        Function applied to each trial's samples. How samples are passed is
        controlled by :attr:`pass_as`. May return a scalar or a record (a
        mapping, tuple or result object).
    seed : int, optional
        Root seed. ``None`` draws entropy from the OS; the entropy used is
        reported in the result metadata so the run can be repeated.
    pass_as : {"mapping", "positional", "flat"}, default ``"mapping"``
        ``"mapping"`` calls ``statistic({label: sample, ...})``;
        ``"positional"`` calls ``statistic(sample_1, sample_2, ...)`` in
        declaration order (fits ``scipy.stats`` tests); ``"flat"`` calls
        ``statistic(np.concatenate(samples))``.
    keep_samples : bool, default ``True``
        Keep each trial's raw samples on the :class:`~mcresample.trial.Trial`.
        Disable for very large runs.
    nan_is_failure : bool, default ``True``
        Record a non-finite scalar statistic as a failed trial.
    failure_exceptions : tuple of exception types
        Exceptions raised by the statistic that mark a trial as failed
        instead of aborting the run. Anything else propagates.
    registry : DistributionRegistry, optional
        Registry used to resolve distribution ids. Not kept after validation.

    Raises
    ------
    InvalidConfigError
        If ``trial_count`` is not positive, ``statistic`` is not callable, or an
        option is invalid.
    ConfigurationError
        Any group validation error raised by
        :class:`~mcresample.groups.GroupSampler`.

    Notes
    -----
    The statistic must be a real callable. Source text is rejected: statistic
    logic is never evaluated from strings.
    """

    groups: Sequence[GroupSpec]
    trial_count: int
    statistic: Callable[..., Any]
    seed: Optional[int] = None
    pass_as: str = "mapping"
    keep_samples: bool = True
    nan_is_failure: bool = True
    failure_exceptions: tuple[type[BaseException], ...] = DEFAULT_FAILURE_EXCEPTIONS
    registry: Optional[DistributionRegistry] = field(default=None, repr=False, compare=False)
    sampler: GroupSampler = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if isinstance(self.trial_count, bool) or not isinstance(self.trial_count, (int, np.integer)):
            raise InvalidConfigError(f"trial_count must be an integer, got {self.trial_count!r}")
        if self.trial_count <= 0:
            raise InvalidConfigError(f"trial_count must be positive, got {self.trial_count}")
        if isinstance(self.statistic, str):
            raise InvalidConfigError("statistic must be a callable, not source text")
        if not callable(self.statistic):
            raise InvalidConfigError(f"statistic must be callable, got {type(self.statistic).__name__}")
        if self.seed is not None and (isinstance(self.seed, bool) or not isinstance(self.seed, (int, np.integer))):
            raise InvalidConfigError(f"seed must be an integer or None, got {self.seed!r}")
        if self.seed is not None and self.seed < 0:
            raise InvalidConfigError("seed must be non-negative")
        if self.pass_as not in PASS_MODES:
            raise InvalidConfigError(f"pass_as must be one of {PASS_MODES}, got '{self.pass_as}'")
        failure_exceptions = tuple(self.failure_exceptions)
        if not all(isinstance(e, type) and issubclass(e, BaseException) for e in failure_exceptions):
            raise InvalidConfigError("failure_exceptions must contain exception types")

        sampler = GroupSampler(self.groups, self.registry)
        object.__setattr__(self, "trial_count", int(self.trial_count))
        object.__setattr__(self, "groups", sampler.groups)
        object.__setattr__(self, "failure_exceptions", failure_exceptions)
        object.__setattr__(self, "sampler", sampler)
        # resolved specs live in the sampler; drop the registry so configs pickle lean
        object.__setattr__(self, "registry", None)

    @property
    def labels(self) -> tuple[str, ...]:
        return self.sampler.labels

    def with_overrides(self, **changes: Any) -> "SimulationConfig":
        r"""
        Return a validated copy with selected fields replaced.

        Examples
        --------
        >>> cfg2 = cfg.with_overrides(trial_count=10_000, seed=7)  # doctest: +SKIP
        """
        return replace(self, **changes)
