r"""
Simulated distribution of the studentized range.

For :math:`k` groups of :math:`n` standard normal values, the statistic

.. math::
   Q = \frac{\max_i \bar X_i - \min_i \bar X_i}{\sqrt{\mathrm{MSE}/n}},
   \qquad \mathrm{MSE} = \frac{\sum_i \sum_j (X_{ij} - \bar X_i)^2}{k(n-1)},

follows the studentized range distribution with :math:`k` groups and
:math:`k(n-1)` error degrees of freedom. Its simulated 95% quantile
(:meth:`~mcresample.aggregate.ResultAggregator.critical_value`) reproduces the
tabulated Tukey HSD critical value,
:func:`~mcresample.utils.studentized_range_crit`.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from ..config import SimulationConfig
from ..exceptions import InvalidConfigError, StatisticError
from ..groups import GroupSpec

__all__ = ["tukey_range_config", "studentized_range"]


def studentized_range(*groups: np.ndarray) -> float:
    r"""
    Range of the group means over the pooled standard error of one mean.

    Unequal group sizes use the harmonic mean size.

    Raises
    ------
    StatisticError
        With fewer than two groups, no error degrees of freedom or a zero
        pooled variance.
    """
    if len(groups) < 2:
        raise StatisticError("need at least two groups")
    sizes = np.array([g.size for g in groups], dtype=float)
    df = float(np.sum(sizes - 1))
    if np.any(sizes < 1) or df <= 0:
        raise StatisticError("no error degrees of freedom")
    means = np.array([np.mean(g) for g in groups])
    sse = sum(float(np.sum((g - m) ** 2)) for g, m in zip(groups, means))
    mse = sse / df
    if mse == 0:
        raise StatisticError("zero pooled variance")
    n_h = len(groups) / float(np.sum(1.0 / sizes))
    return float((means.max() - means.min()) / np.sqrt(mse / n_h))


def tukey_range_config(
    k: int = 3,
    n: int = 5,
    trial_count: int = 2000,
    seed: Optional[int] = None,
) -> SimulationConfig:
    r"""
    :func:`studentized_range` over ``k`` standard normal groups of size ``n``.

    Examples
    --------
    >>> rs = run_simulation(tukey_range_config(3, 5, trial_count=20_000, seed=0))  # doctest: +SKIP
    >>> rs.aggregate().critical_value(0.95)  # doctest: +SKIP
    3.77
    """
    if isinstance(k, bool) or not isinstance(k, (int, np.integer)) or k < 2:
        raise InvalidConfigError("k must be an integer >= 2")
    if isinstance(n, bool) or not isinstance(n, (int, np.integer)) or n < 2:
        raise InvalidConfigError("n must be an integer >= 2")
    return SimulationConfig(
        groups=[GroupSpec(f"g{i + 1}", n, "normal", {"mean": 0.0, "sd": 1.0}) for i in range(k)],
        trial_count=trial_count,
        statistic=studentized_range,
        seed=seed,
        pass_as="positional",
    )
