r"""
mcresample.aggregate
====================

Summaries over the successful statistic values of a
:class:`~mcresample.core.ResultSet`.

:class:`ResultAggregator` turns a distribution of simulated statistics into
estimates: probabilities and their binomial confidence bounds, test size and
power, empirical quantiles, simulated critical values and bootstrap
percentile intervals. Results are returned as :class:`SummaryEstimate`
values, which never reference or mutate the result set.

Proportion intervals use exact (Clopper–Pearson) or Wilson score bounds
rather than the normal approximation, since probabilities here are estimated
from a finite number of trials and are often close to 0 or 1.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional, Sequence

import numpy as np

from .exceptions import AggregationError
from .stats_engine import Comparator, StatsContext, binomial_ci, ci_mean, compare, quantile

if TYPE_CHECKING:
    from .core import ResultSet

__all__ = ["SummaryEstimate", "ResultAggregator"]


@dataclass(frozen=True)
class SummaryEstimate:
    r"""
    Point estimate with a confidence interval.

    Attributes
    ----------
    estimate : float
        Point estimate (a proportion or a mean).
    low, high : float
        Interval bounds.
    confidence : float
        Confidence level of the interval.
    method : str
        How the interval was built (``"exact"``, ``"wilson"``, ``"z"``, ``"t"``).
    n : int
        Number of successful trials used.
    successes : int, optional
        Count behind a proportion estimate.
    quantiles : dict
        Optional ``{percentile: value}`` map.
    """

    estimate: float
    low: float
    high: float
    confidence: float
    method: str
    n: int
    successes: Optional[int] = None
    quantiles: dict[int, float] = field(default_factory=dict)

    @property
    def width(self) -> float:
        return self.high - self.low

    def contains(self, value: float) -> bool:
        """Whether ``value`` lies inside the closed interval ``[low, high]``."""
        return self.low <= value <= self.high


class ResultAggregator:
    r"""
    Side-effect-free view over the successful statistic values of a run.

    Parameters
    ----------
    result_set : ResultSet
        The run to summarize. Only successful trials contribute.
    field : str, optional
        For record statistics, the mapping key or attribute to summarize
        (e.g. ``"pvalue"``).

    Notes
    -----
    Values are extracted once at construction into a read-only array, so
    repeated calls return identical results.

    Examples
    --------
    >>> agg = ResultAggregator(result_set)  # doctest: +SKIP
    >>> agg.estimate_proportion(8, ">=").estimate  # doctest: +SKIP
    0.0552
    >>> agg.critical_value(0.95)  # doctest: +SKIP
    3.79
    """

    def __init__(self, result_set: "ResultSet", field: Optional[str] = None):
        values = result_set.values(field)
        values.setflags(write=False)
        self._values = values
        self.field = field
        self.n_failed = result_set.n_failed

    @property
    def values(self) -> np.ndarray:
        return self._values

    @property
    def n(self) -> int:
        return int(self._values.size)

    def _require_values(self) -> np.ndarray:
        if self._values.size == 0:
            raise AggregationError(
                f"no successful trials to summarize ({self.n_failed} failed)"
            )
        return self._values

    # --- proportions ---

    def count_exceeding(self, threshold: float, comparator: Comparator = ">=") -> int:
        """Number of successful trials whose value satisfies ``comparator`` against ``threshold``."""
        x = self._require_values()
        return int(np.count_nonzero(compare(x, threshold, comparator)))

    def proportion_exceeding(self, threshold: float, comparator: Comparator = ">=") -> float:
        r"""
        Fraction of successful trials satisfying ``comparator`` against ``threshold``.

        The basis for estimated probabilities, test size and power.
        """
        return self.count_exceeding(threshold, comparator) / self.n

    def estimate_proportion(
        self,
        threshold: float,
        comparator: Comparator = ">=",
        confidence: float = 0.95,
        method: str = "exact",
    ) -> SummaryEstimate:
        r"""
        :meth:`proportion_exceeding` with a binomial confidence interval.

        Returns
        -------
        SummaryEstimate
            ``estimate`` is the proportion, ``successes`` the count.
        """
        k = self.count_exceeding(threshold, comparator)
        n = self.n
        low, high = binomial_ci(k, n, confidence, method)
        return SummaryEstimate(
            estimate=k / n,
            low=low,
            high=high,
            confidence=confidence,
            method=getattr(method, "value", method),
            n=n,
            successes=k,
        )

    def rejection_rate(
        self,
        alpha: float = 0.05,
        confidence: float = 0.95,
        method: str = "exact",
    ) -> SummaryEstimate:
        r"""
        Proportion of p-values at or below ``alpha``.

        Under a true null hypothesis this estimates the size of the test
        (ideally ``alpha``); under a false one it estimates the power.
        """
        if not 0.0 < alpha < 1.0:
            raise ValueError("alpha must be in (0,1)")
        return self.estimate_proportion(alpha, "<=", confidence, method)

    @staticmethod
    def confidence_interval_for_proportion(
        successes: int,
        trials: int,
        confidence_level: float = 0.95,
        method: str = "exact",
    ) -> tuple[float, float]:
        """Binomial interval for ``successes`` out of ``trials``; see :func:`~mcresample.stats_engine.binomial_ci`."""
        return binomial_ci(successes, trials, confidence_level, method)

    # --- quantiles ---

    def quantile(self, p, method: str = "linear"):
        r"""
        Empirical ``p``-quantile(s) of the statistic distribution.

        Non-decreasing in ``p``; see :func:`~mcresample.stats_engine.quantile`.
        """
        return quantile(self._require_values(), p, method=method)

    def critical_value(self, level: float = 0.95, method: str = "linear") -> float:
        r"""
        Simulated critical value: the upper ``level`` quantile.

        Examples
        --------
        The 95th percentile of simulated studentized ranges approximates the
        tabulated :math:`q_{0.95}`:

        >>> ResultAggregator(rs).critical_value(0.95)  # doctest: +SKIP
        3.78
        """
        if not 0.0 < level < 1.0:
            raise ValueError("level must be in (0,1)")
        return float(self.quantile(level, method))

    def confidence_interval_for_quantile_range(self, p_low: float, p_high: float) -> tuple[float, float]:
        r"""
        Interval between two empirical quantiles.

        Applied to bootstrap replicates, ``(alpha/2, 1 - alpha/2)`` gives the
        bootstrap percentile confidence interval.

        Raises
        ------
        ValueError
            Unless ``0 <= p_low <= p_high <= 1``.
        """
        if not 0.0 <= p_low <= p_high <= 1.0:
            raise ValueError(f"need 0 <= p_low <= p_high <= 1, got p_low={p_low}, p_high={p_high}")
        low, high = self.quantile([p_low, p_high])
        return float(low), float(high)

    def percentile_interval(self, confidence: float = 0.95) -> tuple[float, float]:
        """Symmetric percentile interval at ``confidence``."""
        ctx = StatsContext(n=self.n, confidence=confidence)
        return self.confidence_interval_for_quantile_range(*ctx.q_bound())

    # --- means ---

    def mean_estimate(self, confidence: float = 0.95, ci_method: str = "auto") -> SummaryEstimate:
        r"""
        Mean of the statistic with a z/t interval (see :func:`~mcresample.stats_engine.ci_mean`).

        With a single successful trial the bounds are NaN.
        """
        x = self._require_values()
        ci = ci_mean(x, StatsContext(n=x.size, confidence=confidence, ci_method=ci_method))
        return SummaryEstimate(
            estimate=float(np.mean(x)),
            low=ci["low"],
            high=ci["high"],
            confidence=confidence,
            method=ci["method"],
            n=int(x.size),
        )

    def summarize(
        self,
        confidence: float = 0.95,
        percentiles: Sequence[int] = (5, 25, 50, 75, 95),
    ) -> SummaryEstimate:
        """:meth:`mean_estimate` plus the requested percentiles."""
        est = self.mean_estimate(confidence)
        ps = tuple(int(p) for p in percentiles)
        qs = self.quantile([p / 100.0 for p in ps]) if ps else []
        return SummaryEstimate(
            estimate=est.estimate,
            low=est.low,
            high=est.high,
            confidence=est.confidence,
            method=est.method,
            n=est.n,
            quantiles=dict(zip(ps, map(float, qs))),
        )
