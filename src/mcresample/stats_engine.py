r"""
mcresample.stats_engine
=======================
Statistical metrics over simulated statistic values.

This module defines:

- :class:`StatsContext`: settings read by every metric (confidence, NaN policy, threshold, ...).
- :class:`FnMetric`: binds a name to a plain ``fn(x, ctx)`` function.
- :class:`StatsEngine`: runs a selection of metrics and collects their results by name.

Built-in metrics are :func:`mean`, :func:`std`, :func:`percentiles`,
:func:`skew`, :func:`kurtosis`, the mean intervals :func:`ci_mean` and
:func:`ci_mean_bootstrap`, and the proportion metrics :func:`proportion`
and :func:`ci_proportion` used for probabilities, test size and power.

The building blocks :func:`compare`, :func:`quantile` and :func:`binomial_ci`
are plain functions and are reused by
:class:`~mcresample.aggregate.ResultAggregator`.

See Also
--------
mcresample.utils.autocrit
    z/t critical value used by the parametric mean interval.
"""

from __future__ import annotations

import logging
import operator
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Generic, Iterable, Optional, Protocol, Sequence, TypeVar, Union

import numpy as np
from scipy.special import erfinv
from scipy.stats import beta as beta_dist
from scipy.stats import kurtosis as sp_kurtosis
from scipy.stats import norm
from scipy.stats import skew as sp_skew

from .exceptions import AggregationError
from .utils import autocrit, z_crit

logger = logging.getLogger(__name__)


_PCTS = (5, 25, 50, 75, 95)  # default percentiles
_BOOTSTRAP_BATCH = 2_000_000

COMPARATORS: dict[str, Callable[[Any, Any], Any]] = {
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
    "==": operator.eq,
    "!=": operator.ne,
}

Comparator = Union[str, Callable[[np.ndarray, float], np.ndarray]]


class NanPolicy(str, Enum):
    r"""
    What metrics do with NaN and infinite values.

    Attributes
    ----------
    propagate : str
        Keep them; most metrics then return NaN.
    omit : str
        Remove them first.
    """

    propagate = "propagate"
    omit = "omit"


class CIMethod(str, Enum):
    r"""
    Critical value used by :func:`ci_mean`.

    Attributes
    ----------
    auto : str
        Student-t below 30 values, normal otherwise.
    z : str
        Normal quantile.
    t : str
        Student-t quantile with ``n - 1`` degrees of freedom.
    """

    auto = "auto"
    z = "z"
    t = "t"


class BootstrapMethod(str, Enum):
    r"""
    Bootstrap interval used by :func:`ci_mean_bootstrap`.

    Attributes
    ----------
    percentile : str
        Quantiles of the resampled means.
    bca : str
        Bias-corrected and accelerated quantiles.
    """

    percentile = "percentile"
    bca = "bca"


class ProportionMethod(str, Enum):
    r"""
    Binomial confidence-interval methods.

    Attributes
    ----------
    exact : str
        Clopper–Pearson interval from beta quantiles. Guaranteed coverage,
        exact for small counts.
    wilson : str
        Wilson score interval.
    """

    exact = "exact"
    wilson = "wilson"


@dataclass(slots=True)
class StatsContext:
    r"""
    Settings shared by the metrics of one :meth:`StatsEngine.compute` call.

    Attributes
    ----------
    n : int
        Number of values summarized.
    confidence : float, default 0.95
        Confidence level in :math:`(0, 1)`.
    ci_method : {"auto", "z", "t"}, default "auto"
        Strategy for :func:`ci_mean`.
    percentiles : tuple of int, default ``(5, 25, 50, 75, 95)``
        Percentiles reported by :func:`percentiles`.
    nan_policy : {"propagate", "omit"}, default "propagate"
        ``"omit"`` removes non-finite values before every metric.
    ddof : int, default 1
        Delta degrees of freedom of :func:`std`.
    rng : int or numpy.random.Generator, optional
        Seed or Generator for the bootstrap resamples.
    n_bootstrap : int, default 10000
        Resamples drawn by :func:`ci_mean_bootstrap`.
    bootstrap : {"percentile", "bca"}, default "percentile"
        Interval flavor of :func:`ci_mean_bootstrap`.
    threshold : float, optional
        Decision threshold for :func:`proportion` and :func:`ci_proportion`
        (e.g. a significance level applied to p-values).
    comparator : str or callable, default ``">="``
        How values are compared against :attr:`threshold`.
    proportion_method : {"exact", "wilson"}, default "exact"
        Binomial interval used by :func:`ci_proportion`.
    quantile_method : str, default ``"linear"``
        Interpolation passed to :func:`numpy.quantile`.

    Notes
    -----
    Treat a context as read-only; :meth:`with_overrides` returns an adjusted
    copy.

    Examples
    --------
    >>> ctx = StatsContext(n=5000, confidence=0.95, threshold=0.05, comparator="<=")
    >>> round(ctx.alpha, 2)
    0.05
    """

    n: int
    confidence: float = 0.95
    ci_method: CIMethod = "auto"
    percentiles: tuple[int, ...] = _PCTS
    nan_policy: NanPolicy = "propagate"
    ddof: int = 1
    rng: Optional[Union[int, np.random.Generator]] = None
    n_bootstrap: int = 10_000
    bootstrap: BootstrapMethod = "percentile"
    threshold: Optional[float] = None
    comparator: Comparator = ">="
    proportion_method: ProportionMethod = "exact"
    quantile_method: str = "linear"

    def with_overrides(self, **changes) -> "StatsContext":
        r"""
        Copy of this context with some fields changed.

        Examples
        --------
        >>> ctx = StatsContext(n=1000)
        >>> ctx2 = ctx.with_overrides(confidence=0.9, threshold=0.05)
        """
        return replace(self, **changes)

    @property
    def alpha(self) -> float:
        r"""Tail probability :math:`\alpha = 1 - \text{confidence}`."""
        return 1.0 - self.confidence

    def q_bound(self) -> tuple[float, float]:
        r"""
        Quantile bounds corresponding to the current confidence.

        For :math:`\alpha = 1 - \text{confidence}`, returns
        :math:`(\alpha/2,\; 1-\alpha/2)` as fractions in :math:`[0, 1]`.
        """
        alpha = self.alpha
        return alpha / 2, 1 - alpha / 2

    def get_generators(self) -> np.random.Generator:
        """Return a NumPy :class:`~numpy.random.Generator` initialized from :attr:`rng`."""
        if isinstance(self.rng, np.random.Generator):
            return self.rng
        if isinstance(self.rng, (int, np.integer)):
            return np.random.default_rng(int(self.rng))
        return np.random.default_rng()

    def __post_init__(self) -> None:
        r"""
        Validate field ranges.

        Raises
        ------
        ValueError
            If any field is outside its allowed range.
        """
        if not (0.0 < self.confidence < 1.0):
            raise ValueError("confidence must be in (0,1)")
        if any(p < 0 or p > 100 for p in self.percentiles):
            raise ValueError("percentiles must be in [0,100]")
        if self.n_bootstrap <= 0:
            raise ValueError("n_bootstrap must be > 0")
        if self.ddof < 0:
            raise ValueError("ddof must be >= 0")
        if not callable(self.comparator) and self.comparator not in COMPARATORS:
            raise ValueError(f"comparator must be one of {tuple(COMPARATORS)} or a callable")
        if getattr(self.proportion_method, "value", self.proportion_method) not in ("exact", "wilson"):
            raise ValueError("proportion_method must be 'exact' or 'wilson'")


class Metric(Protocol):
    r"""
    Protocol for metric callables used by :class:`StatsEngine`.

    A metric exposes a ``name`` attribute and is callable as
    ``metric(x: numpy.ndarray, ctx: StatsContext) -> Any``.
    """

    name: str

    def __call__(self, x: np.ndarray, ctx: StatsContext, /) -> Any: ...


T = TypeVar("T")


@dataclass(frozen=True)
class FnMetric(Generic[T]):
    r"""
    Lightweight adapter that binds a human-readable ``name`` to a metric function.

    Parameters
    ----------
    name : str
        Key under which the metric result is stored in :meth:`StatsEngine.compute`.
    fn : callable
        Function with signature ``fn(x: ndarray, ctx: StatsContext) -> T``.
    doc : str, optional
        Short description.

    Examples
    --------
    >>> m = FnMetric("mean", lambda a, ctx: float(np.mean(a)))
    >>> m(np.array([1, 2, 3]), StatsContext(n=3))
    2.0
    """

    name: str
    fn: Callable[[np.ndarray, StatsContext], T]
    doc: str = ""

    def __call__(self, x: np.ndarray, ctx: StatsContext) -> T:
        return self.fn(x, ctx)


class StatsEngine:
    r"""
    Orchestrator that evaluates a set of metrics over an input array.

    Parameters
    ----------
    metrics : iterable of Metric
        Callables with a ``name`` and signature ``metric(x, ctx)``.

    Notes
    -----
    All metrics receive the *same* :class:`StatsContext`. Metrics whose
    required context is missing (they raise ``ValueError("... requires ctx.<field>")``)
    are skipped rather than failing the whole computation.

    Examples
    --------
    >>> eng = StatsEngine([FnMetric("mean", mean), FnMetric("std", std)])
    >>> x = np.array([1., 2., 3.])
    >>> eng.compute(x, StatsContext(n=len(x)))
    {'mean': 2.0, 'std': 1.0}
    """

    def __init__(self, metrics: Iterable[Metric]):
        self._metrics = list(metrics)

    def available(self) -> tuple[str, ...]:
        return tuple(m.name for m in self._metrics)

    def compute(
        self,
        x: np.ndarray,
        ctx: Optional[StatsContext] = None,
        select: Sequence[str] | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        r"""
        Evaluate all registered metrics on ``x``.

        Parameters
        ----------
        x : ndarray
            Sample values.
        ctx : StatsContext, optional
            Context parameters. If None, one is built from ``**kwargs``.
        select : sequence of str, optional
            If given, compute only the metrics with these names.
        **kwargs :
            Used to build a StatsContext if ctx is None (``n`` defaults to
            ``len(x)``).

        Returns
        -------
        dict
            Mapping from metric name to computed value.
        """
        if ctx is not None:
            ctx = _ensure_ctx(ctx, x)
        else:
            base = dict(kwargs)
            base.setdefault("n", int(np.asarray(x).size))
            ctx = StatsContext(**base)

        wanted = None if select is None else set(select)
        metrics_to_compute = self._metrics if wanted is None else [m for m in self._metrics if m.name in wanted]

        out: dict[str, Any] = {}
        for m in metrics_to_compute:
            try:
                result = m(x, ctx)
            except ValueError as e:
                if "requires ctx." in str(e):
                    logger.debug("Skipping metric %s: %s", m.name, e)
                    continue
                raise
            # metrics that cannot compute return an empty dict
            if isinstance(result, dict) and len(result) == 0:
                logger.debug("Metric '%s' returned empty dict, skipping", m.name)
                continue
            out[m.name] = result

        return out


def _ensure_ctx(ctx: Any, x: np.ndarray) -> StatsContext:
    r"""
    Normalize arbitrary context inputs into a :class:`StatsContext`.

    Parameters
    ----------
    ctx : Any
        A :class:`StatsContext`, mapping, or ``None``.
    x : ndarray
        Sample used to infer the fallback ``n`` when missing.

    Raises
    ------
    TypeError
        If ``ctx`` cannot be interpreted as configuration data.
    """
    if isinstance(ctx, StatsContext):
        return ctx

    arr_len = int(np.asarray(x).size)
    if ctx is None:
        return StatsContext(n=arr_len)
    if isinstance(ctx, dict):
        data = dict(ctx)
        data.setdefault("n", arr_len)
        return StatsContext(**data)
    raise TypeError("ctx must be a StatsContext, dict, or None")


def _clean(x: np.ndarray, ctx: StatsContext) -> np.ndarray:
    """Return the sample as floats, dropping non-finite values under ``nan_policy="omit"``."""
    arr = np.asarray(x, dtype=float).reshape(-1)
    if ctx.nan_policy == "omit":
        arr = arr[np.isfinite(arr)]
    elif ctx.nan_policy != "propagate":
        raise ValueError(f"Unknown nan_policy: {ctx.nan_policy}")
    return arr


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------


def compare(x: np.ndarray, threshold: float, comparator: Comparator = ">=") -> np.ndarray:
    r"""
    Boolean mask of values satisfying ``comparator`` against ``threshold``.

    Parameters
    ----------
    x : ndarray
        Values.
    threshold : float
        Decision threshold.
    comparator : {">", ">=", "<", "<=", "==", "!="} or callable, default ``">="``
        A callable receives ``(x, threshold)`` and must return a boolean mask
        of the same length.

    Examples
    --------
    >>> compare(np.array([1., 5., 8.]), 5, ">=").tolist()
    [False, True, True]
    """
    arr = np.asarray(x, dtype=float)
    if callable(comparator):
        mask = np.asarray(comparator(arr, threshold), dtype=bool)
        if mask.shape != arr.shape:
            raise ValueError("comparator must return one boolean per value")
        return mask
    try:
        op = COMPARATORS[comparator]
    except KeyError:
        raise ValueError(f"comparator must be one of {tuple(COMPARATORS)} or a callable") from None
    return np.asarray(op(arr, threshold), dtype=bool)


def quantile(x: np.ndarray, p, method: str = "linear"):
    r"""
    Empirical ``p``-quantile(s) of ``x``.

    Parameters
    ----------
    x : ndarray
        Values (must be non-empty).
    p : float or array_like
        Probabilities in :math:`[0, 1]`.
    method : str, default ``"linear"``
        Interpolation method of :func:`numpy.quantile` (``"linear"`` is
        Hyndman–Fan type 7). Every method is non-decreasing in ``p``.

    Returns
    -------
    float or ndarray
        A float for scalar ``p``, otherwise an array aligned with ``p``.

    Raises
    ------
    AggregationError
        If ``x`` is empty.
    ValueError
        If any ``p`` lies outside :math:`[0, 1]`.

    Examples
    --------
    >>> quantile(np.array([0., 1., 2., 3.]), 0.5)
    1.5
    """
    arr = np.asarray(x, dtype=float).reshape(-1)
    if arr.size == 0:
        raise AggregationError("quantile of an empty sample is undefined")
    probs = np.asarray(p, dtype=float)
    if np.any(~np.isfinite(probs)) or np.any((probs < 0) | (probs > 1)):
        raise ValueError("quantile probabilities must be in [0, 1]")
    q = np.quantile(arr, probs, method=method)
    return float(q) if probs.ndim == 0 else np.asarray(q, dtype=float)


def binomial_ci(
    successes: int,
    trials: int,
    confidence: float = 0.95,
    method: str = "exact",
) -> tuple[float, float]:
    r"""
    Two-sided confidence interval for a binomial proportion.

    With :math:`x` successes out of :math:`n` trials and
    :math:`\alpha = 1 - \text{confidence}`:

    ``"exact"`` (Clopper–Pearson)

    .. math::
       \left[\,B_{\alpha/2}(x,\; n-x+1),\;\; B_{1-\alpha/2}(x+1,\; n-x)\,\right]

    where :math:`B_q(a, b)` is the :math:`q`-quantile of a Beta(a, b)
    distribution, with the lower bound 0 when :math:`x = 0` and the upper
    bound 1 when :math:`x = n`.

    ``"wilson"`` (score interval)

    .. math::
       \frac{\hat p + \frac{z^2}{2n} \pm z\sqrt{\frac{\hat p(1-\hat p)}{n} + \frac{z^2}{4n^2}}}{1 + \frac{z^2}{n}}

    Parameters
    ----------
    successes : int
        Number of successes :math:`x`, with :math:`0 \le x \le n`.
    trials : int
        Number of trials :math:`n`.
    confidence : float, default 0.95
        Confidence level in :math:`(0, 1)`.
    method : {"exact", "wilson"}, default ``"exact"``
        Interval construction.

    Returns
    -------
    tuple of float
        ``(low, high)`` within :math:`[0, 1]`.

    Raises
    ------
    AggregationError
        If ``trials`` is zero.
    ValueError
        For negative counts, ``successes > trials``, a confidence outside
        :math:`(0, 1)` or an unknown method.

    Examples
    --------
    >>> lo, hi = binomial_ci(54, 1000)
    >>> round(lo, 3), round(hi, 3)
    (0.041, 0.07)
    """
    if int(successes) != successes or int(trials) != trials:
        raise ValueError("successes and trials must be integers")
    x, n = int(successes), int(trials)
    if n == 0:
        raise AggregationError("a proportion over zero trials is undefined")
    if n < 0 or x < 0 or x > n:
        raise ValueError(f"need 0 <= successes <= trials, got successes={x}, trials={n}")
    if not 0.0 < confidence < 1.0:
        raise ValueError("confidence must be in (0,1)")
    method = getattr(method, "value", method)
    alpha = 1.0 - confidence

    if method == "exact":
        low = 0.0 if x == 0 else float(beta_dist.ppf(alpha / 2, x, n - x + 1))
        high = 1.0 if x == n else float(beta_dist.ppf(1 - alpha / 2, x + 1, n - x))
        return low, high

    if method == "wilson":
        z = z_crit(confidence)
        p_hat = x / n
        denom = 1.0 + z * z / n
        center = (p_hat + z * z / (2 * n)) / denom
        half = z * np.sqrt(p_hat * (1 - p_hat) / n + z * z / (4 * n * n)) / denom
        low = 0.0 if x == 0 else max(0.0, float(center - half))
        high = 1.0 if x == n else min(1.0, float(center + half))
        return low, high

    raise ValueError(f"method must be 'exact' or 'wilson', got '{method}'")


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------


def mean(x: np.ndarray, ctx: StatsContext):
    r"""
    Sample mean.

    Parameters
    ----------
    x : ndarray
        Input sample.
    ctx : StatsContext
        If ``nan_policy="omit"``, non-finite values are excluded.

    Returns
    -------
    float
        :math:`\bar X = \frac{1}{n}\sum_i x_i` (NaN for an empty sample).
    """
    ctx = _ensure_ctx(ctx, x)
    arr = _clean(x, ctx)
    return float(np.mean(arr)) if arr.size else float("nan")


def std(x: np.ndarray, ctx: StatsContext):
    r"""
    Sample standard deviation with Bessel correction.

    Returns ``0.0`` when fewer than two values are available.
    """
    ctx = _ensure_ctx(ctx, x)
    arr = _clean(x, ctx)
    if arr.size <= 1:
        return 0.0
    return float(np.std(arr, ddof=ctx.ddof))


def percentiles(x: np.ndarray, ctx: StatsContext) -> dict[int, float]:
    r"""
    Empirical percentiles evaluated on the cleaned sample.

    Examples
    --------
    >>> percentiles(np.array([0., 1., 2., 3.]), {"percentiles": (50, 75)})
    {50: 1.5, 75: 2.25}
    """
    ctx = _ensure_ctx(ctx, x)
    arr = _clean(x, ctx)
    if arr.size == 0:
        return {p: float("nan") for p in ctx.percentiles}
    pct_values = np.percentile(arr, ctx.percentiles, method=ctx.quantile_method)
    return dict(zip(ctx.percentiles, map(float, pct_values)))


def skew(x: np.ndarray, ctx: StatsContext) -> float:
    r"""
    Unbiased sample skewness (Fisher–Pearson standardized third central moment).

    Near zero for a symmetric sampling distribution; returns ``0.0`` for
    fewer than three values.
    """
    ctx = _ensure_ctx(ctx, x)
    arr = _clean(x, ctx)
    return float(sp_skew(arr, bias=False)) if arr.size > 2 else 0.0  # type: ignore[arg-type]


def kurtosis(x: np.ndarray, ctx: StatsContext) -> float:
    r"""
    Unbiased sample **excess** kurtosis (Fisher definition).

    Returns ``0.0`` for fewer than four values.

    Examples
    --------
    >>> round(kurtosis(np.array([1, 2, 3, 4.0]), {}), 6)
    -1.2
    """
    ctx = _ensure_ctx(ctx, x)
    arr = _clean(x, ctx)
    return float(sp_kurtosis(arr, fisher=True, bias=False)) if arr.size > 3 else 0.0  # type: ignore[arg-type]


def ci_mean(x: np.ndarray, ctx) -> dict[str, float | str]:
    r"""
    Parametric CI for :math:`\mathbb{E}[X]` using z/t critical values.

    Let :math:`\bar X` be the sample mean and :math:`SE = s/\sqrt{n}`.
    The interval is

    .. math::
       \bar X \pm c \cdot SE,

    where :math:`c` is selected by :func:`mcresample.utils.autocrit` according
    to :attr:`StatsContext.ci_method` and :math:`n`.

    Returns
    -------
    dict[str, float | str]
        Keys ``confidence``, ``method``, ``low``, ``high``, ``se``, ``crit``.
        Bounds are NaN when fewer than two values are available.
    """
    ctx = _ensure_ctx(ctx, x)
    arr = _clean(x, ctx)
    n_eff = int(arr.size)
    if n_eff < 2:
        return {
            "confidence": ctx.confidence,
            "method": getattr(ctx.ci_method, "value", ctx.ci_method),
            "low": float("nan"),
            "high": float("nan"),
            "se": float("nan"),
            "crit": float("nan"),
        }

    mu = float(np.mean(arr))
    s = float(np.std(arr, ddof=ctx.ddof))
    # degenerate data -> zero SE -> CI collapses to point
    se = 0.0 if s == 0.0 else s / np.sqrt(n_eff)
    crit, method = autocrit(ctx.confidence, n_eff, ctx.ci_method)

    return {
        "confidence": ctx.confidence,
        "method": method,
        "se": float(se),
        "crit": float(crit),
        "low": float(mu - crit * se),
        "high": float(mu + crit * se),
    }


def _bootstrap_means(arr: np.ndarray, B: int, rng: np.random.Generator) -> np.ndarray:
    """``B`` bootstrap replicates of the sample mean."""
    n = arr.size
    out = np.empty(B, dtype=float)
    # bound the index matrix to roughly _BOOTSTRAP_BATCH entries
    step = max(1, _BOOTSTRAP_BATCH // n)
    for start in range(0, B, step):
        stop = min(B, start + step)
        idx = rng.integers(0, n, size=(stop - start, n), endpoint=False)
        out[start:stop] = arr[idx].mean(axis=1)
    return out


def ci_mean_bootstrap(x: np.ndarray, ctx: StatsContext) -> dict[str, float | str]:
    r"""
    Bootstrap confidence interval for :math:`\mathbb{E}[X]` via resampling.

    Draws :attr:`StatsContext.n_bootstrap` resamples with replacement,
    computes their means :math:`\bar X^*` and returns

    .. math::
       \left[\,Q_{\alpha/2}(\bar X^*),\; Q_{1-\alpha/2}(\bar X^*)\,\right]

    for the percentile flavor, or the BCa-adjusted quantiles for ``"bca"``.

    Returns
    -------
    dict
        Keys ``confidence``, ``method`` (``"bootstrap-percentile"`` or
        ``"bootstrap-bca"``), ``low`` and ``high``; empty for an empty sample.

    Examples
    --------
    >>> x = np.array([1.0, 2.0, 3.0, 4.0, 5.0])
    >>> result = ci_mean_bootstrap(x, {"confidence": 0.9, "n_bootstrap": 5000, "rng": 42})
    >>> result["method"]
    'bootstrap-percentile'
    """
    ctx = _ensure_ctx(ctx, x)
    arr = _clean(x, ctx)
    if arr.size == 0:
        return {}
    B = int(ctx.n_bootstrap)
    means = _bootstrap_means(arr, B, ctx.get_generators())
    loq, hiq = ctx.q_bound()
    if getattr(ctx.bootstrap, "value", ctx.bootstrap) == "percentile" or arr.size < 3:
        low, high = np.quantile(means, [loq, hiq])
        return {
            "confidence": ctx.confidence,
            "method": "bootstrap-percentile",
            "low": float(low),
            "high": float(high),
        }

    # BCa
    m_hat = float(np.mean(arr))
    prop = float(np.clip(np.sum(means < m_hat) / B, 1e-12, 1 - 1e-12))
    z0 = float(np.sqrt(2) * erfinv(2 * prop - 1))

    jack = (np.sum(arr, dtype=float) - arr) / (arr.size - 1)
    d = jack - float(np.mean(jack))
    a = float(np.sum(d**3)) / (6.0 * (np.sum(d**2) ** 1.5) + 1e-30)

    def _adj(z: float) -> float:
        num = z0 + z
        return float(norm.cdf(z0 + num / (1.0 - a * num)))

    p_lo = float(np.clip(_adj(float(norm.ppf(loq))), 0, 1))
    p_hi = float(np.clip(_adj(float(norm.ppf(hiq))), 0, 1))
    low, high = np.quantile(means, [p_lo, p_hi])
    return {
        "confidence": ctx.confidence,
        "method": "bootstrap-bca",
        "low": float(low),
        "high": float(high),
    }


def proportion(x: np.ndarray, ctx: StatsContext) -> float:
    r"""
    Fraction of values satisfying ``ctx.comparator`` against ``ctx.threshold``.

    With a p-value statistic, ``threshold=alpha`` and ``comparator="<="`` this
    is the rejection rate: the size of the test under a true null, its power
    under a false one.
    """
    ctx = _ensure_ctx(ctx, x)
    if ctx.threshold is None:
        raise ValueError("proportion requires ctx.threshold")
    arr = _clean(x, ctx)
    if arr.size == 0:
        return float("nan")
    return float(np.mean(compare(arr, ctx.threshold, ctx.comparator)))


def ci_proportion(x: np.ndarray, ctx: StatsContext) -> dict[str, float | int | str]:
    r"""
    Binomial confidence interval for :func:`proportion` (see :func:`binomial_ci`).

    Returns
    -------
    dict
        Keys ``confidence``, ``method``, ``successes``, ``trials``,
        ``proportion``, ``low`` and ``high``; empty for an empty sample.
    """
    ctx = _ensure_ctx(ctx, x)
    if ctx.threshold is None:
        raise ValueError("ci_proportion requires ctx.threshold")
    arr = _clean(x, ctx)
    if arr.size == 0:
        return {}
    successes = int(np.count_nonzero(compare(arr, ctx.threshold, ctx.comparator)))
    method = getattr(ctx.proportion_method, "value", ctx.proportion_method)
    low, high = binomial_ci(successes, int(arr.size), ctx.confidence, method)
    return {
        "confidence": ctx.confidence,
        "method": method,
        "successes": successes,
        "trials": int(arr.size),
        "proportion": successes / arr.size,
        "low": low,
        "high": high,
    }


def quantile_interval(x: np.ndarray, ctx: StatsContext) -> dict[str, float | str]:
    r"""
    Percentile interval :math:`[Q_{\alpha/2}(x),\; Q_{1-\alpha/2}(x)]`.

    Applied to bootstrap replicates of a statistic this is the bootstrap
    percentile confidence interval.
    """
    ctx = _ensure_ctx(ctx, x)
    arr = _clean(x, ctx)
    if arr.size == 0:
        return {}
    low, high = quantile(arr, ctx.q_bound(), method=ctx.quantile_method)
    return {"confidence": ctx.confidence, "method": "percentile", "low": float(low), "high": float(high)}


def build_default_engine(include_bootstrap: bool = True) -> StatsEngine:
    r"""
    Construct a :class:`StatsEngine` with a practical set of metrics.

    Parameters
    ----------
    include_bootstrap : bool, default True
        Include :func:`ci_mean_bootstrap` (the most expensive metric).

    Returns
    -------
    StatsEngine
    """
    metrics: list[Metric] = [
        FnMetric[float]("mean", mean, "Sample mean"),
        FnMetric[float]("std", std, "Sample standard deviation"),
        FnMetric[dict[int, float]]("percentiles", percentiles, "Percentiles over the sample"),
        FnMetric[float]("skew", skew, "Fisher skewness (unbiased)"),
        FnMetric[float]("kurtosis", kurtosis, "Excess kurtosis (unbiased)"),
        FnMetric[dict[str, float | str]]("ci_mean", ci_mean, "z/t CI for the mean"),
        FnMetric[dict[str, float | str]]("quantile_interval", quantile_interval, "Percentile interval"),
        FnMetric[float]("proportion", proportion, "Fraction of values passing the threshold"),
        FnMetric[dict[str, float | int | str]]("ci_proportion", ci_proportion, "Binomial CI for the proportion"),
    ]
    if include_bootstrap:
        metrics.append(
            FnMetric[dict[str, float | str]]("ci_mean_bootstrap", ci_mean_bootstrap, "Bootstrap CI for the mean")
        )
    return StatsEngine(metrics)


# Build a default engine at import time
DEFAULT_ENGINE = build_default_engine()

__all__ = [
    "COMPARATORS",
    "NanPolicy",
    "CIMethod",
    "BootstrapMethod",
    "ProportionMethod",
    "StatsContext",
    "Metric",
    "FnMetric",
    "StatsEngine",
    "compare",
    "quantile",
    "binomial_ci",
    "mean",
    "std",
    "percentiles",
    "skew",
    "kurtosis",
    "ci_mean",
    "ci_mean_bootstrap",
    "proportion",
    "ci_proportion",
    "quantile_interval",
    "build_default_engine",
    "DEFAULT_ENGINE",
]
