r"""
mcresample.utils
================
Critical values used by confidence intervals and multiple comparisons.

Functions
    :func:`z_crit` — two-sided normal critical value
    :func:`t_crit` — two-sided Student-t critical value
    :func:`autocrit` — pick z or t from the sample size
    :func:`studentized_range_crit` — upper quantile of the studentized range
    :func:`tukey_hsd_margin` — Tukey–Kramer simultaneous margin for one pair
"""

from __future__ import annotations

import numpy as np
from scipy.stats import norm, studentized_range
from scipy.stats import t as student_t

__all__ = ["z_crit", "t_crit", "autocrit", "studentized_range_crit", "tukey_hsd_margin"]

# Below this effective sample size "auto" uses Student-t
_T_THRESHOLD = 30


def _check_confidence(confidence: float) -> None:
    if not 0.0 < confidence < 1.0:
        raise ValueError("confidence must be in the interval (0, 1)")


def z_crit(confidence: float) -> float:
    r"""
    Two-sided normal critical value :math:`z_{1-\alpha/2}`.

    Examples
    --------
    >>> round(z_crit(0.95), 3)
    1.96
    """
    _check_confidence(confidence)
    return float(norm.ppf(1.0 - (1.0 - confidence) / 2.0))


def t_crit(confidence: float, df: float) -> float:
    r"""
    Two-sided Student-t critical value :math:`t_{1-\alpha/2,\,df}`.

    Examples
    --------
    >>> round(t_crit(0.95, 9), 3)
    2.262
    """
    _check_confidence(confidence)
    if df <= 0:
        raise ValueError("df must be positive")
    return float(student_t.ppf(1.0 - (1.0 - confidence) / 2.0, df))


def autocrit(confidence: float, n: int, method: str = "auto") -> tuple[float, str]:
    r"""
    Select a critical value for a mean CI from ``n``.

    Parameters
    ----------
    confidence : float
        Confidence level in :math:`(0, 1)`.
    n : int
        Effective sample size.
    method : {"auto", "z", "t"}, default ``"auto"``
        ``"auto"`` uses Student-t with ``n - 1`` degrees of freedom when
        :math:`n < 30`, otherwise z.

    Returns
    -------
    tuple of (float, str)
        ``(critical_value, "z" | "t")``.
    """
    method = getattr(method, "value", method)
    if method == "z":
        return z_crit(confidence), "z"
    if method == "t":
        return t_crit(confidence, max(1, n - 1)), "t"
    if method == "auto":
        if n < _T_THRESHOLD:
            return t_crit(confidence, max(1, n - 1)), "t"
        return z_crit(confidence), "z"
    raise ValueError(f"method must be one of 'auto', 'z', 't', got '{method}'")


def studentized_range_crit(confidence: float, k: int, df: float) -> float:
    r"""
    Upper ``confidence`` quantile :math:`q_{k,\,df}` of the studentized range.

    The studentized range of :math:`k` i.i.d. normal means is

    .. math::
       Q = \frac{\max_i \bar X_i - \min_i \bar X_i}{\sqrt{\mathrm{MSE}/n}},

    with ``df`` error degrees of freedom.

    Examples
    --------
    >>> round(studentized_range_crit(0.95, 3, 12), 2)
    3.77
    """
    _check_confidence(confidence)
    if k < 2:
        raise ValueError("k must be at least 2")
    if df <= 0:
        raise ValueError("df must be positive")
    return float(studentized_range.ppf(confidence, k, df))


def tukey_hsd_margin(confidence: float, k: int, df: float, mse: float, n_i: int, n_j: int) -> float:
    r"""
    Tukey–Kramer simultaneous margin for the difference of two group means.

    .. math::
       \frac{q_{k,\,df}}{\sqrt 2}\,\sqrt{\mathrm{MSE}\left(\frac{1}{n_i} + \frac{1}{n_j}\right)}

    The :math:`\sqrt 2` converts the range scale :math:`\sqrt{\mathrm{MSE}/n}`
    to the standard error of a difference, :math:`\sqrt{2\,\mathrm{MSE}/n}`,
    when :math:`n_i = n_j = n`.
    """
    if mse < 0:
        raise ValueError("mse must be non-negative")
    if n_i <= 0 or n_j <= 0:
        raise ValueError("group sizes must be positive")
    q = studentized_range_crit(confidence, k, df)
    return float(q / np.sqrt(2.0) * np.sqrt(mse * (1.0 / n_i + 1.0 / n_j)))
