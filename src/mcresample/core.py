r"""

mcresample.core
===============

Result containers and the study registry.

This module provides:

* :class:`~mcresample.core.ResultSet` – the ordered trials of one run plus derived views.
* :class:`~mcresample.core.SimulationStudy` – registry of named configurations + convenience runner.

A :class:`ResultSet` always keeps **every** executed trial, including failed
ones, so the failure rate of a run is inspectable and never silently lost.
Summaries are computed on demand over the successful statistic values, either
through the stats engine (:meth:`ResultSet.summary`) or the
:class:`~mcresample.aggregate.ResultAggregator` (:meth:`ResultSet.aggregate`).

Confidence intervals
--------------------

The report produced by :meth:`ResultSet.result_to_string` uses

.. math::

   \bar{X} \pm c\,\frac{s}{\sqrt{n}}

over the successful values, with a z or t critical value chosen by
:func:`~mcresample.utils.autocrit`.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterator, Optional

import numpy as np

from .aggregate import ResultAggregator
from .exceptions import AggregationError
from .stats_engine import DEFAULT_ENGINE, StatsContext, StatsEngine
from .trial import Trial
from .utils import autocrit

if TYPE_CHECKING:
    from .config import SimulationConfig

logger = logging.getLogger(__name__)  # pragma: no cover
_pkg_logger = logging.getLogger(__package__)
if not _pkg_logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
    handler.setFormatter(formatter)
    _pkg_logger.addHandler(handler)
    _pkg_logger.setLevel(logging.INFO)


def _extract(value: Any, field_name: Optional[str]) -> Any:
    """Pick ``field_name`` out of a record statistic (mapping key or attribute)."""
    if field_name is None:
        return value
    if isinstance(value, dict):
        if field_name not in value:
            raise AggregationError(f"statistic record has no field '{field_name}'")
        return value[field_name]
    try:
        return getattr(value, field_name)
    except AttributeError:
        raise AggregationError(f"statistic record has no field '{field_name}'") from None


@dataclass(frozen=True)
class ResultSet:
    r"""
    Ordered outcome of a simulation run.

    Attributes
    ----------
    trials : tuple of Trial
        Executed trials ordered by :attr:`Trial.index`. Failed trials are kept.
    trial_count : int
        Number of trials requested.
    execution_time : float
        Wall-clock time in seconds.
    partial : bool
        ``True`` when the run was stopped early and fewer than
        :attr:`trial_count` trials were executed.
    metadata : dict
        Freeform metadata. Includes ``"labels"``, ``"seed"``,
        ``"seed_entropy"``, ``"backend"``, ``"n_workers"`` and ``"timestamp"``.
        Passing ``seed_entropy`` back as the configuration seed repeats the run.

    Examples
    --------
    >>> rs = run_simulation(cfg)  # doctest: +SKIP
    >>> rs.n_succeeded, rs.n_failed  # doctest: +SKIP
    (996, 4)
    >>> rs.aggregate().proportion_exceeding(8)  # doctest: +SKIP
    0.0552
    """

    trials: tuple[Trial, ...]
    trial_count: int
    execution_time: float = 0.0
    partial: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "trials", tuple(self.trials))

    # --- sequence protocol ---

    def __len__(self) -> int:
        return len(self.trials)

    def __iter__(self) -> Iterator[Trial]:
        return iter(self.trials)

    def __getitem__(self, i):
        return self.trials[i]

    # --- derived views ---

    @property
    def n_completed(self) -> int:
        return len(self.trials)

    @property
    def n_succeeded(self) -> int:
        return sum(1 for t in self.trials if t.ok)

    @property
    def n_failed(self) -> int:
        return sum(1 for t in self.trials if t.failed)

    @property
    def failure_rate(self) -> float:
        r"""Fraction of executed trials that failed (``0.0`` for an empty run)."""
        n = self.n_completed
        return self.n_failed / n if n else 0.0

    @property
    def successful_trials(self) -> tuple[Trial, ...]:
        return tuple(t for t in self.trials if t.ok)

    @property
    def failed_trials(self) -> tuple[Trial, ...]:
        return tuple(t for t in self.trials if t.failed)

    @property
    def successful_values(self) -> tuple[Any, ...]:
        """Raw statistic values of the successful trials, in trial order."""
        return tuple(t.value for t in self.trials if t.ok)

    def values(self, field: Optional[str] = None) -> np.ndarray:
        r"""
        Numeric statistic values of the successful trials.

        Parameters
        ----------
        field : str, optional
            For record statistics, the mapping key or attribute to extract
            (e.g. ``"pvalue"`` of a SciPy test result).

        Returns
        -------
        ndarray of float
            One value per successful trial, in trial order.

        Raises
        ------
        AggregationError
            If the values (or the selected field) are not numeric scalars.
        """
        raw = [_extract(v, field) for v in self.successful_values]
        try:
            arr = np.asarray(raw, dtype=float)
        except (TypeError, ValueError):
            raise AggregationError(
                "statistic values are not numeric scalars; select a record field with field=..."
            ) from None
        if arr.ndim != 1:
            raise AggregationError("statistic values are not numeric scalars; select a record field with field=...")
        return arr

    def failure_reasons(self) -> Counter:
        r"""Tally of failure reasons, e.g. ``Counter({'StatisticError: zero variance': 4})``."""
        return Counter(t.failure.reason for t in self.trials if t.failure is not None)

    # --- summaries ---

    def aggregate(self, field: Optional[str] = None) -> ResultAggregator:
        """Return a :class:`~mcresample.aggregate.ResultAggregator` over the successful values."""
        return ResultAggregator(self, field=field)

    def summary(
        self,
        stats_engine: Optional[StatsEngine] = None,
        field: Optional[str] = None,
        **context: Any,
    ) -> dict[str, Any]:
        r"""
        Compute stats-engine metrics over the successful values.

        Parameters
        ----------
        stats_engine : StatsEngine, optional
            Defaults to :data:`~mcresample.stats_engine.DEFAULT_ENGINE`.
        field : str, optional
            Record field to summarize.
        **context :
            Fields of :class:`~mcresample.stats_engine.StatsContext`
            (e.g. ``confidence=0.99``, ``threshold=0.05``, ``comparator="<="``).
            Without ``rng`` the bootstrap is seeded from ``metadata["seed_entropy"]``
            (or 0), so repeated calls agree.

        Returns
        -------
        dict
            Metric results plus ``n_succeeded`` and ``n_failed``.

        Raises
        ------
        AggregationError
            If no trial succeeded.
        """
        x = self.values(field)
        if x.size == 0:
            raise AggregationError("cannot summarize a result set with zero successful trials")
        eng = stats_engine or DEFAULT_ENGINE
        context.setdefault("rng", self.metadata.get("seed_entropy", 0))
        ctx = StatsContext(**{"n": int(x.size), **context})
        out = eng.compute(x, ctx)
        out["n_succeeded"] = self.n_succeeded
        out["n_failed"] = self.n_failed
        return out

    def result_to_string(self, confidence: float = 0.95, field: Optional[str] = None) -> str:
        r"""
        Human-readable report of the run.

        Always states how many trials succeeded and failed; when values are
        numeric it adds the mean with a z/t interval and the quartiles.

        Parameters
        ----------
        confidence : float, default ``0.95``
            Confidence level for the displayed CI.
        field : str, optional
            Record field to report on.

        Returns
        -------
        str
            Multiline textual summary.
        """
        if name := self.metadata.get("simulation_name"):
            title = f"Results for simulation '{name}':"
        else:
            title = "Results for simulation:"
        lines = [
            "=" * 20 + " SIM RESULTS " + "=" * 20,
            title,
            f"  Trials: {self.n_completed} of {self.trial_count} requested" + (" (partial)" if self.partial else ""),
            f"  Succeeded: {self.n_succeeded}   Failed: {self.n_failed} ({self.failure_rate:.2%})",
            f"  Execution time: {self.execution_time:.2f} seconds",
        ]
        for reason, count in self.failure_reasons().most_common(5):
            lines.append(f"    {count} x {reason}")

        try:
            x = self.values(field)
        except AggregationError:
            x = np.empty(0)
            lines.append("  (statistic values are records; pass field= to summarize)")
        if x.size:
            n = int(x.size)
            mu = float(np.mean(x))
            sd = float(np.std(x, ddof=1)) if n > 1 else 0.0
            crit, kind = autocrit(confidence, n)
            se = sd / np.sqrt(n)
            lines += [
                f"  Mean: {mu:.5f}   (SE: {se:.5f}, "
                f"{int(confidence * 100)}% {kind}-CI: [{mu - crit * se:.5f}, {mu + crit * se:.5f}])",
                f"  Std Dev (sample): {sd:.5f}",
                "  Percentiles:",
            ]
            for p, q in zip((5, 25, 50, 75, 95), np.percentile(x, (5, 25, 50, 75, 95))):
                lines.append(f"    {p}th: {q:.5f}")

        if self.metadata:
            lines.append("Metadata:")
        for k, v in self.metadata.items():
            lines.append(f"    {k}: {v}")
        lines.append("=" * 20 + " END " + "=" * 20)
        return "\n".join(lines)


class SimulationStudy:
    r"""
    Registry for named simulation configurations that runs and compares results.

    Examples
    --------
    >>> from mcresample.sims import coin_toss_config
    >>> study = SimulationStudy()
    >>> study.register(coin_toss_config(p=0.5, seed=1), "fair")
    >>> study.register(coin_toss_config(p=0.6, seed=1), "biased")
    >>> study.run("fair")  # doctest: +SKIP
    >>> study.run("biased")  # doctest: +SKIP
    >>> study.compare_results(["fair", "biased"], metric="mean")  # doctest: +SKIP
    {'fair': 5.012, 'biased': 6.003}
    """

    def __init__(self):
        self.configs: dict[str, "SimulationConfig"] = {}
        self.results: dict[str, ResultSet] = {}

    def register(self, config: "SimulationConfig", name: str) -> None:
        r"""
        Register a configuration under a name.

        Parameters
        ----------
        config : SimulationConfig
            The configuration to register.
        name : str
            Registry key. Re-registering a name replaces the configuration and
            discards its previous result.
        """
        if not isinstance(name, str) or not name:
            raise ValueError("name must be a non-empty string")
        self.configs[name] = config
        self.results.pop(name, None)
        logger.debug("Registered simulation '%s'", name)

    def run(self, name: str, **kwargs: Any) -> ResultSet:
        r"""
        Run a registered configuration by name.

        Parameters
        ----------
        name : str
            Key used in :meth:`register`.
        **kwargs :
            Forwarded to :meth:`~mcresample.simulation.SimulationDriver.run`.

        Returns
        -------
        ResultSet
        """
        from .simulation import SimulationDriver

        if name not in self.configs:
            raise ValueError(f"Simulation '{name}' not found")
        res = SimulationDriver(self.configs[name]).run(**kwargs)
        res.metadata["simulation_name"] = name
        self.results[name] = res
        return res

    def compare_results(
        self,
        names: list[str],
        metric: str = "mean",
        field: Optional[str] = None,
    ) -> dict[str, float]:
        r"""
        Compare a metric across previously run simulations.

        Parameters
        ----------
        names : list of str
            Simulation names (must exist in :attr:`results`).
        metric : {"mean","std","se","failure_rate","n_failed","pX"}, default ``"mean"``
            Metric to extract. ``"pX"`` requests the X-th percentile (e.g. ``"p95"``).
        field : str, optional
            Record field for record statistics.

        Returns
        -------
        dict
            ``{name: value}`` pairs.

        Raises
        ------
        ValueError
            If a simulation has no results or the metric name is unknown.
        AggregationError
            If a value metric is requested for a run with no successful trial.
        """
        out: dict[str, float] = {}
        for name in names:
            if name not in self.results:
                raise ValueError(f"No results found for simulation '{name}'")
            r = self.results[name]
            if metric == "failure_rate":
                out[name] = r.failure_rate
                continue
            if metric == "n_failed":
                out[name] = r.n_failed
                continue
            x = r.values(field)
            if x.size == 0:
                raise AggregationError(f"simulation '{name}' has no successful trials")
            if metric == "mean":
                out[name] = float(np.mean(x))
            elif metric == "std":
                out[name] = float(np.std(x, ddof=1)) if x.size > 1 else 0.0
            elif metric == "se":
                out[name] = float(np.std(x, ddof=1) / np.sqrt(x.size)) if x.size > 1 else 0.0
            elif metric.lower().startswith("p") and metric[1:].isdigit():
                p = int(metric[1:])
                if p > 100:
                    raise ValueError(f"Percentile {p} out of range")
                out[name] = float(np.percentile(x, p))
            else:
                raise ValueError(f"Unknown metric: {metric}")
        return out


__all__ = [
    "ResultSet",
    "SimulationStudy",
]
