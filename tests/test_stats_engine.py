import numpy as np
import pytest

from mcresample.exceptions import AggregationError
from mcresample.stats_engine import (
    DEFAULT_ENGINE,
    FnMetric,
    StatsContext,
    StatsEngine,
    binomial_ci,
    build_default_engine,
    ci_proportion,
    compare,
    kurtosis,
    mean,
    proportion,
    quantile,
    quantile_interval,
    skew,
    std,
)


class TestStatsEngine:
    """Test StatsEngine class"""

    def test_engine_creation(self):
        """Test creating a stats engine with metrics"""
        engine = StatsEngine([FnMetric("mean", mean), FnMetric("std", std)])
        assert engine.available() == ("mean", "std")

    def test_engine_compute(self, sample_data):
        """Test computing all metrics"""
        engine = StatsEngine([FnMetric("mean", mean), FnMetric("std", std)])
        result = engine.compute(sample_data, n=sample_data.size)
        assert result["mean"] == pytest.approx(5.0, abs=0.2)
        assert result["std"] == pytest.approx(2.0, abs=0.2)

    def test_default_engine_compute(self, sample_data):
        """Test default engine computes the threshold-free metrics"""
        result = DEFAULT_ENGINE.compute(sample_data, StatsContext(n=sample_data.size, n_bootstrap=500, rng=1))
        for key in ("mean", "std", "percentiles", "skew", "kurtosis", "ci_mean", "quantile_interval", "ci_mean_bootstrap"):
            assert key in result
        assert "proportion" not in result
        assert "ci_proportion" not in result

    def test_threshold_metrics(self):
        """Test proportion metrics run once a threshold is given"""
        x = np.array([0.01, 0.2, 0.04, 0.5])
        result = DEFAULT_ENGINE.compute(x, select=("proportion", "ci_proportion"), threshold=0.05, comparator="<=")
        assert result["proportion"] == 0.5
        assert result["ci_proportion"]["successes"] == 2
        assert result["ci_proportion"]["trials"] == 4

    def test_engine_without_bootstrap(self):
        """Test building engine without the bootstrap metric"""
        engine = build_default_engine(include_bootstrap=False)
        assert "ci_mean_bootstrap" not in engine.available()

    def test_errors_propagate(self):
        """Test metric errors other than missing context are raised"""
        engine = StatsEngine([FnMetric("boom", lambda x, ctx: 1 / 0)])
        with pytest.raises(ZeroDivisionError):
            engine.compute(np.array([1.0, 2.0]))


class TestCompare:
    """Test threshold comparisons"""

    @pytest.mark.parametrize(
        "op, expected",
        [
            (">", [False, False, True]),
            (">=", [False, True, True]),
            ("<", [True, False, False]),
            ("<=", [True, True, False]),
            ("==", [False, True, False]),
            ("!=", [True, False, True]),
        ],
    )
    def test_operators(self, op, expected):
        """Test every named comparator"""
        assert compare(np.array([1.0, 5.0, 8.0]), 5, op).tolist() == expected

    def test_callable(self):
        """Test a callable comparator (two-sided exceedance)"""
        mask = compare(np.array([-3.0, 0.5, 2.5]), 2, lambda v, t: np.abs(v) >= t)
        assert mask.tolist() == [True, False, True]

    def test_bad_comparator(self):
        """Test unknown names and wrongly shaped masks are rejected"""
        with pytest.raises(ValueError):
            compare(np.array([1.0]), 0, "=>")
        with pytest.raises(ValueError):
            compare(np.array([1.0, 2.0]), 0, lambda v, t: True)


class TestQuantile:
    """Test empirical quantiles"""

    def test_scalar_and_array(self):
        """Test scalar and vector probabilities"""
        x = np.array([0.0, 1.0, 2.0, 3.0])
        assert quantile(x, 0.5) == 1.5
        np.testing.assert_allclose(quantile(x, [0.0, 1.0]), [0.0, 3.0])

    def test_monotone(self, sample_data):
        """Test quantiles never decrease in p"""
        q = quantile(sample_data, np.linspace(0, 1, 101))
        assert np.all(np.diff(q) >= 0)

    def test_method(self):
        """Test interpolation methods are passed through"""
        x = np.array([0.0, 1.0, 2.0, 3.0])
        assert quantile(x, 0.5, method="lower") == 1.0
        assert quantile(x, 0.5, method="higher") == 2.0

    def test_invalid(self):
        """Test probabilities outside [0, 1] and empty input"""
        with pytest.raises(ValueError):
            quantile(np.array([1.0]), 1.5)
        with pytest.raises(AggregationError):
            quantile(np.array([]), 0.5)


class TestBinomialCI:
    """Test binomial confidence intervals"""

    def test_exact_reference(self):
        """Test the Clopper-Pearson interval for 54 of 1000"""
        lo, hi = binomial_ci(54, 1000, 0.95, "exact")
        assert lo == pytest.approx(0.0408, abs=1.5e-3)
        assert hi == pytest.approx(0.0699, abs=1.5e-3)

    def test_exact_boundaries(self):
        """Test closed forms at zero and all successes"""
        lo, hi = binomial_ci(0, 10, 0.95, "exact")
        assert lo == 0.0
        assert hi == pytest.approx(1 - 0.025 ** (1 / 10), rel=1e-9)
        lo, hi = binomial_ci(10, 10, 0.95, "exact")
        assert lo == pytest.approx(0.025 ** (1 / 10), rel=1e-9)
        assert hi == 1.0

    def test_exact_symmetry(self):
        """Test swapping successes and failures mirrors the interval"""
        lo, hi = binomial_ci(3, 20)
        lo2, hi2 = binomial_ci(17, 20)
        assert lo == pytest.approx(1 - hi2)
        assert hi == pytest.approx(1 - lo2)

    def test_wilson_reference(self):
        """Test the Wilson score interval for 54 of 1000"""
        lo, hi = binomial_ci(54, 1000, 0.95, "wilson")
        assert lo == pytest.approx(0.04162, abs=1e-4)
        assert hi == pytest.approx(0.06979, abs=1e-4)
        assert binomial_ci(0, 5, method="wilson")[0] == 0.0

    def test_interval_contains_estimate(self):
        """Test intervals bracket the observed proportion"""
        for x in (0, 1, 7, 19, 20):
            for method in ("exact", "wilson"):
                lo, hi = binomial_ci(x, 20, 0.9, method)
                assert 0.0 <= lo <= x / 20 <= hi <= 1.0

    def test_higher_confidence_wider(self):
        """Test the interval widens with confidence"""
        lo95, hi95 = binomial_ci(30, 100, 0.95)
        lo99, hi99 = binomial_ci(30, 100, 0.99)
        assert lo99 < lo95 and hi99 > hi95

    def test_zero_trials(self):
        """Test zero trials is an aggregation error"""
        with pytest.raises(AggregationError):
            binomial_ci(0, 0)

    @pytest.mark.parametrize(
        "args",
        [(5, 4, 0.95, "exact"), (-1, 4, 0.95, "exact"), (1, 4, 1.0, "exact"), (1, 4, 0.95, "normal"), (1.5, 4, 0.95, "exact")],
    )
    def test_invalid(self, args):
        """Test invalid counts, levels and methods"""
        with pytest.raises(ValueError):
            binomial_ci(*args)


class TestMetrics:
    """Test metric functions"""

    def test_proportion_requires_threshold(self):
        """Test proportion metrics signal missing context"""
        with pytest.raises(ValueError, match="requires ctx.threshold"):
            proportion(np.array([1.0]), StatsContext(n=1))
        with pytest.raises(ValueError, match="requires ctx.threshold"):
            ci_proportion(np.array([1.0]), StatsContext(n=1))

    def test_ci_proportion(self):
        """Test ci_proportion matches binomial_ci"""
        x = np.arange(10.0)
        res = ci_proportion(x, StatsContext(n=10, threshold=7, proportion_method="wilson"))
        assert res["successes"] == 3
        assert res["method"] == "wilson"
        assert (res["low"], res["high"]) == binomial_ci(3, 10, 0.95, "wilson")

    def test_quantile_interval(self):
        """Test the percentile interval uses alpha/2 tails"""
        x = np.linspace(0, 100, 1001)
        res = quantile_interval(x, StatsContext(n=x.size, confidence=0.9))
        assert res["low"] == pytest.approx(5.0)
        assert res["high"] == pytest.approx(95.0)

    def test_shape_metrics(self):
        """Test skewness and kurtosis on simple samples"""
        assert skew(np.array([1.0, 2.0, 3.0]), {}) == pytest.approx(0.0)
        assert kurtosis(np.array([1.0, 2.0, 3.0, 4.0]), {}) == pytest.approx(-1.2)
        right_skewed = np.random.default_rng(0).exponential(1.0, 5000)
        assert skew(right_skewed, {}) > 1.0
