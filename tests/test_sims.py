import numpy as np
import pytest

from mcresample.exceptions import InvalidConfigError, StatisticError
from mcresample.simulation import run_simulation
from mcresample.sims import (
    HCP_DECK,
    bootstrap_config,
    bridge_hand_config,
    coin_toss_config,
    pooled_t_pvalue,
    rank_sum_pvalue,
    sample_median,
    sampling_distribution_config,
    studentized_range,
    tukey_range_config,
    two_sample_test_config,
    welch_t_pvalue,
)
from mcresample.stats_engine import skew
from mcresample.utils import studentized_range_crit


class TestCounting:
    """Test coin and card experiments against exact answers"""

    def test_coin_tail_probability(self):
        """Test P(at least 8 heads in 10 fair tosses) = 56/1024"""
        rs = run_simulation(coin_toss_config(trial_count=4000, seed=11))
        est = rs.aggregate().estimate_proportion(8, ">=", confidence=0.999)
        assert rs.n_failed == 0
        assert est.contains(56 / 1024)

    def test_coin_values_in_range(self):
        """Test head counts lie in [0, n]"""
        x = run_simulation(coin_toss_config(n_tosses=5, trial_count=200, seed=2)).values()
        assert x.min() >= 0 and x.max() <= 5
        assert np.all(x == np.round(x))

    def test_deck(self):
        """Test the deck holds 40 points in 52 cards"""
        assert HCP_DECK.size == 52
        assert HCP_DECK.sum() == 40

    def test_bridge_hand_mean(self):
        """Test the expected high card points is 10"""
        rs = run_simulation(bridge_hand_config(trial_count=2000, seed=5))
        x = rs.values()
        assert x.mean() == pytest.approx(10.0, abs=0.5)
        assert x.min() >= 0 and x.max() <= 37


class TestBootstrap:
    """Test bootstrap and sampling-distribution studies"""

    def test_bootstrap_mean(self):
        """Test bootstrap replicates center on the observed mean"""
        data = np.random.default_rng(0).normal(10.0, 2.0, 200)
        rs = run_simulation(bootstrap_config(data, trial_count=2000, seed=1))
        agg = rs.aggregate()
        assert agg.values.mean() == pytest.approx(data.mean(), abs=0.05)
        lo, hi = agg.percentile_interval(0.95)
        assert lo < data.mean() < hi
        assert 0.35 < hi - lo < 0.75

    def test_bootstrap_resamples_observed_values(self):
        """Test resamples only contain observed values"""
        data = [1.0, 2.0, 5.0]
        rs = run_simulation(bootstrap_config(data, statistic=sample_median, trial_count=50, seed=3))
        for t in rs:
            assert set(t.samples["data"]).issubset(data)
        assert set(rs.values()).issubset(data)

    @pytest.mark.parametrize("data", [[], [1.0, np.nan], [[1.0, 2.0]]])
    def test_bootstrap_invalid_data(self, data):
        """Test empty, non-finite and 2-D data are rejected"""
        with pytest.raises(InvalidConfigError):
            bootstrap_config(data)

    def test_skewness_shrinks_with_df(self):
        """Test means of chi-square(3) samples stay more skewed than chi-square(12)"""
        skewed = run_simulation(sampling_distribution_config("chisquare", {"df": 3}, 20, trial_count=4000, seed=4))
        milder = run_simulation(sampling_distribution_config("chisquare", {"df": 12}, 20, trial_count=4000, seed=4))
        assert skew(skewed.values(), {}) > skew(milder.values(), {})
        assert skew(skewed.values(), {}) > 0.2


class TestTwoSampleTests:
    """Test size and power of two-sample tests"""

    def test_pooled_t_size(self):
        """Test the pooled t-test holds its size with equal sizes and variances"""
        rs = run_simulation(two_sample_test_config(10, 10, test="t", trial_count=2000, seed=8))
        est = rs.aggregate().rejection_rate(0.05, confidence=0.999)
        assert est.contains(0.05)

    def test_pooled_t_size_inflated(self):
        """Test the small high-variance group inflates the pooled t size"""
        cfg = two_sample_test_config(
            10, 30, ("normal", {"mean": 0.0, "sd": 5.0}), ("normal", {"mean": 0.0, "sd": 1.0}),
            test="t", trial_count=2000, seed=9,
        )
        est = run_simulation(cfg).aggregate().rejection_rate(0.05)
        assert est.low > 0.05

    def test_rank_sum_size_unequal_variances(self):
        """Test unequal variances with unequal sizes push the rank-sum size away from nominal"""
        cfg = two_sample_test_config(
            10, 30, ("normal", {"mean": 0.0, "sd": 5.0}), ("normal", {"mean": 0.0, "sd": 1.0}),
            test="rank_sum", trial_count=4000, seed=13,
        )
        est = run_simulation(cfg).aggregate().rejection_rate(0.05)
        assert not est.contains(0.05)
        assert est.low > 0.05

    def test_welch_size(self):
        """Test Welch's test stays near nominal in the same setting"""
        cfg = two_sample_test_config(
            10, 30, ("normal", {"mean": 0.0, "sd": 5.0}), ("normal", {"mean": 0.0, "sd": 1.0}),
            test="welch", trial_count=2000, seed=9,
        )
        assert run_simulation(cfg).aggregate().rejection_rate(0.05).estimate < 0.08

    def test_power(self):
        """Test a one-sd shift is detected most of the time"""
        cfg = two_sample_test_config(
            20, 20, ("normal", {"mean": 0.0, "sd": 1.0}), ("normal", {"mean": 1.0, "sd": 1.0}),
            test="rank_sum", trial_count=500, seed=10,
        )
        assert run_simulation(cfg).aggregate().rejection_rate(0.05).estimate > 0.7

    def test_degenerate_samples(self):
        """Test tests whose statistic is undefined raise StatisticError"""
        const = np.ones(4)
        with pytest.raises(StatisticError):
            pooled_t_pvalue(const, const)
        with pytest.raises(StatisticError):
            welch_t_pvalue(np.array([1.0]), np.array([1.0, 2.0]))
        with pytest.raises(StatisticError):
            rank_sum_pvalue(const, const)

    def test_unknown_test(self):
        """Test unknown test names"""
        with pytest.raises(InvalidConfigError):
            two_sample_test_config(5, 5, test="anova")


class TestTukey:
    """Test the studentized range simulation"""

    def test_studentized_range(self):
        """Test the statistic on a small example"""
        a = np.array([1.0, 2.0, 3.0])
        b = np.array([4.0, 5.0, 6.0])
        # means 2 and 5, MSE 1, n 3
        assert studentized_range(a, b) == pytest.approx(3.0 / np.sqrt(1.0 / 3.0))

    def test_critical_value(self):
        """Test the simulated 95th percentile matches the tabulated value"""
        rs = run_simulation(tukey_range_config(k=3, n=5, trial_count=4000, seed=12))
        assert rs.aggregate().critical_value(0.95) == pytest.approx(studentized_range_crit(0.95, 3, 12), abs=0.3)

    def test_undefined(self):
        """Test degenerate inputs raise StatisticError"""
        with pytest.raises(StatisticError):
            studentized_range(np.array([1.0, 2.0]))
        with pytest.raises(StatisticError):
            studentized_range(np.ones(3), np.ones(3))
        with pytest.raises(StatisticError):
            studentized_range(np.array([1.0]), np.array([2.0]))

    @pytest.mark.parametrize("kwargs", [{"k": 1}, {"n": 1}, {"k": 2.5}, {"n": True}])
    def test_invalid_config(self, kwargs):
        """Test invalid group counts and sizes"""
        with pytest.raises(InvalidConfigError):
            tukey_range_config(**kwargs)
