import logging
import threading

import numpy as np
import pytest

from mcresample.config import SimulationConfig
from mcresample.exceptions import InvalidConfigError
from mcresample.groups import GroupSpec
from mcresample.simulation import SimulationDriver, run_simulation
from mcresample.sims import coin_toss_config, two_sample_test_config
from mcresample.stats_engine import binomial_ci


def _always_fails(x):
    raise ArithmeticError("undefined")


def _buggy(x):
    raise KeyError("oops")


def _snapshot(rs):
    return [(t.index, t.value, t.failure) for t in rs]


class TestRunValidation:
    """Test run parameter validation"""

    @pytest.mark.parametrize("kwargs", [
        {"trial_count": 0},
        {"trial_count": -5},
        {"trial_count": 2.5},
        {"n_workers": 0},
        {"backend": "gpu"},
    ])
    def test_invalid_run_params(self, simple_config, kwargs):
        """Test invalid run options raise InvalidConfigError"""
        with pytest.raises(InvalidConfigError):
            SimulationDriver(simple_config).run(**kwargs)

    def test_config_required(self):
        """Test the driver only accepts a SimulationConfig"""
        with pytest.raises(InvalidConfigError):
            SimulationDriver({"trial_count": 5})


class TestDriver:
    """Test the simulation driver"""

    def test_exact_trial_count(self, simple_config):
        """Test one trial record per requested trial, ordered by index"""
        rs = run_simulation(simple_config, backend="sequential")
        assert len(rs) == 50
        assert rs.trial_count == 50
        assert not rs.partial
        assert [t.index for t in rs] == list(range(50))

    def test_samples_have_declared_sizes(self, simple_config):
        """Test every stored sample has its group's size"""
        rs = run_simulation(simple_config, backend="sequential")
        for t in rs:
            assert t.samples["a"].shape == (5,)
            assert t.samples["b"].shape == (3,)

    def test_reproducible(self, simple_config):
        """Test the same seed reproduces the result set exactly"""
        a = run_simulation(simple_config, backend="sequential")
        b = run_simulation(simple_config, backend="sequential")
        assert _snapshot(a) == _snapshot(b)

    def test_different_seeds_differ(self, simple_config):
        """Test different seeds give different values"""
        a = run_simulation(simple_config)
        b = run_simulation(simple_config.with_overrides(seed=124))
        assert _snapshot(a) != _snapshot(b)

    @pytest.mark.parametrize("backend", ["thread", "process"])
    def test_backends_agree(self, backend):
        """Test parallel backends reproduce the sequential result set, failures included"""
        coin = ("bernoulli", {"p": 0.5})
        cfg = two_sample_test_config(3, 3, coin, coin, test="t", trial_count=400, seed=7)
        seq = run_simulation(cfg, backend="sequential")
        par = run_simulation(cfg, backend=backend, n_workers=2)
        assert seq.n_failed > 0
        assert _snapshot(par) == _snapshot(seq)
        assert par.metadata["backend"] == backend

    def test_trial_count_override(self, simple_config):
        """Test run(trial_count=...) overrides the configuration"""
        rs = SimulationDriver(simple_config).run(trial_count=7)
        assert len(rs) == 7
        assert rs.trial_count == 7

    def test_prefix_stable(self, simple_config):
        """Test a shorter run is a prefix of a longer run with the same seed"""
        short = SimulationDriver(simple_config).run(trial_count=10)
        long = SimulationDriver(simple_config).run(trial_count=50)
        assert _snapshot(short) == _snapshot(long)[:10]

    def test_auto_small_job_is_sequential(self, simple_config):
        """Test auto runs small jobs sequentially"""
        rs = run_simulation(simple_config, backend="auto", n_workers=4)
        assert rs.metadata["backend"] == "sequential"

    def test_metadata(self, simple_config):
        """Test seed information and labels are recorded"""
        rs = run_simulation(simple_config)
        assert rs.metadata["labels"] == ("a", "b")
        assert rs.metadata["seed"] == 123
        assert rs.metadata["seed_entropy"] == 123
        assert "timestamp" in rs.metadata
        assert rs.execution_time >= 0

    def test_unseeded_run_is_repeatable(self, two_groups):
        """Test the reported entropy reproduces an unseeded run"""
        cfg = SimulationConfig(groups=two_groups, trial_count=20, statistic=lambda s: float(s["a"][0]))
        first = run_simulation(cfg)
        again = run_simulation(cfg.with_overrides(seed=first.metadata["seed_entropy"]))
        assert _snapshot(first) == _snapshot(again)


class TestFailureIsolation:
    """Test per-trial failures are recorded, not fatal"""

    def test_failures_counted(self, flaky_config):
        """Test failed trials stay in the result set"""
        rs = run_simulation(flaky_config)
        assert len(rs) == 400
        assert rs.n_succeeded + rs.n_failed == 400
        assert 0 < rs.n_failed < 400
        # three Bernoulli(0.5) draws are all equal with probability 1/4
        low, high = binomial_ci(rs.n_failed, 400, 0.999)
        assert low <= 0.25 <= high
        assert rs.failure_rate == pytest.approx(rs.n_failed / 400)
        assert rs.failure_reasons() == {"StatisticError: zero variance": rs.n_failed}

    def test_failed_trials_are_degenerate(self, flaky_config):
        """Test exactly the zero-variance samples failed"""
        rs = run_simulation(flaky_config)
        for t in rs:
            assert t.failed == (np.ptp(t.samples["x"]) == 0)

    def test_all_failed_warns(self, caplog):
        """Test a run where every trial failed logs a warning"""
        cfg = SimulationConfig(
            groups=[GroupSpec("x", 2, "normal", {"mean": 0, "sd": 1})],
            trial_count=5,
            statistic=_always_fails,
            pass_as="flat",
        )
        with caplog.at_level(logging.WARNING, logger="mcresample"):
            rs = run_simulation(cfg)
        assert rs.n_failed == 5
        assert any("Every trial failed" in r.message for r in caplog.records)

    def test_unexpected_error_aborts(self):
        """Test errors outside failure_exceptions propagate"""
        cfg = SimulationConfig(
            groups=[GroupSpec("x", 2, "normal", {"mean": 0, "sd": 1})],
            trial_count=5,
            statistic=_buggy,
            pass_as="flat",
        )
        with pytest.raises(KeyError):
            run_simulation(cfg)


class TestEarlyTermination:
    """Test partial result sets"""

    def test_partial_flag(self):
        """Test a stopped run is flagged partial and ordered"""
        stop = threading.Event()

        def progress(completed, total):
            if completed >= 30:
                stop.set()

        rs = run_simulation(
            coin_toss_config(trial_count=200, seed=3),
            backend="sequential",
            progress_callback=progress,
            stop_event=stop,
        )
        assert rs.partial
        assert len(rs) == 30
        assert rs.trial_count == 200
        assert [t.index for t in rs] == list(range(30))

    def test_progress_reaches_total(self):
        """Test progress reports completion"""
        calls = []
        run_simulation(coin_toss_config(trial_count=100, seed=3), progress_callback=lambda c, t: calls.append((c, t)))
        assert calls[-1] == (100, 100)
