import multiprocessing as mp

import numpy as np
import pytest

from mcresample.config import SimulationConfig
from mcresample.core import ResultSet, SimulationStudy
from mcresample.distributions import build_default_registry
from mcresample.exceptions import StatisticError
from mcresample.groups import GroupSpec
from mcresample.trial import Trial, TrialFailure


def sample_sum(samples):
    """Sum of every group's sample (mapping statistic)."""
    return float(sum(np.sum(v) for v in samples.values()))


def mean_or_fail(x):
    """Mean of a flat sample; undefined when all values are identical."""
    if np.ptp(x) == 0:
        raise StatisticError("zero variance")
    return float(np.mean(x))


@pytest.fixture(scope="session", autouse=True)
def _set_spawn_start_method():
    try:
        mp.set_start_method("spawn")
    except RuntimeError:
        pass  # already set


@pytest.fixture
def sample_data():
    """Fixture providing sample data for testing"""
    return np.random.default_rng(42).normal(5.0, 2.0, 1000)


@pytest.fixture
def registry():
    """A private copy of the default registry (safe to register into)."""
    return build_default_registry()


@pytest.fixture
def two_groups():
    """A normal and a uniform group."""
    return [
        GroupSpec("a", 5, "normal", {"mean": 0.0, "sd": 1.0}),
        GroupSpec("b", 3, "uniform", {"low": 0.0, "high": 1.0}),
    ]


@pytest.fixture
def simple_config(two_groups):
    """Small seeded configuration with a mapping statistic."""
    return SimulationConfig(groups=two_groups, trial_count=50, statistic=sample_sum, seed=123)


@pytest.fixture
def flaky_config():
    """Bernoulli(0.5) groups of three: a quarter of the trials have zero variance."""
    return SimulationConfig(
        groups=[GroupSpec("x", 3, "bernoulli", {"p": 0.5})],
        trial_count=400,
        statistic=mean_or_fail,
        seed=7,
        pass_as="flat",
    )


@pytest.fixture
def handmade_result():
    """A result set with known values 0..9 and two failures."""
    failure = TrialFailure("StatisticError: zero variance", "StatisticError")
    values = [0.0, 1.0, 2.0, None, 3.0, 4.0, 5.0, 6.0, 7.0, 8.0, 9.0, None]
    trials = [
        Trial(index=i, value=v) if v is not None else Trial(index=i, failure=failure)
        for i, v in enumerate(values)
    ]
    return ResultSet(trials=tuple(trials), trial_count=12, execution_time=0.1)


@pytest.fixture
def study():
    """Provide a study with default state."""
    return SimulationStudy()
