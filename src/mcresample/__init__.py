"""mcresample package public API."""

from .aggregate import ResultAggregator, SummaryEstimate
from .config import SimulationConfig
from .core import ResultSet, SimulationStudy
from .distributions import DEFAULT_REGISTRY, DistributionRegistry, DistributionSpec
from .exceptions import (
    AggregationError,
    ConfigurationError,
    DuplicateDistributionError,
    DuplicateGroupLabelError,
    InvalidConfigError,
    InvalidParameterError,
    McResampleError,
    ParameterMismatchError,
    SampleSizeError,
    StatisticError,
    UnknownDistributionError,
)
from .groups import GroupSampler, GroupSpec, sample_groups
from .simulation import SimulationDriver, run_simulation
from .stats_engine import (
    DEFAULT_ENGINE,
    FnMetric,
    StatsContext,
    StatsEngine,
    binomial_ci,
)
from .trial import Trial, TrialFailure, execute_trial
from .utils import autocrit, studentized_range_crit, t_crit, tukey_hsd_margin, z_crit

__all__ = [
    "DistributionSpec",
    "DistributionRegistry",
    "DEFAULT_REGISTRY",
    "GroupSpec",
    "GroupSampler",
    "sample_groups",
    "SimulationConfig",
    "Trial",
    "TrialFailure",
    "execute_trial",
    "SimulationDriver",
    "run_simulation",
    "ResultSet",
    "SimulationStudy",
    "ResultAggregator",
    "SummaryEstimate",
    "StatsEngine",
    "StatsContext",
    "FnMetric",
    "DEFAULT_ENGINE",
    "binomial_ci",
    "z_crit",
    "t_crit",
    "autocrit",
    "studentized_range_crit",
    "tukey_hsd_margin",
    "McResampleError",
    "ConfigurationError",
    "UnknownDistributionError",
    "DuplicateDistributionError",
    "DuplicateGroupLabelError",
    "ParameterMismatchError",
    "InvalidParameterError",
    "InvalidConfigError",
    "SampleSizeError",
    "StatisticError",
    "AggregationError",
]

__version__ = "0.1.0"
