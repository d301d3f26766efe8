"""Simulation catalog for :mod:`mcresample`."""

from __future__ import annotations

from .bootstrap import bootstrap_config, sample_mean, sample_median, sampling_distribution_config
from .coin import HCP_DECK, bridge_hand_config, coin_toss_config, count_successes, total_points
from .power import TESTS, pooled_t_pvalue, rank_sum_pvalue, two_sample_test_config, welch_t_pvalue
from .tukey import studentized_range, tukey_range_config

__all__ = [
    "coin_toss_config",
    "bridge_hand_config",
    "count_successes",
    "total_points",
    "HCP_DECK",
    "bootstrap_config",
    "sampling_distribution_config",
    "sample_mean",
    "sample_median",
    "two_sample_test_config",
    "pooled_t_pvalue",
    "welch_t_pvalue",
    "rank_sum_pvalue",
    "TESTS",
    "studentized_range",
    "tukey_range_config",
]
