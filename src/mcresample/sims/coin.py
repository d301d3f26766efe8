r"""
Counting experiments: coin tosses and bridge hands.

Both are classic probability exercises whose answers are known exactly, so
they double as checks of the engine.

* :func:`coin_toss_config` — number of heads in :math:`n` tosses,
  :math:`\text{Binomial}(n, p)`.
* :func:`bridge_hand_config` — high card points (HCP) of a 13-card hand
  dealt without replacement.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from ..config import SimulationConfig
from ..groups import GroupSpec

__all__ = ["coin_toss_config", "bridge_hand_config", "count_successes", "total_points", "HCP_DECK"]

# Ace=4, King=3, Queen=2, Jack=1 in each of four suits; 36 spot cards score 0
HCP_DECK = np.repeat([4.0, 3.0, 2.0, 1.0, 0.0], [4, 4, 4, 4, 36])


def count_successes(x: np.ndarray) -> float:
    """Number of 1s in a 0/1 sample."""
    return float(np.sum(x))


def total_points(x: np.ndarray) -> float:
    """Sum of the card values in a hand."""
    return float(np.sum(x))


def coin_toss_config(
    n_tosses: int = 10,
    p: float = 0.5,
    trial_count: int = 1000,
    seed: Optional[int] = None,
) -> SimulationConfig:
    r"""
    Heads in ``n_tosses`` tosses of a coin with ``P(heads) = p``.

    .. math::
       \Pr(H \ge k) = \sum_{j=k}^{n} \binom{n}{j} p^j (1-p)^{n-j}

    For a fair coin and :math:`n = 10`, :math:`\Pr(H \ge 8) = 56/1024 \approx 0.0547`.

    Examples
    --------
    >>> from mcresample import run_simulation
    >>> rs = run_simulation(coin_toss_config(seed=1))  # doctest: +SKIP
    >>> rs.aggregate().estimate_proportion(8, ">=")  # doctest: +SKIP
    """
    return SimulationConfig(
        groups=[GroupSpec("coin", n_tosses, "bernoulli", {"p": p})],
        trial_count=trial_count,
        statistic=count_successes,
        seed=seed,
        pass_as="flat",
    )


def bridge_hand_config(trial_count: int = 1000, seed: Optional[int] = None) -> SimulationConfig:
    r"""
    High card points of a bridge hand.

    Thirteen cards are dealt without replacement from :data:`HCP_DECK`. The
    expected HCP is :math:`13 \cdot 40 / 52 = 10`.
    """
    return SimulationConfig(
        groups=[GroupSpec("hand", 13, "urn", {"population": HCP_DECK})],
        trial_count=trial_count,
        statistic=total_points,
        seed=seed,
        pass_as="flat",
    )
