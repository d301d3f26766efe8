r"""
mcresample.distributions
========================
Registry of sampling distributions.

This module defines:

- :class:`DistributionSpec`: an immutable pairing of an id, a generator and a
  parameter schema.
- :class:`DistributionRegistry`: the lookup table used by the group sampler.
- :data:`DEFAULT_REGISTRY`: a registry pre-populated with common
  distributions (see :func:`build_default_registry`).

Generators share one signature,

.. code-block:: python

    generator(rng: numpy.random.Generator, n: int, params: Mapping[str, Any]) -> ArrayLike

and must return exactly ``n`` values drawn **only** from ``rng``. No global
random state is touched, so the same parameters and the same generator state
always reproduce the same sample.

Example
-------
>>> import numpy as np
>>> reg = build_default_registry()
>>> spec = reg.resolve("normal")
>>> spec.param_names
('mean', 'sd')
>>> spec.draw(np.random.default_rng(0), 3, {"mean": 0.0, "sd": 1.0}).shape
(3,)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Mapping, Optional

import numpy as np

from .exceptions import (
    DuplicateDistributionError,
    InvalidConfigError,
    InvalidParameterError,
    ParameterMismatchError,
    SampleSizeError,
    UnknownDistributionError,
)

logger = logging.getLogger(__name__)

__all__ = [
    "SampleGenerator",
    "Validator",
    "DistributionSpec",
    "DistributionRegistry",
    "build_default_registry",
    "DEFAULT_REGISTRY",
]

SampleGenerator = Callable[[np.random.Generator, int, Mapping[str, Any]], Any]
Validator = Callable[[Mapping[str, Any], int], None]


@dataclass(frozen=True)
class DistributionSpec:
    r"""
    A registered sampling distribution.

    Parameters
    ----------
    id : str
        Registry key, e.g. ``"normal"``.
    generator : callable
        ``generator(rng, n, params)`` returning ``n`` numbers.
    param_names : tuple of str
        Ordered parameter schema. Group parameters must supply exactly these
        names.
    validator : callable, optional
        ``validator(params, n)`` raising :class:`ValueError` for out-of-range
        values. Called once per group at configuration time, never per trial.
    doc : str, optional
        Short description.
    """

    id: str
    generator: SampleGenerator
    param_names: tuple[str, ...]
    validator: Optional[Validator] = None
    doc: str = ""

    def check_params(self, params: Mapping[str, Any], size: int, label: str | None = None) -> None:
        r"""
        Validate ``params`` against the schema and value constraints.

        Raises
        ------
        ParameterMismatchError
            If names are missing or unexpected.
        InvalidParameterError
            If the validator rejects a value.
        """
        supplied = set(params)
        declared = set(self.param_names)
        if supplied != declared:
            raise ParameterMismatchError(
                self.id,
                self.param_names,
                missing=[p for p in self.param_names if p not in supplied],
                unexpected=sorted(supplied - declared),
                label=label,
            )
        if self.validator is not None:
            try:
                self.validator(params, size)
            except (TypeError, ValueError) as e:
                raise InvalidParameterError(self.id, str(e), label=label) from e

    def draw(self, rng: np.random.Generator, n: int, params: Mapping[str, Any]) -> np.ndarray:
        """Draw ``n`` values and enforce the generator's length contract."""
        out = np.asarray(self.generator(rng, n, params), dtype=float).reshape(-1)
        if out.size != n:
            raise SampleSizeError(self.id, n, int(out.size))
        return out


class DistributionRegistry:
    r"""
    Lookup table from distribution id to :class:`DistributionSpec`.

    Examples
    --------
    >>> reg = DistributionRegistry()
    >>> _ = reg.register("coin", lambda rng, n, p: rng.integers(0, 2, n), ())
    >>> "coin" in reg
    True
    """

    def __init__(self, specs: Optional[Mapping[str, DistributionSpec]] = None):
        self._specs: dict[str, DistributionSpec] = dict(specs or {})

    def register(
        self,
        id: str,  # pylint: disable=redefined-builtin
        generator: SampleGenerator,
        param_names,
        validator: Optional[Validator] = None,
        doc: str = "",
    ) -> DistributionSpec:
        r"""
        Register a new distribution.

        Parameters
        ----------
        id : str
            Unique key.
        generator : callable
            ``generator(rng, n, params)``.
        param_names : iterable of str
            Ordered parameter schema.
        validator : callable, optional
            ``validator(params, n)`` raising :class:`ValueError` on bad values.
        doc : str, optional
            Short description.

        Returns
        -------
        DistributionSpec
            The registered (immutable) spec.

        Raises
        ------
        DuplicateDistributionError
            If ``id`` is already registered.
        InvalidConfigError
            If ``generator`` is not callable or the schema is malformed.
        """
        if not isinstance(id, str) or not id:
            raise InvalidConfigError("distribution id must be a non-empty string")
        if id in self._specs:
            raise DuplicateDistributionError(id)
        if not callable(generator):
            raise InvalidConfigError(f"generator for '{id}' must be callable")
        if validator is not None and not callable(validator):
            raise InvalidConfigError(f"validator for '{id}' must be callable")
        names = tuple(param_names)
        if any(not isinstance(p, str) for p in names):
            raise InvalidConfigError(f"parameter names for '{id}' must be strings")
        if len(set(names)) != len(names):
            raise InvalidConfigError(f"parameter names for '{id}' must be unique, got {names}")

        spec = DistributionSpec(id=id, generator=generator, param_names=names, validator=validator, doc=doc)
        self._specs[id] = spec
        logger.debug("Registered distribution '%s' with parameters %s", id, names)
        return spec

    def resolve(self, id: str) -> DistributionSpec:  # pylint: disable=redefined-builtin
        """Return the spec registered under ``id`` or raise :class:`UnknownDistributionError`."""
        try:
            return self._specs[id]
        except KeyError:
            raise UnknownDistributionError(id, self.available()) from None

    def available(self) -> tuple[str, ...]:
        return tuple(self._specs)

    def copy(self) -> "DistributionRegistry":
        """Independent registry with the same specs (specs are immutable and shared)."""
        return DistributionRegistry(self._specs)

    def __contains__(self, id: object) -> bool:  # pylint: disable=redefined-builtin
        return id in self._specs

    def __len__(self) -> int:
        return len(self._specs)

    def __iter__(self) -> Iterator[str]:
        return iter(self._specs)


# ---------------------------------------------------------------------------
# Built-in generators. Module level so they pickle under the process backend.
# ---------------------------------------------------------------------------


def _require(cond: bool, message: str) -> None:
    if not cond:
        raise ValueError(message)


def _normal(rng, n, params):
    return rng.normal(params["mean"], params["sd"], n)


def _check_normal(params, _n):
    _require(float(params["sd"]) > 0, "sd must be positive")


def _uniform(rng, n, params):
    return rng.uniform(params["low"], params["high"], n)


def _check_uniform(params, _n):
    _require(float(params["low"]) < float(params["high"]), "low must be less than high")


def _bernoulli(rng, n, params):
    return rng.binomial(1, params["p"], n)


def _check_probability(params, _n):
    _require(0.0 <= float(params["p"]) <= 1.0, "p must be in [0, 1]")


def _binomial(rng, n, params):
    return rng.binomial(params["trials"], params["p"], n)


def _check_binomial(params, n):
    _check_probability(params, n)
    trials = params["trials"]
    _require(int(trials) == trials and trials >= 0, "trials must be a non-negative integer")


def _poisson(rng, n, params):
    return rng.poisson(params["lam"], n)


def _check_poisson(params, _n):
    _require(float(params["lam"]) >= 0, "lam must be non-negative")


def _exponential(rng, n, params):
    return rng.exponential(1.0 / params["rate"], n)


def _check_exponential(params, _n):
    _require(float(params["rate"]) > 0, "rate must be positive")


def _chisquare(rng, n, params):
    return rng.chisquare(params["df"], n)


def _student_t(rng, n, params):
    return rng.standard_t(params["df"], n)


def _check_df(params, _n):
    _require(float(params["df"]) > 0, "df must be positive")


def _gamma(rng, n, params):
    return rng.gamma(params["shape"], params["scale"], n)


def _check_gamma(params, _n):
    _require(float(params["shape"]) > 0 and float(params["scale"]) > 0, "shape and scale must be positive")


def _beta(rng, n, params):
    return rng.beta(params["a"], params["b"], n)


def _check_beta(params, _n):
    _require(float(params["a"]) > 0 and float(params["b"]) > 0, "a and b must be positive")


def _lognormal(rng, n, params):
    return rng.lognormal(params["meanlog"], params["sdlog"], n)


def _check_lognormal(params, _n):
    _require(float(params["sdlog"]) > 0, "sdlog must be positive")


def _constant(_rng, n, params):
    return np.full(n, float(params["value"]))


def _check_constant(params, _n):
    _require(np.isfinite(float(params["value"])), "value must be finite")


def _empirical(rng, n, params):
    # resampling with replacement (bootstrap)
    return rng.choice(np.asarray(params["values"], dtype=float), size=n, replace=True)


def _check_empirical(params, _n):
    values = np.asarray(params["values"], dtype=float)
    _require(values.ndim == 1 and values.size > 0, "values must be a non-empty 1-D sequence")


def _urn(rng, n, params):
    return rng.choice(np.asarray(params["population"], dtype=float), size=n, replace=False)


def _check_urn(params, n):
    population = np.asarray(params["population"], dtype=float)
    _require(population.ndim == 1 and population.size > 0, "population must be a non-empty 1-D sequence")
    _require(n <= population.size, f"cannot draw {n} items without replacement from {population.size}")


def build_default_registry() -> DistributionRegistry:
    r"""
    Construct a :class:`DistributionRegistry` with the built-in distributions.

    Returns
    -------
    DistributionRegistry
        Registry with ``normal``, ``uniform``, ``bernoulli``, ``binomial``,
        ``poisson``, ``exponential``, ``chisquare``, ``t``, ``gamma``,
        ``beta``, ``lognormal``, ``constant``, ``empirical`` (bootstrap,
        with replacement) and ``urn`` (without replacement).
    """
    reg = DistributionRegistry()
    reg.register("normal", _normal, ("mean", "sd"), _check_normal, "Normal(mean, sd)")
    reg.register("uniform", _uniform, ("low", "high"), _check_uniform, "Uniform[low, high)")
    reg.register("bernoulli", _bernoulli, ("p",), _check_probability, "0/1 trials with success probability p")
    reg.register("binomial", _binomial, ("trials", "p"), _check_binomial, "Binomial(trials, p)")
    reg.register("poisson", _poisson, ("lam",), _check_poisson, "Poisson(lam)")
    reg.register("exponential", _exponential, ("rate",), _check_exponential, "Exponential with the given rate")
    reg.register("chisquare", _chisquare, ("df",), _check_df, "Chi-squared(df)")
    reg.register("t", _student_t, ("df",), _check_df, "Student t(df)")
    reg.register("gamma", _gamma, ("shape", "scale"), _check_gamma, "Gamma(shape, scale)")
    reg.register("beta", _beta, ("a", "b"), _check_beta, "Beta(a, b)")
    reg.register("lognormal", _lognormal, ("meanlog", "sdlog"), _check_lognormal, "Log-normal")
    reg.register("constant", _constant, ("value",), _check_constant, "Degenerate distribution at value")
    reg.register("empirical", _empirical, ("values",), _check_empirical, "Resample observed values with replacement")
    reg.register("urn", _urn, ("population",), _check_urn, "Draw from a finite population without replacement")
    return reg


# Build a default registry at import time
DEFAULT_REGISTRY = build_default_registry()
