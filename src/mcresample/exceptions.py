r"""
Exception hierarchy for :mod:`mcresample`.

All exceptions inherit from :class:`McResampleError` so callers can catch any
library error with a single clause.

Configuration errors
    Raised while building a :class:`~mcresample.config.SimulationConfig` (or
    registering distributions). They are fatal and surface immediately.

Statistic errors
    :class:`StatisticError` is raised *by statistic functions* when the
    statistic is undefined for a simulated sample. The trial executor records
    it as a failed trial and the run continues.

Aggregation errors
    Raised when a summary is requested over a result set with no usable
    values.
"""

from __future__ import annotations

from typing import Iterable

__all__ = [
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


class McResampleError(Exception):
    """Base exception for all mcresample errors."""


class ConfigurationError(McResampleError, ValueError):
    """A simulation could not be configured."""


class UnknownDistributionError(ConfigurationError):
    r"""
    A distribution id is not present in the registry.

    Attributes
    ----------
    distribution_id : str
        The id that failed to resolve.
    available : tuple of str
        Ids registered at the time of the lookup.
    """

    def __init__(self, distribution_id: str, available: Iterable[str] = ()):
        self.distribution_id = distribution_id
        self.available = tuple(available)
        super().__init__(
            f"Unknown distribution '{distribution_id}'. "
            f"Registered distributions are: {', '.join(self.available) or '(none)'}"
        )


class DuplicateDistributionError(ConfigurationError):
    """A distribution id is already registered."""

    def __init__(self, distribution_id: str):
        self.distribution_id = distribution_id
        super().__init__(f"Distribution '{distribution_id}' is already registered")


class DuplicateGroupLabelError(ConfigurationError):
    """Two groups of one configuration share a label."""

    def __init__(self, label: str):
        self.label = label
        super().__init__(f"Group label '{label}' is used more than once")


class ParameterMismatchError(ConfigurationError):
    r"""
    Group parameters do not match a distribution's parameter schema.

    Attributes
    ----------
    distribution_id : str
        Distribution whose schema was violated.
    expected : tuple of str
        Declared parameter names, in schema order.
    missing : tuple of str
        Declared names that were not supplied.
    unexpected : tuple of str
        Supplied names that the schema does not declare.
    """

    def __init__(
        self,
        distribution_id: str,
        expected: Iterable[str],
        missing: Iterable[str] = (),
        unexpected: Iterable[str] = (),
        label: str | None = None,
    ):
        self.distribution_id = distribution_id
        self.expected = tuple(expected)
        self.missing = tuple(missing)
        self.unexpected = tuple(unexpected)
        self.label = label
        where = f" for group '{label}'" if label is not None else ""
        parts = [f"Parameters{where} do not match distribution '{distribution_id}' {self.expected}"]
        if self.missing:
            parts.append(f"missing: {self.missing}")
        if self.unexpected:
            parts.append(f"unexpected: {self.unexpected}")
        super().__init__("; ".join(parts))


class InvalidParameterError(ConfigurationError):
    """A parameter value is outside the range its distribution accepts."""

    def __init__(self, distribution_id: str, message: str, label: str | None = None):
        self.distribution_id = distribution_id
        self.label = label
        where = f" (group '{label}')" if label is not None else ""
        super().__init__(f"Invalid parameters for '{distribution_id}'{where}: {message}")


class InvalidConfigError(ConfigurationError):
    """A configuration or run option has an invalid value."""


class SampleSizeError(McResampleError, RuntimeError):
    """A generator returned a sample whose length differs from the requested count."""

    def __init__(self, distribution_id: str, expected: int, actual: int):
        self.distribution_id = distribution_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Generator for '{distribution_id}' returned {actual} values, expected exactly {expected}"
        )


class StatisticError(McResampleError):
    """The statistic is undefined for a simulated sample (e.g. zero variance)."""


class AggregationError(McResampleError, ValueError):
    """A summary cannot be computed from the available trial results."""
