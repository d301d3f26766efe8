r"""
Group specifications and the group sampler.

A *group* is one labelled sample of fixed size drawn from a registered
distribution. A configuration holds one or more groups (e.g. the two arms of a
two-sample test); every trial draws one realized sample per group.

Example
-------
>>> import numpy as np
>>> groups = [
...     GroupSpec("control", 20, "normal", {"mean": 0.0, "sd": 1.0}),
...     GroupSpec("treated", 20, "normal", {"mean": 0.5, "sd": 1.0}),
... ]
>>> samples = sample_groups(groups, np.random.default_rng(1))
>>> list(samples), samples["treated"].shape
(['control', 'treated'], (20,))
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Mapping, Optional, Union

import numpy as np

from .distributions import DEFAULT_REGISTRY, DistributionRegistry, DistributionSpec
from .exceptions import DuplicateGroupLabelError, InvalidConfigError

__all__ = ["GroupSpec", "GroupSampler", "sample_groups"]


@dataclass(frozen=True, eq=False)
class GroupSpec:
    r"""
    Declaration of one simulated group.

    Attributes
    ----------
    label : str
        Unique (per configuration) group name; keys the trial's samples.
    size : int
        Number of values drawn per trial. Must be positive.
    distribution : str or DistributionSpec
        Registry id or an already resolved spec.
    params : mapping
        Parameter values; names must match the distribution's schema exactly.
    """

    label: str
    size: int
    distribution: Union[str, DistributionSpec]
    params: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.label, str) or not self.label:
            raise InvalidConfigError(f"group label must be a non-empty string, got {self.label!r}")
        if isinstance(self.size, bool) or not isinstance(self.size, (int, np.integer)) or self.size <= 0:
            raise InvalidConfigError(f"group '{self.label}': size must be a positive integer, got {self.size!r}")
        if not isinstance(self.distribution, (str, DistributionSpec)):
            raise InvalidConfigError(
                f"group '{self.label}': distribution must be an id or a DistributionSpec, "
                f"got {type(self.distribution).__name__}"
            )
        if not isinstance(self.params, Mapping):
            raise InvalidConfigError(f"group '{self.label}': params must be a mapping")
        object.__setattr__(self, "size", int(self.size))
        object.__setattr__(self, "params", dict(self.params))


class GroupSampler:
    r"""
    Validated, ordered set of groups that draws one sample per group.

    All validation happens in the constructor, before anything is sampled:
    duplicate labels, unknown distribution ids, parameter-schema mismatches
    and out-of-range parameter values.

    Parameters
    ----------
    groups : iterable of GroupSpec
        Groups in declaration order.
    registry : DistributionRegistry, optional
        Where ids are resolved. Defaults to
        :data:`~mcresample.distributions.DEFAULT_REGISTRY`.

    Raises
    ------
    DuplicateGroupLabelError
        If two groups share a label.
    UnknownDistributionError
        If a distribution id is not registered.
    ParameterMismatchError
        If a group's parameter names differ from the distribution's schema.
    InvalidParameterError
        If a parameter value is rejected by the distribution's validator.
    """

    def __init__(self, groups: Iterable[GroupSpec], registry: Optional[DistributionRegistry] = None):
        reg = registry if registry is not None else DEFAULT_REGISTRY
        groups = tuple(groups)
        if not groups:
            raise InvalidConfigError("at least one group is required")

        seen: set[str] = set()
        resolved: list[tuple[GroupSpec, DistributionSpec]] = []
        for g in groups:
            if not isinstance(g, GroupSpec):
                raise InvalidConfigError(f"groups must be GroupSpec instances, got {type(g).__name__}")
            if g.label in seen:
                raise DuplicateGroupLabelError(g.label)
            seen.add(g.label)
            spec = g.distribution if isinstance(g.distribution, DistributionSpec) else reg.resolve(g.distribution)
            spec.check_params(g.params, g.size, label=g.label)
            resolved.append((g, spec))

        self._groups = tuple(resolved)

    @property
    def groups(self) -> tuple[GroupSpec, ...]:
        """Groups with their distributions replaced by the resolved specs."""
        return tuple(replace(g, distribution=spec) for g, spec in self._groups)

    @property
    def labels(self) -> tuple[str, ...]:
        return tuple(g.label for g, _ in self._groups)

    @property
    def sizes(self) -> dict[str, int]:
        return {g.label: g.size for g, _ in self._groups}

    def sample(self, rng: np.random.Generator) -> dict[str, np.ndarray]:
        r"""
        Draw one sample per group, in declaration order.

        Parameters
        ----------
        rng : numpy.random.Generator
            The trial's random source. Groups consume it sequentially, so a
            fixed generator state reproduces every group's sample.

        Returns
        -------
        dict[str, ndarray]
            ``{label: sample}`` with ``len(sample) == size`` for every group.
        """
        return {g.label: spec.draw(rng, g.size, g.params) for g, spec in self._groups}

    def __len__(self) -> int:
        return len(self._groups)

    def __repr__(self) -> str:
        inner = ", ".join(f"{g.label}={spec.id}[{g.size}]" for g, spec in self._groups)
        return f"GroupSampler({inner})"


def sample_groups(
    groups: Iterable[GroupSpec],
    rng: np.random.Generator,
    registry: Optional[DistributionRegistry] = None,
) -> dict[str, np.ndarray]:
    """Validate ``groups`` and draw one sample per group (see :class:`GroupSampler`)."""
    return GroupSampler(groups, registry).sample(rng)
