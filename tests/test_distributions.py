import numpy as np
import pytest

from mcresample.distributions import DEFAULT_REGISTRY, DistributionRegistry, DistributionSpec
from mcresample.exceptions import (
    ConfigurationError,
    DuplicateDistributionError,
    InvalidConfigError,
    InvalidParameterError,
    ParameterMismatchError,
    SampleSizeError,
    UnknownDistributionError,
)


def _ones(rng, n, params):
    return np.ones(n)


def _short(rng, n, params):
    return np.ones(n - 1)


class TestRegistry:
    """Test DistributionRegistry registration and lookup"""

    def test_register_and_resolve(self):
        """Test a registered spec resolves by id"""
        reg = DistributionRegistry()
        spec = reg.register("ones", _ones, ())
        assert reg.resolve("ones") is spec
        assert "ones" in reg
        assert len(reg) == 1
        assert list(reg) == ["ones"]

    def test_duplicate_id_raises(self):
        """Test registering an id twice fails"""
        reg = DistributionRegistry()
        reg.register("ones", _ones, ())
        with pytest.raises(DuplicateDistributionError) as exc:
            reg.register("ones", _ones, ())
        assert exc.value.distribution_id == "ones"

    def test_unknown_id_raises(self):
        """Test resolving a missing id lists what is available"""
        reg = DistributionRegistry()
        reg.register("ones", _ones, ())
        with pytest.raises(UnknownDistributionError) as exc:
            reg.resolve("twos")
        assert exc.value.available == ("ones",)
        assert "ones" in str(exc.value)

    def test_errors_are_configuration_errors(self):
        """Test registry errors share the configuration base class"""
        with pytest.raises(ConfigurationError):
            DistributionRegistry().resolve("nope")
        with pytest.raises(ValueError):
            DistributionRegistry().resolve("nope")

    def test_register_validates_inputs(self):
        """Test malformed registrations are rejected"""
        reg = DistributionRegistry()
        with pytest.raises(InvalidConfigError):
            reg.register("", _ones, ())
        with pytest.raises(InvalidConfigError):
            reg.register("x", "not callable", ())
        with pytest.raises(InvalidConfigError):
            reg.register("x", _ones, ("a", "a"))
        with pytest.raises(InvalidConfigError):
            reg.register("x", _ones, (1,))
        assert len(reg) == 0

    def test_copy_is_independent(self):
        """Test registering into a copy leaves the original untouched"""
        reg = DEFAULT_REGISTRY.copy()
        reg.register("ones", _ones, ())
        assert "ones" in reg
        assert "ones" not in DEFAULT_REGISTRY

    def test_specs_are_immutable(self):
        """Test a DistributionSpec cannot be modified after registration"""
        spec = DEFAULT_REGISTRY.resolve("normal")
        with pytest.raises(AttributeError):
            spec.param_names = ("x",)


class TestParameterSchema:
    """Test DistributionSpec.check_params"""

    def test_exact_match_passes(self):
        """Test matching names and valid values pass"""
        DEFAULT_REGISTRY.resolve("normal").check_params({"mean": 0, "sd": 2}, 5)

    def test_missing_parameter(self):
        """Test a missing name is reported"""
        with pytest.raises(ParameterMismatchError) as exc:
            DEFAULT_REGISTRY.resolve("normal").check_params({"mean": 0}, 5, label="g")
        assert exc.value.missing == ("sd",)
        assert exc.value.unexpected == ()
        assert exc.value.label == "g"

    def test_unexpected_parameter(self):
        """Test an extra name is reported"""
        with pytest.raises(ParameterMismatchError) as exc:
            DEFAULT_REGISTRY.resolve("bernoulli").check_params({"p": 0.5, "q": 0.5}, 5)
        assert exc.value.unexpected == ("q",)

    @pytest.mark.parametrize(
        "dist, params",
        [
            ("normal", {"mean": 0, "sd": 0}),
            ("uniform", {"low": 1, "high": 1}),
            ("bernoulli", {"p": 1.5}),
            ("binomial", {"trials": 2.5, "p": 0.5}),
            ("poisson", {"lam": -1}),
            ("exponential", {"rate": 0}),
            ("chisquare", {"df": 0}),
            ("gamma", {"shape": 1, "scale": -1}),
            ("beta", {"a": 0, "b": 1}),
            ("lognormal", {"meanlog": 0, "sdlog": 0}),
            ("constant", {"value": float("nan")}),
            ("empirical", {"values": []}),
        ],
    )
    def test_invalid_values(self, dist, params):
        """Test out-of-range values are rejected"""
        with pytest.raises(InvalidParameterError):
            DEFAULT_REGISTRY.resolve(dist).check_params(params, 5)

    def test_urn_too_small(self):
        """Test drawing more items than an urn holds is rejected"""
        spec = DEFAULT_REGISTRY.resolve("urn")
        spec.check_params({"population": [1, 2, 3]}, 3)
        with pytest.raises(InvalidParameterError):
            spec.check_params({"population": [1, 2, 3]}, 4)


class TestBuiltinGenerators:
    """Test built-in generators honor the length and reproducibility contract"""

    @pytest.mark.parametrize(
        "dist, params",
        [
            ("normal", {"mean": 1, "sd": 2}),
            ("uniform", {"low": -1, "high": 1}),
            ("bernoulli", {"p": 0.3}),
            ("binomial", {"trials": 10, "p": 0.3}),
            ("poisson", {"lam": 3}),
            ("exponential", {"rate": 2}),
            ("chisquare", {"df": 3}),
            ("t", {"df": 5}),
            ("gamma", {"shape": 2, "scale": 1}),
            ("beta", {"a": 2, "b": 3}),
            ("lognormal", {"meanlog": 0, "sdlog": 1}),
            ("constant", {"value": 4}),
            ("empirical", {"values": [1, 2, 3]}),
            ("urn", {"population": list(range(20))}),
        ],
    )
    def test_length_and_reproducibility(self, dist, params):
        """Test each generator returns exactly n values and is reproducible"""
        spec = DEFAULT_REGISTRY.resolve(dist)
        a = spec.draw(np.random.default_rng(1), 7, params)
        b = spec.draw(np.random.default_rng(1), 7, params)
        assert a.shape == (7,)
        assert a.dtype == float
        np.testing.assert_array_equal(a, b)

    def test_urn_draws_without_replacement(self):
        """Test an urn draw never repeats an item"""
        x = DEFAULT_REGISTRY.resolve("urn").draw(np.random.default_rng(0), 20, {"population": list(range(20))})
        assert sorted(x.tolist()) == list(range(20))

    def test_empirical_draws_from_values(self):
        """Test resampling only returns observed values"""
        x = DEFAULT_REGISTRY.resolve("empirical").draw(np.random.default_rng(0), 100, {"values": [2.0, 5.0]})
        assert set(x.tolist()) <= {2.0, 5.0}

    def test_wrong_length_raises(self):
        """Test a generator returning the wrong count is caught"""
        spec = DistributionSpec("short", _short, ())
        with pytest.raises(SampleSizeError) as exc:
            spec.draw(np.random.default_rng(0), 5, {})
        assert (exc.value.expected, exc.value.actual) == (5, 4)
