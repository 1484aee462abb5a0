"""
Tests for the exception hierarchy and its formatted messages.
"""

import pytest
import numpy as np

from jolly_jax.core.exceptions import (
    JollyJaxError,
    DataFormatError,
    ModelSpecificationError,
    SamplingError,
    ConvergenceError,
    ValidationError,
    ParameterDomainError,
    ConfigurationError,
)
from jolly_jax.utils.validation import (
    validate_array_dimensions,
    validate_probability,
    validate_open_interval,
)


class TestExceptionHierarchy:

    @pytest.mark.parametrize("error_class", [
        DataFormatError, ModelSpecificationError, SamplingError,
        ConvergenceError, ValidationError, ConfigurationError,
    ])
    def test_all_derive_from_base(self, error_class):
        assert issubclass(error_class, JollyJaxError)

    def test_domain_error_is_validation_error(self):
        error = ParameterDomainError("gamma", "must lie in (0, 1)")
        assert isinstance(error, ValidationError)
        assert error.parameter == "gamma"
        assert error.error_code == "PARAM_DOMAIN"

    def test_convergence_error_is_sampling_error(self):
        error = ConvergenceError(failed_parameters={"sigma": 1.3}, threshold=1.1)
        assert isinstance(error, SamplingError)
        assert error.error_code == "CONVERGENCE"
        assert "sigma=1.300" in str(error)


class TestFormatting:

    def test_code_and_suggestions(self):
        error = DataFormatError(specific_issue="bad histories", suggestions=["Fix them"])
        text = str(error)

        assert text.startswith("[DATA_FORMAT] Data format issue: bad histories")
        assert "1. Fix them" in text
        assert "Documentation:" in text
        assert error.context["specific_issue"] == "bad histories"

    def test_divergences_listed_first(self):
        error = SamplingError(sampler="NUTS", reason="boom", num_divergences=12)
        assert error.suggestions[0].startswith("12 divergent")
        assert "Sampling failed with NUTS: boom" in str(error)

    def test_model_specification_message(self):
        error = ModelSpecificationError(parameter="epsilon", reason="wrong shape")
        assert "Invalid specification for 'epsilon': wrong shape" in str(error)


class TestValidationHelpers:

    def test_probability_bounds_inclusive(self):
        validate_probability([0.0, 0.5, 1.0])
        with pytest.raises(ParameterDomainError, match="chi"):
            validate_probability([0.2, 1.0001], name="chi")

    def test_probability_nan(self):
        with pytest.raises(ParameterDomainError, match="NaN"):
            validate_probability(float("nan"))

    def test_open_interval_excludes_bounds(self):
        validate_open_interval(0.5, 0.0, 1.0)
        with pytest.raises(ParameterDomainError):
            validate_open_interval([0.5, 0.0], 0.0, 1.0)

    def test_array_dimensions(self):
        validate_array_dimensions(np.zeros((3, 4)), expected_shape=(None, 4))
        with pytest.raises(ValidationError, match="dimension 1"):
            validate_array_dimensions(np.zeros((3, 4)), expected_shape=(3, 5))
        with pytest.raises(ValidationError, match="at least 2"):
            validate_array_dimensions(np.zeros(3), min_dims=2)
