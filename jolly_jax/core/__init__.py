"""Core functionality for jolly-jax."""

from .exceptions import (
    JollyJaxError,
    DataFormatError,
    ModelSpecificationError,
    SamplingError,
    ConvergenceError,
    ValidationError,
    ParameterDomainError,
    ConfigurationError,
)

__all__ = [
    "JollyJaxError",
    "DataFormatError",
    "ModelSpecificationError",
    "SamplingError",
    "ConvergenceError",
    "ValidationError",
    "ParameterDomainError",
    "ConfigurationError",
]
