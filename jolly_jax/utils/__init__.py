"""Utility functions and classes for jolly-jax."""

from .logging import get_logger, setup_logging, log_performance
from .validation import (
    validate_array_dimensions,
    validate_probability,
    validate_open_interval,
    validate_capture_matrix,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "log_performance",
    "validate_array_dimensions",
    "validate_probability",
    "validate_open_interval",
    "validate_capture_matrix",
]
