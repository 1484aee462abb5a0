"""Configuration management for jolly-jax."""

from .settings import (
    JollyJaxConfig,
    DataConfig,
    SamplingConfig,
    DiagnosticsConfig,
    LoggingConfig,
    get_default_config,
)

__all__ = [
    "JollyJaxConfig",
    "DataConfig",
    "SamplingConfig",
    "DiagnosticsConfig",
    "LoggingConfig",
    "get_default_config",
]
