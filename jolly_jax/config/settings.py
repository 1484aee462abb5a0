"""
Configuration management system for jolly-jax.

Provides a hierarchical configuration system with support for YAML
configuration files, environment variables, and runtime updates.
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, Union
from pydantic import BaseModel, Field, validator
from enum import Enum


class LogLevel(str, Enum):
    """Logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class DataFormat(str, Enum):
    """Supported encounter history formats."""
    AUTO = "auto"
    RMARK = "rmark"
    GENERIC = "generic"


class DataConfig(BaseModel):
    """Encounter data configuration."""
    # Adapter used for files; auto tries every registered adapter
    default_format: DataFormat = DataFormat.AUTO
    # Augmented superpopulation bound M; None keeps the rows as loaded
    default_augmentation: Optional[int] = None
    # Reject observed (non-augmented) rows that contain no detection
    strict_observed: bool = False

    @validator('default_augmentation', pre=True)
    def validate_default_augmentation(cls, v):
        if v is not None and int(v) <= 0:
            raise ValueError("default_augmentation must be a positive integer")
        return v


class SamplingConfig(BaseModel):
    """NUTS sampler configuration."""
    num_warmup: int = 1000
    num_samples: int = 1000
    num_chains: int = 4
    chain_method: str = "sequential"
    target_accept_prob: float = 0.8
    max_tree_depth: int = 10
    random_seed: Optional[int] = None
    noncentered_epsilon: bool = True
    sigma_upper: float = 5.0
    progress_bar: bool = False

    @validator('target_accept_prob')
    def validate_target_accept_prob(cls, v):
        if not 0.0 < v < 1.0:
            raise ValueError("target_accept_prob must lie in (0, 1)")
        return v

    @validator('num_warmup', 'num_samples', 'num_chains')
    def validate_counts(cls, v):
        if v < 1:
            raise ValueError("sampler counts must be at least 1")
        return v

    @validator('chain_method')
    def validate_chain_method(cls, v):
        if v not in ("sequential", "parallel", "vectorized"):
            raise ValueError(f"Unknown chain_method: {v}")
        return v


class DiagnosticsConfig(BaseModel):
    """Posterior diagnostics configuration."""
    rhat_threshold: float = 1.1
    credible_interval: float = 0.95
    fail_on_nonconvergence: bool = False
    warn_on_divergences: bool = True


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: LogLevel = LogLevel.INFO
    file_logging: bool = False
    log_file: Optional[Path] = None
    console_logging: bool = True
    format_string: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @validator('log_file', pre=True)
    def validate_log_file(cls, v):
        return Path(v) if v else None


class JollyJaxConfig(BaseModel):
    """Main configuration class for jolly-jax."""

    data: DataConfig = Field(default_factory=DataConfig)
    sampling: SamplingConfig = Field(default_factory=SamplingConfig)
    diagnostics: DiagnosticsConfig = Field(default_factory=DiagnosticsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    class Config:
        """Pydantic configuration."""
        validate_assignment = True

    def __init__(self, config_file: Optional[Union[str, Path]] = None, **kwargs):
        """
        Initialize configuration.

        Args:
            config_file: Path to YAML configuration file
            **kwargs: Override specific configuration values
        """
        config_data = {}
        if config_file:
            config_data = self._load_config_file(config_file)

        # Environment variables override the file, kwargs override both
        for section, values in self._load_environment_variables().items():
            config_data.setdefault(section, {}).update(values)

        config_data.update(kwargs)

        super().__init__(**config_data)

        if self.logging.file_logging and self.logging.log_file:
            self.logging.log_file.parent.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def _load_config_file(config_file: Union[str, Path]) -> Dict[str, Any]:
        """Load configuration from YAML file."""
        config_path = Path(config_file)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r') as f:
            return yaml.safe_load(f) or {}

    @staticmethod
    def _load_environment_variables() -> Dict[str, Dict[str, Any]]:
        """Load configuration from environment variables."""
        config: Dict[str, Dict[str, Any]] = {}

        env_mappings = {
            'JOLLY_JAX_LOG_LEVEL': ('logging', 'level'),
            'JOLLY_JAX_NUM_CHAINS': ('sampling', 'num_chains'),
            'JOLLY_JAX_NUM_SAMPLES': ('sampling', 'num_samples'),
            'JOLLY_JAX_NUM_WARMUP': ('sampling', 'num_warmup'),
            'JOLLY_JAX_RANDOM_SEED': ('sampling', 'random_seed'),
            'JOLLY_JAX_AUGMENTATION': ('data', 'default_augmentation'),
            'JOLLY_JAX_DATA_FORMAT': ('data', 'default_format'),
        }

        for env_var, (section, key) in env_mappings.items():
            value = os.getenv(env_var)
            if value is not None:
                if key in ['num_chains', 'num_samples', 'num_warmup',
                           'random_seed', 'default_augmentation']:
                    value = int(value)
                config.setdefault(section, {})[key] = value

        return config

    def save_config(self, config_file: Union[str, Path]) -> None:
        """Save current configuration to YAML file."""
        config_path = Path(config_file)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, 'w') as f:
            yaml.safe_dump(self.model_dump(mode="json"), f,
                           default_flow_style=False, indent=2)

    def update(self, **kwargs) -> None:
        """Update configuration values, accepting 'section.key' names."""
        for key, value in kwargs.items():
            if '.' in key:
                section, subkey = key.split('.', 1)
                section_obj = getattr(self, section, None)
                if section_obj is not None and hasattr(section_obj, subkey):
                    setattr(section_obj, subkey, value)
            elif hasattr(self, key):
                setattr(self, key, value)

    def get_user_config_path(self) -> Path:
        """Get the user's configuration file path."""
        return Path.home() / ".jolly_jax" / "config.yaml"

    def load_user_config(self) -> None:
        """Load user's configuration file if it exists."""
        user_config = self.get_user_config_path()
        if user_config.exists():
            config_data = self._load_config_file(user_config)
            for section, values in config_data.items():
                if hasattr(self, section) and isinstance(values, dict):
                    current = getattr(self, section)
                    # Rebuild so the merged values go through validation
                    setattr(self, section, type(current)(**{**current.model_dump(), **values}))


# Default configuration instance
_default_config: Optional[JollyJaxConfig] = None


def get_default_config() -> JollyJaxConfig:
    """Get the default configuration instance."""
    global _default_config
    if _default_config is None:
        _default_config = JollyJaxConfig()
        _default_config.load_user_config()
    return _default_config
