"""
Jolly-JAX: Bayesian Jolly-Seber abundance estimation using JAX

Encounter histories are augmented with all-zero pseudo-individuals, the
entry occasion is summed out of the likelihood and the posterior is sampled
with NUTS. Population sizes, entrants and the superpopulation size are
derived per posterior draw.
"""

__version__ = "0.1.0"

# Core data loading
from .data.adapters import (
    load_data,
    from_capture_matrix,
    EncounterData,
    RMarkFormatAdapter,
    GenericFormatAdapter,
)
from .data.simulation import simulate_jolly_seber

# Models
from .models import (
    CaptureRecaptureModel,
    JollySeberModel,
    JollySeberParameters,
    ModelType,
    register_model,
    get_model,
    list_available_models,
)

# Inference
from .inference import PosteriorResult, run_sampler, derive_quantities

# High-level API
from .core.api import fit_model, prepare_data, summarize_posterior

# Configuration
from .config.settings import JollyJaxConfig, get_default_config

# Export functionality
from .core.export import ResultsExporter, create_timestamped_export

# Import key exception classes
from .core.exceptions import (
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
    # Version info
    "__version__",

    # Core data loading
    "load_data",
    "from_capture_matrix",
    "EncounterData",
    "RMarkFormatAdapter",
    "GenericFormatAdapter",
    "simulate_jolly_seber",

    # Models
    "CaptureRecaptureModel",
    "JollySeberModel",
    "JollySeberParameters",
    "ModelType",
    "register_model",
    "get_model",
    "list_available_models",

    # Inference
    "PosteriorResult",
    "run_sampler",
    "derive_quantities",
    "fit_model",
    "prepare_data",
    "summarize_posterior",

    # Configuration
    "JollyJaxConfig",
    "get_config",
    "configure",

    # Exceptions
    "JollyJaxError",
    "DataFormatError",
    "ModelSpecificationError",
    "SamplingError",
    "ConvergenceError",
    "ValidationError",
    "ParameterDomainError",
    "ConfigurationError",

    # Export functionality
    "ResultsExporter",
    "create_timestamped_export",
]


def get_config() -> JollyJaxConfig:
    """Get the global configuration instance."""
    return get_default_config()


def configure(**kwargs) -> None:
    """
    Update global configuration.

    Accepts whole sections as dicts (``sampling={"num_chains": 2}``) or
    dotted keys (``**{"sampling.num_chains": 2}``).

    Raises:
        ConfigurationError: For unknown sections or keys
    """
    config = get_config()
    for key, value in kwargs.items():
        section_name = key.split(".", 1)[0]
        section = getattr(config, section_name, None)
        if section is None:
            raise ConfigurationError(config_key=key)

        if isinstance(value, dict):
            updates = value
        elif "." in key:
            updates = {key.split(".", 1)[1]: value}
        else:
            raise ConfigurationError(config_key=key)

        unknown = [name for name in updates if name not in type(section).model_fields]
        if unknown:
            raise ConfigurationError(config_key=f"{section_name}.{unknown[0]}")

        try:
            setattr(config, section_name, type(section)(**{**section.model_dump(), **updates}))
        except ValueError as e:
            raise ConfigurationError(config_key=key) from e
