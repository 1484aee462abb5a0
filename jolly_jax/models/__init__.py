"""
Model implementations for jolly-jax.
"""

from .base import (
    CaptureRecaptureModel,
    ModelRegistry,
    ModelType,
    register_model,
    get_model,
    list_available_models,
)
from .jolly_seber import (
    JollySeberModel,
    JollySeberParameters,
    jolly_seber_model,
    parameterize,
    uncaptured_probabilities,
    individual_log_likelihoods,
    log_likelihood,
    logit,
    inv_logit,
)

register_model(ModelType.JOLLY_SEBER, JollySeberModel)

__all__ = [
    "CaptureRecaptureModel",
    "ModelRegistry",
    "ModelType",
    "register_model",
    "get_model",
    "list_available_models",
    "JollySeberModel",
    "JollySeberParameters",
    "jolly_seber_model",
    "parameterize",
    "uncaptured_probabilities",
    "individual_log_likelihoods",
    "log_likelihood",
    "logit",
    "inv_logit",
]
