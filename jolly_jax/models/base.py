"""
Base classes for capture-recapture models in jolly-jax.

Defines the common interface and a small registry for model implementations.
"""

from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Union, Type, Any
from enum import Enum

import jax.numpy as jnp

from ..data.adapters import EncounterData
from ..core.exceptions import ModelSpecificationError
from ..utils.logging import get_logger


logger = get_logger(__name__)


class ModelType(str, Enum):
    """Types of capture-recapture models."""

    JOLLY_SEBER = "jolly_seber"


class CaptureRecaptureModel(ABC):
    """
    Abstract base class for Bayesian capture-recapture models.

    A model supplies a numpyro model function for the external sampler and a
    likelihood that can be evaluated for one concrete set of hyperparameters.
    """

    parameter_order: List[str] = []

    def __init__(self, model_type: ModelType):
        self.model_type = model_type
        self.logger = get_logger(self.__class__.__name__)

    @abstractmethod
    def numpyro_model(self, data: EncounterData) -> Callable[..., None]:
        """
        Model function to hand to a numpyro kernel.

        Args:
            data: Encounter data the model will be run on

        Returns:
            Callable accepting the keyword arguments from :meth:`model_args`
        """

    @abstractmethod
    def model_args(self, data: EncounterData) -> Dict[str, jnp.ndarray]:
        """Keyword arguments for the numpyro model function."""

    @abstractmethod
    def log_likelihood(self, params: Any, data: EncounterData, validate: bool = True) -> float:
        """
        Log-likelihood for one set of hyperparameters.

        Args:
            params: Hyperparameter values
            data: Encounter data
            validate: Run domain checks before evaluating

        Returns:
            Log-likelihood value
        """

    def validate_data(self, data: EncounterData) -> None:
        """
        Validate data for this model type.

        Raises:
            ModelSpecificationError: If data cannot be modelled
        """
        if data.n_individuals < 1:
            raise ModelSpecificationError(
                reason="data must contain at least 1 individual",
            )

        if data.n_occasions < 2:
            raise ModelSpecificationError(
                reason="data must contain at least 2 sampling occasions",
            )

        if data.n_observed == 0:
            raise ModelSpecificationError(
                reason="no individual was ever detected",
                suggestions=["Check that the encounter histories were loaded correctly"],
            )


class ModelRegistry:
    """Plugin-style registry of model implementations."""

    def __init__(self):
        self._models: Dict[ModelType, Type[CaptureRecaptureModel]] = {}

    def register(
        self, model_type: ModelType, model_class: Type[CaptureRecaptureModel]
    ) -> None:
        if not issubclass(model_class, CaptureRecaptureModel):
            raise TypeError("Model class must inherit from CaptureRecaptureModel")

        self._models[model_type] = model_class
        logger.debug(f"Registered model: {model_type.value} -> {model_class.__name__}")

    def get_model(self, model_type: Union[ModelType, str], **kwargs) -> CaptureRecaptureModel:
        """
        Get a model instance by type.

        Raises:
            ValueError: If model type not registered
        """
        if isinstance(model_type, str):
            try:
                model_type = ModelType(model_type)
            except ValueError:
                raise ValueError(f"Unknown model type: {model_type}") from None

        if model_type not in self._models:
            raise ValueError(
                f"Model type '{model_type.value}' not registered. "
                f"Available: {[m.value for m in self._models]}"
            )

        return self._models[model_type](model_type, **kwargs)

    def list_models(self) -> List[ModelType]:
        return list(self._models.keys())


_registry = ModelRegistry()


def register_model(
    model_type: ModelType, model_class: Type[CaptureRecaptureModel]
) -> None:
    """Register a model with the global registry."""
    _registry.register(model_type, model_class)


def get_model(model_type: Union[ModelType, str], **kwargs) -> CaptureRecaptureModel:
    """Get a model instance from the global registry."""
    return _registry.get_model(model_type, **kwargs)


def list_available_models() -> List[ModelType]:
    """List available model types in the global registry."""
    return _registry.list_models()
