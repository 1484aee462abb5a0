"""
Main API functions for jolly-jax.

High-level user interface for fitting the Jolly-Seber model and reading off
posterior summaries.
"""

from pathlib import Path
from typing import Optional, Union

import numpy as np
import pandas as pd

from ..config.settings import JollyJaxConfig, get_default_config
from ..data.adapters import EncounterData, from_capture_matrix, get_adapter, load_data
from ..inference.sampling import PosteriorResult, run_sampler
from ..models.base import ModelType, get_model
from ..utils.logging import get_logger, log_performance


logger = get_logger(__name__)


def prepare_data(
    data: Union[EncounterData, np.ndarray, str, Path],
    augment_to: Optional[int] = None,
    config: Optional[JollyJaxConfig] = None,
) -> EncounterData:
    """
    Turn a file path, a binary matrix or prepared data into augmented data.

    ``augment_to`` falls back to ``data.default_augmentation`` from the
    configuration, and files are read with the adapter named by
    ``data.default_format``. Already prepared data is returned unchanged.
    """
    config = config or get_default_config()
    if augment_to is None:
        augment_to = config.data.default_augmentation

    if isinstance(data, EncounterData):
        if augment_to is not None and augment_to != data.n_individuals:
            logger.warning(
                "Ignoring augment_to for already prepared data",
                augment_to=augment_to,
                n_individuals=data.n_individuals,
            )
        return data

    if isinstance(data, (str, Path)):
        return load_data(
            data,
            adapter=get_adapter(config.data.default_format),
            augment_to=augment_to,
            strict_observed=config.data.strict_observed,
        )

    return from_capture_matrix(
        data, augment_to=augment_to, strict_observed=config.data.strict_observed
    )


@log_performance
def fit_model(
    data: Union[EncounterData, np.ndarray, str, Path],
    config: Optional[JollyJaxConfig] = None,
    seed: Optional[int] = None,
    augment_to: Optional[int] = None,
    model_type: Union[ModelType, str] = ModelType.JOLLY_SEBER,
) -> PosteriorResult:
    """
    Fit a Jolly-Seber model to encounter histories by NUTS.

    Args:
        data: Prepared data, a binary matrix (individuals x occasions) or a
            path to a CSV/Excel file
        config: Configuration (defaults to the global configuration)
        seed: Random seed (defaults to ``sampling.random_seed``)
        augment_to: Superpopulation bound M for data augmentation
        model_type: Registered model to fit

    Returns:
        PosteriorResult with samples, summaries and derived quantities

    Examples:
        >>> result = fit_model("data/encounter_histories.csv", augment_to=500, seed=1)
        >>> summarize_posterior(result).loc["Nsuper"]
    """
    config = config or get_default_config()
    encounter_data = prepare_data(data, augment_to=augment_to, config=config)

    model = get_model(
        model_type,
        sigma_upper=config.sampling.sigma_upper,
        noncentered_epsilon=config.sampling.noncentered_epsilon,
    )

    return run_sampler(encounter_data, config=config, seed=seed, model=model)


def summarize_posterior(result: PosteriorResult, include_derived: bool = True) -> pd.DataFrame:
    """
    Posterior summary table.

    Args:
        result: Fitted posterior
        include_derived: Append the derived demographic quantities

    Returns:
        DataFrame indexed by parameter label with mean, std, median,
        interval bounds, n_eff and r_hat
    """
    if include_derived:
        return result.full_summary()
    return result.summary.copy()
