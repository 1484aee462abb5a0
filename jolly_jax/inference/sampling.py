"""
Posterior sampling for jolly-jax models with numpyro's NUTS.

The sampler is an external collaborator: this module only binds the model to
the data, runs the chains and assembles a :class:`PosteriorResult` with
summaries, convergence diagnostics and derived demographic quantities.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import jax
import numpy as np
import pandas as pd
from numpyro.infer import MCMC, NUTS

from .derived import derive_quantities
from .diagnostics import (
    ConvergenceReport,
    summarize_samples,
    summarize_draws,
    check_convergence,
    require_convergence,
)
from ..config.settings import JollyJaxConfig, get_default_config
from ..core.exceptions import SamplingError
from ..data.adapters import EncounterData
from ..models.base import CaptureRecaptureModel
from ..models.jolly_seber import JollySeberModel
from ..utils.logging import get_logger


logger = get_logger(__name__)


@dataclass
class PosteriorResult:
    """Posterior draws and their summaries for one fitted data set."""
    samples: Dict[str, np.ndarray]
    derived: Dict[str, np.ndarray]
    summary: pd.DataFrame
    derived_summary: pd.DataFrame
    convergence: ConvergenceReport
    num_divergences: int
    num_chains: int
    num_samples: int
    n_individuals: int
    n_occasions: int
    n_observed: int
    sampling_time: float
    random_seed: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def converged(self) -> bool:
        return self.convergence.converged

    def flat_samples(self) -> Dict[str, np.ndarray]:
        """Draws with the chain dimension merged into the draw dimension."""
        return _merge_chains(self.samples)

    def full_summary(self) -> pd.DataFrame:
        """Hyperparameter and derived summaries in one table."""
        return pd.concat([self.summary, self.derived_summary])


def _merge_chains(samples):
    return {name: values.reshape((-1,) + values.shape[2:]) for name, values in samples.items()}


def _resolve_key(rng_key, seed: Optional[int], config: JollyJaxConfig):
    if rng_key is not None:
        return rng_key, seed
    if seed is None:
        seed = config.sampling.random_seed
    if seed is None:
        seed = int(np.random.default_rng().integers(0, 2**31 - 1))
        logger.info("No random seed given, drew one", seed=seed)
    return jax.random.PRNGKey(seed), seed


def run_sampler(
    data: EncounterData,
    config: Optional[JollyJaxConfig] = None,
    rng_key: Optional[jax.Array] = None,
    seed: Optional[int] = None,
    model: Optional[CaptureRecaptureModel] = None,
) -> PosteriorResult:
    """
    Draw from the posterior of ``model`` given ``data``.

    Args:
        data: Augmented encounter data
        config: Configuration (defaults to the global configuration)
        rng_key: Explicit PRNG key; takes precedence over ``seed``
        seed: Integer seed used when no key is given
        model: Model instance (defaults to a Jolly-Seber model built from
            the sampling configuration)

    Returns:
        PosteriorResult with samples grouped by chain

    Raises:
        SamplingError: If the sampler fails
        ConvergenceError: If ``diagnostics.fail_on_nonconvergence`` is set
            and any R-hat exceeds the threshold
    """
    config = config or get_default_config()
    sampling = config.sampling
    diagnostics = config.diagnostics

    if model is None:
        model = JollySeberModel(
            sigma_upper=sampling.sigma_upper,
            noncentered_epsilon=sampling.noncentered_epsilon,
        )

    key, seed = _resolve_key(rng_key, seed, config)
    sample_key, derive_key = jax.random.split(key)

    kernel = NUTS(
        model.numpyro_model(data),
        target_accept_prob=sampling.target_accept_prob,
        max_tree_depth=sampling.max_tree_depth,
    )
    mcmc = MCMC(
        kernel,
        num_warmup=sampling.num_warmup,
        num_samples=sampling.num_samples,
        num_chains=sampling.num_chains,
        chain_method=sampling.chain_method,
        progress_bar=sampling.progress_bar,
    )

    logger.info(
        "Starting NUTS",
        individuals=data.n_individuals,
        occasions=data.n_occasions,
        chains=sampling.num_chains,
        warmup=sampling.num_warmup,
        samples=sampling.num_samples,
    )

    start_time = time.time()
    try:
        mcmc.run(sample_key, extra_fields=("diverging",), **model.model_args(data))
    except (RuntimeError, ValueError, FloatingPointError) as e:
        logger.error(f"Sampler failed: {e}")
        raise SamplingError(sampler="NUTS", reason=str(e)) from e
    sampling_time = time.time() - start_time

    samples = {
        name: np.asarray(values)
        for name, values in mcmc.get_samples(group_by_chain=True).items()
    }
    num_divergences = int(np.sum(mcmc.get_extra_fields()["diverging"]))
    if num_divergences and diagnostics.warn_on_divergences:
        logger.warning("Divergent transitions after warmup", divergences=num_divergences)

    summary = summarize_samples(samples, prob=diagnostics.credible_interval)
    convergence = check_convergence(summary, threshold=diagnostics.rhat_threshold)
    if diagnostics.fail_on_nonconvergence:
        require_convergence(convergence, num_divergences=num_divergences)

    derived = derive_quantities(derive_key, _merge_chains(samples), data)
    derived_summary = summarize_draws(derived, prob=diagnostics.credible_interval)

    logger.info(
        "Sampling finished",
        seconds=round(sampling_time, 2),
        divergences=num_divergences,
        converged=convergence.converged,
    )

    return PosteriorResult(
        samples=samples,
        derived=derived,
        summary=summary,
        derived_summary=derived_summary,
        convergence=convergence,
        num_divergences=num_divergences,
        num_chains=sampling.num_chains,
        num_samples=sampling.num_samples,
        n_individuals=data.n_individuals,
        n_occasions=data.n_occasions,
        n_observed=data.n_observed,
        sampling_time=sampling_time,
        random_seed=seed,
        metadata={
            "model_type": model.model_type.value,
            "num_warmup": sampling.num_warmup,
            "target_accept_prob": sampling.target_accept_prob,
            "noncentered_epsilon": sampling.noncentered_epsilon,
            "sigma_upper": sampling.sigma_upper,
            "credible_interval": diagnostics.credible_interval,
        },
    )

