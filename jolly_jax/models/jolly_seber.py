"""
Jolly-Seber model as a restricted occupancy model.

Each row of the augmented encounter matrix is a superpopulation slot with a
hidden alive-and-entered state per occasion. Entry follows the removal
probabilities ``gamma[t]``, survival ``phi[i, t]`` varies by interval through
the random effects ``epsilon[t]`` and detection ``p`` is constant. The
unknown entry occasion is summed out exactly, so the likelihood has no
discrete latent variables and can be sampled with NUTS.

All occasion arrays are 0-based; ``first``/``last`` hold 1-based occasion
numbers with 0 for never-detected rows.
"""

import functools
from dataclasses import dataclass
from typing import Dict, Tuple, Union, Any

import jax
import jax.numpy as jnp
import numpy as np
import numpyro
import numpyro.distributions as dist
from jax.scipy.special import logsumexp
from numpyro import handlers
from numpyro.infer.reparam import LocScaleReparam

from .base import CaptureRecaptureModel, ModelType
from ..data.adapters import EncounterData
from ..core.exceptions import ModelSpecificationError, ValidationError
from ..utils.logging import get_logger
from ..utils.validation import (
    validate_array_dimensions,
    validate_probability,
    validate_open_interval,
)


logger = get_logger(__name__)


@jax.jit
def logit(x: jnp.ndarray) -> jnp.ndarray:
    """Logit link function."""
    return jnp.log(x) - jnp.log1p(-x)


@jax.jit
def inv_logit(x: jnp.ndarray) -> jnp.ndarray:
    """Inverse logit (sigmoid) function."""
    return jax.nn.sigmoid(x)


@functools.partial(jax.jit, static_argnames=("n_individuals",))
def parameterize(
    mean_phi: float,
    mean_p: float,
    epsilon: jnp.ndarray,
    n_individuals: int,
) -> Tuple[jnp.ndarray, jnp.ndarray]:
    """
    Survival and detection matrices for one set of hyperparameters.

    Individuals are homogeneous: survival varies only by interval and
    detection is constant. Individual covariates would enter here without
    touching the recursion or the likelihood.

    Args:
        mean_phi: Mean survival probability
        mean_p: Mean detection probability
        epsilon: Interval random effects on the logit scale, length T-1
        n_individuals: Number of rows M

    Returns:
        ``phi`` of shape (M, T-1) and ``p`` of shape (M, T)
    """
    n_intervals = epsilon.shape[0]
    phi_t = inv_logit(logit(mean_phi) + epsilon)
    phi = jnp.broadcast_to(phi_t, (n_individuals, n_intervals))
    p = jnp.full((n_individuals, n_intervals + 1), mean_p, dtype=phi_t.dtype)
    return phi, p


@jax.jit
def uncaptured_probabilities(phi: jnp.ndarray, p: jnp.ndarray) -> jnp.ndarray:
    """
    Probability of never being seen again after each occasion.

    ``chi[:, T-1] = 1`` and, backwards,
    ``chi[:, t] = (1 - phi[:, t]) + phi[:, t] * (1 - p[:, t+1]) * chi[:, t+1]``.

    Args:
        phi: Survival matrix (M, T-1)
        p: Detection matrix (M, T)

    Returns:
        ``chi`` of shape (M, T)
    """
    chi_last = jnp.ones(p.shape[0], dtype=p.dtype)

    def step(chi_next, inputs):
        phi_t, p_next = inputs
        chi_t = (1.0 - phi_t) + phi_t * (1.0 - p_next) * chi_next
        return chi_t, chi_t

    # reverse=True keeps the outputs in occasion order
    _, chi_head = jax.lax.scan(step, chi_last, (phi.T, p[:, 1:].T), reverse=True)
    return jnp.concatenate([chi_head.T, chi_last[:, None]], axis=1)


@jax.jit
def individual_log_likelihoods(
    y: jnp.ndarray,
    first: jnp.ndarray,
    last: jnp.ndarray,
    gamma: jnp.ndarray,
    phi: jnp.ndarray,
    p: jnp.ndarray,
    chi: jnp.ndarray,
) -> jnp.ndarray:
    """
    Log-likelihood of every encounter history with the entry occasion summed out.

    Detected rows enumerate entry at occasions ``1..first``; never-detected
    rows enumerate entry at ``1..T`` plus "never entered". Every product of
    probabilities is accumulated as a sum of logs.

    Args:
        y: Encounter matrix (M, T)
        first: First detection occasion, 1-based, 0 if never detected
        last: Last detection occasion, 1-based, 0 if never detected
        gamma: Removal entry probabilities (T,)
        phi: Survival matrix (M, T-1)
        p: Detection matrix (M, T)
        chi: Never-seen-again matrix (M, T)

    Returns:
        Vector of M log-likelihood contributions
    """
    n_individuals, n_occasions = y.shape
    occasions = jnp.arange(n_occasions)
    intervals = jnp.arange(n_occasions - 1)

    log_p = jnp.log(p)
    log_qp = jnp.log1p(-p)
    log_phi = jnp.log(phi)
    log_chi = jnp.log(chi)

    # log Pr(first entry at occasion t) = sum_{k<t} log(1-gamma[k]) + log gamma[t]
    log_qgamma = jnp.log1p(-gamma)
    log_not_yet_entered = jnp.concatenate([jnp.zeros(1, dtype=gamma.dtype), jnp.cumsum(log_qgamma)[:-1]])
    log_entry = log_not_yet_entered + jnp.log(gamma)

    detected = first > 0
    # Undetected rows get a harmless dummy bound so the unused branch stays finite
    f = jnp.where(detected, first, 1) - 1
    l = jnp.where(detected, last, 1) - 1

    # Case A, before first capture: enter at e, then survive undetected until f
    unseen_step = log_qp[:, :-1] + log_phi
    in_path = (
        (intervals[None, None, :] >= occasions[None, :, None])
        & (intervals[None, None, :] < f[:, None, None])
    )
    log_path = jnp.sum(jnp.where(in_path, unseen_step[:, None, :], 0.0), axis=-1)
    log_p_first = jnp.take_along_axis(log_p, f[:, None], axis=1)[:, 0]
    entry_terms = log_entry[None, :] + log_path + log_p_first[:, None]
    entry_terms = jnp.where(occasions[None, :] <= f[:, None], entry_terms, -jnp.inf)
    log_before_first = logsumexp(entry_terms, axis=1)

    # Case A, first to last capture: survive each interval, detection as observed
    between = (occasions[None, :] > f[:, None]) & (occasions[None, :] <= l[:, None])
    log_phi_into = jnp.concatenate([jnp.zeros((n_individuals, 1), dtype=log_phi.dtype), log_phi], axis=1)
    log_detection = jnp.where(y == 1, log_p, log_qp)
    log_between = jnp.sum(jnp.where(between, log_phi_into + log_detection, 0.0), axis=1)

    # Case A, after last capture
    log_after_last = jnp.take_along_axis(log_chi, l[:, None], axis=1)[:, 0]

    detected_ll = log_before_first + log_between + log_after_last

    # Case B: enter at t and stay unseen, or never enter
    unseen_terms = log_entry[None, :] + log_qp + log_chi
    log_never_entered = jnp.broadcast_to(jnp.sum(log_qgamma), (n_individuals, 1))
    undetected_ll = logsumexp(jnp.concatenate([unseen_terms, log_never_entered], axis=1), axis=1)

    return jnp.where(detected, detected_ll, undetected_ll)


@jax.jit
def log_likelihood(y, first, last, gamma, phi, p, chi) -> jnp.ndarray:
    """Total log-likelihood of all encounter histories."""
    return jnp.sum(individual_log_likelihoods(y, first, last, gamma, phi, p, chi))


@dataclass
class JollySeberParameters:
    """One draw of the hyperparameters."""
    mean_phi: Union[float, jnp.ndarray]
    mean_p: Union[float, jnp.ndarray]
    gamma: jnp.ndarray
    epsilon: jnp.ndarray
    sigma: Union[float, jnp.ndarray] = 1.0

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "JollySeberParameters":
        return cls(
            mean_phi=values["mean_phi"],
            mean_p=values["mean_p"],
            gamma=jnp.asarray(values["gamma"]),
            epsilon=jnp.asarray(values["epsilon"]),
            sigma=values.get("sigma", 1.0),
        )

    def to_dict(self) -> Dict[str, np.ndarray]:
        return {
            "mean_phi": np.asarray(self.mean_phi),
            "mean_p": np.asarray(self.mean_p),
            "gamma": np.asarray(self.gamma),
            "epsilon": np.asarray(self.epsilon),
            "sigma": np.asarray(self.sigma),
        }


def jolly_seber_model(
    y: jnp.ndarray,
    first: jnp.ndarray,
    last: jnp.ndarray,
    sigma_upper: float = 5.0,
    noncentered: bool = True,
) -> None:
    """
    numpyro model: uniform priors, normal interval effects, marginal likelihood.

    The likelihood enters the joint density through ``numpyro.factor``.
    """
    n_individuals, n_occasions = y.shape

    mean_phi = numpyro.sample("mean_phi", dist.Uniform(0.0, 1.0))
    mean_p = numpyro.sample("mean_p", dist.Uniform(0.0, 1.0))
    sigma = numpyro.sample("sigma", dist.Uniform(0.0, sigma_upper))

    with numpyro.plate("occasions", n_occasions):
        gamma = numpyro.sample("gamma", dist.Uniform(0.0, 1.0))

    reparam_config = {"epsilon": LocScaleReparam(0)} if noncentered else {}
    with handlers.reparam(config=reparam_config):
        with numpyro.plate("intervals", n_occasions - 1):
            epsilon = numpyro.sample("epsilon", dist.Normal(0.0, sigma))

    phi, p = parameterize(mean_phi, mean_p, epsilon, n_individuals)
    chi = uncaptured_probabilities(phi, p)
    numpyro.factor("encounter_histories", log_likelihood(y, first, last, gamma, phi, p, chi))


class JollySeberModel(CaptureRecaptureModel):
    """
    Jolly-Seber restricted occupancy model with data augmentation.

    Hyperparameters:
    - mean_phi: mean survival probability
    - mean_p: detection probability
    - gamma[t]: removal entry probability per occasion
    - epsilon[t]: interval deviations of logit survival, Normal(0, sigma)
    - sigma: standard deviation of epsilon, Uniform(0, sigma_upper)
    """

    parameter_order = ["mean_phi", "mean_p", "gamma", "epsilon", "sigma"]

    def __init__(
        self,
        model_type: ModelType = ModelType.JOLLY_SEBER,
        sigma_upper: float = 5.0,
        noncentered_epsilon: bool = True,
    ):
        super().__init__(model_type)
        self.sigma_upper = sigma_upper
        self.noncentered_epsilon = noncentered_epsilon

    def numpyro_model(self, data: EncounterData):
        """The numpyro model bound to this instance's prior settings."""
        self.validate_data(data)
        return functools.partial(
            jolly_seber_model,
            sigma_upper=self.sigma_upper,
            noncentered=self.noncentered_epsilon,
        )

    def model_args(self, data: EncounterData) -> Dict[str, jnp.ndarray]:
        """Keyword arguments the numpyro model is run with."""
        return {"y": data.capture_matrix, "first": data.first, "last": data.last}

    def check_parameters(self, params: JollySeberParameters, n_occasions: int) -> None:
        """
        Shape and support checks for concrete hyperparameter values.

        Raises:
            ModelSpecificationError: For arrays of the wrong length
            ParameterDomainError: For values outside their support
        """
        gamma = np.asarray(params.gamma)
        epsilon = np.asarray(params.epsilon)

        for name, values, length in (
            ("gamma", gamma, n_occasions),
            ("epsilon", epsilon, n_occasions - 1),
        ):
            try:
                validate_array_dimensions(values, expected_shape=(length,), name=name)
            except ValidationError as e:
                raise ModelSpecificationError(
                    parameter=name,
                    reason=f"expected shape ({length},), got {values.shape}",
                ) from e

        validate_open_interval(params.mean_phi, 0.0, 1.0, name="mean_phi")
        validate_open_interval(params.mean_p, 0.0, 1.0, name="mean_p")
        validate_open_interval(gamma, 0.0, 1.0, name="gamma")
        validate_open_interval(params.sigma, 0.0, self.sigma_upper, name="sigma")
        validate_open_interval(epsilon, -np.inf, np.inf, name="epsilon")

    def probabilities(
        self, params: JollySeberParameters, data: EncounterData, validate: bool = True
    ) -> Tuple[jnp.ndarray, jnp.ndarray, jnp.ndarray]:
        """
        Derived ``phi``, ``p`` and ``chi`` matrices for one set of hyperparameters.

        With ``validate`` the hyperparameters and every derived probability are
        checked and a violation raises instead of propagating NaN.
        """
        if validate:
            self.check_parameters(params, data.n_occasions)

        phi, p = parameterize(
            jnp.asarray(params.mean_phi),
            jnp.asarray(params.mean_p),
            jnp.asarray(params.epsilon),
            data.n_individuals,
        )
        chi = uncaptured_probabilities(phi, p)

        if validate:
            validate_probability(phi, name="phi")
            validate_probability(p, name="p")
            validate_probability(chi, name="chi")

        return phi, p, chi

    def individual_log_likelihoods(
        self, params: JollySeberParameters, data: EncounterData, validate: bool = True
    ) -> jnp.ndarray:
        """Per-individual log-likelihood contributions."""
        phi, p, chi = self.probabilities(params, data, validate=validate)
        return individual_log_likelihoods(
            data.capture_matrix, data.first, data.last,
            jnp.asarray(params.gamma), phi, p, chi,
        )

    def log_likelihood(
        self, params: JollySeberParameters, data: EncounterData, validate: bool = True
    ) -> float:
        """Total log-likelihood of the encounter histories (priors excluded)."""
        return float(jnp.sum(self.individual_log_likelihoods(params, data, validate=validate)))

    def validate_data(self, data: EncounterData) -> None:
        """Jolly-Seber specific data checks on top of the base checks."""
        super().validate_data(data)

        if data.n_augmented == 0:
            logger.warning(
                "No all-zero pseudo-individuals in the data; the superpopulation "
                "estimate is bounded by the number of detected animals"
            )
