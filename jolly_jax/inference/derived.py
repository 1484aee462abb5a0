"""
Posterior-derived demographic quantities.

For every posterior draw the latent alive-and-entered states are simulated
forward from the fitted hyperparameters (not conditioned on the observed
histories) and reduced to population sizes, entrants and the
superpopulation size. Random state is an explicit ``jax.random`` key.
"""

from typing import Dict, Tuple

import jax
import jax.numpy as jnp
import numpy as np

from ..data.adapters import EncounterData
from ..models.jolly_seber import (
    parameterize,
    uncaptured_probabilities,
    log_likelihood,
    inv_logit,
    logit,
)
from ..utils.logging import get_logger


logger = get_logger(__name__)

HYPERPARAMETERS = ("mean_phi", "mean_p", "gamma", "epsilon", "sigma")


@jax.jit
def simulate_latent_states(key: jax.Array, phi: jnp.ndarray, gamma: jnp.ndarray) -> jnp.ndarray:
    """
    Draw ``z[i, t]`` (alive and entered) for every individual and occasion.

    ``z[:, 0] ~ Bernoulli(gamma[0])`` and afterwards
    ``z[:, t] ~ Bernoulli(phi[:, t-1] * z[:, t-1] + gamma[t] * prod_{k<t}(1 - z[:, k]))``.

    Args:
        key: PRNG key
        phi: Survival matrix (M, T-1)
        gamma: Removal entry probabilities (T,)

    Returns:
        Integer matrix (M, T) of latent states
    """
    n_individuals = phi.shape[0]
    keys = jax.random.split(key, gamma.shape[0])

    z_first = jax.random.bernoulli(keys[0], gamma[0], (n_individuals,)).astype(jnp.int32)

    def step(carry, inputs):
        z_prev, never_entered = carry
        step_key, phi_prev, gamma_t = inputs
        # z_prev and never_entered are never both 1
        prob = phi_prev * z_prev + gamma_t * never_entered
        z_t = jax.random.bernoulli(step_key, prob).astype(jnp.int32)
        return (z_t, never_entered * (1 - z_t)), z_t

    _, z_rest = jax.lax.scan(step, (z_first, 1 - z_first), (keys[1:], phi.T, gamma[1:]))
    return jnp.concatenate([z_first[:, None], z_rest.T], axis=1)


@jax.jit
def entry_probabilities(gamma: jnp.ndarray) -> Tuple[jnp.ndarray, jnp.ndarray]:
    """
    Inclusion probability ``psi`` and entry probabilities ``b``.

    ``cprob[t] = gamma[t] * prod_{k<t}(1 - gamma[k])``, ``psi = sum(cprob)``,
    ``b = cprob / psi``.
    """
    qgamma = 1.0 - gamma
    not_yet_entered = jnp.concatenate([jnp.ones(1, dtype=gamma.dtype), jnp.cumprod(qgamma)[:-1]])
    cprob = gamma * not_yet_entered
    psi = jnp.sum(cprob)
    return psi, cprob / psi


@jax.jit
def population_sizes(z: jnp.ndarray) -> Tuple[jnp.ndarray, jnp.ndarray, jnp.ndarray]:
    """
    Reduce one latent state matrix to ``N[t]``, ``B[t]`` and ``Nsuper``.

    An individual is a new entrant at ``t`` when it is alive at ``t`` but was
    not at ``t-1``; everyone alive at the first occasion is an entrant.
    """
    recruit = jnp.concatenate([z[:, :1], (1 - z[:, :-1]) * z[:, 1:]], axis=1)
    N = jnp.sum(z, axis=0)
    B = jnp.sum(recruit, axis=0)
    n_alive_occasions = jnp.sum(z, axis=1)
    n_super = jnp.sum(n_alive_occasions > 0)
    return N, B, n_super


def derive_draw(
    key: jax.Array,
    draw: Dict[str, jnp.ndarray],
    y: jnp.ndarray,
    first: jnp.ndarray,
    last: jnp.ndarray,
) -> Dict[str, jnp.ndarray]:
    """
    Derived quantities for a single posterior draw.

    Args:
        key: PRNG key for the latent state simulation
        draw: One value per hyperparameter (``mean_phi``, ``mean_p``,
            ``gamma``, ``epsilon``, ``sigma``)
        y, first, last: Encounter matrix and capture bounds

    Returns:
        Dict with ``sigma2``, ``psi``, ``b``, ``Nsuper``, ``N``, ``B``, the
        interval survival ``phi`` and the draw's ``log_likelihood``
    """
    phi, p = parameterize(draw["mean_phi"], draw["mean_p"], draw["epsilon"], y.shape[0])
    chi = uncaptured_probabilities(phi, p)

    z = simulate_latent_states(key, phi, draw["gamma"])
    psi, b = entry_probabilities(draw["gamma"])
    N, B, n_super = population_sizes(z)

    return {
        "sigma2": draw["sigma"] ** 2,
        "psi": psi,
        "b": b,
        "Nsuper": n_super,
        "N": N,
        "B": B,
        "phi": inv_logit(logit(draw["mean_phi"]) + draw["epsilon"]),
        "log_likelihood": log_likelihood(y, first, last, draw["gamma"], phi, p, chi),
    }


@jax.jit
def _derive_all(keys, draws, y, first, last):
    return jax.vmap(lambda k, d: derive_draw(k, d, y, first, last))(keys, draws)


def derive_quantities(
    key: jax.Array,
    samples: Dict[str, jnp.ndarray],
    data: EncounterData,
) -> Dict[str, np.ndarray]:
    """
    Derived quantities for every posterior draw.

    Draws are independent, so they are processed in one vectorized pass.

    Args:
        key: PRNG key, split once per draw
        samples: Flat posterior samples with a leading draw dimension
        data: Encounter data the samples were fitted to

    Returns:
        Dict of numpy arrays with a leading draw dimension
    """
    draws = {name: jnp.asarray(samples[name]) for name in HYPERPARAMETERS}
    n_draws = draws["mean_phi"].shape[0]
    keys = jax.random.split(key, n_draws)

    logger.debug("Deriving demographic quantities", draws=n_draws)
    derived = _derive_all(keys, draws, data.capture_matrix, data.first, data.last)
    return {name: np.asarray(value) for name, value in derived.items()}
