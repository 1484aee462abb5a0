"""Posterior sampling, diagnostics and derived quantities for jolly-jax."""

from .derived import (
    simulate_latent_states,
    entry_probabilities,
    population_sizes,
    derive_draw,
    derive_quantities,
)
from .diagnostics import (
    ConvergenceReport,
    summarize_samples,
    summarize_draws,
    check_convergence,
    require_convergence,
)
from .sampling import PosteriorResult, run_sampler

__all__ = [
    "simulate_latent_states",
    "entry_probabilities",
    "population_sizes",
    "derive_draw",
    "derive_quantities",
    "ConvergenceReport",
    "summarize_samples",
    "summarize_draws",
    "check_convergence",
    "require_convergence",
    "PosteriorResult",
    "run_sampler",
]
