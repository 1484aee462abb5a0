"""
Tests for the latent state simulator and the demographic aggregates.
"""

import pytest
import numpy as np
import jax
import jax.numpy as jnp

from jolly_jax.inference.derived import (
    simulate_latent_states,
    entry_probabilities,
    population_sizes,
    derive_quantities,
)


class TestSimulateLatentStates:

    def test_shape_and_values(self, rng_key):
        phi = jnp.full((30, 4), 0.7)
        gamma = jnp.array([0.3, 0.2, 0.2, 0.2, 0.2])
        z = np.asarray(simulate_latent_states(rng_key, phi, gamma))

        assert z.shape == (30, 5)
        assert set(np.unique(z)) <= {0, 1}

    def test_certain_entry_and_survival(self, rng_key):
        z = simulate_latent_states(rng_key, jnp.ones((6, 3)), jnp.array([1.0, 0.5, 0.5, 0.5]))
        assert np.all(np.asarray(z) == 1)

    def test_no_entry(self, rng_key):
        z = simulate_latent_states(rng_key, jnp.full((6, 3), 0.9), jnp.zeros(4))
        assert np.all(np.asarray(z) == 0)

    def test_certain_entry_at_last_occasion(self, rng_key):
        phi = jnp.full((50, 3), 0.5)
        gamma = jnp.array([0.2, 0.2, 0.2, 1.0])
        z = np.asarray(simulate_latent_states(rng_key, phi, gamma))

        # Everyone not yet entered enters at the last occasion
        assert np.all(z.sum(axis=1) > 0)

    def test_no_reentry_after_death(self, rng_key):
        phi = jnp.full((200, 7), 0.5)
        gamma = jnp.full(8, 0.3)
        z = np.asarray(simulate_latent_states(rng_key, phi, gamma))

        # Each row is a single contiguous run of ones
        starts = np.sum(np.diff(np.concatenate([np.zeros((200, 1), int), z], axis=1), axis=1) == 1, axis=1)
        assert np.all(starts <= 1)

    def test_same_key_same_states(self, rng_key):
        phi = jnp.full((40, 4), 0.6)
        gamma = jnp.full(5, 0.25)
        np.testing.assert_array_equal(
            simulate_latent_states(rng_key, phi, gamma),
            simulate_latent_states(rng_key, phi, gamma),
        )

    def test_first_occasion_frequency(self):
        key = jax.random.PRNGKey(3)
        z = np.asarray(simulate_latent_states(key, jnp.full((4000, 2), 0.5), jnp.array([0.3, 0.1, 0.1])))
        assert z[:, 0].mean() == pytest.approx(0.3, abs=0.03)


class TestEntryProbabilities:

    def test_two_occasions(self):
        psi, b = entry_probabilities(jnp.array([0.5, 0.5]))
        assert float(psi) == pytest.approx(0.75, rel=1e-6)
        np.testing.assert_allclose(b, [2 / 3, 1 / 3], rtol=1e-6)

    def test_b_sums_to_one(self, rng):
        gamma = jnp.asarray(rng.uniform(0.05, 0.95, size=9))
        psi, b = entry_probabilities(gamma)

        assert 0.0 < float(psi) <= 1.0
        assert float(jnp.sum(b)) == pytest.approx(1.0, rel=1e-5)
        assert np.all(np.asarray(b) >= 0.0)

    def test_psi_is_one_minus_never_entered(self, rng):
        gamma = rng.uniform(0.05, 0.95, size=6)
        psi, _ = entry_probabilities(jnp.asarray(gamma))
        assert float(psi) == pytest.approx(1.0 - np.prod(1.0 - gamma), rel=1e-5)


class TestPopulationSizes:

    def test_hand_example(self):
        z = jnp.array([
            [1, 1, 0, 0],
            [0, 1, 1, 1],
            [0, 0, 0, 0],
            [0, 0, 0, 1],
        ])
        N, B, n_super = population_sizes(z)

        np.testing.assert_array_equal(N, [1, 2, 1, 2])
        np.testing.assert_array_equal(B, [1, 1, 0, 1])
        assert int(n_super) == 3

    def test_first_occasion_entrants_equal_size(self, rng_key):
        z = simulate_latent_states(rng_key, jnp.full((100, 5), 0.7), jnp.full(6, 0.2))
        N, B, n_super = population_sizes(z)

        assert int(B[0]) == int(N[0])
        assert int(n_super) <= 100
        assert np.all(np.asarray(N) <= 100)
        # Without re-entry every entered individual is counted once
        assert int(jnp.sum(B)) == int(n_super)


class TestDeriveQuantities:

    def test_outputs_per_draw(self, sample_data, rng_key):
        n_draws = 6
        samples = {
            "mean_phi": np.full(n_draws, 0.7),
            "mean_p": np.full(n_draws, 0.4),
            "gamma": np.tile([0.2, 0.1, 0.1, 0.1, 0.1], (n_draws, 1)),
            "epsilon": np.zeros((n_draws, 4)),
            "sigma": np.linspace(0.1, 1.0, n_draws),
        }
        derived = derive_quantities(rng_key, samples, sample_data)

        assert derived["N"].shape == (n_draws, 5)
        assert derived["B"].shape == (n_draws, 5)
        assert derived["b"].shape == (n_draws, 5)
        assert derived["phi"].shape == (n_draws, 4)
        assert derived["Nsuper"].shape == (n_draws,)
        assert derived["log_likelihood"].shape == (n_draws,)

        M = sample_data.n_individuals
        assert np.all(derived["Nsuper"] <= M)
        assert np.all(derived["N"] <= M)
        np.testing.assert_array_equal(derived["B"][:, 0], derived["N"][:, 0])
        np.testing.assert_allclose(derived["sigma2"], samples["sigma"] ** 2, rtol=1e-6)
        np.testing.assert_allclose(derived["b"].sum(axis=1), 1.0, rtol=1e-5)
        np.testing.assert_allclose(derived["phi"], 0.7, rtol=1e-5)

        # Identical draws give identical likelihoods
        np.testing.assert_allclose(derived["log_likelihood"], derived["log_likelihood"][0], rtol=1e-6)
        assert np.all(np.isfinite(derived["log_likelihood"]))

    def test_superpopulation_covers_detected_on_average(self, sample_data):
        n_draws = 300
        samples = {
            "mean_phi": np.full(n_draws, 0.7),
            "mean_p": np.full(n_draws, 0.45),
            "gamma": np.full((n_draws, 5), 0.3),
            "epsilon": np.zeros((n_draws, 4)),
            "sigma": np.full(n_draws, 0.5),
        }
        derived = derive_quantities(jax.random.PRNGKey(99), samples, sample_data)

        assert derived["Nsuper"].mean() >= sample_data.n_observed
        assert derived["Nsuper"].max() <= sample_data.n_individuals
