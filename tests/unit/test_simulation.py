"""
Tests for the Jolly-Seber data simulator.
"""

import pytest
import numpy as np

from jolly_jax.core.exceptions import ModelSpecificationError
from jolly_jax.data.simulation import simulate_jolly_seber, default_entry_probabilities


class TestSimulateJollySeber:

    def test_shapes_and_augmentation(self, rng):
        sim = simulate_jolly_seber(200, 6, phi=0.7, p=0.5, augment_to=400, rng=rng)

        assert sim.capture_matrix.shape == (400, 6)
        assert sim.state.shape == (200, 6)
        assert sim.capture_matrix[:sim.n_detected].sum(axis=1).min() >= 1
        assert sim.capture_matrix[sim.n_detected:].sum() == 0

    def test_true_sizes_are_consistent(self, rng):
        sim = simulate_jolly_seber(300, 5, phi=0.8, p=0.4, rng=rng)

        assert sim.B.sum() == 300
        np.testing.assert_array_equal(sim.N, sim.state.sum(axis=0))
        assert sim.N[0] == sim.B[0]
        assert sim.n_detected <= 300

    def test_detections_only_while_alive(self, rng):
        sim = simulate_jolly_seber(150, 7, phi=0.6, p=0.9, rng=rng)
        detected_rows = sim.state[sim.state.sum(axis=1) > 0]
        # every animal is alive over one contiguous stretch
        runs = np.sum(np.diff(np.column_stack([np.zeros(len(detected_rows)), detected_rows]), axis=1) == 1, axis=1)
        assert np.all(runs == 1)

    def test_reproducible_with_seeded_generator(self):
        a = simulate_jolly_seber(100, 5, 0.7, 0.5, rng=np.random.default_rng(5))
        b = simulate_jolly_seber(100, 5, 0.7, 0.5, rng=np.random.default_rng(5))
        np.testing.assert_array_equal(a.capture_matrix, b.capture_matrix)

    def test_default_entry_probabilities(self):
        b = default_entry_probabilities(5)
        assert b[0] == pytest.approx(0.34)
        assert b.sum() == pytest.approx(1.0)

    def test_invalid_arguments(self, rng):
        with pytest.raises(ModelSpecificationError):
            simulate_jolly_seber(100, 1, 0.7, 0.5, rng=rng)
        with pytest.raises(ModelSpecificationError, match="entry_probs"):
            simulate_jolly_seber(100, 3, 0.7, 0.5, entry_probs=[0.5, 0.2, 0.2], rng=rng)
        with pytest.raises(ModelSpecificationError, match="augment_to"):
            simulate_jolly_seber(100, 4, 0.7, 0.9, augment_to=2, rng=rng)
