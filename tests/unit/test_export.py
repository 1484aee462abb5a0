"""
Tests for flattening posterior draws and exporting them.
"""

import numpy as np
import pandas as pd

from jolly_jax.core.export import ResultsExporter
from jolly_jax.inference.diagnostics import ConvergenceReport
from jolly_jax.inference.sampling import PosteriorResult


def make_result(n_chains=2, n_draws=3):
    n_total = n_chains * n_draws
    samples = {
        "mean_phi": np.arange(n_total, dtype=float).reshape(n_chains, n_draws),
        "gamma": np.arange(n_total * 2, dtype=float).reshape(n_chains, n_draws, 2),
        "epsilon_decentered": np.zeros((n_chains, n_draws, 1)),
    }
    derived = {"Nsuper": np.arange(n_total) + 10}
    return PosteriorResult(
        samples=samples,
        derived=derived,
        summary=pd.DataFrame(),
        derived_summary=pd.DataFrame(),
        convergence=ConvergenceReport(converged=True, threshold=1.1, max_r_hat=1.0),
        num_divergences=0,
        num_chains=n_chains,
        num_samples=n_draws,
        n_individuals=20,
        n_occasions=2,
        n_observed=8,
        sampling_time=0.0,
    )


class TestFlatSamples:

    def test_chains_merged_in_order(self):
        flat = make_result().flat_samples()

        assert flat["mean_phi"].shape == (6,)
        assert flat["gamma"].shape == (6, 2)
        np.testing.assert_array_equal(flat["mean_phi"], np.arange(6.0))
        np.testing.assert_array_equal(flat["gamma"][4], [8.0, 9.0])


class TestExportDraws:

    def test_columns_follow_flat_samples(self, tmp_path):
        result = make_result()
        draws = ResultsExporter().export_draws(result, tmp_path / "draws.csv")

        assert list(draws["chain"]) == [0, 0, 0, 1, 1, 1]
        assert list(draws["draw"]) == [0, 1, 2, 0, 1, 2]
        np.testing.assert_array_equal(draws["mean_phi"], result.flat_samples()["mean_phi"])
        np.testing.assert_array_equal(draws["gamma[2]"], result.flat_samples()["gamma"][:, 1])
        np.testing.assert_array_equal(draws["Nsuper"], np.arange(6) + 10)
        assert not any(column.startswith("epsilon_decentered") for column in draws.columns)
        assert (tmp_path / "draws.csv").exists()

    def test_without_derived(self):
        draws = ResultsExporter().export_draws(make_result(), include_derived=False)
        assert "Nsuper" not in draws.columns
