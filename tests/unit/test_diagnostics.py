"""
Tests for posterior summaries and the convergence gate.
"""

import pytest
import numpy as np
import pandas as pd

from jolly_jax.core.exceptions import ConvergenceError, SamplingError
from jolly_jax.inference.diagnostics import (
    summarize_samples,
    summarize_draws,
    check_convergence,
    require_convergence,
)


@pytest.fixture
def mixed_chains(rng):
    """Two well-mixed chains for every site plus an auxiliary site."""
    return {
        "mean_phi": rng.normal(0.7, 0.05, size=(2, 400)),
        "gamma": rng.uniform(0.1, 0.3, size=(2, 400, 3)),
        "epsilon_decentered": rng.normal(size=(2, 400, 2)),
    }


class TestSummarizeSamples:

    def test_labels_and_columns(self, mixed_chains):
        summary = summarize_samples(mixed_chains, prob=0.9)

        assert list(summary.index) == ["mean_phi", "gamma[1]", "gamma[2]", "gamma[3]"]
        assert "epsilon_decentered[1]" not in summary.index
        assert list(summary.columns) == ["mean", "std", "median", "lower", "upper", "n_eff", "r_hat"]

    def test_statistics(self, mixed_chains):
        summary = summarize_samples(mixed_chains)
        row = summary.loc["mean_phi"]

        assert row["mean"] == pytest.approx(mixed_chains["mean_phi"].mean(), rel=1e-6)
        assert row["lower"] < row["median"] < row["upper"]
        assert row["r_hat"] == pytest.approx(1.0, abs=0.05)
        assert row["n_eff"] > 100


class TestSummarizeDraws:

    def test_quantile_interval(self):
        draws = {"Nsuper": np.arange(1, 1001), "N": np.tile([[10.0, 20.0]], (1000, 1))}
        summary = summarize_draws(draws, prob=0.9)

        row = summary.loc["Nsuper"]
        assert row["mean"] == pytest.approx(500.5)
        assert row["lower"] == pytest.approx(np.quantile(np.arange(1, 1001), 0.05))
        assert row["upper"] == pytest.approx(np.quantile(np.arange(1, 1001), 0.95))
        assert np.isnan(row["r_hat"])

        assert summary.loc["N[2]", "median"] == pytest.approx(20.0)
        assert summary.loc["N[1]", "std"] == pytest.approx(0.0)


class TestConvergence:

    def test_all_below_threshold(self):
        summary = pd.DataFrame({"r_hat": [1.0, 1.02]}, index=["mean_phi", "mean_p"])
        report = check_convergence(summary, threshold=1.1)

        assert report.converged
        assert report.failed_parameters == {}
        assert report.max_r_hat == pytest.approx(1.02)
        require_convergence(report)

    def test_failing_parameter(self):
        summary = pd.DataFrame({"r_hat": [1.0, 1.4]}, index=["mean_phi", "gamma[2]"])
        report = check_convergence(summary, threshold=1.1)

        assert not report.converged
        assert report.failed_parameters == {"gamma[2]": pytest.approx(1.4)}

        with pytest.raises(ConvergenceError, match="gamma\\[2\\]") as excinfo:
            require_convergence(report, num_divergences=3)
        assert isinstance(excinfo.value, SamplingError)
        assert excinfo.value.failed_parameters == report.failed_parameters

    def test_nan_rhat_does_not_fail(self):
        summary = pd.DataFrame({"r_hat": [1.01, np.nan]}, index=["mean_phi", "gamma[1]"])
        report = check_convergence(summary)

        assert report.converged
        assert report.undefined_parameters == ["gamma[1]"]
        assert report.to_dict()["undefined_parameters"] == ["gamma[1]"]
