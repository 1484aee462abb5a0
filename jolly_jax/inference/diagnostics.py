"""
Posterior summaries and convergence checks.

Summaries are tidy DataFrames with one row per scalar quantity, labelled
1-based (``gamma[1]``, ``N[3]``) to match occasion numbering.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

import numpy as np
import pandas as pd
from numpyro.diagnostics import summary as numpyro_summary

from ..core.exceptions import ConvergenceError
from ..utils.logging import get_logger


logger = get_logger(__name__)

SUMMARY_COLUMNS = ["mean", "std", "median", "lower", "upper", "n_eff", "r_hat"]


def _element_labels(name: str, shape) -> list:
    if not shape:
        return [name]
    return [
        f"{name}[{','.join(str(i + 1) for i in index)}]"
        for index in np.ndindex(*shape)
    ]


def summarize_samples(samples_by_chain: Dict[str, np.ndarray], prob: float = 0.95) -> pd.DataFrame:
    """
    Summary statistics with split R-hat and effective sample size.

    Args:
        samples_by_chain: Arrays shaped (chains, draws, ...)
        prob: Mass of the highest posterior density interval

    Returns:
        DataFrame indexed by parameter label
    """
    # Auxiliary sites of the reparameterized model are not reported
    sites = {
        name: np.asarray(values)
        for name, values in samples_by_chain.items()
        if not name.endswith("_decentered")
    }
    stats = numpyro_summary(sites, prob=prob, group_by_chain=True)

    rows = []
    for name, site_stats in stats.items():
        interval_keys = [key for key in site_stats if key.endswith("%")]
        lower_key, upper_key = interval_keys[0], interval_keys[-1]
        shape = np.shape(site_stats["mean"])
        for label, index in zip(_element_labels(name, shape), np.ndindex(*shape)):
            rows.append({
                "parameter": label,
                "mean": np.asarray(site_stats["mean"])[index],
                "std": np.asarray(site_stats["std"])[index],
                "median": np.asarray(site_stats["median"])[index],
                "lower": np.asarray(site_stats[lower_key])[index],
                "upper": np.asarray(site_stats[upper_key])[index],
                "n_eff": np.asarray(site_stats["n_eff"])[index],
                "r_hat": np.asarray(site_stats["r_hat"])[index],
            })

    return pd.DataFrame(rows, columns=["parameter"] + SUMMARY_COLUMNS).set_index("parameter")


def summarize_draws(draws: Dict[str, np.ndarray], prob: float = 0.95) -> pd.DataFrame:
    """
    Summary statistics for flat draws (leading draw dimension).

    Intervals are equal-tailed quantiles; ``n_eff`` and ``r_hat`` are not
    defined without chain structure and are left as NaN.
    """
    tail = (1.0 - prob) / 2.0
    rows = []
    for name, values in draws.items():
        values = np.asarray(values, dtype=float)
        shape = values.shape[1:]
        flat = values.reshape(values.shape[0], -1)
        for j, label in enumerate(_element_labels(name, shape)):
            column = flat[:, j]
            rows.append({
                "parameter": label,
                "mean": column.mean(),
                "std": column.std(),
                "median": np.median(column),
                "lower": np.quantile(column, tail),
                "upper": np.quantile(column, 1.0 - tail),
                "n_eff": np.nan,
                "r_hat": np.nan,
            })

    return pd.DataFrame(rows, columns=["parameter"] + SUMMARY_COLUMNS).set_index("parameter")


@dataclass
class ConvergenceReport:
    """Outcome of the R-hat gate over a summary table."""
    converged: bool
    threshold: float
    max_r_hat: float
    failed_parameters: Dict[str, float] = field(default_factory=dict)
    # Parameters whose R-hat could not be computed (e.g. constant chains)
    undefined_parameters: list = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "converged": self.converged,
            "threshold": self.threshold,
            "max_r_hat": self.max_r_hat,
            "failed_parameters": dict(self.failed_parameters),
            "undefined_parameters": list(self.undefined_parameters),
        }


def check_convergence(summary: pd.DataFrame, threshold: float = 1.1) -> ConvergenceReport:
    """
    Flag every parameter whose R-hat exceeds ``threshold``.

    NaN R-hat values are reported separately and do not fail the gate.
    """
    r_hat = summary["r_hat"].astype(float)
    undefined = list(r_hat.index[r_hat.isna()])
    defined = r_hat.dropna()

    failed = {label: float(value) for label, value in defined.items() if value > threshold}
    max_r_hat = float(defined.max()) if len(defined) else float("nan")

    if failed:
        logger.warning(
            "Chains have not converged",
            threshold=threshold,
            n_failed=len(failed),
            max_r_hat=round(max_r_hat, 4),
        )
    if undefined:
        logger.debug(f"R-hat undefined for: {', '.join(undefined)}")

    return ConvergenceReport(
        converged=not failed,
        threshold=threshold,
        max_r_hat=max_r_hat,
        failed_parameters=failed,
        undefined_parameters=undefined,
    )


def require_convergence(report: ConvergenceReport, num_divergences: Optional[int] = None) -> None:
    """
    Raise if the report failed the R-hat gate.

    Raises:
        ConvergenceError: With the offending parameters and their R-hat
    """
    if not report.converged:
        raise ConvergenceError(
            failed_parameters=report.failed_parameters,
            threshold=report.threshold,
            num_divergences=num_divergences,
        )
