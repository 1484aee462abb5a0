"""
Results export for jolly-jax.

Writes posterior summaries and raw draws to CSV with the run metadata.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

import numpy as np
import pandas as pd

from ..inference.sampling import PosteriorResult
from ..utils.logging import get_logger


logger = get_logger(__name__)


class ResultsExporter:
    """
    Export of fitted posteriors.

    Summary tables carry one row per parameter with the run metadata
    repeated as columns, so several fits can be concatenated and compared.
    """

    def __init__(self, decimal_precision: int = 6, include_metadata: bool = True):
        """
        Initialize results exporter.

        Args:
            decimal_precision: Number of decimal places for numeric values
            include_metadata: Whether to add run metadata columns
        """
        self.decimal_precision = decimal_precision
        self.include_metadata = include_metadata

    def export_results(
        self,
        result: PosteriorResult,
        export_file: Optional[Union[str, Path]] = None,
        include_derived: bool = True,
    ) -> pd.DataFrame:
        """
        Export the posterior summary of a fitted model.

        Args:
            result: Fitted posterior
            export_file: Optional CSV path to save the table
            include_derived: Include derived demographic quantities

        Returns:
            Summary DataFrame with a ``parameter`` column
        """
        summary = result.full_summary() if include_derived else result.summary
        export_df = summary.reset_index()

        export_df["kind"] = np.where(
            export_df["parameter"].isin(result.summary.index), "hyperparameter", "derived"
        )

        if self.include_metadata:
            for key, value in self._run_metadata(result).items():
                export_df[key] = value

        numeric_columns = export_df.select_dtypes(include=[np.number]).columns
        export_df[numeric_columns] = export_df[numeric_columns].round(self.decimal_precision)

        if export_file:
            export_path = Path(export_file)
            export_path.parent.mkdir(parents=True, exist_ok=True)
            export_df.to_csv(export_path, index=False)
            logger.info(f"Results exported to: {export_path}")

        return export_df

    def export_draws(
        self,
        result: PosteriorResult,
        export_file: Optional[Union[str, Path]] = None,
        include_derived: bool = True,
    ) -> pd.DataFrame:
        """
        Export every posterior draw as one row, one column per scalar.

        Chains are kept in a ``chain`` column and draws numbered within chain.
        """
        columns: Dict[str, np.ndarray] = {}
        n_chains, n_draws = result.num_chains, result.num_samples

        for name, values in result.flat_samples().items():
            if name.endswith("_decentered"):
                continue
            flat = values.reshape(n_chains * n_draws, -1)
            columns.update(_scalar_columns(name, values.shape[1:], flat))

        if include_derived:
            for name, values in result.derived.items():
                flat = values.reshape(values.shape[0], -1)
                columns.update(_scalar_columns(name, values.shape[1:], flat))

        draws_df = pd.DataFrame(columns)
        draws_df.insert(0, "draw", np.tile(np.arange(n_draws), n_chains))
        draws_df.insert(0, "chain", np.repeat(np.arange(n_chains), n_draws))

        if export_file:
            export_path = Path(export_file)
            export_path.parent.mkdir(parents=True, exist_ok=True)
            draws_df.to_csv(export_path, index=False)
            logger.info(f"Draws exported to: {export_path}", rows=len(draws_df))

        return draws_df

    @staticmethod
    def _run_metadata(result: PosteriorResult) -> Dict[str, Any]:
        return {
            "n_individuals": result.n_individuals,
            "n_occasions": result.n_occasions,
            "n_observed": result.n_observed,
            "num_chains": result.num_chains,
            "num_samples": result.num_samples,
            "num_divergences": result.num_divergences,
            "converged": result.converged,
            "random_seed": result.random_seed,
            "sampling_time": result.sampling_time,
        }


def _scalar_columns(name: str, shape, flat: np.ndarray) -> Dict[str, np.ndarray]:
    if not shape:
        return {name: flat[:, 0]}
    return {
        f"{name}[{','.join(str(i + 1) for i in index)}]": flat[:, j]
        for j, index in enumerate(np.ndindex(*shape))
    }


def create_timestamped_export(
    result: PosteriorResult,
    prefix: str = "jolly_seber_results",
    directory: Optional[Union[str, Path]] = None,
) -> Path:
    """
    Create a timestamped summary export file for a fitted posterior.

    Args:
        result: Fitted posterior
        prefix: Filename prefix
        directory: Directory to save in (defaults to current directory)

    Returns:
        Path to created export file
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    filename = f"{prefix}_{timestamp}.csv"

    if directory:
        export_path = Path(directory) / filename
    else:
        export_path = Path(filename)

    ResultsExporter().export_results(result, export_path)

    return export_path
