"""
Encounter history preprocessing.

Derives first/last detection occasions and pads observed histories with
all-zero pseudo-individuals (data augmentation). Occasion numbers returned
here are 1-based; ``0`` marks an individual that was never detected.
"""

from typing import Tuple, Union

import numpy as np
import jax.numpy as jnp

from ..core.exceptions import DataFormatError
from ..utils.logging import get_logger


logger = get_logger(__name__)


def capture_bounds(
    capture_matrix: Union[np.ndarray, jnp.ndarray]
) -> Tuple[np.ndarray, np.ndarray]:
    """
    First and last detection occasion of every individual.

    Args:
        capture_matrix: Binary matrix (individuals x occasions), already validated

    Returns:
        ``(first, last)`` integer vectors of length M. Entries are 1-based
        occasion numbers, or 0 for rows without any detection.
    """
    y = np.asarray(capture_matrix) > 0
    n_occasions = y.shape[1]

    detected = y.any(axis=1)
    first_idx = np.argmax(y, axis=1)
    last_idx = n_occasions - 1 - np.argmax(y[:, ::-1], axis=1)

    first = np.where(detected, first_idx + 1, 0).astype(np.int32)
    last = np.where(detected, last_idx + 1, 0).astype(np.int32)
    return first, last


def augment_histories(
    capture_matrix: Union[np.ndarray, jnp.ndarray],
    augment_to: int
) -> np.ndarray:
    """
    Pad observed histories with all-zero rows up to ``augment_to`` rows.

    Args:
        capture_matrix: Observed encounter histories (n x T)
        augment_to: Superpopulation bound M

    Returns:
        Augmented matrix (M x T) with the observed rows first

    Raises:
        DataFormatError: If M is smaller than the number of observed rows
    """
    y = np.asarray(capture_matrix, dtype=np.int32)
    n_rows, n_occasions = y.shape

    if augment_to < n_rows:
        raise DataFormatError(
            specific_issue=(
                f"Augmentation bound M={augment_to} is smaller than the "
                f"{n_rows} loaded histories"
            ),
            suggestions=[
                "Choose M well above the number of detected individuals",
                "A common choice is several times the observed count",
            ]
        )

    n_pseudo = augment_to - n_rows
    if n_pseudo:
        logger.debug("Augmenting encounter histories", observed=n_rows, pseudo=n_pseudo)

    padding = np.zeros((n_pseudo, n_occasions), dtype=np.int32)
    return np.vstack([y, padding])
