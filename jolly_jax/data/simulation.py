"""
Simulate encounter histories from a Jolly-Seber (POPAN / JSSA) process.

Each animal of the superpopulation enters at one occasion drawn from the
entry probabilities ``b``, survives between occasions with probability
``phi`` and is detected with probability ``p`` while alive and entered.
Never-detected animals are dropped and the result is padded with all-zero
rows, which is exactly what a data-augmented analysis sees.

Typical usage example:

    rng = np.random.default_rng(1792)
    sim = simulate_jolly_seber(400, 7, phi=0.7, p=0.5, augment_to=1000, rng=rng)
    data = from_capture_matrix(sim.capture_matrix)
"""

from dataclasses import dataclass
from typing import Optional, Union

import numpy as np

from ..core.exceptions import ModelSpecificationError


@dataclass
class SimulatedPopulation:
    """Output of :func:`simulate_jolly_seber`."""
    capture_matrix: np.ndarray
    state: np.ndarray
    N: np.ndarray
    B: np.ndarray
    n_detected: int


def default_entry_probabilities(n_occasions: int, initial: float = 0.34) -> np.ndarray:
    """Entry probabilities with ``initial`` at occasion 1, the rest spread evenly."""
    rest = (1.0 - initial) / (n_occasions - 1)
    return np.concatenate([[initial], np.full(n_occasions - 1, rest)])


def simulate_jolly_seber(
    superpopulation_size: int,
    n_occasions: int,
    phi: Union[float, np.ndarray],
    p: Union[float, np.ndarray],
    entry_probs: Optional[np.ndarray] = None,
    augment_to: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
) -> SimulatedPopulation:
    """
    Simulate one Jolly-Seber data set.

    Args:
        superpopulation_size: Number of animals that ever enter
        n_occasions: Number of sampling occasions T
        phi: Survival probability, scalar or length T-1
        p: Detection probability, scalar or length T
        entry_probs: Entry probabilities b (length T, sums to 1)
        augment_to: Pad detected histories with zero rows up to this many rows
        rng: Random generator; a fresh unseeded one is used if omitted

    Returns:
        Detected (and augmented) histories with the true ``N[t]`` and ``B[t]``
    """
    if n_occasions < 2:
        raise ModelSpecificationError(
            parameter="n_occasions", reason="at least 2 occasions are required"
        )

    rng = rng if rng is not None else np.random.default_rng()
    interval_count = n_occasions - 1

    b = default_entry_probabilities(n_occasions) if entry_probs is None else np.asarray(entry_probs, dtype=float)
    if b.shape != (n_occasions,) or not np.isclose(b.sum(), 1.0):
        raise ModelSpecificationError(
            parameter="entry_probs",
            reason=f"need {n_occasions} probabilities summing to 1",
        )

    phi_t = np.broadcast_to(np.asarray(phi, dtype=float), (interval_count,))
    p_t = np.broadcast_to(np.asarray(p, dtype=float), (n_occasions,))

    # which occasion did each animal enter in?
    entry_matrix = rng.multinomial(n=1, pvals=b, size=superpopulation_size)
    entry_occasion = entry_matrix.argmax(axis=1)
    entrants = np.bincount(entry_occasion, minlength=n_occasions)

    # zero before entry, one from the entry occasion on
    entry_trajectory = np.maximum.accumulate(entry_matrix, axis=1)

    # survival between t and t+1 implies alive at t+1
    survival_draws = rng.binomial(1, phi_t, (superpopulation_size, interval_count))
    survival_draws = np.column_stack([np.ones(superpopulation_size, dtype=int), survival_draws])

    # no death before or at entry
    not_yet_entered = np.arange(n_occasions) <= entry_occasion[:, None]
    survival_draws[not_yet_entered] = 1

    # once a draw flips to zero the rest of the row stays zero
    survival_trajectory = np.cumprod(survival_draws, axis=1)

    state = entry_trajectory * survival_trajectory

    capture = rng.binomial(1, p_t, (superpopulation_size, n_occasions))
    capture_history = state * capture
    was_detected = capture_history.sum(axis=1) > 0
    capture_history = capture_history[was_detected].astype(np.int32)
    n_detected = int(was_detected.sum())

    if augment_to is not None:
        if augment_to < n_detected:
            raise ModelSpecificationError(
                parameter="augment_to",
                reason=f"{augment_to} rows cannot hold {n_detected} detected animals",
            )
        padding = np.zeros((augment_to - n_detected, n_occasions), dtype=np.int32)
        capture_history = np.vstack([capture_history, padding])

    return SimulatedPopulation(
        capture_matrix=capture_history,
        state=state,
        N=state.sum(axis=0),
        B=entrants,
        n_detected=n_detected,
    )
