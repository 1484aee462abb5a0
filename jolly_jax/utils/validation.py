"""
Validation utilities for jolly-jax.

Common contract checks for arrays, probabilities and encounter matrices.
All checks operate on concrete values; calling them on traced JAX values
inside ``jit`` is a programming error.
"""

import numpy as np
import jax.numpy as jnp
from typing import Union, Tuple, Optional

from ..core.exceptions import ValidationError, ParameterDomainError, DataFormatError

ArrayLike = Union[np.ndarray, jnp.ndarray, float]


def validate_array_dimensions(
    array: Union[np.ndarray, jnp.ndarray],
    expected_shape: Optional[Tuple[Optional[int], ...]] = None,
    min_dims: Optional[int] = None,
    max_dims: Optional[int] = None,
    name: str = "array"
) -> None:
    """
    Validate array dimensions.

    Args:
        array: Array to validate
        expected_shape: Expected exact shape (None entries are ignored)
        min_dims: Minimum number of dimensions
        max_dims: Maximum number of dimensions
        name: Name for error messages

    Raises:
        ValidationError: If validation fails
    """
    if not hasattr(array, 'shape'):
        raise ValidationError(
            failed_checks=[f"{name} must be an array-like object with a shape"],
            suggestions=["Convert lists to arrays using np.asarray()"],
        )

    shape = array.shape
    ndims = len(shape)

    if min_dims is not None and ndims < min_dims:
        raise ValidationError(
            failed_checks=[f"{name} has {ndims} dimensions, expected at least {min_dims}"]
        )

    if max_dims is not None and ndims > max_dims:
        raise ValidationError(
            failed_checks=[f"{name} has {ndims} dimensions, expected at most {max_dims}"]
        )

    if expected_shape is not None:
        if len(expected_shape) != ndims:
            raise ValidationError(
                failed_checks=[f"{name} has shape {shape}, expected {expected_shape}"]
            )

        for i, (actual, expected) in enumerate(zip(shape, expected_shape)):
            if expected is not None and actual != expected:
                raise ValidationError(
                    failed_checks=[
                        f"{name} dimension {i} has size {actual}, expected {expected}"
                    ]
                )


def validate_probability(value: ArrayLike, name: str = "probability") -> None:
    """
    Validate that value(s) are probabilities in the closed interval [0, 1].

    NaN values fail the check.

    Raises:
        ParameterDomainError: If any value lies outside [0, 1]
    """
    arr = np.asarray(value, dtype=float)
    if np.isnan(arr).any():
        raise ParameterDomainError(name, "contains NaN values")
    if (arr < 0.0).any() or (arr > 1.0).any():
        raise ParameterDomainError(
            name, f"must lie in [0, 1] (min: {arr.min():.6g}, max: {arr.max():.6g})"
        )


def validate_open_interval(
    value: ArrayLike,
    lower: float,
    upper: float,
    name: str = "value"
) -> None:
    """
    Validate that value(s) lie strictly inside (lower, upper).

    Raises:
        ParameterDomainError: If any value is on or beyond a bound, or NaN
    """
    arr = np.asarray(value, dtype=float)
    if np.isnan(arr).any():
        raise ParameterDomainError(name, "contains NaN values")
    if (arr <= lower).any() or (arr >= upper).any():
        raise ParameterDomainError(
            name,
            f"must lie in ({lower}, {upper}) (min: {arr.min():.6g}, max: {arr.max():.6g})"
        )


def validate_capture_matrix(
    capture_matrix: Union[np.ndarray, jnp.ndarray],
    min_individuals: int = 1,
    min_occasions: int = 2
) -> None:
    """
    Validate an encounter history matrix (individuals x occasions).

    Args:
        capture_matrix: Matrix of encounter histories
        min_individuals: Minimum number of rows
        min_occasions: Minimum number of occasions

    Raises:
        DataFormatError: If the matrix is not a non-empty binary 2-D array
    """
    matrix = np.asarray(capture_matrix)

    if matrix.ndim != 2:
        raise DataFormatError(
            specific_issue=f"Encounter matrix must be 2-D, got {matrix.ndim} dimensions"
        )

    n_individuals, n_occasions = matrix.shape

    if n_individuals < min_individuals:
        raise DataFormatError(
            specific_issue=(
                f"Encounter matrix has {n_individuals} individuals, "
                f"need at least {min_individuals}"
            )
        )

    if n_occasions < min_occasions:
        raise DataFormatError(
            specific_issue=(
                f"Encounter matrix has {n_occasions} occasions, "
                f"need at least {min_occasions}"
            ),
            suggestions=[
                "Jolly-Seber models need at least 2 sampling occasions",
                "Check encounter history length",
            ]
        )

    if not np.issubdtype(matrix.dtype, np.number) and matrix.dtype != bool:
        raise DataFormatError(
            specific_issue=f"Encounter matrix has non-numeric dtype {matrix.dtype}"
        )

    invalid = set(np.unique(matrix).tolist()) - {0, 1}
    if invalid:
        raise DataFormatError(
            specific_issue=f"Encounter matrix contains invalid values: {sorted(invalid)}",
            suggestions=[
                "Encounter histories must contain only 0s and 1s",
                "Collapse counts to detection indicators before loading",
            ]
        )
