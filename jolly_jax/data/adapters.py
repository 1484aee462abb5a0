"""
Data format adapters for jolly-jax.

Turns tabular encounter histories into an :class:`EncounterData` context.
All input contract checks (binary values, equal history lengths, sizes)
happen here, at load time.
"""

import pandas as pd
import numpy as np
import jax.numpy as jnp
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Union, Any
from dataclasses import dataclass, field

from ..core.exceptions import DataFormatError
from ..utils.logging import get_logger
from ..utils.validation import validate_capture_matrix
from .preprocessing import capture_bounds, augment_histories


logger = get_logger(__name__)


@dataclass
class EncounterData:
    """Augmented encounter histories plus the per-individual capture bounds."""
    capture_matrix: jnp.ndarray
    first: jnp.ndarray
    last: jnp.ndarray
    n_individuals: int
    n_occasions: int
    n_observed: int
    occasion_names: Optional[List[str]] = None
    individual_ids: Optional[List[Any]] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def n_augmented(self) -> int:
        """Number of all-zero pseudo-individual rows."""
        return self.n_individuals - self.n_observed

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize to a pickle-safe dictionary.

        JAX arrays become numpy arrays for cross-process transport.
        """
        return {
            'capture_matrix': np.asarray(self.capture_matrix),
            'first': np.asarray(self.first),
            'last': np.asarray(self.last),
            'n_individuals': self.n_individuals,
            'n_occasions': self.n_occasions,
            'n_observed': self.n_observed,
            'occasion_names': self.occasion_names,
            'individual_ids': self.individual_ids,
            'metadata': dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data_dict: Dict[str, Any]) -> 'EncounterData':
        """Deserialize from :meth:`to_dict` output."""
        return cls(
            capture_matrix=jnp.asarray(data_dict['capture_matrix'], dtype=jnp.int32),
            first=jnp.asarray(data_dict['first'], dtype=jnp.int32),
            last=jnp.asarray(data_dict['last'], dtype=jnp.int32),
            n_individuals=data_dict['n_individuals'],
            n_occasions=data_dict['n_occasions'],
            n_observed=data_dict['n_observed'],
            occasion_names=data_dict.get('occasion_names'),
            individual_ids=data_dict.get('individual_ids'),
            metadata=data_dict.get('metadata') or {},
        )


def from_capture_matrix(
    capture_matrix: Union[np.ndarray, jnp.ndarray, List[List[int]]],
    augment_to: Optional[int] = None,
    strict_observed: bool = False,
    occasion_names: Optional[List[str]] = None,
    individual_ids: Optional[List[Any]] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> EncounterData:
    """
    Build an :class:`EncounterData` from an in-memory binary matrix.

    Args:
        capture_matrix: Encounter histories (individuals x occasions)
        augment_to: Pad with all-zero rows up to this many rows (M)
        strict_observed: Reject loaded rows that contain no detection
        occasion_names: Optional labels for the occasions
        individual_ids: Optional labels for the loaded rows
        metadata: Extra metadata to carry along

    Raises:
        DataFormatError: For ragged, non-binary or empty input
    """
    try:
        matrix = np.asarray(capture_matrix)
    except ValueError as e:
        raise DataFormatError(specific_issue=f"Ragged encounter histories: {e}") from e

    if matrix.dtype == object:
        raise DataFormatError(
            specific_issue="Ragged encounter histories (rows of unequal length)"
        )

    validate_capture_matrix(matrix)
    matrix = matrix.astype(np.int32)

    n_loaded, n_occasions = matrix.shape
    detected = matrix.sum(axis=1) > 0

    if strict_observed and not detected.all():
        raise DataFormatError(
            specific_issue=(
                f"{int((~detected).sum())} observed histories contain no detection"
            ),
            suggestions=[
                "Observed individuals must be detected at least once",
                "Remove all-zero rows and let augment_to add pseudo-individuals",
            ]
        )

    if occasion_names is not None and len(occasion_names) != n_occasions:
        raise DataFormatError(
            specific_issue=(
                f"{len(occasion_names)} occasion names for {n_occasions} occasions"
            )
        )

    if augment_to is not None:
        matrix = augment_histories(matrix, augment_to)

    first, last = capture_bounds(matrix)
    n_individuals = matrix.shape[0]
    n_observed = int((first > 0).sum())

    logger.info(
        "Prepared encounter histories",
        individuals=n_individuals,
        detected=n_observed,
        occasions=n_occasions,
    )

    return EncounterData(
        capture_matrix=jnp.asarray(matrix, dtype=jnp.int32),
        first=jnp.asarray(first, dtype=jnp.int32),
        last=jnp.asarray(last, dtype=jnp.int32),
        n_individuals=n_individuals,
        n_occasions=n_occasions,
        n_observed=n_observed,
        occasion_names=list(occasion_names) if occasion_names is not None else None,
        individual_ids=list(individual_ids) if individual_ids is not None else None,
        metadata=dict(metadata or {}, n_loaded=n_loaded),
    )


class DataFormatAdapter(ABC):
    """Abstract base class for encounter history format adapters."""

    @abstractmethod
    def detect_format(self, data: pd.DataFrame) -> bool:
        """Return True if this adapter can handle the table."""

    @abstractmethod
    def extract_capture_histories(self, data: pd.DataFrame) -> np.ndarray:
        """Extract the binary encounter matrix (individuals x occasions)."""

    def occasion_names(self, data: pd.DataFrame) -> Optional[List[str]]:
        """Labels for the occasions, if the format carries any."""
        return None

    def individual_ids(self, data: pd.DataFrame) -> Optional[List[Any]]:
        for column in ('individual_id', 'id'):
            if column in data.columns:
                return data[column].tolist()
        return None

    def process(
        self,
        data: pd.DataFrame,
        augment_to: Optional[int] = None,
        strict_observed: bool = False,
    ) -> EncounterData:
        """
        Process a table into an :class:`EncounterData`.

        Args:
            data: Input DataFrame
            augment_to: Superpopulation bound M
            strict_observed: Reject rows without detections

        Returns:
            Processed encounter data
        """
        logger.info(f"Processing data with {self.__class__.__name__}")

        return from_capture_matrix(
            self.extract_capture_histories(data),
            augment_to=augment_to,
            strict_observed=strict_observed,
            occasion_names=self.occasion_names(data),
            individual_ids=self.individual_ids(data),
            metadata={'adapter': self.__class__.__name__},
        )


class RMarkFormatAdapter(DataFormatAdapter):
    """Adapter for RMark-style data (``ch`` column of '0'/'1' strings)."""

    def detect_format(self, data: pd.DataFrame) -> bool:
        return 'ch' in data.columns

    def extract_capture_histories(self, data: pd.DataFrame) -> np.ndarray:
        if 'ch' not in data.columns:
            raise DataFormatError(
                specific_issue="Missing 'ch' column for encounter histories",
                suggestions=[
                    "RMark format requires a 'ch' column",
                    "Check column names in your data",
                ]
            )

        if data['ch'].isna().any():
            raise DataFormatError(
                specific_issue=f"{int(data['ch'].isna().sum())} encounter histories are missing"
            )

        histories = data['ch'].astype(str).str.strip()

        valid = histories.str.fullmatch(r'[01]+')
        if not valid.all():
            raise DataFormatError(
                specific_issue=f"{int((~valid).sum())} encounter histories contain invalid characters",
                suggestions=[
                    "Encounter histories must contain only '0' and '1' characters",
                    "Read the column as strings to preserve leading zeros",
                    "Example valid format: '0110100'",
                ]
            )

        lengths = histories.str.len()
        if lengths.nunique() > 1:
            raise DataFormatError(
                specific_issue=f"Inconsistent encounter history lengths: {sorted(lengths.unique())}",
                suggestions=[
                    "All encounter histories must have the same length",
                    "Check for data truncation or lost leading zeros",
                ]
            )

        return np.array([[int(c) for c in ch] for ch in histories], dtype=np.int32)


class GenericFormatAdapter(DataFormatAdapter):
    """
    Adapter for one column per occasion.

    Uses ``capture_columns`` when given, otherwise ``Y``-prefixed columns
    (``Y2016``, ``Y2017``...). Values must already be 0/1.
    """

    def __init__(
        self,
        capture_columns: Optional[List[str]] = None,
        id_column: Optional[str] = None
    ):
        self.capture_columns = capture_columns
        self.id_column = id_column

    def _capture_columns(self, data: pd.DataFrame) -> List[str]:
        if self.capture_columns:
            return list(self.capture_columns)
        y_cols = [col for col in data.columns
                  if isinstance(col, str) and col.startswith('Y') and col[1:].isdigit()]
        return sorted(y_cols, key=lambda col: int(col[1:]))

    def detect_format(self, data: pd.DataFrame) -> bool:
        if self.capture_columns:
            return all(col in data.columns for col in self.capture_columns)
        return len(self._capture_columns(data)) >= 2

    def occasion_names(self, data: pd.DataFrame) -> Optional[List[str]]:
        return self._capture_columns(data)

    def individual_ids(self, data: pd.DataFrame) -> Optional[List[Any]]:
        if self.id_column:
            return data[self.id_column].tolist()
        return super().individual_ids(data)

    def extract_capture_histories(self, data: pd.DataFrame) -> np.ndarray:
        capture_cols = self._capture_columns(data)

        missing = [col for col in capture_cols if col not in data.columns]
        if not capture_cols or missing:
            raise DataFormatError(
                specific_issue=(
                    f"Capture columns not found: {missing}" if missing
                    else "No capture history columns found"
                ),
                suggestions=[
                    "Specify capture_columns explicitly",
                    "Use Y-prefixed columns (Y2016, Y2017, etc.)",
                ]
            )

        values = data[capture_cols]
        if values.isna().any().any():
            raise DataFormatError(
                specific_issue="Capture columns contain missing values"
            )

        # Non-binary values are rejected by validate_capture_matrix, not coerced
        return values.to_numpy()


_adapters: List[DataFormatAdapter] = [
    RMarkFormatAdapter(),
    GenericFormatAdapter(),
]


_named_adapters = {
    'rmark': RMarkFormatAdapter,
    'generic': GenericFormatAdapter,
}


def register_adapter(adapter: DataFormatAdapter) -> None:
    """Register a new data format adapter (new adapters get priority)."""
    _adapters.insert(0, adapter)


def detect_data_format(data: pd.DataFrame) -> DataFormatAdapter:
    """
    Automatically detect the appropriate data format adapter.

    Raises:
        DataFormatError: If no suitable adapter is found
    """
    for adapter in _adapters:
        if adapter.detect_format(data):
            logger.info(f"Detected format: {adapter.__class__.__name__}")
            return adapter

    raise DataFormatError(
        detected_format="unknown",
        expected_formats=[
            "RMark format ('ch' column)",
            "Y-column format (Y2016, Y2017, ...)",
        ],
    )


def get_adapter(format_name: str) -> Optional[DataFormatAdapter]:
    """
    Adapter for a configured format name; ``None`` for ``"auto"``.

    Raises:
        DataFormatError: For an unknown format name
    """
    format_name = getattr(format_name, 'value', format_name)
    if format_name == 'auto':
        return None
    if format_name in _named_adapters:
        return _named_adapters[format_name]()

    raise DataFormatError(
        detected_format=str(format_name),
        expected_formats=['auto'] + sorted(_named_adapters),
    )


def load_data(
    file_path: Union[str, Path],
    adapter: Optional[DataFormatAdapter] = None,
    augment_to: Optional[int] = None,
    strict_observed: bool = False,
    **kwargs
) -> EncounterData:
    """
    Load encounter histories from a CSV or Excel file.

    Args:
        file_path: Path to data file
        adapter: Specific adapter to use (auto-detected if None)
        augment_to: Superpopulation bound M for data augmentation
        strict_observed: Reject rows without any detection
        **kwargs: Additional arguments for the pandas reader

    Raises:
        DataFormatError: If the file cannot be read or its content is invalid
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise DataFormatError(
            specific_issue=f"File not found: {file_path}",
            suggestions=["Check file path and name"],
        )

    # 'ch' must be read as text to keep leading zeros
    dtype = dict(kwargs.pop('dtype', None) or {})
    dtype.setdefault('ch', str)

    suffix = file_path.suffix.lower()
    if suffix == '.csv':
        reader = lambda: pd.read_csv(file_path, dtype=dtype, **kwargs)
    elif suffix in ('.xlsx', '.xls'):
        reader = lambda: pd.read_excel(file_path, dtype=dtype, **kwargs)
    else:
        raise DataFormatError(
            specific_issue=f"Unsupported file format: {file_path.suffix}",
            suggestions=["Supported formats: CSV, Excel"],
        )

    try:
        data = reader()
    except (OSError, ValueError, pd.errors.ParserError) as e:
        raise DataFormatError(specific_issue=f"Failed to load file: {e}") from e

    if adapter is None:
        adapter = detect_data_format(data)

    encounter_data = adapter.process(
        data, augment_to=augment_to, strict_observed=strict_observed
    )
    encounter_data.metadata['source'] = str(file_path)
    return encounter_data
