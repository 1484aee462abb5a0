"""Encounter data loading, preprocessing and simulation for jolly-jax."""

from .adapters import (
    EncounterData,
    DataFormatAdapter,
    RMarkFormatAdapter,
    GenericFormatAdapter,
    detect_data_format,
    get_adapter,
    register_adapter,
    from_capture_matrix,
    load_data,
)
from .preprocessing import capture_bounds, augment_histories
from .simulation import (
    SimulatedPopulation,
    simulate_jolly_seber,
    default_entry_probabilities,
)

__all__ = [
    "EncounterData",
    "DataFormatAdapter",
    "RMarkFormatAdapter",
    "GenericFormatAdapter",
    "detect_data_format",
    "get_adapter",
    "register_adapter",
    "from_capture_matrix",
    "load_data",
    "capture_bounds",
    "augment_histories",
    "SimulatedPopulation",
    "simulate_jolly_seber",
    "default_entry_probabilities",
]
