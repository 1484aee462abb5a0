"""
Shared pytest configuration and fixtures for jolly-jax tests.

Random state is always an explicit generator or PRNG key; nothing seeds
global state.
"""

import pytest
import numpy as np
import jax
import jax.numpy as jnp
import pandas as pd

from jolly_jax.config import settings
from jolly_jax.config.settings import JollyJaxConfig
from jolly_jax.data.adapters import from_capture_matrix
from jolly_jax.models.jolly_seber import JollySeberParameters


@pytest.fixture
def rng():
    """Seeded numpy generator."""
    return np.random.default_rng(20240607)


@pytest.fixture
def rng_key():
    """Seeded JAX PRNG key."""
    return jax.random.PRNGKey(7)


@pytest.fixture(scope="session")
def toy_histories():
    """Two occasions: seen at 1 only, seen at 2 only, never seen."""
    return np.array([[1, 0], [0, 1], [0, 0]], dtype=np.int32)


@pytest.fixture
def toy_data(toy_histories):
    return from_capture_matrix(toy_histories)


@pytest.fixture
def toy_params():
    """Hyperparameters for which the toy likelihood is worked out by hand."""
    return JollySeberParameters(
        mean_phi=0.8,
        mean_p=0.6,
        gamma=jnp.array([0.5, 0.5]),
        epsilon=jnp.array([0.0]),
        sigma=1.0,
    )


@pytest.fixture(scope="session")
def sample_histories():
    """Small 5-occasion data set with gaps, a single capture at the last occasion and repeat captures."""
    histories = ["11010", "01100", "00111", "10001", "00001", "01000", "11111", "00100"]
    return np.array([[int(c) for c in ch] for ch in histories], dtype=np.int32)


@pytest.fixture
def sample_data(sample_histories):
    """Sample histories augmented to 20 rows."""
    return from_capture_matrix(sample_histories, augment_to=20)


@pytest.fixture
def sample_params():
    return JollySeberParameters(
        mean_phi=0.7,
        mean_p=0.45,
        gamma=jnp.array([0.2, 0.15, 0.1, 0.12, 0.3]),
        epsilon=jnp.array([0.3, -0.2, 0.5, -0.4]),
        sigma=0.6,
    )


@pytest.fixture
def rmark_csv(tmp_path):
    """CSV with RMark 'ch' strings, including leading zeros."""
    path = tmp_path / "encounters.csv"
    pd.DataFrame({
        "ch": ["0110", "1010", "0001", "1111"],
        "individual_id": ["a", "b", "c", "d"],
    }).to_csv(path, index=False)
    return path


@pytest.fixture
def isolated_config(monkeypatch):
    """Fresh global configuration, restored after the test."""
    for name in ("JOLLY_JAX_LOG_LEVEL", "JOLLY_JAX_NUM_CHAINS", "JOLLY_JAX_NUM_SAMPLES",
                 "JOLLY_JAX_NUM_WARMUP", "JOLLY_JAX_RANDOM_SEED", "JOLLY_JAX_AUGMENTATION",
                 "JOLLY_JAX_DATA_FORMAT"):
        monkeypatch.delenv(name, raising=False)
    config = JollyJaxConfig()
    monkeypatch.setattr(settings, "_default_config", config)
    return config


@pytest.fixture
def fast_config(isolated_config):
    """Configuration for short single-chain sampler runs."""
    isolated_config.sampling.num_warmup = 150
    isolated_config.sampling.num_samples = 60
    isolated_config.sampling.num_chains = 1
    isolated_config.sampling.random_seed = 11
    isolated_config.logging.console_logging = False
    return isolated_config


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test (fast)"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (runs the sampler)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow (may take >10 seconds)"
    )
