import jax.numpy as jnp
import pytest

from odjax.config import set_dtype


@pytest.fixture(autouse=True)
def _ensure_float64():
    """Set float64 precision before every test.

    Orbit determination runs in float64. Tests that exercise other
    precisions override this (test_config.py has its own autouse fixture
    that resets to float32).
    """
    set_dtype(jnp.float64)
