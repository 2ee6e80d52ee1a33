"""Tests for the odjax.config module."""

import jax
import jax.numpy as jnp
import pytest

from odjax.config import get_dtype, get_dtype_eps, get_epoch_eq_tolerance, set_dtype
from odjax.epoch import Epoch

pytestmark = pytest.mark.order("first")


@pytest.fixture(autouse=True)
def reset_dtype():
    """Reset dtype to float32 before and after each test."""
    set_dtype(jnp.float32)
    yield
    set_dtype(jnp.float32)


class TestGetSetDtype:
    def test_set_float64(self):
        set_dtype(jnp.float64)
        assert get_dtype() == jnp.float64

    def test_set_float32(self):
        set_dtype(jnp.float64)
        set_dtype(jnp.float32)
        assert get_dtype() == jnp.float32

    def test_roundtrip(self):
        for dtype in (jnp.float16, jnp.bfloat16, jnp.float32, jnp.float64):
            set_dtype(dtype)
            assert get_dtype() == dtype

    def test_invalid_dtype_raises(self):
        with pytest.raises(ValueError, match="Unsupported dtype"):
            set_dtype(jnp.int32)

    def test_invalid_dtype_string_raises(self):
        with pytest.raises(ValueError, match="Unsupported dtype"):
            set_dtype("float64")

    def test_float64_enables_x64(self):
        set_dtype(jnp.float64)
        assert jax.config.jax_enable_x64 is True


class TestEpochEqTolerance:
    @pytest.mark.parametrize(
        "dtype, expected",
        [
            (jnp.float64, 1e-9),
            (jnp.float32, 1e-3),
            (jnp.float16, 0.1),
            (jnp.bfloat16, 0.1),
        ],
    )
    def test_tolerance(self, dtype, expected):
        set_dtype(dtype)
        assert get_epoch_eq_tolerance() == expected


class TestDtypeEps:
    def test_float64_eps(self):
        set_dtype(jnp.float64)
        assert get_dtype_eps() == pytest.approx(2.220446049250313e-16)

    def test_float32_eps(self):
        assert get_dtype_eps() == pytest.approx(1.1920929e-07)


class TestDtypeSwitchingOutputs:
    def test_epoch_seconds_dtype_float64(self):
        set_dtype(jnp.float64)
        epc = Epoch(2018, 2, 27)
        assert epc._seconds.dtype == jnp.float64
        assert epc._kahan_c.dtype == jnp.float64

    def test_epoch_jd_stays_int32(self):
        set_dtype(jnp.float64)
        assert Epoch(2018, 2, 27)._jd.dtype == jnp.int32

    def test_epoch_kahan_precision_float64(self):
        """Float64 Kahan summation keeps a thousand ten-second steps exact."""
        set_dtype(jnp.float64)
        start = Epoch(2018, 2, 27)
        epc = start
        for _ in range(1000):
            epc = epc + 10.0
        assert abs(float(epc - start) - 10000.0) < 1e-9
