"""Module-wide floating-point precision.

Every array odjax creates uses the dtype returned by :func:`get_dtype`.
The default is ``jnp.float32``; orbit determination runs select
``jnp.float64``, and doing so turns on JAX's 64-bit mode
(``jax_enable_x64``).

Select the dtype **before** anything is compiled: the dynamics and
measurement kernels capture it when they are traced.

Integer components (e.g. Epoch ``_jd``) are always ``jnp.int32``.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp

# Default tolerance in seconds for Epoch equality, per supported dtype
_EPOCH_EQ_TOLERANCE = {
    jnp.float16: 0.1,
    jnp.bfloat16: 0.1,
    jnp.float32: 1e-3,
    jnp.float64: 1e-9,
}

_dtype = jnp.float32


def set_dtype(dtype) -> None:
    """Select the module-wide float dtype.

    Args:
        dtype: One of ``jnp.float16``, ``jnp.bfloat16``, ``jnp.float32``,
            or ``jnp.float64``.

    Raises:
        ValueError: If *dtype* is not a supported float type.
    """
    global _dtype
    if dtype not in _EPOCH_EQ_TOLERANCE:
        supported = ", ".join(f"jnp.{d.__name__}" for d in _EPOCH_EQ_TOLERANCE)
        raise ValueError(f"Unsupported dtype {dtype}. Must be one of: {supported}")
    if dtype == jnp.float64:
        jax.config.update("jax_enable_x64", True)
    _dtype = dtype


def get_dtype():
    """Return the active float dtype (default ``jnp.float32``)."""
    return _dtype


def get_dtype_eps() -> float:
    """Machine epsilon of the active dtype.

    A noise-free run whose truth and reference share the same dynamics
    should leave every state-deviation component below this value.
    """
    return float(jnp.finfo(_dtype).eps)


def get_epoch_eq_tolerance() -> float:
    """Default Epoch equality tolerance in seconds for the active dtype.

    ``1e-9`` s in float64, ``1e-3`` s in float32 and ``0.1`` s in the
    16-bit types.
    """
    return _EPOCH_EQ_TOLERANCE[_dtype]
