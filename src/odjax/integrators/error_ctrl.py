"""Error-control policies for adaptive propagation.

A policy maps the embedded-method error vector to one normalized scalar;
the step is accepted when the value is ``<= 1.0``.  Every policy shares
the signature::

    error_norm(error_vec, state_new, state_old, abs_tol, rel_tol) -> Array

Only the leading six components (position and velocity) are considered
by :func:`rss_state_pos_vel`, so an STM-augmented state is stepped on the
accuracy of the orbit alone.  :func:`largest_error` looks at every
component.
"""

from __future__ import annotations

from collections.abc import Callable

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from odjax.config import get_dtype

ErrorNorm = Callable[[ArrayLike, ArrayLike, ArrayLike, float, float], Array]


def largest_error(
    error_vec: ArrayLike,
    state_new: ArrayLike,
    state_old: ArrayLike,
    abs_tol: float,
    rel_tol: float,
) -> Array:
    """Infinity norm of the component-wise scaled error.

    .. math::

        \\text{tol}_i = \\text{abs\\_tol} + \\text{rel\\_tol}
            \\cdot \\max(|y^{\\text{new}}_i|, |y^{\\text{old}}_i|)

    Args:
        error_vec: Difference between high-order and low-order solutions.
        state_new: High-order solution.
        state_old: State at the beginning of the step.
        abs_tol: Absolute error tolerance.
        rel_tol: Relative error tolerance.

    Returns:
        jax.Array: Scalar normalized error.
    """
    dtype = get_dtype()
    error_vec = jnp.asarray(error_vec, dtype=dtype)
    state_new = jnp.asarray(state_new, dtype=dtype)
    state_old = jnp.asarray(state_old, dtype=dtype)

    scale = abs_tol + rel_tol * jnp.maximum(jnp.abs(state_new), jnp.abs(state_old))
    return jnp.max(jnp.abs(error_vec) / scale)


def rss_state_pos_vel(
    error_vec: ArrayLike,
    state_new: ArrayLike,
    state_old: ArrayLike,
    abs_tol: float,
    rel_tol: float,
) -> Array:
    """Root-sum-square error of position and velocity, taken separately.

    The position error magnitude is scaled by the larger position
    magnitude of the two states, the velocity error likewise, and the
    worse of the two is returned.

    Args:
        error_vec: Difference between high-order and low-order solutions.
        state_new: High-order solution.
        state_old: State at the beginning of the step.
        abs_tol: Absolute error tolerance.
        rel_tol: Relative error tolerance.

    Returns:
        jax.Array: Scalar normalized error.
    """
    dtype = get_dtype()
    error_vec = jnp.asarray(error_vec, dtype=dtype)
    state_new = jnp.asarray(state_new, dtype=dtype)
    state_old = jnp.asarray(state_old, dtype=dtype)

    def _block(sl):
        mag = jnp.maximum(
            jnp.linalg.norm(state_new[sl]), jnp.linalg.norm(state_old[sl])
        )
        return jnp.linalg.norm(error_vec[sl]) / (abs_tol + rel_tol * mag)

    return jnp.maximum(_block(slice(0, 3)), _block(slice(3, 6)))
