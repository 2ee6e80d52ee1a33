"""Dormand-Prince 5(4) adaptive integrator (DP54).

Embedded Runge-Kutta pair: the 5th-order solution propagates, the
4th-order solution estimates the error.  Rejected steps are retried with
a smaller timestep inside ``jax.lax.while_loop``.  The scalar error is
produced by a pluggable policy from :mod:`odjax.integrators.error_ctrl`.

- Nodes (c): [0, 1/5, 3/10, 4/5, 8/9, 1, 1]
- 5th-order weights: [35/384, 0, 500/1113, 125/192, -2187/6784, 11/84, 0]
- 4th-order weights: [5179/57600, 0, 7571/16695, 393/640, -92097/339200,
  187/2100, 1/40]
"""

from __future__ import annotations

from collections.abc import Callable
from typing import NamedTuple

import jax
import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from odjax.config import get_dtype
from odjax.integrators._types import AdaptiveConfig, StepResult
from odjax.integrators.error_ctrl import ErrorNorm, largest_error

_NODES = (1.0 / 5.0, 3.0 / 10.0, 4.0 / 5.0, 8.0 / 9.0, 1.0)

_COUPLING = (
    (1.0 / 5.0,),
    (3.0 / 40.0, 9.0 / 40.0),
    (44.0 / 45.0, -56.0 / 15.0, 32.0 / 9.0),
    (19372.0 / 6561.0, -25360.0 / 2187.0, 64448.0 / 6561.0, -212.0 / 729.0),
    (9017.0 / 3168.0, -355.0 / 33.0, 46732.0 / 5247.0, 49.0 / 176.0, -5103.0 / 18656.0),
)

# Also the coupling row of the seventh (first-same-as-last) stage
_WEIGHTS_5 = (35.0 / 384.0, 0.0, 500.0 / 1113.0, 125.0 / 192.0, -2187.0 / 6784.0, 11.0 / 84.0)

_WEIGHTS_4 = (
    5179.0 / 57600.0,
    0.0,
    7571.0 / 16695.0,
    393.0 / 640.0,
    -92097.0 / 339200.0,
    187.0 / 2100.0,
    1.0 / 40.0,
)

# Exponent of the error ratio in the step-size prediction, 1 / (p + 1)
_STEP_EXPONENT = 1.0 / 5.0


class _Attempt(NamedTuple):
    h: Array
    tries: Array
    accepted: Array
    state: Array
    error: Array


def _combine(weights, ks):
    return sum(w * k for w, k in zip(weights, ks) if w != 0.0)


def _predict_step(error: Array, h: Array, config: AdaptiveConfig) -> Array:
    """Suggest the next step from the normalized error of the current one.

    The growth factor ``S * (1 / error)**(1/5)`` is clipped to the
    configured scale bounds, then the magnitude to the absolute step
    bounds.  The sign of ``h`` is kept.
    """
    growth = jnp.where(
        error > 0.0, jnp.power(1.0 / error, _STEP_EXPONENT), config.max_scale_factor
    )
    growth = jnp.clip(
        config.safety_factor * growth, config.min_scale_factor, config.max_scale_factor
    )
    return jnp.sign(h) * jnp.clip(jnp.abs(h) * growth, config.min_step, config.max_step)


def dp54_step(
    dynamics: Callable[[ArrayLike, ArrayLike], Array],
    t: ArrayLike,
    state: ArrayLike,
    dt: ArrayLike,
    config: AdaptiveConfig | None = None,
    error_norm: ErrorNorm = largest_error,
) -> StepResult:
    """Perform a single adaptive DP54 integration step.

    Advances the state from ``t`` by up to ``dt``.  Not compatible with
    reverse-mode ``jax.grad`` because of the internal ``lax.while_loop``;
    wrap in ``jax.jit`` (with *dynamics*, *config* and *error_norm*
    bound) to avoid retracing the loop on every call.

    Args:
        dynamics: ODE right-hand side function ``f(t, x) -> dx/dt``.
        t: Current time.
        state: Current state vector.
        dt: Requested timestep.
        config: Adaptive step-size configuration. Defaults to
            :class:`AdaptiveConfig`.
        error_norm: Error-control policy. Default: :func:`largest_error`.

    Returns:
        StepResult: ``state`` at ``t + dt_used``, the step taken, the
        normalized error of the accepted step and the suggested next step.
    """
    if config is None:
        config = AdaptiveConfig()

    dtype = get_dtype()
    t = jnp.asarray(t, dtype=dtype)
    x0 = jnp.asarray(state, dtype=dtype)
    dt = jnp.asarray(dt, dtype=dtype)

    def try_step(h):
        ks = [dynamics(t, x0)]
        for c, row in zip(_NODES, _COUPLING):
            ks.append(dynamics(t + c * h, x0 + h * _combine(row, ks)))
        x5 = x0 + h * _combine(_WEIGHTS_5, ks)
        ks.append(dynamics(t + h, x5))
        x4 = x0 + h * _combine(_WEIGHTS_4, ks)
        return x5, error_norm(x5 - x4, x5, x0, config.abs_tol, config.rel_tol)

    def keep_trying(attempt: _Attempt):
        return ~attempt.accepted & (attempt.tries < config.max_step_attempts)

    def retry(attempt: _Attempt) -> _Attempt:
        x_new, error = try_step(attempt.h)
        # A step already at the floor is taken whatever its error
        ok = (error <= 1.0) | (jnp.abs(attempt.h) <= config.min_step)
        h = jnp.where(ok, attempt.h, _predict_step(error, attempt.h, config))
        return _Attempt(h, attempt.tries + 1, ok, x_new, error)

    first = _Attempt(
        h=dt,
        tries=jnp.asarray(0, dtype=jnp.int32),
        accepted=jnp.asarray(False),
        state=x0,
        error=jnp.asarray(jnp.inf, dtype=dtype),
    )
    final = jax.lax.while_loop(keep_trying, retry, first)

    return StepResult(
        state=final.state,
        dt_used=final.h,
        error_estimate=final.error,
        dt_next=_predict_step(final.error, final.h, config),
    )
