"""Classic 4th-order Runge-Kutta integrator (RK4).

The fixed-step propagator behind both the truth trajectory and the
filter's reference trajectory.  Stage combinations are element-wise, so
the leading six components of an STM-augmented step come out exactly as
a plain 6-state step would.
"""

from __future__ import annotations

from collections.abc import Callable

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from odjax.config import get_dtype
from odjax.integrators._types import StepResult


def rk4_step(
    dynamics: Callable[[ArrayLike, ArrayLike], Array],
    t: ArrayLike,
    state: ArrayLike,
    dt: ArrayLike,
) -> StepResult:
    """Advance ``state`` by one RK4 step of length ``dt``.

    Args:
        dynamics: ODE right-hand side function ``f(t, x) -> dx/dt``.
        t: Current time.
        state: Current state vector.
        dt: Timestep to take. May be negative for backward integration.

    Returns:
        StepResult: ``state`` at ``t + dt``; ``dt_used`` and ``dt_next``
        equal ``dt``; ``error_estimate`` is 0.0.

    Examples:
        ```python
        import jax.numpy as jnp
        from odjax.integrators import rk4_step
        def harmonic(t, x):
            return jnp.array([x[1], -x[0]])
        result = rk4_step(harmonic, 0.0, jnp.array([1.0, 0.0]), 0.01)
        ```
    """
    dtype = get_dtype()
    t = jnp.asarray(t, dtype=dtype)
    x = jnp.asarray(state, dtype=dtype)
    h = jnp.asarray(dt, dtype=dtype)
    t_mid = t + 0.5 * h

    slope_start = dynamics(t, x)
    slope_mid_a = dynamics(t_mid, x + 0.5 * h * slope_start)
    slope_mid_b = dynamics(t_mid, x + 0.5 * h * slope_mid_a)
    slope_end = dynamics(t + h, x + h * slope_mid_b)

    # Simpson weighting: 1/6, 1/3, 1/3, 1/6
    increment = (slope_start + slope_end + 2.0 * (slope_mid_a + slope_mid_b)) * (h / 6.0)

    return StepResult(
        state=x + increment,
        dt_used=h,
        error_estimate=jnp.zeros((), dtype=dtype),
        dt_next=h,
    )
