"""Type definitions for numerical integrators.

- :class:`StepResult`: output of every step function.
- :class:`AdaptiveConfig`: tolerances and bounds for adaptive stepping.

Both are :class:`~typing.NamedTuple` instances, which JAX treats as
pytrees, so they pass through ``jax.jit`` unchanged.
"""

from __future__ import annotations

from typing import NamedTuple

from jax import Array


class StepResult(NamedTuple):
    """Result of a single integrator step.

    Attributes:
        state: State vector at time ``t + dt_used``.
        dt_used: Timestep actually taken. For adaptive methods this may be
            smaller than the requested ``dt``.
        error_estimate: Normalized error estimate; ``<= 1.0`` means the
            step met the tolerance. Always 0.0 for RK4.
        dt_next: Suggested timestep for the next step. Equals ``dt_used``
            for RK4.
    """

    state: Array
    dt_used: Array
    error_estimate: Array
    dt_next: Array


class AdaptiveConfig(NamedTuple):
    """Configuration for adaptive step-size control.

    Attributes:
        abs_tol: Absolute error tolerance.
        rel_tol: Relative error tolerance.
        safety_factor: Multiplicative safety factor applied to step-size
            predictions.
        min_scale_factor: Minimum allowed ratio ``dt_next / dt_used``.
        max_scale_factor: Maximum allowed ratio ``dt_next / dt_used``.
        min_step: Absolute minimum step size. A step at this size is
            accepted regardless of error.
        max_step: Absolute maximum step size.
        max_step_attempts: Maximum number of rejection retries before the
            step is accepted regardless.
    """

    abs_tol: float = 1e-6
    rel_tol: float = 1e-3
    safety_factor: float = 0.9
    min_scale_factor: float = 0.2
    max_scale_factor: float = 10.0
    min_step: float = 1e-12
    max_step: float = 900.0
    max_step_attempts: int = 10
