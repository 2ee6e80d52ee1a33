"""Numerical ODE integrators and the propagator built on them.

- :func:`rk4_step` -- classic 4th-order Runge-Kutta (fixed step)
- :func:`dp54_step` -- Dormand-Prince 5(4) (adaptive step)
- :class:`Propagator` -- repeated stepping over a duration with a
  per-step sink

Step functions share the interface::

    result = step_fn(dynamics, t, state, dt)

where ``dynamics(t, x) -> dx`` defines the ODE right-hand side and the
result is a :class:`StepResult` named tuple.
"""

from odjax.integrators._types import AdaptiveConfig, StepResult
from odjax.integrators.dp54 import dp54_step
from odjax.integrators.error_ctrl import ErrorNorm, largest_error, rss_state_pos_vel
from odjax.integrators.propagator import Propagator, PropagatorOptions
from odjax.integrators.rk4 import rk4_step

__all__ = [
    "AdaptiveConfig",
    "StepResult",
    "rk4_step",
    "dp54_step",
    "ErrorNorm",
    "largest_error",
    "rss_state_pos_vel",
    "Propagator",
    "PropagatorOptions",
]
