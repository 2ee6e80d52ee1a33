"""Propagator: repeated integrator steps over a time span.

A :class:`Propagator` owns the current time and state of one
integration and pushes every accepted step to a *sink*.  In fixed-step
mode it takes exactly ``step_size`` per step, truncating only the final
step so that propagation lands on the requested duration.  Step times
are computed as ``k * step_size`` rather than accumulated, so two
propagators with the same options visit bit-identical times.

Adaptive mode steps with :func:`~odjax.integrators.dp54_step` under the
selected error-control policy.

Example:
    ```python
    from odjax.integrators import Propagator, PropagatorOptions
    from odjax.orbit_dynamics import create_two_body_dynamics

    samples = []
    prop = Propagator(create_two_body_dynamics(), PropagatorOptions(step_size=10.0), x0)
    prop.until_time_elapsed(3600.0, lambda t, x: samples.append((t, x)))
    ```
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, field
from functools import partial

import jax
import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from odjax.config import get_dtype
from odjax.integrators._types import AdaptiveConfig
from odjax.integrators.dp54 import dp54_step
from odjax.integrators.error_ctrl import ErrorNorm, largest_error
from odjax.integrators.rk4 import rk4_step

logger = logging.getLogger(__name__)

Sink = Callable[[float, Array], "bool | None"]


@dataclass(frozen=True)
class PropagatorOptions:
    """Step control for a :class:`Propagator`.

    Args:
        step_size: Fixed step, or the initial step in adaptive mode [s].
        fixed_step: If ``True``, take exactly ``step_size`` per step
            with RK4.  If ``False``, step adaptively with DP54.
        adaptive: Tolerances and bounds for adaptive mode.
        error_norm: Error-control policy for adaptive mode.  Fixed-step
            options only accept the default.
    """

    step_size: float = 10.0
    fixed_step: bool = True
    adaptive: AdaptiveConfig = field(default_factory=AdaptiveConfig)
    error_norm: ErrorNorm = largest_error

    def __post_init__(self) -> None:
        if not math.isfinite(self.step_size) or self.step_size <= 0.0:
            raise ValueError(
                f"step_size must be finite and positive, got {self.step_size}"
            )
        if self.fixed_step and self.error_norm is not largest_error:
            policy = getattr(self.error_norm, "__name__", self.error_norm)
            raise ValueError(
                f"error_norm {policy} has no effect on fixed-step propagation; "
                "use PropagatorOptions.with_adaptive_step"
            )

    @staticmethod
    def with_fixed_step(step_size: float) -> PropagatorOptions:
        """Fixed-step RK4 propagation."""
        return PropagatorOptions(step_size=step_size, fixed_step=True)

    @staticmethod
    def with_adaptive_step(
        initial_step: float,
        config: AdaptiveConfig | None = None,
        error_norm: ErrorNorm = largest_error,
    ) -> PropagatorOptions:
        """Adaptive DP54 propagation under *error_norm*."""
        return PropagatorOptions(
            step_size=initial_step,
            fixed_step=False,
            adaptive=config if config is not None else AdaptiveConfig(),
            error_norm=error_norm,
        )


class Propagator:
    """Integrates ``dynamics`` forward from ``t = 0``.

    Args:
        dynamics: ODE right-hand side ``f(t, x) -> dx/dt``.
        options: Step control.
        initial_state: State at ``t = 0``.
    """

    def __init__(
        self,
        dynamics: Callable[[ArrayLike, ArrayLike], Array],
        options: PropagatorOptions,
        initial_state: ArrayLike,
    ) -> None:
        self.dynamics = dynamics
        self.options = options
        self._state = jnp.asarray(initial_state, dtype=get_dtype())
        self._t = 0.0
        self._steps = 0
        self._dt_next = float(options.step_size)
        self._adaptive_step = None
        if not options.fixed_step:
            self._adaptive_step = jax.jit(partial(
                dp54_step,
                dynamics,
                config=options.adaptive,
                error_norm=options.error_norm,
            ))

    @property
    def t(self) -> float:
        """Elapsed time since the initial state [s]."""
        return self._t

    @property
    def state(self) -> Array:
        """Current state."""
        return self._state

    @state.setter
    def state(self, value: ArrayLike) -> None:
        value = jnp.asarray(value, dtype=get_dtype())
        if value.shape != self._state.shape:
            raise ValueError(
                f"State shape {value.shape} does not match {self._state.shape}"
            )
        self._state = value

    def step(self, max_dt: float | None = None) -> tuple[float, Array]:
        """Take one step, never past ``t + max_dt``.

        Returns:
            tuple: ``(t, state)`` after the step.
        """
        if self.options.fixed_step:
            t_next = (self._steps + 1) * self.options.step_size
            if max_dt is not None:
                t_next = min(t_next, self._t + max_dt)
            result = rk4_step(self.dynamics, self._t, self._state, t_next - self._t)
            self._steps += 1
        else:
            dt = self._dt_next
            if max_dt is not None:
                dt = min(dt, max_dt)
            result = self._adaptive_step(self._t, self._state, dt)
            t_next = self._t + float(result.dt_used)
            self._dt_next = float(result.dt_next)

        self._t = t_next
        self._state = result.state
        return self._t, self._state

    def until_time_elapsed(self, duration: float, sink: Sink | None = None) -> Array:
        """Propagate for *duration* seconds, pushing each step to *sink*.

        The sink is called as ``sink(t, state)`` after every accepted
        step.  It may reassign :attr:`state` before returning, and may
        return ``False`` to stop propagation early.

        Args:
            duration: Time span to propagate [s].
            sink: Per-step callback.

        Returns:
            jax.Array: State at the end of propagation.
        """
        if duration < 0.0:
            raise ValueError(f"duration must be non-negative, got {duration}")

        t_end = self._t + duration
        logger.debug("Propagating %.3f s from t=%.3f s", duration, self._t)

        while self._t < t_end:
            t, state = self.step(max_dt=t_end - self._t)
            if sink is not None and sink(t, state) is False:
                logger.debug("Propagation stopped by sink at t=%.3f s", t)
                break

        return self._state
