"""Truth trajectory generation on a producer thread."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import NamedTuple

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from odjax.config import get_dtype
from odjax.integrators import Propagator, PropagatorOptions
from odjax.orbit_dynamics import create_two_body_dynamics
from odjax.pipeline._channel import Channel, start_producer

logger = logging.getLogger(__name__)


class TruthSample(NamedTuple):
    """Truth state at ``t`` seconds after the start epoch."""

    t: float
    state: Array


class TruthGenerator:
    """Propagates the true orbit and publishes every step.

    Args:
        initial_state: ECI state at the start epoch [m, m/s].
        options: Step control; the step must match the estimation run.
        duration: Propagation span [s].
        dynamics: ``f(t, x)`` over the 6-element state. Defaults to
            point-mass two-body gravity.
    """

    def __init__(
        self,
        initial_state: ArrayLike,
        options: PropagatorOptions,
        duration: float,
        dynamics: Callable[[ArrayLike, ArrayLike], Array] | None = None,
    ) -> None:
        self.initial_state = jnp.asarray(initial_state, dtype=get_dtype())
        self.options = options
        self.duration = duration
        self.dynamics = dynamics if dynamics is not None else create_two_body_dynamics()

    def start(self, channel: Channel) -> threading.Thread:
        """Start propagating on a new thread, publishing ``TruthSample``."""
        return start_producer("truth-generator", self._run, channel)

    def _run(self, channel: Channel) -> None:
        propagator = Propagator(self.dynamics, self.options, self.initial_state)

        def sink(t: float, state: Array) -> bool:
            return channel.send(TruthSample(t=t, state=state))

        propagator.until_time_elapsed(self.duration, sink)
        logger.info("Truth trajectory complete at t=%.1f s", propagator.t)
