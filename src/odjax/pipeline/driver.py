"""Reference trajectory and STM propagation for the estimator."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import NamedTuple

from jax import Array
from jax.typing import ArrayLike

from odjax.integrators import Propagator, PropagatorOptions
from odjax.orbit_dynamics import (
    augment_state,
    create_two_body_stm_dynamics,
    split_augmented_state,
)
from odjax.pipeline._channel import Channel, start_producer

logger = logging.getLogger(__name__)


class ReferenceSample(NamedTuple):
    """Reference state at ``t`` and the STM of the step that reached it."""

    t: float
    state: Array
    stm: Array


class EstimatorDynamicsDriver:
    """Propagates the STM-augmented reference state on a producer thread.

    After every published sample the STM part of the state is reset to
    the identity, so each sample's STM maps a deviation from the previous
    sample epoch to the current one.

    Args:
        initial_state: Reference ECI state at the start epoch [m, m/s].
        options: Step control; must match the truth run.
        duration: Propagation span [s].
        dynamics: ``f(t, aug)`` over the 42-element augmented state.
            Defaults to two-body dynamics with the variational equation.
    """

    def __init__(
        self,
        initial_state: ArrayLike,
        options: PropagatorOptions,
        duration: float,
        dynamics: Callable[[ArrayLike, ArrayLike], Array] | None = None,
    ) -> None:
        self.options = options
        self.duration = duration
        if dynamics is None:
            dynamics = create_two_body_stm_dynamics()
        self._propagator = Propagator(dynamics, options, augment_state(initial_state))
        self._lock = threading.Lock()
        self._corrections = 0

    @property
    def step_size(self) -> float:
        return self.options.step_size

    @property
    def reference_state(self) -> Array:
        with self._lock:
            return split_augmented_state(self._propagator.state)[0]

    @property
    def corrections(self) -> int:
        """Number of deviations folded into the reference so far."""
        return self._corrections

    def start(self, channel: Channel) -> threading.Thread:
        """Start propagating on a new thread, publishing ``ReferenceSample``."""
        return start_producer("estimator-dynamics", self._run, channel)

    def apply_correction(self, delta: ArrayLike) -> None:
        """Add a state deviation to the current reference state.

        Called by the consumer while the producer waits on a lock-step
        send, so the correction is in place before the next step.
        """
        with self._lock:
            state, stm = split_augmented_state(self._propagator.state)
            self._propagator.state = augment_state(state + delta, stm)
            self._corrections += 1

    def _run(self, channel: Channel) -> None:
        def sink(t: float, aug: Array) -> bool:
            state, stm = split_augmented_state(aug)
            if not channel.send(ReferenceSample(t=t, state=state, stm=stm)):
                return False
            with self._lock:
                state, _ = split_augmented_state(self._propagator.state)
                self._propagator.state = augment_state(state)
            return True

        self._propagator.until_time_elapsed(self.duration, sink)
        logger.info("Reference propagation finished at t=%.1f s", self._propagator.t)
