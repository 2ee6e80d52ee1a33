"""Run configuration for an orbit determination scenario.

:class:`ScenarioConfig` gathers every constant of a run: where and when
the spacecraft starts, which stations track it, how both trajectories are
propagated, and how the filter is initialised.  It is frozen and
validated on construction; the pipeline reads it and nothing else.

Filter quantities are SI.  The default filter noise, a 1 m range sigma
and a range-rate variance of 1e3 m^2/s^2, corresponds to
``diag(1e-6 km^2, 1e-3 km^2/s^2)``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

import jax
import jax.numpy as jnp
from jax import Array

from odjax.config import get_dtype, get_epoch_eq_tolerance
from odjax.constants import GM_EARTH
from odjax.coordinates import state_koe_to_eci
from odjax.epoch import Epoch
from odjax.integrators import PropagatorOptions
from odjax.orbit_measurements import GroundStation



def _dsn_stations() -> tuple[GroundStation, ...]:
    return (
        GroundStation.dss65_madrid(),
        GroundStation.dss34_canberra(),
        GroundStation.dss13_goldstone(),
    )


@dataclass(frozen=True)
class ScenarioConfig:
    """Configuration of one orbit determination run.

    Args:
        start_epoch: ISO 8601 epoch of ``t = 0``.
        keplerian_elements: ``(a, e, i, RAAN, omega, M)`` of the initial
            orbit; *a* in *m*, angles in *deg*.
        stations: Ground stations in priority order.
        propagation_duration: Span of both propagations [s].  Must be a
            whole number of steps.
        step_size: Fixed step shared by the truth and estimation runs [s].
        ekf_threshold: Switch to the EKF once more than this many
            measurements have been processed.
        initial_position_variance: Initial covariance diagonal, position
            [m^2].
        initial_velocity_variance: Initial covariance diagonal, velocity
            [m^2/s^2].
        range_sigma: Filter range noise, 1-sigma [m].
        range_rate_sigma: Filter range-rate noise, 1-sigma [m/s].
        epoch_tolerance: Epoch matching tolerance [s]. ``None`` selects
            :func:`~odjax.config.get_epoch_eq_tolerance`.
        seed: PRNG seed for station measurement noise.  ``None`` gives
            noise-free observations.
        gm: Gravitational parameter of the central body [m^3/s^2].
    """

    start_epoch: str = "2018-02-27T00:00:00Z"
    keplerian_elements: tuple[float, ...] = (22000.0e3, 0.01, 30.0, 80.0, 40.0, 0.0)
    stations: tuple[GroundStation, ...] = field(default_factory=_dsn_stations)
    propagation_duration: float = 86400.0
    step_size: float = 10.0
    ekf_threshold: int = 15
    initial_position_variance: float = 1.0
    initial_velocity_variance: float = 1.0
    range_sigma: float = 1.0
    range_rate_sigma: float = math.sqrt(1.0e3)
    epoch_tolerance: float | None = None
    seed: int | None = None
    gm: float = GM_EARTH

    def __post_init__(self) -> None:
        Epoch(self.start_epoch)
        if len(self.keplerian_elements) != 6:
            raise ValueError(
                f"keplerian_elements must have 6 entries, got {len(self.keplerian_elements)}"
            )
        if not 0.0 <= self.keplerian_elements[1] < 1.0:
            raise ValueError(
                f"Eccentricity must be in [0, 1), got {self.keplerian_elements[1]}"
            )
        if not self.stations:
            raise ValueError("At least one ground station is required")
        if self.step_size <= 0.0 or self.propagation_duration <= 0.0:
            raise ValueError(
                f"step_size and propagation_duration must be positive, got "
                f"{self.step_size} and {self.propagation_duration}"
            )
        n_steps = self.propagation_duration / self.step_size
        if abs(n_steps - round(n_steps)) > 1e-9:
            raise ValueError(
                f"propagation_duration {self.propagation_duration} s is not a whole "
                f"number of {self.step_size} s steps"
            )
        if self.ekf_threshold < 0:
            raise ValueError(f"ekf_threshold must be non-negative, got {self.ekf_threshold}")
        if min(self.initial_position_variance, self.initial_velocity_variance) <= 0.0:
            raise ValueError("Initial covariance variances must be positive")
        if min(self.range_sigma, self.range_rate_sigma) <= 0.0:
            raise ValueError(
                f"Filter noise sigmas must be positive, got {self.range_sigma} "
                f"and {self.range_rate_sigma}"
            )
        if self.epoch_tolerance is not None and self.epoch_tolerance <= 0.0:
            raise ValueError(f"epoch_tolerance must be positive, got {self.epoch_tolerance}")

    @staticmethod
    def simple_orbit_determination() -> ScenarioConfig:
        """Preset: one day of noise-free DSN tracking of a 22000 km orbit.

        Returns:
            ScenarioConfig: Madrid, Canberra and Goldstone with a 0 deg
            mask and no noise, 10 s steps, EKF after 15 measurements.
        """
        return ScenarioConfig()

    def epoch(self) -> Epoch:
        return Epoch(self.start_epoch)

    def initial_state(self) -> Array:
        """ECI state of the Keplerian elements [m, m/s]."""
        return state_koe_to_eci(
            jnp.array(self.keplerian_elements, dtype=get_dtype()),
            use_degrees=True,
            gm=self.gm,
        )

    def initial_covariance(self) -> Array:
        dtype = get_dtype()
        return jnp.diag(jnp.array(
            [self.initial_position_variance] * 3 + [self.initial_velocity_variance] * 3,
            dtype=dtype,
        ))

    def measurement_noise(self) -> Array:
        """Filter ``R`` from the range and range-rate sigmas."""
        return jnp.diag(jnp.array(
            [self.range_sigma**2, self.range_rate_sigma**2], dtype=get_dtype()
        ))

    def truth_options(self) -> PropagatorOptions:
        """Fixed-step options of the truth propagator.

        Both runs step with RK4 at ``step_size``, which is what makes a
        noise-free reference trajectory reproduce the truth exactly.
        Error-control policies only apply to adaptive propagation, see
        :meth:`~odjax.integrators.PropagatorOptions.with_adaptive_step`.
        """
        return PropagatorOptions.with_fixed_step(self.step_size)

    def estimation_options(self) -> PropagatorOptions:
        """Fixed-step options of the estimation (reference) propagator."""
        return PropagatorOptions.with_fixed_step(self.step_size)

    def resolved_epoch_tolerance(self) -> float:
        if self.epoch_tolerance is not None:
            return self.epoch_tolerance
        return get_epoch_eq_tolerance()

    def rng_key(self) -> Array | None:
        if self.seed is None:
            return None
        return jax.random.PRNGKey(self.seed)
