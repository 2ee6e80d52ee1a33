"""Two-way range and range-rate tracking from ground stations.

A :class:`GroundStation` is placed on the WGS84 ellipsoid and rotated
into the inertial frame with the Earth-rotation model of
:mod:`odjax.frames`, acquiring the velocity :math:`\\omega_\\oplus
\\times \\mathbf{r}`.  For a spacecraft state :math:`(\\mathbf{r},
\\mathbf{v})` in ECI the station observes

.. math::

    \\rho = \\lVert \\mathbf{r} - \\mathbf{r}_s \\rVert, \\qquad
    \\dot{\\rho} = \\frac{(\\mathbf{r} - \\mathbf{r}_s) \\cdot
        (\\mathbf{v} - \\mathbf{v}_s)}{\\rho}

and the sensitivity :math:`\\tilde{H} = \\partial(\\rho, \\dot{\\rho}) /
\\partial \\mathbf{x}` is taken with ``jax.jacfwd``.

:meth:`GroundStation.measure` always returns a :class:`Measurement`.
When the spacecraft is below the elevation mask the observation and
sensitivity are NaN-filled; when it sits exactly on the station the
range is zero and the range-rate and every sensitivity entry are NaN.
:meth:`GroundStation.observe` turns both cases into ``None``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple

import jax
import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from odjax.config import get_dtype
from odjax.coordinates import (
    position_enz_to_azel,
    position_geodetic_to_ecef,
    rotation_ellipsoid_to_enz,
)
from odjax.epoch import Epoch
from odjax.frames import rotation_eci_to_ecef, state_ecef_to_eci

OBSERVATION_SIZE = 2


def _range_and_rate(state, station_state):
    rho = state[:3] - station_state[:3]
    rho_dot = state[3:6] - station_state[3:6]
    rng = jnp.sqrt(jnp.dot(rho, rho))
    return jnp.array([rng, jnp.dot(rho, rho_dot) / rng])


_observation = jax.jit(_range_and_rate)
_sensitivity = jax.jit(jax.jacfwd(_range_and_rate))


class Measurement(NamedTuple):
    """A range/range-rate observation of a spacecraft by one station.

    Attributes:
        epoch: Time of the observation.
        station: Name of the observing station.
        observation: ``[range, range_rate]`` in *m* and *m/s*.
        sensitivity: Partial derivatives of the observation with respect
            to the ECI state, ``(2, 6)``.
        visible: Whether the spacecraft is at or above the elevation mask.
        elevation: Elevation of the spacecraft in *deg*.
    """

    epoch: Epoch
    station: str
    observation: Array
    sensitivity: Array
    visible: bool
    elevation: float

    @property
    def valid(self) -> bool:
        """Visible, with every observation and sensitivity entry finite."""
        return (
            self.visible
            and bool(jnp.all(jnp.isfinite(self.observation)))
            and bool(jnp.all(jnp.isfinite(self.sensitivity)))
        )

    @property
    def range(self) -> Array:
        return self.observation[0]

    @property
    def range_rate(self) -> Array:
        return self.observation[1]


@dataclass(frozen=True)
class GroundStation:
    """A range/range-rate tracking station.

    Args:
        name: Station identifier.
        latitude: Geodetic latitude [deg].
        longitude: Geodetic longitude [deg].
        height: Height above the WGS84 ellipsoid [m].
        elevation_mask: Minimum elevation for tracking [deg].
        range_noise: 1-sigma range noise [m].
        range_rate_noise: 1-sigma range-rate noise [m/s].
    """

    name: str
    latitude: float
    longitude: float
    height: float
    elevation_mask: float = 0.0
    range_noise: float = 0.0
    range_rate_noise: float = 0.0

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"latitude must be in [-90, 90] deg, got {self.latitude}")
        if not -90.0 <= self.elevation_mask <= 90.0:
            raise ValueError(
                f"elevation_mask must be in [-90, 90] deg, got {self.elevation_mask}"
            )
        if self.range_noise < 0.0 or self.range_rate_noise < 0.0:
            raise ValueError(
                f"Noise sigmas must be non-negative, got range_noise={self.range_noise}, "
                f"range_rate_noise={self.range_rate_noise}"
            )

    # Deep Space Network complexes

    @staticmethod
    def dss65_madrid(
        elevation_mask: float = 0.0,
        range_noise: float = 0.0,
        range_rate_noise: float = 0.0,
    ) -> GroundStation:
        """DSS-65, Madrid Deep Space Communications Complex."""
        return GroundStation(
            name="Madrid",
            latitude=40.427222,
            longitude=4.250556,
            height=834.939,
            elevation_mask=elevation_mask,
            range_noise=range_noise,
            range_rate_noise=range_rate_noise,
        )

    @staticmethod
    def dss34_canberra(
        elevation_mask: float = 0.0,
        range_noise: float = 0.0,
        range_rate_noise: float = 0.0,
    ) -> GroundStation:
        """DSS-34, Canberra Deep Space Communication Complex."""
        return GroundStation(
            name="Canberra",
            latitude=-35.398333,
            longitude=148.981944,
            height=691.750,
            elevation_mask=elevation_mask,
            range_noise=range_noise,
            range_rate_noise=range_rate_noise,
        )

    @staticmethod
    def dss13_goldstone(
        elevation_mask: float = 0.0,
        range_noise: float = 0.0,
        range_rate_noise: float = 0.0,
    ) -> GroundStation:
        """DSS-13, Goldstone Deep Space Communications Complex."""
        return GroundStation(
            name="Goldstone",
            latitude=35.247164,
            longitude=243.205,
            height=1071.14904,
            elevation_mask=elevation_mask,
            range_noise=range_noise,
            range_rate_noise=range_rate_noise,
        )

    # Geometry

    @property
    def geodetic(self) -> Array:
        """``[lon, lat, alt]`` in *deg*, *deg*, *m*."""
        return jnp.array([self.longitude, self.latitude, self.height], dtype=get_dtype())

    def position_ecef(self) -> Array:
        """Station position in ECEF [m]."""
        return position_geodetic_to_ecef(self.geodetic, use_degrees=True)

    def state_eci(self, epoch: Epoch) -> Array:
        """Station position and velocity in ECI at *epoch* [m, m/s]."""
        r_ecef = self.position_ecef()
        return state_ecef_to_eci(epoch, jnp.concatenate([r_ecef, jnp.zeros_like(r_ecef)]))

    def elevation(self, state: ArrayLike, epoch: Epoch) -> Array:
        """Elevation of a spacecraft ECI state above the local horizon [deg]."""
        state = jnp.asarray(state, dtype=get_dtype())
        rho_eci = state[:3] - self.state_eci(epoch)[:3]
        rho_enz = (rotation_ellipsoid_to_enz(self.geodetic, use_degrees=True)
                   @ (rotation_eci_to_ecef(epoch) @ rho_eci))
        return position_enz_to_azel(rho_enz, use_degrees=True)[1]

    # Observations

    def measure(
        self,
        state: ArrayLike,
        epoch: Epoch,
        key: Array | None = None,
    ) -> Measurement:
        """Simulate a range/range-rate measurement of *state* at *epoch*.

        Args:
            state: Spacecraft ECI state ``[x, y, z, vx, vy, vz]`` [m, m/s].
            epoch: Observation epoch.
            key: Optional ``jax.random`` key.  When given, independent
                Gaussian noise with the station's sigmas is added to range
                and range-rate.

        Returns:
            Measurement: Never ``None``.  Invisible or degenerate geometry
            is reported through NaN entries; see :attr:`Measurement.valid`.
        """
        dtype = get_dtype()
        state = jnp.asarray(state, dtype=dtype)
        station_state = self.state_eci(epoch)

        elevation = self.elevation(state, epoch)
        visible = bool(elevation >= self.elevation_mask)

        if visible:
            observation = _observation(state, station_state)
            sensitivity = _sensitivity(state, station_state)
            if key is not None and (self.range_noise > 0.0 or self.range_rate_noise > 0.0):
                sigma = jnp.array([self.range_noise, self.range_rate_noise], dtype=dtype)
                observation = observation + sigma * jax.random.normal(
                    key, (OBSERVATION_SIZE,), dtype=dtype
                )
        else:
            observation = jnp.full(OBSERVATION_SIZE, jnp.nan, dtype=dtype)
            sensitivity = jnp.full((OBSERVATION_SIZE, state.shape[0]), jnp.nan, dtype=dtype)

        return Measurement(
            epoch=epoch,
            station=self.name,
            observation=observation,
            sensitivity=sensitivity,
            visible=visible,
            elevation=float(elevation),
        )

    def observe(
        self,
        state: ArrayLike,
        epoch: Epoch,
        key: Array | None = None,
    ) -> Measurement | None:
        """Like :meth:`measure`, but ``None`` unless the measurement is valid."""
        measurement = self.measure(state, epoch, key)
        return measurement if measurement.valid else None

    def measurement_noise(self) -> Array:
        """Diagonal ``R`` from the station's range and range-rate sigmas."""
        dtype = get_dtype()
        return jnp.diag(jnp.array(
            [self.range_noise**2, self.range_rate_noise**2], dtype=dtype
        ))
