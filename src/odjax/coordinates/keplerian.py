"""Keplerian orbital elements to ECI Cartesian state.

Elements are ordered ``[a, e, i, RAAN, omega, M]``: semi-major axis in
metres, eccentricity, then inclination, right ascension of the ascending
node, argument of perigee and mean anomaly in radians (or degrees when
``use_degrees=True``).

References:
    1. O. Montenbruck and E. Gill, *Satellite Orbits: Models, Methods
       and Applications*, Springer, 2012, Sec. 2.2.
    2. D. Vallado, *Fundamentals of Astrodynamics and Applications
       (4th Ed.)*, 2010, Alg. 10.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from odjax.config import get_dtype
from odjax.constants import GM_EARTH

# Fixed so the solver traces to a static loop
_KEPLER_ITERATIONS = 10


def anomaly_mean_to_eccentric(anm_mean: ArrayLike, e: ArrayLike) -> Array:
    """Solve Kepler's equation ``M = E - e sin(E)`` for the eccentric anomaly.

    Args:
        anm_mean: Mean anomaly. Units: *rad*
        e: Eccentricity. Dimensionless.

    Returns:
        Eccentric anomaly. Units: *rad*
    """
    dtype = get_dtype()
    M = jnp.mod(jnp.asarray(anm_mean, dtype=dtype), 2.0 * jnp.pi)
    e = jnp.asarray(e, dtype=dtype)

    # Highly eccentric orbits start from pi to keep Newton from overshooting
    guess = jnp.where(e < 0.8, M + e * jnp.sin(M), jnp.pi)

    def refine(_, E):
        residual = E - e * jnp.sin(E) - M
        return E - residual / (1.0 - e * jnp.cos(E))

    return jax.lax.fori_loop(0, _KEPLER_ITERATIONS, refine, guess)


def _rot_x(angle):
    c, s = jnp.cos(angle), jnp.sin(angle)
    return jnp.array([[1.0, 0.0, 0.0], [0.0, c, -s], [0.0, s, c]])


def _rot_z(angle):
    c, s = jnp.cos(angle), jnp.sin(angle)
    return jnp.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])


def state_koe_to_eci(
    x_oe: ArrayLike,
    use_degrees: bool = False,
    gm: float = GM_EARTH,
) -> Array:
    """Convert Keplerian orbital elements to an ECI Cartesian state vector.

    The state is formed in the perifocal frame from the eccentric anomaly
    and rotated into ECI by ``Rz(RAAN) Rx(i) Rz(omega)``.

    Args:
        x_oe: Orbital elements ``[a, e, i, RAAN, omega, M]``.
        use_degrees: If ``True``, interpret angular elements as degrees.
        gm: Gravitational parameter of the central body. Units: *m^3/s^2*

    Returns:
        ECI state ``[x, y, z, vx, vy, vz]`` in *m* and *m/s*.

    Examples:
        ```python
        import jax.numpy as jnp
        from odjax.coordinates import state_koe_to_eci
        oe = jnp.array([22000e3, 0.01, 30.0, 80.0, 40.0, 0.0])
        state = state_koe_to_eci(oe, use_degrees=True)
        ```
    """
    x_oe = jnp.asarray(x_oe, dtype=get_dtype())
    a, e = x_oe[0], x_oe[1]
    angles = jnp.deg2rad(x_oe[2:]) if use_degrees else x_oe[2:]
    inc, raan, argp, M = angles[0], angles[1], angles[2], angles[3]

    E = anomaly_mean_to_eccentric(M, e)
    cos_E, sin_E = jnp.cos(E), jnp.sin(E)
    semi_minor = jnp.sqrt(1.0 - e * e)
    radius = a * (1.0 - e * cos_E)

    r_pqw = a * jnp.array([cos_E - e, semi_minor * sin_E, 0.0])
    v_pqw = (jnp.sqrt(gm * a) / radius) * jnp.array([-sin_E, semi_minor * cos_E, 0.0])

    pqw_to_eci = _rot_z(raan) @ _rot_x(inc) @ _rot_z(argp)
    return jnp.concatenate([pqw_to_eci @ r_pqw, pqw_to_eci @ v_pqw])
