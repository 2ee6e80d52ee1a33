"""Earth-rotation transformations between ECI and ECEF.

The model is a single rotation about the polar axis by the Greenwich Mean
Sidereal Time of the epoch.  Precession, nutation and polar motion are not
modelled: ground stations are placed with this same rotation in both the
truth and the estimation run, so the omitted terms cancel out of the
filter residuals.

State transformations include the transport term
:math:`\\boldsymbol{\\omega}_\\oplus \\times \\mathbf{r}` so that a
station fixed on the ground acquires its inertial velocity.

All inputs and outputs use SI base units (metres, metres/second).

References:
    1. D. Vallado, *Fundamentals of Astrodynamics and Applications*,
       4th ed., Microcosm Press, 2013, Sec. 3.7.
"""

from __future__ import annotations

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from odjax.config import get_dtype
from odjax.constants import OMEGA_EARTH
from odjax.epoch import Epoch


def earth_rotation(epc: Epoch) -> Array:
    """Return the 3x3 matrix :math:`R_z(\\theta_{\\text{GMST}})` at *epc*.

    The matrix rotates vectors expressed in ECI into ECEF.

    Args:
        epc: Epoch at which to evaluate the rotation.

    Returns:
        jax.Array: 3x3 rotation matrix.

    Example:
        >>> from odjax import Epoch
        >>> from odjax.frames import earth_rotation
        >>> earth_rotation(Epoch(2018, 2, 27)).shape
        (3, 3)
    """
    theta = epc.gmst()
    c = jnp.cos(theta)
    s = jnp.sin(theta)
    return jnp.array([
        [c, s, 0.0],
        [-s, c, 0.0],
        [0.0, 0.0, 1.0],
    ], dtype=get_dtype())


def rotation_eci_to_ecef(epc: Epoch) -> Array:
    """Rotation matrix from ECI to ECEF. Alias of :func:`earth_rotation`."""
    return earth_rotation(epc)


def rotation_ecef_to_eci(epc: Epoch) -> Array:
    """Rotation matrix from ECEF to ECI, the transpose of :func:`earth_rotation`."""
    return earth_rotation(epc).T


def _omega_cross(r: Array) -> Array:
    """Transport velocity of an Earth-fixed point at ``r``."""
    return jnp.cross(jnp.array([0.0, 0.0, OMEGA_EARTH], dtype=r.dtype), r)


def state_eci_to_ecef(epc: Epoch, x_eci: ArrayLike) -> Array:
    """Transform a 6-element ECI state into ECEF.

    Position is rotated; velocity is rotated and the Earth's transport
    velocity at the rotated position is removed.

    Args:
        epc: Epoch at which to evaluate the transformation.
        x_eci: ECI state ``[x, y, z, vx, vy, vz]``. Units: m, m/s.

    Returns:
        jax.Array: ECEF state ``[x, y, z, vx, vy, vz]``. Units: m, m/s.
    """
    rot = earth_rotation(epc)
    pos_vel = jnp.asarray(x_eci, dtype=get_dtype()).reshape(2, 3) @ rot.T
    return jnp.concatenate([pos_vel[0], pos_vel[1] - _omega_cross(pos_vel[0])])


def state_ecef_to_eci(epc: Epoch, x_ecef: ArrayLike) -> Array:
    """Transform a 6-element ECEF state into ECI.

    Inverse of :func:`state_eci_to_ecef`.  A ground station passed with
    zero ECEF velocity comes back with its inertial velocity, the rotated
    ``omega x r``.

    Args:
        epc: Epoch at which to evaluate the transformation.
        x_ecef: ECEF state ``[x, y, z, vx, vy, vz]``. Units: m, m/s.

    Returns:
        jax.Array: ECI state ``[x, y, z, vx, vy, vz]``. Units: m, m/s.
    """
    x_ecef = jnp.asarray(x_ecef, dtype=get_dtype())
    r_ecef = x_ecef[:3]
    inertial = jnp.stack([r_ecef, x_ecef[3:6] + _omega_cross(r_ecef)])
    return (inertial @ earth_rotation(epc)).reshape(-1)
