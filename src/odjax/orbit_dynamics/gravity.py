"""Central-body point-mass gravity.

Positions in metres, accelerations in metres per second squared.

References:
    1. O. Montenbruck and E. Gill, *Satellite Orbits: Models, Methods
       and Applications*, 2012, Sec. 3.1.
"""

from __future__ import annotations

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from odjax.config import get_dtype
from odjax.constants import GM_EARTH


def accel_gravity(r_object: ArrayLike, gm: float = GM_EARTH) -> Array:
    """Two-body acceleration ``-gm * r / |r|^3``, Earth by default.

    Args:
        r_object: Position of the object in ECI [m].  Shape ``(3,)`` or
            ``(6,)`` (only first 3 elements used).
        gm: Gravitational parameter [m^3/s^2]. Default: ``GM_EARTH``.

    Returns:
        Acceleration vector [m/s^2], shape ``(3,)``.

    Examples:
        ```python
        import jax.numpy as jnp
        from odjax.constants import R_EARTH
        from odjax.orbit_dynamics import accel_gravity
        a = accel_gravity(jnp.array([R_EARTH, 0.0, 0.0]))
        ```
    """
    r = jnp.asarray(r_object, dtype=get_dtype())[:3]
    r_cubed = jnp.linalg.norm(r) ** 3
    return (-gm / r_cubed) * r
