"""East-North-Zenith (ENZ) topocentric frame.

The local horizontal frame at an observer: East and North tangent to the
ellipsoid, Zenith along the ellipsoid normal.  A station's elevation of
a target is the angle of the observer-to-target vector above the
East-North plane.
"""

from __future__ import annotations

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from odjax.config import get_dtype


def rotation_ellipsoid_to_enz(
    x_ellipsoid: ArrayLike,
    use_degrees: bool = False,
) -> Array:
    """Compute the rotation matrix from ECEF to East-North-Zenith (ENZ).

    Args:
        x_ellipsoid: Observer location ``[lon, lat, alt]``.
            Longitude and latitude in *rad* (or *deg* if ``use_degrees=True``),
            altitude in *m*.  Altitude does not affect the rotation.
        use_degrees: If ``True``, interpret longitude and latitude as degrees.

    Returns:
        3x3 rotation matrix (ECEF → ENZ) whose rows are the East, North
        and Zenith unit vectors in ECEF.

    Examples:
        ```python
        import jax.numpy as jnp
        from odjax.coordinates import rotation_ellipsoid_to_enz
        rot = rotation_ellipsoid_to_enz(jnp.array([4.25, 40.43, 834.9]), use_degrees=True)
        ```
    """
    lon_lat = jnp.asarray(x_ellipsoid, dtype=get_dtype())[:2]
    if use_degrees:
        lon_lat = jnp.deg2rad(lon_lat)
    cos_lon, cos_lat = jnp.cos(lon_lat)
    sin_lon, sin_lat = jnp.sin(lon_lat)

    zenith = jnp.array([cos_lat * cos_lon, cos_lat * sin_lon, sin_lat])
    east = jnp.array([-sin_lon, cos_lon, 0.0])
    north = jnp.cross(zenith, east)
    return jnp.stack([east, north, zenith])


def position_enz_to_azel(
    x_enz: ArrayLike,
    use_degrees: bool = False,
) -> Array:
    """Convert an ENZ vector to azimuth, elevation and range.

    Azimuth runs clockwise from North.  A target straight overhead (or a
    zero vector) has azimuth ``0``, and a zero vector has elevation ``0``
    rather than ``NaN``.

    Args:
        x_enz: ENZ vector ``[east, north, zenith]`` in *m*.
        use_degrees: If ``True``, return azimuth and elevation in degrees.

    Returns:
        ``[azimuth, elevation, range]``. Azimuth in ``[0, 2pi)`` rad,
        elevation in ``[-pi/2, pi/2]`` rad, range in *m*.
    """
    east, north, up = jnp.asarray(x_enz, dtype=get_dtype())

    horizontal = jnp.hypot(east, north)
    azimuth = jnp.where(
        horizontal > 0.0, jnp.mod(jnp.arctan2(east, north), 2.0 * jnp.pi), 0.0
    )
    elevation = jnp.arctan2(up, horizontal)
    slant_range = jnp.hypot(horizontal, up)

    if use_degrees:
        azimuth = jnp.rad2deg(azimuth)
        elevation = jnp.rad2deg(elevation)

    return jnp.array([azimuth, elevation, slant_range])
