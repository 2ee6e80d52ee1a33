"""Geodetic (WGS84 ellipsoid) station placement.

Ground stations are specified by longitude, latitude and height above
the ellipsoid and tracked in Earth-fixed Cartesian space, so only the
closed-form geodetic to ECEF direction is provided.

References:
    1. NIMA Technical Report TR8350.2, *Department of Defense World Geodetic
       System 1984*.
"""

from __future__ import annotations

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from odjax.config import get_dtype
from odjax.constants import WGS84_a, WGS84_f

# First eccentricity squared of the WGS84 ellipsoid
WGS84_E2 = WGS84_f * (2.0 - WGS84_f)


def position_geodetic_to_ecef(
    x_geod: ArrayLike,
    use_degrees: bool = False,
) -> Array:
    """Convert a geodetic position to ECEF Cartesian coordinates.

    Args:
        x_geod: ``[lon, lat, alt]``, angles in *rad* (or *deg* if
            ``use_degrees=True``) and altitude in *m* above the ellipsoid.
        use_degrees: If ``True``, interpret longitude and latitude as degrees.

    Returns:
        jax.Array: ECEF position ``[x, y, z]`` in *m*.

    Example:
        >>> import jax.numpy as jnp
        >>> from odjax.coordinates import position_geodetic_to_ecef
        >>> float(position_geodetic_to_ecef(jnp.zeros(3))[0])
        6378137.0
    """
    x_geod = jnp.asarray(x_geod, dtype=get_dtype())
    lon_lat = jnp.deg2rad(x_geod[:2]) if use_degrees else x_geod[:2]
    height = x_geod[2]

    cos_lon, cos_lat = jnp.cos(lon_lat)
    sin_lon, sin_lat = jnp.sin(lon_lat)

    # Prime vertical radius of curvature
    n_radius = WGS84_a / jnp.sqrt(1.0 - WGS84_E2 * sin_lat**2)
    equatorial = (n_radius + height) * cos_lat

    return jnp.array([
        equatorial * cos_lon,
        equatorial * sin_lon,
        (n_radius * (1.0 - WGS84_E2) + height) * sin_lat,
    ])
