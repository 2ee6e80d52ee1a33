"""Coordinate transformations.

- **Geodetic**: WGS84 ellipsoid ``[lon, lat, alt]`` → ECEF
- **Keplerian**: orbital elements ``[a, e, i, Ω, ω, M]`` → ECI Cartesian
- **Topocentric (ENZ)**: East-North-Zenith frame and azimuth/elevation
"""

from .geodetic import position_geodetic_to_ecef
from .keplerian import anomaly_mean_to_eccentric, state_koe_to_eci
from .topocentric import position_enz_to_azel, rotation_ellipsoid_to_enz

__all__ = [
    "position_geodetic_to_ecef",
    "anomaly_mean_to_eccentric",
    "state_koe_to_eci",
    "rotation_ellipsoid_to_enz",
    "position_enz_to_azel",
]
