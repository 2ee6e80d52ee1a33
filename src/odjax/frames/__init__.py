"""Frame transformations.

Only the Earth-rotation model between the Earth-Centred Inertial (ECI)
frame and the Earth-Centred Earth-Fixed (ECEF) frame is provided; it is
what the ground station model needs to place a station in inertial space.
"""

from .eci_ecef import (
    earth_rotation,
    rotation_ecef_to_eci,
    rotation_eci_to_ecef,
    state_ecef_to_eci,
    state_eci_to_ecef,
)

__all__ = [
    "earth_rotation",
    "rotation_eci_to_ecef",
    "rotation_ecef_to_eci",
    "state_eci_to_ecef",
    "state_ecef_to_eci",
]
