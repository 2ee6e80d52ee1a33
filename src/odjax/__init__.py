"""
odjax is a sequential orbit determination pipeline implemented in JAX.
"""

from .config import get_dtype, set_dtype
from .constants import (
    GM_EARTH,
    JD_MJD_OFFSET,
    OMEGA_EARTH,
    R_EARTH,
    SECONDS_PER_DAY,
    WGS84_a,
    WGS84_f,
)
from .epoch import Epoch
from .errors import (
    ChannelError,
    EpochOrderError,
    FilterError,
    OrbitDeterminationError,
    StepSizeMismatchError,
    VisibilityError,
)
from .estimation import Estimate, KalmanFilter
from .orbit_measurements import GroundStation, Measurement
from .pipeline import run_orbit_determination
from .scenario import ScenarioConfig

__all__ = [
    "set_dtype",
    "get_dtype",
    "JD_MJD_OFFSET",
    "SECONDS_PER_DAY",
    "R_EARTH",
    "WGS84_a",
    "WGS84_f",
    "GM_EARTH",
    "OMEGA_EARTH",
    "Epoch",
    "OrbitDeterminationError",
    "EpochOrderError",
    "VisibilityError",
    "FilterError",
    "ChannelError",
    "StepSizeMismatchError",
    "Estimate",
    "KalmanFilter",
    "GroundStation",
    "Measurement",
    "ScenarioConfig",
    "run_orbit_determination",
]
