"""Sequential state estimation for orbit determination.

- :class:`Estimate` -- deviation, covariance, STM and predicted flag
- :class:`FilterResult` -- measurement update with diagnostics
- :func:`kf_time_update` -- STM mapping of deviation and covariance
- :func:`kf_measurement_update` -- KF/EKF update (Joseph form)
- :class:`KalmanFilter` -- stateful filter driven by the orchestrator

Observation models are in :mod:`odjax.orbit_measurements`.
"""

from odjax.estimation._types import Estimate, FilterResult
from odjax.estimation.kalman import KalmanFilter, kf_measurement_update, kf_time_update

__all__ = [
    "Estimate",
    "FilterResult",
    "KalmanFilter",
    "kf_time_update",
    "kf_measurement_update",
]
