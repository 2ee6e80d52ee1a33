"""Orbit measurement models for state estimation.

- :class:`GroundStation` -- range/range-rate tracking station with DSN
  presets
- :class:`Measurement` -- one station observation with its sensitivity
"""

from odjax.orbit_measurements.ranging import OBSERVATION_SIZE, GroundStation, Measurement

__all__ = [
    "OBSERVATION_SIZE",
    "GroundStation",
    "Measurement",
]
