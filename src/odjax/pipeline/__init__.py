"""Two-phase orbit determination pipeline.

- :class:`TruthGenerator` -- truth propagation producer
- :class:`MeasurementSynthesizer` / :class:`MeasurementStore` -- tracking
  simulation
- :class:`EstimatorDynamicsDriver` -- reference and STM producer
- :class:`SequentialFilter` -- KF/EKF orchestration
- :func:`run_orbit_determination` -- both phases end to end
"""

from odjax.pipeline._channel import Channel, MessageKind, start_producer
from odjax.pipeline.driver import EstimatorDynamicsDriver, ReferenceSample
from odjax.pipeline.orchestrator import (
    REPORTED_SIGMA_SCALE,
    FilterMode,
    FilterRun,
    SequentialFilter,
)
from odjax.pipeline.run import (
    ESTIMATES_FILENAME,
    TRUTH_FILENAME,
    ODResult,
    run_orbit_determination,
)
from odjax.pipeline.synthesis import MeasurementStore, MeasurementSynthesizer
from odjax.pipeline.truth import TruthGenerator, TruthSample

__all__ = [
    "Channel",
    "MessageKind",
    "start_producer",
    "TruthGenerator",
    "TruthSample",
    "MeasurementStore",
    "MeasurementSynthesizer",
    "EstimatorDynamicsDriver",
    "ReferenceSample",
    "FilterMode",
    "FilterRun",
    "SequentialFilter",
    "REPORTED_SIGMA_SCALE",
    "TRUTH_FILENAME",
    "ESTIMATES_FILENAME",
    "ODResult",
    "run_orbit_determination",
]
