"""Export sinks for trajectories and filter estimates."""

from odjax.io.cosmographia import TrajectoryWriter
from odjax.io.estimates import COLUMNS, EstimateWriter, read_estimates

__all__ = [
    "TrajectoryWriter",
    "EstimateWriter",
    "COLUMNS",
    "read_estimates",
]
