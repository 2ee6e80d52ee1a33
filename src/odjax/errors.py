"""Exceptions raised by the orbit determination pipeline.

Every fatal runtime condition derives from :class:`OrbitDeterminationError`
so callers can stop a run on any of them with a single ``except`` clause.
Construction-time validation keeps raising :class:`ValueError`.
"""


class OrbitDeterminationError(RuntimeError):
    """Base class for fatal pipeline errors."""


class EpochOrderError(OrbitDeterminationError):
    """A duplicate, non-increasing or skipped epoch was encountered."""


class VisibilityError(OrbitDeterminationError):
    """A stored measurement epoch has no station with a valid observation."""


class FilterError(OrbitDeterminationError):
    """The innovation covariance is singular or the gain is not finite."""


class ChannelError(OrbitDeterminationError):
    """A producer thread failed; the original exception is the ``__cause__``."""


class StepSizeMismatchError(OrbitDeterminationError):
    """The truth and estimation runs were configured with different steps."""
