"""Type definitions for the sequential filter.

- :class:`Estimate`: state deviation, covariance and STM after one
  filter step, tagged with whether a measurement was used.
- :class:`FilterResult`: a measurement update with its diagnostics.

Both are :class:`~typing.NamedTuple` instances and therefore JAX pytrees.
"""

from __future__ import annotations

from typing import NamedTuple

import jax.numpy as jnp
from jax import Array


class Estimate(NamedTuple):
    """Filter output at one epoch.

    Attributes:
        state: State deviation from the reference trajectory, ``(6,)``.
        covar: Deviation covariance, ``(6, 6)``.
        stm: State transition matrix used to reach this epoch, ``(6, 6)``.
        predicted: ``True`` if this is a pure time update, ``False`` if a
            measurement was processed.
    """

    state: Array
    covar: Array
    stm: Array
    predicted: bool

    @classmethod
    def initial(cls, covar: Array) -> Estimate:
        """Zero deviation with covariance *covar* and an identity STM."""
        covar = jnp.asarray(covar)
        n = covar.shape[0]
        return cls(
            state=jnp.zeros(n, dtype=covar.dtype),
            covar=covar,
            stm=jnp.eye(n, dtype=covar.dtype),
            predicted=True,
        )

    def scaled(self, factor: float) -> Estimate:
        """Return a copy with the covariance multiplied by *factor*.

        Used for reporting (e.g. ``scaled(3.0)``); the filter's own
        estimate is never scaled.
        """
        return self._replace(covar=self.covar * factor)


class FilterResult(NamedTuple):
    """Result of a measurement update.

    Attributes:
        state: Updated deviation ``(n,)``.
        covar: Updated covariance ``(n, n)``.
        innovation: Residual ``real - computed`` of shape ``(m,)``.
        innovation_covariance: ``S`` of shape ``(m, m)``.
        kalman_gain: ``K`` of shape ``(n, m)``.
    """

    state: Array
    covar: Array
    innovation: Array
    innovation_covariance: Array
    kalman_gain: Array
