"""Sequential Kalman filter on a state deviation.

The filter estimates the deviation :math:`\\delta x` of the true state
from a reference trajectory that is propagated elsewhere.  The reference
supplies, at every epoch, the state transition matrix :math:`\\Phi` from
the previous epoch and, when a measurement is processed, the
sensitivity matrix :math:`\\tilde{H}` and the computed observation.

In linear (KF) mode the deviation is mapped forward with :math:`\\Phi`.
In extended (EKF) mode the caller folds every updated deviation back
into the reference trajectory, so the predicted deviation is zero and
the update reduces to :math:`\\hat{x} = K y`.

The covariance update uses the Joseph form.  A singular innovation
covariance, or a gain or covariance that is not finite, raises
:class:`~odjax.errors.FilterError`; there is no retry.

References:
    1. B. Tapley, B. Schutz, and G. Born, *Statistical Orbit
       Determination*, Elsevier, 2004, Sec. 4.7.
"""

from __future__ import annotations

import logging

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from odjax.config import get_dtype
from odjax.errors import FilterError
from odjax.estimation._types import Estimate, FilterResult

logger = logging.getLogger(__name__)


def kf_time_update(
    x: ArrayLike,
    P: ArrayLike,
    Phi: ArrayLike,
    ekf: bool = False,
) -> tuple[Array, Array]:
    """Map a deviation and its covariance forward by one STM.

    Args:
        x: Deviation estimate ``(n,)``.
        P: Covariance ``(n, n)``.
        Phi: State transition matrix ``(n, n)``.
        ekf: If ``True``, the predicted deviation is zero.

    Returns:
        tuple: ``(x_bar, P_bar)``.
    """
    dtype = get_dtype()
    x = jnp.asarray(x, dtype=dtype)
    P = jnp.asarray(P, dtype=dtype)
    Phi = jnp.asarray(Phi, dtype=dtype)

    x_bar = jnp.zeros_like(x) if ekf else Phi @ x
    P_bar = Phi @ P @ Phi.T
    return x_bar, P_bar


def kf_measurement_update(
    x_bar: ArrayLike,
    P_bar: ArrayLike,
    H: ArrayLike,
    R: ArrayLike,
    real_obs: ArrayLike,
    computed_obs: ArrayLike,
    ekf: bool = False,
) -> FilterResult:
    """Incorporate one observation into a predicted deviation.

    .. math::

        S &= H \\bar{P} H^T + R \\\\
        K &= \\bar{P} H^T S^{-1} \\\\
        y &= z_{\\text{real}} - z_{\\text{computed}} \\\\
        \\hat{x} &= \\bar{x} + K (y - H \\bar{x})
            \\quad \\text{(KF)}, \\qquad \\hat{x} = K y \\quad \\text{(EKF)} \\\\
        P &= (I - K H) \\bar{P} (I - K H)^T + K R K^T

    Args:
        x_bar: Predicted deviation ``(n,)``.
        P_bar: Predicted covariance ``(n, n)``.
        H: Sensitivity matrix ``(m, n)``.
        R: Measurement noise covariance ``(m, m)``.
        real_obs: Observed measurement ``(m,)``.
        computed_obs: Measurement computed on the reference ``(m,)``.
        ekf: Select the extended-mode state update.

    Returns:
        FilterResult: Updated deviation and covariance with diagnostics.
        No finiteness check is made here.
    """
    dtype = get_dtype()
    x_bar = jnp.asarray(x_bar, dtype=dtype)
    P_bar = jnp.asarray(P_bar, dtype=dtype)
    H = jnp.asarray(H, dtype=dtype)
    R = jnp.asarray(R, dtype=dtype)

    innovation = (jnp.asarray(real_obs, dtype=dtype)
                  - jnp.asarray(computed_obs, dtype=dtype))

    S = H @ P_bar @ H.T + R
    # K^T = S^{-1} (H P_bar), P_bar symmetric
    K = jnp.linalg.solve(S, H @ P_bar).T

    if ekf:
        x_hat = K @ innovation
    else:
        x_hat = x_bar + K @ (innovation - H @ x_bar)

    IKH = jnp.eye(x_bar.shape[0], dtype=dtype) - K @ H
    P = IKH @ P_bar @ IKH.T + K @ R @ K.T

    return FilterResult(
        state=x_hat,
        covar=P,
        innovation=innovation,
        innovation_covariance=S,
        kalman_gain=K,
    )


class KalmanFilter:
    """Stateful KF/EKF over a state deviation.

    The owner feeds the filter the per-step STM with :meth:`update_stm`
    and, before each measurement, the sensitivity with
    :meth:`update_h_tilde`.  Each update returns the new internal
    :class:`Estimate`.

    Args:
        estimate: Initial estimate; its state is normally zero.
        measurement_noise: Observation noise covariance ``R``, ``(m, m)``.
        ekf: Start in extended mode.
    """

    def __init__(
        self,
        estimate: Estimate,
        measurement_noise: ArrayLike,
        ekf: bool = False,
    ) -> None:
        dtype = get_dtype()
        R = jnp.asarray(measurement_noise, dtype=dtype)
        if R.ndim != 2 or R.shape[0] != R.shape[1]:
            raise ValueError(f"measurement_noise must be square, got shape {R.shape}")
        n = estimate.state.shape[0]
        if estimate.covar.shape != (n, n):
            raise ValueError(
                f"Covariance shape {estimate.covar.shape} does not match state size {n}"
            )

        self.estimate = estimate
        self.measurement_noise = R
        self.ekf = ekf
        self.stm = jnp.eye(n, dtype=dtype)
        self.h_tilde = None
        self.last_result: FilterResult | None = None

    def update_stm(self, stm: ArrayLike) -> None:
        """Set the STM spanning the previous epoch to the current one."""
        self.stm = jnp.asarray(stm, dtype=get_dtype())

    def update_h_tilde(self, h_tilde: ArrayLike) -> None:
        """Set the sensitivity matrix for the next measurement update."""
        h_tilde = jnp.asarray(h_tilde, dtype=get_dtype())
        expected = (self.measurement_noise.shape[0], self.estimate.state.shape[0])
        if h_tilde.shape != expected:
            raise ValueError(f"Expected sensitivity of shape {expected}, got {h_tilde.shape}")
        self.h_tilde = h_tilde

    def time_update(self) -> Estimate:
        """Propagate the estimate with the current STM, no measurement."""
        x_bar, P_bar = kf_time_update(
            self.estimate.state, self.estimate.covar, self.stm, self.ekf
        )
        self._check_finite(P_bar, "Predicted covariance")
        self.estimate = Estimate(state=x_bar, covar=P_bar, stm=self.stm, predicted=True)
        return self.estimate

    def measurement_update(self, real_obs: ArrayLike, computed_obs: ArrayLike) -> Estimate:
        """Predict with the current STM and process one observation.

        Args:
            real_obs: Observed measurement.
            computed_obs: Measurement computed on the reference trajectory.

        Returns:
            Estimate: Updated estimate with ``predicted=False``.

        Raises:
            FilterError: If no sensitivity has been set, or if the
                innovation covariance, gain or updated covariance is
                not finite.
        """
        if self.h_tilde is None:
            raise FilterError("measurement_update called before update_h_tilde")

        x_bar, P_bar = kf_time_update(
            self.estimate.state, self.estimate.covar, self.stm, self.ekf
        )
        result = kf_measurement_update(
            x_bar, P_bar, self.h_tilde, self.measurement_noise,
            real_obs, computed_obs, self.ekf,
        )
        self._check_finite(result.innovation_covariance, "Innovation covariance")
        self._check_finite(result.kalman_gain, "Kalman gain")
        self._check_finite(result.covar, "Updated covariance")

        logger.debug("Measurement update, innovation=%s", result.innovation)

        self.last_result = result
        self.estimate = Estimate(
            state=result.state, covar=result.covar, stm=self.stm, predicted=False
        )
        return self.estimate

    @staticmethod
    def _check_finite(value: Array, what: str) -> None:
        if not bool(jnp.all(jnp.isfinite(value))):
            raise FilterError(f"{what} is not finite:\n{value}")
