"""Two-body dynamics closures for the integrators.

Two closures are built here:

- :func:`create_two_body_dynamics` returns ``dynamics(t, state)`` for a
  6-element ECI state.
- :func:`create_two_body_stm_dynamics` returns ``dynamics(t, aug)`` for
  the 42-element state augmented with the row-major flattened state
  transition matrix, integrating the variational equation
  :math:`\\dot{\\Phi} = A(t) \\Phi` alongside the state.

Both closures evaluate the translational part through one compiled
kernel per gravitational parameter.  A truth run and an estimation run
started from the same state with the same step therefore produce
bit-identical trajectories, which is what lets a noise-free filter
recover a deviation of exactly zero.
"""

from __future__ import annotations

import functools
from collections.abc import Callable

import jax
import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from odjax.config import get_dtype
from odjax.constants import GM_EARTH
from odjax.orbit_dynamics.gravity import accel_gravity

STATE_SIZE = 6
AUGMENTED_SIZE = STATE_SIZE + STATE_SIZE * STATE_SIZE


@functools.lru_cache(maxsize=None)
def _two_body_kernel(gm: float) -> Callable[[ArrayLike, ArrayLike], Array]:
    def dynamics(t, state):
        return jnp.concatenate([state[3:6], accel_gravity(state, gm)])

    return jax.jit(dynamics)


@functools.lru_cache(maxsize=None)
def _stm_rate_kernel(gm: float) -> Callable[[ArrayLike, ArrayLike], Array]:
    accel_jacobian = jax.jacfwd(lambda r: accel_gravity(r, gm))

    def stm_rate(state, phi):
        G = accel_jacobian(state[:3])
        zeros = jnp.zeros((3, 3), dtype=phi.dtype)
        eye = jnp.eye(3, dtype=phi.dtype)
        A = jnp.block([[zeros, eye], [G, zeros]])
        return A @ phi

    return jax.jit(stm_rate)


def create_two_body_dynamics(
    gm: float = GM_EARTH,
) -> Callable[[ArrayLike, ArrayLike], Array]:
    """Create point-mass two-body dynamics for a 6-element ECI state.

    Args:
        gm: Gravitational parameter of the central body [m^3/s^2].

    Returns:
        A jitted callable ``dynamics(t, state) -> derivative`` where
        *state* is ``[x, y, z, vx, vy, vz]`` [m, m/s] and *derivative*
        is ``[vx, vy, vz, ax, ay, az]`` [m/s, m/s^2].

    Examples:
        ```python
        import jax.numpy as jnp
        from odjax.integrators import rk4_step
        from odjax.orbit_dynamics import create_two_body_dynamics
        dynamics = create_two_body_dynamics()
        x0 = jnp.array([6878e3, 0.0, 0.0, 0.0, 7612.0, 0.0])
        result = rk4_step(dynamics, 0.0, x0, 10.0)
        ```
    """
    return _two_body_kernel(float(gm))


def create_two_body_stm_dynamics(
    gm: float = GM_EARTH,
) -> Callable[[ArrayLike, ArrayLike], Array]:
    """Create two-body dynamics for a state augmented with its STM.

    The state Jacobian of the point-mass acceleration is obtained with
    ``jax.jacfwd``, giving

    .. math::

        A = \\begin{bmatrix} 0 & I \\\\
            \\partial \\mathbf{a} / \\partial \\mathbf{r} & 0 \\end{bmatrix}

    Args:
        gm: Gravitational parameter of the central body [m^3/s^2].

    Returns:
        A callable ``dynamics(t, aug) -> derivative`` over the
        42-element augmented vector built by :func:`augment_state`.
    """
    gm = float(gm)
    translational = _two_body_kernel(gm)
    stm_rate = _stm_rate_kernel(gm)

    def dynamics(t: ArrayLike, aug: ArrayLike) -> Array:
        state, phi = split_augmented_state(aug)
        return jnp.concatenate([
            translational(t, state),
            stm_rate(state, phi).reshape(-1),
        ])

    return dynamics


def augment_state(state: ArrayLike, stm: ArrayLike | None = None) -> Array:
    """Stack a 6-element state and a 6x6 STM into one 42-element vector.

    Args:
        state: ECI state ``[x, y, z, vx, vy, vz]``.
        stm: State transition matrix. Defaults to the identity.

    Returns:
        jax.Array: ``[state, stm.ravel()]``, shape ``(42,)``.
    """
    dtype = get_dtype()
    state = jnp.asarray(state, dtype=dtype)
    if stm is None:
        stm = jnp.eye(STATE_SIZE, dtype=dtype)
    stm = jnp.asarray(stm, dtype=dtype)
    if state.shape != (STATE_SIZE,) or stm.shape != (STATE_SIZE, STATE_SIZE):
        raise ValueError(
            f"Expected state (6,) and stm (6, 6), got {state.shape} and {stm.shape}"
        )
    return jnp.concatenate([state, stm.reshape(-1)])


def split_augmented_state(aug: ArrayLike) -> tuple[Array, Array]:
    """Inverse of :func:`augment_state`.

    Returns:
        tuple: ``(state, stm)`` with shapes ``(6,)`` and ``(6, 6)``.
    """
    aug = jnp.asarray(aug)
    return aug[:STATE_SIZE], aug[STATE_SIZE:].reshape(STATE_SIZE, STATE_SIZE)
