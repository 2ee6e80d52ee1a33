"""Orbit dynamics.

- **Gravity**: central-body point-mass acceleration
- **Factory**: two-body dynamics closures, with and without the
  state transition matrix
"""

from .factory import (
    AUGMENTED_SIZE,
    STATE_SIZE,
    augment_state,
    create_two_body_dynamics,
    create_two_body_stm_dynamics,
    split_augmented_state,
)
from .gravity import accel_gravity

__all__ = [
    # Gravity
    "accel_gravity",
    # Dynamics factory
    "STATE_SIZE",
    "AUGMENTED_SIZE",
    "create_two_body_dynamics",
    "create_two_body_stm_dynamics",
    "augment_state",
    "split_augmented_state",
]
