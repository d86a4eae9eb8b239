"""Layout and equations of the secondary (rotational) states.

The combined state vector integrated at each step is the primary orbital
state followed by a secondary block of three named 3-vectors::

    [ orbit (6) | spin (3) | theta (3) | rotational acceleration (3) ]

- ``spin`` -- angular velocity [rad/s], ``d(spin)/dt = rot_acc``
- ``theta`` -- accumulated rotation vector [rad], ``d(theta)/dt = spin``
- ``rot_acc`` -- rotational acceleration [rad/s^2], held constant over a
  step (``d(rot_acc)/dt = 0``); the propagator injects the provider value
  at the start of every step.

The increment of ``theta`` across a step is what drives the quaternion
update in :mod:`attsim.attitude.kinematics`.
"""

from __future__ import annotations

import enum
from collections.abc import Callable

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from attsim.config import get_dtype
from attsim.errors import DimensionMismatchError, LocalizedFormats

SECONDARY_STATES_KEY = "SecondaryStates"
"""Additional-state name of the integrated secondary block."""

SPIN_KEY = "Spin"
"""Additional-state name of the spin published on each snapshot."""

ROTATIONAL_ACCELERATION_KEY = "RotAcc"
"""Additional-state name of the rotational acceleration published on each snapshot."""

BLOCK_SIZE = 3


class SecondaryState(enum.Enum):
    """Named 3-vector blocks of the secondary state, valued by offset."""

    SPIN = 0
    THETA = 3
    ROTATIONAL_ACCELERATION = 6

    @property
    def offset(self) -> int:
        """Index of the first component inside the secondary block."""
        return self.value

    @property
    def stop(self) -> int:
        """Index one past the last component inside the secondary block."""
        return self.value + BLOCK_SIZE


SECONDARY_DIMENSION = len(SecondaryState) * BLOCK_SIZE


def _check_bounds(block: Array, name: SecondaryState) -> None:
    if block.ndim != 1 or name.stop > block.shape[0]:
        raise ValueError(
            LocalizedFormats.INVALID_STATE_BLOCK.format(
                name=name.name, start=name.offset, stop=name.stop, length=block.size
            )
        )


def extract_state(block: ArrayLike, name: SecondaryState) -> Array:
    """Extract a named 3-vector from a secondary block.

    Args:
        block: Secondary block, shape ``(SECONDARY_DIMENSION,)``.
        name: Block to extract.

    Returns:
        jax.Array: The named vector, shape ``(3,)``.

    Raises:
        ValueError: If the block is too short to contain ``name``.
    """
    block = jnp.asarray(block, dtype=get_dtype())
    _check_bounds(block, name)
    return block[name.offset:name.stop]


def inject_state(block: ArrayLike, name: SecondaryState, value: ArrayLike) -> Array:
    """Return a copy of a secondary block with a named 3-vector replaced.

    Args:
        block: Secondary block, shape ``(SECONDARY_DIMENSION,)``.
        name: Block to replace.
        value: New value, shape ``(3,)``.

    Returns:
        jax.Array: Updated secondary block.

    Raises:
        ValueError: If the block is too short to contain ``name``.
        DimensionMismatchError: If ``value`` is not a 3-vector.
    """
    block = jnp.asarray(block, dtype=get_dtype())
    value = jnp.asarray(value, dtype=get_dtype())
    _check_bounds(block, name)
    if value.shape != (BLOCK_SIZE,):
        raise DimensionMismatchError(name.name.lower(), value.size, BLOCK_SIZE)
    return block.at[name.offset:name.stop].set(value)


def secondary_state_vector(
    spin: ArrayLike,
    theta: ArrayLike | None = None,
    rotational_acceleration: ArrayLike | None = None,
) -> Array:
    """Assemble a secondary block from its named vectors.

    Args:
        spin: Spin vector [rad/s].
        theta: Accumulated rotation vector [rad]. Defaults to zero.
        rotational_acceleration: Rotational acceleration [rad/s^2].
            Defaults to zero.

    Returns:
        jax.Array: Secondary block, shape ``(SECONDARY_DIMENSION,)``.
    """
    block = jnp.zeros(SECONDARY_DIMENSION, dtype=get_dtype())
    block = inject_state(block, SecondaryState.SPIN, spin)
    if theta is not None:
        block = inject_state(block, SecondaryState.THETA, theta)
    if rotational_acceleration is not None:
        block = inject_state(block, SecondaryState.ROTATIONAL_ACCELERATION, rotational_acceleration)
    return block


def secondary_derivative(block: Array) -> Array:
    """Time derivative of a secondary block.

    Traceable by JAX; no bounds checks are performed.

    Args:
        block: Secondary block, shape ``(SECONDARY_DIMENSION,)``.

    Returns:
        jax.Array: ``[rot_acc, spin, 0]``, shape ``(SECONDARY_DIMENSION,)``.
    """
    spin = block[SecondaryState.SPIN.offset:SecondaryState.SPIN.stop]
    rot_acc = block[
        SecondaryState.ROTATIONAL_ACCELERATION.offset:SecondaryState.ROTATIONAL_ACCELERATION.stop
    ]
    return jnp.concatenate([rot_acc, spin, jnp.zeros_like(rot_acc)])


def combine_dynamics(
    primary_dynamics: Callable[[ArrayLike, ArrayLike], Array],
    primary_dimension: int,
) -> Callable[[ArrayLike, ArrayLike], Array]:
    """Build the right-hand side of the combined primary + secondary state.

    Args:
        primary_dynamics: ``f(t, y_primary) -> dy_primary/dt``.
        primary_dimension: Length of the primary state.

    Returns:
        Callable: ``f(t, y) -> dy/dt`` over the full combined vector.
    """

    def dynamics(t, y):
        return jnp.concatenate([
            primary_dynamics(t, y[:primary_dimension]),
            secondary_derivative(y[primary_dimension:]),
        ])

    return dynamics
