"""Immutable spacecraft state snapshots and the current-state cell.

A :class:`SpacecraftState` is built once per propagation step and never
mutated afterwards: the attitude update reads the snapshot before the
step and the snapshot after the integration at the same time.  Updates
go through :func:`dataclasses.replace` or
:meth:`SpacecraftState.add_additional_state`, which return new objects.

The :class:`StateCell` holds the current snapshot.  The stepping loop is
its only writer and replaces the whole value; readers (sensors,
telemetry) always get a complete snapshot.
"""

from __future__ import annotations

import dataclasses
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from attsim.attitude.quaternion import Quaternion
from attsim.config import get_dtype

ORBIT_DIMENSION = 6


def _as_vector(name: str, value: ArrayLike, size: int) -> Array:
    value = jnp.asarray(value, dtype=get_dtype())
    if value.shape != (size,):
        raise ValueError(f"{name} must have shape ({size},), got {value.shape}")
    return value


@dataclass(frozen=True, eq=False)
class Attitude:
    """Orientation and angular motion of the spacecraft at a date.

    Args:
        date: Time of the attitude [s since the simulation start].
        frame: Name of the reference frame the rotation is expressed in.
        rotation: Body-to-reference rotation.
        spin: Angular velocity, shape ``(3,)`` [rad/s].
        rotation_acceleration: Angular acceleration, shape ``(3,)`` [rad/s^2].
    """

    date: float
    frame: str
    rotation: Quaternion
    spin: Array
    rotation_acceleration: Array

    def __post_init__(self) -> None:
        object.__setattr__(self, "date", float(self.date))
        object.__setattr__(self, "spin", _as_vector("spin", self.spin, 3))
        object.__setattr__(
            self,
            "rotation_acceleration",
            _as_vector("rotation_acceleration", self.rotation_acceleration, 3),
        )


@dataclass(frozen=True, eq=False)
class SpacecraftState:
    """Complete state of the spacecraft at a date.

    Args:
        date: Time of the state [s since the simulation start].
        frame: Name of the inertial reference frame.
        orbit: Position and velocity ``[x, y, z, vx, vy, vz]`` [m, m/s].
        attitude: Attitude at ``date``.
        mass: Spacecraft mass [kg].
        additional_states: Named additional state vectors. Stored as a
            read-only mapping.

    Raises:
        ValueError: If the orbit is not a 6-vector or the mass is not
            positive.
    """

    date: float
    frame: str
    orbit: Array
    attitude: Attitude
    mass: float
    additional_states: Mapping[str, Array] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.mass <= 0.0:
            raise ValueError(f"mass must be positive, got {self.mass}")
        object.__setattr__(self, "date", float(self.date))
        object.__setattr__(self, "orbit", _as_vector("orbit", self.orbit, ORBIT_DIMENSION))
        states = {
            name: jnp.atleast_1d(jnp.asarray(value, dtype=get_dtype()))
            for name, value in self.additional_states.items()
        }
        object.__setattr__(self, "additional_states", MappingProxyType(states))

    @property
    def position(self) -> Array:
        """Position vector [m]."""
        return self.orbit[:3]

    @property
    def velocity(self) -> Array:
        """Velocity vector [m/s]."""
        return self.orbit[3:]

    def get_additional_state(self, name: str) -> Array:
        """Return a named additional state.

        Args:
            name: Additional state name.

        Returns:
            jax.Array: The state vector.

        Raises:
            KeyError: If no additional state has this name.
        """
        try:
            return self.additional_states[name]
        except KeyError:
            raise KeyError(f"Unknown additional state: {name!r}") from None

    def get_additional_states(self) -> Mapping[str, Array]:
        """Return all additional states as a read-only mapping."""
        return self.additional_states

    def has_additional_state(self, name: str) -> bool:
        """Return whether an additional state with this name exists."""
        return name in self.additional_states

    def add_additional_state(self, name: str, value: ArrayLike) -> SpacecraftState:
        """Return a new state with an additional state added or replaced.

        Args:
            name: Additional state name.
            value: State vector.

        Returns:
            SpacecraftState: New snapshot; ``self`` is unchanged.
        """
        states = dict(self.additional_states)
        states[name] = value
        return dataclasses.replace(self, additional_states=states)

    def __repr__(self) -> str:
        return (
            f"SpacecraftState(date={self.date}, frame={self.frame!r}, "
            f"attitude={self.attitude.rotation!r}, mass={self.mass}, "
            f"additional_states={sorted(self.additional_states)})"
        )


class StateCell:
    """Single-writer cell holding the current spacecraft state.

    The value is replaced as a whole under an internal lock, so readers
    never observe a partially updated state.

    Args:
        initial_state: State the cell starts with.
    """

    def __init__(self, initial_state: SpacecraftState) -> None:
        self._lock = threading.Lock()
        self._initial_state = initial_state
        self._state = initial_state

    @property
    def initial_state(self) -> SpacecraftState:
        """State the cell was created with."""
        return self._initial_state

    def get(self) -> SpacecraftState:
        """Return the current snapshot."""
        with self._lock:
            return self._state

    def set(self, state: SpacecraftState) -> None:
        """Replace the current snapshot.

        Args:
            state: New snapshot.

        Raises:
            TypeError: If ``state`` is not a :class:`SpacecraftState`.
        """
        if not isinstance(state, SpacecraftState):
            raise TypeError(f"Expected SpacecraftState, got {type(state).__name__}")
        with self._lock:
            self._state = state
