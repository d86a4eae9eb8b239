"""Spacecraft state snapshots and the orbit + attitude propagator.

- :class:`SpacecraftState`, :class:`Attitude` -- immutable snapshots
- :class:`StateCell` -- single-writer holder of the current snapshot
- Secondary state layout (spin, accumulated rotation, rotational
  acceleration) and its equations
- :class:`PropagationConfig` -- run configuration with presets
- :class:`Propagation` -- the stepping loop
"""

from .state import ORBIT_DIMENSION, Attitude, SpacecraftState, StateCell
from .secondary_states import (
    ROTATIONAL_ACCELERATION_KEY,
    SECONDARY_DIMENSION,
    SECONDARY_STATES_KEY,
    SPIN_KEY,
    SecondaryState,
    combine_dynamics,
    extract_state,
    inject_state,
    secondary_derivative,
    secondary_state_vector,
)
from .orbit import circular_orbit_state, keplerian_dynamics
from .config import PropagationConfig
from .propagation import Propagation, StepOutcome, initial_spacecraft_state

__all__ = [
    # State
    "ORBIT_DIMENSION",
    "Attitude",
    "SpacecraftState",
    "StateCell",
    # Secondary states
    "SECONDARY_DIMENSION",
    "SECONDARY_STATES_KEY",
    "SPIN_KEY",
    "ROTATIONAL_ACCELERATION_KEY",
    "SecondaryState",
    "extract_state",
    "inject_state",
    "secondary_state_vector",
    "secondary_derivative",
    "combine_dynamics",
    # Orbit
    "keplerian_dynamics",
    "circular_orbit_state",
    # Propagation
    "PropagationConfig",
    "Propagation",
    "StepOutcome",
    "initial_spacecraft_state",
]
