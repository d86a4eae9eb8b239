"""Primary (orbital) dynamics used when no force model is supplied.

The orbital force model is normally composed outside the package and
handed to the propagator as ``f(t, orbit) -> d(orbit)/dt``.  This module
only provides the Keplerian two-body model and a circular initial orbit.
"""

from __future__ import annotations

from collections.abc import Callable

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from attsim.config import get_dtype
from attsim.constants import DEG2RAD, GM_EARTH


def keplerian_dynamics(mu: float = GM_EARTH) -> Callable[[ArrayLike, ArrayLike], Array]:
    """Create point-mass two-body dynamics.

    Args:
        mu: Gravitational parameter [m^3/s^2].

    Returns:
        Callable: ``f(t, [r, v]) -> [v, -mu r / |r|^3]``, JAX traceable.
    """

    def dynamics(t, state):
        r = state[:3]
        v = state[3:6]
        a = -mu * r / jnp.linalg.norm(r) ** 3
        return jnp.concatenate([v, a])

    return dynamics


def circular_orbit_state(
    sma: float,
    inclination: float = 0.0,
    mu: float = GM_EARTH,
    use_degrees: bool = False,
) -> Array:
    """Create a circular orbit state at the ascending node.

    Args:
        sma: Orbit radius [m].
        inclination: Orbit inclination.
        mu: Gravitational parameter [m^3/s^2].
        use_degrees: If ``True``, ``inclination`` is in degrees.

    Returns:
        jax.Array: ``[x, y, z, vx, vy, vz]`` [m, m/s].
    """
    _float = get_dtype()
    inc = inclination * DEG2RAD if use_degrees else inclination
    v_circ = jnp.sqrt(mu / sma)
    return jnp.array(
        [sma, 0.0, 0.0, 0.0, v_circ * jnp.cos(inc), v_circ * jnp.sin(inc)],
        dtype=_float,
    )
