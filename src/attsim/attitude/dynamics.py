"""Rotational acceleration of the rigid spacecraft.

The propagator holds the rotational acceleration constant over each
integration step and asks a provider for its value at the start of the
step.  Two providers are available:

- :class:`ConstantRotationalAcceleration` -- a fixed acceleration vector.
- :class:`TorqueRotationalAcceleration` -- Euler's rotational equation
  driven by a torque callback and the spacecraft inertia tensor.

Any callable ``provider(t, state) -> (3,)`` array can be used instead.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from attsim.config import get_dtype

if TYPE_CHECKING:
    from attsim.propagation.state import SpacecraftState


@dataclass(frozen=True)
class SpacecraftInertia:
    """Rigid-body inertia tensor of the spacecraft.

    Stores the 3x3 inertia tensor in the body frame.  For most
    spacecraft the tensor is diagonal (principal axes aligned with body
    axes) and can be constructed with :meth:`from_principal`.

    Args:
        I: 3x3 inertia tensor [kg m^2].
    """

    I: Array = field(default_factory=lambda: jnp.eye(3, dtype=get_dtype()))  # noqa: E741

    @staticmethod
    def from_principal(Ixx: float, Iyy: float, Izz: float) -> SpacecraftInertia:
        """Create an inertia tensor from principal moments.

        Args:
            Ixx: Moment of inertia about the body x-axis [kg m^2].
            Iyy: Moment of inertia about the body y-axis [kg m^2].
            Izz: Moment of inertia about the body z-axis [kg m^2].

        Returns:
            SpacecraftInertia: Diagonal inertia tensor.

        Examples:
            ```python
            inertia = SpacecraftInertia.from_principal(0.01, 0.05, 0.05)
            float(inertia.I[0, 0])
            ```
        """
        _float = get_dtype()
        I = jnp.diag(jnp.array([Ixx, Iyy, Izz], dtype=_float))  # noqa: E741
        return SpacecraftInertia(I=I)


def euler_equation(
    omega: ArrayLike,
    I: ArrayLike,  # noqa: E741
    tau: ArrayLike,
) -> Array:
    """Compute angular acceleration from Euler's rotational equation.

    Euler's equation for a rigid body::

        I @ omega_dot = -omega x (I @ omega) + tau
        omega_dot = I^{-1} @ (-omega x (I @ omega) + tau)

    Uses ``jnp.linalg.solve`` instead of an explicit inverse for
    numerical stability.

    Args:
        omega: Angular velocity in the body frame ``[wx, wy, wz]``
            of shape ``(3,)`` [rad/s].
        I: Inertia tensor of shape ``(3, 3)`` [kg m^2].
        tau: Total external torque in the body frame ``[tx, ty, tz]``
            of shape ``(3,)`` [N m].

    Returns:
        Angular acceleration ``[dwx, dwy, dwz]``
            of shape ``(3,)`` [rad/s^2].
    """
    _float = get_dtype()
    omega = jnp.asarray(omega, dtype=_float)
    I = jnp.asarray(I, dtype=_float)  # noqa: E741
    tau = jnp.asarray(tau, dtype=_float)

    rhs = -jnp.cross(omega, I @ omega) + tau
    return jnp.linalg.solve(I, rhs)


class ConstantRotationalAcceleration:
    """Rotational acceleration fixed for the whole run.

    Args:
        acceleration: Acceleration vector of shape ``(3,)`` [rad/s^2].
    """

    def __init__(self, acceleration: ArrayLike) -> None:
        acceleration = jnp.asarray(acceleration, dtype=get_dtype())
        if acceleration.shape != (3,):
            raise ValueError(
                f"Rotational acceleration must have shape (3,), got {acceleration.shape}"
            )
        self.acceleration = acceleration

    def __call__(self, t: float, state: SpacecraftState) -> Array:
        return self.acceleration

    def __repr__(self) -> str:
        return f"ConstantRotationalAcceleration({[float(a) for a in self.acceleration]})"


class TorqueRotationalAcceleration:
    """Rotational acceleration from an external torque.

    Evaluates :func:`euler_equation` with the spin of the current state.

    Args:
        inertia: Spacecraft inertia tensor.
        torque: Callback ``torque(t, state) -> (3,)`` returning the body
            frame torque [N m].
    """

    def __init__(
        self,
        inertia: SpacecraftInertia,
        torque: Callable[[float, SpacecraftState], ArrayLike],
    ) -> None:
        self.inertia = inertia
        self.torque = torque

    def __call__(self, t: float, state: SpacecraftState) -> Array:
        return euler_equation(state.attitude.spin, self.inertia.I, self.torque(t, state))
