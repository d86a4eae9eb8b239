"""Quaternion kinematics over one integration step.

Both updates compose the attitude at the start of the step with the
incremental rotation ``theta`` accumulated over the step (the integral of
the spin).  They truncate the exact composition
``[cos(|theta|/2), sin(|theta|/2) theta/|theta|]`` at second order:

.. math::

    dq_0 = 1 - \\frac{|\\theta|^2}{8}, \\qquad
    d\\vec{q} = \\frac{\\vec{\\theta}}{2}\\left(1 - \\frac{|\\theta|^2}{24}\\right)

and return ``normalize(q * dq)``.

- :func:`wilcox` assumes the spin keeps a constant direction over the step.
- :func:`edwards` adds the commutation correction
  ``(spin/2 x theta/2) / 12`` to the vector part, for spin whose direction
  varies during the step.  When spin and theta are collinear the
  correction vanishes and both updates coincide.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp
from jax.typing import ArrayLike

from attsim.attitude.quaternion import quaternion_multiply, quaternion_normalize
from attsim.config import get_dtype

ATTITUDE_ALGORITHMS = ("wilcox", "edwards")


def _transition(theta: jax.Array, correction: jax.Array) -> jax.Array:
    theta_sq = jnp.dot(theta, theta)
    scalar_part = 1.0 - theta_sq / 8.0
    vector_part = theta * (1.0 - theta_sq / 24.0) / 2.0 + correction
    return jnp.concatenate([jnp.array([scalar_part]), vector_part])


def wilcox(q: ArrayLike, theta: ArrayLike, dt: float) -> jax.Array:
    """Propagate a quaternion with the Wilcox algorithm.

    Args:
        q: Unit quaternion ``[w, x, y, z]`` at the start of the step.
        theta: Rotation vector accumulated over the step, shape ``(3,)`` [rad].
        dt: Integration step [s]. The update only depends on ``theta``.

    Returns:
        Unit quaternion at the end of the step, shape ``(4,)``.

    Examples:
        ```python
        import jax.numpy as jnp
        q = jnp.array([1.0, 0.0, 0.0, 0.0])
        theta = jnp.array([0.0, 0.0, 0.01])
        wilcox(q, theta, 0.1)  # ~[cos(0.005), 0, 0, sin(0.005)]
        ```
    """
    _float = get_dtype()
    q = jnp.asarray(q, dtype=_float)
    theta = jnp.asarray(theta, dtype=_float)

    dq = _transition(theta, jnp.zeros(3, dtype=_float))
    return quaternion_normalize(quaternion_multiply(q, dq))


def edwards(q: ArrayLike, theta: ArrayLike, spin: ArrayLike, dt: float) -> jax.Array:
    """Propagate a quaternion with the Edwards commutation correction.

    Args:
        q: Unit quaternion ``[w, x, y, z]`` at the start of the step.
        theta: Rotation vector accumulated over the step, shape ``(3,)`` [rad].
        spin: Spin vector at the end of the step, shape ``(3,)`` [rad/s].
        dt: Integration step [s]. The update only depends on ``theta``
            and ``spin``.

    Returns:
        Unit quaternion at the end of the step, shape ``(4,)``.
    """
    _float = get_dtype()
    q = jnp.asarray(q, dtype=_float)
    theta = jnp.asarray(theta, dtype=_float)
    spin = jnp.asarray(spin, dtype=_float)

    commutation = jnp.cross(spin / 2.0, theta / 2.0) / 12.0
    dq = _transition(theta, commutation)
    return quaternion_normalize(quaternion_multiply(q, dq))


def propagate_quaternion(
    q: ArrayLike,
    theta: ArrayLike,
    spin: ArrayLike,
    dt: float,
    algorithm: str = "wilcox",
) -> jax.Array:
    """Propagate a quaternion with the named algorithm.

    Args:
        q: Unit quaternion at the start of the step.
        theta: Rotation vector accumulated over the step [rad].
        spin: Spin vector at the end of the step [rad/s]. Ignored by Wilcox.
        dt: Integration step [s].
        algorithm: ``"wilcox"`` or ``"edwards"``.

    Returns:
        Unit quaternion at the end of the step.

    Raises:
        ValueError: If ``algorithm`` is not recognised.
    """
    if algorithm == "wilcox":
        return wilcox(q, theta, dt)
    if algorithm == "edwards":
        return edwards(q, theta, spin, dt)
    raise ValueError(
        f"attitude algorithm must be 'wilcox' or 'edwards', got '{algorithm}'"
    )
