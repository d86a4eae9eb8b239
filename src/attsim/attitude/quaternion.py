"""Quaternion attitude representation.

Provides the ``Quaternion`` class representing a rotation as a unit
quaternion in scalar-first convention ``[w, x, y, z]``, together with the
raw-array kernels it wraps.

The quaternion is normalized on construction.  Kernels operate on plain
JAX arrays so that the attitude kinematics can call them without going
through the class.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp
from jax.typing import ArrayLike

from attsim.config import get_attitude_epsilon, get_dtype


# ---------------------------------------------------------------------------
# Kernels
# ---------------------------------------------------------------------------

def quaternion_multiply(q1: jax.Array, q2: jax.Array) -> jax.Array:
    """Hamilton product of two quaternions.

    The result is **not** normalized; callers composing rotations
    normalize explicitly.

    Args:
        q1 (jax.Array): First quaternion of shape ``(4,)`` in scalar-first order.
        q2 (jax.Array): Second quaternion of shape ``(4,)`` in scalar-first order.

    Returns:
        jnp.ndarray: Product quaternion ``q1 * q2`` of shape ``(4,)``.
    """
    s1, v1 = q1[0], q1[1:]
    s2, v2 = q2[0], q2[1:]

    s = s1 * s2 - jnp.dot(v1, v2)
    v = s1 * v2 + s2 * v1 + jnp.cross(v1, v2)

    return jnp.concatenate([jnp.array([s]), v])


def quaternion_normalize(q: jax.Array) -> jax.Array:
    """Scale a quaternion to unit norm.

    Args:
        q (jax.Array): Quaternion of shape ``(4,)``.

    Returns:
        jnp.ndarray: Unit quaternion of shape ``(4,)``.
    """
    return q / jnp.linalg.norm(q)


def axis_angle_to_quaternion(axis: jax.Array, angle: jax.Array) -> jax.Array:
    """Convert a rotation axis and angle to a unit quaternion.

    Args:
        axis (jax.Array): Rotation axis of shape ``(3,)``. Need not be unit.
        angle (jax.Array): Rotation angle [rad].

    Returns:
        jnp.ndarray: Quaternion ``[cos(a/2), sin(a/2) * n]`` of shape ``(4,)``.
    """
    n = axis / jnp.linalg.norm(axis)
    half = 0.5 * angle
    return jnp.concatenate([jnp.array([jnp.cos(half)]), jnp.sin(half) * n])


# ---------------------------------------------------------------------------
# Class
# ---------------------------------------------------------------------------

class Quaternion:
    """Unit quaternion representing a 3D rotation.

    Internal storage is a shape ``(4,)`` array in scalar-first order
    ``[w, x, y, z]``.  The quaternion is normalized on construction.

    This class is registered as a JAX pytree with the data array as
    the sole leaf and no auxiliary data.

    Args:
        s (float): Scalar (real) component.
        v1 (float): First vector (imaginary) component.
        v2 (float): Second vector (imaginary) component.
        v3 (float): Third vector (imaginary) component.
    """

    __slots__ = ('_data',)

    def __init__(self, s: float, v1: float, v2: float, v3: float) -> None:
        q = jnp.array([s, v1, v2, v3], dtype=get_dtype())
        self._data = quaternion_normalize(q)

    @classmethod
    def _from_internal(cls, data: jax.Array) -> Quaternion:
        """Create from a raw JAX array without normalization.

        Args:
            data (jax.Array): Array of shape ``(4,)`` in scalar-first order.

        Returns:
            Quaternion: New instance.
        """
        obj = object.__new__(cls)
        obj._data = data
        return obj

    # Properties

    @property
    def w(self) -> jax.Array:
        """Scalar component."""
        return self._data[0]

    @property
    def x(self) -> jax.Array:
        """First vector component."""
        return self._data[1]

    @property
    def y(self) -> jax.Array:
        """Second vector component."""
        return self._data[2]

    @property
    def z(self) -> jax.Array:
        """Third vector component."""
        return self._data[3]

    # Factory methods

    @classmethod
    def identity(cls) -> Quaternion:
        """Return the identity rotation ``[1, 0, 0, 0]``."""
        return cls(1.0, 0.0, 0.0, 0.0)

    @classmethod
    def from_vector(cls, v: ArrayLike, scalar_first: bool = True) -> Quaternion:
        """Create from a 4-element vector.

        Args:
            v (jax.Array): Array-like of shape ``(4,)``.
            scalar_first (bool): If ``True``, ``v = [w, x, y, z]``.
                If ``False``, ``v = [x, y, z, w]``.

        Returns:
            Quaternion: New normalized quaternion.

        Raises:
            ValueError: If ``v`` does not have shape ``(4,)``.
        """
        q = jnp.asarray(v, dtype=get_dtype())
        if q.shape != (4,):
            raise ValueError(f"Quaternion vector must have shape (4,), got {q.shape}")
        if not scalar_first:
            q = jnp.roll(q, 1)
        return cls._from_internal(quaternion_normalize(q))

    @classmethod
    def from_axis_angle(cls, axis: ArrayLike, angle: float) -> Quaternion:
        """Create from a rotation axis and angle.

        Args:
            axis (jax.Array): Rotation axis of shape ``(3,)``.
            angle (float): Rotation angle [rad].

        Returns:
            Quaternion: Equivalent unit quaternion.
        """
        _float = get_dtype()
        q = axis_angle_to_quaternion(jnp.asarray(axis, dtype=_float), jnp.asarray(angle, dtype=_float))
        return cls._from_internal(q)

    def to_vector(self, scalar_first: bool = True) -> jax.Array:
        """Return the quaternion as a 4-element vector.

        Args:
            scalar_first (bool): If ``True``, return ``[w, x, y, z]``.
                If ``False``, return ``[x, y, z, w]``.

        Returns:
            jnp.ndarray: Array of shape ``(4,)``.
        """
        if scalar_first:
            return self._data
        return jnp.roll(self._data, -1)

    # Methods

    def normalize(self) -> Quaternion:
        """Return a new normalized quaternion."""
        return Quaternion._from_internal(quaternion_normalize(self._data))

    def norm(self) -> jax.Array:
        """Return the Euclidean norm."""
        return jnp.linalg.norm(self._data)

    def conjugate(self) -> Quaternion:
        """Return the conjugate quaternion ``[w, -x, -y, -z]``.

        For a unit quaternion, the conjugate equals the inverse.
        """
        return Quaternion._from_internal(self._data * jnp.array([1.0, -1.0, -1.0, -1.0]))

    # Operators

    def __mul__(self, other: Quaternion) -> Quaternion:
        """Hamilton product, normalized."""
        if not isinstance(other, Quaternion):
            return NotImplemented
        q = quaternion_multiply(self._data, other._data)
        return Quaternion._from_internal(quaternion_normalize(q))

    def __neg__(self) -> Quaternion:
        return Quaternion._from_internal(-self._data)

    def __getitem__(self, idx: int) -> jax.Array:
        return self._data[idx]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Quaternion):
            return NotImplemented
        eps = get_attitude_epsilon()
        d1 = quaternion_normalize(self._data)
        d2 = quaternion_normalize(other._data)
        return bool(jnp.all(jnp.abs(d1 - d2) < eps))

    def __ne__(self, other: object) -> bool:
        if not isinstance(other, Quaternion):
            return NotImplemented
        return not self.__eq__(other)

    # String representations

    def __str__(self) -> str:
        return (
            f"Quaternion(w={float(self._data[0]):.6f}, "
            f"x={float(self._data[1]):.6f}, "
            f"y={float(self._data[2]):.6f}, "
            f"z={float(self._data[3]):.6f})"
        )

    def __repr__(self) -> str:
        return (
            f"Quaternion(w={float(self._data[0])}, "
            f"x={float(self._data[1])}, "
            f"y={float(self._data[2])}, "
            f"z={float(self._data[3])})"
        )


# Register as JAX pytree
jax.tree_util.register_pytree_node(
    Quaternion,
    lambda q: ((q._data,), None),
    lambda _, children: Quaternion._from_internal(children[0]),
)
