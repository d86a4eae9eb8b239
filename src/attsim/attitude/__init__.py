"""Attitude representation, kinematics and rotational dynamics.

- :class:`Quaternion` -- unit quaternion (scalar-first ``[w, x, y, z]``)
- :func:`wilcox` / :func:`edwards` -- quaternion update over one step
- :class:`SpacecraftInertia`, :func:`euler_equation` -- rigid-body dynamics
- Rotational acceleration providers used by the propagator
"""

from .quaternion import (
    Quaternion,
    axis_angle_to_quaternion,
    quaternion_multiply,
    quaternion_normalize,
)
from .kinematics import ATTITUDE_ALGORITHMS, edwards, propagate_quaternion, wilcox
from .dynamics import (
    ConstantRotationalAcceleration,
    SpacecraftInertia,
    TorqueRotationalAcceleration,
    euler_equation,
)

__all__ = [
    # Representation
    "Quaternion",
    "axis_angle_to_quaternion",
    "quaternion_multiply",
    "quaternion_normalize",
    # Kinematics
    "ATTITUDE_ALGORITHMS",
    "wilcox",
    "edwards",
    "propagate_quaternion",
    # Dynamics
    "SpacecraftInertia",
    "euler_equation",
    "ConstantRotationalAcceleration",
    "TorqueRotationalAcceleration",
]
