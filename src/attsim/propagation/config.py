"""Configuration of an attitude propagation run.

:class:`PropagationConfig` gathers the integration time step, run
duration, initial attitude and angular motion, adaptive step-size control
and algorithm choices.  It is a frozen dataclass validated in
``__post_init__``; presets cover the usual scenarios.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from attsim.attitude.kinematics import ATTITUDE_ALGORITHMS
from attsim.constants import DEFAULT_ALTITUDE, DEFAULT_MASS, GM_EARTH, R_EARTH
from attsim.integrators.tableaux import get_tableau

Vector3 = tuple[float, float, float]


@dataclass(frozen=True)
class PropagationConfig:
    """Configuration for an attitude propagation run.

    Args:
        integration_time_step: Outer step of the propagation loop [s].
            The adaptive integrator may subdivide it.
        duration: Simulation duration [s].
        initial_quaternion: Initial attitude ``(w, x, y, z)``; normalized
            when the initial state is built.
        initial_spin: Initial angular velocity [rad/s].
        initial_rotational_acceleration: Rotational acceleration [rad/s^2],
            held constant unless a provider is given to the propagator.
        min_step: Minimal adaptive step [s].
        max_step: Maximal adaptive step [s].
        abs_tol: Absolute tolerance, scalar or one value per orbit component.
        rel_tol: Relative tolerance, scalar or one value per orbit component.
        initial_step: User initial adaptive step [s]. ``None`` estimates it.
        method: Embedded Runge-Kutta method, ``"dp54"`` or ``"rkf45"``.
        attitude_algorithm: Quaternion update, ``"wilcox"`` or ``"edwards"``.
        mass: Spacecraft mass [kg].
        frame: Name of the inertial reference frame.
        altitude: Altitude of the initial circular orbit [m].
        inclination: Inclination of the initial circular orbit [deg].
        mu: Gravitational parameter [m^3/s^2].

    Examples:
        ```python
        from attsim.propagation.config import PropagationConfig
        config = PropagationConfig.simple_rotation(100.0, (1.0, 2.0, 3.0))
        config.attitude_algorithm
        ```
    """

    integration_time_step: float = 0.1
    duration: float = 100.0
    initial_quaternion: tuple[float, float, float, float] = (1.0, 0.0, 0.0, 0.0)
    initial_spin: Vector3 = (0.0, 0.0, 0.0)
    initial_rotational_acceleration: Vector3 = (0.0, 0.0, 0.0)
    min_step: float = 1.0e-3
    max_step: float = 1000.0
    abs_tol: float | tuple[float, ...] = 1.0e-3
    rel_tol: float | tuple[float, ...] = 1.0e-10
    initial_step: float | None = None
    method: str = "dp54"
    attitude_algorithm: str = "wilcox"
    mass: float = DEFAULT_MASS
    frame: str = "EME2000"
    altitude: float = DEFAULT_ALTITUDE
    inclination: float = 51.6
    mu: float = GM_EARTH

    def __post_init__(self) -> None:
        if not self.integration_time_step > 0.0:
            raise ValueError(
                f"integration_time_step must be positive, got {self.integration_time_step}"
            )
        if self.duration < 0.0:
            raise ValueError(f"duration must be non-negative, got {self.duration}")
        if len(self.initial_quaternion) != 4:
            raise ValueError(
                f"initial_quaternion must have 4 components, got {len(self.initial_quaternion)}"
            )
        if math.sqrt(sum(c * c for c in self.initial_quaternion)) == 0.0:
            raise ValueError("initial_quaternion must have a non-zero norm")
        for name in ("initial_spin", "initial_rotational_acceleration"):
            if len(getattr(self, name)) != 3:
                raise ValueError(f"{name} must have 3 components, got {len(getattr(self, name))}")
        if self.mass <= 0.0:
            raise ValueError(f"mass must be positive, got {self.mass}")
        if self.attitude_algorithm not in ATTITUDE_ALGORITHMS:
            raise ValueError(
                f"attitude_algorithm must be 'wilcox' or 'edwards', "
                f"got '{self.attitude_algorithm}'"
            )
        get_tableau(self.method)

    @property
    def semi_major_axis(self) -> float:
        """Radius of the initial circular orbit [m]."""
        return R_EARTH + self.altitude

    @staticmethod
    def default() -> PropagationConfig:
        """Preset: satellite at rest in attitude, Wilcox update, DP54.

        Returns:
            PropagationConfig: Default configuration.
        """
        return PropagationConfig()

    @staticmethod
    def simple_rotation(
        duration: float,
        axis: Vector3,
        integration_time_step: float = 0.1,
        attitude_algorithm: str = "wilcox",
    ) -> PropagationConfig:
        """Preset: half turn at constant spin about ``axis`` from identity.

        The spin magnitude is ``pi / duration`` so the satellite ends
        rotated by ``pi`` about the (normalized) axis.

        Args:
            duration: Duration of the half turn [s].
            axis: Rotation axis; need not be unit.
            integration_time_step: Outer step [s].
            attitude_algorithm: ``"wilcox"`` or ``"edwards"``.

        Returns:
            PropagationConfig: Half-turn configuration.
        """
        norm = math.sqrt(sum(c * c for c in axis))
        if norm == 0.0:
            raise ValueError("axis must have a non-zero norm")
        rate = math.pi / duration
        spin = tuple(rate * c / norm for c in axis)
        return PropagationConfig(
            integration_time_step=integration_time_step,
            duration=duration,
            initial_quaternion=(1.0, 0.0, 0.0, 0.0),
            initial_spin=spin,
            attitude_algorithm=attitude_algorithm,
        )

    @staticmethod
    def constant_acceleration(
        duration: float,
        initial_spin: Vector3,
        rotational_acceleration: Vector3,
        integration_time_step: float = 0.1,
    ) -> PropagationConfig:
        """Preset: spin-up under a constant rotational acceleration.

        Args:
            duration: Duration of the run [s].
            initial_spin: Spin at the start [rad/s].
            rotational_acceleration: Constant acceleration [rad/s^2].
            integration_time_step: Outer step [s].

        Returns:
            PropagationConfig: Constant-acceleration configuration.
        """
        return PropagationConfig(
            integration_time_step=integration_time_step,
            duration=duration,
            initial_spin=tuple(initial_spin),
            initial_rotational_acceleration=tuple(rotational_acceleration),
        )
