"""Step-by-step propagation of the spacecraft orbit and attitude.

Each step of :class:`Propagation` runs three stages:

1. The rotational acceleration is requested from the provider at the
   start of the step and injected into the secondary block.
2. The combined vector ``[orbit | spin | theta | rot_acc]`` is integrated
   over the step by the adaptive integrator, with the error control
   restricted to the orbit.
3. :meth:`Propagation.propagate_attitude` turns the increment of
   ``theta`` into a quaternion update and rebuilds the snapshot.

A failed step never writes to the state cell.  :meth:`propagate_step`
reports the failure in its :class:`StepOutcome`; :meth:`propagate_to`
and :meth:`run` abort by raising it.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable
from typing import NamedTuple

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from attsim.attitude.dynamics import ConstantRotationalAcceleration
from attsim.attitude.kinematics import ATTITUDE_ALGORITHMS, propagate_quaternion
from attsim.attitude.quaternion import Quaternion
from attsim.errors import IntegrationError, LocalizedFormats, PropagationError
from attsim.integrators.adaptive_stepsize import AdaptiveStepsizeIntegrator
from attsim.propagation.config import PropagationConfig
from attsim.propagation.orbit import circular_orbit_state, keplerian_dynamics
from attsim.propagation.secondary_states import (
    ROTATIONAL_ACCELERATION_KEY,
    SECONDARY_STATES_KEY,
    SPIN_KEY,
    SecondaryState,
    combine_dynamics,
    extract_state,
    inject_state,
    secondary_state_vector,
)
from attsim.propagation.state import ORBIT_DIMENSION, Attitude, SpacecraftState, StateCell

RotationalAccelerationProvider = Callable[[float, SpacecraftState], ArrayLike]


class StepOutcome(NamedTuple):
    """Tagged result of one propagation step.

    Exactly one of the fields is set.

    Attributes:
        state: New snapshot when the step succeeded.
        error: Failure when the step was aborted.
    """

    state: SpacecraftState | None
    error: PropagationError | None

    @property
    def ok(self) -> bool:
        """Whether the step succeeded."""
        return self.error is None


def initial_spacecraft_state(config: PropagationConfig) -> SpacecraftState:
    """Build the initial snapshot described by a configuration.

    The orbit is circular at ``config.altitude`` and starts at the
    ascending node.  The secondary block starts with the configured spin,
    a zero accumulated rotation and the configured rotational
    acceleration.

    Args:
        config: Propagation configuration.

    Returns:
        SpacecraftState: Snapshot at date ``0.0``.
    """
    spin = jnp.asarray(config.initial_spin)
    rot_acc = jnp.asarray(config.initial_rotational_acceleration)
    attitude = Attitude(
        date=0.0,
        frame=config.frame,
        rotation=Quaternion.from_vector(config.initial_quaternion),
        spin=spin,
        rotation_acceleration=rot_acc,
    )
    block = secondary_state_vector(spin, rotational_acceleration=rot_acc)
    return SpacecraftState(
        date=0.0,
        frame=config.frame,
        orbit=circular_orbit_state(
            config.semi_major_axis, config.inclination, config.mu, use_degrees=True
        ),
        attitude=attitude,
        mass=config.mass,
        additional_states={
            SECONDARY_STATES_KEY: block,
            SPIN_KEY: attitude.spin,
            ROTATIONAL_ACCELERATION_KEY: attitude.rotation_acceleration,
        },
    )


class Propagation:
    """Propagator of the orbit and attitude of a rigid spacecraft.

    Args:
        initial_state: Snapshot to start from. If it carries no
            ``"SecondaryStates"`` block, one is built from its attitude.
        integration_time_step: Outer step of the loop [s].
        integrator: Adaptive integrator advancing the combined state.
        primary_dynamics: JAX-traceable orbital derivative
            ``f(t, orbit) -> d(orbit)/dt``. Defaults to Keplerian motion
            about the Earth.
        rotational_acceleration: Provider ``f(t, state) -> (3,)`` queried at
            the start of every step. Defaults to the constant acceleration
            of the initial attitude.
        attitude_algorithm: ``"wilcox"`` or ``"edwards"``.
        logger: Logger for step diagnostics. Defaults to the module logger.

    Raises:
        ValueError: If the time step is not positive or the attitude
            algorithm is unknown.
        DimensionMismatchError: If a vector tolerance of the integrator
            does not cover the 6 orbit components.

    Examples:
        ```python
        from attsim import Propagation, PropagationConfig, set_dtype
        import jax.numpy as jnp
        set_dtype(jnp.float64)
        config = PropagationConfig.simple_rotation(100.0, (0.0, 0.0, 1.0))
        propagation = Propagation.from_config(config)
        final = propagation.run(config.duration)
        final.attitude.rotation  # ~Quaternion(w=0, x=0, y=0, z=1)
        ```
    """

    def __init__(
        self,
        initial_state: SpacecraftState,
        integration_time_step: float,
        integrator: AdaptiveStepsizeIntegrator,
        primary_dynamics: Callable[[ArrayLike, ArrayLike], Array] | None = None,
        rotational_acceleration: RotationalAccelerationProvider | None = None,
        attitude_algorithm: str = "wilcox",
        logger: logging.Logger | None = None,
    ) -> None:
        if not integration_time_step > 0.0:
            raise ValueError(
                f"integration_time_step must be positive, got {integration_time_step}"
            )
        if attitude_algorithm not in ATTITUDE_ALGORITHMS:
            raise ValueError(
                f"attitude_algorithm must be 'wilcox' or 'edwards', got '{attitude_algorithm}'"
            )
        integrator.controller.validate(ORBIT_DIMENSION)
        self._logger = logger if logger is not None else logging.getLogger(__name__)
        if not initial_state.has_additional_state(SECONDARY_STATES_KEY):
            attitude = initial_state.attitude
            initial_state = initial_state.add_additional_state(
                SECONDARY_STATES_KEY,
                secondary_state_vector(
                    attitude.spin, rotational_acceleration=attitude.rotation_acceleration
                ),
            )
        if rotational_acceleration is None:
            rotational_acceleration = ConstantRotationalAcceleration(
                initial_state.attitude.rotation_acceleration
            )
        if primary_dynamics is None:
            primary_dynamics = keplerian_dynamics()

        self.integration_time_step = float(integration_time_step)
        self.attitude_algorithm = attitude_algorithm
        self.rotational_acceleration = rotational_acceleration
        self._integrator = integrator
        self._dynamics = combine_dynamics(primary_dynamics, ORBIT_DIMENSION)
        self._cell = StateCell(initial_state)

        self._logger.info(
            "Propagation configured: %s integrator, %s attitude update, step %g s",
            integrator.name, attitude_algorithm, self.integration_time_step,
        )

    @classmethod
    def from_config(
        cls,
        config: PropagationConfig,
        primary_dynamics: Callable[[ArrayLike, ArrayLike], Array] | None = None,
        rotational_acceleration: RotationalAccelerationProvider | None = None,
        logger: logging.Logger | None = None,
    ) -> Propagation:
        """Create a propagator from a :class:`PropagationConfig`.

        Args:
            config: Propagation configuration.
            primary_dynamics: Orbital derivative. Defaults to Keplerian
                motion with ``config.mu``.
            rotational_acceleration: Rotational acceleration provider.
                Defaults to the configured constant acceleration.
            logger: Logger passed to the propagator and its integrator.

        Returns:
            Propagation: Propagator starting at
                :func:`initial_spacecraft_state`.
        """
        integrator = AdaptiveStepsizeIntegrator(
            config.min_step,
            config.max_step,
            config.abs_tol,
            config.rel_tol,
            method=config.method,
            logger=logger,
        )
        if config.initial_step is not None:
            integrator.controller.set_initial_step_size(config.initial_step)
        if primary_dynamics is None:
            primary_dynamics = keplerian_dynamics(config.mu)
        return cls(
            initial_spacecraft_state(config),
            config.integration_time_step,
            integrator,
            primary_dynamics=primary_dynamics,
            rotational_acceleration=rotational_acceleration,
            attitude_algorithm=config.attitude_algorithm,
            logger=logger,
        )

    @property
    def current_state(self) -> SpacecraftState:
        """Latest snapshot."""
        return self._cell.get()

    @property
    def state_cell(self) -> StateCell:
        """Cell holding the current snapshot, shared with readers."""
        return self._cell

    @property
    def integrator(self) -> AdaptiveStepsizeIntegrator:
        return self._integrator

    def propagate_attitude(
        self, current: SpacecraftState, integrated: SpacecraftState
    ) -> SpacecraftState:
        """Advance the attitude across an integrated step.

        ``integrated`` carries the orbit and secondary states at the end
        of the step but still the attitude of ``current``.  The increment
        of the accumulated rotation between both snapshots drives the
        quaternion update; spin and rotational acceleration are read from
        the secondary block of ``integrated``.

        Args:
            current: Snapshot at the start of the step.
            integrated: Snapshot after the integration, attitude not yet
                advanced.

        Returns:
            SpacecraftState: ``integrated`` with the propagated attitude.

        Raises:
            PropagationError: If either snapshot lacks a valid secondary
                block or the new attitude cannot be built.
        """
        try:
            pre_block = current.get_additional_state(SECONDARY_STATES_KEY)
            post_block = integrated.get_additional_state(SECONDARY_STATES_KEY)
            spin = extract_state(post_block, SecondaryState.SPIN)
            rot_acc = extract_state(post_block, SecondaryState.ROTATIONAL_ACCELERATION)
            d_theta = extract_state(post_block, SecondaryState.THETA) - extract_state(
                pre_block, SecondaryState.THETA
            )
            q = propagate_quaternion(
                current.attitude.rotation.to_vector(),
                d_theta,
                spin,
                integrated.date - current.date,
                self.attitude_algorithm,
            )
            attitude = Attitude(
                date=integrated.date,
                frame=integrated.frame,
                rotation=Quaternion.from_vector(q),
                spin=spin,
                rotation_acceleration=rot_acc,
            )
        except (KeyError, ValueError) as exc:
            raise PropagationError(
                LocalizedFormats.PROPAGATION_STEP_FAILED.format(
                    start=current.date, stop=integrated.date, reason=exc
                )
            ) from exc
        return dataclasses.replace(integrated, attitude=attitude)

    def _integrate(self, current: SpacecraftState, dt: float) -> SpacecraftState:
        t = current.date
        rot_acc = self.rotational_acceleration(t, current)
        block = inject_state(
            current.get_additional_state(SECONDARY_STATES_KEY),
            SecondaryState.ROTATIONAL_ACCELERATION,
            rot_acc,
        )
        y0 = jnp.concatenate([current.orbit, block])
        result = self._integrator.integrate(
            self._dynamics, t, y0, t + dt, primary_dimension=ORBIT_DIMENSION
        )
        if not bool(jnp.all(jnp.isfinite(result.state))):
            raise PropagationError(
                LocalizedFormats.PROPAGATION_STEP_FAILED.format(
                    start=t, stop=t + dt, reason="non-finite integrated state"
                )
            )
        post_block = result.state[ORBIT_DIMENSION:]
        states = dict(current.additional_states)
        states[SECONDARY_STATES_KEY] = post_block
        states[SPIN_KEY] = extract_state(post_block, SecondaryState.SPIN)
        states[ROTATIONAL_ACCELERATION_KEY] = extract_state(
            post_block, SecondaryState.ROTATIONAL_ACCELERATION
        )
        return dataclasses.replace(
            current,
            date=result.t,
            orbit=result.state[:ORBIT_DIMENSION],
            additional_states=states,
        )

    def propagate_step(self, dt: float | None = None) -> StepOutcome:
        """Advance the current state by one step.

        On success the new snapshot replaces the content of the state
        cell.  On failure the cell is left untouched and the error is
        logged and returned.

        Args:
            dt: Step [s]. Defaults to ``integration_time_step``.

        Returns:
            StepOutcome: The new snapshot or the failure.
        """
        dt = self.integration_time_step if dt is None else float(dt)
        current = self._cell.get()
        try:
            integrated = self._integrate(current, dt)
            new_state = self.propagate_attitude(current, integrated)
        except PropagationError as exc:
            self._logger.error("Propagation step at t=%g failed: %s", current.date, exc)
            return StepOutcome(state=None, error=exc)
        except (IntegrationError, KeyError, ValueError) as exc:
            error = PropagationError(
                LocalizedFormats.PROPAGATION_STEP_FAILED.format(
                    start=current.date, stop=current.date + dt, reason=exc
                )
            )
            error.__cause__ = exc
            self._logger.error("Propagation step at t=%g failed: %s", current.date, exc)
            return StepOutcome(state=None, error=error)

        self._cell.set(new_state)
        self._logger.debug(
            "Step %g ---> %g, q=%s", current.date, new_state.date, new_state.attitude.rotation
        )
        return StepOutcome(state=new_state, error=None)

    def propagate_to(self, target: float) -> SpacecraftState:
        """Step until the current date reaches ``target``.

        Steps have the configured length except the last one, which is
        shortened to land exactly on ``target``.

        Args:
            target: Target date [s]. Must not precede the current date.

        Returns:
            SpacecraftState: Snapshot at ``target``.

        Raises:
            ValueError: If ``target`` precedes the current date.
            PropagationError: On the first failed step.
        """
        target = float(target)
        state = self._cell.get()
        if target < state.date:
            raise ValueError(
                f"target date {target} precedes the current date {state.date}"
            )
        # Remainders below this are rounding residue of the date sums
        tolerance = 1.0e-9 * self.integration_time_step
        while target - state.date > tolerance:
            next_date = state.date + self.integration_time_step
            if target - next_date <= tolerance:
                next_date = target
            outcome = self.propagate_step(next_date - state.date)
            if not outcome.ok:
                raise outcome.error
            state = outcome.state
        return state

    def run(self, duration: float) -> SpacecraftState:
        """Propagate for ``duration`` seconds from the current date.

        Args:
            duration: Run length [s].

        Returns:
            SpacecraftState: Final snapshot.

        Raises:
            PropagationError: On the first failed step.
        """
        start = self._cell.get().date
        self._logger.info("Propagation started at t=%g for %g s", start, duration)
        final = self.propagate_to(start + duration)
        self._logger.info(
            "Propagation finished at t=%g, q=%s", final.date, final.attitude.rotation
        )
        return final
