"""Tests for the orbit and attitude propagator.

Tests cover:
- Half turn at constant spin (Wilcox and Edwards)
- Spin-up under constant rotational acceleration
- Attitude update from a pair of snapshots
- Torque driven rotational acceleration
- Failure reporting through StepOutcome and PropagationError
"""

import logging
import math

import jax.numpy as jnp
import pytest

from attsim.attitude import Quaternion, SpacecraftInertia, TorqueRotationalAcceleration
from attsim.errors import DimensionMismatchError, PropagationError
from attsim.integrators import AdaptiveStepsizeIntegrator
from attsim.propagation import (
    ROTATIONAL_ACCELERATION_KEY,
    SECONDARY_STATES_KEY,
    SPIN_KEY,
    Attitude,
    Propagation,
    PropagationConfig,
    SpacecraftState,
    StepOutcome,
    initial_spacecraft_state,
    secondary_state_vector,
)


def _unit(v):
    v = jnp.asarray(v, dtype=jnp.float64)
    return v / jnp.linalg.norm(v)


def _exploding_orbit(t, orbit):
    return orbit * jnp.nan


def _integrator():
    return AdaptiveStepsizeIntegrator(1e-3, 1000.0, 1e-3, 1e-10)


# ──────────────────────────────────────────────
# Reference scenarios
# ──────────────────────────────────────────────

class TestHalfTurn:
    @pytest.mark.parametrize("algorithm", ["wilcox", "edwards"])
    def test_constant_spin_half_turn(self, algorithm):
        axis = (1.0, 2.0, 3.0)
        config = PropagationConfig.simple_rotation(100.0, axis, attitude_algorithm=algorithm)
        propagation = Propagation.from_config(config)
        final = propagation.run(config.duration)

        n = _unit(axis)
        expected = jnp.concatenate([jnp.zeros(1), n])
        assert final.date == 100.0
        assert jnp.allclose(final.attitude.rotation.to_vector(), expected, atol=1e-6)

    def test_single_axis_quarter_turn(self):
        config = PropagationConfig.simple_rotation(10.0, (0.0, 0.0, 1.0))
        propagation = Propagation.from_config(config)
        final = propagation.run(5.0)
        expected = Quaternion.from_axis_angle([0.0, 0.0, 1.0], math.pi / 2.0)
        assert jnp.allclose(final.attitude.rotation.to_vector(), expected.to_vector(), atol=1e-8)


class TestConstantAcceleration:
    def test_spin_grows_linearly(self):
        s0 = jnp.array([2.7, -1.5, 0.3])
        a = jnp.array([0.01, 0.02, -0.03])
        config = PropagationConfig.constant_acceleration(100.0, tuple(s0.tolist()), tuple(a.tolist()))
        propagation = Propagation.from_config(config)
        final = propagation.run(config.duration)

        assert jnp.allclose(final.get_additional_state(SPIN_KEY), s0 + a * 100.0, atol=1e-9, rtol=0.0)
        assert jnp.allclose(final.attitude.spin, s0 + a * 100.0, atol=1e-9, rtol=0.0)
        assert jnp.array_equal(final.get_additional_state(ROTATIONAL_ACCELERATION_KEY), a)
        assert jnp.array_equal(final.attitude.rotation_acceleration, a)

    def test_accumulated_rotation(self):
        s0 = jnp.array([0.0, 0.0, 0.1])
        a = jnp.array([0.0, 0.0, 0.002])
        config = PropagationConfig.constant_acceleration(10.0, tuple(s0.tolist()), tuple(a.tolist()))
        final = Propagation.from_config(config).run(10.0)
        theta = final.get_additional_state(SECONDARY_STATES_KEY)[3:6]
        assert jnp.allclose(theta, s0 * 10.0 + 0.5 * a * 100.0, atol=1e-12)
        # Single-axis motion, so the attitude is the exact rotation by |theta|
        expected = Quaternion.from_axis_angle([0.0, 0.0, 1.0], float(theta[2]))
        assert jnp.allclose(final.attitude.rotation.to_vector(), expected.to_vector(), atol=1e-9)


# ──────────────────────────────────────────────
# Attitude update
# ──────────────────────────────────────────────

class TestPropagateAttitude:
    def _pair(self):
        config = PropagationConfig(initial_spin=(0.0, 0.0, 0.2))
        current = initial_spacecraft_state(config)
        block = secondary_state_vector([0.0, 0.0, 0.25], [0.0, 0.0, 0.05], [0.0, 0.0, 0.5])
        integrated = SpacecraftState(
            date=0.1,
            frame=current.frame,
            orbit=current.orbit + 1.0,
            attitude=current.attitude,
            mass=current.mass,
            additional_states={SECONDARY_STATES_KEY: block, "Extra": [1.0]},
        )
        return current, integrated

    def test_attitude_replaced(self):
        current, integrated = self._pair()
        propagation = Propagation(current, 0.1, _integrator())
        new_state = propagation.propagate_attitude(current, integrated)

        expected = Quaternion.from_axis_angle([0.0, 0.0, 1.0], 0.05)
        assert jnp.allclose(new_state.attitude.rotation.to_vector(), expected.to_vector(), atol=1e-8)
        assert jnp.array_equal(new_state.attitude.spin, jnp.array([0.0, 0.0, 0.25]))
        assert jnp.array_equal(new_state.attitude.rotation_acceleration, jnp.array([0.0, 0.0, 0.5]))
        assert new_state.attitude.date == 0.1

    def test_everything_else_from_integrated(self):
        current, integrated = self._pair()
        new_state = Propagation(current, 0.1, _integrator()).propagate_attitude(current, integrated)
        assert new_state.date == integrated.date
        assert jnp.array_equal(new_state.orbit, integrated.orbit)
        assert sorted(new_state.get_additional_states()) == sorted(integrated.get_additional_states())
        for name, value in integrated.get_additional_states().items():
            assert jnp.array_equal(new_state.get_additional_state(name), value)
        assert current.attitude.date == 0.0

    def test_missing_secondary_block(self):
        current, integrated = self._pair()
        propagation = Propagation(current, 0.1, _integrator())
        broken = SpacecraftState(
            date=0.1,
            frame=integrated.frame,
            orbit=integrated.orbit,
            attitude=integrated.attitude,
            mass=integrated.mass,
        )
        with pytest.raises(PropagationError, match="propagation failed - step 0.0 ---> 0.1"):
            propagation.propagate_attitude(current, broken)


# ──────────────────────────────────────────────
# Propagator behaviour
# ──────────────────────────────────────────────

class TestPropagation:
    def test_step_outcome(self):
        propagation = Propagation.from_config(PropagationConfig())
        outcome = propagation.propagate_step()
        assert isinstance(outcome, StepOutcome)
        assert outcome.ok
        assert outcome.error is None
        assert outcome.state.date == pytest.approx(0.1)
        assert propagation.current_state is outcome.state

    def test_orbit_advances(self):
        propagation = Propagation.from_config(PropagationConfig())
        initial = propagation.current_state
        final = propagation.run(60.0)
        r0 = float(jnp.linalg.norm(initial.position))
        assert float(jnp.linalg.norm(final.position)) == pytest.approx(r0, rel=1e-9)
        assert not jnp.allclose(final.position, initial.position)

    def test_initial_state_without_secondary_block(self):
        attitude = Attitude(0.0, "EME2000", Quaternion.identity(), [0.0, 0.0, 0.1], [0.0, 0.0, 0.0])
        state = SpacecraftState(
            date=0.0,
            frame="EME2000",
            orbit=initial_spacecraft_state(PropagationConfig()).orbit,
            attitude=attitude,
            mass=1.0,
        )
        propagation = Propagation(state, 0.5, _integrator())
        final = propagation.run(1.0)
        expected = Quaternion.from_axis_angle([0.0, 0.0, 1.0], 0.1)
        assert jnp.allclose(final.attitude.rotation.to_vector(), expected.to_vector(), atol=1e-8)

    def test_partial_last_step(self):
        propagation = Propagation.from_config(PropagationConfig(integration_time_step=0.3))
        final = propagation.propagate_to(1.0)
        assert final.date == 1.0

    def test_propagate_to_current_date(self):
        propagation = Propagation.from_config(PropagationConfig())
        assert propagation.propagate_to(0.0) is propagation.current_state

    def test_propagate_to_past_rejected(self):
        propagation = Propagation.from_config(PropagationConfig())
        propagation.run(0.2)
        with pytest.raises(ValueError, match="precedes the current date"):
            propagation.propagate_to(0.1)

    def test_initial_step_from_config(self):
        propagation = Propagation.from_config(PropagationConfig(initial_step=0.05))
        assert propagation.integrator.controller.initial_step == 0.05

    def test_rkf45_method(self):
        config = PropagationConfig.simple_rotation(10.0, (1.0, 0.0, 0.0))
        config = PropagationConfig(
            initial_spin=config.initial_spin, duration=10.0, method="rkf45"
        )
        final = Propagation.from_config(config).run(10.0)
        assert jnp.allclose(final.attitude.rotation.to_vector(), jnp.array([0.0, 1.0, 0.0, 0.0]), atol=1e-6)

    def test_torque_provider(self):
        inertia = SpacecraftInertia.from_principal(2.0, 2.0, 2.0)
        provider = TorqueRotationalAcceleration(inertia, lambda t, state: jnp.array([0.0, 0.0, 0.02]))
        propagation = Propagation.from_config(PropagationConfig(), rotational_acceleration=provider)
        final = propagation.run(5.0)
        assert jnp.allclose(final.attitude.spin, jnp.array([0.0, 0.0, 0.05]), atol=1e-12)

    def test_invalid_arguments(self):
        state = initial_spacecraft_state(PropagationConfig())
        with pytest.raises(ValueError, match="integration_time_step"):
            Propagation(state, 0.0, _integrator())
        with pytest.raises(ValueError, match="attitude_algorithm"):
            Propagation(state, 0.1, _integrator(), attitude_algorithm="euler")

    def test_logs_run(self, caplog):
        propagation = Propagation.from_config(PropagationConfig())
        with caplog.at_level(logging.INFO, logger="attsim.propagation.propagation"):
            propagation.run(0.2)
        assert "Propagation started" in caplog.text
        assert "Propagation finished" in caplog.text


class TestFailures:
    def test_failed_step_outcome(self, caplog):
        propagation = Propagation.from_config(PropagationConfig(), primary_dynamics=_exploding_orbit)
        initial = propagation.current_state
        with caplog.at_level(logging.ERROR, logger="attsim.propagation.propagation"):
            outcome = propagation.propagate_step()
        assert not outcome.ok
        assert outcome.state is None
        assert isinstance(outcome.error, PropagationError)
        assert "propagation failed - step 0.0 ---> 0.1" in str(outcome.error)
        assert propagation.current_state is initial
        assert "failed" in caplog.text

    def test_run_raises_on_failure(self):
        propagation = Propagation.from_config(PropagationConfig(), primary_dynamics=_exploding_orbit)
        with pytest.raises(PropagationError):
            propagation.run(1.0)
        assert propagation.current_state.date == 0.0

    def test_bad_provider_output(self):
        propagation = Propagation.from_config(
            PropagationConfig(), rotational_acceleration=lambda t, state: jnp.zeros(2)
        )
        outcome = propagation.propagate_step()
        assert not outcome.ok
        assert "rotational_acceleration dimension mismatch" in str(outcome.error)

    def test_vector_tolerance_mismatch_at_construction(self):
        config = PropagationConfig(abs_tol=(1e-3,) * 3, rel_tol=(1e-10,) * 3)
        with pytest.raises(DimensionMismatchError, match="absolute tolerance dimension mismatch: 3 != 6"):
            Propagation.from_config(config)

    def test_vector_tolerance_mismatch_direct(self):
        state = initial_spacecraft_state(PropagationConfig())
        integrator = AdaptiveStepsizeIntegrator(1e-3, 1000.0, [1e-3] * 7, [1e-10] * 7)
        with pytest.raises(DimensionMismatchError):
            Propagation(state, 0.1, integrator)

    def test_vector_tolerances_accepted(self):
        config = PropagationConfig(abs_tol=(1e-3,) * 6, rel_tol=(1e-10,) * 6)
        outcome = Propagation.from_config(config).propagate_step()
        assert outcome.ok
        assert outcome.state.date == pytest.approx(0.1)
