"""Tests for the attitude dynamics module.

Tests cover:
- SpacecraftInertia dataclass and preset
- Euler rotational equation
- Constant and torque driven rotational acceleration providers
"""

import dataclasses

import jax.numpy as jnp
import pytest

from attsim.attitude import (
    ConstantRotationalAcceleration,
    SpacecraftInertia,
    TorqueRotationalAcceleration,
    euler_equation,
)
from attsim.config import get_dtype
from attsim.propagation import PropagationConfig, initial_spacecraft_state


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _asymmetric_inertia() -> SpacecraftInertia:
    """Asymmetric spacecraft inertia (all axes different)."""
    return SpacecraftInertia.from_principal(10.0, 20.0, 30.0)


def _state_with_spin(spin):
    config = PropagationConfig(initial_spin=tuple(spin))
    return initial_spacecraft_state(config)


# ===========================================================================
# Configuration dataclass tests
# ===========================================================================


class TestSpacecraftInertia:
    def test_default(self):
        inertia = SpacecraftInertia()
        assert jnp.allclose(inertia.I, jnp.eye(3))

    def test_from_principal(self):
        inertia = _asymmetric_inertia()
        assert inertia.I.shape == (3, 3)
        assert jnp.allclose(jnp.diag(inertia.I), jnp.array([10.0, 20.0, 30.0]))
        assert float(inertia.I[0, 1]) == 0.0

    def test_dtype(self):
        assert _asymmetric_inertia().I.dtype == get_dtype()

    def test_frozen(self):
        inertia = SpacecraftInertia()
        with pytest.raises(dataclasses.FrozenInstanceError):
            inertia.I = jnp.zeros((3, 3))


# ===========================================================================
# Euler equation tests
# ===========================================================================


class TestEulerEquation:
    """Tests for euler_equation."""

    def test_principal_axis_spin_torque_free(self):
        """Spin about a principal axis with no torque gives zero acceleration."""
        J = _asymmetric_inertia().I
        tau = jnp.zeros(3)
        for axis in jnp.eye(3):
            omega_dot = euler_equation(0.5 * axis, J, tau)
            assert jnp.allclose(omega_dot, jnp.zeros(3), atol=1e-12)

    def test_known_euler_result_off_axis(self):
        """Manual computation with off-axis spin.

        I = diag(10, 20, 30), omega = [1, 1, 0], tau = 0
        omega x (I @ omega) = [1,1,0] x [10,20,0] = [0, 0, 10]
        omega_dot = I^{-1} @ [0, 0, -10] = [0, 0, -1/3]
        """
        omega_dot = euler_equation(jnp.array([1.0, 1.0, 0.0]), _asymmetric_inertia().I, jnp.zeros(3))
        assert jnp.allclose(omega_dot, jnp.array([0.0, 0.0, -1.0 / 3.0]), atol=1e-12)

    def test_with_external_torque(self):
        """tau = [10, 0, 0] at rest gives omega_dot = [1, 0, 0]."""
        omega_dot = euler_equation(jnp.zeros(3), _asymmetric_inertia().I, jnp.array([10.0, 0.0, 0.0]))
        assert jnp.allclose(omega_dot, jnp.array([1.0, 0.0, 0.0]), atol=1e-12)


# ===========================================================================
# Rotational acceleration providers
# ===========================================================================


class TestConstantRotationalAcceleration:
    def test_returns_value(self):
        provider = ConstantRotationalAcceleration([0.01, 0.02, -0.03])
        state = _state_with_spin([0.0, 0.0, 0.0])
        assert jnp.array_equal(provider(0.0, state), jnp.array([0.01, 0.02, -0.03]))
        assert jnp.array_equal(provider(50.0, state), jnp.array([0.01, 0.02, -0.03]))

    def test_bad_shape(self):
        with pytest.raises(ValueError, match="shape"):
            ConstantRotationalAcceleration([0.01, 0.02])

    def test_repr(self):
        assert repr(ConstantRotationalAcceleration([1.0, 0.0, 0.0])) == (
            "ConstantRotationalAcceleration([1.0, 0.0, 0.0])"
        )


class TestTorqueRotationalAcceleration:
    def test_torque_at_rest(self):
        provider = TorqueRotationalAcceleration(
            _asymmetric_inertia(), lambda t, state: jnp.array([0.0, 40.0, 0.0])
        )
        acc = provider(0.0, _state_with_spin([0.0, 0.0, 0.0]))
        assert jnp.allclose(acc, jnp.array([0.0, 2.0, 0.0]), atol=1e-12)

    def test_uses_state_spin(self):
        provider = TorqueRotationalAcceleration(_asymmetric_inertia(), lambda t, state: jnp.zeros(3))
        acc = provider(0.0, _state_with_spin([1.0, 1.0, 0.0]))
        assert jnp.allclose(acc, jnp.array([0.0, 0.0, -1.0 / 3.0]), atol=1e-12)

    def test_torque_receives_time(self):
        seen = []

        def torque(t, state):
            seen.append(t)
            return jnp.zeros(3)

        TorqueRotationalAcceleration(SpacecraftInertia(), torque)(12.5, _state_with_spin([0.0, 0.0, 0.0]))
        assert seen == [12.5]
