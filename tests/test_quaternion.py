"""Tests for the Quaternion class and its kernels."""

import math

import jax
import jax.numpy as jnp
import pytest

from attsim.attitude import (
    Quaternion,
    axis_angle_to_quaternion,
    quaternion_multiply,
    quaternion_normalize,
)


class TestKernels:
    def test_multiply_identity(self):
        q = jnp.array([0.5, 0.5, 0.5, 0.5])
        identity = jnp.array([1.0, 0.0, 0.0, 0.0])
        assert jnp.allclose(quaternion_multiply(identity, q), q)
        assert jnp.allclose(quaternion_multiply(q, identity), q)

    def test_multiply_basis(self):
        i = jnp.array([0.0, 1.0, 0.0, 0.0])
        j = jnp.array([0.0, 0.0, 1.0, 0.0])
        k = jnp.array([0.0, 0.0, 0.0, 1.0])
        assert jnp.allclose(quaternion_multiply(i, j), k)
        assert jnp.allclose(quaternion_multiply(j, i), -k)

    def test_multiply_is_not_normalized(self):
        q = jnp.array([2.0, 0.0, 0.0, 0.0])
        assert float(jnp.linalg.norm(quaternion_multiply(q, q))) == pytest.approx(4.0)

    def test_normalize(self):
        q = quaternion_normalize(jnp.array([1.0, 1.0, 1.0, 1.0]))
        assert jnp.allclose(q, jnp.full(4, 0.5))

    def test_axis_angle(self):
        q = axis_angle_to_quaternion(jnp.array([0.0, 0.0, 2.0]), jnp.array(math.pi / 2))
        expected = jnp.array([math.cos(math.pi / 4), 0.0, 0.0, math.sin(math.pi / 4)])
        assert jnp.allclose(q, expected, atol=1e-15)


class TestConstruction:
    def test_normalized_on_construction(self):
        q = Quaternion(2.0, 0.0, 0.0, 0.0)
        assert float(q.w) == pytest.approx(1.0)
        assert float(q.norm()) == pytest.approx(1.0)

    def test_identity(self):
        q = Quaternion.identity()
        assert jnp.allclose(q.to_vector(), jnp.array([1.0, 0.0, 0.0, 0.0]))

    def test_from_vector_scalar_last(self):
        q = Quaternion.from_vector([0.0, 0.0, 1.0, 0.0], scalar_first=False)
        assert float(q.z) == pytest.approx(1.0)
        assert float(q.y) == pytest.approx(0.0)
        assert float(q.w) == pytest.approx(0.0)

    def test_from_vector_bad_shape(self):
        with pytest.raises(ValueError, match="shape"):
            Quaternion.from_vector([1.0, 0.0, 0.0])

    def test_to_vector_scalar_last(self):
        q = Quaternion(0.5, 0.5, -0.5, 0.5)
        assert jnp.allclose(q.to_vector(scalar_first=False), jnp.array([0.5, -0.5, 0.5, 0.5]))

    def test_from_axis_angle(self):
        q = Quaternion.from_axis_angle([1.0, 0.0, 0.0], math.pi)
        assert jnp.allclose(q.to_vector(), jnp.array([0.0, 1.0, 0.0, 0.0]), atol=1e-15)

    def test_components(self):
        q = Quaternion(0.5, 0.5, -0.5, 0.5)
        assert [float(q[i]) for i in range(4)] == [0.5, 0.5, -0.5, 0.5]


class TestOperations:
    def test_conjugate_is_inverse(self):
        q = Quaternion.from_axis_angle([1.0, 2.0, 3.0], 0.7)
        assert q * q.conjugate() == Quaternion.identity()

    def test_composition_of_rotations(self):
        a = Quaternion.from_axis_angle([0.0, 0.0, 1.0], 0.3)
        b = Quaternion.from_axis_angle([0.0, 0.0, 1.0], 0.4)
        assert a * b == Quaternion.from_axis_angle([0.0, 0.0, 1.0], 0.7)

    def test_product_is_normalized(self):
        a = Quaternion(1.0, 2.0, 3.0, 4.0)
        b = Quaternion(-1.0, 0.5, 0.0, 2.0)
        assert float((a * b).norm()) == pytest.approx(1.0, abs=1e-15)

    def test_multiply_non_quaternion(self):
        with pytest.raises(TypeError):
            Quaternion.identity() * 2.0

    def test_negation(self):
        q = -Quaternion(0.5, 0.5, 0.5, 0.5)
        assert jnp.allclose(q.to_vector(), jnp.full(4, -0.5))

    def test_equality(self):
        assert Quaternion(1.0, 0.0, 0.0, 0.0) == Quaternion.identity()
        assert Quaternion(0.0, 1.0, 0.0, 0.0) != Quaternion.identity()

    def test_equality_with_other_type(self):
        assert (Quaternion.identity() == "identity") is False

    def test_str(self):
        assert str(Quaternion.identity()) == "Quaternion(w=1.000000, x=0.000000, y=0.000000, z=0.000000)"


class TestPytree:
    def test_flatten_roundtrip(self):
        q = Quaternion(0.5, 0.5, 0.5, 0.5)
        leaves, treedef = jax.tree_util.tree_flatten(q)
        assert len(leaves) == 1
        assert jax.tree_util.tree_unflatten(treedef, leaves) == q

    def test_through_jit(self):
        @jax.jit
        def compose(a, b):
            return a * b

        a = Quaternion.from_axis_angle([0.0, 1.0, 0.0], 0.2)
        result = compose(a, a)
        assert result == Quaternion.from_axis_angle([0.0, 1.0, 0.0], 0.4)
