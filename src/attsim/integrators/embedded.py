"""Single trial step of an embedded Runge-Kutta method.

:func:`embedded_rk_step` is a pure JAX function: given a tableau, the
dynamics and a trial step size it returns the propagated solution and the
embedded error vector.  Acceptance, rejection and step-size prediction
happen in :class:`~attsim.integrators.adaptive_stepsize.AdaptiveStepsizeIntegrator`.

Because the adaptive control loop runs in Python, the trial step and the
plain derivative evaluation are compiled with :func:`compile_step` and
:func:`compile_dynamics`; each integrator keeps its own compiled copies.
"""

from __future__ import annotations

import functools
from collections.abc import Callable, Sequence

import jax
import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from attsim.integrators.tableaux import ButcherTableau


def _weighted_sum(weights: Sequence[float], stages: Sequence[Array]) -> Array:
    acc = jnp.zeros_like(stages[0])
    for w, k in zip(weights, stages):
        # Zero weights are skipped at trace time
        if w != 0.0:
            acc = acc + w * k
    return acc


def embedded_rk_step(
    tableau: ButcherTableau,
    dynamics: Callable[[ArrayLike, ArrayLike], Array],
    t: ArrayLike,
    state: ArrayLike,
    h: ArrayLike,
) -> tuple[Array, Array]:
    """Compute one trial step of an embedded Runge-Kutta method.

    Args:
        tableau: Coefficients of the embedded method.
        dynamics: ODE right-hand side function ``f(t, x) -> dx/dt``.
        t: Time at the start of the step.
        state: State vector at ``t``.
        h: Trial step size. May be negative for backward integration.

    Returns:
        tuple: ``(state_high, error_vec)`` where ``state_high`` is the
            propagated solution at ``t + h`` and ``error_vec`` the
            difference between the high- and low-order solutions.

    Examples:
        ```python
        import jax.numpy as jnp
        from attsim.integrators import DP54
        from attsim.integrators.embedded import embedded_rk_step
        def harmonic(t, x):
            return jnp.array([x[1], -x[0]])
        state, err = embedded_rk_step(DP54, harmonic, 0.0, jnp.array([1.0, 0.0]), 0.1)
        state  # ~[cos(0.1), -sin(0.1)]
        ```
    """
    stages = [dynamics(t, state)]
    for ci, row in zip(tableau.c[1:], tableau.a):
        stages.append(dynamics(t + ci * h, state + h * _weighted_sum(row, stages)))

    state_high = state + h * _weighted_sum(tableau.b_high, stages)
    error_weights = tuple(bh - bl for bh, bl in zip(tableau.b_high, tableau.b_low))
    error_vec = h * _weighted_sum(error_weights, stages)
    return state_high, error_vec


def compile_step(
    tableau: ButcherTableau,
    dynamics: Callable[[ArrayLike, ArrayLike], Array],
) -> Callable[[ArrayLike, ArrayLike, ArrayLike], tuple[Array, Array]]:
    """Return a JIT-compiled ``step(t, state, h)`` for a tableau and dynamics.

    Args:
        tableau: Coefficients of the embedded method.
        dynamics: JAX-traceable ODE right-hand side ``f(t, x) -> dx/dt``.

    Returns:
        Callable: Compiled :func:`embedded_rk_step` with the tableau and
            dynamics bound.
    """
    return jax.jit(functools.partial(embedded_rk_step, tableau, dynamics))


def compile_dynamics(
    dynamics: Callable[[ArrayLike, ArrayLike], Array],
) -> Callable[[ArrayLike, ArrayLike], Array]:
    """Return a JIT-compiled version of ``dynamics``.

    Args:
        dynamics: JAX-traceable ODE right-hand side ``f(t, x) -> dx/dt``.

    Returns:
        Callable: Compiled dynamics.
    """
    return jax.jit(dynamics)
