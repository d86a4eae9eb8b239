"""Adaptive-stepsize integration driven by an embedded Runge-Kutta method.

:class:`AdaptiveStepsizeIntegrator` is the single integrator of the
package.  The embedded method is a pluggable
:class:`~attsim.integrators.tableaux.ButcherTableau`; the step bounds and
tolerances live in a
:class:`~attsim.integrators.step_control.StepSizeController`.

Only the primary part of the state vector (the leading
``primary_dimension`` components) takes part in the error control.
Secondary components appended after it are integrated with the same
steps but never cause a rejection.

The trial steps are JIT compiled, so ``dynamics`` must be a
JAX-traceable function ``f(t, x) -> dx/dt``.  The acceptance loop itself
runs in Python, which is what allows step-size failures to surface as
ordinary exceptions.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from attsim.config import get_dtype
from attsim.errors import DimensionMismatchError, IntegrationError, LocalizedFormats
from attsim.integrators._adaptive import compute_error_norm, compute_next_step_size
from attsim.integrators._types import AdaptiveConfig, IntegrationResult, StepResult
from attsim.integrators.embedded import compile_dynamics, compile_step
from attsim.integrators.step_control import StepSizeController
from attsim.integrators.tableaux import DP54, ButcherTableau, get_tableau


class AdaptiveStepsizeIntegrator:
    """Adaptive integrator for an embedded Runge-Kutta method.

    Args:
        min_step: Minimal step magnitude.
        max_step: Maximal step magnitude.
        abs_tol: Absolute tolerance, scalar or one value per primary component.
        rel_tol: Relative tolerance, scalar or one value per primary component.
        method: Embedded method, a :class:`ButcherTableau` or its name.
            Defaults to Dormand-Prince 5(4).
        config: Step growth and reduction bounds. Uses the default
            :class:`AdaptiveConfig` if ``None``.
        logger: Logger for step diagnostics. Defaults to the module logger.

    Examples:
        ```python
        import jax.numpy as jnp
        from attsim.integrators import AdaptiveStepsizeIntegrator
        def decay(t, x):
            return -x
        integrator = AdaptiveStepsizeIntegrator(1e-6, 1.0, 1e-10, 1e-10)
        result = integrator.integrate(decay, 0.0, jnp.array([1.0]), 2.0)
        result.state  # ~[exp(-2)]
        ```
    """

    def __init__(
        self,
        min_step: float,
        max_step: float,
        abs_tol: ArrayLike,
        rel_tol: ArrayLike,
        method: ButcherTableau | str = DP54,
        config: AdaptiveConfig | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._logger = logger if logger is not None else logging.getLogger(__name__)
        self.tableau = get_tableau(method) if isinstance(method, str) else method
        self.config = config if config is not None else AdaptiveConfig()
        self.controller = StepSizeController(
            min_step, max_step, abs_tol, rel_tol, logger=self._logger
        )
        self._compiled: dict[tuple[str, Callable], Callable] = {}

    def _compiled_step(self, dynamics):
        key = ("step", dynamics)
        if key not in self._compiled:
            self._compiled[key] = compile_step(self.tableau, dynamics)
        return self._compiled[key]

    def _compiled_dynamics(self, dynamics):
        key = ("dynamics", dynamics)
        if key not in self._compiled:
            self._compiled[key] = compile_dynamics(dynamics)
        return self._compiled[key]

    @property
    def name(self) -> str:
        """Name of the embedded method."""
        return self.tableau.name

    @property
    def order(self) -> int:
        """Order of the embedded method."""
        return self.tableau.order

    def _primary_dimension(self, state: Array, primary_dimension: int | None) -> int:
        if state.ndim != 1:
            raise ValueError(f"State must be a 1-D vector, got shape {state.shape}")
        if primary_dimension is None:
            return state.shape[0]
        if not 0 < primary_dimension <= state.shape[0]:
            raise DimensionMismatchError("primary state", primary_dimension, state.shape[0])
        return primary_dimension

    def step(
        self,
        dynamics: Callable[[ArrayLike, ArrayLike], Array],
        t: float,
        state: ArrayLike,
        dt: float,
        primary_dimension: int | None = None,
        t_final: float | None = None,
    ) -> StepResult:
        """Perform a single adaptive step of at most ``dt``.

        The trial step is retried with a smaller step while the normalized
        error of the primary components exceeds 1.0.  Every reduced step
        goes through :meth:`StepSizeController.filter_step` without
        accepting small steps, so an unreachable tolerance ends in a
        :class:`~attsim.errors.MinimalStepSizeError`.

        Args:
            dynamics: ODE right-hand side function ``f(t, x) -> dx/dt``.
            t: Current time.
            state: Current state vector.
            dt: Requested step. Negative for backward integration.
            primary_dimension: Number of error-controlled leading
                components. Defaults to the whole state.
            t_final: End of the enclosing integration, if any. A suggested
                next step that would reach it may be below ``min_step``.

        Returns:
            StepResult: Named tuple with fields:
                - ``state``: State at ``t + dt_used``.
                - ``dt_used``: Actual step taken.
                - ``error_estimate``: Normalized error of the accepted step.
                - ``dt_next``: Filtered suggestion for the next step.

        Raises:
            MinimalStepSizeError: If the step has to shrink below ``min_step``.
            IntegrationError: If the error estimate is not finite.
        """
        state = jnp.asarray(state, dtype=get_dtype())
        n = self._primary_dimension(state, primary_dimension)
        abs_tol, rel_tol = self.controller.tolerances
        cfg = self.config
        forward = dt >= 0.0
        attempt = self._compiled_step(dynamics)

        h = float(dt)
        while True:
            state_new, error_vec = attempt(t, state, h)
            error = float(
                compute_error_norm(error_vec[:n], state_new[:n], state[:n], abs_tol, rel_tol)
            )
            if not math.isfinite(error):
                raise IntegrationError(LocalizedFormats.NON_FINITE_ERROR.format(t=t, step=h))
            if error <= 1.0:
                break
            h_reduced = compute_next_step_size(
                error, h, self.tableau.error_order,
                cfg.safety_factor, cfg.min_scale_factor, cfg.max_scale_factor,
            )
            self._logger.debug("Step %g at t=%g rejected (error %.3g)", h, t, error)
            h = self.controller.filter_step(float(h_reduced), forward, False)

        scaled = float(
            compute_next_step_size(
                error, h, self.tableau.error_order,
                cfg.safety_factor, cfg.min_scale_factor, cfg.max_scale_factor,
            )
        )
        next_is_last = False
        if t_final is not None:
            next_t = t + h + scaled
            next_is_last = next_t >= t_final if forward else next_t <= t_final
        dt_next = self.controller.filter_step(scaled, forward, next_is_last)

        return StepResult(state=state_new, dt_used=h, error_estimate=error, dt_next=dt_next)

    def integrate(
        self,
        dynamics: Callable[[ArrayLike, ArrayLike], Array],
        t0: float,
        y0: ArrayLike,
        t1: float,
        primary_dimension: int | None = None,
    ) -> IntegrationResult:
        """Integrate ``y0`` from ``t0`` to exactly ``t1``.

        The tolerances are validated against the primary dimension before
        anything is evaluated.  The first step comes from
        :meth:`StepSizeController.initialize_step`; the last step is
        truncated to land on ``t1`` and may be smaller than ``min_step``.

        Args:
            dynamics: ODE right-hand side function ``f(t, x) -> dx/dt``.
            t0: Start time.
            y0: State at ``t0``.
            t1: Target time. ``t1 < t0`` integrates backward.
            primary_dimension: Number of error-controlled leading
                components. Defaults to the whole state.

        Returns:
            IntegrationResult: Final time, state, next-step suggestion and
                number of accepted steps.

        Raises:
            DimensionMismatchError: If a vector tolerance does not match the
                primary dimension.
            MinimalStepSizeError: If the tolerance cannot be met above
                ``min_step``.
        """
        y = jnp.asarray(y0, dtype=get_dtype())
        n = self._primary_dimension(y, primary_dimension)
        self.controller.validate(n)

        t0 = float(t0)
        t1 = float(t1)
        if t1 == t0:
            return IntegrationResult(t=t0, state=y, dt_next=0.0, n_steps=0)

        forward = t1 > t0
        derivatives = self._compiled_dynamics(dynamics)
        h = self.controller.initialize_step(
            forward,
            self.tableau.order,
            self.controller.compute_scale(y, n),
            t0,
            y,
            derivatives,
        )

        t = t0
        n_steps = 0
        while True:
            remaining = t1 - t
            is_last = h >= remaining if forward else h <= remaining
            if is_last:
                h = remaining
            result = self.step(dynamics, t, y, h, primary_dimension=n, t_final=t1)
            n_steps += 1
            y = result.state
            if is_last and result.dt_used == h:
                t = t1
                break
            t = t + result.dt_used
            h = result.dt_next

        self._logger.debug(
            "Integrated %s from t=%g to t=%g in %d steps", self.name, t0, t1, n_steps
        )
        return IntegrationResult(t=t, state=y, dt_next=result.dt_next, n_steps=n_steps)
