"""Type definitions for numerical integrators.

Provides the core data types used by the adaptive integrator:

- :class:`StepResult`: Output of a single accepted adaptive step,
  containing the new state, actual timestep used, error estimate, and
  suggested next timestep.
- :class:`IntegrationResult`: Output of a full integration from ``t0`` to
  ``t1``.
- :class:`AdaptiveConfig`: Growth and reduction bounds for step-size
  adjustment.

All types are :class:`~typing.NamedTuple` instances, which JAX treats as
pytrees automatically.
"""

from __future__ import annotations

from typing import NamedTuple

from jax import Array


class StepResult(NamedTuple):
    """Result of a single accepted adaptive step.

    Attributes:
        state: State vector at time ``t + dt_used``.
        dt_used: Actual timestep taken. This may be smaller than the
            requested ``dt`` if the first attempts were rejected.
        error_estimate: Normalized error estimate of the accepted attempt.
            Always <= 1.0.
        dt_next: Suggested timestep for the next step, already filtered
            through the step-size bounds.
    """

    state: Array
    dt_used: float
    error_estimate: float
    dt_next: float


class IntegrationResult(NamedTuple):
    """Result of integrating a state from ``t0`` to ``t1``.

    Attributes:
        t: Final time, equal to the requested ``t1``.
        state: State vector at ``t``.
        dt_next: Suggested timestep to continue integrating.
        n_steps: Number of accepted steps.
    """

    t: float
    state: Array
    dt_next: float
    n_steps: int


class AdaptiveConfig(NamedTuple):
    """Step-size adjustment bounds for adaptive integration.

    Step bounds and error tolerances belong to the
    :class:`~attsim.integrators.step_control.StepSizeController`; this
    configuration only shapes how fast the step may shrink or grow between
    two attempts.

    Attributes:
        safety_factor: Multiplicative safety factor applied to step-size
            predictions. Values < 1.0 produce conservative step sizes.
        min_scale_factor: Minimum allowed ratio ``dt_next / dt_used``.
            Prevents excessively aggressive step-size reduction.
        max_scale_factor: Maximum allowed ratio ``dt_next / dt_used``.
            Prevents excessively aggressive step-size growth.
    """

    safety_factor: float = 0.9
    min_scale_factor: float = 0.2
    max_scale_factor: float = 10.0
