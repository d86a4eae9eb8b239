"""Adaptive-stepsize numerical integration.

Provides one adaptive integrator parameterized by an embedded
Runge-Kutta method, the step-size controller it relies on, and the
shared error-control helpers.

Available methods:

- :data:`DP54` -- Dormand-Prince 5(4)
- :data:`RKF45` -- Runge-Kutta-Fehlberg 4(5)

Typical use::

    integrator = AdaptiveStepsizeIntegrator(min_step, max_step, abs_tol, rel_tol)
    result = integrator.integrate(dynamics, t0, y0, t1)

where ``dynamics(t, x) -> dx`` defines the ODE right-hand side, and the
result is an :class:`IntegrationResult` named tuple.
"""

from attsim.integrators._adaptive import compute_error_norm, compute_next_step_size
from attsim.integrators._types import AdaptiveConfig, IntegrationResult, StepResult
from attsim.integrators.adaptive_stepsize import AdaptiveStepsizeIntegrator
from attsim.integrators.embedded import embedded_rk_step
from attsim.integrators.step_control import StepSizeController
from attsim.integrators.tableaux import DP54, RKF45, ButcherTableau, get_tableau

__all__ = [
    "AdaptiveConfig",
    "AdaptiveStepsizeIntegrator",
    "ButcherTableau",
    "DP54",
    "IntegrationResult",
    "RKF45",
    "StepResult",
    "StepSizeController",
    "compute_error_norm",
    "compute_next_step_size",
    "embedded_rk_step",
    "get_tableau",
]
