"""Butcher tableaux of the embedded Runge-Kutta methods.

A :class:`ButcherTableau` is the pluggable part of the adaptive
integrator: it carries the method order used by the initial-step
heuristic, the order of the embedded error estimator used to predict the
next step, and the coefficients of both solutions.  The integrator itself
is the same for every method.

Available methods:

- :data:`DP54` -- Dormand-Prince 5(4), 7 stages.
  Nodes (c): [0, 1/5, 3/10, 4/5, 8/9, 1, 1]
- :data:`RKF45` -- Runge-Kutta-Fehlberg 4(5), 6 stages.
  Nodes (c): [0, 1/4, 3/8, 12/13, 1, 1/2]
"""

from __future__ import annotations

from typing import NamedTuple


class ButcherTableau(NamedTuple):
    """Coefficients of an explicit embedded Runge-Kutta method.

    Attributes:
        name: Short method name used for lookup (e.g. ``"dp54"``).
        order: Order of the propagated solution.
        error_order: Order of the embedded error estimator.
        c: Nodes, one per stage (``c[0]`` is always 0).
        a: Lower-triangular coupling rows; ``a[i]`` feeds stage ``i + 1``.
        b_high: Weights of the propagated (higher-order) solution.
        b_low: Weights of the error-estimation (lower-order) solution.
    """

    name: str
    order: int
    error_order: int
    c: tuple[float, ...]
    a: tuple[tuple[float, ...], ...]
    b_high: tuple[float, ...]
    b_low: tuple[float, ...]

    @property
    def stages(self) -> int:
        """Number of derivative evaluations per attempt."""
        return len(self.c)


DP54 = ButcherTableau(
    name="dp54",
    order=5,
    error_order=4,
    c=(0.0, 1.0 / 5.0, 3.0 / 10.0, 4.0 / 5.0, 8.0 / 9.0, 1.0, 1.0),
    a=(
        (1.0 / 5.0,),
        (3.0 / 40.0, 9.0 / 40.0),
        (44.0 / 45.0, -56.0 / 15.0, 32.0 / 9.0),
        (19372.0 / 6561.0, -25360.0 / 2187.0, 64448.0 / 6561.0, -212.0 / 729.0),
        (9017.0 / 3168.0, -355.0 / 33.0, 46732.0 / 5247.0, 49.0 / 176.0, -5103.0 / 18656.0),
        (35.0 / 384.0, 0.0, 500.0 / 1113.0, 125.0 / 192.0, -2187.0 / 6784.0, 11.0 / 84.0),
    ),
    # Last stage is evaluated at the propagated solution (FSAL)
    b_high=(35.0 / 384.0, 0.0, 500.0 / 1113.0, 125.0 / 192.0, -2187.0 / 6784.0, 11.0 / 84.0, 0.0),
    b_low=(
        5179.0 / 57600.0,
        0.0,
        7571.0 / 16695.0,
        393.0 / 640.0,
        -92097.0 / 339200.0,
        187.0 / 2100.0,
        1.0 / 40.0,
    ),
)

RKF45 = ButcherTableau(
    name="rkf45",
    order=5,
    error_order=4,
    c=(0.0, 1.0 / 4.0, 3.0 / 8.0, 12.0 / 13.0, 1.0, 1.0 / 2.0),
    a=(
        (1.0 / 4.0,),
        (3.0 / 32.0, 9.0 / 32.0),
        (1932.0 / 2197.0, -7200.0 / 2197.0, 7296.0 / 2197.0),
        (439.0 / 216.0, -8.0, 3680.0 / 513.0, -845.0 / 4104.0),
        (-8.0 / 27.0, 2.0, -3544.0 / 2565.0, 1859.0 / 4104.0, -11.0 / 40.0),
    ),
    b_high=(16.0 / 135.0, 0.0, 6656.0 / 12825.0, 28561.0 / 56430.0, -9.0 / 50.0, 2.0 / 55.0),
    b_low=(25.0 / 216.0, 0.0, 1408.0 / 2565.0, 2197.0 / 4104.0, -1.0 / 5.0, 0.0),
)

_TABLEAUX = {t.name: t for t in (DP54, RKF45)}


def get_tableau(name: str) -> ButcherTableau:
    """Look up an embedded method by name.

    Args:
        name: Method name, ``"dp54"`` or ``"rkf45"`` (case-insensitive).

    Returns:
        ButcherTableau: The matching tableau.

    Raises:
        ValueError: If no method has this name.
    """
    try:
        return _TABLEAUX[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown integration method '{name}'. Must be one of: {', '.join(_TABLEAUX)}"
        ) from None
