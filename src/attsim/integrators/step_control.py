"""Step-size bounds, error tolerances and initial-step estimation.

The :class:`StepSizeController` owns everything an adaptive integrator
needs to know about acceptable step sizes:

- minimal and maximal step magnitudes (the sign of a step only encodes
  the integration direction),
- absolute and relative error tolerances, either two scalars or two
  per-component vectors covering the primary state,
- an optional user-supplied initial step, with the ``-1.0`` sentinel
  meaning "estimate it".

Two behaviours are deliberately lenient and must stay that way: an
initial step outside ``[min_step, max_step]`` is dropped in favour of the
estimate, and :meth:`StepSizeController.filter_step` silently raises a
too-small step to ``min_step`` when asked to accept small steps.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from attsim.config import get_dtype
from attsim.errors import DimensionMismatchError, MinimalStepSizeError

_AUTO_INITIAL_STEP = -1.0


class StepSizeController:
    """Adaptive step-size bounds and tolerances.

    Args:
        min_step: Minimal step (sign is irrelevant). The last step of an
            integration can be smaller than this.
        max_step: Maximal step (sign is irrelevant).
        abs_tol: Allowed absolute error, scalar or one value per primary
            state component.
        rel_tol: Allowed relative error, scalar or one value per primary
            state component.
        logger: Logger receiving the controller's diagnostics. Defaults to
            the module logger.

    Examples:
        ```python
        from attsim.integrators import StepSizeController
        ctrl = StepSizeController(1e-3, 100.0, 1e-6, 1e-9)
        ctrl.filter_step(500.0, True, False)  # 100.0
        ```
    """

    def __init__(
        self,
        min_step: float,
        max_step: float,
        abs_tol: ArrayLike,
        rel_tol: ArrayLike,
        logger: logging.Logger | None = None,
    ) -> None:
        self._logger = logger if logger is not None else logging.getLogger(__name__)
        self.set_step_size_control(min_step, max_step, abs_tol, rel_tol)

    # Properties

    @property
    def min_step(self) -> float:
        """Minimal step magnitude."""
        return self._min_step

    @property
    def max_step(self) -> float:
        """Maximal step magnitude."""
        return self._max_step

    @property
    def initial_step(self) -> float:
        """User initial step, or ``-1.0`` when the step is estimated."""
        return self._initial_step

    @property
    def scalar_absolute_tolerance(self) -> float:
        """Scalar absolute tolerance (0.0 in vector mode)."""
        return self._scal_abs_tol

    @property
    def scalar_relative_tolerance(self) -> float:
        """Scalar relative tolerance (0.0 in vector mode)."""
        return self._scal_rel_tol

    @property
    def vector_absolute_tolerance(self) -> Array | None:
        """Per-component absolute tolerance, ``None`` in scalar mode."""
        return self._vec_abs_tol

    @property
    def vector_relative_tolerance(self) -> Array | None:
        """Per-component relative tolerance, ``None`` in scalar mode."""
        return self._vec_rel_tol

    @property
    def tolerances(self) -> tuple[ArrayLike, ArrayLike]:
        """Active ``(abs_tol, rel_tol)`` pair, scalars or vectors."""
        if self._vec_abs_tol is None:
            return self._scal_abs_tol, self._scal_rel_tol
        return self._vec_abs_tol, self._vec_rel_tol

    # Control setters

    def set_step_size_control(
        self,
        min_step: float,
        max_step: float,
        abs_tol: ArrayLike,
        rel_tol: ArrayLike,
    ) -> None:
        """Set the step bounds and tolerances.

        A side effect is to reset the initial step so that it is estimated
        again unless :meth:`set_initial_step_size` is called afterwards.
        Passing scalar tolerances clears the vector ones and vice versa.

        Args:
            min_step: Minimal step (stored as its absolute value).
            max_step: Maximal step (stored as its absolute value).
            abs_tol: Absolute tolerance, scalar or sequence.
            rel_tol: Relative tolerance, scalar or sequence of the same
                length as ``abs_tol``.

        Raises:
            ValueError: If one tolerance is a scalar and the other a sequence.
            DimensionMismatchError: If the two tolerance sequences differ
                in length.
        """
        abs_arr = jnp.asarray(abs_tol, dtype=get_dtype())
        rel_arr = jnp.asarray(rel_tol, dtype=get_dtype())
        scalar_abs = abs_arr.ndim == 0
        scalar_rel = rel_arr.ndim == 0
        if scalar_abs != scalar_rel:
            raise ValueError(
                "Tolerances must be both scalars or both sequences, "
                f"got abs_tol with ndim {abs_arr.ndim} and rel_tol with ndim {rel_arr.ndim}"
            )

        self._min_step = abs(float(min_step))
        self._max_step = abs(float(max_step))
        self._initial_step = _AUTO_INITIAL_STEP

        if scalar_abs:
            self._scal_abs_tol = float(abs_tol)
            self._scal_rel_tol = float(rel_tol)
            self._vec_abs_tol = None
            self._vec_rel_tol = None
        else:
            if rel_arr.shape[0] != abs_arr.shape[0]:
                raise DimensionMismatchError(
                    "relative tolerance", rel_arr.shape[0], abs_arr.shape[0]
                )
            self._scal_abs_tol = 0.0
            self._scal_rel_tol = 0.0
            self._vec_abs_tol = abs_arr
            self._vec_rel_tol = rel_arr

    def set_initial_step_size(self, initial_step: float) -> None:
        """Set the initial step size instead of estimating it.

        The value must be positive even for backward integration.  A value
        outside ``[min_step, max_step]`` is ignored and the initial step is
        estimated instead; no error is raised.

        Args:
            initial_step: Initial step magnitude.
        """
        if initial_step < self._min_step or initial_step > self._max_step:
            self._logger.warning(
                "Initial step %g outside [%g, %g], falling back to estimated step",
                initial_step,
                self._min_step,
                self._max_step,
            )
            self._initial_step = _AUTO_INITIAL_STEP
        else:
            self._initial_step = float(initial_step)

    # Checks

    def validate(self, primary_dimension: int) -> None:
        """Check the vector tolerances against the primary state dimension.

        Args:
            primary_dimension: Number of primary state components.

        Raises:
            DimensionMismatchError: If a vector tolerance does not have
                exactly ``primary_dimension`` components.
        """
        if self._vec_abs_tol is not None and self._vec_abs_tol.shape[0] != primary_dimension:
            raise DimensionMismatchError(
                "absolute tolerance", self._vec_abs_tol.shape[0], primary_dimension
            )
        if self._vec_rel_tol is not None and self._vec_rel_tol.shape[0] != primary_dimension:
            raise DimensionMismatchError(
                "relative tolerance", self._vec_rel_tol.shape[0], primary_dimension
            )

    # Step computation

    def compute_scale(self, state: ArrayLike, primary_dimension: int) -> Array:
        """Compute the tolerance scale of the primary state components.

        ``scale_i = abs_tol_i + rel_tol_i * |y_i|`` for the first
        ``primary_dimension`` components.

        Args:
            state: Full state vector.
            primary_dimension: Number of primary state components.

        Returns:
            jax.Array: Scale vector of shape ``(primary_dimension,)``.
        """
        y = jnp.asarray(state, dtype=get_dtype())[:primary_dimension]
        abs_tol, rel_tol = self.tolerances
        return abs_tol + rel_tol * jnp.abs(y)

    def initialize_step(
        self,
        forward: bool,
        order: int,
        scale: ArrayLike,
        t0: float,
        y0: ArrayLike,
        derivatives: Callable[[ArrayLike, ArrayLike], Array],
        y_dot0: ArrayLike | None = None,
    ) -> float:
        """Compute the first integration step.

        Returns the user initial step (signed by direction) when one is
        set.  Otherwise estimates a step such that
        ``h^order * max(|y'/scale|, |y''/scale|) = 0.01``, using one Euler
        step to approximate the second derivative, and clamps it into
        ``[min_step, max_step]``.

        Args:
            forward: ``True`` for forward integration.
            order: Order of the integration method.
            scale: Scaling vector of the state. It can be shorter than the
                state; only the leading components enter the norms.
            t0: Integration start time.
            y0: State at ``t0``.
            derivatives: ODE right-hand side ``f(t, y) -> dy/dt``.
            y_dot0: Derivative at ``(t0, y0)``. Computed when omitted.

        Returns:
            float: First step, negative for backward integration.
        """
        if self._initial_step > 0:
            return self._initial_step if forward else -self._initial_step

        dtype = get_dtype()
        scale = jnp.asarray(scale, dtype=dtype)
        y0 = jnp.asarray(y0, dtype=dtype)
        y_dot0 = derivatives(t0, y0) if y_dot0 is None else jnp.asarray(y_dot0, dtype=dtype)
        n = scale.shape[0]

        # Very rough first guess: h = 0.01 * ||y/scale|| / ||y'/scale||
        y_on_scale2 = float(jnp.sum((y0[:n] / scale) ** 2))
        y_dot_on_scale2 = float(jnp.sum((y_dot0[:n] / scale) ** 2))

        if y_on_scale2 < 1.0e-10 or y_dot_on_scale2 < 1.0e-10:
            h = 1.0e-6
        else:
            h = 0.01 * math.sqrt(y_on_scale2 / y_dot_on_scale2)
        if not forward:
            h = -h

        # Euler step with the rough guess to estimate the second derivative
        y1 = y0 + h * y_dot0
        y_dot1 = derivatives(t0 + h, y1)
        y_ddot_on_scale = math.sqrt(float(jnp.sum(((y_dot1[:n] - y_dot0[:n]) / scale) ** 2))) / h

        # h^order * max(||y'/tol||, ||y''/tol||) = 0.01
        max_inv2 = max(math.sqrt(y_dot_on_scale2), y_ddot_on_scale)
        if max_inv2 < 1.0e-15:
            h1 = max(1.0e-6, 0.001 * abs(h))
        else:
            h1 = (0.01 / max_inv2) ** (1.0 / order)
        h = min(100.0 * abs(h), h1)
        # Avoids cancellation when computing t1 - t0
        h = max(h, 1.0e-12 * abs(t0))
        h = min(max(h, self._min_step), self._max_step)

        return h if forward else -h

    def filter_step(self, h: float, forward: bool, accept_small: bool) -> float:
        """Filter a proposed step through the step bounds.

        Args:
            h: Signed proposed step.
            forward: ``True`` for forward integration.
            accept_small: If ``True``, a step smaller than ``min_step`` is
                silently raised to ``min_step``; otherwise it is an error.

        Returns:
            float: The bounded, signed step (``h`` itself when no bound is
                reached).

        Raises:
            MinimalStepSizeError: If ``|h| < min_step`` and
                ``accept_small`` is ``False``.
        """
        filtered = float(h)
        if abs(filtered) < self._min_step:
            if not accept_small:
                raise MinimalStepSizeError(abs(filtered), self._min_step)
            filtered = self._min_step if forward else -self._min_step

        if filtered > self._max_step:
            filtered = self._max_step
        elif filtered < -self._max_step:
            filtered = -self._max_step

        return filtered

    def __repr__(self) -> str:
        abs_tol, rel_tol = self.tolerances
        return (
            f"StepSizeController(min_step={self._min_step}, max_step={self._max_step}, "
            f"abs_tol={abs_tol}, rel_tol={rel_tol}, initial_step={self._initial_step})"
        )
