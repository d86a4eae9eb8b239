"""Exceptions raised by the integration and propagation engine.

All exceptions derive from :class:`IntegrationError` so callers can catch
every engine failure with a single ``except`` clause, while still
matching the built-in category (``ValueError`` for invalid inputs,
``RuntimeError`` for failed propagation steps).

Messages are built from the :class:`LocalizedFormats` templates so the
same condition always produces the same text.
"""

from __future__ import annotations

import enum


class LocalizedFormats(enum.Enum):
    """Message templates for engine failures."""

    DIMENSIONS_MISMATCH = "{name} dimension mismatch: {actual} != {expected}"
    MINIMAL_STEPSIZE_REACHED = (
        "minimal step size ({min_step:.2e}) reached, integration needs {step:.2e}"
    )
    NON_FINITE_ERROR = "non-finite error estimate at t={t} with step {step}"
    INVALID_STATE_BLOCK = (
        "state block {name} spans [{start}, {stop}) outside array of length {length}"
    )
    PROPAGATION_STEP_FAILED = "propagation failed - step {start} ---> {stop}: {reason}"

    def format(self, **kwargs) -> str:
        """Render the template with the given fields.

        Args:
            **kwargs: Values for the template placeholders.

        Returns:
            str: The formatted message.
        """
        return self.value.format(**kwargs)


class IntegrationError(Exception):
    """Base class for all integration and propagation failures."""


class DimensionMismatchError(IntegrationError, ValueError):
    """Raised when an array length disagrees with the expected dimension.

    Args:
        name: Name of the offending quantity.
        actual: Length that was supplied.
        expected: Length that was required.
    """

    def __init__(self, name: str, actual: int, expected: int) -> None:
        self.name = name
        self.actual = actual
        self.expected = expected
        super().__init__(
            LocalizedFormats.DIMENSIONS_MISMATCH.format(
                name=name, actual=actual, expected=expected
            )
        )


class MinimalStepSizeError(IntegrationError, ValueError):
    """Raised when a step is smaller than the minimal step and may not be raised.

    Args:
        step: Magnitude of the offending step.
        min_step: Configured minimal step.
    """

    def __init__(self, step: float, min_step: float) -> None:
        self.step = step
        self.min_step = min_step
        super().__init__(
            LocalizedFormats.MINIMAL_STEPSIZE_REACHED.format(step=step, min_step=min_step)
        )


class PropagationError(IntegrationError, RuntimeError):
    """Raised when a propagation step fails and the run has to be aborted."""
