"""
attsim is a small-satellite attitude and orbit simulator implemented in JAX.
"""

from .constants import (
    DEG2RAD,
    RAD2DEG,
    R_EARTH,
    GM_EARTH,
    DEFAULT_ALTITUDE,
    DEFAULT_MASS,
)

from .config import set_dtype, get_dtype

from .errors import (
    IntegrationError,
    DimensionMismatchError,
    MinimalStepSizeError,
    PropagationError,
)

from .integrators import (
    AdaptiveConfig,
    AdaptiveStepsizeIntegrator,
    StepSizeController,
    DP54,
    RKF45,
)

from .attitude import (
    Quaternion,
    wilcox,
    edwards,
    propagate_quaternion,
    SpacecraftInertia,
    ConstantRotationalAcceleration,
    TorqueRotationalAcceleration,
)

from .propagation import (
    Attitude,
    SpacecraftState,
    StateCell,
    PropagationConfig,
    Propagation,
    StepOutcome,
    initial_spacecraft_state,
    keplerian_dynamics,
)
