"""Numerical core: interpolation, force and backbone curves, Newmark solver."""

from .backbone import BackboneCurve, BackbonePoint, BackboneState
from .engine import GravitySettings, InitialConditions, NewmarkResponse, SolverSettings, newmark_solver
from .errors import (
    GravityExceedsCapacityError,
    InvalidArgumentError,
    NonConvergenceError,
    NonPositiveEffectiveMassError,
    RegionNotFoundError,
    SolverError,
)
from .force import ForceCurve
from .integrator import AVERAGE_ACCELERATION, LINEAR_ACCELERATION, NewmarkParameters

__all__ = [
    "AVERAGE_ACCELERATION",
    "LINEAR_ACCELERATION",
    "BackboneCurve",
    "BackbonePoint",
    "BackboneState",
    "ForceCurve",
    "GravityExceedsCapacityError",
    "GravitySettings",
    "InitialConditions",
    "InvalidArgumentError",
    "NewmarkParameters",
    "NewmarkResponse",
    "NonConvergenceError",
    "NonPositiveEffectiveMassError",
    "RegionNotFoundError",
    "SolverError",
    "SolverSettings",
    "newmark_solver",
]
