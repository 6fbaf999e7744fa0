"""Exception types raised by the SDOF solver core.

All solver errors derive from :class:`SolverError` (itself a ``ValueError``)
so callers at the task boundary can convert any of them into a structured
failure record with a single ``except`` clause.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class SolverError(ValueError):
    """Base class for every error raised by the solver core."""


class InvalidArgumentError(SolverError):
    """Bad construction or discretisation input (lengths, counts, dt, steps)."""


class RegionNotFoundError(SolverError):
    """A backbone region index has no segment behind it."""

    def __init__(self, region: int):
        super().__init__(f"Region {region} not found in backbone segment table")
        self.region = region


class NonPositiveEffectiveMassError(SolverError):
    """Effective mass ``klm * mass`` is (numerically) zero."""


class GravityExceedsCapacityError(SolverError):
    """Gravity preload is larger than the maximum backbone resistance."""

    def __init__(self, gravity_force: float, max_resistance: float):
        super().__init__(
            f"Gravity force {gravity_force:.4f} beyond backbone maximum "
            f"resistance {max_resistance:.4f}."
        )
        self.gravity_force = gravity_force
        self.max_resistance = max_resistance


class NonConvergenceError(SolverError):
    """Newton-Raphson equilibrium iteration failed within the iteration cap.

    Carries enough context to tell which step failed and how badly, so a
    caller can decide whether to resubmit with a smaller ``dt`` or a looser
    tolerance.
    """

    def __init__(
        self,
        message: str,
        *,
        step_idx: int,
        t: float,
        residual_norm: float,
        iter_count: int,
        dt_effective: float,
        displacement: Optional[float] = None,
        region: Optional[int] = None,
        state_snapshot: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.step_idx = step_idx
        self.t = t
        self.residual_norm = residual_norm
        self.iter_count = iter_count
        self.dt_effective = dt_effective
        self.displacement = displacement
        self.region = region
        self.state_snapshot: Dict[str, Any] = dict(state_snapshot or {})

    def to_diagnostics_dict(self) -> Dict[str, Any]:
        diag: Dict[str, Any] = {
            "error_type": type(self).__name__,
            "message": str(self),
            "step_idx": self.step_idx,
            "t_last": self.t,
            "residual_norm": self.residual_norm,
            "iter_count": self.iter_count,
            "dt_effective": self.dt_effective,
            "displacement_last": self.displacement,
            "region_last": self.region,
        }
        diag.update(self.state_snapshot)
        return diag
