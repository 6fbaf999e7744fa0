"""Engine for the SDOF Newmark simulator.

This module is UI-agnostic: it contains the Newmark-β / Newton-Raphson
time-stepping loop for a single-degree-of-freedom system whose spring is a
hysteretic :class:`~sdof_simulator.core.backbone.BackboneCurve`.

Nonlinear solver
----------------
Each step solves the effective equilibrium

    f_s(u_{n+1}) + a1*u_{n+1} = p̂_{n+1}

by Newton-Raphson with the tangent taken from the backbone region that
contains the current iterate. A velocity sign change marks a load reversal
and re-anchors the backbone (pivot hysteresis). When the converged
displacement moves into a region with a different mass-participation factor
(``klm``), the effective mass and the Newmark coefficients are rebuilt before
the next step, with the damping taken from the converged tangent stiffness.

Use from CLI, worker or tests as:

    from sdof_simulator.core.engine import newmark_solver, SolverSettings

    response = newmark_solver(mass, backbone, 0.05, force,
                              settings=SolverSettings(t=1.0, dt=0.01, auto=False))
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
from scipy.constants import g, inch

from .backbone import BackboneCurve, BackboneState
from .errors import (
    GravityExceedsCapacityError,
    InvalidArgumentError,
    NonConvergenceError,
    NonPositiveEffectiveMassError,
)
from .force import ForceCurve
from .integrator import AVERAGE_ACCELERATION, NewmarkIntegrator, NewmarkParameters, damping_coefficient

logger = logging.getLogger(__name__)

# Standard gravity in in/s² (kip-inch-second unit system).
GRAVITY_IN_PER_S2 = g / inch


# ====================================================================
# SOLVER CONSTANTS
# ====================================================================

class SolverConstants:
    """Numerical defaults for the Newmark/Newton loop."""

    MAX_ITERATIONS = 20            # Newton updates per step
    CONVERGENCE_TOLERANCE = 1e-2   # |residual| force tolerance
    AUTO_STEP_FRACTION = 1e-3      # dt = fraction * natural period
    ZERO_MASS_TOL = 1e-12          # |m_eff| below this is treated as zero
    FAIL_POLICIES = ("raise", "continue")


# ====================================================================
# CONFIGURATION & DATA CLASSES
# ====================================================================

@dataclass
class InitialConditions:
    u0: float = 0.0
    v0: float = 0.0


@dataclass
class SolverSettings:
    """Time grid and Newton controls.

    ``fail_policy='raise'`` aborts the run with :class:`NonConvergenceError`
    when a step does not converge; ``'continue'`` keeps the last iterate,
    logs a warning and flags the response.
    """
    t: float
    dt: Optional[float] = None
    auto: bool = True
    auto_step_fraction: float = SolverConstants.AUTO_STEP_FRACTION
    tolerance: float = SolverConstants.CONVERGENCE_TOLERANCE
    max_iterations: int = SolverConstants.MAX_ITERATIONS
    fail_policy: str = "raise"


@dataclass
class GravitySettings:
    enabled: bool = False
    added_weight: float = 0.0
    gravity_constant: float = GRAVITY_IN_PER_S2

    def force(self, mass: float) -> float:
        if not self.enabled:
            return 0.0
        return mass * self.gravity_constant + self.added_weight


@dataclass
class NewmarkResponse:
    """Time histories of one run; all arrays have length ``steps``."""
    time: np.ndarray
    displacement: np.ndarray
    velocity: np.ndarray
    acceleration: np.ndarray
    stiffness: np.ndarray
    restoring_force: np.ndarray
    applied_force: np.ndarray
    dt: float
    steps: int
    converged_all_steps: bool = True
    nonconverged_steps: List[int] = field(default_factory=list)
    n_iterations: int = 0
    n_reversals: int = 0
    final_state: BackboneState = field(default_factory=BackboneState)

    HISTORY_COLUMNS = {
        "time": "Time",
        "displacement": "Displacement",
        "velocity": "Velocity",
        "acceleration": "Acceleration",
        "stiffness": "Stiffness",
        "restoring_force": "Restoring_Force",
        "applied_force": "Applied_Force",
    }

    def summary(self) -> Dict[str, Dict[str, float]]:
        """Min/max of every response quantity except time."""
        out: Dict[str, Dict[str, float]] = {}
        for name in self.HISTORY_COLUMNS:
            if name == "time":
                continue
            arr = getattr(self, name)
            out[name] = {"min": float(np.min(arr)), "max": float(np.max(arr))}
        return out

    def rotation_deg(self, length: float) -> np.ndarray:
        """Support rotation ``atan(u / length)`` in degrees."""
        if length <= 0.0:
            raise InvalidArgumentError("length must be greater than 0")
        return np.degrees(np.arctan(self.displacement / length))

    def to_dataframe(self) -> pd.DataFrame:
        df = pd.DataFrame({col: getattr(self, name) for name, col in self.HISTORY_COLUMNS.items()})
        df.attrs["dt"] = self.dt
        df.attrs["steps"] = self.steps
        df.attrs["converged_all_steps"] = self.converged_all_steps
        df.attrs["nonconverged_steps"] = list(self.nonconverged_steps)
        df.attrs["n_iterations"] = self.n_iterations
        df.attrs["n_reversals"] = self.n_reversals
        return df


# ====================================================================
# SOLVER
# ====================================================================

def _resolve_time_step(mass: float, backbone: BackboneCurve, settings: SolverSettings) -> Tuple[float, int]:
    if settings.fail_policy not in SolverConstants.FAIL_POLICIES:
        raise InvalidArgumentError(
            f"fail_policy must be one of {SolverConstants.FAIL_POLICIES}, got {settings.fail_policy!r}"
        )
    if settings.max_iterations < 1:
        raise InvalidArgumentError("max_iterations must be at least 1")
    if not settings.tolerance > 0.0:
        raise InvalidArgumentError("tolerance must be greater than 0")

    if settings.auto:
        k_in = backbone.inbound_stiffness
        if mass <= 0.0 or k_in <= 0.0:
            raise InvalidArgumentError(
                "automatic time step requires positive mass and inbound stiffness"
            )
        if not settings.auto_step_fraction > 0.0:
            raise InvalidArgumentError("auto_step_fraction must be greater than 0")
        natural_period = 2.0 * math.pi * math.sqrt(mass / k_in)
        dt = settings.auto_step_fraction * natural_period
    else:
        if settings.dt is None or not settings.dt > 0.0:
            raise InvalidArgumentError("dt must be greater than 0 for fixed time step")
        dt = float(settings.dt)

    steps = int(math.floor(settings.t / dt)) + 1
    return dt, steps


def newmark_solver(
    mass: float,
    backbone: BackboneCurve,
    damping_ratio: float,
    force: ForceCurve,
    initial_conditions: Optional[InitialConditions] = None,
    settings: Optional[SolverSettings] = None,
    params: NewmarkParameters = AVERAGE_ACCELERATION,
    klm: Optional[float] = None,
    gravity: Optional[GravitySettings] = None,
) -> NewmarkResponse:
    """Integrate the nonlinear SDOF equation of motion.

    Parameters
    ----------
    mass : float
        Base mass.
    backbone : BackboneCurve
        Resistance function. The run starts from ``backbone.state`` and
        threads its own copy of the state; the curve object is not modified.
    damping_ratio : float
        Fraction of critical damping.
    force : ForceCurve
        Applied load history.
    initial_conditions : InitialConditions, optional
        ``u0`` and ``v0``; zero by default.
    settings : SolverSettings
        Total time, time step and Newton controls.
    params : NewmarkParameters
        ``γ`` and ``β``; average acceleration by default.
    klm : float, optional
        Constant mass-participation factor for the whole run. When omitted
        the region ``klm`` stored on the backbone is used and switches as the
        response moves between regions.
    gravity : GravitySettings, optional
        Constant gravity preload ``mass * g + added_weight``.

    Returns
    -------
    NewmarkResponse

    Raises
    ------
    InvalidArgumentError
        Bad time step, total time or solver controls.
    NonPositiveEffectiveMassError
        ``|klm * mass|`` is numerically zero.
    GravityExceedsCapacityError
        Gravity preload above the backbone's maximum resistance.
    NonConvergenceError
        A step failed to converge and ``fail_policy='raise'``.
    """
    if settings is None:
        raise InvalidArgumentError("solver settings are required")
    ic = initial_conditions or InitialConditions()
    gravity = gravity or GravitySettings()

    dt, steps = _resolve_time_step(mass, backbone, settings)
    integrator = NewmarkIntegrator(params, dt)

    discretized = force.discretize_curve(steps, dt)
    t = discretized.t
    p = discretized.f

    u = np.zeros(steps)
    v = np.zeros(steps)
    a = np.zeros(steps)
    fs = np.zeros(steps)
    k_t = np.zeros(steps)

    gravity_force = gravity.force(mass)
    if gravity_force > backbone.max_resistance:
        raise GravityExceedsCapacityError(gravity_force, backbone.max_resistance)

    u[0] = ic.u0
    v[0] = ic.v0
    if gravity_force != 0.0:
        if abs(backbone.inbound_stiffness) < 1e-10:
            raise InvalidArgumentError("gravity preload requires a non-zero inbound stiffness")
        u[0] += gravity_force / backbone.inbound_stiffness

    state = backbone.locate(u[0], backbone.state)
    fs[0] = backbone.resistance(u[0], state)
    k_t[0] = backbone.stiffness_in_region(state.region)

    region_klm = backbone.klm_in_region(state.region) if klm is None else float(klm)
    m_eff = region_klm * mass
    if abs(m_eff) < SolverConstants.ZERO_MASS_TOL:
        raise NonPositiveEffectiveMassError("Effective mass must be non-zero")

    k0 = k_t[0]
    c = damping_coefficient(damping_ratio, m_eff, k0)
    a[0] = (p[0] - c * v[0] - fs[0] + gravity_force) / m_eff
    a1, a2, a3 = integrator.coefficients(m_eff, c)

    logger.info(
        "Newmark run: m_eff=%.6g, k0=%.6g, c=%.6g, dt=%.6g, steps=%d, gamma=%.4g, beta=%.4g",
        m_eff, k0, c, dt, steps, integrator.gamma, integrator.beta,
    )

    tol_sq = settings.tolerance * settings.tolerance
    prev_region = state.region
    nonconverged: List[int] = []
    n_reversals = 0

    for i in range(steps - 1):
        u_next = u[i]
        fs_next = fs[i]
        kt_next = k_t[i]
        p_hat = p[i + 1] + a1 * u[i] + a2 * v[i] + a3 * a[i] + gravity_force

        iterations = 0
        while True:
            r_hat = p_hat - fs_next - a1 * u_next
            if r_hat * r_hat < tol_sq:
                break

            kt_hat = kt_next + a1
            if iterations >= settings.max_iterations or kt_hat == 0.0:
                msg = (
                    f"Newton-Raphson did not converge in {iterations} iterations "
                    f"at time {t[i + 1]:.4f} (residual {abs(r_hat):.4e})."
                )
                if settings.fail_policy == "raise":
                    raise NonConvergenceError(
                        msg,
                        step_idx=i + 1,
                        t=float(t[i + 1]),
                        residual_norm=abs(float(r_hat)),
                        iter_count=iterations,
                        dt_effective=dt,
                        displacement=float(u_next),
                        region=state.region,
                        state_snapshot={"offset": state.offset, "tangent_stiffness": float(kt_next)},
                    )
                logger.warning("%s Keeping last iterate.", msg)
                nonconverged.append(i + 1)
                break

            du = r_hat / kt_hat
            u_next += du
            state = backbone.locate(u_next, state)
            fs_next = backbone.resistance(u_next, state)
            kt_next = backbone.stiffness_in_region(state.region)
            iterations += 1
            logger.debug(
                "t=%.4f it=%d r=%.4e kT_hat=%.4g du=%.4e u=%.6g fs=%.6g region=%d",
                t[i + 1], iterations, r_hat, kt_hat, du, u_next, fs_next, state.region,
            )

        integrator.n_iter += iterations
        u[i + 1] = u_next
        fs[i + 1] = fs_next
        k_t[i + 1] = kt_next
        v[i + 1], a[i + 1] = integrator.correct(u_next, u[i], v[i], a[i])

        if i > 0 and v[i] * v[i + 1] < 0.0:
            state = backbone.shifted(u[i + 1], state)
            n_reversals += 1
            logger.debug("Load reversal at t=%.4f, u=%.6g, offset=%.6g", t[i + 1], u[i + 1], state.offset)

        if klm is None and state.region != prev_region:
            new_klm = backbone.klm_in_region(state.region)
            if new_klm != region_klm:
                region_klm = new_klm
                m_eff = region_klm * mass
                if abs(m_eff) < SolverConstants.ZERO_MASS_TOL:
                    raise NonPositiveEffectiveMassError("Effective mass must be non-zero")
                c = damping_coefficient(damping_ratio, m_eff, k_t[i + 1])
                a1, a2, a3 = integrator.coefficients(m_eff, c)
                logger.debug(
                    "Region %d -> %d at t=%.4f: klm=%.4g, m_eff=%.6g, c=%.6g",
                    prev_region, state.region, t[i + 1], region_klm, m_eff, c,
                )
        prev_region = state.region

    if nonconverged:
        logger.warning(
            "%d of %d steps did not converge (fail_policy='continue').",
            len(nonconverged), steps - 1,
        )

    return NewmarkResponse(
        time=t,
        displacement=u,
        velocity=v,
        acceleration=a,
        stiffness=k_t,
        restoring_force=fs,
        applied_force=p,
        dt=dt,
        steps=steps,
        converged_all_steps=not nonconverged,
        nonconverged_steps=nonconverged,
        n_iterations=integrator.n_iter,
        n_reversals=n_reversals,
        final_state=state,
    )


def response_diagnostics(response: NewmarkResponse) -> Dict[str, Any]:
    """Scalar run metrics for logs and CLI output."""
    u = response.displacement
    peak_idx = int(np.argmax(np.abs(u)))
    return {
        "steps": response.steps,
        "dt": response.dt,
        "t_total": float(response.time[-1]),
        "u_peak": float(u[peak_idx]),
        "t_peak": float(response.time[peak_idx]),
        "u_final": float(u[-1]),
        "fs_max": float(np.max(response.restoring_force)),
        "fs_min": float(np.min(response.restoring_force)),
        "n_iterations": response.n_iterations,
        "n_reversals": response.n_reversals,
        "converged_all_steps": response.converged_all_steps,
    }
