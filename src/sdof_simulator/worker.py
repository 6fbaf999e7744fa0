"""Request/response boundary around the solver.

One call takes one input payload and produces exactly one result: either a
:class:`SolverSuccess` with the full time histories or a
:class:`SolverFailure` carrying the error message. Solver and validation
errors never escape :func:`run_solver`; a failed run is not retried.

For background execution hand :func:`run_solver` to any
``concurrent.futures`` executor via :func:`submit_solver`. Each run builds its
own curves, so concurrent runs share no mutable state.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import Executor, Future
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import numpy as np

from .config.loader import ConfigError, build_request
from .config.models import SolverRequest
from .core.backbone import BackboneCurve
from .core.engine import (
    GravitySettings,
    InitialConditions,
    NewmarkResponse,
    SolverSettings,
    newmark_solver,
)
from .core.errors import NonConvergenceError, SolverError
from .core.force import ForceCurve
from .core.integrator import NewmarkParameters

logger = logging.getLogger(__name__)

RequestLike = Union[SolverRequest, Mapping[str, Any]]


@dataclass
class SolverSuccess:
    response: NewmarkResponse
    runtime_ms: float
    rotation_deg: Optional[np.ndarray] = None
    success: bool = field(default=True, init=False)

    @property
    def bounds(self) -> Dict[str, Dict[str, float]]:
        return self.response.summary()

    def to_dict(self) -> Dict[str, Any]:
        r = self.response
        out: Dict[str, Any] = {
            "time": r.time.tolist(),
            "displacement": r.displacement.tolist(),
            "velocity": r.velocity.tolist(),
            "acceleration": r.acceleration.tolist(),
            "stiffness": r.stiffness.tolist(),
            "restoringForce": r.restoring_force.tolist(),
            "appliedForce": r.applied_force.tolist(),
            "runtimeMs": self.runtime_ms,
        }
        if self.rotation_deg is not None:
            out["rotation"] = self.rotation_deg.tolist()
        return out


@dataclass
class SolverFailure:
    error_message: str
    error_type: str = "SolverError"
    diagnostics: Dict[str, Any] = field(default_factory=dict)
    success: bool = field(default=False, init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"errorMessage": self.error_message}


SolverResult = Union[SolverSuccess, SolverFailure]


def build_problem(request: SolverRequest) -> Tuple[BackboneCurve, ForceCurve]:
    """Construct fresh backbone and force curves for one run."""
    if request.inbound is not None:
        backbone = BackboneCurve(
            [p.model_dump() for p in request.inbound],
            [p.model_dump() for p in request.rebound or []],
        )
    else:
        backbone = BackboneCurve.from_arrays(request.resistance, request.displacement)
    force = ForceCurve(request.time, request.force)
    return backbone, force


def run_simulation(params: RequestLike) -> NewmarkResponse:
    """Validate ``params`` and run the solver; errors propagate."""
    request = build_request(params)
    backbone, force = build_problem(request)
    s = request.solver_settings
    return newmark_solver(
        request.mass,
        backbone,
        request.damping_ratio,
        force,
        InitialConditions(request.initial_conditions.u0, request.initial_conditions.v0),
        SolverSettings(
            t=s.t,
            dt=s.dt,
            auto=s.auto,
            auto_step_fraction=s.auto_step_fraction,
            tolerance=s.tolerance,
            max_iterations=s.max_iterations,
            fail_policy=s.fail_policy,
        ),
        NewmarkParameters(gamma=request.newmark.gamma, beta=request.newmark.beta),
        klm=request.klm,
        gravity=GravitySettings(
            enabled=request.gravity_effect,
            added_weight=request.added_weight,
            gravity_constant=request.gravity_constant,
        ),
    )


def run_solver(params: RequestLike) -> SolverResult:
    """Run one request and return a success or failure record.

    Never raises for bad input or solver failure; every error is converted
    into a :class:`SolverFailure`.
    """
    start = time.perf_counter()
    try:
        request = build_request(params)
        response = run_simulation(request)
    except NonConvergenceError as exc:
        logger.error("Non-convergence at step %d, t=%.4f: %s", exc.step_idx, exc.t, exc)
        return SolverFailure(str(exc), type(exc).__name__, exc.to_diagnostics_dict())
    except (SolverError, ConfigError) as exc:
        logger.error("Solver run rejected: %s", exc)
        return SolverFailure(str(exc), type(exc).__name__)
    except Exception as exc:
        logger.exception("Unexpected solver failure.")
        return SolverFailure(str(exc) or type(exc).__name__, type(exc).__name__)

    runtime_ms = (time.perf_counter() - start) * 1e3
    rotation = response.rotation_deg(request.length) if request.length is not None else None
    logger.info("Solver run finished: %d steps in %.3f ms", response.steps, runtime_ms)
    return SolverSuccess(response=response, runtime_ms=runtime_ms, rotation_deg=rotation)


def submit_solver(params: RequestLike, executor: Executor) -> "Future[SolverResult]":
    """Schedule :func:`run_solver` on ``executor``; cancel via the future."""
    return executor.submit(run_solver, params)
