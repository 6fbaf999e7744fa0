from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
import sys

sys.path.insert(0, "src")

import numpy as np
import pytest

from sdof_simulator.config.defaults import get_default_solver_params
from sdof_simulator.worker import SolverFailure, SolverSuccess, build_problem, run_solver, submit_solver
from sdof_simulator.config.loader import build_request

RESULT_KEYS = {
    "time",
    "displacement",
    "velocity",
    "acceleration",
    "stiffness",
    "restoringForce",
    "appliedForce",
}


def test_success_record() -> None:
    result = run_solver(get_default_solver_params())

    assert isinstance(result, SolverSuccess)
    assert result.success is True
    assert result.runtime_ms >= 0.0
    assert result.rotation_deg is None

    out = result.to_dict()
    assert RESULT_KEYS <= set(out)
    assert "rotation" not in out
    lengths = {len(out[key]) for key in RESULT_KEYS}
    assert lengths == {11}
    assert out["displacement"][7] == pytest.approx(2.08824, abs=1e-3)

    bounds = result.bounds
    assert bounds["displacement"]["max"] == pytest.approx(2.08824, abs=1e-3)


def test_rotation_reported_when_length_given() -> None:
    params = get_default_solver_params()
    params["length"] = 120.0
    result = run_solver(params)

    assert isinstance(result, SolverSuccess)
    expected = np.degrees(np.arctan(result.response.displacement / 120.0))
    np.testing.assert_allclose(result.rotation_deg, expected)
    assert len(result.to_dict()["rotation"]) == 11


def test_validation_failure_record() -> None:
    params = get_default_solver_params()
    params["mass"] = -1.0
    result = run_solver(params)

    assert isinstance(result, SolverFailure)
    assert result.success is False
    assert result.error_type == "ConfigError"
    assert "mass" in result.error_message
    assert result.to_dict() == {"errorMessage": result.error_message}


def test_solver_error_failure_record() -> None:
    params = get_default_solver_params()
    params["gravity_effect"] = True
    result = run_solver(params)

    assert isinstance(result, SolverFailure)
    assert result.error_type == "GravityExceedsCapacityError"
    assert "Gravity force" in result.error_message


def test_nonconvergence_failure_keeps_diagnostics() -> None:
    params = get_default_solver_params()
    params["solver_settings"]["max_iterations"] = 1
    result = run_solver(params)

    assert isinstance(result, SolverFailure)
    assert result.error_type == "NonConvergenceError"
    assert result.diagnostics["step_idx"] == 4
    assert result.diagnostics["t_last"] == pytest.approx(0.4)


def test_build_problem_array_form() -> None:
    params = get_default_solver_params()
    del params["inbound"], params["rebound"]
    params["resistance"] = [-7.5, 0.0, 7.5]
    params["displacement"] = [-0.75, 0.0, 0.75]
    backbone, force = build_problem(build_request(params))

    np.testing.assert_allclose(backbone.x_values, [-0.9, -0.75, 0.0, 0.75, 0.9])
    assert force.duration == pytest.approx(1.0)


def test_runs_are_independent_in_executor() -> None:
    params = get_default_solver_params()
    with ThreadPoolExecutor(max_workers=2) as pool:
        futures = [submit_solver(params, pool) for _ in range(3)]
        results = [f.result() for f in futures]

    assert all(isinstance(r, SolverSuccess) for r in results)
    first = results[0].response.displacement
    for other in results[1:]:
        np.testing.assert_array_equal(other.response.displacement, first)
