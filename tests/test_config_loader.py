from __future__ import annotations

from pathlib import Path
import sys

sys.path.insert(0, "src")

import numpy as np
import pytest
import yaml

from sdof_simulator.config.defaults import get_default_solver_params
from sdof_simulator.config.loader import (
    ConfigError,
    apply_solver_overrides,
    build_request,
    load_solver_config,
    normalize_config_dict,
)
from sdof_simulator.worker import run_simulation


def test_bundled_config_matches_defaults() -> None:
    params = load_solver_config(Path("configs/chopra_example_5_5.yml"))
    request = build_request(params)
    defaults = build_request(get_default_solver_params())

    assert request.mass == pytest.approx(0.2553)
    assert request.solver_settings.auto is False
    assert request.model_dump() == defaults.model_dump()


def test_yaml_and_json_configs_load(tmp_path: Path) -> None:
    yml = tmp_path / "case.yml"
    yml.write_text(yaml.safe_dump(get_default_solver_params()), encoding="utf-8")
    json_path = tmp_path / "case.json"
    json_path.write_text(
        '{"mass": 1.0, "damping_ratio": 0.0,'
        ' "resistance": [-10.0, 0.0, 10.0], "displacement": [-1.0, 0.0, 1.0],'
        ' "time": [0.0, 1.0], "force": [0.0, 0.0],'
        ' "solver_settings": {"t": 0.5}}',
        encoding="utf-8",
    )

    assert load_solver_config(yml)["mass"] == pytest.approx(0.2553)
    assert build_request(load_solver_config(json_path)).solver_settings.auto is True


def test_missing_or_unsupported_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_solver_config(tmp_path / "nope.yml")
    bad = tmp_path / "case.toml"
    bad.write_text("mass = 1", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_solver_config(bad)


def test_invalid_mass_reports_field() -> None:
    cfg = get_default_solver_params()
    cfg["mass"] = 0.0
    try:
        normalize_config_dict(cfg, filename="bad.yml")
    except ConfigError as exc:
        assert "mass" in str(exc)
        assert "bad.yml" in str(exc)
    else:
        raise AssertionError("Expected ConfigError for non-positive mass")


@pytest.mark.parametrize(
    "patch",
    [
        {"resistance": [-1.0, 1.0], "displacement": [-1.0, 1.0]},  # both backbone forms
        {"inbound": []},
        {"force": [0.0, 1.0]},  # length mismatch with time
        {"time": [0.0, 0.2, 0.1, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0]},
        {"damping_ratio": 1.5},
        {"solver_settings": {"t": 1.0, "auto": False}},
        {"solver_settings": {"t": 1.0, "dt": 0.1, "auto": False, "fail_policy": "retry"}},
        {"unknown_key": 1},
    ],
)
def test_invalid_configs_rejected(patch) -> None:
    cfg = get_default_solver_params()
    cfg.update(patch)
    with pytest.raises(ConfigError):
        build_request(cfg)


def test_array_form_without_branches() -> None:
    cfg = get_default_solver_params()
    del cfg["inbound"], cfg["rebound"]
    cfg["resistance"] = [-7.5, -7.5, 0.0, 7.5]
    cfg["displacement"] = [-0.9, -0.75, 0.0, 0.75]
    with pytest.raises(ConfigError):
        build_request({**cfg, "displacement": [0.0, 0.75]})

    request = build_request(cfg)
    assert request.inbound is None
    assert len(request.resistance) == 4


def test_camel_case_payload_accepted() -> None:
    payload = {
        "mass": 0.2553,
        "dampingRatio": 0.05,
        "inbound": [{"displacement": 0.75, "resistance": 7.5, "klm": 1.0}],
        "rebound": [{"displacement": -0.75, "resistance": -7.5, "klm": 1.0}],
        "time": [0.0, 0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0],
        "force": [0.0, 5.0, 8.66, 10.0, 8.66, 5.0, 0.0, 0.0, 0.0, 0.0, 0.0],
        "initialConditions": {"u0": 0.0, "v0": 0.0},
        "solverSettings": {"t": 1.0, "dt": 0.1, "auto": False, "failPolicy": "raise"},
    }
    request = build_request(payload)
    assert request.damping_ratio == pytest.approx(0.05)

    camel = run_simulation(payload)
    snake = run_simulation(get_default_solver_params())
    np.testing.assert_array_equal(camel.displacement, snake.displacement)


def test_apply_solver_overrides() -> None:
    cfg = get_default_solver_params()
    out = apply_solver_overrides(cfg, t=0.5, dt=None, auto=None, fail_policy="continue")

    assert out["solver_settings"] == {"t": 0.5, "dt": 0.1, "auto": False, "fail_policy": "continue"}
    # input untouched
    assert cfg["solver_settings"]["t"] == 1.0

    camel = {**cfg, "solverSettings": {"t": 1.0, "dt": 0.1, "auto": False, "failPolicy": "raise"}}
    del camel["solver_settings"]
    merged = apply_solver_overrides(camel, fail_policy="continue")
    assert "solverSettings" not in merged
    assert build_request(merged).solver_settings.fail_policy == "continue"
