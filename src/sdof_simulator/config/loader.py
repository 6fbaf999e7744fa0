from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml
from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from .models import SolverRequest, format_validation_error


class ConfigError(ValueError):
    pass


def load_solver_config(path: Path) -> Dict[str, Any]:
    raw = _load_raw_config(path)
    return normalize_config_dict(raw, filename=path.name)


def _load_raw_config(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")
    text = path.read_text(encoding="utf-8")
    # JSON is a subset of YAML, one parser covers both.
    if path.suffix.lower() in {".yaml", ".yml", ".json"}:
        data = yaml.safe_load(text)
    else:
        raise ConfigError(f"Unsupported config extension '{path.suffix}'.")
    if not isinstance(data, dict):
        raise ConfigError(f"{path.name}: configuration must be a mapping")
    return data


def normalize_config_dict(config: Mapping[str, Any], *, filename: str) -> Dict[str, Any]:
    """Validate ``config`` and return a deep copy of it."""
    raw = deepcopy(dict(config))
    build_request(raw, filename=filename)
    return raw


def build_request(config: Mapping[str, Any] | SolverRequest, *, filename: str = "<config>") -> SolverRequest:
    if isinstance(config, SolverRequest):
        return config
    try:
        return SolverRequest.model_validate(dict(config))
    except ValidationError as exc:
        raise ConfigError(format_validation_error(exc, filename=filename)) from exc


def apply_solver_overrides(config: Mapping[str, Any], **overrides: Any) -> Dict[str, Any]:
    """Return a copy of ``config`` with non-``None`` solver settings replaced."""
    data = deepcopy(dict(config))
    settings = dict(data.get("solver_settings") or data.get("solverSettings") or {})
    data.pop("solverSettings", None)
    for key, value in overrides.items():
        if value is not None:
            alias = to_camel(key)
            if alias != key:
                settings.pop(alias, None)
            settings[key] = value
    data["solver_settings"] = settings
    return data
