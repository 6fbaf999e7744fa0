"""Configuration loading and validation utilities."""

from .defaults import get_default_solver_params
from .loader import ConfigError, apply_solver_overrides, build_request, load_solver_config, normalize_config_dict
from .models import SolverRequest

__all__ = [
    "ConfigError",
    "SolverRequest",
    "apply_solver_overrides",
    "build_request",
    "get_default_solver_params",
    "load_solver_config",
    "normalize_config_dict",
]
