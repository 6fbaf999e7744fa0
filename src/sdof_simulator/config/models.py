from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ..core.engine import GRAVITY_IN_PER_S2, SolverConstants


class ConfigBase(BaseModel):
    # Payloads coming from a UI use camelCase keys, YAML files snake_case.
    model_config = {"extra": "forbid", "alias_generator": to_camel, "populate_by_name": True}


class BackbonePointSpec(ConfigBase):
    displacement: float
    resistance: float
    klm: float = 1.0

    @field_validator("klm")
    @classmethod
    def _klm_range(cls, value: float) -> float:
        if not 0.0 < value <= 1.0:
            raise ValueError("klm must be in (0, 1]")
        return value


class InitialConditionsSpec(ConfigBase):
    u0: float = 0.0
    v0: float = 0.0


class SolverSettingsSpec(ConfigBase):
    t: float
    dt: Optional[float] = None
    auto: bool = True
    auto_step_fraction: float = SolverConstants.AUTO_STEP_FRACTION
    tolerance: float = SolverConstants.CONVERGENCE_TOLERANCE
    max_iterations: int = SolverConstants.MAX_ITERATIONS
    fail_policy: Literal["raise", "continue"] = "raise"

    @field_validator("t")
    @classmethod
    def _t_positive(cls, value: float) -> float:
        if value <= 0.0:
            raise ValueError("t must be > 0")
        return value

    @field_validator("auto_step_fraction")
    @classmethod
    def _fraction_range(cls, value: float) -> float:
        if not 0.0 < value <= 1.0:
            raise ValueError("auto_step_fraction must be in (0, 1]")
        return value

    @field_validator("tolerance")
    @classmethod
    def _tol_positive(cls, value: float) -> float:
        if value <= 0.0:
            raise ValueError("tolerance must be > 0")
        return value

    @field_validator("max_iterations")
    @classmethod
    def _iter_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("max_iterations must be >= 1")
        return value

    @model_validator(mode="after")
    def _fixed_step_needs_dt(self) -> "SolverSettingsSpec":
        if not self.auto and (self.dt is None or self.dt <= 0.0):
            raise ValueError("dt must be > 0 when auto is false")
        return self


class NewmarkSpec(ConfigBase):
    gamma: float = 0.5
    beta: float = 0.25

    @field_validator("beta")
    @classmethod
    def _beta_positive(cls, value: float) -> float:
        if value <= 0.0:
            raise ValueError("beta must be > 0")
        return value


class SolverRequest(ConfigBase):
    """Input payload of one solver run.

    The backbone is given either as ``inbound``/``rebound`` point lists
    (asymmetric form, per-point ``klm``) or as parallel
    ``resistance``/``displacement`` arrays through the origin.
    """

    mass: float
    damping_ratio: float
    klm: Optional[float] = None

    inbound: Optional[List[BackbonePointSpec]] = None
    rebound: Optional[List[BackbonePointSpec]] = None
    resistance: Optional[List[float]] = None
    displacement: Optional[List[float]] = None

    time: List[float]
    force: List[float]

    initial_conditions: InitialConditionsSpec = Field(default_factory=InitialConditionsSpec)
    solver_settings: SolverSettingsSpec
    newmark: NewmarkSpec = Field(default_factory=NewmarkSpec)

    gravity_effect: bool = False
    added_weight: float = 0.0
    gravity_constant: float = GRAVITY_IN_PER_S2

    # Optional member length for the support-rotation history.
    length: Optional[float] = None

    @field_validator("mass")
    @classmethod
    def _mass_positive(cls, value: float) -> float:
        if value <= 0.0:
            raise ValueError("mass must be > 0")
        return value

    @field_validator("damping_ratio")
    @classmethod
    def _damping_range(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError("damping_ratio must be in [0, 1]")
        return value

    @field_validator("klm")
    @classmethod
    def _klm_range(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and not 0.0 < value <= 1.0:
            raise ValueError("klm must be in (0, 1]")
        return value

    @field_validator("length")
    @classmethod
    def _length_positive(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and value <= 0.0:
            raise ValueError("length must be > 0")
        return value

    @model_validator(mode="after")
    def _validate_curves(self) -> "SolverRequest":
        branch_form = self.inbound is not None or self.rebound is not None
        array_form = self.resistance is not None or self.displacement is not None
        if branch_form and array_form:
            raise ValueError("give either inbound/rebound or resistance/displacement, not both")
        if branch_form:
            if not self.inbound or not self.rebound:
                raise ValueError("inbound and rebound must both be non-empty")
        elif array_form:
            if self.resistance is None or self.displacement is None:
                raise ValueError("resistance and displacement must be given together")
            if len(self.resistance) != len(self.displacement):
                raise ValueError("displacement and resistance arrays must be of the same length")
            if len(self.displacement) < 2:
                raise ValueError("backbone arrays must contain at least two points")
        else:
            raise ValueError("a backbone definition is required")

        if len(self.time) != len(self.force):
            raise ValueError("force and time arrays must be of the same length")
        if len(self.time) < 2:
            raise ValueError("force history must contain at least two samples")
        if any(t1 <= t0 for t0, t1 in zip(self.time, self.time[1:])):
            raise ValueError("time values must be strictly increasing")

        if self.gravity_effect and (self.added_weight < 0.0 or self.gravity_constant <= 0.0):
            raise ValueError(
                "added_weight must be >= 0 and gravity_constant > 0 when gravity_effect is enabled"
            )
        return self


def format_validation_error(exc: ValidationError, *, filename: str) -> str:
    parts = []
    for error in exc.errors():
        loc = ".".join(str(item) for item in error.get("loc", []))
        msg = error.get("msg", "invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    details = "; ".join(parts) if parts else str(exc)
    return f"{filename}: invalid configuration: {details}"
