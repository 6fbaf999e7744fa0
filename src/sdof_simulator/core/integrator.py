"""Newmark-β implicit time integration for SDOF structural dynamics.

This module holds the dt-dependent Newmark coefficients and the
velocity/acceleration corrector. The nonlinear time-stepping loop that
drives it lives in :mod:`sdof_simulator.core.engine`.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NewmarkParameters:
    gamma: float
    beta: float


AVERAGE_ACCELERATION = NewmarkParameters(gamma=0.5, beta=0.25)
LINEAR_ACCELERATION = NewmarkParameters(gamma=0.5, beta=1.0 / 6.0)


def damping_coefficient(zeta: float, m_eff: float, stiffness: float) -> float:
    """Viscous damping ``c = 2 ζ sqrt(|m k|)``, negative when ``m k < 0``."""
    mk = m_eff * stiffness
    c = 2.0 * zeta * math.sqrt(abs(mk))
    return -c if mk < 0.0 else c


class NewmarkIntegrator:
    """Newmark-β scheme in incremental (effective stiffness) form.

    Mathematical Formulation
    ------------------------
    The scheme integrates

        m * a + c * v + f_s(u) = p(t)

    with the displacement/velocity assumptions

        u_{n+1} = u_n + h*v_n + h²*[(1/2 - β)*a_n + β*a_{n+1}]
        v_{n+1} = v_n + h*[(1 - γ)*a_n + γ*a_{n+1}]

    Eliminating ``a_{n+1}`` and ``v_{n+1}`` gives the effective equilibrium

        f_s(u_{n+1}) + a1*u_{n+1} = p_{n+1} + a1*u_n + a2*v_n + a3*a_n

    where

        a1 = m/(β h²) + c γ/(β h)
        a2 = m/(β h) - c (1 - γ/β)
        a3 = m (1/(2β) - 1) - c h (1 - γ/(2β))

    Attributes
    ----------
    gamma, beta : float
        Newmark parameters.
    dt : float
        Time step size.
    n_iter : int
        Newton-Raphson iterations performed with this integrator.

    Notes
    -----
    - ``γ = 1/2, β = 1/4`` (average acceleration) is unconditionally stable.
    - ``γ = 1/2, β = 1/6`` (linear acceleration) is stable for
      ``h/T_n <= 0.551``.
    """

    def __init__(self, params: NewmarkParameters, dt: float):
        if dt <= 0.0:
            raise ValueError("dt must be greater than 0")
        if params.beta <= 0.0:
            raise ValueError("Newmark beta must be greater than 0")

        self.gamma = float(params.gamma)
        self.beta = float(params.beta)
        self.dt = float(dt)

        if not self.is_unconditionally_stable:
            logger.warning(
                "Newmark parameters gamma=%.4g, beta=%.4g are only conditionally "
                "stable (dt/T_n <= %.4g).",
                self.gamma,
                self.beta,
                self.critical_step_ratio,
            )

        inv_beta = 1.0 / self.beta
        self.inv_beta_dt = inv_beta / self.dt
        self.inv_beta_dt2 = self.inv_beta_dt / self.dt
        gamma_over_beta = self.gamma * inv_beta
        self.gamma_over_beta_dt = gamma_over_beta / self.dt
        self.one_minus_gamma_over_beta = 1.0 - gamma_over_beta
        self.dt_one_minus_gamma_over_2beta = self.dt * (1.0 - 0.5 * gamma_over_beta)
        self.inv_2beta_minus_one = 0.5 * inv_beta - 1.0

        self.n_iter: int = 0

    @property
    def is_unconditionally_stable(self) -> bool:
        return 2.0 * self.beta >= self.gamma >= 0.5

    @property
    def critical_step_ratio(self) -> float:
        """Largest stable ``dt / T_n`` (``inf`` when unconditionally stable)."""
        if self.is_unconditionally_stable:
            return math.inf
        return 1.0 / (math.pi * math.sqrt(2.0)) / math.sqrt(self.gamma - 2.0 * self.beta)

    def coefficients(self, m_eff: float, c: float) -> Tuple[float, float, float]:
        """Return ``(a1, a2, a3)`` for effective mass ``m_eff`` and damping ``c``."""
        a1 = m_eff * self.inv_beta_dt2 + c * self.gamma_over_beta_dt
        a2 = m_eff * self.inv_beta_dt - c * self.one_minus_gamma_over_beta
        a3 = m_eff * self.inv_2beta_minus_one - c * self.dt_one_minus_gamma_over_2beta
        return a1, a2, a3

    def correct(self, u_new: float, u: float, v: float, a: float) -> Tuple[float, float]:
        """Velocity and acceleration at ``n+1`` from the converged displacement."""
        du = u_new - u
        v_new = (
            self.gamma_over_beta_dt * du
            + self.one_minus_gamma_over_beta * v
            + self.dt_one_minus_gamma_over_2beta * a
        )
        a_new = self.inv_beta_dt2 * du - self.inv_beta_dt * v - self.inv_2beta_minus_one * a
        return v_new, a_new

    def get_stability_info(self) -> dict:
        return {
            "gamma": self.gamma,
            "beta": self.beta,
            "dt": self.dt,
            "is_unconditionally_stable": self.is_unconditionally_stable,
            "critical_step_ratio": self.critical_step_ratio,
            # γ > 1/2 introduces numerical damping
            "numerical_damping": self.gamma > 0.5,
            "order": 2 if self.gamma == 0.5 else 1,
        }
