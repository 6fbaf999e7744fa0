from __future__ import annotations

from typing import Any, Dict


def get_default_solver_params() -> Dict[str, Any]:
    """
    Elastoplastic SDOF under a half-sine pulse (Chopra, *Dynamics of
    Structures*, Example 5.5), kip-inch-second units.

    Returned as a plain dict so it can be updated from YAML/JSON configs
    and then validated into a SolverRequest.
    """
    return {
        # ------------------------------------------------------------------
        # System
        # ------------------------------------------------------------------
        "mass": 0.2553,           # [kip-s²/in]
        "damping_ratio": 0.05,    # 5 % critical

        # ------------------------------------------------------------------
        # Backbone: k = 10 kip/in, yield at 7.5 kip / 0.75 in, both sides
        # ------------------------------------------------------------------
        "inbound": [{"displacement": 0.75, "resistance": 7.5, "klm": 1.0}],
        "rebound": [{"displacement": -0.75, "resistance": -7.5, "klm": 1.0}],

        # ------------------------------------------------------------------
        # Load: half-sine pulse, 10 kip peak, 0.6 s duration
        # ------------------------------------------------------------------
        "time": [0.0, 0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0],
        "force": [0.0, 5.0, 8.66, 10.0, 8.66, 5.0, 0.0, 0.0, 0.0, 0.0, 0.0],

        "initial_conditions": {"u0": 0.0, "v0": 0.0},

        # ------------------------------------------------------------------
        # Time integration
        # ------------------------------------------------------------------
        "solver_settings": {"t": 1.0, "dt": 0.1, "auto": False},
        "newmark": {"gamma": 0.5, "beta": 0.25},
    }
