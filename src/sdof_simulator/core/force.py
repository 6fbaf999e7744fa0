"""Applied force time history."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple

import numpy as np

from .errors import InvalidArgumentError
from .interpolation import interpolate_sorted, interpolate_sorted_batch


@dataclass(frozen=True)
class DiscretizedCurve:
    t: np.ndarray
    f: np.ndarray


class ForceCurve:
    """Tabulated force ``p(t)`` with boundary-slope extrapolation.

    The sample arrays are copied on construction and stored read-only, so a
    single instance can be shared between runs.
    """

    def __init__(self, x_values, y_values):
        xv = np.array(x_values, dtype=float)
        yv = np.array(y_values, dtype=float)
        if xv.size != yv.size:
            raise InvalidArgumentError("xValues and yValues must have equal length")
        if xv.size < 2:
            raise InvalidArgumentError("At least two points are required to define a curve")
        xv.setflags(write=False)
        yv.setflags(write=False)
        self.x_values = xv
        self.y_values = yv

    @classmethod
    def from_samples(cls, rows: Iterable[Tuple[float, float]]) -> "ForceCurve":
        """Build from ``(time, force)`` pairs."""
        pts = [(float(t), float(f)) for t, f in rows]
        return cls([p[0] for p in pts], [p[1] for p in pts])

    @property
    def duration(self) -> float:
        return float(self.x_values[-1] - self.x_values[0])

    def get_at(self, x: float) -> float:
        return interpolate_sorted(self.x_values, self.y_values, x)

    def discretize_curve(self, steps: int, dt: float) -> DiscretizedCurve:
        """Sample the curve on the uniform grid ``t[i] = i * dt``.

        Raises
        ------
        InvalidArgumentError
            If ``steps <= 0`` or ``dt <= 0``.
        """
        if steps <= 0:
            raise InvalidArgumentError("steps must be greater than 0")
        if dt <= 0.0:
            raise InvalidArgumentError("dt must be greater than 0")

        t = np.arange(int(steps), dtype=float) * float(dt)
        f = interpolate_sorted_batch(self.x_values, self.y_values, t)
        return DiscretizedCurve(t=t, f=f)

    def __repr__(self) -> str:
        return (
            f"ForceCurve(n={self.x_values.size}, "
            f"t=[{self.x_values[0]:g}, {self.x_values[-1]:g}])"
        )
