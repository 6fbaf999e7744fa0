"""Piecewise-linear interpolation on sorted samples.

Both the force history and the backbone curve are tabulated functions that
must answer queries beyond their sampled range. The rule used everywhere in
this package is:

- inside ``[x[0], x[-1]]``: linear interpolation on the bracketing segment,
- outside: linear extrapolation with the slope of the boundary segment
  (no clamping).

A query that hits a control point returns the stored ordinate exactly.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np

from .errors import InvalidArgumentError


def _as_samples(x_values, y_values) -> Tuple[np.ndarray, np.ndarray]:
    xv = np.asarray(x_values, dtype=float)
    yv = np.asarray(y_values, dtype=float)
    if xv.ndim != 1 or yv.ndim != 1:
        raise InvalidArgumentError("x_values and y_values must be one-dimensional")
    if xv.size != yv.size:
        raise InvalidArgumentError("x_values and y_values must have equal length")
    if xv.size < 2:
        raise InvalidArgumentError("At least two points are required for interpolation")
    return xv, yv


def _slope(x0: float, x1: float, y0: float, y1: float) -> float:
    dx = x1 - x0
    if dx == 0.0:
        return 0.0
    return (y1 - y0) / dx


def boundary_slopes(x_values, y_values) -> Tuple[float, float]:
    """Return the slopes of the first and the last segment."""
    xv, yv = _as_samples(x_values, y_values)
    left = _slope(xv[0], xv[1], yv[0], yv[1])
    right = _slope(xv[-2], xv[-1], yv[-2], yv[-1])
    return float(left), float(right)


def interpolate_sorted(x_values, y_values, x: float) -> float:
    """Interpolate (or extrapolate) a single abscissa.

    Parameters
    ----------
    x_values : array_like
        Sorted abscissae, at least two.
    y_values : array_like
        Ordinates, same length as ``x_values``.
    x : float
        Query point.

    Returns
    -------
    float
        Interpolated value; boundary-slope extrapolation outside the range.
    """
    xv, yv = _as_samples(x_values, y_values)
    if x < xv[0] or x >= xv[-1]:
        left, right = boundary_slopes(xv, yv)
        if x < xv[0]:
            return float(yv[0] + (x - xv[0]) * left)
        return float(yv[-1] + (x - xv[-1]) * right)

    # searchsorted(side="right") - 1 is the bracketing lower index
    lo = int(np.searchsorted(xv, x, side="right")) - 1
    x_lo, x_hi = xv[lo], xv[lo + 1]
    if x_hi == x_lo:
        return float(yv[lo])
    slope = (yv[lo + 1] - yv[lo]) / (x_hi - x_lo)
    return float(yv[lo] + (x - x_lo) * slope)


def interpolate_sorted_batch(x_values, y_values, x_array) -> np.ndarray:
    """Vectorised :func:`interpolate_sorted` for many query points.

    The boundary slopes are computed once per call and each query costs one
    binary search against the ``m`` samples, so the total cost is
    O(n log m) for ``n`` queries.
    """
    xv, yv = _as_samples(x_values, y_values)
    xq = np.asarray(x_array, dtype=float)
    n = xv.size
    left, right = boundary_slopes(xv, yv)

    lo = np.clip(np.searchsorted(xv, xq, side="right") - 1, 0, n - 2)
    x_lo = xv[lo]
    dx = xv[lo + 1] - x_lo
    dy = yv[lo + 1] - yv[lo]
    slope = np.divide(dy, dx, out=np.zeros_like(dy), where=dx != 0.0)
    out = yv[lo] + (xq - x_lo) * slope

    out = np.where(xq < xv[0], yv[0] + (xq - xv[0]) * left, out)
    out = np.where(xq >= xv[-1], yv[-1] + (xq - xv[-1]) * right, out)
    return out
