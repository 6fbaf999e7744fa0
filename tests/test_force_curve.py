from __future__ import annotations

import sys

sys.path.insert(0, "src")

import numpy as np
import pytest

from sdof_simulator.core.errors import InvalidArgumentError
from sdof_simulator.core.force import ForceCurve
from sdof_simulator.core.interpolation import (
    boundary_slopes,
    interpolate_sorted,
    interpolate_sorted_batch,
)

TIMES = [0.0, 0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0]
FORCES = [0.0, 5.0, 8.66, 10.0, 8.66, 5.0, 0.0, 0.0, 0.0, 0.0, 0.0]


def test_get_at_returns_stored_values_at_samples() -> None:
    curve = ForceCurve(TIMES, FORCES)
    for t, f in zip(TIMES, FORCES):
        assert curve.get_at(t) == f
    out = interpolate_sorted_batch(TIMES, FORCES, TIMES)
    np.testing.assert_array_equal(out, FORCES)


def test_batch_extrapolation_uses_boundary_slopes() -> None:
    xs = [0.0, 1.0, 3.0]
    ys = [2.0, 4.0, 3.0]
    left, right = boundary_slopes(xs, ys)
    queries = np.array([-2.0, -0.5, 3.0, 4.0, 7.5])
    expected = [2.0 - 2.0 * left, 2.0 - 0.5 * left, 3.0, 3.0 + right, 3.0 + 4.5 * right]
    np.testing.assert_allclose(interpolate_sorted_batch(xs, ys, queries), expected, rtol=1e-12)


def test_get_at_interpolates_between_samples() -> None:
    curve = ForceCurve(TIMES, FORCES)
    assert curve.get_at(0.05) == pytest.approx(2.5)
    assert curve.get_at(0.25) == pytest.approx(9.33)


def test_get_at_extrapolates_with_boundary_slope() -> None:
    curve = ForceCurve([0.0, 1.0, 2.0], [1.0, 3.0, 2.0])
    # left slope +2, right slope -1, no clamping
    assert curve.get_at(-1.0) == pytest.approx(-1.0)
    assert curve.get_at(4.0) == pytest.approx(0.0)


def test_construction_rejects_bad_inputs() -> None:
    with pytest.raises(InvalidArgumentError):
        ForceCurve([0.0, 1.0, 2.0], [0.0, 1.0])
    with pytest.raises(InvalidArgumentError):
        ForceCurve([0.0], [1.0])


def test_samples_are_read_only_copies() -> None:
    times = list(TIMES)
    curve = ForceCurve(times, FORCES)
    times[1] = 99.0
    assert curve.x_values[1] == 0.1
    with pytest.raises(ValueError):
        curve.x_values[0] = 1.0


def test_discretize_time_grid_is_exact() -> None:
    curve = ForceCurve(TIMES, FORCES)
    dt = 0.013
    steps = 57
    out = curve.discretize_curve(steps, dt)
    expected = np.array([i * dt for i in range(steps)])
    assert out.t.shape == (steps,)
    np.testing.assert_array_equal(out.t, expected)


def test_discretize_matches_pointwise_queries() -> None:
    curve = ForceCurve([0.0, 0.3, 0.35, 1.0], [0.0, 4.0, -1.0, 2.0])
    out = curve.discretize_curve(31, 0.05)  # runs past the last sample
    pointwise = [curve.get_at(t) for t in out.t]
    np.testing.assert_allclose(out.f, pointwise, rtol=1e-12, atol=1e-12)


@pytest.mark.parametrize("steps, dt", [(0, 0.1), (-3, 0.1), (10, 0.0), (10, -0.1)])
def test_discretize_rejects_non_positive_arguments(steps: int, dt: float) -> None:
    curve = ForceCurve(TIMES, FORCES)
    with pytest.raises(InvalidArgumentError):
        curve.discretize_curve(steps, dt)


def test_from_samples_and_duration() -> None:
    curve = ForceCurve.from_samples([(0.0, 1.0), (0.5, 2.0), (2.0, 0.0)])
    assert curve.duration == pytest.approx(2.0)
    assert curve.get_at(0.25) == pytest.approx(1.5)


def test_interpolation_helpers_agree() -> None:
    xs = [-2.0, -0.5, 0.0, 1.5, 3.0]
    ys = [1.0, 0.0, 2.0, 2.0, -1.0]
    queries = np.linspace(-4.0, 5.0, 37)
    batch = interpolate_sorted_batch(xs, ys, queries)
    single = [interpolate_sorted(xs, ys, q) for q in queries]
    np.testing.assert_allclose(batch, single, rtol=1e-12, atol=1e-12)

    left, right = boundary_slopes(xs, ys)
    assert left == pytest.approx(-1.0 / 1.5)
    assert right == pytest.approx(-2.0)


def test_interpolation_duplicate_abscissa_returns_lower_value() -> None:
    xs = [0.0, 1.0, 1.0, 2.0]
    ys = [0.0, 1.0, 5.0, 6.0]
    assert interpolate_sorted(xs, ys, 1.0) == pytest.approx(5.0)
    assert interpolate_sorted(xs, ys, 0.5) == pytest.approx(0.5)
