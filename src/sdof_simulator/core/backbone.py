"""Piecewise-linear hysteretic backbone (resistance vs. displacement).

The curve is assembled from two independent branches that pivot through the
origin: the *inbound* branch (positive displacements) and the *rebound*
branch (negative displacements). Each branch is extended with a flat plateau
20 % beyond its farthest point, the branches are merged around an explicit
origin point, and every adjacent pair of merged points becomes one linear
*segment* addressed by a signed region number::

    region:   ...  -2    -1  |  1     2  ...
    segment:  [x0,x1] [x1,x2] | [x2,x3] [x3,x4]
                            origin (mid_index)

Region 0 never exists. During a simulation the only things that change are
the region the current displacement occupies and a horizontal offset applied
by the pivot-hysteresis rule on every load reversal. Both live in an
immutable :class:`BackboneState`, so the curve definition itself is never
modified by a run and can seed any number of independent runs.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Iterable, List, Mapping, Sequence, Tuple

import numpy as np

from .errors import InvalidArgumentError, RegionNotFoundError
from .interpolation import interpolate_sorted

# Segments narrower than this are treated as vertical (zero stiffness).
DEGENERATE_WIDTH = 1e-10

# Plateau extension appended beyond the farthest point of each branch.
EXTENSION_FACTOR = 1.2


@dataclass(frozen=True)
class BackbonePoint:
    displacement: float
    resistance: float
    klm: float = 1.0


@dataclass(frozen=True)
class Segment:
    """Secant stiffness and mass-participation factor of one region."""
    stiffness: float
    klm: float


@dataclass(frozen=True)
class BackboneState:
    """Per-run state of a backbone: current region and hysteretic shift."""
    region: int = 1
    offset: float = 0.0


def _clone_points(points: Iterable[Any]) -> List[BackbonePoint]:
    cloned: List[BackbonePoint] = []
    for p in points:
        if isinstance(p, BackbonePoint):
            cloned.append(BackbonePoint(float(p.displacement), float(p.resistance), float(p.klm)))
        elif isinstance(p, Mapping):
            klm = p.get("klm")
            cloned.append(
                BackbonePoint(
                    float(p["displacement"]),
                    float(p["resistance"]),
                    1.0 if klm is None else float(klm),
                )
            )
        else:
            d, r, *rest = p
            cloned.append(BackbonePoint(float(d), float(r), float(rest[0]) if rest else 1.0))
    return cloned


def _extend_branch(points: List[BackbonePoint]) -> List[BackbonePoint]:
    last = points[-1]
    return points + [BackbonePoint(last.displacement * EXTENSION_FACTOR, last.resistance, last.klm)]


class BackboneCurve:
    """Asymmetric piecewise-linear backbone with pivot hysteresis.

    Parameters
    ----------
    inbound : sequence
        Points on the positive side, ordered outward from the origin. Items
        may be :class:`BackbonePoint`, mappings with ``displacement``,
        ``resistance`` and optional ``klm`` keys, or ``(d, r[, klm])`` tuples.
    rebound : sequence
        Points on the negative side, ordered outward from the origin.

    Raises
    ------
    InvalidArgumentError
        If either branch is empty.
    """

    def __init__(self, inbound: Sequence[Any], rebound: Sequence[Any]):
        inbound_pts = _clone_points(inbound)
        rebound_pts = _clone_points(rebound)
        if not inbound_pts or not rebound_pts:
            raise InvalidArgumentError(
                "inbound and rebound must be non-empty lists of BackbonePoint"
            )

        self.original_inbound: Tuple[BackbonePoint, ...] = tuple(inbound_pts)
        self.original_rebound: Tuple[BackbonePoint, ...] = tuple(rebound_pts)
        self.num_inbound_regions = len(inbound_pts)
        self.num_rebound_regions = len(rebound_pts)

        self._build(_extend_branch(inbound_pts), _extend_branch(rebound_pts))
        self.state = BackboneState()

    # ------------------------------------------------------------------
    # Alternate constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_arrays(cls, resistance, displacement, klm: float = 1.0) -> "BackboneCurve":
        """Build from parallel ``resistance``/``displacement`` arrays.

        The arrays describe the whole curve through the origin; samples at
        (numerically) zero displacement are dropped because the origin is
        always re-inserted.
        """
        res = np.asarray(resistance, dtype=float)
        disp = np.asarray(displacement, dtype=float)
        if res.size != disp.size:
            raise InvalidArgumentError("resistance and displacement must have equal length")
        if res.size < 2:
            raise InvalidArgumentError("At least two points are required to define a backbone")

        order = np.argsort(disp, kind="stable")
        disp, res = disp[order], res[order]
        inbound = [BackbonePoint(d, r, klm) for d, r in zip(disp, res) if d > 1e-6]
        rebound = [BackbonePoint(d, r, klm) for d, r in zip(disp[::-1], res[::-1]) if d < -1e-6]
        return cls(inbound, rebound)

    @classmethod
    def from_rows(
        cls,
        inbound_rows: Iterable[Mapping[str, Any]],
        rebound_rows: Iterable[Mapping[str, Any]],
    ) -> "BackboneCurve":
        return cls(list(inbound_rows), list(rebound_rows))

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def _build(self, inbound: List[BackbonePoint], rebound: List[BackbonePoint]) -> None:
        origin = BackbonePoint(0.0, 0.0, 1.0)
        tagged = [(p, False) for p in rebound] + [(origin, True)] + [(p, False) for p in inbound]
        merged = sorted(tagged, key=lambda item: item[0].displacement)

        self.mid_index = next(i for i, (_, is_origin) in enumerate(merged) if is_origin)
        x = np.array([p.displacement for p, _ in merged], dtype=float)
        y = np.array([p.resistance for p, _ in merged], dtype=float)
        k = np.array([p.klm for p, _ in merged], dtype=float)
        for arr in (x, y, k):
            arr.setflags(write=False)
        self.x_values = x
        self.y_values = y
        self.klm_values = k

        segments: List[Segment] = []
        for i in range(x.size - 1):
            dx = x[i + 1] - x[i]
            stiffness = (y[i + 1] - y[i]) / dx if abs(dx) > DEGENERATE_WIDTH else 0.0
            # A region takes the klm of its lower-index endpoint.
            segments.append(Segment(float(stiffness), float(k[i])))
        self.segments: Tuple[Segment, ...] = tuple(segments)

        self.inbound_stiffness = self.stiffness_in_region(1)
        self.rebound_stiffness = self.stiffness_in_region(-1)
        self.max_resistance = float(y.max())
        self.min_resistance = float(y.min())

    # ------------------------------------------------------------------
    # Region bookkeeping
    # ------------------------------------------------------------------

    @property
    def min_region(self) -> int:
        return -self.mid_index

    @property
    def max_region(self) -> int:
        return self.x_values.size - 1 - self.mid_index

    def segment_index(self, region: int) -> int:
        """Map a signed region number to its position in :attr:`segments`."""
        region = int(region)
        if region == 0 or region < self.min_region or region > self.max_region:
            raise RegionNotFoundError(region)
        return self.mid_index + region - 1 if region > 0 else self.mid_index + region

    def segment(self, region: int) -> Segment:
        return self.segments[self.segment_index(region)]

    def stiffness_in_region(self, region: int) -> float:
        return self.segment(region).stiffness

    def klm_in_region(self, region: int) -> float:
        return self.segment(region).klm

    # ------------------------------------------------------------------
    # State-threading API (used by the integrator)
    # ------------------------------------------------------------------

    def pivot(self, state: BackboneState) -> float:
        return float(self.x_values[self.mid_index] + state.offset)

    def locate(self, displacement: float, state: BackboneState) -> BackboneState:
        """Return ``state`` with the region that contains ``displacement``.

        Walks outward from the origin segment by segment; consecutive steps
        rarely move more than one region, so the scan stays short.
        """
        x = self.x_values
        local = displacement - state.offset
        region = 0
        if local >= x[self.mid_index]:
            for i in range(self.mid_index + 1, x.size):
                region += 1
                if local < x[i]:
                    break
        else:
            for i in range(self.mid_index - 1, -1, -1):
                region -= 1
                if local > x[i]:
                    break
        if region == state.region:
            return state
        return replace(state, region=region)

    def resistance(self, displacement: float, state: BackboneState) -> float:
        return interpolate_sorted(self.x_values, self.y_values, displacement - state.offset)

    def shifted(self, displacement: float, state: BackboneState) -> BackboneState:
        """Apply the pivot-hysteresis rule at a load reversal.

        The curve is translated horizontally so that elastic unloading from
        ``(displacement, resistance)`` with the inbound (right of the pivot)
        or rebound (left of or at the pivot) elastic stiffness passes through
        the pivot point.
        """
        pivot = self.pivot(state)
        stiffness = self.inbound_stiffness if displacement > pivot else self.rebound_stiffness
        if abs(stiffness) < DEGENERATE_WIDTH:
            return state
        dx = displacement - self.resistance(displacement, state) / stiffness - pivot
        return replace(state, offset=state.offset + dx)

    # ------------------------------------------------------------------
    # Stateful convenience API (operates on self.state)
    # ------------------------------------------------------------------

    @property
    def current_region(self) -> int:
        return self.state.region

    @property
    def shifted_x_values(self) -> np.ndarray:
        return self.x_values + self.state.offset

    def update_current_region(self, displacement: float) -> None:
        self.state = self.locate(displacement, self.state)

    def get_at(self, displacement: float) -> float:
        return self.resistance(displacement, self.state)

    def get_stiffness_in_region(self, region: int) -> float:
        return self.stiffness_in_region(region)

    def get_klm_in_region(self) -> float:
        return self.klm_in_region(self.state.region)

    def shift_backbone(self, displacement: float) -> None:
        self.state = self.shifted(displacement, self.state)

    def reset(self) -> None:
        self.state = BackboneState()

    def __repr__(self) -> str:
        return (
            f"BackboneCurve(inbound={self.num_inbound_regions}, "
            f"rebound={self.num_rebound_regions}, k_in={self.inbound_stiffness:g}, "
            f"k_re={self.rebound_stiffness:g})"
        )
