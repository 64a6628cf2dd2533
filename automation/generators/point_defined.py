from __future__ import annotations

import bisect
from enum import Enum
from typing import TYPE_CHECKING, Iterable, List, Tuple

import numpy as np

from sequencing.timemap import TimeLike, as_tick
from ..errors import OutOfRangeError
from ..ids import UNBOUND
from ..receiver import UNIT_RANGE, in_range
from .base import Generator

if TYPE_CHECKING:
    from sequencing.clock import Clock
    from ..store import GeneratorManager


def smooth_step(x):
    return 3.0 * x * x - 2.0 * x * x * x


class Interpolation(Enum):
    STEP = "step"
    LINEAR = "linear"
    SMOOTH = "smooth"

    def interpolate(self, v1, v2, progress):
        if self is Interpolation.STEP:
            return v1 + 0.0 * progress
        if self is Interpolation.SMOOTH:
            progress = smooth_step(progress)
        return (v2 - v1) * progress + v1


class PointDefined(Generator):
    """
    Automation curve through (tick, value) breakpoints.

    Points are kept sorted and unique by tick; adding a point at a tick
    that already has one replaces it (the later point wins). Outside the
    breakpoints the curve is flat. Progress between two points is measured
    in seconds, so a tempo change inside a segment bends the curve.
    """
    kind = "point_defined"

    def __init__(self, points: Iterable[Tuple[TimeLike, float]],
                 interpolation: Interpolation = Interpolation.STEP):
        self.id = UNBOUND
        self.interpolation = interpolation
        self._ticks: List[float] = []
        self._values: List[float] = []
        for tick, value in points:
            self.add_point(tick, value)
        if not self._ticks:
            raise ValueError("a PointDefined curve needs at least one point")

    @classmethod
    def single(cls, value: float) -> "PointDefined":
        return cls([(0, value)])

    def __repr__(self) -> str:
        return f"PointDefined({self.points!r}, {self.interpolation.name}, id={self.id})"

    @property
    def points(self) -> List[Tuple[float, float]]:
        return list(zip(self._ticks, self._values))

    def add_point(self, time: TimeLike, value: float) -> None:
        if not in_range(value, UNIT_RANGE):
            raise OutOfRangeError(value, UNIT_RANGE, "point value")
        tick = as_tick(time)
        i = bisect.bisect_left(self._ticks, tick)
        if i < len(self._ticks) and self._ticks[i] == tick:
            self._values[i] = float(value)
        else:
            self._ticks.insert(i, tick)
            self._values.insert(i, float(value))

    def _evaluate(self, ticks: np.ndarray, clock: "Clock") -> np.ndarray:
        pt = np.asarray(self._ticks, dtype=np.float64)
        pv = np.asarray(self._values, dtype=np.float64)
        # i1 is the last point at or before t, i2 the one after it
        i1 = np.clip(np.searchsorted(pt, ticks, side="right") - 1, 0, len(pt) - 1)
        i2 = np.minimum(i1 + 1, len(pt) - 1)
        before = ticks < pt[0]
        i2 = np.where(before, i1, i2)
        s1 = clock.ticks_to_seconds(pt[i1])
        s2 = clock.ticks_to_seconds(pt[i2])
        st = clock.ticks_to_seconds(ticks)
        span = s2 - s1
        with np.errstate(divide="ignore", invalid="ignore"):
            progress = np.where(span > 0, (st - s1) / np.where(span > 0, span, 1.0), 0.0)
        return self.interpolation.interpolate(pv[i1], pv[i2], progress)

    def get_value(self, time: TimeLike, manager: "GeneratorManager") -> float:
        ticks = np.array([as_tick(time)], dtype=np.float64)
        return float(self._evaluate(ticks, manager.clock)[0])

    def get_vector(self, start: TimeLike, count: int, manager: "GeneratorManager") -> np.ndarray:
        ticks = manager.clock.tick_vector(start, count)
        return self._evaluate(ticks, manager.clock)
