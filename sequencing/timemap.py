from __future__ import annotations

import bisect
import math
from dataclasses import dataclass
from typing import List, Tuple, Union

from .durations import (TICKS_PER_BEAT, bar_ticks, bpm_to_us_per_beat, meter_beat_ticks,
                        us_per_beat_to_bpm)


DEFAULT_US_PER_BEAT = 500_000      # 120 BPM


@dataclass(frozen=True, order=True)
class TimeIndex:
    """Absolute musical position, in (possibly fractional) ticks."""
    tick: float


TimeLike = Union[TimeIndex, int, float]


def as_tick(time: TimeLike) -> float:
    if isinstance(time, TimeIndex):
        return float(time.tick)
    return float(time)


@dataclass(frozen=True)
class Tempo:
    tick: int
    us_per_beat: int

    @property
    def bpm(self) -> float:
        return us_per_beat_to_bpm(self.us_per_beat)


@dataclass(frozen=True)
class Meter:
    tick: int
    beats_per_bar: int = 4
    subdivision: int = 4        # denominator of the time signature


class TimeMap:
    """
    Tempo and time-signature breakpoints, each valid from its tick onward.

    Both maps are independent: tempo changes do not have to line up with
    meter changes. Breakpoints are kept sorted and unique by tick; writing
    a second breakpoint at an existing tick replaces the first one.
    Before the first breakpoint the defaults apply (120 BPM, 4/4).
    """

    def __init__(self, ticks_per_beat: int = TICKS_PER_BEAT,
                 default_us_per_beat: int = DEFAULT_US_PER_BEAT,
                 default_meter: Tuple[int, int] = (4, 4)):
        if ticks_per_beat <= 0:
            raise ValueError("ticks_per_beat must be positive")
        if default_us_per_beat <= 0:
            raise ValueError("default_us_per_beat must be positive")
        self.ticks_per_beat = int(ticks_per_beat)
        self.default_us_per_beat = int(default_us_per_beat)
        self.default_meter = (int(default_meter[0]), int(default_meter[1]))
        self._tempi: List[Tempo] = []
        self._meters: List[Meter] = []
        # bumped on every write so cached conversions can tell they are stale
        self.version = 0

    # ---- writes ----
    @staticmethod
    def _put(items: list, item) -> None:
        ticks = [it.tick for it in items]
        i = bisect.bisect_left(ticks, item.tick)
        if i < len(items) and items[i].tick == item.tick:
            items[i] = item
        else:
            items.insert(i, item)

    def set_tempo(self, tick: int, us_per_beat: int) -> None:
        if tick < 0:
            raise ValueError(f"tempo breakpoint at negative tick {tick}")
        if us_per_beat <= 0:
            raise ValueError(f"invalid tempo {us_per_beat} us/beat")
        self._put(self._tempi, Tempo(int(tick), int(us_per_beat)))
        self.version += 1

    def set_bpm(self, tick: int, bpm: float) -> None:
        self.set_tempo(tick, bpm_to_us_per_beat(bpm))

    def set_meter(self, tick: int, beats_per_bar: int, subdivision: int) -> None:
        if tick < 0:
            raise ValueError(f"meter breakpoint at negative tick {tick}")
        if beats_per_bar <= 0 or subdivision <= 0:
            raise ValueError(f"invalid meter {beats_per_bar}/{subdivision}")
        self._put(self._meters, Meter(int(tick), int(beats_per_bar), int(subdivision)))
        self.version += 1

    # ---- reads ----
    @property
    def tempi(self) -> List[Tempo]:
        return list(self._tempi)

    @property
    def meters(self) -> List[Meter]:
        return list(self._meters)

    def tempo_segments(self) -> List[Tempo]:
        """Tempo breakpoints with the default filled in from tick 0."""
        segs = list(self._tempi)
        if not segs or segs[0].tick > 0:
            segs.insert(0, Tempo(0, self.default_us_per_beat))
        return segs

    def meter_segments(self) -> List[Meter]:
        segs = list(self._meters)
        if not segs or segs[0].tick > 0:
            segs.insert(0, Meter(0, *self.default_meter))
        return segs

    def tempo_at(self, time: TimeLike) -> Tempo:
        segs = self.tempo_segments()
        i = bisect.bisect_right([s.tick for s in segs], as_tick(time)) - 1
        return segs[max(0, i)]

    def meter_at(self, time: TimeLike) -> Meter:
        segs = self.meter_segments()
        i = bisect.bisect_right([s.tick for s in segs], as_tick(time)) - 1
        return segs[max(0, i)]

    # ---- bar / beat / tick ----
    def _bar_starts(self) -> List[Tuple[int, Meter]]:
        """(first bar number, meter) for every meter segment."""
        segs = self.meter_segments()
        out = []
        bar = 0
        for i, m in enumerate(segs):
            out.append((bar, m))
            if i + 1 < len(segs):
                length = bar_ticks(m.beats_per_bar, m.subdivision, self.ticks_per_beat)
                # a meter change inside a bar still opens a new bar
                bar += math.ceil((segs[i + 1].tick - m.tick) / length)
        return out

    def position(self, bar: int, beat: float = 0, tick: float = 0) -> TimeIndex:
        """0-based bar/beat plus a tick offset to an absolute TimeIndex."""
        starts = self._bar_starts()
        first_bar, m = starts[0]
        for b, meter in starts:
            if b <= bar:
                first_bar, m = b, meter
        length = bar_ticks(m.beats_per_bar, m.subdivision, self.ticks_per_beat)
        beat_len = meter_beat_ticks(m.subdivision, self.ticks_per_beat)
        return TimeIndex(m.tick + (bar - first_bar) * length + beat * beat_len + tick)

    def bar_beat_tick(self, time: TimeLike) -> Tuple[int, int, float]:
        t = as_tick(time)
        starts = self._bar_starts()
        first_bar, m = starts[0]
        for b, meter in starts:
            if meter.tick <= t:
                first_bar, m = b, meter
        length = bar_ticks(m.beats_per_bar, m.subdivision, self.ticks_per_beat)
        beat_len = meter_beat_ticks(m.subdivision, self.ticks_per_beat)
        bars, rest = divmod(t - m.tick, length)
        beats, ticks = divmod(rest, beat_len)
        return first_bar + int(bars), int(beats), ticks
