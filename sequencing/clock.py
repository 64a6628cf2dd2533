from __future__ import annotations

import logging
from typing import Optional, Tuple

import numpy as np

from .timemap import TimeIndex, TimeLike, TimeMap, as_tick

logger = logging.getLogger(__name__)

SR = 44100


class Clock:
    """
    Converts musical time (ticks under a tempo map) to seconds and samples.

    Every signal evaluation goes through here, so a tempo change moves
    automation curves and LFO phases together with the notes.
    """

    def __init__(self, time_map: Optional[TimeMap] = None, sr: int = SR):
        if sr <= 0:
            raise ValueError("sample rate must be positive")
        self.time_map = time_map if time_map is not None else TimeMap()
        self.sr = int(sr)
        self._cache_version = None
        self._seg_ticks = np.zeros(1)
        self._seg_secs = np.zeros(1)
        self._seg_spt = np.ones(1)

    # ---- segment table ----
    def _segments(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """(start tick, start second, seconds per tick) for each tempo segment."""
        if self._cache_version == self.time_map.version:
            return self._seg_ticks, self._seg_secs, self._seg_spt
        segs = self.time_map.tempo_segments()
        tpb = float(self.time_map.ticks_per_beat)
        ticks = np.array([s.tick for s in segs], dtype=np.float64)
        spt = np.array([s.us_per_beat / 1e6 / tpb for s in segs], dtype=np.float64)
        secs = np.zeros(len(segs), dtype=np.float64)
        if len(segs) > 1:
            secs[1:] = np.cumsum(np.diff(ticks) * spt[:-1])
        self._seg_ticks, self._seg_secs, self._seg_spt = ticks, secs, spt
        self._cache_version = self.time_map.version
        logger.debug("rebuilt tempo table: %d segments", len(segs))
        return ticks, secs, spt

    # ---- vectorised conversions ----
    def ticks_to_seconds(self, ticks) -> np.ndarray:
        ticks = np.asarray(ticks, dtype=np.float64)
        seg_ticks, seg_secs, seg_spt = self._segments()
        idx = np.searchsorted(seg_ticks, ticks, side="right") - 1
        idx = np.clip(idx, 0, None)
        return seg_secs[idx] + (ticks - seg_ticks[idx]) * seg_spt[idx]

    def seconds_to_ticks(self, seconds) -> np.ndarray:
        seconds = np.asarray(seconds, dtype=np.float64)
        seg_ticks, seg_secs, seg_spt = self._segments()
        idx = np.searchsorted(seg_secs, seconds, side="right") - 1
        idx = np.clip(idx, 0, None)
        return seg_ticks[idx] + (seconds - seg_secs[idx]) / seg_spt[idx]

    # ---- scalar conversions ----
    def tick_to_seconds(self, time: TimeLike) -> float:
        return float(self.ticks_to_seconds(np.array([as_tick(time)]))[0])

    def seconds_to_tick(self, seconds: float) -> TimeIndex:
        return TimeIndex(float(self.seconds_to_ticks(np.array([float(seconds)]))[0]))

    def duration_to_seconds(self, t0: TimeLike, t1: TimeLike) -> float:
        return self.tick_to_seconds(t1) - self.tick_to_seconds(t0)

    def seconds_to_samples(self, seconds: float) -> int:
        # truncates toward zero, so a reversed span gives a negative count
        return int(seconds * self.sr)

    def samples_to_seconds(self, samples: int) -> float:
        return samples / self.sr

    def duration_to_samples(self, t0: TimeLike, t1: TimeLike) -> int:
        """Samples between two positions. Callers pass t1 >= t0."""
        return self.seconds_to_samples(self.duration_to_seconds(t0, t1))

    def tick_vector(self, onset: TimeLike, count: int) -> np.ndarray:
        """Tick position of each of `count` audio samples starting at `onset`."""
        start = self.tick_to_seconds(onset)
        secs = start + np.arange(int(count), dtype=np.float64) / self.sr
        return self.seconds_to_ticks(secs)
