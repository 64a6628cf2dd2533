from __future__ import annotations

from typing import TYPE_CHECKING, Dict

import numpy as np

from ..ids import UNBOUND
from ..receiver import Receiver
from .base import Generator
from .oscillators import TWO_PI, Oscillator, Sine

if TYPE_CHECKING:
    from sequencing.timemap import TimeLike
    from ..store import GeneratorManager


FREQ_RANGE = (0.001, 20.0)
MOD_RANGE = (0.0, 1.0)


class Lfo(Generator):
    """
    Low frequency oscillator used as a modulation source, output in [0, 1].

    Vectors integrate the frequency sample by sample, so automating `freq`
    does not jump the phase. Single values compute the phase from absolute
    time as ``(seconds * 2*pi * freq + phase_shift) mod 2*pi``. Elapsed
    time is taken in seconds, not samples, so there is no division by the
    sample rate; that keeps the two in agreement while the frequency is
    constant.
    """
    kind = "lfo"

    def __init__(self, oscillator: Oscillator = None, freq: float = 2.0,
                 modulation: float = 0.5, phase_shift: float = 0.0):
        self.id = UNBOUND
        self.oscillator = oscillator if oscillator is not None else Sine()
        self.freq = Receiver.from_value_in_range(freq, FREQ_RANGE)
        self.modulation = Receiver.from_value_in_range(modulation, MOD_RANGE)
        self.phase_shift = float(phase_shift) % TWO_PI

    def __repr__(self) -> str:
        return f"Lfo({self.oscillator.name}, id={self.id})"

    def receivers(self) -> Dict[str, Receiver]:
        return {"freq": self.freq, "modulation": self.modulation}

    def phase_at(self, time: "TimeLike", manager: "GeneratorManager") -> float:
        seconds = manager.clock.tick_to_seconds(time)
        f = self.freq.get_value(time, manager)
        return (seconds * TWO_PI * f + self.phase_shift) % TWO_PI

    def get_value(self, time: "TimeLike", manager: "GeneratorManager") -> float:
        phase = self.phase_at(time, manager)
        x = self.oscillator.sample(phase, self.modulation.get_value(time, manager))
        return (float(x) + 1.0) / 2.0

    def get_vector(self, start: "TimeLike", count: int, manager: "GeneratorManager") -> np.ndarray:
        count = int(count)
        if count <= 0:
            return np.zeros(0, dtype=np.float64)
        freqs = self.freq.get_vector(start, count, manager)
        mods = self.modulation.get_vector(start, count, manager)
        seconds = manager.clock.tick_to_seconds(start)
        phase0 = (seconds * TWO_PI * freqs[0] + self.phase_shift) % TWO_PI
        x = self.oscillator.play(freqs, mods, phase0, manager.clock.sr)
        return (x + 1.0) / 2.0
