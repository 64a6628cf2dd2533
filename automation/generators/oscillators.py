import numpy as np
from typing import Dict, Protocol

TWO_PI = 2 * np.pi


class Oscillator(Protocol):
    """Phase-driven waveform, output in [-1, 1]."""
    name: str

    def sample(self, phase, modulation):
        """Works on scalars and on arrays of equal shape."""
        ...

    def play(self, freqs: np.ndarray, modulation: np.ndarray,
             phase_shift: float = 0.0, sr: int = 44100) -> np.ndarray:
        """
        Render one sample per entry of `freqs`, integrating phase sample by
        sample so that frequency changes stay continuous. The first sample
        is taken at `phase_shift`.
        """
        freqs = np.asarray(freqs, dtype=np.float64)
        modulation = np.asarray(modulation, dtype=np.float64)
        assert freqs.shape == modulation.shape, "freqs and modulation differ in length"
        inc = TWO_PI * freqs / sr
        phase = np.empty_like(inc)
        if phase.size:
            phase[0] = 0.0
            np.cumsum(inc[:-1], out=phase[1:])
        phase = np.mod(phase + phase_shift, TWO_PI)
        return self.sample(phase, modulation)


class Sine(Oscillator):
    name = "sine"

    def sample(self, phase, modulation):
        return np.sin(phase)


class ModSquare(Oscillator):
    """Pulse; `modulation` is the duty cycle."""
    name = "mod_square"

    def sample(self, phase, modulation):
        return np.where(phase < modulation * TWO_PI, 1.0, -1.0)


class ModSaw(Oscillator):
    """Rises from -1 to 1 until `modulation` of the period, then falls back."""
    name = "mod_saw"

    def sample(self, phase, modulation):
        phase = np.asarray(phase, dtype=np.float64)
        modulation = np.broadcast_to(np.asarray(modulation, dtype=np.float64), phase.shape)
        rising = phase < modulation * TWO_PI
        out = np.empty(phase.shape, dtype=np.float64)
        m = modulation[rising]
        out[rising] = phase[rising] / m / np.pi - 1.0
        m = modulation[~rising]
        out[~rising] = (phase[~rising] - (m + 1.0) * np.pi) / (m - 1.0) / np.pi
        return out if out.ndim else float(out)


OSCILLATORS: Dict[str, Oscillator] = {
    osc.name: osc for osc in (Sine(), ModSquare(), ModSaw())
}


def get_oscillator(name: str) -> Oscillator:
    try:
        return OSCILLATORS[name]
    except KeyError:
        raise ValueError(f"unknown oscillator {name!r}, known: {sorted(OSCILLATORS)}") from None
