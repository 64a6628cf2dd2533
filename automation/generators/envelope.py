from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Optional

import numpy as np

from ..errors import GeneratorTypeError
from ..ids import UNBOUND
from ..receiver import Receiver
from .base import Generator

if TYPE_CHECKING:
    from sequencing.timemap import TimeLike
    from ..store import GeneratorManager


ATTACK_RANGE = (0.0, 25.0)
DECAY_RANGE = (0.0, 25.0)
SUSTAIN_RANGE = (0.0, 1.0)
RELEASE_RANGE = (0.0, 25.0)
HALF_LIFE_RANGE = (0.01, 10.0)


class Envelope(Generator):
    """
    Attack/Decay/Sustain/Release envelope rendered per note.
    Times are in seconds; sustain is a linear level in [0,1]. With a
    half-life the sustain level decays exponentially while the note is held.

    Gate shorter than attack+decay: by default attack and decay always play
    in full and the release starts from where the decay stopped. With
    ``truncate=True`` the envelope is cut at the gate instead and released
    from the level it had reached.
    """
    kind = "envelope"

    def __init__(self, attack: float = 0.1, decay: float = 0.15, sustain: float = 0.8,
                 release: float = 0.6, half_life: Optional[float] = None,
                 truncate: bool = False):
        self.id = UNBOUND
        self.attack = Receiver.from_value_in_range(attack, ATTACK_RANGE)
        self.decay = Receiver.from_value_in_range(decay, DECAY_RANGE)
        self.sustain = Receiver.from_value_in_range(sustain, SUSTAIN_RANGE)
        self.release = Receiver.from_value_in_range(release, RELEASE_RANGE)
        self.half_life = (None if half_life is None
                          else Receiver.from_value_in_range(half_life, HALF_LIFE_RANGE))
        self.truncate = bool(truncate)

    @classmethod
    def decay_only(cls, decay: float) -> "Envelope":
        return cls(attack=0.0, decay=decay, sustain=0.0, release=0.0)

    @classmethod
    def ad(cls, attack: float, decay: float) -> "Envelope":
        return cls(attack=attack, decay=decay, sustain=0.0, release=0.0)

    def __repr__(self) -> str:
        return f"Envelope(id={self.id}, truncate={self.truncate})"

    def receivers(self) -> Dict[str, Receiver]:
        out = {"attack": self.attack, "decay": self.decay,
               "sustain": self.sustain, "release": self.release}
        if self.half_life is not None:
            out["half_life"] = self.half_life
        return out

    def bind(self, parameter, source, manager=None) -> None:
        if parameter == "half_life" and self.half_life is None:
            half_life = Receiver.from_value_in_range(HALF_LIFE_RANGE[0], HALF_LIFE_RANGE)
            half_life.bind(source, self.id, manager)
            self.half_life = half_life
            return
        super().bind(parameter, source, manager)

    # ---- render ----
    def get_value(self, time, manager):
        raise GeneratorTypeError("an envelope has no single value, use get_envelope()")

    def get_envelope(self, note_on: "TimeLike", sustain_samples: int,
                     manager: "GeneratorManager") -> np.ndarray:
        """
        Envelope for a note starting at `note_on` and held for
        `sustain_samples` samples, release included.
        """
        clock = manager.clock
        sr = clock.sr
        A = clock.seconds_to_samples(self.attack.get_value(note_on, manager))
        D = clock.seconds_to_samples(self.decay.get_value(note_on, manager))
        R = clock.seconds_to_samples(self.release.get_value(note_on, manager))
        s = self.sustain.get_value(note_on, manager)
        gate = max(0, int(sustain_samples))

        attack = np.arange(A, dtype=np.float64) / max(A, 1)
        decay = (1.0 - np.arange(D, dtype=np.float64) / max(D, 1)) * (1.0 - s) + s
        head = np.concatenate([attack, decay])

        if self.truncate and gate < head.size:
            head = head[:gate]
            hold = np.zeros(0)
        else:
            n = max(0, gate - head.size)
            if self.half_life is not None:
                hl = self.half_life.get_value(note_on, manager)
                hold = s * 0.5 ** (np.arange(n, dtype=np.float64) / (hl * sr))
            else:
                hold = np.full(n, s, dtype=np.float64)

        body = np.concatenate([head, hold])
        if body.size:
            start = body[-1]
        elif A == 0 and D == 0:
            start = s
        else:
            start = 0.0
        release = (1.0 - np.arange(R, dtype=np.float64) / max(R, 1)) * start
        return np.concatenate([body, release])

    def get_vector(self, start: "TimeLike", count: int, manager: "GeneratorManager") -> np.ndarray:
        """A note triggered at `start` and held through the whole window."""
        count = int(count)
        env = self.get_envelope(start, count, manager)[:count]
        if env.size < count:
            env = np.pad(env, (0, count - env.size))
        return env
