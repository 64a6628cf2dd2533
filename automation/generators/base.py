from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Optional, Protocol

import matplotlib.pyplot as plt
import numpy as np

from ..errors import ExistenceError
from ..ids import UNBOUND, GeneratorId
from ..receiver import Receiver

if TYPE_CHECKING:
    from ..store import GeneratorManager
    from sequencing.timemap import TimeLike


class Generator(Protocol):
    """A time-varying control signal with values in [0, 1]."""

    kind: str
    id: GeneratorId = UNBOUND

    def get_value(self, time: "TimeLike", manager: "GeneratorManager") -> float:
        """Value at a single position."""
        ...

    def get_vector(self, start: "TimeLike", count: int, manager: "GeneratorManager") -> np.ndarray:
        """`count` samples (float64) starting at `start`."""
        ...

    def receivers(self) -> Dict[str, Receiver]:
        """Automatable parameters by name."""
        return {}

    def get_sub_ids(self) -> List[GeneratorId]:
        out: List[GeneratorId] = []
        for r in self.receivers().values():
            out.extend(r.get_ids())
        return out

    def set_id(self, gen_id: GeneratorId) -> None:
        self.id = gen_id

    def set_track(self, track: int) -> None:
        """Re-attach own id and every extracted id in the parameters to `track`."""
        self.id = self.id.set_id(track)
        for r in self.receivers().values():
            r.set_id(track)

    def extract(self) -> None:
        self.id = self.id.extract()
        for r in self.receivers().values():
            r.extract()

    def receiver(self, parameter: str) -> Receiver:
        try:
            return self.receivers()[parameter]
        except KeyError:
            raise ExistenceError(f"{self.kind} has no parameter", parameter) from None

    def bind(self, parameter: str, source: Receiver,
             manager: Optional["GeneratorManager"] = None) -> None:
        self.receiver(parameter).bind(source, self.id, manager)

    def plot(self, manager: "GeneratorManager", start: "TimeLike" = 0,
             count: Optional[int] = None):
        """
        Render `count` samples (one second by default) and plot them.
        """
        sr = manager.clock.sr
        frames = sr if count is None else int(count)
        y = self.get_vector(start, frames, manager)
        t = manager.clock.samples_to_seconds(np.arange(frames))
        fig, ax = plt.subplots(figsize=(8, 3))
        ax.plot(t, y, lw=1.2)
        ax.set_ylim(-0.05, 1.05)
        ax.set_xlabel("Time [s]")
        ax.set_ylabel("Value")
        ax.set_title(f"{self.__class__.__name__} {self.id}")
        ax.grid(True, alpha=0.3)
        fig.tight_layout()
        return fig, ax
