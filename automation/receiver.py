from __future__ import annotations

import copy
import logging
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Tuple

import numpy as np

from .errors import CircularReferenceError, ExistenceError, OutOfRangeError, RangeMismatchError
from .ids import UNBOUND, GeneratorId
from .network import Network

if TYPE_CHECKING:
    from .store import GeneratorManager
    from sequencing.timemap import TimeLike

logger = logging.getLogger(__name__)

Range = Tuple[float, float]
UNIT_RANGE: Range = (0.0, 1.0)


def in_range(value: float, valid_range: Range) -> bool:
    lo, hi = valid_range
    return min(lo, hi) <= value <= max(lo, hi)


class Transform(Enum):
    """Maps a unit value in [0, 1] onto a receiver's range."""
    LINEAR = "linear"

    def apply(self, x, valid_range: Range):
        lo, hi = valid_range
        return x * (hi - lo) + lo

    def invert(self, value: float, valid_range: Range) -> float:
        lo, hi = valid_range
        if hi == lo:
            return 0.0
        return (value - lo) / (hi - lo)


class Receiver:
    """
    An automatable parameter.

    Holds a literal in [0, 1] (before the transform) and optionally a
    Network. With a network bound, values come from the network; the
    receiver's own range and transform stay the unit contract that any
    rebinding source has to match exactly.
    """

    def __init__(self, value: float = 0.0, valid_range: Range = UNIT_RANGE,
                 transform: Transform = Transform.LINEAR,
                 network: Optional[Network] = None):
        if not in_range(value, UNIT_RANGE):
            raise OutOfRangeError(value, UNIT_RANGE, "literal")
        self.value = float(value)
        self.range: Range = (float(valid_range[0]), float(valid_range[1]))
        self.transform = transform
        self.network = network

    @classmethod
    def from_value_in_range(cls, value: float, valid_range: Range,
                            transform: Transform = Transform.LINEAR) -> "Receiver":
        """Build from a value in engineering units (seconds, Hz, ...)."""
        if not in_range(value, valid_range):
            raise OutOfRangeError(value, valid_range)
        return cls(transform.invert(value, valid_range), valid_range, transform)

    def __repr__(self) -> str:
        return (f"Receiver(value={self.value!r}, range={self.range!r}, "
                f"transform={self.transform.name}, network={self.network!r})")

    def __eq__(self, other) -> bool:
        if not isinstance(other, Receiver):
            return NotImplemented
        return (self.value, self.range, self.transform, self.network) == \
               (other.value, other.range, other.transform, other.network)

    def copy(self) -> "Receiver":
        # networks are immutable, a shallow copy shares nothing mutable
        return copy.copy(self)

    # ---- literal ----
    def set_value(self, value: float) -> None:
        """Set the literal from a value in engineering units."""
        if not in_range(value, self.range):
            raise OutOfRangeError(value, self.range)
        self.value = self.transform.invert(value, self.range)

    def with_value(self, value: float) -> "Receiver":
        out = self.copy()
        out.set_value(value)
        return out

    # ---- binding ----
    def matches(self, other: "Receiver") -> bool:
        return self.range == other.range and self.transform is other.transform

    def get_ids(self, manager: "GeneratorManager | None" = None) -> List[GeneratorId]:
        if self.network is None:
            return []
        return self.network.get_ids(manager)

    def bind(self, source: "Receiver", owner_id: GeneratorId = UNBOUND,
             manager: "GeneratorManager | None" = None) -> None:
        """
        Take over the literal and the network of `source`.

        Fails without touching this receiver when the ranges or transforms
        differ, or when `owner_id` (the generator that owns this receiver)
        is among the ids the source depends on.
        """
        if not self.matches(source):
            logger.warning("rejected bind on %s: range %s vs %s", owner_id, self.range, source.range)
            raise RangeMismatchError((self.range, self.transform.name),
                                     (source.range, source.transform.name))
        if owner_id != UNBOUND and owner_id in source.get_ids(manager):
            logger.warning("rejected bind on %s: circular reference", owner_id)
            raise CircularReferenceError(owner_id)
        self.value = source.value
        self.network = source.network
        logger.debug("bound receiver of %s to %r", owner_id, source.network)

    def unbind(self) -> None:
        self.network = None

    def set_id(self, track: int) -> None:
        if self.network is not None:
            self.network = self.network.set_id(track)

    def extract(self) -> None:
        if self.network is not None:
            self.network = self.network.extract()

    # ---- evaluation ----
    def _require(self, manager) -> None:
        if manager is None:
            raise ExistenceError("a bound receiver needs a generator manager to resolve", self.network)

    def get_value(self, time: "TimeLike", manager: "GeneratorManager | None" = None) -> float:
        if self.network is None:
            x = self.value
        else:
            self._require(manager)
            x = self.network.get_value(time, manager)
        return float(self.transform.apply(x, self.range))

    def get_vector(self, start: "TimeLike", count: int,
                   manager: "GeneratorManager | None" = None) -> np.ndarray:
        if self.network is None:
            x = np.full(int(count), self.value, dtype=np.float64)
        else:
            self._require(manager)
            x = self.network.get_vector(start, count, manager)
        return self.transform.apply(x, self.range)
