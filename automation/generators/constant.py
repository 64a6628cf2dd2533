import numpy as np

from ..errors import OutOfRangeError
from ..ids import UNBOUND
from ..receiver import UNIT_RANGE, in_range
from .base import Generator


class Constant(Generator):
    """A fixed value in [0, 1], e.g. the velocity of the current note."""
    kind = "constant"

    def __init__(self, value: float = 0.0):
        self.id = UNBOUND
        self.value = 0.0
        self.set(value)

    def __repr__(self) -> str:
        return f"Constant({self.value!r}, id={self.id})"

    def set(self, value: float) -> None:
        if not in_range(value, UNIT_RANGE):
            raise OutOfRangeError(value, UNIT_RANGE)
        self.value = float(value)

    def get_value(self, time=None, manager=None) -> float:
        return self.value

    def get_vector(self, start, count: int, manager=None) -> np.ndarray:
        return np.full(int(count), self.value, dtype=np.float64)
