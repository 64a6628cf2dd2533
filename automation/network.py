"""
Signal networks: expression trees over generator outputs.

A network holds generator *ids*, never generators, so it is plain data and
can be copied or shared freely. Leaves are resolved through a
GeneratorManager at evaluation time.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, List, Sequence, Tuple

import numpy as np

from .errors import (EmptyNetworkError, ExistenceError, GeneratorTypeError, OutOfRangeError,
                     UnboundIdError)
from .ids import GeneratorId

if TYPE_CHECKING:
    from .store import GeneratorManager, StoreBuilder
    from sequencing.timemap import TimeLike


class Network:
    """Base of the four node types."""

    def get_value(self, time: "TimeLike", manager: "GeneratorManager") -> float:
        raise NotImplementedError

    def get_vector(self, start: "TimeLike", count: int, manager: "GeneratorManager") -> np.ndarray:
        raise NotImplementedError

    def leaf_ids(self) -> List[GeneratorId]:
        raise NotImplementedError

    def map_ids(self, fn: Callable[[GeneratorId], GeneratorId]) -> "Network":
        raise NotImplementedError

    def get_ids(self, manager: "GeneratorManager | StoreBuilder | None" = None) -> List[GeneratorId]:
        """
        Every id this network depends on: its own leaves and, through the
        manager, the parameters of the generators behind them, transitively.
        Ids that cannot be resolved are listed but not expanded.
        """
        out: List[GeneratorId] = []
        seen = set()
        todo = list(self.leaf_ids())
        while todo:
            gen_id = todo.pop(0)
            if gen_id in seen:
                continue
            seen.add(gen_id)
            out.append(gen_id)
            if manager is None:
                continue
            try:
                todo.extend(manager.get_sub_ids(gen_id))
            except (ExistenceError, UnboundIdError):
                pass
        return out

    def set_id(self, track: int) -> "Network":
        """Copy with every extracted id re-attached to `track`."""
        return self.map_ids(lambda i: i if i.is_bound else i.set_id(track))

    def extract(self) -> "Network":
        """Copy with instrument and specific ids detached from their track."""
        def _extract(i: GeneratorId) -> GeneratorId:
            try:
                return i.extract()
            except (GeneratorTypeError, UnboundIdError):
                return i
        return self.map_ids(_extract)


@dataclass(frozen=True)
class Leaf(Network):
    id: GeneratorId

    def get_value(self, time, manager) -> float:
        return manager.get_value(self.id, time)

    def get_vector(self, start, count, manager) -> np.ndarray:
        return manager.get_vector(self.id, start, count)

    def leaf_ids(self) -> List[GeneratorId]:
        return [self.id]

    def map_ids(self, fn) -> "Network":
        return Leaf(fn(self.id))


def _as_terms(terms: Sequence[Tuple[float, Network]], kind: str) -> Tuple[Tuple[float, Network], ...]:
    terms = tuple((float(w), n) for w, n in terms)
    if not terms:
        raise EmptyNetworkError(f"{kind} needs at least one (weight, network) term")
    for w, _ in terms:
        if not math.isfinite(w) or w < 0.0:
            raise OutOfRangeError(w, (0.0, math.inf), f"{kind} weight")
    total = sum(w for w, _ in terms)
    if total == 0.0:
        raise EmptyNetworkError(f"{kind} weights sum to zero")
    return terms


class _Weighted(Network):
    terms: Tuple[Tuple[float, Network], ...]

    @property
    def weights(self) -> np.ndarray:
        return np.array([w for w, _ in self.terms], dtype=np.float64)

    @property
    def total_weight(self) -> float:
        return float(sum(w for w, _ in self.terms))

    def leaf_ids(self) -> List[GeneratorId]:
        out: List[GeneratorId] = []
        for _, n in self.terms:
            out.extend(n.leaf_ids())
        return out

    def map_ids(self, fn) -> "Network":
        return type(self)([(w, n.map_ids(fn)) for w, n in self.terms])


@dataclass(frozen=True)
class WeightedAverage(_Weighted):
    """sum(w_i * v_i) / sum(w_i)"""
    terms: Tuple[Tuple[float, Network], ...]

    def __post_init__(self):
        object.__setattr__(self, "terms", _as_terms(self.terms, "WeightedAverage"))

    def get_value(self, time, manager) -> float:
        acc = 0.0
        for w, n in self.terms:
            acc += w * n.get_value(time, manager)
        return acc / self.total_weight

    def get_vector(self, start, count, manager) -> np.ndarray:
        acc = np.zeros(int(count), dtype=np.float64)
        for w, n in self.terms:
            acc += w * n.get_vector(start, count, manager)
        return acc / self.total_weight


@dataclass(frozen=True)
class WeightedProduct(_Weighted):
    """(prod v_i ** w_i) ** (1 / sum(w_i)), a weighted geometric mean."""
    terms: Tuple[Tuple[float, Network], ...]

    def __post_init__(self):
        object.__setattr__(self, "terms", _as_terms(self.terms, "WeightedProduct"))

    def get_value(self, time, manager) -> float:
        acc = 1.0
        for w, n in self.terms:
            acc *= n.get_value(time, manager) ** w
        return acc ** (1.0 / self.total_weight)

    def get_vector(self, start, count, manager) -> np.ndarray:
        acc = np.ones(int(count), dtype=np.float64)
        for w, n in self.terms:
            acc *= n.get_vector(start, count, manager) ** w
        return acc ** (1.0 / self.total_weight)


@dataclass(frozen=True)
class Inverted(Network):
    """1 - v"""
    source: Network

    def get_value(self, time, manager) -> float:
        return 1.0 - self.source.get_value(time, manager)

    def get_vector(self, start, count, manager) -> np.ndarray:
        return 1.0 - self.source.get_vector(start, count, manager)

    def leaf_ids(self) -> List[GeneratorId]:
        return self.source.leaf_ids()

    def map_ids(self, fn) -> "Network":
        return Inverted(self.source.map_ids(fn))


def average(*terms: Tuple[float, Network]) -> WeightedAverage:
    return WeightedAverage(terms)


def product(*terms: Tuple[float, Network]) -> WeightedProduct:
    return WeightedProduct(terms)
