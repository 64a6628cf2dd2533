"""
Hierarchical generator addresses.

An id says where a generator lives: in the global store, in a track's
store, in the store of the instrument on a track, or in one of the three
fixed per-track slots. Instrument ids can be *extracted* (track removed)
so an instrument can be authored before it knows its track, and re-attached
later with ``set_id(track)``. Ids are immutable; both calls return new ids.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from .errors import GeneratorTypeError, UnboundIdError

MAX_KEY = 255


def _check_u8(name: str, value: int) -> None:
    if not isinstance(value, int) or not 0 <= value <= MAX_KEY:
        raise ValueError(f"{name} must be an integer in [0, {MAX_KEY}], got {value!r}")


class SpecificKind(Enum):
    VELOCITY = "velocity"
    MOD_WHEEL = "mod_wheel"
    PITCH_BEND = "pitch_bend"


class ScopeKind(Enum):
    GLOBAL = "global"
    TRACK = "track"
    INSTR = "instr"


@dataclass(frozen=True)
class Scope:
    """Which store a generator is inserted into."""
    kind: ScopeKind
    track: Optional[int] = None

    def __post_init__(self):
        if self.kind is ScopeKind.GLOBAL:
            if self.track is not None:
                raise ValueError("the global scope has no track")
        else:
            _check_u8("track", self.track)

    @classmethod
    def of_track(cls, track: int) -> "Scope":
        return cls(ScopeKind.TRACK, track)

    @classmethod
    def of_instr(cls, track: int) -> "Scope":
        return cls(ScopeKind.INSTR, track)

    def id_for(self, key: int) -> "GeneratorId":
        if self.kind is ScopeKind.GLOBAL:
            return Global(key)
        if self.kind is ScopeKind.TRACK:
            return Track(self.track, key)
        return Instr(self.track, key)


GLOBAL_SCOPE = Scope(ScopeKind.GLOBAL)


class _IdBase:
    """Shared behaviour of all id variants."""

    @property
    def is_bound(self) -> bool:
        return True

    def extract(self) -> "GeneratorId":
        raise GeneratorTypeError(f"{self} cannot be extracted from its track")

    def set_id(self, track: int) -> "GeneratorId":
        return self


@dataclass(frozen=True)
class Global(_IdBase):
    slot: int

    def __post_init__(self):
        _check_u8("slot", self.slot)


@dataclass(frozen=True)
class Track(_IdBase):
    track: int
    slot: int

    def __post_init__(self):
        _check_u8("track", self.track)
        _check_u8("slot", self.slot)

    def set_id(self, track: int) -> "GeneratorId":
        return Track(track, self.slot)


@dataclass(frozen=True)
class Instr(_IdBase):
    track: int
    slot: int

    def __post_init__(self):
        _check_u8("track", self.track)
        _check_u8("slot", self.slot)

    def extract(self) -> "GeneratorId":
        return InstrExtracted(self.slot)

    def set_id(self, track: int) -> "GeneratorId":
        return Instr(track, self.slot)


@dataclass(frozen=True)
class InstrExtracted(_IdBase):
    slot: int

    def __post_init__(self):
        _check_u8("slot", self.slot)

    @property
    def is_bound(self) -> bool:
        return False

    def extract(self) -> "GeneratorId":
        return self

    def set_id(self, track: int) -> "GeneratorId":
        return Instr(track, self.slot)


@dataclass(frozen=True)
class Specific(_IdBase):
    track: int
    kind: SpecificKind

    def __post_init__(self):
        _check_u8("track", self.track)

    def extract(self) -> "GeneratorId":
        return SpecificExtracted(self.kind)

    def set_id(self, track: int) -> "GeneratorId":
        return Specific(track, self.kind)


@dataclass(frozen=True)
class SpecificExtracted(_IdBase):
    kind: SpecificKind

    @property
    def is_bound(self) -> bool:
        return False

    def extract(self) -> "GeneratorId":
        return self

    def set_id(self, track: int) -> "GeneratorId":
        return Specific(track, self.kind)


@dataclass(frozen=True)
class Unbound(_IdBase):
    """Id of a generator that has not been stored yet."""

    @property
    def is_bound(self) -> bool:
        return False

    def extract(self) -> "GeneratorId":
        raise UnboundIdError(self)

    def __str__(self) -> str:
        return "Unbound"


UNBOUND = Unbound()

GeneratorId = Union[Global, Track, Instr, InstrExtracted, Specific, SpecificExtracted, Unbound]
