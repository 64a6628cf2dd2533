"""
Scoped generator storage.

Every generator lives in exactly one slot: the global store, the track or
instrument store of a track, or one of the track's three specific slots.
The slot and the generator's id are always kept in sync; nothing outside
the manager holds a generator, everything refers to it by id.
"""
from __future__ import annotations

import copy
import logging
import threading
from typing import Callable, Dict, Iterator, List, Optional, Tuple

import numpy as np

from sequencing.clock import Clock
from sequencing.timemap import TimeLike
from .errors import (CircularReferenceError, ExistenceError, GeneratorTypeError, OverwriteError,
                     StoreOverflowError, UnboundIdError)
from .generators.base import Generator
from .generators.constant import Constant
from .generators.envelope import Envelope
from .generators.point_defined import PointDefined
from .ids import (GLOBAL_SCOPE, MAX_KEY, Global, GeneratorId, Instr, InstrExtracted,
                  Scope, ScopeKind, Specific, SpecificKind, Track)
from .receiver import Receiver

logger = logging.getLogger(__name__)


def _free_key(keys) -> Optional[int]:
    for key in range(MAX_KEY + 1):
        if key not in keys:
            return key
    return None


def _check_acyclic(staged: Dict[GeneratorId, Generator],
                   resolve: Callable[[GeneratorId], Generator]) -> None:
    """
    Raise CircularReferenceError if any generator about to be placed would
    depend on its own slot. `staged` maps target ids to the incoming
    generators and shadows whatever `resolve` finds at those ids.
    """
    for gen_id, gen in staged.items():
        seen = set()
        todo = list(gen.get_sub_ids())
        while todo:
            dep = todo.pop()
            if dep == gen_id:
                logger.warning("rejected insert at %s: circular reference", gen_id)
                raise CircularReferenceError(gen_id)
            if dep in seen:
                continue
            seen.add(dep)
            try:
                todo.extend((staged[dep] if dep in staged else resolve(dep)).get_sub_ids())
            except (ExistenceError, UnboundIdError):
                pass


class GeneratorStore:
    """Up to 256 generators of one scope, keyed by slot."""

    def __init__(self, scope: Scope):
        self.scope = scope
        self._gens: Dict[int, Generator] = {}

    def __len__(self) -> int:
        return len(self._gens)

    def __contains__(self, key: int) -> bool:
        return key in self._gens

    def keys(self) -> List[int]:
        return sorted(self._gens)

    def items(self) -> Iterator[Tuple[int, Generator]]:
        for key in self.keys():
            yield key, self._gens[key]

    def get(self, key: int) -> Generator:
        try:
            return self._gens[key]
        except KeyError:
            raise ExistenceError(f"no generator in slot of {self.scope}", key) from None

    def place(self, key: int, gen: Generator) -> GeneratorId:
        """Store `gen` at `key`, replacing whatever was there."""
        gen_id = self.scope.id_for(key)
        gen.set_id(gen_id)
        self._gens[key] = gen
        return gen_id

    def next_key(self) -> int:
        key = _free_key(self._gens)
        if key is None:
            raise StoreOverflowError(self.scope)
        return key

    def check_free(self, key: int) -> None:
        if key in self._gens:
            raise OverwriteError(f"slot already taken in {self.scope}", key)


class StoreBuilder:
    """
    Instrument generators collected before the instrument has a track.
    Ids handed out are ``InstrExtracted``; the manager re-binds them when
    the builder is attached to a track.
    """

    def __init__(self):
        self._gens: Dict[int, Generator] = {}

    def __len__(self) -> int:
        return len(self._gens)

    def items(self) -> Iterator[Tuple[int, Generator]]:
        for key in sorted(self._gens):
            yield key, self._gens[key]

    def _place(self, key: int, gen: Generator) -> GeneratorId:
        if gen.id.is_bound:
            raise GeneratorTypeError(f"{gen!r} is already stored at {gen.id}")
        _check_acyclic({InstrExtracted(key): gen}, self._resolve)
        gen.set_id(InstrExtracted(key))
        self._gens[key] = gen
        return gen.id

    def add(self, gen: Generator) -> GeneratorId:
        key = _free_key(self._gens)
        if key is None:
            raise StoreOverflowError("instrument builder")
        return self._place(key, gen)

    def insert(self, gen: Generator, key: int) -> GeneratorId:
        if key in self._gens:
            raise OverwriteError("slot already taken in instrument builder", key)
        return self._place(key, gen)

    def _resolve(self, gen_id: GeneratorId) -> Generator:
        if not isinstance(gen_id, InstrExtracted):
            raise ExistenceError("instrument builder only holds extracted instrument ids", gen_id)
        try:
            return self._gens[gen_id.slot]
        except KeyError:
            raise ExistenceError("no generator in instrument builder slot", gen_id.slot) from None

    def get_sub_ids(self, gen_id: GeneratorId) -> List[GeneratorId]:
        return self._resolve(gen_id).get_sub_ids()

    def bind(self, gen_id: GeneratorId, parameter: str, source: Receiver) -> None:
        self._resolve(gen_id).bind(parameter, source, self)


class TrackGenerators:
    """Everything one track owns: specific slots, track store, instrument store."""

    def __init__(self, track: int):
        self.track = track
        self.specific: Dict[SpecificKind, Generator] = {
            SpecificKind.VELOCITY: Constant(0.0),
            SpecificKind.MOD_WHEEL: PointDefined.single(0.0),
            SpecificKind.PITCH_BEND: PointDefined.single(0.5),
        }
        for kind, gen in self.specific.items():
            gen.set_id(Specific(track, kind))
        self.track_store = GeneratorStore(Scope.of_track(track))
        self.instr_store = GeneratorStore(Scope.of_instr(track))


class GeneratorManager:
    """
    Owns all generators of a song and is the only way to reach them.

    A single re-entrant lock serialises mutation and evaluation, so binding,
    inserting and rendering never overlap.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock if clock is not None else Clock()
        self.globals = GeneratorStore(GLOBAL_SCOPE)
        self._tracks: Dict[int, TrackGenerators] = {}
        self._lock = threading.RLock()

    ###########################################################################
    ##                                TRACKS                                 ##
    ###########################################################################

    def new_track(self, track: int) -> None:
        Scope.of_track(track)   # validates the track number
        with self._lock:
            if track in self._tracks:
                raise OverwriteError("track already exists", track)
            self._tracks[track] = TrackGenerators(track)
        logger.debug("created generator record for track %d", track)

    def remove_track(self, track: int) -> None:
        with self._lock:
            self._track(track)
            del self._tracks[track]
        logger.debug("removed generator record for track %d", track)

    def has_track(self, track: int) -> bool:
        return track in self._tracks

    def tracks(self) -> List[int]:
        return sorted(self._tracks)

    def _track(self, track: int) -> TrackGenerators:
        try:
            return self._tracks[track]
        except KeyError:
            raise ExistenceError("no such track", track) from None

    def _store_for(self, scope: Scope) -> GeneratorStore:
        if scope.kind is ScopeKind.GLOBAL:
            return self.globals
        record = self._track(scope.track)
        if scope.kind is ScopeKind.TRACK:
            return record.track_store
        return record.instr_store

    ###########################################################################
    ##                              RESOLUTION                               ##
    ###########################################################################

    def _resolve(self, gen_id: GeneratorId) -> Generator:
        if isinstance(gen_id, Global):
            return self.globals.get(gen_id.slot)
        if isinstance(gen_id, Track):
            return self._track(gen_id.track).track_store.get(gen_id.slot)
        if isinstance(gen_id, Instr):
            return self._track(gen_id.track).instr_store.get(gen_id.slot)
        if isinstance(gen_id, Specific):
            return self._track(gen_id.track).specific[gen_id.kind]
        raise UnboundIdError(gen_id)

    def items(self) -> Iterator[Tuple[GeneratorId, Generator]]:
        """Every stored generator with its id, globals first."""
        with self._lock:
            out = [(g.id, g) for _, g in self.globals.items()]
            for track in self.tracks():
                record = self._tracks[track]
                out.extend((g.id, g) for g in record.specific.values())
                out.extend((g.id, g) for _, g in record.track_store.items())
                out.extend((g.id, g) for _, g in record.instr_store.items())
        return iter(out)

    def kind_of(self, gen_id: GeneratorId) -> str:
        with self._lock:
            return self._resolve(gen_id).kind

    def get_sub_ids(self, gen_id: GeneratorId) -> List[GeneratorId]:
        with self._lock:
            return self._resolve(gen_id).get_sub_ids()

    ###########################################################################
    ##                               INSERTION                               ##
    ###########################################################################

    @staticmethod
    def _check_unstored(gen: Generator) -> None:
        if gen.id.is_bound:
            raise GeneratorTypeError(f"{gen!r} is already stored at {gen.id}")

    def add_generator(self, gen: Generator, scope: Scope = GLOBAL_SCOPE) -> GeneratorId:
        """Store `gen` in the first free slot of `scope` and return its id."""
        self._check_unstored(gen)
        with self._lock:
            store = self._store_for(scope)
            key = store.next_key()
            gen_id = scope.id_for(key)
            _check_acyclic({gen_id: gen}, self._resolve)
            store.place(key, gen)
        logger.debug("added %s at %s", gen.kind, gen_id)
        return gen_id

    def add_generator_with_key(self, gen: Generator, scope: Scope, key: int) -> GeneratorId:
        self._check_unstored(gen)
        with self._lock:
            store = self._store_for(scope)
            store.check_free(key)
            gen_id = scope.id_for(key)
            _check_acyclic({gen_id: gen}, self._resolve)
            store.place(key, gen)
        logger.debug("added %s at %s", gen.kind, gen_id)
        return gen_id

    def put_generator(self, gen_id: GeneratorId, gen: Generator) -> None:
        """Create or replace the generator at a bound id."""
        self._check_unstored(gen)
        with self._lock:
            if not isinstance(gen_id, (Global, Track, Instr, Specific)):
                raise UnboundIdError(gen_id)
            record = None if isinstance(gen_id, Global) else self._track(gen_id.track)
            _check_acyclic({gen_id: gen}, self._resolve)
            if isinstance(gen_id, Global):
                self.globals.place(gen_id.slot, gen)
            elif isinstance(gen_id, Track):
                record.track_store.place(gen_id.slot, gen)
            elif isinstance(gen_id, Instr):
                record.instr_store.place(gen_id.slot, gen)
            else:
                gen.set_id(gen_id)
                record.specific[gen_id.kind] = gen
        logger.debug("put %s at %s", gen.kind, gen_id)

    ###########################################################################
    ##                              EVALUATION                               ##
    ###########################################################################

    def get_value(self, gen_id: GeneratorId, time: TimeLike) -> float:
        with self._lock:
            return self._resolve(gen_id).get_value(time, self)

    def get_vector(self, gen_id: GeneratorId, start: TimeLike, count: int) -> np.ndarray:
        with self._lock:
            return self._resolve(gen_id).get_vector(start, count, self)

    def get_envelope(self, gen_id: GeneratorId, note_on: TimeLike,
                     sustain_samples: int) -> np.ndarray:
        with self._lock:
            gen = self._resolve(gen_id)
            if not isinstance(gen, Envelope):
                raise GeneratorTypeError(f"{gen_id} is a {gen.kind}, not an envelope")
            return gen.get_envelope(note_on, sustain_samples, self)

    ###########################################################################
    ##                               MUTATION                                ##
    ###########################################################################

    def set_const(self, gen_id: GeneratorId, value: float) -> None:
        with self._lock:
            gen = self._resolve(gen_id)
            if not isinstance(gen, Constant):
                raise GeneratorTypeError(f"{gen_id} is a {gen.kind}, not a constant")
            gen.set(value)

    def bind(self, gen_id: GeneratorId, parameter: str, source: Receiver) -> None:
        """Drive a parameter of the generator at `gen_id` from `source`."""
        with self._lock:
            self._resolve(gen_id).bind(parameter, source, self)

    def unbind(self, gen_id: GeneratorId, parameter: str) -> None:
        with self._lock:
            self._resolve(gen_id).receiver(parameter).unbind()

    def set_parameter(self, gen_id: GeneratorId, parameter: str, value: float) -> None:
        """Set the literal (fallback) value of a parameter, in its own units."""
        with self._lock:
            self._resolve(gen_id).receiver(parameter).set_value(value)

    def get_parameter(self, gen_id: GeneratorId, parameter: str) -> Receiver:
        """A copy of a parameter, usable as a bind source elsewhere."""
        with self._lock:
            return self._resolve(gen_id).receiver(parameter).copy()

    ###########################################################################
    ##                              INSTRUMENTS                              ##
    ###########################################################################

    def attach_instrument(self, track: int, builder: StoreBuilder) -> List[GeneratorId]:
        """
        Install the generators of `builder` as the instrument store of
        `track`. Extracted ids, including those inside parameter networks,
        are re-bound to the track. The builder itself is left untouched.
        """
        with self._lock:
            record = self._track(track)
            if len(record.instr_store):
                raise OverwriteError("track already has instrument generators", track)
            staged = []
            for key, gen in builder.items():
                gen = copy.deepcopy(gen)
                gen.set_track(track)
                staged.append((key, gen))
            _check_acyclic({Instr(track, key): gen for key, gen in staged}, self._resolve)
            ids = [record.instr_store.place(key, gen) for key, gen in staged]
        logger.info("attached %d instrument generators to track %d", len(ids), track)
        return ids

    def extract_instrument(self, track: int) -> StoreBuilder:
        """Copy the instrument store of `track` out as a track-agnostic builder."""
        builder = StoreBuilder()
        with self._lock:
            for key, gen in self._track(track).instr_store.items():
                gen = copy.deepcopy(gen)
                gen.extract()
                builder._gens[key] = gen
        return builder
