"""
Save and restore a SynthesisContext as JSON.

Generators are written with their ids, so networks (which only hold ids)
point at the same generators after a reload.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from .config import EngineConfig
from .context import SynthesisContext
from .generators.base import Generator
from .generators.constant import Constant
from .generators.envelope import HALF_LIFE_RANGE, Envelope
from .generators.lfo import Lfo
from .generators.oscillators import get_oscillator
from .generators.point_defined import Interpolation, PointDefined
from .ids import (UNBOUND, Global, GeneratorId, Instr, InstrExtracted, Specific,
                  SpecificExtracted, SpecificKind, Track)
from .network import Inverted, Leaf, Network, WeightedAverage, WeightedProduct
from .receiver import Receiver, Transform

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1

IdKind = Literal["global", "track", "instr", "instr_extracted",
                 "specific", "specific_extracted", "unbound"]


class IdModel(BaseModel):
    kind: IdKind
    track: Optional[int] = None
    slot: Optional[int] = None
    specific: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @classmethod
    def from_id(cls, gen_id: GeneratorId) -> "IdModel":
        if isinstance(gen_id, Global):
            return cls(kind="global", slot=gen_id.slot)
        if isinstance(gen_id, Track):
            return cls(kind="track", track=gen_id.track, slot=gen_id.slot)
        if isinstance(gen_id, Instr):
            return cls(kind="instr", track=gen_id.track, slot=gen_id.slot)
        if isinstance(gen_id, InstrExtracted):
            return cls(kind="instr_extracted", slot=gen_id.slot)
        if isinstance(gen_id, Specific):
            return cls(kind="specific", track=gen_id.track, specific=gen_id.kind.value)
        if isinstance(gen_id, SpecificExtracted):
            return cls(kind="specific_extracted", specific=gen_id.kind.value)
        return cls(kind="unbound")

    def to_id(self) -> GeneratorId:
        if self.kind == "global":
            return Global(self.slot)
        if self.kind == "track":
            return Track(self.track, self.slot)
        if self.kind == "instr":
            return Instr(self.track, self.slot)
        if self.kind == "instr_extracted":
            return InstrExtracted(self.slot)
        if self.kind == "specific":
            return Specific(self.track, SpecificKind(self.specific))
        if self.kind == "specific_extracted":
            return SpecificExtracted(SpecificKind(self.specific))
        return UNBOUND


class NetworkModel(BaseModel):
    kind: Literal["leaf", "average", "product", "inverted"]
    id: Optional[IdModel] = None
    terms: Optional[List[Tuple[float, "NetworkModel"]]] = None
    source: Optional["NetworkModel"] = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @classmethod
    def from_network(cls, network: Network) -> "NetworkModel":
        if isinstance(network, Leaf):
            return cls(kind="leaf", id=IdModel.from_id(network.id))
        if isinstance(network, Inverted):
            return cls(kind="inverted", source=cls.from_network(network.source))
        kind = "average" if isinstance(network, WeightedAverage) else "product"
        return cls(kind=kind, terms=[(w, cls.from_network(n)) for w, n in network.terms])

    def to_network(self) -> Network:
        if self.kind == "leaf":
            return Leaf(self.id.to_id())
        if self.kind == "inverted":
            return Inverted(self.source.to_network())
        terms = [(w, n.to_network()) for w, n in self.terms]
        if self.kind == "average":
            return WeightedAverage(terms)
        return WeightedProduct(terms)


NetworkModel.model_rebuild()


class ReceiverModel(BaseModel):
    value: float
    range: Tuple[float, float]
    transform: str = Transform.LINEAR.value
    network: Optional[NetworkModel] = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @classmethod
    def from_receiver(cls, r: Receiver) -> "ReceiverModel":
        network = None if r.network is None else NetworkModel.from_network(r.network)
        return cls(value=r.value, range=r.range, transform=r.transform.value, network=network)

    def to_receiver(self) -> Receiver:
        network = None if self.network is None else self.network.to_network()
        return Receiver(self.value, self.range, Transform(self.transform), network)


class GeneratorModel(BaseModel):
    id: IdModel
    kind: Literal["constant", "point_defined", "envelope", "lfo"]
    params: Dict[str, ReceiverModel] = {}
    value: Optional[float] = None
    points: Optional[List[Tuple[float, float]]] = None
    interpolation: Optional[str] = None
    oscillator: Optional[str] = None
    phase_shift: Optional[float] = None
    truncate: Optional[bool] = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @classmethod
    def from_generator(cls, gen: Generator) -> "GeneratorModel":
        fields = dict(
            id=IdModel.from_id(gen.id),
            kind=gen.kind,
            params={name: ReceiverModel.from_receiver(r) for name, r in gen.receivers().items()},
        )
        if isinstance(gen, Constant):
            fields["value"] = gen.value
        elif isinstance(gen, PointDefined):
            fields["points"] = gen.points
            fields["interpolation"] = gen.interpolation.value
        elif isinstance(gen, Lfo):
            fields["oscillator"] = gen.oscillator.name
            fields["phase_shift"] = gen.phase_shift
        elif isinstance(gen, Envelope):
            fields["truncate"] = gen.truncate
        return cls(**fields)

    def to_generator(self) -> Generator:
        if self.kind == "constant":
            gen = Constant(self.value)
        elif self.kind == "point_defined":
            gen = PointDefined(self.points, Interpolation(self.interpolation))
        elif self.kind == "lfo":
            gen = Lfo(get_oscillator(self.oscillator), phase_shift=self.phase_shift or 0.0)
        else:
            half_life = HALF_LIFE_RANGE[0] if "half_life" in self.params else None
            gen = Envelope(half_life=half_life, truncate=bool(self.truncate))
        for name, model in self.params.items():
            # rejects a range or transform that differs from the parameter's
            gen.receiver(name).bind(model.to_receiver())
        return gen


class TimeMapModel(BaseModel):
    tempi: List[Tuple[int, int]] = []
    meters: List[Tuple[int, int, int]] = []

    model_config = ConfigDict(frozen=True, extra="forbid")


class Snapshot(BaseModel):
    version: Literal[1] = FORMAT_VERSION
    config: EngineConfig = EngineConfig()
    time_map: TimeMapModel = TimeMapModel()
    tracks: List[int] = []
    generators: List[GeneratorModel] = []

    model_config = ConfigDict(frozen=True, extra="forbid")


def to_snapshot(context: SynthesisContext) -> Snapshot:
    tm = context.time_map
    manager = context.generators
    return Snapshot(
        config=context.config,
        time_map=TimeMapModel(
            tempi=[(t.tick, t.us_per_beat) for t in tm.tempi],
            meters=[(m.tick, m.beats_per_bar, m.subdivision) for m in tm.meters],
        ),
        tracks=manager.tracks(),
        generators=[GeneratorModel.from_generator(g) for _, g in manager.items()],
    )


def from_snapshot(snapshot: Snapshot) -> SynthesisContext:
    context = SynthesisContext.from_config(snapshot.config)
    for tick, us_per_beat in snapshot.time_map.tempi:
        context.time_map.set_tempo(tick, us_per_beat)
    for tick, beats_per_bar, subdivision in snapshot.time_map.meters:
        context.time_map.set_meter(tick, beats_per_bar, subdivision)
    manager = context.generators
    for track in snapshot.tracks:
        manager.new_track(track)
    for model in snapshot.generators:
        manager.put_generator(model.id.to_id(), model.to_generator())
    return context


def dump(context: SynthesisContext, indent: Optional[int] = None) -> str:
    snapshot = to_snapshot(context)
    logger.info("saved %d generators on %d tracks", len(snapshot.generators), len(snapshot.tracks))
    return snapshot.model_dump_json(indent=indent)


def load(text: str) -> SynthesisContext:
    snapshot = Snapshot.model_validate_json(text)
    context = from_snapshot(snapshot)
    logger.info("loaded %d generators on %d tracks", len(snapshot.generators), len(snapshot.tracks))
    return context
