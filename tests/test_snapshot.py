import json

import pytest
from pydantic import ValidationError

from automation import snapshot
from automation.config import EngineConfig
from automation.context import SynthesisContext
from automation.errors import CircularReferenceError, ExistenceError, RangeMismatchError
from automation.generators.constant import Constant
from automation.generators.envelope import Envelope
from automation.generators.lfo import FREQ_RANGE, Lfo
from automation.generators.oscillators import ModSaw
from automation.generators.point_defined import Interpolation, PointDefined
from automation.ids import Global, Scope, Specific, SpecificKind
from automation.network import Inverted, Leaf, average
from automation.receiver import Receiver


@pytest.fixture
def song():
    ctx = SynthesisContext.from_config(EngineConfig(sample_rate=22050, ticks_per_beat=96))
    ctx.time_map.set_bpm(0, 90)
    ctx.time_map.set_meter(384, 3, 4)
    m = ctx.generators
    depth = m.add_generator(Constant(0.4))
    lfo = m.add_generator(Lfo(ModSaw(), freq=3.0, phase_shift=1.0))
    m.bind(lfo, "freq", Receiver(0.1, FREQ_RANGE, network=Inverted(Leaf(depth))))
    m.new_track(2)
    m.set_const(Specific(2, SpecificKind.VELOCITY), 0.8)
    m.add_generator(PointDefined([(0, 0.0), (96, 1.0)], Interpolation.SMOOTH), Scope.of_track(2))
    env = m.add_generator(Envelope(half_life=2.0, truncate=True), Scope.of_instr(2))
    m.bind(env, "sustain", Receiver(0.5, network=average((1.0, Leaf(lfo)), (2.0, Leaf(depth)))))
    return ctx


def test_round_trip_keeps_ids_and_values(song):
    text = snapshot.dump(song)
    loaded = snapshot.load(text)
    assert loaded.config == song.config
    assert loaded.time_map.tempi == song.time_map.tempi
    assert loaded.time_map.meters == song.time_map.meters
    assert loaded.generators.tracks() == [2]

    before = dict(song.generators.items())
    after = dict(loaded.generators.items())
    assert list(after) == list(before)
    for gen_id, gen in before.items():
        if gen.kind == "envelope":
            assert (loaded.generators.get_envelope(gen_id, 96, 100).tolist()
                    == song.generators.get_envelope(gen_id, 96, 100).tolist())
        else:
            assert loaded.generators.get_value(gen_id, 150) == song.generators.get_value(gen_id, 150)
    assert snapshot.dump(loaded) == text


def test_cycle_checks_still_apply_after_load(song):
    loaded = snapshot.load(snapshot.dump(song))
    with pytest.raises(CircularReferenceError):
        loaded.generators.bind(Global(1), "modulation", Receiver(0.0, network=Leaf(Global(1))))


def test_bad_documents_are_rejected():
    with pytest.raises(ValidationError):
        snapshot.load('{"version": 2}')
    with pytest.raises(ValidationError):
        snapshot.load('{"config": {"sample_rate": -1}}')


def lfo_entry(doc):
    return next(g for g in doc["generators"] if g["kind"] == "lfo")


def test_parameter_ranges_are_checked_on_load(song):
    doc = json.loads(snapshot.dump(song))
    lfo_entry(doc)["params"]["freq"]["range"] = [0.0, 1e6]
    with pytest.raises(RangeMismatchError):
        snapshot.load(json.dumps(doc))


def test_unknown_parameters_are_rejected_on_load(song):
    doc = json.loads(snapshot.dump(song))
    entry = lfo_entry(doc)
    entry["params"]["attack"] = entry["params"]["modulation"]
    with pytest.raises(ExistenceError):
        snapshot.load(json.dumps(doc))


def test_cyclic_documents_are_rejected(song):
    doc = json.loads(snapshot.dump(song))
    entry = lfo_entry(doc)
    entry["params"]["modulation"]["network"] = {"kind": "leaf", "id": entry["id"]}
    with pytest.raises(CircularReferenceError):
        snapshot.load(json.dumps(doc))

    doc = json.loads(snapshot.dump(song))
    envelope = next(g for g in doc["generators"] if g["kind"] == "envelope")
    lfo_entry(doc)["params"]["modulation"]["network"] = {"kind": "leaf", "id": envelope["id"]}
    with pytest.raises(CircularReferenceError):
        snapshot.load(json.dumps(doc))
