import mido
import pytest

from automation.errors import OutOfRangeError
from automation.ids import Specific, SpecificKind, Track
from midi.automation import (apply_tempo_events, build_track_automation, load_midi_file,
                             read_events)
from midi.messages import CC, PitchBend, TempoChange, TimeSignature
from sequencing.timemap import Meter, Tempo


def test_tempo_events_fill_the_time_map(ctx):
    n = apply_tempo_events(ctx.time_map, [TempoChange(0, 1_000_000), TimeSignature(480, 3, 4)])
    assert n == 2
    assert ctx.time_map.tempi == [Tempo(0, 1_000_000)]
    assert ctx.time_map.meters == [Meter(480, 3, 4)]
    assert ctx.clock.tick_to_seconds(120) == pytest.approx(1.0)


def test_controllers_become_step_curves(manager):
    ids = build_track_automation(manager, 2, [
        CC(1, 127, tick=0), CC(1, 0, tick=120), CC(7, 64, tick=0), PitchBend(16383, tick=60),
    ])
    mod = Specific(2, SpecificKind.MOD_WHEEL)
    bend = Specific(2, SpecificKind.PITCH_BEND)
    assert set(ids) == {mod, Track(2, 7), bend}
    assert manager.get_value(mod, 0) == 1.0
    assert manager.get_value(mod, 119) == 1.0
    assert manager.get_value(mod, 120) == 0.0
    assert manager.get_value(Track(2, 7), 500) == pytest.approx(64 / 127)
    assert manager.get_value(bend, 0) == 1.0
    assert manager.get_value(Specific(2, SpecificKind.VELOCITY), 0) == 0.0


def test_bad_controller_values_leave_no_trace(manager):
    with pytest.raises(OutOfRangeError):
        build_track_automation(manager, 3, [CC(7, 10), CC(7, 200, tick=10)])
    assert manager.tracks() == []


def midi_file():
    mid = mido.MidiFile(ticks_per_beat=480)
    meta = mido.MidiTrack()
    meta.append(mido.MetaMessage('set_tempo', tempo=1_000_000, time=0))
    meta.append(mido.MetaMessage('time_signature', numerator=3, denominator=4, time=0))
    notes = mido.MidiTrack()
    notes.append(mido.Message('control_change', control=1, value=64, time=480))
    notes.append(mido.Message('pitchwheel', pitch=0, time=480))
    mid.tracks.extend([meta, notes])
    return mid


def test_read_events_rescales_ticks():
    time_events, track_events = read_events(midi_file(), ticks_per_beat=120)
    assert time_events == [TempoChange(0, 1_000_000), TimeSignature(0, 3, 4)]
    assert track_events == {1: [CC(1, 64, 0, 120), PitchBend(8192, 0, 240)]}


def test_load_midi_file(ctx):
    assert load_midi_file(ctx, midi_file()) == [1]
    assert ctx.time_map.tempi == [Tempo(0, 1_000_000)]
    manager = ctx.generators
    assert manager.get_value(Specific(1, SpecificKind.MOD_WHEEL), 120) == pytest.approx(64 / 127)
    assert manager.get_value(Specific(1, SpecificKind.PITCH_BEND), 240) == pytest.approx(8192 / 16383)
