"""
Turn decoded MIDI events into automation.

Tempo and time-signature events go into the TimeMap. Controller and pitch
wheel events become step curves on their track: CC 1 drives the mod wheel
slot, pitch bend the pitch bend slot, any other CC number n track slot n.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Tuple, Union

import mido

from automation.context import SynthesisContext
from automation.errors import OutOfRangeError
from automation.generators.point_defined import Interpolation, PointDefined
from automation.ids import GeneratorId, Specific, SpecificKind, Track
from automation.store import GeneratorManager
from sequencing.timemap import TimeMap
from .messages import (CC, CC_MAX, PITCH_BEND_CENTER, PITCH_BEND_MAX, PitchBend,
                       TempoChange, TimeSignature)

logger = logging.getLogger(__name__)

MOD_WHEEL_CC = 1

TimeEvent = Union[TempoChange, TimeSignature]
TrackEvent = Union[CC, PitchBend]


def apply_tempo_events(time_map: TimeMap, events: Iterable[TimeEvent]) -> int:
    """Write tempo and meter changes into `time_map`; returns how many were applied."""
    n = 0
    for ev in events:
        if isinstance(ev, TempoChange):
            time_map.set_tempo(ev.tick, ev.us_per_beat)
        elif isinstance(ev, TimeSignature):
            time_map.set_meter(ev.tick, ev.numerator, ev.denominator)
        else:
            continue
        n += 1
    logger.info("applied %d tempo/meter events", n)
    return n


def _curves(events: Iterable[TrackEvent]) -> Dict[GeneratorId, List[Tuple[int, float]]]:
    """Normalised points per target slot, keyed by a placeholder track 0 id."""
    curves: Dict[GeneratorId, List[Tuple[int, float]]] = defaultdict(list)
    for ev in sorted(events, key=lambda e: e.tick):
        if isinstance(ev, CC):
            if not 0 <= ev.control <= CC_MAX:
                raise OutOfRangeError(ev.control, (0, CC_MAX), "controller number")
            if not 0 <= ev.value <= CC_MAX:
                raise OutOfRangeError(ev.value, (0, CC_MAX), "controller value")
            if ev.control == MOD_WHEEL_CC:
                target = Specific(0, SpecificKind.MOD_WHEEL)
            else:
                target = Track(0, ev.control)
            curves[target].append((ev.tick, ev.value / CC_MAX))
        elif isinstance(ev, PitchBend):
            if not 0 <= ev.value <= PITCH_BEND_MAX:
                raise OutOfRangeError(ev.value, (0, PITCH_BEND_MAX), "pitch bend")
            curves[Specific(0, SpecificKind.PITCH_BEND)].append((ev.tick, ev.value / PITCH_BEND_MAX))
    return curves


def build_track_automation(manager: GeneratorManager, track: int,
                           events: Iterable[TrackEvent]) -> List[GeneratorId]:
    """
    Create `track` if needed and fill its mod wheel, pitch bend and
    per-controller slots from `events`. Slots that already hold a
    generator are replaced. Returns the ids written.
    """
    curves = _curves(events)
    staged = [(gen_id.set_id(track), PointDefined(points, Interpolation.STEP))
              for gen_id, points in curves.items()]
    if not manager.has_track(track):
        manager.new_track(track)
    for gen_id, gen in staged:
        manager.put_generator(gen_id, gen)
    logger.info("track %d: %d automation curves from MIDI", track, len(staged))
    return [gen_id for gen_id, _ in staged]


def read_events(midi_file: Union[str, mido.MidiFile], ticks_per_beat: int = None
                ) -> Tuple[List[TimeEvent], Dict[int, List[TrackEvent]]]:
    """
    Decode a standard MIDI file into tempo/meter events and per-track
    controller events. Ticks are rescaled to `ticks_per_beat` when given.
    """
    mid = midi_file if isinstance(midi_file, mido.MidiFile) else mido.MidiFile(midi_file)
    scale = 1.0 if ticks_per_beat is None else ticks_per_beat / mid.ticks_per_beat
    time_events: List[TimeEvent] = []
    track_events: Dict[int, List[TrackEvent]] = {}
    for index, midi_track in enumerate(mid.tracks):
        now = 0
        out: List[TrackEvent] = []
        for msg in midi_track:
            now += msg.time
            tick = int(round(now * scale))
            if msg.type == 'set_tempo':
                time_events.append(TempoChange(tick, msg.tempo))
            elif msg.type == 'time_signature':
                time_events.append(TimeSignature(tick, msg.numerator, msg.denominator))
            elif msg.type == 'control_change':
                out.append(CC(msg.control, msg.value, msg.channel, tick))
            elif msg.type == 'pitchwheel':
                out.append(PitchBend(msg.pitch + PITCH_BEND_CENTER, msg.channel, tick))
        if out:
            track_events[index] = out
    return time_events, track_events


def load_midi_file(context: SynthesisContext, midi_file: Union[str, mido.MidiFile]) -> List[int]:
    """Import the tempo map and all controller automation of a MIDI file."""
    time_events, track_events = read_events(midi_file, context.time_map.ticks_per_beat)
    apply_tempo_events(context.time_map, time_events)
    for track, events in track_events.items():
        build_track_automation(context.generators, track, events)
    return sorted(track_events)
