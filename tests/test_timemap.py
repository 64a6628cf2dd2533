import numpy as np
import pytest

from sequencing.clock import Clock
from sequencing.durations import bpm_to_us_per_beat, meter_beat_ticks
from sequencing.timemap import Meter, Tempo, TimeIndex, TimeMap


def test_defaults_apply_before_any_breakpoint(clock):
    assert clock.tick_to_seconds(0) == 0.0
    assert clock.tick_to_seconds(120) == pytest.approx(0.5)
    assert clock.tick_to_seconds(TimeIndex(240)) == pytest.approx(1.0)


def test_tempo_segments_accumulate():
    tm = TimeMap()
    tm.set_bpm(240, 60)
    clock = Clock(tm)
    assert clock.tick_to_seconds(240) == pytest.approx(1.0)
    assert clock.tick_to_seconds(360) == pytest.approx(2.0)
    assert clock.seconds_to_tick(2.0).tick == pytest.approx(360)
    assert clock.seconds_to_tick(0.5).tick == pytest.approx(120)


def test_last_write_at_a_tick_wins():
    tm = TimeMap()
    tm.set_tempo(0, 1_000_000)
    tm.set_tempo(0, 250_000)
    assert tm.tempi == [Tempo(0, 250_000)]
    tm.set_meter(0, 3, 4)
    tm.set_meter(0, 6, 8)
    assert tm.meters == [Meter(0, 6, 8)]


def test_meter_changes_do_not_touch_tempo():
    tm = TimeMap()
    tm.set_meter(480, 3, 4)
    assert len(tm.tempo_segments()) == 1
    assert Clock(tm).tick_to_seconds(480) == pytest.approx(2.0)


def test_invalid_breakpoints_are_rejected():
    tm = TimeMap()
    with pytest.raises(ValueError):
        tm.set_tempo(0, 0)
    with pytest.raises(ValueError):
        tm.set_tempo(-1, 500_000)
    with pytest.raises(ValueError):
        tm.set_meter(0, 0, 4)
    assert tm.tempi == [] and tm.meters == []


def test_clock_follows_time_map_edits():
    tm = TimeMap()
    clock = Clock(tm)
    assert clock.tick_to_seconds(240) == pytest.approx(1.0)
    tm.set_bpm(0, 60)
    assert clock.tick_to_seconds(240) == pytest.approx(2.0)


def test_duration_to_samples(clock):
    assert clock.duration_to_samples(0, 120) == 22050
    # reversed span is a defined boundary: negative count
    assert clock.duration_to_samples(120, 0) == -22050


def test_tick_vector_is_one_tick_per_sample(clock):
    ticks = clock.tick_vector(0, 4)
    np.testing.assert_allclose(ticks, np.arange(4) * 240 / 44100)
    shifted = clock.tick_vector(120, 3)
    assert shifted[0] == pytest.approx(120)


def test_bar_beat_tick_round_trip():
    tm = TimeMap()
    assert tm.position(2, 1).tick == 1080
    assert tm.bar_beat_tick(1090) == (2, 1, 10.0)

    tm.set_meter(960, 6, 8)
    assert meter_beat_ticks(8) == 60
    assert tm.position(3).tick == 1320
    assert tm.bar_beat_tick(1390) == (3, 1, 10.0)


def test_bpm_conversion():
    assert bpm_to_us_per_beat(120) == 500_000
    assert Tempo(0, 500_000).bpm == pytest.approx(120)


def test_tempo_lookup():
    tm = TimeMap()
    tm.set_bpm(480, 60)
    assert tm.tempo_at(0).bpm == pytest.approx(120)
    assert tm.tempo_at(TimeIndex(480)).bpm == pytest.approx(60)
    assert tm.tempo_at(10_000).us_per_beat == 1_000_000
