TICKS_PER_BEAT = 120


def beats_to_ticks(beats: float, ppq: int = TICKS_PER_BEAT) -> float:
    """Quarter-note beats to ticks."""
    return float(beats) * ppq

def meter_beat_ticks(subdivision: int, ppq: int = TICKS_PER_BEAT) -> float:
    """
    Length of one meter beat in ticks. A 6/8 bar has six beats of an eighth
    note each, so the beat is half a quarter.
    """
    return beats_to_ticks(4.0 / subdivision, ppq)

def bar_ticks(beats_per_bar: int, subdivision: int, ppq: int = TICKS_PER_BEAT) -> float:
    return beats_per_bar * meter_beat_ticks(subdivision, ppq)

def bpm_to_us_per_beat(bpm: float) -> int:
    return int(round(60_000_000 / float(bpm)))

def us_per_beat_to_bpm(us_per_beat: float) -> float:
    return 60_000_000 / float(us_per_beat)
