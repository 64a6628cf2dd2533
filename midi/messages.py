from dataclasses import dataclass

CC_MAX = 127
PITCH_BEND_MAX = 16383
PITCH_BEND_CENTER = 8192


@dataclass(frozen=True)
class CC:
    control: int
    value: int
    channel: int = 0
    tick: int = 0


@dataclass(frozen=True)
class PitchBend:
    """14 bit pitch wheel position, 8192 is centred."""
    value: int
    channel: int = 0
    tick: int = 0


@dataclass(frozen=True)
class TempoChange:
    tick: int
    us_per_beat: int


@dataclass(frozen=True)
class TimeSignature:
    tick: int
    numerator: int
    denominator: int
