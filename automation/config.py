"""Engine-wide settings."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sequencing.clock import SR
from sequencing.durations import TICKS_PER_BEAT
from sequencing.timemap import DEFAULT_US_PER_BEAT

SAMPLE_RATE = SR

_SUBDIVISIONS = (1, 2, 4, 8, 16, 32, 64)


class EngineConfig(BaseModel):
    sample_rate: int = Field(default=SAMPLE_RATE, gt=0)
    ticks_per_beat: int = Field(default=TICKS_PER_BEAT, gt=0)
    default_us_per_beat: int = Field(default=DEFAULT_US_PER_BEAT, gt=0)
    default_beats_per_bar: int = Field(default=4, ge=1, le=255)
    default_subdivision: int = 4

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("default_subdivision")
    @classmethod
    def _power_of_two(cls, value: int) -> int:
        if value not in _SUBDIVISIONS:
            raise ValueError(f"subdivision must be a power of two up to 64, got {value}")
        return value
