import pytest
from pydantic import ValidationError

from automation.config import SAMPLE_RATE, EngineConfig
from automation.context import SynthesisContext


def test_defaults():
    config = EngineConfig()
    assert config.sample_rate == SAMPLE_RATE == 44100
    assert config.ticks_per_beat == 120
    assert config.default_us_per_beat == 500_000
    assert SynthesisContext().config == config


@pytest.mark.parametrize("fields", [
    {"sample_rate": 0},
    {"default_subdivision": 3},
    {"default_beats_per_bar": 0},
    {"tempo": 120},
])
def test_invalid_settings(fields):
    with pytest.raises(ValidationError):
        EngineConfig(**fields)


def test_context_from_config():
    ctx = SynthesisContext.from_config(EngineConfig(sample_rate=8000, default_us_per_beat=1_000_000,
                                                    default_beats_per_bar=6, default_subdivision=8))
    assert ctx.clock.sr == 8000
    assert ctx.generators.clock is ctx.clock
    assert ctx.clock.tick_to_seconds(120) == pytest.approx(1.0)
    assert ctx.time_map.meter_at(0).beats_per_bar == 6


def test_contexts_are_independent():
    a, b = SynthesisContext(), SynthesisContext()
    a.time_map.set_bpm(0, 60)
    assert b.clock.tick_to_seconds(120) == pytest.approx(0.5)
