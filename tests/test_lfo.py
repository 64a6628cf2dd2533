import numpy as np
import pytest

from automation.context import SynthesisContext
from automation.generators.constant import Constant
from automation.generators.lfo import FREQ_RANGE, Lfo
from automation.generators.oscillators import ModSaw, ModSquare, Sine, get_oscillator
from automation.network import Leaf
from automation.receiver import Receiver


@pytest.fixture
def small():
    return SynthesisContext(sample_rate=1000)


@pytest.mark.parametrize("osc", [Sine(), ModSquare(), ModSaw()])
def test_output_stays_in_unit_range(small, osc):
    lfo = Lfo(osc, freq=3.0, modulation=0.3)
    out = lfo.get_vector(0, 2000, small.generators)
    assert out.min() >= 0.0 and out.max() <= 1.0


def test_scalar_and_vector_agree_at_constant_frequency(small):
    lfo = Lfo(freq=2.0, phase_shift=0.4)
    manager = small.generators
    out = lfo.get_vector(0, 500, manager)
    ticks = small.clock.tick_vector(0, 500)
    for i in range(0, 500, 50):
        assert out[i] == pytest.approx(lfo.get_value(ticks[i], manager), abs=1e-6)


def test_vector_starts_at_the_scalar_phase(small):
    lfo = Lfo(freq=1.5)
    manager = small.generators
    assert lfo.get_vector(240, 10, manager)[0] == pytest.approx(lfo.get_value(240, manager))


def test_sine_starts_at_midpoint(small):
    lfo = Lfo()
    assert lfo.get_value(0, small.generators) == pytest.approx(0.5)


def test_frequency_driven_by_another_generator(small):
    manager = small.generators
    rate = manager.add_generator(Constant(0.25))
    lfo_id = manager.add_generator(Lfo())
    manager.bind(lfo_id, "freq", Receiver(0.0, FREQ_RANGE, network=Leaf(rate)))
    freq = manager.get_parameter(lfo_id, "freq").get_value(0, manager)
    assert freq == pytest.approx(0.25 * (FREQ_RANGE[1] - FREQ_RANGE[0]) + FREQ_RANGE[0])
    out = manager.get_vector(lfo_id, 0, 100)
    assert out.shape == (100,)
    assert out[0] == pytest.approx(manager.get_value(lfo_id, 0))


def test_oscillator_lookup():
    assert get_oscillator("mod_saw").name == "mod_saw"
    with pytest.raises(ValueError):
        get_oscillator("triangle")


def test_mod_saw_peaks_at_modulation():
    saw = ModSaw()
    assert saw.sample(0.0, 0.25) == pytest.approx(-1.0)
    assert saw.sample(0.25 * 2 * np.pi, 0.25) == pytest.approx(1.0)
    assert saw.sample(2 * np.pi - 1e-12, 0.25) == pytest.approx(-1.0)
