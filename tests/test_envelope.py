import numpy as np
import pytest

from automation.context import SynthesisContext
from automation.errors import GeneratorTypeError
from automation.generators.constant import Constant
from automation.generators.envelope import Envelope


@pytest.fixture
def small():
    return SynthesisContext(sample_rate=1000)


def lengths(env, ctx):
    clock = ctx.clock
    a = clock.seconds_to_samples(env.attack.get_value(0))
    d = clock.seconds_to_samples(env.decay.get_value(0))
    r = clock.seconds_to_samples(env.release.get_value(0))
    return a, d, r


def test_full_note_shape(small):
    env = Envelope(attack=0.5, decay=1.0, sustain=0.5, release=1.0)
    a, d, r = lengths(env, small)
    assert a > 0 and d > 0 and r > 0
    out = env.get_envelope(0, a + d + 50, small.generators)
    assert out.shape == (a + d + 50 + r,)
    assert out[0] == 0.0
    assert out.max() <= 1.0 and out.min() >= 0.0
    np.testing.assert_allclose(out[a + d:a + d + 50], env.sustain.get_value(0))
    assert out[a + d + 50] == pytest.approx(env.sustain.get_value(0))
    assert out[-1] == pytest.approx(env.sustain.get_value(0) / r)


def test_zero_gate_still_plays_attack_decay_release(small):
    env = Envelope(attack=0.5, decay=1.0, sustain=0.5, release=1.0)
    a, d, r = lengths(env, small)
    out = env.get_envelope(0, 0, small.generators)
    assert out.shape == (a + d + r,)
    # release starts from where the decay stopped
    assert out[a + d] == pytest.approx(out[a + d - 1])


def test_truncate_cuts_at_the_gate(small):
    env = Envelope(attack=0.5, decay=1.0, sustain=0.5, release=1.0, truncate=True)
    a, d, r = lengths(env, small)
    gate = a // 2
    out = env.get_envelope(0, gate, small.generators)
    assert out.shape == (gate + r,)
    assert out[gate] == pytest.approx(out[gate - 1])
    assert out[gate - 1] < 0.6

    silent = env.get_envelope(0, 0, small.generators)
    assert silent.shape == (r,)
    assert not silent.any()


def test_half_life_decays_the_sustain(small):
    env = Envelope(attack=0.0, decay=0.0, sustain=0.8, release=0.0, half_life=0.5)
    hl = env.half_life.get_value(0)
    out = env.get_envelope(0, 1000, small.generators)
    assert out.shape == (1000,)
    assert out[0] == pytest.approx(0.8)
    assert out[400] == pytest.approx(0.8 * 0.5 ** (400 / (hl * 1000)))
    assert np.all(np.diff(out) < 0)


def test_instant_envelope_releases_from_sustain(small):
    env = Envelope(attack=0.0, decay=0.0, sustain=0.6, release=1.0)
    out = env.get_envelope(0, 0, small.generators)
    assert out[0] == pytest.approx(0.6)


def test_vector_is_a_note_held_through_the_window(small):
    env = Envelope.ad(0.5, 1.0)
    out = env.get_vector(0, 300, small.generators)
    assert out.shape == (300,)


def test_envelope_has_no_single_value(manager):
    with pytest.raises(GeneratorTypeError):
        Envelope().get_value(0, manager)


def test_manager_get_envelope_checks_the_variant(manager):
    env_id = manager.add_generator(Envelope.decay_only(0.5))
    const_id = manager.add_generator(Constant(0.5))
    assert manager.get_envelope(env_id, 0, 100)[0] == pytest.approx(1.0)
    with pytest.raises(GeneratorTypeError):
        manager.get_envelope(const_id, 0, 100)
