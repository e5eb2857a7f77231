import random

import numpy as np
import pytest

from signalcrate.noise_source import BrownNoise, NoiseSource, NoiseType, PinkFilter


def type_keys(module, text):
    for ch in text:
        module.handle_input(ch)


def test_pink_filter_at_reference_rate_uses_table():
    pf = PinkFilter(44100.0)
    assert pf.a[0] == pytest.approx(0.99886)
    assert pf.a[5] == pytest.approx(0.7616)
    assert pf.g[5] < 0.0
    assert pf.g[6] == pytest.approx(0.115926)


def test_pink_filter_poles_stable_at_other_rate():
    pf = PinkFilter(96000.0)
    assert all(0.0 < a < 1.0 for a in pf.a)


def test_pink_filter_zero_in_zero_out():
    pf = PinkFilter(48000.0)
    assert [pf.process(0.0) for _ in range(10)] == [0.0] * 10


def test_brown_noise_clamps():
    b = BrownNoise()
    assert b.process(100.0) == pytest.approx(3.0)
    assert b.last == 1.0
    assert b.process(-1000.0) == pytest.approx(-3.0)


def test_brown_noise_stays_bounded():
    b = BrownNoise()
    rng = random.Random(7)
    values = [b.process(rng.uniform(-1, 1)) for _ in range(1000)]
    assert max(abs(v) for v in values) <= 3.0


def test_defaults():
    n = NoiseSource(None, 48000)
    assert n.amplitude == 0.5
    assert n.noise_type == NoiseType.WHITE


def test_parses_args():
    n = NoiseSource("amp=0.8 type=pink", 48000)
    assert n.amplitude == pytest.approx(0.8)
    assert n.noise_type == NoiseType.PINK


def test_unknown_type_keeps_white():
    assert NoiseSource("type=purple", 48000).noise_type == NoiseType.WHITE


def test_amp_clamped_at_creation():
    assert NoiseSource("amp=3", 48000).amplitude == 1.0


def test_white_output_within_amplitude():
    n = NoiseSource("amp=1", 48000)
    for _ in range(5):
        out = n.process(np.zeros(64))
        assert out.shape == (64,)
        assert np.all(np.abs(out) <= n.display_amp + 1e-6)


def test_seeded_output_is_reproducible():
    random.seed(1234)
    a = NoiseSource("type=brown", 48000).process(np.zeros(32))
    random.seed(1234)
    b = NoiseSource("type=brown", 48000).process(np.zeros(32))
    assert np.array_equal(a, b)


def test_hotkey_cycles_type():
    n = NoiseSource(None, 48000)
    n.handle_input("n")
    assert n.noise_type == NoiseType.PINK
    n.handle_input("n")
    n.handle_input("n")
    assert n.noise_type == NoiseType.WHITE


def test_command_mode():
    n = NoiseSource(None, 48000)
    type_keys(n, ":2 4\n")
    assert n.noise_type == NoiseType(4 % 3)
    type_keys(n, ":1 0.25\n")
    assert n.amplitude == pytest.approx(0.25)


def test_set_param():
    n = NoiseSource(None, 48000)
    n.set_param("amp", 2.0)
    assert n.amplitude == 1.0
    n.set_param("type", 0.9)
    assert n.noise_type == NoiseType.PINK
    with pytest.raises(ValueError):
        n.set_param("color", 1.0)


def test_control_input_silences():
    n = NoiseSource(None, 48000)
    n.attach_control("amp", lambda: -1.0)
    out = n.process(np.zeros(64))
    assert n.display_amp == 0.0
    assert np.all(out == 0.0)


def test_draw_ui():
    lines = NoiseSource("type=brown", 48000).draw_ui()
    assert lines[0].endswith("Type: Brown")
    assert "noise_source" in lines[0]