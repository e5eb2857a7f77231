import numpy as np
import pytest

from signalcrate.vca import Vca


def type_keys(module, text):
    for ch in text:
        module.handle_input(ch)


def test_default_gain():
    assert Vca(None, 48000).gain == 1.0


def test_parses_gain():
    assert Vca("gain=0.5", 48000).gain == pytest.approx(0.5)


def test_zero_gain_silences():
    out = Vca("gain=0", 48000).process(np.ones(64))
    assert out.shape == (64,)
    assert np.all(out == 0.0)


def test_gain_is_smoothed_upwards():
    v = Vca(None, 48000)
    out = v.process(np.ones(64))
    assert out[0] == pytest.approx(0.25)
    assert np.all(np.diff(out) >= 0.0)
    assert out[-1] > out[0]
    assert out[-1] <= 1.0


def test_converges_to_input():
    v = Vca(None, 48000)
    block = np.linspace(-1.0, 1.0, 64)
    for _ in range(10):
        out = v.process(block)
    assert np.allclose(out, block, atol=1e-5)


def test_hotkey_updates_display_immediately():
    v = Vca(None, 48000)
    assert v.handle_input("-") is True
    assert v.gain == pytest.approx(1.0 - 0.01)
    assert v.display_gain == v.gain


def test_hotkey_clamps_at_one():
    v = Vca(None, 48000)
    v.handle_input("=")
    assert v.gain == 1.0


def test_unknown_key_not_handled():
    v = Vca("gain=0.5", 48000)
    assert v.handle_input("x") is False
    assert v.gain == pytest.approx(0.5)


def test_command_mode_sets_gain():
    v = Vca(None, 48000)
    type_keys(v, ":1 0.25\n")
    assert v.gain == pytest.approx(0.25)
    assert v.display_gain == pytest.approx(0.25)


def test_set_param_only_floors_at_zero():
    v = Vca(None, 48000)
    v.set_param("gain", 5.0)
    assert v.gain == 5.0
    v.set_param("gain", -2.0)
    assert v.gain == 0.0


def test_set_param_unknown_raises():
    with pytest.raises(ValueError):
        Vca(None, 48000).set_param("volume", 1.0)


def test_control_input_modulates_gain():
    v = Vca("gain=0.5", 48000)
    v.attach_control("gain", lambda: 1.0)
    v.process(np.zeros(8))
    assert v.display_gain == 1.0


def test_draw_ui():
    v = Vca(None, 48000)
    v.handle_input("-")
    lines = v.draw_ui()
    assert lines[0] == "[VCA:vca] Gain: 0.99"
    assert len(lines) == 3