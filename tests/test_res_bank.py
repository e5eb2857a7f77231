import math

import numpy as np
import pytest

from signalcrate.res_bank import RES_MAX_BANDS, ResBank, soft_sat


def type_keys(module, text):
    for ch in text:
        module.handle_input(ch)


def test_defaults():
    bank = ResBank()
    assert bank.mix == pytest.approx(0.5)
    assert bank.q == pytest.approx(12.0)
    assert bank.lo_hz == pytest.approx(120.0)
    assert bank.hi_hz == pytest.approx(6000.0)
    assert bank.bands == 12
    assert bank.name == "res_bank"


def test_args_are_parsed_and_clamped():
    bank = ResBank("lo=500 hi=100 bands=100 q=0.1", 48000.0)
    assert bank.lo_hz == pytest.approx(500.0)
    assert bank.hi_hz == pytest.approx(501.0)
    assert bank.bands == RES_MAX_BANDS
    assert bank.q == pytest.approx(0.3)


def test_bands_lower_limit():
    assert ResBank("bands=0").bands == 1


def test_soft_sat_properties():
    assert soft_sat(0.0, 0.7) == 0.0
    assert soft_sat(1.0, 0.0) == pytest.approx(0.5)
    for x in (-5.0, -0.3, 0.2, 9.0):
        assert soft_sat(-x, 0.4) == pytest.approx(-soft_sat(x, 0.4))
        assert abs(soft_sat(x, 1.0)) < 1.0


def test_zero_mix_passes_input_through():
    bank = ResBank("mix=0")
    block = np.linspace(-0.5, 0.5, 64)
    out = bank.process(block)
    assert np.allclose(out, block.astype(np.float32), atol=1e-6)


def test_output_is_bounded_and_finite():
    bank = ResBank("mix=1 drive=1 regen=1 q=40", 44100.0)
    rng = np.random.default_rng(1)
    for _ in range(9):
        bank.process(rng.uniform(-1.0, 1.0, 64))
    out = bank.process(rng.uniform(-1.0, 1.0, 64))
    assert len(out) == 64
    assert np.all(np.isfinite(out))
    assert np.all(np.abs(out) <= 1.0)


def test_nan_input_gives_zero():
    bank = ResBank()
    out = bank.process([float("nan")] * 4)
    assert out.tolist() == [0.0, 0.0, 0.0, 0.0]


def test_process_rebuilds_tables_and_centers_increase():
    bank = ResBank()
    bank.process(np.zeros(16))
    assert bank.need_centers is False
    assert bank.need_coeffs is False
    centers = bank.f[:bank.bands]
    assert all(a < b for a, b in zip(centers, centers[1:]))
    assert centers[0] >= 20.0


def test_hotkeys_change_parameters():
    bank = ResBank()
    bank.handle_input("=")
    bank.handle_input(";")
    bank.handle_input(">")
    assert bank.mix == pytest.approx(0.51)
    assert bank.bands == 11
    assert bank.drive == pytest.approx(0.21)


def test_command_sets_bands_and_flags_centers():
    bank = ResBank()
    bank.process(np.zeros(4))
    assert bank.need_centers is False
    type_keys(bank, ":5 4\n")
    assert bank.bands == 4
    assert bank.need_centers is True


def test_command_sets_mix_with_clamp():
    bank = ResBank()
    type_keys(bank, ":1 3\n")
    assert bank.mix == pytest.approx(1.0)


def test_set_param_values():
    bank = ResBank()
    bank.set_param("regen", 0.9)
    assert bank.regen == pytest.approx(0.5)
    bank.set_param("bands", 7.6)
    assert bank.bands == 8
    bank.set_param("hi", 0.0)
    assert bank.hi_hz == pytest.approx(bank.lo_hz + 1.0)
    bank.set_param("lo", 0.0)
    assert bank.lo_hz == pytest.approx(20.0)


def test_set_param_unknown_raises():
    with pytest.raises(ValueError):
        ResBank().set_param("bogus", 0.5)


def test_control_input_zero_mix_keeps_dry():
    bank = ResBank("mix=0.5")
    bank.attach_control("mix", lambda: -1.0)
    block = np.full(8, 0.25)
    out = bank.process(block)
    assert np.allclose(out, 0.25, atol=1e-6)
    assert bank.display_mix == pytest.approx(0.0)


def test_draw_ui_shows_bands_and_command():
    bank = ResBank()
    bank.process(np.zeros(4))
    lines = bank.draw_ui()
    assert lines[0].startswith("[ResBank:res_bank]")
    assert "bands:12" in lines[0]
    type_keys(bank, ":12")
    assert bank.draw_ui()[-1] == ":12"
    assert not math.isnan(bank.display_q)