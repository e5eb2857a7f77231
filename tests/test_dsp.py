import math

import pytest

from signalcrate.dsp import (
    SINE_TABLE_SIZE,
    Smoother,
    clamp,
    poly_blep,
    randf,
    sine_table,
    trim_whitespace,
)


def test_randf_in_unit_range():
    values = [randf() for _ in range(1000)]
    assert all(0.0 <= v <= 1.0 for v in values)
    assert len(set(values)) > 1


def test_sine_table_shape_and_values():
    table = sine_table()
    assert len(table) == SINE_TABLE_SIZE == 2048
    assert table[0] == pytest.approx(0.0, abs=1e-7)
    assert table[SINE_TABLE_SIZE // 4] == pytest.approx(1.0, abs=1e-6)
    assert table[SINE_TABLE_SIZE // 2] == pytest.approx(0.0, abs=1e-6)
    assert table[3 * SINE_TABLE_SIZE // 4] == pytest.approx(-1.0, abs=1e-6)


def test_sine_table_is_shared_and_read_only():
    assert sine_table() is sine_table()
    with pytest.raises(ValueError):
        sine_table()[0] = 2.0


def test_poly_blep_zero_away_from_edges():
    assert poly_blep(0.5, 0.1) == 0.0


def test_poly_blep_edges():
    assert poly_blep(0.0, 0.1) == pytest.approx(-1.0)
    assert poly_blep(1.0, 0.1) == pytest.approx(1.0)


def test_poly_blep_is_continuous_at_window_boundary():
    dt = 0.05
    assert poly_blep(dt - 1e-9, dt) == pytest.approx(0.0, abs=1e-6)
    assert poly_blep(1.0 - dt + 1e-9, dt) == pytest.approx(0.0, abs=1e-6)


@pytest.mark.parametrize(
    "value, expected",
    [(-5.0, 0.0), (0.5, 0.5), (5.0, 1.0)],
)
def test_clamp(value, expected):
    assert clamp(value, 0.0, 1.0) == expected


def test_trim_whitespace():
    assert trim_whitespace("  \t hello world \n") == "hello world"
    assert trim_whitespace("   ") == ""
    assert trim_whitespace("x") == "x"


def test_smoother_first_step_and_convergence():
    s = Smoother(0.75)
    first = s.process(1.0)
    assert first == pytest.approx(0.25)
    for _ in range(200):
        last = s.process(1.0)
    assert last == pytest.approx(1.0, abs=1e-9)


def test_smoother_without_memory_passes_through():
    s = Smoother(0.0)
    assert s.process(3.5) == 3.5
    assert s.process(-2.0) == -2.0


def test_smoother_is_monotone_towards_target():
    s = Smoother(0.5)
    outputs = [s.process(10.0) for _ in range(20)]
    assert all(a < b for a, b in zip(outputs, outputs[1:]))
    assert all(not math.isnan(v) and v <= 10.0 for v in outputs)