import math

import numpy as np
import pytest

from signalcrate.base import (
    ESCAPE,
    KEY_BACKSPACE,
    CommandBuffer,
    Module,
    parse_command,
    parse_float_arg,
    parse_int_arg,
    parse_word_arg,
)


class Knob(Module):
    HOTKEYS = {"=": ("level", 0.25), "-": ("level", -0.25)}
    COMMANDS = {"1": "level"}
    LIMITS = {"level": (0.0, 1.0)}
    OSC_PARAMS = {"level": "level"}

    def __init__(self):
        super().__init__("knob", 48000)
        self.level = 0.5


def type_text(module, text):
    for ch in text:
        Module.handle_input(module, ch)


def test_parse_float_arg():
    assert parse_float_arg("cutoff=1000 res=2.5", "res", 1.0) == 2.5
    assert parse_float_arg("cutoff=1000", "res", 1.0) == 1.0
    assert parse_float_arg("res=abc", "res", 1.0) == 1.0
    assert parse_float_arg(None, "res", 1.0) == 1.0


def test_parse_float_arg_matches_substring():
    assert parse_float_arg("mod_freq=3", "freq", 440.0) == 3.0


def test_parse_int_arg():
    assert parse_int_arg("bands=7", "bands", 12) == 7
    assert parse_int_arg("bands=x", "bands", 12) == 12


def test_parse_word_arg():
    assert parse_word_arg("type=HP cutoff=10", "type", "LP") == "HP"
    assert parse_word_arg("wave=" + "a" * 40, "wave", "sine") == "a" * 31
    assert parse_word_arg("wave=", "wave", "sine") == "sine"


def test_parse_command():
    assert parse_command("1 0.25") == ("1", 0.25)
    assert parse_command("20.9") == ("2", 0.9)
    assert parse_command("x") is None
    assert parse_command("") is None


def test_command_buffer_editing():
    buf = CommandBuffer(size=4)
    buf.start()
    assert buf.feed("a") == (True, None)
    buf.feed("b")
    buf.feed("c")
    assert buf.feed("d") == (False, None)
    assert buf.feed(KEY_BACKSPACE) == (True, None)
    assert buf.text == "ab"
    assert buf.feed("\n") == (True, "ab")
    assert buf.active is False


def test_command_buffer_escape_and_empty_backspace():
    buf = CommandBuffer()
    buf.start()
    assert buf.feed(127) == (False, None)
    assert buf.feed(ESCAPE) == (True, None)
    assert buf.active is False


def test_hotkeys_and_clamping():
    knob = Knob()
    assert Module.handle_input(knob, "=") is True
    assert knob.level == pytest.approx(0.75)
    Module.handle_input(knob, "=")
    Module.handle_input(knob, "=")
    assert knob.level == 1.0
    assert Module.handle_input(knob, "z") is False


def test_command_mode_sets_value():
    knob = Knob()
    Module.handle_input(knob, ":")
    type_text(knob, "1 0.2")
    assert Module.draw_ui(knob)[-1] == ":1 0.2"
    Module.handle_input(knob, "\n")
    assert knob.level == pytest.approx(0.2)
    assert knob.command.active is False


def test_command_mode_clamps_and_escape_discards():
    knob = Knob()
    Module.handle_input(knob, ":")
    type_text(knob, "1 5")
    Module.handle_input(knob, "\n")
    assert knob.level == 1.0
    Module.handle_input(knob, ":")
    type_text(knob, "1 0.1")
    Module.handle_input(knob, ESCAPE)
    assert knob.level == 1.0


def test_set_param():
    knob = Knob()
    Module.set_param(knob, "level", 3.0)
    assert knob.level == 1.0
    with pytest.raises(ValueError):
        Module.set_param(knob, "nope", 0.5)


def test_control_values_are_clamped():
    knob = Knob()
    Module.attach_control(knob, "level", lambda: 4.0)
    Module.attach_control(knob, "other", lambda: -0.5)
    assert list(Module.control_values(knob)) == [("level", 1.0), ("other", -0.5)]


def test_process_limits_and_cleans():
    knob = Knob()
    out = Module.process(knob, [0.5, 2.0, -3.0, math.nan, math.inf])
    np.testing.assert_allclose(out, [0.5, 1.0, -1.0, 0.0, 0.0])
    assert knob.output is out


def test_draw_ui_names_module():
    assert Module.draw_ui(Knob()) == ["[knob]"]