"""Script box: a small multi-line editor whose lines send OSC values to other modules."""

from __future__ import annotations

import curses
import math
import os
import re
import sys
from dataclasses import dataclass
from typing import Callable

import numpy as np

from .base import Module
from .dsp import clamp, randf
from .osc import current_osc_port, send_message
from .scheduler import Scheduler, SchedulerFullError

OSC_PORT_ENV = "SIGNAL_CRATE_OSC_PORT"
OSC_HOST = "127.0.0.1"
TEXT_CAPACITY = 2047
LINE_CAPACITY = 255
RESULT_CAPACITY = 127
PANEL_LINES = 6
DISPLAY_WIDTH = 127

KEY_ENTER = 10
KEY_ESCAPE = 27
KEY_CTRL_R = 18
_BACKSPACE_KEYS = (curses.KEY_BACKSPACE, 127)

_FLOAT_RE = re.compile(
    r"\s*[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan)",
    re.IGNORECASE,
)
_FUNC_RE = re.compile(r"[^ (]{1,31}")
_FIELD_RE = re.compile(r"[^,]{1,63}")
_LAST_RE = re.compile(r"[^)]{1,63}")
_FIELD_END_RE = re.compile(r"[)\n\r]")

SendFunc = Callable[[str, str, float], object]


class ScriptError(ValueError):
    """Raised when a script line cannot be parsed or names an unknown function."""


@dataclass(frozen=True)
class ScriptCommand:
    """One parsed line such as ``rand(20,2000,vco,freq,~250)``."""

    func: str
    low: float
    high: float
    alias: str
    param: str
    interval_ms: float = 0.0

    def value(self) -> float:
        """Compute the raw value: a random one for ``rand``, the low bound for ``set``."""
        if self.func.startswith("rand"):
            return self.low + randf() * (self.high - self.low)
        if self.func.startswith("set"):
            return self.low
        raise ScriptError(f"Bad func: {self.func}")

    def scaled(self, value: float) -> float:
        """Normalise a raw value to the 0..1 range that OSC parameters expect."""
        if self.param in ("freq", "cutoff"):
            fmin, fmax = 20.0, 20000.0
            hz = clamp(value, fmin, fmax)
            result = math.log(hz / fmin) / math.log(fmax / fmin)
        elif self.high > self.low:
            result = (value - self.low) / (self.high - self.low)
        else:
            result = value
        return clamp(result, 0.0, 1.0)


def _scan_fields(cmd: str) -> list:
    """Read ``func(a,b,alias,param,fifth)`` field by field, stopping at the first mismatch."""
    fields: list = []
    match = _FUNC_RE.match(cmd)
    if not match:
        return fields
    fields.append(match.group())
    pos = match.end()
    if cmd[pos:pos + 1] != "(":
        return fields
    pos += 1
    for _ in range(2):
        number = _FLOAT_RE.match(cmd, pos)
        if not number:
            return fields
        fields.append(float(number.group().strip()))
        pos = number.end()
        if cmd[pos:pos + 1] != ",":
            return fields
        pos += 1
    for pattern, separator in ((_FIELD_RE, ","), (_FIELD_RE, ","), (_LAST_RE, None)):
        field = pattern.match(cmd, pos)
        if not field:
            return fields
        fields.append(field.group())
        pos = field.end()
        if separator is None:
            break
        if cmd[pos:pos + 1] != separator:
            return fields
        pos += 1
    return fields


def _strip_field(text: str) -> str:
    return _FIELD_END_RE.split(text, maxsplit=1)[0]


def _leading_float(text: str) -> float:
    match = _FLOAT_RE.match(text)
    return float(match.group().strip()) if match else 0.0


def parse_script_line(cmd: str) -> ScriptCommand:
    """Parse a script line; raise ScriptError when fewer than four fields can be read."""
    fields = _scan_fields(cmd)
    if len(fields) < 4:
        raise ScriptError(f"Parse error: {cmd}")
    func, low, high, alias = fields[:4]
    param = fields[4] if len(fields) > 4 else ""
    fifth = fields[5] if len(fields) > 5 else ""
    interval = _leading_float(fifth[1:]) if fifth.startswith("~") else 0.0
    return ScriptCommand(
        func=func,
        low=low,
        high=high,
        alias=_strip_field(alias),
        param=_strip_field(param),
        interval_ms=interval,
    )


def _send_osc(alias: str, param: str, value: float) -> None:
    port = os.environ.get(OSC_PORT_ENV) or current_osc_port()
    if not port:
        return
    try:
        send_message(OSC_HOST, int(port), f"/{alias}/{param}", float(value))
    except OSError:
        pass


def _display_lines(text: str, max_lines: int) -> list[str]:
    lines: list[str] = []
    idx = 0
    size = len(text)
    while len(lines) < max_lines and idx < size:
        end = idx
        while end < size and text[end] != "\n" and end - idx < DISPLAY_WIDTH:
            end += 1
        lines.append(text[idx:end])
        idx = end
        if idx < size and text[idx] == "\n":
            idx += 1
    return lines


def _key_code(key: int | str) -> int:
    if isinstance(key, str):
        return ord(key) if len(key) == 1 else -1
    return int(key)


class ScriptBox(Module):
    """Editable script whose lines set or randomise other modules' parameters."""

    def __init__(self, args: str | None = None, sample_rate: float = 44100.0,
                 scheduler: Scheduler | None = None, send: SendFunc | None = None) -> None:
        super().__init__("scriptbox", sample_rate)
        self.scheduler = scheduler if scheduler is not None else Scheduler()
        self.send = send if send is not None else _send_osc
        self.script_text = ""
        self.cursor_pos = 0
        self.editing = False
        self.last_result = ""

    def _set_result(self, text: str) -> None:
        self.last_result = text[:RESULT_CAPACITY]

    def run_command(self, cmd: str) -> float:
        """Run one line: send its scaled value and schedule repeats for ``~interval``."""
        try:
            command = parse_script_line(cmd)
            value = command.value()
        except ScriptError as exc:
            self._set_result(str(exc))
            raise
        scaled = command.scaled(value)
        self.send(command.alias, command.param, scaled)
        if command.interval_ms > 0.0:
            self.scheduler.add(self._run_scheduled, cmd[:LINE_CAPACITY], command.interval_ms)
        return scaled

    def _run_scheduled(self, line: str) -> None:
        try:
            self.run_command(line)
        except ScriptError:
            pass
        except SchedulerFullError as exc:
            print(exc, file=sys.stderr)

    def run_script(self) -> None:
        """Run every non-empty, non-comment line of the script."""
        with self.lock:
            text = self.script_text
        for line in text.split("\n"):
            line = line.lstrip(" \t")
            if not line or line.startswith("//"):
                continue
            try:
                self.run_command(line)
            except ScriptError:
                pass
            except SchedulerFullError as exc:
                print(exc, file=sys.stderr)
        with self.lock:
            self._set_result("script executed")

    def cursor_position(self) -> tuple[int, int]:
        """Return the cursor as (line, column)."""
        before = self.script_text[:self.cursor_pos]
        line = before.count("\n")
        col = len(before) - (before.rfind("\n") + 1)
        return line, col

    def _insert(self, ch: str) -> None:
        if len(self.script_text) >= TEXT_CAPACITY or self.cursor_pos >= TEXT_CAPACITY:
            return
        pos = self.cursor_pos
        self.script_text = self.script_text[:pos] + ch + self.script_text[pos:]
        self.cursor_pos += 1

    def _move_vertical(self, step: int) -> None:
        line, col = self.cursor_position()
        target_line = max(line + step, 0)
        cur_line = cur_col = 0
        for i, ch in enumerate(self.script_text):
            if cur_line == target_line and cur_col == col:
                self.cursor_pos = i
                return
            if ch == "\n":
                cur_line += 1
                cur_col = 0
            else:
                cur_col += 1

    def _edit(self, code: int) -> None:
        if code == KEY_ESCAPE:
            self.editing = False
        elif code in _BACKSPACE_KEYS:
            if self.cursor_pos > 0:
                pos = self.cursor_pos
                self.script_text = self.script_text[:pos - 1] + self.script_text[pos:]
                self.cursor_pos -= 1
        elif code == KEY_ENTER:
            self._insert("\n")
        elif code == curses.KEY_LEFT:
            if self.cursor_pos > 0:
                self.cursor_pos -= 1
        elif code == curses.KEY_RIGHT:
            if self.cursor_pos < len(self.script_text):
                self.cursor_pos += 1
        elif code == curses.KEY_UP:
            self._move_vertical(-1)
        elif code == curses.KEY_DOWN:
            self._move_vertical(1)
        elif 32 <= code < 127:
            self._insert(chr(code))

    def handle_input(self, key: int | str) -> bool:
        """Enter starts editing, Ctrl-R runs the script; while editing every key edits."""
        code = _key_code(key)
        if not self.editing:
            if code == KEY_ENTER:
                self.editing = True
                return True
            if code == KEY_CTRL_R:
                self.run_script()
                return True
            return False
        with self.lock:
            self._edit(code)
        return True

    def process(self, block) -> np.ndarray:
        """The script box has no audio output; it returns silence."""
        self.output = np.zeros(len(block), dtype=np.float32)
        return self.output

    def draw_ui(self) -> list[str]:
        with self.lock:
            lines = [f"[Script:{self.name}] (Enter edit | ESC exit | Ctrl-R run)"]
            lines.extend(f"{line:<70}" for line in _display_lines(self.script_text, PANEL_LINES))
            lines.extend([""] * (8 - len(lines)))
            lines.append(f"Result: {self.last_result}")
        return lines