"""Common behaviour shared by every synthesis module."""

from __future__ import annotations

import re
import threading
from typing import Callable, Iterator, Mapping

import numpy as np

from .dsp import FRAMES_PER_BUFFER, clamp as clamp_value

ENTER = 10
ESCAPE = 27
BACKSPACE = 127
KEY_BACKSPACE = 263

_FLOAT_RE = re.compile(
    r"\s*([+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan))",
    re.IGNORECASE,
)
_INT_RE = re.compile(r"\s*([+-]?\d+)")
_WORD_RE = re.compile(r"\s*(\S{1,31})")


def _value_start(args: str | None, key: str) -> int:
    if not args:
        return -1
    at = args.find(f"{key}=")
    return at if at < 0 else at + len(key) + 1


def parse_float_arg(args: str | None, key: str, default: float) -> float:
    """Read ``key=<float>`` from a module argument string."""
    start = _value_start(args, key)
    if start < 0:
        return default
    match = _FLOAT_RE.match(args, start)
    return float(match.group(1)) if match else default


def parse_int_arg(args: str | None, key: str, default: int) -> int:
    """Read ``key=<int>`` from a module argument string."""
    start = _value_start(args, key)
    if start < 0:
        return default
    match = _INT_RE.match(args, start)
    return int(match.group(1)) if match else default


def parse_word_arg(args: str | None, key: str, default: str) -> str:
    """Read ``key=<word>`` (up to 31 non-space characters) from an argument string."""
    start = _value_start(args, key)
    if start < 0:
        return default
    match = _WORD_RE.match(args, start)
    return match.group(1) if match else default


def parse_command(text: str) -> tuple[str, float] | None:
    """Parse a command-mode entry such as ``"1 440"`` into (kind, value)."""
    if not text:
        return None
    match = _FLOAT_RE.match(text, 1)
    if not match:
        return None
    return text[0], float(match.group(1))


def _key_code(key: int | str) -> int:
    if isinstance(key, str):
        if len(key) != 1:
            raise ValueError(f"expected a single character, got {key!r}")
        return ord(key)
    return key


class CommandBuffer:
    """Line editor for a module's ``:`` command mode."""

    def __init__(self, size: int = 64) -> None:
        self.size = size
        self.text = ""
        self.active = False

    def start(self) -> None:
        self.active = True
        self.text = ""

    def feed(self, key: int | str) -> tuple[bool, str | None]:
        """Handle one key; return (handled, submitted text or None)."""
        code = _key_code(key)
        if code == ENTER:
            self.active = False
            return True, self.text
        if code == ESCAPE:
            self.active = False
            return True, None
        if code in (KEY_BACKSPACE, BACKSPACE):
            if self.text:
                self.text = self.text[:-1]
                return True, None
            return False, None
        if 32 <= code < 127 and len(self.text) < self.size - 1:
            self.text += chr(code)
            return True, None
        return False, None


class Module:
    """Base synthesis module with key, command-mode, OSC and control-input handling.

    Subclasses describe their parameters declaratively:
    ``HOTKEYS`` maps a key to (attribute, step), ``COMMANDS`` maps a command
    letter to an attribute, ``LIMITS`` gives each attribute's (low, high) range
    and ``OSC_PARAMS`` maps an OSC parameter name to an attribute.
    """

    HOTKEYS: Mapping[str, tuple[str, float]] = {}
    COMMANDS: Mapping[str, str] = {}
    LIMITS: Mapping[str, tuple[float, float]] = {}
    OSC_PARAMS: Mapping[str, str] = {}

    def __init__(self, name: str, sample_rate: float) -> None:
        self.name = name
        self.sample_rate = float(sample_rate)
        self.lock = threading.RLock()
        self.command = CommandBuffer()
        self.controls: list[tuple[str, Callable[[], float]]] = []
        self.output = np.zeros(FRAMES_PER_BUFFER, dtype=np.float32)

    def attach_control(self, param: str, source: Callable[[], float]) -> None:
        """Modulate ``param`` from a callable returning the current control value."""
        self.controls.append((param, source))

    def control_values(self) -> Iterator[tuple[str, float]]:
        """Yield (param, value) for each control input, clamped to [-1, 1]."""
        for param, source in self.controls:
            yield param, clamp_value(float(source()), -1.0, 1.0)

    def handle_input(self, key: int | str) -> bool:
        """Handle a key press; return True if it changed anything."""
        code = _key_code(key)
        with self.lock:
            if not self.command.active:
                if code == ord(":"):
                    self.command.start()
                    handled = True
                else:
                    handled = self.hotkey(chr(code) if 0 <= code < 256 else "")
            else:
                handled, submitted = self.command.feed(code)
                if submitted is not None:
                    parsed = parse_command(submitted)
                    if parsed is not None:
                        self.apply_command(*parsed)
            if handled:
                self.clamp()
        return handled

    def hotkey(self, key: str) -> bool:
        """Apply a real-time key; return True if it was recognised."""
        step = self.HOTKEYS.get(key)
        if step is None:
            return False
        attr, delta = step
        setattr(self, attr, getattr(self, attr) + delta)
        return True

    def apply_command(self, kind: str, value: float) -> bool:
        """Apply a parsed command-mode entry; return True if recognised."""
        attr = self.COMMANDS.get(kind)
        if attr is None:
            return False
        setattr(self, attr, value)
        return True

    def clamp(self) -> None:
        """Keep every limited parameter inside its range."""
        for attr, (low, high) in self.LIMITS.items():
            setattr(self, attr, clamp_value(getattr(self, attr), low, high))

    def set_param(self, param: str, value: float) -> None:
        """Set a parameter from OSC."""
        with self.lock:
            attr = self.OSC_PARAMS.get(param)
            if attr is None:
                raise ValueError(f"[{self.name}] Unknown OSC param: {param}")
            setattr(self, attr, value)
            self.clamp()

    def draw_ui(self) -> list[str]:
        """Return the lines that describe this module on screen."""
        with self.lock:
            lines = [f"[{self.name}]"]
            if self.command.active:
                lines.append(f":{self.command.text}")
        return lines

    def process(self, block) -> np.ndarray:
        """Pass the block through, replacing non-finite samples and limiting to [-1, 1]."""
        samples = np.asarray(block, dtype=np.float32)
        samples = np.where(np.isfinite(samples), samples, np.float32(0.0))
        self.output = np.clip(samples, -1.0, 1.0).astype(np.float32)
        return self.output