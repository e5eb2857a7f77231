"""Band-limited oscillator with sine, saw, square and triangle waveforms."""

from __future__ import annotations

import math
import sys
from enum import IntEnum

import numpy as np

from .base import Module, parse_float_arg, parse_word_arg
from .dsp import (
    SINE_TABLE_SIZE,
    TWO_PI,
    Smoother,
    clamp as clamp_value,
    poly_blep,
    sine_table,
)

MIN_FREQ = 20.0


class Waveform(IntEnum):
    SINE = 0
    SAW = 1
    SQUARE = 2
    TRIANGLE = 3


class RangeMode(IntEnum):
    LOW = 0
    MID = 1
    FULL = 2
    SUPER = 3


_WAVE_LABELS = {
    Waveform.SINE: "Sine",
    Waveform.SAW: "Saw",
    Waveform.SQUARE: "Square",
    Waveform.TRIANGLE: "Triangle",
}
_RANGE_LABELS = {
    RangeMode.LOW: "Low",
    RangeMode.MID: "Mid",
    RangeMode.FULL: "Full",
    RangeMode.SUPER: "Super",
}
_ARG_NAMES = {
    "sine": Waveform.SINE,
    "saw": Waveform.SAW,
    "square": Waveform.SQUARE,
    "triangle": Waveform.TRIANGLE,
}


class Vco(Module):
    """Oscillator whose upper frequency limit depends on its range mode."""

    HOTKEYS = {
        "=": ("frequency", 0.5),
        "-": ("frequency", -0.5),
        "+": ("amplitude", 0.01),
        "_": ("amplitude", -0.01),
    }
    COMMANDS = {"1": "frequency", "2": "amplitude"}

    def __init__(self, args: str | None = None, sample_rate: float = 44100.0) -> None:
        super().__init__("vco", sample_rate)
        self.frequency = parse_float_arg(args, "freq", 440.0)
        self.amplitude = parse_float_arg(args, "amp", 0.5)
        self.waveform = Waveform.SINE
        wave_name = parse_word_arg(args, "wave", "")
        if wave_name:
            if wave_name in _ARG_NAMES:
                self.waveform = _ARG_NAMES[wave_name]
            else:
                print(f"[vco] Unknown wave type: '{wave_name}'", file=sys.stderr)
        self.range_mode = RangeMode.FULL
        self.phase = 0.0
        self.tri_state = 0.0
        self.smooth_freq = Smoother(0.75)
        self.smooth_amp = Smoother(0.25)
        self.display_freq = 0.0
        self.display_amp = 0.0
        self.clamp()

    def _max_freq(self) -> float:
        if self.range_mode == RangeMode.LOW:
            return 2000.0
        if self.range_mode == RangeMode.MID:
            return 8000.0
        if self.range_mode == RangeMode.SUPER:
            return self.sample_rate * 0.45
        return 20000.0

    def _square(self, t: float, dt: float) -> float:
        value = 1.0 if t < 0.5 else -1.0
        value += poly_blep(t, dt)
        value -= poly_blep(math.fmod(t + 0.5, 1.0), dt)
        return value

    def process(self, block) -> np.ndarray:
        """Generate one block; the input only sets the block length."""
        frames = len(block)
        with self.lock:
            freq = self.smooth_freq.process(self.frequency)
            amp = self.smooth_amp.process(self.amplitude)
            waveform = self.waveform

        for param, norm in self.control_values():
            if param == "freq":
                freq = self.frequency + norm * self.frequency
            elif param == "amp":
                amp = self.amplitude + norm * (1.0 - self.amplitude)
        amp = clamp_value(amp, 0.0, 1.0)

        self.display_freq = freq
        self.display_amp = amp

        table = sine_table()
        dt = freq / self.sample_rate
        step = TWO_PI * dt
        phase = self.phase
        out = []
        for _ in range(frames):
            t = phase / TWO_PI
            if waveform == Waveform.SINE:
                value = float(table[int(t * SINE_TABLE_SIZE) % SINE_TABLE_SIZE])
            elif waveform == Waveform.SAW:
                value = 2.0 * t - 1.0 - poly_blep(t, dt)
            elif waveform == Waveform.SQUARE:
                value = self._square(t, dt)
            else:
                sq = self._square(t, dt)
                self.tri_state += 2.0 * dt * sq
                self.tri_state *= 0.999
                self.tri_state = clamp_value(self.tri_state, -1.0, 1.0)
                value = self.tri_state * 2.0
            out.append(amp * value)
            phase += step
            if phase >= TWO_PI:
                phase -= TWO_PI
        self.phase = phase

        self.output = np.array(out, dtype=np.float32)
        return self.output

    def clamp(self) -> None:
        self.frequency = clamp_value(self.frequency, MIN_FREQ, self._max_freq())
        self.amplitude = clamp_value(self.amplitude, 0.0, 1.0)

    def hotkey(self, key: str) -> bool:
        if key == "w":
            self.waveform = Waveform((self.waveform + 1) % len(Waveform))
            return True
        if key == "r":
            self.range_mode = RangeMode((self.range_mode + 1) % len(RangeMode))
            return True
        return super().hotkey(key)

    def apply_command(self, kind: str, value: float) -> bool:
        if kind == "3":
            self.waveform = Waveform(int(value) % len(Waveform))
            return True
        return super().apply_command(kind, value)

    def handle_input(self, key: int | str) -> bool:
        """Handle a key press and refresh the displayed values at once."""
        handled = super().handle_input(key)
        with self.lock:
            self.display_freq = self.frequency
            self.display_amp = self.amplitude
        return handled

    def set_param(self, param: str, value: float) -> None:
        """Set a parameter from OSC; frequency maps 0..1 exponentially onto the range."""
        with self.lock:
            if param == "freq":
                norm = clamp_value(value, 0.0, 1.0)
                max_hz = self._max_freq()
                self.frequency = MIN_FREQ * (max_hz / MIN_FREQ) ** norm
            elif param == "amp":
                self.amplitude = value
            elif param == "wave":
                if value > 0.5:
                    self.waveform = Waveform((self.waveform + 1) % len(Waveform))
            else:
                raise ValueError(f"[vco] Unknown OSC param: {param}")

    def draw_ui(self) -> list[str]:
        with self.lock:
            freq = self.display_freq
            amp = self.display_amp
            wave = _WAVE_LABELS[self.waveform]
            rng = _RANGE_LABELS[self.range_mode]
        return [
            f"[VCO:{self.name}] Freq: {freq:.1f} Hz | Amp: {amp:.2f} | Wave: {wave} | Range: {rng}",
            "Real-time keys: -/= (freq), _/+ (amp), w (wave), r (range)",
            "Command mode: :1 [freq], :2 [amp]",
        ]