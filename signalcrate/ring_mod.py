"""Ring modulator: multiplies the input by an internal sine oscillator."""

from __future__ import annotations

import numpy as np

from .base import Module, parse_float_arg
from .dsp import SINE_TABLE_SIZE, TWO_PI, Smoother, clamp as clamp_value, sine_table


class RingMod(Module):
    """Multiplies the incoming carrier by a table-lookup sine modulator."""

    HOTKEYS = {
        "=": ("mod_freq", 0.05),
        "-": ("mod_freq", -0.05),
        "+": ("car_amp", 0.05),
        "_": ("car_amp", -0.05),
        "]": ("mod_amp", 0.05),
        "[": ("mod_amp", -0.05),
    }
    COMMANDS = {"1": "mod_freq", "2": "car_amp", "3": "mod_amp"}

    def __init__(self, args: str | None = None, sample_rate: float = 44100.0) -> None:
        super().__init__("ring_mod", sample_rate)
        self.mod_freq = parse_float_arg(args, "mod_freq", 440.0)
        self.car_amp = parse_float_arg(args, "car_amp", 1.0)
        self.mod_amp = parse_float_arg(args, "mod_amp", 1.0)
        self.phase = 0.0
        self.smooth_mod_freq = Smoother(0.75)
        self.smooth_car_amp = Smoother(0.75)
        self.smooth_mod_amp = Smoother(0.75)
        self.display_mod_freq = 0.0
        self.display_car_amp = 0.0
        self.display_mod_amp = 0.0
        self.clamp()

    def process(self, block) -> np.ndarray:
        """Modulate one block of input."""
        with self.lock:
            phase = self.phase
            mod_freq = self.smooth_mod_freq.process(self.mod_freq)
            car_amp = self.smooth_car_amp.process(self.car_amp)
            mod_amp = self.smooth_mod_amp.process(self.mod_amp)
            sr = self.sample_rate

        for param, norm in self.control_values():
            if param == "mod_freq":
                mod_freq = self.mod_freq + norm * self.mod_freq
            elif param == "car_amp":
                car_amp = self.car_amp + norm * (1.0 - self.car_amp)
            elif param == "mod_amp":
                mod_amp = self.mod_amp + norm * (1.0 - self.mod_amp)

        car_amp = clamp_value(car_amp, 0.0, 1.0)
        mod_amp = clamp_value(mod_amp, 0.0, 1.0)
        self.display_mod_freq = mod_freq
        self.display_car_amp = car_amp
        self.display_mod_amp = mod_amp

        table = sine_table()
        step = TWO_PI * mod_freq / sr
        out = []
        for car in np.asarray(block, dtype=np.float64).tolist():
            idx = int(phase / TWO_PI * SINE_TABLE_SIZE) % SINE_TABLE_SIZE
            out.append((car_amp * car) * (mod_amp * float(table[idx])))
            phase += step
            if phase >= TWO_PI:
                phase -= TWO_PI

        with self.lock:
            self.phase = phase
        self.output = np.array(out, dtype=np.float32)
        return self.output

    def clamp(self) -> None:
        self.car_amp = clamp_value(self.car_amp, 0.0, 1.0)
        self.mod_amp = clamp_value(self.mod_amp, 0.0, 1.0)
        self.mod_freq = clamp_value(self.mod_freq, 0.01, self.sample_rate * 0.45)

    def hotkey(self, key: str) -> bool:
        return super().hotkey(key)

    def apply_command(self, kind: str, value: float) -> bool:
        return super().apply_command(kind, value)

    def set_param(self, param: str, value: float) -> None:
        """Set a parameter from a normalised 0..1 OSC value."""
        with self.lock:
            norm = clamp_value(value, 0.0, 1.0)
            if param == "mod_freq":
                min_hz, max_hz = 0.01, 20000.0
                self.mod_freq = min_hz * (max_hz / min_hz) ** norm
            elif param == "car_amp":
                self.car_amp = norm
            elif param == "mod_amp":
                self.mod_amp = norm
            else:
                raise ValueError(f"[ring_mod] Unknown OSC param: {param}")
            self.clamp()

    def draw_ui(self) -> list[str]:
        with self.lock:
            freq = self.display_mod_freq
            car = self.display_car_amp
            mod = self.display_mod_amp
        return [
            f"[RingMod:{self.name}] mod_freq: {freq:.2f} Hz | car_amp: {car:.2f} | mod_amp: {mod:.2f}",
            "Real-time keys: -/= (mod_freq), _/+ (car_amp), [/] (mod_amp)",
            "Command mode: :1 [mod_freq], :2 [car_amp], :3 [mod_amp]",
        ]