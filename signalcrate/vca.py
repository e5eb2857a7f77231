"""Voltage-controlled amplifier: a smoothed gain stage."""

from __future__ import annotations

import numpy as np

from .base import Module, parse_float_arg
from .dsp import Smoother, clamp as clamp_value


class Vca(Module):
    """Multiplies its input by a smoothed, modulatable gain."""

    HOTKEYS = {"-": ("gain", -0.01), "=": ("gain", 0.01)}
    COMMANDS = {"1": "gain"}
    LIMITS = {"gain": (0.0, 1.0)}

    def __init__(self, args: str | None = None, sample_rate: float = 44100.0) -> None:
        super().__init__("vca", sample_rate)
        self.gain = parse_float_arg(args, "gain", 1.0)
        self.smooth_gain = Smoother(0.75)
        self.display_gain = 0.0

    def process(self, block) -> np.ndarray:
        with self.lock:
            gain = self.gain

        for param, norm in self.control_values():
            if param == "gain":
                gain = self.gain + norm * (1.0 - self.gain)
        gain = clamp_value(gain, 0.0, 1.0)
        self.display_gain = gain

        self.output = np.array(
            [self.smooth_gain.process(gain) * sample
             for sample in np.asarray(block, dtype=np.float64).tolist()],
            dtype=np.float32,
        )
        return self.output

    def clamp(self) -> None:
        self.gain = clamp_value(self.gain, 0.0, 1.0)

    def hotkey(self, key: str) -> bool:
        return super().hotkey(key)

    def apply_command(self, kind: str, value: float) -> bool:
        return super().apply_command(kind, value)

    def handle_input(self, key: int | str) -> bool:
        """Handle a key press and refresh the displayed gain at once."""
        handled = super().handle_input(key)
        with self.lock:
            self.display_gain = self.gain
        return handled

    def set_param(self, param: str, value: float) -> None:
        with self.lock:
            if param == "gain":
                self.gain = max(value, 0.0)
            else:
                raise ValueError(f"[vca] Unknown OSC param: {param}")

    def draw_ui(self) -> list[str]:
        with self.lock:
            gain = self.display_gain
        return [
            f"[VCA:{self.name}] Gain: {gain:.2f}",
            "Real-time keys: -/= gain",
            "Command mode: :1 [gain]",
        ]