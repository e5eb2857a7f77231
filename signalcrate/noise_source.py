"""White, pink and brown noise generator."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from enum import IntEnum

import numpy as np

from .base import Module, parse_float_arg, parse_word_arg
from .dsp import Smoother, clamp as clamp_value, randf

_PINK_A44 = (0.99886, 0.99332, 0.96900, 0.86650, 0.55000, -0.7616)
_PINK_G44 = (0.0555179, 0.0750759, 0.1538520, 0.3104856, 0.5329522, 0.0168980, 0.115926)


class NoiseType(IntEnum):
    WHITE = 0
    PINK = 1
    BROWN = 2


_LABELS = {NoiseType.WHITE: "White", NoiseType.PINK: "Pink", NoiseType.BROWN: "Brown"}
_ARG_NAMES = {"white": NoiseType.WHITE, "pink": NoiseType.PINK, "brown": NoiseType.BROWN}


class PinkFilter:
    """Bank of one-pole filters shaping white noise into pink noise."""

    def __init__(self, sample_rate: float) -> None:
        fs_ratio = 44100.0 / sample_rate
        self.a = [abs(a44) ** fs_ratio for a44 in _PINK_A44]
        self.g = [
            g44 * (1.0 - a) * (-1.0 if a44 < 0.0 else 1.0)
            for a44, g44, a in zip(_PINK_A44, _PINK_G44, self.a)
        ]
        self.g.append(_PINK_G44[6])
        self.b = [0.0] * 7

    def process(self, white: float) -> float:
        a, g, b = self.a, self.g, self.b
        for i in range(5):
            b[i] = a[i] * b[i] + white * g[i]
        b[5] = a[5] * b[5] - white * g[5]
        pink = sum(b) + white * 0.5362
        b[6] = white * g[6]
        return pink


@dataclass
class BrownNoise:
    """Leaky integrator turning white noise into brown noise."""

    last: float = 0.0

    def process(self, white: float) -> float:
        self.last = clamp_value(0.98 * self.last + 0.02 * white, -1.0, 1.0)
        return 3.0 * self.last


class NoiseSource(Module):
    """Noise generator with selectable colour and amplitude."""

    HOTKEYS = {"=": ("amplitude", 0.01), "-": ("amplitude", -0.01)}
    COMMANDS = {"1": "amplitude"}
    LIMITS = {"amplitude": (0.0, 1.0)}

    def __init__(self, args: str | None = None, sample_rate: float = 44100.0) -> None:
        super().__init__("noise_source", sample_rate)
        self.amplitude = parse_float_arg(args, "amp", 0.5)
        self.noise_type = NoiseType.WHITE
        type_name = parse_word_arg(args, "type", "")
        if type_name:
            if type_name in _ARG_NAMES:
                self.noise_type = _ARG_NAMES[type_name]
            else:
                print(f"[noise_source] Unknown type: '{type_name}'", file=sys.stderr)
        self.pink = PinkFilter(self.sample_rate)
        self.brown = BrownNoise()
        self.smooth_amp = Smoother(0.75)
        self.display_amp = 0.0
        self.clamp()

    def _next(self, noise_type: NoiseType) -> float:
        white = randf() * 2.0 - 1.0
        if noise_type == NoiseType.PINK:
            return self.pink.process(white)
        if noise_type == NoiseType.BROWN:
            return self.brown.process(white)
        return white

    def process(self, block) -> np.ndarray:
        """Generate one block of noise; the input only sets the block length."""
        frames = len(block)
        with self.lock:
            amp = self.smooth_amp.process(self.amplitude)
            noise_type = self.noise_type

        for param, norm in self.control_values():
            if param == "amp":
                amp = self.amplitude + norm * (1.0 - self.amplitude)
        amp = clamp_value(amp, 0.0, 1.0)
        self.display_amp = amp

        self.output = np.array(
            [amp * self._next(noise_type) for _ in range(frames)], dtype=np.float32
        )
        return self.output

    def clamp(self) -> None:
        self.amplitude = clamp_value(self.amplitude, 0.0, 1.0)

    def hotkey(self, key: str) -> bool:
        if key == "n":
            self.noise_type = NoiseType((self.noise_type + 1) % len(NoiseType))
            return True
        return super().hotkey(key)

    def apply_command(self, kind: str, value: float) -> bool:
        if kind == "2":
            self.noise_type = NoiseType(int(value) % len(NoiseType))
            return True
        return super().apply_command(kind, value)

    def set_param(self, param: str, value: float) -> None:
        with self.lock:
            if param == "amp":
                self.amplitude = clamp_value(value, 0.0, 1.0)
            elif param == "type":
                if value > 0.5:
                    self.noise_type = NoiseType((self.noise_type + 1) % len(NoiseType))
            else:
                raise ValueError(f"[noise_source] Unknown OSC param: {param}")

    def draw_ui(self) -> list[str]:
        with self.lock:
            amp = self.display_amp
            label = _LABELS[self.noise_type]
        return [
            f"[Noise Source:{self.name}] Amp: {amp:.2f} Hz | Type: {label}",
            "Real-time keys: -/= (amp), n: (type)",
            "Command mode: :1 [amp], :n [type]",
        ]