"""Four-pole ladder filter with low, high, band, notch and resonant outputs."""

from __future__ import annotations

import math
import sys
from enum import IntEnum

import numpy as np

from .base import Module, parse_float_arg, parse_word_arg
from .dsp import Smoother, clamp as clamp_value

MAX_RESONANCE = 4.2
MIN_CUTOFF = 10.0


class FilterType(IntEnum):
    LOWPASS = 0
    HIGHPASS = 1
    BANDPASS = 2
    NOTCH = 3
    RESONANT = 4


_LABELS = {
    FilterType.LOWPASS: "LP",
    FilterType.HIGHPASS: "HP",
    FilterType.BANDPASS: "BP",
    FilterType.NOTCH: "Notch",
    FilterType.RESONANT: "Res",
}

_ARG_NAMES = {
    "LP": FilterType.LOWPASS,
    "HP": FilterType.HIGHPASS,
    "BP": FilterType.BANDPASS,
    "notch": FilterType.NOTCH,
    "res": FilterType.RESONANT,
}


class MoogFilter(Module):
    """Resonant ladder filter with soft-saturating feedback."""

    HOTKEYS = {
        "=": ("cutoff", 0.5),
        "-": ("cutoff", -0.5),
        "+": ("resonance", 0.01),
        "_": ("resonance", -0.01),
    }
    COMMANDS = {"1": "cutoff", "2": "resonance"}

    def __init__(self, args: str | None = None, sample_rate: float = 44100.0) -> None:
        super().__init__("moog_filter", sample_rate)
        self.cutoff = parse_float_arg(args, "cutoff", 440.0)
        self.resonance = parse_float_arg(args, "res", 1.0)
        self.filt_type = FilterType.LOWPASS
        type_name = parse_word_arg(args, "type", "")
        if type_name:
            if type_name in _ARG_NAMES:
                self.filt_type = _ARG_NAMES[type_name]
            else:
                print(f"[moog_filter] Unknown type: '{type_name}'", file=sys.stderr)
        self.z = [0.0, 0.0, 0.0, 0.0]
        self.smooth_co = Smoother(0.75)
        self.smooth_res = Smoother(0.75)
        self.display_cutoff = 0.0
        self.display_resonance = 0.0
        self.clamp()

    def process(self, block) -> np.ndarray:
        """Filter one block of audio."""
        with self.lock:
            co = self.smooth_co.process(self.cutoff)
            res = self.smooth_res.process(self.resonance)
            filt_type = self.filt_type

        for param, norm in self.control_values():
            if param == "cutoff":
                co = self.cutoff + norm * self.cutoff
            elif param == "res":
                res = self.resonance + norm * (MAX_RESONANCE - self.resonance)

        self.display_cutoff = co
        self.display_resonance = res

        wc = 2.0 * math.pi * co / self.sample_rate
        g = wc / (wc + 1.0)
        k = res
        z = self.z
        out = []
        for sample in np.asarray(block, dtype=np.float64).tolist():
            if not math.isfinite(sample):
                sample = 0.0
            x = math.tanh(sample)
            x -= k * z[3]
            x = math.tanh(x)

            z[0] += g * (x - z[0])
            z[1] += g * (z[0] - z[1])
            z[2] += g * (z[1] - z[2])
            z[3] += g * (z[2] - z[3])

            if filt_type == FilterType.LOWPASS:
                y = math.tanh(z[3])
            elif filt_type == FilterType.HIGHPASS:
                y = math.tanh(x - z[3])
            elif filt_type == FilterType.BANDPASS:
                y = math.tanh(z[2] - z[3])
            elif filt_type == FilterType.NOTCH:
                y = math.tanh(x - k * z[3])
            else:
                y = math.tanh(z[3] + k * (z[3] - z[2]))
            out.append(clamp_value(y, -1.0, 1.0))

        self.output = np.array(out, dtype=np.float32)
        return self.output

    def clamp(self) -> None:
        self.cutoff = clamp_value(self.cutoff, MIN_CUTOFF, self.sample_rate * 0.45)
        self.resonance = clamp_value(self.resonance, 0.0, MAX_RESONANCE)

    def hotkey(self, key: str) -> bool:
        if key == "f":
            self.filt_type = FilterType((self.filt_type + 1) % len(FilterType))
            return True
        return super().hotkey(key)

    def apply_command(self, kind: str, value: float) -> bool:
        if kind == "3":
            self.filt_type = FilterType(int(value) % len(FilterType))
            return True
        return super().apply_command(kind, value)

    def set_param(self, param: str, value: float) -> None:
        """Set a parameter from a normalised 0..1 OSC value."""
        with self.lock:
            norm = clamp_value(value, 0.0, 1.0)
            if param == "cutoff":
                min_hz, max_hz = 20.0, 20000.0
                self.cutoff = min_hz * (max_hz / min_hz) ** norm
            elif param == "res":
                self.resonance = norm * MAX_RESONANCE
            elif param == "type":
                if value > 0.5:
                    self.filt_type = FilterType((self.filt_type + 1) % len(FilterType))
            else:
                raise ValueError(f"[moog_filter] Unknown OSC param: {param}")

    def draw_ui(self) -> list[str]:
        with self.lock:
            co = self.display_cutoff
            res = self.display_resonance
            label = _LABELS[self.filt_type]
        return [
            f"[Moog Filter:{self.name}] Cutoff: {co:.2f} | Res: {res:.2f} | type: {label}",
            "Real-time keys: -/= (cutoff), _/+ (res)",
            "Command mode: :1 [cutoff], :2 [res] f: [type]",
        ]