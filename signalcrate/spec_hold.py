"""Spectral tilt with freeze: reshapes the spectrum around a pivot frequency."""

from __future__ import annotations

import numpy as np

from .base import Module, parse_float_arg
from .dsp import Smoother, clamp as clamp_value

FFT_SIZE = 2048
HOP_SIZE = FFT_SIZE // 2
BINS = FFT_SIZE // 2 + 1

_HANN = 0.5 * (1.0 - np.cos(2.0 * np.pi * np.arange(FFT_SIZE) / (FFT_SIZE - 1)))


class SpecHold(Module):
    """Overlap-add spectral processor that tilts, and can hold, the spectrum."""

    HOTKEYS = {
        "=": ("pivot_hz", 0.01),
        "-": ("pivot_hz", -0.01),
        "+": ("tilt", 0.01),
        "_": ("tilt", -0.01),
    }
    COMMANDS = {"1": "pivot_hz", "2": "tilt"}

    def __init__(self, args: str | None = None, sample_rate: float = 44100.0) -> None:
        super().__init__("spec_tilt", sample_rate)
        self.tilt = parse_float_arg(args, "tilt", 0.0)
        self.pivot_hz = parse_float_arg(args, "pivot", 1000.0)
        self.freeze = False
        self.smooth_tilt = Smoother(0.75)
        self.smooth_pivot_hz = Smoother(0.75)
        self.display_tilt = 0.0
        self.display_pivot = 0.0
        self.frozen_mag = np.zeros(BINS)
        self.frozen_phase = np.zeros(BINS)
        self.hop_write_index = 0
        self._input = np.zeros(FFT_SIZE)
        self._overlap = np.zeros(FFT_SIZE)
        self.clamp()

    def _transform(self) -> None:
        spectrum = np.fft.rfft(self._input * _HANN)

        with self.lock:
            pivot_hz = self.smooth_pivot_hz.process(self.pivot_hz)
            tilt = self.smooth_tilt.process(self.tilt)

        for param, norm in self.control_values():
            if param == "pivot":
                pivot_hz = self.pivot_hz + norm * self.pivot_hz
            elif param == "tilt":
                tilt = self.tilt + norm * (1.0 - self.tilt)

        self.display_pivot = pivot_hz
        self.display_tilt = tilt

        if not self.freeze:
            self.frozen_mag = np.abs(spectrum)
            self.frozen_phase = np.angle(spectrum)
        mag = self.frozen_mag
        phase = self.frozen_phase

        nyquist = self.sample_rate / 2.0
        bin_hz = np.maximum(np.arange(BINS) / BINS * nyquist, 1.0)
        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            gain_db = tilt * 3.0 * np.log2(bin_hz / pivot_hz)
            gain = np.power(10.0, gain_db / 20.0)
            shaped = gain * mag * np.exp(1j * phase)
            frame = np.fft.irfft(shaped, n=FFT_SIZE)
            frame -= frame.mean()
            self._overlap += frame * 0.5

    def process(self, block) -> np.ndarray:
        """Feed one block through the overlap-add engine and return as many samples."""
        samples = np.asarray(block, dtype=np.float64)
        frames = len(samples)
        if frames > FFT_SIZE:
            raise ValueError(f"block of {frames} frames exceeds FFT size {FFT_SIZE}")

        for sample in samples.tolist():
            self._input[:-1] = self._input[1:]
            self._input[-1] = sample
            self.hop_write_index += 1
            if self.hop_write_index >= HOP_SIZE:
                self.hop_write_index = 0
                self._transform()

        out = self._overlap[:frames].copy()
        self._overlap[:FFT_SIZE - frames] = self._overlap[frames:]
        self._overlap[FFT_SIZE - frames:] = 0.0
        self.output = out.astype(np.float32)
        return self.output

    def clamp(self) -> None:
        self.pivot_hz = clamp_value(self.pivot_hz, 1.0, self.sample_rate * 0.45)
        self.tilt = clamp_value(self.tilt, -1.0, 1.0)

    def hotkey(self, key: str) -> bool:
        if key == "f":
            self.freeze = not self.freeze
            return True
        return super().hotkey(key)

    def apply_command(self, kind: str, value: float) -> bool:
        return super().apply_command(kind, value)

    def set_param(self, param: str, value: float) -> None:
        """Set a parameter from a normalised 0..1 OSC value."""
        with self.lock:
            if param == "tilt":
                self.tilt = clamp_value(value * 2.0 - 1.0, -1.0, 1.0)
            elif param == "pivot":
                norm = clamp_value(value, 0.0, 1.0)
                self.pivot_hz = 20.0 * (20000.0 / 20.0) ** norm
            elif param == "freeze":
                if value > 0.5:
                    self.freeze = not self.freeze
            else:
                raise ValueError(f"[spec_hold] Unknown OSC param: {param}")
            self.clamp()

    def draw_ui(self) -> list[str]:
        with self.lock:
            tilt = self.display_tilt
            pivot = self.display_pivot
            freeze = "ON" if self.freeze else "OFF"
        return [
            f"[SpecTilt:{self.name}] Pivot: {pivot:.2f} Hz | Tilt: {tilt:.2f} | Freeze: {freeze}",
            "Real-time Keys: -/= tilt, _/+ pivot, [f] freeze",
            "Cmd Mode: :1 [pivot], :2 [tilt]",
        ]