"""Wavefolder: drives the input into a rectifying, folding shaper and blends it with the dry signal."""

from __future__ import annotations

import math

import numpy as np

from .base import Module, parse_float_arg
from .dsp import Smoother, clamp as clamp_value


def folder(x: float, amt: float) -> float:
    """Rectify, shape with tanh and fold the result back into [-amt, amt].

    A negative ``amt`` has no folded range and raises ValueError.
    """
    if amt < 0.0:
        raise ValueError(f"fold amount must not be negative: {amt}")
    x = math.tanh(abs(x) * amt)
    while abs(x) > amt:
        if x > amt:
            x = 2.0 * amt - x
        else:
            x = -2.0 * amt - x
    return x


class Wavefolder(Module):
    """Folding distortion with fold amount, drive and dry/wet blend."""

    HOTKEYS = {
        "=": ("fold_amt", 0.01),
        "-": ("fold_amt", -0.01),
        "+": ("blend", 0.01),
        "_": ("blend", -0.01),
        "]": ("drive", 0.01),
        "[": ("drive", -0.01),
    }
    COMMANDS = {"1": "fold_amt", "2": "blend", "3": "drive"}
    LIMITS = {
        "fold_amt": (0.01, 5.0),
        "blend": (0.01, 1.0),
        "drive": (0.01, 10.0),
    }

    def __init__(self, args: str | None = None, sample_rate: float = 44100.0) -> None:
        super().__init__("wavefolder", sample_rate)
        self.fold_amt = parse_float_arg(args, "fold", 0.5)
        self.blend = parse_float_arg(args, "blend", 0.01)
        self.drive = parse_float_arg(args, "drive", 1.0)
        self.smooth_fold = Smoother(0.75)
        self.smooth_blend = Smoother(0.75)
        self.smooth_drive = Smoother(0.75)
        self.display_fold_amt = 0.0
        self.display_blend = 0.0
        self.display_drive = 0.0
        self.clamp()

    def process(self, block) -> np.ndarray:
        """Fold one block of audio."""
        with self.lock:
            fold = self.smooth_fold.process(self.fold_amt)
            blend = self.smooth_blend.process(self.blend)
            drive = self.smooth_drive.process(self.drive)

        for param, norm in self.control_values():
            if param == "fold":
                fold = self.fold_amt + norm * (5.0 - self.fold_amt)
            elif param == "blend":
                blend = self.blend + norm * (1.0 - self.blend)
            elif param == "drive":
                drive = self.drive + norm * (10.0 - self.drive)

        self.display_fold_amt = fold
        self.display_blend = blend
        self.display_drive = drive

        # Modulation can push the fold amount below zero, where folding has no range.
        amt = max(fold, 0.0)
        out = [
            (1.0 - blend) * sample + blend * folder(sample * drive, amt)
            for sample in np.asarray(block, dtype=np.float64).tolist()
        ]
        self.output = np.array(out, dtype=np.float32)
        return self.output

    def clamp(self) -> None:
        super().clamp()

    def hotkey(self, key: str) -> bool:
        return super().hotkey(key)

    def apply_command(self, kind: str, value: float) -> bool:
        return super().apply_command(kind, value)

    def set_param(self, param: str, value: float) -> None:
        """Set a parameter from a normalised 0..1 OSC value."""
        with self.lock:
            if param == "fold":
                self.fold_amt = clamp_value(value * 5.0, 0.01, 5.0)
            elif param == "blend":
                self.blend = clamp_value(value, 0.01, 1.0)
            elif param == "drive":
                self.drive = clamp_value(value * 10.0, 0.01, 10.0)
            else:
                raise ValueError(f"[wavefolder] Unknown OSC param: {param}")
            self.clamp()

    def draw_ui(self) -> list[str]:
        with self.lock:
            fold = self.display_fold_amt
            blend = self.display_blend
            drive = self.display_drive
        return [
            f"[Wavefolder:{self.name}] fold: {fold:.2f} | Blend: {blend:.2f} | Drive: {drive:.2f}",
            "Real-time keys: -/= (fold), _/+ (blend), [/] (drive)",
            "Command mode: :1 [fold], :2 [blend], :3 [drive]",
        ]