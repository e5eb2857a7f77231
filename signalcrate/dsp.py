"""Small signal-processing helpers shared by the synthesis modules."""

from __future__ import annotations

import math
import random
from functools import lru_cache

import numpy as np

TWO_PI = 2.0 * math.pi
SINE_TABLE_SIZE = 2048
FRAMES_PER_BUFFER = 64

_C_WHITESPACE = " \t\n\v\f\r"


def randf() -> float:
    """Return a uniformly distributed random number in [0, 1]."""
    return random.random()


@lru_cache(maxsize=None)
def sine_table() -> np.ndarray:
    """Return the shared, read-only single-cycle sine lookup table."""
    phases = np.arange(SINE_TABLE_SIZE, dtype=np.float64) / SINE_TABLE_SIZE * TWO_PI
    table = np.sin(phases).astype(np.float32)
    table.flags.writeable = False
    return table


def poly_blep(t: float, dt: float) -> float:
    """Polynomial band-limited step correction for a discontinuity at t = 0."""
    if t < dt:
        t /= dt
        return t + t - t * t - 1.0
    if t > 1.0 - dt:
        t = (t - 1.0) / dt
        return t * t + t + t + 1.0
    return 0.0


def clamp(value: float, low: float, high: float) -> float:
    """Limit value to the closed range [low, high]."""
    if value < low:
        return low
    if value > high:
        return high
    return value


def trim_whitespace(text: str) -> str:
    """Strip leading and trailing ASCII whitespace."""
    return text.strip(_C_WHITESPACE)


class Smoother:
    """One-pole parameter smoother: z = (1 - a) * in + a * z."""

    def __init__(self, a: float) -> None:
        self.a = a
        self.b = 1.0 - a
        self.z = 0.0

    def process(self, value: float) -> float:
        self.z = self.b * value + self.a * self.z
        return self.z