"""Bank of parallel resonant band-pass filters with tilt, odd/even weighting and drive."""

from __future__ import annotations

import math

import numpy as np

from .base import Module, parse_float_arg, parse_int_arg
from .dsp import Smoother, clamp as clamp_value

RES_MAX_BANDS = 24
MIN_Q = 0.3
MAX_Q = 40.0
MIN_HZ = 20.0


def soft_sat(x: float, drive: float) -> float:
    """Fast soft clipper whose gain grows from 1 to 10 as drive goes from 0 to 1."""
    y = (1.0 + 9.0 * drive) * x
    return y / (1.0 + abs(y))


def _code(key: int | str) -> int:
    return ord(key) if isinstance(key, str) and len(key) == 1 else int(key) if not isinstance(key, str) else -1


class ResBank(Module):
    """Up to 24 log-spaced band-pass resonators mixed with the dry signal."""

    HOTKEYS = {
        "=": ("mix", 0.01),
        "-": ("mix", -0.01),
        "+": ("q", 0.1),
        "_": ("q", -0.1),
        "]": ("lo_hz", 1.0),
        "[": ("lo_hz", -1.0),
        "}": ("hi_hz", 1.0),
        "{": ("hi_hz", -1.0),
        "'": ("bands", 1),
        ";": ("bands", -1),
        '"': ("tilt", 0.01),
        "?": ("tilt", -0.01),
        ".": ("odd", 0.01),
        ",": ("odd", -0.01),
        ">": ("drive", 0.01),
        "<": ("drive", -0.01),
        "0": ("regen", 0.01),
        "9": ("regen", -0.01),
    }
    COMMANDS = {
        "1": "mix",
        "2": "q",
        "6": "tilt",
        "7": "odd",
        "8": "drive",
        "9": "regen",
    }

    def __init__(self, args: str | None = None, sample_rate: float = 44100.0) -> None:
        super().__init__("res_bank", sample_rate)
        self.mix = parse_float_arg(args, "mix", 0.5)
        self.q = parse_float_arg(args, "q", 12.0)
        self.lo_hz = parse_float_arg(args, "lo", 120.0)
        self.hi_hz = parse_float_arg(args, "hi", 6000.0)
        self.tilt = parse_float_arg(args, "tilt", 0.0)
        self.odd = parse_float_arg(args, "odd", 0.0)
        self.drive = parse_float_arg(args, "drive", 0.2)
        self.regen = parse_float_arg(args, "regen", 0.1)
        self.bands = parse_int_arg(args, "bands", 12)

        self.smooth_mix = Smoother(0.50)
        self.smooth_q = Smoother(0.75)
        self.smooth_lo_hz = Smoother(0.75)
        self.smooth_hi_hz = Smoother(0.75)
        self.smooth_tilt = Smoother(0.50)
        self.smooth_odd = Smoother(0.50)
        self.smooth_drive = Smoother(0.50)
        self.smooth_regen = Smoother(0.75)

        self.display_mix = 0.0
        self.display_q = 0.0
        self.display_lo_hz = 0.0
        self.display_hi_hz = 0.0
        self.display_tilt = 0.0
        self.display_odd = 0.0
        self.display_drive = 0.0
        self.display_regen = 0.0
        self.display_bands = 0

        size = RES_MAX_BANDS
        self.b0 = [0.0] * size
        self.b1 = [0.0] * size
        self.b2 = [0.0] * size
        self.a1 = [0.0] * size
        self.a2 = [0.0] * size
        self.z1 = [0.0] * size
        self.z2 = [0.0] * size
        self.f = [0.0] * size
        self.w = [0.0] * size

        self.clamp()
        self.need_centers = True
        self.need_coeffs = True

    def _rebuild_centers(self) -> None:
        n = self.bands
        lo = max(self.display_lo_hz, MIN_HZ)
        hi = min(self.display_hi_hz, self.sample_rate * 0.45)
        for i in range(n):
            t = 0.5 if n == 1 else i / (n - 1)
            self.f[i] = lo * (hi / lo) ** t
        self.need_centers = False
        self.need_coeffs = True

    def _rebuild_weights(self) -> None:
        n = self.bands
        tilt = self.display_tilt
        odd = self.display_odd
        for i in range(n):
            t = 0.5 if n == 1 else i / (n - 1)
            w_tilt = 2.0 ** (tilt * (t - 0.5) * 4.0)
            w_odd = (1.0 + odd) if i & 1 else (1.0 - odd)
            self.w[i] = w_tilt * w_odd

    def _rebuild_coeffs(self) -> None:
        q = max(self.display_q, MIN_Q)
        for i in range(self.bands):
            omega = 2.0 * math.pi * self.f[i] / self.sample_rate
            sn, cs = math.sin(omega), math.cos(omega)
            alpha = sn / (2.0 * q)
            a0 = 1.0 + alpha
            self.b0[i] = alpha / a0
            self.b1[i] = 0.0
            self.b2[i] = -alpha / a0
            self.a1[i] = -2.0 * cs / a0
            self.a2[i] = (1.0 - alpha) / a0
        self.need_coeffs = False

    def _biquad(self, i: int, x: float) -> float:
        y = self.b0[i] * x + self.z1[i]
        self.z1[i] = self.b1[i] * x + self.z2[i] - self.a1[i] * y
        self.z2[i] = self.b2[i] * x - self.a2[i] * y
        return y

    def process(self, block) -> np.ndarray:
        """Run one block through the resonator bank."""
        with self.lock:
            mix = self.smooth_mix.process(self.mix)
            q = self.smooth_q.process(self.q)
            lo = self.smooth_lo_hz.process(self.lo_hz)
            hi = self.smooth_hi_hz.process(self.hi_hz)
            tilt = self.smooth_tilt.process(self.tilt)
            odd = self.smooth_odd.process(self.odd)
            drive = self.smooth_drive.process(self.drive)
            regen = self.smooth_regen.process(self.regen)
            bands = self.bands
            if abs(q - self.display_q) > 0.01:
                self.need_coeffs = True

        for param, norm in self.control_values():
            if param == "mix":
                mix = self.mix + norm * (1.0 - self.mix)
            elif param == "q":
                q = self.q + norm * (1.0 - self.q)
            elif param == "lo":
                lo = self.lo_hz + norm * self.lo_hz
            elif param == "hi":
                hi = self.hi_hz + norm * self.hi_hz
            elif param == "tilt":
                tilt = self.tilt + norm * (2.0 - abs(self.tilt))
            elif param == "odd":
                odd = self.odd + norm * (2.0 - abs(self.odd))
            elif param == "drive":
                drive = self.drive + norm * (1.0 - self.drive)
            elif param == "regen":
                regen = self.regen + norm * (1.0 - self.regen)
            elif param == "bands":
                bands = int(self.bands + norm * (RES_MAX_BANDS - self.bands))
        bands = min(bands, RES_MAX_BANDS)

        self.display_mix = mix
        self.display_q = q
        self.display_lo_hz = lo
        self.display_hi_hz = hi
        self.display_tilt = tilt
        self.display_odd = odd
        self.display_drive = drive
        self.display_regen = regen
        self.display_bands = bands

        if self.need_centers:
            self._rebuild_centers()
        self._rebuild_weights()
        if self.need_coeffs:
            self._rebuild_coeffs()

        out = []
        for dry in np.asarray(block, dtype=np.float64).tolist():
            x_fb = dry + 1e-20
            total = 0.0
            for i in range(bands):
                y = self._biquad(i, x_fb)
                total += self.w[i] * y
                x_fb += regen * (0.008 / bands) * math.tanh(y)
            wet = soft_sat(total, drive)
            value = mix * wet + (1.0 - mix) * dry
            if not math.isfinite(value):
                value = 0.0
            out.append(clamp_value(value, -1.0, 1.0))

        self.output = np.array(out, dtype=np.float32)
        return self.output

    def clamp(self) -> None:
        if self.lo_hz < MIN_HZ:
            self.lo_hz = MIN_HZ
        nyquist = self.sample_rate * 0.45
        if self.hi_hz > nyquist:
            self.hi_hz = nyquist
        if self.hi_hz < self.lo_hz + 1.0:
            self.hi_hz = self.lo_hz + 1.0
        self.mix = clamp_value(self.mix, 0.0, 1.0)
        self.drive = clamp_value(self.drive, 0.0, 1.0)
        self.regen = clamp_value(self.regen, 0.0, 1.0)
        self.q = clamp_value(self.q, MIN_Q, MAX_Q)
        self.tilt = clamp_value(self.tilt, -1.0, 1.0)
        self.odd = clamp_value(self.odd, -1.0, 1.0)
        self.bands = int(clamp_value(self.bands, 1, RES_MAX_BANDS))

    def hotkey(self, key: str) -> bool:
        return super().hotkey(key)

    def apply_command(self, kind: str, value: float) -> bool:
        if kind == "3":
            self.lo_hz = value
        elif kind == "4":
            self.hi_hz = value
        elif kind == "5":
            self.bands = int(value)
        else:
            return super().apply_command(kind, value)
        self.need_centers = True
        return True

    def handle_input(self, key: int | str) -> bool:
        """Handle a key press and flag the filter tables for rebuilding."""
        handled = super().handle_input(key)
        if handled:
            code = ord(key) if isinstance(key, str) else key
            with self.lock:
                if code in (ord("3"), ord("4"), ord("9"), ord("0")):
                    self.need_centers = True
                if code == ord("2"):
                    self.need_coeffs = True
        return handled

    def set_param(self, param: str, value: float) -> None:
        """Set a parameter from OSC."""
        with self.lock:
            if param == "mix":
                self.mix = clamp_value(value, 0.0, 1.0)
            elif param == "q":
                self.q = value
                self.need_coeffs = True
            elif param == "tilt":
                self.tilt = clamp_value(value, -1.0, 1.0)
            elif param == "odd":
                self.odd = clamp_value(value, -1.0, 1.0)
            elif param == "drive":
                self.drive = clamp_value(value, 0.0, 1.0)
            elif param == "regen":
                self.regen = clamp_value(value, 0.0, 0.5)
            elif param == "bands":
                self.bands = int(value + 0.5)
                self.need_centers = True
            elif param in ("lo", "hi"):
                norm = clamp_value(value, 0.0, 1.0)
                hz = 20.0 * (20000.0 / 20.0) ** norm
                if param == "lo":
                    self.lo_hz = hz
                else:
                    self.hi_hz = hz
                self.need_centers = True
            else:
                raise ValueError(f"[res_bank] Unknown OSC param: {param}")
            self.clamp()

    def draw_ui(self) -> list[str]:
        with self.lock:
            lines = [
                f"[ResBank:{self.name}] mix:{self.display_mix:.2f} q:{self.display_q:.1f} "
                f"lo:{self.display_lo_hz:.0f} hi:{self.display_hi_hz:.0f} "
                f"bands:{self.display_bands} tilt:{self.display_tilt:.2f} "
                f"odd:{self.display_odd:.2f} drv:{self.display_drive:.2f} "
                f"rgn:{self.display_regen:.2f}",
                "Real-time: -/= mix, _/+ q, [/] lo, {/} hi, ;/' bands, ?/\" tilt, "
                ",/. odd, </> drive, 9/0 regen",
                "Cmd mode :1 [mix] :2 [q] :3 [lo] :4 [hi] :5 [bands] :6 [tilt] "
                ":7 [odd] :8 [drive] :9 [rgn]",
            ]
            if self.command.active:
                lines.append(f":{self.command.text}")
        return lines