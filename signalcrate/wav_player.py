"""Sample player that loops a WAV file with variable speed and scrubbing."""

from __future__ import annotations

import wave
from pathlib import Path

import numpy as np

from .base import CommandBuffer, Module, parse_float_arg
from .dsp import Smoother, clamp as clamp_value

DEFAULT_FILE = "sample.wav"
_PATH_LIMIT = 511


def load_wav(path: str | Path) -> tuple[np.ndarray, int]:
    """Read a PCM WAV file, mix it down to mono and return (samples, sample rate)."""
    try:
        with wave.open(str(path), "rb") as wav:
            channels = wav.getnchannels()
            width = wav.getsampwidth()
            rate = wav.getframerate()
            raw = wav.readframes(wav.getnframes())
    except (wave.Error, EOFError) as exc:
        raise ValueError(f"[Player] Failed to open WAV file '{path}'") from exc

    if width == 1:
        samples = (np.frombuffer(raw, dtype=np.uint8).astype(np.float64) - 128.0) / 128.0
    elif width == 2:
        samples = np.frombuffer(raw, dtype="<i2").astype(np.float64) / 32768.0
    elif width == 3:
        b = np.frombuffer(raw, dtype=np.uint8).reshape(-1, 3).astype(np.int32)
        ints = b[:, 0] | (b[:, 1] << 8) | (b[:, 2] << 16)
        ints = np.where(ints & 0x800000, ints - 0x1000000, ints)
        samples = ints.astype(np.float64) / 8388608.0
    elif width == 4:
        samples = np.frombuffer(raw, dtype="<i4").astype(np.float64) / 2147483648.0
    else:
        raise ValueError(f"[Player] Unsupported sample width {width} in '{path}'")

    frames = samples.size // channels
    if frames == 0:
        raise ValueError(f"[Player] WAV file '{path}' holds no audio")
    mono = samples[:frames * channels].reshape(frames, channels).mean(axis=1)
    return mono.astype(np.float32), rate


def _file_arg(args: str | None) -> str:
    if not args:
        return DEFAULT_FILE
    at = args.find("file=")
    if at < 0:
        return DEFAULT_FILE
    chars = []
    for ch in args[at + 5:]:
        if ch in ", " or len(chars) >= _PATH_LIMIT:
            break
        chars.append(ch)
    return "".join(chars)


class _ClearingCommandBuffer(CommandBuffer):
    """Command buffer whose text is emptied once a command is submitted."""

    def feed(self, key: int | str) -> tuple[bool, str | None]:
        handled, submitted = super().feed(key)
        if submitted is not None:
            self.text = ""
        return handled, submitted


class WavPlayer(Module):
    """Looping mono sample player with linear interpolation."""

    HOTKEYS = {
        "_": ("playback_speed", -0.01),
        "+": ("playback_speed", 0.01),
        "[": ("amp", -0.01),
        "]": ("amp", 0.01),
    }
    COMMANDS = {"2": "playback_speed", "3": "amp"}

    def __init__(self, args: str | None = None, sample_rate: float = 44100.0) -> None:
        super().__init__("player", sample_rate)
        self.path = _file_arg(args)
        data, rate = load_wav(self.path)
        self.data = data
        self.num_frames = len(data)
        self.file_rate = float(rate)
        self.playback_speed = parse_float_arg(args, "speed", 1.0)
        self.amp = parse_float_arg(args, "amp", 1.0)
        self.play_pos = 0.0
        self.external_play_pos = 0.0
        self.scrub_target = 0.0
        self.playing = True
        self.smooth_speed = Smoother(0.75)
        self.smooth_amp = Smoother(0.75)
        self.display_pos = 0.0
        self.display_speed = 0.0
        self.display_amp = 0.0
        self.command = _ClearingCommandBuffer()

    def process(self, block) -> np.ndarray:
        """Play one block; the input only sets the block length."""
        frames = len(block)
        with self.lock:
            n = self.num_frames
            pos = self.play_pos if self.playing else self.external_play_pos
            speed = self.smooth_speed.process(self.playback_speed)
            amp = self.smooth_amp.process(self.amp)
            playing = self.playing

        for param, norm in self.control_values():
            if param == "speed":
                speed = self.playback_speed + norm * (4.0 - self.playback_speed)
            elif param == "amp":
                amp = self.amp + norm * (1.0 - self.amp)

        self.display_pos = pos
        self.display_speed = speed
        self.display_amp = amp

        pos = max(pos, 0.0)
        if n >= 2:
            pos = min(pos, float(n - 2))

        step = speed * (self.file_rate / self.sample_rate)
        data = self.data
        out = []
        for _ in range(frames):
            i1 = int(pos)
            i2 = i1 + 1 if i1 + 1 < n else i1
            frac = pos - i1
            sample = (1.0 - frac) * float(data[i1]) + frac * float(data[i2])
            out.append(sample * amp)
            if playing:
                pos += step
                if pos >= n - 1:
                    pos = 0.0

        with self.lock:
            if self.playing:
                self.play_pos = pos
            else:
                self.external_play_pos = self.play_pos

        self.output = np.array(out, dtype=np.float32)
        return self.output

    def clamp(self) -> None:
        last = float(self.num_frames - 1)
        self.scrub_target = clamp_value(self.scrub_target, 0.0, last)
        self.play_pos = clamp_value(self.play_pos, 0.0, last)
        self.playback_speed = clamp_value(self.playback_speed, 0.1, 4.0)
        self.amp = clamp_value(self.amp, 0.0, 1.0)

    def hotkey(self, key: str) -> bool:
        if key == "-":
            self.play_pos -= self.sample_rate * 0.1
        elif key == "=":
            self.play_pos += self.sample_rate * 0.1
        elif key == "p":
            self.playing = True
        elif key == "s":
            self.playing = False
        else:
            return super().hotkey(key)
        return True

    def apply_command(self, kind: str, value: float) -> bool:
        if kind == "1":
            new_pos = clamp_value(value * self.sample_rate, 0.0, float(self.num_frames - 1))
            self.play_pos = new_pos
            self.external_play_pos = new_pos
            return True
        return super().apply_command(kind, value)

    def set_param(self, param: str, value: float) -> None:
        """Set playback speed or amplitude from OSC; other names are ignored."""
        with self.lock:
            if param == "speed":
                self.playback_speed = value
            elif param == "amp":
                self.amp = value
            self.clamp()

    def draw_ui(self) -> list[str]:
        with self.lock:
            pos_sec = self.display_pos / self.file_rate
            dur_sec = self.num_frames / self.file_rate
            state = "P" if self.playing else "S"
            speed = self.display_speed
            amp = self.display_amp
            cmd = self.command.text
        lines = [
            f"[Player:{self.name}] {pos_sec:.2f} s / {dur_sec:.2f} s ({state}) "
            f"| Spd: {speed:.2f}x | Amp: {amp:.2f}",
            "Keys: -/= to scrub | _/+ (speed) | p=play, s=stop",
            "Cmd: :1=pos :2=speed :3=amp",
        ]
        if cmd:
            lines.append(cmd)
        return lines