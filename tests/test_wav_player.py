import wave

import numpy as np
import pytest

from signalcrate.wav_player import WavPlayer, load_wav


def _write_wav(path, samples, rate=100, channels=1):
    ints = (np.asarray(samples) * 32767).astype("<i2")
    with wave.open(str(path), "wb") as wav:
        wav.setnchannels(channels)
        wav.setsampwidth(2)
        wav.setframerate(rate)
        wav.writeframes(ints.tobytes())
    return path


@pytest.fixture
def ramp_file(tmp_path):
    samples = np.linspace(-0.5, 0.5, 100)
    return _write_wav(tmp_path / "ramp.wav", samples), samples


def test_load_wav_round_trip(ramp_file):
    path, samples = ramp_file
    data, rate = load_wav(path)
    assert rate == 100
    assert len(data) == 100
    assert np.allclose(data, samples, atol=1e-3)


def test_load_wav_averages_channels(tmp_path):
    left = np.full(10, 0.5)
    right = np.full(10, -0.25)
    interleaved = np.column_stack([left, right]).ravel()
    path = _write_wav(tmp_path / "stereo.wav", interleaved, channels=2)
    data, _ = load_wav(path)
    assert len(data) == 10
    assert np.allclose(data, (left + right) / 2, atol=1e-3)


def test_load_wav_missing_file_raises(tmp_path):
    with pytest.raises(OSError):
        load_wav(tmp_path / "missing.wav")


def test_load_wav_rejects_non_wav(tmp_path):
    path = tmp_path / "junk.wav"
    path.write_bytes(b"not a wave file at all")
    with pytest.raises(ValueError):
        load_wav(path)


def test_player_defaults(ramp_file):
    path, _ = ramp_file
    p = WavPlayer(f"file={path}", sample_rate=100.0)
    assert p.name == "player"
    assert p.playing is True
    assert p.playback_speed == 1.0
    assert p.amp == 1.0
    assert p.num_frames == 100


def test_file_arg_stops_at_comma(ramp_file):
    path, _ = ramp_file
    p = WavPlayer(f"file={path},speed=2,amp=0.5", sample_rate=100.0)
    assert p.playback_speed == pytest.approx(2.0)
    assert p.amp == pytest.approx(0.5)


def test_output_length_and_bound(ramp_file):
    path, samples = ramp_file
    p = WavPlayer(f"file={path}", sample_rate=100.0)
    out = p.process(np.zeros(64))
    assert len(out) == 64
    assert float(np.max(np.abs(out))) <= float(np.max(np.abs(samples))) + 1e-3


def test_playing_advances_position(ramp_file):
    path, _ = ramp_file
    p = WavPlayer(f"file={path}", sample_rate=100.0)
    p.process(np.zeros(16))
    assert p.play_pos > 0.0


def test_stopped_player_holds_a_constant_sample(ramp_file):
    path, _ = ramp_file
    p = WavPlayer(f"file={path}", sample_rate=100.0)
    p.handle_input("s")
    assert p.playing is False
    out = p.process(np.zeros(32))
    assert np.all(out == out[0])


def test_command_sets_position_in_seconds(ramp_file):
    path, _ = ramp_file
    p = WavPlayer(f"file={path}", sample_rate=100.0)
    for key in ":1 0.5\n":
        p.handle_input(key)
    assert p.play_pos == pytest.approx(50.0)
    assert p.external_play_pos == pytest.approx(50.0)


def test_command_position_is_clamped(ramp_file):
    path, _ = ramp_file
    p = WavPlayer(f"file={path}", sample_rate=100.0)
    for key in ":1 9\n":
        p.handle_input(key)
    assert p.play_pos == pytest.approx(99.0)


def test_command_text_cleared_after_enter(ramp_file):
    path, _ = ramp_file
    p = WavPlayer(f"file={path}", sample_rate=100.0)
    for key in ":2 2":
        p.handle_input(key)
    assert p.draw_ui()[-1] == "2 2"
    p.handle_input("\n")
    assert len(p.draw_ui()) == 3
    assert p.playback_speed == pytest.approx(2.0)


def test_scrub_hotkeys_clamp_to_file(ramp_file):
    path, _ = ramp_file
    p = WavPlayer(f"file={path}", sample_rate=100.0)
    p.handle_input("=")
    assert p.play_pos == pytest.approx(10.0)
    p.handle_input("-")
    p.handle_input("-")
    assert p.play_pos == 0.0


def test_set_param_clamps_speed_and_amp(ramp_file):
    path, _ = ramp_file
    p = WavPlayer(f"file={path}", sample_rate=100.0)
    p.set_param("speed", 10.0)
    assert p.playback_speed == 4.0
    p.set_param("amp", -1.0)
    assert p.amp == 0.0


def test_draw_ui_shows_play_state(ramp_file):
    path, _ = ramp_file
    p = WavPlayer(f"file={path}", sample_rate=100.0)
    assert "(P)" in p.draw_ui()[0]
    p.handle_input("s")
    assert "(S)" in p.draw_ui()[0]
    assert "1.00 s" in p.draw_ui()[0]