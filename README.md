# signalcrate

Building blocks for a small modular synthesizer. Each module is an object
that takes a block of samples, returns a new block as a numpy `float32`
array, and keeps its own parameters, real-time hotkeys and command mode.
Modules can be driven from the keyboard, over OSC, or from short scripts
that repeat on a schedule.

Requires Python 3.10 or later and numpy. The script box and the console use
the standard `curses` module, so they need a platform that provides it.

## Modules

| Class                                  | What it does                                              |
|----------------------------------------|-----------------------------------------------------------|
| `signalcrate.vco.Vco`                  | Oscillator: sine, saw, square, triangle; four frequency ranges |
| `signalcrate.noise_source.NoiseSource` | White, pink and brown noise                               |
| `signalcrate.moog_filter.MoogFilter`   | Four-stage ladder filter: LP, HP, BP, notch, resonant     |
| `signalcrate.res_bank.ResBank`         | Up to 24 log-spaced resonant band-pass filters            |
| `signalcrate.ring_mod.RingMod`         | Ring modulator with an internal sine modulator            |
| `signalcrate.wavefolder.Wavefolder`    | Wavefolder with drive and dry/wet blend                   |
| `signalcrate.spec_hold.SpecHold`       | FFT spectral tilt around a pivot, with a freeze switch    |
| `signalcrate.vca.Vca`                  | Smoothed gain stage                                       |
| `signalcrate.wav_player.WavPlayer`     | Looping WAV playback with speed, amplitude and scrubbing  |
| `signalcrate.scriptbox.ScriptBox`      | Editable script that sends values to other modules        |

All of them derive from `signalcrate.base.Module`. A module is created from
an argument string of `key=value` pairs and a sample rate:

```python
import numpy as np
from signalcrate.vco import Vco
from signalcrate.moog_filter import MoogFilter

vco = Vco("freq=220 wave=saw amp=0.8", 48000)
lpf = MoogFilter("cutoff=800 res=2.0 type=LP", 48000)

block = np.zeros(64, dtype=np.float32)
out = lpf.process(vco.process(block))
```

Generators (`Vco`, `NoiseSource`, `WavPlayer`) use the input block only for
its length. `SpecHold` rejects blocks longer than its FFT size of 2048.
`WavPlayer` reads the file named by `file=` (default `sample.wav`) with
`load_wav`, which accepts 8, 16, 24 and 32-bit PCM and mixes it to mono.

### Changing parameters

- **Hotkeys**: `handle_input(key)` takes a character or key code; the keys
  each module understands are listed in the lines returned by `draw_ui()`,
  for example `=` and `-` to nudge the main parameter.
- **Command mode**: `:` starts a command, then a parameter number and a
  value such as `1 440`, then Enter (key code 10). Escape cancels.
- **`set_param(name, value)`**: the entry point used by OSC. Most
  parameters take a normalised 0..1 value; filter cutoff, resonator `lo`/`hi`
  and spectral pivot map exponentially from 20 Hz to 20 kHz, the VCO's
  `freq` from 20 Hz to the top of its current range, and the ring
  modulator's `mod_freq` from 0.01 Hz to 20 kHz. Unknown names raise
  `ValueError` (`WavPlayer` ignores them).
- **Modulation**: `attach_control(param, source)` takes a callable; its
  value, limited to -1..1, sweeps the parameter around its set point on each
  block.

`signalcrate.dsp` holds the shared helpers: `Smoother`, `poly_blep`,
`sine_table`, `clamp`, `randf` and `trim_whitespace`.

## OSC

`signalcrate.osc.start_osc_server(modules)` takes a mapping of alias to
module, binds the first free UDP port from 61245 upwards (100 attempts) and
serves on a background thread. A message to `/<alias>/<param>` whose first
argument is an integer or float calls that module's `set_param`. The bound
port is available from `current_osc_port()` and is also stored in the
`SIGNAL_CRATE_OSC_PORT` environment variable. `OscServer` can be used as a
context manager; `encode_message`, `decode_message`, `split_address` and
`send_message` handle the wire format. Problems raise `OscError`.

## Scripts and scheduling

A `ScriptBox` holds lines such as

```
rand(200,2000,osc1,freq,~500)
set(0.5,1,filt,res)
// a comment
```

`rand(a,b,alias,param)` picks a random value between `a` and `b`;
`set(a,b,alias,param)` uses `a`. The value is scaled to 0..1 (`freq` and
`cutoff` on a logarithmic 20 Hz–20 kHz scale, otherwise between `a` and `b`)
and sent to `/<alias>/<param>` on the local OSC port; pass `send=` to deliver
it some other way. `run_command(line)` runs one line and raises
`ScriptError` if it cannot be parsed; `run_script()` runs every line and
skips the bad ones. In the console, Enter starts editing, Escape stops, and
Ctrl-R runs the script.

A trailing `~<ms>` adds the line to a `signalcrate.scheduler.Scheduler`,
replacing any earlier event for the same alias and parameter. The scheduler
only moves when `tick(block_ms)` is called; `SchedulerFullError` is raised
once 8192 events are held.

## Console

`signalcrate.ui.ui_loop(modules, enabled=True, osc_port=None)` opens a
curses console that lays the modules out in columns, shows process CPU
usage and the OSC port, and forwards keys to the focused module. Tab and the
arrow keys move the focus, `:` opens the command line (whose text is passed
to the focused module on Enter), and `:q` quits. With `enabled=False` it
idles forever instead. `Console`, `layout` and `navigate` can be used
without a terminal.

## What is not included

The package does not open an audio device, load patch files or connect
modules to each other: the caller passes blocks between modules, calls
`Scheduler.tick`, and starts the OSC server and console. There is no
command-line program.