"""Synthesizer modules, a script scheduler, OSC control and a curses console."""

__version__ = "0.1.0"