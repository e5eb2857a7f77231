"""Terminal console showing every module, with focus, navigation and a command line."""

from __future__ import annotations

import curses
import sys
import time
from collections import defaultdict
from typing import Sequence

from .osc import current_osc_port

COLUMN_WIDTH = 72
BASE_MODULE_HEIGHT = 3
LOOPER_HEIGHT = 6
MODULE_SPACING = 1
CPU_REFRESH_FRAMES = 20
COMMAND_CAPACITY = 127
DEFAULT_ROWS = 24

KEY_ENTER = 10
KEY_TAB = 9
KEY_ESCAPE = 27
_BACKSPACE_KEYS = (curses.KEY_BACKSPACE, 127)
_ARROWS = (curses.KEY_UP, curses.KEY_DOWN, curses.KEY_LEFT, curses.KEY_RIGHT)


def layout(modules: Sequence, rows: int) -> list[tuple[int, int]]:
    """Place modules in columns that fit the screen height; return (y, x) for each."""
    per_col = max((rows - 4) // (BASE_MODULE_HEIGHT + MODULE_SPACING), 1)
    heights: dict[int, int] = defaultdict(int)
    positions = []
    for i, module in enumerate(modules):
        col = i // per_col
        height = LOOPER_HEIGHT if getattr(module, "name", "") == "looper" else BASE_MODULE_HEIGHT
        positions.append((2 + heights[col], 2 + col * COLUMN_WIDTH))
        heights[col] += height + MODULE_SPACING
    return positions


def navigate(positions: Sequence[tuple[int, int]], focused: int, key: int) -> int:
    """Return the index of the nearest module in the arrow key's direction."""
    if not 0 <= focused < len(positions):
        return focused
    fy, fx = positions[focused]
    best_index = focused
    best_distance = 99999
    for i, (y, x) in enumerate(positions):
        if i == focused:
            continue
        dx, dy = x - fx, y - fy
        if key == curses.KEY_UP and dy < 0 and abs(dx) < COLUMN_WIDTH // 2:
            distance = -dy
        elif key == curses.KEY_DOWN and dy > 0 and abs(dx) < COLUMN_WIDTH // 2:
            distance = dy
        elif key == curses.KEY_LEFT and dx < 0 and abs(dy) < 3:
            distance = -dx
        elif key == curses.KEY_RIGHT and dx > 0 and abs(dy) < 3:
            distance = dx
        else:
            continue
        if distance < best_distance:
            best_distance = distance
            best_index = i
    return best_index


class CpuMeter:
    """Process CPU usage as a percentage of wall-clock time since the last sample."""

    def __init__(self) -> None:
        self._last_cpu = time.process_time()
        self._last_time = time.monotonic()

    def sample(self) -> float:
        cpu_now = time.process_time()
        time_now = time.monotonic()
        delta_cpu = cpu_now - self._last_cpu
        delta_time = time_now - self._last_time
        self._last_cpu = cpu_now
        self._last_time = time_now
        if delta_time <= 0.0:
            return 0.0
        return 100.0 * delta_cpu / delta_time


def _key_code(key: int | str) -> int:
    if isinstance(key, str):
        return ord(key) if len(key) == 1 else -1
    return int(key)


def _put(screen, y: int, x: int, text: str) -> None:
    rows, cols = screen.getmaxyx()
    if y < 0 or y >= rows:
        return
    x = max(x, 0)
    room = cols - x - 1
    if room <= 0:
        return
    try:
        screen.addstr(y, x, text[:room])
    except curses.error:
        pass


class Console:
    """State of the module console: focus, command line and layout."""

    def __init__(self, modules: Sequence, osc_port: str = "") -> None:
        self.modules = list(modules)
        self.osc_port = osc_port
        self.focused = 0
        self.in_command_mode = False
        self.command = ""
        self.running = True
        self.cpu = 0.0
        self.show_cursor = False
        self.positions = layout(self.modules, DEFAULT_ROWS)
        self._meter = CpuMeter()
        self._cpu_counter = 0

    def _focused_module(self):
        if 0 <= self.focused < len(self.modules):
            return self.modules[self.focused]
        return None

    def _forward(self, module, code: int) -> None:
        if module is not None and hasattr(module, "handle_input"):
            module.handle_input(code)

    def _reset_command(self) -> None:
        self.command = ""
        self.in_command_mode = False

    def handle_key(self, key: int | str) -> bool:
        """Process one key press; return whether the console keeps running."""
        code = _key_code(key)
        focused = self._focused_module()

        if focused is not None and getattr(focused, "editing", False):
            self._forward(focused, code)
            return self.running

        if self.in_command_mode:
            if code == KEY_ENTER:
                if self.command == "q":
                    self.running = False
                    return self.running
                for ch in self.command:
                    self._forward(focused, ord(ch))
                self._forward(focused, KEY_ENTER)
                self._reset_command()
            elif code == KEY_ESCAPE:
                self._reset_command()
            elif code in _BACKSPACE_KEYS and self.command:
                self.command = self.command[:-1]
            elif 32 <= code < 127 and len(self.command) < COMMAND_CAPACITY:
                self.command += chr(code)
            return self.running

        if code == KEY_TAB:
            if self.modules:
                self.focused = (self.focused + 1) % len(self.modules)
        elif code in _ARROWS:
            self.focused = navigate(self.positions, self.focused, code)
        elif code == ord(":"):
            self.in_command_mode = True
            self.command = ""
            self._forward(focused, code)
        else:
            self._forward(focused, code)
        return self.running

    def render(self, screen) -> None:
        """Draw the header, every module and the footer onto a curses window."""
        screen.erase()
        rows, cols = screen.getmaxyx()
        _put(screen, 0, 2, "--- Signal Crate ---")

        self._cpu_counter += 1
        if self._cpu_counter >= CPU_REFRESH_FRAMES:
            self.cpu = self._meter.sample()
            self._cpu_counter = 0
        _put(screen, 0, cols - 30, f"[CPU] {self.cpu:.1f}%  [OSC:{self.osc_port}]")

        self.positions = layout(self.modules, rows)
        cursor = None
        for i, (module, (y, x)) in enumerate(zip(self.modules, self.positions)):
            is_focused = i == self.focused
            if is_focused:
                screen.attron(curses.A_REVERSE)
            for offset, line in enumerate(module.draw_ui()):
                _put(screen, y + offset, x, line)
            if is_focused:
                screen.attroff(curses.A_REVERSE)
            if getattr(module, "editing", False) and hasattr(module, "cursor_position"):
                line_no, col = module.cursor_position()
                cursor = (y + 1 + line_no, x + col)

        if self.in_command_mode:
            _put(screen, rows - 2, 2, f": {self.command}")
        else:
            _put(screen, rows - 2, 2, "[TAB] switch module | [:q] quit | [:] command mode")

        self.show_cursor = cursor is not None
        if cursor is not None:
            try:
                screen.move(*cursor)
            except curses.error:
                self.show_cursor = False

    def run(self, stdscr) -> None:
        """Interactive loop on an initialised curses screen."""
        try:
            curses.set_escdelay(25)
        except curses.error:
            pass
        stdscr.keypad(True)
        stdscr.nodelay(True)
        while self.running:
            self.render(stdscr)
            try:
                curses.curs_set(1 if self.show_cursor else 0)
            except curses.error:
                pass
            stdscr.refresh()
            ch = stdscr.getch()
            if ch == -1:
                curses.napms(10)
                continue
            self.handle_key(ch)


def ui_loop(modules: Sequence, enabled: bool = True, osc_port: str | None = None) -> None:
    """Run the console; when disabled, idle forever so audio keeps running."""
    if not enabled:
        print("[ui] Skipping UI (disabled by patch flag)", file=sys.stderr)
        while True:
            time.sleep(0.1)
    port = current_osc_port() if osc_port is None else osc_port
    console = Console(modules, port)
    curses.wrapper(console.run)