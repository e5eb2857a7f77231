"""Repeating script events driven by the audio clock."""

from __future__ import annotations

import re
import threading
from dataclasses import dataclass
from typing import Callable

MAX_EVENTS = 8192
_FIELD_LIMIT = 63

_HEAD_RE = re.compile(r"[^ (]+\(")
_FLOAT_RE = re.compile(
    r"\s*[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan)",
    re.IGNORECASE,
)
_FIELD_RE = re.compile(r"[^,]{1,%d}" % _FIELD_LIMIT)


class SchedulerFullError(RuntimeError):
    """Raised when no more events fit in the scheduler."""


def parse_target(script_line: str) -> tuple[str, str]:
    """Extract the (alias, param) a script line like ``rand(0,1,vco,freq)`` targets.

    Fields that cannot be read are returned as empty strings.
    """
    head = _HEAD_RE.match(script_line)
    if not head:
        return "", ""
    pos = head.end()
    for _ in range(2):
        number = _FLOAT_RE.match(script_line, pos)
        if not number:
            return "", ""
        pos = number.end()
        if script_line[pos:pos + 1] != ",":
            return "", ""
        pos += 1
    alias_match = _FIELD_RE.match(script_line, pos)
    if not alias_match:
        return "", ""
    alias = alias_match.group()
    pos = alias_match.end()
    if script_line[pos:pos + 1] != ",":
        return alias, ""
    param_match = _FIELD_RE.match(script_line, pos + 1)
    return alias, param_match.group() if param_match else ""


@dataclass
class ScheduledEvent:
    """A script line re-run every ``interval_ms`` milliseconds."""

    callback: Callable[[str], object]
    script_line: str
    interval_ms: float
    next_trigger: float
    target: tuple[str, str]
    cancelled: bool = False


class Scheduler:
    """Keeps repeating events and fires them as time advances."""

    def __init__(self, capacity: int = MAX_EVENTS) -> None:
        self.capacity = capacity
        self.time_ms = 0.0
        self._events: list[ScheduledEvent] = []
        self._lock = threading.RLock()

    def add(self, callback: Callable[[str], object], script_line: str,
            interval_ms: float) -> ScheduledEvent:
        """Schedule a line, cancelling any earlier event for the same alias/param."""
        target = parse_target(script_line)
        with self._lock:
            for event in self._events:
                if event.target == target:
                    event.cancelled = True
            if len(self._events) >= self.capacity:
                raise SchedulerFullError("Scheduler full!")
            event = ScheduledEvent(
                callback=callback,
                script_line=script_line,
                interval_ms=interval_ms,
                next_trigger=self.time_ms + interval_ms,
                target=target,
            )
            self._events.append(event)
            return event

    def tick(self, block_ms: float) -> None:
        """Advance the clock, drop cancelled events and fire those that are due."""
        with self._lock:
            self.time_ms += block_ms
            # Callbacks may add events, so the list is walked by position.
            i = 0
            while i < len(self._events):
                event = self._events[i]
                if event.cancelled:
                    del self._events[i]
                    continue
                if self.time_ms >= event.next_trigger:
                    event.callback(event.script_line)
                    event.next_trigger += event.interval_ms
                i += 1

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)