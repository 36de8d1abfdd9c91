"""
Progress reporting for long encodes and decodes.

An observer is any callable taking a fraction in [0, 1]. It is invoked
synchronously on the caller's thread, only when the completed whole
percentage increases, and once with 1.0 at the end.
"""

from __future__ import annotations

import sys
from typing import Callable, TextIO

ProgressObserver = Callable[[float], None]


class ProgressTracker:
    """Counts processed units and notifies an optional observer."""

    def __init__(self, total: int, observer: ProgressObserver | None = None) -> None:
        self.total = total
        self.done = 0
        self._observer = observer
        self._last_percent = 0
        self._finished = False

    def advance(self, count: int = 1) -> None:
        self.done += count
        if self._observer is None or self.total <= 0:
            return
        percent = min(100, self.done * 100 // self.total)
        if percent > self._last_percent and percent < 100:
            self._last_percent = percent
            self._observer(self.done / self.total)

    def finish(self) -> None:
        if self._finished:
            return
        self._finished = True
        if self._observer is not None:
            self._observer(1.0)


class TerminalProgressBar:
    """Observer that draws ``[#####     ]  42.0%`` on a terminal stream."""

    def __init__(self, stream: TextIO | None = None, width: int = 50) -> None:
        self.stream = stream if stream is not None else sys.stderr
        self.width = width

    def __call__(self, fraction: float) -> None:
        filled = int(fraction * self.width)
        bar = "#" * filled + " " * (self.width - filled)
        self.stream.write(f"\r[{bar}] {fraction * 100:5.1f}%")
        if fraction >= 1.0:
            self.stream.write("\n")
        self.stream.flush()


def terminal_observer(stream: TextIO | None = None) -> ProgressObserver | None:
    """A progress bar for interactive terminals, None otherwise."""
    stream = stream if stream is not None else sys.stderr
    if not stream.isatty():
        return None
    return TerminalProgressBar(stream)
