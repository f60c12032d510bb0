"""
PanelDeck - Scrollback Buffer
===============================
Bounded, append-only history of console lines.

The buffer is written by the transport receive path (and by the command
dispatcher for local echoes) and read by the rendering path, possibly from
another thread. A single lock serializes appends and snapshots, so a reader
never sees a half-applied append.

Eviction is FIFO: once capacity is reached, each append drops the oldest
line. Lines are numbered on append so the UI can tell where it left off.
"""

import threading
from collections import deque

from console.models import LogLine


# Matches the scrollback length shown by the panel's own console
DEFAULT_CAPACITY = 500


class ScrollbackBuffer:
    """
    Thread-safe bounded line buffer.

    Attributes:
        capacity: Maximum number of lines retained.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        """
        Args:
            capacity: Maximum number of lines retained. Must be positive.

        Raises:
            ValueError: If capacity is less than 1.
        """
        if capacity < 1:
            raise ValueError("Scrollback capacity must be at least 1")
        self.capacity = capacity
        self._lines: deque[LogLine] = deque(maxlen=capacity)
        self._next_seq = 1
        self._lock = threading.Lock()

    def append(self, line: LogLine) -> LogLine:
        """
        Append a line, evicting the oldest when full.

        Args:
            line: The line to store. Its seq is replaced by the arrival number.

        Returns:
            The stored line, carrying its arrival number.
        """
        with self._lock:
            stored = line.with_seq(self._next_seq)
            self._next_seq += 1
            self._lines.append(stored)
            return stored

    def snapshot(self) -> tuple[LogLine, ...]:
        """Return the retained lines, oldest first, without mutating the buffer."""
        with self._lock:
            return tuple(self._lines)

    def __len__(self) -> int:
        with self._lock:
            return len(self._lines)
