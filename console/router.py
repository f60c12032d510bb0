"""
PanelDeck - Event Router
==========================
Turns decoded control events into scrollback lines and UI notifications.

Classification, in priority order:
    1. auth / token events   -> control path only, never shown
    2. console output        -> LogLine, class from text heuristics
    3. status change         -> system LogLine + "status" notification
    4. stats                 -> "stats" notification only
       daemon messages       -> system (or error) LogLine
    5. anything else         -> raw LogLine with the frame text verbatim

Subscribers receive (kind, payload) tuples:
    ("line", LogLine)  ("status", str)  ("stats", dict)

The router is called from one session reader at a time, so events are
routed strictly in arrival order.
"""

import re
from typing import Any, Callable

from console.buffer import ScrollbackBuffer
from console.logger import ConsoleLogger
from console.models import LogClass, LogLine
from console.protocol import (
    AuthResult,
    ControlEvent,
    DaemonMessage,
    LogOutput,
    Stats,
    StatusChanged,
    TokenExpired,
    TokenExpiring,
    Unknown,
)


# Prefix of locally echoed operator commands
COMMAND_ECHO_MARKER = ">"

# CSI sequences (colours, cursor movement) emitted by game servers
_ANSI_RE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]")

Subscriber = Callable[[str, Any], None]


def classify(text: str) -> LogClass:
    """
    Derive the display class of a console line.

    Case-sensitive substring checks, first match wins. The order is part
    of the contract: "[WARN] Player left" is a warning, not a social line.
    """
    if "WARN" in text:
        return LogClass.WARN
    if "ERROR" in text or "SEVERE" in text:
        return LogClass.ERROR
    if "joined" in text or "left" in text:
        return LogClass.SOCIAL
    if text.startswith(COMMAND_ECHO_MARKER):
        return LogClass.COMMAND
    return LogClass.INFO


def strip_ansi(text: str) -> str:
    """Remove terminal escape sequences from a console line."""
    return _ANSI_RE.sub("", text)


class EventRouter:
    """
    Routes events into a scrollback buffer and fans out notifications.

    Attributes:
        buffer:       The scrollback buffer lines are appended to.
        strip_colors: Remove ANSI escape sequences from console output.
    """

    def __init__(
        self,
        buffer: ScrollbackBuffer,
        strip_colors: bool = True,
        logger: ConsoleLogger | None = None,
    ):
        self.buffer = buffer
        self.strip_colors = strip_colors
        self.logger = logger
        self._subscribers: list[Subscriber] = []

    # -- Subscriptions ---------------------------------------------------------

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a notification callback.

        Args:
            callback: Called as callback(kind, payload) for every notification.

        Returns:
            A function that removes the subscription. Calling it twice is harmless.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def notify(self, kind: str, payload: Any) -> None:
        """
        Deliver a notification to every subscriber.

        A failing subscriber is reported and skipped; it does not stop
        delivery to the others.
        """
        for callback in list(self._subscribers):
            try:
                callback(kind, payload)
            except Exception as e:
                if self.logger:
                    self.logger.error(f"Console subscriber failed on '{kind}': {e}")

    # -- Routing ---------------------------------------------------------------

    def route(self, event: ControlEvent) -> LogLine | None:
        """
        Route one decoded event.

        Args:
            event: The event, in arrival order.

        Returns:
            The stored LogLine, or None if the event produced no line.
        """
        if isinstance(event, (AuthResult, TokenExpiring, TokenExpired)):
            return None

        if isinstance(event, LogOutput):
            text = self._clean(event.text)
            return self.emit(LogLine(classify(text), text))

        if isinstance(event, StatusChanged):
            line = self.emit(LogLine(LogClass.SYSTEM, f"Server marked as {event.status}"))
            self.notify("status", event.status)
            return line

        if isinstance(event, Stats):
            self.notify("stats", event.payload)
            return None

        if isinstance(event, DaemonMessage):
            log_class = LogClass.ERROR if event.error else LogClass.SYSTEM
            return self.emit(LogLine(log_class, self._clean(event.text)))

        raw = event.raw if isinstance(event, Unknown) else str(event)
        return self.emit(LogLine(LogClass.RAW, raw.rstrip("\r\n")))

    def emit(self, line: LogLine) -> LogLine:
        """Append a line to the buffer and notify subscribers."""
        stored = self.buffer.append(line)
        self.notify("line", stored)
        return stored

    def _clean(self, text: str) -> str:
        text = text.rstrip("\r\n")
        return strip_ansi(text) if self.strip_colors else text
