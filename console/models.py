"""
PanelDeck - Console Data Model
================================
Plain value types shared by the console client modules.

    LogLine          - immutable display line with a semantic class
    LogClass         - info / warn / error / social / command / system / raw
    TransportState   - lifecycle of one websocket session
    SupervisorState  - lifecycle of the console as the operator sees it
    Credentials      - one-time websocket grant from the panel
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum


class LogClass(str, Enum):
    """Semantic class of a display line, used by the UI for colouring."""
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    SOCIAL = "social"
    COMMAND = "command"
    SYSTEM = "system"
    RAW = "raw"


class TransportState(str, Enum):
    """
    States of a single transport session.

    IDLE -> CONNECTING -> AWAITING_AUTH -> AUTHENTICATED -> CLOSING -> CLOSED
    FAILED is reachable from CONNECTING, AWAITING_AUTH and AUTHENTICATED.
    """
    IDLE = "idle"
    CONNECTING = "connecting"
    AWAITING_AUTH = "awaiting_auth"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"
    CLOSING = "closing"
    CLOSED = "closed"


class SupervisorState(str, Enum):
    """States of the reconnection supervisor."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    LIVE = "live"
    REFRESHING = "refreshing"
    CLOSED = "closed"


@dataclass(frozen=True)
class LogLine:
    """
    One line of console scrollback.

    Attributes:
        log_class: Semantic class of the line.
        text:      Display text, without trailing newline.
        timestamp: UTC time the line was created.
        seq:       Arrival number, assigned by the scrollback buffer on append.
    """
    log_class: LogClass
    text: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    seq: int = 0

    def with_seq(self, seq: int) -> "LogLine":
        """Return a copy of this line carrying the given arrival number."""
        return replace(self, seq=seq)

    def to_dict(self) -> dict:
        """Serialize for JSON transport to the browser."""
        return {
            "seq": self.seq,
            "class": self.log_class.value,
            "text": self.text,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class Credentials:
    """
    A websocket grant for exactly one connection attempt.

    Attributes:
        endpoint_url: The wss:// URL of the daemon console socket.
        auth_token:   Short-lived JWT sent in the first frame.
    """
    endpoint_url: str
    auth_token: str = field(repr=False)
