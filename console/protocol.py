"""
PanelDeck - Console Wire Protocol
===================================
Encodes outbound frames and decodes inbound frames of the daemon console
websocket.

Frame format (both directions):
    {"event": "<name>", "args": [ ... ]}

Outbound events:
    - "auth"          : ["<token>"]       first frame of every session
    - "send logs"     : [null]            request the recent console backlog
    - "send command"  : ["<command>"]     run a command in the server console
    - "set state"     : ["<action>"]      power action (start/stop/restart/kill)

Inbound events:
    - "auth success"                      token accepted
    - "jwt error"     : ["<reason>"]      token rejected
    - "console output": ["<text>"]        one console line
    - "status"        : ["<status>"]      server power state changed
    - "token expiring"                    grant is about to run out
    - "token expired"                     grant ran out, socket unusable
    - "stats"         : ["<json>"]        resource usage sample
    - "daemon message" / "install output" / "daemon error": ["<text>"]

Decoding never raises. Anything that is not a JSON object of the shape
above, or that names an event we do not know, becomes Unknown(raw) and is
shown to the operator as a raw line.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Union


# =============================================================================
# Event Names
# =============================================================================

EVENT_AUTH = "auth"
EVENT_SEND_LOGS = "send logs"
EVENT_SEND_COMMAND = "send command"
EVENT_SET_STATE = "set state"

EVENT_AUTH_SUCCESS = "auth success"
EVENT_JWT_ERROR = "jwt error"
EVENT_CONSOLE_OUTPUT = "console output"
EVENT_STATUS = "status"
EVENT_TOKEN_EXPIRING = "token expiring"
EVENT_TOKEN_EXPIRED = "token expired"
EVENT_STATS = "stats"
EVENT_DAEMON_MESSAGE = "daemon message"
EVENT_DAEMON_ERROR = "daemon error"
EVENT_INSTALL_OUTPUT = "install output"

POWER_ACTIONS = ("start", "stop", "restart", "kill")


# =============================================================================
# Control Events
# =============================================================================

@dataclass(frozen=True)
class AuthResult:
    """Outcome of the auth handshake."""
    success: bool
    reason: str = ""


@dataclass(frozen=True)
class LogOutput:
    """One line of console output."""
    text: str


@dataclass(frozen=True)
class StatusChanged:
    """The server process changed power state (running, offline, ...)."""
    status: str


@dataclass(frozen=True)
class TokenExpiring:
    """The grant for this socket will expire soon."""


@dataclass(frozen=True)
class TokenExpired:
    """The grant for this socket has expired."""


@dataclass(frozen=True)
class Stats:
    """Resource usage sample (cpu, memory, network, uptime)."""
    payload: dict = field(default_factory=dict)


@dataclass(frozen=True)
class DaemonMessage:
    """A message written by the daemon itself rather than the server process."""
    text: str
    error: bool = False


@dataclass(frozen=True)
class Unknown:
    """A frame we could not decode. Carries the raw text verbatim."""
    raw: str


ControlEvent = Union[
    AuthResult, LogOutput, StatusChanged, TokenExpiring, TokenExpired,
    Stats, DaemonMessage, Unknown,
]


# =============================================================================
# Decoding
# =============================================================================

def decode_frame(raw: str | bytes) -> ControlEvent:
    """
    Decode one inbound frame into a ControlEvent.

    Args:
        raw: The frame body as received from the socket.

    Returns:
        The decoded event, or Unknown(raw) when the body is not a
        recognizable protocol frame.
    """
    if isinstance(raw, (bytes, bytearray)):
        raw = bytes(raw).decode("utf-8", errors="replace")

    try:
        message = json.loads(raw)
    except (ValueError, TypeError, RecursionError):
        return Unknown(raw)

    if not isinstance(message, dict):
        return Unknown(raw)

    event = message.get("event")
    args = message.get("args", [])
    if not isinstance(event, str) or not isinstance(args, list):
        return Unknown(raw)

    first = args[0] if args else None

    if event == EVENT_AUTH_SUCCESS:
        return AuthResult(success=True)
    if event == EVENT_JWT_ERROR:
        return AuthResult(success=False, reason=first if isinstance(first, str) else "")
    if event == EVENT_TOKEN_EXPIRING:
        return TokenExpiring()
    if event == EVENT_TOKEN_EXPIRED:
        return TokenExpired()

    # The remaining events all carry a single string argument
    if not isinstance(first, str):
        return Unknown(raw)

    if event == EVENT_CONSOLE_OUTPUT:
        return LogOutput(first)
    if event == EVENT_STATUS:
        return StatusChanged(first)
    if event == EVENT_STATS:
        return _decode_stats(first, raw)
    if event in (EVENT_DAEMON_MESSAGE, EVENT_INSTALL_OUTPUT):
        return DaemonMessage(first)
    if event == EVENT_DAEMON_ERROR:
        return DaemonMessage(first, error=True)

    return Unknown(raw)


def _decode_stats(body: str, raw: str) -> ControlEvent:
    """Stats arrive as a JSON document nested inside the string argument."""
    try:
        payload = json.loads(body)
    except (ValueError, RecursionError):
        return Unknown(raw)
    if not isinstance(payload, dict):
        return Unknown(raw)
    return Stats(payload)


# =============================================================================
# Encoding
# =============================================================================

def encode_frame(event: str, *args: Any) -> str:
    """Serialize an outbound frame."""
    return json.dumps({"event": event, "args": list(args)}, ensure_ascii=False)


def auth_frame(token: str) -> str:
    return encode_frame(EVENT_AUTH, token)


def send_logs_frame() -> str:
    return encode_frame(EVENT_SEND_LOGS, None)


def command_frame(command: str) -> str:
    return encode_frame(EVENT_SEND_COMMAND, command)


def power_frame(action: str) -> str:
    """
    Build a power action frame.

    Raises:
        ValueError: If action is not one of POWER_ACTIONS.
    """
    if action not in POWER_ACTIONS:
        raise ValueError(f"Unknown power action '{action}'")
    return encode_frame(EVENT_SET_STATE, action)
