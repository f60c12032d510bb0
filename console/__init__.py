"""
PanelDeck - Console Package
=============================
Live server console client for the PanelDeck dashboard.

This package contains the streaming console core:
    - credentials.py : one-time websocket grant from the panel API
    - protocol.py    : frame encode / decode (tagged control events)
    - transport.py   : one websocket session and its state machine
    - router.py      : event classification and subscriber fan-out
    - buffer.py      : bounded scrollback buffer
    - supervisor.py  : reconnection and make-before-break token refresh
    - commands.py    : operator command dispatch
    - session.py     : ConsoleSession, the per-view facade
    - logger.py      : per-day diagnostic log files

Usage:
    from console import ConsoleSession, CredentialFetcher

    fetcher = CredentialFetcher(panel_url, api_key)
    session = ConsoleSession(server_id, fetcher, origin=panel_url)
    await session.start()
"""

from console.credentials import CredentialFetcher
from console.errors import (
    AuthRejected,
    ConsoleError,
    CredentialError,
    InvalidStateError,
    NotConnectedError,
    TransportError,
)
from console.session import ConsoleSession

__all__ = [
    "ConsoleSession",
    "CredentialFetcher",
    "ConsoleError",
    "CredentialError",
    "AuthRejected",
    "TransportError",
    "NotConnectedError",
    "InvalidStateError",
]
