"""
PanelDeck - Console Errors
============================
Error taxonomy for the live console client.

Every error is surfaced to the operator as a visible status string and a
scrollback line. None of them is fatal to the dashboard process: the
console view degrades to "disconnected, reconnect available".

    ConsoleError
    +-- CredentialError    credential fetch failed (network, status, body)
    +-- AuthRejected       token refused or expired, session must be discarded
    +-- TransportError     socket-level failure of the current session
    +-- NotConnectedError  command attempted while not authenticated
    +-- InvalidStateError  operation not allowed in the current state
"""


class ConsoleError(Exception):
    """Base class for all console client errors."""


class CredentialError(ConsoleError):
    """The panel did not hand out a usable websocket grant."""


class AuthRejected(ConsoleError):
    """The daemon rejected the token. Refetch credentials, never retry it."""


class TransportError(ConsoleError):
    """The streaming connection failed or was closed by the remote side."""


class NotConnectedError(ConsoleError):
    """A command was issued while no session is authenticated."""

    def __init__(self, message: str = "Console is not connected"):
        super().__init__(message)


class InvalidStateError(ConsoleError):
    """An operation was requested from a state that does not allow it."""
