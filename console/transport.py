"""
PanelDeck - Transport Session
===============================
Owns one websocket connection to a daemon console.

States:
    IDLE -> CONNECTING -> AWAITING_AUTH -> AUTHENTICATED -> CLOSING -> CLOSED
    CONNECTING | AWAITING_AUTH | AUTHENTICATED -> FAILED -> CLOSING -> CLOSED

    - CONNECTING     : socket is being opened
    - AWAITING_AUTH  : socket open, auth frame sent, nothing else may be sent
    - AUTHENTICATED  : token accepted, console traffic flows both ways
    - FAILED         : auth rejected, token expired, or socket failure.
                       The session is unusable and must be closed; the
                       socket stays held until close() releases it.
    - CLOSED         : socket and reader released, token discarded

A session is single-use: it is built from one credential grant and never
reconnects on its own. The reconnection supervisor decides what happens
after a failure.

Callbacks (both synchronous, called from the reader task in arrival order):
    on_state(session, state)  - after every state change
    on_event(session, event)  - for every decoded event the session does not
                                consume itself (auth results and
                                "token expired" are consumed here)
"""

import asyncio
import itertools
from typing import Any, Awaitable, Callable

import websockets
from websockets.exceptions import ConnectionClosed

from console.errors import AuthRejected, ConsoleError, InvalidStateError, NotConnectedError, TransportError
from console.models import Credentials, TransportState
from console.protocol import AuthResult, ControlEvent, TokenExpired, auth_frame, decode_frame, send_logs_frame


Connector = Callable[..., Awaitable[Any]]
StateCallback = Callable[["TransportSession", TransportState], None]
EventCallback = Callable[["TransportSession", ControlEvent], None]

_session_ids = itertools.count(1)


async def websocket_connector(url: str, origin: str | None = None) -> Any:
    """
    Open a console websocket.

    The daemon checks the Origin header against the panel URL, so the
    panel URL is passed through as origin.
    """
    return await websockets.connect(url, origin=origin, max_size=None)


class TransportSession:
    """
    One single-use console websocket session.

    Attributes:
        session_id:      Process-unique number, used in log messages.
        endpoint_url:    The websocket URL this session connects to.
        state:           Current TransportState.
        error:           The error that moved the session to FAILED, if any.
        request_backlog: Ask for recent console history once authenticated.
    """

    def __init__(
        self,
        credentials: Credentials,
        on_state: StateCallback,
        on_event: EventCallback,
        origin: str | None = None,
        request_backlog: bool = True,
        connector: Connector | None = None,
    ):
        """
        Args:
            credentials:     The one-time grant for this connection.
            on_state:        State change callback.
            on_event:        Inbound event callback.
            origin:          Origin header value (the panel URL).
            request_backlog: Send "send logs" after authenticating. Disabled
                             for refresh sessions so history is not repeated.
            connector:       Coroutine function opening the socket. Defaults
                             to websocket_connector.
        """
        self.session_id = next(_session_ids)
        self.endpoint_url = credentials.endpoint_url
        self.origin = origin
        self.request_backlog = request_backlog
        self.state = TransportState.IDLE
        self.error: ConsoleError | None = None

        self._token: str | None = credentials.auth_token
        self._on_state = on_state
        self._on_event = on_event
        self._connector = connector or websocket_connector
        self._ws: Any = None
        self._reader: asyncio.Task | None = None

    def __repr__(self) -> str:
        return f"<TransportSession #{self.session_id} {self.state.value}>"

    @property
    def has_token(self) -> bool:
        return self._token is not None

    # -- Lifecycle -------------------------------------------------------------

    async def open(self) -> None:
        """
        Open the socket and send the auth frame.

        Returns once the auth frame is on the wire (or the session failed).
        Authentication completes later, on the reader task, when the daemon
        answers.

        Raises:
            InvalidStateError: If the session was already opened.
        """
        if self.state is not TransportState.IDLE:
            raise InvalidStateError(f"Session #{self.session_id} already used")

        self._set_state(TransportState.CONNECTING)
        try:
            ws = await self._connector(self.endpoint_url, origin=self.origin)
        except Exception as e:
            self._fail(TransportError(f"Could not connect to console: {e!r}"))
            return

        if self.state is not TransportState.CONNECTING:
            # close() ran while the socket was opening
            await _close_quietly(ws)
            return

        self._ws = ws
        self._set_state(TransportState.AWAITING_AUTH)
        try:
            await ws.send(auth_frame(self._token))
        except (ConnectionClosed, OSError) as e:
            self._fail(TransportError(f"Connection lost during authentication: {e}"))
            return

        self._reader = asyncio.create_task(
            self._read_loop(), name=f"console-reader-{self.session_id}"
        )

    async def close(self) -> None:
        """
        Release the socket and reader, discard the token. Idempotent.
        """
        if self.state in (TransportState.CLOSING, TransportState.CLOSED):
            return

        self._set_state(TransportState.CLOSING)

        reader, self._reader = self._reader, None
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            await asyncio.wait([reader])

        await self._release()
        self._token = None
        self._set_state(TransportState.CLOSED)

    # -- Sending ---------------------------------------------------------------

    async def send(self, frame: str) -> None:
        """
        Send an encoded frame on an authenticated session.

        Raises:
            NotConnectedError: If the session is not AUTHENTICATED.
            TransportError:    If the socket fails while sending. The
                               session moves to FAILED.
        """
        if self.state is not TransportState.AUTHENTICATED:
            raise NotConnectedError()
        await self._send(frame)

    async def _send(self, frame: str) -> None:
        try:
            await self._ws.send(frame)
        except (ConnectionClosed, OSError) as e:
            error = TransportError(f"Send failed: {e}")
            self._fail(error)
            raise error from e

    # -- Receiving -------------------------------------------------------------

    async def _read_loop(self) -> None:
        """Receive and handle frames one at a time until the session ends."""
        try:
            while self.state in (TransportState.AWAITING_AUTH, TransportState.AUTHENTICATED):
                raw = await self._ws.recv()
                await self._handle(raw)
        except ConnectionClosed as e:
            self._fail(TransportError(f"Console connection closed: {_describe_close(e)}"))
        except OSError as e:
            self._fail(TransportError(f"Console connection failed: {e}"))
        except TransportError:
            # _send already failed the session
            pass
        except Exception as e:
            self._fail(TransportError(f"Console reader failed: {e!r}"))

    async def _handle(self, raw: str | bytes) -> None:
        event = decode_frame(raw)

        if isinstance(event, AuthResult):
            if self.state is not TransportState.AWAITING_AUTH:
                return
            if not event.success:
                self._fail(AuthRejected(event.reason or "Console token rejected"))
                return
            self._set_state(TransportState.AUTHENTICATED)
            if self.request_backlog and self.state is TransportState.AUTHENTICATED:
                await self._send(send_logs_frame())
            return

        if isinstance(event, TokenExpired):
            self._fail(AuthRejected("Console token expired"))
            return

        self._on_event(self, event)

    # -- Internal helpers ------------------------------------------------------

    def _set_state(self, state: TransportState) -> None:
        self.state = state
        self._on_state(self, state)

    def _fail(self, error: ConsoleError) -> None:
        if self.state in (TransportState.FAILED, TransportState.CLOSING, TransportState.CLOSED):
            return
        self.error = error
        self._set_state(TransportState.FAILED)

    async def _release(self) -> None:
        if self._ws is not None:
            await _close_quietly(self._ws)
            self._ws = None


async def _close_quietly(ws: Any) -> None:
    """Close a socket that may already be broken."""
    try:
        await ws.close()
    except (ConnectionClosed, OSError):
        pass


def _describe_close(exc: ConnectionClosed) -> str:
    rcvd = getattr(exc, "rcvd", None)
    if rcvd is None:
        return "no close frame"
    reason = f" {rcvd.reason}" if rcvd.reason else ""
    return f"code {rcvd.code}{reason}"
