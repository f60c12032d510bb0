"""
PanelDeck - Reconnection Supervisor
=====================================
Decides which transport session is current and what happens when one ends.

States:
    - "disconnected" : no usable session. The operator can press Reconnect.
    - "connecting"   : fetching credentials / waiting for the daemon to accept
    - "live"         : current session authenticated
    - "refreshing"   : current session still live, replacement being opened
    - "closed"       : view torn down, nothing will happen any more

Token refresh is make-before-break. When the current session reports
"token expiring", a second session is opened with fresh credentials. The
instant it authenticates, it becomes current and the old one is closed.
Only the current session's events reach the router, so lines are never
duplicated or delivered out of order across the swap.

There is no automatic retry. Every failure of the current session ends in
"disconnected" with a reconnect affordance, to keep a flaky node or a rate
limited panel from being hammered.
"""

import asyncio
from typing import Coroutine

from console.credentials import CredentialFetcher
from console.errors import CredentialError, InvalidStateError
from console.logger import ConsoleLogger
from console.models import Credentials, LogClass, LogLine, SupervisorState, TransportState
from console.protocol import ControlEvent, TokenExpiring
from console.router import EventRouter
from console.transport import Connector, TransportSession


class ReconnectionSupervisor:
    """
    Owns the identity of the current transport session for one server.

    Attributes:
        server_id: Panel identifier of the server.
        state:     Current SupervisorState.
        current:   The authoritative session, or None.
        message:   Human readable description of the last transition.
    """

    def __init__(
        self,
        server_id: str,
        fetcher: CredentialFetcher,
        router: EventRouter,
        origin: str | None = None,
        connector: Connector | None = None,
        logger: ConsoleLogger | None = None,
    ):
        self.server_id = server_id
        self.fetcher = fetcher
        self.router = router
        self.origin = origin
        self.logger = logger
        self.state = SupervisorState.DISCONNECTED
        self.current: TransportSession | None = None
        self.message = "Not connected"

        self._connector = connector
        self._pending: TransportSession | None = None
        self._refresh_task: asyncio.Task | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def can_reconnect(self) -> bool:
        return self.state is SupervisorState.DISCONNECTED

    @property
    def status(self) -> dict:
        """Connection status as shown to the operator."""
        return {
            "state": self.state.value,
            "message": self.message,
            "can_reconnect": self.can_reconnect,
        }

    # -- Operator actions ------------------------------------------------------

    async def start(self) -> None:
        """
        Fetch credentials and open a session.

        Returns once the auth frame has been sent or the attempt failed. The
        move to "live" happens when the daemon accepts the token.

        Raises:
            InvalidStateError: If not currently disconnected.
        """
        if self.state is not SupervisorState.DISCONNECTED:
            raise InvalidStateError(f"Cannot connect while {self.state.value}")

        self._set_state(SupervisorState.CONNECTING, "Connecting to console")
        self._log("info", f"Connecting console for server {self.server_id}")

        try:
            credentials = await self.fetcher.fetch(self.server_id)
        except CredentialError as e:
            self._disconnect(f"Could not obtain console credentials: {e}")
            return

        if self.state is not SupervisorState.CONNECTING:
            return

        session = self._new_session(credentials, request_backlog=True)
        self.current = session
        await session.open()

    async def reconnect(self) -> None:
        """
        Operator-triggered reconnect. Only valid from "disconnected".

        Raises:
            InvalidStateError: If a connection is live or in progress.
        """
        await self.start()

    async def close(self) -> None:
        """Tear down every session and background task. Safe to call twice."""
        if self.state is SupervisorState.CLOSED:
            return
        self._set_state(SupervisorState.CLOSED, "Console closed")

        if self._refresh_task is not None:
            self._refresh_task.cancel()

        sessions = [s for s in (self.current, self._pending) if s is not None]
        self.current = None
        self._pending = None
        for session in sessions:
            await session.close()

        pending_tasks = [t for t in self._tasks if t is not asyncio.current_task()]
        if pending_tasks:
            await asyncio.wait(pending_tasks)

    # -- Session callbacks -----------------------------------------------------

    def _on_session_state(self, session: TransportSession, state: TransportState) -> None:
        if self.state is SupervisorState.CLOSED:
            return

        if session is self.current:
            if state is TransportState.AUTHENTICATED and self.state is SupervisorState.CONNECTING:
                self._set_state(SupervisorState.LIVE, "Connected")
                self._emit(LogClass.SYSTEM, "Console connected")
                self._log("info", f"Console session #{session.session_id} live for server {self.server_id}")
            elif state is TransportState.FAILED:
                self._on_current_failed(session)

        elif session is self._pending:
            if state is TransportState.AUTHENTICATED:
                self._swap(session)
            elif state is TransportState.FAILED:
                self._on_refresh_failed(session)

    def _on_session_event(self, session: TransportSession, event: ControlEvent) -> None:
        if session is not self.current or self.state is SupervisorState.CLOSED:
            return

        if isinstance(event, TokenExpiring):
            if self.state is SupervisorState.LIVE:
                self._set_state(SupervisorState.REFRESHING, "Refreshing console token")
                self._refresh_task = self._spawn(self._refresh())
            return

        self.router.route(event)

    # -- Transitions -----------------------------------------------------------

    async def _refresh(self) -> None:
        """Open a replacement session alongside the live one."""
        self._log("info", f"Refreshing console token for server {self.server_id}")

        try:
            credentials = await self.fetcher.fetch(self.server_id)
        except CredentialError as e:
            self._refresh_aborted(f"Token refresh failed: {e}")
            return

        if self.state is not SupervisorState.REFRESHING:
            return

        session = self._new_session(credentials, request_backlog=False)
        self._pending = session
        await session.open()

    def _swap(self, session: TransportSession) -> None:
        old = self.current
        self.current = session
        self._pending = None
        self._set_state(SupervisorState.LIVE, "Connected")
        self._log("info", f"Console session #{session.session_id} replaced #{old.session_id if old else '-'}")
        if old is not None:
            self._spawn(old.close())

    def _on_current_failed(self, session: TransportSession) -> None:
        pending = self._pending
        self.current = None
        self._pending = None
        self._spawn(session.close())
        if pending is not None:
            self._spawn(pending.close())
        self._disconnect(f"Console connection lost: {session.error}")

    def _on_refresh_failed(self, session: TransportSession) -> None:
        self._pending = None
        self._spawn(session.close())
        self._refresh_aborted(f"Token refresh failed: {session.error}")

    def _refresh_aborted(self, message: str) -> None:
        """Stay on the old session when it is still usable."""
        if self.current is not None and self.current.state is TransportState.AUTHENTICATED:
            self._set_state(SupervisorState.LIVE, message)
            self._emit(LogClass.SYSTEM, message)
            self._log("warn", message)
        else:
            self._disconnect(message)

    def _disconnect(self, message: str) -> None:
        self._set_state(SupervisorState.DISCONNECTED, message)
        self._emit(LogClass.ERROR, message)
        self._log("error", f"[{self.server_id}] {message}")

    # -- Internal helpers ------------------------------------------------------

    def _new_session(self, credentials: Credentials, request_backlog: bool) -> TransportSession:
        return TransportSession(
            credentials,
            on_state=self._on_session_state,
            on_event=self._on_session_event,
            origin=self.origin,
            request_backlog=request_backlog,
            connector=self._connector,
        )

    def _set_state(self, state: SupervisorState, message: str) -> None:
        self.state = state
        self.message = message
        self.router.notify("connection", self.status)

    def _emit(self, log_class: LogClass, text: str) -> None:
        self.router.emit(LogLine(log_class, text))

    def _spawn(self, coro: Coroutine) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self._log("error", f"Console background task failed: {error!r}")

    def _log(self, level: str, text: str) -> None:
        if self.logger:
            getattr(self.logger, level)(text)
