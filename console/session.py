"""
PanelDeck - Console Session
=============================
One logical console connection for one server, owned by one UI view.

Wires the console components together:

    CredentialFetcher -> ReconnectionSupervisor -> TransportSession
                                                      |
                              EventRouter <-----------+
                                  |
                          ScrollbackBuffer + subscribers

    CommandDispatcher -> current TransportSession

The owning view must call close() when it goes away, on every exit path.
"""

from typing import Any, Callable

from console.buffer import DEFAULT_CAPACITY, ScrollbackBuffer
from console.commands import CommandDispatcher
from console.credentials import CredentialFetcher
from console.logger import ConsoleLogger
from console.models import LogLine, SupervisorState, TransportState
from console.router import EventRouter
from console.supervisor import ReconnectionSupervisor
from console.transport import Connector


class ConsoleSession:
    """
    Live console for one server.

    Usage:
        session = ConsoleSession("1a7ce997", fetcher, origin=panel_url)
        unsubscribe = session.subscribe(on_notification)
        try:
            await session.start()
            await session.send_command("say hi")
        finally:
            unsubscribe()
            await session.close()
    """

    def __init__(
        self,
        server_id: str,
        fetcher: CredentialFetcher,
        capacity: int = DEFAULT_CAPACITY,
        strip_colors: bool = True,
        origin: str | None = None,
        connector: Connector | None = None,
        logger: ConsoleLogger | None = None,
    ):
        self.server_id = server_id
        self.buffer = ScrollbackBuffer(capacity)
        self.router = EventRouter(self.buffer, strip_colors=strip_colors, logger=logger)
        self.supervisor = ReconnectionSupervisor(
            server_id,
            fetcher,
            self.router,
            origin=origin,
            connector=connector,
            logger=logger,
        )
        self.commands = CommandDispatcher(self.supervisor, self.router)

    # -- State -----------------------------------------------------------------

    @property
    def state(self) -> SupervisorState:
        return self.supervisor.state

    @property
    def transport_state(self) -> TransportState:
        """State of the current transport session (IDLE when there is none)."""
        current = self.supervisor.current
        return current.state if current is not None else TransportState.IDLE

    @property
    def endpoint_url(self) -> str | None:
        current = self.supervisor.current
        return current.endpoint_url if current is not None else None

    @property
    def status(self) -> dict:
        return {
            **self.supervisor.status,
            "server_id": self.server_id,
            "transport_state": self.transport_state.value,
        }

    def snapshot(self) -> tuple[LogLine, ...]:
        return self.buffer.snapshot()

    def subscribe(self, callback: Callable[[str, Any], None]) -> Callable[[], None]:
        """Receive ("line" | "status" | "stats" | "connection", payload) notifications."""
        return self.router.subscribe(callback)

    # -- Actions ---------------------------------------------------------------

    async def start(self) -> None:
        await self.supervisor.start()

    async def reconnect(self) -> None:
        await self.supervisor.reconnect()

    async def send_command(self, text: str) -> LogLine | None:
        return await self.commands.send(text)

    async def set_power(self, action: str) -> LogLine:
        return await self.commands.set_power(action)

    async def close(self) -> None:
        await self.supervisor.close()
