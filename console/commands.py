"""
PanelDeck - Command Dispatcher
================================
Sends operator input to the current console session.

Commands are only sent on an authenticated session. Anything typed while
the console is disconnected or still connecting is rejected with
NotConnectedError; nothing is queued for later. The daemon does not echo
commands back, so a "> command" line is added to the scrollback locally.
"""

from console.errors import NotConnectedError
from console.models import LogClass, LogLine, TransportState
from console.protocol import command_frame, power_frame
from console.router import COMMAND_ECHO_MARKER, EventRouter
from console.supervisor import ReconnectionSupervisor
from console.transport import TransportSession


class CommandDispatcher:
    """Validates, sends and echoes operator commands."""

    def __init__(self, supervisor: ReconnectionSupervisor, router: EventRouter):
        self.supervisor = supervisor
        self.router = router

    async def send(self, text: str) -> LogLine | None:
        """
        Send a console command.

        Args:
            text: The command as typed by the operator.

        Returns:
            The echoed command line, or None for blank input.

        Raises:
            NotConnectedError: If no session is authenticated.
            TransportError:    If the socket fails while sending.
        """
        if not text or not text.strip():
            return None

        command = text.rstrip("\r\n")
        session = self._authenticated_session()
        await session.send(command_frame(command))
        return self.router.emit(LogLine(LogClass.COMMAND, f"{COMMAND_ECHO_MARKER} {command}"))

    async def set_power(self, action: str) -> LogLine:
        """
        Send a power action (start, stop, restart, kill).

        Raises:
            ValueError:        If the action is unknown.
            NotConnectedError: If no session is authenticated.
        """
        frame = power_frame(action)
        session = self._authenticated_session()
        await session.send(frame)
        return self.router.emit(LogLine(LogClass.SYSTEM, f"Power action sent: {action}"))

    def _authenticated_session(self) -> TransportSession:
        session = self.supervisor.current
        if session is None or session.state is not TransportState.AUTHENTICATED:
            raise NotConnectedError()
        return session
