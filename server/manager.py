"""
PanelDeck - Console View Manager
==================================
Keeps track of the console sessions opened by browser views.

Each browser console view owns exactly one ConsoleSession. The manager
creates it when the view mounts and closes it when the view goes away,
and closes whatever is left when the dashboard shuts down.

Usage:
    manager = ConsoleManager(config_manager, logger)
    view_id, session = manager.open_view("1a7ce997")
    try:
        await session.start()
        ...
    finally:
        await manager.close_view(view_id)
"""

import uuid
from typing import Any

import httpx

from console import ConsoleSession, CredentialFetcher
from console.logger import ConsoleLogger
from console.transport import Connector
from server.config import ConfigManager


class ConsoleManager:
    """
    Registry of live console views.

    Attributes:
        config_manager: Source of panel URL, API key and console settings.
        logger:         Diagnostic logger shared by all sessions.
        views:          Mapping of view id to its ConsoleSession.
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        logger: ConsoleLogger | None = None,
        connector: Connector | None = None,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Args:
            config_manager: Configuration source. Read on every new view so
                            settings changes apply without a restart.
            logger:         Diagnostic logger.
            connector:      Websocket connector override (used by tests).
            http_transport: httpx transport for panel requests (used by tests).
        """
        self.config_manager = config_manager
        self.logger = logger
        self.views: dict[str, ConsoleSession] = {}
        self._connector = connector
        self._http_transport = http_transport

    def open_view(self, server_id: str) -> tuple[str, ConsoleSession]:
        """
        Create the console session for a newly mounted view.

        Args:
            server_id: Panel identifier of the server.

        Returns:
            (view_id, session). The session is not started yet.
        """
        config = self.config_manager.load()
        panel = config["panel"]
        console_cfg = config["console"]

        fetcher = CredentialFetcher(
            panel["url"],
            self.config_manager.get_panel_api_key(),
            timeout=float(panel["timeout"]),
            verify_tls=bool(panel["verify_tls"]),
            transport=self._http_transport,
        )
        session = ConsoleSession(
            server_id,
            fetcher,
            capacity=int(console_cfg["scrollback"]),
            strip_colors=bool(console_cfg["strip_ansi"]),
            origin=panel["url"].rstrip("/") or None,
            connector=self._connector,
            logger=self.logger,
        )

        view_id = uuid.uuid4().hex
        self.views[view_id] = session
        return view_id, session

    def get(self, view_id: str) -> ConsoleSession:
        """
        Raises:
            KeyError: If no such view is open.
        """
        return self.views[view_id]

    async def close_view(self, view_id: str) -> None:
        """Close and forget a view's session. Unknown ids are ignored."""
        session = self.views.pop(view_id, None)
        if session is not None:
            await session.close()

    async def shutdown(self) -> None:
        """Close every open view."""
        for view_id in list(self.views):
            await self.close_view(view_id)

    def list_views(self) -> list[dict[str, Any]]:
        """Summaries of the open views for the dashboard."""
        return [
            {"view_id": view_id, **session.status}
            for view_id, session in self.views.items()
        ]
