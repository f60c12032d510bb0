"""
PanelDeck - Console View Channel
==================================
Bridges one browser websocket to one ConsoleSession.

Message types (server -> browser):
    - "snapshot"   : initial scrollback and connection status
    - "log"        : one new console line
    - "status"     : server power state changed (running/offline/...)
    - "stats"      : resource usage sample
    - "connection" : console connection state changed (live/disconnected/...)
    - "error"      : an operator action was rejected

Message types (browser -> server):
    - {"type": "command", "text": "say hi"}
    - {"type": "power", "action": "restart"}
    - {"type": "reconnect"}

Message format:
    {
        "type": "log",
        "data": { ... },
        "timestamp": "2026-10-19T12:00:00+00:00"
    }

Console notifications are produced synchronously by the session. They are
queued and written by a single pump task, so the browser sees them in the
order they happened.
"""

import asyncio
import json
from datetime import datetime, timezone
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

from console import ConsoleError, ConsoleSession


class ConsoleViewChannel:
    """
    Ordered outbound message channel for one browser console view.

    Attributes:
        websocket: The accepted browser websocket.
    """

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self._queue: asyncio.Queue[dict | None] = asyncio.Queue()

    def push(self, kind: str, payload: Any) -> None:
        """Session subscriber: translate a notification and queue it."""
        if kind == "line":
            self.push_message({"type": "log", "data": payload.to_dict()})
        elif kind == "status":
            self.push_message({"type": "status", "data": {"status": payload}})
        elif kind == "stats":
            self.push_message({"type": "stats", "data": payload})
        elif kind == "connection":
            self.push_message({"type": "connection", "data": payload})

    def push_message(self, message: dict) -> None:
        """Queue a message for the browser."""
        if "timestamp" not in message:
            message["timestamp"] = datetime.now(timezone.utc).isoformat()
        self._queue.put_nowait(message)

    def push_error(self, message: str) -> None:
        self.push_message({"type": "error", "data": {"message": message}})

    def stop(self) -> None:
        """Let the pump finish after the messages already queued."""
        self._queue.put_nowait(None)

    async def pump(self) -> None:
        """Write queued messages to the browser until stopped or disconnected."""
        while True:
            message = await self._queue.get()
            if message is None:
                return
            try:
                await self.websocket.send_text(json.dumps(message, ensure_ascii=False))
            except (WebSocketDisconnect, RuntimeError):
                # Browser went away; the endpoint tears the session down
                return


async def handle_view_message(session: ConsoleSession, channel: ConsoleViewChannel, raw: str) -> None:
    """
    Apply one browser message to the session.

    Rejected actions (not connected, reconnect while live, unknown power
    action, malformed message) are reported back as "error" messages.

    Args:
        session: The view's console session.
        channel: The view's outbound channel.
        raw:     The message text as received from the browser.
    """
    try:
        message = json.loads(raw)
    except ValueError:
        channel.push_error("Malformed message")
        return

    if not isinstance(message, dict):
        channel.push_error("Malformed message")
        return

    msg_type = message.get("type")
    try:
        if msg_type == "command":
            await session.send_command(str(message.get("text", "")))
        elif msg_type == "power":
            await session.set_power(str(message.get("action", "")))
        elif msg_type == "reconnect":
            await session.reconnect()
        else:
            channel.push_error(f"Unknown message type '{msg_type}'")
    except (ConsoleError, ValueError) as e:
        channel.push_error(str(e))
