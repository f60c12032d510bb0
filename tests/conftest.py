"""Shared fixtures: an in-memory websocket and a scripted credential fetcher."""

import asyncio
import json

import pytest
from websockets.exceptions import ConnectionClosedError

from console.errors import CredentialError
from console.models import Credentials


class FakeSocket:
    """In-memory stand-in for a websockets client connection."""

    def __init__(self, url: str, origin: str | None = None, slow_close: bool = False):
        self.url = url
        self.slow_close = slow_close
        self.origin = origin
        self.sent: list[str] = []
        self.closed = False
        self._inbound: asyncio.Queue = asyncio.Queue()

    # -- websockets API --------------------------------------------------------

    async def send(self, frame: str) -> None:
        if self.closed:
            raise ConnectionClosedError(None, None)
        self.sent.append(frame)

    async def recv(self):
        item = await self._inbound.get()
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self) -> None:
        if self.slow_close:
            # closing handshake takes a loop turn, like a real socket
            await asyncio.sleep(0)
        self.closed = True

    # -- Test controls ---------------------------------------------------------

    def push(self, event: str, *args) -> None:
        self._inbound.put_nowait(json.dumps({"event": event, "args": list(args)}))

    def push_raw(self, raw) -> None:
        self._inbound.put_nowait(raw)

    def drop(self) -> None:
        """Simulate the daemon dropping the connection."""
        self._inbound.put_nowait(ConnectionClosedError(None, None))

    @property
    def sent_frames(self) -> list[dict]:
        return [json.loads(frame) for frame in self.sent]


class FakeConnector:
    """Connector recording every socket it opens."""

    def __init__(self):
        self.sockets: list[FakeSocket] = []
        self.fail_with: Exception | None = None
        self.slow_close = False

    async def __call__(self, url: str, origin: str | None = None) -> FakeSocket:
        if self.fail_with is not None:
            raise self.fail_with
        socket = FakeSocket(url, origin, slow_close=self.slow_close)
        self.sockets.append(socket)
        return socket

    @property
    def last(self) -> FakeSocket:
        return self.sockets[-1]


class FakeFetcher:
    """Credential fetcher handing out t1, t2, ... or scripted failures."""

    def __init__(self):
        self.calls: list[str] = []
        self.failures: list[Exception | None] = []

    async def fetch(self, server_id: str) -> Credentials:
        self.calls.append(server_id)
        if self.failures:
            failure = self.failures.pop(0)
            if failure is not None:
                raise failure
        n = len(self.calls)
        return Credentials(endpoint_url=f"wss://node.example/{server_id}/{n}", auth_token=f"t{n}")

    def fail_next(self, message: str = "panel unavailable") -> None:
        self.failures.append(CredentialError(message))


async def settle(rounds: int = 20) -> None:
    """Let reader tasks and spawned tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()
