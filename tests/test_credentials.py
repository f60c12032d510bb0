"""Tests for console.credentials - CredentialFetcher."""

import httpx
import pytest

from console.credentials import PANEL_ACCEPT, CredentialFetcher
from console.errors import CredentialError
from console.models import Credentials


def _fetcher(handler) -> CredentialFetcher:
    return CredentialFetcher(
        "https://panel.example.com/",
        "ptlc_secret",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_fetch_reads_panel_shape_and_sends_auth_headers():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={
            "object": "websocket_token",
            "data": {"token": "t1", "socket": "wss://x"},
        })

    credentials = await _fetcher(handler).fetch("1a7ce997")

    assert credentials == Credentials(endpoint_url="wss://x", auth_token="t1")
    request = requests[0]
    assert request.method == "GET"
    assert str(request.url) == "https://panel.example.com/api/client/servers/1a7ce997/websocket"
    assert request.headers["Authorization"] == "Bearer ptlc_secret"
    assert request.headers["Accept"] == PANEL_ACCEPT


@pytest.mark.asyncio
async def test_fetch_accepts_flattened_proxy_shape():
    def handler(request):
        return httpx.Response(200, json={"socket": "wss://y", "token": "t2"})

    assert await _fetcher(handler).fetch("abc") == Credentials("wss://y", "t2")


@pytest.mark.asyncio
async def test_every_fetch_is_a_new_request():
    tokens = iter(["t1", "t2"])
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={"data": {"token": next(tokens), "socket": "wss://x"}})

    fetcher = _fetcher(handler)
    first = await fetcher.fetch("abc")
    second = await fetcher.fetch("abc")

    assert len(calls) == 2
    assert (first.auth_token, second.auth_token) == ("t1", "t2")


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    httpx.Response(200, json={"data": {"socket": "wss://x"}}),
    httpx.Response(200, json={"data": {"token": "t1"}}),
    httpx.Response(200, json={"data": {"token": "", "socket": "wss://x"}}),
    httpx.Response(200, json=["not", "an", "object"]),
    httpx.Response(200, text="<html>maintenance</html>"),
    httpx.Response(403, json={"errors": [{"code": "AccessDeniedHttpException"}]}),
    httpx.Response(500, text="boom"),
])
async def test_fetch_failures_raise_credential_error(response):
    with pytest.raises(CredentialError):
        await _fetcher(lambda request: response).fetch("abc")


@pytest.mark.asyncio
async def test_network_failure_raises_credential_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(CredentialError, match="Panel request failed"):
        await _fetcher(handler).fetch("abc")


@pytest.mark.asyncio
async def test_missing_configuration_raises_without_request():
    fetcher = CredentialFetcher("", "")
    with pytest.raises(CredentialError, match="not configured"):
        await fetcher.fetch("abc")


def test_token_is_not_in_repr():
    assert "t1" not in repr(Credentials("wss://x", "t1"))
