"""
PanelDeck - Credential Fetcher
================================
Obtains a one-time websocket grant for a server from the panel client API.

    GET {panel_url}/api/client/servers/{server_id}/websocket
    Authorization: Bearer <client API key>

    -> {"data": {"token": "<jwt>", "socket": "wss://node:8080/api/servers/<uuid>/ws"}}

The dashboard's own proxy endpoint returns the same two fields flattened
({"token": ..., "socket": ...}); both shapes are accepted.

Every call performs a new request and returns a new grant. Grants are
consumed by the daemon on use, so nothing is cached.
"""

from urllib.parse import quote

import httpx

from console.errors import CredentialError
from console.models import Credentials


PANEL_ACCEPT = "Application/vnd.pterodactyl.v1+json"


class CredentialFetcher:
    """
    Fetches websocket credentials from the panel.

    Attributes:
        panel_url: Base URL of the panel, without trailing slash.
        timeout:   Request timeout in seconds.
    """

    def __init__(
        self,
        panel_url: str,
        api_key: str,
        timeout: float = 10.0,
        verify_tls: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Args:
            panel_url:  Base URL of the panel (e.g. "https://panel.example.com").
            api_key:    Client API key used as a bearer token.
            timeout:    Request timeout in seconds.
            verify_tls: Verify the panel's TLS certificate.
            transport:  Optional httpx transport (used by tests).
        """
        self.panel_url = panel_url.rstrip("/")
        self.timeout = timeout
        self._api_key = api_key
        self._verify_tls = verify_tls
        self._transport = transport

    async def fetch(self, server_id: str) -> Credentials:
        """
        Request a fresh grant for one connection attempt.

        Args:
            server_id: Panel identifier of the server.

        Returns:
            New Credentials for exactly one websocket connection.

        Raises:
            CredentialError: On network failure, an error status, a body that
                             is not JSON, or a missing token / socket field.
        """
        if not self.panel_url or not self._api_key:
            raise CredentialError("Panel URL or API key not configured")

        url = f"{self.panel_url}/api/client/servers/{quote(server_id, safe='')}/websocket"
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Accept": PANEL_ACCEPT,
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                verify=self._verify_tls,
                transport=self._transport,
            ) as client:
                response = await client.get(url, headers=headers)
        except httpx.HTTPError as e:
            raise CredentialError(f"Panel request failed: {e}") from e

        if response.status_code != 200:
            raise CredentialError(
                f"Panel returned HTTP {response.status_code} for server '{server_id}'"
            )

        try:
            body = response.json()
        except ValueError as e:
            raise CredentialError("Panel returned a non-JSON response") from e

        return _parse_grant(body)


def _parse_grant(body) -> Credentials:
    """Extract socket URL and token from either accepted response shape."""
    if not isinstance(body, dict):
        raise CredentialError("Malformed websocket grant")

    data = body.get("data") if isinstance(body.get("data"), dict) else body
    socket_url = data.get("socket")
    token = data.get("token")

    if not isinstance(socket_url, str) or not socket_url:
        raise CredentialError("Websocket grant is missing the socket URL")
    if not isinstance(token, str) or not token:
        raise CredentialError("Websocket grant is missing the token")

    return Credentials(endpoint_url=socket_url, auth_token=token)
