"""HTTP client for the panel's Application API.

Single point of contact with the remote service. Transport and HTTP
failures are mapped to typed exceptions; no business logic lives here.
"""

import logging
from dataclasses import dataclass
from types import TracebackType
from typing import Any

import requests

from pteropurge.models.server import Server

logger = logging.getLogger(__name__)

# Fixed page size for server listing
PER_PAGE = 100

SERVERS_ROUTE = "/api/application/servers"


class PanelError(Exception):
    """Base exception for panel API errors."""


class TransportError(PanelError):
    """Raised when a page fetch fails (network error or non-2xx status).

    Attributes:
        status_code: HTTP status code, if a response was received.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DeleteError(PanelError):
    """Raised when deleting one server fails.

    Attributes:
        server_id: Identifier of the server that could not be deleted.
        status_code: HTTP status code, if a response was received.
    """

    def __init__(self, server_id: int, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.server_id = server_id
        self.status_code = status_code


@dataclass(frozen=True, slots=True)
class ServerPage:
    """One page of the server listing.

    Attributes:
        servers: Servers on this page, in API order.
        has_more: False once an empty page is observed.
    """

    servers: tuple[Server, ...]
    has_more: bool


class PanelClient:
    """Authenticated client for the panel's server endpoints.

    Example:
        >>> with PanelClient("https://panel.example.com", "ptla_...") as client:
        ...     page = client.list_page(1)
        ...     for server in page.servers:
        ...         print(server.id, server.name)
    """

    def __init__(
        self,
        panel_url: str,
        api_key: str,
        *,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            panel_url: Base URL of the panel (without trailing slash).
            api_key: Application API key sent as a bearer token.
            timeout: Per-request timeout in seconds. None uses the requests default.
            session: Optional pre-built session (mainly for testing).
        """
        self._base_url = panel_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
                "Content-Type": "application/json",
            }
        )

    @property
    def base_url(self) -> str:
        """Return the panel base URL."""
        return self._base_url

    def list_page(self, page: int) -> ServerPage:
        """Fetch one page of servers.

        Args:
            page: 1-based page index.

        Returns:
            ServerPage with the servers on that page.

        Raises:
            TransportError: On network failure, non-2xx status or a malformed body.
        """
        url = f"{self._base_url}{SERVERS_ROUTE}"
        logger.debug("GET %s page=%d per_page=%d", url, page, PER_PAGE)

        try:
            response = self._session.get(
                url,
                params={"page": page, "per_page": PER_PAGE},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise TransportError(str(e)) from e

        if not _is_success(response):
            raise TransportError(_describe_status(response), status_code=response.status_code)

        servers = _parse_servers(response)
        return ServerPage(servers=servers, has_more=bool(servers))

    def delete_server(self, server_id: int) -> None:
        """Delete a single server. Single attempt, no retries.

        Args:
            server_id: Identifier of the server to delete.

        Raises:
            DeleteError: On network failure or non-2xx status.
        """
        url = f"{self._base_url}{SERVERS_ROUTE}/{server_id}"
        logger.debug("DELETE %s", url)

        try:
            response = self._session.delete(url, timeout=self._timeout, allow_redirects=False)
        except requests.RequestException as e:
            raise DeleteError(server_id, str(e)) from e

        if not _is_success(response):
            raise DeleteError(
                server_id,
                _describe_status(response),
                status_code=response.status_code,
            )

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self._session.close()

    def __enter__(self) -> "PanelClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def _is_success(response: requests.Response) -> bool:
    """Check for a 2xx status. Redirects and 304 count as failures."""
    return 200 <= response.status_code < 300


def _parse_servers(response: requests.Response) -> tuple[Server, ...]:
    """Extract servers from a listing response body.

    Raises:
        TransportError: If the body is not the expected JSON shape.
    """
    try:
        payload: Any = response.json()
    except ValueError as e:
        msg = f"Invalid JSON in server listing: {e}"
        raise TransportError(msg, status_code=response.status_code) from e

    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, list):
        msg = "Server listing response has no 'data' array"
        raise TransportError(msg, status_code=response.status_code)

    try:
        return tuple(Server.from_api(item["attributes"]) for item in data)
    except (KeyError, TypeError, ValueError) as e:
        msg = f"Malformed server entry in listing: {e}"
        raise TransportError(msg, status_code=response.status_code) from e


def _describe_status(response: requests.Response) -> str:
    """Build an error message for a non-2xx response.

    Includes the first error detail from the panel's JSON error body
    when one is present.
    """
    msg = f"Request failed with status code {response.status_code}"
    try:
        body: Any = response.json()
    except ValueError:
        return msg

    errors = body.get("errors") if isinstance(body, dict) else None
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        detail = errors[0].get("detail") or errors[0].get("code")
        if detail:
            msg += f": {detail}"
    return msg
