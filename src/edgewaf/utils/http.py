"""Synchronous HTTP client for the edge API."""

from typing import Any

import httpx

from edgewaf.errors import NetworkError
from edgewaf.utils.logging import get_logger

logger = get_logger(__name__)

JSONAPI_MEDIA_TYPE = "application/vnd.api+json"


def status_line(response: httpx.Response) -> str:
    """Render the status of a response as ``"200 OK"`` style text.

    Args:
        response: HTTP response.

    Returns:
        Status code followed by the reason phrase.
    """
    return f"{response.status_code} {response.reason_phrase}"


class HttpClient:
    """HTTP client bound to one API endpoint and key.

    Features:
    - Configurable timeout
    - API key and JSON:API headers on every request
    - Transport failures surfaced as NetworkError

    Requests are issued one at a time and never retried.
    """

    DEFAULT_TIMEOUT = 30.0
    API_KEY_HEADER = "Fastly-Key"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = DEFAULT_TIMEOUT,
        headers: dict[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the HTTP client.

        Args:
            base_url: Base URL for requests.
            api_key: API key sent with every request.
            timeout: Request timeout in seconds.
            headers: Additional default headers.
            transport: Optional transport (used to inject mock transports).
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.default_headers = {
            self.API_KEY_HEADER: api_key,
            "Accept": JSONAPI_MEDIA_TYPE,
        }
        if headers:
            self.default_headers.update(headers)
        self._transport = transport
        self._client: httpx.Client | None = None

    def __enter__(self) -> "HttpClient":
        """Enter context."""
        self.open()
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Exit context."""
        self.close()

    def open(self) -> httpx.Client:
        """Create the underlying httpx client if needed and return it."""
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=self.default_headers,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        """Close the underlying httpx client."""
        if self._client:
            self._client.close()
            self._client = None

    @property
    def client(self) -> httpx.Client:
        """Get the underlying httpx client, creating it lazily."""
        return self.open()

    def request(
        self,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Make an HTTP request.

        Args:
            method: HTTP method.
            url: Request URL, relative to the base URL.
            **kwargs: Additional arguments for httpx.

        Returns:
            HTTP response, whatever its status.

        Raises:
            NetworkError: If the request could not be delivered.
        """
        logger.debug("%s %s", method, url)
        try:
            return self.client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            raise NetworkError(self.base_url, e) from e

    def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Make a GET request."""
        return self.request("GET", url, params=params)

    def post(
        self,
        url: str,
        json: Any = None,
        data: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Make a POST request.

        Args:
            url: Request URL.
            json: JSON:API body.
            data: Form data.

        Returns:
            HTTP response.
        """
        return self.request("POST", url, **self._body(json, data))

    def put(
        self,
        url: str,
        json: Any = None,
        data: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Make a PUT request."""
        return self.request("PUT", url, **self._body(json, data))

    def patch(
        self,
        url: str,
        json: Any = None,
        data: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Make a PATCH request."""
        return self.request("PATCH", url, **self._body(json, data))

    def delete(self, url: str) -> httpx.Response:
        """Make a DELETE request."""
        return self.request("DELETE", url)

    @staticmethod
    def _body(json: Any, data: dict[str, Any] | None) -> dict[str, Any]:
        """Build request keyword arguments for a JSON:API or form body."""
        if json is not None:
            return {
                "json": json,
                "headers": {"Content-Type": JSONAPI_MEDIA_TYPE},
            }
        if data is not None:
            return {"data": data}
        return {}
