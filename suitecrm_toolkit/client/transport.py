"""HTTP transport boundary used by the SuiteCRM client."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import httpx

logger = logging.getLogger(__name__)


@dataclass
class TransportResponse:
    """Raw outcome of one HTTP exchange."""
    body: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    status_code: int = 0
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert TransportResponse to a dictionary."""
        return {
            "body": self.body,
            "headers": self.headers,
            "status_code": self.status_code,
            "error": self.error,
        }


class Transport(ABC):
    """
    Abstract base class for the low-level HTTP layer.

    Implementations never raise for I/O problems; failures are reported
    through ``TransportResponse.error``.
    """

    @abstractmethod
    def post(
        self,
        url: str,
        data: dict[str, str],
        headers: dict[str, str] | None = None,
    ) -> TransportResponse:
        """
        Send form fields with a POST request.

        Args:
            url: Target URL
            data: POST fields
            headers: Extra request headers

        Returns:
            The raw response
        """
        pass

    @abstractmethod
    def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> TransportResponse:
        """Send a GET request."""
        pass

    def close(self) -> None:
        """Release any held connections."""


class HttpTransport(Transport):
    """Transport backed by an httpx client."""

    def __init__(
        self,
        timeout: float = 30,
        ssl_verify: bool = True,
        headers: dict[str, str] | None = None,
        http_client: httpx.Client | None = None,
    ):
        """
        Initialize the transport.

        Args:
            timeout: Request timeout in seconds, applied to every request
            ssl_verify: Verify TLS certificates
            headers: Headers sent with every request
            http_client: Optional httpx client (created if None)
        """
        self.timeout = timeout
        self.ssl_verify = ssl_verify
        self.headers = {"Accept": "application/json"}
        self.headers.update(headers or {})

        # Track if we own the HTTP client (for cleanup)
        self._owns_client = http_client is None

        if http_client is None:
            self.http_client = httpx.Client(
                timeout=timeout,
                verify=ssl_verify,
                follow_redirects=True,
                max_redirects=5,
            )
        else:
            self.http_client = http_client

    def close(self) -> None:
        """Close the HTTP client if we created it."""
        if self._owns_client and self.http_client:
            self.http_client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def _merge_headers(self, headers: dict[str, str] | None) -> dict[str, str]:
        merged = dict(self.headers)
        merged.update(headers or {})
        return merged

    def post(
        self,
        url: str,
        data: dict[str, str],
        headers: dict[str, str] | None = None,
    ) -> TransportResponse:
        try:
            response = self.http_client.post(
                url,
                data=data,
                headers=self._merge_headers(headers),
            )
        except httpx.RequestError as e:
            logger.debug(f"POST {url} failed: {e}")
            return TransportResponse(error=f"Request failed: {e}")

        return TransportResponse(
            body=response.text,
            headers=dict(response.headers),
            status_code=response.status_code,
        )

    def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> TransportResponse:
        try:
            response = self.http_client.get(
                url,
                params=params,
                headers=self._merge_headers(headers),
            )
        except httpx.RequestError as e:
            logger.debug(f"GET {url} failed: {e}")
            return TransportResponse(error=f"Request failed: {e}")

        return TransportResponse(
            body=response.text,
            headers=dict(response.headers),
            status_code=response.status_code,
        )
