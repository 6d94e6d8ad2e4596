from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

import httpx


class BaseTransport(ABC):
    """Base class for document transports.

    Subclasses can accept an external httpx.Client for connection pooling,
    or create their own per call if not provided.

    A transport is called concurrently from every admitted thread; it must
    not keep per-call state on the instance.
    """

    def __init__(
        self,
        base_url: str,
        http_client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
    ):
        """Initialize the transport.

        Args:
            base_url: The API base URL
            http_client: Optional shared HTTP client for connection pooling
            timeout: Request timeout in seconds
        """
        self._http_client = http_client
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

    @property
    def http_client(self) -> Optional[httpx.Client]:
        """Get the HTTP client, if one was provided."""
        return self._http_client

    def _build_headers(self, signature: str) -> Dict[str, str]:
        """Build the HTTP headers for a submission.

        Args:
            signature: Detached document signature

        Returns:
            Dictionary of HTTP headers
        """
        return {
            "Content-Type": "application/json",
            "X-Signature": signature,
        }

    @contextmanager
    def _client_context(self) -> Iterator[httpx.Client]:
        """Yield the shared client, or a per-call client closed on exit."""
        if self._http_client is not None:
            yield self._http_client
            return
        client = httpx.Client(timeout=self.timeout, follow_redirects=True)
        try:
            yield client
        finally:
            client.close()

    def _get_endpoint_url(self, endpoint: str) -> str:
        return f"{self.base_url}{endpoint}"

    @abstractmethod
    def send(self, body: bytes, signature: str) -> Dict[str, Any]:
        """Send a serialized document.

        Args:
            body: UTF-8 JSON document
            signature: Detached document signature

        Returns:
            The decoded response body

        Raises:
            TransportError: If the call fails or the API answers non-2xx
        """
        pass

    @abstractmethod
    def health_check(self, timeout: float = 2.0) -> bool:
        """Check whether the remote API is reachable.

        Args:
            timeout: Request timeout in seconds (default: 2.0)

        Returns:
            True if the API answered, False otherwise
        """
        pass
