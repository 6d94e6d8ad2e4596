"""Transport for the CRPT (Chestny ZNAK) document API.

Posts documents to ``/lk/documents/create`` with the detached signature in
the ``X-Signature`` header.
"""

import time
from typing import Any, Dict, Optional

import httpx

from docgate.app.core.logging import get_log_context, get_logger
from docgate.app.exceptions import TransportError
from docgate.app.providers.base import BaseTransport

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://ismp.crpt.ru/api/v3"
CREATE_ENDPOINT = "/lk/documents/create"

# Upstream error bodies are truncated to this many characters
_MAX_ERROR_BODY = 500


class CrptTransport(BaseTransport):
    """HTTP transport for the remote document API.

    If http_client is provided, it is used for all requests (connection
    reuse). If not, a new client is created per call. Retries and timeouts
    are governed by the client; the transport itself never retries.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        http_client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
        endpoint: str = CREATE_ENDPOINT,
    ):
        super().__init__(base_url, http_client, timeout)
        self.endpoint = endpoint

    def send(self, body: bytes, signature: str) -> Dict[str, Any]:
        """POST a serialized document.

        Raises:
            TransportError: On network errors, timeouts and non-2xx answers
        """
        url = self._get_endpoint_url(self.endpoint)
        headers = self._build_headers(signature)
        started = time.perf_counter()

        try:
            with self._client_context() as client:
                resp = client.post(url, headers=headers, content=body)
                resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            text = e.response.text[:_MAX_ERROR_BODY]
            logger.warning(
                f"Document API returned {status}",
                extra=get_log_context(status_code=status),
            )
            raise TransportError(
                f"Document API returned {status}: {text}",
                upstream_status=status,
                body=text,
            ) from e
        except httpx.HTTPError as e:
            logger.warning(f"Document API unreachable: {type(e).__name__}: {e}")
            raise TransportError(
                f"Document API request failed: {type(e).__name__}: {e}"
            ) from e

        duration_ms = round((time.perf_counter() - started) * 1000, 1)
        logger.info(
            f"Response: {resp.text[:_MAX_ERROR_BODY]}",
            extra=get_log_context(status_code=resp.status_code, duration_ms=duration_ms),
        )
        return self._decode(resp)

    @staticmethod
    def _decode(resp: httpx.Response) -> Dict[str, Any]:
        if not resp.content:
            return {}
        try:
            data = resp.json()
        except ValueError:
            return {"body": resp.text}
        if isinstance(data, dict):
            return data
        return {"body": data}

    def health_check(self, timeout: float = 2.0) -> bool:
        """Check that the API host answers at all.

        Any HTTP answer below 500 counts as reachable; the create endpoint
        itself only accepts signed POSTs.
        """
        try:
            with self._client_context() as client:
                resp = client.get(self.base_url, timeout=timeout)
                return resp.status_code < 500
        except httpx.HTTPError:
            return False
