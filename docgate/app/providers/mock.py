"""Mock transport for testing purposes.

This transport records submissions without making external API calls.
It's useful for load testing and development when the remote API is not
available.

Enable by setting environment variable:
    DOCGATE_MOCK_TRANSPORT=true
"""

import json
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from docgate.app.exceptions import TransportError
from docgate.app.providers.base import BaseTransport


@dataclass
class SentDocument:
    """A submission recorded by MockTransport."""
    body: bytes
    signature: str
    sent_at: float
    thread_name: str


class MockTransport(BaseTransport):
    """Mock transport that returns simulated responses.

    Features:
    - Simulates a fixed response delay
    - Records every call with its timestamp (thread-safe)
    - Can fail every call with a configured error
    """

    def __init__(
        self,
        delay: float = 0.0,
        error: Optional[Exception] = None,
        healthy: bool = True,
    ):
        """Initialize the mock transport.

        Args:
            delay: Simulated response delay in seconds
            error: Exception raised by every send(), if set
            healthy: Value returned by health_check()
        """
        super().__init__("http://mock.transport")
        self.delay = delay
        self.error = error
        self.healthy = healthy
        self._lock = threading.Lock()
        self._sent: List[SentDocument] = []

    @property
    def sent(self) -> List[SentDocument]:
        with self._lock:
            return list(self._sent)

    @property
    def call_count(self) -> int:
        with self._lock:
            return len(self._sent)

    def send(self, body: bytes, signature: str) -> Dict[str, Any]:
        record = SentDocument(
            body=body,
            signature=signature,
            sent_at=time.monotonic(),
            thread_name=threading.current_thread().name,
        )
        with self._lock:
            self._sent.append(record)

        if self.delay:
            time.sleep(self.delay)

        if self.error is not None:
            raise self.error

        try:
            doc_id = json.loads(body).get("doc_id")
        except (ValueError, AttributeError) as e:
            raise TransportError(f"Mock transport received invalid JSON: {e}") from e

        return {"value": str(uuid.uuid4()), "doc_id": doc_id}

    def health_check(self, timeout: float = 2.0) -> bool:
        return self.healthy
