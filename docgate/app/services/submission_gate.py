"""Rate-limited document submission.

SubmissionGate is the only entry point callers use to reach the remote
document API. Each submit() takes one admission from the RateLimiter,
serializes and sends the document, and always releases the admission.
"""

import time
from typing import Any, Callable, Dict, Optional

from docgate.app.core.logging import get_log_context, get_logger
from docgate.app.exceptions import AdmissionDenied, CancellationError, TransportError
from docgate.app.providers.base import BaseTransport
from docgate.app.services.rate_limiter import AcquireStatus, CancelToken, RateLimiter
from docgate.app.services.serializer import serialize_document

logger = get_logger(__name__)

# Sentinel so that an explicit timeout=None (wait forever) can override
# the gate's default
_DEFAULT = object()


class SubmissionGate:
    """Admission-controlled wrapper around a document transport.

    Usage:
        gate = SubmissionGate(
            limiter=RateLimiter(TimeUnit.MINUTE, max_per_window=100),
            transport=CrptTransport(http_client=client),
        )
        response = gate.submit(document, signature)
    """

    def __init__(
        self,
        limiter: RateLimiter,
        transport: BaseTransport,
        serializer: Callable[[Any], bytes] = serialize_document,
        acquire_timeout: Optional[float] = None,
    ):
        """Initialize the gate.

        Args:
            limiter: Limiter shared by every caller of this gate
            transport: Collaborator that performs the remote call
            serializer: Turns a document into the request body
            acquire_timeout: Default admission wait, None waits for rollover
        """
        self.limiter = limiter
        self.transport = transport
        self.serializer = serializer
        self.acquire_timeout = acquire_timeout

    def submit(
        self,
        document: Any,
        signature: str,
        *,
        timeout: Any = _DEFAULT,
        cancel: Optional[CancelToken] = None,
    ) -> Dict[str, Any]:
        """Submit a document once admitted by the limiter.

        Blocks for up to one window while waiting for admission.

        Args:
            document: Document payload, opaque to the gate
            signature: Detached document signature
            timeout: Admission wait override; defaults to acquire_timeout
            cancel: Token that aborts the admission wait

        Returns:
            The decoded response body

        Raises:
            AdmissionDenied: If no admission was granted in time
            CancellationError: If the wait was cancelled
            TransportError: If serialization or the remote call failed
        """
        if timeout is _DEFAULT:
            timeout = self.acquire_timeout
        context = get_log_context(
            doc_id=_doc_attr(document, "doc_id"),
            doc_type=_doc_attr(document, "doc_type"),
        )

        started = time.perf_counter()
        status = self.limiter.acquire(timeout=timeout, cancel=cancel)
        wait_ms = round((time.perf_counter() - started) * 1000, 1)

        if status is AcquireStatus.CANCELLED:
            raise CancellationError()
        if status is AcquireStatus.DENIED:
            retry_after = self.limiter.retry_after()
            logger.info(
                f"Submission denied, retry after {retry_after:.2f}s",
                extra={**context, "wait_ms": wait_ms},
            )
            raise AdmissionDenied(retry_after=retry_after)

        logger.debug("Submission admitted", extra={**context, "wait_ms": wait_ms})
        try:
            try:
                body = self.serializer(document)
            except Exception as e:
                raise TransportError(f"Could not serialize document: {e}") from e
            try:
                return self.transport.send(body, signature)
            except TransportError:
                raise
            except Exception as e:
                raise TransportError(f"{type(e).__name__}: {e}") from e
        except TransportError as e:
            logger.warning(f"Submission failed: {e.message}", extra=context)
            raise
        finally:
            self.limiter.release()

    def stats(self) -> dict:
        return self.limiter.get_stats()


def _doc_attr(document: Any, name: str) -> Optional[str]:
    if isinstance(document, dict):
        return document.get(name)
    return getattr(document, name, None)
