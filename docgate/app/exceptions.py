"""Custom exceptions for docgate."""


class DocGateException(Exception):
    """Base class for docgate exceptions with HTTP status code.

    All custom exceptions should inherit from this class and define
    their specific status_code and error code for consistent HTTP
    response handling.
    """
    status_code: int = 500
    error: str = "internal_error"

    def __init__(self, message: str = "Document gate error"):
        self.message = message
        super().__init__(message)


class AdmissionDenied(DocGateException):
    """Raised when the rate limiter does not admit a submission.

    Either the caller asked not to wait, or its wait timed out before the
    window rolled over. No request was sent.
    Maps to HTTP 429 Too Many Requests.
    """
    status_code = 429
    error = "admission_denied"

    def __init__(self, retry_after: float = 0.0, detail: str | None = None):
        self.retry_after = retry_after
        message = detail or (
            f"API call limit exceeded. Retry after {retry_after:.2f}s."
        )
        super().__init__(message)


class CancellationError(AdmissionDenied):
    """Raised when a caller's wait for admission was cancelled.

    A denial like any other, so ``except AdmissionDenied`` catches it too.
    The limiter is left untouched; no admission was consumed.
    Maps to HTTP 503 Service Unavailable.
    """
    status_code = 503
    error = "cancelled"

    def __init__(self, detail: str = "Wait for admission was cancelled"):
        super().__init__(retry_after=0.0, detail=detail)


class TransportError(DocGateException):
    """Raised when serializing or sending a document fails.

    Carries the upstream status code and body when the remote API
    answered with a non-2xx response.
    Maps to HTTP 502 Bad Gateway.
    """
    status_code = 502
    error = "transport_error"

    def __init__(
        self,
        message: str = "Document transport failed",
        upstream_status: int | None = None,
        body: str | None = None,
    ):
        self.upstream_status = upstream_status
        self.body = body
        super().__init__(message)
