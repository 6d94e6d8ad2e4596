"""Services package for docgate.

This package provides:
- Fixed-window admission control (RateLimiter)
- Rate-limited document submission (SubmissionGate)
- Document serialization
"""

from docgate.app.services.rate_limiter import (
    AcquireStatus,
    CancelToken,
    RateLimiter,
    TimeUnit,
)
from docgate.app.services.serializer import serialize_document
from docgate.app.services.submission_gate import SubmissionGate

__all__ = [
    # Rate limiter
    "AcquireStatus",
    "CancelToken",
    "RateLimiter",
    "TimeUnit",
    # Submission
    "SubmissionGate",
    "serialize_document",
]
