"""Document transports for docgate.

This package provides:
- Base transport interface (BaseTransport)
- The remote document API transport (CrptTransport)
- An in-process transport for development and tests (MockTransport)
"""

from docgate.app.providers.base import BaseTransport
from docgate.app.providers.crpt import CrptTransport
from docgate.app.providers.mock import MockTransport, SentDocument

__all__ = [
    "BaseTransport",
    "CrptTransport",
    "MockTransport",
    "SentDocument",
]
