"""Core utilities for docgate."""

from docgate.app.core.config import Settings, settings
from docgate.app.core.http_client import create_http_client, init_http_client
from docgate.app.core.logging import get_log_context, get_logger, setup_logging

__all__ = [
    "Settings",
    "settings",
    "create_http_client",
    "init_http_client",
    "get_log_context",
    "get_logger",
    "setup_logging",
]
