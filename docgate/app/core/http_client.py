"""Shared HTTP client management for connection pooling.

The client is created once by the application lifespan and handed to the
transport, so every submission reuses the same connection pool.
"""

from contextlib import contextmanager
from typing import Iterator

import httpx

from docgate.app.core.config import settings


def _default_timeout() -> httpx.Timeout:
    # - connect: Time to establish socket connection
    # - read: Time to read response data
    # - write: Time to send request data
    # - pool: Time to acquire connection from pool
    return httpx.Timeout(
        connect=settings.httpx_connect_timeout,
        read=settings.httpx_read_timeout,
        write=settings.httpx_write_timeout,
        pool=settings.httpx_pool_timeout,
    )


def _default_limits() -> httpx.Limits:
    return httpx.Limits(
        max_connections=settings.httpx_max_connections,
        max_keepalive_connections=settings.httpx_max_keepalive_connections,
        keepalive_expiry=settings.httpx_keepalive_expiry,
    )


@contextmanager
def init_http_client() -> Iterator[httpx.Client]:
    """Create the shared HTTP client and close it on exit.

    Used in the FastAPI lifespan:

        with init_http_client() as http_client:
            transport = CrptTransport(http_client=http_client)
            yield
    """
    client = httpx.Client(
        timeout=_default_timeout(),
        limits=_default_limits(),
        http2=settings.httpx_http2,
        follow_redirects=True,
    )
    try:
        yield client
    finally:
        client.close()


def create_http_client(**kwargs) -> httpx.Client:
    """Create a new HTTP client with default settings.

    The returned client should be closed when done:
        with create_http_client() as client:
            ...

    Args:
        **kwargs: Override default settings. Can include:
            - timeout: Single timeout value (overrides all granular timeouts)
            - transport: Custom httpx transport (e.g. httpx.MockTransport)
            - max_connections: Maximum connections

    Returns:
        A new httpx.Client instance.
    """
    timeout_override = kwargs.get("timeout")
    if timeout_override is not None:
        timeout = httpx.Timeout(timeout_override)
    else:
        timeout = _default_timeout()

    limits = _default_limits()
    if "max_connections" in kwargs:
        limits = httpx.Limits(
            max_connections=kwargs["max_connections"],
            max_keepalive_connections=settings.httpx_max_keepalive_connections,
            keepalive_expiry=settings.httpx_keepalive_expiry,
        )

    return httpx.Client(
        timeout=timeout,
        limits=limits,
        transport=kwargs.get("transport"),
        follow_redirects=True,
    )
