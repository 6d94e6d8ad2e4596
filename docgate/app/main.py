import asyncio
import math
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse

from docgate.app.core.config import settings
from docgate.app.core.http_client import init_http_client
from docgate.app.core.logging import get_logger, setup_logging
from docgate.app.exceptions import (
    AdmissionDenied,
    CancellationError,
    DocGateException,
    TransportError,
)
from docgate.app.models import Document
from docgate.app.providers import BaseTransport, CrptTransport, MockTransport
from docgate.app.services import RateLimiter, SubmissionGate


def create_app(
    transport: Optional[BaseTransport] = None,
    limiter: Optional[RateLimiter] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        transport: Transport to use instead of the one chosen by settings
        limiter: Limiter to use instead of one built from settings

    Returns:
        Configured FastAPI application instance
    """
    setup_logging()
    logger = get_logger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan context manager.

        Builds the shared HTTP client, the transport and the one limiter
        every request goes through, and closes the client on shutdown.
        """
        with init_http_client() as http_client:
            if transport is not None:
                app_transport = transport
            elif settings.mock_transport:
                app_transport = MockTransport()
            else:
                app_transport = CrptTransport(
                    base_url=settings.crpt_base_url,
                    http_client=http_client,
                    endpoint=settings.crpt_create_endpoint,
                )

            app_limiter = limiter or RateLimiter(
                window=settings.rate_limit_window,
                max_per_window=settings.rate_limit_max_requests,
            )
            app.state.gate = SubmissionGate(
                limiter=app_limiter,
                transport=app_transport,
                acquire_timeout=settings.rate_limit_acquire_timeout,
            )

            logger.info(
                "Application startup complete",
                extra={
                    "transport": type(app_transport).__name__,
                    "window_seconds": app_limiter.window,
                    "max_per_window": app_limiter.max_per_window,
                },
            )
            yield

        logger.info("Application shutdown complete")

    app = FastAPI(
        title="DocGate",
        description="Rate-limited client gateway for the document creation API",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Sync endpoint: FastAPI runs it in its thread pool, so concurrent
    # requests block on the limiter like any other caller thread.
    @app.post("/documents")
    def create_document(
        request: Request,
        document: Document,
        x_signature: str = Header(..., alias="X-Signature"),
    ) -> dict[str, Any]:
        """Submit a document to the remote API through the rate limiter."""
        gate: SubmissionGate = request.app.state.gate
        return gate.submit(document, x_signature)

    # Monitoring stays on the event loop so submitters parked on the limiter
    # cannot exhaust the thread pool it would otherwise share.
    @app.get("/stats")
    async def stats(request: Request) -> dict[str, Any]:
        """Current rate limiter statistics."""
        return request.app.state.gate.stats()

    @app.get("/health")
    async def health(request: Request) -> dict[str, Any]:
        """Health check with transport reachability and limiter state."""
        gate: SubmissionGate = request.app.state.gate
        health_status: dict[str, Any] = {"status": "ok", "components": {}}

        healthy = await asyncio.to_thread(gate.transport.health_check)
        if not healthy:
            health_status["status"] = "degraded"
        health_status["components"]["transport"] = {
            "status": "ok" if healthy else "unreachable",
            "type": type(gate.transport).__name__,
        }
        health_status["components"]["rate_limiter"] = gate.stats()
        return health_status

    @app.exception_handler(DocGateException)
    async def docgate_exception_handler(request: Request, exc: DocGateException) -> JSONResponse:
        """Map docgate exceptions to their HTTP status codes."""
        content: dict[str, Any] = {"error": exc.error, "message": exc.message}
        headers = None
        # A cancelled wait has nothing to retry after
        if isinstance(exc, AdmissionDenied) and not isinstance(exc, CancellationError):
            content["retry_after"] = exc.retry_after
            headers = {"Retry-After": str(math.ceil(exc.retry_after))}
        elif isinstance(exc, TransportError) and exc.upstream_status is not None:
            content["upstream_status"] = exc.upstream_status
        return JSONResponse(status_code=exc.status_code, content=content, headers=headers)

    return app


# Create the application instance
app = create_app()
