"""Integration Hub API: FastAPI entry point.

Owns one IntegrationManager for the process lifetime: constructed and
started in the lifespan hook, drained and shut down on exit.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.routes import router as integrations_router
from integration_hub.catalog import setup_common_integrations
from integration_hub.config import HubConfig
from integration_hub.errors import (
    ConfigurationError,
    DuplicateIntegration,
    HubNotRunning,
    IntegrationNotFound,
    RateLimitExceeded,
    TransportError,
)
from integration_hub.manager import IntegrationManager
from integration_hub.observability import setup_tracing

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS", "http://localhost:3000,http://localhost:3001"
).split(",")
LOAD_COMMON_INTEGRATIONS = os.getenv("LOAD_COMMON_INTEGRATIONS", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# ---------------------------------------------------------------------------
# Error translation
# ---------------------------------------------------------------------------

ERROR_STATUS: list[tuple[type[Exception], int]] = [
    (IntegrationNotFound, 404),
    (DuplicateIntegration, 409),
    (HubNotRunning, 503),
    (ConfigurationError, 400),
    (RateLimitExceeded, 429),
    (TransportError, 502),
]


async def hub_error_handler(request: Request, exc: Exception) -> JSONResponse:
    status_code = next(code for cls, code in ERROR_STATUS if isinstance(exc, cls))
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------

def create_app(
    hub: Optional[IntegrationManager] = None,
    load_common: bool = LOAD_COMMON_INTEGRATIONS,
) -> FastAPI:
    """Build the API. Pass ``hub`` to host a pre-configured manager."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT"):
            setup_tracing("integration-hub")

        manager = hub or IntegrationManager(HubConfig.from_env())
        await manager.start()
        if load_common:
            await setup_common_integrations(manager)
        app.state.hub = manager
        logger.info("Integration Hub API started")
        try:
            yield
        finally:
            await manager.shutdown()
            logger.info("Integration Hub API shut down")

    app = FastAPI(
        title="Integration Hub",
        description="External-integration dispatcher: registry, rate-limited calls, webhooks, sync and metrics",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for error_cls in (ConfigurationError, RateLimitExceeded, TransportError):
        app.add_exception_handler(error_cls, hub_error_handler)

    app.include_router(integrations_router, prefix="/api/integrations", tags=["Integrations"])

    @app.get("/health")
    async def health():
        return {"status": "healthy", "version": "0.1.0", "hub": app.state.hub.state.value}

    return app


logging.basicConfig(level=LOG_LEVEL)
app = create_app()
