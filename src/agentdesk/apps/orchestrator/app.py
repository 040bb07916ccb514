"""FastAPI application factory for the orchestrator service."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, FastAPI, Response

from agentdesk.core.config import AppSettings
from agentdesk.core.http import HealthResponse, install_error_handlers
from agentdesk.core.logging import configure_logging
from agentdesk.core.middleware import RequestContextMiddleware, metrics_response
from agentdesk.core.telemetry import (
    init_tracing,
    instrument_fastapi_app,
    parse_exporter_headers,
)

from .dependencies import get_settings
from .routers import agents, chat, conversations

logger = logging.getLogger(__name__)

SERVICE_NAME = "orchestrator"

SettingsDep = Annotated[AppSettings, Depends(get_settings)]


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = get_settings()
    configure_logging()
    tracing = init_tracing(
        service_name=SERVICE_NAME,
        endpoint=settings.telemetry.exporter_endpoint,
        headers=parse_exporter_headers(settings.telemetry.exporter_headers),
    )
    if not tracing:
        logger.warning(
            "tracing disabled; operating without OTLP exporter",
            extra={"service_name": SERVICE_NAME},
        )

    app = FastAPI(title="AgentDesk Orchestrator Service", version=settings.app_version)

    instrument_fastapi_app(app)
    app.add_middleware(RequestContextMiddleware, service_name=SERVICE_NAME)
    install_error_handlers(app)

    @app.get("/health", response_model=HealthResponse, tags=["health"])
    def health(_: SettingsDep) -> HealthResponse:
        return HealthResponse()

    app.include_router(chat.router)
    app.include_router(conversations.router)
    app.include_router(agents.router)

    @app.get("/metrics")
    async def metrics() -> Response:
        return metrics_response()

    return app
