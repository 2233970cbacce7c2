from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import PlainTextResponse

from pg_exporter.api.health import router as health_router
from pg_exporter.api.metrics_endpoint import router as metrics_router
from pg_exporter.api.self_metrics import router as self_metrics_router
from pg_exporter.core.config import Settings
from pg_exporter.core.errors import DatabaseConnectError, ExporterError
from pg_exporter.core.metrics import SCRAPE_ERRORS
from pg_exporter.middleware.metrics import MetricsMiddleware
from pg_exporter.middleware.request_context import RequestContextMiddleware

logger = logging.getLogger(__name__)


async def _scrape_failed(request: Request, exc: Exception) -> PlainTextResponse:
    # Only this request fails; the process keeps serving.
    stage = getattr(exc, "stage", "internal")
    query = getattr(exc, "query", None)
    SCRAPE_ERRORS.labels(stage=stage).inc()
    logger.error(
        "scrape failed at %s stage: %s",
        stage,
        exc,
        exc_info=exc,
        extra={"stage": stage, "query": query},
    )
    if isinstance(exc, DatabaseConnectError):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return PlainTextResponse(f"scrape failed: {stage} error\n", status_code=code)


def create_app(settings: Settings) -> FastAPI:
    """Build the exporter application around an immutable configuration."""
    app = FastAPI(
        title="pg-exporter",
        docs_url="/docs" if settings.is_dev else None,
        redoc_url="/redoc" if settings.is_dev else None,
    )
    app.state.settings = settings

    # Last-added runs first: RequestContext → Metrics → route handler.
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestContextMiddleware)

    app.add_exception_handler(ExporterError, _scrape_failed)

    app.include_router(metrics_router)
    app.include_router(self_metrics_router)
    app.include_router(health_router)

    logger.info(
        "pg-exporter configured  env=%s target=%s listen=%s:%d",
        settings.app_env,
        settings.db_target,
        settings.listen_host,
        settings.port,
    )
    return app
