from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from unipivot_api.core.settings import settings
from unipivot_api.db.session import engine
from .api.routes import api_router
from .core.logging import configure_logging
from .observability.tracing import configure_tracing


APP_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "Reward guard policy loaded",
        ip_window_hours=settings.reward_claim_ip_window_hours,
        ip_limit=settings.reward_claim_ip_limit,
        flag_threshold=settings.reward_claim_flag_threshold,
        admin_recipients=len(settings.admin_notification_emails),
    )
    try:
        yield
    finally:
        await engine.dispose()


def create_app() -> FastAPI:
    """Application factory for the UniPivot API service."""
    configure_logging(
        service_name="unipivot-api",
        environment=settings.environment,
        version=APP_VERSION,
    )

    app = FastAPI(
        title="UniPivot API",
        version=APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    configure_tracing(
        app,
        service_name="unipivot-api",
        service_version=APP_VERSION,
        environment=settings.environment,
        enabled=settings.otel_tracing_enabled,
    )

    app.include_router(api_router)

    @app.get("/healthz", tags=["Health"])
    async def health_check() -> dict[str, str]:
        return {
            "status": "ok",
            "environment": settings.environment,
            "version": APP_VERSION,
        }

    return app
