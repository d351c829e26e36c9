"""
REST API main application.
Entry point for the FastAPI server exposing the row services.

Row types must be registered on `data_services.rows.row_registry` before the
app starts serving.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from data_services.routers import health_router, services_router
from data_services.rows.registry import row_registry
from shared.config.logging import setup_logging, row_services_logger as logger
from shared.config.settings import settings
from shared.infrastructure.correlation import CorrelationIdMiddleware
from shared.infrastructure.redis import close_redis_sync_client


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    Runs on startup and shutdown.
    """
    setup_logging()
    logger.info(
        "Starting row services",
        port=settings.rest_api_port,
        env=settings.environment,
        row_types=len(row_registry),
    )

    yield

    close_redis_sync_client()
    logger.info("Row services stopped")


def create_app() -> FastAPI:
    app = FastAPI(title="Row Services", lifespan=lifespan)
    app.add_middleware(CorrelationIdMiddleware)
    app.include_router(health_router, prefix=settings.api_prefix)
    app.include_router(services_router, prefix=settings.api_prefix)
    return app


app = create_app()
