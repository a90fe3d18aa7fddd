"""
FastAPI Application

Entry point for the Ads Decision Gate API.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from prometheus_client import make_asgi_app

from adgate.config import get_settings
from adgate.config.logging import configure_logging
from adgate.database.connection import close_database, init_database
from adgate.serving.api import (
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
    register_exception_handlers,
)
from adgate.serving.api.routes import (
    data_router,
    decisions_router,
    health_router,
    reports_router,
    sellers_router,
    sync_router,
    uploads_router,
)

settings = get_settings()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    configure_logging()
    logger.info("Starting Ads Decision Gate API", environment=settings.app_env)

    await init_database()

    yield

    logger.info("Shutting down...")
    await close_database()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Ads Decision Gate API",
        description="Spreadsheet ingestion of marketplace facts and ads go/no-go decisions",
        version=settings.version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)

    register_exception_handlers(app)

    app.include_router(health_router, prefix="/api/v1", tags=["Health"])
    app.include_router(uploads_router, prefix="/api/v1/uploads", tags=["Uploads"])
    app.include_router(sellers_router, prefix="/api/v1/sellers", tags=["Sellers"])
    app.include_router(decisions_router, prefix="/api/v1/decisions", tags=["Decisions"])
    app.include_router(sync_router, prefix="/api/v1/sync", tags=["Sync"])
    app.include_router(reports_router, prefix="/api/v1/reports", tags=["Reports"])
    app.include_router(data_router, prefix="/api/v1/data", tags=["Data"])

    app.mount("/metrics", make_asgi_app())

    @app.get("/api/v1/info")
    async def api_info():
        """API information endpoint."""
        return {
            "name": "Ads Decision Gate API",
            "version": settings.version,
            "environment": settings.app_env,
            "documentation": "/docs",
        }

    return app


app = create_app()
