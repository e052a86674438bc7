"""
Sales Analytics Engine - Main Application

FastAPI server exposing reports, summaries, forecasts and business
questions over uploaded order snapshots.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import orders, query, reports
from config import get_settings
from core.logging_config import api_logger as logger
from core.remote_client import remote_client


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()

    # Startup
    logger.info(f"{settings.app_name} v{settings.app_version} starting...")
    if settings.remote.enabled:
        logger.info(f"Remote analytics: {settings.remote.base_url}")
    else:
        logger.info("Remote analytics disabled, computing reports locally")

    yield

    # Shutdown
    await remote_client.close()
    logger.info("Shutting down...")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Sales analytics over order snapshots: metrics, trends, anomalies, forecasts, summaries and business Q&A",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(orders.router, prefix="/api/v1", tags=["Orders"])
    app.include_router(reports.router, prefix="/api/v1", tags=["Reports"])
    app.include_router(query.router, prefix="/api/v1", tags=["Query"])

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "app": settings.app_name,
            "version": settings.app_version,
            "remoteAnalytics": settings.remote.enabled,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
