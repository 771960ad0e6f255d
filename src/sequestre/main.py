"""
Main FastAPI application entry point.

Uses Application Factory Pattern.
"""

from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sequestre import __version__
from sequestre.config.settings import Settings, get_settings
from sequestre.di import initialize_container, shutdown_container
from sequestre.domain.exceptions import SequestreException
from sequestre.infrastructure.monitoring import get_logger, setup_logging
from sequestre.presentation.api.middleware import (
    MetricsMiddleware,
    RequestIDMiddleware,
    sequestre_exception_handler,
)
from sequestre.presentation.api.routes import escrow, health, stablecoin


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory - creates and configures FastAPI app.

    Args:
        settings: Optional Settings instance (for testing)

    Returns:
        Configured FastAPI application
    """
    if settings is None:
        settings = get_settings()

    setup_logging(level=settings.LOG_LEVEL, json_logs=settings.LOG_JSON)
    logger = get_logger(__name__)

    logger.info(f"Creating Sequestre application (ENV={settings.ENV})")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        logger.info("Starting Sequestre application...")
        await initialize_container()
        logger.info("Sequestre application started successfully")

        yield

        logger.info("Shutting down Sequestre application...")
        await shutdown_container()
        logger.info("Sequestre application shutdown complete")

    app = FastAPI(
        title="Sequestre API",
        description="Milestone escrow and stablecoin transfers on EVM ledgers",
        version=__version__,
        lifespan=lifespan,
    )

    # Middleware chain (last added runs first)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    app.add_exception_handler(SequestreException, sequestre_exception_handler)

    # Register routes
    app.include_router(health.router, prefix="/api")
    app.include_router(escrow.router, prefix="/api")
    app.include_router(stablecoin.router, prefix="/api")

    @app.get("/", tags=["health"])
    async def root():
        """Root endpoint."""
        return {
            "service": settings.APP_NAME,
            "status": "running",
            "version": __version__,
        }

    logger.info("Sequestre application created successfully")
    return app


def run() -> None:
    """Run the API server with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "sequestre.main:create_app",
        factory=True,
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.API_RELOAD,
    )


if __name__ == "__main__":
    run()
