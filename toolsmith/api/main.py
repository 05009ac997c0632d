"""
Main FastAPI application for toolsmith.

Authoring, publishing and running AI-backed multi-step form tools.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from toolsmith import __version__
from toolsmith.api.middleware import BodySizeMiddleware, LoggingMiddleware, RequestIDMiddleware
from toolsmith.api.v1.error_handlers import register_error_handlers
from toolsmith.api.v1.routers import api_router
from toolsmith.core.config import settings
from toolsmith.core.database import init_database
from toolsmith.core.logging import setup_logging

logger = logging.getLogger(__name__)


def create_app(init_db: bool = True) -> FastAPI:
    """Build the application. Tests pass init_db=False and supply their own database."""
    app = FastAPI(
        title="toolsmith",
        description="Author, publish and run AI-backed multi-step form tools",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # ============================================================================
    # STARTUP
    # ============================================================================

    @app.on_event("startup")
    async def startup_event():
        logger.info("Starting toolsmith API")
        if init_db:
            try:
                await init_database()
            except Exception as e:
                logger.error(f"Database initialization failed: {e}")
                raise
        logger.info(f"API documentation: http://{settings.API_HOST}:{settings.API_PORT}/docs")

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("Shutting down toolsmith API...")

    # ============================================================================
    # MIDDLEWARE
    # ============================================================================

    # Order matters: last added = first executed
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(BodySizeMiddleware)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_error_handlers(app)

    # ============================================================================
    # ROUTERS
    # ============================================================================

    app.include_router(api_router)

    @app.get("/")
    async def root():
        return {
            "name": "toolsmith",
            "version": __version__,
            "status": "operational",
            "docs": "/docs",
            "health": "/api/v1/health",
        }

    return app


setup_logging()
app = create_app()
