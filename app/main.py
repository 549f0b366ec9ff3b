# 📄 File: app/main.py
#
# 🧭 Purpose (Layman Explanation):
# The main control center that starts up our Plant Monitoring app, connects to the database,
# and makes sure everything is ready (and cleanly shut down) around serving requests.
#
# 🧪 Purpose (Technical Summary):
# FastAPI application factory and entry point. The lifespan constructs the process-scoped
# DatabaseConnectionManager, TransactionCoordinator and HealthAggregator, stores them on
# app.state, and guarantees the pool is released on every exit path.
#
# 🔗 Dependencies:
# - FastAPI framework, uvicorn
# - app.shared.config.settings
# - app.shared.infrastructure.database
# - app.monitoring.health_checks
#
# 🔄 Connected Modules / Calls From:
# - uvicorn server startup
# - Docker container entry point

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1.health import health_router
from app.api.v1.router import api_v1_router
from app.monitoring.health_checks import HealthAggregator, ProcessMemorySource
from app.shared.config.settings import Settings, get_settings
from app.shared.core.exceptions import PlantCareException, exception_to_dict
from app.shared.infrastructure.database.connection import DatabaseConnectionManager
from app.shared.infrastructure.database.transaction import TransactionCoordinator, TransactionEnvelope
from app.shared.utils.logging import log_shutdown_event, log_startup_event, setup_logging

logger = logging.getLogger(__name__)


def create_application(
    settings: Optional[Settings] = None,
    database_manager: Optional[DatabaseConnectionManager] = None
) -> FastAPI:
    """
    Application factory function.

    Args:
        settings: Settings to use, defaults to get_settings()
        database_manager: Pre-built manager, mainly for tests

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """
        Application lifespan context manager.

        Connects to the database on startup and always disconnects on
        shutdown, including when startup itself fails.
        """
        setup_logging(
            log_level=settings.LOG_LEVEL,
            log_format=settings.LOG_FORMAT,
            log_file=settings.LOG_FILE
        )
        log_startup_event(settings.APP_NAME, settings.APP_VERSION)

        manager = database_manager or DatabaseConnectionManager(settings)
        async with manager.lifespan():
            app.state.database_manager = manager
            app.state.transaction_coordinator = TransactionCoordinator(
                manager,
                default_envelope=TransactionEnvelope.from_settings(settings)
            )
            app.state.health_aggregator = HealthAggregator(
                manager,
                memory_source=ProcessMemorySource(settings.health_memory_limit_bytes),
                memory_threshold=settings.HEALTH_MEMORY_THRESHOLD
            )
            logger.info("✅ Plant Monitoring API startup complete")

            try:
                yield  # Application is running
            finally:
                log_shutdown_event(settings.APP_NAME)
                app.state.database_manager = None
                app.state.transaction_coordinator = None
                app.state.health_aggregator = None

        logger.info("✅ Plant Monitoring API shutdown complete")

    # Create FastAPI application
    app = FastAPI(
        title=settings.APP_NAME,
        description=settings.APP_DESCRIPTION,
        version=settings.APP_VERSION,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        lifespan=lifespan,
        debug=settings.DEBUG,
    )

    # =========================================================================
    # MIDDLEWARE CONFIGURATION
    # =========================================================================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    # =========================================================================
    # ROUTER REGISTRATION
    # =========================================================================

    # Health check routes (no prefix) for load balancers
    app.include_router(health_router, tags=["Health"])

    app.include_router(
        api_v1_router,
        prefix="/api/v1",
        tags=["API v1"]
    )

    # =========================================================================
    # EXCEPTION HANDLERS
    # =========================================================================

    @app.exception_handler(PlantCareException)
    async def plant_care_exception_handler(
        request: Request,
        exc: PlantCareException
    ) -> JSONResponse:
        """Handle custom application exceptions without leaking internals."""
        if exc.status_code >= 500:
            logger.error(f"{exc.error_code} on {request.url.path}: {exc.message}")

        error = exc.to_public_dict()["error"]
        error["timestamp"] = datetime.now(timezone.utc).isoformat()
        return JSONResponse(status_code=exc.status_code, content={"error": error})

    @app.exception_handler(Exception)
    async def internal_server_error_handler(
        request: Request,
        exc: Exception
    ) -> JSONResponse:
        """Handle 500 Internal Server Error."""
        logger.error(f"Internal server error: {exc}", exc_info=True)

        error = exception_to_dict(exc)["error"]
        if not settings.DEBUG:
            error["details"] = {}
        return JSONResponse(status_code=500, content={"error": error})

    return app


def main():
    """
    Main function for running the application.

    Used when running the application directly with python -m app.main
    or through the ``plant-monitoring-api`` script entry point.
    """
    settings = get_settings()
    uvicorn.run(
        "app.main:create_application",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD and settings.is_development,
        log_level=settings.LOG_LEVEL.lower(),
        workers=1 if settings.RELOAD else settings.WORKERS,
    )


if __name__ == "__main__":
    main()
