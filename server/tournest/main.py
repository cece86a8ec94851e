"""FastAPI application initialization and configuration."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

from fastapi import Depends, FastAPI, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from .core.config import settings
from .core.database import close_db, get_db, init_db
from .core.exceptions import (
    AppError,
    app_error_handler,
    generic_exception_handler,
    request_validation_handler,
)
from .core.middleware import setup_middleware
from .core.observability import (
    instrument_fastapi,
    instrument_pymongo,
    setup_metrics,
    setup_structured_logging,
    setup_tracing,
)
from .routers import health, metrics, tour, users
from .schemas.health import ReadinessResponse

# Configure structured logging
setup_structured_logging()

# Configure traditional logging for compatibility
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)

SERVICE_NAME = "tournest-api"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Sets up observability, connects to the document store and prepares the
    transient image directory on startup; closes connections on shutdown.
    """
    logger.info("Starting Tournest API")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Debug mode: {settings.debug}")

    try:
        setup_tracing(SERVICE_NAME)
        setup_metrics(SERVICE_NAME)
        instrument_pymongo()
        logger.info("Observability setup completed")

        await init_db()
        logger.info("Document store initialized successfully")

        Path(settings.tmp_dir).mkdir(parents=True, exist_ok=True)
    except Exception as e:
        logger.error(f"Failed to initialize application: {e}")
        raise

    logger.info("Application startup complete")

    yield

    logger.info("Shutting down Tournest API")
    await close_db()
    logger.info("Application shutdown complete")


def register_exception_handlers(app: FastAPI) -> None:
    """Render every error as the JSON envelope."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, generic_exception_handler)


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    app = FastAPI(
        title="Tournest API",
        description="Tour catalogue with geo search, analytics and cloud-hosted tour images",
        version="1.0.0",
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "traceparent", "tracestate"],
    )

    setup_middleware(app, enable_logging=True)

    # Instrument FastAPI with OpenTelemetry
    instrument_fastapi(app)

    register_exception_handlers(app)

    @app.get(
        "/health",
        status_code=status.HTTP_200_OK,
        tags=["Health"],
        summary="Health Check",
        description="Check if the service is healthy and responsive",
        response_model=dict,
    )
    async def health_check():
        """Liveness check."""
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": "1.0.0",
            "environment": settings.environment,
            "debug": settings.debug,
        }

    @app.get(
        "/ready",
        tags=["Health"],
        summary="Readiness Check",
        description="Check that the document store answers a ping",
        response_model=ReadinessResponse,
    )
    async def readiness_check(db: AsyncIOMotorDatabase = Depends(get_db)):
        """
        Readiness check endpoint that pings the document store.

        Returns:
            JSONResponse: 200 when ready, 503 otherwise
        """
        try:
            await db.command("ping")
            database, status_code = "ok", status.HTTP_200_OK
        except PyMongoError as e:
            logger.warning("Readiness check failed", extra={"error": str(e)})
            database, status_code = "unavailable", status.HTTP_503_SERVICE_UNAVAILABLE

        body = ReadinessResponse(
            status="ready" if status_code == status.HTTP_200_OK else "not ready",
            database=database,
            timestamp=datetime.now(timezone.utc),
        )
        return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))

    @app.get(
        "/info",
        status_code=status.HTTP_200_OK,
        tags=["Info"],
        summary="Service Information",
        description="Get detailed information about the service",
        response_model=dict,
    )
    async def service_info():
        """
        Service information endpoint.

        Returns:
            dict: Detailed service information
        """
        return {
            "service": SERVICE_NAME,
            "version": "1.0.0",
            "description": "Tour catalogue API",
            "environment": settings.environment,
            "debug": settings.debug,
            "features": {
                "authentication": True,
                "geo_queries": True,
                "image_uploads": settings.cloudinary_configured,
                "tracing": settings.otlp_endpoint is not None,
            },
            "endpoints": {
                "health": "/health",
                "readiness": "/ready",
                "info": "/info",
                "tours": "/tours",
                "metrics": "/metrics",
                "docs": "/docs" if settings.debug else None,
                "redoc": "/redoc" if settings.debug else None,
            },
        }

    # Register API routers
    app.include_router(health.router)
    app.include_router(tour.router)
    app.include_router(users.router)
    app.include_router(metrics.router)

    logger.info("FastAPI application created and configured")

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "tournest.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=True,
    )
