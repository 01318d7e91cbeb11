"""Main FastAPI application for the media asset gateway."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from media_gateway.core.config import Settings, get_settings
from media_gateway.core.errors import ServiceError
from media_gateway.core.logging_config import setup_logging, get_logger
from media_gateway.storage import AssetBackend, create_backend
from media_gateway.api.v1 import upload, health, metrics
from media_gateway.api.middleware import (
    CORSPolicyMiddleware,
    RequestLoggingMiddleware,
    PerformanceLoggingMiddleware,
    PrometheusMiddleware,
)
from media_gateway.api.exception_handlers import (
    service_error_handler,
    http_exception_handler,
    general_exception_handler,
)


logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: log startup, release backend resources on shutdown."""
    settings: Settings = app.state.settings
    backend: AssetBackend = app.state.backend

    logger.info(
        "application_startup",
        service=settings.SERVICE_NAME,
        version=settings.VERSION,
        environment=settings.ENVIRONMENT,
        debug_mode=settings.is_debug_mode,
        log_level=settings.LOG_LEVEL,
        storage_backend=backend.name,
        api_key_configured=bool(settings.UPLOAD_API_KEY),
    )
    if not settings.UPLOAD_API_KEY:
        logger.warning("upload_api_key_not_configured", effect="all gateway requests will be rejected")

    yield

    logger.info("application_shutdown_initiated")
    try:
        await backend.close()
        logger.info("storage_backend_closed", storage_backend=backend.name)
    except Exception as e:
        logger.error(
            "storage_backend_cleanup_failed",
            storage_backend=backend.name,
            error=str(e),
            exc_info=True,
        )

    logger.info("application_shutdown", graceful=True)


def create_app(settings: Optional[Settings] = None, backend: Optional[AssetBackend] = None) -> FastAPI:
    """Build the application.

    Args:
        settings: Process settings; read from the environment when omitted
        backend: Storage backend; built from `settings` when omitted

    Returns:
        FastAPI: Configured application
    """
    settings = settings or get_settings()

    # Initialize logging system (MUST be done before any logging calls)
    setup_logging(
        settings.SERVICE_NAME,
        settings.VERSION,
        settings.ENVIRONMENT,
        log_level=settings.LOG_LEVEL,
        debug=settings.is_debug_mode,
        json_logs=settings.use_json_logs,
    )

    backend = backend or create_backend(settings)

    app = FastAPI(
        title=settings.SERVICE_NAME,
        description="Upload, list and delete image assets over interchangeable storage backends",
        version=settings.VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc"
    )
    app.state.settings = settings
    app.state.backend = backend

    metrics.service_info.info({
        'name': settings.SERVICE_NAME,
        'version': settings.VERSION,
        'environment': settings.ENVIRONMENT,
        'storage_backend': backend.name,
    })

    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # Middleware stack (first added is executed last)
    app.add_middleware(CORSPolicyMiddleware, headers=settings.cors_headers)
    app.add_middleware(PerformanceLoggingMiddleware, slow_request_threshold_ms=1000.0)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(PrometheusMiddleware, service_name=settings.SERVICE_NAME)

    app.include_router(upload.router)
    app.include_router(health.router)
    app.include_router(metrics.router)

    # Serve stored files for the local backend
    if settings.STORAGE_BACKEND == "local":
        app.mount(
            settings.LOCAL_PUBLIC_PATH,
            StaticFiles(directory=settings.STORAGE_PATH, check_dir=False),
            name="storage",
        )
        logger.info(
            "static_files_mounted",
            mount_path=settings.LOCAL_PUBLIC_PATH,
            directory=settings.STORAGE_PATH,
        )

    @app.get("/")
    async def root():
        """Service information."""
        return {
            "service": settings.SERVICE_NAME,
            "version": settings.VERSION,
            "documentation": "/docs",
            "gateway": "/api/upload",
            "health_check": "/api/v1/health",
            "storage_backend": backend.name,
        }

    return app


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run("media_gateway.main:create_app", factory=True, host="0.0.0.0", port=8000)
