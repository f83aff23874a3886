"""
FastAPI application factory.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from opsportal.config import settings
from opsportal.core.cache import cache_manager
from opsportal.core.database import db_manager
from opsportal.core.exceptions import (
    AccessDeniedError,
    AuthenticationError,
    DomainConflictError,
    NestedContextSwitchError,
    PortalException,
    ResourceNotFoundError,
    TenantResolutionError,
)
from opsportal.core.logging_config import get_logger, setup_logging
from opsportal.core.metrics import app_info
from opsportal.core.middleware import (
    RequestContextMiddleware,
    TenantHostMiddleware,
    track_http_metrics,
)
from opsportal.features.session.registry import SessionRegistry

setup_logging()
logger = get_logger(__name__)

EXCEPTION_STATUS: dict[type[PortalException], int] = {
    AuthenticationError: status.HTTP_401_UNAUTHORIZED,
    AccessDeniedError: status.HTTP_403_FORBIDDEN,
    ResourceNotFoundError: status.HTTP_404_NOT_FOUND,
    DomainConflictError: status.HTTP_409_CONFLICT,
    NestedContextSwitchError: status.HTTP_409_CONFLICT,
    TenantResolutionError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_for(exc: PortalException) -> int:
    for exc_type, code in EXCEPTION_STATUS.items():
        if isinstance(exc, exc_type):
            return code
    return status.HTTP_400_BAD_REQUEST


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan events."""
    logger.info(
        "application_starting",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    db_manager.init()
    await cache_manager.init()
    app.state.session_registry = SessionRegistry(db_manager.session_factory)

    app_info.info({
        "version": settings.app_version,
        "environment": settings.environment,
    })

    logger.info("application_ready")

    yield

    logger.info("application_shutting_down")
    await db_manager.close()
    await cache_manager.close()
    logger.info("application_shutdown_complete")


def create_application() -> FastAPI:
    """Application factory."""

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Multi-tenant operations portal: tenant resolution, session context and access control",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    # Middleware (last added = outermost)
    @app.middleware("http")
    async def performance_middleware(request: Request, call_next):
        return await track_http_metrics(request, call_next)

    app.add_middleware(TenantHostMiddleware)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Session-ID"],
    )

    @app.exception_handler(PortalException)
    async def portal_exception_handler(
        request: Request,
        exc: PortalException,
    ) -> JSONResponse:
        status_code = status_for(exc)
        logger.warning(
            "request_rejected",
            path=request.url.path,
            error_type=type(exc).__name__,
            error=exc.message,
            status_code=status_code,
        )
        return JSONResponse(
            status_code=status_code,
            content={"detail": exc.message, "details": exc.details or None},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        logger.warning(
            "validation_error",
            path=request.url.path,
            errors=exc.errors(),
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=jsonable_encoder({"detail": exc.errors()}),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        request_id = getattr(request.state, "request_id", "unknown")

        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=True,
        )

        if settings.is_production:
            detail = "An internal error occurred. Please contact support."
        else:
            detail = str(exc)

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": detail,
                "request_id": request_id,
            },
        )

    from opsportal.api.health_router import router as health_router
    from opsportal.api.metrics_router import router as metrics_router
    from opsportal.api.v1.router import v1_router

    app.include_router(health_router)

    if settings.metrics_enabled:
        app.include_router(metrics_router)

    app.include_router(v1_router, prefix="/api")

    @app.get("/", tags=["Root"])
    async def root() -> dict:
        return {
            "message": f"Welcome to {settings.app_name}",
            "version": settings.app_version,
            "environment": settings.environment,
            "docs": "/docs" if settings.is_development else "Disabled in production",
            "health": "/health",
            "metrics": "/metrics" if settings.metrics_enabled else "Disabled",
        }

    logger.info("application_configured")
    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "opsportal.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload and settings.is_development,
        log_level=settings.log_level.lower(),
        access_log=False,
    )
