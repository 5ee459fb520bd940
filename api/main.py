"""SiteAudit HTTP application."""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from api.config import API_VERSION, get_settings
from api.deps import get_services
from api.exceptions import SiteAuditError
from api.logging import setup_logging
from api.schemas.responses import ErrorDetail, ErrorResponse

setup_logging()
logger = structlog.get_logger()


def error_response(
    status_code: int,
    code: str,
    message: str,
    field: str | None = None,
    details: dict[str, Any] | None = None,
) -> ORJSONResponse:
    """Render the ``{"error": {...}}`` envelope used by every failing endpoint."""
    body = ErrorResponse(
        error=ErrorDetail(code=code, message=message, field=field, details=details)
    )
    return ORJSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()
    logger.info(
        "api_starting",
        env=settings.env,
        ai_enabled=settings.ai_enabled,
        cache_backend=settings.suggestion_cache_backend,
        default_max_pages=settings.default_max_pages,
        version=API_VERSION,
    )

    yield

    # Runs in flight stop at their next checkpoint and publish "cancelled"
    registry = get_services().registry
    active = registry.active_domains()
    for domain in active:
        registry.cancel(domain)
    logger.info("api_stopping", cancelled_runs=len(active))


def create_app() -> FastAPI:
    settings = get_settings()
    docs_enabled = settings.debug

    app = FastAPI(
        title="SiteAudit",
        description="SEO site analysis with AI-assisted suggestions",
        version=API_VERSION,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    from api.middleware import LoggingMiddleware, RequestIDMiddleware

    # Last added runs first: request id is bound before anything is logged
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    from api.routers import health, v1

    app.include_router(health.router)
    app.include_router(v1.router, prefix="/v1")

    return app


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(SiteAuditError)
    async def handle_site_audit_error(request: Request, exc: SiteAuditError) -> ORJSONResponse:
        logger.warning(
            "application_error",
            error_code=exc.code,
            message=exc.message,
            path=request.url.path,
        )
        return error_response(
            exc.status_code,
            exc.code,
            exc.message,
            details=exc.details or None,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Report the first invalid field, with every error listed under details."""
        errors = exc.errors()
        first = errors[0] if errors else {}
        # loc starts with "body" or "query"
        field = ".".join(str(part) for part in first.get("loc", [])[1:]) or None

        logger.warning("validation_error", path=request.url.path, field=field, count=len(errors))
        return error_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "validation_error",
            first.get("msg", "Validation error"),
            field=field,
            details={
                "errors": [{"loc": list(e.get("loc", [])), "msg": e.get("msg", "")} for e in errors]
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> ORJSONResponse:
        logger.error(
            "unhandled_exception",
            exc_info=exc,
            path=request.url.path,
            method=request.method,
        )
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "internal_error",
            "An unexpected error occurred",
        )


app = create_app()
