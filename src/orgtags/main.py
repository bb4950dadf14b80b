"""
OrgTags - Main Application.

FastAPI application exposing the organization tag directory.
"""

import logging
import sys
import traceback
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from orgtags import __version__
from orgtags.config import Settings, get_settings
from orgtags.deps import build_tag_service, build_tag_store
from orgtags.exceptions import OrgTagsException
from orgtags.modules.tags.resolver import EffectiveTagResolver
from orgtags.modules.tags.router import router as tags_router
from orgtags.modules.tags.store import TagStore
from orgtags.schemas import ErrorDetail, ErrorResponse, HealthResponse

logger = logging.getLogger("orgtags")


def configure_logging(settings: Settings) -> None:
    """Configure standard logging once for the process."""
    logging.basicConfig(
        level=getattr(logging, settings.app_log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def _error_response(request: Request, status_code: int, code: str, message: str, details=None) -> JSONResponse:
    body = ErrorResponse(
        error=ErrorDetail(
            code=code,
            message=message,
            details=details,
            request_id=_request_id(request),
        )
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def create_app(settings: Settings | None = None, store: TagStore | None = None) -> FastAPI:
    """
    Build the application.

    The tag store is created here, once, and shared by the directory service
    and the resolver through ``app.state``. Tests pass their own store.
    """
    settings = settings or get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        logger.info(
            f"Starting OrgTags API v{__version__} "
            f"[env={settings.app_env}] "
            f"[store={app.state.tag_store.name}]"
        )
        yield
        logger.info("Shutting down OrgTags API")

    app = FastAPI(
        title="OrgTags API",
        description="Organization tag hierarchy for multi-tenant access control.",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    tag_store = store or build_tag_store(settings)
    app.state.settings = settings
    app.state.tag_store = tag_store
    app.state.tag_service = build_tag_service(tag_store, settings)
    app.state.tag_resolver = EffectiveTagResolver(tag_store)

    # =========================================================================
    # Middleware
    # =========================================================================

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all requests."""
        request_id = getattr(request.state, "request_id", "unknown")
        logger.info(f"[{request_id}] {request.method} {request.url.path}")

        response = await call_next(request)

        logger.info(f"[{request_id}] {request.method} {request.url.path} -> {response.status_code}")

        return response

    # Registered last so it runs first and sets the id for log_requests.
    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        """Add request ID to all requests."""
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        return response

    # =========================================================================
    # Exception Handlers
    # =========================================================================

    @app.exception_handler(OrgTagsException)
    async def orgtags_exception_handler(request: Request, exc: OrgTagsException):
        """Handle OrgTags custom exceptions."""
        logger.warning(f"OrgTagsException: {exc.code} - {exc.message}")
        return _error_response(request, exc.status_code, exc.code, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Malformed request bodies are caller errors, reported like any other validation failure."""
        errors = [
            {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
            for err in exc.errors()
        ]
        return _error_response(request, 400, "VALIDATION_ERROR", "Invalid request parameters", {"errors": errors})

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        logger.error(f"Unhandled exception on {request.url.path}")
        logger.error(f"Exception type: {type(exc).__name__}")
        logger.error(f"Traceback:\n{traceback.format_exc()}")

        message = str(exc) if settings.app_debug else "An unexpected error occurred"
        return _error_response(request, 500, "INTERNAL_ERROR", message)

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get("/health", response_model=HealthResponse, tags=["health"])
    async def health_check():
        """Health check endpoint."""
        return HealthResponse(
            status="healthy",
            version=__version__,
            app_env=settings.app_env,
            is_production=settings.is_production,
            store_backend=app.state.tag_store.name,
        )

    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint redirect to docs."""
        return {"message": "Welcome to OrgTags API", "docs": "/docs"}

    app.include_router(tags_router)
    return app


app = create_app()
