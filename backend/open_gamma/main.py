"""FastAPI application entry point.

This module creates and configures the FastAPI application, including:
- Security headers and CORS middleware
- Exception handlers rendering the standard error envelope
- Long-lived components on ``app.state`` (codec, limiters, providers,
  database session factory)
- API v1 router mounting
- Health check endpoint

Run with: uvicorn open_gamma.main:create_app --factory
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from open_gamma.api.v1.router import router as v1_router
from open_gamma.core.account_linking import LinkingService
from open_gamma.core.auth_state import AuthStateCodec, ConsumedStateRegistry
from open_gamma.core.chat_rate_limit import SlidingWindowRateLimiter
from open_gamma.core.config import Settings, load_settings
from open_gamma.core.database import create_engine_from_settings, create_session_factory
from open_gamma.core.errors import APIError, InternalError
from open_gamma.core.rate_limiting import limiter, rate_limit_exceeded_handler
from open_gamma.core.responses import ErrorDetail, ErrorResponse, error_response
from open_gamma.providers.linking.composio import ComposioLinkingProvider
from open_gamma.providers.llm.registry import ChatModelRegistry
from open_gamma.services.chat_service import ChatService

logger = structlog.get_logger()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses.

    Headers added:
    - X-Frame-Options, Content-Security-Policy frame-ancestors: clickjacking
    - X-Content-Type-Options: MIME sniffing
    - Referrer-Policy: referrer leakage
    - Cache-Control: no caching of API responses
    - Strict-Transport-Security: production only
    """

    def __init__(self, app: ASGIApp, *, hsts: bool = False) -> None:
        super().__init__(app)
        self.hsts = hsts

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = (
            "default-src 'none'; frame-ancestors 'none'"
        )

        # API responses carry session-scoped data
        if request.url.path.startswith("/api/"):
            response.headers["Cache-Control"] = "no-store, max-age=0"

        # HTTPS is terminated by the reverse proxy in production
        if self.hsts:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        return response


def api_error_handler(_request: Request, exc: APIError) -> JSONResponse:
    """Render APIError subclasses with the standard error envelope."""
    return error_response(exc)


def validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Convert FastAPI's request validation errors to a 400 envelope.

    Args:
        request: The incoming request.
        exc: The RequestValidationError from Pydantic.

    Returns:
        JSONResponse with VALIDATION_ERROR code and field-level details.
    """
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            error=ErrorDetail(
                code="VALIDATION_ERROR",
                message="Request validation failed",
                details=[
                    {"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]}
                    for e in exc.errors()
                ],
            )
        ).model_dump(),
    )


def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions.

    Returns 500 INTERNAL_ERROR without exposing stack traces; the exception
    is logged server-side.
    """
    logger.exception("Unhandled exception", exc_info=exc, path=str(request.url.path))
    return error_response(InternalError())


def configure_logging(settings: Settings) -> None:
    """Apply LOG_LEVEL to stdlib logging and structlog."""
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level)
    logging.getLogger().setLevel(level)
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Dispose of the database engine on shutdown."""
    yield
    await app.state.engine.dispose()


def _init_state(app: FastAPI, settings: Settings) -> None:
    """Build long-lived components and attach them to ``app.state``."""
    codec = AuthStateCodec(
        settings.auth_secret.get_secret_value(),
        ttl_seconds=settings.auth_state_ttl_seconds,
    )
    linking_provider = ComposioLinkingProvider(
        settings.composio_api_key.get_secret_value(),
        base_url=settings.composio_base_url,
    )
    engine = create_engine_from_settings(settings)

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.linking_service = LinkingService(
        codec=codec,
        provider=linking_provider,
        consumed=ConsumedStateRegistry(),
        auth_config_id=settings.auth_config_id,
        callback_url=settings.callback_url,
    )
    app.state.chat_rate_limiter = SlidingWindowRateLimiter(
        max_requests=settings.chat_rate_limit_max_requests,
        window_seconds=settings.chat_rate_limit_window_seconds,
    )
    app.state.chat_service = ChatService(ChatModelRegistry.from_settings(settings))


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings. Loaded from the environment when
            omitted.

    Returns:
        Configured FastAPI application instance.

    Raises:
        ConfigurationError: If required configuration is missing or
            malformed.
    """
    if settings is None:
        settings = load_settings()

    configure_logging(settings)

    app = FastAPI(
        title="Open Gamma API",
        version="1.0.0",
        description="Slide presentation assistant backed by linked accounts",
        lifespan=lifespan,
    )

    # Middleware order: Starlette uses LIFO, so the LAST added runs FIRST.
    # CORS must run first to handle preflight requests, so add it last.
    app.add_middleware(
        SecurityHeadersMiddleware,
        hsts=settings.environment == "production",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Accept"],
    )

    # Order matters: specific handlers first, then catch-all
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, internal_error_handler)

    limiter.enabled = settings.rate_limit_enabled
    app.state.limiter = limiter
    _init_state(app, settings)

    app.include_router(v1_router, prefix="/api/v1")

    # Health check endpoint (outside versioned API)
    @app.get("/health")
    def health_check() -> dict:
        """Liveness probe.

        Returns:
            {"status": "healthy"} if service is running.
        """
        return {"status": "healthy"}

    logger.info(
        "app_created",
        environment=settings.environment,
        chat_providers=sorted(app.state.chat_service.registry.configured),
    )
    return app
