"""FastAPI application for authflow.

create_app() wires one AuthService and one EmailDispatcher into app.state,
starts the expired-token sweep with the lifespan, maps every error type to
the {"error": ...} envelope and mounts the v1 routers.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from authflow.api.v1.router import router as v1_router
from authflow.core.config import settings
from authflow.core.email import EmailDispatcher, ResendEmailDispatcher
from authflow.core.errors import APIError, ErrorKind
from authflow.core.hashing import SecretHasher
from authflow.core.rate_limiting import limiter, rate_limit_exceeded_handler
from authflow.core.responses import ErrorDetail, ErrorResponse
from authflow.services.auth_service import AuthService
from authflow.services.token_sweep_worker import TokenSweepWorker

logger = structlog.get_logger()

# Sent on every response
_BASE_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    # verify-email links carry the raw token in the query string
    "Referrer-Policy": "no-referrer",
    # JSON only, nothing to load or frame
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
}
_HSTS = "max-age=31536000; includeSubDomains"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds the hardening headers above to every response.

    API responses are also marked non-cacheable. HSTS is only sent in
    production, where TLS terminates at the reverse proxy.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        response.headers.update(_BASE_HEADERS)
        if request.url.path.startswith("/api/"):
            response.headers["Cache-Control"] = "no-store, max-age=0"
        if settings.environment == "production":
            response.headers["Strict-Transport-Security"] = _HSTS
        return response


def _error_response(
    kind: ErrorKind, message: str, details: list[dict] | None = None
) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(code=kind.code, message=message, details=details))
    return JSONResponse(status_code=kind.status_code, content=body.model_dump())


def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Render an APIError.

    Operational errors go out as raised. Internal ones are logged with the
    chained cause and answered with the generic INTERNAL_ERROR message.
    """
    if exc.is_operational:
        return _error_response(exc.kind, exc.message, exc.details)

    logger.error(
        "Internal error",
        code=exc.code,
        cause=type(exc.__cause__).__name__ if exc.__cause__ else None,
        path=request.url.path,
    )
    return _error_response(ErrorKind.INTERNAL, ErrorKind.INTERNAL.default_message)


def validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request-body validation failures as 400 VALIDATION_ERROR.

    Only location, message and type are kept; submitted values (passwords
    included) never come back in the response.
    """
    details = [
        {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]}
        for err in exc.errors()
    ]
    return _error_response(ErrorKind.VALIDATION, "Request validation failed", details)


def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler: log the traceback, answer 500 without detail."""
    logger.exception("Unhandled exception", exc_info=exc, path=request.url.path)
    return _error_response(ErrorKind.INTERNAL, ErrorKind.INTERNAL.default_message)


def build_auth_service() -> AuthService:
    """AuthService configured from settings."""
    return AuthService(
        hasher=SecretHasher(rounds=settings.bcrypt_rounds),
        hardened_errors=settings.auth_hardened_errors,
    )


def create_app(
    *,
    service: AuthService | None = None,
    email_dispatcher: EmailDispatcher | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        service: AuthService to use. Defaults to one built from settings.
        email_dispatcher: EmailDispatcher to use. Defaults to Resend.

    Returns:
        Configured FastAPI application instance.
    """
    auth_service = service or build_auth_service()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        worker = TokenSweepWorker(
            app.state.auth_service,
            interval_seconds=settings.token_sweep_interval_seconds,
        )
        if settings.token_sweep_enabled:
            worker.start()
        try:
            yield
        finally:
            await worker.stop()

    app = FastAPI(
        title="Authflow API",
        version="1.0.0",
        description="Registration, email verification, login and password reset",
        lifespan=lifespan,
    )

    app.state.auth_service = auth_service
    app.state.email_dispatcher = email_dispatcher or ResendEmailDispatcher()
    app.state.limiter = limiter

    app.add_middleware(SecurityHeadersMiddleware)
    # CORS added last: it runs first and answers preflights
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Accept"],
    )

    for exc_class, handler in (
        (APIError, api_error_handler),
        (RequestValidationError, validation_error_handler),
        (RateLimitExceeded, rate_limit_exceeded_handler),
        (Exception, internal_error_handler),
    ):
        app.add_exception_handler(exc_class, handler)

    app.include_router(v1_router, prefix="/api/v1")

    @app.get("/health")
    def health_check() -> dict:
        """Liveness probe."""
        return {"status": "healthy"}

    return app


# uvicorn authflow.main:app
app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host="127.0.0.1", port=8000, log_level=settings.log_level.lower())
