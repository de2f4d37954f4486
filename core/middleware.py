"""
HTTP middleware: security headers, request logging and body size limits.
"""
import time
import uuid
from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
import structlog

from core.exceptions import error_response

logger = structlog.get_logger("access")


def _client_host(request: Request) -> str:
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to all responses."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        response.headers["Cross-Origin-Opener-Policy"] = "same-origin-allow-popups"
        # No Content-Security-Policy: the API serves JSON and the interactive docs

        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log all incoming requests and responses."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.time()

        logger.info(
            "Request started",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            client_host=_client_host(request),
            user_agent=request.headers.get("User-Agent", "unknown")
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                request_id=request_id,
                exception=str(e),
                process_time_ms=round((time.time() - start_time) * 1000, 2)
            )
            raise

        process_time_ms = round((time.time() - start_time) * 1000, 2)
        user = getattr(request.state, "user", None)
        logger.info(
            "Request completed",
            request_id=request_id,
            status_code=response.status_code,
            user_id=user.id if user else None,
            process_time_ms=process_time_ms
        )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(process_time_ms)
        return response


class RequestSizeMiddleware(BaseHTTPMiddleware):
    """Middleware to reject request bodies above a size limit."""

    def __init__(self, app, max_size: int = 5 * 1024 * 1024):
        super().__init__(app)
        self.max_size = max_size

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        content_length = request.headers.get("Content-Length")
        if content_length and content_length.isdigit() and int(content_length) > self.max_size:
            logger.warning(
                "Request body too large",
                content_length=int(content_length),
                max_size=self.max_size,
                client_host=_client_host(request)
            )
            # Exceptions raised here would bypass the app's exception handlers
            return error_response(
                status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                f"Request body too large. Maximum size: {self.max_size} bytes"
            )

        return await call_next(request)


def setup_middleware(app, config: dict = None):
    """Setup all HTTP middleware for the application."""
    config = config or {}

    # Last added runs first
    if config.get("enable_size_limit", True):
        app.add_middleware(RequestSizeMiddleware, max_size=config.get("max_request_size", 5 * 1024 * 1024))

    if config.get("enable_request_logging", True):
        app.add_middleware(RequestLoggingMiddleware)

    if config.get("enable_security_headers", True):
        app.add_middleware(SecurityHeadersMiddleware)
