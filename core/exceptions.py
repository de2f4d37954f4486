"""
Global exception handlers for the FastAPI application.

Every failure leaves the API in the common envelope
``{"status": "error", "message": ..., "errors": {...}}``.
"""
import re
import traceback
from typing import Dict, List, Optional
from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
from starlette.exceptions import HTTPException
import structlog

logger = structlog.get_logger("exceptions")

FieldErrors = Dict[str, List[str]]

# PostgreSQL SQLSTATE codes raised by the driver on constraint violations
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"

_PG_KEY_DETAIL = re.compile(r"Key \((?P<field>[^)]+)\)=")
_SQLITE_UNIQUE = re.compile(r"UNIQUE constraint failed: (?P<columns>[\w., ]+)")


class APIException(Exception):
    """Base API exception class."""

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "Internal server error",
        errors: Optional[FieldErrors] = None,
        headers: dict = None
    ):
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail
        self.errors = errors
        self.headers = headers or {}


class ValidationException(APIException):
    """Field-level validation failure."""

    def __init__(self, detail: str = "Validation error", errors: Optional[FieldErrors] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            errors=errors
        )


class AuthenticationException(APIException):
    """Missing, invalid or expired credentials."""

    def __init__(self, detail: str = "Authentication required. Please log in."):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"}
        )


class AuthorizationException(APIException):
    """Ownership or visibility violation."""

    def __init__(self, detail: str = "Insufficient permissions"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail
        )


class ResourceNotFoundException(APIException):
    """Resource not found exception."""

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail
        )


class ConflictException(APIException):
    """Duplicate of an existing unique record."""

    def __init__(self, detail: str = "Conflict", errors: Optional[FieldErrors] = None):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            errors=errors
        )


class ServiceUnavailableException(APIException):
    """An upstream dependency is unconfigured or failing."""

    def __init__(self, detail: str = "Service unavailable"):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail
        )


def error_response(
    status_code: int,
    message: str,
    errors: Optional[FieldErrors] = None,
    headers: Optional[dict] = None
) -> JSONResponse:
    """Build the error envelope."""
    content = {"status": "error", "message": message}
    if errors:
        content["errors"] = errors
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def _request_context(request: Request) -> dict:
    return {
        "path": request.url.path,
        "method": request.method,
        "client_host": request.client.host if request.client else None,
    }


def validation_errors_to_fields(errors: list) -> FieldErrors:
    """
    Collapse pydantic error entries into a field -> messages map.

    The leading ``body``/``query``/``path`` location segment is dropped, nested
    locations are joined with dots.
    """
    fields: FieldErrors = {}
    for error in errors:
        loc = [str(part) for part in error.get("loc", ())]
        if loc and loc[0] in ("body", "query", "path", "header", "cookie"):
            loc = loc[1:]
        field = ".".join(loc) or "_schema"
        message = error.get("msg", "Invalid value")
        # pydantic prefixes custom validator messages
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        fields.setdefault(field, []).append(message)
    return fields


def _integrity_error_fields(exc: IntegrityError) -> tuple:
    """Return (kind, field) for a constraint violation, kind is "unique", "foreign_key" or None."""
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    text = str(orig) if orig is not None else str(exc)

    field = None
    match = _PG_KEY_DETAIL.search(text)
    if match:
        field = match.group("field").split(",")[0].strip()

    if code == UNIQUE_VIOLATION:
        return "unique", field
    if code == FOREIGN_KEY_VIOLATION:
        return "foreign_key", field

    sqlite_match = _SQLITE_UNIQUE.search(text)
    if sqlite_match:
        column = sqlite_match.group("columns").split(",")[0].strip()
        return "unique", column.split(".")[-1]
    if "FOREIGN KEY constraint failed" in text:
        return "foreign_key", None
    return None, field


def _db_error_detail(exc: SQLAlchemyError) -> str:
    # The driver message only; str(exc) also carries the SQL and its bound parameters
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else type(exc).__name__


async def api_exception_handler(request: Request, exc: APIException) -> JSONResponse:
    """Handle custom API exceptions."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "API exception occurred",
        exception_type=type(exc).__name__,
        status_code=exc.status_code,
        detail=exc.detail,
        **_request_context(request)
    )
    return error_response(exc.status_code, exc.detail, exc.errors, exc.headers)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle FastAPI and Starlette HTTP exceptions."""
    logger.warning(
        "HTTP exception occurred",
        status_code=exc.status_code,
        detail=exc.detail,
        **_request_context(request)
    )
    return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors."""
    fields = validation_errors_to_fields(exc.errors())
    logger.warning(
        "Validation error occurred",
        fields=list(fields),
        **_request_context(request)
    )
    return error_response(status.HTTP_400_BAD_REQUEST, "Validation error", fields)


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Handle SQLAlchemy database exceptions."""
    if isinstance(exc, IntegrityError):
        kind, field = _integrity_error_fields(exc)
        logger.warning(
            "Database constraint violation",
            constraint=kind,
            field=field,
            **_request_context(request)
        )
        if kind == "unique":
            errors = {field: [f"This {field} is already in use"]} if field else None
            return error_response(
                status.HTTP_409_CONFLICT,
                "A record with this information already exists.",
                errors
            )
        if kind == "foreign_key":
            return error_response(status.HTTP_400_BAD_REQUEST, "Invalid reference to another record.")

    logger.error(
        "Database error occurred",
        exception_type=type(exc).__name__,
        error_detail=_db_error_detail(exc),
        **_request_context(request)
    )
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Database operation failed")


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all other uncaught exceptions."""
    logger.error(
        "Unhandled exception occurred",
        exception_type=type(exc).__name__,
        error_detail=str(exc),
        traceback=traceback.format_exc(),
        **_request_context(request)
    )
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "An unexpected error occurred")


def setup_exception_handlers(app):
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(APIException, api_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
