"""
Error envelopes and message sanitization.

Every error leaves the service in one envelope:
``{"error": {"code", "message", "path", "method", "details"?}}``.
Stack traces and internal identifiers never reach the caller.
"""

import logging
import re
import traceback
from typing import Any, Callable, NamedTuple

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.exceptions import AppError

logger = logging.getLogger(__name__)

# key=value style credentials and email addresses
_SECRET_ASSIGNMENT = re.compile(
    r'(?:password|token|api[_-]?key|secret)["\s:=]+[^"\s,}]+'
    r'|authorization["\s:]+[^"\s,}]+',
    re.IGNORECASE,
)
_EMAIL = re.compile(r"\b[\w.%+-]+@[\w.-]+\.[A-Za-z]{2,}\b")


class _Mapped(NamedTuple):
    status_code: int
    code: str
    message: str


# First match wins, so subclasses precede their bases.
_INFRASTRUCTURE_ERRORS: list[tuple[type, _Mapped]] = [
    (IntegrityError, _Mapped(status.HTTP_409_CONFLICT, "INTEGRITY_ERROR", "Database integrity constraint violated")),
    (OperationalError, _Mapped(status.HTTP_503_SERVICE_UNAVAILABLE, "DATABASE_ERROR", "Database service temporarily unavailable")),
    (SQLAlchemyError, _Mapped(status.HTTP_500_INTERNAL_SERVER_ERROR, "DATABASE_ERROR", "A database error occurred")),
    (RedisError, _Mapped(status.HTTP_503_SERVICE_UNAVAILABLE, "CACHE_ERROR", "Cache service temporarily unavailable")),
    (TimeoutError, _Mapped(status.HTTP_504_GATEWAY_TIMEOUT, "TIMEOUT", "The request timed out")),
]

_DATABASE_UNAVAILABLE = _INFRASTRUCTURE_ERRORS[1][1]
_UNEXPECTED = _Mapped(status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_SERVER_ERROR", "An unexpected error occurred")


def sanitize_error_message(message: Any) -> str:
    """Redact credential assignments and email addresses from ``message``."""
    return _EMAIL.sub("[REDACTED]", _SECRET_ASSIGNMENT.sub("[REDACTED]", str(message)))


def get_safe_error_details(exc: Exception, include_traceback: bool = False) -> dict[str, Any]:
    details = {"type": type(exc).__name__, "message": sanitize_error_message(exc)}
    if include_traceback:
        details["traceback"] = traceback.format_exc()
    return details


def build_error_body(code: str, message: str, path: str, method: str, details: Any = None) -> dict[str, Any]:
    error: dict[str, Any] = {"code": code, "message": message, "path": path, "method": method}
    if details is not None:
        error["details"] = details
    return {"error": error}


def format_validation_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    """Pydantic errors as ``{field, message, type}`` with dotted field paths."""
    formatted = []
    for error in exc.errors():
        formatted.append(
            {
                "field": ".".join(str(part) for part in error["loc"]),
                "message": sanitize_error_message(error["msg"]),
                "type": error["type"],
            }
        )
    return formatted


def _error_response(status_code: int, code: str, message: str, path: str, method: str, details: Any = None, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=build_error_body(code, message, path, method, details),
        headers=headers,
    )


def app_error_response(exc: AppError, path: str, method: str) -> JSONResponse:
    return _error_response(
        exc.status_code, exc.code, exc.message, path, method, exc.details, getattr(exc, "headers", None)
    )


def http_exception_response(exc: StarletteHTTPException, path: str, method: str) -> JSONResponse:
    return _error_response(
        exc.status_code,
        "HTTP_EXCEPTION",
        sanitize_error_message(exc.detail),
        path,
        method,
        headers=getattr(exc, "headers", None),
    )


def validation_error_response(exc: RequestValidationError, path: str, method: str) -> JSONResponse:
    return _error_response(
        422,
        "VALIDATION_ERROR",
        "Request validation failed",
        path,
        method,
        format_validation_errors(exc),
    )


class ErrorHandlingMiddleware:
    """
    Outermost error boundary.

    Anything the FastAPI exception handlers did not turn into a response is
    mapped here. With ``debug`` set, 5xx envelopes carry the sanitized
    exception type, message and traceback.
    """

    def __init__(self, app: Callable, debug: bool = False):
        self.app = app
        self.debug = debug

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        try:
            await self.app(scope, receive, send)
        except Exception as exc:
            response = self._handle_exception(exc, scope.get("path", "unknown"), scope.get("method", "unknown"))
            await response(scope, receive, send)

    def _handle_exception(self, exc: Exception, path: str, method: str) -> JSONResponse:
        if isinstance(exc, AppError):
            return app_error_response(exc, path, method)
        if isinstance(exc, StarletteHTTPException):
            logger.warning("HTTP %s on %s %s", exc.status_code, method, path)
            return http_exception_response(exc, path, method)
        if isinstance(exc, RequestValidationError):
            logger.warning("Validation failed on %s %s", method, path)
            return validation_error_response(exc, path, method)

        mapped = _UNEXPECTED
        for exc_type, candidate in _INFRASTRUCTURE_ERRORS:
            if isinstance(exc, exc_type):
                mapped = candidate
                break

        if isinstance(exc, TimeoutError):
            logger.error("Timed out serving %s %s", method, path)
        else:
            logger.error(
                "%s while serving %s %s: %s",
                type(exc).__name__,
                method,
                path,
                sanitize_error_message(exc),
                exc_info=True,
            )

        details = None
        if self.debug and mapped.status_code >= 500:
            details = get_safe_error_details(exc, include_traceback=True)
        return _error_response(mapped.status_code, mapped.code, mapped.message, path, method, details)


def setup_error_handlers(app) -> None:
    """Register the envelope-producing exception handlers on ``app``."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
        else:
            logger.info("%s on %s %s", exc.code, request.method, request.url.path)
        return app_error_response(exc, request.url.path, request.method)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return http_exception_response(exc, request.url.path, request.method)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return validation_error_response(exc, request.url.path, request.method)

    @app.exception_handler(OperationalError)
    async def database_unavailable_handler(request: Request, exc: OperationalError):
        logger.error("Database unavailable on %s %s", request.method, request.url.path, exc_info=True)
        mapped = _DATABASE_UNAVAILABLE
        return _error_response(mapped.status_code, mapped.code, mapped.message, request.url.path, request.method)
