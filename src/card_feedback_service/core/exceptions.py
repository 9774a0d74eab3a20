"""Service exceptions and the handlers that render them."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from card_feedback_service.logging import get_logger

if TYPE_CHECKING:
    from fastapi import FastAPI, Request
    from starlette.types import ExceptionHandler

CARD_ACTION_STATUS_HEADER = "CARD-ACTION-STATUS"


class ServiceError(Exception):
    """Base error carrying an error code, message, HTTP status, and details."""

    def __init__(
        self,
        error: str,
        message: str,
        status_code: int,
        details: dict[str, Any],
    ) -> None:
        super().__init__(message)
        self.error = error
        self.message = message
        self.status_code = status_code
        self.details = details


class MissingCredentialError(ServiceError):
    """No usable bearer token on the request. Rendered as 401 with no body."""

    def __init__(self) -> None:
        super().__init__("MISSING_CREDENTIAL", "Missing or malformed bearer token", 401, {})


class InvalidTokenError(ServiceError):
    """Token rejected by the validator. Rendered as 401 with the message as body."""

    def __init__(self, message: str) -> None:
        super().__init__("INVALID_TOKEN", message, 401, {})


class ForbiddenError(ServiceError):
    """Sender or action performer rejected by policy. Rendered as 403 with a status header."""

    def __init__(self, reason: str) -> None:
        super().__init__("FORBIDDEN", reason, 403, {})


class AggregationError(ServiceError):
    """Aggregate statistics could not be computed."""

    def __init__(self, message: str) -> None:
        super().__init__("AGGREGATION_FAILURE", message, 500, {})


def _envelope(status_code: int, error: str, message: str, details: dict[str, Any]) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "message": message, "details": details},
    )


async def service_error_handler(request: Request, exc: ServiceError) -> Response:
    """Handle ServiceError exceptions."""
    logger = get_logger(__name__)
    logger.warning(
        "Service error",
        extra={
            "error_code": exc.error,
            "status_code": exc.status_code,
            "path": str(request.url.path),
        },
    )
    if isinstance(exc, MissingCredentialError):
        return Response(status_code=exc.status_code)
    if isinstance(exc, InvalidTokenError):
        return PlainTextResponse(exc.message, status_code=exc.status_code)
    if isinstance(exc, ForbiddenError):
        return Response(
            status_code=exc.status_code,
            headers={CARD_ACTION_STATUS_HEADER: exc.message},
        )
    return _envelope(exc.status_code, exc.error, exc.message, exc.details)


async def unhandled_exception_handler(request: Request, _exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger = get_logger(__name__)
    logger.exception("Unhandled exception", extra={"path": str(request.url.path)})
    return _envelope(500, "INTERNAL_ERROR", "An unexpected error occurred", {})


async def http_exception_handler(
    _request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """Handle Starlette HTTP exceptions (e.g., 404 and 405 from the router)."""
    if exc.status_code == 405:
        return _envelope(405, "METHOD_NOT_ALLOWED", "Method not allowed", {})
    if exc.status_code == 404:
        return _envelope(404, "NOT_FOUND", "Resource not found", {})
    return _envelope(exc.status_code, "HTTP_ERROR", str(exc.detail), {})


async def validation_exception_handler(
    _request: Request,
    _exc: RequestValidationError,
) -> JSONResponse:
    """Handle request validation errors with the standard envelope."""
    return _envelope(422, "VALIDATION_ERROR", "Request validation failed", {})


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the app."""
    app.add_exception_handler(ServiceError, cast("ExceptionHandler", service_error_handler))
    app.add_exception_handler(Exception, unhandled_exception_handler)
    app.add_exception_handler(
        StarletteHTTPException,
        cast("ExceptionHandler", http_exception_handler),
    )
    app.add_exception_handler(
        RequestValidationError,
        cast("ExceptionHandler", validation_exception_handler),
    )
