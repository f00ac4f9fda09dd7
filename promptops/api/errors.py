"""Gestion standardisée des erreurs API avec enveloppes d'erreur.

Ce module fournit une gestion centralisée des erreurs avec des enveloppes standardisées, des codes
d'erreur cohérents, et la traduction des erreurs du domaine en statuts HTTP.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from promptops.domain.errors import (
    ConcurrentUpdateError,
    ConsistencyViolationError,
    DomainError,
    NotFoundError,
    SlugConflictError,
    ValidationError,
    VersionNotFoundError,
)

log = logging.getLogger(__name__)


@dataclass
class ErrorEnvelope:
    """Standard error envelope for API responses."""

    code: str
    message: str
    trace_id: str | None = None
    details: dict[str, Any] | None = None


# Common error codes
class ErrorCodes:
    """Standard error codes for the API."""

    BAD_REQUEST = "BAD_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_FOUND = "NOT_FOUND"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    CONFLICT = "CONFLICT"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    # Business logic errors
    VERSION_NOT_FOUND = "VERSION_NOT_FOUND"
    SLUG_CONFLICT = "SLUG_CONFLICT"
    CONCURRENT_UPDATE = "CONCURRENT_UPDATE"
    CONSISTENCY_VIOLATION = "CONSISTENCY_VIOLATION"


# Ordre significatif: sous-classes avant classes parentes
_DOMAIN_STATUS: list[tuple[type[DomainError], int, str]] = [
    (NotFoundError, 404, ErrorCodes.NOT_FOUND),
    (VersionNotFoundError, 404, ErrorCodes.VERSION_NOT_FOUND),
    (SlugConflictError, 409, ErrorCodes.SLUG_CONFLICT),
    (ConcurrentUpdateError, 409, ErrorCodes.CONCURRENT_UPDATE),
    (ConsistencyViolationError, 500, ErrorCodes.CONSISTENCY_VIOLATION),
    (ValidationError, 400, ErrorCodes.BAD_REQUEST),
]

_HTTP_CODES = {
    400: ErrorCodes.BAD_REQUEST,
    401: ErrorCodes.UNAUTHORIZED,
    404: ErrorCodes.NOT_FOUND,
    405: ErrorCodes.METHOD_NOT_ALLOWED,
    409: ErrorCodes.CONFLICT,
    422: ErrorCodes.VALIDATION_ERROR,
    500: ErrorCodes.INTERNAL_ERROR,
}


def create_error_response(
    status_code: int,
    code: str,
    message: str,
    trace_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Create a standardized error response."""
    envelope = ErrorEnvelope(
        code=code,
        message=message,
        trace_id=trace_id,
        details=details,
    )

    return JSONResponse(
        status_code=status_code,
        content={
            "code": envelope.code,
            "message": envelope.message,
            "trace_id": envelope.trace_id,
            **({"details": envelope.details} if envelope.details else {}),
        },
    )


def extract_trace_id(request: Request) -> str | None:
    """Extract trace ID from request headers or request state."""
    trace_id = request.headers.get("X-Trace-ID")
    if trace_id:
        return trace_id
    return getattr(request.state, "request_id", None)


def domain_status(exc: DomainError) -> tuple[int, str]:
    """Statut HTTP et code d'erreur pour une erreur du domaine."""
    for kind, status, code in _DOMAIN_STATUS:
        if isinstance(exc, kind):
            return status, code
    return 500, ErrorCodes.INTERNAL_ERROR


def handle_domain_error(request: Request, exc: DomainError) -> JSONResponse:
    """Translate a domain error into the standard envelope."""
    trace_id = extract_trace_id(request)
    status_code, code = domain_status(exc)
    level = logging.ERROR if status_code >= 500 else logging.INFO  # noqa: PLR2004
    log.log(
        level,
        "Domain error occurred",
        extra={
            "code": code,
            "error_message": exc.message,
            "status_code": status_code,
            "trace_id": trace_id,
        },
    )
    return create_error_response(status_code, code, exc.message, trace_id)


def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle FastAPI/Starlette HTTPException with standard envelope."""
    trace_id = extract_trace_id(request)
    code = _HTTP_CODES.get(exc.status_code, "HTTP_ERROR")

    log.warning(
        "HTTP exception occurred",
        extra={
            "code": code,
            "error_message": str(exc.detail),
            "status_code": exc.status_code,
            "trace_id": trace_id,
        },
    )

    return create_error_response(
        status_code=exc.status_code,
        code=code,
        message=str(exc.detail),
        trace_id=trace_id,
    )


def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle body/query validation failures (422) with standard envelope."""
    return create_error_response(
        status_code=422,
        code=ErrorCodes.VALIDATION_ERROR,
        message="Request validation failed",
        trace_id=extract_trace_id(request),
        details={"errors": [{"loc": list(e["loc"]), "msg": e["msg"]} for e in exc.errors()]},
    )


def handle_generic_exception(request: Request, exc: Exception) -> JSONResponse:
    """Handle generic exceptions with standard envelope."""
    trace_id = extract_trace_id(request)

    log.error(
        "Unexpected error occurred",
        extra={
            "code": ErrorCodes.INTERNAL_ERROR,
            "trace_id": trace_id,
            "exception_type": type(exc).__name__,
            "exception_message": str(exc),
        },
        exc_info=True,
    )

    return create_error_response(
        status_code=500,
        code=ErrorCodes.INTERNAL_ERROR,
        message="An unexpected error occurred",
        trace_id=trace_id,
    )


def unauthorized(message: str) -> HTTPException:
    """Create a 401 Unauthorized error."""
    return HTTPException(status_code=401, detail=message)


def register_error_handlers(app: FastAPI) -> None:
    """Installe les handlers d'erreurs sur l'application."""
    app.add_exception_handler(DomainError, handle_domain_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(Exception, handle_generic_exception)
