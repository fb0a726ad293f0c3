"""Global exception handlers that map domain exceptions to HTTP responses.

Every error body has the same shape: ``{"detail": ..., "code": ...}``.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from app.errors import (
    DUPLICATE_RESOURCE,
    INTERNAL_ERROR,
    NOT_FOUND,
    UNAUTHORIZED,
    VALIDATION_ERROR,
    DomainError,
    DomainValidationError,
    DuplicateResourceError,
    NotFoundError,
    UnauthorizedError,
)
from app.schemas.error import ErrorResponse

logger = logging.getLogger(__name__)

# Domain exception -> (HTTP status, default code)
DOMAIN_ERROR_STATUS: dict[type[DomainError], tuple[int, str]] = {
    DomainValidationError: (status.HTTP_400_BAD_REQUEST, VALIDATION_ERROR),
    UnauthorizedError: (status.HTTP_401_UNAUTHORIZED, UNAUTHORIZED),
    NotFoundError: (status.HTTP_404_NOT_FOUND, NOT_FOUND),
    DuplicateResourceError: (status.HTTP_409_CONFLICT, DUPLICATE_RESOURCE),
}

HTTP_STATUS_CODES = {
    status.HTTP_401_UNAUTHORIZED: UNAUTHORIZED,
    status.HTTP_404_NOT_FOUND: NOT_FOUND,
}


def _error_response(
    status_code: int, detail: str, code: str, headers: dict[str, str] | None = None
) -> JSONResponse:
    """Return a standardized error response with detail and machine-readable code."""
    body = ErrorResponse(detail=detail, code=code)
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


def domain_error_handler(_request: Request, exc: DomainError) -> JSONResponse:
    status_code, code = next(
        DOMAIN_ERROR_STATUS[cls] for cls in type(exc).__mro__ if cls in DOMAIN_ERROR_STATUS
    )
    # UnauthorizedError may carry a more specific code (EMAIL_NOT_VERIFIED)
    code = getattr(exc, "code", code)
    return _error_response(status_code, str(exc), code)


def http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    return _error_response(
        exc.status_code,
        str(exc.detail),
        HTTP_STATUS_CODES.get(exc.status_code, "HTTP_ERROR"),
        headers=exc.headers,
    )


def request_validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report the first schema violation as a 400, like domain validation errors."""
    errors = exc.errors()
    if not errors:
        return _error_response(status.HTTP_400_BAD_REQUEST, "Invalid request", VALIDATION_ERROR)
    first = errors[0]
    # Custom validators surface as "Value error, <message>"
    message = str(first.get("msg", "Invalid request")).removeprefix("Value error, ")
    loc = [str(part) for part in first.get("loc", ()) if part != "body"]
    if loc:
        message = f"{loc[-1]}: {message}"
    return _error_response(status.HTTP_400_BAD_REQUEST, message, VALIDATION_ERROR)


def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        INTERNAL_ERROR,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register domain, request validation, HTTP and catch-all exception handlers on the FastAPI app."""
    for exc_class in DOMAIN_ERROR_STATUS:
        app.add_exception_handler(exc_class, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, internal_error_handler)
