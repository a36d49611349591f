"""FastAPI routes and API modules for SafeReport.

Provides common response models, error handlers, and the mapping from
report errors onto HTTP responses.
"""

from typing import Any

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..reports.errors import (
    NoSubjectError,
    ReportError,
    ReporterNotFoundError,
    ReportNotFoundError,
    ReportValidationError,
)


# =========================
# Response Models
# =========================


class ErrorDetail(BaseModel):
    """Detailed error information."""

    code: str
    message: str
    field: str | None = None
    details: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    success: bool = False
    error: str
    error_code: str
    details: list[ErrorDetail] | None = None


# =========================
# Exception Classes
# =========================


class APIError(HTTPException):
    """Base API error with structured response."""

    def __init__(
        self,
        status_code: int,
        error_code: str,
        message: str,
        details: list[ErrorDetail] | None = None,
    ):
        self.error_code = error_code
        self.message = message
        self.details = details
        super().__init__(status_code=status_code, detail=message)


class RateLimitError(APIError):
    """Rate limit exceeded error."""

    def __init__(self, retry_after: int = 60):
        super().__init__(
            status_code=429,
            error_code="RATE_LIMIT_EXCEEDED",
            message=f"Rate limit exceeded. Retry after {retry_after} seconds.",
        )
        self.retry_after = retry_after


def report_error_to_api_error(exc: ReportError) -> APIError:
    """Translate a report error into its HTTP form.

    Storage and scheduling faults are internal; their messages are not
    passed to the client.
    """
    if isinstance(exc, ReportValidationError):
        status_code = 400
        details = [
            ErrorDetail(code=exc.error_code, message=f.message, field=f.field)
            for f in exc.fields
        ] or None
        return APIError(status_code, exc.error_code, exc.message, details)
    if isinstance(exc, (ReporterNotFoundError, ReportNotFoundError)):
        return APIError(404, exc.error_code, exc.message)
    if isinstance(exc, NoSubjectError):
        return APIError(422, exc.error_code, exc.message)

    from safereport.logging import get_logger

    get_logger(__name__).error(f"Report operation failed: {exc}", exc_info=exc)
    return APIError(500, "INTERNAL_ERROR", "An unexpected error occurred")


# =========================
# Exception Handlers
# =========================


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handle APIError exceptions."""
    headers = {"X-Error-Code": exc.error_code}
    if isinstance(exc, RateLimitError):
        headers["Retry-After"] = str(exc.retry_after)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=exc.message,
            error_code=exc.error_code,
            details=exc.details,
        ).model_dump(),
        headers=headers,
    )


async def report_error_handler(request: Request, exc: ReportError) -> JSONResponse:
    """Handle report errors that escaped a route."""
    return await api_error_handler(request, report_error_to_api_error(exc))


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render body/path validation failures in the standard envelope."""
    details = [
        ErrorDetail(
            code="VALIDATION_ERROR",
            message=err.get("msg", "Invalid value"),
            field=".".join(str(p) for p in err.get("loc", ()) if p != "body") or None,
        )
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            error="Invalid request",
            error_code="VALIDATION_ERROR",
            details=details,
        ).model_dump(),
        headers={"X-Error-Code": "VALIDATION_ERROR"},
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle generic HTTPException."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=str(exc.detail),
            error_code="HTTP_ERROR",
        ).model_dump(),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    from safereport.logging import get_logger

    logger = get_logger(__name__)
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="An unexpected error occurred",
            error_code="INTERNAL_ERROR",
        ).model_dump(),
    )


def register_exception_handlers(app):
    """Register exception handlers with the FastAPI app."""
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(ReportError, report_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)


__all__ = [
    "APIError",
    "ErrorDetail",
    "ErrorResponse",
    "RateLimitError",
    "register_exception_handlers",
    "report_error_to_api_error",
]
