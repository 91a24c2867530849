"""Custom exceptions and FastAPI exception handlers.

Implements RFC 7807 Problem Details for machine-readable error responses.
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from app.core.logging import get_logger
from app.core.problem_details import (
    ERROR_TYPES,
    ProblemDetailResponse,
    problem_response,
)

logger = get_logger(__name__)


# =============================================================================
# Exception Classes
# =============================================================================


class DemandSignalError(Exception):
    """Base exception for DemandSignal application errors.

    Each exception type maps to an RFC 7807 problem type URI.
    """

    error_type_uri: str = ERROR_TYPES["INTERNAL_ERROR"]

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize application error.

        Args:
            message: Human-readable error message.
            code: Machine-readable error code.
            status_code: HTTP status code.
            details: Additional error context.
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}

    @property
    def title(self) -> str:
        """RFC 7807 title - short summary of problem type."""
        return self.code.replace("_", " ").title()

    def problem_extensions(self) -> dict[str, Any]:
        """Extra members to expose in the problem body. Empty by default."""
        return {}


class AccessDeniedError(DemandSignalError):
    """The caller does not own the requested tenant.

    Raised before any tenant data is read, so the core never computes
    anything for a tenant the caller should not see.
    """

    error_type_uri: str = ERROR_TYPES["ACCESS_DENIED"]

    def __init__(
        self,
        message: str = "Access denied or business not found",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, code="ACCESS_DENIED", status_code=403, details=details)


class InvalidDateInputError(DemandSignalError):
    """A date parameter could not be parsed or is out of range."""

    error_type_uri: str = ERROR_TYPES["INVALID_DATE_INPUT"]

    def __init__(
        self,
        message: str = "Invalid date input",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code="INVALID_DATE_INPUT",
            status_code=400,
            details=details,
        )


class CompletionParseError(DemandSignalError):
    """The completion service answered, but not with the expected JSON shape.

    Carries the raw response text for diagnostics. Never retried.
    """

    error_type_uri: str = ERROR_TYPES["COMPLETION_PARSE_FAILURE"]

    def __init__(
        self,
        raw: str,
        message: str = "AI response parsing failed",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code="COMPLETION_PARSE_FAILURE",
            status_code=502,
            details=details,
        )
        self.raw = raw

    def problem_extensions(self) -> dict[str, Any]:
        """Expose the raw completion text to the caller."""
        return {"raw": self.raw}


class CompletionServiceError(DemandSignalError):
    """The completion service could not be reached or rejected the call."""

    error_type_uri: str = ERROR_TYPES["COMPLETION_SERVICE_ERROR"]

    def __init__(
        self,
        message: str = "AI forecasting failed",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code="COMPLETION_SERVICE_ERROR",
            status_code=502,
            details=details,
        )


class DatabaseError(DemandSignalError):
    """Database operation error."""

    error_type_uri: str = ERROR_TYPES["DATABASE_ERROR"]

    def __init__(
        self,
        message: str = "Database operation failed",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, code="DATABASE_ERROR", status_code=500, details=details)


# =============================================================================
# Exception Handlers (RFC 7807)
# =============================================================================


async def demandsignal_exception_handler(
    _request: Request,
    exc: DemandSignalError,
) -> ProblemDetailResponse:
    """Handle DemandSignalError exceptions with RFC 7807 Problem Details.

    Args:
        _request: FastAPI request object.
        exc: The raised exception.

    Returns:
        RFC 7807 Problem Detail response.
    """
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "app.error_handled",
        error=exc.message,
        error_type=type(exc).__name__,
        error_code=exc.code,
        status_code=exc.status_code,
        details=exc.details,
    )

    return problem_response(
        status=exc.status_code,
        title=exc.title,
        detail=exc.message,
        error_code=exc.code,
        extensions=exc.problem_extensions(),
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> ProblemDetailResponse:
    """Handle Pydantic validation errors with RFC 7807 Problem Details.

    Args:
        request: FastAPI request object.
        exc: Pydantic validation error.

    Returns:
        RFC 7807 Problem Detail response with field-level errors.
    """
    field_errors: list[dict[str, str]] = []
    for error in exc.errors():
        loc = error.get("loc", [])
        field_path = ".".join(str(part) for part in loc if part != "body")
        field_errors.append(
            {
                "field": field_path,
                "message": str(error.get("msg", "Validation failed")),
                "type": str(error.get("type", "unknown")),
            }
        )

    logger.warning(
        "app.validation_error",
        error_count=len(field_errors),
        path=str(request.url.path),
        fields=[e["field"] for e in field_errors],
    )

    return problem_response(
        status=422,
        title="Validation Error",
        detail=f"Request validation failed with {len(field_errors)} error(s). "
        "Check the 'errors' field for details.",
        error_code="VALIDATION_ERROR",
        errors=field_errors,
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> ProblemDetailResponse:
    """Handle unexpected exceptions with RFC 7807 Problem Details."""
    logger.error(
        "app.unhandled_error",
        error=str(exc),
        error_type=type(exc).__name__,
        path=str(request.url.path),
        exc_info=True,
    )

    return problem_response(
        status=500,
        title="Internal Server Error",
        detail="An unexpected error occurred. Please try again later or "
        "contact support with the request_id.",
        error_code="INTERNAL_ERROR",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance.
    """
    app.add_exception_handler(DemandSignalError, demandsignal_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)
