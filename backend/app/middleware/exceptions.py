"""Application exceptions and the handlers that turn them into envelopes.

Every error leaves the API in the same shape as a success response:

    {
        "success": false,
        "message": "Human-readable message",
        "code": "ERROR_CODE",
        "errors": [...],          // field-level messages, when any
        "timestamp": "2024-01-01T00:00:00+00:00",
        "stack": "..."            // outside production only
    }
"""

import logging
import traceback
from datetime import datetime, timezone

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings

logger = logging.getLogger(__name__)


class TaxDeskError(Exception):
    """Base exception for application errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
        errors: list[str] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.errors = errors or []
        super().__init__(self.message)


class ValidationFailedError(TaxDeskError):
    """Malformed or missing input. Carries every failing field message."""

    def __init__(self, message: str = "Validation failed", errors: list[str] | None = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="VALIDATION_ERROR",
            errors=errors,
        )


class AuthenticationError(TaxDeskError):
    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code="UNAUTHORIZED",
        )


class AccessDeniedError(TaxDeskError):
    """Actor is not permitted to perform the operation."""

    def __init__(self, message: str = "Access denied"):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="ACCESS_DENIED",
        )


class ForbiddenTransitionError(TaxDeskError):
    """Onboarding step is not reachable yet."""

    def __init__(self, message: str = "Complete previous steps first"):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="FORBIDDEN_TRANSITION",
        )


class ResourceNotFoundError(TaxDeskError):
    def __init__(self, resource: str):
        super().__init__(
            message=f"{resource} not found",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="NOT_FOUND",
        )


class ConflictError(TaxDeskError):
    """Duplicate of a unique-keyed resource."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_code="CONFLICT",
        )


class GatewayError(TaxDeskError):
    """Payment gateway call failed."""

    def __init__(self, message: str = "Payment gateway error"):
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="GATEWAY_ERROR",
        )


def create_error_response(
    status_code: int,
    message: str,
    error_code: str = "ERROR",
    errors: list | None = None,
    exc: BaseException | None = None,
) -> JSONResponse:
    """Build the failure envelope."""
    content = {
        "success": False,
        "message": message,
        "code": error_code,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if errors:
        content["errors"] = errors
    if exc is not None and not settings.is_production:
        content["stack"] = "".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        )

    return JSONResponse(status_code=status_code, content=content)


def _context(request: Request) -> dict:
    user = getattr(request.state, "user_id", None)
    return {
        "path": request.url.path,
        "method": request.method,
        "user_id": user,
    }


async def taxdesk_exception_handler(
    request: Request,
    exc: TaxDeskError,
) -> JSONResponse:
    """Handle application exceptions."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}",
        extra={"error_code": exc.error_code, **_context(request)},
    )

    return create_error_response(
        status_code=exc.status_code,
        message=exc.message,
        error_code=exc.error_code,
        errors=exc.errors,
        exc=exc if exc.status_code >= 500 else None,
    )


async def http_exception_handler(
    request: Request,
    exc: HTTPException | StarletteHTTPException,
) -> JSONResponse:
    """Handle FastAPI/Starlette HTTP exceptions (auth failures, 404 routes)."""
    if exc.status_code >= 500:
        logger.error(f"HTTP {exc.status_code}: {exc.detail}", extra=_context(request))

    response = create_error_response(
        status_code=exc.status_code,
        message=str(exc.detail),
        error_code=f"HTTP_{exc.status_code}",
    )
    if getattr(exc, "headers", None):
        response.headers.update(exc.headers)
    return response


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError | ValidationError,
) -> JSONResponse:
    """Report every failing request field at once."""
    logger.warning(
        f"Validation error on {request.url.path}",
        extra={**_context(request), "errors": exc.errors()},
    )

    errors = []
    for error in exc.errors():
        loc = [str(part) for part in error["loc"] if part not in ("body", "query", "path")]
        field = ".".join(loc)
        errors.append(f"{field}: {error['msg']}" if field else error["msg"])

    return create_error_response(
        status_code=status.HTTP_400_BAD_REQUEST,
        message="Validation failed",
        error_code="VALIDATION_ERROR",
        errors=errors,
    )


async def database_exception_handler(
    request: Request,
    exc: IntegrityError,
) -> JSONResponse:
    """Handle database integrity errors (unique violations, foreign keys)."""
    logger.error(
        f"Database integrity error on {request.url.path}: {exc}",
        extra=_context(request),
    )

    error_msg = str(exc.orig) if hasattr(exc, "orig") else str(exc)

    if "unique" in error_msg.lower() or "duplicate" in error_msg.lower():
        return create_error_response(
            status_code=status.HTTP_409_CONFLICT,
            message="A record with this value already exists",
            error_code="DUPLICATE_RESOURCE",
        )
    if "foreign key" in error_msg.lower():
        message = "Referenced record does not exist"
    elif "not null" in error_msg.lower():
        message = "Required field is missing"
    else:
        message = "Database constraint violation"

    return create_error_response(
        status_code=status.HTTP_400_BAD_REQUEST,
        message=message,
        error_code="INTEGRITY_ERROR",
    )


async def operational_exception_handler(
    request: Request,
    exc: OperationalError,
) -> JSONResponse:
    """Handle database connectivity errors."""
    logger.error(
        f"Database operational error on {request.url.path}: {exc}",
        extra=_context(request),
    )

    return create_error_response(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        message="Database temporarily unavailable. Please try again.",
        error_code="DATABASE_UNAVAILABLE",
    )


async def general_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle everything else as an internal error."""
    logger.error(
        f"Unhandled exception on {request.url.path}: {exc}",
        extra=_context(request),
        exc_info=True,
    )

    return create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message="An unexpected error occurred. Please try again later.",
        error_code="INTERNAL_ERROR",
        exc=exc,
    )


def register_exception_handlers(app):
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(TaxDeskError, taxdesk_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, database_exception_handler)
    app.add_exception_handler(OperationalError, operational_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
