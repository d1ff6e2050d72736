"""Domain exceptions and the handlers that render them.

Every expected rejection raised by the service layer is a FreightBoardError
subclass carrying an HTTP status and a stable ``error_code``, so a client
can tell a lost race (``LOAD_ALREADY_ASSIGNED``) from a policy violation
(``ILLEGAL_TRANSITION``). Anything else is logged with its traceback and
reported to the caller as a generic internal error.
"""

import logging
from typing import Union

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class FreightBoardError(Exception):
    """Base exception for marketplace rule violations."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(self.message)


# ── Not found ────────────────────────────────────────────────

class ResourceNotFoundError(FreightBoardError):
    """A referenced load or offer does not exist."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            message=f"{resource} not found: {identifier}",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code=f"{resource.upper()}_NOT_FOUND",
        )


class LoadNotFoundError(ResourceNotFoundError):
    def __init__(self, load_id: str):
        super().__init__("Load", load_id)


class OfferNotFoundError(ResourceNotFoundError):
    def __init__(self, offer_id: str):
        super().__init__("Offer", offer_id)


# ── Authorization ────────────────────────────────────────────

class UnauthorizedError(FreightBoardError):
    """Role or ownership does not allow the requested action."""

    def __init__(self, message: str = "Not authorized", error_code: str = "UNAUTHORIZED"):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code=error_code,
        )


class SelfOfferForbiddenError(UnauthorizedError):
    def __init__(self):
        super().__init__(
            "You cannot make an offer on your own load",
            error_code="SELF_OFFER_FORBIDDEN",
        )


# ── State conflicts ──────────────────────────────────────────

class ConflictError(FreightBoardError):
    """Request is well-formed but conflicts with the current load state."""

    def __init__(self, message: str, error_code: str):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_code=error_code,
        )


class IllegalTransitionError(ConflictError):
    def __init__(self, message: str):
        super().__init__(message, "ILLEGAL_TRANSITION")


class PreconditionFailedError(ConflictError):
    def __init__(self, message: str):
        super().__init__(message, "PRECONDITION_FAILED")


class LoadNotPostableError(ConflictError):
    def __init__(self):
        super().__init__(
            "This load is no longer available for offers",
            "LOAD_NOT_POSTABLE",
        )


class LoadAlreadyAssignedError(ConflictError):
    def __init__(self, load_status: str):
        super().__init__(
            f"This load is already {load_status} and cannot be assigned",
            "LOAD_ALREADY_ASSIGNED",
        )


class DuplicateOfferError(ConflictError):
    def __init__(self):
        super().__init__(
            "You have already placed an offer on this load",
            "DUPLICATE_OFFER",
        )


class ChatClosedError(ConflictError):
    def __init__(self, message: str):
        super().__init__(message, "CHAT_CLOSED")


class LoadNumberExhaustedError(FreightBoardError):
    """Every generated load number collided with an existing one."""

    def __init__(self, attempts: int):
        super().__init__(
            message=f"Could not allocate a unique load number after {attempts} attempts",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_code="LOAD_NUMBER_UNAVAILABLE",
        )


# ── Input ────────────────────────────────────────────────────

class InvalidInputError(FreightBoardError):
    """Malformed amount, status, or field values."""

    def __init__(self, message: str, error_code: str = "INVALID_INPUT"):
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code=error_code,
        )


class InvalidAmountError(InvalidInputError):
    def __init__(self):
        super().__init__("A valid offer amount is required", "INVALID_AMOUNT")


class InvalidDecisionError(InvalidInputError):
    def __init__(self, decision: str):
        super().__init__(
            f'Invalid decision "{decision}". Must be "accepted" or "rejected".',
            "INVALID_DECISION",
        )


def create_error_response(
    status_code: int,
    message: str,
    error_code: str = "ERROR",
    details: Union[dict, list, None] = None,
) -> JSONResponse:
    """Create standardized error response.

    Format:
    {
        "error": {
            "code": "ERROR_CODE",
            "message": "Human-readable error message",
            "details": {...}  // Optional additional details
        }
    }
    """
    content = {
        "error": {
            "code": error_code,
            "message": message,
        }
    }

    if details:
        content["error"]["details"] = details

    return JSONResponse(
        status_code=status_code,
        content=content,
    )


async def freightboard_exception_handler(
    request: Request,
    exc: FreightBoardError,
) -> JSONResponse:
    """Render a domain rejection."""
    logger.warning(
        "Rejected %s %s: %s - %s",
        request.method, request.url.path, exc.error_code, exc.message,
        extra={
            "error_code": exc.error_code,
            "path": request.url.path,
            "method": request.method,
        },
    )

    return create_error_response(
        status_code=exc.status_code,
        message=exc.message,
        error_code=exc.error_code,
    )


async def http_exception_handler(
    request: Request,
    exc: Union[HTTPException, StarletteHTTPException],
) -> JSONResponse:
    """Handle FastAPI HTTP exceptions (authentication failures, 404 routes)."""
    if exc.status_code >= 500:
        logger.error(
            "HTTP %s: %s",
            exc.status_code, exc.detail,
            extra={
                "path": request.url.path,
                "method": request.method,
            },
        )

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
    exc: Union[RequestValidationError, ValidationError],
) -> JSONResponse:
    """Handle Pydantic validation errors."""
    logger.warning(
        "Validation error on %s",
        request.url.path,
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )

    errors = []
    for error in exc.errors():
        field = " -> ".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })

    return create_error_response(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        message="Validation error",
        error_code="VALIDATION_ERROR",
        details={"errors": errors},
    )


async def database_exception_handler(
    request: Request,
    exc: IntegrityError,
) -> JSONResponse:
    """Handle integrity errors that escaped the service layer."""
    logger.error(
        "Database integrity error on %s: %s",
        request.url.path, exc,
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )

    error_msg = str(exc.orig) if hasattr(exc, "orig") else str(exc)

    if "unique" in error_msg.lower():
        message = "A record with this value already exists"
        error_code = "DUPLICATE_RECORD"
    else:
        message = "Database constraint violation"
        error_code = "INTEGRITY_ERROR"

    return create_error_response(
        status_code=status.HTTP_409_CONFLICT,
        message=message,
        error_code=error_code,
    )


async def operational_exception_handler(
    request: Request,
    exc: OperationalError,
) -> JSONResponse:
    """Handle database operational errors (connection issues, etc.)."""
    logger.error(
        "Database operational error on %s: %s",
        request.url.path, exc,
        extra={
            "path": request.url.path,
            "method": request.method,
        },
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
    """Handle all other unhandled exceptions without leaking internals."""
    logger.error(
        "Unhandled exception on %s: %s",
        request.url.path, exc,
        extra={
            "path": request.url.path,
            "method": request.method,
        },
        exc_info=True,
    )

    return create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message="An unexpected error occurred. Please try again later.",
        error_code="INTERNAL_SERVER_ERROR",
    )


def register_exception_handlers(app):
    """Register all custom exception handlers with FastAPI app."""
    app.add_exception_handler(FreightBoardError, freightboard_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, database_exception_handler)
    app.add_exception_handler(OperationalError, operational_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
