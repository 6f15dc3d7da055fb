"""
Custom exceptions and error handlers for consistent error responses.

Provides standardized error codes and global exception handlers.
Client-facing handlers never echo provider or database error text.
"""

import logging
from typing import Any, Dict

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class InvalidRequestError(AppException):
    """Raised when caller input is missing or malformed."""

    def __init__(self, message: str = "Invalid request", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_INVALID_REQUEST",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class InvalidCodeError(AppException):
    """Raised when no unclaimed record matches a claim code.

    Unknown, already-claimed and expired codes are reported identically.
    """

    def __init__(self):
        super().__init__(
            message="Invalid code",
            error_code="ERR_INVALID_CODE",
            status_code=status.HTTP_400_BAD_REQUEST
        )


class PayoutFailedError(AppException):
    """Raised when the provider explicitly rejected a payout. The claim was reverted."""

    def __init__(self, message: str = "Payment is failed."):
        super().__init__(
            message=message,
            error_code="ERR_PAYOUT_FAILED",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


class PayoutIndeterminateError(AppException):
    """Raised when the payout outcome is unknown. The claim stays frozen for manual review."""

    def __init__(self, message: str = "Payment outcome could not be confirmed."):
        super().__init__(
            message=message,
            error_code="ERR_PAYOUT_INDETERMINATE",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


class ProviderUnavailableError(AppException):
    """Raised when the payment provider cannot be reached or answered badly."""

    def __init__(self, message: str = "Payment provider unavailable"):
        super().__init__(
            message=message,
            error_code="ERR_PROVIDER_UNAVAILABLE",
            status_code=status.HTTP_502_BAD_GATEWAY
        )


class PersistenceFailureError(AppException):
    """Raised when the ledger cannot be read or written."""

    def __init__(self, message: str = "Ledger unavailable"):
        super().__init__(
            message=message,
            error_code="ERR_PERSISTENCE",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


class RateLimitExceededError(AppException):
    """Raised when a client exceeds the inbound request budget."""

    def __init__(self, retry_after: int):
        super().__init__(
            message=f"Rate limit exceeded. Try again in {retry_after} seconds.",
            error_code="ERR_RATE_LIMIT",
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            details={"retry_after": retry_after}
        )


class OpsAccessDeniedError(AppException):
    """Raised when an operator endpoint is called without a valid token."""

    def __init__(self):
        super().__init__(
            message="Operator access denied",
            error_code="ERR_FORBIDDEN",
            status_code=status.HTTP_403_FORBIDDEN
        )


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        403: "ERR_FORBIDDEN",
        404: "ERR_NOT_FOUND",
        405: "ERR_METHOD_NOT_ALLOWED",
        500: "ERR_INTERNAL_SERVER"
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": exc.detail,
            "details": {}
        }
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors. The inbound contract reports these as 400."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error_code": "ERR_VALIDATION",
            "message": "Validation error",
            "details": {
                "errors": [
                    {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
                    for error in exc.errors()
                ]
            }
        }
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path, exc_info=exc)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred",
            "details": {}
        }
    )
