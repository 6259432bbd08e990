"""
Error Handling Utilities
Provides sanitized error messages and consistent error responses.
"""

import logging
from enum import Enum
from typing import Optional

from fastapi import HTTPException, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.core.encryption import TokenDecryptionError
from app.integrations.xero.exceptions import (
    PLPersistenceError,
    TokenRefreshError,
    XeroDataFetchError,
    XeroReportMissingError,
)
from app.integrations.xero.oauth import XeroOAuthError

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Error codes for frontend handling."""

    # Xero integration errors
    XERO_NOT_CONNECTED = "xero_not_connected"
    XERO_CONNECTION_FAILED = "xero_connection_failed"
    XERO_TOKEN_INVALID = "xero_token_invalid"
    XERO_DATA_FETCH_FAILED = "xero_data_fetch_failed"
    XERO_AUTH_FAILED = "xero_auth_failed"

    # General errors
    VALIDATION_ERROR = "validation_error"
    DATABASE_ERROR = "database_error"
    INTERNAL_ERROR = "internal_error"
    SERVICE_UNAVAILABLE = "service_unavailable"


# User-friendly error messages
ERROR_MESSAGES = {
    ErrorCode.XERO_NOT_CONNECTED: "No active Xero connection found for this business.",
    ErrorCode.XERO_CONNECTION_FAILED: "Unable to connect to Xero. Please try reconnecting your account.",
    ErrorCode.XERO_TOKEN_INVALID: "Xero connection expired. Please reconnect Xero from the Integrations page.",
    ErrorCode.XERO_DATA_FETCH_FAILED: "Unable to fetch data from Xero. Please try again in a moment.",
    ErrorCode.XERO_AUTH_FAILED: "Xero authentication failed. Please try connecting again.",
    ErrorCode.VALIDATION_ERROR: "Invalid request. Please check your input and try again.",
    ErrorCode.DATABASE_ERROR: "Unable to save financial data. Please try again later.",
    ErrorCode.INTERNAL_ERROR: "An unexpected error occurred. Please try again later.",
    ErrorCode.SERVICE_UNAVAILABLE: "Service temporarily unavailable. Please try again in a moment.",
}


def sanitize_error_message(
    exception: Exception,
    error_code: ErrorCode,
    log_details: bool = True,
) -> str:
    """
    Sanitize error message for user-facing responses.

    Logs full exception details internally but returns user-friendly message.

    Args:
        exception: The exception that occurred
        error_code: Error code for categorization
        log_details: Whether to log full exception details

    Returns:
        User-friendly error message
    """
    if log_details:
        logger.error(
            "Error [%s]: %s",
            error_code.value,
            str(exception),
            exc_info=exception,
        )

    return ERROR_MESSAGES.get(error_code, ERROR_MESSAGES[ErrorCode.INTERNAL_ERROR])


def get_error_code_for_exception(exception: Exception) -> tuple[ErrorCode, int]:
    """
    Map exception types to error codes and HTTP status codes.

    Args:
        exception: The exception that occurred

    Returns:
        Tuple of (error_code, http_status_code)
    """
    if isinstance(exception, (TokenRefreshError, TokenDecryptionError)):
        return ErrorCode.XERO_TOKEN_INVALID, status.HTTP_401_UNAUTHORIZED

    if isinstance(exception, XeroOAuthError):
        if exception.error_code == "invalid_grant":
            return ErrorCode.XERO_TOKEN_INVALID, status.HTTP_401_UNAUTHORIZED
        return ErrorCode.XERO_AUTH_FAILED, status.HTTP_502_BAD_GATEWAY

    if isinstance(exception, (XeroDataFetchError, XeroReportMissingError)):
        return ErrorCode.XERO_DATA_FETCH_FAILED, status.HTTP_502_BAD_GATEWAY

    if isinstance(exception, (PLPersistenceError, SQLAlchemyError)):
        return ErrorCode.DATABASE_ERROR, status.HTTP_500_INTERNAL_SERVER_ERROR

    if isinstance(exception, ValueError):
        return ErrorCode.VALIDATION_ERROR, status.HTTP_400_BAD_REQUEST

    # Default to internal error
    return ErrorCode.INTERNAL_ERROR, status.HTTP_500_INTERNAL_SERVER_ERROR


async def global_exception_handler(_request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for FastAPI.

    Catches all unhandled exceptions and returns sanitized error responses.
    Excludes HTTPException (intentional responses) and ValidationError (FastAPI validation).
    """
    if isinstance(exc, HTTPException):
        raise exc

    if isinstance(exc, RequestValidationError):
        raise exc

    error_code, http_status = get_error_code_for_exception(exc)
    message = sanitize_error_message(exc, error_code)

    return JSONResponse(
        status_code=http_status,
        content={
            "error_code": error_code.value,
            "message": message,
        },
    )


def create_error_response(
    error_code: ErrorCode,
    message: Optional[str] = None,
    http_status: Optional[int] = None,
    **extra,
) -> HTTPException:
    """
    Create a standardized HTTPException with error code.

    Args:
        error_code: Error code enum
        message: Optional custom message (uses default if not provided)
        http_status: Optional HTTP status code (uses default if not provided)
        **extra: Additional fields for the detail body (e.g. reconnect hints)

    Returns:
        HTTPException with standardized format
    """
    if message is None:
        message = ERROR_MESSAGES.get(error_code, ERROR_MESSAGES[ErrorCode.INTERNAL_ERROR])

    if http_status is None:
        if error_code in [ErrorCode.XERO_TOKEN_INVALID, ErrorCode.XERO_AUTH_FAILED]:
            http_status = status.HTTP_401_UNAUTHORIZED
        elif error_code == ErrorCode.XERO_NOT_CONNECTED:
            http_status = status.HTTP_404_NOT_FOUND
        elif error_code in [ErrorCode.XERO_CONNECTION_FAILED, ErrorCode.XERO_DATA_FETCH_FAILED, ErrorCode.SERVICE_UNAVAILABLE]:
            http_status = status.HTTP_502_BAD_GATEWAY
        elif error_code == ErrorCode.VALIDATION_ERROR:
            http_status = status.HTTP_400_BAD_REQUEST
        else:
            http_status = status.HTTP_500_INTERNAL_SERVER_ERROR

    return HTTPException(
        status_code=http_status,
        detail={
            "error_code": error_code.value,
            "message": message,
            **extra,
        },
    )
