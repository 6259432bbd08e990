# tests/unit/core/test_errors.py
"""
Tests for error code mapping and sanitized responses.
"""
import json

import pytest
from fastapi import HTTPException
from sqlalchemy.exc import OperationalError

from app.core.encryption import TokenDecryptionError
from app.core.errors import (
    ERROR_MESSAGES,
    ErrorCode,
    create_error_response,
    get_error_code_for_exception,
    global_exception_handler,
)
from app.integrations.xero.exceptions import (
    PLPersistenceError,
    TokenRefreshError,
    XeroDataFetchError,
    XeroReportMissingError,
)
from app.integrations.xero.oauth import XeroOAuthError


@pytest.mark.parametrize(
    "exception,expected",
    [
        (TokenRefreshError(), (ErrorCode.XERO_TOKEN_INVALID, 401)),
        (TokenDecryptionError(), (ErrorCode.XERO_TOKEN_INVALID, 401)),
        (XeroOAuthError("expired", "invalid_grant", 400), (ErrorCode.XERO_TOKEN_INVALID, 401)),
        (XeroOAuthError("down", "unknown_error", 503), (ErrorCode.XERO_AUTH_FAILED, 502)),
        (XeroDataFetchError("API error: 500", 500), (ErrorCode.XERO_DATA_FETCH_FAILED, 502)),
        (XeroReportMissingError(), (ErrorCode.XERO_DATA_FETCH_FAILED, 502)),
        (PLPersistenceError(), (ErrorCode.DATABASE_ERROR, 500)),
        (OperationalError("SELECT 1", {}, Exception("down")), (ErrorCode.DATABASE_ERROR, 500)),
        (ValueError("bad"), (ErrorCode.VALIDATION_ERROR, 400)),
        (RuntimeError("boom"), (ErrorCode.INTERNAL_ERROR, 500)),
    ],
)
def test_error_code_mapping(exception: Exception, expected) -> None:
    assert get_error_code_for_exception(exception) == expected


class TestGlobalExceptionHandler:
    """Test suite for the catch-all handler."""

    @pytest.mark.asyncio
    async def test_internal_details_are_not_leaked(self) -> None:
        # Act
        response = await global_exception_handler(
            None, RuntimeError("password=hunter2 at db.internal:5432")
        )

        # Assert
        body = json.loads(response.body)
        assert response.status_code == 500
        assert body == {
            "error_code": "internal_error",
            "message": ERROR_MESSAGES[ErrorCode.INTERNAL_ERROR],
        }

    @pytest.mark.asyncio
    async def test_http_exceptions_pass_through(self) -> None:
        with pytest.raises(HTTPException):
            await global_exception_handler(None, HTTPException(status_code=404))


class TestCreateErrorResponse:
    """Test suite for create_error_response."""

    def test_not_connected_defaults_to_404(self) -> None:
        error = create_error_response(ErrorCode.XERO_NOT_CONNECTED, connected=False)

        assert error.status_code == 404
        assert error.detail == {
            "error_code": "xero_not_connected",
            "message": ERROR_MESSAGES[ErrorCode.XERO_NOT_CONNECTED],
            "connected": False,
        }

    def test_custom_message_and_status(self) -> None:
        error = create_error_response(
            ErrorCode.XERO_DATA_FETCH_FAILED,
            message="No P&L report returned",
            http_status=503,
        )

        assert error.status_code == 503
        assert error.detail["message"] == "No P&L report returned"
