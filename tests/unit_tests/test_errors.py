"""Unit tests for errors.py error handlers and exceptions.py normalization."""

import json
from unittest.mock import MagicMock
from unittest.mock import patch

import httpx
import pydantic
import pytest
from fastapi import Request

from idsync_api.enums import ErrorKind
from idsync_api.errors import ERROR_KIND_STATUS
from idsync_api.errors import handle_broad_exceptions
from idsync_api.errors import handle_identity_sync_errors
from idsync_api.errors import handle_pydantic_validation_errors
from idsync_api.errors import operation_response
from idsync_api.exceptions import DirectoryUnreachable
from idsync_api.exceptions import SessionNotFound
from idsync_api.exceptions import UserSyncFailed
from idsync_api.exceptions import describe_connection_error
from idsync_api.exceptions import error_from_response
from idsync_api.exceptions import normalize_error
from idsync_api.models.view import OperationError
from idsync_api.models.view import OperationResult
from idsync_api.models.view import UserDetailView


class TestHandleBroadExceptions:
    """Tests for handle_broad_exceptions middleware."""

    @pytest.mark.asyncio
    @patch("idsync_api.errors.log_response_info")
    async def test_successful_request(self, mock_log):
        """Test middleware passes through successful requests."""
        mock_request = MagicMock(spec=Request)
        mock_response = MagicMock()

        async def mock_call_next(request):
            return mock_response

        result = await handle_broad_exceptions(mock_request, mock_call_next)

        assert result == mock_response
        mock_log.assert_not_called()

    @pytest.mark.asyncio
    @patch("idsync_api.errors.log_response_info")
    async def test_exception_returns_500(self, mock_log):
        """Test middleware catches exceptions and returns 500."""
        mock_request = MagicMock(spec=Request)

        async def mock_call_next(request):
            raise ValueError("Test error")

        result = await handle_broad_exceptions(mock_request, mock_call_next)

        assert result.status_code == 500
        assert json.loads(result.body) == {"detail": "Internal server error", "error_type": "ValueError"}
        mock_log.assert_called_once()


class TestHandlePydanticValidationErrors:
    """Tests for handle_pydantic_validation_errors handler."""

    @pytest.mark.asyncio
    @patch("idsync_api.errors.log_response_info")
    async def test_validation_error(self, mock_log):
        """Test handling pydantic validation errors."""
        mock_request = MagicMock(spec=Request)

        class TestModel(pydantic.BaseModel):
            name: str
            value: int

        with pytest.raises(pydantic.ValidationError) as exc_info:
            TestModel(name=123, value="not_int")

        result = await handle_pydantic_validation_errors(mock_request, exc_info.value)

        assert result.status_code == 422
        assert len(json.loads(result.body)["detail"]) == 2
        mock_log.assert_called_once()


class TestHandleIdentitySyncErrors:
    """Tests for handle_identity_sync_errors handler."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "exc,expected_status",
        [
            (DirectoryUnreachable(), 503),
            (SessionNotFound(body="Token 4 does not exist for user 1"), 404),
            (UserSyncFailed(title="Failed to sync user"), 502),
        ],
        ids=["directory_unreachable", "session_not_found", "user_sync_failed"],
    )
    @patch("idsync_api.errors.log_response_info")
    async def test_status_follows_error_kind(self, mock_log, exc, expected_status):
        """Test the HTTP status is derived from the error kind."""
        mock_request = MagicMock(spec=Request)

        result = await handle_identity_sync_errors(mock_request, exc)

        assert result.status_code == expected_status
        body = json.loads(result.body)
        assert body["kind"] == exc.kind.value
        assert body["title"] == exc.title
        assert body["error_type"] == type(exc).__name__

    def test_every_kind_has_a_status(self):
        """Test every error kind maps to an HTTP status."""
        assert set(ERROR_KIND_STATUS) == set(ErrorKind)


class TestOperationResponse:
    """Tests for operation_response."""

    def test_success_returns_view(self):
        """Test a successful result renders the view with 200."""
        result = OperationResult(ok=True, view=UserDetailView(view_id="console"))

        response = operation_response(result)

        assert response.status_code == 200
        assert json.loads(response.body)["view_id"] == "console"

    def test_failure_returns_error_and_view(self):
        """Test a failed result renders title, body, kind and view with the mapped status."""
        error = OperationError(kind=ErrorKind.SESSION_NOT_FOUND, title="Session not found", body="Token 4")
        result = OperationResult(ok=False, error=error, view=UserDetailView(sessions_error=error))

        response = operation_response(result)

        assert response.status_code == 404
        body = json.loads(response.body)
        assert body["title"] == "Session not found"
        assert body["kind"] == "SESSION_NOT_FOUND"
        assert body["view"]["sessions_error"]["body"] == "Token 4"


class TestNormalizeError:
    """Tests for normalize_error and its helpers."""

    def test_identity_sync_error_keeps_kind(self):
        """Test a domain exception keeps its own kind and text."""
        error = normalize_error(SessionNotFound(body="gone"), ErrorKind.SYNC_FAILED)

        assert error == OperationError(kind=ErrorKind.SESSION_NOT_FOUND, title="Session not found", body="gone")

    def test_http_status_error(self):
        """Test an httpx status error uses the response message."""
        request = httpx.Request("GET", "http://directory.test/ldap/status")
        response = httpx.Response(500, json={"message": "LDAP down", "error": "bind"}, request=request)
        exc = httpx.HTTPStatusError("boom", request=request, response=response)

        error = normalize_error(exc, ErrorKind.DIRECTORY_UNREACHABLE)

        assert error.kind == ErrorKind.DIRECTORY_UNREACHABLE
        assert error.title == "LDAP down"
        assert error.body == "bind"

    def test_transport_error(self):
        """Test a transport error is described for administrators."""
        exc = httpx.ConnectError("[Errno 111] Connection refused")

        error = normalize_error(exc, ErrorKind.SYNC_FAILED)

        assert error.title == "Directory request failed"
        assert error.body == "Connection to the directory server was refused."

    def test_unexpected_error(self):
        """Test anything else is tagged with the given kind."""
        error = normalize_error(KeyError("x"))

        assert error.kind == ErrorKind.OPERATION_FAILED
        assert error.title == "Unexpected error"

    @pytest.mark.parametrize(
        "message,expected",
        [
            ("Name or service not known", "Unable to resolve the directory server host"),
            ("SSL: CERTIFICATE_VERIFY_FAILED", "SSL/TLS error"),
            ("network unreachable", "Unable to connect to the directory server: network unreachable"),
        ],
        ids=["dns", "ssl", "generic"],
    )
    def test_describe_connection_error(self, message, expected):
        """Test connection errors get a readable description."""
        assert expected in describe_connection_error(httpx.ConnectError(message))

    def test_error_from_response_without_json(self):
        """Test the status line is used when the body is not JSON."""
        response = httpx.Response(503, text="Service Unavailable")

        title, body = error_from_response(response)

        assert title == "503 Service Unavailable"
        assert body == "Service Unavailable"
