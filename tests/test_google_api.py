"""Tests for Google API request execution and error classification."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from googleapiclient.errors import HttpError

from gmail_drive_flow.core.exceptions import TransientUpstreamError, UpstreamError
from gmail_drive_flow.core.google_api import execute_request, is_transient_error


class TestIsTransientError:
    """Tests for the module-level transient error detection helper."""

    @pytest.mark.parametrize("status", [429, 500, 502, 503, 504])
    def test_http_error_transient_statuses(self, status: int) -> None:
        exc = HttpError(resp=MagicMock(status=status), content=b"try later")
        assert is_transient_error(exc) is True

    @pytest.mark.parametrize("status", [400, 401, 404])
    def test_http_error_permanent_statuses(self, status: int) -> None:
        exc = HttpError(resp=MagicMock(status=status), content=b"nope")
        assert is_transient_error(exc) is False

    def test_network_errors(self) -> None:
        assert is_transient_error(ConnectionResetError("reset")) is True
        assert is_transient_error(TimeoutError("timed out")) is True

    def test_detects_markers_in_message(self) -> None:
        assert is_transient_error(Exception("HttpError 429: rateLimitExceeded")) is True
        assert is_transient_error(Exception("Service unavailable")) is True

    def test_other_errors(self) -> None:
        assert is_transient_error(Exception("Invalid argument")) is False


class TestExecuteRequest:
    def test_returns_response(self) -> None:
        request = MagicMock()
        request.execute.return_value = {"ok": True}

        assert execute_request(request, "ping") == {"ok": True}

    def test_wraps_transient(self) -> None:
        request = MagicMock()
        request.execute.side_effect = ConnectionError("network error")

        with pytest.raises(TransientUpstreamError, match="Transient failure during ping") as e:
            execute_request(request, "ping")

        assert isinstance(e.value.__cause__, ConnectionError)

    def test_wraps_permanent(self) -> None:
        request = MagicMock()
        request.execute.side_effect = ValueError("bad field")

        with pytest.raises(UpstreamError, match="Failed to ping"):
            execute_request(request, "ping")
