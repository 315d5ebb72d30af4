"""Shared request execution and error classification for Google API clients."""

from __future__ import annotations

import logging
from typing import Any

from googleapiclient.errors import HttpError

from gmail_drive_flow.core.exceptions import TransientUpstreamError, UpstreamError

logger = logging.getLogger(__name__)

_TRANSIENT_STATUSES = {408, 429, 500, 502, 503, 504}
_TRANSIENT_MARKERS = (
    "ratelimitexceeded",
    "userratelimitexceeded",
    "rate limit exceeded",
    "service unavailable",
    "temporary failure",
    "backenderror",
    "timeout",
    "timed out",
    "network error",
)


def is_transient_error(exc: Exception) -> bool:
    """Check whether an exception is a retry-worthy quota, 5xx or network failure."""
    if isinstance(exc, HttpError):
        if exc.status_code in _TRANSIENT_STATUSES:
            return True
        if exc.status_code == 403 and "ratelimitexceeded" in str(exc).lower():
            return True
        return False
    if isinstance(exc, (TimeoutError, ConnectionError)):
        return True
    error_str = str(exc).lower()
    return "429" in error_str or any(marker in error_str for marker in _TRANSIENT_MARKERS)


def execute_request(request: Any, context: str) -> Any:
    """Execute a googleapiclient request, classifying failures.

    Args:
        request: A googleapiclient HttpRequest object.
        context: Description for error messages (e.g. "list threads").

    Returns:
        The API response.

    Raises:
        TransientUpstreamError: On rate-limit, 5xx or network failures.
        UpstreamError: On any other API failure.
    """
    try:
        return request.execute()
    except Exception as e:
        if is_transient_error(e):
            logger.debug("Transient failure during %s: %s", context, e)
            raise TransientUpstreamError(f"Transient failure during {context}: {e}") from e
        raise UpstreamError(f"Failed to {context}: {e}") from e
