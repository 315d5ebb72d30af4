"""Custom exceptions for Gmail Drive Flow."""

from __future__ import annotations


class GmailDriveFlowError(Exception):
    """Base exception for all Gmail Drive Flow errors."""


class ConfigurationError(GmailDriveFlowError):
    """Flow or runtime configuration is missing or invalid."""


class AuthenticationError(GmailDriveFlowError):
    """Failed to authenticate with the Google APIs."""


class UpstreamError(GmailDriveFlowError):
    """A Gmail or Drive API call failed."""


class TransientUpstreamError(UpstreamError):
    """Network, quota or 5xx-class failure that is worth retrying."""


class RetryExhausted(GmailDriveFlowError):
    """An operation kept failing until the retry budget ran out."""

    def __init__(self, context: str, attempts_made: int, last_error: BaseException) -> None:
        super().__init__(f"{context} failed after {attempts_made} attempts: {last_error}")
        self.context = context
        self.attempts_made = attempts_made
        self.last_error = last_error


class CircuitOpenRejection(GmailDriveFlowError):
    """A call was refused because the service's circuit breaker is open."""

    def __init__(self, service: str, message: str | None = None) -> None:
        super().__init__(message or f"Service {service} is temporarily unavailable")
        self.service = service


class ScopedProcessingError(GmailDriveFlowError):
    """An error isolated at batch, thread, message or attachment scope."""

    def __init__(self, scope: str, scope_index: int, cause: BaseException) -> None:
        super().__init__(f"{scope} {scope_index} failed: {cause}")
        self.scope = scope
        self.scope_index = scope_index
        self.cause = cause
