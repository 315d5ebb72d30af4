"""Three-state circuit breaker shielding a failing upstream service."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

from gmail_drive_flow.core.clock import Clock

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


@dataclass(frozen=True)
class CircuitSnapshot:
    """Point-in-time copy of a breaker's state."""

    state: CircuitState
    consecutive_failures: int
    last_failure_time_ms: int | None


@dataclass(frozen=True)
class CircuitFallback:
    """Default payload returned when an open circuit short-circuits a call."""

    service: str
    message: str
    fallback: bool = True
    data: dict[str, int] = field(
        default_factory=lambda: {"processedEmails": 0, "savedAttachments": 0, "emailsFound": 0}
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": "error",
            "message": self.message,
            "fallback": self.fallback,
            "data": dict(self.data),
        }


class CircuitBreaker:
    """Per-service breaker: CLOSED -> OPEN at the failure threshold,
    OPEN -> HALF_OPEN once the reset timeout has elapsed since the last
    failure, then HALF_OPEN -> CLOSED or back to OPEN on the probe's outcome.
    """

    def __init__(
        self,
        service_name: str,
        failure_threshold: int = 5,
        reset_timeout_ms: int = 60000,
        *,
        clock: Clock | None = None,
    ) -> None:
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        self._service_name = service_name
        self._failure_threshold = failure_threshold
        self._reset_timeout_ms = reset_timeout_ms
        self._clock = clock or Clock()

        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._last_failure_time_ms: int | None = None

    @property
    def service_name(self) -> str:
        return self._service_name

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    def snapshot(self) -> CircuitSnapshot:
        return CircuitSnapshot(
            state=self._state,
            consecutive_failures=self._consecutive_failures,
            last_failure_time_ms=self._last_failure_time_ms,
        )

    def reset(self) -> None:
        """Force the breaker back to CLOSED with a clean failure count."""
        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._last_failure_time_ms = None

    def execute(
        self,
        operation: Callable[[], T],
        fallback: Callable[[], Any] | None = None,
    ) -> T | Any:
        """Run ``operation`` through the breaker.

        Returns the fallback result (or a CircuitFallback) without calling
        ``operation`` while the circuit is open. Re-raises the operation's
        error only when it fails and no fallback was given.
        """
        if self._state is CircuitState.OPEN:
            if self._should_attempt_reset():
                self._state = CircuitState.HALF_OPEN
                logger.info("Circuit breaker for %s entering HALF_OPEN state", self._service_name)
            else:
                logger.warning("Circuit breaker for %s is OPEN, using fallback", self._service_name)
                return fallback() if fallback else self.default_fallback()

        try:
            result = operation()
        except Exception:
            self._on_failure()
            if fallback:
                logger.info("Operation failed, using fallback for %s", self._service_name)
                return fallback()
            raise

        self._on_success()
        return result

    def default_fallback(self) -> CircuitFallback:
        return CircuitFallback(
            service=self._service_name,
            message=f"Service {self._service_name} is temporarily unavailable",
        )

    def _on_success(self) -> None:
        if self._state is not CircuitState.CLOSED:
            logger.info("Circuit breaker for %s reset to CLOSED", self._service_name)
        self._consecutive_failures = 0
        self._state = CircuitState.CLOSED

    def _on_failure(self) -> None:
        self._consecutive_failures += 1
        self._last_failure_time_ms = self._clock.now_ms()

        if self._state is CircuitState.HALF_OPEN:
            self._state = CircuitState.OPEN
            logger.error("Circuit breaker for %s probe failed, re-opened", self._service_name)
        elif self._consecutive_failures >= self._failure_threshold:
            self._state = CircuitState.OPEN
            logger.error(
                "Circuit breaker for %s opened after %d failures",
                self._service_name, self._consecutive_failures,
            )

    def _should_attempt_reset(self) -> bool:
        if self._last_failure_time_ms is None:
            return True
        return self._clock.now_ms() - self._last_failure_time_ms > self._reset_timeout_ms
