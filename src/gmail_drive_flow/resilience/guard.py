"""Composition of rate limiting, retry and circuit breaking for one service."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypeVar

from gmail_drive_flow.core.exceptions import CircuitOpenRejection
from gmail_drive_flow.resilience.circuit_breaker import CircuitBreaker, CircuitFallback
from gmail_drive_flow.resilience.rate_limiter import RateLimiter
from gmail_drive_flow.resilience.retry import RetryPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ServiceGuard:
    """Wraps every call to one upstream as breaker(retry(acquire + call)).

    Each retry attempt acquires its own rate-limiter slot. A single breaker
    failure corresponds to one exhausted retry sequence.
    """

    def __init__(
        self,
        service: str,
        rate_limiter: RateLimiter,
        retry_policy: RetryPolicy,
        circuit_breaker: CircuitBreaker,
    ) -> None:
        self._service = service
        self._rate_limiter = rate_limiter
        self._retry_policy = retry_policy
        self._circuit_breaker = circuit_breaker

    @property
    def service(self) -> str:
        return self._service

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        return self._circuit_breaker

    def call(self, operation: Callable[[], T], context: str) -> T:
        """Run ``operation`` under this service's quota, retry and breaker.

        Raises:
            CircuitOpenRejection: The breaker short-circuited; nothing was called.
            RetryExhausted: Every attempt failed.
        """

        def _admitted() -> T:
            self._rate_limiter.acquire(self._service)
            return operation()

        result = self._circuit_breaker.execute(
            lambda: self._retry_policy.execute(_admitted, context)
        )
        if isinstance(result, CircuitFallback):
            raise CircuitOpenRejection(self._service, f"{context}: {result.message}")
        return result
