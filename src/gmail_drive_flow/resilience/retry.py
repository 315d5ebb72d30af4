"""Exponential backoff retry for fallible Gmail/Drive operations."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypeVar

from gmail_drive_flow.core.clock import Clock
from gmail_drive_flow.core.exceptions import RetryExhausted

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryPolicy:
    """Run an operation up to ``max_attempts`` times with attempt-indexed backoff.

    The operation must be safe to repeat; side effects are not deduplicated.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay_ms: int = 1000,
        max_delay_ms: int = 30000,
        exponential_backoff: bool = True,
        *,
        clock: Clock | None = None,
        retry_on: tuple[type[BaseException], ...] = (Exception,),
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._max_attempts = max_attempts
        self._base_delay_ms = base_delay_ms
        self._max_delay_ms = max_delay_ms
        self._exponential = exponential_backoff
        self._clock = clock or Clock()
        self._retry_on = retry_on

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def compute_delay(self, attempt: int) -> int:
        """Delay in ms to wait after failed attempt number ``attempt`` (1-based)."""
        if not self._exponential:
            return self._base_delay_ms
        return min(self._base_delay_ms * 2 ** (attempt - 1), self._max_delay_ms)

    def execute(
        self,
        operation: Callable[[], T],
        context: str = "",
        max_attempts: int | None = None,
    ) -> T:
        """Run ``operation``, retrying on failure.

        Args:
            operation: Zero-argument callable to run.
            context: Description for log and error messages.
            max_attempts: Override the configured attempt budget.

        Returns:
            The operation's result from the first successful attempt.

        Raises:
            RetryExhausted: When every attempt failed; chained from the last error.
        """
        attempts = self._max_attempts if max_attempts is None else max_attempts
        if attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        for attempt in range(1, attempts + 1):
            try:
                logger.debug("Executing %s, attempt %d/%d", context, attempt, attempts)
                return operation()
            except self._retry_on as e:
                logger.warning("%s failed on attempt %d/%d: %s", context, attempt, attempts, e)
                if attempt == attempts:
                    raise RetryExhausted(context, attempts, e) from e

                delay = self.compute_delay(attempt)
                logger.info("Retrying %s in %dms", context, delay)
                self._clock.sleep_ms(delay)

        raise AssertionError("unreachable")
