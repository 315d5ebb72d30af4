"""Sliding-window admission control, one window per upstream service."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Mapping

from gmail_drive_flow.core.clock import Clock

logger = logging.getLogger(__name__)

WINDOW_MS = 60_000


class RateLimiter:
    """Blocks callers until a service's trailing-minute quota admits one more call.

    Each service keeps its own deque of admitted-call timestamps; windows are
    never shared between services.
    """

    def __init__(self, quotas: Mapping[str, int], clock: Clock | None = None) -> None:
        for service, quota in quotas.items():
            if quota <= 0:
                raise ValueError(f"Quota for {service!r} must be positive, got {quota}")
        self._quotas = dict(quotas)
        self._clock = clock or Clock()
        self._calls: dict[str, deque[int]] = {service: deque() for service in quotas}

    @property
    def services(self) -> tuple[str, ...]:
        return tuple(self._quotas)

    def quota(self, service: str) -> int:
        return self._quotas[self._check_service(service)]

    def acquire(self, service: str) -> None:
        """Wait until ``service`` may make one more call, then record it.

        Never raises for quota pressure; the call always proceeds eventually.
        """
        calls = self._calls[self._check_service(service)]
        quota = self._quotas[service]

        while True:
            now = self._clock.now_ms()
            self._prune(calls, now)
            if len(calls) < quota:
                calls.append(now)
                return

            wait_ms = WINDOW_MS - (now - calls[0])
            logger.warning(
                "%s rate limit reached (%d calls/min), waiting %dms", service, quota, wait_ms
            )
            self._clock.sleep_ms(wait_ms)

    def recent_calls(self, service: str) -> int:
        """Number of calls admitted for ``service`` in the trailing window."""
        calls = self._calls[self._check_service(service)]
        self._prune(calls, self._clock.now_ms())
        return len(calls)

    def _check_service(self, service: str) -> str:
        if service not in self._quotas:
            raise ValueError(f"No rate limit configured for service {service!r}")
        return service

    @staticmethod
    def _prune(calls: deque[int], now: int) -> None:
        cutoff = now - WINDOW_MS
        while calls and calls[0] <= cutoff:
            calls.popleft()
