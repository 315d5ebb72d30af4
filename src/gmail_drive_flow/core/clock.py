"""Millisecond time source and sleep, swappable in tests."""

from __future__ import annotations

import time
from datetime import UTC, datetime


class Clock:
    """Wall/monotonic time in integer milliseconds plus a blocking sleep.

    Rate limiter windows, breaker timeouts and retry delays all go through
    one Clock so tests can advance simulated time instead of sleeping.
    """

    def now_ms(self) -> int:
        """Monotonic time in milliseconds."""
        return int(time.monotonic() * 1000)

    def sleep_ms(self, ms: int) -> None:
        if ms > 0:
            time.sleep(ms / 1000)

    def utcnow(self) -> datetime:
        return datetime.now(UTC)
