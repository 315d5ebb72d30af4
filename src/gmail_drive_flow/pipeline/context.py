"""Per-run container for the resilience components shared by the pipeline."""

from __future__ import annotations

from dataclasses import dataclass

from gmail_drive_flow.config.settings import GmailDriveFlowSettings
from gmail_drive_flow.core.clock import Clock
from gmail_drive_flow.core.exceptions import TransientUpstreamError
from gmail_drive_flow.resilience.circuit_breaker import CircuitBreaker
from gmail_drive_flow.resilience.guard import ServiceGuard
from gmail_drive_flow.resilience.rate_limiter import RateLimiter
from gmail_drive_flow.resilience.retry import RetryPolicy

MAIL_SERVICE = "gmail"
STORAGE_SERVICE = "drive"

RETRYABLE_ERRORS: tuple[type[Exception], ...] = (
    TransientUpstreamError,
    TimeoutError,
    ConnectionError,
)


@dataclass
class ExecutionContext:
    """Explicitly constructed limiter, retry policy and breakers for one run.

    Nothing here is module-global: every context owns fresh state.
    """

    clock: Clock
    rate_limiter: RateLimiter
    retry_policy: RetryPolicy
    mail_breaker: CircuitBreaker
    storage_breaker: CircuitBreaker
    batch_size: int = 10
    inter_batch_delay_ms: int = 2000

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.mail = ServiceGuard(
            MAIL_SERVICE, self.rate_limiter, self.retry_policy, self.mail_breaker
        )
        self.storage = ServiceGuard(
            STORAGE_SERVICE, self.rate_limiter, self.retry_policy, self.storage_breaker
        )

    @classmethod
    def from_settings(
        cls, settings: GmailDriveFlowSettings, clock: Clock | None = None
    ) -> ExecutionContext:
        clock = clock or Clock()
        return cls(
            clock=clock,
            rate_limiter=RateLimiter(
                {
                    MAIL_SERVICE: settings.gmail_calls_per_minute,
                    STORAGE_SERVICE: settings.drive_calls_per_minute,
                },
                clock,
            ),
            retry_policy=RetryPolicy(
                settings.max_retries,
                settings.base_delay_ms,
                settings.max_delay_ms,
                settings.exponential_backoff,
                clock=clock,
                retry_on=RETRYABLE_ERRORS,
            ),
            mail_breaker=CircuitBreaker(
                MAIL_SERVICE,
                settings.circuit_failure_threshold,
                settings.circuit_reset_timeout_ms,
                clock=clock,
            ),
            storage_breaker=CircuitBreaker(
                STORAGE_SERVICE,
                settings.circuit_failure_threshold,
                settings.circuit_reset_timeout_ms,
                clock=clock,
            ),
            batch_size=settings.batch_size,
            inter_batch_delay_ms=settings.inter_batch_delay_ms,
        )
