"""Configuration via pydantic-settings with .env support."""

from __future__ import annotations

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GmailDriveFlowSettings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All durations are integer milliseconds.
    """

    model_config = SettingsConfigDict(
        env_prefix="FLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # OAuth credentials
    credentials_path: Path = Path("credentials/client_secret.json")
    token_path: Path = Path("credentials/token.json")

    # Search
    search_window: str = "7d"
    max_threads: int = 10
    threads_page_size: int = 100

    # Retry
    max_retries: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: int = 30000
    exponential_backoff: bool = True

    # Rate limiting (calls per trailing minute)
    gmail_calls_per_minute: int = 250
    drive_calls_per_minute: int = 1000

    # Batching
    batch_size: int = 10
    inter_batch_delay_ms: int = 2000

    # Circuit breaker
    circuit_failure_threshold: int = 5
    circuit_reset_timeout_ms: int = 60000

    # Logging
    log_level: str = "INFO"

    @field_validator(
        "max_threads",
        "threads_page_size",
        "max_retries",
        "gmail_calls_per_minute",
        "drive_calls_per_minute",
        "batch_size",
        "circuit_failure_threshold",
    )
    @classmethod
    def _must_be_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be a positive integer")
        return value

    @field_validator(
        "base_delay_ms", "max_delay_ms", "inter_batch_delay_ms", "circuit_reset_timeout_ms"
    )
    @classmethod
    def _must_not_be_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must not be negative")
        return value

    def ensure_directories(self) -> None:
        """Create the credentials directory if it doesn't exist."""
        self.credentials_path.parent.mkdir(parents=True, exist_ok=True)
        self.token_path.parent.mkdir(parents=True, exist_ok=True)
