"""Environment configuration for the board sync pipeline."""

import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_optional_float(name: str) -> float | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return float(value)


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self) -> None:
        self.DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./boardsync.db")

        # Event bus
        self.EVENT_PUBLISHER_WORKERS: int = int(os.getenv("EVENT_PUBLISHER_WORKERS", "5"))
        # Longest wait for in-flight async publishes on shutdown
        self.EVENT_PUBLISHER_SHUTDOWN_TIMEOUT_SECONDS: float = float(
            os.getenv("EVENT_PUBLISHER_SHUTDOWN_TIMEOUT_SECONDS", "10")
        )

        # Sync status bookkeeping
        self.SYNC_MAX_RETRIES: int = int(os.getenv("SYNC_MAX_RETRIES", "3"))

        # Retry executor
        self.RETRY_MAX_ATTEMPTS: int = int(os.getenv("RETRY_MAX_ATTEMPTS", "3"))
        self.RETRY_INITIAL_DELAY_SECONDS: float = float(
            os.getenv("RETRY_INITIAL_DELAY_SECONDS", "1.0")
        )
        self.RETRY_MAX_DELAY_SECONDS: float = float(os.getenv("RETRY_MAX_DELAY_SECONDS", "300"))
        self.RETRY_BACKOFF_MULTIPLIER: float = float(
            os.getenv("RETRY_BACKOFF_MULTIPLIER", "2.0")
        )
        self.RETRY_JITTER: bool = _env_bool("RETRY_JITTER", True)
        self.RETRY_MAX_DURATION_SECONDS: float | None = _env_optional_float(
            "RETRY_MAX_DURATION_SECONDS"
        )

        # Retry sweep worker
        self.WORKER_BATCH_SIZE: int = int(os.getenv("WORKER_BATCH_SIZE", "50"))
        self.WORKER_POLL_INTERVAL_SECONDS: int = int(
            os.getenv("WORKER_POLL_INTERVAL_SECONDS", "30")
        )
        # "package.module:callable" returning a Card (or None) for a card id
        self.CARD_LOADER: str = os.getenv("CARD_LOADER", "")

        # External task/calendar provider
        self.EXTERNAL_PROVIDER_URL: str = os.getenv("EXTERNAL_PROVIDER_URL", "")
        self.EXTERNAL_PROVIDER_TIMEOUT_SECONDS: float = float(
            os.getenv("EXTERNAL_PROVIDER_TIMEOUT_SECONDS", "10.0")
        )
        self.GOOGLE_TASKS_DEFAULT_LIST: str = os.getenv(
            "GOOGLE_TASKS_DEFAULT_LIST", "Simple Task Board Manager"
        )
        self.CALENDAR_ID: str = os.getenv("CALENDAR_ID", "primary")

        # Reporting API
        self.CORS_ORIGINS: list[str] = [
            origin.strip()
            for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
            if origin.strip()
        ]

    def validate(self) -> None:
        """Validate that numeric settings are usable."""
        if not self.DATABASE_URL:
            raise ValueError("DATABASE_URL environment variable is required")
        if self.EVENT_PUBLISHER_WORKERS < 1:
            raise ValueError("EVENT_PUBLISHER_WORKERS must be at least 1")
        if self.EVENT_PUBLISHER_SHUTDOWN_TIMEOUT_SECONDS < 0:
            raise ValueError("EVENT_PUBLISHER_SHUTDOWN_TIMEOUT_SECONDS cannot be negative")
        if self.RETRY_MAX_ATTEMPTS < 1:
            raise ValueError("RETRY_MAX_ATTEMPTS must be at least 1")
        if self.SYNC_MAX_RETRIES < 0:
            raise ValueError("SYNC_MAX_RETRIES cannot be negative")
        if self.RETRY_INITIAL_DELAY_SECONDS < 0 or self.RETRY_MAX_DELAY_SECONDS < 0:
            raise ValueError("Retry delays cannot be negative")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    settings = Settings()
    return settings
