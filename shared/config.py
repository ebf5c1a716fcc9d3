"""
Runtime configuration for the worker and the API process.

Values come from environment variables (or a local .env file). Field names map
to upper-case variables, e.g. DATABASE_URL, HEARTBEAT_INTERVAL_SECONDS. The job
runner cadence keeps its historical variable name, WORKER_POLL_INTERVAL.
"""

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings shared by every entry point."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Datastore
    database_url: str = Field(
        default="sqlite+aiosqlite:///./servio.db",
        description="SQLAlchemy async URL (sqlite+aiosqlite or postgresql+asyncpg)",
    )
    sql_echo: bool = False

    # Job runner
    worker_poll_interval_ms: int = Field(
        default=5000,
        gt=0,
        validation_alias=AliasChoices("WORKER_POLL_INTERVAL", "WORKER_POLL_INTERVAL_MS"),
        description="Milliseconds between job-runner poll ticks",
    )
    job_batch_size: int = Field(default=5, gt=0, description="Max jobs claimed per tick")
    shutdown_grace_seconds: float = Field(
        default=10.0,
        ge=0,
        description="How long shutdown waits for an in-flight tick before cancelling it",
    )

    # Heartbeat
    heartbeat_interval_seconds: float = Field(default=30.0, gt=0)
    heartbeat_stale_after_seconds: float = Field(
        default=90.0,
        gt=0,
        description="Age after which the worker is reported as stale",
    )

    log_level: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    """Return the cached settings object."""
    return Settings()
