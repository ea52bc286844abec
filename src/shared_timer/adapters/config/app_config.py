"""12-factor configuration adapter using environment variables."""

from typing import Self

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared_timer.domain.models.timer_settings import MINUTE_MS, TimerSettings

BACKENDS = ("memory", "firebase")


class AppConfig(BaseSettings):
    """Application configuration following 12-factor principles."""

    model_config = SettingsConfigDict(
        env_prefix="SHARED_TIMER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Replication backend
    backend: str = Field(default="memory", description="Replication backend: 'memory' or 'firebase'")
    firebase_database_url: str | None = Field(
        default=None,
        description="Root URL of the Firebase Realtime Database (required for 'firebase')",
    )
    firebase_auth_token: str | None = Field(
        default=None, description="Database secret or ID token sent as the 'auth' parameter"
    )
    request_timeout_seconds: float = Field(
        default=10.0, description="Timeout for backend write requests in seconds"
    )
    max_backoff_seconds: float = Field(
        default=30.0, description="Upper bound of the reconnect delay after connectivity loss"
    )
    write_retry_attempts: int = Field(
        default=3, description="Attempts per shared value write before giving up"
    )
    write_retry_base_delay_seconds: float = Field(
        default=0.5, description="Delay before the first write retry; doubles on every retry"
    )

    # Timer
    work_minutes: float = Field(default=25, description="Duration of a work phase in minutes")
    break_minutes: float = Field(default=5, description="Duration of a break phase in minutes")
    work_cycle_increment: int = Field(
        default=1, description="Added to the cycle count when a work phase completes"
    )
    auto_start_next_phase: bool = Field(
        default=True,
        description="Start the next phase immediately on expiry instead of waiting paused",
    )
    tick_interval_ms: int = Field(
        default=500, description="Interval of the local expiry check in milliseconds"
    )
    sync_clock: bool = Field(
        default=False, description="Correct the local clock against the backend clock on start"
    )

    log_level: str = Field(default="INFO", description="Root log level")

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        """Validate backend is either 'memory' or 'firebase'."""
        if v.lower() not in BACKENDS:
            raise ValueError("backend must be either 'memory' or 'firebase'")
        return v.lower()

    @field_validator("work_minutes", "break_minutes")
    @classmethod
    def validate_duration(cls, v: float) -> float:
        """Validate phase durations are positive."""
        if v <= 0:
            raise ValueError("phase durations must be positive")
        return v

    @field_validator("work_cycle_increment", "write_retry_attempts")
    @classmethod
    def validate_at_least_one(cls, v: int) -> int:
        """Validate counters are at least 1."""
        if v < 1:
            raise ValueError("value must be at least 1")
        return v

    @field_validator("tick_interval_ms")
    @classmethod
    def validate_tick_interval(cls, v: int) -> int:
        """Validate the tick interval is positive."""
        if v <= 0:
            raise ValueError("tick_interval_ms must be positive")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate the log level is a standard level name."""
        if v.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError("log_level must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL")
        return v.upper()

    @model_validator(mode="after")
    def validate_firebase_url(self) -> Self:
        """Require a database URL when the firebase backend is selected."""
        if self.backend == "firebase" and not self.firebase_database_url:
            raise ValueError("firebase_database_url is required for the 'firebase' backend")
        return self

    @property
    def tick_interval_seconds(self) -> float:
        return self.tick_interval_ms / 1000

    def timer_settings(self) -> TimerSettings:
        """Build the timer settings shared by every client of a room."""
        return TimerSettings(
            work_duration_ms=int(self.work_minutes * MINUTE_MS),
            break_duration_ms=int(self.break_minutes * MINUTE_MS),
            work_cycle_increment=self.work_cycle_increment,
            auto_start_next_phase=self.auto_start_next_phase,
        )
