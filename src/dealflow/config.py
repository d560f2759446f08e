"""Strongly typed application configuration."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .events.event_bus import OverflowPolicy


class DealflowSettings(BaseSettings):
    """Runtime configuration loaded from environment variables and `.env` files."""

    model_config = SettingsConfigDict(
        env_prefix="DEALFLOW_", env_file=".env", env_nested_delimiter="__", extra="ignore"
    )

    service_name: str = Field(default="dealflow", description="Service identifier used in logs")
    environment: str = Field(default="local", description="Deployment environment name")
    log_level: str = Field(default="INFO", description="Application log level")
    log_format: str = Field(default="json", description="Log renderer (json|console)")

    max_queue_size: int | None = Field(
        default=1000, ge=1, description="Maximum queued events; unset for an unbounded queue"
    )
    overflow_policy: OverflowPolicy = Field(
        default=OverflowPolicy.REJECT, description="Behaviour when the event queue is full"
    )
    handler_timeout: float | None = Field(
        default=30.0, gt=0, description="Seconds a single handler may run; unset to disable"
    )

    document_validity_days: int = Field(
        default=30, ge=1, description="Days a term sheet stays valid after creation"
    )
    notification_history_limit: int = Field(
        default=50, ge=1, description="Notifications kept in memory"
    )

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        allowed = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
        upper_value = value.upper()
        if upper_value not in allowed:
            msg = f"Invalid log level '{value}'. Choose one of: {', '.join(sorted(allowed))}."
            raise ValueError(msg)
        return upper_value

    @field_validator("log_format")
    @classmethod
    def _validate_log_format(cls, value: str) -> str:
        lower_value = value.lower()
        if lower_value not in {"json", "console"}:
            raise ValueError(f"Invalid log format '{value}'. Choose json or console.")
        return lower_value


@lru_cache
def get_settings() -> DealflowSettings:
    """Process-wide settings, loaded once."""
    return DealflowSettings()
