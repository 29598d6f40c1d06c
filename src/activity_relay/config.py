"""
Configuration management for the GitHub activity relay.

This module handles environment variables, settings validation, and configuration
management using Pydantic Settings for type safety and validation.
"""

from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError
from .models import ALL_EVENT_TYPES, EventKind

REQUIRED_SETTINGS = ("discord_token", "channel_id", "github_username")


class PollingConfig(BaseModel):
    """Polling configuration settings."""

    interval_seconds: float = Field(
        default=60.0, description="Delay between polling cycles in seconds"
    )
    send_delay_seconds: float = Field(
        default=0.5, description="Pause after each replayed notification"
    )
    event_types: list[str] = Field(
        default_factory=lambda: list(ALL_EVENT_TYPES),
        description="Event types forwarded to Discord",
    )
    shutdown_timeout_seconds: float = Field(
        default=10.0, description="Time allowed for an in-flight cycle on shutdown"
    )


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Discord configuration
    discord_token: str = Field(..., description="Discord bot token")
    channel_id: str = Field(..., description="Discord channel to post into")
    discord_api_url: str = Field(
        default="https://discord.com/api/v10", description="Discord API URL"
    )

    # GitHub configuration
    github_username: str = Field(..., description="GitHub account to follow")
    github_token: str = Field(
        default="", description="Optional GitHub token (raises the rate limit)"
    )
    github_api_url: str = Field(
        default="https://api.github.com", description="GitHub API URL"
    )
    request_timeout_seconds: float = Field(
        default=30.0, description="HTTP timeout for GitHub and Discord calls"
    )

    # Polling configuration
    poll_interval: int = Field(
        default=60000, description="Polling interval in milliseconds"
    )
    send_delay_ms: int = Field(
        default=500, description="Delay between replayed notifications in ms"
    )
    event_types: str | list[str] = Field(
        default=",".join(ALL_EVENT_TYPES),
        description="Event types to forward (comma-separated)",
    )
    shutdown_timeout_seconds: float = Field(
        default=10.0, description="Grace period for an in-flight cycle"
    )

    # State configuration
    state_file: str = Field(
        default="./data/last_event.json",
        description="Path of the last event id file (empty keeps state in memory)",
    )

    # Logging configuration
    debug: bool = Field(default=False, description="Enable debug logging")
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(default="json", description="Log format")

    # Health check server
    health_port: int = Field(
        default=0, description="Port for the /health endpoint (0 disables it)"
    )

    @field_validator(*REQUIRED_SETTINGS)
    @classmethod
    def validate_required(cls, v: str) -> str:
        """Reject required values that are set but empty."""
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    @field_validator("event_types", mode="before")
    @classmethod
    def parse_event_types(cls, v: Any) -> list[str]:
        """Parse event types from comma-separated string or list."""
        if isinstance(v, str):
            return [kind.strip() for kind in v.split(",") if kind.strip()]
        elif isinstance(v, list):
            return v
        else:
            error_msg = f"event_types must be a string or list, got {type(v)}"
            raise ValueError(error_msg)

    @field_validator("event_types")
    @classmethod
    def validate_event_types(cls, v: list[str]) -> list[str]:
        """Validate event types list."""
        for event_type in v:
            if EventKind.from_type(event_type) is None:
                raise ValueError(f"Unsupported event type: {event_type}")
        return v

    @field_validator("poll_interval")
    @classmethod
    def validate_poll_interval(cls, v: int) -> int:
        """Validate polling interval."""
        if v < 1000:
            raise ValueError(f"Polling interval too short: {v}ms")
        return v

    @field_validator("send_delay_ms")
    @classmethod
    def validate_send_delay(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"Send delay must not be negative: {v}ms")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        if v.lower() not in {"json", "console"}:
            raise ValueError(f"Invalid log format: {v}")
        return v.lower()

    @property
    def effective_log_level(self) -> str:
        """DEBUG when the debug toggle is on, otherwise the configured level."""
        return "DEBUG" if self.debug else self.log_level

    @property
    def has_github_token(self) -> bool:
        return bool(self.github_token)

    @property
    def polling_config(self) -> PollingConfig:
        """Get polling configuration."""
        event_types = self.event_types
        if isinstance(event_types, str):
            event_types = [kind.strip() for kind in event_types.split(",") if kind]
        return PollingConfig(
            interval_seconds=self.poll_interval / 1000.0,
            send_delay_seconds=self.send_delay_ms / 1000.0,
            event_types=event_types,
            shutdown_timeout_seconds=self.shutdown_timeout_seconds,
        )


# Global settings instance - initialized lazily to avoid import-time errors
_settings_instance = None


def load_settings(**overrides: Any) -> Settings:
    """
    Build a Settings object, translating validation failures.

    Returns:
        Validated settings

    Raises:
        ConfigurationError: If required settings are missing or invalid
    """
    try:
        return Settings(**overrides)  # type: ignore[call-arg,unused-ignore]
    except ValidationError as e:
        missing = []
        problems = []
        for error in e.errors():
            field = str(error["loc"][0]) if error["loc"] else "?"
            if error["type"] == "missing" or (
                field in REQUIRED_SETTINGS and "empty" in error["msg"]
            ):
                missing.append(field.upper())
            else:
                problems.append(f"{field.upper()}: {error['msg']}")

        if missing:
            raise ConfigurationError(
                f"Missing required config: {', '.join(missing)}",
                missing=missing,
            ) from e
        raise ConfigurationError(
            f"Invalid config: {'; '.join(problems)}",
            context={"errors": problems},
        ) from e


def get_settings() -> Settings:
    """Get the global settings instance, creating it if necessary."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = load_settings()
    return _settings_instance
