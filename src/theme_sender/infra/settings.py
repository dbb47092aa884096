"""
Application settings for theme-sender.

This module defines all configuration settings using Pydantic BaseSettings.
Every field can be set from the environment (or a ``.env`` file); the CLI
layers its flags on top through :func:`load_settings`.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError

DEFAULT_THEME_TOPIC = "neiam/sync/theme"
DEFAULT_OVERRIDE_TOPIC = "neiam/sync/theme/override"
DEFAULT_REVERT_TOPIC = "neiam/sync/theme/revert"


class Settings(BaseSettings):
    """Main application settings using Pydantic BaseSettings."""

    # Broker
    mqtt_host: str = Field(default="localhost", alias="MQTT_HOST")
    mqtt_port: int = Field(default=1883, alias="MQTT_PORT", gt=0, lt=65536)
    mqtt_username: str | None = Field(default=None, alias="MQTT_USERNAME")
    mqtt_password: str | None = Field(default=None, alias="MQTT_PASSWORD")
    mqtt_client_id: str = Field(default="theme-sender", alias="MQTT_CLIENT_ID")

    # Topics
    mqtt_topic: str = Field(default=DEFAULT_THEME_TOPIC, alias="MQTT_TOPIC")
    mqtt_override_topic: str = Field(default=DEFAULT_OVERRIDE_TOPIC, alias="MQTT_OVERRIDE_TOPIC")
    mqtt_revert_topic: str = Field(default=DEFAULT_REVERT_TOPIC, alias="MQTT_REVERT_TOPIC")

    # Publishing
    publish_interval_secs: int = Field(default=300, alias="PUBLISH_INTERVAL_SECS", gt=0)
    publish_on_override: bool = Field(default=True, alias="PUBLISH_ON_OVERRIDE")
    publish_max_attempts: int = Field(default=5, alias="PUBLISH_MAX_ATTEMPTS", ge=1)

    # Location (geolocation lookup is skipped when both coordinates are set)
    latitude: float | None = Field(default=None, alias="LATITUDE", ge=-90.0, le=90.0)
    longitude: float | None = Field(default=None, alias="LONGITUDE", ge=-180.0, le=180.0)
    timezone: str | None = Field(default=None, alias="TZ_NAME")
    geolocation_url: str = Field(
        default="http://ip-api.com/json/?fields=status,message,lat,lon",
        alias="GEOLOCATION_URL",
    )
    geolocation_timeout_secs: float = Field(default=10.0, alias="GEOLOCATION_TIMEOUT_SECS", gt=0)

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: Literal["json", "console"] = Field(default="json", alias="LOG_FORMAT")

    model_config: SettingsConfigDict = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",  # Ignore unrelated variables in a shared .env
    )

    @model_validator(mode="after")
    def _coordinates_together(self) -> "Settings":
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("LATITUDE and LONGITUDE must be set together")
        return self

    @property
    def has_fixed_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None


def _resolve_env_file() -> str | None:
    # 1) Explicit override
    explicit = os.getenv("THEME_SENDER_ENV_FILE")
    if explicit and Path(explicit).is_file():
        return explicit

    # 2) CWD .env
    cwd_env = Path.cwd() / ".env"
    if cwd_env.is_file():
        return str(cwd_env)

    # 3) Walk up from this file to find nearest .env
    here = Path(__file__).resolve()
    for parent in here.parents:
        candidate = parent / ".env"
        if candidate.is_file():
            return str(candidate)
    return None


def load_settings(**overrides: Any) -> Settings:
    """Build settings from env/.env, then apply non-None CLI overrides.

    Raises:
        ConfigurationError: if any value fails validation.
    """
    flags = {name: value for name, value in overrides.items() if value is not None}
    env_file = _resolve_env_file()
    try:
        if env_file:
            return Settings(_env_file=env_file, **flags)  # type: ignore[call-arg]
        return Settings(**flags)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc
