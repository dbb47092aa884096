"""
Global test configuration for theme-sender.

This module provides global pytest configuration and fixtures.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest
import structlog

# Ensure the project src directory is importable without relying on external environment.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from theme_sender.domain.entities import SolarEvent  # noqa: E402
from theme_sender.domain.themes import ThemeId  # noqa: E402

SETTINGS_ENV_VARS = (
    "MQTT_HOST",
    "MQTT_PORT",
    "MQTT_USERNAME",
    "MQTT_PASSWORD",
    "MQTT_CLIENT_ID",
    "MQTT_TOPIC",
    "MQTT_OVERRIDE_TOPIC",
    "MQTT_REVERT_TOPIC",
    "PUBLISH_INTERVAL_SECS",
    "PUBLISH_ON_OVERRIDE",
    "PUBLISH_MAX_ATTEMPTS",
    "LATITUDE",
    "LONGITUDE",
    "TZ_NAME",
    "GEOLOCATION_URL",
    "GEOLOCATION_TIMEOUT_SECS",
    "LOG_LEVEL",
    "LOG_FORMAT",
)


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch, tmp_path):
    """Keep host environment and .env files out of settings, and reset structlog."""
    for name in SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("theme_sender.infra.settings._resolve_env_file", lambda: None)
    yield
    structlog.reset_defaults()


def at(hh: int, mm: int = 0, ss: int = 0, day: int = 15) -> datetime:
    """UTC instant on 2024-06-<day>."""
    return datetime(2024, 6, day, hh, mm, ss, tzinfo=timezone.utc)


@pytest.fixture
def scenario_schedule() -> list[SolarEvent]:
    """Sunrise 06:00, Day 08:00, CivilDusk 18:00 (UTC)."""
    return [
        SolarEvent(at(6), ThemeId.SUNRISE),
        SolarEvent(at(8), ThemeId.DAY),
        SolarEvent(at(18), ThemeId.CIVIL_DUSK),
    ]
