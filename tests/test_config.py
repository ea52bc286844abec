"""Tests for configuration adapter."""

import os

import pytest

from shared_timer.adapters.config import AppConfig
from shared_timer.domain.models import MINUTE_MS


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove SHARED_TIMER_* variables inherited from the shell."""
    for name in list(os.environ):
        if name.startswith("SHARED_TIMER_"):
            monkeypatch.delenv(name)


def test_config_loads_defaults() -> None:
    """Given no environment variables, when loading config, then defaults are used."""
    config = AppConfig(_env_file=None)

    assert config.backend == "memory"
    assert config.work_minutes == 25
    assert config.break_minutes == 5
    assert config.work_cycle_increment == 1
    assert config.auto_start_next_phase is True
    assert config.tick_interval_seconds == 0.5
    assert config.log_level == "INFO"


def test_config_loads_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Given environment variables, when loading config, then they are used."""
    monkeypatch.setenv("SHARED_TIMER_BACKEND", "Firebase")
    monkeypatch.setenv("SHARED_TIMER_FIREBASE_DATABASE_URL", "https://demo.firebaseio.com")
    monkeypatch.setenv("SHARED_TIMER_WORK_MINUTES", "50")
    monkeypatch.setenv("SHARED_TIMER_AUTO_START_NEXT_PHASE", "false")
    monkeypatch.setenv("SHARED_TIMER_LOG_LEVEL", "debug")

    config = AppConfig(_env_file=None)

    assert config.backend == "firebase"
    assert config.firebase_database_url == "https://demo.firebaseio.com"
    assert config.work_minutes == 50
    assert config.auto_start_next_phase is False
    assert config.log_level == "DEBUG"


def test_config_builds_timer_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SHARED_TIMER_WORK_MINUTES", "0.5")
    monkeypatch.setenv("SHARED_TIMER_BREAK_MINUTES", "10")
    monkeypatch.setenv("SHARED_TIMER_WORK_CYCLE_INCREMENT", "2")

    settings = AppConfig(_env_file=None).timer_settings()

    assert settings.work_duration_ms == 30_000
    assert settings.break_duration_ms == 10 * MINUTE_MS
    assert settings.work_cycle_increment == 2
    assert settings.auto_start_next_phase is True


def test_config_validates_backend(monkeypatch: pytest.MonkeyPatch) -> None:
    """Given an unknown backend, when loading config, then validation error is raised."""
    monkeypatch.setenv("SHARED_TIMER_BACKEND", "redis")

    with pytest.raises(ValueError, match="backend must be either"):
        AppConfig(_env_file=None)


def test_config_requires_url_for_firebase(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SHARED_TIMER_BACKEND", "firebase")

    with pytest.raises(ValueError, match="firebase_database_url is required"):
        AppConfig(_env_file=None)


@pytest.mark.parametrize(
    ("name", "value", "message"),
    [
        ("SHARED_TIMER_WORK_MINUTES", "0", "phase durations must be positive"),
        ("SHARED_TIMER_BREAK_MINUTES", "-5", "phase durations must be positive"),
        ("SHARED_TIMER_WORK_CYCLE_INCREMENT", "0", "value must be at least 1"),
        ("SHARED_TIMER_WRITE_RETRY_ATTEMPTS", "0", "value must be at least 1"),
        ("SHARED_TIMER_TICK_INTERVAL_MS", "0", "tick_interval_ms must be positive"),
        ("SHARED_TIMER_LOG_LEVEL", "loud", "log_level must be one of"),
    ],
)
def test_config_rejects_invalid_values(
    monkeypatch: pytest.MonkeyPatch, name: str, value: str, message: str
) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(ValueError, match=message):
        AppConfig(_env_file=None)
