from __future__ import annotations

import pytest
from pydantic import ValidationError

from sensordash.clients.backend import BackendClient
from sensordash.core.config import Settings
from sensordash.factory import create_measurement_source

SECRET = "test_secret_key_must_be_32_chars_minimum"


def test_defaults() -> None:
    settings = Settings(_env_file=None, secret_key=SECRET)
    assert settings.refresh_interval_seconds == 5.0
    assert settings.window_size == 20
    assert settings.measurement_source == "backend"
    assert settings.display_tz is None
    assert settings.is_production is False


def test_reads_prefixed_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_SECRET_KEY", SECRET)
    monkeypatch.setenv("APP_LOG_LEVEL", "debug")
    monkeypatch.setenv("APP_BACKEND_URL", "http://sensors.local:5000")
    monkeypatch.setenv("APP_DISPLAY_TIMEZONE", "Europe/Paris")

    settings = Settings(_env_file=None)

    assert settings.log_level == "DEBUG"
    assert str(settings.backend_url).startswith("http://sensors.local:5000")
    assert settings.display_tz is not None


def test_rejects_unknown_timezone() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, secret_key=SECRET, display_timezone="Mars/Olympus")


def test_influx_source_needs_credentials() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, secret_key=SECRET, measurement_source="influx")


@pytest.mark.anyio
async def test_backend_source_is_default() -> None:
    source = create_measurement_source(Settings(_env_file=None, secret_key=SECRET))
    try:
        assert isinstance(source, BackendClient)
    finally:
        await source.aclose()
