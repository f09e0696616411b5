from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from sensordash.core.config import Settings
from sensordash.core.security import get_password_hash
from sensordash.factory import create_app
from tests.fakes import FakeMeasurementSource, sample_batch


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        env="test",
        debug=True,
        docs_enabled=False,
        secret_key="test_secret_key_must_be_32_chars_minimum",
        admin_username="admin",
        admin_password_hash=get_password_hash("password"),
        cors_origins=["http://localhost"],
        trusted_hosts=["testserver", "localhost"],
        measurement_source="backend",
        backend_url="http://backend.test",
        backend_timeout_seconds=1.0,
        refresh_interval_seconds=60.0,
        refresh_autostart=False,
        window_size=20,
        display_timezone="UTC",
    )


@pytest.fixture()
def source() -> FakeMeasurementSource:
    return FakeMeasurementSource(sample_batch())


@pytest.fixture()
def client(settings: Settings, source: FakeMeasurementSource) -> TestClient:
    app = create_app(settings, measurement_source=source)
    with TestClient(app) as client:
        yield client


@pytest.fixture()
def token(client: TestClient) -> str:
    resp = client.post(
        "/api/v1/auth/token",
        data={"username": "admin", "password": "password"},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["access_token"]
