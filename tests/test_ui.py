from __future__ import annotations

import re

from fastapi.testclient import TestClient

from sensordash.core.config import Settings
from sensordash.factory import create_app
from tests.fakes import FakeMeasurementSource, sample_batch


def _extract_csrf_token(html: str) -> str:
    match = re.search(r'name="csrf_token" value="([^"]+)"', html)
    assert match, "CSRF token input not found"
    return match.group(1)


def _login(client: TestClient) -> None:
    login = client.get("/ui/login")
    assert login.status_code == 200
    csrf = _extract_csrf_token(login.text)
    resp = client.post(
        "/ui/login",
        data={"username": "admin", "password": "password", "csrf_token": csrf},
        follow_redirects=False,
    )
    assert resp.status_code == 303
    assert resp.headers["location"] == "/ui/dashboard"


def test_dashboard_requires_login(client: TestClient) -> None:
    resp = client.get("/ui/dashboard", follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"] == "/ui/login"

    assert client.get("/ui/dashboard/live.json").status_code == 401
    assert client.get("/ui/", follow_redirects=False).headers["location"] == "/ui/login"


def test_bad_login_rerenders_form(client: TestClient, source: FakeMeasurementSource) -> None:
    csrf = _extract_csrf_token(client.get("/ui/login").text)
    resp = client.post(
        "/ui/login",
        data={"username": "admin", "password": "nope", "csrf_token": csrf},
        follow_redirects=False,
    )
    assert resp.status_code == 401
    assert "Invalid username or password" in resp.text
    assert source.calls == 0


def test_login_rejects_bad_csrf(client: TestClient) -> None:
    client.get("/ui/login")
    resp = client.post(
        "/ui/login",
        data={"username": "admin", "password": "password", "csrf_token": "forged"},
        follow_redirects=False,
    )
    assert resp.status_code == 400


def test_ui_login_and_dashboard_flow(
    client: TestClient, source: FakeMeasurementSource
) -> None:
    _login(client)
    assert source.calls == 1

    dashboard = client.get("/ui/dashboard")
    assert dashboard.status_code == 200
    assert "Connected" in dashboard.text
    assert 'id="chart-temperature"' in dashboard.text
    assert "never" not in dashboard.text
    assert client.get("/ui/", follow_redirects=False).headers["location"] == "/ui/dashboard"

    live = client.get("/ui/dashboard/live.json")
    assert live.status_code == 200
    feed = live.json()
    assert feed["revision"] == 1
    assert feed["connected"] is True
    assert len(feed["charts"]) == 5
    rows = {c["channel"]: c for c in feed["channels"]}
    assert list(rows) == ["temperature", "humidity", "gas", "light", "water"]
    assert rows["temperature"]["count"] == 3
    assert rows["temperature"]["latest"] == 23.0
    assert rows["temperature"]["stats"] == {"avg": 21.0, "min": 19.0, "max": 23.0}
    assert rows["humidity"]["stats"]["avg"] == 45.0
    assert 'data-field="avg">21.0<' in dashboard.text

    csrf = _extract_csrf_token(dashboard.text)
    refresh = client.post(
        "/ui/refresh", data={"csrf_token": csrf}, follow_redirects=False
    )
    assert refresh.status_code == 303
    assert refresh.headers["location"].startswith("/ui/dashboard?message=")
    assert client.get("/ui/dashboard/live.json").json()["revision"] == 2


def test_ui_refresh_failure_shows_disconnected(
    client: TestClient, source: FakeMeasurementSource
) -> None:
    _login(client)
    csrf = _extract_csrf_token(client.get("/ui/dashboard").text)

    source.fail_with = "HTTP 502 from /api/Mesure"
    refresh = client.post("/ui/refresh", data={"csrf_token": csrf})
    assert refresh.status_code == 200
    assert "Disconnected" in refresh.text
    assert "Backend unavailable: HTTP 502 from /api/Mesure" in refresh.text
    assert 'id="row-temperature"' in refresh.text


def test_ui_exports(client: TestClient) -> None:
    assert client.get("/ui/export/json", follow_redirects=False).status_code == 303

    _login(client)
    data = client.get("/ui/export/json")
    assert data.status_code == 200
    assert 'filename="measurements_data.json"' in data.headers["content-disposition"]

    summary = client.get("/ui/export/summary")
    assert summary.status_code == 200
    assert summary.text.startswith("Daily Summary - ")


def test_logout_clears_session(client: TestClient) -> None:
    _login(client)
    client.get("/ui/logout", follow_redirects=False)
    resp = client.get("/ui/dashboard", follow_redirects=False)
    assert resp.status_code == 303


def test_session_cookie_restarts_live_updates(
    client: TestClient, settings: Settings
) -> None:
    _login(client)

    fresh_source = FakeMeasurementSource(sample_batch())
    app = create_app(settings, measurement_source=fresh_source)
    with TestClient(app, cookies=client.cookies) as restarted:
        assert app.state.refresh_loop.running is False
        resp = restarted.get("/ui/dashboard")
        assert resp.status_code == 200
        assert app.state.refresh_loop.running is True
        assert fresh_source.calls == 1
        assert 'class="badge ok"' in resp.text
        assert restarted.get("/ui/dashboard/live.json").json()["revision"] == 1
