from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware

from sensordash.api.router import api_router
from sensordash.clients.backend import BackendClient
from sensordash.core.config import Settings, load_settings
from sensordash.core.logging_config import configure_logging
from sensordash.core.security import AuthGate
from sensordash.db.influx import create_influx_client
from sensordash.repositories.base import MeasurementSource
from sensordash.repositories.influx import InfluxMeasurementSource
from sensordash.services.live_state import ChartFeed, LiveStateStore
from sensordash.services.refresh import RefreshLoop
from sensordash.web.router import ui_router
from sensordash.web.templates import STATIC_DIR

logger = logging.getLogger(__name__)


def create_measurement_source(settings: Settings) -> MeasurementSource:
    if settings.measurement_source == "influx":
        return InfluxMeasurementSource(
            client=create_influx_client(settings),
            org=settings.influx_org or "",
            bucket=settings.influx_bucket,
            measurement=settings.influx_measurement,
            lookback_minutes=settings.influx_lookback_minutes,
        )
    return BackendClient(
        base_url=str(settings.backend_url),
        timeout_seconds=settings.backend_timeout_seconds,
        measurements_path=settings.backend_measurements_path,
        naive_tz=settings.display_tz,
    )


def create_app(
    settings: Settings | None = None,
    *,
    measurement_source: MeasurementSource | None = None,
) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        source = measurement_source or create_measurement_source(settings)
        store = LiveStateStore(tz=settings.display_tz)
        feed = ChartFeed()
        gate = AuthGate(open_=settings.refresh_autostart)
        loop = RefreshLoop(
            source=source,
            store=store,
            auth_gate=gate,
            interval_seconds=settings.refresh_interval_seconds,
            window_size=settings.window_size,
            sinks=[feed],
        )

        app.state.settings = settings
        app.state.measurement_source = source
        app.state.live_state = store
        app.state.chart_feed = feed
        app.state.auth_gate = gate
        app.state.refresh_loop = loop

        if settings.refresh_autostart:
            await loop.start()

        yield
        await loop.stop()
        await source.aclose()

    docs_enabled = settings.docs_enabled and not settings.is_production
    app = FastAPI(
        title="Sensor Dashboard API",
        version="0.1.0",
        debug=settings.debug,
        docs_url="/docs" if docs_enabled else None,
        redoc_url=None,
        openapi_url="/openapi.json" if docs_enabled else None,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(GZipMiddleware, minimum_size=1024)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.secret_key,
        session_cookie=settings.session_cookie,
        max_age=settings.session_max_age_seconds,
        same_site="lax",
        https_only=settings.is_production,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )
    if settings.trusted_hosts:
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.trusted_hosts)

    @app.middleware("http")
    async def security_headers(request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        if settings.is_production:
            response.headers.setdefault(
                "Strict-Transport-Security", "max-age=31536000; includeSubDomains"
            )
        return response

    @app.get("/", tags=["meta"])
    def root():
        return {"name": "sensordash", "status": "ok"}

    app.include_router(api_router)
    app.include_router(ui_router)

    app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")
    logger.debug("Application created (source=%s)", settings.measurement_source)
    return app
