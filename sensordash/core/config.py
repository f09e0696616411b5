from __future__ import annotations

from datetime import tzinfo
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import AnyHttpUrl, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_ADMIN_PASSWORD_HASH = (
    "$2b$12$sdOU8uwfeIt/6CaZUIM6ke71zg30wHn0r3QC4TDA3xHYwQxTVEEXi"
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="APP_",
        case_sensitive=False,
    )

    env: str = Field(default="development")
    debug: bool = Field(default=False)
    docs_enabled: bool = Field(default=True)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")

    secret_key: str = Field(min_length=32)
    algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=30, ge=1, le=60 * 24 * 30)

    admin_username: str = Field(default="admin", min_length=3, max_length=64)
    admin_password_hash: str = Field(default=DEFAULT_ADMIN_PASSWORD_HASH, min_length=10)

    cors_origins: list[str] = Field(default_factory=list)
    trusted_hosts: list[str] = Field(default_factory=lambda: ["localhost", "127.0.0.1"])

    session_cookie: str = Field(default="sensordash_session", min_length=1, max_length=64)
    session_max_age_seconds: int = Field(default=60 * 60 * 8, ge=60, le=60 * 60 * 24 * 30)

    measurement_source: Literal["backend", "influx"] = Field(default="backend")

    backend_url: AnyHttpUrl = Field(default="http://localhost:5000")
    backend_measurements_path: str = Field(default="api/Mesure", min_length=1, max_length=128)
    backend_timeout_seconds: float = Field(default=10.0, ge=0.5, le=60.0)

    influx_url: AnyHttpUrl = Field(default="http://influxdb:8086")
    influx_token: str | None = Field(default=None, min_length=10)
    influx_org: str | None = Field(default=None, min_length=1)
    influx_bucket: str = Field(default="sensors", min_length=1)
    influx_measurement: str = Field(default="sensor_measurements", min_length=1, max_length=64)
    influx_timeout_ms: int = Field(default=10_000, ge=1000, le=120_000)
    influx_lookback_minutes: int = Field(default=60, ge=1, le=60 * 24 * 7)

    refresh_interval_seconds: float = Field(default=5.0, ge=0.25, le=3600.0)
    refresh_autostart: bool = Field(default=False)
    window_size: int = Field(default=20, ge=1, le=1000)
    display_timezone: str | None = Field(default=None, max_length=64)

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, v: object) -> object:
        return v.upper() if isinstance(v, str) else v

    @field_validator("display_timezone")
    @classmethod
    def _known_timezone(cls, v: str | None) -> str | None:
        if v:
            try:
                ZoneInfo(v)
            except (ZoneInfoNotFoundError, ValueError) as e:
                raise ValueError(f"unknown timezone: {v}") from e
        return v

    @model_validator(mode="after")
    def _check_source(self) -> "Settings":
        if self.measurement_source == "influx" and not (self.influx_token and self.influx_org):
            raise ValueError("measurement_source=influx requires influx_token and influx_org")
        return self

    @property
    def is_production(self) -> bool:
        return self.env.lower() == "production"

    @property
    def display_tz(self) -> tzinfo | None:
        # None means the server's local timezone.
        if not self.display_timezone:
            return None
        return ZoneInfo(self.display_timezone)


def load_settings() -> Settings:
    settings = Settings()
    if not settings.cors_origins:
        settings.cors_origins = ["http://localhost:3000", "http://localhost:8000"]
    return settings
