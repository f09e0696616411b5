from __future__ import annotations

from influxdb_client import InfluxDBClient

from sensordash.core.config import Settings


def create_influx_client(settings: Settings) -> InfluxDBClient:
    if not settings.influx_token or not settings.influx_org:
        raise ValueError("InfluxDB source requires APP_INFLUX_TOKEN and APP_INFLUX_ORG")
    return InfluxDBClient(
        url=str(settings.influx_url),
        token=settings.influx_token,
        org=settings.influx_org,
        timeout=settings.influx_timeout_ms,
    )
