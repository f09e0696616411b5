from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable

from influxdb_client import InfluxDBClient

from sensordash.models.measurement import MeasurementRecord
from sensordash.repositories.base import TransportFailure

logger = logging.getLogger(__name__)


def to_rfc3339(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def flux_str(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class InfluxMeasurementSource:
    """Measurement source reading the sensor rows straight from a bucket.

    Rows are stored as `<measurement>,sensor_id=..,owner_id=.. id=..,value=..`.
    The blocking client runs in a worker thread so the event loop stays free.
    """

    def __init__(
        self,
        *,
        client: InfluxDBClient,
        org: str,
        bucket: str,
        measurement: str,
        lookback_minutes: int,
    ) -> None:
        self._client = client
        self._org = org
        self._bucket = bucket
        self._measurement = measurement
        self._lookback = timedelta(minutes=lookback_minutes)

    async def aclose(self) -> None:
        self._client.close()

    async def get_all_measurements(self) -> list[MeasurementRecord]:
        return await asyncio.to_thread(self._query, None)

    async def get_measurements_by_sensor(self, sensor_id: int) -> list[MeasurementRecord]:
        return await asyncio.to_thread(self._query, int(sensor_id))

    def build_query(self, *, start: datetime, stop: datetime, sensor_id: int | None) -> str:
        sensor_filter = ""
        if sensor_id is not None:
            sensor_filter = (
                f'\n  |> filter(fn: (r) => r["sensor_id"] == {flux_str(str(sensor_id))})'
            )
        return f"""
from(bucket: {flux_str(self._bucket)})
  |> range(start: time(v: {flux_str(to_rfc3339(start))}), stop: time(v: {flux_str(to_rfc3339(stop))}))
  |> filter(fn: (r) => r["_measurement"] == {flux_str(self._measurement)}){sensor_filter}
  |> filter(fn: (r) => r["_field"] == "id" or r["_field"] == "value")
  |> pivot(rowKey: ["_time", "sensor_id", "owner_id"], columnKey: ["_field"], valueColumn: "_value")
  |> group()
  |> sort(columns: ["_time"])
"""

    def _query(self, sensor_id: int | None) -> list[MeasurementRecord]:
        stop = datetime.now(tz=timezone.utc)
        start = stop - self._lookback
        query = self.build_query(start=start, stop=stop, sensor_id=sensor_id)
        try:
            tables = self._client.query_api().query(query=query, org=self._org)
        except Exception as e:  # noqa: BLE001 - normalize storage failures
            raise TransportFailure(f"InfluxDB unavailable ({type(e).__name__})") from e
        return records_from_rows(
            record.values for table in tables for record in table.records
        )


def records_from_rows(rows: Iterable[dict[str, Any]]) -> list[MeasurementRecord]:
    results: list[MeasurementRecord] = []
    for values in rows:
        ts = values.get("_time")
        if not isinstance(ts, datetime):
            continue
        try:
            results.append(
                MeasurementRecord(
                    id=int(values["id"]),
                    sensor_id=int(values["sensor_id"]),
                    owner_id=int(values.get("owner_id") or 0),
                    value=float(values["value"]),
                    timestamp=ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc),
                )
            )
        except (KeyError, TypeError, ValueError):
            logger.debug("Skipping malformed row: %r", values)
            continue
    return results
