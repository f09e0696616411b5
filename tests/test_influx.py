from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from sensordash.repositories.base import TransportFailure
from sensordash.repositories.influx import (
    InfluxMeasurementSource,
    flux_str,
    records_from_rows,
    to_rfc3339,
)


class _FailingQueryApi:
    def query(self, query: str, org: str):
        raise ConnectionError("influx down")


class _StaticQueryApi:
    def __init__(self, rows):
        self.rows = rows
        self.queries: list[str] = []

    def query(self, query: str, org: str):
        self.queries.append(query)
        records = [SimpleNamespace(values=row) for row in self.rows]
        return [SimpleNamespace(records=records)]


class _FakeInfluxClient:
    def __init__(self, query_api) -> None:
        self._query_api = query_api
        self.closed = False

    def query_api(self):
        return self._query_api

    def close(self) -> None:
        self.closed = True


def _source(query_api) -> InfluxMeasurementSource:
    return InfluxMeasurementSource(
        client=_FakeInfluxClient(query_api),
        org="org",
        bucket="sensors",
        measurement="sensor_measurements",
        lookback_minutes=60,
    )


def test_flux_helpers() -> None:
    assert to_rfc3339(datetime(2026, 3, 14, 9, 0)) == "2026-03-14T09:00:00Z"
    assert flux_str('a"b\\c') == '"a\\"b\\\\c"'


def test_build_query_filters_by_sensor() -> None:
    source = _source(_StaticQueryApi([]))
    start = datetime(2026, 3, 14, 8, 0, tzinfo=timezone.utc)
    stop = datetime(2026, 3, 14, 9, 0, tzinfo=timezone.utc)

    everything = source.build_query(start=start, stop=stop, sensor_id=None)
    one = source.build_query(start=start, stop=stop, sensor_id=3)

    assert 'from(bucket: "sensors")' in everything
    assert '"2026-03-14T08:00:00Z"' in everything
    assert 'r["_measurement"] == "sensor_measurements"' in everything
    assert "sensor_id\"] ==" not in everything
    assert 'r["sensor_id"] == "3"' in one


def test_records_from_rows_skips_malformed() -> None:
    ts = datetime(2026, 3, 14, 9, 0, tzinfo=timezone.utc)
    rows = [
        {"_time": ts, "id": 1, "sensor_id": "2", "owner_id": "5", "value": 41.5},
        {"_time": ts, "id": 2, "sensor_id": "2", "value": None},
        {"_time": None, "id": 3, "sensor_id": "2", "value": 1.0},
        {"_time": ts, "sensor_id": "2", "value": 1.0},
        {"_time": datetime(2026, 3, 14, 9, 5), "id": 4, "sensor_id": "4", "value": 1},
    ]

    records = records_from_rows(rows)

    assert [r.id for r in records] == [1, 4]
    assert records[0].sensor_id == 2
    assert records[0].owner_id == 5
    assert records[1].owner_id == 0
    assert records[1].timestamp.tzinfo is timezone.utc


@pytest.mark.anyio
async def test_query_rows_become_records() -> None:
    ts = datetime(2026, 3, 14, 9, 0, tzinfo=timezone.utc)
    api = _StaticQueryApi(
        [{"_time": ts, "id": 9, "sensor_id": "5", "owner_id": "1", "value": 0.0}]
    )
    source = _source(api)

    records = await source.get_measurements_by_sensor(5)

    assert [r.id for r in records] == [9]
    assert 'r["sensor_id"] == "5"' in api.queries[0]


@pytest.mark.anyio
async def test_query_failure_becomes_transport_failure() -> None:
    source = _source(_FailingQueryApi())
    with pytest.raises(TransportFailure) as excinfo:
        await source.get_all_measurements()
    assert "InfluxDB unavailable" in excinfo.value.reason

    await source.aclose()
    assert source._client.closed is True
