from __future__ import annotations

import logging
from datetime import tzinfo
from typing import Any

import httpx
from pydantic import TypeAdapter, ValidationError

from sensordash.models.measurement import MeasurementRecord
from sensordash.repositories.base import TransportFailure
from sensordash.schemas.measurements import BackendMeasurement

logger = logging.getLogger(__name__)

DEFAULT_MEASUREMENTS_PATH = "api/Mesure"

_rows_adapter = TypeAdapter(list[BackendMeasurement])


class BackendClient:
    """Measurement source backed by the sensor backend's REST API."""

    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: float,
        measurements_path: str = DEFAULT_MEASUREMENTS_PATH,
        naive_tz: tzinfo | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._path = measurements_path.strip("/")
        self._naive_tz = naive_tz
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_seconds,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_all_measurements(self) -> list[MeasurementRecord]:
        return await self._get_records(f"/{self._path}")

    async def get_measurements_by_sensor(self, sensor_id: int) -> list[MeasurementRecord]:
        return await self._get_records(f"/{self._path}/{int(sensor_id)}")

    async def _get_records(self, path: str) -> list[MeasurementRecord]:
        try:
            resp = await self._client.get(path)
            resp.raise_for_status()
            payload: Any = resp.json()
        except httpx.HTTPStatusError as e:
            raise TransportFailure(f"HTTP {e.response.status_code} from {path}") from e
        except httpx.HTTPError as e:
            raise TransportFailure(f"{type(e).__name__} while requesting {path}") from e
        except ValueError as e:
            raise TransportFailure(f"Invalid JSON from {path}") from e

        if isinstance(payload, dict):
            # A single row comes back as an object, not a list.
            payload = [payload]
        try:
            rows = _rows_adapter.validate_python(payload)
        except ValidationError as e:
            logger.debug("Rejected payload from %s: %s", path, e)
            raise TransportFailure(f"Unexpected response shape from {path}") from e
        return [row.to_record(self._naive_tz) for row in rows]
