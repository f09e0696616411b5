from __future__ import annotations

from typing import Protocol

from sensordash.models.measurement import MeasurementRecord


class TransportFailure(Exception):
    """The measurement source could not deliver a batch."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class MeasurementSource(Protocol):
    async def get_all_measurements(self) -> list[MeasurementRecord]: ...

    async def get_measurements_by_sensor(self, sensor_id: int) -> list[MeasurementRecord]: ...

    async def aclose(self) -> None: ...
