from __future__ import annotations

import math
from dataclasses import asdict
from datetime import datetime, timezone, tzinfo

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from sensordash.models.measurement import Channel, MeasurementRecord


class BackendMeasurement(BaseModel):
    """One row of the backend's measurement listing."""

    model_config = ConfigDict(extra="ignore")

    id: int
    sensor_id: int = Field(validation_alias=AliasChoices("sensorsId", "sensorId", "sensor_id"))
    owner_id: int = Field(
        validation_alias=AliasChoices("authentificationId", "ownerId", "owner_id")
    )
    value: float = Field(validation_alias=AliasChoices("valeur", "value"))
    timestamp: datetime = Field(validation_alias=AliasChoices("dateMesure", "timestamp"))

    @field_validator("timestamp")
    @classmethod
    def _timestamp_to_utc(cls, v: datetime) -> datetime:
        # Offsetless times stay naive until to_record knows the local zone.
        if v.tzinfo is None:
            return v
        return v.astimezone(timezone.utc)

    @field_validator("value")
    @classmethod
    def _finite_value(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("value must be a finite number")
        return v

    def to_record(self, naive_tz: tzinfo | None = None) -> MeasurementRecord:
        """Build a record with a UTC timestamp.

        The backend sends wall-clock times without an offset; those are read
        in `naive_tz`, or in the server's local zone when it is None.
        """
        ts = self.timestamp
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=naive_tz) if naive_tz is not None else ts.astimezone()
        return MeasurementRecord(
            id=self.id,
            sensor_id=self.sensor_id,
            owner_id=self.owner_id,
            value=self.value,
            timestamp=ts.astimezone(timezone.utc),
        )


class MeasurementRead(BaseModel):
    id: int
    sensor_id: int
    owner_id: int
    value: float
    timestamp: datetime
    channel: Channel | None = None

    @classmethod
    def from_record(
        cls, record: MeasurementRecord, channel: Channel | None = None
    ) -> "MeasurementRead":
        return cls(channel=channel, **asdict(record))
