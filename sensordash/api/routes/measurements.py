from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, status

from sensordash.api.deps import ReadUser, get_measurement_source, get_settings
from sensordash.core.config import Settings
from sensordash.repositories.base import MeasurementSource, TransportFailure
from sensordash.schemas.measurements import MeasurementRead
from sensordash.services.classifier import classify_sensor

router = APIRouter(prefix="/measurements")


@router.get("/sensors/{sensor_id}", response_model=list[MeasurementRead])
async def sensor_measurements(
    _: ReadUser,
    sensor_id: Annotated[int, Path(ge=1)],
    source: Annotated[MeasurementSource, Depends(get_measurement_source)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> list[MeasurementRead]:
    """Newest readings of one sensor, fetched live, oldest first."""
    try:
        records = await source.get_measurements_by_sensor(sensor_id)
    except TransportFailure as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Measurement backend unavailable",
        ) from e

    records = [r for r in records if r.sensor_id == sensor_id]
    newest = sorted(records, key=lambda r: r.timestamp, reverse=True)[: settings.window_size]
    channel = classify_sensor(sensor_id)
    return [
        MeasurementRead.from_record(r, channel)
        for r in sorted(newest, key=lambda r: r.timestamp)
    ]
