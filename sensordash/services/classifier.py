from __future__ import annotations

from sensordash.models.measurement import CHANNELS, Channel, MeasurementRecord

_CHANNEL_BY_SENSOR: dict[int, Channel] = {
    sensor_id: info.channel
    for info in CHANNELS.values()
    for sensor_id in info.sensor_ids
}


def classify_sensor(sensor_id: int) -> Channel | None:
    return _CHANNEL_BY_SENSOR.get(sensor_id)


def classify(record: MeasurementRecord) -> Channel | None:
    """Channel for a record, or None when its sensor belongs to no channel."""
    return classify_sensor(record.sensor_id)
