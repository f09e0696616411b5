from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Channel(str, Enum):
    TEMPERATURE = "temperature"
    HUMIDITY = "humidity"
    GAS = "gas"
    LIGHT = "light"
    WATER = "water"


class ChannelKind(str, Enum):
    CONTINUOUS = "continuous"
    BOOLEAN = "boolean"


@dataclass(frozen=True)
class ChannelInfo:
    channel: Channel
    sensor_ids: frozenset[int]
    kind: ChannelKind
    unit: str
    dataset_label: str
    y_title: str
    color: str

    @property
    def is_boolean(self) -> bool:
        return self.kind is ChannelKind.BOOLEAN


CHANNELS: dict[Channel, ChannelInfo] = {
    Channel.TEMPERATURE: ChannelInfo(
        channel=Channel.TEMPERATURE,
        sensor_ids=frozenset({1, 6}),
        kind=ChannelKind.CONTINUOUS,
        unit="°C",
        dataset_label="Temperature (°C)",
        y_title="Temp (°C)",
        color="#3b82f6",
    ),
    Channel.HUMIDITY: ChannelInfo(
        channel=Channel.HUMIDITY,
        sensor_ids=frozenset({2}),
        kind=ChannelKind.CONTINUOUS,
        unit="%",
        dataset_label="Humidity (%)",
        y_title="Humidity (%)",
        color="#10b981",
    ),
    Channel.GAS: ChannelInfo(
        channel=Channel.GAS,
        sensor_ids=frozenset({3}),
        kind=ChannelKind.BOOLEAN,
        unit="boolean",
        dataset_label="Gas (boolean)",
        y_title="Gas (0/1)",
        color="#f59e0b",
    ),
    Channel.LIGHT: ChannelInfo(
        channel=Channel.LIGHT,
        sensor_ids=frozenset({4}),
        kind=ChannelKind.BOOLEAN,
        unit="boolean",
        dataset_label="Light (boolean)",
        y_title="Light (0/1)",
        color="#eab308",
    ),
    Channel.WATER: ChannelInfo(
        channel=Channel.WATER,
        sensor_ids=frozenset({5}),
        kind=ChannelKind.BOOLEAN,
        unit="boolean",
        dataset_label="Water (boolean)",
        y_title="Water (0/1)",
        color="#06b6d4",
    ),
}

SENSOR_NAMES: dict[int, str] = {
    1: "Temperature 1",
    2: "Humidity",
    3: "Gas",
    4: "Light",
    5: "Water",
    6: "Temperature 2",
}

SENSOR_UNITS: dict[int, str] = {
    1: "°C",
    2: "%",
    3: "boolean",
    4: "boolean",
    5: "boolean",
    6: "°C",
}


def sensor_name(sensor_id: int) -> str:
    return SENSOR_NAMES.get(sensor_id, f"Sensor {sensor_id}")


def sensor_unit(sensor_id: int) -> str:
    return SENSOR_UNITS.get(sensor_id, "")


@dataclass(frozen=True)
class MeasurementRecord:
    id: int
    sensor_id: int
    owner_id: int
    value: float
    timestamp: datetime
