from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Mapping

from sensordash.models.measurement import Channel, MeasurementRecord

Window = tuple[MeasurementRecord, ...]


def _empty_windows() -> Mapping[Channel, Window]:
    return MappingProxyType({channel: () for channel in Channel})


@dataclass(frozen=True)
class Snapshot:
    windows: Mapping[Channel, Window] = field(default_factory=_empty_windows)
    last_update: datetime | None = None
    connected: bool = False
    error: str | None = None

    def window(self, channel: Channel) -> Window:
        return self.windows.get(channel, ())

    def records(self) -> list[MeasurementRecord]:
        flat = [r for channel in Channel for r in self.window(channel)]
        flat.sort(key=lambda r: r.timestamp)
        return flat


@dataclass(frozen=True)
class ChannelStats:
    avg: float = 0.0
    min: float = 0.0
    max: float = 0.0


@dataclass(frozen=True)
class ChartDescriptor:
    channel: Channel
    labels: tuple[str, ...]
    series: tuple[float, ...]
    axis_bounds: tuple[float, float]
    begin_at_zero: bool
    dataset_label: str
    y_title: str
    color: str


@dataclass(frozen=True)
class DashboardState:
    """Snapshot plus everything derived from it.

    Built in one go after each successful refresh and swapped in as a whole,
    so readers never see stats or charts from a different snapshot.
    """

    snapshot: Snapshot
    stats: Mapping[Channel, ChannelStats]
    charts: Mapping[Channel, ChartDescriptor]
    latest: Mapping[Channel, float]


@dataclass(frozen=True)
class ExportArtifact:
    content: bytes
    filename: str
    media_type: str
