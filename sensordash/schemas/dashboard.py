from __future__ import annotations

from dataclasses import asdict
from datetime import datetime

from pydantic import BaseModel, Field

from sensordash.models.dashboard import ChartDescriptor, DashboardState
from sensordash.models.measurement import CHANNELS, Channel
from sensordash.schemas.measurements import MeasurementRead
from sensordash.services.refresh import LoopStatus, RefreshOutcome


class ChannelStatsRead(BaseModel):
    avg: float = 0.0
    min: float = 0.0
    max: float = 0.0


class ChannelOverview(BaseModel):
    channel: Channel
    unit: str
    count: int = Field(ge=0)
    latest: float
    stats: ChannelStatsRead


class DashboardOverview(BaseModel):
    status: LoopStatus
    connected: bool
    last_update: datetime | None = None
    error: str | None = None
    channels: list[ChannelOverview]


class SnapshotRead(BaseModel):
    connected: bool
    last_update: datetime | None = None
    error: str | None = None
    windows: dict[Channel, list[MeasurementRead]]


class ChartRead(BaseModel):
    channel: Channel
    labels: list[str]
    series: list[float]
    axis_min: float
    axis_max: float
    begin_at_zero: bool
    dataset_label: str
    y_title: str
    color: str


class ChartFeedRead(BaseModel):
    revision: int = Field(ge=0)
    connected: bool
    last_update: datetime | None = None
    error: str | None = None
    channels: list[ChannelOverview]
    charts: list[ChartRead]


class RefreshResponse(BaseModel):
    outcome: RefreshOutcome
    connected: bool
    last_update: datetime | None = None
    error: str | None = None


class LoopHealth(BaseModel):
    status: LoopStatus
    running: bool
    generation: int = Field(ge=0)
    interval_seconds: float
    last_outcome: RefreshOutcome | None = None
    connected: bool


def chart_read(chart: ChartDescriptor) -> ChartRead:
    axis_min, axis_max = chart.axis_bounds
    return ChartRead(
        channel=chart.channel,
        labels=list(chart.labels),
        series=list(chart.series),
        axis_min=axis_min,
        axis_max=axis_max,
        begin_at_zero=chart.begin_at_zero,
        dataset_label=chart.dataset_label,
        y_title=chart.y_title,
        color=chart.color,
    )


def channel_overviews(state: DashboardState) -> list[ChannelOverview]:
    return [
        ChannelOverview(
            channel=channel,
            unit=CHANNELS[channel].unit,
            count=len(state.snapshot.window(channel)),
            latest=state.latest[channel],
            stats=ChannelStatsRead(**asdict(state.stats[channel])),
        )
        for channel in Channel
    ]


def overview_read(state: DashboardState, status: LoopStatus) -> DashboardOverview:
    snapshot = state.snapshot
    return DashboardOverview(
        status=status,
        connected=snapshot.connected,
        last_update=snapshot.last_update,
        error=snapshot.error,
        channels=channel_overviews(state),
    )


def snapshot_read(state: DashboardState) -> SnapshotRead:
    snapshot = state.snapshot
    return SnapshotRead(
        connected=snapshot.connected,
        last_update=snapshot.last_update,
        error=snapshot.error,
        windows={
            channel: [
                MeasurementRead.from_record(r, channel) for r in snapshot.window(channel)
            ]
            for channel in Channel
        },
    )


def chart_feed_read(state: DashboardState, revision: int) -> ChartFeedRead:
    snapshot = state.snapshot
    return ChartFeedRead(
        revision=revision,
        connected=snapshot.connected,
        last_update=snapshot.last_update,
        error=snapshot.error,
        channels=channel_overviews(state),
        charts=[chart_read(state.charts[channel]) for channel in Channel],
    )
