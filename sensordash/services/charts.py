from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Mapping

from sensordash.models.dashboard import ChannelStats, ChartDescriptor, Window
from sensordash.models.measurement import CHANNELS, Channel

BOOLEAN_AXIS_BOUNDS = (0.0, 1.2)
LOWER_PADDING = 0.9
UPPER_PADDING = 1.1


def format_time_label(ts: datetime, tz: tzinfo | None = None) -> str:
    # astimezone(None) converts to the server's local zone.
    return ts.astimezone(tz).strftime("%H:%M:%S")


def axis_bounds(channel: Channel, stats: ChannelStats) -> tuple[float, float]:
    if CHANNELS[channel].is_boolean:
        return BOOLEAN_AXIS_BOUNDS
    return (stats.min * LOWER_PADDING, stats.max * UPPER_PADDING)


def project(
    channel: Channel,
    window: Window,
    stats: ChannelStats,
    tz: tzinfo | None = None,
) -> ChartDescriptor:
    info = CHANNELS[channel]
    return ChartDescriptor(
        channel=channel,
        labels=tuple(format_time_label(r.timestamp, tz) for r in window),
        series=tuple(r.value for r in window),
        axis_bounds=axis_bounds(channel, stats),
        begin_at_zero=info.is_boolean,
        dataset_label=info.dataset_label,
        y_title=info.y_title,
        color=info.color,
    )


def project_all(
    windows: Mapping[Channel, Window],
    stats: Mapping[Channel, ChannelStats],
    tz: tzinfo | None = None,
) -> dict[Channel, ChartDescriptor]:
    return {
        channel: project(
            channel, windows.get(channel, ()), stats.get(channel, ChannelStats()), tz
        )
        for channel in Channel
    }
