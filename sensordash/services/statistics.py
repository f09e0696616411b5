from __future__ import annotations

from typing import Mapping

from sensordash.models.dashboard import ChannelStats, Window
from sensordash.models.measurement import Channel


def compute_stats(window: Window) -> ChannelStats:
    if not window:
        return ChannelStats()
    values = [r.value for r in window]
    return ChannelStats(
        avg=sum(values) / len(values),
        min=min(values),
        max=max(values),
    )


def latest_value(window: Window) -> float:
    if not window:
        return 0.0
    return window[-1].value


def compute_all(windows: Mapping[Channel, Window]) -> dict[Channel, ChannelStats]:
    return {channel: compute_stats(windows.get(channel, ())) for channel in Channel}
