from __future__ import annotations

from dataclasses import replace
from datetime import datetime, tzinfo
from types import MappingProxyType
from typing import Mapping, Protocol

from sensordash.models.dashboard import DashboardState, Snapshot, Window
from sensordash.models.measurement import Channel
from sensordash.services.charts import project_all
from sensordash.services.statistics import compute_all, latest_value


def build_state(snapshot: Snapshot, tz: tzinfo | None = None) -> DashboardState:
    stats = compute_all(snapshot.windows)
    charts = project_all(snapshot.windows, stats, tz)
    latest = {channel: latest_value(snapshot.window(channel)) for channel in Channel}
    return DashboardState(
        snapshot=snapshot,
        stats=MappingProxyType(stats),
        charts=MappingProxyType(charts),
        latest=MappingProxyType(latest),
    )


class LiveStateStore:
    """Holds the one current DashboardState.

    There is a single writer (the refresh loop) and every write swaps the
    whole state object, so readers need no lock.
    """

    def __init__(self, tz: tzinfo | None = None) -> None:
        self._tz = tz
        self._state = build_state(Snapshot(), tz)

    @property
    def current(self) -> DashboardState:
        return self._state

    @property
    def snapshot(self) -> Snapshot:
        return self._state.snapshot

    def apply_windows(
        self, windows: Mapping[Channel, Window], *, now: datetime
    ) -> DashboardState:
        snapshot = Snapshot(
            windows=MappingProxyType(dict(windows)),
            last_update=now,
            connected=True,
            error=None,
        )
        self._state = build_state(snapshot, self._tz)
        return self._state

    def mark_failed(self, error: str) -> DashboardState:
        snapshot = replace(self._state.snapshot, connected=False, error=error)
        self._state = replace(self._state, snapshot=snapshot)
        return self._state


class RenderSink(Protocol):
    def update(self, state: DashboardState) -> None: ...


class ChartFeed:
    """Render sink backing the browser dashboard.

    Every update bumps `revision`; clients poll and redraw when it changes.
    """

    def __init__(self) -> None:
        self._revision = 0

    @property
    def revision(self) -> int:
        return self._revision

    def update(self, state: DashboardState) -> None:
        self._revision += 1
