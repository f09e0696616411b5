from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Response

from sensordash.api.attachments import daily_summary_response, json_export_response
from sensordash.api.deps import (
    ReadUser,
    RefreshUser,
    get_chart_feed,
    get_live_state,
    get_refresh_loop,
    get_settings,
)
from sensordash.core.config import Settings
from sensordash.schemas.dashboard import (
    ChartFeedRead,
    DashboardOverview,
    LoopHealth,
    RefreshResponse,
    SnapshotRead,
    chart_feed_read,
    overview_read,
    snapshot_read,
)
from sensordash.services.live_state import ChartFeed, LiveStateStore
from sensordash.services.refresh import RefreshLoop

router = APIRouter(prefix="/dashboard")

Store = Annotated[LiveStateStore, Depends(get_live_state)]
Loop = Annotated[RefreshLoop, Depends(get_refresh_loop)]


@router.get("", response_model=DashboardOverview)
def overview(_: ReadUser, store: Store, loop: Loop) -> DashboardOverview:
    return overview_read(store.current, loop.status)


@router.get("/snapshot", response_model=SnapshotRead)
def snapshot(_: ReadUser, store: Store) -> SnapshotRead:
    return snapshot_read(store.current)


@router.get("/charts", response_model=ChartFeedRead)
def charts(
    _: ReadUser,
    store: Store,
    feed: Annotated[ChartFeed, Depends(get_chart_feed)],
) -> ChartFeedRead:
    return chart_feed_read(store.current, feed.revision)


@router.post("/refresh", response_model=RefreshResponse)
async def refresh(_: RefreshUser, store: Store, loop: Loop) -> RefreshResponse:
    outcome = await loop.refresh_now()
    snap = store.snapshot
    return RefreshResponse(
        outcome=outcome,
        connected=snap.connected,
        last_update=snap.last_update,
        error=snap.error,
    )


@router.get("/export/json")
def export_json(
    _: ReadUser,
    store: Store,
    settings: Annotated[Settings, Depends(get_settings)],
) -> Response:
    return json_export_response(store.current, settings)


@router.get("/export/summary")
def export_summary(
    _: ReadUser,
    store: Store,
    settings: Annotated[Settings, Depends(get_settings)],
) -> Response:
    return daily_summary_response(store.current, settings)


@router.get("/health", tags=["meta"], response_model=LoopHealth)
def health(store: Store, loop: Loop) -> LoopHealth:
    return LoopHealth(
        status=loop.status,
        running=loop.running,
        generation=loop.generation,
        interval_seconds=loop.interval_seconds,
        last_outcome=loop.last_outcome,
        connected=store.snapshot.connected,
    )
