from __future__ import annotations

from datetime import datetime
from typing import Annotated
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Form, Query, Request
from fastapi.responses import RedirectResponse

from sensordash.api.deps import (
    authenticate_user,
    get_chart_feed,
    get_live_state,
    get_refresh_loop,
    get_settings,
    start_live_updates,
)
from sensordash.core.config import Settings
from sensordash.schemas.auth import User
from sensordash.schemas.dashboard import ChartFeedRead, chart_feed_read, overview_read
from sensordash.services.live_state import ChartFeed, LiveStateStore
from sensordash.services.refresh import RefreshLoop, RefreshOutcome
from sensordash.web.deps import (
    csrf_protect,
    ensure_csrf_token,
    require_session_user,
    require_session_user_json,
    start_session,
)
from sensordash.web.templates import templates

router = APIRouter()

REFRESH_MESSAGES: dict[RefreshOutcome, tuple[str | None, str | None]] = {
    RefreshOutcome.APPLIED: ("Measurements refreshed.", None),
    RefreshOutcome.EMPTY_BATCH: ("Backend returned no measurements; showing last data.", None),
    RefreshOutcome.TRANSPORT_FAILURE: (None, "Backend unavailable; showing last known data."),
    RefreshOutcome.SUPERSEDED: ("A newer refresh is already in progress.", None),
    RefreshOutcome.STOPPED: (None, "Live updates are stopped."),
}


def _redirect_with_flash(url: str, *, message: str | None, error: str | None):
    query: dict[str, str] = {}
    if message:
        query["message"] = message
    if error:
        query["error"] = error
    if query:
        url = f"{url}?{urlencode(query)}"
    return RedirectResponse(url, status_code=303)


def _format_timestamp(value: datetime | None, settings: Settings) -> str:
    if value is None:
        return "never"
    return value.astimezone(settings.display_tz).strftime("%Y-%m-%d %H:%M:%S")


@router.get("/", include_in_schema=False)
def ui_index(request: Request):
    if request.session.get("user"):
        return RedirectResponse("/ui/dashboard", status_code=303)
    return RedirectResponse("/ui/login", status_code=303)


@router.get("/login", include_in_schema=False)
def login_page(request: Request):
    csrf_token = ensure_csrf_token(request)
    return templates.TemplateResponse(
        request,
        "login.html",
        {"request": request, "title": "Login", "csrf_token": csrf_token},
    )


@router.post("/login", include_in_schema=False, dependencies=[Depends(csrf_protect)])
async def login_submit(
    request: Request,
    username: Annotated[str, Form(min_length=1, max_length=64)],
    password: Annotated[str, Form(min_length=1, max_length=256)],
    settings: Annotated[Settings, Depends(get_settings)],
):
    user = authenticate_user(username=username, password=password, settings=settings)
    if not user:
        csrf_token = ensure_csrf_token(request)
        return templates.TemplateResponse(
            request,
            "login.html",
            {
                "request": request,
                "title": "Login",
                "csrf_token": csrf_token,
                "error": "Invalid username or password",
            },
            status_code=401,
        )

    start_session(request, user)
    live = await start_live_updates(request)
    return _redirect_with_flash(
        "/ui/dashboard",
        message=None,
        error=None if live else "Live updates could not be started.",
    )


@router.get("/logout", include_in_schema=False)
def logout(request: Request):
    request.session.clear()
    return RedirectResponse("/ui/login", status_code=303)


@router.get("/dashboard", include_in_schema=False)
def dashboard(
    request: Request,
    user: Annotated[User, Depends(require_session_user)],
    store: Annotated[LiveStateStore, Depends(get_live_state)],
    loop: Annotated[RefreshLoop, Depends(get_refresh_loop)],
    settings: Annotated[Settings, Depends(get_settings)],
    message: Annotated[str | None, Query(max_length=200)] = None,
    flash_error: Annotated[str | None, Query(max_length=200, alias="error")] = None,
):
    csrf_token = ensure_csrf_token(request)
    state = store.current
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "request": request,
            "title": "Dashboard",
            "user": user,
            "csrf_token": csrf_token,
            "overview": overview_read(state, loop.status),
            "last_update": _format_timestamp(state.snapshot.last_update, settings),
            "refresh_ms": int(settings.refresh_interval_seconds * 1000),
            "message": message,
            "error": flash_error,
        },
    )


@router.get("/dashboard/live.json", include_in_schema=False, response_model=ChartFeedRead)
def dashboard_live(
    _: Annotated[User, Depends(require_session_user_json)],
    store: Annotated[LiveStateStore, Depends(get_live_state)],
    feed: Annotated[ChartFeed, Depends(get_chart_feed)],
) -> ChartFeedRead:
    return chart_feed_read(store.current, feed.revision)


@router.post("/refresh", include_in_schema=False, dependencies=[Depends(csrf_protect)])
async def refresh(
    _: Annotated[User, Depends(require_session_user)],
    loop: Annotated[RefreshLoop, Depends(get_refresh_loop)],
):
    outcome = await loop.refresh_now()
    message, error = REFRESH_MESSAGES[outcome]
    return _redirect_with_flash("/ui/dashboard", message=message, error=error)
