from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Response

from sensordash.api.attachments import daily_summary_response, json_export_response
from sensordash.api.deps import get_live_state, get_settings
from sensordash.core.config import Settings
from sensordash.schemas.auth import User
from sensordash.services.live_state import LiveStateStore
from sensordash.web.deps import require_session_user

router = APIRouter(prefix="/export")


@router.get("/json", include_in_schema=False)
def export_json(
    _: Annotated[User, Depends(require_session_user)],
    store: Annotated[LiveStateStore, Depends(get_live_state)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Response:
    return json_export_response(store.current, settings)


@router.get("/summary", include_in_schema=False)
def export_summary(
    _: Annotated[User, Depends(require_session_user)],
    store: Annotated[LiveStateStore, Depends(get_live_state)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Response:
    return daily_summary_response(store.current, settings)
