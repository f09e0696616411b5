from __future__ import annotations

from datetime import datetime

from fastapi import Response

from sensordash.core.config import Settings
from sensordash.models.dashboard import DashboardState, ExportArtifact
from sensordash.services.reports import build_daily_summary, build_json_export, export_to


class AttachmentSink:
    """Export sink that turns the artifact into a download response."""

    def __init__(self, media_type: str = "application/octet-stream") -> None:
        self.media_type = media_type
        self.response: Response | None = None

    def write(self, data: bytes, suggested_filename: str) -> None:
        self.response = Response(
            content=data,
            media_type=self.media_type,
            headers={
                "Content-Disposition": f'attachment; filename="{suggested_filename}"',
                "Cache-Control": "no-store",
            },
        )


def _deliver(artifact: ExportArtifact) -> Response:
    sink = AttachmentSink(artifact.media_type)
    export_to(sink, artifact)
    if sink.response is None:
        raise RuntimeError(f"export {artifact.filename} produced no response")
    return sink.response


def json_export_response(state: DashboardState, settings: Settings) -> Response:
    return _deliver(build_json_export(state, settings.display_tz))


def daily_summary_response(state: DashboardState, settings: Settings) -> Response:
    tz = settings.display_tz
    today = datetime.now(tz=tz).date()
    return _deliver(build_daily_summary(state, today, tz))
