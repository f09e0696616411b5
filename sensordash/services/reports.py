from __future__ import annotations

import json
import logging
from datetime import date, datetime, tzinfo
from pathlib import Path
from typing import Protocol

from sensordash.models.dashboard import DashboardState, ExportArtifact
from sensordash.models.measurement import Channel, sensor_name, sensor_unit

logger = logging.getLogger(__name__)

JSON_EXPORT_FILENAME = "measurements_data.json"


class ExportSink(Protocol):
    def write(self, data: bytes, suggested_filename: str) -> None: ...


class DirectoryExportSink:
    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    def write(self, data: bytes, suggested_filename: str) -> None:
        self._directory.mkdir(parents=True, exist_ok=True)
        # Never let a suggested name escape the export directory.
        target = self._directory / Path(suggested_filename).name
        target.write_bytes(data)
        logger.info("Wrote export %s (%d bytes)", target, len(data))


def export_to(sink: ExportSink, artifact: ExportArtifact) -> None:
    sink.write(artifact.content, artifact.filename)


def _format_datetime(ts: datetime, tz: tzinfo | None) -> str:
    return ts.astimezone(tz).strftime("%Y-%m-%d %H:%M:%S")


def build_json_export(state: DashboardState, tz: tzinfo | None = None) -> ExportArtifact:
    rows = [
        {
            "id": r.id,
            "sensor": sensor_name(r.sensor_id),
            "value": r.value,
            "unit": sensor_unit(r.sensor_id),
            "date": _format_datetime(r.timestamp, tz),
            "owner_id": r.owner_id,
        }
        for r in state.snapshot.records()
    ]
    content = json.dumps(rows, indent=2, ensure_ascii=False).encode("utf-8")
    return ExportArtifact(
        content=content, filename=JSON_EXPORT_FILENAME, media_type="application/json"
    )


def daily_summary_filename(today: date) -> str:
    return f"daily_summary_{today.isoformat()}.txt"


def _flag(value: float, on: str, off: str) -> str:
    return on if value else off


def render_daily_summary(
    state: DashboardState, today: date, tz: tzinfo | None = None
) -> str:
    temp = state.stats[Channel.TEMPERATURE]
    hum = state.stats[Channel.HUMIDITY]
    gas = state.stats[Channel.GAS]
    light = state.stats[Channel.LIGHT]
    water = state.stats[Channel.WATER]
    snapshot = state.snapshot
    last_update = (
        _format_datetime(snapshot.last_update, tz) if snapshot.last_update else "never"
    )

    lines = [
        f"Daily Summary - {today.isoformat()}",
        "",
        f"Temperature: Avg {temp.avg:.1f}°C | Min {temp.min:.1f}°C | Max {temp.max:.1f}°C",
        f"Humidity:    Avg {hum.avg:.1f}%  | Min {hum.min:.1f}%  | Max {hum.max:.1f}%",
        f"Gas:         {_flag(state.latest[Channel.GAS], 'Detected', 'Not detected')}"
        f" | Avg {gas.avg:.1f}",
        f"Light:       {_flag(state.latest[Channel.LIGHT], 'On', 'Off')}"
        f" | Avg {light.avg:.1f}",
        f"Water:       {_flag(state.latest[Channel.WATER], 'Detected', 'Not detected')}"
        f" | Avg {water.avg:.1f}",
        "",
        "Measurement counts:",
        f"- Temperature: {len(snapshot.window(Channel.TEMPERATURE))}",
        f"- Humidity: {len(snapshot.window(Channel.HUMIDITY))}",
        f"- Gas: {len(snapshot.window(Channel.GAS))}",
        f"- Light: {len(snapshot.window(Channel.LIGHT))}",
        f"- Water: {len(snapshot.window(Channel.WATER))}",
        "",
        f"Connection: {'connected' if snapshot.connected else 'disconnected'}",
        f"Last update: {last_update}",
    ]
    return "\n".join(lines) + "\n"


def build_daily_summary(
    state: DashboardState, today: date, tz: tzinfo | None = None
) -> ExportArtifact:
    text = render_daily_summary(state, today, tz)
    return ExportArtifact(
        content=text.encode("utf-8"),
        filename=daily_summary_filename(today),
        media_type="text/plain; charset=utf-8",
    )
