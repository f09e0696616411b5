from __future__ import annotations

import json
from datetime import date, datetime, timezone
from pathlib import Path

from sensordash.services.live_state import LiveStateStore
from sensordash.services.reports import (
    DirectoryExportSink,
    build_daily_summary,
    build_json_export,
    daily_summary_filename,
    export_to,
    render_daily_summary,
)
from sensordash.services.windowing import select_windows
from tests.fakes import MemoryExportSink, sample_batch

UPDATED_AT = datetime(2026, 3, 14, 12, 30, 0, tzinfo=timezone.utc)


def _state():
    store = LiveStateStore(tz=timezone.utc)
    return store.apply_windows(select_windows(sample_batch()), now=UPDATED_AT)


def test_json_export_lists_window_records_oldest_first() -> None:
    artifact = build_json_export(_state(), tz=timezone.utc)

    assert artifact.filename == "measurements_data.json"
    assert artifact.media_type == "application/json"
    rows = json.loads(artifact.content.decode("utf-8"))
    assert [r["id"] for r in rows] == [2, 4, 6, 8, 9, 1, 7, 5, 3]
    assert rows[0] == {
        "id": 2,
        "sensor": "Temperature 2",
        "value": 19.0,
        "unit": "°C",
        "date": "2026-03-14 09:00:00",
        "owner_id": 7,
    }
    # Unassigned sensors never reach a window, so never reach an export.
    assert all(r["id"] != 10 for r in rows)
    assert "°C".encode("utf-8") in artifact.content


def test_json_export_of_empty_state() -> None:
    artifact = build_json_export(LiveStateStore().current)
    assert json.loads(artifact.content) == []


def test_daily_summary_text() -> None:
    text = render_daily_summary(_state(), date(2026, 3, 14), tz=timezone.utc)
    lines = text.splitlines()

    assert lines[0] == "Daily Summary - 2026-03-14"
    assert "Temperature: Avg 21.0°C | Min 19.0°C | Max 23.0°C" in lines
    assert "Humidity:    Avg 45.0%  | Min 40.0%  | Max 50.0%" in lines
    assert "Gas:         Detected | Avg 0.5" in lines
    assert "Light:       On | Avg 1.0" in lines
    assert "Water:       Not detected | Avg 0.0" in lines
    assert "- Temperature: 3" in lines
    assert "- Humidity: 2" in lines
    assert "- Water: 1" in lines
    assert "Connection: connected" in lines
    assert lines[-1] == "Last update: 2026-03-14 12:30:00"


def test_daily_summary_before_first_refresh() -> None:
    text = render_daily_summary(LiveStateStore().current, date(2026, 3, 14))
    assert "Connection: disconnected" in text
    assert "Last update: never" in text
    assert "Gas:         Not detected | Avg 0.0" in text


def test_daily_summary_artifact() -> None:
    artifact = build_daily_summary(_state(), date(2026, 1, 2), tz=timezone.utc)
    assert artifact.filename == daily_summary_filename(date(2026, 1, 2))
    assert artifact.filename == "daily_summary_2026-01-02.txt"
    assert artifact.media_type.startswith("text/plain")
    assert artifact.content.decode("utf-8").startswith("Daily Summary - 2026-01-02")


def test_export_to_memory_sink() -> None:
    sink = MemoryExportSink()
    artifact = build_json_export(_state())
    export_to(sink, artifact)
    assert sink.files == {"measurements_data.json": artifact.content}


def test_directory_sink_keeps_files_inside_directory(tmp_path: Path) -> None:
    sink = DirectoryExportSink(tmp_path / "exports")
    sink.write(b"hello", "../../escape.txt")

    assert (tmp_path / "exports" / "escape.txt").read_bytes() == b"hello"
    assert not (tmp_path / "escape.txt").exists()
