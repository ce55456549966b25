"""
Unit tests for the uploader health writer module.

Tests verify:
- HealthWriter.record_refresh() writes health.json with last_refresh_ts.
- HealthWriter.record_upload() updates last_upload_ts.
- HealthWriter.set_status() updates status.
- Health file always contains all three fields.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

import json
from pathlib import Path

from wunderground_edge.src.health import HealthWriter


class TestRecordRefresh:
    """record_refresh() creates/updates the health JSON file."""

    def test_record_refresh_writes_health_file(self, tmp_path: Path) -> None:
        health_path = tmp_path / "health.json"
        writer = HealthWriter(health_path)

        writer.record_refresh()

        data = json.loads(health_path.read_text())
        assert isinstance(data["last_refresh_ts"], str)
        assert "T" in data["last_refresh_ts"]
        assert data["last_upload_ts"] is None


class TestRecordUpload:
    def test_record_upload_updates_last_upload_ts(self, tmp_path: Path) -> None:
        health_path = tmp_path / "health.json"
        writer = HealthWriter(health_path)

        writer.record_upload()

        data = json.loads(health_path.read_text())
        assert data["last_upload_ts"] is not None

    def test_upload_does_not_clear_refresh(self, tmp_path: Path) -> None:
        health_path = tmp_path / "health.json"
        writer = HealthWriter(health_path)

        writer.record_refresh()
        writer.record_upload()

        data = json.loads(health_path.read_text())
        assert data["last_refresh_ts"] is not None
        assert data["last_upload_ts"] is not None


class TestSetStatus:
    def test_default_status(self, tmp_path: Path) -> None:
        health_path = tmp_path / "health.json"
        HealthWriter(health_path).record_refresh()

        assert json.loads(health_path.read_text())["status"] == "not configured"

    def test_set_status(self, tmp_path: Path) -> None:
        health_path = tmp_path / "health.json"
        writer = HealthWriter(str(health_path))

        writer.set_status("running")

        data = json.loads(health_path.read_text())
        assert set(data) == {"last_refresh_ts", "last_upload_ts", "status"}
        assert data["status"] == "running"
