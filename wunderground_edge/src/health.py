"""
Health file writer for the uploader daemon.

Writes a JSON health file at a configurable path with three fields:
- last_refresh_ts: ISO timestamp of the most recent refresh tick.
- last_upload_ts: ISO timestamp of the most recent accepted upload.
- status: Uploader status ("running" or "not configured").

The file is rewritten on every state change, providing a simple liveness
signal that Docker HEALTHCHECK or monitoring can inspect.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path


class HealthWriter:
    """Writes uploader health status to a JSON file.

    Each mutating method updates the in-memory state and immediately
    rewrites the health file so it always reflects the latest status.

    Args:
        path: Filesystem path for the health JSON file. Accepts str or Path.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._last_refresh_ts: str | None = None
        self._last_upload_ts: str | None = None
        self._status: str = "not configured"

    def record_refresh(self) -> None:
        """Record a refresh tick and write health file."""
        self._last_refresh_ts = datetime.now(tz=UTC).isoformat()
        self._write()

    def record_upload(self) -> None:
        """Record an accepted upload and write health file."""
        self._last_upload_ts = datetime.now(tz=UTC).isoformat()
        self._write()

    def set_status(self, status: str) -> None:
        """Update the uploader status and write health file.

        Args:
            status: Current uploader status value.
        """
        self._status = status
        self._write()

    def _write(self) -> None:
        data = {
            "last_refresh_ts": self._last_refresh_ts,
            "last_upload_ts": self._last_upload_ts,
            "status": self._status,
        }
        self.path.write_text(json.dumps(data))
