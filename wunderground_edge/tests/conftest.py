"""
Shared test fixtures for the uploader test suite.

Provides environment variable isolation for UploaderSettings tests, a
recording HTTP channel test double, and an in-memory registry with a
published weather station device.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

import pytest
from wunderground_edge.src.registry import InMemoryRegistry
from wunderground_edge.src.uploader import Uploader

# All UploaderSettings environment variable names, used for cleanup.
_ALL_UPLOADER_ENV_VARS = (
    "DEVICE_ID",
    "PWS_ID",
    "PWS_PASSWORD",
    "UPDATE_URL",
    "REFRESH_INTERVAL_S",
    "REQUEST_TIMEOUT_S",
    "READINGS_PATH",
    "HEALTH_PATH",
    "LOG_LEVEL",
)


class RecordingChannel:
    """HTTP channel test double that records URLs instead of sending them."""

    def __init__(self) -> None:
        self.urls: list[str] = []
        self.listeners: list[object] = []

    def send(self, url: str, listener: object) -> None:
        self.urls.append(url)
        self.listeners.append(listener)

    @property
    def count(self) -> int:
        return len(self.urls)

    def clear(self) -> None:
        self.urls.clear()
        self.listeners.clear()


@pytest.fixture(autouse=True)
def _clean_uploader_env(monkeypatch: pytest.MonkeyPatch, tmp_path: str) -> None:
    """Remove all uploader env vars and isolate from .env files before each test."""
    for var in _ALL_UPLOADER_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture()
def registry() -> InMemoryRegistry:
    registry = InMemoryRegistry()
    registry.register_device("station-1")
    return registry


@pytest.fixture()
def uploader(registry: InMemoryRegistry, channel: RecordingChannel) -> Uploader:
    """Uploader bound to the station device, without credentials."""
    uploader = Uploader(registry=registry, channel=channel)
    uploader.configure(source="station-1", pws_id=None, pws_password=None)
    return uploader


@pytest.fixture()
def configured_uploader(uploader: Uploader) -> Uploader:
    """Uploader with device and credentials set (status running)."""
    uploader.configure(source="station-1", pws_id="foo", pws_password="bar")
    return uploader


@pytest.fixture()
def env_vars_full(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set every UploaderSettings environment variable."""
    env = {
        "DEVICE_ID": "station-1",
        "PWS_ID": "KCASANFR1",
        "PWS_PASSWORD": "s3cret",
        "UPDATE_URL": "https://rtupdate.example.com/weatherstation/updateweatherstation.php",
        "REFRESH_INTERVAL_S": "60",
        "REQUEST_TIMEOUT_S": "12.5",
        "READINGS_PATH": "/tmp/readings.json",
        "HEALTH_PATH": "/tmp/health.json",
        "LOG_LEVEL": "debug",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env
