"""
Uploader configuration loaded from environment variables.

Uses Pydantic BaseSettings for automatic env var loading and validation.
The weather station device and PWS credentials are optional here: a missing
value leaves the uploader in the "not configured" state instead of failing
startup, so the daemon can be configured later and reloaded with SIGHUP.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings

from wunderground_edge.src.request import DEFAULT_UPDATE_URL


class UploaderSettings(BaseSettings):
    """Weather Underground uploader configuration.

    Attributes:
        device_id: Registry identifier of the weather station device.
        pws_id: Personal Weather Station ID.
        pws_password: Personal Weather Station password. Never logged.
        update_url: PWS update endpoint (http:// or https://).
        refresh_interval_s: Seconds between refresh ticks.
        request_timeout_s: Timeout for a single update request in seconds.
        readings_path: JSON snapshot file the registry reads readings from.
        health_path: Health JSON file path.
        log_level: Root log level name.
    """

    device_id: str | None = None
    pws_id: str | None = None
    pws_password: str | None = None
    update_url: str = DEFAULT_UPDATE_URL
    refresh_interval_s: int = 300
    request_timeout_s: float = 30.0
    readings_path: str = "/data/readings.json"
    health_path: str = "/data/health.json"
    log_level: str = "INFO"

    @field_validator("update_url")
    @classmethod
    def update_url_must_be_http(cls, v: str) -> str:
        """Validate that the update URL is an absolute http(s) URL without a query."""
        if not v.lower().startswith(("http://", "https://")):
            raise ValueError(f"UPDATE_URL must use http:// or https:// (got: '{v[:30]}')")
        if "?" in v:
            raise ValueError("UPDATE_URL must not contain a query string")
        return v

    @field_validator("refresh_interval_s")
    @classmethod
    def refresh_interval_must_be_positive(cls, v: int) -> int:
        """Validate refresh interval is at least one second."""
        if v < 1:
            raise ValueError("REFRESH_INTERVAL_S must be >= 1")
        return v

    @field_validator("request_timeout_s")
    @classmethod
    def request_timeout_must_be_positive(cls, v: float) -> float:
        """Validate request timeout is positive."""
        if v <= 0:
            raise ValueError("REQUEST_TIMEOUT_S must be > 0")
        return v

    @field_validator("log_level")
    @classmethod
    def log_level_must_be_known(cls, v: str) -> str:
        """Validate and normalise the log level name."""
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"LOG_LEVEL must be a standard level name (got: '{v}')")
        return level

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}
