"""
Daemon main loop for the Weather Underground PWS uploader.

Runs a single asyncio refresh loop that calls ``uploader.refresh()`` every
``REFRESH_INTERVAL_S`` seconds. Update requests are dispatched by the
:class:`~wunderground_edge.src.channel.HttpxChannel` as background tasks on
the same event loop, so outcome callbacks never run concurrently with a tick.

The loop is resilient: an exception in one tick is logged and does not crash
the loop. SIGTERM/SIGINT set a shared asyncio.Event for graceful shutdown;
outstanding requests are given a short grace period before the HTTP client is
closed. SIGHUP reloads the settings and re-applies the device and PWS
credentials without resetting upload bookkeeping.

Structured JSON logging is used for all events. A HealthWriter instance
tracks last_refresh_ts, last_upload_ts and the uploader status.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import signal
import sys
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from wunderground_edge.src.health import HealthWriter

if TYPE_CHECKING:
    from wunderground_edge.src.config import UploaderSettings
    from wunderground_edge.src.uploader import Uploader

logger = logging.getLogger(__name__)

_SHUTDOWN_DRAIN_TIMEOUT_S = 5.0


# ---------------------------------------------------------------------------
# Structured JSON logging setup
# ---------------------------------------------------------------------------


def configure_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging for the uploader daemon.

    Sets up the root logger with a JSON-formatted handler writing to stderr.

    Args:
        level: Root log level name.
    """

    class _JsonFormatter(logging.Formatter):
        """Minimal JSON log formatter."""

        def format(self, record: logging.LogRecord) -> str:
            log_entry = {
                "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
            }
            if record.exc_info and record.exc_info[1] is not None:
                log_entry["exception"] = self.formatException(record.exc_info)
            return json.dumps(log_entry)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


def _masked_secret(value: str | None) -> str:
    """Return a short non-reversible fingerprint of a secret for diagnostics."""
    if not value:
        return "empty"
    digest = hashlib.sha256(value.encode("utf-8")).hexdigest()[:10]
    return f"len={len(value)} sha256={digest}"


# ---------------------------------------------------------------------------
# Startup config logging
# ---------------------------------------------------------------------------


def log_config_summary(settings: object) -> None:
    """Log a config summary at startup, excluding secrets.

    The PWS password is replaced by a length and hash fingerprint.

    Args:
        settings: An UploaderSettings instance (or any object with the same attrs).
    """
    logger.info(
        "Uploader starting with config: "
        "device_id=%s, pws_id=%s, update_url=%s, "
        "refresh_interval_s=%s, request_timeout_s=%s, "
        "readings_path=%s, health_path=%s, pws_password_masked=%s",
        settings.device_id,  # type: ignore[attr-defined]
        settings.pws_id,  # type: ignore[attr-defined]
        settings.update_url,  # type: ignore[attr-defined]
        settings.refresh_interval_s,  # type: ignore[attr-defined]
        settings.request_timeout_s,  # type: ignore[attr-defined]
        settings.readings_path,  # type: ignore[attr-defined]
        settings.health_path,  # type: ignore[attr-defined]
        _masked_secret(settings.pws_password),  # type: ignore[attr-defined]
    )


def apply_settings(
    uploader: Uploader,
    settings: UploaderSettings,
    health: HealthWriter | None = None,
) -> None:
    """Hand the device and credentials to the uploader and publish its status."""
    status = uploader.configure(
        source=settings.device_id,
        pws_id=settings.pws_id,
        pws_password=settings.pws_password,
    )
    if health is not None:
        try:
            health.set_status(status.value)
        except OSError:
            logger.warning("Failed to write health file", exc_info=True)


# ---------------------------------------------------------------------------
# Single-iteration functions (easily testable)
# ---------------------------------------------------------------------------


async def _refresh_once(
    *,
    uploader: Uploader,
    health: HealthWriter | None = None,
) -> bool:
    """Execute a single refresh tick.

    Catches all exceptions so that the caller's loop is never broken.
    The health writer records the tick whether or not a request went out.

    Args:
        uploader: The PWS uploader.
        health: HealthWriter instance, or None to skip health writes.

    Returns:
        True if an update request was dispatched, False otherwise.
    """
    try:
        dispatched = uploader.refresh()
        if dispatched:
            logger.info("Update request dispatched")
    except Exception:
        logger.error("Refresh cycle error", exc_info=True)
        dispatched = False

    if health is not None:
        try:
            health.record_refresh()
        except OSError:
            logger.warning("Failed to write health file", exc_info=True)
    return dispatched


def _reload_settings(
    *,
    uploader: Uploader,
    settings_factory: Callable[[], UploaderSettings],
    health: HealthWriter | None = None,
) -> None:
    """Reload settings and re-apply them; keep the old ones on error.

    Only device_id, pws_id and pws_password are applied on reload. The update
    URL, intervals, timeout, paths and log level take effect after a restart.
    """
    try:
        settings = settings_factory()
    except Exception:
        logger.error("Configuration reload failed; keeping previous settings", exc_info=True)
        return
    logger.info(
        "Configuration reloaded: device_id=%s, pws_id=%s, pws_password_masked=%s",
        settings.device_id,
        settings.pws_id,
        _masked_secret(settings.pws_password),
    )
    apply_settings(uploader, settings, health)


# ---------------------------------------------------------------------------
# Loop runner
# ---------------------------------------------------------------------------


async def run_loop(
    *,
    uploader: Uploader,
    refresh_interval_s: float,
    shutdown_event: asyncio.Event,
    health: HealthWriter | None = None,
    reload_event: asyncio.Event | None = None,
    settings_factory: Callable[[], UploaderSettings] | None = None,
) -> None:
    """Run the refresh loop until shutdown_event is set.

    Executes _refresh_once, then sleeps for refresh_interval_s, checking the
    shutdown event between iterations. When reload_event is set, settings
    are reloaded through settings_factory before the next tick.

    Args:
        uploader: The PWS uploader.
        refresh_interval_s: Seconds between refresh ticks.
        shutdown_event: Event to signal graceful shutdown.
        health: HealthWriter instance, or None to skip health writes.
        reload_event: Event signalling a configuration reload request.
        settings_factory: Callable returning fresh settings on reload.
    """
    logger.info("Refresh loop started (interval=%ss)", refresh_interval_s)
    while not shutdown_event.is_set():
        if reload_event is not None and reload_event.is_set():
            reload_event.clear()
            if settings_factory is not None:
                _reload_settings(
                    uploader=uploader,
                    settings_factory=settings_factory,
                    health=health,
                )
        await _refresh_once(uploader=uploader, health=health)
        await _sleep_until_next_tick(
            shutdown_event=shutdown_event,
            reload_event=reload_event,
            timeout_s=refresh_interval_s,
        )
    logger.info("Refresh loop stopped")


async def _sleep_until_next_tick(
    *,
    shutdown_event: asyncio.Event,
    reload_event: asyncio.Event | None,
    timeout_s: float,
) -> None:
    """Sleep for timeout_s, waking early on shutdown or reload."""
    waiters = [asyncio.ensure_future(shutdown_event.wait())]
    if reload_event is not None:
        waiters.append(asyncio.ensure_future(reload_event.wait()))
    try:
        await asyncio.wait(waiters, timeout=timeout_s, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for waiter in waiters:
            waiter.cancel()
        await asyncio.gather(*waiters, return_exceptions=True)


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


async def async_main() -> None:
    """Async entrypoint: load config, build components, run the loop.

    Sets up SIGTERM/SIGINT handlers for graceful shutdown and a SIGHUP
    handler for configuration reload.
    """
    from wunderground_edge.src.channel import HttpxChannel
    from wunderground_edge.src.config import UploaderSettings
    from wunderground_edge.src.registry import JsonFileRegistry
    from wunderground_edge.src.uploader import Uploader

    settings = UploaderSettings()
    configure_logging(settings.log_level)
    log_config_summary(settings)

    shutdown_event = asyncio.Event()
    reload_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: _handle_signal(shutdown_event),
        )
    loop.add_signal_handler(signal.SIGHUP, lambda: _handle_reload(reload_event))

    health = HealthWriter(settings.health_path)
    channel = HttpxChannel(timeout_s=settings.request_timeout_s)
    uploader = Uploader(
        registry=JsonFileRegistry(settings.readings_path),
        channel=channel,
        update_url=settings.update_url,
        health=health,
    )
    apply_settings(uploader, settings, health)

    try:
        await run_loop(
            uploader=uploader,
            refresh_interval_s=settings.refresh_interval_s,
            shutdown_event=shutdown_event,
            health=health,
            reload_event=reload_event,
            settings_factory=UploaderSettings,
        )
        await channel.drain(timeout_s=_SHUTDOWN_DRAIN_TIMEOUT_S)
    finally:
        await channel.aclose()
    logger.info("Shutdown complete")


def _handle_signal(shutdown_event: asyncio.Event) -> None:
    """Handle SIGTERM/SIGINT by setting the shutdown event.

    Args:
        shutdown_event: The event to set for graceful shutdown.
    """
    logger.info("Received shutdown signal, initiating graceful shutdown")
    shutdown_event.set()


def _handle_reload(reload_event: asyncio.Event) -> None:
    logger.info("Received SIGHUP, configuration will be reloaded")
    reload_event.set()


def main() -> None:
    """Synchronous entrypoint for the uploader daemon."""
    asyncio.run(async_main())


if __name__ == "__main__":
    main()
