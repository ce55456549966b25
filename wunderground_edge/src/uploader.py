"""
Debounced uploader of PWS weather readings to Weather Underground.

On every refresh tick the uploader reads the tracked variables of the
configured weather station from the registry, keeps the ones that are fresh
and not yet sent, and dispatches them in a single GET request through the
HTTP channel. At most one request is outstanding at a time; ticks that find
a request still pending are skipped without marking anything as sent, so the
same values are picked up again on the next tick.

Operations:
- configure(source, pws_id, pws_password): Store configuration, update status.
- refresh(now_ms): Run one refresh tick. Returns True if a request went out.
- on_response(status_code, body) / on_failure(cause): Channel callbacks.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from typing import TYPE_CHECKING

import httpx

from wunderground_edge.src.channel import HttpChannel, HttpxChannel
from wunderground_edge.src.exceptions import (
    ChannelError,
    FieldEncodingError,
    RegistryError,
    SourceNotFoundError,
)
from wunderground_edge.src.freshness import UploadState, select_fields
from wunderground_edge.src.request import (
    DEFAULT_UPDATE_URL,
    build_update_url,
    is_success_response,
    redact_url,
)
from wunderground_edge.src.variables import (
    FIELD_TABLE,
    FieldDef,
    TrackedVariable,
    VariableReading,
)

if TYPE_CHECKING:
    from wunderground_edge.src.health import HealthWriter
    from wunderground_edge.src.registry import VariableRegistry

logger = logging.getLogger(__name__)


class UploaderStatus(str, Enum):
    """Externally visible uploader status."""

    RUNNING = "running"
    NOT_CONFIGURED = "not configured"


def current_millis() -> int:
    """Return the wall clock in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def _present(value: str | None) -> bool:
    return value is not None and value.strip() != ""


class Uploader:
    """Sends the weather variables of one device to Weather Underground.

    The uploader implements the channel's response listener interface and
    passes itself to :meth:`HttpChannel.send`. All state changes happen under
    a single re-entrant lock, so outcome callbacks may arrive from another
    thread or synchronously from inside ``send()``.

    Args:
        registry: Source of variable readings.
        channel: HTTP channel for update requests. Defaults to an
            :class:`HttpxChannel`, which the caller must close through
            ``await uploader.channel.aclose()`` on shutdown.
        update_url: PWS update endpoint without a query string.
        health: Optional health writer notified of successful uploads.

    Usage::

        uploader = Uploader(registry=JsonFileRegistry("/data/readings.json"))
        uploader.configure(source="station-1", pws_id="KXX1", pws_password="pw")
        uploader.refresh()
    """

    def __init__(
        self,
        registry: VariableRegistry,
        channel: HttpChannel | None = None,
        update_url: str = DEFAULT_UPDATE_URL,
        health: HealthWriter | None = None,
    ) -> None:
        self._registry = registry
        self._channel: HttpChannel = channel if channel is not None else HttpxChannel()
        self._update_url = update_url
        self._health = health
        self._lock = threading.RLock()
        self._state = UploadState()
        self._source: str | None = None
        self._pws_id: str | None = None
        self._pws_password: str | None = None
        self._status = UploaderStatus.NOT_CONFIGURED

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def channel(self) -> HttpChannel:
        return self._channel

    @property
    def status(self) -> UploaderStatus:
        return self._status

    @property
    def is_configured(self) -> bool:
        return _present(self._source) and _present(self._pws_id) and _present(self._pws_password)

    def configure(
        self,
        source: str | None,
        pws_id: str | None,
        pws_password: str | None,
    ) -> UploaderStatus:
        """Store the device and credentials and recompute the status.

        Upload bookkeeping (sent timestamps, pending request) is kept.
        """
        with self._lock:
            self._source = source
            self._pws_id = pws_id
            self._pws_password = pws_password
            if self.is_configured:
                self._status = UploaderStatus.RUNNING
            else:
                self._status = UploaderStatus.NOT_CONFIGURED
            logger.info("Uploader status: %s", self._status.value)
            return self._status

    # ------------------------------------------------------------------
    # Upload state
    # ------------------------------------------------------------------

    @property
    def has_pending_request(self) -> bool:
        return self._state.request_in_flight

    def clear_pending_request(self) -> None:
        with self._lock:
            self._state.request_in_flight = False

    def last_sent_at(self) -> dict[TrackedVariable, int]:
        """Return a copy of the per-variable sent timestamps."""
        with self._lock:
            return dict(self._state.last_sent_at)

    # ------------------------------------------------------------------
    # Refresh cycle
    # ------------------------------------------------------------------

    def refresh(self, now_ms: int | None = None) -> bool:
        """Run one refresh tick.

        Args:
            now_ms: Tick time in epoch milliseconds. Defaults to the wall
                clock.

        Returns:
            True if an update request was dispatched.
        """
        now = current_millis() if now_ms is None else now_ms

        with self._lock:
            if not self.is_configured:
                return False

            try:
                readings = self._read_variables()
            except SourceNotFoundError:
                logger.warning(
                    "Unable to locate weather station device: %s; not sending any "
                    "data this interval. The weather station may still be starting "
                    "up. If this condition persists there is a problem.",
                    self._source,
                )
                return False
            except RegistryError as exc:
                logger.warning(
                    "Unable to read variables of device %s: %s; not sending any "
                    "data this interval.",
                    self._source,
                    exc,
                )
                return False

            try:
                selection = select_fields(readings, now, self._state.last_sent_at)
                if not selection.fields:
                    logger.debug("No variable updates available; bypassing update")
                    return False
                url = build_update_url(
                    self._update_url,
                    self._pws_id,
                    self._pws_password,
                    selection.fields,
                )
            except FieldEncodingError:
                logger.error("Unable to create Weather Underground URL", exc_info=True)
                return False
            except httpx.InvalidURL:
                logger.error("Error creating update URL", exc_info=True)
                return False

            if self._state.request_in_flight:
                logger.debug("A previous request is still pending; bypassing update")
                return False

            logger.debug("Calling update URL: %s", redact_url(url))
            # Mark busy before sending; the channel may report synchronously.
            self._state.request_in_flight = True
            try:
                self._channel.send(url, self)
            except ChannelError:
                self._state.request_in_flight = False
                logger.error("Error dispatching update request", exc_info=True)
                return False

            self._state.last_sent_at.update(selection.sent)
            return True

    def _read_variables(self) -> list[tuple[FieldDef, VariableReading | None]]:
        readings: list[tuple[FieldDef, VariableReading | None]] = []
        for fd in FIELD_TABLE:
            reading = None
            if self._registry.has_value(self._source, fd.kind):
                reading = self._registry.get_value(self._source, fd.kind)
            readings.append((fd, reading))
        return readings

    # ------------------------------------------------------------------
    # Channel callbacks
    # ------------------------------------------------------------------

    def on_response(self, status_code: int, body: str) -> None:
        with self._lock:
            self._state.request_in_flight = False

        if is_success_response(status_code, body):
            logger.info("Update successful")
            if self._health is not None:
                try:
                    self._health.record_upload()
                except OSError:
                    logger.warning("Failed to write health file", exc_info=True)
        else:
            logger.error("Failed to send update (%d): %s", status_code, body)

    def on_failure(self, cause: BaseException) -> None:
        with self._lock:
            self._state.request_in_flight = False
        logger.error("Error calling update URL: %s", cause, exc_info=cause)
