"""
Variable registry: where the uploader reads current weather readings from.

Defines the :class:`VariableRegistry` protocol consumed by the uploader plus
two implementations:

- :class:`InMemoryRegistry`: readings published directly by the embedding
  process (and by tests).
- :class:`JsonFileRegistry`: readings loaded from a JSON snapshot file that
  the local weather-station collector rewrites on every update. The file is
  re-read whenever its modification time changes.

Snapshot file format::

    {
        "station-1": {
            "outdoor_temp_f": {"value": 72.5, "last_update": 1760000000000},
            "wind_speed_mph": {"value": 4, "last_update": null}
        }
    }

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Protocol

from wunderground_edge.src.exceptions import RegistryError, SourceNotFoundError
from wunderground_edge.src.variables import TrackedVariable, VariableReading

logger = logging.getLogger(__name__)


class VariableRegistry(Protocol):
    """Read-only view of device variables."""

    def has_value(self, source: str, kind: TrackedVariable) -> bool:
        """Return whether *source* currently publishes variable *kind*."""
        ...

    def get_value(self, source: str, kind: TrackedVariable) -> VariableReading:
        """Return the current reading of variable *kind* for *source*."""
        ...


# ---------------------------------------------------------------------------
# In-memory registry
# ---------------------------------------------------------------------------


class InMemoryRegistry:
    """Registry holding readings published by the embedding process.

    A source exists once it has been registered (explicitly or by publishing
    its first variable). Querying an unregistered source raises
    :class:`SourceNotFoundError`.
    """

    def __init__(self) -> None:
        self._devices: dict[str, dict[TrackedVariable, VariableReading]] = {}

    def register_device(self, source: str) -> None:
        self._devices.setdefault(source, {})

    def publish(
        self,
        source: str,
        kind: TrackedVariable,
        value: Any,
        last_update: int | None = None,
    ) -> None:
        """Publish (or overwrite) a variable reading for *source*."""
        self._devices.setdefault(source, {})[kind] = VariableReading(
            value=value, last_update=last_update
        )

    set_value = publish

    def has_value(self, source: str, kind: TrackedVariable) -> bool:
        return kind in self._variables(source)

    def get_value(self, source: str, kind: TrackedVariable) -> VariableReading:
        variables = self._variables(source)
        if kind not in variables:
            raise RegistryError(f"Variable {kind.value} not published by {source}")
        return variables[kind]

    def _variables(self, source: str) -> dict[TrackedVariable, VariableReading]:
        try:
            return self._devices[source]
        except KeyError:
            raise SourceNotFoundError(source) from None


# ---------------------------------------------------------------------------
# JSON snapshot registry
# ---------------------------------------------------------------------------


class JsonFileRegistry:
    """Registry backed by a JSON snapshot file.

    Args:
        path: Filesystem path of the snapshot file. Accepts str or Path.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._mtime_ns: int | None = None
        self._devices: dict[str, dict[TrackedVariable, VariableReading]] = {}

    def has_value(self, source: str, kind: TrackedVariable) -> bool:
        return kind in self._variables(source)

    def get_value(self, source: str, kind: TrackedVariable) -> VariableReading:
        variables = self._variables(source)
        if kind not in variables:
            raise RegistryError(f"Variable {kind.value} not published by {source}")
        return variables[kind]

    def _variables(self, source: str) -> dict[TrackedVariable, VariableReading]:
        self._reload_if_changed()
        try:
            return self._devices[source]
        except KeyError:
            raise SourceNotFoundError(source) from None

    def _reload_if_changed(self) -> None:
        """Re-read the snapshot file when its modification time changed."""
        try:
            mtime_ns = self.path.stat().st_mtime_ns
        except FileNotFoundError:
            # Collector has not written its first snapshot yet.
            self._mtime_ns = None
            self._devices = {}
            return

        if mtime_ns == self._mtime_ns:
            return

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise RegistryError(f"Unable to read readings file {self.path}") from exc

        self._devices = _parse_snapshot(raw)
        self._mtime_ns = mtime_ns
        logger.debug("Loaded readings for %d device(s) from %s", len(self._devices), self.path)


def _parse_snapshot(raw: object) -> dict[str, dict[TrackedVariable, VariableReading]]:
    """Convert the decoded snapshot JSON into registry readings.

    Unknown variable names are ignored so the collector can publish more
    variables than the uploader tracks.
    """
    if not isinstance(raw, dict):
        raise RegistryError("Readings file must contain a JSON object")

    devices: dict[str, dict[TrackedVariable, VariableReading]] = {}
    for source, variables in raw.items():
        if not isinstance(variables, dict):
            raise RegistryError(f"Readings for device {source!r} must be an object")
        readings: dict[TrackedVariable, VariableReading] = {}
        for name, entry in variables.items():
            try:
                kind = TrackedVariable(name)
            except ValueError:
                continue
            if not isinstance(entry, dict):
                raise RegistryError(f"Reading {source}/{name} must be an object")
            last_update = entry.get("last_update")
            if last_update is not None and (
                not isinstance(last_update, int) or isinstance(last_update, bool)
            ):
                raise RegistryError(
                    f"Reading {source}/{name} has non-integer last_update"
                )
            readings[kind] = VariableReading(
                value=entry.get("value"), last_update=last_update
            )
        devices[source] = readings
    return devices
