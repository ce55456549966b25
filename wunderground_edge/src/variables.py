"""
Tracked weather variables and their Weather Underground field names.

The field table is the single source of truth for which variables are
uploaded, which query parameter each one maps to, and the order in which
fields appear in the update URL.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

# ---------------------------------------------------------------------------
# Data definitions
# ---------------------------------------------------------------------------


class TrackedVariable(str, Enum):
    """Weather measurement kinds reported by the PWS device."""

    BAROMETRIC_PRESSURE_INHG = "barometric_pressure_inhg"
    DEW_PT_F = "dew_pt_f"
    OUTDOOR_TEMP_F = "outdoor_temp_f"
    OUTDOOR_RELATIVE_HUMIDITY = "outdoor_relative_humidity"
    WIND_DIRECTION_DEGREES = "wind_direction_degrees"
    WIND_SPEED_MPH = "wind_speed_mph"


@dataclass(frozen=True, slots=True)
class FieldDef:
    """Mapping of one tracked variable to its outbound query parameter.

    Attributes:
        kind: The tracked variable.
        field_name: Query parameter key understood by the PWS upload protocol.
    """

    kind: TrackedVariable
    field_name: str


@dataclass(frozen=True, slots=True)
class VariableReading:
    """Current state of a variable as reported by the registry.

    Attributes:
        value: Raw stored value. ``None`` means the variable has no value yet.
        last_update: Epoch milliseconds of the last update, or ``None`` when
            the device never reported a timestamp.
    """

    value: Any
    last_update: int | None = None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

FIELD_TABLE: tuple[FieldDef, ...] = (
    FieldDef(TrackedVariable.BAROMETRIC_PRESSURE_INHG, "baromin"),
    FieldDef(TrackedVariable.DEW_PT_F, "dewptf"),
    FieldDef(TrackedVariable.OUTDOOR_TEMP_F, "tempf"),
    FieldDef(TrackedVariable.OUTDOOR_RELATIVE_HUMIDITY, "humidity"),
    FieldDef(TrackedVariable.WIND_DIRECTION_DEGREES, "winddir"),
    FieldDef(TrackedVariable.WIND_SPEED_MPH, "windspeedmph"),
)
"""All uploaded variables in URL field order."""

FIELD_NAMES: dict[TrackedVariable, str] = {
    fd.kind: fd.field_name for fd in FIELD_TABLE
}
"""Flat lookup of the query parameter for every tracked variable."""
