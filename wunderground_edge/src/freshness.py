"""
Per-variable freshness and de-duplication bookkeeping.

Decides which variable readings qualify for the next upload:

1. A reading without a value is never sent.
2. A reading without a last-update timestamp is always sent (it can be
   neither aged nor de-duplicated).
3. A reading older than :data:`STALE_AFTER_MS` at tick time is dropped.
4. Otherwise a reading is sent only if it is newer than the last value of the
   same kind that went out in a dispatched request.

Selection is side-effect free: :func:`select_fields` returns the timestamps
to record, and the uploader commits them to :class:`UploadState` only after
the request has actually been dispatched.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from wunderground_edge.src.request import encode_field
from wunderground_edge.src.variables import FieldDef, TrackedVariable, VariableReading

logger = logging.getLogger(__name__)

STALE_AFTER_MS: int = 600_000
"""Readings this old (or older) at tick time are never uploaded."""


@dataclass
class UploadState:
    """Mutable upload bookkeeping owned by a single uploader.

    Attributes:
        last_sent_at: Last-update timestamp of the most recent value of each
            kind included in a dispatched request.
        request_in_flight: True from dispatch until the request outcome is
            reported.
    """

    last_sent_at: dict[TrackedVariable, int] = field(default_factory=dict)
    request_in_flight: bool = False


@dataclass
class FieldSelection:
    """Result of one pass of the freshness filter.

    Attributes:
        fields: Encoded ``key=value`` pairs in field table order.
        sent: Timestamps to record in ``last_sent_at`` once dispatched.
    """

    fields: list[str] = field(default_factory=list)
    sent: dict[TrackedVariable, int] = field(default_factory=dict)


def is_stale(reading: VariableReading, now: int) -> bool:
    """Return True when *reading* has aged out of the upload window."""
    return reading.last_update is not None and now - reading.last_update >= STALE_AFTER_MS


def is_eligible(
    kind: TrackedVariable,
    reading: VariableReading | None,
    now: int,
    last_sent_at: dict[TrackedVariable, int],
) -> bool:
    """Apply the freshness rules to a single reading.

    Args:
        kind: Variable kind the reading belongs to.
        reading: Current registry reading, or None when the device does not
            publish the variable.
        now: Tick time in epoch milliseconds.
        last_sent_at: Per-kind timestamps of previously sent values.

    Returns:
        True if the reading should be included in the next request.
    """
    if reading is None or reading.value is None:
        return False

    # No timestamp means we cannot age or de-duplicate it; always send.
    if reading.last_update is None:
        return True

    if is_stale(reading, now):
        logger.warning("Detected stale variable: %s", kind.value)
        return False

    previous = last_sent_at.get(kind)
    if previous is not None and reading.last_update <= previous:
        logger.debug("Variable %s unchanged since last upload", kind.value)
        return False
    return True


def select_fields(
    readings: Iterable[tuple[FieldDef, VariableReading | None]],
    now: int,
    last_sent_at: dict[TrackedVariable, int],
) -> FieldSelection:
    """Run the freshness filter over *readings* and encode the survivors.

    Args:
        readings: ``(field_def, reading)`` pairs in field table order.
        now: Tick time in epoch milliseconds.
        last_sent_at: Per-kind timestamps of previously sent values. Not
            modified.

    Returns:
        The encoded fields and the timestamps to record on dispatch.

    Raises:
        FieldEncodingError: If an eligible value cannot be encoded.
    """
    selection = FieldSelection()
    for fd, reading in readings:
        if not is_eligible(fd.kind, reading, now, last_sent_at):
            continue
        selection.fields.append(encode_field(fd.field_name, reading.value))
        if reading.last_update is not None:
            selection.sent[fd.kind] = reading.last_update
    return selection
