"""
Unit tests for the freshness filter.

Tests verify:
- Readings without a value are never eligible.
- Readings without a timestamp are always eligible.
- The staleness boundary is inclusive at 600,000 ms.
- Readings must be strictly newer than the last sent value of their kind.
- select_fields() keeps field table order and does not touch last_sent_at.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

import pytest
from wunderground_edge.src.exceptions import FieldEncodingError
from wunderground_edge.src.freshness import (
    STALE_AFTER_MS,
    UploadState,
    is_eligible,
    is_stale,
    select_fields,
)
from wunderground_edge.src.variables import FIELD_TABLE, TrackedVariable, VariableReading

NOW = 1_760_000_000_000
TEMP = TrackedVariable.OUTDOOR_TEMP_F


class TestIsStale:
    def test_boundary_is_stale(self) -> None:
        assert is_stale(VariableReading(1, NOW - STALE_AFTER_MS), NOW) is True

    def test_just_inside_window_is_fresh(self) -> None:
        assert is_stale(VariableReading(1, NOW - STALE_AFTER_MS + 1), NOW) is False

    def test_no_timestamp_is_never_stale(self) -> None:
        assert is_stale(VariableReading(1, None), NOW) is False


class TestIsEligible:
    def test_missing_reading(self) -> None:
        assert is_eligible(TEMP, None, NOW, {}) is False

    def test_missing_value(self) -> None:
        assert is_eligible(TEMP, VariableReading(None, NOW), NOW, {}) is False

    def test_missing_timestamp_ignores_last_sent(self) -> None:
        assert is_eligible(TEMP, VariableReading(70, None), NOW, {TEMP: NOW}) is True

    def test_fresh_and_never_sent(self) -> None:
        assert is_eligible(TEMP, VariableReading(70, NOW - 10), NOW, {}) is True

    def test_same_timestamp_as_last_sent(self) -> None:
        assert is_eligible(TEMP, VariableReading(70, NOW - 10), NOW, {TEMP: NOW - 10}) is False

    def test_newer_than_last_sent(self) -> None:
        assert is_eligible(TEMP, VariableReading(70, NOW - 5), NOW, {TEMP: NOW - 10}) is True

    def test_stale_even_if_never_sent(self, caplog: pytest.LogCaptureFixture) -> None:
        reading = VariableReading(70, NOW - STALE_AFTER_MS)

        assert is_eligible(TEMP, reading, NOW, {}) is False
        assert "outdoor_temp_f" in caplog.text


class TestSelectFields:
    def test_keeps_table_order_and_stages_timestamps(self) -> None:
        readings = [(fd, VariableReading(i, NOW - i)) for i, fd in enumerate(FIELD_TABLE)]
        state = UploadState()

        selection = select_fields(reversed(readings), NOW, state.last_sent_at)
        ordered = select_fields(readings, NOW, state.last_sent_at)

        assert ordered.fields == [
            "baromin=0",
            "dewptf=1",
            "tempf=2",
            "humidity=3",
            "winddir=4",
            "windspeedmph=5",
        ]
        assert selection.fields == list(reversed(ordered.fields))
        assert ordered.sent[TEMP] == NOW - 2
        assert state.last_sent_at == {}

    def test_untimestamped_value_not_staged(self) -> None:
        fd = FIELD_TABLE[2]

        selection = select_fields([(fd, VariableReading(72.5, None))], NOW, {})

        assert selection.fields == ["tempf=72.5"]
        assert selection.sent == {}

    def test_values_are_form_encoded(self) -> None:
        fd = FIELD_TABLE[2]

        selection = select_fields([(fd, VariableReading("a b&c", NOW))], NOW, {})

        assert selection.fields == ["tempf=a+b%26c"]

    def test_unencodable_value_raises(self) -> None:
        fd = FIELD_TABLE[2]

        with pytest.raises(FieldEncodingError):
            select_fields([(fd, VariableReading("\ud800", NOW))], NOW, {})
