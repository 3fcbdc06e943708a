from __future__ import annotations

from datetime import date, datetime

import pytest

from backend.domain.models import (
    BookingStatus,
    EventStatus,
    MaintenanceStatus,
    Priority,
    RecordKind,
)
from backend.services.normalizer_service import (
    NormalizationError,
    ValidationError,
    normalize_facility_id,
    normalize_record,
    normalize_records,
    parse_timestamp,
)


def test_booking_without_facility_id_key_raises():
    with pytest.raises(ValidationError):
        normalize_record({"status": "approved", "date": "2024-01-10"}, RecordKind.BOOKING)


def test_booking_with_blank_facility_id_falls_back():
    record = normalize_record({"facility_id": None, "status": "approved"}, "booking")

    assert record.facility_id == "unknown"
    assert record.facility_name == "Facility unknown"


def test_booking_fields_are_typed():
    record = normalize_record(
        {
            "facility_id": "7",
            "status": "APPROVED",
            "date": "2024-01-10",
            "start_time": "09:00",
            "end_time": "10:00",
            "attendees": "12",
        },
        RecordKind.BOOKING,
    )

    assert record.facility_id == 7
    assert record.facility_name == "Facility 7"
    assert record.status is BookingStatus.APPROVED
    assert record.date == date(2024, 1, 10)
    assert record.attendees == 12


@pytest.mark.parametrize("attendees", [float("nan"), "many", None, float("inf")])
def test_non_numeric_attendees_become_zero(attendees):
    record = normalize_record({"facility_id": 1, "attendees": attendees}, RecordKind.BOOKING)
    assert record.attendees == 0


def test_unrecognized_status_is_unknown():
    record = normalize_record({"facility_id": 1, "status": "on-hold"}, RecordKind.BOOKING)
    assert record.status is BookingStatus.UNKNOWN


def test_facility_directory_supplies_name_and_category():
    facilities = {"3": {"name": "Swimming Pool", "type": "aquatic"}}
    record = normalize_record({"facility_id": 3}, RecordKind.BOOKING, facilities)

    assert record.facility_name == "Swimming Pool"
    assert record.category == "aquatic"


def test_nested_facility_object_is_used_before_directory():
    raw = {"facility_id": 3, "facility": {"name": "Court A", "type": "indoor"}}
    record = normalize_record(raw, RecordKind.BOOKING, {3: {"name": "Other"}})

    assert record.facility_name == "Court A"
    assert record.category == "indoor"


def test_event_duration_uses_start_date_when_end_date_missing():
    record = normalize_record(
        {
            "facility_id": 1,
            "status": "upcoming",
            "start_date": "2024-03-01",
            "start_time": "09:00",
            "end_time": "11:30",
        },
        RecordKind.EVENT,
    )

    assert record.status is EventStatus.UPCOMING
    assert record.start == datetime(2024, 3, 1, 9, 0)
    assert record.duration_hours == pytest.approx(2.5)


def test_event_ending_before_start_has_zero_duration():
    record = normalize_record(
        {
            "facility_id": 1,
            "start_date": "2024-03-02",
            "start_time": "18:00",
            "end_date": "2024-03-01",
            "end_time": "09:00",
        },
        RecordKind.EVENT,
    )

    assert record.duration_hours == 0.0


def test_event_with_unparseable_dates_has_zero_duration():
    record = normalize_record(
        {"facility_id": 1, "start_date": "soon", "end_date": "later"},
        RecordKind.EVENT,
    )

    assert record.start is None
    assert record.duration_hours == 0.0


def test_aware_timestamps_are_converted_to_naive_utc():
    parsed = parse_timestamp("2024-01-01T02:00:00+02:00")
    assert parsed == datetime(2024, 1, 1, 0, 0)
    assert parsed.tzinfo is None


def test_parse_timestamp_rejects_non_date_values():
    assert parse_timestamp(12345) is None
    assert parse_timestamp("") is None
    assert parse_timestamp(None) is None


@pytest.mark.parametrize("word", ["now", "today", " Today ", "NOW"])
def test_parse_timestamp_ignores_relative_date_words(word):
    assert parse_timestamp(word) is None
    assert parse_timestamp(word, "10:00") is None


def test_clock_override_keeps_the_written_calendar_date():
    parsed = parse_timestamp("2024-01-01T23:30:00-05:00", "10:00")
    assert parsed == datetime(2024, 1, 1, 10, 0)
    assert parsed.tzinfo is None


def test_booking_dated_today_is_undated():
    record = normalize_record({"facility_id": 1, "date": "today"}, RecordKind.BOOKING)
    assert record.date is None


def test_non_ascii_digit_facility_id_degrades_in_batch():
    records = normalize_records(
        [{"facility_id": "²", "date": "2024-01-02"}, {"facility_id": "3", "date": "2024-01-02"}],
        RecordKind.BOOKING,
    )

    assert [record.facility_id for record in records] == ["²", 3]
    assert records[0].facility_name == "Facility ²"


def test_maintenance_without_priority_key_raises():
    with pytest.raises(ValidationError):
        normalize_record({"status": "reported"}, RecordKind.MAINTENANCE)


def test_maintenance_priority_is_case_insensitive():
    record = normalize_record({"priority": "HIGH", "status": "In Progress"}, "maintenance")

    assert record.priority is Priority.HIGH
    assert record.status is MaintenanceStatus.IN_PROGRESS


def test_unknown_priority_label_is_unknown():
    record = normalize_record({"priority": "urgent"}, RecordKind.MAINTENANCE)
    assert record.priority is Priority.UNKNOWN


def test_completion_date_is_ignored_unless_completed():
    record = normalize_record(
        {
            "priority": "low",
            "status": "scheduled",
            "reported_date": "2024-01-01",
            "completion_date": "2024-01-02",
        },
        RecordKind.MAINTENANCE,
    )

    assert record.completion_date is None
    assert record.resolution_hours is None


def test_completed_maintenance_resolution_hours():
    record = normalize_record(
        {
            "priority": "high",
            "status": "completed",
            "reported": "2024-01-01T00:00",
            "completed": "2024-01-03T00:00",
        },
        RecordKind.MAINTENANCE,
    )

    assert record.is_resolved
    assert record.resolution_hours == pytest.approx(48.0)


def test_normalize_records_keeps_invalid_records_with_fallbacks():
    records = normalize_records(
        [
            {"facility_id": 1, "status": "approved"},
            {"status": "approved"},
            None,
        ],
        RecordKind.BOOKING,
    )

    assert len(records) == 3
    assert records[0].facility_id == 1
    assert records[1].facility_id == "unknown"
    assert records[2].facility_id == "unknown"


def test_normalize_records_maintenance_fallback_priority():
    records = normalize_records([{"status": "reported"}], RecordKind.MAINTENANCE)
    assert records[0].priority is Priority.UNKNOWN


def test_unsupported_kind_raises():
    with pytest.raises(NormalizationError):
        normalize_record({"facility_id": 1}, "user-activity")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(1, 1), (1.0, 1), ("1", 1), (" 12 ", 12), ("court-a", "court-a"), ("", "unknown"), ("²", "²"), ("１２", "１２")],
)
def test_normalize_facility_id(raw, expected):
    assert normalize_facility_id(raw) == expected
