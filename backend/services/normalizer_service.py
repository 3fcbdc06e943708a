"""Record normalization for raw booking, event and maintenance payloads.

The portal API returns loosely typed JSON objects. This module is the only
place allowed to assume their shape: everything downstream works on the
frozen records from ``backend.domain.models``.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Iterable, Mapping, Optional, Union

import pandas as pd

from backend.domain.models import (
    UNKNOWN_LABEL,
    BookingRecord,
    BookingStatus,
    EventRecord,
    EventStatus,
    FacilityId,
    MaintenanceReport,
    MaintenanceStatus,
    Priority,
    RecordKind,
)
from backend.utils.logger import get_logger
from backend.utils.numeric import safe_number


logger = get_logger(__name__)

FacilityDirectory = Mapping[Any, Mapping[str, Any]]
NormalizedRecord = Union[BookingRecord, EventRecord, MaintenanceReport]

_REQUIRED_KEYS: dict[RecordKind, str] = {
    RecordKind.BOOKING: "facility_id",
    RecordKind.EVENT: "facility_id",
    RecordKind.MAINTENANCE: "priority",
}
_REPORTED_KEYS = ("reported_date", "reported", "created_at")
_COMPLETED_KEYS = ("completion_date", "completed", "completed_date", "completed_at")
_CLOCK_FORMATS = ("%H:%M:%S", "%H:%M")
# Relative keywords pandas resolves against the wall clock.
_RELATIVE_DATE_WORDS = frozenset({"now", "today"})


class NormalizationError(Exception):
    """Base exception for record normalization failures."""


class ValidationError(NormalizationError):
    """Raised when a required identifying key is absent from a raw record."""


def _coerce_kind(kind: Union[RecordKind, str]) -> RecordKind:
    try:
        return RecordKind(kind)
    except ValueError as exc:
        raise NormalizationError(f"unsupported record kind: {kind!r}") from exc


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and value != value:
        return True
    return isinstance(value, str) and not value.strip()


def _first_present(raw: Mapping[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        value = raw.get(key)
        if not _is_blank(value):
            return value
    return None


def _text(value: Any) -> Optional[str]:
    if _is_blank(value):
        return None
    return str(value).strip()


def normalize_facility_id(value: Any) -> FacilityId:
    """Collapse ``1``, ``1.0`` and ``"1"`` onto one key; blanks become ``"unknown"``."""
    if _is_blank(value) or isinstance(value, bool):
        return UNKNOWN_LABEL
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else str(value)
    text = str(value).strip()
    if text.isascii() and text.isdecimal():
        return int(text)
    return text


def _parse_clock(value: Any) -> Optional[dt.time]:
    if isinstance(value, dt.time):
        return value
    text = _text(value)
    if text is None:
        return None
    for fmt in _CLOCK_FORMATS:
        try:
            return dt.datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    return None


def parse_timestamp(value: Any, clock: Any = None) -> Optional[dt.datetime]:
    """Parse a date or datetime, optionally overriding its clock time.

    Aware values are converted to naive UTC so durations never mix offsets.
    With a clock override the calendar date is taken as written, before any
    offset conversion. Anything unparseable, and the relative words ``now``
    and ``today``, yield ``None``.
    """
    if _is_blank(value):
        return None
    if not isinstance(value, (str, dt.date)):
        return None
    if isinstance(value, str) and value.strip().lower() in _RELATIVE_DATE_WORDS:
        return None
    try:
        stamp = pd.to_datetime(value, errors="coerce")
    except (TypeError, ValueError, OverflowError):
        return None
    if pd.isna(stamp):
        return None

    clock_time = _parse_clock(clock)
    if clock_time is not None:
        return dt.datetime.combine(stamp.date(), clock_time)

    if stamp.tzinfo is not None:
        stamp = stamp.tz_convert("UTC").tz_localize(None)
    return stamp.to_pydatetime()


def _resolve_facility(
    raw: Mapping[str, Any],
    facility_id: FacilityId,
    facilities: Optional[FacilityDirectory],
) -> tuple[str, Optional[str]]:
    nested = raw.get("facility")
    nested = nested if isinstance(nested, Mapping) else {}
    directory_entry: Mapping[str, Any] = {}
    if facilities:
        for key, entry in facilities.items():
            if normalize_facility_id(key) == facility_id:
                directory_entry = entry
                break

    name = (
        _text(raw.get("facility_name"))
        or _text(nested.get("name"))
        or _text(directory_entry.get("name"))
        or f"Facility {facility_id}"
    )
    category = (
        _text(_first_present(raw, ("category", "facility_type")))
        or _text(_first_present(nested, ("category", "type")))
        or _text(_first_present(directory_entry, ("category", "type")))
    )
    return name, category


def _normalize_booking(
    raw: Mapping[str, Any],
    facilities: Optional[FacilityDirectory],
) -> BookingRecord:
    facility_id = normalize_facility_id(raw.get("facility_id"))
    name, category = _resolve_facility(raw, facility_id, facilities)
    booked_at = parse_timestamp(raw.get("date"))
    return BookingRecord(
        facility_id=facility_id,
        facility_name=name,
        status=BookingStatus.parse(raw.get("status")),
        date=booked_at.date() if booked_at is not None else None,
        category=category,
        start_time=_text(raw.get("start_time")),
        end_time=_text(raw.get("end_time")),
        attendees=int(safe_number(raw.get("attendees"))),
    )


def _normalize_event(
    raw: Mapping[str, Any],
    facilities: Optional[FacilityDirectory],
) -> EventRecord:
    facility_id = normalize_facility_id(raw.get("facility_id"))
    name, category = _resolve_facility(raw, facility_id, facilities)
    start_date = raw.get("start_date")
    end_date = raw.get("end_date")
    if _is_blank(end_date):
        end_date = start_date
    return EventRecord(
        facility_id=facility_id,
        facility_name=name,
        status=EventStatus.parse(raw.get("status")),
        start=parse_timestamp(start_date, raw.get("start_time")),
        end=parse_timestamp(end_date, raw.get("end_time")),
        category=category,
        title=_text(raw.get("title")),
    )


def _normalize_maintenance(
    raw: Mapping[str, Any],
    facilities: Optional[FacilityDirectory],
) -> MaintenanceReport:
    status = MaintenanceStatus.parse(raw.get("status"))
    completion_date = None
    if status is MaintenanceStatus.COMPLETED:
        completion_date = parse_timestamp(_first_present(raw, _COMPLETED_KEYS))

    facility_id: Optional[FacilityId] = None
    facility_name: Optional[str] = None
    if "facility_id" in raw:
        facility_id = normalize_facility_id(raw.get("facility_id"))
        facility_name, _ = _resolve_facility(raw, facility_id, facilities)

    return MaintenanceReport(
        priority=Priority.parse(raw.get("priority")),
        status=status,
        reported_date=parse_timestamp(_first_present(raw, _REPORTED_KEYS)),
        completion_date=completion_date,
        facility_id=facility_id,
        facility_name=facility_name,
    )


_NORMALIZERS = {
    RecordKind.BOOKING: _normalize_booking,
    RecordKind.EVENT: _normalize_event,
    RecordKind.MAINTENANCE: _normalize_maintenance,
}


def normalize_record(
    raw: Any,
    kind: Union[RecordKind, str],
    facilities: Optional[FacilityDirectory] = None,
) -> NormalizedRecord:
    """Convert one raw payload into its canonical record.

    Raises ``ValidationError`` only when the identifying key for ``kind`` is
    missing entirely. Blank or unrecognized values degrade to fallback labels.
    """
    record_kind = _coerce_kind(kind)
    if not isinstance(raw, Mapping):
        raise ValidationError(f"{record_kind.value} record must be a mapping")
    required_key = _REQUIRED_KEYS[record_kind]
    if required_key not in raw:
        raise ValidationError(f"{record_kind.value} record is missing '{required_key}'")
    return _NORMALIZERS[record_kind](raw, facilities)


def normalize_records(
    raws: Iterable[Any],
    kind: Union[RecordKind, str],
    facilities: Optional[FacilityDirectory] = None,
) -> list[NormalizedRecord]:
    """Normalize a collection, keeping invalid records under fallback labels."""
    record_kind = _coerce_kind(kind)
    required_key = _REQUIRED_KEYS[record_kind]
    normalized: list[NormalizedRecord] = []
    degraded = 0
    for index, raw in enumerate(raws):
        try:
            normalized.append(normalize_record(raw, record_kind, facilities))
        except ValidationError as exc:
            degraded += 1
            logger.warning(
                "Record degraded to fallback labels | kind=%s | index=%s | reason=%s",
                record_kind.value,
                index,
                exc,
            )
            patched = dict(raw) if isinstance(raw, Mapping) else {}
            patched[required_key] = UNKNOWN_LABEL
            normalized.append(_NORMALIZERS[record_kind](patched, facilities))

    logger.info(
        "Normalization completed | kind=%s | records=%s | degraded=%s",
        record_kind.value,
        len(normalized),
        degraded,
    )
    return normalized
