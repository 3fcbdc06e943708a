"""Domain models for facility usage and maintenance analytics."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

from backend.utils.numeric import round_half_up


FacilityId = Union[int, str]
KPIValue = Union[int, float, str]
KPISet = Mapping[str, KPIValue]

UNKNOWN_LABEL = "unknown"
NOT_AVAILABLE = "N/A"


class _LabelEnum(str, Enum):
    """String enum whose unrecognized inputs collapse to ``UNKNOWN``."""

    @classmethod
    def lookup(cls, value: Any):
        """Return the matching member, or ``None`` when the label is not recognized."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower().replace("_", "-").replace(" ", "-")
            for member in cls:
                if member.value == key:
                    return member
        return None

    @classmethod
    def parse(cls, value: Any):
        member = cls.lookup(value)
        return member if member is not None else cls["UNKNOWN"]


class RecordKind(str, Enum):
    BOOKING = "booking"
    EVENT = "event"
    MAINTENANCE = "maintenance"


class ReportType(str, Enum):
    FACILITY_USAGE = "facility-usage"
    MAINTENANCE = "maintenance"


class BookingStatus(_LabelEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    UNKNOWN = UNKNOWN_LABEL


class EventStatus(_LabelEnum):
    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    UNKNOWN = UNKNOWN_LABEL


class MaintenanceStatus(_LabelEnum):
    REPORTED = "reported"
    IN_PROGRESS = "in-progress"
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    UNKNOWN = UNKNOWN_LABEL


class Priority(_LabelEnum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    UNKNOWN = UNKNOWN_LABEL


# Resolution-time ceilings in hours; UNKNOWN carries the default target.
SLA_TARGET_HOURS: Mapping[Priority, float] = MappingProxyType(
    {
        Priority.CRITICAL: 24.0,
        Priority.HIGH: 48.0,
        Priority.MEDIUM: 72.0,
        Priority.LOW: 120.0,
        Priority.UNKNOWN: 72.0,
    }
)


def _hours_between(start: Optional[dt.datetime], end: Optional[dt.datetime]) -> float:
    if start is None or end is None:
        return 0.0
    return max(0.0, (end - start).total_seconds() / 3600.0)


@dataclass(frozen=True)
class BookingRecord:
    facility_id: FacilityId
    facility_name: str
    status: BookingStatus
    date: Optional[dt.date]
    category: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    attendees: int = 0

    @property
    def occurred_on(self) -> Optional[dt.date]:
        return self.date


@dataclass(frozen=True)
class EventRecord:
    facility_id: FacilityId
    facility_name: str
    status: EventStatus
    start: Optional[dt.datetime]
    end: Optional[dt.datetime]
    category: Optional[str] = None
    title: Optional[str] = None

    @property
    def duration_hours(self) -> float:
        """Elapsed hours from start to end, never negative."""
        return _hours_between(self.start, self.end)

    @property
    def occurred_on(self) -> Optional[dt.date]:
        return self.start.date() if self.start is not None else None


@dataclass(frozen=True)
class MaintenanceReport:
    priority: Priority
    status: MaintenanceStatus
    reported_date: Optional[dt.datetime]
    completion_date: Optional[dt.datetime] = None
    facility_id: Optional[FacilityId] = None
    facility_name: Optional[str] = None

    @property
    def is_resolved(self) -> bool:
        return (
            self.status is MaintenanceStatus.COMPLETED
            and self.reported_date is not None
            and self.completion_date is not None
        )

    @property
    def resolution_hours(self) -> Optional[float]:
        if not self.is_resolved:
            return None
        return _hours_between(self.reported_date, self.completion_date)

    @property
    def occurred_on(self) -> Optional[dt.date]:
        return self.reported_date.date() if self.reported_date is not None else None


FacilityRecord = Union[BookingRecord, EventRecord]


@dataclass(frozen=True)
class FacilityUsageAggregate:
    facility_id: FacilityId
    facility_name: str
    bookings_count: int
    events_count: int
    total_event_hours: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "facility_id": self.facility_id,
            "facility_name": self.facility_name,
            "bookings_count": self.bookings_count,
            "events_count": self.events_count,
            "total_event_hours": self.total_event_hours,
        }


@dataclass(frozen=True)
class PriorityAggregate:
    priority: Priority
    count: int
    resolved: int
    total_resolution_hours: float

    @property
    def avg_resolution_hours(self) -> Optional[float]:
        if self.resolved <= 0:
            return None
        return self.total_resolution_hours / self.resolved

    @property
    def sla_target_hours(self) -> float:
        return SLA_TARGET_HOURS[self.priority]

    @property
    def sla_compliance(self) -> KPIValue:
        """Percentage of the SLA target met by the average resolution time."""
        avg_hours = self.avg_resolution_hours
        if avg_hours is None:
            return NOT_AVAILABLE
        target = self.sla_target_hours
        if avg_hours <= target:
            return 100.0
        return round_half_up(target / avg_hours * 100.0, 1)

    def to_dict(self) -> dict[str, Any]:
        avg_hours = self.avg_resolution_hours
        return {
            "priority": self.priority.value,
            "count": self.count,
            "resolved": self.resolved,
            "total_resolution_hours": self.total_resolution_hours,
            "avg_resolution_time": NOT_AVAILABLE if avg_hours is None else round_half_up(avg_hours, 1),
            "sla_target_hours": self.sla_target_hours,
            "sla_compliance": self.sla_compliance,
        }


ReportRow = Union[FacilityUsageAggregate, PriorityAggregate]


@dataclass(frozen=True)
class ForecastPoint:
    period_label: str
    projected: int
    lower_bound: int
    upper_bound: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "period_label": self.period_label,
            "projected": self.projected,
            "lower_bound": self.lower_bound,
            "upper_bound": self.upper_bound,
        }


@dataclass(frozen=True)
class PeriodRange:
    start: dt.date
    end: dt.date

    def contains(self, day: Optional[dt.date]) -> bool:
        """Undated records are kept rather than silently dropped."""
        if day is None:
            return True
        return self.start <= day <= self.end

    def shifted_years(self, years: int) -> "PeriodRange":
        return PeriodRange(start=_shift_years(self.start, years), end=_shift_years(self.end, years))

    def label(self) -> str:
        return f"{self.start.isoformat()} - {self.end.isoformat()}"


def _shift_years(day: dt.date, years: int) -> dt.date:
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        # 29 February in a non-leap target year.
        return day.replace(year=day.year + years, day=28)


@dataclass(frozen=True)
class FacilityFilter:
    category: Optional[str] = None
    specific_facility: Optional[str] = None


@dataclass(frozen=True)
class ReportConfig:
    report_type: ReportType
    period: PeriodRange
    facility_filter: Optional[FacilityFilter] = None
    priority_filter: Optional[str] = None
    forecast_horizon: Optional[int] = None


@dataclass(frozen=True)
class ReportPayload:
    report_type: ReportType
    title: str
    period: str
    rows: tuple[ReportRow, ...]
    kpis: Optional[KPISet]
    forecast: Optional[tuple[ForecastPoint, ...]] = None
    generated_at: dt.datetime = field(
        default_factory=lambda: dt.datetime.now(dt.timezone.utc)
    )

    def row_dicts(self) -> list[dict[str, Any]]:
        return [row.to_dict() for row in self.rows]

    def to_dict(self) -> dict[str, Any]:
        return {
            "report_type": self.report_type.value,
            "title": self.title,
            "period": self.period,
            "rows": self.row_dicts(),
            "kpis": dict(self.kpis) if self.kpis is not None else None,
            "forecast": (
                [point.to_dict() for point in self.forecast]
                if self.forecast is not None
                else None
            ),
            "generated_at": self.generated_at.isoformat(),
        }


def freeze_kpis(values: Mapping[str, KPIValue]) -> KPISet:
    return MappingProxyType(dict(values))
