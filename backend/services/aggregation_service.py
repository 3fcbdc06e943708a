"""Grouping of normalized records into per-facility and per-priority aggregates."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from backend.domain.models import (
    BookingRecord,
    EventRecord,
    FacilityFilter,
    FacilityId,
    FacilityRecord,
    FacilityUsageAggregate,
    MaintenanceReport,
    Priority,
    PriorityAggregate,
)
from backend.utils.logger import get_logger
from backend.utils.numeric import round_half_up


logger = get_logger(__name__)

FacilityPredicate = Callable[[FacilityRecord], bool]

_NO_FILTER_VALUES = {"", "all"}


@dataclass
class _FacilityAccumulator:
    facility_name: str
    bookings_count: int = 0
    events_count: int = 0
    total_event_hours: float = 0.0

    def freeze(self, facility_id: FacilityId) -> FacilityUsageAggregate:
        return FacilityUsageAggregate(
            facility_id=facility_id,
            facility_name=self.facility_name,
            bookings_count=self.bookings_count,
            events_count=self.events_count,
            total_event_hours=round_half_up(max(0.0, self.total_event_hours), 2),
        )


@dataclass
class _PriorityAccumulator:
    count: int = 0
    resolved: int = 0
    total_resolution_hours: float = 0.0

    def freeze(self, priority: Priority) -> PriorityAggregate:
        return PriorityAggregate(
            priority=priority,
            count=self.count,
            resolved=self.resolved,
            total_resolution_hours=round_half_up(max(0.0, self.total_resolution_hours), 2),
        )


def _is_unfiltered(value: Optional[str]) -> bool:
    return value is None or value.strip().lower() in _NO_FILTER_VALUES


def build_facility_predicate(
    facility_filter: Optional[FacilityFilter],
) -> Optional[FacilityPredicate]:
    """Translate a category / specific-facility filter into a record predicate.

    Returns ``None`` when the filter selects everything.
    """
    if facility_filter is None:
        return None
    category = facility_filter.category
    specific = facility_filter.specific_facility
    if _is_unfiltered(category) and _is_unfiltered(specific):
        return None

    wanted_category = None if _is_unfiltered(category) else category.strip().lower()
    wanted_facility = None if _is_unfiltered(specific) else specific.strip().lower()

    def predicate(record: FacilityRecord) -> bool:
        if wanted_category is not None:
            if (record.category or "").strip().lower() != wanted_category:
                return False
        if wanted_facility is not None:
            candidates = {str(record.facility_id).lower(), record.facility_name.strip().lower()}
            if wanted_facility not in candidates:
                return False
        return True

    return predicate


def aggregate_facility_usage(
    records: Iterable[FacilityRecord],
    include: Optional[FacilityPredicate] = None,
) -> dict[FacilityId, FacilityUsageAggregate]:
    """Accumulate booking and event activity per facility.

    The result preserves first-seen facility order and contains only facilities
    with at least one matching record.
    """
    accumulators: dict[FacilityId, _FacilityAccumulator] = {}
    for record in records:
        if include is not None and not include(record):
            continue
        accumulator = accumulators.get(record.facility_id)
        if accumulator is None:
            accumulator = _FacilityAccumulator(facility_name=record.facility_name)
            accumulators[record.facility_id] = accumulator

        if isinstance(record, BookingRecord):
            accumulator.bookings_count += 1
        elif isinstance(record, EventRecord):
            accumulator.events_count += 1
            accumulator.total_event_hours += record.duration_hours
        else:
            raise TypeError(f"unsupported facility record: {type(record).__name__}")

    aggregates = {
        facility_id: accumulator.freeze(facility_id)
        for facility_id, accumulator in accumulators.items()
    }
    logger.debug("Facility usage aggregated | facilities=%s", len(aggregates))
    return aggregates


def build_priority_predicate(
    priority_filter: Optional[str],
) -> Optional[Callable[[MaintenanceReport], bool]]:
    """``None``, ``""`` and ``"All"`` select every priority.

    Raises ``ValueError`` for labels that name no priority.
    """
    if _is_unfiltered(priority_filter):
        return None
    wanted = Priority.lookup(priority_filter)
    if wanted is None:
        raise ValueError(f"unsupported priority_filter: {priority_filter!r}")
    return lambda report: report.priority is wanted


def aggregate_maintenance_by_priority(
    reports: Iterable[MaintenanceReport],
    priority_filter: Optional[str] = "All",
) -> dict[Priority, PriorityAggregate]:
    """Accumulate report counts and resolution hours per priority, first-seen order."""
    include = build_priority_predicate(priority_filter)

    accumulators: dict[Priority, _PriorityAccumulator] = {}
    for report in reports:
        if include is not None and not include(report):
            continue
        accumulator = accumulators.setdefault(report.priority, _PriorityAccumulator())
        accumulator.count += 1
        resolution_hours = report.resolution_hours
        if resolution_hours is not None:
            accumulator.resolved += 1
            accumulator.total_resolution_hours += resolution_hours

    aggregates = {
        priority: accumulator.freeze(priority)
        for priority, accumulator in accumulators.items()
    }
    logger.debug("Maintenance aggregated | priorities=%s", len(aggregates))
    return aggregates
