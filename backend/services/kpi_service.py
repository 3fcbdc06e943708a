"""KPI derivation for facility-usage and maintenance aggregates.

Every ratio has an explicit zero-denominator branch so consumers never see
NaN or infinity; sentinels are ``0`` for rates and ``"N/A"`` for averages.
"""

from __future__ import annotations

from typing import Optional, Sequence

from backend.domain.constraints import KPIConfig, kpi_config_from_settings, validate_kpi_config
from backend.domain.models import (
    NOT_AVAILABLE,
    FacilityUsageAggregate,
    KPISet,
    KPIValue,
    PriorityAggregate,
    freeze_kpis,
)
from backend.utils.logger import get_logger
from backend.utils.numeric import round_half_up, round_int


logger = get_logger(__name__)


def _resolve_config(config: Optional[KPIConfig]) -> KPIConfig:
    resolved = config or kpi_config_from_settings()
    validate_kpi_config(resolved)
    return resolved


def _activity_total(rows: Sequence[FacilityUsageAggregate]) -> int:
    return sum(row.bookings_count + row.events_count for row in rows)


def compute_growth_percentage(current: float, previous: Optional[float]) -> float:
    """Relative change against the prior period; 0.0 when there is no baseline."""
    if previous is None or previous <= 0:
        return 0.0
    return round_half_up((current - previous) / previous * 100.0, 1)


def compute_utilization(total_hours: float, facility_count: int, config: KPIConfig) -> int:
    capacity_hours = facility_count * config.operating_hours_per_day * config.operating_days_per_period
    if capacity_hours <= 0:
        return 0
    percentage = round_int(max(0.0, total_hours) / capacity_hours * 100.0)
    return max(0, min(config.utilization_ceiling, percentage))


def compute_facility_kpis(
    rows: Sequence[FacilityUsageAggregate],
    config: Optional[KPIConfig] = None,
    previous_rows: Optional[Sequence[FacilityUsageAggregate]] = None,
) -> Optional[KPISet]:
    """Derive usage KPIs; returns ``None`` when there are no facility rows.

    ``yoy_growth`` compares total activity (bookings plus events) with
    ``previous_rows``, normally the same window one year earlier.
    """
    kpi_config = _resolve_config(config)
    facility_count = len(rows)
    if facility_count == 0:
        return None

    total_bookings = sum(row.bookings_count for row in rows)
    total_events = sum(row.events_count for row in rows)
    total_hours = round_half_up(sum(row.total_event_hours for row in rows), 1)

    previous_activity = (
        float(_activity_total(previous_rows)) if previous_rows is not None else None
    )
    values: dict[str, KPIValue] = {
        "facility_count": facility_count,
        "total_bookings": total_bookings,
        "total_events": total_events,
        "total_hours": total_hours,
        "avg_bookings_per_facility": round_half_up(total_bookings / facility_count, 1),
        "avg_events_per_facility": round_half_up(total_events / facility_count, 1),
        "avg_hours_per_facility": round_half_up(total_hours / facility_count, 1),
        "utilization": compute_utilization(total_hours, facility_count, kpi_config),
        "total_revenue": round_half_up(total_hours * kpi_config.revenue_rate_per_hour, 2),
        "yoy_growth": compute_growth_percentage(
            float(total_bookings + total_events),
            previous_activity,
        ),
    }
    logger.info(
        "Facility KPIs computed | facilities=%s | bookings=%s | events=%s | hours=%s | utilization=%s",
        facility_count,
        total_bookings,
        total_events,
        total_hours,
        values["utilization"],
    )
    return freeze_kpis(values)


def _weighted_sla_compliance(rows: Sequence[PriorityAggregate]) -> KPIValue:
    weighted_sum = 0.0
    weight = 0
    for row in rows:
        compliance = row.sla_compliance
        if row.resolved > 0 and isinstance(compliance, float):
            weighted_sum += compliance * row.resolved
            weight += row.resolved
    if weight == 0:
        return NOT_AVAILABLE
    return round_half_up(weighted_sum / weight, 1)


def compute_maintenance_kpis(
    rows: Sequence[PriorityAggregate],
    config: Optional[KPIConfig] = None,
) -> KPISet:
    """Derive resolution and SLA KPIs from per-priority aggregates."""
    kpi_config = _resolve_config(config)

    total_reports = sum(row.count for row in rows)
    total_resolved = sum(row.resolved for row in rows)

    if total_reports > 0:
        resolution_rate = round_int(total_resolved / total_reports * 100.0)
    else:
        resolution_rate = 0

    weighted_hours = sum(
        row.avg_resolution_hours * row.resolved
        for row in rows
        if row.avg_resolution_hours is not None
    )
    if total_resolved > 0:
        avg_resolution_time: KPIValue = f"{round_half_up(weighted_hours / total_resolved, 1):.1f}"
    else:
        avg_resolution_time = NOT_AVAILABLE

    values: dict[str, KPIValue] = {
        "total_reports": total_reports,
        "total_resolved": total_resolved,
        "open_reports": total_reports - total_resolved,
        "resolution_rate": max(0, min(100, resolution_rate)),
        "avg_resolution_time": avg_resolution_time,
        "total_cost": round_half_up(total_reports * kpi_config.cost_per_report, 2),
        "overall_sla_compliance": _weighted_sla_compliance(rows),
        "sla_breaches": sum(
            1
            for row in rows
            if isinstance(row.sla_compliance, float) and row.sla_compliance < 100.0
        ),
    }
    for row in rows:
        values[f"sla_compliance_{row.priority.value}"] = row.sla_compliance

    logger.info(
        "Maintenance KPIs computed | reports=%s | resolved=%s | resolution_rate=%s | avg_resolution_time=%s",
        total_reports,
        total_resolved,
        values["resolution_rate"],
        avg_resolution_time,
    )
    return freeze_kpis(values)
