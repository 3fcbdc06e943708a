"""Report assembly and the end-to-end report generation workflow."""

from __future__ import annotations

import datetime as dt
from types import MappingProxyType
from typing import Any, Iterable, Optional, Sequence

import numpy as np

from backend.domain.constraints import (
    forecast_config_from_settings,
    kpi_config_from_settings,
    validate_forecast_config,
    validate_kpi_config,
    validate_report_config,
)
from backend.domain.models import (
    ForecastPoint,
    KPISet,
    RecordKind,
    ReportConfig,
    ReportPayload,
    ReportRow,
    ReportType,
    freeze_kpis,
)
from backend.services.aggregation_service import (
    aggregate_facility_usage,
    aggregate_maintenance_by_priority,
    build_facility_predicate,
    build_priority_predicate,
)
from backend.services.forecast_service import build_monthly_history, forecast_from_history
from backend.services.kpi_service import compute_facility_kpis, compute_maintenance_kpis
from backend.services.normalizer_service import FacilityDirectory, normalize_records
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)

REPORT_TITLES: dict[ReportType, str] = {
    ReportType.FACILITY_USAGE: "Facility Usage Report",
    ReportType.MAINTENANCE: "Maintenance Report",
}


class ReportingError(Exception):
    """Base exception for report generation failures."""


class ReportConfigError(ReportingError):
    """Raised when the reporting configuration is invalid."""


class ReportValidationError(ReportingError):
    """Raised when a payload is assembled without a title or period."""


def assemble_report(
    title: str,
    period: str,
    rows: Sequence[ReportRow],
    kpis: Optional[KPISet],
    forecast: Optional[Sequence[ForecastPoint]] = None,
    *,
    report_type: ReportType = ReportType.FACILITY_USAGE,
    generated_at: Optional[dt.datetime] = None,
) -> ReportPayload:
    """Bundle already-computed parts into one immutable payload.

    Nothing is recomputed here; rows and forecast are only converted to tuples
    and the KPI mapping is wrapped read-only.
    """
    if title is None:
        raise ReportValidationError("report title is required")
    if period is None:
        raise ReportValidationError("report period is required")

    frozen_kpis = kpis
    if kpis is not None and not isinstance(kpis, MappingProxyType):
        frozen_kpis = freeze_kpis(kpis)

    extra: dict[str, Any] = {}
    if generated_at is not None:
        extra["generated_at"] = generated_at
    return ReportPayload(
        report_type=report_type,
        title=title,
        period=period,
        rows=tuple(rows),
        kpis=frozen_kpis,
        forecast=tuple(forecast) if forecast is not None else None,
        **extra,
    )


class ReportingService:
    """Runs normalize -> aggregate -> KPIs -> forecast -> assemble for one request.

    The service keeps only read-only configuration, so concurrent calls never
    share intermediate state.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._kpi_config = kpi_config_from_settings(self._settings)
        self._forecast_config = forecast_config_from_settings(self._settings)
        validate_kpi_config(self._kpi_config)
        validate_forecast_config(self._forecast_config)

    def _build_rng(self) -> Optional[np.random.Generator]:
        seed = self._settings.forecast_random_seed
        if seed is None or self._forecast_config.variance <= 0:
            return None
        return np.random.default_rng(seed)

    def _horizon(self, config: ReportConfig) -> int:
        if config.forecast_horizon is not None:
            return config.forecast_horizon
        return self._forecast_config.default_horizon

    def generate_report(
        self,
        config: ReportConfig,
        *,
        bookings: Iterable[Any] = (),
        events: Iterable[Any] = (),
        maintenance_reports: Iterable[Any] = (),
        facilities: Optional[FacilityDirectory] = None,
        generated_at: Optional[dt.datetime] = None,
    ) -> ReportPayload:
        try:
            validate_report_config(config)
        except ValueError as exc:
            raise ReportConfigError(str(exc)) from exc

        logger.info(
            "Report generation started | type=%s | period=%s",
            config.report_type.value,
            config.period.label(),
        )
        if config.report_type is ReportType.FACILITY_USAGE:
            payload = self._facility_usage_report(
                config,
                bookings=bookings,
                events=events,
                facilities=facilities,
                generated_at=generated_at,
            )
        else:
            payload = self._maintenance_report(
                config,
                maintenance_reports=maintenance_reports,
                facilities=facilities,
                generated_at=generated_at,
            )
        logger.info(
            "Report generation completed | type=%s | rows=%s | forecast_points=%s",
            payload.report_type.value,
            len(payload.rows),
            len(payload.forecast or ()),
        )
        return payload

    def _facility_usage_report(
        self,
        config: ReportConfig,
        *,
        bookings: Iterable[Any],
        events: Iterable[Any],
        facilities: Optional[FacilityDirectory],
        generated_at: Optional[dt.datetime],
    ) -> ReportPayload:
        records = [
            *normalize_records(bookings, RecordKind.BOOKING, facilities),
            *normalize_records(events, RecordKind.EVENT, facilities),
        ]
        include = build_facility_predicate(config.facility_filter)
        selected = [
            record
            for record in records
            if config.period.contains(record.occurred_on)
            and (include is None or include(record))
        ]
        previous_period = config.period.shifted_years(-1)
        previous = [
            record
            for record in records
            if record.occurred_on is not None
            and previous_period.contains(record.occurred_on)
            and (include is None or include(record))
        ]

        rows = list(aggregate_facility_usage(selected).values())
        previous_rows = list(aggregate_facility_usage(previous).values())
        kpis = compute_facility_kpis(rows, self._kpi_config, previous_rows=previous_rows)

        forecast = forecast_from_history(
            build_monthly_history((record.occurred_on for record in selected), config.period),
            self._horizon(config),
            self._forecast_config,
            anchor=config.period.end,
            rng=self._build_rng(),
            fallback_baseline=float(len(selected)),
        )
        return assemble_report(
            REPORT_TITLES[ReportType.FACILITY_USAGE],
            config.period.label(),
            rows,
            kpis,
            forecast,
            report_type=ReportType.FACILITY_USAGE,
            generated_at=generated_at,
        )

    def _maintenance_report(
        self,
        config: ReportConfig,
        *,
        maintenance_reports: Iterable[Any],
        facilities: Optional[FacilityDirectory],
        generated_at: Optional[dt.datetime],
    ) -> ReportPayload:
        reports = normalize_records(maintenance_reports, RecordKind.MAINTENANCE, facilities)
        in_period = [report for report in reports if config.period.contains(report.occurred_on)]

        rows = list(aggregate_maintenance_by_priority(in_period, config.priority_filter).values())
        kpis = compute_maintenance_kpis(rows, self._kpi_config)

        include = build_priority_predicate(config.priority_filter)
        selected = [report for report in in_period if include is None or include(report)]
        forecast = forecast_from_history(
            build_monthly_history((report.occurred_on for report in selected), config.period),
            self._horizon(config),
            self._forecast_config,
            anchor=config.period.end,
            rng=self._build_rng(),
            fallback_baseline=float(len(selected)),
        )
        return assemble_report(
            REPORT_TITLES[ReportType.MAINTENANCE],
            config.period.label(),
            rows,
            kpis,
            forecast,
            report_type=ReportType.MAINTENANCE,
            generated_at=generated_at,
        )
