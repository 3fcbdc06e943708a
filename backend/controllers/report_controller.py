"""Controller layer for report generation and CSV export endpoints."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict, Field

from backend.controllers.dependencies import get_reporting_service
from backend.domain.models import (
    FacilityFilter,
    PeriodRange,
    ReportConfig,
    ReportPayload,
    ReportType,
)
from backend.services.export_service import build_export_filename, rows_to_csv
from backend.services.normalizer_service import NormalizationError
from backend.services.report_service import (
    ReportConfigError,
    ReportingService,
    ReportValidationError,
)
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["reports"])


class PeriodModel(BaseModel):
    start: date
    end: date


class FacilityFilterModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    category: Optional[str] = None
    specific_facility: Optional[str] = Field(default=None, alias="specificFacility")


class ReportRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    report_type: Literal["facility-usage", "maintenance"] = Field(alias="reportType")
    period: PeriodModel
    facility_filter: Optional[FacilityFilterModel] = Field(default=None, alias="facilityFilter")
    priority_filter: Optional[str] = Field(default=None, alias="priorityFilter")
    forecast_horizon: Optional[int] = Field(default=None, ge=0, le=60, alias="forecastHorizon")
    bookings: list[dict[str, Any]] = Field(default_factory=list)
    events: list[dict[str, Any]] = Field(default_factory=list)
    maintenance_reports: list[dict[str, Any]] = Field(
        default_factory=list,
        alias="maintenanceReports",
    )
    facilities: Optional[list[dict[str, Any]]] = None

    def to_config(self) -> ReportConfig:
        facility_filter = None
        if self.facility_filter is not None:
            facility_filter = FacilityFilter(
                category=self.facility_filter.category,
                specific_facility=self.facility_filter.specific_facility,
            )
        return ReportConfig(
            report_type=ReportType(self.report_type),
            period=PeriodRange(start=self.period.start, end=self.period.end),
            facility_filter=facility_filter,
            priority_filter=self.priority_filter,
            forecast_horizon=self.forecast_horizon,
        )

    def facility_directory(self) -> Optional[dict[Any, dict[str, Any]]]:
        if not self.facilities:
            return None
        return {
            facility["facility_id"]: facility
            for facility in self.facilities
            if "facility_id" in facility
        }


class ForecastPointModel(BaseModel):
    period_label: str
    projected: int
    lower_bound: int
    upper_bound: int


class ReportResponse(BaseModel):
    report_type: str
    title: str
    period: str
    rows: list[dict[str, Any]]
    kpis: Optional[dict[str, Any]] = None
    forecast: Optional[list[ForecastPointModel]] = None
    generated_at: datetime


class HealthResponse(BaseModel):
    status: str


def _run_report(payload: ReportRequest, service: ReportingService) -> ReportPayload:
    try:
        return service.generate_report(
            payload.to_config(),
            bookings=payload.bookings,
            events=payload.events,
            maintenance_reports=payload.maintenance_reports,
            facilities=payload.facility_directory(),
        )
    except (ReportConfigError, ReportValidationError, NormalizationError) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected report generation failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate report",
        ) from exc


@router.get("/health", response_model=HealthResponse, status_code=status.HTTP_200_OK)
async def health() -> HealthResponse:
    return HealthResponse(status="ok")


@router.post("/reports", response_model=ReportResponse, status_code=status.HTTP_200_OK)
async def generate_report(
    payload: ReportRequest,
    service: ReportingService = Depends(get_reporting_service),
) -> ReportResponse:
    report = _run_report(payload, service)
    return ReportResponse(**report.to_dict())


@router.post("/reports/csv", status_code=status.HTTP_200_OK)
async def export_report_csv(
    payload: ReportRequest,
    service: ReportingService = Depends(get_reporting_service),
) -> Response:
    report = _run_report(payload, service)
    filename = build_export_filename(report.report_type)
    return Response(
        content=rows_to_csv(report),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
