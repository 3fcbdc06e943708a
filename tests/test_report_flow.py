from __future__ import annotations

from dataclasses import FrozenInstanceError, replace
from datetime import date, datetime, timezone

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from backend.controllers.report_controller import router as report_router
from backend.domain.models import (
    FacilityFilter,
    PeriodRange,
    Priority,
    ReportConfig,
    ReportType,
)
from backend.services.report_service import (
    ReportConfigError,
    ReportingService,
    ReportValidationError,
    assemble_report,
)
from backend.utils.config import get_settings


JANUARY_2024 = PeriodRange(start=date(2024, 1, 1), end=date(2024, 1, 31))

BOOKINGS = [
    {"facility_id": 1, "facility_name": "Gym", "status": "approved", "date": "2024-01-10"},
    {"facility_id": 1, "facility_name": "Gym", "status": "pending", "date": "2024-01-12"},
    {"facility_id": 2, "facility_name": "Pool", "status": "approved", "date": "2024-02-03"},
    {"facility_id": 1, "facility_name": "Gym", "status": "approved", "date": "2023-01-20"},
]
EVENTS = [
    {
        "facility_id": 1,
        "facility_name": "Gym",
        "status": "completed",
        "start_date": "2024-01-15",
        "start_time": "09:00",
        "end_time": "12:00",
    },
]
MAINTENANCE = [
    {
        "priority": "high",
        "status": "completed",
        "reported_date": "2024-01-01T00:00",
        "completion_date": "2024-01-03T00:00",
    },
    {"priority": "High", "status": "reported", "reported_date": "2024-01-04T00:00"},
    {"priority": "low", "status": "in-progress", "reported_date": "2024-01-05T00:00"},
]


def _build_test_settings(**overrides):
    get_settings.cache_clear()
    base = get_settings()
    values = {
        "forecast_horizon": 2,
        "forecast_variance": 0.0,
        "forecast_random_seed": None,
        "kpi_utilization_ceiling": 98,
        "kpi_revenue_rate_per_hour": 75.0,
        "kpi_cost_per_report": 150.0,
    }
    values.update(overrides)
    return replace(base, **values)


def _build_test_app() -> FastAPI:
    app = FastAPI()
    app.include_router(report_router)
    app.state.reporting_service = ReportingService(settings=_build_test_settings())
    return app


def _facility_config(**overrides) -> ReportConfig:
    return ReportConfig(report_type=ReportType.FACILITY_USAGE, period=JANUARY_2024, **overrides)


def test_facility_usage_report_end_to_end():
    service = ReportingService(settings=_build_test_settings())

    payload = service.generate_report(_facility_config(), bookings=BOOKINGS, events=EVENTS)

    assert payload.title == "Facility Usage Report"
    assert payload.period == "2024-01-01 - 2024-01-31"
    assert len(payload.rows) == 1
    gym = payload.rows[0]
    assert (gym.facility_name, gym.bookings_count, gym.events_count, gym.total_event_hours) == (
        "Gym",
        2,
        1,
        3.0,
    )
    assert payload.kpis["utilization"] == 1
    assert payload.kpis["total_revenue"] == 225.0
    # three January activities against one a year earlier
    assert payload.kpis["yoy_growth"] == 200.0
    assert [point.period_label for point in payload.forecast] == ["2024-02", "2024-03"]


def test_facility_report_without_matching_records_has_no_kpis():
    service = ReportingService(settings=_build_test_settings())

    payload = service.generate_report(
        _facility_config(facility_filter=FacilityFilter(specific_facility="Tennis Court")),
        bookings=BOOKINGS,
        events=EVENTS,
    )

    assert payload.rows == ()
    assert payload.kpis is None


def test_undated_records_are_kept_in_period():
    service = ReportingService(settings=_build_test_settings())

    payload = service.generate_report(
        _facility_config(),
        bookings=[{"facility_id": 9, "facility_name": "Studio", "status": "approved"}],
    )

    assert payload.rows[0].facility_name == "Studio"
    assert payload.rows[0].bookings_count == 1


def test_maintenance_report_end_to_end():
    service = ReportingService(settings=_build_test_settings())

    payload = service.generate_report(
        ReportConfig(report_type=ReportType.MAINTENANCE, period=JANUARY_2024, forecast_horizon=1),
        maintenance_reports=MAINTENANCE,
    )

    assert payload.title == "Maintenance Report"
    assert [row.priority for row in payload.rows] == [Priority.HIGH, Priority.LOW]
    assert payload.kpis["total_reports"] == 3
    assert payload.kpis["resolution_rate"] == 33
    assert payload.kpis["avg_resolution_time"] == "48.0"
    assert payload.kpis["total_cost"] == 450.0
    assert payload.kpis["sla_compliance_low"] == "N/A"
    assert len(payload.forecast) == 1


def test_maintenance_priority_filter_limits_rows_and_kpis():
    service = ReportingService(settings=_build_test_settings())

    payload = service.generate_report(
        ReportConfig(report_type=ReportType.MAINTENANCE, period=JANUARY_2024, priority_filter="HIGH"),
        maintenance_reports=MAINTENANCE,
    )

    assert [row.priority for row in payload.rows] == [Priority.HIGH]
    assert payload.kpis["total_reports"] == 2
    assert payload.kpis["resolution_rate"] == 50


def test_payload_is_read_only():
    service = ReportingService(settings=_build_test_settings())
    payload = service.generate_report(_facility_config(), bookings=BOOKINGS, events=EVENTS)

    with pytest.raises(TypeError):
        payload.kpis["utilization"] = 100
    with pytest.raises(FrozenInstanceError):
        payload.title = "Changed"
    with pytest.raises(FrozenInstanceError):
        payload.rows[0].bookings_count = 0


def test_same_inputs_produce_identical_payloads():
    service = ReportingService(settings=_build_test_settings())
    generated_at = datetime(2024, 2, 1, tzinfo=timezone.utc)

    first = service.generate_report(
        _facility_config(), bookings=BOOKINGS, events=EVENTS, generated_at=generated_at
    )
    second = service.generate_report(
        _facility_config(), bookings=BOOKINGS, events=EVENTS, generated_at=generated_at
    )

    assert first.to_dict() == second.to_dict()


def test_seeded_noise_is_reproducible_across_services():
    settings = _build_test_settings(forecast_variance=2.0, forecast_random_seed=11)
    generated_at = datetime(2024, 2, 1, tzinfo=timezone.utc)

    first = ReportingService(settings=settings).generate_report(
        _facility_config(), bookings=BOOKINGS, events=EVENTS, generated_at=generated_at
    )
    second = ReportingService(settings=settings).generate_report(
        _facility_config(), bookings=BOOKINGS, events=EVENTS, generated_at=generated_at
    )

    assert first.forecast == second.forecast


def test_inverted_period_raises_config_error():
    service = ReportingService(settings=_build_test_settings())
    config = ReportConfig(
        report_type=ReportType.FACILITY_USAGE,
        period=PeriodRange(start=date(2024, 2, 1), end=date(2024, 1, 1)),
    )

    with pytest.raises(ReportConfigError):
        service.generate_report(config, bookings=BOOKINGS)


def test_invalid_settings_are_rejected_at_construction():
    with pytest.raises(ValueError):
        ReportingService(settings=_build_test_settings(kpi_utilization_ceiling=120))


def test_unrecognized_priority_filter_raises_config_error():
    service = ReportingService(settings=_build_test_settings())
    config = ReportConfig(
        report_type=ReportType.MAINTENANCE,
        period=JANUARY_2024,
        priority_filter="urgent",
    )

    with pytest.raises(ReportConfigError):
        service.generate_report(config, maintenance_reports=MAINTENANCE)


def test_report_api_rejects_unrecognized_priority_filter():
    client = TestClient(_build_test_app())

    response = client.post(
        "/reports",
        json={
            "reportType": "maintenance",
            "period": {"start": "2024-01-01", "end": "2024-01-31"},
            "priorityFilter": "urgent",
            "maintenanceReports": MAINTENANCE,
        },
    )

    assert response.status_code == 400


def test_assemble_report_requires_title_and_period():
    with pytest.raises(ReportValidationError):
        assemble_report(None, "2024-01-01 - 2024-01-31", [], None)
    with pytest.raises(ReportValidationError):
        assemble_report("Facility Usage Report", None, [], None)


def test_assemble_report_passes_parts_through():
    payload = assemble_report("Facility Usage Report", "2024-01-01 - 2024-01-31", [], {"utilization": 5})

    assert payload.rows == ()
    assert payload.forecast is None
    assert dict(payload.kpis) == {"utilization": 5}


def test_report_api_accepts_camel_case_payload():
    client = TestClient(_build_test_app())

    response = client.post(
        "/reports",
        json={
            "reportType": "facility-usage",
            "period": {"start": "2024-01-01", "end": "2024-01-31"},
            "facilityFilter": {"category": "fitness"},
            "forecastHorizon": 1,
            "bookings": BOOKINGS,
            "events": EVENTS,
            "facilities": [
                {"facility_id": 1, "name": "Gym", "type": "fitness"},
                {"facility_id": 2, "name": "Pool", "type": "aquatic"},
            ],
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["report_type"] == "facility-usage"
    assert body["rows"] == [
        {
            "facility_id": 1,
            "facility_name": "Gym",
            "bookings_count": 2,
            "events_count": 1,
            "total_event_hours": 3.0,
        }
    ]
    assert body["kpis"]["total_bookings"] == 2
    assert len(body["forecast"]) == 1


def test_report_api_exports_csv_attachment():
    client = TestClient(_build_test_app())

    response = client.post(
        "/reports/csv",
        json={
            "reportType": "maintenance",
            "period": {"start": "2024-01-01", "end": "2024-01-31"},
            "maintenanceReports": MAINTENANCE,
        },
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert 'filename="maintenance-report-' in response.headers["content-disposition"]
    lines = response.text.strip().splitlines()
    assert lines[0].startswith('"priority","count","resolved"')
    assert len(lines) == 3


def test_report_api_rejects_inverted_period():
    client = TestClient(_build_test_app())

    response = client.post(
        "/reports",
        json={
            "reportType": "facility-usage",
            "period": {"start": "2024-02-01", "end": "2024-01-01"},
        },
    )

    assert response.status_code == 400


def test_report_api_rejects_unknown_report_type():
    client = TestClient(_build_test_app())

    response = client.post(
        "/reports",
        json={
            "reportType": "user-activity",
            "period": {"start": "2024-01-01", "end": "2024-01-31"},
        },
    )

    assert response.status_code == 422


def test_health_endpoint():
    client = TestClient(_build_test_app())

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
