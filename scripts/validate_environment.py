#!/usr/bin/env python3
"""Validate local analytics environment readiness."""

from __future__ import annotations

import importlib
import sys
from datetime import date
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.domain.models import PeriodRange, ReportConfig, ReportType
from backend.services.export_service import rows_to_csv
from backend.services.report_service import ReportingService
from backend.utils.config import get_settings

SEPARATOR_LINE = "=" * 44

_SMOKE_BOOKINGS = [
    {"facility_id": 1, "facility_name": "Gym", "status": "approved", "date": "2024-01-10"},
    {"facility_id": 1, "facility_name": "Gym", "status": "pending", "date": "2024-01-12"},
]
_SMOKE_EVENTS = [
    {
        "facility_id": 1,
        "facility_name": "Gym",
        "status": "completed",
        "start_date": "2024-01-15",
        "start_time": "09:00",
        "end_time": "12:00",
    },
]
_SMOKE_MAINTENANCE = [
    {
        "priority": "high",
        "status": "completed",
        "reported_date": "2024-01-01T00:00",
        "completion_date": "2024-01-03T00:00",
    },
    {"priority": "high", "status": "reported", "reported_date": "2024-01-04T00:00"},
]


def _print_result(name: str, success: bool, detail: str = "") -> tuple[bool, str]:
    if success:
        return True, f"[PASS] {name}{detail}"
    return False, f"[FAIL] {name}: {detail}"


def main() -> int:
    results: list[str] = []
    all_passed = True

    # CHECK 1: Python version >= 3.10
    if sys.version_info >= (3, 10):
        ok, line = _print_result("Python " + sys.version.split()[0], True)
    else:
        ok, line = _print_result(
            "Python version >= 3.10",
            False,
            f"found {sys.version.split()[0]}",
        )
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 2: Required packages importable
    package_names = ["fastapi", "uvicorn", "pydantic", "numpy", "pandas", "httpx", "pytest"]
    import_errors: list[str] = []
    for module_name in package_names:
        try:
            importlib.import_module(module_name)
        except Exception as exc:  # pragma: no cover - runtime guard
            import_errors.append(f"{module_name} ({exc})")
    if import_errors:
        ok, line = _print_result(
            "Required packages",
            False,
            "missing/unimportable -> " + "; ".join(import_errors),
        )
    else:
        ok, line = _print_result("Required packages: all importable", True)
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 3: Service construction from settings
    service = None
    try:
        service = ReportingService(settings=get_settings())
        ok, line = _print_result("Reporting service configuration", True)
    except Exception as exc:
        ok, line = _print_result("Reporting service configuration", False, str(exc))
    results.append(line)
    all_passed = all_passed and ok

    period = PeriodRange(start=date(2024, 1, 1), end=date(2024, 1, 31))

    # CHECK 4: Facility usage smoke report
    if service is not None:
        try:
            payload = service.generate_report(
                ReportConfig(report_type=ReportType.FACILITY_USAGE, period=period),
                bookings=_SMOKE_BOOKINGS,
                events=_SMOKE_EVENTS,
            )
            row = payload.rows[0]
            if (row.bookings_count, row.events_count, row.total_event_hours) != (2, 1, 3.0):
                raise RuntimeError(f"unexpected aggregate {row}")
            ok, line = _print_result(
                "Facility usage report",
                True,
                f": utilization={payload.kpis['utilization']}%",
            )
        except Exception as exc:
            ok, line = _print_result("Facility usage report", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

    # CHECK 5: Maintenance smoke report and CSV export
    if service is not None:
        try:
            payload = service.generate_report(
                ReportConfig(report_type=ReportType.MAINTENANCE, period=period),
                maintenance_reports=_SMOKE_MAINTENANCE,
            )
            if payload.kpis["avg_resolution_time"] != "48.0":
                raise RuntimeError(f"unexpected avg_resolution_time {payload.kpis['avg_resolution_time']}")
            csv_lines = rows_to_csv(payload).strip().splitlines()
            ok, line = _print_result(
                "Maintenance report + CSV export",
                True,
                f": {len(csv_lines) - 1} rows",
            )
        except Exception as exc:
            ok, line = _print_result("Maintenance report + CSV export", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

    print(SEPARATOR_LINE)
    print(" Analytics Environment Validation")
    print(SEPARATOR_LINE)
    for line in results:
        print(f" {line}")
    print(SEPARATOR_LINE)
    if all_passed:
        print(" All checks passed. Environment is ready.")
        print(SEPARATOR_LINE)
        return 0
    print(" One or more checks failed.")
    print(SEPARATOR_LINE)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
