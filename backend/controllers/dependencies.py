"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from backend.services.report_service import ReportingService
from backend.utils.config import get_settings


def get_reporting_service(request: Request) -> ReportingService:
    service = getattr(request.app.state, "reporting_service", None)
    if service is None:
        try:
            service = ReportingService(settings=get_settings())
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=f"Reporting service is misconfigured: {exc}",
            ) from exc
        request.app.state.reporting_service = service
    return service
