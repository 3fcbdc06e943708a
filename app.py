"""
app.py: FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn. It wires the
reporting service, registers routers and validates configuration on startup.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from backend.controllers.report_controller import router as report_router
from backend.services.report_service import ReportingService
from backend.utils.config import get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


def create_app() -> FastAPI:
    """
    Build and wire the FastAPI application.

    The reporting service is stateless apart from its configuration, so one
    instance on app.state serves every request.
    """
    settings = get_settings()
    reporting_service = ReportingService(settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Log the effective analytics configuration before accepting requests."""
        _startup(app)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.include_router(report_router)
    app.state.reporting_service = reporting_service

    return app


def _startup(app: FastAPI) -> None:
    settings = get_settings()
    logger.info(
        "Startup: analytics configured | utilization_ceiling=%s | revenue_rate=%s | "
        "cost_per_report=%s | forecast_horizon=%s",
        settings.kpi_utilization_ceiling,
        settings.kpi_revenue_rate_per_hour,
        settings.kpi_cost_per_report,
        settings.forecast_horizon,
    )
    logger.info("Startup complete, system ready")


# Module-level app object for uvicorn
app = create_app()
