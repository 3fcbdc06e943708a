"""Domain-level validation rules for KPI, forecast and report configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from backend.domain.models import Priority, ReportConfig, ReportType
from backend.utils.config import Settings, get_settings


@dataclass(frozen=True)
class KPIConfig:
    operating_hours_per_day: float
    operating_days_per_period: int
    utilization_ceiling: int
    revenue_rate_per_hour: float
    cost_per_report: float


@dataclass(frozen=True)
class ForecastConfig:
    lower_ratio: float
    upper_ratio: float
    synthetic_growth_rate: float
    variance: float
    default_horizon: int


def kpi_config_from_settings(settings: Optional[Settings] = None) -> KPIConfig:
    settings = settings or get_settings()
    return KPIConfig(
        operating_hours_per_day=settings.kpi_operating_hours_per_day,
        operating_days_per_period=settings.kpi_operating_days_per_period,
        utilization_ceiling=settings.kpi_utilization_ceiling,
        revenue_rate_per_hour=settings.kpi_revenue_rate_per_hour,
        cost_per_report=settings.kpi_cost_per_report,
    )


def forecast_config_from_settings(settings: Optional[Settings] = None) -> ForecastConfig:
    settings = settings or get_settings()
    return ForecastConfig(
        lower_ratio=settings.forecast_lower_ratio,
        upper_ratio=settings.forecast_upper_ratio,
        synthetic_growth_rate=settings.forecast_synthetic_growth_rate,
        variance=settings.forecast_variance,
        default_horizon=settings.forecast_horizon,
    )


def validate_kpi_config(config: KPIConfig) -> None:
    if not 0 < config.operating_hours_per_day <= 24:
        raise ValueError("operating_hours_per_day must be in (0, 24]")
    if config.operating_days_per_period <= 0:
        raise ValueError("operating_days_per_period must be > 0")
    if not 0 <= config.utilization_ceiling <= 100:
        raise ValueError("utilization_ceiling must be between 0 and 100")
    if config.revenue_rate_per_hour < 0:
        raise ValueError("revenue_rate_per_hour must be >= 0")
    if config.cost_per_report < 0:
        raise ValueError("cost_per_report must be >= 0")


def validate_forecast_config(config: ForecastConfig) -> None:
    if not 0.0 <= config.lower_ratio <= 1.0:
        raise ValueError("lower_ratio must be between 0 and 1")
    if config.upper_ratio < 1.0:
        raise ValueError("upper_ratio must be >= 1")
    if config.synthetic_growth_rate < 0.0:
        raise ValueError("synthetic_growth_rate must be >= 0")
    if config.variance < 0.0:
        raise ValueError("variance must be >= 0")
    if config.default_horizon < 0:
        raise ValueError("default_horizon must be >= 0")


def validate_report_config(config: ReportConfig) -> None:
    if not isinstance(config.report_type, ReportType):
        raise ValueError(f"unsupported report_type: {config.report_type!r}")
    if config.period.start > config.period.end:
        raise ValueError("period start must not be after period end")
    if config.forecast_horizon is not None and config.forecast_horizon < 0:
        raise ValueError("forecast_horizon must be >= 0")
    priority_filter = config.priority_filter
    if priority_filter is not None and priority_filter.strip().lower() not in ("", "all"):
        if Priority.lookup(priority_filter) is None:
            raise ValueError(f"unsupported priority_filter: {priority_filter!r}")
