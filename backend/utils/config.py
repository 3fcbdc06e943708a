"""Environment-driven application settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _env_optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return int(raw)


@dataclass(frozen=True)
class Settings:
    app_name: str
    app_version: str
    log_level: str

    kpi_operating_hours_per_day: float
    kpi_operating_days_per_period: int
    kpi_utilization_ceiling: int
    kpi_revenue_rate_per_hour: float
    kpi_cost_per_report: float

    forecast_horizon: int
    forecast_lower_ratio: float
    forecast_upper_ratio: float
    forecast_synthetic_growth_rate: float
    forecast_variance: float
    forecast_random_seed: Optional[int]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Read settings once per process; call ``get_settings.cache_clear()`` to reload."""
    return Settings(
        app_name=os.getenv("APP_NAME", "Facility Operations Analytics"),
        app_version=os.getenv("APP_VERSION", "1.0.0"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        kpi_operating_hours_per_day=_env_float("KPI_OPERATING_HOURS_PER_DAY", 12.0),
        kpi_operating_days_per_period=_env_int("KPI_OPERATING_DAYS_PER_PERIOD", 30),
        kpi_utilization_ceiling=_env_int("KPI_UTILIZATION_CEILING", 98),
        kpi_revenue_rate_per_hour=_env_float("KPI_REVENUE_RATE_PER_HOUR", 75.0),
        kpi_cost_per_report=_env_float("KPI_COST_PER_REPORT", 150.0),
        forecast_horizon=_env_int("FORECAST_HORIZON", 3),
        forecast_lower_ratio=_env_float("FORECAST_LOWER_RATIO", 0.9),
        forecast_upper_ratio=_env_float("FORECAST_UPPER_RATIO", 1.1),
        forecast_synthetic_growth_rate=_env_float("FORECAST_SYNTHETIC_GROWTH_RATE", 0.05),
        forecast_variance=_env_float("FORECAST_VARIANCE", 0.0),
        forecast_random_seed=_env_optional_int("FORECAST_RANDOM_SEED"),
    )
