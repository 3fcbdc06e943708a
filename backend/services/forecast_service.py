"""Bounded linear-trend projection for report forecasts.

This is deliberately not a fitted time-series model: each future period is
``baseline + trend * i`` with fixed-ratio lower and upper bounds.
"""

from __future__ import annotations

import datetime as dt
from typing import Iterable, Optional, Sequence

import numpy as np
import pandas as pd

from backend.domain.constraints import (
    ForecastConfig,
    forecast_config_from_settings,
    validate_forecast_config,
)
from backend.domain.models import ForecastPoint, PeriodRange
from backend.utils.logger import get_logger
from backend.utils.numeric import round_int, safe_number


logger = get_logger(__name__)


def _resolve_config(config: Optional[ForecastConfig]) -> ForecastConfig:
    resolved = config or forecast_config_from_settings()
    validate_forecast_config(resolved)
    return resolved


def _period_labels(anchor: Optional[dt.date], horizon: int) -> list[str]:
    if anchor is None:
        return [f"Period {index}" for index in range(1, horizon + 1)]
    anchor_month = pd.Period(anchor, freq="M")
    return [(anchor_month + index).strftime("%Y-%m") for index in range(1, horizon + 1)]


def generate_forecast(
    baseline: float,
    trend: float,
    horizon: int,
    config: Optional[ForecastConfig] = None,
    *,
    anchor: Optional[dt.date] = None,
    rng: Optional[np.random.Generator] = None,
) -> tuple[ForecastPoint, ...]:
    """Project ``horizon`` periods after ``anchor``.

    Noise in ``[-variance, variance]`` is only added when a generator is passed
    explicitly and the configured variance is positive, so the default output is
    reproducible. Projections are floored at zero.
    """
    forecast_config = _resolve_config(config)
    if horizon <= 0:
        return ()

    base = safe_number(baseline)
    step = safe_number(trend)
    points: list[ForecastPoint] = []
    for index, label in enumerate(_period_labels(anchor, horizon), start=1):
        projected = base + step * index
        if rng is not None and forecast_config.variance > 0:
            projected += float(rng.uniform(-forecast_config.variance, forecast_config.variance))
        projected = max(0.0, projected)
        points.append(
            ForecastPoint(
                period_label=label,
                projected=round_int(projected),
                lower_bound=round_int(projected * forecast_config.lower_ratio),
                upper_bound=round_int(projected * forecast_config.upper_ratio),
            )
        )
    return tuple(points)


def fit_trend(series: Sequence[float]) -> tuple[float, float]:
    """Return ``(baseline, trend)`` from the first and last observations."""
    values = [safe_number(value) for value in series]
    if len(values) < 2:
        raise ValueError("at least two observations are required to fit a trend")
    return values[-1], (values[-1] - values[0]) / (len(values) - 1)


def forecast_from_history(
    series: Sequence[float],
    horizon: int,
    config: Optional[ForecastConfig] = None,
    *,
    anchor: Optional[dt.date] = None,
    rng: Optional[np.random.Generator] = None,
    fallback_baseline: Optional[float] = None,
) -> tuple[ForecastPoint, ...]:
    """Forecast from a short history, or from a synthetic baseline when it is too short."""
    forecast_config = _resolve_config(config)
    if len(series) >= 2:
        baseline, trend = fit_trend(series)
        mode = "history"
    else:
        if series:
            baseline = safe_number(series[-1])
        else:
            baseline = safe_number(fallback_baseline)
        trend = baseline * forecast_config.synthetic_growth_rate
        mode = "synthetic"

    points = generate_forecast(
        baseline,
        trend,
        horizon,
        forecast_config,
        anchor=anchor,
        rng=rng,
    )
    logger.info(
        "Forecast generated | mode=%s | observations=%s | baseline=%.2f | trend=%.2f | horizon=%s",
        mode,
        len(series),
        baseline,
        trend,
        horizon,
    )
    return points


def build_monthly_history(
    days: Iterable[Optional[dt.date]],
    period: Optional[PeriodRange] = None,
) -> list[int]:
    """Count dated records per calendar month, zero-filling months in ``period``."""
    dated = [day for day in days if day is not None]
    if dated:
        stamps = pd.DatetimeIndex(pd.to_datetime(dated))
        counts = pd.Series(1, index=stamps).sort_index().resample("MS").sum()
    else:
        counts = pd.Series(dtype="int64", index=pd.DatetimeIndex([]))

    if period is not None:
        month_start = pd.Timestamp(period.start).to_period("M").to_timestamp()
        months = pd.date_range(start=month_start, end=pd.Timestamp(period.end), freq="MS")
        counts = counts.reindex(months, fill_value=0)

    return [int(value) for value in counts.tolist()]
