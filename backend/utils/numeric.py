"""Numeric coercion and rounding helpers shared by the analytics pipeline."""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any


def safe_number(value: Any, default: float = 0.0) -> float:
    """Coerce ``value`` to a finite float; NaN, infinities and junk become ``default``."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    return number


def round_half_up(value: float, digits: int = 0) -> float:
    """Round away from the .5 tie instead of to even, matching report consumers."""
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def round_int(value: float) -> int:
    return int(round_half_up(value, 0))
