"""Seasonal distribution of annual solar production across months."""

import logging
import math
from typing import Optional, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)

MONTHLY_TOLERANCE = 0.01

# Percent of annual production per month, January first
HIGH_LATITUDE = np.array([4, 5, 8, 10, 12, 13, 14, 12, 9, 7, 4, 2], dtype=float)   # above 40°
MID_LATITUDE = np.array([5, 6, 8, 10, 11, 12, 12, 11, 9, 8, 5, 3], dtype=float)    # 30° to 40°
LOW_LATITUDE = np.array([7, 7, 9, 10, 10, 10, 10, 10, 9, 8, 6, 4], dtype=float)    # below 30°


def _weights(latitude: float) -> np.ndarray:
    band = abs(latitude)
    if band > 40:
        table = HIGH_LATITUDE
    elif band >= 30:
        table = MID_LATITUDE
    else:
        table = LOW_LATITUDE
    weights = table / table.sum()
    if latitude < 0:
        # Seasons are reversed south of the equator
        weights = np.roll(weights, 6)
    return weights


def seasonal_distribution(annual_kwh: float, latitude: float) -> Tuple[float, ...]:
    """
    Spread an annual figure over twelve months.

    Values are rounded to one decimal and the rounding residual is put on
    the largest month, so the series sums to ``annual_kwh``.

    Args:
        annual_kwh: Annual production
        latitude: Site latitude in degrees (negative south)

    Returns:
        Twelve monthly values, January first
    """
    monthly = np.round(annual_kwh * _weights(latitude), 1)
    residual = round(annual_kwh - float(monthly.sum()), 1)
    if residual:
        monthly[int(np.argmax(monthly))] += residual
    return tuple(round(float(v), 1) for v in monthly)


def series_is_consistent(annual_kwh: float, series: Optional[Sequence[float]]) -> bool:
    """True when ``series`` has twelve finite non-negative values summing to the annual figure within 1%."""
    if series is None or len(series) != 12:
        return False
    try:
        values = np.asarray(series, dtype=float)
    except (TypeError, ValueError):
        return False
    if not np.all(np.isfinite(values)) or np.any(values < 0):
        return False
    return math.isclose(float(values.sum()), annual_kwh, rel_tol=MONTHLY_TOLERANCE, abs_tol=0.05)


def monthly_series_for(
    annual_kwh: float,
    latitude: float,
    series: Optional[Sequence[float]] = None
) -> Tuple[float, ...]:
    """
    Return the provider's series when it is consistent, otherwise a seasonal one.

    Args:
        annual_kwh: Annual production the series must add up to
        latitude: Site latitude for the seasonal model
        series: Monthly values reported by the provider, if any
    """
    if series_is_consistent(annual_kwh, series):
        return tuple(round(float(v), 1) for v in series)
    if series is not None:
        logger.info(
            f"Replacing inconsistent monthly series (len={len(series)}) with seasonal model"
        )
    return seasonal_distribution(annual_kwh, latitude)
