"""
Small numeric helpers shared by the simulator, walk-forward and scoring code.

All helpers are total: empty inputs and zero denominators return sentinels
(0.0 or the clamp value) instead of raising.
"""
import math
from typing import Iterable, Sequence

import numpy as np

from .defaults import INFINITY_CAP, TRADING_DAYS_PER_YEAR


def median(values: Iterable[float]) -> float:
    """Median of values; 0.0 for an empty input."""
    arr = np.asarray(list(values), dtype=float)
    if arr.size == 0:
        return 0.0
    return float(np.median(arr))


def sample_std(values: Iterable[float]) -> float:
    """Sample standard deviation (n-1); 0.0 when fewer than two values."""
    arr = np.asarray(list(values), dtype=float)
    if arr.size < 2:
        return 0.0
    return float(np.std(arr, ddof=1))


def clamp_infinite(value: float, cap: float = INFINITY_CAP) -> float:
    """Map +/-inf to +/-cap so the value can be safely aggregated."""
    if math.isinf(value):
        return cap if value > 0 else -cap
    return value


def annualized_sharpe(returns: Sequence[float], periods: int = TRADING_DAYS_PER_YEAR) -> float:
    """
    Annualized Sharpe ratio of per-period returns.

    mean / std(ddof=1) * sqrt(periods); 0.0 for fewer than two returns
    or zero dispersion.
    """
    arr = np.asarray(returns, dtype=float)
    if arr.size < 2:
        return 0.0
    std = float(np.std(arr, ddof=1))
    if std == 0:
        return 0.0
    return float(np.mean(arr) / std * math.sqrt(periods))
