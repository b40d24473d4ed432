"""
Cross-strategy correlation and drawdown episode analysis.

Answers "do these strategies lose money at the same time?":
- Pearson correlation of drawdown series over common dates, plus the
  number of co-stress days where both are in a deep drawdown
- Pearson correlation of day-over-day returns over common dates
- Drawdown periods of a single equity curve
"""
import logging
import math
from itertools import combinations
from typing import List, Sequence

import pandas as pd

from ..shared.defaults import (
    CORRELATION_DECIMALS, DRAWDOWN_THRESHOLD_PCT, DRAWDOWN_RECOVERY_RATIO,
)
from .portfolio_types import StrategyEquity, CorrelationResult, DrawdownPeriod

logger = logging.getLogger(__name__)


def pearson(x: Sequence[float], y: Sequence[float]) -> float:
    """
    Pearson correlation coefficient rounded to 6 decimals.

    Returns 0.0 for fewer than two points or zero variance.
    """
    n = min(len(x), len(y))
    if n < 2:
        return 0.0
    mean_x = sum(x[:n]) / n
    mean_y = sum(y[:n]) / n
    sum_xy = sum_x2 = sum_y2 = 0.0
    for i in range(n):
        dx = x[i] - mean_x
        dy = y[i] - mean_y
        sum_xy += dx * dy
        sum_x2 += dx * dx
        sum_y2 += dy * dy
    denom = math.sqrt(sum_x2 * sum_y2)
    if denom <= 0:
        return 0.0
    return round(sum_xy / denom, CORRELATION_DECIMALS)


def _common_dates(a: pd.Series, b: pd.Series) -> pd.DatetimeIndex:
    return a.index.intersection(b.index).sort_values()


def drawdown_correlations(
    equities: Sequence[StrategyEquity],
    threshold: float = DRAWDOWN_THRESHOLD_PCT,
) -> List[CorrelationResult]:
    """Drawdown correlation and co-stress days for every strategy pair."""
    results = []
    for a, b in combinations(equities, 2):
        dates = _common_dates(a.drawdown_pct, b.drawdown_pct)
        dd_a = a.drawdown_pct.reindex(dates).tolist()
        dd_b = b.drawdown_pct.reindex(dates).tolist()
        co_stress = sum(1 for x, y in zip(dd_a, dd_b) if x > threshold and y > threshold)
        results.append(CorrelationResult(
            strategy_a=a.strategy_id,
            strategy_b=b.strategy_id,
            correlation=pearson(dd_a, dd_b),
            co_stress_days=co_stress,
            co_stress_pct=round(co_stress / len(dates) * 100, 2) if len(dates) > 0 else 0.0,
        ))
    return results


def return_correlations(equities: Sequence[StrategyEquity]) -> List[CorrelationResult]:
    """Correlation of day-over-day returns between consecutive common dates."""
    results = []
    for a, b in combinations(equities, 2):
        dates = _common_dates(a.equity, b.equity)
        eq_a = a.equity.reindex(dates).to_numpy()
        eq_b = b.equity.reindex(dates).to_numpy()
        ret_a = []
        ret_b = []
        for i in range(1, len(dates)):
            if eq_a[i - 1] > 0 and eq_b[i - 1] > 0:
                ret_a.append((eq_a[i] - eq_a[i - 1]) / eq_a[i - 1])
                ret_b.append((eq_b[i] - eq_b[i - 1]) / eq_b[i - 1])
        results.append(CorrelationResult(
            strategy_a=a.strategy_id,
            strategy_b=b.strategy_id,
            correlation=pearson(ret_a, ret_b),
        ))
    return results


def find_drawdown_periods(
    equity: StrategyEquity,
    threshold: float = DRAWDOWN_THRESHOLD_PCT,
) -> List[DrawdownPeriod]:
    """
    Drawdown episodes of a strategy equity.

    A period starts when drawdown reaches `threshold` and ends on the first
    date it falls below `threshold * 0.3`. A period still open on the last
    date is reported with recovered=False.
    """
    periods = []
    in_dd = False
    start = bottom = None
    depth = 0.0
    dd = equity.drawdown_pct

    for date, value in dd.items():
        if not in_dd:
            if value >= threshold:
                in_dd = True
                start = bottom = date
                depth = value
            continue
        if value > depth:
            depth = value
            bottom = date
        if value < threshold * DRAWDOWN_RECOVERY_RATIO:
            periods.append(DrawdownPeriod(
                strategy=equity.strategy_id,
                start=start,
                bottom=bottom,
                end=date,
                depth=round(depth, 2),
                duration_days=(date - start).days,
                recovered=True,
            ))
            in_dd = False
            depth = 0.0

    if in_dd:
        last = dd.index[-1]
        periods.append(DrawdownPeriod(
            strategy=equity.strategy_id,
            start=start,
            bottom=bottom,
            end=last,
            depth=round(depth, 2),
            duration_days=(last - start).days,
            recovered=False,
        ))
    return periods
