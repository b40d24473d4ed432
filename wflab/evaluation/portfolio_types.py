"""
Portfolio types: per-strategy equity, combined portfolio result,
drawdown periods and pairwise correlations.

Extracted for reuse and to keep portfolio.py focused on aggregation logic.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

import pandas as pd

from ..shared.defaults import INITIAL_CAPITAL


@dataclass
class StrategyEquity:
    """Equity and drawdown of one strategy, averaged over instruments per date."""
    strategy_id: str
    strategy_name: str
    equity: pd.Series  # Date -> equity
    drawdown_pct: pd.Series  # Date -> drawdown from running peak (%)
    params: Dict[str, float] = field(default_factory=dict)
    initial_capital: float = INITIAL_CAPITAL  # Capital each instrument was backtested with

    # Summary
    total_return_pct: float = 0.0
    max_drawdown_pct: float = 0.0
    total_trades: int = 0
    win_rate: float = 0.0  # Pooled over instruments
    sharpe_ratio: float = 0.0  # Mean of non-zero per-instrument Sharpes
    instruments: int = 0


@dataclass
class PortfolioResult:
    """Equal-allocation combination of several strategy equities."""
    strategies: List[str]
    equity: pd.Series
    drawdown_pct: pd.Series
    total_return_pct: float
    max_drawdown_pct: float
    sharpe_ratio: float
    max_dd_peak_date: Optional[pd.Timestamp] = None
    max_dd_bottom_date: Optional[pd.Timestamp] = None
    max_dd_recovery_date: Optional[pd.Timestamp] = None  # None = unrecovered
    annual_returns: Dict[int, float] = field(default_factory=dict)  # Year -> return (%)

    @property
    def recovered(self) -> bool:
        return self.max_dd_recovery_date is not None


@dataclass(frozen=True)
class DrawdownPeriod:
    """One drawdown episode of an equity curve."""
    strategy: str
    start: pd.Timestamp
    bottom: pd.Timestamp
    end: pd.Timestamp  # Recovery date, or the last date if still open
    depth: float  # Maximum drawdown within the period (%)
    duration_days: int  # Calendar days from start to end
    recovered: bool


@dataclass(frozen=True)
class CorrelationResult:
    """Pairwise correlation of two strategies."""
    strategy_a: str
    strategy_b: str
    correlation: float
    co_stress_days: int = 0  # Days both drawdowns exceed the threshold
    co_stress_pct: float = 0.0  # co_stress_days / common days * 100
