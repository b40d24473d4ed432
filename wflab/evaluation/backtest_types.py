"""
Backtest types: round-trip trades, summary statistics, backtest result.

Extracted to keep backtest.py focused on simulation logic. Walk-forward
and portfolio code import these types without pulling in the simulator.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

import pandas as pd


@dataclass(frozen=True)
class Trade:
    """One completed round trip (buy while flat, next sell while holding)."""
    entry_index: int
    entry_date: pd.Timestamp
    entry_price: float
    exit_index: int
    exit_date: pd.Timestamp
    exit_price: float
    return_pct: float
    holding_bars: int
    forced_exit: bool = False  # Closed at the last bar because the series ended

    @property
    def is_win(self) -> bool:
        return self.return_pct > 0


@dataclass(frozen=True)
class BacktestStats:
    """Summary statistics over a list of trades (percent round trips)."""
    total_trades: int
    winning_trades: int
    losing_trades: int
    win_rate: float  # wins / trades * 100
    total_return_pct: float  # Sum of trade returns
    compounded_return_pct: float  # Product of (1 + pct/100), minus 1, in percent
    avg_win_pct: float
    avg_loss_pct: float  # Average of non-positive trades (<= 0)
    gross_profit_pct: float
    gross_loss_pct: float  # Absolute value
    profit_factor: float  # inf when no losses and positive profit
    best_trade_pct: float
    worst_trade_pct: float
    sharpe_ratio: float  # Annualized, per-bar mark-to-market equity returns
    max_drawdown_pct: float  # On the trade-compounded equity curve
    avg_drawdown_pct: float
    recovery_factor: float  # total_return_pct / max_drawdown_pct, inf when no drawdown
    holding_bars_min: float
    holding_bars_q1: float
    holding_bars_median: float
    holding_bars_q3: float
    holding_bars_max: float
    avg_holding_bars: float


@dataclass
class BacktestResult:
    """Result of simulating one signal sequence over one price frame."""
    initial_capital: float
    final_capital: float
    trades: List[Trade]
    stats: BacktestStats
    equity: pd.Series = field(default_factory=lambda: pd.Series(dtype=float))  # Mark-to-market, per bar
