"""
Single-position backtest simulator.

Turns a signal sequence into percent round-trip trades and summary
statistics. Capital frames the absolute equity curve only; it never
sizes positions (every trade is all-in, all-out).

Policy for an open position at the end of the series:
- force_close=False (default): the open position is dropped
- force_close=True: it is closed at the last bar's close and the trade
  is flagged with forced_exit

Sharpe ratio is always computed from per-bar returns of the
mark-to-market equity curve, annualized with sqrt(250).
"""
import logging
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from ..shared.defaults import INITIAL_CAPITAL
from ..shared.stats import median, annualized_sharpe
from ..shared.types import SignalType, CLOSE
from ..strategies.base import ParamValues, StrategyDef
from .backtest_types import Trade, BacktestStats, BacktestResult

logger = logging.getLogger(__name__)


class BacktestSimulator:
    """Pairs buy/sell signals into trades and computes statistics."""

    def __init__(self, initial_capital: float = INITIAL_CAPITAL, force_close: bool = False):
        """
        Initialize the simulator.

        Args:
            initial_capital: Starting capital for the equity curve
            force_close: Close a trailing open position at the last close
        """
        if initial_capital <= 0:
            raise ValueError(f"initial_capital must be > 0, got {initial_capital}")
        self.initial_capital = initial_capital
        self.force_close = force_close

    def run(self, data: pd.DataFrame, signals: Sequence[SignalType]) -> BacktestResult:
        """
        Simulate a signal sequence aligned index-for-index with `data`.

        A BUY while flat opens at the close; the next SELL while holding
        closes at the close. BUY while holding and SELL while flat are ignored.
        """
        if len(signals) != len(data):
            raise ValueError(f"signals ({len(signals)}) must align with data ({len(data)})")
        if len(data) == 0:
            return self._empty_result()

        prices = data[CLOSE].to_numpy(dtype=float)
        dates = data.index
        trades: List[Trade] = []
        equity = np.empty(len(prices))

        capital = self.initial_capital
        entry_index: Optional[int] = None
        for i, signal in enumerate(signals):
            price = prices[i]
            if entry_index is None and signal == SignalType.BUY:
                entry_index = i
            elif entry_index is not None and signal == SignalType.SELL:
                trade = self._close(entry_index, i, prices, dates)
                trades.append(trade)
                capital *= 1 + trade.return_pct / 100
                entry_index = None
            if entry_index is None:
                equity[i] = capital
            else:
                equity[i] = capital * price / prices[entry_index]

        if entry_index is not None and self.force_close:
            last = len(prices) - 1
            trade = self._close(entry_index, last, prices, dates, forced=True)
            trades.append(trade)
            capital *= 1 + trade.return_pct / 100

        equity_curve = pd.Series(equity, index=dates)
        return BacktestResult(
            initial_capital=self.initial_capital,
            final_capital=capital,
            trades=trades,
            stats=calculate_stats(trades, equity_curve),
            equity=equity_curve,
        )

    def run_strategy(
        self,
        data: pd.DataFrame,
        strategy: StrategyDef,
        params: Optional[ParamValues] = None,
    ) -> BacktestResult:
        """Generate the strategy's signals for `data` and simulate them."""
        if len(data) == 0:
            return self._empty_result()
        return self.run(data, strategy.generate_signals(data, params))

    @staticmethod
    def _close(entry: int, exit_: int, prices, dates, forced: bool = False) -> Trade:
        entry_price = prices[entry]
        exit_price = prices[exit_]
        return Trade(
            entry_index=entry,
            entry_date=dates[entry],
            entry_price=float(entry_price),
            exit_index=exit_,
            exit_date=dates[exit_],
            exit_price=float(exit_price),
            return_pct=float((exit_price - entry_price) / entry_price * 100),
            holding_bars=exit_ - entry,
            forced_exit=forced,
        )

    def _empty_result(self) -> BacktestResult:
        """Return an empty result for edge cases."""
        return BacktestResult(
            initial_capital=self.initial_capital,
            final_capital=self.initial_capital,
            trades=[],
            stats=calculate_stats([], pd.Series(dtype=float)),
        )


def calculate_stats(trades: List[Trade], equity: pd.Series) -> BacktestStats:
    """
    Compute BacktestStats for a list of trades.

    Args:
        trades: Completed round trips in chronological order
        equity: Per-bar mark-to-market equity curve (used for Sharpe)
    """
    returns = [t.return_pct for t in trades]
    wins = [r for r in returns if r > 0]
    losses = [r for r in returns if r <= 0]

    gross_profit = sum(wins)
    gross_loss = abs(sum(losses))
    profit_factor = gross_profit / gross_loss if gross_loss > 0 else (float('inf') if gross_profit > 0 else 0.0)

    total_return = sum(returns)
    max_dd, avg_dd = _calculate_drawdowns(returns)
    recovery_factor = total_return / max_dd if max_dd > 0 else (float('inf') if total_return > 0 else 0.0)

    compounded = float(np.prod([1 + r / 100 for r in returns])) if returns else 1.0
    bar_returns = equity.pct_change().dropna().to_numpy() if len(equity) > 1 else []
    q_min, q1, q_med, q3, q_max = holding_quartiles([t.holding_bars for t in trades])

    return BacktestStats(
        total_trades=len(returns),
        winning_trades=len(wins),
        losing_trades=len(losses),
        win_rate=len(wins) / len(returns) * 100 if returns else 0.0,
        total_return_pct=total_return,
        compounded_return_pct=(compounded - 1) * 100,
        avg_win_pct=sum(wins) / len(wins) if wins else 0.0,
        avg_loss_pct=sum(losses) / len(losses) if losses else 0.0,
        gross_profit_pct=gross_profit,
        gross_loss_pct=gross_loss,
        profit_factor=profit_factor,
        best_trade_pct=max(returns) if returns else 0.0,
        worst_trade_pct=min(returns) if returns else 0.0,
        sharpe_ratio=annualized_sharpe(bar_returns),
        max_drawdown_pct=max_dd,
        avg_drawdown_pct=avg_dd,
        recovery_factor=recovery_factor,
        holding_bars_min=q_min,
        holding_bars_q1=q1,
        holding_bars_median=q_med,
        holding_bars_q3=q3,
        holding_bars_max=q_max,
        avg_holding_bars=sum(t.holding_bars for t in trades) / len(trades) if trades else 0.0,
    )


def _calculate_drawdowns(returns: List[float]):
    """Max and average drawdown (%) of equity compounded trade by trade."""
    if not returns:
        return 0.0, 0.0
    equity = 1.0
    peak = 1.0
    drawdowns = []
    for pct in returns:
        equity *= 1 + pct / 100
        if equity > peak:
            peak = equity
        drawdowns.append((peak - equity) / peak * 100)
    return max(drawdowns), sum(drawdowns) / len(drawdowns)


def holding_quartiles(values: List[float]):
    """
    (min, Q1, median, Q3, max) of holding periods.

    Q1 and Q3 are the medians of the lower and upper halves; the middle
    element is excluded from both halves when the count is odd.
    """
    if not values:
        return 0.0, 0.0, 0.0, 0.0, 0.0
    ordered = sorted(values)
    n = len(ordered)
    lower = ordered[:n // 2]
    upper = ordered[(n + 1) // 2:]
    q1 = median(lower) if lower else float(ordered[0])
    q3 = median(upper) if upper else float(ordered[-1])
    return float(ordered[0]), q1, median(ordered), q3, float(ordered[-1])
