"""
Strategy equity curves and the equal-allocation portfolio.

A strategy's equity is built by backtesting every instrument over its
full frame and averaging the instruments' return rates per date. The
portfolio then splits capital equally across strategies.
"""
import logging
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from ..shared.defaults import INITIAL_CAPITAL
from ..shared.stats import annualized_sharpe
from ..strategies.base import ParamValues, StrategyDef
from .backtest import BacktestSimulator
from .portfolio_types import StrategyEquity, PortfolioResult

logger = logging.getLogger(__name__)


def drawdown_series(equity: pd.Series, initial_capital: float) -> pd.Series:
    """Drawdown (%) from the running peak; the peak starts at initial capital."""
    if equity.empty:
        return pd.Series(dtype=float)
    peak = np.maximum.accumulate(np.maximum(equity.to_numpy(dtype=float), initial_capital))
    dd = np.where(peak > 0, (peak - equity.to_numpy(dtype=float)) / peak * 100, 0.0)
    return pd.Series(dd, index=equity.index)


def build_strategy_equity(
    strategy: StrategyDef,
    params: Optional[ParamValues],
    universe: Dict[str, pd.DataFrame],
    initial_capital: float = INITIAL_CAPITAL,
    force_close: bool = False,
) -> StrategyEquity:
    """
    Equity curve of one strategy over a universe.

    Each instrument is backtested with `initial_capital`; per date the
    equity is capital * (1 + mean return rate of instruments with a value).
    """
    simulator = BacktestSimulator(initial_capital, force_close=force_close)
    resolved = strategy.resolve_params(params)

    rates = []
    total_trades = 0
    total_wins = 0
    sharpes = []
    for symbol in sorted(universe):
        result = simulator.run_strategy(universe[symbol], strategy, resolved)
        total_trades += result.stats.total_trades
        total_wins += result.stats.winning_trades
        if result.stats.sharpe_ratio != 0:
            sharpes.append(result.stats.sharpe_ratio)
        if not result.equity.empty:
            rates.append(((result.equity - initial_capital) / initial_capital).rename(symbol))

    if not rates:
        logger.warning(f"{strategy.id}: no equity data in universe")
        return StrategyEquity(
            strategy_id=strategy.id,
            strategy_name=strategy.name,
            equity=pd.Series(dtype=float),
            drawdown_pct=pd.Series(dtype=float),
            params=resolved,
            initial_capital=initial_capital,
        )

    # Mean over the instruments that have a value on each date
    avg_rate = pd.concat(rates, axis=1).sort_index().mean(axis=1, skipna=True)
    equity = initial_capital * (1 + avg_rate)
    dd = drawdown_series(equity, initial_capital)

    return StrategyEquity(
        strategy_id=strategy.id,
        strategy_name=strategy.name,
        equity=equity,
        drawdown_pct=dd,
        params=resolved,
        initial_capital=initial_capital,
        total_return_pct=(equity.iloc[-1] - initial_capital) / initial_capital * 100,
        max_drawdown_pct=float(dd.max()),
        total_trades=total_trades,
        win_rate=total_wins / total_trades * 100 if total_trades > 0 else 0.0,
        sharpe_ratio=float(np.mean(sharpes)) if sharpes else 0.0,
        instruments=len(rates),
    )


def build_portfolio(
    equities: Sequence[StrategyEquity],
    initial_capital: float = INITIAL_CAPITAL,
) -> PortfolioResult:
    """
    Combine strategy equities under equal allocation.

    Each strategy gets capital / N. On a date where a strategy has no
    value it contributes its allocation unchanged.
    """
    if not equities:
        return _empty_result([])

    dates = sorted(set().union(*(se.equity.index for se in equities)))
    if not dates:
        return _empty_result([se.strategy_id for se in equities])
    index = pd.DatetimeIndex(dates)
    per_strategy = initial_capital / len(equities)

    total = pd.Series(0.0, index=index)
    for se in equities:
        rate = ((se.equity - se.initial_capital) / se.initial_capital).reindex(index)
        total += per_strategy * (1 + rate.fillna(0.0))

    dd = drawdown_series(total, initial_capital)
    dd_values = dd.to_numpy()

    # Max drawdown with its peak, bottom and recovery dates. A drawdown
    # open from the first bar peaked at initial capital, before any date.
    max_dd = 0.0
    peak_idx = None
    bottom_idx = 0
    for i, value in enumerate(dd_values):
        if value > max_dd:
            max_dd = value
            bottom_idx = i
            peak_idx = None
            for j in range(i, -1, -1):
                if dd_values[j] == 0:
                    peak_idx = j
                    break
    recovery_date = None
    if max_dd > 0:
        for i in range(bottom_idx, len(dd_values)):
            if dd_values[i] == 0:
                recovery_date = index[i]
                break

    # Annual returns relative to each year's first equity
    annual_returns: Dict[int, float] = {}
    for year, values in total.groupby(total.index.year):
        first = values.iloc[0]
        annual_returns[int(year)] = (values.iloc[-1] - first) / first * 100 if first > 0 else 0.0

    daily_returns = total.pct_change().dropna().to_numpy()

    return PortfolioResult(
        strategies=[se.strategy_id for se in equities],
        equity=total,
        drawdown_pct=dd,
        total_return_pct=(total.iloc[-1] - initial_capital) / initial_capital * 100,
        max_drawdown_pct=max_dd,
        sharpe_ratio=annualized_sharpe(daily_returns),
        max_dd_peak_date=index[peak_idx] if max_dd > 0 and peak_idx is not None else None,
        max_dd_bottom_date=index[bottom_idx] if max_dd > 0 else None,
        max_dd_recovery_date=recovery_date,
        annual_returns=annual_returns,
    )


def _empty_result(strategies: List[str]) -> PortfolioResult:
    """Return an empty result for edge cases."""
    return PortfolioResult(
        strategies=strategies,
        equity=pd.Series(dtype=float),
        drawdown_pct=pd.Series(dtype=float),
        total_return_pct=0.0,
        max_drawdown_pct=0.0,
        sharpe_ratio=0.0,
    )
