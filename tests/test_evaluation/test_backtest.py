"""
Tests for the single-position backtest simulator.
"""
import math

import numpy as np
import pandas as pd
import pytest

from wflab.evaluation.backtest import BacktestSimulator, calculate_stats, holding_quartiles
from wflab.evaluation.backtest_types import Trade
from wflab.shared.types import SignalType
from wflab.strategies.registry import get_strategy

BUY, SELL, HOLD = SignalType.BUY, SignalType.SELL, SignalType.HOLD


def make_frame(closes) -> pd.DataFrame:
    closes = np.asarray(closes, dtype=float)
    return pd.DataFrame({
        'Open': closes, 'High': closes, 'Low': closes, 'Close': closes, 'Volume': 1.0,
    }, index=pd.date_range('2022-01-03', periods=len(closes), freq='B'))


def make_trade(return_pct, holding_bars=1) -> Trade:
    day = pd.Timestamp('2022-01-03')
    return Trade(
        entry_index=0, entry_date=day, entry_price=100.0,
        exit_index=holding_bars, exit_date=day + pd.Timedelta(days=holding_bars),
        exit_price=100.0 * (1 + return_pct / 100), return_pct=return_pct,
        holding_bars=holding_bars,
    )


class TestBacktestSimulator:
    def test_single_winning_trade(self):
        data = make_frame([100, 105, 110, 108])
        result = BacktestSimulator().run(data, [BUY, HOLD, SELL, HOLD])

        assert len(result.trades) == 1
        trade = result.trades[0]
        assert trade.return_pct == pytest.approx(10.0)
        assert trade.holding_bars == 2
        assert trade.is_win
        assert result.stats.win_rate == 100.0
        assert math.isinf(result.stats.profit_factor)
        assert result.final_capital == pytest.approx(1_100_000.0)

    def test_repeated_buy_is_ignored(self):
        data = make_frame([100, 90, 120])
        result = BacktestSimulator().run(data, [BUY, BUY, SELL])
        assert len(result.trades) == 1
        assert result.trades[0].entry_price == 100.0

    def test_sell_while_flat_is_ignored(self):
        data = make_frame([100, 110, 120])
        result = BacktestSimulator().run(data, [SELL, HOLD, SELL])
        assert result.trades == []
        assert result.stats.total_trades == 0
        assert result.stats.profit_factor == 0.0

    def test_open_position_dropped_by_default(self):
        data = make_frame([100, 110, 120])
        result = BacktestSimulator().run(data, [HOLD, BUY, HOLD])
        assert result.trades == []
        # Mark-to-market equity still reflects the open position
        assert result.equity.iloc[-1] == pytest.approx(1_000_000.0 * 120 / 110)

    def test_force_close(self):
        data = make_frame([100, 110, 121])
        result = BacktestSimulator(force_close=True).run(data, [HOLD, BUY, HOLD])
        assert len(result.trades) == 1
        assert result.trades[0].forced_exit
        assert result.trades[0].return_pct == pytest.approx(10.0)

    def test_compounded_capital(self):
        data = make_frame([100, 110, 100, 90])
        result = BacktestSimulator(initial_capital=1000).run(data, [BUY, SELL, BUY, SELL])
        assert [round(t.return_pct, 6) for t in result.trades] == [10.0, -10.0]
        assert result.stats.total_return_pct == pytest.approx(0.0)
        assert result.final_capital == pytest.approx(1000 * 1.1 * 0.9)
        assert result.stats.compounded_return_pct == pytest.approx(-1.0)

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            BacktestSimulator().run(make_frame([1, 2, 3]), [BUY])

    def test_empty_data(self):
        result = BacktestSimulator().run(make_frame([]), [])
        assert result.trades == []
        assert result.final_capital == result.initial_capital

    def test_invalid_capital(self):
        with pytest.raises(ValueError):
            BacktestSimulator(initial_capital=0)

    def test_run_strategy(self):
        data = make_frame([100, 95, 89, 90, 105])
        result = BacktestSimulator().run_strategy(
            data, get_strategy("dip_buy"), {"dipPct": 10, "recoveryPct": 15},
        )
        assert len(result.trades) == 1
        assert result.trades[0].return_pct == pytest.approx((105 - 89) / 89 * 100)


class TestCalculateStats:
    def test_mixed_trades(self):
        stats = calculate_stats([make_trade(10), make_trade(-5), make_trade(20)], pd.Series(dtype=float))
        assert stats.total_trades == 3
        assert stats.winning_trades == 2
        assert stats.losing_trades == 1
        assert stats.win_rate == pytest.approx(200 / 3)
        assert stats.total_return_pct == pytest.approx(25.0)
        assert stats.profit_factor == pytest.approx(6.0)
        assert stats.best_trade_pct == 20
        assert stats.worst_trade_pct == -5
        assert stats.max_drawdown_pct == pytest.approx(5.0)
        assert stats.recovery_factor == pytest.approx(5.0)

    def test_break_even_trade_counts_as_loss(self):
        stats = calculate_stats([make_trade(0.0)], pd.Series(dtype=float))
        assert stats.losing_trades == 1
        assert stats.profit_factor == 0.0

    def test_sharpe_from_equity(self):
        equity = pd.Series([100.0, 101.0, 100.0, 102.0])
        returns = equity.pct_change().dropna()
        expected = returns.mean() / returns.std(ddof=1) * np.sqrt(250)
        assert calculate_stats([], equity).sharpe_ratio == pytest.approx(expected)

    def test_flat_equity_sharpe(self):
        assert calculate_stats([], pd.Series([1.0, 1.0, 1.0])).sharpe_ratio == 0.0


class TestHoldingQuartiles:
    def test_odd_count(self):
        assert holding_quartiles([1, 2, 3, 4, 5]) == (1.0, 1.5, 3.0, 4.5, 5.0)

    def test_even_count(self):
        assert holding_quartiles([4, 1, 3, 2]) == (1.0, 1.5, 2.5, 3.5, 4.0)

    def test_single_value(self):
        assert holding_quartiles([7]) == (7.0, 7.0, 7.0, 7.0, 7.0)

    def test_empty(self):
        assert holding_quartiles([]) == (0.0, 0.0, 0.0, 0.0, 0.0)
