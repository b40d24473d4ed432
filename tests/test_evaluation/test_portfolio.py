"""
Tests for strategy equity curves and the equal-allocation portfolio.
"""
import numpy as np
import pandas as pd
import pytest

from wflab.evaluation.portfolio import build_portfolio, build_strategy_equity, drawdown_series
from wflab.evaluation.portfolio_types import StrategyEquity
from wflab.strategies.registry import get_strategy


def make_equity(strategy_id, values, start='2021-01-04', capital=100.0) -> StrategyEquity:
    index = pd.date_range(start, periods=len(values), freq='B')
    equity = pd.Series(values, index=index, dtype=float)
    return StrategyEquity(
        strategy_id=strategy_id,
        strategy_name=strategy_id,
        equity=equity,
        drawdown_pct=drawdown_series(equity, capital),
        initial_capital=capital,
    )


def make_frame(closes, start='2021-01-04') -> pd.DataFrame:
    closes = np.asarray(closes, dtype=float)
    return pd.DataFrame({
        'Open': closes, 'High': closes, 'Low': closes, 'Close': closes, 'Volume': 1.0,
    }, index=pd.date_range(start, periods=len(closes), freq='B'))


class TestDrawdownSeries:
    def test_peak_starts_at_capital(self):
        dd = drawdown_series(pd.Series([90.0, 95.0, 100.0]), 100.0)
        assert dd.tolist() == pytest.approx([10.0, 5.0, 0.0])

    def test_running_peak(self):
        dd = drawdown_series(pd.Series([100.0, 110.0, 99.0, 121.0]), 100.0)
        assert dd.tolist() == pytest.approx([0.0, 0.0, 10.0, 0.0])

    def test_empty(self):
        assert drawdown_series(pd.Series(dtype=float), 100.0).empty


class TestBuildStrategyEquity:
    def test_averages_instrument_rates(self):
        universe = {
            "DIP": make_frame([100, 95, 89, 90, 105]),
            "FLAT": make_frame([50, 50, 50, 50, 50]),
        }
        se = build_strategy_equity(
            get_strategy("dip_buy"), {"dipPct": 10, "recoveryPct": 15}, universe, initial_capital=1000.0,
        )
        gain = (105 / 89 - 1) * 100
        assert se.instruments == 2
        assert se.total_trades == 1
        assert se.win_rate == 100.0
        assert se.total_return_pct == pytest.approx(gain / 2)
        assert se.equity.iloc[-1] == pytest.approx(1000.0 * (1 + gain / 200))
        assert se.params["stopLossPct"] == get_strategy("dip_buy").default_params()["stopLossPct"]

    def test_unequal_histories(self):
        universe = {
            "LONG": make_frame([100, 100, 100, 100], start='2021-01-04'),
            "SHORT": make_frame([100, 100], start='2021-01-06'),
        }
        se = build_strategy_equity(get_strategy("ma_cross"), None, universe, initial_capital=1000.0)
        assert len(se.equity) == 4
        assert se.equity.eq(1000.0).all()

    def test_empty_universe(self):
        se = build_strategy_equity(get_strategy("ma_cross"), None, {})
        assert se.equity.empty
        assert se.instruments == 0


class TestBuildPortfolio:
    def test_identical_curves(self):
        values = [100.0, 110.0, 99.0, 121.0]
        result = build_portfolio([make_equity("a", values), make_equity("b", values)], 100.0)

        assert result.equity.tolist() == pytest.approx(values)
        assert result.total_return_pct == pytest.approx(21.0)
        assert result.max_drawdown_pct == pytest.approx(10.0)
        dates = result.equity.index
        assert result.max_dd_peak_date == dates[1]
        assert result.max_dd_bottom_date == dates[2]
        assert result.max_dd_recovery_date == dates[3]
        assert result.recovered

    def test_missing_dates_keep_allocation(self):
        a = make_equity("a", [100.0, 120.0, 120.0, 120.0])
        b = make_equity("b", [100.0, 100.0])
        result = build_portfolio([a, b], 100.0)
        assert result.equity.tolist() == pytest.approx([100.0, 110.0, 110.0, 110.0])

    def test_capital_scaling(self):
        """Strategies backtested with a different capital are combined by return rate."""
        a = make_equity("a", [1000.0, 1100.0], capital=1000.0)
        result = build_portfolio([a], 50.0)
        assert result.equity.tolist() == pytest.approx([50.0, 55.0])

    def test_unrecovered_drawdown(self):
        result = build_portfolio([make_equity("a", [100.0, 120.0, 90.0, 95.0])], 100.0)
        assert result.max_drawdown_pct == pytest.approx(25.0)
        assert result.max_dd_recovery_date is None
        assert not result.recovered

    def test_drawdown_from_first_bar_has_no_peak_date(self):
        result = build_portfolio([make_equity("a", [95.0, 90.0, 100.0])], 100.0)
        dates = result.equity.index
        assert result.max_drawdown_pct == pytest.approx(10.0)
        assert result.max_dd_peak_date is None
        assert result.max_dd_bottom_date == dates[1]
        assert result.max_dd_recovery_date == dates[2]

    def test_annual_returns(self):
        index = pd.to_datetime(['2020-06-01', '2020-12-31', '2021-01-04', '2021-12-31'])
        equity = pd.Series([100.0, 110.0, 110.0, 99.0], index=index)
        se = StrategyEquity("a", "a", equity, drawdown_series(equity, 100.0), initial_capital=100.0)
        result = build_portfolio([se], 100.0)
        assert result.annual_returns == pytest.approx({2020: 10.0, 2021: -10.0})
        assert all(isinstance(year, int) for year in result.annual_returns)

    def test_no_strategies(self):
        result = build_portfolio([], 100.0)
        assert result.equity.empty
        assert result.total_return_pct == 0.0
        assert result.max_dd_peak_date is None
